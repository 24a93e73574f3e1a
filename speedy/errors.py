class SpeedyError(Exception):
    """Base class for errors raised by speedy."""


class SearchEngineError(SpeedyError):
    """The external search engine failed or could not be reached."""


class ActivationError(SpeedyError):
    """Opening or launching a result failed."""


class ConfigError(SpeedyError):
    """config.json exists but could not be used."""
