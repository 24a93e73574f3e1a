import copy
import json
import logging

from speedy.errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_PATH = "config.json"

DEFAULT_CONFIG = {
    "hotkey": "Ctrl+Space",
    "search": {
        "debounce_ms": 200,
        "min_query_length": 2,
        "limit": 100,
    },
    "engine": {
        "name": "auto",
        "es_path": None,
        "everything_path": None,
        "locate_path": None,
    },
    "theme": {
        "font": "Segoe UI",
        "width": 680,
    },
    "tray": True,
    "log_level": "INFO",
}


def merge_config(overrides: dict) -> dict:
    """Defaults with user values on top; nested sections merge one level deep."""
    merged = copy.deepcopy(DEFAULT_CONFIG)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key].update(value)
        else:
            merged[key] = value
    return merged


def load_config(path=CONFIG_PATH) -> dict:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        logger.info("No %s found, using defaults", path)
        return copy.deepcopy(DEFAULT_CONFIG)
    except json.JSONDecodeError as e:
        raise ConfigError(f"{path} is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a JSON object")
    return merge_config(data)
