import logging
import os
import shutil
import subprocess
import sys
import threading

from speedy.errors import SearchEngineError
from speedy.models import ResultKind, SearchResult

logger = logging.getLogger(__name__)

APP_EXTENSIONS = (".exe", ".lnk", ".app", ".desktop")


def classify_path(path: str) -> ResultKind:
    """Applications by extension, folders by a stat, everything else is a file."""
    lower = path.lower().rstrip("\\/")
    if lower.endswith(APP_EXTENSIONS):
        return ResultKind.APPLICATION
    if os.path.isdir(path):
        return ResultKind.FOLDER
    return ResultKind.FILE


def base_path():
    if getattr(sys, "frozen", False):
        # Running as a bundled executable: vendor/ sits next to it
        return os.path.dirname(sys.executable)
    return os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


class CommandLineEngine:
    """
    A search engine reached through a CLI that prints one path per line.

    Only one process runs at a time: starting a search kills the previous one,
    whose caller is about to be superseded anyway.
    """

    name = "cli"
    # locate and friends exit 1 on "nothing found"
    empty_exit_code = None

    def __init__(self, limit: int = 100):
        self.limit = limit
        self.current_process = None
        self._lock = threading.Lock()

    def build_command(self, query: str) -> list:
        raise NotImplementedError

    def search(self, query: str) -> list:
        if not query:
            return []

        cmd = self.build_command(query)
        with self._lock:
            self._kill_current()
            try:
                process = subprocess.Popen(
                    cmd,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.PIPE,
                    text=True,
                    encoding="utf-8",
                    errors="replace",  # odd filenames must not break decoding
                    **self._popen_extras(),
                )
            except OSError as e:
                raise SearchEngineError(f"{self.name}: could not run {cmd[0]}: {e}") from e
            self.current_process = process

        stdout, stderr = process.communicate()

        with self._lock:
            superseded = self.current_process is not process
            if not superseded:
                self.current_process = None

        if superseded:
            # Killed or overtaken by a newer search
            return []
        if process.returncode != 0 and not stdout:
            if self.empty_exit_code is not None and process.returncode == self.empty_exit_code:
                return []
            raise SearchEngineError(f"{self.name} exited with {process.returncode}: {stderr.strip()}")

        return self.parse_output(stdout)

    def parse_output(self, stdout: str) -> list:
        results = []
        for line in stdout.splitlines():
            full_path = line.strip()
            if not full_path:
                continue
            results.append(
                SearchResult(
                    path=full_path,
                    name=os.path.basename(full_path.rstrip("\\/")) or full_path,
                    kind=classify_path(full_path),
                )
            )
            if len(results) >= self.limit:
                break
        return results

    def _popen_extras(self) -> dict:
        return {}

    def _kill_current(self):
        if self.current_process and self.current_process.poll() is None:
            try:
                self.current_process.kill()
            except OSError:
                logger.debug("%s: previous search already gone", self.name)


class EverythingEngine(CommandLineEngine):
    """Windows: voidtools Everything through its es.exe command line client."""

    name = "everything"

    EXCLUDES = ["!node_modules", "!$Recycle.Bin", "!Windows\\Installer"]

    def __init__(self, limit: int = 100, es_path=None, everything_path=None, autostart=True):
        super().__init__(limit)
        vendor = os.path.join(base_path(), "vendor")
        self.es_path = es_path or os.path.join(vendor, "es.exe")
        self.exe_path = everything_path or os.path.join(vendor, "Everything.exe")

        if autostart:
            threading.Thread(target=self.ensure_running, daemon=True).start()

    def ensure_running(self):
        """Starts the Everything service silently if it is not running yet."""
        try:
            output = subprocess.check_output(["tasklist"], text=True, errors="replace")
        except (OSError, subprocess.CalledProcessError) as e:
            logger.warning("Could not list processes: %s", e)
            return
        if "Everything.exe" in output:
            return
        if os.path.exists(self.exe_path):
            logger.info("Starting Everything from %s", self.exe_path)
            subprocess.Popen([self.exe_path, "-startup"])
        else:
            logger.warning("Everything is not running and %s does not exist", self.exe_path)

    def build_command(self, query: str) -> list:
        # Raw query, no manual quoting: Popen handles spaces and quotes.
        return [self.es_path, query, "-sort", "run-count-descending", "-n", str(self.limit)] + self.EXCLUDES

    def _popen_extras(self) -> dict:
        if sys.platform != "win32":
            return {}
        # Hide the console window es.exe would otherwise flash
        startupinfo = subprocess.STARTUPINFO()
        startupinfo.dwFlags |= subprocess.STARTF_USESHOWWINDOW
        return {"startupinfo": startupinfo}


class SpotlightEngine(CommandLineEngine):
    """macOS: Spotlight through mdfind."""

    name = "mdfind"

    def build_command(self, query: str) -> list:
        return ["mdfind", "-name", query]


class LocateEngine(CommandLineEngine):
    """Linux and BSD: the locate database (mlocate/plocate)."""

    name = "locate"
    empty_exit_code = 1

    def __init__(self, limit: int = 100, locate_path=None):
        super().__init__(limit)
        self.locate_path = locate_path or shutil.which("plocate") or "locate"

    def build_command(self, query: str) -> list:
        return [self.locate_path, "-i", "-l", str(self.limit), "-b", query]


def create_engine(config: dict):
    """Builds the engine named in config['engine']['name']; 'auto' picks by platform."""
    engine_cfg = config.get("engine", {})
    limit = config.get("search", {}).get("limit", 100)
    name = engine_cfg.get("name", "auto")

    if name == "auto":
        if sys.platform == "win32":
            name = "everything"
        elif sys.platform == "darwin":
            name = "mdfind"
        else:
            name = "locate"

    if name == "everything":
        engine = EverythingEngine(
            limit=limit,
            es_path=engine_cfg.get("es_path"),
            everything_path=engine_cfg.get("everything_path"),
        )
    elif name == "mdfind":
        engine = SpotlightEngine(limit=limit)
    elif name == "locate":
        engine = LocateEngine(limit=limit, locate_path=engine_cfg.get("locate_path"))
    else:
        raise ValueError(f"Unknown search engine: {name!r}")

    logger.info("Search engine: %s", engine.name)
    return engine
