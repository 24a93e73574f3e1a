import logging
import os
import subprocess
import sys

import pyperclip

from speedy.errors import ActivationError
from speedy.models import ResultKind

logger = logging.getLogger(__name__)


# ============================================================================
#  SHELL OPERATIONS
# ============================================================================

def _existing(path: str) -> str:
    expanded = os.path.expanduser(os.path.expandvars(path))
    if not os.path.exists(expanded):
        raise ActivationError(f"Not found: {path}")
    return expanded


def _spawn(cmd):
    try:
        subprocess.Popen(cmd, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
    except OSError as e:
        raise ActivationError(f"Could not start {cmd[0]}: {e}") from e


def _shell_open(path: str):
    """Hand the path to the platform's default handler."""
    if sys.platform == "win32":
        try:
            os.startfile(path)
        except OSError as e:
            raise ActivationError(f"Failed to open {path}: {e}") from e
    elif sys.platform == "darwin":
        _spawn(["open", path])
    else:
        _spawn(["xdg-open", path])


def open_path(path: str):
    """Opens a file or folder with its default application."""
    target = _existing(path)
    logger.info("Opening %s", target)
    _shell_open(target)


def launch_app(path: str):
    """Starts the application behind path (executable, shortcut or bundle)."""
    target = _existing(path)
    logger.info("Launching %s", target)

    lower = target.lower()
    if sys.platform == "win32":
        if lower.endswith(".exe"):
            _spawn([target])
        else:
            # .lnk and friends resolve through the shell
            _shell_open(target)
    elif sys.platform == "darwin":
        _spawn(["open", target])
    else:
        if os.path.isfile(target) and os.access(target, os.X_OK) and not lower.endswith(".desktop"):
            _spawn([target])
        else:
            _shell_open(target)


def reveal_path(path: str):
    """Shows the item selected in the system file manager."""
    target = _existing(path)
    if sys.platform == "win32":
        _spawn(["explorer", f"/select,{target}"])
    elif sys.platform == "darwin":
        _spawn(["open", "-R", target])
    else:
        _shell_open(os.path.dirname(target) or target)


def copy_path(path: str):
    try:
        pyperclip.copy(path)
    except pyperclip.PyperclipException as e:
        raise ActivationError(f"Clipboard unavailable: {e}") from e


# ============================================================================
#  DISPATCH
# ============================================================================

class ActivationDispatcher:
    """
    Routes a selected result to the right shell operation.

    application -> launch_app(path)
    file/folder -> open_path(path)

    Operations signal failure by raising; anything that is not already an
    ActivationError is wrapped so callers only have one type to catch.
    """

    def __init__(self, open_path=open_path, launch_app=launch_app, reveal_path=reveal_path, copy_path=copy_path):
        self.open_path = open_path
        self.launch_app = launch_app
        self.reveal_path = reveal_path
        self.copy_path = copy_path

    def operation_for(self, result):
        if result.kind == ResultKind.APPLICATION:
            return self.launch_app
        if result.kind in (ResultKind.FILE, ResultKind.FOLDER):
            return self.open_path
        raise ActivationError(f"Unsupported result kind: {result.kind!r}")

    def dispatch(self, result):
        self._run(self.operation_for(result), result.path)

    def reveal(self, result):
        self._run(self.reveal_path, result.path)

    def copy(self, result):
        self._run(self.copy_path, result.path)

    def _run(self, operation, path):
        try:
            operation(path)
        except ActivationError:
            raise
        except Exception as e:
            raise ActivationError(f"Failed to open {path}: {e}") from e
