import logging
import os
import sys
import time
import traceback

from PyQt6.QtGui import QFont
from PyQt6.QtWidgets import QApplication

from speedy.actions import ActivationDispatcher
from speedy.config import CONFIG_PATH, load_config
from speedy.controller import DEBOUNCE_MS, MIN_QUERY_LENGTH, SearchOverlayController
from speedy.engines import create_engine
from speedy.launcher import Launcher

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


def application_path() -> str:
    if getattr(sys, "frozen", False):
        return os.path.dirname(sys.executable)
    return os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


def setup_logging(level="INFO"):
    # Console only, no log file.
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler()],
    )


def build(config: dict, engine=None, dispatcher=None):
    """Wires engine, dispatcher, controller and window. Needs a QApplication."""
    search_cfg = config.get("search", {})
    controller = SearchOverlayController(
        engine if engine is not None else create_engine(config),
        dispatcher if dispatcher is not None else ActivationDispatcher(),
        debounce_ms=search_cfg.get("debounce_ms", DEBOUNCE_MS),
        min_query_length=search_cfg.get("min_query_length", MIN_QUERY_LENGTH),
    )
    launcher = Launcher(controller, config)
    return controller, launcher


def main(argv=None):
    os.chdir(application_path())
    config = load_config(CONFIG_PATH)
    setup_logging(config.get("log_level", "INFO"))

    qt_app = QApplication(argv if argv is not None else sys.argv)
    qt_app.setQuitOnLastWindowClosed(False)
    qt_app.setFont(QFont(config.get("theme", {}).get("font", "Segoe UI"), 10))

    controller, launcher = build(config)
    qt_app.aboutToQuit.connect(controller.shutdown)

    tray = None
    if config.get("tray", True):
        from speedy.tray import setup_tray
        tray = setup_tray(on_toggle=controller.toggle, on_quit=qt_app.quit)

    logger.info("Speedy ready, press %s", config.get("hotkey", "Ctrl+Space"))
    code = qt_app.exec()
    if tray is not None:
        tray[0].stop()
    return code


def run():
    """Entry point; a crash that escapes everything else lands in crash_log.txt."""
    try:
        sys.exit(main())
    except Exception:
        log_path = os.path.join(application_path(), "crash_log.txt")
        with open(log_path, "w", encoding="utf-8") as f:
            f.write(f"Crash Time: {time.ctime()}\n")
            f.write(traceback.format_exc())
        raise
