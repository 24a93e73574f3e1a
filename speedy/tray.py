import logging
import threading

import pystray
from PIL import Image, ImageDraw
from PyQt6.QtCore import QObject, pyqtSignal

logger = logging.getLogger(__name__)


class TrayBridge(QObject):
    """
    pystray calls its menu handlers on its own thread; widgets may only be
    touched from the Qt thread, so the handlers emit these and Qt queues them.
    """
    toggle_sig = pyqtSignal()
    quit_sig = pyqtSignal()


def create_icon(size: int = 64):
    """Dark rounded square with a cyan lightning dot."""
    image = Image.new("RGBA", (size, size), (0, 0, 0, 0))
    dc = ImageDraw.Draw(image)
    dc.rounded_rectangle((0, 0, size - 1, size - 1), radius=size // 5, fill="#1e1e1e")
    dc.ellipse((size // 4, size // 4, 3 * size // 4, 3 * size // 4), fill="#00bcd4")
    return image


def build_menu(bridge: TrayBridge):
    return pystray.Menu(
        pystray.MenuItem("Speedy", lambda: None, enabled=False),
        pystray.Menu.SEPARATOR,
        pystray.MenuItem("Toggle search", lambda icon, item: bridge.toggle_sig.emit(), default=True),
        pystray.MenuItem("Exit", lambda icon, item: _exit(icon, bridge)),
    )


def _exit(icon, bridge):
    icon.stop()
    bridge.quit_sig.emit()


def setup_tray(on_toggle, on_quit):
    """
    Starts the tray icon on a daemon thread.
    Returns (icon, bridge); keep both referenced for the life of the app.
    """
    bridge = TrayBridge()
    bridge.toggle_sig.connect(on_toggle)
    bridge.quit_sig.connect(on_quit)

    icon = pystray.Icon("Speedy", create_icon(), "Speedy", build_menu(bridge))
    # icon.run() blocks its thread
    threading.Thread(target=icon.run, daemon=True, name="tray").start()
    logger.debug("Tray icon started")
    return icon, bridge
