import logging
from contextlib import contextmanager

from PyQt6.QtCore import QEvent, QObject, Qt
from PyQt6.QtGui import QKeySequence

logger = logging.getLogger(__name__)

# Only these flags take part in matching; the keypad flag that arrow and
# Enter keys carry on some platforms is ignored.
MODIFIER_MASK = (
    Qt.KeyboardModifier.ControlModifier
    | Qt.KeyboardModifier.ShiftModifier
    | Qt.KeyboardModifier.AltModifier
    | Qt.KeyboardModifier.MetaModifier
)


def parse_shortcut(text: str):
    """'Ctrl+Space' -> (Qt.Key.Key_Space, ControlModifier)."""
    sequence = QKeySequence(text)
    if sequence.isEmpty() or sequence.count() != 1:
        raise ValueError(f"Not a single key combination: {text!r}")

    combo = sequence[0]
    key = combo.key()
    if key == Qt.Key.Key_unknown:
        raise ValueError(f"Unknown key in shortcut: {text!r}")
    return key, combo.keyboardModifiers() & MODIFIER_MASK


class ShortcutListener(QObject):
    """
    Watches a key-down stream for one exact key combination.

    The stream is whatever object the listener is installed on; installing on
    the QApplication sees every key press the application receives. A match is
    consumed and the callback runs. Anything else passes through untouched, so
    any number of listeners can share one source.

    Give the listener a parent to tie the subscription to the parent's
    lifetime: Qt drops the event filter when the listener is destroyed.
    """

    def __init__(self, key, callback, modifiers=Qt.KeyboardModifier.NoModifier, parent=None):
        super().__init__(parent)
        if isinstance(key, str):
            key, modifiers = parse_shortcut(key)
        self.key = key
        self.modifiers = modifiers & MODIFIER_MASK
        self.callback = callback
        self._source = None

    def matches(self, event) -> bool:
        return event.key() == self.key and (event.modifiers() & MODIFIER_MASK) == self.modifiers

    def eventFilter(self, obj, event):
        if event.type() == QEvent.Type.KeyPress and self.matches(event):
            event.accept()
            self.callback()
            return True
        return False

    @property
    def is_installed(self) -> bool:
        return self._source is not None

    def install(self, source):
        if self._source is source:
            return self
        self.remove()
        source.installEventFilter(self)
        self._source = source
        return self

    def remove(self):
        if self._source is not None:
            self._source.removeEventFilter(self)
            self._source = None

    @contextmanager
    def installed(self, source):
        self.install(source)
        try:
            yield self
        finally:
            self.remove()


def register_shortcuts(source, bindings: dict, parent=None) -> list:
    """
    Installs one listener per entry of {"Ctrl+Space": callback, ...}.
    Keys may also be Qt.Key values for unmodified keys.
    """
    listeners = []
    for combo, callback in bindings.items():
        listener = ShortcutListener(combo, callback, parent=parent)
        listener.install(source)
        listeners.append(listener)
        logger.debug("Registered shortcut: %s", combo)
    return listeners
