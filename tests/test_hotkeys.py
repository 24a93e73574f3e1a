from __future__ import annotations

import pytest
from PyQt6 import sip
from PyQt6.QtCore import QCoreApplication, QEvent, QObject, Qt
from PyQt6.QtGui import QKeyEvent

from speedy.hotkeys import ShortcutListener, parse_shortcut, register_shortcuts

CTRL = Qt.KeyboardModifier.ControlModifier
SHIFT = Qt.KeyboardModifier.ShiftModifier
NONE = Qt.KeyboardModifier.NoModifier


def press(source: QObject, key, modifiers=NONE) -> bool:
    event = QKeyEvent(QEvent.Type.KeyPress, key, modifiers)
    return QCoreApplication.sendEvent(source, event)


def test_parse_ctrl_space(qapp):
    key, modifiers = parse_shortcut("Ctrl+Space")
    assert key == Qt.Key.Key_Space
    assert modifiers == CTRL


@pytest.mark.parametrize("text", ["", "Ctrl+A, Ctrl+B"])
def test_parse_rejects_non_single_combos(qapp, text: str):
    with pytest.raises(ValueError):
        parse_shortcut(text)


def test_exact_match_fires_and_is_consumed(qapp):
    source = QObject()
    calls = []
    listener = ShortcutListener("Ctrl+Space", lambda: calls.append("toggle"))
    listener.install(source)

    assert press(source, Qt.Key.Key_Space, CTRL)
    assert calls == ["toggle"]


def test_other_combinations_pass_through(qapp):
    source = QObject()
    calls = []
    listener = ShortcutListener("Ctrl+Space", lambda: calls.append("toggle")).install(source)

    press(source, Qt.Key.Key_Space)
    press(source, Qt.Key.Key_Space, SHIFT)
    press(source, Qt.Key.Key_Space, CTRL | SHIFT)
    press(source, Qt.Key.Key_A, CTRL)

    assert calls == []
    assert listener.is_installed


def test_keypad_flag_is_ignored(qapp):
    source = QObject()
    calls = []
    listener = ShortcutListener(Qt.Key.Key_Down, lambda: calls.append("down")).install(source)

    press(source, Qt.Key.Key_Down, Qt.KeyboardModifier.KeypadModifier)
    assert calls == ["down"]
    assert listener.is_installed


def test_listeners_share_a_source(qapp):
    source = QObject()
    calls = []
    listeners = register_shortcuts(source, {
        "Ctrl+Space": lambda: calls.append("toggle"),
        Qt.Key.Key_Escape: lambda: calls.append("escape"),
    })

    press(source, Qt.Key.Key_Escape)
    press(source, Qt.Key.Key_Space, CTRL)
    press(source, Qt.Key.Key_Escape)

    assert calls == ["escape", "toggle", "escape"]
    assert len(listeners) == 2


def test_remove_stops_listening(qapp):
    source = QObject()
    calls = []
    listener = ShortcutListener("Ctrl+Space", lambda: calls.append("toggle")).install(source)
    listener.remove()

    assert not listener.is_installed
    assert not press(source, Qt.Key.Key_Space, CTRL)
    assert calls == []


def test_context_manager_scopes_the_subscription(qapp):
    source = QObject()
    calls = []
    listener = ShortcutListener("Ctrl+Space", lambda: calls.append("toggle"))

    with listener.installed(source):
        press(source, Qt.Key.Key_Space, CTRL)
    press(source, Qt.Key.Key_Space, CTRL)

    assert calls == ["toggle"]


def test_owner_teardown_releases_the_listener(qapp):
    source = QObject()
    owner = QObject()
    calls = []
    ShortcutListener("Ctrl+Space", lambda: calls.append("toggle"), parent=owner).install(source)

    sip.delete(owner)
    press(source, Qt.Key.Key_Space, CTRL)

    assert calls == []
