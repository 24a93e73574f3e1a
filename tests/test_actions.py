from __future__ import annotations

import subprocess

import pyperclip
import pytest

from speedy import actions
from speedy.actions import ActivationDispatcher
from speedy.errors import ActivationError
from speedy.models import ResultKind, SearchResult


class Recorder:
    def __init__(self):
        self.calls: list[tuple[str, str]] = []

    def op(self, name: str):
        return lambda path: self.calls.append((name, path))


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture
def dispatcher(recorder: Recorder) -> ActivationDispatcher:
    return ActivationDispatcher(
        open_path=recorder.op("open"),
        launch_app=recorder.op("launch"),
        reveal_path=recorder.op("reveal"),
        copy_path=recorder.op("copy"),
    )


@pytest.fixture
def spawned(monkeypatch) -> list:
    calls = []
    monkeypatch.setattr(subprocess, "Popen", lambda cmd, **kwargs: calls.append(cmd))
    return calls


def test_applications_launch(dispatcher, recorder):
    dispatcher.dispatch(SearchResult("C:/Apps/Paint.lnk", "Paint.lnk", ResultKind.APPLICATION))
    assert recorder.calls == [("launch", "C:/Apps/Paint.lnk")]


@pytest.mark.parametrize("kind", [ResultKind.FILE, ResultKind.FOLDER])
def test_files_and_folders_open(dispatcher, recorder, kind):
    dispatcher.dispatch(SearchResult("/home/ana/reports", "reports", kind))
    assert recorder.calls == [("open", "/home/ana/reports")]


def test_reveal_and_copy_use_their_own_operations(dispatcher, recorder):
    result = SearchResult("/home/ana/a.txt", "a.txt", ResultKind.FILE)
    dispatcher.reveal(result)
    dispatcher.copy(result)
    assert recorder.calls == [("reveal", "/home/ana/a.txt"), ("copy", "/home/ana/a.txt")]


def test_foreign_exceptions_are_wrapped():
    def broken(path: str):
        raise PermissionError("denied")

    dispatcher = ActivationDispatcher(open_path=broken)
    with pytest.raises(ActivationError, match="Failed to open /srv/locked"):
        dispatcher.dispatch(SearchResult("/srv/locked", "locked", ResultKind.FOLDER))


def test_activation_errors_pass_through_unchanged():
    error = ActivationError("Not found: /gone")

    def missing(path: str):
        raise error

    dispatcher = ActivationDispatcher(launch_app=missing)
    with pytest.raises(ActivationError) as info:
        dispatcher.dispatch(SearchResult("/gone", "gone", ResultKind.APPLICATION))
    assert info.value is error


def test_missing_path_is_an_activation_error(tmp_path, spawned):
    with pytest.raises(ActivationError, match="Not found"):
        actions.open_path(str(tmp_path / "nope.txt"))
    assert spawned == []


def test_open_path_uses_xdg_open_on_linux(tmp_path, monkeypatch, spawned):
    monkeypatch.setattr(actions.sys, "platform", "linux")
    target = tmp_path / "notes.txt"
    target.write_text("hi")

    actions.open_path(str(target))
    assert spawned == [["xdg-open", str(target)]]


def test_launch_app_runs_executables_directly_on_linux(tmp_path, monkeypatch, spawned):
    monkeypatch.setattr(actions.sys, "platform", "linux")
    binary = tmp_path / "tool"
    binary.write_text("#!/bin/sh\n")
    binary.chmod(0o755)
    desktop = tmp_path / "gimp.desktop"
    desktop.write_text("[Desktop Entry]\n")
    desktop.chmod(0o755)

    actions.launch_app(str(binary))
    actions.launch_app(str(desktop))
    assert spawned == [[str(binary)], ["xdg-open", str(desktop)]]


def test_reveal_opens_the_parent_on_linux(tmp_path, monkeypatch, spawned):
    monkeypatch.setattr(actions.sys, "platform", "linux")
    target = tmp_path / "notes.txt"
    target.write_text("hi")

    actions.reveal_path(str(target))
    assert spawned == [["xdg-open", str(tmp_path)]]


def test_spawn_failure_is_an_activation_error(tmp_path, monkeypatch):
    def fail(cmd, **kwargs):
        raise FileNotFoundError(cmd[0])

    monkeypatch.setattr(actions.sys, "platform", "linux")
    monkeypatch.setattr(subprocess, "Popen", fail)

    with pytest.raises(ActivationError, match="xdg-open"):
        actions.open_path(str(tmp_path))


def test_copy_path_uses_the_clipboard(monkeypatch):
    copied = []
    monkeypatch.setattr(pyperclip, "copy", copied.append)

    actions.copy_path("/home/ana/a.txt")
    assert copied == ["/home/ana/a.txt"]


def test_copy_path_without_clipboard(monkeypatch):
    def unavailable(text: str):
        raise pyperclip.PyperclipException("no clipboard mechanism")

    monkeypatch.setattr(pyperclip, "copy", unavailable)
    with pytest.raises(ActivationError, match="Clipboard unavailable"):
        actions.copy_path("/home/ana/a.txt")
