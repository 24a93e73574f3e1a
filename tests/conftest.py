from __future__ import annotations

import os
import threading

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
# pystray picks its backend at import; the X11 one needs a display.
os.environ.setdefault("PYSTRAY_BACKEND", "dummy")

import pytest  # noqa: E402

from speedy.controller import SearchOverlayController  # noqa: E402
from speedy.models import OverlayPhase, ResultKind, SearchResult  # noqa: E402


class FakeEngine:
    """Answers from a dict; hold(query) makes that query block until released."""

    def __init__(self, responses: dict | None = None) -> None:
        self.responses = responses or {}
        self.error: Exception | None = None
        self.calls: list[str] = []
        self.gates: dict[str, threading.Event] = {}
        self._lock = threading.Lock()

    def hold(self, query: str) -> threading.Event:
        gate = threading.Event()
        self.gates[query] = gate
        return gate

    def release_all(self) -> None:
        for gate in self.gates.values():
            gate.set()

    def search(self, query: str):
        with self._lock:
            self.calls.append(query)
        gate = self.gates.get(query)
        if gate is not None:
            gate.wait(5)
        if self.error is not None:
            raise self.error
        return list(self.responses.get(query, []))


class FakeDispatcher:
    def __init__(self) -> None:
        self.calls: list[tuple[str, SearchResult]] = []
        self.error: Exception | None = None
        self.gate: threading.Event | None = None

    def _record(self, op: str, result: SearchResult) -> None:
        self.calls.append((op, result))
        if self.gate is not None:
            self.gate.wait(5)
        if self.error is not None:
            raise self.error

    def dispatch(self, result: SearchResult) -> None:
        self._record("dispatch", result)

    def reveal(self, result: SearchResult) -> None:
        self._record("reveal", result)

    def copy(self, result: SearchResult) -> None:
        self._record("copy", result)


def make_results(prefix: str, count: int, kind: ResultKind = ResultKind.FILE) -> list[SearchResult]:
    return [
        SearchResult(path=f"/home/ana/{prefix}_{i}.txt", name=f"{prefix}_{i}.txt", kind=kind, score=0.9 - i / 10)
        for i in range(count)
    ]


def run_search(qtbot, controller: SearchOverlayController, text: str) -> None:
    controller.set_query(text)
    qtbot.waitUntil(lambda: controller.phase != OverlayPhase.OPEN_PENDING, timeout=3000)


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def dispatcher() -> FakeDispatcher:
    return FakeDispatcher()


@pytest.fixture
def controller(qapp, engine: FakeEngine, dispatcher: FakeDispatcher):
    ctrl = SearchOverlayController(engine, dispatcher, debounce_ms=20)
    yield ctrl
    engine.release_all()
    if dispatcher.gate is not None:
        dispatcher.gate.set()
    ctrl.shutdown()
