import logging
from dataclasses import replace

from PyQt6.QtCore import QObject, QRunnable, Qt, QThreadPool, QTimer, pyqtSignal

from speedy.models import NO_SELECTION, OverlayPhase, OverlayState, SearchResult

logger = logging.getLogger(__name__)

DEBOUNCE_MS = 200
MIN_QUERY_LENGTH = 2
COPY_FEEDBACK_MS = 300
POOL_THREADS = 4


# ============================================================================
#  BACKGROUND TASKS
# ============================================================================

class TaskSignals(QObject):
    """Signals must live on a QObject; QRunnable is not one."""
    succeeded = pyqtSignal(int, object)
    failed = pyqtSignal(int, object)


class Task(QRunnable):
    """Runs fn(arg) on a pool thread and reports back, tagged, through queued signals."""

    def __init__(self, tag: int, fn, arg):
        super().__init__()
        self.tag = tag
        self.fn = fn
        self.arg = arg
        self.signals = TaskSignals()

    def run(self):
        try:
            result = self.fn(self.arg)
        except Exception as e:
            self.signals.failed.emit(self.tag, e)
        else:
            self.signals.succeeded.emit(self.tag, result)


# ============================================================================
#  CONTROLLER
# ============================================================================

class SearchOverlayController(QObject):
    """
    Owns the overlay state and every transition of it.

    engine     -- anything with search(query) -> list of SearchResult (or dicts
                  in the engine wire format)
    dispatcher -- ActivationDispatcher, or anything with dispatch/reveal/copy

    All state changes happen on the thread that owns the controller. Engine and
    dispatcher calls run on a QThreadPool and come back through queued signals,
    so a slow engine never blocks typing or navigation.

    Every search carries a request id. Query changes and closing bump the id,
    so a response that arrives after its query was superseded is dropped
    instead of overwriting newer results.
    """

    state_changed = pyqtSignal()
    visibility_changed = pyqtSignal(bool)
    selection_changed = pyqtSignal(int)
    activation_failed = pyqtSignal(str)

    def __init__(self, engine, dispatcher, debounce_ms: int = DEBOUNCE_MS,
                 min_query_length: int = MIN_QUERY_LENGTH, parent=None):
        super().__init__(parent)
        self.engine = engine
        self.dispatcher = dispatcher
        self.min_query_length = min_query_length
        self.state = OverlayState()
        self.pool = QThreadPool(self)
        # Engine calls mostly wait on I/O; a slow search must not queue the next one.
        self.pool.setMaxThreadCount(max(POOL_THREADS, self.pool.maxThreadCount()))

        self.search_timer = QTimer(self)
        self.search_timer.setSingleShot(True)
        self.search_timer.setInterval(debounce_ms)
        self.search_timer.timeout.connect(self.perform_search)

        self.close_timer = QTimer(self)
        self.close_timer.setSingleShot(True)
        self.close_timer.setInterval(COPY_FEEDBACK_MS)
        self.close_timer.timeout.connect(self.close)

        self._request_id = 0
        self._completed = False
        self._activating = False
        self._activation_id = 0

    # ========================================================================
    #  DERIVED STATE
    # ========================================================================

    @property
    def phase(self) -> OverlayPhase:
        state = self.state
        if not state.visible:
            return OverlayPhase.CLOSED
        if state.searching or self.search_timer.isActive():
            return OverlayPhase.OPEN_PENDING
        if state.results:
            return OverlayPhase.OPEN_RESULTS
        if self._completed and len(state.query.strip()) >= self.min_query_length:
            return OverlayPhase.OPEN_NO_MATCH
        return OverlayPhase.OPEN_EMPTY

    @property
    def is_activating(self) -> bool:
        return self._activating

    def _set(self, new_state: OverlayState):
        old = self.state
        self.state = new_state
        if old.selection != new_state.selection:
            self.selection_changed.emit(new_state.selection)
        self.state_changed.emit()

    # ========================================================================
    #  VISIBILITY
    # ========================================================================

    def toggle(self):
        if self.state.visible:
            self.close()
        else:
            self.open()

    def open(self):
        if self.state.visible:
            return
        logger.debug("Overlay opened")
        self._completed = False
        self._set(OverlayState(visible=True))
        self.visibility_changed.emit(True)

    def close(self):
        """Hides the overlay and forgets the query, results, cursor and error."""
        if not self.state.visible:
            return
        logger.debug("Overlay closed")
        self._cancel_pending()
        self.close_timer.stop()
        # An activation still running reports into a view that no longer exists.
        self._activation_id += 1
        self._activating = False
        self._set(OverlayState())
        self.visibility_changed.emit(False)

    # ========================================================================
    #  SEARCH
    # ========================================================================

    def set_query(self, text: str):
        if not self.state.visible or text == self.state.query:
            return

        self._cancel_pending()
        if len(text.strip()) < self.min_query_length:
            self._set(replace(self.state, query=text, error=None).with_results(()))
            return

        # Old results stay on screen until the new ones land. The timer runs
        # before the change is announced so listeners already see OPEN_PENDING.
        self.search_timer.start()
        self._set(replace(self.state, query=text, error=None))

    def _cancel_pending(self):
        self.search_timer.stop()
        # Whatever is in flight now belongs to an outdated query.
        self._request_id += 1
        self._completed = False
        if self.state.searching:
            self.state = replace(self.state, searching=False)

    def perform_search(self):
        query = self.state.query.strip()
        if not self.state.visible or len(query) < self.min_query_length:
            return

        self._request_id += 1
        tag = self._request_id
        self._completed = False
        logger.debug("Search #%d: %r", tag, query)
        self._set(replace(self.state, searching=True))
        self._start(Task(tag, self._run_search, query), self._on_search_done, self._on_search_failed)

    def _run_search(self, query: str) -> tuple:
        # Pool thread: normalising here keeps malformed engine output off the GUI thread.
        return tuple(
            r if isinstance(r, SearchResult) else SearchResult.from_dict(r)
            for r in self.engine.search(query)
        )

    def _is_current(self, tag: int) -> bool:
        if tag != self._request_id or not self.state.visible:
            logger.debug("Dropping stale response for search #%d", tag)
            return False
        return True

    def _on_search_done(self, tag: int, results):
        if not self._is_current(tag):
            return
        self._completed = True
        self._set(replace(self.state, searching=False).with_results(results))

    def _on_search_failed(self, tag: int, error):
        if not self._is_current(tag):
            return
        logger.warning("Search for %r failed: %s", self.state.query.strip(), error)
        self._completed = True
        self._set(replace(self.state, searching=False).with_results(()))

    # ========================================================================
    #  NAVIGATION
    # ========================================================================

    def move_down(self):
        if self.state.visible:
            self._set(self.state.with_selection(self.state.selection + 1))

    def move_up(self):
        if self.state.visible:
            self._set(self.state.with_selection(self.state.selection - 1))

    def select_index(self, index: int):
        if self.state.visible:
            self._set(self.state.with_selection(index))

    def handle_key(self, key) -> bool:
        """Applies one navigation key. Returns False when the key is not ours."""
        if not self.state.visible:
            return False

        if key == Qt.Key.Key_Down:
            self.move_down()
        elif key == Qt.Key.Key_Up:
            self.move_up()
        elif key == Qt.Key.Key_Escape:
            self.close()
        elif key in (Qt.Key.Key_Return, Qt.Key.Key_Enter):
            self.activate_selected()
        else:
            return False
        return True

    # ========================================================================
    #  ACTIVATION
    # ========================================================================

    def activate_selected(self) -> bool:
        return self._activate(self.dispatcher.dispatch)

    def activate_index(self, index: int) -> bool:
        self.select_index(index)
        return self.activate_selected()

    def reveal_selected(self) -> bool:
        return self._activate(self.dispatcher.reveal)

    def copy_selected_path(self) -> bool:
        """Copies on the GUI thread (clipboard access), then closes after a short beat."""
        result = self.state.selected
        if not self.state.visible or result is None:
            return False
        try:
            self.dispatcher.copy(result)
        except Exception as e:
            self._report_activation_error(e)
            return False
        self.close_timer.start()
        return True

    def _activate(self, operation) -> bool:
        result = self.state.selected
        if not self.state.visible or result is None:
            return False
        if self._activating:
            logger.debug("Activation already running, ignoring %s", result.path)
            return False

        self._activating = True
        self._activation_id += 1
        logger.info("Activating %s (%s)", result.path, result.kind.value)
        self._start(Task(self._activation_id, operation, result),
                    self._on_activation_done, self._on_activation_failed)
        return True

    def _on_activation_done(self, tag: int, _):
        if tag != self._activation_id:
            logger.debug("Dropping result of activation #%d, overlay was closed", tag)
            return
        self._activating = False
        self.close()

    def _on_activation_failed(self, tag: int, error):
        if tag != self._activation_id:
            logger.error("Activation #%d failed after the overlay closed: %s", tag, error)
            return
        self._activating = False
        self._report_activation_error(error)

    def _report_activation_error(self, error):
        message = str(error) or error.__class__.__name__
        logger.error("Activation failed: %s", message)
        if self.state.visible:
            self._set(replace(self.state, error=message))
        self.activation_failed.emit(message)

    # ========================================================================
    #  PLUMBING
    # ========================================================================

    def _start(self, task: Task, on_done, on_failed):
        task.signals.succeeded.connect(on_done, Qt.ConnectionType.QueuedConnection)
        task.signals.failed.connect(on_failed, Qt.ConnectionType.QueuedConnection)
        self.pool.start(task)

    def shutdown(self, timeout_ms: int = 2000):
        self.close()
        self.pool.clear()
        self.pool.waitForDone(timeout_ms)
