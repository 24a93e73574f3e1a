import itertools
import logging

from PyQt6.QtCore import QEvent, QSignalBlocker, Qt, QTimer, pyqtSignal
from PyQt6.QtGui import QGuiApplication
from PyQt6.QtWidgets import (
    QApplication, QFrame, QGraphicsDropShadowEffect, QGridLayout, QHBoxLayout,
    QLabel, QLineEdit, QMessageBox, QScrollArea, QVBoxLayout, QWidget
)

from speedy import theme
from speedy.hotkeys import MODIFIER_MASK, register_shortcuts
from speedy.models import OverlayPhase
from speedy.renderer import (
    format_score, glyph_for, no_match_label, result_count_label, shorten_path
)

logger = logging.getLogger(__name__)

ROW_HEIGHT = 48
ROW_GAP = 4
LIST_MARGIN = 6
LIST_MAX_HEIGHT = 400
EMPTY_STATE_HEIGHT = 96
PANEL_HEIGHT = 68
WINDOW_MARGIN = 14


def repolish(widget):
    """Re-applies the stylesheet after a dynamic property changed."""
    style = widget.style()
    style.unpolish(widget)
    style.polish(widget)


def plain_label(text="", name=None) -> QLabel:
    label = QLabel(text)
    # File names are data, never rich text.
    label.setTextFormat(Qt.TextFormat.PlainText)
    if name:
        label.setObjectName(name)
    return label


# ============================================================================
#  WIDGETS
# ============================================================================

class ResultRow(QFrame):
    """Glyph on the left, name and score over the shortened path, enter hint on the right."""
    clicked = pyqtSignal()

    def __init__(self, result, parent=None):
        super().__init__(parent)
        self.result = result
        self.selected = False
        self.setObjectName("resultRow")
        self.setProperty("selected", False)
        self.setFixedHeight(ROW_HEIGHT)
        self.setCursor(Qt.CursorShape.PointingHandCursor)

        grid = QGridLayout(self)
        grid.setContentsMargins(10, 4, 10, 4)
        grid.setHorizontalSpacing(10)
        grid.setVerticalSpacing(0)
        grid.setColumnStretch(1, 1)

        self.glyph = plain_label(glyph_for(result.kind), "rowGlyph")
        self.glyph.setFixedSize(30, 30)
        self.glyph.setAlignment(Qt.AlignmentFlag.AlignCenter)
        grid.addWidget(self.glyph, 0, 0, 2, 1)

        self.title_label = plain_label(result.name, "rowTitle")
        grid.addWidget(self.title_label, 0, 1)

        score = format_score(result.score)
        self.score_label = plain_label(score, "rowScore") if score else None
        if self.score_label is not None:
            grid.addWidget(self.score_label, 0, 2)

        self.path_label = plain_label(shorten_path(result.path), "rowPath")
        self.path_label.setToolTip(result.path)
        grid.addWidget(self.path_label, 1, 1, 1, 2)

        self.enter_hint = plain_label("", "enterHint")
        self.enter_hint.setFixedWidth(56)
        self.enter_hint.setAlignment(Qt.AlignmentFlag.AlignCenter)
        grid.addWidget(self.enter_hint, 0, 3, 2, 1)

    def set_selected(self, selected: bool):
        if selected == self.selected:
            return
        self.selected = selected
        self.enter_hint.setText("↵ Open" if selected else "")
        self.setProperty("selected", selected)
        repolish(self)
        repolish(self.enter_hint)

    def mousePressEvent(self, event):
        if event.button() == Qt.MouseButton.LeftButton:
            self.clicked.emit()
            event.accept()
            return
        super().mousePressEvent(event)


class Panel(QFrame):
    """The search box itself. In alert mode the border and glow turn amber."""

    def __init__(self, parent=None):
        super().__init__(parent)
        self.setObjectName("overlayPanel")
        self.alert = None
        self.glow = QGraphicsDropShadowEffect(self)
        self.glow.setBlurRadius(28)
        self.glow.setOffset(0, 6)
        self.setGraphicsEffect(self.glow)
        self.set_alert(False)

    def set_alert(self, alert: bool):
        if alert == self.alert:
            return
        self.alert = alert
        self.setProperty("alert", alert)
        self.glow.setColor(theme.glow_color(alert))
        repolish(self)


class Spinner(QLabel):

    FRAMES = "◐◓◑◒"

    def __init__(self, parent=None):
        super().__init__(parent)
        self.setObjectName("spinner")
        self.setFixedWidth(22)
        self.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self._frames = itertools.cycle(self.FRAMES)
        self._timer = QTimer(self)
        self._timer.setInterval(90)
        self._timer.timeout.connect(lambda: self.setText(next(self._frames)))
        self.hide()

    @property
    def running(self) -> bool:
        return self._timer.isActive()

    def start(self):
        if not self.running:
            self.setText(next(self._frames))
            self.show()
            self._timer.start()

    def stop(self):
        self._timer.stop()
        self.hide()


class EmptyState(QWidget):
    """Shown in place of rows when a finished search matched nothing."""

    def __init__(self, query: str, parent=None):
        super().__init__(parent)
        self.setObjectName("emptyState")
        self.setFixedHeight(EMPTY_STATE_HEIGHT)

        self.text = plain_label(no_match_label(query))
        box = QVBoxLayout(self)
        box.setAlignment(Qt.AlignmentFlag.AlignCenter)
        box.setSpacing(6)
        for label in (plain_label("🔍"), self.text):
            label.setAlignment(Qt.AlignmentFlag.AlignCenter)
            box.addWidget(label)


# ============================================================================
#  WINDOW
# ============================================================================

class Launcher(QWidget):
    """
    Renders a SearchOverlayController and feeds it input.

    The window itself stays up; the toggle shortcut shows and hides the panel
    inside it, and a hint banner takes the panel's place while it is closed.
    """

    def __init__(self, controller, config: dict):
        super().__init__()
        self.controller = controller
        self.config = config
        self.hotkey = config.get("hotkey", "Ctrl+Space")
        self.result_items = []
        self._shown = None

        self._build_window()
        self._build_panel()
        self.setStyleSheet(theme.stylesheet())
        self.shortcuts = register_shortcuts(QApplication.instance(), {
            self.hotkey: controller.toggle,
            "Ctrl+Return": controller.reveal_selected,
            "Alt+C": controller.copy_selected_path,
        }, parent=self)

        controller.state_changed.connect(self.render)
        controller.visibility_changed.connect(self._on_visibility_changed)
        controller.selection_changed.connect(self._on_selection_changed)
        controller.activation_failed.connect(self._on_activation_failed)
        self.entry.textChanged.connect(controller.set_query)

        self._on_visibility_changed(controller.state.visible)

    def _build_window(self):
        self.setWindowFlags(
            Qt.WindowType.FramelessWindowHint
            | Qt.WindowType.WindowStaysOnTopHint
            | Qt.WindowType.Tool
        )
        self.setAttribute(Qt.WidgetAttribute.WA_TranslucentBackground)
        self.setFixedWidth(self.config.get("theme", {}).get("width", 680))

        # Horizontally centred, a third of the way down the primary screen.
        screen = QGuiApplication.primaryScreen()
        if screen is not None:
            area = screen.availableGeometry()
            self.move(area.x() + (area.width() - self.width()) // 2, area.y() + area.height() // 3)

    def _build_panel(self):
        outer = QVBoxLayout(self)
        outer.setContentsMargins(WINDOW_MARGIN, WINDOW_MARGIN, WINDOW_MARGIN, WINDOW_MARGIN)
        outer.setSpacing(0)

        self.hint_label = plain_label(f"Press {self.hotkey} to search", "hintBanner")
        self.hint_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        outer.addWidget(self.hint_label)

        self.container = Panel(self)
        outer.addWidget(self.container)
        column = QVBoxLayout(self.container)
        column.setContentsMargins(0, 0, 0, 0)
        column.setSpacing(0)

        bar = QHBoxLayout()
        bar.setContentsMargins(18, 14, 18, 14)
        bar.setSpacing(12)
        self.search_icon = plain_label("⌕", "searchGlyph")
        self.search_icon.setFixedWidth(22)
        self.loading_spinner = Spinner()
        self.entry = QLineEdit()
        self.entry.setObjectName("queryEdit")
        self.entry.setPlaceholderText("Search files, folders and apps")
        self.entry.installEventFilter(self)
        self.count_label = plain_label("", "countLabel")
        self.count_label.hide()

        bar.addWidget(self.search_icon)
        bar.addWidget(self.loading_spinner)
        bar.addWidget(self.entry, 1)
        bar.addWidget(self.count_label)
        for cap in ("↑↓", "⏎", "Esc"):
            bar.addWidget(plain_label(cap, "keyCap"))
        column.addLayout(bar)

        self.error_label = plain_label("", "errorLine")
        self.error_label.hide()
        column.addWidget(self.error_label)

        self.divider = QFrame()
        self.divider.setObjectName("rule")
        self.divider.setFixedHeight(1)
        self.divider.hide()
        column.addWidget(self.divider)

        self.results_widget = QWidget()
        self.results_widget.setObjectName("resultList")
        self.results_layout = QVBoxLayout(self.results_widget)
        self.results_layout.setContentsMargins(LIST_MARGIN, LIST_MARGIN, LIST_MARGIN, LIST_MARGIN)
        self.results_layout.setSpacing(ROW_GAP)
        self.results_layout.addStretch()

        self.scroll_area = QScrollArea()
        self.scroll_area.setWidgetResizable(True)
        self.scroll_area.setHorizontalScrollBarPolicy(Qt.ScrollBarPolicy.ScrollBarAlwaysOff)
        self.scroll_area.setFocusPolicy(Qt.FocusPolicy.NoFocus)
        self.scroll_area.setWidget(self.results_widget)
        self.scroll_area.hide()
        column.addWidget(self.scroll_area)

    # ========================================================================
    #  INPUT
    # ========================================================================

    def _route_key(self, event) -> bool:
        # Modified keys belong to the shortcut listeners.
        if event.modifiers() & MODIFIER_MASK:
            return False
        return self.controller.handle_key(event.key())

    def eventFilter(self, obj, event):
        # Navigation keys must reach the controller before the line edit eats them.
        if obj is self.entry and event.type() == QEvent.Type.KeyPress and self._route_key(event):
            return True
        return super().eventFilter(obj, event)

    def keyPressEvent(self, event):
        if not self._route_key(event):
            super().keyPressEvent(event)

    # ========================================================================
    #  RENDERING
    # ========================================================================

    def _on_visibility_changed(self, visible: bool):
        with QSignalBlocker(self.entry):
            self.entry.clear()
        self.container.setVisible(visible)
        self.hint_label.setVisible(not visible)
        self.render()

        self.show()
        if visible:
            self.raise_()
            self.activateWindow()
            self.entry.setFocus()

    def render(self):
        state = self.controller.state
        pending = self.controller.phase == OverlayPhase.OPEN_PENDING

        self.search_icon.setVisible(not pending)
        if pending:
            self.loading_spinner.start()
        else:
            self.loading_spinner.stop()

        self.count_label.setVisible(bool(state.results) and not pending)
        self.count_label.setText(result_count_label(len(state.results)))

        self.error_label.setVisible(state.error is not None)
        self.error_label.setText(f"Failed to open: {state.error}" if state.error else "")
        self.container.set_alert(state.error is not None)

        if state.results:
            self._replace_list(("rows", state.results))
        elif self.controller.phase == OverlayPhase.OPEN_NO_MATCH:
            self._replace_list(("empty", state.query))
        else:
            self._replace_list(None)
        self._fit_height()

    def _replace_list(self, content):
        """Rebuilds the list only when what it shows actually changed."""
        if content == self._shown:
            return
        self._shown = content
        self.result_items = []
        while self.results_layout.count() > 1:
            widget = self.results_layout.takeAt(0).widget()
            if widget is not None:
                widget.hide()
                widget.deleteLater()

        if content is None:
            return
        kind, payload = content
        if kind == "empty":
            self.results_layout.insertWidget(0, EmptyState(payload))
            return
        for index, result in enumerate(payload):
            row = ResultRow(result)
            row.clicked.connect(lambda index=index: self.controller.activate_index(index))
            self.results_layout.insertWidget(index, row)
            self.result_items.append(row)
        self._on_selection_changed(self.controller.state.selection)

    def _list_height(self) -> int:
        if self.result_items:
            rows = len(self.result_items) * (ROW_HEIGHT + ROW_GAP) + 2 * LIST_MARGIN
            return min(rows, LIST_MAX_HEIGHT)
        if self._shown is not None:
            return EMPTY_STATE_HEIGHT + 2 * LIST_MARGIN
        return 0

    def _fit_height(self):
        chrome = 2 * WINDOW_MARGIN
        if not self.controller.state.visible:
            self.setFixedHeight(self.hint_label.sizeHint().height() + chrome)
            return

        list_height = self._list_height()
        self.divider.setVisible(list_height > 0)
        self.scroll_area.setVisible(list_height > 0)
        if list_height:
            self.scroll_area.setFixedHeight(list_height)
        error_height = self.error_label.sizeHint().height() if not self.error_label.isHidden() else 0
        self.setFixedHeight(PANEL_HEIGHT + error_height + list_height + chrome)

    def _on_selection_changed(self, index: int):
        for i, row in enumerate(self.result_items):
            row.set_selected(i == index)
        if 0 <= index < len(self.result_items):
            # No margins: scrolls only as far as needed to bring the row fully into view.
            self.scroll_area.ensureWidgetVisible(self.result_items[index], 0, 0)

    def _on_activation_failed(self, message: str):
        QMessageBox.warning(self, "Speedy", f"Failed to open: {message}")
