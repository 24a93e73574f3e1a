from PyQt6.QtGui import QColor

PALETTE = {
    "panel_top": "rgba(22, 26, 34, 0.97)",
    "panel_bottom": "rgba(14, 16, 22, 0.97)",
    "text": "#e8e8ee",
    "muted": "#7b8494",
    "faint": "#4f5866",
    "accent": "#4f8ff7",
    "accent_soft": "rgba(79, 143, 247, 0.16)",
    "accent_edge": "rgba(79, 143, 247, 0.40)",
    "hover": "rgba(255, 255, 255, 0.06)",
    "alert": "#f29d38",
    "rule": "#232a36",
}

GLOW = {
    False: (79, 143, 247, 55),
    True: (242, 157, 56, 45),
}


def glow_color(alert: bool) -> QColor:
    return QColor(*GLOW[bool(alert)])


def stylesheet(palette=PALETTE) -> str:
    """Window-wide QSS; widgets pick their rules by objectName and dynamic properties."""
    p = palette
    return f"""
        QWidget {{ color: {p["text"]}; }}

        QLabel#hintBanner {{
            color: {p["muted"]};
            font-size: 12px;
            padding: 6px 14px;
            background-color: {p["panel_bottom"]};
            border-radius: 10px;
        }}

        QFrame#overlayPanel {{
            background-color: qlineargradient(x1:0, y1:0, x2:0, y2:1,
                stop:0 {p["panel_top"]}, stop:1 {p["panel_bottom"]});
            border: 1px solid {p["accent"]};
            border-radius: 14px;
        }}
        QFrame#overlayPanel[alert="true"] {{ border-color: {p["alert"]}; }}

        QLabel#searchGlyph, QLabel#spinner {{ color: {p["accent"]}; font-size: 18px; }}

        QLineEdit#queryEdit {{
            background: transparent;
            border: none;
            font-size: 17px;
            selection-background-color: {p["accent_soft"]};
        }}

        QLabel#keyCap {{
            color: {p["faint"]};
            font-size: 9px;
            padding: 2px 5px;
            border: 1px solid {p["rule"]};
            border-radius: 4px;
        }}
        QLabel#countLabel {{ color: {p["muted"]}; font-size: 11px; }}
        QLabel#errorLine {{ color: {p["alert"]}; font-size: 11px; padding: 0 18px 8px 18px; }}
        QFrame#rule {{ background-color: {p["rule"]}; }}

        QScrollArea, QWidget#resultList {{ background: transparent; border: none; }}
        QScrollBar:vertical {{ background: transparent; width: 5px; margin: 4px 1px; }}
        QScrollBar::handle:vertical {{ background: {p["accent_edge"]}; border-radius: 2px; min-height: 24px; }}
        QScrollBar::add-line:vertical, QScrollBar::sub-line:vertical,
        QScrollBar::add-page:vertical, QScrollBar::sub-page:vertical {{ background: none; height: 0; }}

        QFrame#resultRow {{ border: 1px solid transparent; border-radius: 8px; }}
        QFrame#resultRow:hover {{ background-color: {p["hover"]}; }}
        QFrame#resultRow[selected="true"] {{
            background-color: {p["accent_soft"]};
            border-color: {p["accent_edge"]};
        }}
        QLabel#rowGlyph {{ font-size: 16px; background-color: {p["hover"]}; border-radius: 6px; }}
        QLabel#rowTitle {{ font-size: 13px; font-weight: 600; }}
        QLabel#rowScore {{ color: {p["accent"]}; font-size: 10px; }}
        QLabel#rowPath {{ color: {p["muted"]}; font-size: 11px; }}
        QLabel#enterHint {{ color: {p["accent"]}; font-size: 10px; border-radius: 4px; }}
        QFrame#resultRow[selected="true"] QLabel#enterHint {{ background-color: {p["accent_soft"]}; }}

        QWidget#emptyState QLabel {{ color: {p["muted"]}; font-size: 14px; }}
    """
