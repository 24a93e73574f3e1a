import math

from speedy.models import ResultKind

GLYPHS = {
    ResultKind.FILE: "📄",
    ResultKind.FOLDER: "📂",
    ResultKind.APPLICATION: "🚀",
}


def glyph_for(kind) -> str:
    """Icon token for a result kind. Unknown kinds render nothing."""
    try:
        return GLYPHS[ResultKind.parse(kind)]
    except (KeyError, ValueError):
        return ""


def format_score(score):
    """'87%' for 0.87, None when the engine left the result unscored."""
    if score is None:
        return None
    # Half-up, so 0.125 shows as 13% rather than banker's 12%.
    return f"{int(math.floor(score * 100 + 0.5))}%"


def result_count_label(count: int) -> str:
    return f"{count} {'result' if count == 1 else 'results'}"


def no_match_label(query: str) -> str:
    return f'No results found for "{query}"'


def shorten_path(path: str, max_chars: int = 55) -> str:
    """Collapse the middle of long paths, keeping the root and the last two parts."""
    if not path or len(path) <= max_chars:
        return path

    parts = path.replace("\\", "/").split("/")
    if len(parts) < 4:
        return path[:max_chars - 1] + "…"

    return f"{parts[0]}/…/{parts[-2]}/{parts[-1]}"
