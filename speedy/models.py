from dataclasses import dataclass, field, replace
from enum import Enum, auto
from typing import Optional, Tuple


class ResultKind(str, Enum):
    FILE = "file"
    FOLDER = "folder"
    APPLICATION = "application"

    @classmethod
    def parse(cls, value) -> "ResultKind":
        """Accepts the engine wire names, including the short 'app' alias."""
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        if text == "app":
            return cls.APPLICATION
        return cls(text)


@dataclass(frozen=True)
class SearchResult:
    path: str
    name: str
    kind: ResultKind
    score: Optional[float] = None

    @classmethod
    def from_dict(cls, data: dict) -> "SearchResult":
        score = data.get("score")
        return cls(
            path=str(data["path"]),
            name=str(data["name"]),
            kind=ResultKind.parse(data.get("kind", data.get("type"))),
            score=float(score) if score is not None else None,
        )


NO_SELECTION = -1


class OverlayPhase(Enum):
    CLOSED = auto()
    OPEN_EMPTY = auto()
    OPEN_PENDING = auto()
    OPEN_RESULTS = auto()
    OPEN_NO_MATCH = auto()


@dataclass(frozen=True)
class OverlayState:
    visible: bool = False
    query: str = ""
    results: Tuple[SearchResult, ...] = field(default_factory=tuple)
    searching: bool = False
    selection: int = NO_SELECTION
    error: Optional[str] = None

    def with_results(self, results) -> "OverlayState":
        # Replacing results always drops the cursor.
        return replace(self, results=tuple(results), selection=NO_SELECTION)

    def with_selection(self, index: int) -> "OverlayState":
        index = max(NO_SELECTION, min(index, len(self.results) - 1))
        return replace(self, selection=index)

    @property
    def selected(self) -> Optional[SearchResult]:
        if 0 <= self.selection < len(self.results):
            return self.results[self.selection]
        return None
