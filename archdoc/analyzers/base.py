"""Base types for pattern detection rules."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Callable, Dict, Iterable, Mapping, Tuple, Union

ARCHITECTURE = "architecture"
SECURITY = "security"


@dataclass(frozen=True)
class FileSetView:
    """Normalized, immutable view of the indexed file list."""

    paths: Tuple[str, ...]
    child_directories: Mapping[str, Tuple[str, ...]]

    @classmethod
    def from_paths(cls, paths: Iterable[str]) -> "FileSetView":
        ordered = tuple(sorted({PurePosixPath(path).as_posix() for path in paths}))
        children: Dict[str, set] = {}
        for path in ordered:
            parts = PurePosixPath(path).parent.parts
            for depth in range(len(parts)):
                parent = "/".join(parts[:depth])
                children.setdefault(parent, set()).add(parts[depth])
        return cls(
            paths=ordered,
            child_directories={key: tuple(sorted(value)) for key, value in sorted(children.items())},
        )

    def files_under(self, directory: str) -> Tuple[str, ...]:
        prefix = f"{directory}/" if directory else ""
        return tuple(path for path in self.paths if path.startswith(prefix))


@dataclass(frozen=True)
class Matched:
    confidence: float
    files: Tuple[str, ...]

    def __post_init__(self) -> None:
        if not 0.0 < self.confidence <= 1.0:
            raise ValueError(f"Confidence must lie in (0, 1]: {self.confidence}")


@dataclass(frozen=True)
class NotMatched:
    def __bool__(self) -> bool:
        return False


NOT_MATCHED = NotMatched()

Detection = Union[Matched, NotMatched]


@dataclass(frozen=True)
class PatternRule:
    """A named, side-effect-free detection function."""

    key: str
    name: str
    category: str
    description: str
    implementation: str
    detect: Callable[[FileSetView], Detection]


__all__ = [
    "ARCHITECTURE",
    "Detection",
    "FileSetView",
    "Matched",
    "NOT_MATCHED",
    "NotMatched",
    "PatternRule",
    "SECURITY",
]
