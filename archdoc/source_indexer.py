"""Source tree indexing: file discovery, classification and metrics."""

from __future__ import annotations

import hashlib
import os
from dataclasses import dataclass
from fnmatch import fnmatchcase
from pathlib import Path, PurePosixPath
from typing import Dict, Iterator, List, Optional, Sequence

from .logging import get_logger
from .models import SourceFile, SourceSnapshot

_EXCLUDED_DIRS = {
    ".git",
    ".hg",
    ".svn",
    ".venv",
    "venv",
    "node_modules",
    "__pycache__",
    ".pytest_cache",
    ".mypy_cache",
    ".idea",
    ".vscode",
    ".next",
    ".turbo",
    ".vercel",
    "dist",
    "build",
    "out",
    "coverage",
}

_EXCLUDED_FILES = {
    ".DS_Store",
    "Thumbs.db",
}

_LANGUAGE_BY_SUFFIX = {
    ".ts": "TypeScript",
    ".tsx": "TypeScript React",
    ".js": "JavaScript",
    ".mjs": "JavaScript",
    ".cjs": "JavaScript",
    ".jsx": "JavaScript React",
    ".json": "JSON",
    ".md": "Markdown",
    ".mdx": "Markdown",
    ".css": "CSS",
    ".scss": "SCSS",
    ".html": "HTML",
    ".yaml": "YAML",
    ".yml": "YAML",
}

# Conventional purposes for well-known directory names in React/Next.js projects.
DIRECTORY_PURPOSES = {
    "components": "React UI components",
    "hooks": "Custom React hooks",
    "lib": "Utility libraries and configurations",
    "utils": "Helper functions and utilities",
    "helpers": "Helper functions and utilities",
    "services": "Business logic and API services",
    "types": "TypeScript type definitions",
    "models": "Data models and type definitions",
    "api": "API routes and endpoints",
    "pages": "Next.js pages",
    "app": "Next.js app directory",
    "styles": "Styling files",
    "public": "Static assets",
    "scripts": "Build and utility scripts",
    "docs": "Documentation",
    "tests": "Test files",
    "__tests__": "Test files",
    "stories": "Storybook stories",
}

logger = get_logger("indexer")


@dataclass
class IgnoreRule:
    """Represents an ignore rule parsed from .gitignore or .archdoc.yml."""

    pattern: str
    directory_only: bool
    anchored: bool
    negate: bool
    has_slash: bool

    def matches(self, rel_path: str, is_dir: bool) -> bool:
        if not self.pattern:
            return False
        if self.directory_only and not is_dir:
            return False

        if self.anchored or self.has_slash:
            if fnmatchcase(rel_path, self.pattern):
                return True
            return rel_path.startswith(f"{self.pattern}/")

        return any(fnmatchcase(part, self.pattern) for part in rel_path.split("/"))


def build_ignore_rule(pattern: str, negate: bool = False) -> IgnoreRule | None:
    pattern = pattern.strip()
    if not pattern:
        return None

    directory_only = pattern.endswith("/")
    if directory_only:
        pattern = pattern.rstrip("/")

    anchored = pattern.startswith("/")
    if anchored:
        pattern = pattern[1:]

    return IgnoreRule(
        pattern=pattern,
        directory_only=directory_only,
        anchored=anchored,
        negate=negate,
        has_slash="/" in pattern,
    )


def _parse_gitignore(path: Path) -> List[IgnoreRule]:
    if not path.exists():
        return []

    rules: List[IgnoreRule] = []
    for raw_line in path.read_text(encoding="utf-8", errors="replace").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        negate = line.startswith("!")
        if negate:
            line = line[1:]
        rule = build_ignore_rule(line, negate=negate)
        if rule is not None:
            rules.append(rule)
    return rules


def _should_ignore(rel_path: str, is_dir: bool, rules: Sequence[IgnoreRule]) -> bool:
    ignored = False
    for rule in rules:
        if rule.matches(rel_path, is_dir):
            ignored = not rule.negate
    return ignored


def _iter_files(root: Path, rules: Sequence[IgnoreRule]) -> Iterator[Path]:
    for dirpath, dirnames, filenames in os.walk(root):
        current_dir = Path(dirpath)
        rel_dir = current_dir.relative_to(root).as_posix() if current_dir != root else ""

        kept = []
        for name in sorted(dirnames):
            if name in _EXCLUDED_DIRS:
                continue
            rel_path = f"{rel_dir}/{name}" if rel_dir else name
            if _should_ignore(rel_path, True, rules):
                continue
            kept.append(name)
        dirnames[:] = kept

        for filename in sorted(filenames):
            if filename in _EXCLUDED_FILES:
                continue
            rel_path = f"{rel_dir}/{filename}" if rel_dir else filename
            if _should_ignore(rel_path, False, rules):
                continue
            yield current_dir / filename


def detect_language(path: str) -> str | None:
    return _LANGUAGE_BY_SUFFIX.get(PurePosixPath(path).suffix.lower())


def _fingerprint(files: Sequence[SourceFile]) -> str:
    digest = hashlib.sha256()
    for source in files:
        digest.update(source.path.encode("utf-8"))
        digest.update(b"\0")
        digest.update(source.hash.encode("ascii"))
        digest.update(b"\n")
    return digest.hexdigest()


class SourceIndexer:
    """Walks the source tree to produce an immutable snapshot."""

    def index(
        self,
        root: str | Path,
        *,
        exclude: Sequence[str] = (),
        output_dir: Optional[Path] = None,
    ) -> SourceSnapshot:
        """Return a path-ordered snapshot of every non-ignored file under `root`."""
        root_path = Path(root).expanduser().resolve()
        if not root_path.exists():
            raise FileNotFoundError(f"Source root not found: {root}")
        if not root_path.is_dir():
            raise NotADirectoryError(f"Source root is not a directory: {root}")

        rules = _parse_gitignore(root_path / ".gitignore")
        for pattern in exclude:
            rule = build_ignore_rule(pattern)
            if rule is not None:
                rules.append(rule)
        if output_dir is not None:
            rule = _output_rule(root_path, output_dir)
            if rule is not None:
                rules.append(rule)

        files: List[SourceFile] = []
        for path in _iter_files(root_path, rules):
            rel_path = path.relative_to(root_path).as_posix()
            files.append(_read_source(path, rel_path))

        files.sort(key=lambda source: source.path)
        logger.debug("Indexed %d files under %s", len(files), root_path)
        return SourceSnapshot(root=str(root_path), files=tuple(files), fingerprint=_fingerprint(files))


def _output_rule(root: Path, output_dir: Path) -> IgnoreRule | None:
    resolved = output_dir.expanduser().resolve()
    try:
        relative = resolved.relative_to(root).as_posix()
    except ValueError:
        return None
    if relative in ("", "."):
        return None
    return build_ignore_rule(f"/{relative}/")


def _read_source(path: Path, rel_path: str) -> SourceFile:
    data = path.read_bytes()
    try:
        text: Optional[str] = data.decode("utf-8")
    except UnicodeDecodeError:
        text = None
    if text is None:
        line_count = 0
    else:
        line_count = text.count("\n") + (1 if text and not text.endswith("\n") else 0)
    return SourceFile(
        path=rel_path,
        language=detect_language(rel_path),
        line_count=line_count,
        size=len(data),
        hash=hashlib.sha256(data).hexdigest(),
        text=text,
    )


@dataclass(frozen=True)
class LanguageShare:
    language: str
    files: int
    lines: int
    percentage: float


@dataclass(frozen=True)
class DirectorySummary:
    path: str
    files: int
    subdirectories: int
    purpose: str


def language_breakdown(snapshot: SourceSnapshot) -> List[LanguageShare]:
    """Per-language file and line totals, largest share first."""
    files: Dict[str, int] = {}
    lines: Dict[str, int] = {}
    for source in snapshot.files:
        if source.language is None:
            continue
        files[source.language] = files.get(source.language, 0) + 1
        lines[source.language] = lines.get(source.language, 0) + source.line_count
    total = sum(files.values())
    shares = [
        LanguageShare(
            language=language,
            files=count,
            lines=lines[language],
            percentage=round(count * 100.0 / total, 1) if total else 0.0,
        )
        for language, count in files.items()
    ]
    shares.sort(key=lambda share: (-share.files, share.language))
    return shares


def directory_summaries(snapshot: SourceSnapshot) -> List[DirectorySummary]:
    """Summaries for every directory holding indexed files, path ordered."""
    direct_files: Dict[str, int] = {}
    children: Dict[str, set] = {}
    for source in snapshot.files:
        parts = PurePosixPath(source.path).parent.parts
        directory = "/".join(parts)
        if not directory:
            continue
        direct_files[directory] = direct_files.get(directory, 0) + 1
        for depth in range(1, len(parts) + 1):
            current = "/".join(parts[:depth])
            children.setdefault(current, set())
            if depth < len(parts):
                children[current].add(parts[depth])

    summaries = []
    for directory in sorted(children):
        name = directory.rsplit("/", 1)[-1]
        summaries.append(
            DirectorySummary(
                path=directory,
                files=direct_files.get(directory, 0),
                subdirectories=len(children[directory]),
                purpose=DIRECTORY_PURPOSES.get(name.lower(), "Project files"),
            )
        )
    return summaries


__all__ = [
    "DIRECTORY_PURPOSES",
    "DirectorySummary",
    "IgnoreRule",
    "LanguageShare",
    "SourceIndexer",
    "build_ignore_rule",
    "detect_language",
    "directory_summaries",
    "language_breakdown",
]
