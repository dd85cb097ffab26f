"""Helper utilities for constructing temporary source trees in tests."""

from __future__ import annotations

import textwrap
from pathlib import Path
from typing import Mapping

from archdoc.extraction import DeclarationExtractor
from archdoc.models import CodeModel, SourceSnapshot
from archdoc.source_indexer import SourceIndexer


class RepoBuilder:
    """Utility for writing TypeScript files into a throwaway project and re-indexing it."""

    def __init__(self, tmp_path: Path) -> None:
        self.root = tmp_path / "repo"
        self.root.mkdir()
        self._indexer = SourceIndexer()

    def write(self, files: Mapping[str, str]) -> None:
        """Write `path -> contents` entries into the project."""
        for relative, content in files.items():
            path = self.root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            normalised = textwrap.dedent(content).lstrip("\n")
            path.write_text(normalised, encoding="utf-8")

    def write_bytes(self, relative: str, data: bytes) -> None:
        path = self.root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    def index(self) -> SourceSnapshot:
        """Return a fresh snapshot of the project contents."""
        return self._indexer.index(self.root)

    def model(self) -> CodeModel:
        """Index the project and extract every parseable file into a code model."""
        snapshot = self.index()
        extractor = DeclarationExtractor()
        extractions = [extractor.extract(source) for source in snapshot.parseable()]
        return CodeModel(snapshot, extractions)

    def path(self) -> Path:
        """Return the project root path."""
        return self.root


__all__ = ["RepoBuilder"]
