"""Declaration extraction backed by tree-sitter."""

from __future__ import annotations

from .declarations import HOOK_NAME, DeclarationExtractor, FileParseError

__all__ = ["DeclarationExtractor", "FileParseError", "HOOK_NAME"]
