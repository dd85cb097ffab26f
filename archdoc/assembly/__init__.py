"""Cross-referenced Markdown document assembly."""

from __future__ import annotations

from .builder import (
    AssemblyError,
    AssemblyInput,
    Document,
    DocumentAssembler,
    Section,
    verify_coverage,
)
from .constants import DIAGRAM_DIR, DOCUMENT_ORDER, SUMMARY_DOC

__all__ = [
    "AssemblyError",
    "AssemblyInput",
    "DIAGRAM_DIR",
    "DOCUMENT_ORDER",
    "Document",
    "DocumentAssembler",
    "SUMMARY_DOC",
    "Section",
    "verify_coverage",
]
