"""Markdown link extraction and relative link helpers."""

from __future__ import annotations

import posixpath
import re
from dataclasses import dataclass
from typing import List, Optional

_LINK_PATTERN = re.compile(r"(?<!!)\[((?:\\.|[^\]\\])+)\]\(([^)\s]+)(?:\s+\"[^\"]*\")?\)")
_INLINE_CODE = re.compile(r"(`+)(.+?)\1")
_EXTERNAL_PREFIXES = ("http://", "https://", "mailto:", "ftp://", "tel:")


@dataclass(frozen=True)
class MarkdownLink:
    text: str
    target: str
    line: int

    @property
    def is_external(self) -> bool:
        return self.target.lower().startswith(_EXTERNAL_PREFIXES)

    @property
    def path(self) -> str:
        return self.target.split("#", 1)[0].split("?", 1)[0]

    @property
    def fragment(self) -> Optional[str]:
        if "#" not in self.target:
            return None
        return self.target.split("#", 1)[1] or None


def extract_links(markdown: str) -> List[MarkdownLink]:
    """Links outside fenced blocks and inline code spans, in document order."""
    links: List[MarkdownLink] = []
    in_code = False
    for number, line in enumerate(markdown.splitlines(), start=1):
        stripped = line.strip()
        if stripped.startswith("```") or stripped.startswith("~~~"):
            in_code = not in_code
            continue
        if in_code:
            continue
        visible = _INLINE_CODE.sub(lambda match: " " * len(match.group(0)), line)
        for match in _LINK_PATTERN.finditer(visible):
            links.append(MarkdownLink(text=match.group(1), target=match.group(2).strip(), line=number))
    return links


def escape_link_text(text: str) -> str:
    return text.replace("[", "\\[").replace("]", "\\]")


def relative_link(from_document: str, to_document: str, anchor: Optional[str] = None) -> str:
    """Relative POSIX link between two documents under the same output root."""
    start = posixpath.dirname(from_document) or "."
    target = posixpath.relpath(to_document, start)
    if target == posixpath.basename(from_document) and to_document == from_document and anchor:
        return f"#{anchor}"
    return f"{target}#{anchor}" if anchor else target


__all__ = ["MarkdownLink", "escape_link_text", "extract_links", "relative_link"]
