"""Heading slugs and table-of-contents generation."""

from __future__ import annotations

import re
from typing import Dict, List, Sequence, Tuple

from .links import escape_link_text

_HEADING = re.compile(r"^(#{1,6})\s+(.*?)\s*#*\s*$")


def slugify(title: str) -> str:
    """GitHub-style anchor for a heading title."""
    slug = _plain(title).strip().lower()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


class SlugRegistry:
    """Hands out unique anchors, suffixing repeats with -1, -2, ..."""

    def __init__(self) -> None:
        self._counts: Dict[str, int] = {}

    def claim(self, title: str) -> str:
        base = slugify(title)
        count = self._counts.get(base)
        if count is None:
            self._counts[base] = 0
            return base
        count += 1
        self._counts[base] = count
        candidate = f"{base}-{count}"
        # A literal heading may already own "name-1".
        while candidate in self._counts:
            count += 1
            self._counts[base] = count
            candidate = f"{base}-{count}"
        self._counts[candidate] = 0
        return candidate


def iter_headings(markdown: str) -> List[Tuple[int, str]]:
    """(level, title) for each ATX heading outside fenced code blocks."""
    headings: List[Tuple[int, str]] = []
    in_code = False
    for line in markdown.splitlines():
        stripped = line.strip()
        if stripped.startswith("```") or stripped.startswith("~~~"):
            in_code = not in_code
            continue
        if in_code or line.startswith("    "):
            continue
        match = _HEADING.match(stripped)
        if match:
            headings.append((len(match.group(1)), _plain(match.group(2))))
    return headings


def heading_anchors(markdown: str) -> List[str]:
    registry = SlugRegistry()
    return [registry.claim(title) for _, title in iter_headings(markdown)]


def _plain(title: str) -> str:
    """Strip inline markup that does not contribute to the rendered heading text."""
    title = re.sub(r"\[([^\]]*)\]\([^)]*\)", r"\1", title)
    return title.replace("`", "").replace("*", "")


class TableOfContentsBuilder:
    """Builds ToC blocks for level two and three headings."""

    def build(self, entries: Sequence[Tuple[int, str, str]]) -> str:
        """`entries` holds (level, title, anchor) triples in document order."""
        lines: List[str] = []
        for level, title, anchor in entries:
            if level not in (2, 3):
                continue
            indent = "  " * (level - 2)
            text = escape_link_text(_plain(title))
            lines.append(f"{indent}- [{text}](#{anchor})")
        return "\n".join(lines)


__all__ = [
    "SlugRegistry",
    "TableOfContentsBuilder",
    "heading_anchors",
    "iter_headings",
    "slugify",
]
