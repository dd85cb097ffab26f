"""tree-sitter grammar selection and small node helpers."""

from __future__ import annotations

from pathlib import PurePosixPath
from typing import Iterable, Iterator, List, Optional

import tree_sitter_typescript as tsts
from tree_sitter import Language, Node, Parser, Tree

TS_LANGUAGE = Language(tsts.language_typescript())
TSX_LANGUAGE = Language(tsts.language_tsx())

# Plain .ts cannot use the TSX grammar because `<T>expr` casts would parse as JSX.
_LANGUAGE_BY_SUFFIX = {
    ".ts": TS_LANGUAGE,
    ".mts": TS_LANGUAGE,
    ".cts": TS_LANGUAGE,
    ".tsx": TSX_LANGUAGE,
    ".js": TSX_LANGUAGE,
    ".jsx": TSX_LANGUAGE,
    ".mjs": TSX_LANGUAGE,
    ".cjs": TSX_LANGUAGE,
}

FUNCTION_NODES = {
    "function_declaration",
    "generator_function_declaration",
    "function_expression",
    "function",
    "generator_function",
    "arrow_function",
    "method_definition",
}


def language_for(path: str) -> Language:
    """Pick the grammar for a file from its suffix."""
    return _LANGUAGE_BY_SUFFIX.get(PurePosixPath(path).suffix.lower(), TSX_LANGUAGE)


def parse(text: str, path: str) -> Tree:
    """Parse `text` with a fresh parser so callers never share parser state."""
    parser = Parser(language_for(path))
    return parser.parse(text.encode("utf-8"))


def node_text(node: Optional[Node]) -> str:
    if node is None or node.text is None:
        return ""
    return node.text.decode("utf-8", errors="replace")


def field_text(node: Node, field: str) -> str:
    return node_text(node.child_by_field_name(field))


def line_of(node: Node) -> int:
    """Return the 1-based line of a node."""
    return node.start_point[0] + 1


def column_of(node: Node) -> int:
    return node.start_point[1] + 1


def has_token(node: Node, token: str) -> bool:
    """True if `node` has a direct anonymous child spelled `token`."""
    return any(not child.is_named and child.type == token for child in node.children)


def is_broken(node: Node) -> bool:
    return node.type == "ERROR" or node.is_missing or node.has_error


def annotation_text(node: Optional[Node]) -> Optional[str]:
    """Text of a `: Type` annotation without the leading colon."""
    if node is None:
        return None
    text = node_text(node).strip()
    if text.startswith(":"):
        text = text[1:].strip()
    return text or None


def annotation_type(node: Optional[Node]) -> Optional[Node]:
    """The type node inside a `type_annotation`."""
    if node is None:
        return None
    if node.type != "type_annotation":
        return node
    named = node.named_children
    return named[0] if named else None


def walk(node: Node, *, skip: Iterable[str] = ()) -> Iterator[Node]:
    """Pre-order traversal that does not descend into node types in `skip`."""
    skipped = set(skip)
    stack: List[Node] = list(reversed(node.named_children))
    while stack:
        current = stack.pop()
        yield current
        if current.type in skipped:
            continue
        stack.extend(reversed(current.named_children))


def string_value(node: Optional[Node]) -> str:
    return node_text(node).strip().strip("'\"`")


__all__ = [
    "FUNCTION_NODES",
    "TSX_LANGUAGE",
    "TS_LANGUAGE",
    "annotation_text",
    "annotation_type",
    "column_of",
    "field_text",
    "has_token",
    "is_broken",
    "language_for",
    "line_of",
    "node_text",
    "parse",
    "string_value",
    "walk",
]
