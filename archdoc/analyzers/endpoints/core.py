"""Shared endpoint helpers: route canonicalization, keyword flags, conflicts."""

from __future__ import annotations

import re
from dataclasses import replace
from pathlib import PurePosixPath
from typing import Dict, List, Optional, Sequence, Tuple

from ...logging import get_logger
from ...models import EndpointEntity

HTTP_VERBS = ("GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS")

MIDDLEWARE_KEYWORDS: Tuple[Tuple[str, str], ...] = (
    ("cors", "CORS"),
    ("auth", "Authentication"),
    ("validation", "Validation"),
    ("security", "Security"),
    ("csrf", "CSRF"),
    ("ratelimit", "Rate Limiting"),
    ("rate-limit", "Rate Limiting"),
)
AUTH_KEYWORDS = ("auth", "token", "user")
VALIDATION_KEYWORDS = ("validation", "validator", "zod")

_SCRIPT_SUFFIX = re.compile(r"\.(ts|tsx|js|jsx|mjs|cjs)$")
_OPTIONAL_CATCH_ALL = re.compile(r"^\[\[\.\.\.([^\]]+)\]\]$")
_CATCH_ALL = re.compile(r"^\[\.\.\.([^\]]+)\]$")
_DYNAMIC = re.compile(r"^\[([^\]]+)\]$")

logger = get_logger("endpoints")


def is_pages_router(routing_root: str) -> bool:
    return PurePosixPath(routing_root).name == "pages"


def routing_root_for(path: str, routing_roots: Sequence[str]) -> Optional[str]:
    """Return the routing root whose `api` directory contains `path`."""
    best: Optional[str] = None
    for root in routing_roots:
        root = root.strip("/")
        prefix = f"{root}/api/" if root else "api/"
        if path.startswith(prefix) and (best is None or len(root) > len(best)):
            best = root
    return best


def is_handler_file(path: str, routing_root: str) -> bool:
    """App-router handlers live in `route.*`; every pages-router file is a handler."""
    name = PurePosixPath(path).name
    if not _SCRIPT_SUFFIX.search(name) or name.endswith(".d.ts"):
        return False
    if is_pages_router(routing_root):
        return True
    return _SCRIPT_SUFFIX.sub("", name) == "route"


def canonical_path(path: str, routing_root: str) -> str:
    """Externally visible route for a handler file.

    `src/app/api/users/[id]/route.ts` becomes `/api/users/:id`.
    """
    root = routing_root.strip("/")
    relative = path[len(root):] if root else path
    relative = _SCRIPT_SUFFIX.sub("", relative)
    segments = [segment for segment in relative.split("/") if segment]
    if segments and not is_pages_router(routing_root) and segments[-1] == "route":
        segments.pop()
    if segments and segments[-1] == "index":
        segments.pop()

    rewritten: List[str] = []
    for segment in segments:
        if segment.startswith("(") and segment.endswith(")"):
            continue
        if segment.startswith("@"):
            continue
        match = _OPTIONAL_CATCH_ALL.match(segment) or _CATCH_ALL.match(segment)
        if match:
            rewritten.append(f":{match.group(1)}*")
            continue
        match = _DYNAMIC.match(segment)
        rewritten.append(f":{match.group(1)}" if match else segment)
    return "/" + "/".join(rewritten) if rewritten else "/"


def middleware_keywords(text: str) -> Tuple[str, ...]:
    lowered = text.lower()
    found: Dict[str, None] = {}
    for keyword, label in MIDDLEWARE_KEYWORDS:
        if keyword in lowered:
            found.setdefault(label, None)
    return tuple(found)


def contains_any(text: str, keywords: Sequence[str]) -> bool:
    lowered = text.lower()
    return any(keyword in lowered for keyword in keywords)


def flag_conflicts(endpoints: Sequence[EndpointEntity]) -> List[EndpointEntity]:
    """Retain every endpoint; those sharing a (method, path) get `conflict=True`."""
    groups: Dict[Tuple[str, str], List[EndpointEntity]] = {}
    for endpoint in endpoints:
        groups.setdefault((endpoint.method, endpoint.route), []).append(endpoint)

    flagged: List[EndpointEntity] = []
    for endpoint in endpoints:
        group = groups[(endpoint.method, endpoint.route)]
        if len(group) > 1:
            flagged.append(replace(endpoint, conflict=True))
        else:
            flagged.append(endpoint)

    for (method, route), group in groups.items():
        if len(group) > 1:
            sources = ", ".join(item.path for item in group)
            logger.warning("Conflicting handlers for %s %s: %s", method, route, sources)
    return flagged


__all__ = [
    "HTTP_VERBS",
    "canonical_path",
    "contains_any",
    "flag_conflicts",
    "is_handler_file",
    "middleware_keywords",
    "routing_root_for",
]
