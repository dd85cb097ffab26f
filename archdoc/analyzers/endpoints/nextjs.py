"""Next.js route handler detection (app and pages routers)."""

from __future__ import annotations

from typing import Dict, Iterable, List, Sequence, Tuple

from ...config import DEFAULT_ROUTING_ROOTS
from ...logging import get_logger
from ...models import (
    CallableExport,
    EndpointEntity,
    FileExtraction,
    SourceLocation,
    SourceSnapshot,
    entity_id,
)
from .core import (
    AUTH_KEYWORDS,
    HTTP_VERBS,
    VALIDATION_KEYWORDS,
    canonical_path,
    contains_any,
    flag_conflicts,
    is_handler_file,
    middleware_keywords,
    routing_root_for,
)

logger = get_logger("endpoints")


class EndpointExtractor:
    """Turns exported verb-named callables under route directories into endpoints."""

    def __init__(self, routing_roots: Sequence[str] = DEFAULT_ROUTING_ROOTS) -> None:
        self._routing_roots = tuple(root.strip("/") for root in routing_roots)

    def extract(
        self, snapshot: SourceSnapshot, extractions: Iterable[FileExtraction]
    ) -> List[EndpointEntity]:
        endpoints: List[EndpointEntity] = []
        for extraction in sorted(extractions, key=lambda item: item.path):
            routing_root = routing_root_for(extraction.path, self._routing_roots)
            if routing_root is None or not is_handler_file(extraction.path, routing_root):
                continue
            source = snapshot.get(extraction.path)
            text = source.text if source is not None and source.text is not None else ""
            route = canonical_path(extraction.path, routing_root)
            middleware = middleware_keywords(text)
            authentication = contains_any(text, AUTH_KEYWORDS)
            validation = contains_any(text, VALIDATION_KEYWORDS)

            for method, handler in exported_handlers(extraction):
                endpoints.append(
                    EndpointEntity(
                        id=entity_id(extraction.path, method),
                        name=method,
                        exported=True,
                        location=SourceLocation(
                            path=extraction.path, line=handler.line, column=handler.column
                        ),
                        documentation=handler.documentation,
                        method=method,
                        route=route,
                        middleware=middleware,
                        authentication=authentication,
                        validation=validation,
                    )
                )
                logger.debug("Endpoint %s %s in %s", method, route, extraction.path)
        return flag_conflicts(endpoints)


def exported_handlers(extraction: FileExtraction) -> List[Tuple[str, CallableExport]]:
    """Pair each exported verb with the callable bound to it.

    Verb-named callables come first in declaration order, followed by verbs
    exported through an alias (`export { handler as GET, handler as POST }`).
    """
    pairs: Dict[str, CallableExport] = {}
    by_name = {handler.name: handler for handler in extraction.callables}
    for handler in extraction.callables:
        if handler.name in HTTP_VERBS:
            pairs.setdefault(handler.name, handler)
    for alias, local in extraction.export_aliases:
        if alias in HTTP_VERBS and local in by_name:
            pairs.setdefault(alias, by_name[local])
    return list(pairs.items())


__all__ = ["EndpointExtractor", "exported_handlers"]
