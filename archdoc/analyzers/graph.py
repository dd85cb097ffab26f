"""Dependency graph construction from entities and relative imports."""

from __future__ import annotations

import posixpath
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Dict, List, Mapping, Optional, Sequence, Set, Tuple

from ..extraction import HOOK_NAME
from ..logging import get_logger
from ..models import (
    CodeModel,
    DependencyEdge,
    DependencyGraph,
    DependencyNode,
    Diagnostic,
    Entity,
    ImportReference,
    NodeCategory,
    Severity,
    SourceSnapshot,
    UnresolvedImport,
    entity_id,
)

RESOLVE_EXTENSIONS = (".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs", ".d.ts")
_SCRIPT_SUFFIXES = (".js", ".jsx", ".mjs", ".cjs")

_COMPONENT_DIRS = {"components"}
_HOOK_DIRS = {"hooks"}
_UTILITY_DIRS = {"lib", "utils", "helpers"}
_SERVICE_DIRS = {"services", "api", "routes"}
_TYPE_DIRS = {"types", "models"}
_VIEW_SUFFIXES = {".tsx", ".jsx"}

logger = get_logger("graph")


class ResolutionError(RuntimeError):
    """Raised when internal imports cannot be resolved to indexed files."""

    def __init__(self, message: str, unresolved: Sequence[UnresolvedImport] = ()) -> None:
        super().__init__(message)
        self.unresolved = list(unresolved)


class DanglingEdgeError(ResolutionError):
    """Raised when an edge references an id missing from the node set."""


def categorize(entity: Entity) -> NodeCategory:
    """Assign a node category by directory and naming precedence."""
    posix = PurePosixPath(entity.path)
    parts = {part.lower() for part in posix.parent.parts}
    stem = posix.name.split(".", 1)[0]

    if parts & _COMPONENT_DIRS:
        return NodeCategory.COMPONENT
    if HOOK_NAME.match(entity.name) or HOOK_NAME.match(stem) or parts & _HOOK_DIRS:
        return NodeCategory.STATEFUL_FUNCTION
    if parts & _UTILITY_DIRS:
        return NodeCategory.UTILITY
    if parts & _SERVICE_DIRS:
        return NodeCategory.SERVICE
    if parts & _TYPE_DIRS or "types" in stem.lower():
        return NodeCategory.TYPE
    if posix.suffix.lower() in _VIEW_SUFFIXES:
        return NodeCategory.COMPONENT
    return NodeCategory.UTILITY


class ImportResolver:
    """Resolves relative and aliased specifiers against the snapshot."""

    def __init__(self, snapshot: SourceSnapshot, aliases: Mapping[str, str] | None = None) -> None:
        self._snapshot = snapshot
        # Longest prefix first so "@/lib/" beats "@/".
        self._aliases = sorted((aliases or {}).items(), key=lambda item: -len(item[0]))

    def is_internal(self, specifier: str) -> bool:
        if specifier.startswith("./") or specifier.startswith("../") or specifier in (".", ".."):
            return True
        return any(specifier.startswith(prefix) for prefix, _ in self._aliases)

    def resolve(self, from_path: str, specifier: str) -> Optional[str]:
        base = self._base_path(from_path, specifier)
        if base is None or base == ".." or base.startswith("../"):
            return None
        for candidate in self._candidates(base):
            if candidate in self._snapshot:
                return candidate
        return None

    def _base_path(self, from_path: str, specifier: str) -> Optional[str]:
        if specifier.startswith(".") and (
            specifier in (".", "..") or specifier.startswith("./") or specifier.startswith("../")
        ):
            directory = posixpath.dirname(from_path)
            return posixpath.normpath(posixpath.join(directory, specifier))
        for prefix, target in self._aliases:
            if specifier.startswith(prefix):
                remainder = specifier[len(prefix):]
                return posixpath.normpath(posixpath.join(target, remainder))
        return None

    @staticmethod
    def _candidates(base: str) -> List[str]:
        candidates = [base]
        candidates.extend(base + extension for extension in RESOLVE_EXTENSIONS)
        # ESM-style "./Button.js" pointing at Button.ts
        for suffix in _SCRIPT_SUFFIXES:
            if base.endswith(suffix):
                stem = base[: -len(suffix)]
                candidates.extend(stem + extension for extension in RESOLVE_EXTENSIONS)
        candidates.extend(f"{base}/index{extension}" for extension in RESOLVE_EXTENSIONS)
        return candidates


@dataclass(frozen=True)
class GraphBuildResult:
    graph: DependencyGraph
    unresolved: Tuple[UnresolvedImport, ...] = ()

    @property
    def diagnostics(self) -> List[Diagnostic]:
        return [
            Diagnostic(
                path=item.path,
                line=item.line,
                message=f"Unresolved import '{item.specifier}'",
                severity=Severity.ERROR,
            )
            for item in self.unresolved
        ]

    def raise_for_unresolved(self) -> None:
        if not self.unresolved:
            return
        details = "; ".join(str(item) for item in self.unresolved)
        raise ResolutionError(
            f"{len(self.unresolved)} internal import(s) could not be resolved: {details}",
            self.unresolved,
        )


class DependencyGraphBuilder:
    """Converts the entity arena and import statements into a graph of ids."""

    def __init__(self, aliases: Mapping[str, str] | None = None) -> None:
        self._aliases = dict(aliases or {})

    def build(self, model: CodeModel) -> GraphBuildResult:
        resolver = ImportResolver(model.snapshot, self._aliases)
        nodes = tuple(
            DependencyNode(
                id=entity.id,
                name=entity.name,
                path=entity.path,
                kind=entity.kind,
                category=categorize(entity),
            )
            for entity in model.entities
        )

        edges: Dict[Tuple[str, str], DependencyEdge] = {}
        unresolved: List[UnresolvedImport] = []
        file_imports: List[Tuple[str, Tuple[str, ...]]] = []

        for extraction in model.extractions:
            sources = model.in_file(extraction.path)
            imported: Dict[str, None] = {}
            for reference in extraction.imports:
                if not resolver.is_internal(reference.specifier):
                    continue
                target_path = resolver.resolve(extraction.path, reference.specifier)
                if target_path is None:
                    item = UnresolvedImport(
                        path=extraction.path,
                        specifier=reference.specifier,
                        line=reference.line,
                    )
                    logger.error("Unresolved import %s", item)
                    unresolved.append(item)
                    continue
                imported.setdefault(target_path, None)
                targets = _TargetLookup(model, resolver).for_reference(target_path, reference)
                for source in sources:
                    for target in targets:
                        if source.id == target.id:
                            continue
                        edges.setdefault(
                            (source.id, target.id),
                            DependencyEdge(source=source.id, target=target.id),
                        )
            file_imports.append((extraction.path, tuple(imported)))

        graph = DependencyGraph(
            nodes=nodes,
            edges=tuple(edges.values()),
            file_imports=tuple(file_imports),
        )
        check_integrity(graph)
        logger.debug("Graph has %d nodes and %d edges", len(graph.nodes), len(graph.edges))
        return GraphBuildResult(graph=graph, unresolved=tuple(unresolved))


def check_integrity(graph: DependencyGraph) -> None:
    """Raise `DanglingEdgeError` when an edge names an id outside the node set."""
    dangling = graph.dangling_edges()
    if dangling:
        listed = ", ".join(f"{edge.source} -> {edge.target}" for edge in dangling)
        raise DanglingEdgeError(f"Graph contains dangling edges: {listed}")


class _TargetLookup:
    """Finds the entities an import statement refers to, following re-exports."""

    def __init__(self, model: CodeModel, resolver: ImportResolver) -> None:
        self._model = model
        self._resolver = resolver
        self._visited: Set[Tuple[str, str]] = set()

    def for_reference(self, path: str, reference: ImportReference) -> List[Entity]:
        if reference.namespace and not reference.names:
            return self._exported(path)
        found: List[Entity] = []
        for name in reference.names:
            for entity in self._named(path, name):
                if entity not in found:
                    found.append(entity)
        return found

    def _named(self, path: str, public_name: str) -> List[Entity]:
        key = (path, public_name)
        if key in self._visited:
            return []
        self._visited.add(key)

        extraction = self._model.extraction(path)
        if extraction is None:
            return []
        local = extraction.local_name(public_name)
        if local:
            entity = self._model.get(entity_id(path, local))
            if entity is not None:
                return [entity]

        for reference in extraction.imports:
            if not reference.reexport:
                continue
            if public_name not in reference.names and not (reference.namespace and not reference.names):
                continue
            target = self._resolver.resolve(path, reference.specifier)
            if target is None:
                continue
            found = self._named(target, public_name)
            if found:
                return found
        return []

    def _exported(self, path: str) -> List[Entity]:
        key = (path, "*")
        if key in self._visited:
            return []
        self._visited.add(key)

        extraction = self._model.extraction(path)
        if extraction is None:
            return []
        found = [entity for entity in self._model.in_file(path) if entity.exported]
        for reference in extraction.imports:
            if not reference.reexport:
                continue
            target = self._resolver.resolve(path, reference.specifier)
            if target is None:
                continue
            if reference.namespace and not reference.names:
                candidates = self._exported(target)
            else:
                candidates = [entity for name in reference.names for entity in self._named(target, name)]
            found.extend(entity for entity in candidates if entity not in found)
        return found


__all__ = [
    "DanglingEdgeError",
    "DependencyGraphBuilder",
    "GraphBuildResult",
    "ImportResolver",
    "ResolutionError",
    "categorize",
    "check_integrity",
]
