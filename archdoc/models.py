"""Core data models shared across archdoc components."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import PurePosixPath
from typing import ClassVar, Dict, Iterable, List, Optional, Sequence, Tuple

PARSEABLE_SUFFIXES = (".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs")


class EntityKind(str, Enum):
    """Tag for the entity variants extracted from source."""

    INTERFACE = "interface"
    TYPE_ALIAS = "type-alias"
    ENUM = "enum"
    COMPONENT = "component"
    STATEFUL_FUNCTION = "stateful-function"
    ENDPOINT = "endpoint"


class NodeCategory(str, Enum):
    """Dependency graph node categories."""

    COMPONENT = "component"
    STATEFUL_FUNCTION = "stateful-function"
    UTILITY = "utility"
    SERVICE = "service"
    TYPE = "type"


class Severity(str, Enum):
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class SourceFile:
    """An indexed file; `text` is None when the bytes are not valid UTF-8."""

    path: str
    language: Optional[str]
    line_count: int
    size: int
    hash: str
    text: Optional[str]

    @property
    def suffix(self) -> str:
        return PurePosixPath(self.path).suffix.lower()

    @property
    def stem(self) -> str:
        name = PurePosixPath(self.path).name
        return name.split(".", 1)[0]

    @property
    def directory_parts(self) -> Tuple[str, ...]:
        return PurePosixPath(self.path).parent.parts

    @property
    def is_parseable(self) -> bool:
        lowered = self.path.lower()
        if lowered.endswith(".d.ts"):
            return False
        return lowered.endswith(PARSEABLE_SUFFIXES)


@dataclass(frozen=True)
class SourceSnapshot:
    """Immutable, path-ordered view of the source tree for one run."""

    root: str
    files: Tuple[SourceFile, ...]
    fingerprint: str

    def __post_init__(self) -> None:
        index = {source.path: source for source in self.files}
        object.__setattr__(self, "_index", index)

    def get(self, path: str) -> Optional[SourceFile]:
        return self._index.get(path)  # type: ignore[attr-defined]

    def __contains__(self, path: object) -> bool:
        return path in self._index  # type: ignore[attr-defined]

    @property
    def paths(self) -> Tuple[str, ...]:
        return tuple(source.path for source in self.files)

    def parseable(self) -> Tuple[SourceFile, ...]:
        return tuple(source for source in self.files if source.is_parseable)


@dataclass(frozen=True)
class SourceLocation:
    """1-based line and column of a declaration."""

    path: str
    line: int
    column: int = 1

    def __str__(self) -> str:
        return f"{self.path}:{self.line}"


@dataclass(frozen=True)
class Property:
    name: str
    type_text: str
    optional: bool = False
    documentation: Optional[str] = None


@dataclass(frozen=True)
class Parameter:
    name: str
    type_text: Optional[str] = None
    optional: bool = False
    default: Optional[str] = None


@dataclass(frozen=True)
class EnumMember:
    name: str
    value: Optional[str] = None


def entity_id(path: str, name: str) -> str:
    """Return the deterministic id for a declaration named `name` in `path`."""
    return f"{path}#{name}"


@dataclass(frozen=True)
class Entity:
    """Common fields of every extracted declaration."""

    id: str
    name: str
    exported: bool
    location: SourceLocation
    documentation: Optional[str] = None

    kind: ClassVar[EntityKind]

    @property
    def path(self) -> str:
        return self.location.path


@dataclass(frozen=True)
class InterfaceEntity(Entity):
    properties: Tuple[Property, ...] = ()
    extends: Tuple[str, ...] = ()

    kind: ClassVar[EntityKind] = EntityKind.INTERFACE


@dataclass(frozen=True)
class TypeAliasEntity(Entity):
    type_text: str = ""

    kind: ClassVar[EntityKind] = EntityKind.TYPE_ALIAS


@dataclass(frozen=True)
class EnumEntity(Entity):
    members: Tuple[EnumMember, ...] = ()

    kind: ClassVar[EntityKind] = EntityKind.ENUM


@dataclass(frozen=True)
class ComponentEntity(Entity):
    props_type: Optional[str] = None
    rendered: Tuple[str, ...] = ()

    kind: ClassVar[EntityKind] = EntityKind.COMPONENT


@dataclass(frozen=True)
class StatefulFunctionEntity(Entity):
    parameters: Tuple[Parameter, ...] = ()
    return_type: str = "unknown"
    is_async: bool = False

    kind: ClassVar[EntityKind] = EntityKind.STATEFUL_FUNCTION


@dataclass(frozen=True)
class EndpointEntity(Entity):
    method: str = "GET"
    route: str = "/"
    middleware: Tuple[str, ...] = ()
    authentication: bool = False
    validation: bool = False
    conflict: bool = False

    kind: ClassVar[EntityKind] = EntityKind.ENDPOINT


TYPE_KINDS = (EntityKind.INTERFACE, EntityKind.TYPE_ALIAS, EntityKind.ENUM)


@dataclass(frozen=True)
class Diagnostic:
    """Structured record of a skipped declaration, file, or import."""

    path: str
    line: int
    message: str
    severity: Severity = Severity.WARNING

    def __str__(self) -> str:
        return f"{self.path}:{self.line}: {self.message}"


@dataclass(frozen=True)
class ImportReference:
    """An `import`/`export ... from` statement.

    `names` holds the names as exported by the target module (`default` for a
    default import). `namespace` marks `import * as x` and `export *`;
    `reexport` marks `export ... from` statements.
    """

    specifier: str
    names: Tuple[str, ...] = ()
    namespace: bool = False
    line: int = 1
    reexport: bool = False

    @property
    def is_relative(self) -> bool:
        return self.specifier.startswith("./") or self.specifier.startswith("../")


@dataclass(frozen=True)
class CallableExport:
    """An exported function-valued declaration, whatever its name.

    Also covers bindings to a wrapped or aliased handler, such as
    `export const GET = withAuth(list)`.
    """

    name: str
    line: int
    column: int = 1
    is_async: bool = False
    documentation: Optional[str] = None


@dataclass(frozen=True)
class FileExtraction:
    """Everything the extractor learned about one file."""

    path: str
    entities: Tuple[Entity, ...] = ()
    imports: Tuple[ImportReference, ...] = ()
    callables: Tuple[CallableExport, ...] = ()
    exported_names: Tuple[str, ...] = ()
    export_aliases: Tuple[Tuple[str, str], ...] = ()
    default_export: Optional[str] = None
    diagnostics: Tuple[Diagnostic, ...] = ()

    def local_name(self, public_name: str) -> Optional[str]:
        """Map a name an importer uses onto the declaration it refers to."""
        if public_name == "default":
            return self.default_export
        for alias, local in self.export_aliases:
            if alias == public_name:
                return local
        return public_name


class CodeModel:
    """Arena of immutable entities keyed by deterministic ids.

    Built once per run from path-ordered extractions. A second entity with an
    id already in the arena is skipped and reported as a diagnostic.
    """

    def __init__(
        self,
        snapshot: SourceSnapshot,
        extractions: Sequence[FileExtraction],
        *,
        extra_entities: Iterable[Entity] = (),
        skipped_files: Sequence[Diagnostic] = (),
    ) -> None:
        self.snapshot = snapshot
        ordered = sorted(extractions, key=lambda item: item.path)
        self._extractions: Dict[str, FileExtraction] = {item.path: item for item in ordered}

        diagnostics: List[Diagnostic] = []
        for extraction in ordered:
            diagnostics.extend(extraction.diagnostics)

        candidates: List[Entity] = []
        for extraction in ordered:
            candidates.extend(extraction.entities)
        candidates.extend(extra_entities)
        candidates.sort(key=lambda entity: (entity.path, entity.location.line, entity.location.column))

        entities: List[Entity] = []
        index: Dict[str, Entity] = {}
        for entity in candidates:
            if entity.id in index:
                diagnostics.append(
                    Diagnostic(
                        path=entity.path,
                        line=entity.location.line,
                        message=f"Duplicate declaration '{entity.name}' skipped",
                    )
                )
                continue
            index[entity.id] = entity
            entities.append(entity)

        self.entities: Tuple[Entity, ...] = tuple(entities)
        self.diagnostics: Tuple[Diagnostic, ...] = tuple(diagnostics)
        self.skipped_files: Tuple[Diagnostic, ...] = tuple(skipped_files)
        self._index = index
        self._by_path: Dict[str, List[Entity]] = {}
        self._by_name: Dict[str, List[Entity]] = {}
        for entity in entities:
            self._by_path.setdefault(entity.path, []).append(entity)
            self._by_name.setdefault(entity.name, []).append(entity)

    @property
    def extractions(self) -> Tuple[FileExtraction, ...]:
        return tuple(self._extractions.values())

    def extraction(self, path: str) -> Optional[FileExtraction]:
        return self._extractions.get(path)

    def get(self, identifier: str) -> Optional[Entity]:
        return self._index.get(identifier)

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._index

    def __len__(self) -> int:
        return len(self.entities)

    def of_kind(self, *kinds: EntityKind) -> List[Entity]:
        return [entity for entity in self.entities if entity.kind in kinds]

    def in_file(self, path: str) -> List[Entity]:
        return list(self._by_path.get(path, ()))

    def named(self, name: str) -> List[Entity]:
        return list(self._by_name.get(name, ()))

    def resolve_type(
        self, name: str, from_path: str, imported_paths: Sequence[str] = ()
    ) -> Optional[Entity]:
        """Find the type declaration `name` as visible from `from_path`."""
        for path in (from_path, *imported_paths):
            candidate = self._index.get(entity_id(path, name))
            if candidate is not None and candidate.kind in TYPE_KINDS:
                return candidate
        matches = [entity for entity in self.named(name) if entity.kind in TYPE_KINDS]
        if len(matches) == 1:
            return matches[0]
        return None


@dataclass(frozen=True)
class DependencyNode:
    id: str
    name: str
    path: str
    kind: EntityKind
    category: NodeCategory


@dataclass(frozen=True)
class DependencyEdge:
    source: str
    target: str
    kind: str = "import"


@dataclass(frozen=True)
class UnresolvedImport:
    path: str
    specifier: str
    line: int

    def __str__(self) -> str:
        return f"{self.path}:{self.line}: cannot resolve '{self.specifier}'"


@dataclass(frozen=True)
class DependencyGraph:
    """Id-only graph over the entity arena."""

    nodes: Tuple[DependencyNode, ...]
    edges: Tuple[DependencyEdge, ...]
    file_imports: Tuple[Tuple[str, Tuple[str, ...]], ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "_nodes", {node.id: node for node in self.nodes})
        object.__setattr__(self, "_file_imports", dict(self.file_imports))

    def node(self, identifier: str) -> Optional[DependencyNode]:
        return self._nodes.get(identifier)  # type: ignore[attr-defined]

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._nodes  # type: ignore[attr-defined]

    def imported_files(self, path: str) -> Tuple[str, ...]:
        """Return the indexed files `path` imports, in statement order."""
        return self._file_imports.get(path, ())  # type: ignore[attr-defined]

    def dangling_edges(self) -> List[DependencyEdge]:
        return [
            edge
            for edge in self.edges
            if edge.source not in self or edge.target not in self
        ]


@dataclass(frozen=True)
class PatternMatch:
    """A detected architectural or security pattern."""

    key: str
    name: str
    category: str
    confidence: float
    files: Tuple[str, ...]
    description: str = ""
    implementation: str = ""

    def __post_init__(self) -> None:
        if not 0.0 < self.confidence <= 1.0:
            raise ValueError(f"Confidence for {self.key} must lie in (0, 1]: {self.confidence}")


class DiagramShape(str, Enum):
    GRAPH = "graph"
    HIERARCHY = "hierarchy"
    LINEAR_FLOW = "linear-flow"


@dataclass(frozen=True)
class DiagramNode:
    id: str
    label: str
    group: Optional[str] = None
    shape: str = "box"


@dataclass(frozen=True)
class DiagramEdge:
    source: str
    target: str
    label: Optional[str] = None


@dataclass(frozen=True)
class Diagram:
    """Renderer-independent diagram description."""

    name: str
    title: str
    shape: DiagramShape
    nodes: Tuple[DiagramNode, ...] = ()
    edges: Tuple[DiagramEdge, ...] = ()
    steps: Tuple[str, ...] = ()

    @property
    def filename(self) -> str:
        return f"{self.name}.mmd"


__all__ = [
    "CallableExport",
    "CodeModel",
    "ComponentEntity",
    "DependencyEdge",
    "DependencyGraph",
    "DependencyNode",
    "Diagnostic",
    "Diagram",
    "DiagramEdge",
    "DiagramNode",
    "DiagramShape",
    "EndpointEntity",
    "Entity",
    "EntityKind",
    "EnumEntity",
    "EnumMember",
    "FileExtraction",
    "ImportReference",
    "InterfaceEntity",
    "NodeCategory",
    "Parameter",
    "PatternMatch",
    "Property",
    "Severity",
    "SourceFile",
    "SourceLocation",
    "SourceSnapshot",
    "StatefulFunctionEntity",
    "TypeAliasEntity",
    "UnresolvedImport",
    "entity_id",
]
