"""Assembly of cross-referenced Markdown documents from the analysis results.

Assembly runs in two passes. The first plans every document's headings so
anchors are known up front; the second renders section bodies, which may
link to sections of any document.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from ..diagrams.builder import component_children
from ..logging import get_logger
from ..models import (
    CodeModel,
    ComponentEntity,
    DependencyGraph,
    Diagnostic,
    Diagram,
    EndpointEntity,
    Entity,
    EntityKind,
    EnumEntity,
    InterfaceEntity,
    NodeCategory,
    PatternMatch,
    StatefulFunctionEntity,
    TypeAliasEntity,
    UnresolvedImport,
)
from ..postproc.links import escape_link_text, relative_link
from ..postproc.toc import SlugRegistry, TableOfContentsBuilder
from ..source_indexer import directory_summaries, language_breakdown
from .constants import (
    ARCHITECTURE_DOC,
    COMPONENTS_DOC,
    DIAGRAM_DIR,
    DOCUMENT_INTROS,
    DOCUMENT_ORDER,
    DOCUMENT_TITLES,
    EMPTY_MESSAGES,
    ENDPOINTS_DOC,
    ENTITY_DOCUMENTS,
    HOOKS_DOC,
    SECURITY_CHECKLIST,
    SECURITY_DOC,
    SUMMARY_DOC,
    TYPE_GROUPS,
    TYPES_DOC,
)

TOC_HEADING = "Table of Contents"
_MAX_LISTED_FILES = 20
_SIMPLE_TYPE = re.compile(r"^([A-Za-z_$][\w$]*)(?:<.*>|\[\])?$", re.DOTALL)

logger = get_logger("assembly")


class AssemblyError(RuntimeError):
    """Raised when an entity is missing from, or repeated across, documents."""


@dataclass(frozen=True)
class Section:
    heading: str
    level: int
    body: str = ""
    entity_id: Optional[str] = None


def outline_anchors(title: str, headings: Sequence[str]) -> List[str]:
    """Anchors for `headings` in a document rendered by `Document.render`."""
    registry = SlugRegistry()
    registry.claim(title)
    if headings:
        registry.claim(TOC_HEADING)
    return [registry.claim(heading) for heading in headings]


@dataclass(frozen=True)
class Document:
    path: str
    title: str
    intro: str
    sections: Tuple[Section, ...]

    def anchors(self) -> List[str]:
        return outline_anchors(self.title, [section.heading for section in self.sections])

    def render(self) -> str:
        lines = [f"# {self.title}", "", self.intro, ""]
        if self.sections:
            entries = [
                (section.level, section.heading, anchor)
                for section, anchor in zip(self.sections, self.anchors())
            ]
            lines.extend([f"## {TOC_HEADING}", "", TableOfContentsBuilder().build(entries), ""])
        for section in self.sections:
            lines.extend([f"{'#' * section.level} {section.heading}", ""])
            if section.body:
                lines.extend([section.body, ""])
        return "\n".join(lines).rstrip() + "\n"


@dataclass(frozen=True)
class AssemblyInput:
    model: CodeModel
    graph: DependencyGraph
    patterns: Tuple[PatternMatch, ...] = ()
    diagrams: Tuple[Diagram, ...] = ()
    unresolved: Tuple[UnresolvedImport, ...] = ()


@dataclass(frozen=True)
class _Item:
    heading: str
    level: int
    entity_id: Optional[str] = None
    key: Optional[str] = None
    detail: str = ""


@dataclass
class _AnchorIndex:
    entities: Dict[str, Tuple[str, str]] = field(default_factory=dict)
    keyed: Dict[Tuple[str, str], str] = field(default_factory=dict)

    def entity(self, identifier: str) -> Optional[Tuple[str, str]]:
        return self.entities.get(identifier)


class DocumentAssembler:
    """Merges typed analysis data into the canonical document set."""

    def assemble(self, data: AssemblyInput) -> List[Document]:
        outlines = _Planner(data).plan()

        index = _AnchorIndex()
        for path in DOCUMENT_ORDER:
            items = outlines[path]
            anchors = outline_anchors(DOCUMENT_TITLES[path], [item.heading for item in items])
            for item, anchor in zip(items, anchors):
                if item.entity_id is not None:
                    index.entities.setdefault(item.entity_id, (path, anchor))
                if item.key is not None:
                    index.keyed.setdefault((path, item.key), anchor)

        renderer = _Renderer(data, index)
        documents = []
        for path in DOCUMENT_ORDER:
            sections = tuple(
                Section(
                    heading=item.heading,
                    level=item.level,
                    body=renderer.body(path, item),
                    entity_id=item.entity_id,
                )
                for item in outlines[path]
            )
            documents.append(
                Document(
                    path=path,
                    title=DOCUMENT_TITLES[path],
                    intro=DOCUMENT_INTROS[path],
                    sections=sections,
                )
            )

        verify_coverage(data.model, documents)
        logger.debug("Assembled %d documents", len(documents))
        return documents


def verify_coverage(model: CodeModel, documents: Sequence[Document]) -> None:
    """Every entity must own exactly one section across all documents."""
    counts: Dict[str, int] = {}
    for document in documents:
        for section in document.sections:
            if section.entity_id is not None:
                counts[section.entity_id] = counts.get(section.entity_id, 0) + 1

    missing = [entity.id for entity in model.entities if entity.id not in counts]
    repeated = [identifier for identifier, count in counts.items() if count > 1]
    unknown = [identifier for identifier in counts if identifier not in model]
    if missing or repeated or unknown:
        problems = []
        if missing:
            problems.append(f"missing: {', '.join(missing)}")
        if repeated:
            problems.append(f"repeated: {', '.join(repeated)}")
        if unknown:
            problems.append(f"unknown: {', '.join(unknown)}")
        raise AssemblyError("Document sections do not cover the model; " + "; ".join(problems))


def _directory(path: str) -> str:
    return path.rsplit("/", 1)[0] if "/" in path else "(root)"


def _route_group(route: str) -> str:
    segments = [segment for segment in route.split("/") if segment]
    if segments and segments[0] == "api" and len(segments) > 1:
        return f"/api/{segments[1]}"
    return f"/{segments[0]}" if segments else "/"


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}" if count == 1 else f"{count} {noun}s"


class _Planner:
    def __init__(self, data: AssemblyInput) -> None:
        self.data = data
        self.model = data.model

    def plan(self) -> Dict[str, List[_Item]]:
        return {
            TYPES_DOC: self._types(),
            COMPONENTS_DOC: self._grouped(EntityKind.COMPONENT, COMPONENTS_DOC, "hierarchy"),
            HOOKS_DOC: self._grouped(EntityKind.STATEFUL_FUNCTION, HOOKS_DOC, None),
            ENDPOINTS_DOC: self._endpoints(),
            ARCHITECTURE_DOC: self._architecture(),
            SECURITY_DOC: self._security(),
            SUMMARY_DOC: self._summary(),
        }

    def _types(self) -> List[_Item]:
        items: List[_Item] = []
        for kind, label in TYPE_GROUPS:
            entities = self.model.of_kind(kind)
            if not entities:
                continue
            items.append(_Item(label, 2, key=f"group:{kind.value}", detail=_plural(len(entities), "declaration")))
            items.extend(_Item(entity.name, 3, entity_id=entity.id) for entity in entities)
        return items or [_Item("Overview", 2, key="empty")]

    def _grouped(self, kind: EntityKind, path: str, trailer: Optional[str]) -> List[_Item]:
        entities = self.model.of_kind(kind)
        if not entities:
            return [_Item("Overview", 2, key="empty")]
        groups: Dict[str, List[Entity]] = {}
        for entity in entities:
            groups.setdefault(_directory(entity.path), []).append(entity)
        items: List[_Item] = []
        for directory, members in groups.items():
            items.append(
                _Item(directory, 2, key=f"group:{directory}", detail=f"Defined in `{directory}`.")
            )
            items.extend(_Item(entity.name, 3, entity_id=entity.id) for entity in members)
        if trailer == "hierarchy":
            items.append(_Item("Component Hierarchy", 2, key="hierarchy"))
        return items

    def _endpoints(self) -> List[_Item]:
        entities = [
            entity
            for entity in self.model.of_kind(EntityKind.ENDPOINT)
            if isinstance(entity, EndpointEntity)
        ]
        if not entities:
            return [_Item("Overview", 2, key="empty")]
        items = [_Item("Endpoint Summary", 2, key="endpoint-summary")]
        groups: Dict[str, List[EndpointEntity]] = {}
        for entity in sorted(entities, key=lambda item: (item.route, item.method, item.path)):
            groups.setdefault(_route_group(entity.route), []).append(entity)
        for group, members in groups.items():
            items.append(_Item(group, 2, key=f"group:{group}", detail=_plural(len(members), "handler")))
            items.extend(
                _Item(f"{entity.method} {entity.route}", 3, entity_id=entity.id) for entity in members
            )
        return items

    def _architecture(self) -> List[_Item]:
        items = [
            _Item("System Overview", 2, key="overview"),
            _Item("Technology Stack", 2, key="languages"),
            _Item("Directory Structure", 2, key="directories"),
            _Item("Design Patterns", 2, key="patterns"),
        ]
        for match in self.data.patterns:
            if match.category == "architecture":
                items.append(_Item(match.name, 3, key=f"pattern:{match.key}"))
        items.append(_Item("Dependency Relationships", 2, key="dependencies"))
        items.append(_Item("Diagrams", 2, key="diagrams"))
        return items

    def _security(self) -> List[_Item]:
        items = [_Item("Security Patterns", 2, key="security-patterns")]
        for match in self.data.patterns:
            if match.category == "security":
                items.append(_Item(match.name, 3, key=f"pattern:{match.key}"))
        items.extend(
            [
                _Item("Protected Endpoints", 2, key="protected-endpoints"),
                _Item("Security Checklist", 2, key="checklist"),
                _Item("Security Diagrams", 2, key="security-diagrams"),
            ]
        )
        return items

    def _summary(self) -> List[_Item]:
        return [
            _Item("Statistics", 2, key="statistics"),
            _Item("Documents", 2, key="documents"),
            _Item("Diagrams", 2, key="diagrams"),
            _Item("Detected Patterns", 2, key="detected-patterns"),
            _Item("Diagnostics", 2, key="diagnostics"),
            _Item("Skipped Files", 3, key="skipped-files"),
            _Item("Skipped Declarations", 3, key="skipped-declarations"),
            _Item("Unresolved Imports", 3, key="unresolved-imports"),
        ]


def _code(text: str) -> str:
    collapsed = " ".join(text.split())
    if "`" in collapsed:
        return f"`` {collapsed} ``"
    return f"`{collapsed}`"


def _cell(text: str) -> str:
    return text.replace("|", "\\|").replace("\n", " ")


def _quote(text: str) -> str:
    """Block-quote source commentary; brackets are escaped so it never links."""
    return "\n".join(f"> {escape_link_text(line)}".rstrip() for line in text.splitlines())


def _table(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> str:
    lines = [
        "| " + " | ".join(headers) + " |",
        "|" + "|".join("---" for _ in headers) + "|",
    ]
    lines.extend("| " + " | ".join(_cell(value) for value in row) + " |" for row in rows)
    return "\n".join(lines)


def _yes_no(flag: bool) -> str:
    return "Yes" if flag else "No"


class _Renderer:
    def __init__(self, data: AssemblyInput, index: _AnchorIndex) -> None:
        self.data = data
        self.model = data.model
        self.graph = data.graph
        self.index = index
        self._children = component_children(self.model, self.graph)
        self._detected = {match.key: match for match in data.patterns}
        self._fixed: Dict[str, Callable[[str, _Item], str]] = {
            "empty": lambda path, item: EMPTY_MESSAGES.get(path, ""),
            "hierarchy": self._hierarchy,
            "endpoint-summary": self._endpoint_summary,
            "overview": self._overview,
            "languages": self._languages,
            "directories": self._directories,
            "patterns": self._architecture_patterns,
            "dependencies": self._dependencies,
            "diagrams": self._diagram_links,
            "security-patterns": self._security_patterns,
            "protected-endpoints": self._protected_endpoints,
            "checklist": self._checklist,
            "security-diagrams": self._security_diagrams,
            "statistics": self._statistics,
            "documents": self._documents,
            "detected-patterns": self._detected_patterns,
            "diagnostics": self._diagnostics,
            "skipped-files": lambda path, item: self._diagnostic_list(self.model.skipped_files),
            "skipped-declarations": lambda path, item: self._diagnostic_list(self.model.diagnostics),
            "unresolved-imports": self._unresolved,
        }

    def body(self, path: str, item: _Item) -> str:
        if item.entity_id is not None:
            entity = self.model.get(item.entity_id)
            if entity is None:
                raise AssemblyError(f"Section references unknown entity {item.entity_id}")
            return self._entity(path, entity)
        if item.key is None:
            return item.detail
        if item.key.startswith("group:"):
            return item.detail
        if item.key.startswith("pattern:"):
            return self._pattern(self._detected[item.key.split(":", 1)[1]])
        return self._fixed[item.key](path, item)

    # Links

    def _node_kind(self, identifier: str) -> Optional[EntityKind]:
        node = self.graph.node(identifier)
        return node.kind if node is not None else None

    def _entity_link(self, from_doc: str, identifier: str, label: Optional[str] = None) -> str:
        entity = self.model.get(identifier)
        text = label or (entity.name if entity is not None else identifier)
        target = self.index.entity(identifier)
        if target is None:
            return _code(text)
        document, anchor = target
        return f"[{escape_link_text(text)}]({relative_link(from_doc, document, anchor)})"

    def _keyed_link(self, from_doc: str, document: str, key: str, text: str) -> str:
        anchor = self.index.keyed.get((document, key))
        return f"[{text}]({relative_link(from_doc, document, anchor)})"

    def _diagram_link(self, from_doc: str, diagram: Diagram) -> str:
        return f"[{diagram.title}]({relative_link(from_doc, f'{DIAGRAM_DIR}/{diagram.filename}')})"

    def _type_link(self, from_doc: str, type_text: str, owner: Entity) -> str:
        match = _SIMPLE_TYPE.match(type_text.strip())
        if match:
            target = self.model.resolve_type(
                match.group(1), owner.path, self.graph.imported_files(owner.path)
            )
            if target is not None:
                return self._entity_link(from_doc, target.id, " ".join(type_text.split()))
        return _code(type_text)

    # Entities

    def _entity(self, path: str, entity: Entity) -> str:
        parts: List[str] = []
        if entity.documentation:
            parts.append(_quote(entity.documentation))
        facts = [
            f"- **Kind:** {entity.kind.value}",
            f"- **Source:** `{entity.location}`",
            f"- **Exported:** {_yes_no(entity.exported)}",
        ]
        node = self.graph.node(entity.id)
        if node is not None:
            facts.append(f"- **Category:** {node.category.value}")
        parts.append("\n".join(facts))

        if isinstance(entity, InterfaceEntity):
            parts.extend(self._interface(path, entity))
        elif isinstance(entity, TypeAliasEntity):
            parts.append(f"```typescript\ntype {entity.name} = {entity.type_text}\n```")
        elif isinstance(entity, EnumEntity):
            parts.append(self._enum(entity))
        elif isinstance(entity, ComponentEntity):
            parts.append(self._component(path, entity))
        elif isinstance(entity, StatefulFunctionEntity):
            parts.extend(self._hook(path, entity))
        elif isinstance(entity, EndpointEntity):
            parts.append(self._endpoint(path, entity))
        return "\n\n".join(part for part in parts if part)

    def _interface(self, path: str, entity: InterfaceEntity) -> List[str]:
        parts: List[str] = []
        if entity.extends:
            bases = ", ".join(self._type_link(path, base, entity) for base in entity.extends)
            parts.append(f"**Extends:** {bases}")
        if entity.properties:
            rows = [
                (
                    _code(prop.name),
                    self._type_link(path, prop.type_text, entity),
                    _yes_no(not prop.optional),
                    escape_link_text(" ".join((prop.documentation or "").split())),
                )
                for prop in entity.properties
            ]
            parts.append(_table(("Property", "Type", "Required", "Description"), rows))
        else:
            parts.append("_No properties._")
        return parts

    def _enum(self, entity: EnumEntity) -> str:
        if not entity.members:
            return "_No members._"
        rows = [
            (_code(member.name), _code(member.value) if member.value else "(auto)")
            for member in entity.members
        ]
        return _table(("Member", "Value"), rows)

    def _component(self, path: str, entity: ComponentEntity) -> str:
        lines = []
        if entity.props_type:
            lines.append(f"- **Props:** {self._type_link(path, entity.props_type, entity)}")
        else:
            lines.append("- **Props:** None")
        children = self._children.get(entity.id, [])
        if children:
            lines.append(
                "- **Renders:** " + ", ".join(self._entity_link(path, child) for child in children)
            )
        parents = [parent for parent, targets in self._children.items() if entity.id in targets]
        if parents:
            lines.append(
                "- **Rendered by:** " + ", ".join(self._entity_link(path, parent) for parent in parents)
            )
        hooks = [
            edge.target
            for edge in self.graph.edges
            if edge.source == entity.id
            and self._node_kind(edge.target) is EntityKind.STATEFUL_FUNCTION
        ]
        if hooks:
            lines.append("- **Uses hooks:** " + ", ".join(self._entity_link(path, hook) for hook in hooks))
        lines.append("")
        lines.append("**Usage example:**")
        lines.append("")
        props_hint = " {...props}" if entity.props_type else ""
        lines.append(f"```tsx\n<{entity.name}{props_hint} />\n```")
        return "\n".join(lines)

    def _hook(self, path: str, entity: StatefulFunctionEntity) -> List[str]:
        parts = [
            "\n".join(
                [
                    f"- **Async:** {_yes_no(entity.is_async)}",
                    f"- **Returns:** {self._type_link(path, entity.return_type, entity)}",
                ]
            )
        ]
        if entity.parameters:
            rows = [
                (
                    _code(param.name),
                    self._type_link(path, param.type_text, entity) if param.type_text else "unknown",
                    _yes_no(param.optional),
                    _code(param.default) if param.default else "",
                )
                for param in entity.parameters
            ]
            parts.append(_table(("Parameter", "Type", "Optional", "Default"), rows))
        else:
            parts.append("_No parameters._")
        users = [edge.source for edge in self.graph.edges if edge.target == entity.id]
        if users:
            parts.append("**Used by:** " + ", ".join(self._entity_link(path, user) for user in users))
        return parts

    def _endpoint(self, path: str, entity: EndpointEntity) -> str:
        lines = [
            f"- **Method:** `{entity.method}`",
            f"- **Path:** `{entity.route}`",
            f"- **Middleware:** {', '.join(entity.middleware) if entity.middleware else 'None detected'}",
            f"- **Authentication:** {'Detected' if entity.authentication else 'Not detected'}",
            f"- **Validation:** {'Detected' if entity.validation else 'Not detected'}",
        ]
        if entity.conflict:
            others = [
                other
                for other in self.model.of_kind(EntityKind.ENDPOINT)
                if isinstance(other, EndpointEntity)
                and other.id != entity.id
                and (other.method, other.route) == (entity.method, entity.route)
            ]
            links = ", ".join(self._entity_link(path, other.id, f"`{other.path}`") for other in others)
            lines.append(f"- **Conflict:** another handler serves the same method and path: {links}")
        lines.append(
            "- **Security:** "
            + self._keyed_link(path, SECURITY_DOC, "checklist", "security checklist")
        )
        return "\n".join(lines)

    # Fixed sections

    def _hierarchy(self, path: str, item: _Item) -> str:
        diagram = next((d for d in self.data.diagrams if d.name == "component-hierarchy"), None)
        lines: List[str] = []
        if diagram is not None:
            lines.extend([f"See the {self._diagram_link(path, diagram)} diagram.", ""])
        rendered = {child for targets in self._children.values() for child in targets}
        roots = [identifier for identifier in self._children if identifier not in rendered]
        visited: Dict[str, None] = {}

        def _visit(identifier: str, depth: int) -> None:
            lines.append(f"{'  ' * depth}- {self._entity_link(path, identifier)}")
            if identifier in visited:
                return
            visited[identifier] = None
            for child in self._children.get(identifier, ()):
                _visit(child, depth + 1)

        for root in roots:
            _visit(root, 0)
        for identifier in self._children:
            if identifier not in visited:
                _visit(identifier, 0)
        return "\n".join(lines).strip()

    def _endpoint_summary(self, path: str, item: _Item) -> str:
        rows = []
        for entity in sorted(
            (e for e in self.model.of_kind(EntityKind.ENDPOINT) if isinstance(e, EndpointEntity)),
            key=lambda e: (e.route, e.method, e.path),
        ):
            rows.append(
                (
                    f"`{entity.method}`",
                    self._entity_link(path, entity.id, entity.route),
                    _yes_no(entity.authentication),
                    _yes_no(entity.validation),
                    "Yes" if entity.conflict else "",
                )
            )
        return _table(("Method", "Path", "Authentication", "Validation", "Conflict"), rows)

    def _overview(self, path: str, item: _Item) -> str:
        counts = {kind: len(self.model.of_kind(kind)) for kind in EntityKind}
        return "\n".join(
            [
                f"The system design spans {_plural(len(self.model.snapshot.files), 'indexed file')} "
                f"with {_plural(len(self.graph.nodes), 'dependency node')} and "
                f"{_plural(len(self.graph.edges), 'import relationship')}.",
                "",
                f"- Components: {counts[EntityKind.COMPONENT]}",
                f"- Custom hooks: {counts[EntityKind.STATEFUL_FUNCTION]}",
                f"- Interfaces: {counts[EntityKind.INTERFACE]}",
                f"- Type aliases: {counts[EntityKind.TYPE_ALIAS]}",
                f"- Enums: {counts[EntityKind.ENUM]}",
                f"- API endpoints: {counts[EntityKind.ENDPOINT]}",
            ]
        )

    def _languages(self, path: str, item: _Item) -> str:
        shares = language_breakdown(self.model.snapshot)
        if not shares:
            return "No recognized source languages."
        rows = [
            (share.language, str(share.files), str(share.lines), f"{share.percentage}%")
            for share in shares
        ]
        return _table(("Language", "Files", "Lines", "Share"), rows)

    def _directories(self, path: str, item: _Item) -> str:
        summaries = directory_summaries(self.model.snapshot)
        if not summaries:
            return "All files live at the repository root."
        rows = [
            (_code(summary.path), str(summary.files), str(summary.subdirectories), summary.purpose)
            for summary in summaries
        ]
        return _table(("Directory", "Files", "Subdirectories", "Purpose"), rows)

    def _architecture_patterns(self, path: str, item: _Item) -> str:
        matches = [match for match in self.data.patterns if match.category == "architecture"]
        if not matches:
            return "No architectural design patterns were detected."
        rows = [
            (
                self._keyed_link(path, ARCHITECTURE_DOC, f"pattern:{match.key}", match.name),
                f"{match.confidence:.0%}",
                str(len(match.files)),
            )
            for match in matches
        ]
        return _table(("Pattern", "Confidence", "Files"), rows)

    def _pattern(self, match: PatternMatch) -> str:
        lines = [
            match.description,
            "",
            f"- **Confidence:** {match.confidence:.0%}",
            f"- **Implementation:** {match.implementation}",
            "- **Files:**",
        ]
        for file_path in match.files[:_MAX_LISTED_FILES]:
            lines.append(f"  - `{file_path}`")
        remaining = len(match.files) - _MAX_LISTED_FILES
        if remaining > 0:
            lines.append(f"  - and {remaining} more")
        return "\n".join(lines).strip()

    def _dependencies(self, path: str, item: _Item) -> str:
        by_category: Dict[NodeCategory, int] = {}
        for node in self.graph.nodes:
            by_category[node.category] = by_category.get(node.category, 0) + 1
        parts = []
        if by_category:
            parts.append(
                _table(
                    ("Category", "Nodes"),
                    [(category.value, str(count)) for category, count in by_category.items()],
                )
            )
        in_degree: Dict[str, int] = {}
        for edge in self.graph.edges:
            in_degree[edge.target] = in_degree.get(edge.target, 0) + 1
        ranked = sorted(in_degree.items(), key=lambda pair: -pair[1])[:10]
        if ranked:
            parts.append("Most depended-upon declarations:")
            parts.append(
                "\n".join(
                    f"- {self._entity_link(path, identifier)} ({_plural(count, 'dependent')})"
                    for identifier, count in ranked
                )
            )
        if not parts:
            return "No dependency relationships were found."
        return "\n\n".join(parts)

    def _diagram_links(self, path: str, item: _Item) -> str:
        if not self.data.diagrams:
            return "No diagrams were generated."
        return "\n".join(
            f"- {self._diagram_link(path, diagram)} (Mermaid, {diagram.shape.value})"
            for diagram in self.data.diagrams
        )

    def _security_patterns(self, path: str, item: _Item) -> str:
        matches = [match for match in self.data.patterns if match.category == "security"]
        if not matches:
            return "No security patterns were detected from file naming conventions."
        rows = [
            (
                self._keyed_link(path, SECURITY_DOC, f"pattern:{match.key}", match.name),
                f"{match.confidence:.0%}",
                str(len(match.files)),
            )
            for match in matches
        ]
        return _table(("Pattern", "Confidence", "Files"), rows)

    def _protected_endpoints(self, path: str, item: _Item) -> str:
        endpoints = [
            entity
            for entity in self.model.of_kind(EntityKind.ENDPOINT)
            if isinstance(entity, EndpointEntity)
        ]
        if not endpoints:
            return "No API endpoints were found."
        rows = [
            (
                self._entity_link(path, entity.id, f"{entity.method} {entity.route}"),
                _yes_no(entity.authentication),
                _yes_no(entity.validation),
                ", ".join(entity.middleware) or "None",
            )
            for entity in endpoints
        ]
        return _table(("Endpoint", "Authentication", "Validation", "Middleware"), rows)

    def _checklist(self, path: str, item: _Item) -> str:
        has_cors = any(
            "CORS" in entity.middleware
            for entity in self.model.of_kind(EntityKind.ENDPOINT)
            if isinstance(entity, EndpointEntity)
        )
        lines = []
        for entry, evidence in SECURITY_CHECKLIST:
            satisfied = has_cors if evidence == "cors" else evidence in self._detected
            lines.append(f"- [{'x' if satisfied else ' '}] {entry}")
        return "\n".join(lines)

    def _security_diagrams(self, path: str, item: _Item) -> str:
        wanted = [d for d in self.data.diagrams if d.name in ("security-architecture", "auth-flow")]
        if not wanted:
            return "No security diagrams were generated."
        return "\n".join(f"- {self._diagram_link(path, diagram)}" for diagram in wanted)

    def _statistics(self, path: str, item: _Item) -> str:
        snapshot = self.model.snapshot
        parsed = len(self.model.extractions)
        rows = [
            ("Files indexed", str(len(snapshot.files))),
            ("Files parsed", str(parsed)),
            ("Files skipped", str(len(self.model.skipped_files))),
            ("Interfaces", str(len(self.model.of_kind(EntityKind.INTERFACE)))),
            ("Type aliases", str(len(self.model.of_kind(EntityKind.TYPE_ALIAS)))),
            ("Enums", str(len(self.model.of_kind(EntityKind.ENUM)))),
            ("Components", str(len(self.model.of_kind(EntityKind.COMPONENT)))),
            ("Custom hooks", str(len(self.model.of_kind(EntityKind.STATEFUL_FUNCTION)))),
            ("API endpoints", str(len(self.model.of_kind(EntityKind.ENDPOINT)))),
            ("Dependency edges", str(len(self.graph.edges))),
            ("Source fingerprint", f"`{snapshot.fingerprint[:16]}`"),
        ]
        return _table(("Metric", "Value"), rows)

    def _documents(self, path: str, item: _Item) -> str:
        return "\n".join(
            f"- [{DOCUMENT_TITLES[document]}]({relative_link(path, document)})"
            for document in DOCUMENT_ORDER
            if document != path
        )

    def _detected_patterns(self, path: str, item: _Item) -> str:
        if not self.data.patterns:
            return "No architectural or security patterns were detected."
        rows = []
        for match in self.data.patterns:
            document = ARCHITECTURE_DOC if match.category == "architecture" else SECURITY_DOC
            rows.append(
                (
                    self._keyed_link(path, document, f"pattern:{match.key}", match.name),
                    match.category,
                    f"{match.confidence:.0%}",
                )
            )
        return _table(("Pattern", "Category", "Confidence"), rows)

    def _diagnostics(self, path: str, item: _Item) -> str:
        return (
            f"{_plural(len(self.model.skipped_files), 'file')} skipped, "
            f"{_plural(len(self.model.diagnostics), 'declaration diagnostic')}, "
            f"{_plural(len(self.data.unresolved), 'unresolved import')}."
        )

    def _diagnostic_list(self, diagnostics: Sequence[Diagnostic]) -> str:
        if not diagnostics:
            return "None."
        lines = []
        for diagnostic in diagnostics:
            message = escape_link_text(_cell(diagnostic.message))
            lines.append(f"- `{diagnostic.path}:{diagnostic.line}` {message}")
        return "\n".join(lines)

    def _unresolved(self, path: str, item: _Item) -> str:
        if not self.data.unresolved:
            return "None."
        return "\n".join(
            f"- `{entry.path}:{entry.line}` cannot resolve `{entry.specifier}`"
            for entry in self.data.unresolved
        )


__all__ = [
    "AssemblyError",
    "AssemblyInput",
    "Document",
    "DocumentAssembler",
    "ENTITY_DOCUMENTS",
    "Section",
    "outline_anchors",
    "verify_coverage",
]
