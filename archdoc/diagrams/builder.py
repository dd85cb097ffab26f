"""Pure construction of diagram models from the analysis results.

Ordering always follows first discovery while walking the path-ordered
model, so unchanged input produces identical diagrams.
"""

from __future__ import annotations

import re
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from ..models import (
    CodeModel,
    ComponentEntity,
    DependencyGraph,
    Diagram,
    DiagramEdge,
    DiagramNode,
    DiagramShape,
    EndpointEntity,
    EntityKind,
    InterfaceEntity,
    NodeCategory,
    PatternMatch,
)

CATEGORY_LABELS = {
    NodeCategory.COMPONENT: "Components",
    NodeCategory.STATEFUL_FUNCTION: "Hooks",
    NodeCategory.SERVICE: "Services",
    NodeCategory.UTILITY: "Utilities",
    NodeCategory.TYPE: "Types",
}

CATEGORY_SHAPES = {
    NodeCategory.COMPONENT: "round",
    NodeCategory.STATEFUL_FUNCTION: "stadium",
    NodeCategory.SERVICE: "subroutine",
    NodeCategory.UTILITY: "box",
    NodeCategory.TYPE: "hexagon",
}

# Emitted on every run; auth-flow only appears when authentication is detected.
CORE_DIAGRAMS: Tuple[str, ...] = (
    "architecture-overview",
    "component-hierarchy",
    "data-flow",
    "api-endpoints",
    "dependency-graph",
    "security-architecture",
    "type-relationships",
)

SECURITY_STAGES: Tuple[Tuple[str, Optional[str]], ...] = (
    ("User Input", None),
    ("Input Validation", "validation"),
    ("Input Sanitization", "sanitization"),
    ("Authentication", "authentication"),
    ("Authorization", "authorization"),
    ("Encryption", "encryption"),
    ("Business Logic", None),
)

_UNSAFE = re.compile(r"[^A-Za-z0-9_]")


def sanitize_id(value: str) -> str:
    cleaned = _UNSAFE.sub("_", value) or "node"
    if cleaned[0].isdigit():
        cleaned = f"n_{cleaned}"
    return cleaned


class _IdAllocator:
    """Maps arbitrary keys to unique diagram-safe ids."""

    def __init__(self) -> None:
        self._by_key: Dict[str, str] = {}
        self._taken: Set[str] = set()

    def __call__(self, key: str) -> str:
        existing = self._by_key.get(key)
        if existing is not None:
            return existing
        base = sanitize_id(key)
        candidate = base
        suffix = 1
        while candidate in self._taken:
            suffix += 1
            candidate = f"{base}_{suffix}"
        self._taken.add(candidate)
        self._by_key[key] = candidate
        return candidate


def _unique_edges(edges: Iterable[DiagramEdge]) -> Tuple[DiagramEdge, ...]:
    seen: Dict[Tuple[str, str, Optional[str]], DiagramEdge] = {}
    for edge in edges:
        seen.setdefault((edge.source, edge.target, edge.label), edge)
    return tuple(seen.values())


def architecture_overview(graph: DependencyGraph, patterns: Sequence[PatternMatch]) -> Diagram:
    ids = _IdAllocator()
    categories: Dict[NodeCategory, None] = {}
    for node in graph.nodes:
        categories.setdefault(node.category, None)

    category_of = {node.id: node.category for node in graph.nodes}
    edges: List[DiagramEdge] = []
    for edge in graph.edges:
        source = category_of[edge.source]
        target = category_of[edge.target]
        if source != target:
            edges.append(DiagramEdge(ids(source.value), ids(target.value), "uses"))

    nodes = [
        DiagramNode(
            id=ids(category.value),
            label=CATEGORY_LABELS[category],
            group="layers",
            shape=CATEGORY_SHAPES[category],
        )
        for category in categories
    ]
    for match in patterns:
        if match.category != "architecture":
            continue
        nodes.append(
            DiagramNode(
                id=ids(f"pattern_{match.key}"),
                label=f"{match.name} ({match.confidence:.0%})",
                group="patterns",
            )
        )
    return Diagram(
        name="architecture-overview",
        title="Architecture Overview",
        shape=DiagramShape.GRAPH,
        nodes=tuple(nodes),
        edges=_unique_edges(edges),
    )


def dependency_graph(graph: DependencyGraph, max_nodes: int = 30) -> Diagram:
    ids = _IdAllocator()
    selected = graph.nodes[:max_nodes]
    included = {node.id for node in selected}
    nodes = tuple(
        DiagramNode(
            id=ids(node.id),
            label=node.name,
            group=node.category.value,
            shape=CATEGORY_SHAPES[node.category],
        )
        for node in selected
    )
    edges = [
        DiagramEdge(ids(edge.source), ids(edge.target))
        for edge in graph.edges
        if edge.source in included and edge.target in included
    ]
    return Diagram(
        name="dependency-graph",
        title="Dependency Graph",
        shape=DiagramShape.GRAPH,
        nodes=nodes,
        edges=_unique_edges(edges),
    )


def type_relationships(model: CodeModel) -> Diagram:
    ids = _IdAllocator()
    nodes: Dict[str, DiagramNode] = {}
    edges: List[DiagramEdge] = []
    interfaces = [
        entity for entity in model.of_kind(EntityKind.INTERFACE) if isinstance(entity, InterfaceEntity)
    ]
    for entity in interfaces:
        nodes.setdefault(
            entity.id, DiagramNode(id=ids(entity.id), label=entity.name, group="interface")
        )
    for entity in interfaces:
        for base in entity.extends:
            target = model.resolve_type(base, entity.path)
            key = target.id if target is not None else f"external:{base}"
            if key not in nodes:
                nodes[key] = DiagramNode(
                    id=ids(key),
                    label=base,
                    group="interface" if target is not None else "external",
                )
            edges.append(DiagramEdge(ids(entity.id), ids(key), "extends"))
    return Diagram(
        name="type-relationships",
        title="Type Relationships",
        shape=DiagramShape.GRAPH,
        nodes=tuple(nodes.values()),
        edges=_unique_edges(edges),
    )


def api_endpoints(model: CodeModel) -> Diagram:
    ids = _IdAllocator()
    nodes: Dict[str, DiagramNode] = {}
    edges: List[DiagramEdge] = []
    endpoints = [
        entity for entity in model.of_kind(EntityKind.ENDPOINT) if isinstance(entity, EndpointEntity)
    ]
    for entity in endpoints:
        segments = [segment for segment in entity.route.split("/") if segment]
        if segments and segments[0] == "api" and len(segments) > 1:
            group = segments[1]
        else:
            group = segments[0] if segments else "root"
        group_key = f"group:{group}"
        nodes.setdefault(group_key, DiagramNode(id=ids(group_key), label=f"/{group}", group="group"))
        label = f"{entity.method} {entity.route}"
        if entity.conflict:
            label += " (conflict)"
        nodes.setdefault(entity.id, DiagramNode(id=ids(entity.id), label=label, group="endpoint"))
        edges.append(DiagramEdge(ids(group_key), ids(entity.id)))
        if entity.authentication:
            nodes.setdefault("auth", DiagramNode(id=ids("auth"), label="Authentication", group="security"))
            edges.append(DiagramEdge(ids(entity.id), ids("auth"), "auth"))
        if entity.validation:
            nodes.setdefault(
                "validation", DiagramNode(id=ids("validation"), label="Validation", group="security")
            )
            edges.append(DiagramEdge(ids(entity.id), ids("validation"), "validates"))
    return Diagram(
        name="api-endpoints",
        title="API Endpoints",
        shape=DiagramShape.GRAPH,
        nodes=tuple(nodes.values()),
        edges=_unique_edges(edges),
    )


def component_children(model: CodeModel, graph: DependencyGraph) -> Dict[str, List[str]]:
    """Map each component id to the component ids its view syntax renders."""
    components = [
        entity for entity in model.of_kind(EntityKind.COMPONENT) if isinstance(entity, ComponentEntity)
    ]
    by_name: Dict[str, List[ComponentEntity]] = {}
    for entity in components:
        by_name.setdefault(entity.name, []).append(entity)

    children: Dict[str, List[str]] = {}
    for entity in components:
        resolved: List[str] = []
        imported = graph.imported_files(entity.path)
        for name in entity.rendered:
            candidates = by_name.get(name.split(".")[0], [])
            if not candidates:
                continue
            chosen = next((item for item in candidates if item.path == entity.path), None)
            if chosen is None:
                chosen = next((item for item in candidates if item.path in imported), None)
            if chosen is None:
                chosen = candidates[0]
            if chosen.id != entity.id and chosen.id not in resolved:
                resolved.append(chosen.id)
        children[entity.id] = resolved
    return children


def component_hierarchy(model: CodeModel, graph: DependencyGraph) -> Diagram:
    ids = _IdAllocator()
    children = component_children(model, graph)
    rendered_somewhere = {child for targets in children.values() for child in targets}
    order = list(children)
    roots = [identifier for identifier in order if identifier not in rendered_somewhere]

    nodes: Dict[str, DiagramNode] = {}
    edges: List[DiagramEdge] = []
    expanded: Dict[str, None] = {}

    def _node(identifier: str, group: str) -> None:
        entity = model.get(identifier)
        label = entity.name if entity is not None else identifier
        nodes.setdefault(identifier, DiagramNode(id=ids(identifier), label=label, group=group))

    def _expand(start: str) -> None:
        stack = [start]
        while stack:
            current = stack.pop()
            if current in expanded:
                continue
            expanded[current] = None
            for child in children.get(current, ()):
                _node(child, "component")
                edges.append(DiagramEdge(ids(current), ids(child)))
            stack.extend(reversed([child for child in children.get(current, ()) if child not in expanded]))

    for root in roots:
        _node(root, "root")
        _expand(root)
    # Components only reachable through a cycle.
    for identifier in order:
        if identifier not in expanded:
            _node(identifier, "component")
            _expand(identifier)

    return Diagram(
        name="component-hierarchy",
        title="Component Hierarchy",
        shape=DiagramShape.HIERARCHY,
        nodes=tuple(nodes.values()),
        edges=_unique_edges(edges),
    )


def _detected(patterns: Sequence[PatternMatch]) -> Dict[str, PatternMatch]:
    return {match.key: match for match in patterns}


def security_architecture(patterns: Sequence[PatternMatch]) -> Diagram:
    detected = _detected(patterns)
    steps = tuple(label for label, key in SECURITY_STAGES if key is None or key in detected)
    return Diagram(
        name="security-architecture",
        title="Security Architecture",
        shape=DiagramShape.LINEAR_FLOW,
        steps=steps,
    )


def data_flow(model: CodeModel, patterns: Sequence[PatternMatch]) -> Diagram:
    detected = _detected(patterns)
    steps = ["User Interaction", "React Component"]
    if model.of_kind(EntityKind.STATEFUL_FUNCTION):
        steps.append("Custom Hook")
    if model.of_kind(EntityKind.ENDPOINT):
        steps.append("API Route")
    if "validation" in detected:
        steps.append("Input Validation")
    if "sanitization" in detected:
        steps.append("Security Checks")
    steps.extend(["Business Logic", "Response", "UI Update"])
    return Diagram(
        name="data-flow",
        title="Data Flow",
        shape=DiagramShape.LINEAR_FLOW,
        steps=tuple(steps),
    )


def auth_flow(patterns: Sequence[PatternMatch]) -> Optional[Diagram]:
    detected = _detected(patterns)
    if "authentication" not in detected:
        return None
    steps = ["User", "Sign-in Request", "Authentication Provider", "Session Token"]
    if "authorization" in detected:
        steps.append("Authorization Check")
    steps.append("Protected Resource")
    return Diagram(
        name="auth-flow",
        title="Authentication Flow",
        shape=DiagramShape.LINEAR_FLOW,
        steps=tuple(steps),
    )


class DiagramBuilder:
    """Builds the full diagram set in a fixed order."""

    def __init__(self, max_nodes: int = 30) -> None:
        self._max_nodes = max_nodes

    def build(
        self,
        model: CodeModel,
        graph: DependencyGraph,
        patterns: Sequence[PatternMatch],
    ) -> List[Diagram]:
        diagrams: List[Optional[Diagram]] = [
            architecture_overview(graph, patterns),
            component_hierarchy(model, graph),
            data_flow(model, patterns),
            auth_flow(patterns),
            api_endpoints(model),
            dependency_graph(graph, self._max_nodes),
            security_architecture(patterns),
            type_relationships(model),
        ]
        return [diagram for diagram in diagrams if diagram is not None]


__all__ = [
    "CORE_DIAGRAMS",
    "DiagramBuilder",
    "api_endpoints",
    "architecture_overview",
    "auth_flow",
    "component_children",
    "component_hierarchy",
    "data_flow",
    "dependency_graph",
    "sanitize_id",
    "security_architecture",
    "type_relationships",
]
