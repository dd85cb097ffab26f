"""Mermaid serialization of diagram models."""

from __future__ import annotations

from typing import List, Optional

from ..models import Diagram, DiagramNode, DiagramShape

_SHAPES = {
    "box": ('["', '"]'),
    "round": ('("', '")'),
    "stadium": ('(["', '"])'),
    "subroutine": ('[["', '"]]'),
    "cylinder": ('[("', '")]'),
    "hexagon": ('{{"', '"}}'),
    "rhombus": ('{"', '"}'),
}


_GROUP_STYLES = {
    "component": "fill:#e1f5fe,stroke:#0277bd",
    "root": "fill:#b3e5fc,stroke:#01579b",
    "stateful-function": "fill:#f3e5f5,stroke:#6a1b9a",
    "service": "fill:#fff3e0,stroke:#e65100",
    "utility": "fill:#f1f8e9,stroke:#33691e",
    "type": "fill:#fffde7,stroke:#f57f17",
    "layers": "fill:#e8eaf6,stroke:#283593",
    "patterns": "fill:#fce4ec,stroke:#ad1457,stroke-dasharray:4",
    "security": "fill:#ffebee,stroke:#c62828",
    "external": "fill:#eeeeee,stroke:#757575,stroke-dasharray:4",
}


def escape_label(label: str) -> str:
    return label.replace('"', "#quot;").replace("\n", " ")


class MermaidSerializer:
    """Renders diagrams as Mermaid flowchart source."""

    def __init__(self, direction: str = "TB", theme: Optional[str] = None) -> None:
        self._direction = direction
        self._theme = theme

    def render(self, diagram: Diagram) -> str:
        lines: List[str] = ["---", f"title: {diagram.title}", "---"]
        if self._theme:
            lines.append(f"%%{{init: {{'theme': '{self._theme}'}}}}%%")
        if diagram.shape is DiagramShape.LINEAR_FLOW:
            lines.extend(self._linear(diagram))
        else:
            lines.extend(self._graph(diagram))
        return "\n".join(lines) + "\n"

    def _graph(self, diagram: Diagram) -> List[str]:
        lines = [f"graph {self._direction}"]
        if not diagram.nodes:
            lines.append(f'    empty["No {diagram.title.lower()} detected"]')
            return lines

        groups: dict = {}
        for node in diagram.nodes:
            groups.setdefault(node.group, []).append(node)

        for node in diagram.nodes:
            lines.append(f"    {_node(node)}")
        for edge in diagram.edges:
            if edge.label:
                lines.append(f"    {edge.source} -->|{escape_label(edge.label)}| {edge.target}")
            else:
                lines.append(f"    {edge.source} --> {edge.target}")
        for group, members in groups.items():
            if group is None or group not in _GROUP_STYLES:
                continue
            class_name = _class_name(group)
            lines.append(f"    classDef {class_name} {_GROUP_STYLES[group]}")
            lines.append(f"    class {','.join(member.id for member in members)} {class_name}")
        return lines

    def _linear(self, diagram: Diagram) -> List[str]:
        lines = ["flowchart LR"]
        for index, step in enumerate(diagram.steps):
            lines.append(f'    step{index}["{escape_label(step)}"]')
        for index in range(len(diagram.steps) - 1):
            lines.append(f"    step{index} --> step{index + 1}")
        return lines


def _node(node: DiagramNode) -> str:
    opening, closing = _SHAPES.get(node.shape, _SHAPES["box"])
    return f"{node.id}{opening}{escape_label(node.label)}{closing}"


def _class_name(group: str) -> str:
    return "".join(char if char.isalnum() else "_" for char in group)


__all__ = ["MermaidSerializer", "escape_label"]
