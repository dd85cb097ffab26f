"""Diagram construction and Mermaid rendering."""

from __future__ import annotations

from .builder import DiagramBuilder, sanitize_id
from .mermaid import MermaidSerializer

__all__ = ["DiagramBuilder", "MermaidSerializer", "sanitize_id"]
