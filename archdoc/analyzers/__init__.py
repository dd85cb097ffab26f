"""Analyzers over the extracted code model and rule discovery utilities."""

from __future__ import annotations

from importlib import metadata
from typing import Iterable, List, Sequence, Set

from .base import FileSetView, Matched, NOT_MATCHED, NotMatched, PatternRule
from .patterns import BUILTIN_RULES, PatternDetector

_ENTRY_POINT_GROUP = "archdoc.patterns"


def discover_rules(enabled: Sequence[str] | None = None) -> List[PatternRule]:
    """Return pattern rules, honoring optional enabled keys.

    Built-in rules come first, followed by rules registered under the
    ``archdoc.patterns`` entry-point group. An empty or missing `enabled`
    list selects every rule.
    """

    enabled_set: Set[str] | None = None
    if enabled:
        enabled_set = {name.lower() for name in enabled}

    rules: List[PatternRule] = []
    seen: Set[str] = set()

    def _add(rule: PatternRule) -> None:
        key = rule.key.lower()
        if enabled_set is not None and key not in enabled_set:
            return
        if key in seen:
            return
        rules.append(rule)
        seen.add(key)
        if enabled_set is not None:
            enabled_set.discard(key)

    for rule in BUILTIN_RULES:
        _add(rule)

    for entry in _iter_entry_points():
        try:
            loaded = entry.load()
        except Exception as exc:  # pragma: no cover - defensive guard
            raise RuntimeError(f"Failed to load pattern entry point '{entry.name}': {exc}") from exc
        _add(_coerce_rule(entry.name, loaded))

    if enabled_set:
        missing = ", ".join(sorted(enabled_set))
        raise ValueError(f"Unknown pattern rules requested: {missing}")

    return rules


def _coerce_rule(name: str, obj: object) -> PatternRule:
    if isinstance(obj, PatternRule):
        return obj
    if callable(obj):
        instance = obj()
        if isinstance(instance, PatternRule):
            return instance
    raise TypeError(f"Pattern entry point '{name}' must be a PatternRule or a factory returning one")


def _iter_entry_points() -> Iterable[metadata.EntryPoint]:
    return metadata.entry_points().select(group=_ENTRY_POINT_GROUP)


__all__ = [
    "FileSetView",
    "Matched",
    "NOT_MATCHED",
    "NotMatched",
    "PatternDetector",
    "PatternRule",
    "discover_rules",
]
