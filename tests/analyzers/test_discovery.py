"""Tests for pattern rule discovery utilities."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from archdoc.analyzers import NOT_MATCHED, PatternRule, discover_rules
from archdoc.analyzers.patterns import BUILTIN_RULES


def _dummy_rule() -> PatternRule:
    return PatternRule(
        key="dummy",
        name="Dummy Pattern",
        category="architecture",
        description="Test rule used for plugin discovery",
        implementation="Never matches",
        detect=lambda view: NOT_MATCHED,
    )


class DummyEntryPoints(list):
    def select(self, **kwargs):
        if kwargs.get("group") == "archdoc.patterns":
            return self
        return []


def test_discover_rules_returns_builtin_rules() -> None:
    rules = discover_rules()
    keys = [rule.key for rule in rules]

    assert keys[: len(BUILTIN_RULES)] == [rule.key for rule in BUILTIN_RULES]
    assert "mvc" in keys
    assert "encryption" in keys


def test_discover_rules_respects_enabled_filter() -> None:
    rules = discover_rules(["Provider", "custom-hooks"])

    assert [rule.key for rule in rules] == ["provider", "custom-hooks"]


def test_discover_rules_loads_entry_points(monkeypatch) -> None:
    dummy_entry = SimpleNamespace(name="dummy", load=lambda: _dummy_rule)
    monkeypatch.setattr(
        "archdoc.analyzers.metadata.entry_points",
        lambda: DummyEntryPoints([dummy_entry]),
        raising=False,
    )

    rules = discover_rules(["dummy"])

    assert len(rules) == 1
    assert rules[0].name == "Dummy Pattern"


def test_discover_rules_rejects_invalid_entry_point(monkeypatch) -> None:
    broken_entry = SimpleNamespace(name="broken", load=lambda: "not a rule")
    monkeypatch.setattr(
        "archdoc.analyzers.metadata.entry_points",
        lambda: DummyEntryPoints([broken_entry]),
        raising=False,
    )

    with pytest.raises(TypeError):
        discover_rules()


def test_discover_rules_raises_for_unknown_name() -> None:
    with pytest.raises(ValueError) as excinfo:
        discover_rules(["does-not-exist"])
    assert "does-not-exist" in str(excinfo.value)
