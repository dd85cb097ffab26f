"""Tests for link integrity and documentation completeness checks."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Dict

import pytest

from archdoc.models import Severity
from archdoc.validators import (
    CompletenessValidator,
    CoverageStatus,
    LinkIntegrityValidator,
    Requirement,
    ValidationContext,
    ValidationError,
    raise_for_report,
)
from archdoc.validators.completeness import DEFAULT_EXPECTED_DOCUMENTS, ExpectedDocumentsValidator
from archdoc.validators.links import BROKEN_LINK, UNKNOWN_ANCHOR


def _write_docs(root: Path, files: Dict[str, str]) -> Path:
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root


def test_link_validator_classifies_links(tmp_path: Path) -> None:
    docs = _write_docs(
        tmp_path / "docs",
        {
            "README.md": "\n".join(
                [
                    "# Index",
                    "- [Types](types.md#user)",
                    "- [Rooted](/types.md)",
                    "- [Missing](missing.md)",
                    "- [Stale anchor](types.md#nope)",
                    "- [Diagram](diagrams/data-flow.mmd)",
                    "- [Local](#index)",
                    "- [Site](https://example.com/docs)",
                ]
            ),
            "types.md": "# Types\n\n## User\n",
            "guides/intro.md": "# Intro\n\nBack to [types](../types.md#types).\n",
            "diagrams/data-flow.mmd": "flowchart LR\n",
        },
    )

    issues = LinkIntegrityValidator().validate(ValidationContext.load(docs))

    summary = [(issue.kind, issue.document, issue.line, issue.target) for issue in issues]
    assert summary == [
        (BROKEN_LINK, "README.md", 4, "missing.md"),
        (UNKNOWN_ANCHOR, "README.md", 5, "types.md#nope"),
    ]
    assert issues[0].severity is Severity.ERROR
    assert issues[1].severity is Severity.WARNING


def test_validation_context_requires_directory(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        ValidationContext.load(tmp_path / "absent")


def test_single_broken_link_fails_until_fixed(tmp_path: Path) -> None:
    docs = _write_docs(
        tmp_path / "docs",
        {
            "README.md": "# Index\n\nSee [types](types.md) and [hooks](hooks.md).\n",
            "types.md": "# Types\n",
        },
    )
    validator = CompletenessValidator(requirements=[], expected_documents=["README.md", "types.md"])

    report = validator.run(docs)

    assert not report.passed
    assert [(issue.document, issue.line, issue.target) for issue in report.broken_links] == [
        ("README.md", 3, "hooks.md")
    ]
    with pytest.raises(ValidationError) as excinfo:
        raise_for_report(report)
    assert "hooks.md" in str(excinfo.value)
    assert excinfo.value.report is report

    (docs / "hooks.md").write_text("# Hooks\n", encoding="utf-8")
    fixed = validator.run(docs)

    assert fixed.passed
    assert fixed.broken_links == []
    raise_for_report(fixed)


def test_missing_expected_documents_fail(tmp_path: Path) -> None:
    docs = _write_docs(tmp_path / "docs", {"README.md": "# Index\n"})

    report = CompletenessValidator(requirements=[]).run(docs)

    assert "types.md" in report.missing_documents
    assert "diagrams/architecture-overview.mmd" in report.missing_documents
    assert "README.md" not in report.missing_documents
    assert not report.passed


def test_expected_documents_default_when_empty() -> None:
    assert ExpectedDocumentsValidator([]).expected == list(DEFAULT_EXPECTED_DOCUMENTS)
    assert DEFAULT_EXPECTED_DOCUMENTS[0] == "README.md"


def test_report_counts_partial_and_missing_requirements(tmp_path: Path) -> None:
    docs = _write_docs(
        tmp_path / "docs",
        {
            "README.md": "# Index\n\nThe api endpoint handles each request.\n",
            "api.md": "# API\n\nEvery endpoint request returns a response.\n",
        },
    )
    requirements = [
        Requirement(id="api", description="Endpoints", keywords=("api", "endpoint", "request")),
        Requirement(id="sec", description="Security", keywords=("cors", "csrf")),
    ]

    report = CompletenessValidator(requirements, ["README.md"]).run(docs)

    statuses = {item.id: item.status for item in report.requirements}
    assert statuses == {"api": CoverageStatus.PARTIAL, "sec": CoverageStatus.MISSING}
    assert report.requirements[0].documents == ["README.md", "api.md"]
    assert not report.passed
    assert report.failures() == ["Requirement sec is not covered: Security"]

    path = report.write(tmp_path / "out" / "validation-report.json")
    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload["passed"] is False
    assert payload["summary"]["partial_requirements"] == 1
    assert payload["summary"]["missing_requirements"] == 1
    assert payload["requirements"][1]["status"] == "missing"
