"""Tests for requirement loading and keyword coverage."""

from __future__ import annotations

from pathlib import Path

import pytest

from archdoc.validators import CoverageStatus, RequirementsError, load_requirements
from archdoc.validators.requirements import (
    REQUIREMENT_KEYWORDS,
    coverage_status,
    default_requirements,
    keyword_ratio,
)


def test_default_requirements_cover_generated_documents_only() -> None:
    requirements = default_requirements()

    assert [item.id for item in requirements] == ["1", "2", "3", "4", "5", "6"]
    assert requirements[2].keywords == REQUIREMENT_KEYWORDS["3"]
    assert load_requirements(None) == requirements


def test_keyword_ratio_is_case_insensitive() -> None:
    keywords = ("data flow", "mermaid", "cors", "csrf")
    assert keyword_ratio("Data Flow diagrams in MERMAID", keywords) == 0.5
    assert keyword_ratio("anything", ()) == 0.0


@pytest.mark.parametrize(
    ("count", "status"),
    [
        (0, CoverageStatus.MISSING),
        (1, CoverageStatus.PARTIAL),
        (2, CoverageStatus.PARTIAL),
        (3, CoverageStatus.COMPLETE),
    ],
)
def test_coverage_status_thresholds(count: int, status: CoverageStatus) -> None:
    assert coverage_status(count) is status


def test_load_requirements_from_yaml(tmp_path: Path) -> None:
    path = tmp_path / "requirements.yml"
    path.write_text(
        """
requirements:
  - id: docs-1
    description: Explain the routing layer
    keywords: [Route, " Middleware ", ""]
  - id: "3"
    description: Types
""",
        encoding="utf-8",
    )

    requirements = load_requirements(path)

    assert [(item.id, item.description) for item in requirements] == [
        ("docs-1", "Explain the routing layer"),
        ("3", "Types"),
    ]
    assert requirements[0].keywords == ("route", "middleware")
    assert requirements[1].keywords == REQUIREMENT_KEYWORDS["3"]


def test_load_requirements_from_markdown(tmp_path: Path) -> None:
    path = tmp_path / "requirements.md"
    path.write_text(
        "\n".join(
            [
                "# Requirements",
                "",
                "### Requirement 2",
                "",
                "**User Story:** As a developer, I want endpoint docs.",
                "",
                "### Requirement 7",
                "",
                "Build and deployment notes.",
            ]
        ),
        encoding="utf-8",
    )

    requirements = load_requirements(path)

    assert [(item.id, item.description) for item in requirements] == [
        ("2", "As a developer, I want endpoint docs."),
        ("7", "Build and deployment notes."),
    ]
    assert requirements[1].keywords == REQUIREMENT_KEYWORDS["7"]


@pytest.mark.parametrize(
    "content",
    ["requirements: {}\n", "- a\n", "requirements:\n  - just-a-string\n", "requirements: [\n"],
)
def test_load_requirements_rejects_invalid_yaml(tmp_path: Path, content: str) -> None:
    path = tmp_path / "requirements.yaml"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(RequirementsError):
        load_requirements(path)


def test_load_requirements_reports_unreadable_file(tmp_path: Path) -> None:
    with pytest.raises(RequirementsError):
        load_requirements(tmp_path / "missing.yml")
