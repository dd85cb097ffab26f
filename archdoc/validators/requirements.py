"""Requirement loading and keyword-overlap coverage."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import yaml

from ..logging import get_logger
from .base import CoverageStatus, RequirementCoverage, ValidationContext

logger = get_logger("validators.requirements")

MATCH_THRESHOLD = 0.5
COMPLETE_DOCUMENTS = 3

REQUIREMENT_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "1": (
        "architecture",
        "system design",
        "component",
        "relationship",
        "dependency",
        "technology stack",
        "design pattern",
    ),
    "2": (
        "api",
        "endpoint",
        "rest",
        "http",
        "request",
        "response",
        "authentication",
        "error handling",
    ),
    "3": ("typescript", "interface", "type", "enum", "data model", "schema", "inheritance"),
    "4": (
        "data flow",
        "diagram",
        "mermaid",
        "state management",
        "api call",
        "authentication flow",
    ),
    "5": (
        "security",
        "configuration",
        "authentication",
        "cors",
        "middleware",
        "environment",
        "firebase",
    ),
    "6": ("component", "hook", "props", "state", "usage example", "hierarchy", "reusability"),
    "7": (
        "build",
        "deployment",
        "npm script",
        "ci/cd",
        "environment",
        "development workflow",
        "linting",
    ),
}

_DEFAULT_DESCRIPTIONS = (
    ("1", "Document the system architecture, component relationships and design patterns"),
    ("2", "Document every API endpoint with methods, authentication and error handling"),
    ("3", "Catalog the TypeScript interfaces, types and enums"),
    ("4", "Diagram data flow, state management and authentication flows"),
    ("5", "Describe security configuration, authentication and middleware"),
    ("6", "Describe components and hooks with props, state and usage examples"),
)

_REQUIREMENT_BLOCK = re.compile(
    r"^###\s+Requirement\s+(\S+)\s*\n(.*?)(?=^###\s+Requirement\s|\Z)",
    re.MULTILINE | re.DOTALL,
)
_USER_STORY = re.compile(r"\*\*User Story:\*\*\s*(.+)")


class RequirementsError(RuntimeError):
    """Raised when a requirements file cannot be read."""


@dataclass(frozen=True)
class Requirement:
    id: str
    description: str
    keywords: Tuple[str, ...] = ()


def default_requirements() -> List[Requirement]:
    """Built-in requirements for the generated document set.

    Requirement 7 (build and deployment) has keywords for Markdown
    requirement files but is not part of the default list, since the
    generator does not document build tooling.
    """
    return [
        Requirement(id=identifier, description=description, keywords=REQUIREMENT_KEYWORDS[identifier])
        for identifier, description in _DEFAULT_DESCRIPTIONS
    ]


def load_requirements(path: Optional[Path]) -> List[Requirement]:
    """Read requirements from YAML or Markdown, or return the defaults."""
    if path is None:
        return default_requirements()
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise RequirementsError(f"Failed to read requirements {path}: {exc}") from exc
    if path.suffix.lower() in {".yml", ".yaml"}:
        return _from_yaml(text, path)
    return _from_markdown(text)


def _from_yaml(text: str, path: Path) -> List[Requirement]:
    try:
        data = yaml.safe_load(text) or {}
    except yaml.YAMLError as exc:
        raise RequirementsError(f"Invalid YAML in {path}: {exc}") from exc
    entries = data.get("requirements") if isinstance(data, Mapping) else None
    if not isinstance(entries, list):
        raise RequirementsError(f"{path} must contain a 'requirements' list")

    requirements: List[Requirement] = []
    for position, entry in enumerate(entries, start=1):
        if not isinstance(entry, Mapping):
            raise RequirementsError(f"Requirement #{position} in {path} must be a mapping")
        identifier = str(entry.get("id", position))
        keywords = entry.get("keywords")
        if keywords is None:
            keywords = REQUIREMENT_KEYWORDS.get(identifier, ())
        if not isinstance(keywords, (list, tuple)):
            raise RequirementsError(f"Keywords for requirement {identifier} must be a list")
        requirements.append(
            Requirement(
                id=identifier,
                description=str(entry.get("description", "")).strip(),
                keywords=tuple(str(keyword).strip().lower() for keyword in keywords if str(keyword).strip()),
            )
        )
    return requirements


def _from_markdown(text: str) -> List[Requirement]:
    requirements = []
    for match in _REQUIREMENT_BLOCK.finditer(text):
        identifier, body = match.group(1), match.group(2)
        story = _USER_STORY.search(body)
        if story:
            description = story.group(1).strip()
        else:
            lines = body.strip().splitlines()
            description = lines[0] if lines else ""
        requirements.append(
            Requirement(
                id=identifier,
                description=description,
                keywords=REQUIREMENT_KEYWORDS.get(identifier, ()),
            )
        )
    if not requirements:
        logger.warning("No '### Requirement' sections found; nothing to check")
    return requirements


def keyword_ratio(content: str, keywords: Sequence[str]) -> float:
    """Fraction of `keywords` occurring case-insensitively in `content`."""
    if not keywords:
        return 0.0
    lowered = content.lower()
    found = sum(1 for keyword in keywords if keyword.lower() in lowered)
    return found / len(keywords)


def coverage_status(document_count: int) -> CoverageStatus:
    if document_count >= COMPLETE_DOCUMENTS:
        return CoverageStatus.COMPLETE
    if document_count > 0:
        return CoverageStatus.PARTIAL
    return CoverageStatus.MISSING


class RequirementCoverageChecker:
    """Maps requirements onto the documents whose keyword ratio exceeds the threshold."""

    def __init__(self, requirements: Sequence[Requirement]) -> None:
        self.requirements = list(requirements)

    def check(self, context: ValidationContext) -> List[RequirementCoverage]:
        results = []
        for requirement in self.requirements:
            documents = [
                name
                for name, content in context.documents.items()
                if keyword_ratio(content, requirement.keywords) > MATCH_THRESHOLD
            ]
            status = coverage_status(len(documents))
            if not requirement.keywords:
                logger.warning("Requirement %s has no keywords", requirement.id)
            logger.debug(
                "Requirement %s: %s (%d documents)", requirement.id, status.value, len(documents)
            )
            results.append(
                RequirementCoverage(
                    id=requirement.id,
                    description=requirement.description,
                    status=status,
                    documents=documents,
                )
            )
        return results


__all__ = [
    "COMPLETE_DOCUMENTS",
    "MATCH_THRESHOLD",
    "REQUIREMENT_KEYWORDS",
    "Requirement",
    "RequirementCoverageChecker",
    "RequirementsError",
    "coverage_status",
    "default_requirements",
    "keyword_ratio",
    "load_requirements",
]
