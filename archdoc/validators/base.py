"""Core validation data structures and helpers."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Sequence

from ..models import Severity


class CoverageStatus(str, Enum):
    COMPLETE = "complete"
    PARTIAL = "partial"
    MISSING = "missing"


@dataclass
class ValidationIssue:
    """Represents a single broken link, anchor warning, or missing document."""

    kind: str
    document: str
    detail: str
    line: Optional[int] = None
    target: Optional[str] = None
    severity: Severity = Severity.ERROR

    def to_dict(self) -> Dict[str, object]:
        return {
            "kind": self.kind,
            "document": self.document,
            "line": self.line,
            "target": self.target,
            "severity": self.severity.value,
            "detail": self.detail,
        }


@dataclass
class RequirementCoverage:
    """How well one requirement is covered by the documents."""

    id: str
    description: str
    status: CoverageStatus
    documents: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "description": self.description,
            "status": self.status.value,
            "documents": list(self.documents),
        }


@dataclass
class ValidationReport:
    """Machine-readable outcome of `archdoc validate`."""

    docs_dir: str
    requirements: List[RequirementCoverage] = field(default_factory=list)
    broken_links: List[ValidationIssue] = field(default_factory=list)
    anchor_warnings: List[ValidationIssue] = field(default_factory=list)
    missing_documents: List[str] = field(default_factory=list)

    def _count(self, status: CoverageStatus) -> int:
        return sum(1 for item in self.requirements if item.status is status)

    @property
    def passed(self) -> bool:
        return (
            not self.broken_links
            and not self.missing_documents
            and self._count(CoverageStatus.MISSING) == 0
        )

    def failures(self) -> List[str]:
        """One-line descriptions of everything that fails validation."""
        messages = [
            f"Broken link in {issue.document}:{issue.line}: {issue.target} ({issue.detail})"
            for issue in self.broken_links
        ]
        messages.extend(f"Missing document: {name}" for name in self.missing_documents)
        messages.extend(
            f"Requirement {item.id} is not covered: {item.description}"
            for item in self.requirements
            if item.status is CoverageStatus.MISSING
        )
        return messages

    def to_dict(self) -> Dict[str, object]:
        return {
            "docs_dir": self.docs_dir,
            "passed": self.passed,
            "summary": {
                "total_requirements": len(self.requirements),
                "complete_requirements": self._count(CoverageStatus.COMPLETE),
                "partial_requirements": self._count(CoverageStatus.PARTIAL),
                "missing_requirements": self._count(CoverageStatus.MISSING),
                "broken_links": len(self.broken_links),
                "anchor_warnings": len(self.anchor_warnings),
                "missing_documents": len(self.missing_documents),
            },
            "requirements": [item.to_dict() for item in self.requirements],
            "broken_links": [issue.to_dict() for issue in self.broken_links],
            "anchor_warnings": [issue.to_dict() for issue in self.anchor_warnings],
            "missing_documents": list(self.missing_documents),
        }

    def write(self, path: Path) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.to_dict(), indent=2) + "\n", encoding="utf-8")
        return path


class ValidationError(RuntimeError):
    """Raised when validation finds broken links, missing documents or requirements."""

    def __init__(self, message: str, report: ValidationReport) -> None:
        super().__init__(message)
        self.report = report


@dataclass
class ValidationContext:
    """The Markdown documents under a docs directory, keyed by POSIX relative path."""

    docs_dir: Path
    documents: Dict[str, str]

    @classmethod
    def load(cls, docs_dir: Path) -> "ValidationContext":
        if not docs_dir.is_dir():
            raise FileNotFoundError(f"Documentation directory not found: {docs_dir}")
        documents: Dict[str, str] = {}
        for path in sorted(docs_dir.rglob("*.md")):
            if not path.is_file():
                continue
            relative = path.relative_to(docs_dir).as_posix()
            documents[relative] = path.read_text(encoding="utf-8", errors="replace")
        return cls(docs_dir=docs_dir, documents=documents)


class Validator(Protocol):
    """Protocol implemented by documentation issue validators."""

    name: str

    def validate(self, context: ValidationContext) -> Sequence[ValidationIssue]:
        """Run validation and return any issues."""


__all__ = [
    "CoverageStatus",
    "RequirementCoverage",
    "ValidationContext",
    "ValidationError",
    "ValidationIssue",
    "ValidationReport",
    "Validator",
]
