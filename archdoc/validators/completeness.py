"""Documentation completeness: requirement coverage, link integrity, expected files."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Sequence

from ..assembly.constants import DIAGRAM_DIR, DOCUMENT_ORDER, SUMMARY_DOC
from ..diagrams.builder import CORE_DIAGRAMS
from ..logging import get_logger
from ..models import Severity
from .base import CoverageStatus, ValidationContext, ValidationError, ValidationIssue, ValidationReport
from .links import LinkIntegrityValidator
from .requirements import Requirement, RequirementCoverageChecker, default_requirements

logger = get_logger("validators.completeness")

REPORT_FILENAME = "validation-report.json"

# Every run emits the summary, the six documents and the core diagrams.
DEFAULT_EXPECTED_DOCUMENTS = (
    SUMMARY_DOC,
    *(name for name in DOCUMENT_ORDER if name != SUMMARY_DOC),
    *(f"{DIAGRAM_DIR}/{name}.mmd" for name in CORE_DIAGRAMS),
)


class ExpectedDocumentsValidator:
    """Reports expected documents missing from the docs directory."""

    name = "expected-documents"

    def __init__(self, expected: Sequence[str] = DEFAULT_EXPECTED_DOCUMENTS) -> None:
        self.expected = list(expected) or list(DEFAULT_EXPECTED_DOCUMENTS)

    def validate(self, context: ValidationContext) -> List[ValidationIssue]:
        issues = []
        for name in self.expected:
            if not (context.docs_dir / name).is_file():
                logger.error("Expected document missing: %s", name)
                issues.append(
                    ValidationIssue(kind="missing-document", document=name, detail="Expected document not found")
                )
        return issues


class CompletenessValidator:
    """Runs every documentation check and folds the results into one report."""

    def __init__(
        self,
        requirements: Optional[Sequence[Requirement]] = None,
        expected_documents: Sequence[str] = (),
    ) -> None:
        self.requirements = list(requirements) if requirements is not None else default_requirements()
        self.links = LinkIntegrityValidator()
        self.expected = ExpectedDocumentsValidator(expected_documents)

    def run(self, docs_dir: Path) -> ValidationReport:
        context = ValidationContext.load(docs_dir)
        logger.info("Validating %d Markdown documents in %s", len(context.documents), docs_dir)

        report = ValidationReport(docs_dir=str(docs_dir))
        report.requirements = RequirementCoverageChecker(self.requirements).check(context)
        for issue in self.links.validate(context):
            if issue.severity is Severity.ERROR:
                report.broken_links.append(issue)
            else:
                report.anchor_warnings.append(issue)
        report.missing_documents = [issue.document for issue in self.expected.validate(context)]

        missing = sum(1 for item in report.requirements if item.status is CoverageStatus.MISSING)
        logger.info(
            "Requirements: %d total, %d missing; %d broken links, %d anchor warnings, %d missing documents",
            len(report.requirements),
            missing,
            len(report.broken_links),
            len(report.anchor_warnings),
            len(report.missing_documents),
        )
        return report


def raise_for_report(report: ValidationReport) -> None:
    """Raise `ValidationError` when the report holds hard failures."""
    if report.passed:
        return
    failures = report.failures()
    raise ValidationError(
        f"Documentation validation failed with {len(failures)} problem(s):\n"
        + "\n".join(f"  - {message}" for message in failures),
        report,
    )


__all__ = [
    "CompletenessValidator",
    "DEFAULT_EXPECTED_DOCUMENTS",
    "ExpectedDocumentsValidator",
    "REPORT_FILENAME",
    "raise_for_report",
]
