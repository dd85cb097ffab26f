"""Validation package for generated documentation."""

from .base import (
    CoverageStatus,
    RequirementCoverage,
    ValidationContext,
    ValidationError,
    ValidationIssue,
    ValidationReport,
    Validator,
)
from .completeness import (
    DEFAULT_EXPECTED_DOCUMENTS,
    REPORT_FILENAME,
    CompletenessValidator,
    ExpectedDocumentsValidator,
    raise_for_report,
)
from .links import LinkIntegrityValidator
from .requirements import Requirement, RequirementsError, load_requirements

__all__ = [
    "CompletenessValidator",
    "CoverageStatus",
    "DEFAULT_EXPECTED_DOCUMENTS",
    "ExpectedDocumentsValidator",
    "LinkIntegrityValidator",
    "REPORT_FILENAME",
    "Requirement",
    "RequirementCoverage",
    "RequirementsError",
    "ValidationContext",
    "ValidationError",
    "ValidationIssue",
    "ValidationReport",
    "Validator",
    "load_requirements",
    "raise_for_report",
]
