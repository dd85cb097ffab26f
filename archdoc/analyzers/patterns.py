"""Architectural and security pattern rules over the indexed file set.

Every rule is a pure function of a `FileSetView`. Security rules look at
file names only and never open the files.
"""

from __future__ import annotations

import re
from pathlib import PurePosixPath
from typing import Iterable, List, Sequence, Tuple

from ..logging import get_logger
from ..models import PatternMatch
from .base import (
    ARCHITECTURE,
    NOT_MATCHED,
    SECURITY,
    Detection,
    FileSetView,
    Matched,
    PatternRule,
)

_TYPES_DIRS = ("types", "models")
_VIEW_DIRS = ("components", "pages")
_SERVICE_DIRS = ("services", "api")

_HOOK_FILE = re.compile(r"^use([A-Z0-9]|-)")

logger = get_logger("patterns")


def _basename(path: str) -> str:
    return PurePosixPath(path).name


def _has_suffix(path: str, suffixes: Sequence[str]) -> bool:
    return path.lower().endswith(tuple(suffixes))


def _collect(
    view: FileSetView, keywords: Sequence[str], suffixes: Sequence[str]
) -> Tuple[str, ...]:
    """Files whose basename contains any keyword, case-insensitively."""
    return tuple(
        path
        for path in view.paths
        if _has_suffix(path, suffixes) and any(word in _basename(path).lower() for word in keywords)
    )


def _existence(files: Tuple[str, ...], confidence: float) -> Detection:
    return Matched(confidence, files) if files else NOT_MATCHED


def detect_mvc(view: FileSetView) -> Detection:
    """A directory holding type, view and service subdirectories at once."""
    for directory, children in view.child_directories.items():
        lowered = {child.lower(): child for child in children}
        picked = []
        for group in (_TYPES_DIRS, _VIEW_DIRS, _SERVICE_DIRS):
            present = [lowered[name] for name in group if name in lowered]
            if not present:
                break
            picked.extend(present)
        else:
            files: List[str] = []
            for child in picked:
                files.extend(view.files_under(f"{directory}/{child}" if directory else child))
            return Matched(0.8, tuple(sorted(files)))
    return NOT_MATCHED


def detect_repository(view: FileSetView) -> Detection:
    return _existence(_collect(view, ("repository",), (".ts", ".js")), 0.9)


def detect_provider(view: FileSetView) -> Detection:
    return _existence(_collect(view, ("provider", "context"), (".ts", ".tsx")), 0.9)


def detect_hoc(view: FileSetView) -> Detection:
    files = tuple(
        path
        for path in view.paths
        if _has_suffix(path, (".ts", ".tsx"))
        and (_basename(path).lower().startswith("with") or "hoc" in _basename(path).lower())
    )
    return _existence(files, 0.8)


def detect_custom_hooks(view: FileSetView) -> Detection:
    files = tuple(
        path
        for path in view.paths
        if _has_suffix(path, (".ts", ".tsx")) and _HOOK_FILE.match(_basename(path))
    )
    return _existence(files, 0.95)


def detect_validation(view: FileSetView) -> Detection:
    return _existence(_collect(view, ("validation", "validator"), (".ts", ".js")), 0.85)


def detect_sanitization(view: FileSetView) -> Detection:
    return _existence(_collect(view, ("security", "sanitiz"), (".ts", ".js")), 0.8)


def detect_authentication(view: FileSetView) -> Detection:
    return _existence(_collect(view, ("auth", "firebase"), (".ts", ".tsx")), 0.85)


def detect_authorization(view: FileSetView) -> Detection:
    return _existence(_collect(view, ("auth", "permission", "role"), (".ts", ".tsx")), 0.7)


def detect_encryption(view: FileSetView) -> Detection:
    return _existence(_collect(view, ("crypto", "encrypt"), (".ts", ".js")), 0.8)


BUILTIN_RULES: Tuple[PatternRule, ...] = (
    PatternRule(
        key="mvc",
        name="Model-View-Controller (MVC)",
        category=ARCHITECTURE,
        description="Separation of concerns with models, views, and controllers",
        implementation="Types define models, components handle views, services act as controllers",
        detect=detect_mvc,
    ),
    PatternRule(
        key="repository",
        name="Repository Pattern",
        category=ARCHITECTURE,
        description="Data access abstraction layer",
        implementation="Repository classes encapsulate data access logic",
        detect=detect_repository,
    ),
    PatternRule(
        key="provider",
        name="Provider Pattern",
        category=ARCHITECTURE,
        description="Context providers for state management",
        implementation="React Context API with provider components",
        detect=detect_provider,
    ),
    PatternRule(
        key="hoc",
        name="Higher-Order Component (HOC)",
        category=ARCHITECTURE,
        description="Component composition and reusability",
        implementation="Functions that take components and return enhanced components",
        detect=detect_hoc,
    ),
    PatternRule(
        key="custom-hooks",
        name="Custom Hooks Pattern",
        category=ARCHITECTURE,
        description="Reusable stateful logic",
        implementation="Custom React hooks for shared functionality",
        detect=detect_custom_hooks,
    ),
    PatternRule(
        key="validation",
        name="Input Validation",
        category=SECURITY,
        description="Validation of user input before processing",
        implementation="Schema or validator modules guard incoming data",
        detect=detect_validation,
    ),
    PatternRule(
        key="sanitization",
        name="Input Sanitization",
        category=SECURITY,
        description="Sanitization of untrusted content",
        implementation="Security utilities strip or escape unsafe input",
        detect=detect_sanitization,
    ),
    PatternRule(
        key="authentication",
        name="Authentication",
        category=SECURITY,
        description="Identity verification of users and clients",
        implementation="Authentication modules manage sign-in and session tokens",
        detect=detect_authentication,
    ),
    PatternRule(
        key="authorization",
        name="Authorization",
        category=SECURITY,
        description="Access control for protected resources",
        implementation="Permission and role checks gate protected operations",
        detect=detect_authorization,
    ),
    PatternRule(
        key="encryption",
        name="Encryption",
        category=SECURITY,
        description="Protection of sensitive data at rest or in transit",
        implementation="Crypto utilities encrypt and decrypt sensitive values",
        detect=detect_encryption,
    ),
)


class PatternDetector:
    """Runs every rule independently; no match suppresses another."""

    def __init__(self, rules: Iterable[PatternRule] = BUILTIN_RULES) -> None:
        self._rules = tuple(rules)

    @property
    def rules(self) -> Tuple[PatternRule, ...]:
        return self._rules

    def detect(self, view: FileSetView) -> List[PatternMatch]:
        matches: List[PatternMatch] = []
        categories = [ARCHITECTURE, SECURITY]
        categories.extend(
            rule.category for rule in self._rules if rule.category not in categories
        )
        for category in dict.fromkeys(categories):
            for rule in self._rules:
                if rule.category != category:
                    continue
                detection = rule.detect(view)
                if not isinstance(detection, Matched):
                    logger.debug("Pattern %s not matched", rule.key)
                    continue
                matches.append(
                    PatternMatch(
                        key=rule.key,
                        name=rule.name,
                        category=rule.category,
                        confidence=detection.confidence,
                        files=tuple(sorted(detection.files)),
                        description=rule.description,
                        implementation=rule.implementation,
                    )
                )
                logger.debug(
                    "Pattern %s matched at %.2f (%d files)",
                    rule.key,
                    detection.confidence,
                    len(detection.files),
                )
        return matches


__all__ = [
    "BUILTIN_RULES",
    "PatternDetector",
    "detect_authentication",
    "detect_authorization",
    "detect_custom_hooks",
    "detect_encryption",
    "detect_hoc",
    "detect_mvc",
    "detect_provider",
    "detect_repository",
    "detect_sanitization",
    "detect_validation",
]
