"""Link integrity checks across a documentation directory."""

from __future__ import annotations

import posixpath
from typing import Dict, List, Set

from ..logging import get_logger
from ..models import Severity
from ..postproc.links import extract_links
from ..postproc.toc import heading_anchors
from .base import ValidationContext, ValidationIssue

logger = get_logger("validators.links")

BROKEN_LINK = "broken-link"
UNKNOWN_ANCHOR = "unknown-anchor"


class LinkIntegrityValidator:
    """Relative links must reach a file; anchors should match a heading."""

    name = "links"

    def validate(self, context: ValidationContext) -> List[ValidationIssue]:
        anchors: Dict[str, Set[str]] = {}

        def _anchors_of(document: str) -> Set[str]:
            if document not in anchors:
                anchors[document] = set(heading_anchors(context.documents.get(document, "")))
            return anchors[document]

        issues: List[ValidationIssue] = []
        for document, content in context.documents.items():
            for link in extract_links(content):
                if link.is_external:
                    continue
                if link.path:
                    if link.path.startswith("/"):
                        target = posixpath.normpath(link.path.lstrip("/"))
                    else:
                        target = posixpath.normpath(
                            posixpath.join(posixpath.dirname(document), link.path)
                        )
                    if not (context.docs_dir / target).exists():
                        issues.append(
                            ValidationIssue(
                                kind=BROKEN_LINK,
                                document=document,
                                line=link.line,
                                target=link.target,
                                detail="File not found",
                            )
                        )
                        continue
                else:
                    target = document

                fragment = link.fragment
                if fragment is None or target not in context.documents:
                    continue
                if fragment.lower() not in _anchors_of(target):
                    issues.append(
                        ValidationIssue(
                            kind=UNKNOWN_ANCHOR,
                            document=document,
                            line=link.line,
                            target=link.target,
                            detail=f"No heading matches '#{fragment}' in {target}",
                            severity=Severity.WARNING,
                        )
                    )

        for issue in issues:
            if issue.severity is Severity.ERROR:
                logger.error("%s:%s broken link %s", issue.document, issue.line, issue.target)
            else:
                logger.warning("%s:%s %s", issue.document, issue.line, issue.detail)
        return issues


__all__ = ["BROKEN_LINK", "LinkIntegrityValidator", "UNKNOWN_ANCHOR"]
