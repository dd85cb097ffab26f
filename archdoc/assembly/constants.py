"""Document names, titles and fixed prose used by the assembler."""

from __future__ import annotations

from typing import Dict, Optional, Tuple

from ..models import EntityKind

TYPES_DOC = "types.md"
COMPONENTS_DOC = "components.md"
HOOKS_DOC = "hooks.md"
ENDPOINTS_DOC = "api-endpoints.md"
ARCHITECTURE_DOC = "architecture.md"
SECURITY_DOC = "security.md"
SUMMARY_DOC = "README.md"
DIAGRAM_DIR = "diagrams"

# Rendering order; the summary links to every other document.
DOCUMENT_ORDER: Tuple[str, ...] = (
    TYPES_DOC,
    COMPONENTS_DOC,
    HOOKS_DOC,
    ENDPOINTS_DOC,
    ARCHITECTURE_DOC,
    SECURITY_DOC,
    SUMMARY_DOC,
)

DOCUMENT_TITLES: Dict[str, str] = {
    TYPES_DOC: "TypeScript Types",
    COMPONENTS_DOC: "Components",
    HOOKS_DOC: "Custom Hooks",
    ENDPOINTS_DOC: "API Endpoints",
    ARCHITECTURE_DOC: "Architecture",
    SECURITY_DOC: "Security",
    SUMMARY_DOC: "Project Documentation",
}

DOCUMENT_INTROS: Dict[str, str] = {
    TYPES_DOC: (
        "Interfaces, type aliases and enums declared in the codebase. Each "
        "interface lists its properties in declaration order together with any "
        "inheritance through `extends`."
    ),
    COMPONENTS_DOC: (
        "React components detected from capitalized functions that return JSX, "
        "each with a usage example. Props link to their type definitions, custom "
        "hook usage is listed per component, and the component hierarchy shows "
        "which components render each other."
    ),
    HOOKS_DOC: (
        "Custom hooks encapsulating reusable state management logic, with their "
        "parameters and return types."
    ),
    ENDPOINTS_DOC: (
        "HTTP endpoints derived from route handler files. Each endpoint lists "
        "the request method, the route path, detected middleware, authentication "
        "and validation."
    ),
    ARCHITECTURE_DOC: (
        "System design overview: technology stack, directory structure, "
        "dependency relationships between components, and detected design patterns."
    ),
    SECURITY_DOC: (
        "Security patterns detected from file naming conventions, protected "
        "endpoints and a review checklist."
    ),
    SUMMARY_DOC: (
        "Generated documentation index. All documents and Mermaid diagrams are "
        "derived from static analysis of the source tree: type declarations, "
        "components and their state management hooks, API endpoints, and the "
        "data flow between them."
    ),
}

ENTITY_DOCUMENTS: Dict[EntityKind, str] = {
    EntityKind.INTERFACE: TYPES_DOC,
    EntityKind.TYPE_ALIAS: TYPES_DOC,
    EntityKind.ENUM: TYPES_DOC,
    EntityKind.COMPONENT: COMPONENTS_DOC,
    EntityKind.STATEFUL_FUNCTION: HOOKS_DOC,
    EntityKind.ENDPOINT: ENDPOINTS_DOC,
}

TYPE_GROUPS: Tuple[Tuple[EntityKind, str], ...] = (
    (EntityKind.INTERFACE, "Interfaces"),
    (EntityKind.TYPE_ALIAS, "Type Aliases"),
    (EntityKind.ENUM, "Enums"),
)

EMPTY_MESSAGES: Dict[str, str] = {
    TYPES_DOC: "No type declarations were found.",
    COMPONENTS_DOC: "No components were found.",
    HOOKS_DOC: "No custom hooks were found.",
    ENDPOINTS_DOC: "No API endpoints were found.",
}

# (item, evidence) pairs; evidence is a pattern key, "cors" for CORS middleware
# on any endpoint, or None when static analysis cannot tell.
SECURITY_CHECKLIST: Tuple[Tuple[str, Optional[str]], ...] = (
    ("Validate all user input at API boundaries", "validation"),
    ("Sanitize content rendered from untrusted sources", "sanitization"),
    ("Require authentication for endpoints that access user data", "authentication"),
    ("Enforce authorization checks for privileged operations", "authorization"),
    ("Restrict CORS origins to trusted hosts", "cors"),
    ("Keep secrets in environment configuration, never in source", None),
    ("Encrypt sensitive data at rest and in transit", "encryption"),
)
