"""
Document types produced by the architecture interview.

The thirteen types form a fixed, ordered sequence. Models and older clients
spell them in several ways (camelCase, snake_case, squashed, legacy short
names), so every inbound identifier goes through DocumentType.parse before it
reaches the store.
"""

import re
from enum import StrEnum


class UnknownDocumentTypeError(ValueError):
    """Raised when a document type identifier matches no known spelling."""

    def __init__(self, value: str) -> None:
        self.value = value
        super().__init__(f"Unknown document type: {value!r}")


class DocumentType(StrEnum):
    """Canonical document type identifiers, in interview order."""

    REQUIREMENTS = "requirements"
    FRONTEND_ARCHITECTURE = "frontend-architecture"
    BACKEND_ARCHITECTURE = "backend-architecture"
    STATE_MANAGEMENT = "state-management"
    DATABASE_SCHEMA = "database-schema"
    API_SPECIFICATION = "api-specification"
    DEPLOYMENT = "deployment"
    TESTING_STRATEGY = "testing-strategy"
    DOCUMENTATION_STANDARDS = "documentation-standards"
    PERFORMANCE = "performance"
    USER_FLOWS = "user-flows"
    THIRD_PARTY_DEPENDENCIES = "third-party-dependencies"
    SUMMARY = "summary"

    @property
    def display_title(self) -> str:
        """Human-readable title used in document listings."""
        return DOCUMENT_TITLES[self]

    @property
    def position(self) -> int:
        """1-based position in the interview sequence."""
        return DOCUMENT_SEQUENCE.index(self) + 1

    @classmethod
    def parse(cls, value: "str | DocumentType") -> "DocumentType":
        """
        Normalize any known spelling to its canonical member.

        Accepts the canonical id, its camelCase / snake_case / squashed forms
        and the legacy short names (prd, devops, readme, ...).

        Raises:
            UnknownDocumentTypeError: If the value matches no known spelling.
        """
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise UnknownDocumentTypeError(str(value))

        key = _normalize_key(value)
        member = _LOOKUP.get(key) or _LOOKUP.get(key.replace("-", ""))
        if member is None:
            raise UnknownDocumentTypeError(value)
        return member


# Fixed interview order. Never derived from stored data.
DOCUMENT_SEQUENCE: tuple[DocumentType, ...] = tuple(DocumentType)

TOTAL_DOCUMENTS = len(DOCUMENT_SEQUENCE)

DOCUMENT_TITLES: dict[DocumentType, str] = {
    DocumentType.REQUIREMENTS: "Product Requirements",
    DocumentType.FRONTEND_ARCHITECTURE: "Frontend Architecture",
    DocumentType.BACKEND_ARCHITECTURE: "Backend Architecture",
    DocumentType.STATE_MANAGEMENT: "State Management",
    DocumentType.DATABASE_SCHEMA: "Database Schema",
    DocumentType.API_SPECIFICATION: "API Specifications",
    DocumentType.DEPLOYMENT: "DevOps & Deployment",
    DocumentType.TESTING_STRATEGY: "Testing Strategy",
    DocumentType.DOCUMENTATION_STANDARDS: "Documentation Standards",
    DocumentType.PERFORMANCE: "Performance Optimization",
    DocumentType.USER_FLOWS: "User Flow Diagrams",
    DocumentType.THIRD_PARTY_DEPENDENCIES: "Third-Party Libraries",
    DocumentType.SUMMARY: "README",
}

# Legacy identifiers from earlier widget releases and the model's habits.
_ALIASES: dict[str, DocumentType] = {
    "prd": DocumentType.REQUIREMENTS,
    "product-requirements": DocumentType.REQUIREMENTS,
    "frontend": DocumentType.FRONTEND_ARCHITECTURE,
    "backend": DocumentType.BACKEND_ARCHITECTURE,
    "api": DocumentType.API_SPECIFICATION,
    "devops": DocumentType.DEPLOYMENT,
    "testing-plan": DocumentType.TESTING_STRATEGY,
    "code-documentation": DocumentType.DOCUMENTATION_STANDARDS,
    "performance-optimization": DocumentType.PERFORMANCE,
    "user-flow": DocumentType.USER_FLOWS,
    "third-party-libraries": DocumentType.THIRD_PARTY_DEPENDENCIES,
    "readme": DocumentType.SUMMARY,
}

_CAMEL_BOUNDARY_RE = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")
_SEPARATOR_RE = re.compile(r"[\s_]+")


def _normalize_key(value: str) -> str:
    """Lower-case hyphenated form of an identifier (camelCase and snake_case aware)."""
    key = _CAMEL_BOUNDARY_RE.sub("-", value.strip())
    key = _SEPARATOR_RE.sub("-", key).lower()
    return re.sub(r"-{2,}", "-", key).strip("-")


def _build_lookup() -> dict[str, DocumentType]:
    lookup: dict[str, DocumentType] = {}
    for member in DocumentType:
        lookup[member.value] = member
        lookup[member.value.replace("-", "")] = member
    for alias, member in _ALIASES.items():
        lookup[alias] = member
        lookup[alias.replace("-", "")] = member
    return lookup


_LOOKUP = _build_lookup()
