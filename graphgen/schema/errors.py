"""
Error types for the graphgen schema model.

This module defines every exception raised while loading a schema:
- GraphGenError: Base exception
- SchemaValidationError: One or more structural problems in a schema source
- DuplicateIdentifierError, UnresolvedReferenceError, CyclicHierarchyError,
  TypeMismatchDefaultError, MissingIdentifierError: kind-specific subclasses
- BuilderClosedError: A builder was used after build()

Invariants:
    - All errors inherit from GraphGenError
    - A SchemaValidationError always carries every issue found, not just the first
    - The concrete class raised matches the kind of the first issue
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence


class ErrorKind(Enum):
    """Kinds of problems found while validating a schema."""

    DUPLICATE_IDENTIFIER = "DuplicateIdentifier"
    UNRESOLVED_REFERENCE = "UnresolvedReference"
    CYCLIC_HIERARCHY = "CyclicHierarchy"
    TYPE_MISMATCH_DEFAULT = "TypeMismatchDefault"
    MISSING_IDENTIFIER = "MissingIdentifier"
    MALFORMED_SOURCE = "MalformedSource"
    INVALID_CARDINALITY = "InvalidCardinality"  # soft, recovered as List

    @property
    def is_fatal(self) -> bool:
        """Whether this kind aborts the schema load."""
        return self is not ErrorKind.INVALID_CARDINALITY


@dataclass(frozen=True)
class ValidationIssue:
    """A single problem found in a schema source.

    Attributes:
        kind: What went wrong
        path: Location of the element (e.g. "NodeType:METHOD.outEdges[0]")
        message: Human-readable description
    """

    kind: ErrorKind
    path: str
    message: str

    def __str__(self) -> str:
        return f"[{self.kind.value}] {self.path}: {self.message}"


class GraphGenError(Exception):
    """Base exception for all graphgen errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or "GRAPHGEN_ERROR"
        self.details = details or {}


class BuilderClosedError(GraphGenError):
    """Raised when a SchemaBuilder is modified or built after build()."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="BUILDER_CLOSED")


class SchemaValidationError(GraphGenError):
    """Schema validation failed.

    Raised by SchemaBuilder.build() when at least one fatal issue exists.
    All issues are collected before raising so they can be fixed in one pass.

    Attributes:
        issues: Every fatal issue found, in validation-pass order
    """

    kind: Optional[ErrorKind] = None

    def __init__(self, issues: Sequence[ValidationIssue]) -> None:
        self.issues: List[ValidationIssue] = list(issues)
        lines = "\n".join(f"  - {issue}" for issue in self.issues)
        super().__init__(
            f"Schema validation failed with {len(self.issues)} error(s):\n{lines}",
            code="SCHEMA_VALIDATION_ERROR",
            details={"issues": [str(issue) for issue in self.issues]},
        )

    @property
    def kinds(self) -> List[ErrorKind]:
        """Distinct issue kinds, in first-seen order."""
        seen: List[ErrorKind] = []
        for issue in self.issues:
            if issue.kind not in seen:
                seen.append(issue.kind)
        return seen

    def has(self, kind: ErrorKind) -> bool:
        """Whether any collected issue has the given kind."""
        return any(issue.kind is kind for issue in self.issues)

    @classmethod
    def from_issues(cls, issues: Sequence[ValidationIssue]) -> SchemaValidationError:
        """Build the exception subclass matching the first issue's kind."""
        if not issues:
            raise ValueError("from_issues() requires at least one issue")
        error_cls = _ERRORS_BY_KIND.get(issues[0].kind, SchemaValidationError)
        return error_cls(issues)


class DuplicateIdentifierError(SchemaValidationError):
    """A name or protoId collides within its namespace."""

    kind = ErrorKind.DUPLICATE_IDENTIFIER


class UnresolvedReferenceError(SchemaValidationError):
    """An edge endpoint, extends target, property or contained node is undeclared."""

    kind = ErrorKind.UNRESOLVED_REFERENCE


class CyclicHierarchyError(SchemaValidationError):
    """The extends relation contains a cycle."""

    kind = ErrorKind.CYCLIC_HIERARCHY


class TypeMismatchDefaultError(SchemaValidationError):
    """A property default does not match the property's value type."""

    kind = ErrorKind.TYPE_MISMATCH_DEFAULT


class MissingIdentifierError(SchemaValidationError):
    """A concrete node type or edge type has no protoId."""

    kind = ErrorKind.MISSING_IDENTIFIER


_ERRORS_BY_KIND = {
    ErrorKind.DUPLICATE_IDENTIFIER: DuplicateIdentifierError,
    ErrorKind.UNRESOLVED_REFERENCE: UnresolvedReferenceError,
    ErrorKind.CYCLIC_HIERARCHY: CyclicHierarchyError,
    ErrorKind.TYPE_MISMATCH_DEFAULT: TypeMismatchDefaultError,
    ErrorKind.MISSING_IDENTIFIER: MissingIdentifierError,
}
