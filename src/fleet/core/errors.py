"""
Structured error types for fleet-core.

Provides a typed hierarchy of errors with enough metadata for the transport
layer to decide how a failure is surfaced and whether the calling worker
agent should resend its request.

Worker agents retry aggressively: a heartbeat or progress report that fails
is simply sent again a few seconds later.  Every error therefore carries an
explicit ``retryable`` flag, and only storage I/O failures set it.  Races
between concurrent requests are *not* errors at all: identity resolution and
lease operations apply last-write-wins and the read path converges.

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                        FleetError                                │
        │  (category, retryable, context, cause)                          │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │  NotFoundError        ValidationError      StorageError          │
        │  (NOT_FOUND)          (VALIDATION)         (STORAGE)             │
        │       │                    │                    │                │
        │  SessionNotFound      ReportError          TransientStoreError  │
        │  AssignmentNotFound                        (retryable=True)     │
        │  StudyNotFound                             IntegrityError       │
        │                                                                  │
        │  ConfigError                                                     │
        │  (CONFIG)                                                        │
        └─────────────────────────────────────────────────────────────────┘

Examples:
    >>> err = TransientStoreError("database is locked")
    >>> err.retryable
    True
    >>> AssignmentNotFoundError("a-1").context.metadata
    {'assignment_id': 'a-1'}

Guardrails:
    ❌ DON'T: Raise for a lost race (two claims, duplicate sessions)
    ✅ DO: Let the later write win and rely on reconciled reads

    ❌ DON'T: Swallow the driver exception
    ✅ DO: Pass it as cause= for error chaining

Tags:
    error-handling, exception-hierarchy, retry-logic, fleet-core

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and HTTP mapping."""

    NOT_FOUND = "NOT_FOUND"
    VALIDATION = "VALIDATION"
    STORAGE = "STORAGE"
    CONFIG = "CONFIG"
    INTERNAL = "INTERNAL"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Typed fields cover the identifiers that show up in nearly every
    coordination failure; anything else goes into ``metadata``.

    Attributes:
        network_id: Inbound network identifier of the worker
        session_id: Worker session identifier
        assignment_id: Assignment identifier
        study_id: Super-study identifier
        operation: Name of the engine operation that failed
        metadata: Additional key-value pairs
    """

    network_id: str | None = None
    session_id: str | None = None
    assignment_id: str | None = None
    study_id: str | None = None
    operation: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["network_id", "session_id", "assignment_id", "study_id", "operation"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class FleetError(Exception):
    """
    Base exception for all fleet-core errors.

    Subclasses set ``default_category`` and ``default_retryable``; callers
    may override either per instance.

    Examples:
        >>> error = FleetError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.with_context(session_id="w-1").context.session_id
        'w-1'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False
    # Machine-readable code used by the ops layer
    code: str = "INTERNAL"

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> FleetError:
        """Add context to this error (fluent API)."""
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# NOT FOUND
# =============================================================================


class NotFoundError(FleetError):
    """Referenced entity does not exist. Never retryable."""

    default_category = ErrorCategory.NOT_FOUND
    code = "NOT_FOUND"


class SessionNotFoundError(NotFoundError):
    """Unknown worker session."""

    def __init__(self, session_id: str, **kwargs: Any):
        super().__init__(f"Worker session '{session_id}' not found", **kwargs)
        self.context.session_id = session_id


class AssignmentNotFoundError(NotFoundError):
    """Unknown assignment."""

    def __init__(self, assignment_id: str, **kwargs: Any):
        super().__init__(f"Assignment '{assignment_id}' not found", **kwargs)
        self.context.metadata["assignment_id"] = assignment_id


class StudyNotFoundError(NotFoundError):
    """Unknown super study."""

    def __init__(self, study_id: str, **kwargs: Any):
        super().__init__(f"Super study '{study_id}' not found", **kwargs)
        self.context.study_id = study_id


# =============================================================================
# VALIDATION
# =============================================================================


class ValidationError(FleetError):
    """Caller input is missing or malformed. The caller must fix the input."""

    default_category = ErrorCategory.VALIDATION
    code = "VALIDATION_FAILED"


class ReportError(ValidationError):
    """Progress report payload could not be parsed."""


# =============================================================================
# STORAGE
# =============================================================================


class StorageError(FleetError):
    """Backing store failure."""

    default_category = ErrorCategory.STORAGE
    code = "INTERNAL"


class TransientStoreError(StorageError):
    """Store I/O failure that may succeed if the same request is resent."""

    default_retryable = True
    code = "TRANSIENT"


class IntegrityError(StorageError):
    """Constraint violation raised by the store."""

    code = "CONFLICT"


# =============================================================================
# CONFIG
# =============================================================================


class ConfigError(FleetError):
    """Invalid configuration."""

    default_category = ErrorCategory.CONFIG
    code = "INTERNAL"


# =============================================================================
# HELPERS
# =============================================================================


def is_retryable(error: Exception) -> bool:
    """Return whether *error* indicates the request can be resent unchanged."""
    if isinstance(error, FleetError):
        return error.retryable
    return False


def error_code(error: Exception) -> str:
    """Machine-readable code for *error* (``INTERNAL`` for foreign exceptions)."""
    if isinstance(error, FleetError):
        return error.code
    return "INTERNAL"


__all__ = [
    "AssignmentNotFoundError",
    "ConfigError",
    "ErrorCategory",
    "ErrorContext",
    "FleetError",
    "IntegrityError",
    "NotFoundError",
    "ReportError",
    "SessionNotFoundError",
    "StorageError",
    "StudyNotFoundError",
    "TransientStoreError",
    "ValidationError",
    "error_code",
    "is_retryable",
]
