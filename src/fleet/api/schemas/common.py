"""
Common API schemas: shared envelopes and RFC 7807 errors.

Every endpoint returns either :class:`SuccessResponse` (200/201)
or :class:`ProblemDetail` (4xx/5xx).  Paged endpoints embed
:class:`PageMeta` alongside the item list.

Response Envelope Conventions:
    - All 2xx responses use ``SuccessResponse[T]`` or ``PagedResponse[T]``
    - All 4xx/5xx responses use ``ProblemDetail`` (RFC 7807)
    - ``elapsed_ms`` tracks server-side processing time
    - ``warnings`` carries non-fatal issues (rollup or audit failures, lease overrides)
"""

from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


# ── RFC 7807 Problem Detail ─────────────────────────────────────────────


class ErrorDetail(BaseModel):
    """Structured error detail for field-level or nested errors."""

    code: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    field: str | None = Field(default=None, description="Field path if error is field-specific")


class ProblemDetail(BaseModel):
    """RFC 7807 «Problem Details for HTTP APIs».

    Error Codes:
        - ``NOT_FOUND`` (404): Unknown session, assignment or study
        - ``VALIDATION_FAILED`` (400): Missing identifier or malformed report
        - ``CONFLICT`` (409): Store constraint violated
        - ``TRANSIENT`` (503): Store temporarily unavailable, retry the request
        - ``INTERNAL`` (500): Unexpected server error

    Example:
        {
            "type": "about:blank",
            "title": "Assignment 'a-1' not found",
            "status": 404,
            "detail": "NOT_FOUND",
            "instance": "/api/v1/assignments/a-1/claim",
            "errors": []
        }
    """

    type: str = Field(default="about:blank", description="Error type URI (usually 'about:blank')")
    title: str = Field(description="Short human-readable error summary")
    status: int = Field(description="HTTP status code (e.g., 400, 404, 500)")
    detail: str = Field(default="", description="Error code or explanation")
    instance: str = Field(default="", description="URI of the failing request")
    errors: list[ErrorDetail] = Field(
        default_factory=list,
        description="List of field-level or nested error details",
    )


# ── Success Envelopes ────────────────────────────────────────────────────


class PageMeta(BaseModel):
    """Pagination metadata for list responses."""

    total: int = Field(description="Total items across all pages")
    limit: int = Field(description="Items per page (requested)")
    offset: int = Field(description="Current offset (0-based)")
    has_more: bool = Field(description="True if more pages exist after current")

    @classmethod
    def from_result(cls, total: int, limit: int, offset: int) -> PageMeta:
        """Factory that computes ``has_more``."""
        return cls(
            total=total,
            limit=limit,
            offset=offset,
            has_more=(offset + limit) < total,
        )


class SuccessResponse(BaseModel, Generic[T]):
    """Standard success envelope for single-item responses."""

    data: T = Field(description="Response payload (type varies by endpoint)")
    elapsed_ms: float = Field(default=0.0, description="Server-side processing time in milliseconds")
    warnings: list[str] = Field(
        default_factory=list,
        description="Non-fatal warnings",
    )


class PagedResponse(BaseModel, Generic[T]):
    """Paged success envelope for list responses."""

    data: list[T] = Field(description="List of items for this page")
    page: PageMeta = Field(description="Pagination metadata")
    elapsed_ms: float = Field(default=0.0, description="Server-side processing time in milliseconds")
    warnings: list[str] = Field(
        default_factory=list,
        description="Non-fatal warnings",
    )
