"""
Operation result envelope.

Every operation returns an :class:`OperationResult` instead of raising.
The engine raises :class:`~fleet.core.errors.FleetError` subclasses and
:meth:`OperationResult.from_exception` folds them into a code the transport
understands: ``NOT_FOUND``, ``VALIDATION_FAILED``, ``TRANSIENT``,
``CONFLICT`` or ``INTERNAL``.  Non-fatal problems (a rollup that could not
be refreshed, an overridden lease) ride along in ``warnings``.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from fleet.core.errors import FleetError, error_code, is_retryable

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class OperationError:
    code: str
    message: str
    retryable: bool = False


@dataclass
class OperationResult(Generic[T]):
    """Success payload or structured failure, plus warnings and timing.

    Build instances with :meth:`ok`, :meth:`fail` or :meth:`from_exception`.
    ``metadata`` is used for flags such as ``dry_run``.
    """

    success: bool
    data: T | None = None
    error: OperationError | None = None
    warnings: list[str] = field(default_factory=list)
    elapsed_ms: float = 0.0
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(
        cls,
        data: T,
        *,
        warnings: list[str] | None = None,
        elapsed_ms: float = 0.0,
        metadata: dict[str, Any] | None = None,
    ) -> OperationResult[T]:
        return cls(
            success=True,
            data=data,
            warnings=warnings or [],
            elapsed_ms=elapsed_ms,
            metadata=metadata or {},
        )

    @classmethod
    def fail(
        cls,
        code: str,
        message: str,
        *,
        retryable: bool = False,
        elapsed_ms: float = 0.0,
    ) -> OperationResult[T]:
        return cls(
            success=False,
            error=OperationError(code, message, retryable),
            elapsed_ms=elapsed_ms,
        )

    @classmethod
    def from_exception(cls, exc: Exception, *, elapsed_ms: float = 0.0) -> OperationResult[T]:
        """Failed result for an exception raised by the engine or the store.

        Anything that is not a :class:`FleetError` becomes ``INTERNAL``.
        """
        if isinstance(exc, FleetError):
            return cls.fail(
                error_code(exc), exc.message, retryable=is_retryable(exc), elapsed_ms=elapsed_ms
            )
        return cls.fail("INTERNAL", f"{type(exc).__name__}: {exc}", elapsed_ms=elapsed_ms)


@dataclass
class PagedResult(OperationResult[list[T]]):
    """List payload with the window it was cut from."""

    total: int = 0
    limit: int = 50
    offset: int = 0

    @property
    def has_more(self) -> bool:
        return self.offset + self.limit < self.total

    @classmethod
    def from_items(
        cls,
        items: list[T],
        total: int,
        *,
        limit: int = 50,
        offset: int = 0,
        elapsed_ms: float = 0.0,
    ) -> PagedResult[T]:
        return cls(
            success=True,
            data=items,
            total=total,
            limit=limit,
            offset=offset,
            elapsed_ms=elapsed_ms,
        )


class _Timer:
    __slots__ = ("_start",)

    def __init__(self) -> None:
        self._start = time.perf_counter()

    @property
    def elapsed_ms(self) -> float:
        return (time.perf_counter() - self._start) * 1000


def start_timer() -> _Timer:
    """Stopwatch started now; read ``timer.elapsed_ms`` when done."""
    return _Timer()
