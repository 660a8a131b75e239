"""
Operations layer.

Transport-agnostic functions that take an :class:`OperationContext` and a
typed request, call the coordination engine, and return an
:class:`OperationResult`.  Routers and SDK callers use these and nothing
below them.

Modules:
    workers       heartbeat, lookup, register, list, status, delete, events
    assignments   claim
    progress      report ingestion
    studies       create, list, get, delete, reconciled status, diagnostics
"""

from fleet.ops.context import OperationContext
from fleet.ops.result import OperationError, OperationResult, PagedResult

__all__ = [
    "OperationContext",
    "OperationError",
    "OperationResult",
    "PagedResult",
]
