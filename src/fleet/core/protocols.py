"""
Canonical protocol definitions for fleet-core.

Every module that needs a database connection types it against
:class:`Connection` from here.  The coordination engine never imports a
driver; it depends on this shape only, so any DB-API style adapter works.

Architecture:
    ::

        protocols.py
        └── Connection  : sync DB protocol (SqliteConnection, test doubles)

    Consumers:
        core/repository.py, core/store.py, ops/context.py

Tags:
    protocol, connection, database, fleet-core, contracts

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Connection(Protocol):
    """
    Minimal synchronous connection interface for the backing store.

    Request handlers are stateless and each one opens its own connection,
    so implementations need not be thread-safe beyond a single request.

    Architecture:
        ::

            ┌────────────────────────────────────────────────────────┐
            │ execute(sql, params)   → Execute single statement      │
            │ executemany(sql, list) → Execute for multiple params   │
            │ fetchone()             → Get one result row            │
            │ fetchall()             → Get all result rows           │
            │ commit()               → Commit transaction            │
            │ rollback()             → Rollback transaction          │
            └────────────────────────────────────────────────────────┘
    """

    def execute(self, sql: str, params: tuple = ()) -> Any:
        """Execute SQL statement with optional parameters."""
        ...

    def executemany(self, sql: str, params: list[tuple]) -> Any:
        """Execute SQL statement for multiple parameter sets."""
        ...

    def fetchone(self) -> Any:
        """Fetch one row from last query."""
        ...

    def fetchall(self) -> list:
        """Fetch all rows from last query."""
        ...

    def commit(self) -> None:
        """Commit current transaction."""
        ...

    def rollback(self) -> None:
        """Rollback current transaction."""
        ...


__all__ = ["Connection"]
