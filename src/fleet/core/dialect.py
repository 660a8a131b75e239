"""SQL dialect abstraction for repository code.

Repositories build SQL from :class:`Dialect` fragments (placeholders,
upserts, booleans) instead of hard-coding driver syntax.  Only SQLite ships
today; the protocol is the seam for another backend.

Examples:
    >>> from fleet.core.dialect import SQLiteDialect
    >>> d = SQLiteDialect()
    >>> d.placeholders(3)
    '?, ?, ?'

Tags:
    dialect, sql, abstraction, portability, fleet-core
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class Dialect(Protocol):
    """SQL dialect contract.

    Every method returns a **SQL fragment** (string) valid for the target
    database.
    """

    @property
    def name(self) -> str:
        """Human-readable dialect name (e.g. ``'sqlite'``)."""
        ...

    def placeholder(self, index: int) -> str:
        """Single positional placeholder (0-based index)."""
        ...

    def placeholders(self, count: int) -> str:
        """Comma-separated placeholder list."""
        ...

    def upsert(self, table: str, columns: list[str], key_columns: list[str]) -> str:
        """INSERT ... ON CONFLICT DO UPDATE statement."""
        ...

    def boolean_true(self) -> str:
        ...

    def boolean_false(self) -> str:
        ...


class SQLiteDialect:
    """SQLite dialect: ``?`` placeholders."""

    @property
    def name(self) -> str:
        return "sqlite"

    # -- Placeholders ------------------------------------------------------

    def placeholder(self, index: int) -> str:  # noqa: ARG002
        return "?"

    def placeholders(self, count: int) -> str:
        return ", ".join("?" for _ in range(count))

    # -- DML ---------------------------------------------------------------

    def upsert(self, table: str, columns: list[str], key_columns: list[str]) -> str:
        cols = ", ".join(columns)
        ph = self.placeholders(len(columns))
        keys = ", ".join(key_columns)
        update_cols = [c for c in columns if c not in key_columns]
        updates = ", ".join(f"{c} = excluded.{c}" for c in update_cols)
        return (
            f"INSERT INTO {table} ({cols}) VALUES ({ph}) "
            f"ON CONFLICT ({keys}) DO UPDATE SET {updates}"
        )

    # -- Booleans ----------------------------------------------------------

    def boolean_true(self) -> str:
        return "1"

    def boolean_false(self) -> str:
        return "0"


__all__ = ["Dialect", "SQLiteDialect"]
