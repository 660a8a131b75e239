"""Base repository with dialect-aware database access.

Provides :class:`BaseRepository`, an abstract base class that pairs a
:class:`~fleet.core.protocols.Connection` with a :class:`~fleet.core.dialect.Dialect`
so that domain repositories can write portable SQL without referencing
any specific database driver.

Architecture::

    ┌────────────────────────────────────────────────────────────────────┐
    │                       BaseRepository                               │
    │                                                                    │
    │   conn: Connection        ← protocol from fleet.core.protocols     │
    │   dialect: Dialect        ← from fleet.core.dialect                │
    │                                                                    │
    │   execute(sql, params)     → cursor                                │
    │   query(sql, params)       → list[dict]                            │
    │   query_one(sql, params)   → dict | None                           │
    │   insert(table, data)      → cursor                                │
    │   insert_many(table, rows) → int                                   │
    │   update(table, key, data) → rows affected                         │
    └────────────────────────────────────────────────────────────────────┘

Usage:
    >>> class MyRepo(BaseRepository):
    ...     def get_by_id(self, id: str):
    ...         return self.query_one(
    ...             f"SELECT * FROM my_table WHERE id = {self.ph(1)}",
    ...             (id,),
    ...         )

Tags:
    repository, database, abstraction, portability
"""

from __future__ import annotations

from typing import Any

from fleet.core.dialect import Dialect, SQLiteDialect
from fleet.core.protocols import Connection


class BaseRepository:
    """Dialect-aware base class for data-access repositories.

    Parameters:
        conn: Any object satisfying the :class:`Connection` protocol.
        dialect: SQL dialect to use.  Defaults to :class:`SQLiteDialect`.
    """

    def __init__(self, conn: Connection, dialect: Dialect | None = None) -> None:
        self.conn = conn
        self.dialect: Dialect = dialect or SQLiteDialect()

    # -- Convenience shortcuts ---------------------------------------------

    def ph(self, count: int) -> str:
        """Shortcut for ``self.dialect.placeholders(count)``.

        Embed directly in f-strings:

            f"SELECT * FROM t WHERE id = {self.ph(1)}"
        """
        return self.dialect.placeholders(count)

    # -- Query helpers -----------------------------------------------------

    def execute(self, sql: str, params: tuple = ()) -> Any:
        """Execute a statement and return the raw cursor/result."""
        return self.conn.execute(sql, params)

    def query(self, sql: str, params: tuple = ()) -> list[dict[str, Any]]:
        """Execute a SELECT and return rows as dicts.

        If the cursor exposes ``description`` (standard DB-API 2.0), column
        names are extracted automatically when rows are plain tuples.
        """
        cursor = self.conn.execute(sql, params)
        rows = cursor.fetchall()
        if not rows:
            return []

        # dict(row) works with sqlite3.Row
        try:
            return [dict(row) for row in rows]
        except (TypeError, ValueError):
            pass

        if hasattr(cursor, "description") and cursor.description:
            columns = [desc[0] for desc in cursor.description]
            return [dict(zip(columns, row, strict=False)) for row in rows]

        return [{i: v for i, v in enumerate(row)} for row in rows]

    def query_one(self, sql: str, params: tuple = ()) -> dict[str, Any] | None:
        """Execute a SELECT and return the first row as a dict (or None)."""
        results = self.query(sql, params)
        return results[0] if results else None

    def scalar(self, sql: str, params: tuple = (), default: Any = 0) -> Any:
        """Execute a single-value SELECT (``... AS value``)."""
        row = self.query_one(sql, params)
        if row is None:
            return default
        value = row.get("value")
        return default if value is None else value

    # -- Write helpers -----------------------------------------------------

    def insert(self, table: str, data: dict[str, Any]) -> Any:
        """Insert a single row from a dict.

        Column names come from ``data.keys()``; values are bound via
        dialect placeholders.
        """
        columns = list(data.keys())
        values = list(data.values())
        ph = self.dialect.placeholders(len(values))
        sql = f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({ph})"
        return self.conn.execute(sql, tuple(values))

    def insert_many(self, table: str, rows: list[dict[str, Any]]) -> int:
        """Insert multiple rows from a list of dicts.

        Returns the number of rows inserted.
        """
        if not rows:
            return 0

        columns = list(rows[0].keys())
        ph = self.dialect.placeholders(len(columns))
        sql = f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({ph})"
        params = [tuple(row[col] for col in columns) for row in rows]
        self.conn.executemany(sql, params)
        return len(rows)

    def update(self, table: str, key: tuple[str, Any], data: dict[str, Any]) -> int:
        """Update columns of the row(s) matching ``key`` (column, value).

        Returns the number of rows affected (``-1`` if the driver does not
        report it).
        """
        if not data:
            return 0
        assignments = ", ".join(f"{col} = {self.ph(1)}" for col in data)
        column, value = key
        cursor = self.conn.execute(
            f"UPDATE {table} SET {assignments} WHERE {column} = {self.ph(1)}",
            (*data.values(), value),
        )
        return getattr(cursor, "rowcount", -1)


__all__ = [
    "BaseRepository",
]
