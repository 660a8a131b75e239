"""SQLite connection adapter.

Wraps a raw :class:`sqlite3.Connection` to satisfy the
:class:`~fleet.core.protocols.Connection` protocol and translates driver
exceptions into the fleet error taxonomy:

- ``sqlite3.IntegrityError``  → :class:`~fleet.core.errors.IntegrityError`
- any other ``sqlite3.Error`` → :class:`~fleet.core.errors.TransientStoreError`
  (``database is locked``, disk I/O, ...), which the transport surfaces as
  retryable.

Usage::

    from fleet.ops.sqlite_conn import SqliteConnection

    conn = SqliteConnection(":memory:")
    conn.execute("CREATE TABLE t (id INTEGER)")
    conn.execute("INSERT INTO t VALUES (?)", (1,))
    conn.execute("SELECT * FROM t")
    row = conn.fetchone()
    conn.commit()
    conn.close()
"""

from __future__ import annotations

import sqlite3
from typing import Any

from fleet.core.errors import IntegrityError, TransientStoreError


class SqliteConnection:
    """Adapter: ``sqlite3.Connection`` → ``Connection`` protocol.

    Maintains a single cursor so that ``execute`` / ``fetchone`` /
    ``fetchall`` operate on the same result set.
    """

    def __init__(
        self,
        path: str = ":memory:",
        *,
        row_factory: Any = sqlite3.Row,
        timeout: float = 5.0,
    ) -> None:
        self._conn = sqlite3.connect(path, check_same_thread=False, timeout=timeout)
        self._conn.row_factory = row_factory
        self._conn.execute("PRAGMA foreign_keys = ON")
        self._cursor = self._conn.cursor()

    # -- Connection protocol -----------------------------------------------

    def execute(self, sql: str, params: tuple = ()) -> Any:
        try:
            self._cursor.execute(sql, params)
        except sqlite3.IntegrityError as exc:
            raise IntegrityError(str(exc), cause=exc) from exc
        except sqlite3.Error as exc:
            raise TransientStoreError(f"SQLite error: {exc}", cause=exc) from exc
        return self._cursor

    def executemany(self, sql: str, params: list[tuple]) -> Any:
        try:
            self._cursor.executemany(sql, params)
        except sqlite3.IntegrityError as exc:
            raise IntegrityError(str(exc), cause=exc) from exc
        except sqlite3.Error as exc:
            raise TransientStoreError(f"SQLite error: {exc}", cause=exc) from exc
        return self._cursor

    def fetchone(self) -> Any:
        return self._cursor.fetchone()

    def fetchall(self) -> list:
        return self._cursor.fetchall()

    def commit(self) -> None:
        try:
            self._conn.commit()
        except sqlite3.Error as exc:
            raise TransientStoreError(f"SQLite commit failed: {exc}", cause=exc) from exc

    def rollback(self) -> None:
        self._conn.rollback()

    def close(self) -> None:
        self._conn.close()

    def __repr__(self) -> str:
        return f"SqliteConnection({self._conn!r})"
