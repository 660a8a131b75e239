"""Connection factory: create database connections from URL strings.

This is the single entry point for creating database connections
throughout fleet-core.  Every module that needs a connection should use
``create_connection()`` rather than importing backend-specific classes
directly.

Supported URL schemes
---------------------
==================  ==========================================  ============
Scheme              Example                                     Backend
==================  ==========================================  ============
``memory``          ``memory`` or ``:memory:`` or ``None``       SQLite RAM
``sqlite``          ``sqlite:///path/to/file.db``                SQLite file
``(file path)``     ``./data/fleet.db`` or ``/tmp/fleet.db``     SQLite file
==================  ==========================================  ============

Usage
-----
::

    from fleet.core.connection import create_connection

    conn, info = create_connection()                               # ephemeral
    conn, info = create_connection("sqlite:///fleet.db", init_schema=True)

    print(info)
    # ConnectionInfo(backend='sqlite', persistent=True, path='/abs/fleet.db')

``create_connection()`` returns ``(conn, ConnectionInfo)``; ``conn``
satisfies the ``Connection`` protocol.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from fleet.core.errors import ConfigError
from fleet.core.logging import get_logger

logger = get_logger(__name__)


# ── ConnectionInfo ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class ConnectionInfo:
    """Metadata about a database connection."""

    backend: str
    """Backend identifier (``"sqlite"``)."""

    persistent: bool
    """Whether data survives process exit."""

    url: str
    """The original URL or path used to create the connection."""

    resolved_path: str | None = None
    """For file-based SQLite, the resolved absolute path."""

    def __repr__(self) -> str:
        parts = [f"backend={self.backend!r}", f"persistent={self.persistent}"]
        if self.resolved_path:
            parts.append(f"path={self.resolved_path!r}")
        else:
            parts.append(f"url={self.url!r}")
        return f"ConnectionInfo({', '.join(parts)})"


# ── Backends ─────────────────────────────────────────────────────────────


def _create_sqlite_memory() -> tuple[Any, ConnectionInfo]:
    """Create an in-memory SQLite connection."""
    from fleet.ops.sqlite_conn import SqliteConnection

    conn = SqliteConnection(":memory:")
    return conn, ConnectionInfo(backend="sqlite", persistent=False, url=":memory:")


def _create_sqlite_file(path_str: str) -> tuple[Any, ConnectionInfo]:
    """Create a file-based SQLite connection."""
    from fleet.ops.sqlite_conn import SqliteConnection

    path = Path(path_str)
    path.parent.mkdir(parents=True, exist_ok=True)
    resolved = str(path.resolve())

    conn = SqliteConnection(resolved)
    info = ConnectionInfo(
        backend="sqlite",
        persistent=True,
        url=path_str,
        resolved_path=resolved,
    )
    return conn, info


# ── URL parsing ──────────────────────────────────────────────────────────


def _parse_url(db: str | None) -> tuple[str, str]:
    """Parse a database URL into ``(scheme, target)``.

    ``scheme`` is one of ``"memory"``, ``"sqlite"``, ``"file"``.
    """
    if db is None or db in ("", "memory", ":memory:"):
        return "memory", ":memory:"

    for prefix in ("sqlite:///", "sqlite://"):
        if db.startswith(prefix):
            path = db[len(prefix):]
            if not path or path == ":memory:":
                return "memory", ":memory:"
            return "sqlite", path

    if "://" in db:
        raise ConfigError(f"Unsupported database URL scheme: {db.split('://', 1)[0]!r}")

    # Bare file path
    return "file", db


# ── Main factory ─────────────────────────────────────────────────────────


def create_connection(
    db: str | None = None,
    *,
    init_schema: bool = False,
    data_dir: str | Path | None = None,
) -> tuple[Any, ConnectionInfo]:
    """Create a database connection from a URL, path, or keyword.

    Parameters
    ----------
    db:
        ``None`` / ``"memory"`` for in-memory SQLite, a file path, or a
        ``sqlite:///`` URL.
    init_schema:
        If ``True``, create the fleet tables (idempotent).
    data_dir:
        Directory that relative SQLite paths are resolved against.

    Raises
    ------
    ConfigError
        For URL schemes other than SQLite.
    """
    scheme, target = _parse_url(db)

    if scheme == "memory":
        conn, info = _create_sqlite_memory()
    else:
        if data_dir and not Path(target).is_absolute():
            target = str(Path(data_dir) / target)
        conn, info = _create_sqlite_file(target)

    if init_schema:
        from fleet.core.schema import create_tables

        tables = create_tables(conn)
        logger.debug("schema_initialized", tables=tables, backend=info.backend)

    return conn, info


__all__ = ["ConnectionInfo", "create_connection"]
