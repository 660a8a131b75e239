"""
Store handle for the coordination engine.

:class:`FleetStore` bundles one connection with the five fleet repositories.
It is constructed explicitly per request (or per test) and passed to every
coordination component's constructor; nothing in fleet keeps a module-level
store.

Architecture:
    ::

        FleetStore(conn)
        ├── .workers       WorkerRepository
        ├── .assignments   AssignmentRepository
        ├── .studies       StudyRepository
        ├── .live_states   LiveStateRepository
        ├── .events        EventRepository
        └── commit() / rollback()

Examples:
    >>> from fleet.core.store import FleetStore
    >>> store = FleetStore.in_memory()
    >>> store.workers.find_active_by_network("10.0.0.7") is None
    True

Tags:
    store, repository, dependency-injection, fleet-core
"""

from __future__ import annotations

from fleet.core.dialect import Dialect, SQLiteDialect
from fleet.core.protocols import Connection
from fleet.core.repositories import (
    AssignmentRepository,
    EventRepository,
    LiveStateRepository,
    StudyRepository,
    WorkerRepository,
)


class FleetStore:
    """Explicit handle over the backing store."""

    def __init__(self, conn: Connection, dialect: Dialect | None = None) -> None:
        self.conn = conn
        self.dialect: Dialect = dialect or SQLiteDialect()
        self.workers = WorkerRepository(conn, self.dialect)
        self.assignments = AssignmentRepository(conn, self.dialect)
        self.studies = StudyRepository(conn, self.dialect)
        self.live_states = LiveStateRepository(conn, self.dialect)
        self.events = EventRepository(conn, self.dialect)

    @classmethod
    def in_memory(cls) -> FleetStore:
        """Ephemeral SQLite store with the schema applied."""
        from fleet.core.connection import create_connection

        conn, _ = create_connection(None, init_schema=True)
        return cls(conn)

    def commit(self) -> None:
        self.conn.commit()

    def rollback(self) -> None:
        self.conn.rollback()

    def __repr__(self) -> str:
        return f"FleetStore({self.conn!r})"


__all__ = ["FleetStore"]
