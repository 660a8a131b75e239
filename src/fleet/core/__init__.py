"""Fleet Core -- storage, models, and shared primitives.

Architecture::

    Layer 1 -- Type System & Errors
        errors.py          Structured error hierarchy (FleetError, TransientStoreError)
        models.py          Domain dataclasses and status enums
        protocols.py       Connection protocol
        timestamps.py      UUID generation + UTC helpers (stdlib-only)
        clock.py           Injectable time source (SystemClock, FrozenClock)

    Layer 2 -- Database & Storage
        dialect.py         SQL dialect abstraction
        connection.py      Connection factory (create_connection)
        repository.py      BaseRepository with dialect-aware helpers
        repositories/      Domain repositories (workers, assignments, ...)
        schema.py          DDL registry + create_tables()
        store.py           FleetStore handle passed to every component

    Layer 3 -- Ambient
        logging.py         structlog configuration
        settings.py        pydantic-settings + CoordinationPolicy
"""

from fleet.core.clock import Clock, FrozenClock, SystemClock
from fleet.core.errors import (
    FleetError,
    NotFoundError,
    TransientStoreError,
    ValidationError,
)
from fleet.core.models import (
    Assignment,
    AssignmentStatus,
    LiveState,
    StudyStatus,
    SuperStudy,
    WorkerSession,
    WorkerStatus,
)
from fleet.core.settings import CoordinationPolicy
from fleet.core.store import FleetStore

__all__ = [
    "Assignment",
    "AssignmentStatus",
    "Clock",
    "CoordinationPolicy",
    "FleetError",
    "FleetStore",
    "FrozenClock",
    "LiveState",
    "NotFoundError",
    "StudyStatus",
    "SuperStudy",
    "SystemClock",
    "TransientStoreError",
    "ValidationError",
    "WorkerSession",
    "WorkerStatus",
]
