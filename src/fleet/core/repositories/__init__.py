"""Domain repositories for the fleet tables.

Each repository wraps one table (or a table and its child) behind typed
methods so the coordination engine never builds SQL itself.

Tags:
    fleet-core, repository

Doc-Types:
    api-reference
"""

from .assignments import AssignmentRepository
from .events import EventRepository
from .live_state import LiveStateRepository
from .studies import StudyRepository
from .workers import WorkerRepository

__all__ = [
    "AssignmentRepository",
    "EventRepository",
    "LiveStateRepository",
    "StudyRepository",
    "WorkerRepository",
]
