"""Coordination domain models.

Typed dataclasses for the fleet tables (see :mod:`fleet.core.schema`) so the
coordination, ops, and API layers work with structured objects instead of
raw dicts.  Each model converts from a repository row with ``from_row`` and
back with ``to_row``; timestamps travel as :class:`datetime` in memory and
as fixed-width ISO strings in the store.

Tags:
    fleet-core, models, dataclasses, schema-mapping

Doc-Types:
    api-reference, data-model
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from fleet.core.timestamps import from_iso8601, to_iso8601

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class WorkerStatus(str, Enum):
    """Duty status of a worker session."""

    IDLE = "IDLE"
    RUNNING = "RUNNING"
    ERROR = "ERROR"
    OFFLINE = "OFFLINE"


class AssignmentStatus(str, Enum):
    """Lifecycle status of an assignment."""

    PENDING = "PENDING"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class StudyStatus(str, Enum):
    """Derived status of a super study."""

    PENDING = "PENDING"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"


class EventType(str, Enum):
    """Audit trail event kinds."""

    PROGRESS = "PROGRESS"
    STAGE_CHANGE = "STAGE_CHANGE"
    LOG = "LOG"
    FINISHED = "FINISHED"
    ERROR = "ERROR"
    ETA_UPDATE = "ETA_UPDATE"


def _loads(value: str | None) -> Any:
    if value is None or value == "":
        return None
    return json.loads(value)


def _dumps(value: Any) -> str | None:
    if value is None:
        return None
    return json.dumps(value, default=str)


# ---------------------------------------------------------------------------
# fleet_workers
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class HardwareInfo:
    """Optional hardware descriptor reported with a heartbeat."""

    gpu_name: str | None = None
    cpu_cores: int | None = None
    total_ram_gb: float | None = None

    def is_empty(self) -> bool:
        return self.gpu_name is None and self.cpu_cores is None and self.total_ram_gb is None


@dataclass
class WorkerSession:
    """One connection epoch of a worker machine (``fleet_workers``)."""

    id: str
    network_id: str
    last_seen: datetime
    created_at: datetime
    hostname: str | None = None
    machine_label: str | None = None
    gpu_name: str | None = None
    cpu_cores: int | None = None
    total_ram_gb: float | None = None
    status: WorkerStatus = WorkerStatus.IDLE
    is_stale: bool = False
    is_provisional: bool = False

    @property
    def hardware(self) -> HardwareInfo:
        return HardwareInfo(self.gpu_name, self.cpu_cores, self.total_ram_gb)

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> WorkerSession:
        return cls(
            id=row["id"],
            network_id=row["network_id"],
            hostname=row.get("hostname"),
            machine_label=row.get("machine_label"),
            gpu_name=row.get("gpu_name"),
            cpu_cores=row.get("cpu_cores"),
            total_ram_gb=row.get("total_ram_gb"),
            status=WorkerStatus(row.get("status") or WorkerStatus.IDLE.value),
            is_stale=bool(row.get("is_stale")),
            is_provisional=bool(row.get("is_provisional")),
            last_seen=from_iso8601(row["last_seen"]),
            created_at=from_iso8601(row["created_at"]),
        )

    def to_row(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "network_id": self.network_id,
            "hostname": self.hostname,
            "machine_label": self.machine_label,
            "gpu_name": self.gpu_name,
            "cpu_cores": self.cpu_cores,
            "total_ram_gb": self.total_ram_gb,
            "status": self.status.value,
            "is_stale": 1 if self.is_stale else 0,
            "is_provisional": 1 if self.is_provisional else 0,
            "last_seen": to_iso8601(self.last_seen),
            "created_at": to_iso8601(self.created_at),
        }


# ---------------------------------------------------------------------------
# fleet_super_studies
# ---------------------------------------------------------------------------


@dataclass
class SuperStudy:
    """Named batch of assignments (``fleet_super_studies``).

    ``completed_assignments``, ``master_progress`` and ``status`` are derived
    by the rollup aggregator.
    """

    id: str
    name: str
    created_at: datetime
    updated_at: datetime
    description: str = ""
    base_config: dict[str, Any] | None = None
    total_assignments: int = 0
    completed_assignments: int = 0
    master_progress: float = 0.0
    status: StudyStatus = StudyStatus.PENDING

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> SuperStudy:
        return cls(
            id=row["id"],
            name=row["name"],
            description=row.get("description") or "",
            base_config=_loads(row.get("base_config_json")),
            total_assignments=row.get("total_assignments") or 0,
            completed_assignments=row.get("completed_assignments") or 0,
            master_progress=float(row.get("master_progress") or 0.0),
            status=StudyStatus(row.get("status") or StudyStatus.PENDING.value),
            created_at=from_iso8601(row["created_at"]),
            updated_at=from_iso8601(row["updated_at"]),
        )

    def to_row(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "base_config_json": _dumps(self.base_config),
            "total_assignments": self.total_assignments,
            "completed_assignments": self.completed_assignments,
            "master_progress": self.master_progress,
            "status": self.status.value,
            "created_at": to_iso8601(self.created_at),
            "updated_at": to_iso8601(self.updated_at),
        }


# ---------------------------------------------------------------------------
# fleet_assignments
# ---------------------------------------------------------------------------


@dataclass
class Assignment:
    """Unit of work inside a super study (``fleet_assignments``)."""

    id: str
    super_study_id: str
    index: int
    status: AssignmentStatus = AssignmentStatus.PENDING
    worker_id: str | None = None
    progress: float = 0.0
    current_stage: str | None = None
    eta: datetime | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    config: dict[str, Any] | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> Assignment:
        return cls(
            id=row["id"],
            super_study_id=row["super_study_id"],
            index=row["assignment_index"],
            status=AssignmentStatus(row.get("status") or AssignmentStatus.PENDING.value),
            worker_id=row.get("worker_id"),
            progress=float(row.get("progress") or 0.0),
            current_stage=row.get("current_stage"),
            eta=from_iso8601(row.get("eta")),
            started_at=from_iso8601(row.get("started_at")),
            completed_at=from_iso8601(row.get("completed_at")),
            config=_loads(row.get("config_json")),
        )

    def to_row(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "super_study_id": self.super_study_id,
            "assignment_index": self.index,
            "status": self.status.value,
            "worker_id": self.worker_id,
            "progress": self.progress,
            "current_stage": self.current_stage,
            "eta": to_iso8601(self.eta),
            "started_at": to_iso8601(self.started_at),
            "completed_at": to_iso8601(self.completed_at),
            "config_json": _dumps(self.config),
        }


# ---------------------------------------------------------------------------
# fleet_live_states
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class LogEntry:
    """One retained message in a live state's bounded log."""

    message: str
    log_type: str
    timestamp: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "log_type": self.log_type,
            "timestamp": to_iso8601(self.timestamp),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LogEntry:
        return cls(
            message=data.get("message", ""),
            log_type=data.get("log_type") or "default",
            timestamp=from_iso8601(data.get("timestamp")),
        )


@dataclass
class LiveState:
    """Per-session progress record (``fleet_live_states``).

    Mutated in place by progress ingestion and saved back as a whole row.
    """

    worker_id: str
    updated_at: datetime
    stage: str = ""
    progress: float = 0.0
    stage_progress: float = 0.0
    status: WorkerStatus = WorkerStatus.IDLE
    log: list[LogEntry] = field(default_factory=list)
    warning_count: int = 0
    error_count: int = 0
    eta: datetime | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> LiveState:
        return cls(
            worker_id=row["worker_id"],
            stage=row.get("stage") or "",
            progress=float(row.get("progress") or 0.0),
            stage_progress=float(row.get("stage_progress") or 0.0),
            status=WorkerStatus(row.get("status") or WorkerStatus.IDLE.value),
            log=[LogEntry.from_dict(e) for e in (_loads(row.get("log_json")) or [])],
            warning_count=row.get("warning_count") or 0,
            error_count=row.get("error_count") or 0,
            eta=from_iso8601(row.get("eta")),
            updated_at=from_iso8601(row["updated_at"]),
        )

    def to_row(self) -> dict[str, Any]:
        return {
            "worker_id": self.worker_id,
            "stage": self.stage,
            "progress": self.progress,
            "stage_progress": self.stage_progress,
            "status": self.status.value,
            "log_json": json.dumps([e.to_dict() for e in self.log]),
            "warning_count": self.warning_count,
            "error_count": self.error_count,
            "eta": to_iso8601(self.eta),
            "updated_at": to_iso8601(self.updated_at),
        }


# ---------------------------------------------------------------------------
# fleet_progress_events
# ---------------------------------------------------------------------------


@dataclass
class ProgressEvent:
    """Append-only audit row for one ingested report."""

    id: str
    worker_id: str
    event_type: EventType
    created_at: datetime
    message: str | None = None
    stage: str | None = None
    progress: float | None = None
    eta: datetime | None = None
    data: dict[str, Any] | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> ProgressEvent:
        return cls(
            id=row["id"],
            worker_id=row["worker_id"],
            event_type=EventType(row["event_type"]),
            message=row.get("message"),
            stage=row.get("stage"),
            progress=row.get("progress"),
            eta=from_iso8601(row.get("eta")),
            data=_loads(row.get("data_json")),
            created_at=from_iso8601(row["created_at"]),
        )

    def to_row(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "worker_id": self.worker_id,
            "event_type": self.event_type.value,
            "message": self.message,
            "stage": self.stage,
            "progress": self.progress,
            "eta": to_iso8601(self.eta),
            "data_json": _dumps(self.data),
            "created_at": to_iso8601(self.created_at),
        }


def to_plain(obj: Any) -> dict[str, Any]:
    """Convert a model to JSON-friendly primitives (enums → values, datetimes → ISO)."""

    def _convert(value: Any) -> Any:
        if isinstance(value, Enum):
            return value.value
        if isinstance(value, datetime):
            return to_iso8601(value)
        if isinstance(value, dict):
            return {k: _convert(v) for k, v in value.items()}
        if isinstance(value, list | tuple):
            return [_convert(v) for v in value]
        return value

    return _convert(asdict(obj))


__all__ = [
    "Assignment",
    "AssignmentStatus",
    "EventType",
    "HardwareInfo",
    "LiveState",
    "LogEntry",
    "ProgressEvent",
    "StudyStatus",
    "SuperStudy",
    "WorkerSession",
    "WorkerStatus",
    "to_plain",
]
