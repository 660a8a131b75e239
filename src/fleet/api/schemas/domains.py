"""
Domain-specific Pydantic schemas for the API layer.

These mirror the ops-layer dataclasses in :mod:`fleet.ops.responses` as
Pydantic models so they get JSON serialisation and OpenAPI schema
generation.  They are kept thin; the real types live in the ops layer.

Tags:
    fleet-core, api, schemas, domain-models
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

# ── Status values (documented) ───────────────────────────────────────────

WorkerStatusValue = Literal["IDLE", "RUNNING", "ERROR", "OFFLINE"]
"""
Worker duty status:

- ``IDLE``: Connected, no work in progress
- ``RUNNING``: Executing or holding a lease
- ``ERROR``: Reported a fatal error
- ``OFFLINE``: Silent past the offline threshold (restored on next contact)
"""

AssignmentStatusValue = Literal["PENDING", "RUNNING", "COMPLETED", "FAILED"]

StudyStatusValue = Literal["PENDING", "RUNNING", "COMPLETED"]

ResolutionOutcomeValue = Literal["reused", "adopted_placeholder", "adopted_hostname", "created"]


# ── Sessions ─────────────────────────────────────────────────────────────


class SessionSchema(BaseModel):
    """One connection epoch of a worker machine."""

    session_id: str
    network_id: str
    status: WorkerStatusValue
    is_stale: bool = Field(description="Superseded or timed out; never reused")
    is_provisional: bool = Field(description="Created by a claim and not yet confirmed by a heartbeat")
    last_seen: datetime
    created_at: datetime
    hostname: str | None = None
    machine_label: str | None = None
    gpu_name: str | None = None
    cpu_cores: int | None = None
    total_ram_gb: float | None = None


class HeartbeatSchema(BaseModel):
    """Session a heartbeat was attributed to."""

    session: SessionSchema
    outcome: ResolutionOutcomeValue
    superseded: list[str] = Field(default_factory=list, description="Session ids marked stale")
    transferred: list[str] = Field(
        default_factory=list, description="Assignment ids whose lease moved to this session"
    )


# ── Assignments ──────────────────────────────────────────────────────────


class AssignmentSchema(BaseModel):
    assignment_id: str
    super_study_id: str
    index: int
    status: AssignmentStatusValue
    progress: float
    worker_id: str | None = None
    current_stage: str | None = None
    eta: datetime | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    config: dict[str, Any] | None = None


class ClaimSchema(BaseModel):
    """Result of a claim.  ``previous_worker_id`` is set when a lease was overridden."""

    assignment: AssignmentSchema
    session_id: str
    previous_worker_id: str | None = None


class ReconciledAssignmentSchema(BaseModel):
    """An assignment after read-time reconciliation.

    ``assignment.status`` is the derived status; ``stored_status`` is what
    the store holds.
    """

    assignment: AssignmentSchema
    stored_status: AssignmentStatusValue
    drifted: bool = False
    worker: SessionSchema | None = None
    worker_is_stale: bool = False


# ── Progress ─────────────────────────────────────────────────────────────


class LogEntrySchema(BaseModel):
    message: str
    log_type: str
    timestamp: datetime


class LiveStateSchema(BaseModel):
    """Most recent progress state of a session.

    ``warning_count`` and ``error_count`` are all-time totals; they do not
    drop when old log entries are evicted.
    """

    worker_id: str
    stage: str
    progress: float
    stage_progress: float
    status: WorkerStatusValue
    warning_count: int
    error_count: int
    updated_at: datetime
    eta: datetime | None = None
    log: list[LogEntrySchema] = Field(default_factory=list)


class ProgressAckSchema(BaseModel):
    session_id: str
    report_type: str
    live_state: LiveStateSchema
    assignment: AssignmentSchema | None = None


# ── Worker reads ─────────────────────────────────────────────────────────


class ActiveSessionSchema(BaseModel):
    session: SessionSchema
    is_offline: bool
    running: list[AssignmentSchema] = Field(default_factory=list)


class WorkerStatusSchema(BaseModel):
    session: SessionSchema
    is_stale: bool
    is_offline: bool
    live_state: LiveStateSchema | None = None
    running: list[AssignmentSchema] = Field(default_factory=list)


class WorkerSummarySchema(BaseModel):
    """List item: a session with its PENDING/RUNNING assignments."""

    session: SessionSchema
    assignments: list[AssignmentSchema] = Field(default_factory=list)


class DeleteWorkerSchema(BaseModel):
    session_id: str
    released: list[str] = Field(default_factory=list, description="Assignment ids returned to PENDING")
    studies: list[str] = Field(default_factory=list, description="Studies whose rollup was recomputed")


class WorkerEventSchema(BaseModel):
    event_id: str
    worker_id: str
    event_type: Literal["PROGRESS", "STAGE_CHANGE", "LOG", "FINISHED", "ERROR", "ETA_UPDATE"]
    created_at: datetime
    message: str | None = None
    stage: str | None = None
    progress: float | None = None
    eta: datetime | None = None
    data: dict[str, Any] | None = None


# ── Studies ──────────────────────────────────────────────────────────────


class StudySchema(BaseModel):
    """A super study.  Counts, progress and status are derived."""

    study_id: str
    name: str
    status: StudyStatusValue
    total_assignments: int
    completed_assignments: int
    master_progress: float
    created_at: datetime
    updated_at: datetime
    description: str = ""
    base_config: dict[str, Any] | None = None


class StudyDetailSchema(BaseModel):
    study: StudySchema
    assignments: list[AssignmentSchema] = Field(default_factory=list)


class AssignmentStatusSchema(BaseModel):
    study: StudySchema
    assignments: list[ReconciledAssignmentSchema] = Field(default_factory=list)
    drifted: int = 0
    repairs_applied: int = 0


class DeleteStudySchema(BaseModel):
    study_id: str
    deleted: bool = True


class RunningLeaseCheckSchema(BaseModel):
    assignment_id: str
    index: int
    progress: float
    worker: SessionSchema | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    worker_has_this_assignment: bool = False
    worker_has_any_running_assignment: bool = False
    any_running_assignment_id: str | None = None


class StudyDiagnosticsSchema(BaseModel):
    """Stored (unreconciled) state of a study for debugging drift."""

    study: StudySchema
    status_counts: dict[str, int] = Field(default_factory=dict)
    running: list[RunningLeaseCheckSchema] = Field(default_factory=list)
