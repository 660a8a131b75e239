"""
Typed response objects for operations.

Each dataclass represents the *output* of a single operation beyond the
generic :class:`OperationResult` envelope.  Responses carry only domain
data (enums flattened to their values) with no HTTP status codes.
The ``from_*`` constructors map engine models onto these shapes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from fleet.core.models import Assignment, LiveState, ProgressEvent, SuperStudy, WorkerSession
from fleet.coordination.reconcile import Reconciled

# ------------------------------------------------------------------ #
# Sessions
# ------------------------------------------------------------------ #


@dataclass(frozen=True, slots=True)
class SessionSummary:
    """A worker session as exposed to callers."""

    session_id: str
    network_id: str
    status: str
    is_stale: bool
    is_provisional: bool
    last_seen: datetime
    created_at: datetime
    hostname: str | None = None
    machine_label: str | None = None
    gpu_name: str | None = None
    cpu_cores: int | None = None
    total_ram_gb: float | None = None

    @classmethod
    def from_session(cls, session: WorkerSession) -> SessionSummary:
        return cls(
            session_id=session.id,
            network_id=session.network_id,
            status=session.status.value,
            is_stale=session.is_stale,
            is_provisional=session.is_provisional,
            last_seen=session.last_seen,
            created_at=session.created_at,
            hostname=session.hostname,
            machine_label=session.machine_label,
            gpu_name=session.gpu_name,
            cpu_cores=session.cpu_cores,
            total_ram_gb=session.total_ram_gb,
        )


@dataclass(frozen=True, slots=True)
class HeartbeatResult:
    """Result payload for :func:`fleet.ops.workers.heartbeat`.

    ``outcome`` is one of ``reused``, ``adopted_placeholder``,
    ``adopted_hostname`` or ``created``.
    """

    session: SessionSummary
    outcome: str
    superseded: list[str] = field(default_factory=list)
    transferred: list[str] = field(default_factory=list)


# ------------------------------------------------------------------ #
# Assignments
# ------------------------------------------------------------------ #


@dataclass(frozen=True, slots=True)
class AssignmentView:
    """Stored (or reconciled) state of one assignment."""

    assignment_id: str
    super_study_id: str
    index: int
    status: str
    progress: float
    worker_id: str | None = None
    current_stage: str | None = None
    eta: datetime | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    config: dict[str, Any] | None = None

    @classmethod
    def from_assignment(cls, a: Assignment) -> AssignmentView:
        return cls(
            assignment_id=a.id,
            super_study_id=a.super_study_id,
            index=a.index,
            status=a.status.value,
            progress=a.progress,
            worker_id=a.worker_id,
            current_stage=a.current_stage,
            eta=a.eta,
            started_at=a.started_at,
            completed_at=a.completed_at,
            config=a.config,
        )


@dataclass(frozen=True, slots=True)
class ClaimResult:
    """Result payload for :func:`fleet.ops.assignments.claim_assignment`."""

    assignment: AssignmentView
    session_id: str
    previous_worker_id: str | None = None


@dataclass(frozen=True, slots=True)
class ReconciledAssignmentView:
    """An assignment after read-time reconciliation.

    ``stored_status`` is what the store holds; ``assignment.status`` is the
    derived status.  ``drifted`` is set when the two views disagree.
    """

    assignment: AssignmentView
    stored_status: str
    drifted: bool = False
    worker: SessionSummary | None = None
    worker_is_stale: bool = False

    @classmethod
    def from_reconciled(cls, r: Reconciled) -> ReconciledAssignmentView:
        return cls(
            assignment=AssignmentView.from_assignment(r.assignment),
            stored_status=r.stored_status.value,
            drifted=r.drifted,
            worker=SessionSummary.from_session(r.worker) if r.worker is not None else None,
            worker_is_stale=r.worker_is_stale,
        )


# ------------------------------------------------------------------ #
# Progress
# ------------------------------------------------------------------ #


@dataclass(frozen=True, slots=True)
class LogEntryView:
    message: str
    log_type: str
    timestamp: datetime


@dataclass(frozen=True, slots=True)
class LiveStateView:
    """Most recent progress state of a session."""

    worker_id: str
    stage: str
    progress: float
    stage_progress: float
    status: str
    warning_count: int
    error_count: int
    updated_at: datetime
    eta: datetime | None = None
    log: list[LogEntryView] = field(default_factory=list)

    @classmethod
    def from_state(cls, state: LiveState) -> LiveStateView:
        return cls(
            worker_id=state.worker_id,
            stage=state.stage,
            progress=state.progress,
            stage_progress=state.stage_progress,
            status=state.status.value,
            warning_count=state.warning_count,
            error_count=state.error_count,
            updated_at=state.updated_at,
            eta=state.eta,
            log=[LogEntryView(e.message, e.log_type, e.timestamp) for e in state.log],
        )


@dataclass(frozen=True, slots=True)
class ProgressAck:
    """Result payload for :func:`fleet.ops.progress.report_progress`."""

    session_id: str
    report_type: str
    live_state: LiveStateView
    assignment: AssignmentView | None = None


# ------------------------------------------------------------------ #
# Worker reads
# ------------------------------------------------------------------ #


@dataclass(frozen=True, slots=True)
class ActiveSessionResult:
    """Result payload for :func:`fleet.ops.workers.lookup_active_session`."""

    session: SessionSummary
    is_offline: bool
    running: list[AssignmentView] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class WorkerStatusResult:
    """Result payload for :func:`fleet.ops.workers.get_worker_status`."""

    session: SessionSummary
    is_stale: bool
    is_offline: bool
    live_state: LiveStateView | None = None
    running: list[AssignmentView] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class WorkerSummary:
    """List item for :func:`fleet.ops.workers.list_workers`."""

    session: SessionSummary
    assignments: list[AssignmentView] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class DeleteWorkerResult:
    """Result payload for :func:`fleet.ops.workers.delete_worker`."""

    session_id: str
    released: list[str] = field(default_factory=list)
    studies: list[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class WorkerEventView:
    """One audit trail entry."""

    event_id: str
    worker_id: str
    event_type: str
    created_at: datetime
    message: str | None = None
    stage: str | None = None
    progress: float | None = None
    eta: datetime | None = None
    data: dict[str, Any] | None = None

    @classmethod
    def from_event(cls, e: ProgressEvent) -> WorkerEventView:
        return cls(
            event_id=e.id,
            worker_id=e.worker_id,
            event_type=e.event_type.value,
            created_at=e.created_at,
            message=e.message,
            stage=e.stage,
            progress=e.progress,
            eta=e.eta,
            data=e.data,
        )


# ------------------------------------------------------------------ #
# Studies
# ------------------------------------------------------------------ #


@dataclass(frozen=True, slots=True)
class StudySummary:
    """A super study with its derived rollup fields."""

    study_id: str
    name: str
    status: str
    total_assignments: int
    completed_assignments: int
    master_progress: float
    created_at: datetime
    updated_at: datetime
    description: str = ""
    base_config: dict[str, Any] | None = None

    @classmethod
    def from_study(cls, s: SuperStudy) -> StudySummary:
        return cls(
            study_id=s.id,
            name=s.name,
            status=s.status.value,
            total_assignments=s.total_assignments,
            completed_assignments=s.completed_assignments,
            master_progress=s.master_progress,
            created_at=s.created_at,
            updated_at=s.updated_at,
            description=s.description,
            base_config=s.base_config,
        )


@dataclass(frozen=True, slots=True)
class StudyDetail:
    """Result payload for study create/get: the study and its stored assignments."""

    study: StudySummary
    assignments: list[AssignmentView] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class AssignmentStatusResult:
    """Result payload for :func:`fleet.ops.studies.get_assignment_status`."""

    study: StudySummary
    assignments: list[ReconciledAssignmentView] = field(default_factory=list)
    drifted: int = 0
    repairs_applied: int = 0


@dataclass(frozen=True, slots=True)
class DeleteStudyResult:
    study_id: str
    deleted: bool = True


@dataclass(frozen=True, slots=True)
class RunningLeaseCheck:
    """Stored-state consistency check for one RUNNING assignment.

    Attributes:
        worker_has_this_assignment: The referenced session exists and this
            assignment is RUNNING under it.
        any_running_assignment_id: First RUNNING assignment the referenced
            session owns, in any study.
    """

    assignment_id: str
    index: int
    progress: float
    worker: SessionSummary | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    worker_has_this_assignment: bool = False
    worker_has_any_running_assignment: bool = False
    any_running_assignment_id: str | None = None


@dataclass(frozen=True, slots=True)
class StudyDiagnostics:
    """Result payload for :func:`fleet.ops.studies.get_study_diagnostics`.

    Reports the *stored* state without reconciliation.
    """

    study: StudySummary
    status_counts: dict[str, int] = field(default_factory=dict)
    running: list[RunningLeaseCheck] = field(default_factory=list)
