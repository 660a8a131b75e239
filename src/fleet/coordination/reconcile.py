"""
Read-time reconciliation.

Writes to assignments and sessions are partial and best-effort, so the
stored state drifts: a RUNNING assignment can point at a session that has
gone stale, crashed, finished without saying so, or reported a fatal
error.  Reconciliation derives the corrected view on every status read.

The decision logic is the pure function :func:`reconcile`: it takes an
:class:`AssignmentSnapshot` (the assignment, the worker it references, and
that worker's live successor) and returns a :class:`Reconciled` view plus
an optional :class:`RepairCommand` describing the write that would make the
store agree.  It never touches the store.

:class:`ReconciliationEngine` gathers snapshots for a study, runs the pure
function, and, only when ``policy.reconcile_write_back`` is set, hands
repairs to the lease manager.

Derivation rules for RUNNING assignments, first match wins::

    no resolvable worker                                   → PENDING
    worker fresh, duty IDLE, no other RUNNING assignment   → COMPLETED if completed_at else PENDING
    worker duty ERROR                                      → FAILED
    worker stale                                           → COMPLETED if completed_at else PENDING
    otherwise                                              → unchanged

Tags:
    reconciliation, self-healing, read-path, fleet-coordination
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from fleet.core.clock import Clock
from fleet.core.logging import get_logger
from fleet.core.models import Assignment, AssignmentStatus, WorkerSession, WorkerStatus
from fleet.core.settings import CoordinationPolicy
from fleet.core.store import FleetStore
from fleet.coordination.liveness import LivenessTracker

if TYPE_CHECKING:
    from fleet.coordination.leases import LeaseManager

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class WorkerView:
    """A session as seen by reconciliation.

    ``is_stale`` is the effective staleness (persisted flag or expired
    timeout); ``running_elsewhere`` counts RUNNING assignments the session
    owns besides the one being reconciled.
    """

    session: WorkerSession
    is_stale: bool
    running_elsewhere: int = 0

    @property
    def id(self) -> str:
        return self.session.id

    @property
    def status(self) -> WorkerStatus:
        return self.session.status


@dataclass(frozen=True, slots=True)
class AssignmentSnapshot:
    """Input to :func:`reconcile`.

    Attributes:
        assignment: Stored assignment.
        worker: View of the referenced session (``None`` if unreferenced
            or the row is gone).
        successor: View of the most-recently-seen non-stale session sharing
            the referenced session's network identifier, if any.
    """

    assignment: Assignment
    worker: WorkerView | None = None
    successor: WorkerView | None = None


@dataclass(frozen=True, slots=True)
class RepairCommand:
    """Write-back that brings the store in line with a reconciled view.

    ``status`` is the derived status; ``worker_id`` the resolved owner
    (``None`` when the lease is released).  ``expected_status`` and
    ``expected_worker_id`` are the stored values the repair was derived
    from; the repair is skipped if the row has moved on since.
    """

    assignment_id: str
    super_study_id: str
    status: AssignmentStatus
    worker_id: str | None
    expected_status: AssignmentStatus
    expected_worker_id: str | None


@dataclass(frozen=True, slots=True)
class Reconciled:
    """Reconciled view of one assignment."""

    assignment: Assignment
    stored_status: AssignmentStatus
    worker: WorkerSession | None = None
    worker_is_stale: bool = False
    repair: RepairCommand | None = None

    @property
    def status(self) -> AssignmentStatus:
        return self.assignment.status

    @property
    def drifted(self) -> bool:
        return self.repair is not None


def reconcile(snapshot: AssignmentSnapshot) -> Reconciled:
    """Derive the corrected view of one assignment.  Pure."""
    stored = snapshot.assignment

    # Worker resolution
    resolved = snapshot.worker
    if resolved is not None and resolved.is_stale and snapshot.successor is not None:
        resolved = snapshot.successor

    status = stored.status
    if stored.status == AssignmentStatus.RUNNING:
        status = _derive_running_status(stored, resolved)

    worker_id = resolved.id if resolved is not None else stored.worker_id
    if status == AssignmentStatus.PENDING:
        worker_id = None

    view = stored
    repair = None
    if status != stored.status or worker_id != stored.worker_id:
        view = _project(stored, status, worker_id)
        repair = RepairCommand(
            assignment_id=stored.id,
            super_study_id=stored.super_study_id,
            status=status,
            worker_id=worker_id,
            expected_status=stored.status,
            expected_worker_id=stored.worker_id,
        )

    return Reconciled(
        assignment=view,
        stored_status=stored.status,
        worker=resolved.session if resolved is not None and status != AssignmentStatus.PENDING else None,
        worker_is_stale=resolved.is_stale if resolved is not None else False,
        repair=repair,
    )


def _derive_running_status(stored: Assignment, worker: WorkerView | None) -> AssignmentStatus:
    finished_or_lost = (
        AssignmentStatus.COMPLETED if stored.completed_at is not None else AssignmentStatus.PENDING
    )
    if worker is None:
        return AssignmentStatus.PENDING
    if not worker.is_stale and worker.status == WorkerStatus.IDLE and worker.running_elsewhere == 0:
        return finished_or_lost
    if worker.status == WorkerStatus.ERROR:
        return AssignmentStatus.FAILED
    if worker.is_stale:
        return finished_or_lost
    return stored.status


def _project(stored: Assignment, status: AssignmentStatus, worker_id: str | None) -> Assignment:
    """Copy of *stored* carrying the derived status and owner."""
    if status == AssignmentStatus.PENDING:
        return Assignment(
            id=stored.id,
            super_study_id=stored.super_study_id,
            index=stored.index,
            status=status,
            config=stored.config,
        )
    progress = 100.0 if status == AssignmentStatus.COMPLETED else stored.progress
    return Assignment(
        id=stored.id,
        super_study_id=stored.super_study_id,
        index=stored.index,
        status=status,
        worker_id=worker_id,
        progress=progress,
        current_stage=stored.current_stage,
        eta=stored.eta,
        started_at=stored.started_at,
        completed_at=stored.completed_at,
        config=stored.config,
    )


@dataclass
class StudyReconciliation:
    """Reconciled assignments of one study plus the repairs derived."""

    study_id: str
    items: list[Reconciled] = field(default_factory=list)
    repairs_applied: int = 0

    @property
    def repairs(self) -> list[RepairCommand]:
        return [r.repair for r in self.items if r.repair is not None]


class ReconciliationEngine:
    """Builds snapshots from the store and reconciles them."""

    def __init__(
        self,
        store: FleetStore,
        clock: Clock,
        policy: CoordinationPolicy,
        liveness: LivenessTracker | None = None,
        leases: LeaseManager | None = None,
    ) -> None:
        self.store = store
        self.clock = clock
        self.policy = policy
        self.liveness = liveness or LivenessTracker(store, clock, policy)
        self.leases = leases

    def snapshot(self, assignment: Assignment) -> AssignmentSnapshot:
        """Gather the worker and successor views for *assignment*."""
        if assignment.worker_id is None:
            return AssignmentSnapshot(assignment)
        session = self.store.workers.get_by_id(assignment.worker_id)
        if session is None:
            return AssignmentSnapshot(assignment)
        worker = self._view(session, assignment.id)
        successor = None
        if worker.is_stale:
            candidate = self.store.workers.find_active_by_network(session.network_id)
            if candidate is not None and candidate.id != session.id:
                view = self._view(candidate, assignment.id)
                if not view.is_stale:
                    successor = view
        return AssignmentSnapshot(assignment, worker, successor)

    def reconcile_assignment(self, assignment: Assignment) -> Reconciled:
        return reconcile(self.snapshot(assignment))

    def reconcile_study(self, study_id: str) -> StudyReconciliation:
        """Reconcile every assignment of a study, in index order.

        Repairs are persisted only when write-back is enabled.
        """
        result = StudyReconciliation(study_id)
        for assignment in self.store.assignments.list_for_study(study_id):
            reconciled = self.reconcile_assignment(assignment)
            if reconciled.repair is not None:
                logger.info(
                    "assignment_drift",
                    assignment_id=assignment.id,
                    stored_status=assignment.status.value,
                    derived_status=reconciled.status.value,
                    stored_worker_id=assignment.worker_id,
                    resolved_worker_id=reconciled.repair.worker_id,
                )
            result.items.append(reconciled)

        if self.policy.reconcile_write_back and self.leases is not None:
            for repair in result.repairs:
                if self.leases.apply_repair(repair, recompute=False):
                    result.repairs_applied += 1
            if result.repairs_applied:
                self.leases.rollup.refresh(study_id)
        return result

    def _view(self, session: WorkerSession, assignment_id: str) -> WorkerView:
        running_elsewhere = self.store.assignments.count_running_for_worker(
            session.id, exclude_id=assignment_id
        )
        holds = self.store.assignments.count_running_for_worker(session.id) > 0
        stale = session.is_stale or self.liveness.is_expired(session, holds_running_lease=holds)
        return WorkerView(session, stale, running_elsewhere)


__all__ = [
    "AssignmentSnapshot",
    "Reconciled",
    "ReconciliationEngine",
    "RepairCommand",
    "StudyReconciliation",
    "WorkerView",
    "reconcile",
]
