"""
Assignment lease management.

A lease is the association of a RUNNING assignment with the session
responsible for it.  Leases are taken by :meth:`LeaseManager.claim`, ended
by terminal reports, released by :meth:`LeaseManager.unassign`, and moved
between sessions by identity resolution (lease transfer) or by a
reconciliation repair.

Concurrency contract: there is no lock.  Two claims on one assignment race
and the last write wins; a claim never checks that the assignment was
PENDING.  Conflicts surface on the next reconciled read.

Tags:
    leases, assignments, claims, fleet-coordination
"""

from __future__ import annotations

from dataclasses import dataclass, field

from fleet.core.clock import Clock
from fleet.core.errors import AssignmentNotFoundError, SessionNotFoundError, ValidationError
from fleet.core.logging import get_logger
from fleet.core.models import (
    Assignment,
    AssignmentStatus,
    WorkerSession,
    WorkerStatus,
)
from fleet.core.store import FleetStore
from fleet.coordination.identity import Resolution, WorkerIdentityResolver
from fleet.coordination.reconcile import RepairCommand
from fleet.coordination.rollup import RollupAggregator

logger = get_logger(__name__)


@dataclass
class ClaimResult:
    assignment: Assignment
    session: WorkerSession
    resolution: Resolution
    previous_worker_id: str | None = None
    previous_status: AssignmentStatus | None = None

    @property
    def overrode_lease(self) -> bool:
        """True when a RUNNING lease held by another session was replaced."""
        return (
            self.previous_status == AssignmentStatus.RUNNING
            and self.previous_worker_id not in (None, self.session.id)
        )


@dataclass
class UnassignResult:
    """Assignments released by :meth:`LeaseManager.unassign`."""

    session_id: str
    released: list[Assignment] = field(default_factory=list)
    studies: list[str] = field(default_factory=list)


class LeaseManager:
    """Claims, completes, fails, releases and repairs assignment leases."""

    def __init__(
        self,
        store: FleetStore,
        clock: Clock,
        resolver: WorkerIdentityResolver,
        rollup: RollupAggregator,
    ) -> None:
        self.store = store
        self.clock = clock
        self.resolver = resolver
        self.rollup = rollup

    # -- claim -----------------------------------------------------------------

    def claim(
        self,
        assignment_id: str,
        network_id: str,
        *,
        hostname: str | None = None,
    ) -> ClaimResult:
        """Lease *assignment_id* to the session behind *network_id*.

        Raises:
            ValidationError: If an identifier is missing.
            AssignmentNotFoundError: If the assignment does not exist.
        """
        if not assignment_id:
            raise ValidationError("assignment_id is required")
        assignment = self.store.assignments.get_by_id(assignment_id)
        if assignment is None:
            raise AssignmentNotFoundError(assignment_id)

        resolution = self.resolver.resolve(network_id, hostname, provisional=True)
        session = resolution.session
        now = self.clock.now()

        previous = assignment.worker_id
        previous_status = assignment.status
        if previous_status == AssignmentStatus.RUNNING and previous not in (None, session.id):
            logger.warning(
                "lease_overridden",
                assignment_id=assignment_id,
                previous_worker_id=previous,
                session_id=session.id,
            )

        self.store.assignments.update_fields(
            assignment_id,
            status=AssignmentStatus.RUNNING,
            worker_id=session.id,
            started_at=now,
        )
        assignment.status = AssignmentStatus.RUNNING
        assignment.worker_id = session.id
        assignment.started_at = now

        if session.status != WorkerStatus.RUNNING:
            self.store.workers.update_fields(session.id, status=WorkerStatus.RUNNING)
            session.status = WorkerStatus.RUNNING

        self.rollup.refresh(assignment.super_study_id)

        logger.info(
            "assignment_claimed",
            assignment_id=assignment_id,
            session_id=session.id,
            network_id=network_id,
            study_id=assignment.super_study_id,
        )
        return ClaimResult(assignment, session, resolution, previous, previous_status)

    # -- terminal reports ------------------------------------------------------

    def report_finished(self, session_id: str) -> Assignment | None:
        """Complete the session's current RUNNING assignment, if any.

        Returns the completed assignment.

        Raises:
            SessionNotFoundError: If the session does not exist.
        """
        session = self._require_session(session_id)
        now = self.clock.now()
        completed = None

        running = self.store.assignments.list_running_for_worker(session.id)
        if running:
            completed = running[0]
            self.store.assignments.update_fields(
                completed.id,
                status=AssignmentStatus.COMPLETED,
                completed_at=now,
                progress=100.0,
            )
            completed.status = AssignmentStatus.COMPLETED
            completed.completed_at = now
            completed.progress = 100.0
            logger.info(
                "assignment_completed",
                assignment_id=completed.id,
                session_id=session.id,
                study_id=completed.super_study_id,
            )
            self.rollup.refresh(completed.super_study_id)

        self.store.workers.update_fields(session.id, status=WorkerStatus.IDLE)
        return completed

    def report_fatal_error(self, session_id: str) -> WorkerSession:
        """Flag the session ERROR.  Its assignment is left to reconciliation.

        Raises:
            SessionNotFoundError: If the session does not exist.
        """
        session = self._require_session(session_id)
        self.store.workers.update_fields(session.id, status=WorkerStatus.ERROR)
        session.status = WorkerStatus.ERROR
        logger.warning("session_fatal_error", session_id=session.id, network_id=session.network_id)
        return session

    # -- release ---------------------------------------------------------------

    def unassign(self, session_id: str) -> UnassignResult:
        """Release every assignment owned by the session back to PENDING.

        Every affected study is recomputed afterwards.

        Raises:
            SessionNotFoundError: If the session does not exist.
        """
        session = self._require_session(session_id)
        released = self.store.assignments.reset_for_worker(session.id)
        studies = list(dict.fromkeys(a.super_study_id for a in released))
        self.rollup.refresh_many(studies)
        logger.info(
            "session_unassigned",
            session_id=session.id,
            released=len(released),
            studies=studies,
        )
        return UnassignResult(session.id, released, studies)

    # -- repair ----------------------------------------------------------------

    def apply_repair(self, repair: RepairCommand, *, recompute: bool = True) -> bool:
        """Persist a reconciliation repair.

        Skipped (returns ``False``) when the stored row no longer matches
        the state the repair was derived from.
        """
        current = self.store.assignments.get_by_id(repair.assignment_id)
        if current is None or (
            current.status != repair.expected_status
            or current.worker_id != repair.expected_worker_id
        ):
            logger.debug("repair_skipped", assignment_id=repair.assignment_id)
            return False

        match repair.status:
            case AssignmentStatus.PENDING:
                self.store.assignments.reset(repair.assignment_id)
            case AssignmentStatus.COMPLETED:
                self.store.assignments.update_fields(
                    repair.assignment_id,
                    status=AssignmentStatus.COMPLETED,
                    worker_id=repair.worker_id,
                    progress=100.0,
                )
            case _:
                self.store.assignments.update_fields(
                    repair.assignment_id,
                    status=repair.status,
                    worker_id=repair.worker_id,
                )

        logger.info(
            "repair_applied",
            assignment_id=repair.assignment_id,
            status=repair.status.value,
            worker_id=repair.worker_id,
        )
        if recompute:
            self.rollup.refresh(repair.super_study_id)
        return True

    def _require_session(self, session_id: str) -> WorkerSession:
        if not session_id:
            raise ValidationError("session_id is required")
        session = self.store.workers.get_by_id(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session


__all__ = ["ClaimResult", "LeaseManager", "UnassignResult"]
