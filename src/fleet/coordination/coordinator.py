"""
Coordinator facade.

Wires the engine components around a single :class:`FleetStore` and exposes
the operations the transport calls.  A coordinator is cheap; build one per
request from the request's store handle.

Architecture:
    ::

        Coordinator(store, clock, policy)
        ├── liveness    LivenessTracker
        ├── resolver    WorkerIdentityResolver
        ├── rollup      RollupAggregator
        ├── leases      LeaseManager
        ├── ingestor    ProgressIngestor
        └── reconciler  ReconciliationEngine

        heartbeat ─────────▶ resolver
        claim ─────────────▶ leases ──▶ resolver
        report_progress ───▶ ingestor ──▶ resolver, leases, rollup
        assignment_status ─▶ reconciler (──▶ leases when write-back is on)
        delete_worker ─────▶ leases.unassign, then delete the session row

Nothing here commits; the caller owns the transaction boundary.

Tags:
    coordinator, facade, fleet-coordination
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from fleet.core.clock import Clock, SystemClock
from fleet.core.errors import FleetError, SessionNotFoundError, StudyNotFoundError
from fleet.core.logging import get_logger
from fleet.core.models import (
    Assignment,
    HardwareInfo,
    LiveState,
    SuperStudy,
    WorkerSession,
    WorkerStatus,
)
from fleet.core.settings import CoordinationPolicy
from fleet.core.store import FleetStore
from fleet.coordination.identity import Resolution, WorkerIdentityResolver
from fleet.coordination.leases import ClaimResult, LeaseManager, UnassignResult
from fleet.coordination.liveness import LivenessTracker
from fleet.coordination.progress import IngestResult, ProgressIngestor
from fleet.coordination.reconcile import ReconciliationEngine, StudyReconciliation
from fleet.coordination.reports import Report, parse_report
from fleet.coordination.rollup import RollupAggregator

logger = get_logger(__name__)


@dataclass
class ActiveSession:
    """Active-session lookup by network identifier."""

    session: WorkerSession
    running: list[Assignment] = field(default_factory=list)
    is_offline: bool = False


@dataclass
class WorkerStatusView:
    """A session with its live state and computed liveness flags."""

    session: WorkerSession
    live_state: LiveState | None
    is_stale: bool
    is_offline: bool
    running: list[Assignment] = field(default_factory=list)


@dataclass
class StudyAssignments:
    """Reconciled assignment listing for one study."""

    study: SuperStudy
    reconciliation: StudyReconciliation


class Coordinator:
    """Engine entry point bound to one store handle."""

    def __init__(
        self,
        store: FleetStore,
        clock: Clock | None = None,
        policy: CoordinationPolicy | None = None,
    ) -> None:
        self.store = store
        self.clock = clock or SystemClock()
        self.policy = policy or CoordinationPolicy()
        self.liveness = LivenessTracker(store, self.clock, self.policy)
        self.resolver = WorkerIdentityResolver(store, self.clock, self.policy, self.liveness)
        self.rollup = RollupAggregator(store, self.clock)
        self.leases = LeaseManager(store, self.clock, self.resolver, self.rollup)
        self.ingestor = ProgressIngestor(
            store, self.clock, self.policy, self.resolver, self.leases, self.rollup
        )
        self.reconciler = ReconciliationEngine(
            store, self.clock, self.policy, self.liveness, self.leases
        )

    # -- contacts --------------------------------------------------------------

    def heartbeat(
        self,
        network_id: str,
        hostname: str | None = None,
        hardware: HardwareInfo | None = None,
    ) -> Resolution:
        """Attribute a heartbeat to a session and stamp it."""
        resolution = self.resolver.resolve(network_id, hostname, hardware)
        logger.debug(
            "heartbeat",
            session_id=resolution.session.id,
            outcome=resolution.outcome.value,
            transferred=len(resolution.transferred),
        )
        return resolution

    def claim(self, assignment_id: str, network_id: str, *, hostname: str | None = None) -> ClaimResult:
        return self.leases.claim(assignment_id, network_id, hostname=hostname)

    def report_progress(
        self,
        network_id: str,
        report: Report | dict[str, Any],
        *,
        hostname: str | None = None,
        timestamp: datetime | None = None,
    ) -> IngestResult:
        """Apply a progress report.  Wire-form dicts are parsed first."""
        if isinstance(report, dict):
            report = parse_report(report)
        return self.ingestor.ingest(network_id, report, hostname=hostname, timestamp=timestamp)

    def register_worker(
        self,
        network_id: str,
        *,
        hostname: str | None = None,
        machine_label: str | None = None,
        hardware: HardwareInfo | None = None,
    ) -> WorkerSession:
        """Resolve a session for *network_id* and record its label."""
        session = self.resolver.resolve(network_id, hostname, hardware).session
        if machine_label is not None and machine_label != session.machine_label:
            self.store.workers.update_fields(session.id, machine_label=machine_label)
            session.machine_label = machine_label
        return session

    # -- reads -----------------------------------------------------------------

    def lookup_active(self, network_id: str) -> ActiveSession | None:
        """Active session for *network_id*, its running leases and presence.

        When the session has been silent past ``offline_after`` its duty is
        persisted as OFFLINE (best-effort).  The next contact restores it.
        """
        session = self.store.workers.find_active_by_network(network_id)
        if session is None:
            return None
        running = self.store.assignments.list_running_for_worker(session.id)
        offline = self.liveness.is_offline(session)
        if offline and session.status != WorkerStatus.OFFLINE:
            try:
                self.store.workers.update_fields(session.id, status=WorkerStatus.OFFLINE)
                session.status = WorkerStatus.OFFLINE
            except FleetError as exc:
                logger.warning("offline_flag_failed", session_id=session.id, error=str(exc))
        return ActiveSession(session, running, offline)

    def worker_status(self, session_id: str) -> WorkerStatusView:
        """Session plus live state.  Read-only.

        Raises:
            SessionNotFoundError: If the session does not exist.
        """
        session = self.store.workers.get_by_id(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        running = self.store.assignments.list_running_for_worker(session.id)
        now = self.clock.now()
        return WorkerStatusView(
            session=session,
            live_state=self.store.live_states.get(session.id),
            is_stale=session.is_stale
            or self.liveness.is_expired(session, now=now, holds_running_lease=bool(running)),
            is_offline=self.liveness.is_offline(session, now=now),
            running=running,
        )

    def assignment_status(self, study_id: str) -> StudyAssignments:
        """Reconciled view of every assignment in a study.

        Raises:
            StudyNotFoundError: If the study does not exist.
        """
        study = self.store.studies.get_by_id(study_id)
        if study is None:
            raise StudyNotFoundError(study_id)
        reconciliation = self.reconciler.reconcile_study(study_id)
        if reconciliation.repairs_applied:
            study = self.store.studies.get_by_id(study_id) or study
        return StudyAssignments(study, reconciliation)

    # -- removal ---------------------------------------------------------------

    def delete_worker(self, session_id: str) -> UnassignResult:
        """Release the session's assignments, then delete the session.

        Its live state and audit events are removed with it.

        Raises:
            SessionNotFoundError: If the session does not exist.
        """
        result = self.leases.unassign(session_id)
        self.store.workers.delete(session_id)
        logger.info("session_deleted", session_id=session_id, released=len(result.released))
        return result


__all__ = [
    "ActiveSession",
    "Coordinator",
    "StudyAssignments",
    "WorkerStatusView",
]
