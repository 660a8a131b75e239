"""
Progress ingestion.

Merges one tagged report into the reporting session's :class:`LiveState`,
projects the result onto the session's RUNNING assignment, and hands
terminal reports to the lease manager.

Report handling::

    overall_progress{current,total}  progress = clamp(100*current/total)      duty → RUNNING
    stage_progress{name?,cur?,tot?}  stage, stage_progress (progress untouched) duty → RUNNING
    status{message,log_type?}        append to bounded log, bump counters
    profiler_update{eta_seconds}     eta = now + eta_seconds
    finished                         duty → IDLE, then LeaseManager.report_finished
    fatal_error                      duty → ERROR, then LeaseManager.report_fatal_error

Progress values are overwritten, never accumulated, so replaying a report
leaves the same state.  The rollup pass and the audit event are
best-effort: their failures become warnings on the result.

Tags:
    progress, ingestion, live-state, fleet-coordination
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime, timedelta

from fleet.core.clock import Clock
from fleet.core.errors import FleetError, ReportError
from fleet.core.logging import get_logger
from fleet.core.models import (
    Assignment,
    EventType,
    LiveState,
    LogEntry,
    ProgressEvent,
    WorkerSession,
    WorkerStatus,
)
from fleet.core.settings import CoordinationPolicy
from fleet.core.store import FleetStore
from fleet.core.timestamps import new_id
from fleet.coordination.identity import WorkerIdentityResolver
from fleet.coordination.leases import LeaseManager
from fleet.coordination.reports import (
    FatalError,
    Finished,
    OverallProgress,
    ProfilerUpdate,
    Report,
    StageProgress,
    StatusMessage,
    report_type,
)
from fleet.coordination.rollup import RollupAggregator

logger = get_logger(__name__)

WARNING_LOG_TYPES = frozenset({"warning", "highlight"})
ERROR_LOG_TYPES = frozenset({"error", "fatal"})

# Audit messages are truncated to this many characters
EVENT_MESSAGE_LIMIT = 500


def percent(current: float, total: float) -> float:
    """``100*current/total`` clamped to [0, 100]."""
    return max(0.0, min(100.0, 100.0 * current / total))


@dataclass
class IngestResult:
    """Outcome of one ingested report."""

    session: WorkerSession
    live_state: LiveState
    assignment: Assignment | None = None
    warnings: list[str] = field(default_factory=list)


class ProgressIngestor:
    """Applies progress reports for resolved sessions."""

    def __init__(
        self,
        store: FleetStore,
        clock: Clock,
        policy: CoordinationPolicy,
        resolver: WorkerIdentityResolver,
        leases: LeaseManager,
        rollup: RollupAggregator,
    ) -> None:
        self.store = store
        self.clock = clock
        self.policy = policy
        self.resolver = resolver
        self.leases = leases
        self.rollup = rollup

    def ingest(
        self,
        network_id: str,
        report: Report,
        *,
        hostname: str | None = None,
        timestamp: datetime | None = None,
    ) -> IngestResult:
        """Resolve the reporting session and apply *report* to it.

        Args:
            network_id: Network identifier of the reporting worker.
            report: Parsed report variant.
            hostname: Hostname, when the worker sends one.
            timestamp: Worker-side time of the report; used for log entries.
        """
        session = self.resolver.resolve(network_id, hostname).session
        now = self.clock.now()
        result = IngestResult(session, self._load_state(session.id, now))
        state = result.live_state

        duty = session.status
        projection: dict = {}
        match report:
            case OverallProgress(current=current, total=total):
                duty = WorkerStatus.RUNNING
                if total > 0:
                    state.progress = percent(current, total)
                    projection["progress"] = state.progress
                else:
                    self._warn(result, "overall_progress ignored: total must be positive", total=total)
            case StageProgress(name=name, current=current, total=total):
                duty = WorkerStatus.RUNNING
                if name:
                    state.stage = name
                    projection["current_stage"] = name
                if current is not None and total is not None and total > 0:
                    state.stage_progress = percent(current, total)
            case StatusMessage(message=message, log_type=log_type):
                self._append_log(state, LogEntry(message, log_type, timestamp or now))
            case ProfilerUpdate(eta_seconds=eta_seconds):
                try:
                    state.eta = now + timedelta(seconds=eta_seconds)
                except OverflowError as exc:
                    raise ReportError(f"eta_seconds out of range: {eta_seconds}") from exc
                projection["eta"] = state.eta
            case Finished():
                duty = WorkerStatus.IDLE
            case FatalError():
                duty = WorkerStatus.ERROR

        state.status = duty
        state.updated_at = now
        self.store.live_states.save(state)

        match report:
            case Finished():
                result.assignment = self.leases.report_finished(session.id)
                session.status = WorkerStatus.IDLE
            case FatalError():
                self.leases.report_fatal_error(session.id)
                session.status = WorkerStatus.ERROR
            case _:
                if duty != session.status:
                    self.store.workers.update_fields(session.id, status=duty)
                    session.status = duty
                result.assignment = self._project(session, projection, result)

        self._record_event(session, report, state, result)
        return result

    # -- internals -------------------------------------------------------------

    def _load_state(self, worker_id: str, now: datetime) -> LiveState:
        state = self.store.live_states.get(worker_id)
        if state is None:
            state = LiveState(worker_id=worker_id, updated_at=now)
        return state

    def _append_log(self, state: LiveState, entry: LogEntry) -> None:
        state.log.append(entry)
        overflow = len(state.log) - self.policy.log_capacity
        if overflow > 0:
            del state.log[:overflow]
        # All-time counters; eviction does not lower them
        if entry.log_type in WARNING_LOG_TYPES:
            state.warning_count += 1
        elif entry.log_type in ERROR_LOG_TYPES:
            state.error_count += 1

    def _project(self, session: WorkerSession, projection: dict, result: IngestResult) -> Assignment | None:
        """Copy the fields this report changed onto the session's RUNNING assignment."""
        running = self.store.assignments.list_running_for_worker(session.id)
        if not running:
            return None
        assignment = running[0]
        if projection:
            self.store.assignments.update_fields(assignment.id, **projection)
            for name, value in projection.items():
                setattr(assignment, name, value)
        if self.rollup.refresh(assignment.super_study_id) is None:
            result.warnings.append(f"rollup failed for study {assignment.super_study_id}")
        return assignment

    def _record_event(
        self,
        session: WorkerSession,
        report: Report,
        state: LiveState,
        result: IngestResult,
    ) -> None:
        match report:
            case OverallProgress():
                event_type, message = EventType.PROGRESS, None
            case StageProgress(name=name):
                event_type, message = EventType.STAGE_CHANGE, name
            case StatusMessage(message=text):
                event_type, message = EventType.LOG, text
            case ProfilerUpdate():
                event_type, message = EventType.ETA_UPDATE, None
            case Finished():
                event_type, message = EventType.FINISHED, None
            case FatalError(message=text):
                event_type, message = EventType.ERROR, text
        data = _report_data(report)
        if message is None:
            message = str(data)
        event = ProgressEvent(
            id=new_id(),
            worker_id=session.id,
            event_type=event_type,
            message=message[:EVENT_MESSAGE_LIMIT],
            stage=state.stage or None,
            progress=state.progress,
            eta=state.eta,
            data=data,
            created_at=self.clock.now(),
        )
        try:
            self.store.events.add(event)
        except FleetError as exc:
            self._warn(result, "progress event not recorded", error=str(exc))

    def _warn(self, result: IngestResult, message: str, **extra) -> None:
        logger.warning("ingest_warning", detail=message, session_id=result.session.id, **extra)
        result.warnings.append(message)


def _report_data(report: Report) -> dict:
    data = {"type": report_type(report)}
    for f in fields(report):
        value = getattr(report, f.name)
        if value is not None:
            data[f.name] = value
    return data


__all__ = ["IngestResult", "ProgressIngestor", "percent"]
