"""
Worker operations.

Heartbeats, registration, listings, status reads, audit events and removal
of worker sessions.  Each function builds a :class:`Coordinator` from the
context, maps engine models onto :mod:`fleet.ops.responses` shapes, and
commits on success.
"""

from __future__ import annotations

from fleet.core.logging import get_logger
from fleet.core.models import AssignmentStatus, EventType, HardwareInfo
from fleet.ops.context import OperationContext
from fleet.ops.requests import (
    HeartbeatRequest,
    ListWorkerEventsRequest,
    ListWorkersRequest,
    RegisterWorkerRequest,
)
from fleet.ops.responses import (
    ActiveSessionResult,
    AssignmentView,
    DeleteWorkerResult,
    HeartbeatResult,
    LiveStateView,
    SessionSummary,
    WorkerEventView,
    WorkerStatusResult,
    WorkerSummary,
)
from fleet.ops.result import OperationResult, PagedResult, start_timer

logger = get_logger(__name__)

# Assignment states shown alongside each session in listings
_LISTED_STATUSES = [AssignmentStatus.PENDING, AssignmentStatus.RUNNING]


def _hardware(request: HeartbeatRequest | RegisterWorkerRequest) -> HardwareInfo | None:
    hw = HardwareInfo(request.gpu_name, request.cpu_cores, request.total_ram_gb)
    return None if hw.is_empty() else hw


def heartbeat(
    ctx: OperationContext,
    request: HeartbeatRequest,
) -> OperationResult[HeartbeatResult]:
    """Attribute a heartbeat to a session, creating or adopting one as needed."""
    timer = start_timer()

    if not request.network_id:
        return OperationResult.fail(
            "VALIDATION_FAILED",
            "network_id is required",
            elapsed_ms=timer.elapsed_ms,
        )

    try:
        resolution = ctx.coordinator().heartbeat(
            request.network_id, request.hostname, _hardware(request)
        )
        ctx.store.commit()
        return OperationResult.ok(
            HeartbeatResult(
                session=SessionSummary.from_session(resolution.session),
                outcome=resolution.outcome.value,
                superseded=list(resolution.superseded),
                transferred=list(resolution.transferred),
            ),
            elapsed_ms=timer.elapsed_ms,
        )
    except Exception as exc:
        return ctx.fail_with(exc, op="heartbeat", elapsed_ms=timer.elapsed_ms)


def lookup_active_session(
    ctx: OperationContext,
    network_id: str,
) -> OperationResult[ActiveSessionResult]:
    """Return the active session for *network_id* with its running leases."""
    timer = start_timer()

    if not network_id:
        return OperationResult.fail(
            "VALIDATION_FAILED",
            "network_id is required",
            elapsed_ms=timer.elapsed_ms,
        )

    try:
        active = ctx.coordinator().lookup_active(network_id)
        if active is None:
            return OperationResult.fail(
                "NOT_FOUND",
                f"No active session for network '{network_id}'",
                elapsed_ms=timer.elapsed_ms,
            )
        ctx.store.commit()
        return OperationResult.ok(
            ActiveSessionResult(
                session=SessionSummary.from_session(active.session),
                is_offline=active.is_offline,
                running=[AssignmentView.from_assignment(a) for a in active.running],
            ),
            elapsed_ms=timer.elapsed_ms,
        )
    except Exception as exc:
        return ctx.fail_with(exc, op="lookup_active_session", elapsed_ms=timer.elapsed_ms)


def register_worker(
    ctx: OperationContext,
    request: RegisterWorkerRequest,
) -> OperationResult[SessionSummary]:
    """Resolve a session for a worker and record its display label."""
    timer = start_timer()

    if not request.network_id:
        return OperationResult.fail(
            "VALIDATION_FAILED",
            "network_id is required",
            elapsed_ms=timer.elapsed_ms,
        )

    try:
        session = ctx.coordinator().register_worker(
            request.network_id,
            hostname=request.hostname,
            machine_label=request.machine_label,
            hardware=_hardware(request),
        )
        ctx.store.commit()
        return OperationResult.ok(SessionSummary.from_session(session), elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return ctx.fail_with(exc, op="register_worker", elapsed_ms=timer.elapsed_ms)


def list_workers(
    ctx: OperationContext,
    request: ListWorkersRequest,
) -> PagedResult[WorkerSummary]:
    """List sessions, newest contact first, with their open assignments."""
    timer = start_timer()

    try:
        sessions, total = ctx.store.workers.list_workers(
            include_stale=request.include_stale,
            network_id=request.network_id,
            limit=request.limit,
            offset=request.offset,
        )
        by_worker: dict[str, list[AssignmentView]] = {s.id: [] for s in sessions}
        for assignment in ctx.store.assignments.list_for_workers(
            list(by_worker), statuses=_LISTED_STATUSES
        ):
            by_worker[assignment.worker_id].append(AssignmentView.from_assignment(assignment))
        items = [
            WorkerSummary(SessionSummary.from_session(s), by_worker[s.id]) for s in sessions
        ]
        return PagedResult.from_items(
            items,
            total=total,
            limit=request.limit,
            offset=request.offset,
            elapsed_ms=timer.elapsed_ms,
        )
    except Exception as exc:
        return ctx.fail_with(
            exc, op="list_workers", elapsed_ms=timer.elapsed_ms, result_cls=PagedResult
        )


def get_worker_status(
    ctx: OperationContext,
    session_id: str,
) -> OperationResult[WorkerStatusResult]:
    """Return a session with its live state and computed liveness flags."""
    timer = start_timer()

    if not session_id:
        return OperationResult.fail(
            "VALIDATION_FAILED",
            "session_id is required",
            elapsed_ms=timer.elapsed_ms,
        )

    try:
        view = ctx.coordinator().worker_status(session_id)
        return OperationResult.ok(
            WorkerStatusResult(
                session=SessionSummary.from_session(view.session),
                is_stale=view.is_stale,
                is_offline=view.is_offline,
                live_state=LiveStateView.from_state(view.live_state) if view.live_state else None,
                running=[AssignmentView.from_assignment(a) for a in view.running],
            ),
            elapsed_ms=timer.elapsed_ms,
        )
    except Exception as exc:
        return ctx.fail_with(exc, op="get_worker_status", elapsed_ms=timer.elapsed_ms)


def delete_worker(
    ctx: OperationContext,
    session_id: str,
) -> OperationResult[DeleteWorkerResult]:
    """Release a session's assignments to PENDING and delete the session.

    With ``ctx.dry_run`` the assignments that would be released are
    reported and nothing is written.
    """
    timer = start_timer()

    if not session_id:
        return OperationResult.fail(
            "VALIDATION_FAILED",
            "session_id is required",
            elapsed_ms=timer.elapsed_ms,
        )

    try:
        if ctx.dry_run:
            if ctx.store.workers.get_by_id(session_id) is None:
                return OperationResult.fail(
                    "NOT_FOUND",
                    f"Session '{session_id}' not found",
                    elapsed_ms=timer.elapsed_ms,
                )
            owned = ctx.store.assignments.list_for_worker(session_id)
            logger.info("delete_worker_dry_run", session_id=session_id, would_release=len(owned))
            return OperationResult.ok(
                DeleteWorkerResult(
                    session_id=session_id,
                    released=[a.id for a in owned],
                    studies=list(dict.fromkeys(a.super_study_id for a in owned)),
                ),
                elapsed_ms=timer.elapsed_ms,
                metadata={"dry_run": True},
            )

        result = ctx.coordinator().delete_worker(session_id)
        ctx.store.commit()
        return OperationResult.ok(
            DeleteWorkerResult(
                session_id=result.session_id,
                released=[a.id for a in result.released],
                studies=result.studies,
            ),
            elapsed_ms=timer.elapsed_ms,
        )
    except Exception as exc:
        return ctx.fail_with(exc, op="delete_worker", elapsed_ms=timer.elapsed_ms)


def list_worker_events(
    ctx: OperationContext,
    request: ListWorkerEventsRequest,
) -> PagedResult[WorkerEventView]:
    """Return a session's audit trail, newest first."""
    timer = start_timer()

    if not request.session_id:
        return PagedResult.fail(
            "VALIDATION_FAILED",
            "session_id is required",
            elapsed_ms=timer.elapsed_ms,
        )

    event_type = None
    if request.event_type:
        try:
            event_type = EventType(request.event_type.upper())
        except ValueError:
            valid = ", ".join(e.value for e in EventType)
            return PagedResult.fail(
                "VALIDATION_FAILED",
                f"Unknown event_type '{request.event_type}' (expected one of {valid})",
                elapsed_ms=timer.elapsed_ms,
            )

    try:
        if ctx.store.workers.get_by_id(request.session_id) is None:
            return PagedResult.fail(
                "NOT_FOUND",
                f"Session '{request.session_id}' not found",
                elapsed_ms=timer.elapsed_ms,
            )
        events, total = ctx.store.events.list_for_worker(
            request.session_id,
            event_type=event_type,
            limit=request.limit,
            offset=request.offset,
        )
        return PagedResult.from_items(
            [WorkerEventView.from_event(e) for e in events],
            total=total,
            limit=request.limit,
            offset=request.offset,
            elapsed_ms=timer.elapsed_ms,
        )
    except Exception as exc:
        return ctx.fail_with(
            exc, op="list_worker_events", elapsed_ms=timer.elapsed_ms, result_cls=PagedResult
        )
