"""
Workers router: register, list, inspect, audit and delete worker sessions.

Endpoints:
    POST   /workers                     Register or label a worker
    GET    /workers                     List sessions with their open assignments
    GET    /workers/{session_id}        Session with live state and liveness flags
    GET    /workers/{session_id}/events Audit trail (newest first)
    DELETE /workers/{session_id}        Release assignments and delete the session

Tags:
    fleet-core, api, workers, sessions
"""

from __future__ import annotations

from fastapi import APIRouter, Path, Query
from pydantic import BaseModel, Field

from fleet.api.deps import OpContext
from fleet.api.schemas.common import PagedResponse, SuccessResponse
from fleet.api.schemas.domains import (
    DeleteWorkerSchema,
    SessionSchema,
    WorkerEventSchema,
    WorkerStatusSchema,
    WorkerSummarySchema,
)
from fleet.api.utils import _dc, _handle_error, _page

router = APIRouter(prefix="/workers")


class RegisterWorkerBody(BaseModel):
    """Request body for registering a worker.

    Example:
        {"network_id": "10.0.4.17", "hostname": "render-07", "machine_label": "Rack B / slot 7"}
    """

    network_id: str = Field(default="", description="Network identifier the worker is reachable at")
    hostname: str | None = None
    machine_label: str | None = Field(default=None, description="Operator-facing display name")
    gpu_name: str | None = None
    cpu_cores: int | None = Field(default=None, ge=0)
    total_ram_gb: float | None = Field(default=None, ge=0)


@router.post("", response_model=SuccessResponse[SessionSchema])
def register_worker(ctx: OpContext, body: RegisterWorkerBody):
    """Resolve a session for the worker (as a heartbeat would) and set its label."""
    from fleet.ops.requests import RegisterWorkerRequest
    from fleet.ops.workers import register_worker as _register

    result = _register(
        ctx,
        RegisterWorkerRequest(
            network_id=body.network_id,
            hostname=body.hostname,
            machine_label=body.machine_label,
            gpu_name=body.gpu_name,
            cpu_cores=body.cpu_cores,
            total_ram_gb=body.total_ram_gb,
        ),
    )
    if not result.success:
        return _handle_error(result, instance="/workers")
    return SuccessResponse(
        data=SessionSchema(**_dc(result.data)),
        elapsed_ms=result.elapsed_ms,
        warnings=result.warnings,
    )


@router.get("", response_model=PagedResponse[WorkerSummarySchema])
def list_workers(
    ctx: OpContext,
    include_stale: bool = Query(False, description="Include superseded/timed-out sessions"),
    network_id: str | None = Query(None, description="Filter by network identifier"),
    limit: int = Query(50, ge=1, le=500, description="Maximum items to return (1-500)"),
    offset: int = Query(0, ge=0, description="Pagination offset"),
):
    """List sessions, most recently seen first, with their PENDING/RUNNING assignments."""
    from fleet.ops.requests import ListWorkersRequest
    from fleet.ops.workers import list_workers as _list

    result = _list(
        ctx,
        ListWorkersRequest(
            include_stale=include_stale,
            network_id=network_id,
            limit=limit,
            offset=offset,
        ),
    )
    if not result.success:
        return _handle_error(result, instance="/workers")
    return PagedResponse(
        data=[WorkerSummarySchema(**_dc(w)) for w in result.data or []],
        page=_page(result),
        elapsed_ms=result.elapsed_ms,
        warnings=result.warnings,
    )


@router.get("/{session_id}", response_model=SuccessResponse[WorkerStatusSchema])
def get_worker(
    ctx: OpContext,
    session_id: str = Path(..., description="Worker session id"),
):
    """Return a session with its live state.

    ``is_stale`` includes sessions whose timeout has expired but that have
    not yet been flagged in the store.

    Raises:
        404 NOT_FOUND: Unknown session.
    """
    from fleet.ops.workers import get_worker_status

    result = get_worker_status(ctx, session_id)
    if not result.success:
        return _handle_error(result, instance=f"/workers/{session_id}")
    return SuccessResponse(
        data=WorkerStatusSchema(**_dc(result.data)),
        elapsed_ms=result.elapsed_ms,
        warnings=result.warnings,
    )


@router.get("/{session_id}/events", response_model=PagedResponse[WorkerEventSchema])
def list_worker_events(
    ctx: OpContext,
    session_id: str = Path(..., description="Worker session id"),
    event_type: str | None = Query(None, description="Filter by event type, e.g. 'LOG'"),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
):
    """Return the session's audit trail, newest first.

    Raises:
        400 VALIDATION_FAILED: Unknown ``event_type``.
        404 NOT_FOUND: Unknown session.
    """
    from fleet.ops.requests import ListWorkerEventsRequest
    from fleet.ops.workers import list_worker_events as _events

    result = _events(
        ctx,
        ListWorkerEventsRequest(
            session_id=session_id,
            event_type=event_type,
            limit=limit,
            offset=offset,
        ),
    )
    if not result.success:
        return _handle_error(result, instance=f"/workers/{session_id}/events")
    return PagedResponse(
        data=[WorkerEventSchema(**_dc(e)) for e in result.data or []],
        page=_page(result),
        elapsed_ms=result.elapsed_ms,
        warnings=result.warnings,
    )


@router.delete("/{session_id}", response_model=SuccessResponse[DeleteWorkerSchema])
def delete_worker(
    ctx: OpContext,
    session_id: str = Path(..., description="Worker session id"),
    dry_run: bool = Query(False, description="Preview only, do not delete"),
):
    """Return the session's assignments to PENDING and delete the session.

    Its live state and audit events are removed with it.

    Raises:
        404 NOT_FOUND: Unknown session.
    """
    from fleet.ops.workers import delete_worker as _delete

    ctx.dry_run = dry_run
    result = _delete(ctx, session_id)
    if not result.success:
        return _handle_error(result, instance=f"/workers/{session_id}")
    return SuccessResponse(
        data=DeleteWorkerSchema(**_dc(result.data)),
        elapsed_ms=result.elapsed_ms,
        warnings=result.warnings,
    )
