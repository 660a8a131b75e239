"""
Heartbeat router: worker liveness contacts and active-session lookup.

Endpoints:
    POST   /heartbeat                    Attribute a heartbeat to a session
    GET    /heartbeat?network_id=...     Active session for a network identifier

Tags:
    fleet-core, api, heartbeat, liveness
"""

from __future__ import annotations

from fastapi import APIRouter, Query
from pydantic import BaseModel, Field

from fleet.api.deps import OpContext
from fleet.api.schemas.common import SuccessResponse
from fleet.api.schemas.domains import ActiveSessionSchema, HeartbeatSchema
from fleet.api.utils import _dc, _handle_error

router = APIRouter(prefix="/heartbeat")


class HeartbeatBody(BaseModel):
    """Request body for a heartbeat.

    Example:
        {
            "network_id": "10.0.4.17",
            "hostname": "render-07",
            "gpu_name": "RTX 4090",
            "cpu_cores": 32,
            "total_ram_gb": 128
        }
    """

    network_id: str = Field(default="", description="Network identifier the worker is reachable at")
    hostname: str | None = Field(default=None, description="Self-reported machine name")
    gpu_name: str | None = None
    cpu_cores: int | None = Field(default=None, ge=0)
    total_ram_gb: float | None = Field(default=None, ge=0)


@router.post("", response_model=SuccessResponse[HeartbeatSchema])
def post_heartbeat(ctx: OpContext, body: HeartbeatBody):
    """Record a heartbeat.

    Reuses the worker's live session, adopts a claim placeholder or a
    recently-seen session with the same hostname, or creates a new session
    (transferring RUNNING leases from stale predecessors).

    Raises:
        400 VALIDATION_FAILED: ``network_id`` missing.
        503 TRANSIENT: Store unavailable; resend the heartbeat.
    """
    from fleet.ops.requests import HeartbeatRequest
    from fleet.ops.workers import heartbeat

    result = heartbeat(
        ctx,
        HeartbeatRequest(
            network_id=body.network_id,
            hostname=body.hostname,
            gpu_name=body.gpu_name,
            cpu_cores=body.cpu_cores,
            total_ram_gb=body.total_ram_gb,
        ),
    )
    if not result.success:
        return _handle_error(result, instance="/heartbeat")
    return SuccessResponse(
        data=HeartbeatSchema(**_dc(result.data)),
        elapsed_ms=result.elapsed_ms,
        warnings=result.warnings,
    )


@router.get("", response_model=SuccessResponse[ActiveSessionSchema])
def get_active_session(
    ctx: OpContext,
    network_id: str = Query("", description="Network identifier to look up"),
):
    """Return the active session for a network identifier.

    ``is_offline`` is set when the session has been silent past the offline
    threshold.

    Raises:
        400 VALIDATION_FAILED: ``network_id`` missing.
        404 NOT_FOUND: No non-stale session for the network identifier.
    """
    from fleet.ops.workers import lookup_active_session

    result = lookup_active_session(ctx, network_id)
    if not result.success:
        return _handle_error(result, instance="/heartbeat")
    return SuccessResponse(
        data=ActiveSessionSchema(**_dc(result.data)),
        elapsed_ms=result.elapsed_ms,
        warnings=result.warnings,
    )
