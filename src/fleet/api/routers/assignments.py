"""
Assignments router: lease claims.

Endpoints:
    POST   /assignments/{assignment_id}/claim   Lease an assignment to a worker

Tags:
    fleet-core, api, assignments, leases
"""

from __future__ import annotations

from fastapi import APIRouter, Path
from pydantic import BaseModel, Field

from fleet.api.deps import OpContext
from fleet.api.schemas.common import SuccessResponse
from fleet.api.schemas.domains import ClaimSchema
from fleet.api.utils import _dc, _handle_error

router = APIRouter(prefix="/assignments")


class ClaimBody(BaseModel):
    """Request body for claiming an assignment.

    Example:
        {"network_id": "10.0.4.17"}
    """

    network_id: str = Field(default="", description="Network identifier of the claiming worker")
    hostname: str | None = Field(default=None, description="Hostname, when the worker knows it")


@router.post("/{assignment_id}/claim", response_model=SuccessResponse[ClaimSchema])
def claim_assignment(
    ctx: OpContext,
    body: ClaimBody,
    assignment_id: str = Path(..., description="Assignment to claim"),
):
    """Claim an assignment.

    The assignment becomes RUNNING under the worker's session.  Claims do
    not check the current status; overriding an existing lease succeeds
    with a warning.

    Raises:
        400 VALIDATION_FAILED: ``network_id`` missing.
        404 NOT_FOUND: Unknown assignment.
    """
    from fleet.ops.assignments import claim_assignment as _claim
    from fleet.ops.requests import ClaimRequest

    result = _claim(
        ctx,
        ClaimRequest(
            assignment_id=assignment_id,
            network_id=body.network_id,
            hostname=body.hostname,
        ),
    )
    if not result.success:
        return _handle_error(result, instance=f"/assignments/{assignment_id}/claim")
    return SuccessResponse(
        data=ClaimSchema(**_dc(result.data)),
        elapsed_ms=result.elapsed_ms,
        warnings=result.warnings,
    )
