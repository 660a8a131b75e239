"""
Progress router: tagged progress reports from workers.

Endpoints:
    POST   /progress     Apply one progress report

Tags:
    fleet-core, api, progress
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from fastapi import APIRouter
from pydantic import BaseModel, Field

from fleet.api.deps import OpContext
from fleet.api.schemas.common import SuccessResponse
from fleet.api.schemas.domains import ProgressAckSchema
from fleet.api.utils import _dc, _handle_error

router = APIRouter(prefix="/progress")


class ProgressBody(BaseModel):
    """Request body for a progress report.

    ``report.type`` selects the variant: ``overall_progress``,
    ``stage_progress``, ``status``, ``profiler_update``, ``finished`` or
    ``fatal_error``.

    Example:
        {
            "network_id": "10.0.4.17",
            "report": {"type": "overall_progress", "current": 5, "total": 20}
        }
    """

    network_id: str = Field(default="", description="Network identifier of the reporting worker")
    report: dict[str, Any] = Field(default_factory=dict, description="Tagged report object")
    hostname: str | None = None
    timestamp: datetime | None = Field(default=None, description="Worker-side time of the report")


@router.post("", response_model=SuccessResponse[ProgressAckSchema])
def report_progress(ctx: OpContext, body: ProgressBody):
    """Apply a progress report to the worker's live state and RUNNING assignment.

    Raises:
        400 VALIDATION_FAILED: ``network_id`` missing or malformed report.
    """
    from fleet.ops.progress import report_progress as _report
    from fleet.ops.requests import ReportProgressRequest

    result = _report(
        ctx,
        ReportProgressRequest(
            network_id=body.network_id,
            report=body.report,
            hostname=body.hostname,
            timestamp=body.timestamp,
        ),
    )
    if not result.success:
        return _handle_error(result, instance="/progress")
    return SuccessResponse(
        data=ProgressAckSchema(**_dc(result.data)),
        elapsed_ms=result.elapsed_ms,
        warnings=result.warnings,
    )
