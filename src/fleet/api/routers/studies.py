"""
Super-studies router: study CRUD, reconciled assignment status, diagnostics.

Endpoints:
    POST   /super-studies                            Create a study with its assignments
    GET    /super-studies                            List studies (optional name filter)
    GET    /super-studies/{study_id}                 Study with stored assignments
    DELETE /super-studies/{study_id}                 Delete a study and its assignments
    GET    /super-studies/{study_id}/assignments     Reconciled assignment status
    GET    /super-studies/{study_id}/diagnostics     Stored state and lease checks

Tags:
    fleet-core, api, studies, reconciliation
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Path, Query
from pydantic import BaseModel, ConfigDict, Field

from fleet.api.deps import OpContext
from fleet.api.schemas.common import PagedResponse, SuccessResponse
from fleet.api.schemas.domains import (
    AssignmentStatusSchema,
    DeleteStudySchema,
    StudyDetailSchema,
    StudyDiagnosticsSchema,
    StudySchema,
)
from fleet.api.utils import _dc, _handle_error, _page

router = APIRouter(prefix="/super-studies")


class AssignmentBody(BaseModel):
    config: dict[str, Any] | None = Field(default=None, description="Per-assignment configuration")


class CreateStudyBody(BaseModel):
    """Request body for creating a study.

    Accepts ``base_config`` or its camelCase alias ``baseConfig``.

    Example:
        {
            "name": "near_field_sweep",
            "description": "Frequency sweep, 4 splits",
            "base_config": {"solver": "fdtd"},
            "assignments": [{"config": {"split": 0}}, {"config": {"split": 1}}]
        }
    """

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(default="", description="Study name")
    description: str = ""
    base_config: dict[str, Any] | None = Field(default=None, alias="baseConfig")
    assignments: list[AssignmentBody] = Field(default_factory=list)


@router.post("", response_model=SuccessResponse[StudyDetailSchema], status_code=201)
def create_study(ctx: OpContext, body: CreateStudyBody):
    """Create a study and its assignments atomically.

    Assignments are indexed from 0 in request order and start PENDING.

    Raises:
        400 VALIDATION_FAILED: ``name`` missing.
    """
    from fleet.ops.requests import AssignmentSpec, CreateStudyRequest
    from fleet.ops.studies import create_study as _create

    result = _create(
        ctx,
        CreateStudyRequest(
            name=body.name,
            description=body.description,
            base_config=body.base_config,
            assignments=[AssignmentSpec(config=a.config) for a in body.assignments],
        ),
    )
    if not result.success:
        return _handle_error(result, instance="/super-studies")
    return SuccessResponse(
        data=StudyDetailSchema(**_dc(result.data)),
        elapsed_ms=result.elapsed_ms,
        warnings=result.warnings,
    )


@router.get("", response_model=PagedResponse[StudySchema])
def list_studies(
    ctx: OpContext,
    name: str | None = Query(None, description="Substring filter on study name"),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
):
    """List studies, newest first."""
    from fleet.ops.requests import ListStudiesRequest
    from fleet.ops.studies import list_studies as _list

    result = _list(ctx, ListStudiesRequest(name=name, limit=limit, offset=offset))
    if not result.success:
        return _handle_error(result, instance="/super-studies")
    return PagedResponse(
        data=[StudySchema(**_dc(s)) for s in result.data or []],
        page=_page(result),
        elapsed_ms=result.elapsed_ms,
        warnings=result.warnings,
    )


@router.get("/{study_id}", response_model=SuccessResponse[StudyDetailSchema])
def get_study(
    ctx: OpContext,
    study_id: str = Path(..., description="Study id"),
):
    """Return a study with its stored (unreconciled) assignments."""
    from fleet.ops.studies import get_study as _get

    result = _get(ctx, study_id)
    if not result.success:
        return _handle_error(result, instance=f"/super-studies/{study_id}")
    return SuccessResponse(
        data=StudyDetailSchema(**_dc(result.data)),
        elapsed_ms=result.elapsed_ms,
        warnings=result.warnings,
    )


@router.delete("/{study_id}", response_model=SuccessResponse[DeleteStudySchema])
def delete_study(
    ctx: OpContext,
    study_id: str = Path(..., description="Study id"),
    dry_run: bool = Query(False, description="Preview only, do not delete"),
):
    """Delete a study; its assignments are removed with it."""
    from fleet.ops.studies import delete_study as _delete

    ctx.dry_run = dry_run
    result = _delete(ctx, study_id)
    if not result.success:
        return _handle_error(result, instance=f"/super-studies/{study_id}")
    return SuccessResponse(
        data=DeleteStudySchema(**_dc(result.data)),
        elapsed_ms=result.elapsed_ms,
        warnings=result.warnings,
    )


@router.get("/{study_id}/assignments", response_model=SuccessResponse[AssignmentStatusSchema])
def get_assignment_status(
    ctx: OpContext,
    study_id: str = Path(..., description="Study id"),
):
    """Return every assignment of the study after reconciliation.

    RUNNING assignments whose worker went stale, finished silently or
    reported a fatal error are shown with their derived status.

    Raises:
        404 NOT_FOUND: Unknown study.
    """
    from fleet.ops.studies import get_assignment_status as _status

    result = _status(ctx, study_id)
    if not result.success:
        return _handle_error(result, instance=f"/super-studies/{study_id}/assignments")
    return SuccessResponse(
        data=AssignmentStatusSchema(**_dc(result.data)),
        elapsed_ms=result.elapsed_ms,
        warnings=result.warnings,
    )


@router.get("/{study_id}/diagnostics", response_model=SuccessResponse[StudyDiagnosticsSchema])
def get_study_diagnostics(
    ctx: OpContext,
    study_id: str = Path(..., description="Study id"),
):
    """Stored status counts and lease checks for each RUNNING assignment."""
    from fleet.ops.studies import get_study_diagnostics as _diagnostics

    result = _diagnostics(ctx, study_id)
    if not result.success:
        return _handle_error(result, instance=f"/super-studies/{study_id}/diagnostics")
    return SuccessResponse(
        data=StudyDiagnosticsSchema(**_dc(result.data)),
        elapsed_ms=result.elapsed_ms,
        warnings=result.warnings,
    )
