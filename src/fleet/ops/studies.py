"""
Study operations.

Create, list, inspect and delete super studies, plus the two status reads:
:func:`get_assignment_status` returns the *reconciled* view that operators
and dashboards consume, and :func:`get_study_diagnostics` returns the raw
stored view with lease consistency checks for debugging drift.
"""

from __future__ import annotations

from fleet.core.logging import get_logger
from fleet.core.models import Assignment, AssignmentStatus, SuperStudy
from fleet.core.timestamps import new_id
from fleet.ops.context import OperationContext
from fleet.ops.requests import CreateStudyRequest, ListStudiesRequest
from fleet.ops.responses import (
    AssignmentStatusResult,
    AssignmentView,
    DeleteStudyResult,
    ReconciledAssignmentView,
    RunningLeaseCheck,
    SessionSummary,
    StudyDetail,
    StudyDiagnostics,
    StudySummary,
)
from fleet.ops.result import OperationResult, PagedResult, start_timer

logger = get_logger(__name__)


def _not_found(study_id: str, elapsed_ms: float) -> OperationResult:
    return OperationResult.fail(
        "NOT_FOUND",
        f"Study '{study_id}' not found",
        elapsed_ms=elapsed_ms,
    )


def create_study(
    ctx: OperationContext,
    request: CreateStudyRequest,
) -> OperationResult[StudyDetail]:
    """Create a study and all of its assignments in one transaction.

    Assignments are indexed from 0 in request order and always start
    PENDING.
    """
    timer = start_timer()

    name = request.name.strip()
    if not name:
        return OperationResult.fail(
            "VALIDATION_FAILED",
            "name is required",
            elapsed_ms=timer.elapsed_ms,
        )

    now = ctx.clock.now()
    study = SuperStudy(
        id=new_id(),
        name=name,
        description=request.description or "",
        base_config=request.base_config,
        total_assignments=len(request.assignments),
        created_at=now,
        updated_at=now,
    )
    assignments = [
        Assignment(id=new_id(), super_study_id=study.id, index=i, config=spec.config)
        for i, spec in enumerate(request.assignments)
    ]

    if ctx.dry_run:
        return OperationResult.ok(
            StudyDetail(
                StudySummary.from_study(study),
                [AssignmentView.from_assignment(a) for a in assignments],
            ),
            elapsed_ms=timer.elapsed_ms,
            metadata={"dry_run": True},
        )

    try:
        ctx.store.studies.create(study)
        ctx.store.assignments.create_many(assignments)
        ctx.store.commit()
    except Exception as exc:
        return ctx.fail_with(exc, op="create_study", elapsed_ms=timer.elapsed_ms)

    logger.info("study_created", study_id=study.id, name=name, assignments=len(assignments))
    return OperationResult.ok(
        StudyDetail(
            StudySummary.from_study(study),
            [AssignmentView.from_assignment(a) for a in assignments],
        ),
        elapsed_ms=timer.elapsed_ms,
    )


def list_studies(
    ctx: OperationContext,
    request: ListStudiesRequest,
) -> PagedResult[StudySummary]:
    """List studies, newest first, optionally filtered by name substring."""
    timer = start_timer()

    try:
        studies, total = ctx.store.studies.list_studies(
            name=request.name,
            limit=request.limit,
            offset=request.offset,
        )
        return PagedResult.from_items(
            [StudySummary.from_study(s) for s in studies],
            total=total,
            limit=request.limit,
            offset=request.offset,
            elapsed_ms=timer.elapsed_ms,
        )
    except Exception as exc:
        return ctx.fail_with(
            exc, op="list_studies", elapsed_ms=timer.elapsed_ms, result_cls=PagedResult
        )


def get_study(
    ctx: OperationContext,
    study_id: str,
) -> OperationResult[StudyDetail]:
    """Return a study with its stored assignments in index order."""
    timer = start_timer()

    if not study_id:
        return OperationResult.fail(
            "VALIDATION_FAILED",
            "study_id is required",
            elapsed_ms=timer.elapsed_ms,
        )

    try:
        study = ctx.store.studies.get_by_id(study_id)
        if study is None:
            return _not_found(study_id, timer.elapsed_ms)
        assignments = ctx.store.assignments.list_for_study(study_id)
        return OperationResult.ok(
            StudyDetail(
                StudySummary.from_study(study),
                [AssignmentView.from_assignment(a) for a in assignments],
            ),
            elapsed_ms=timer.elapsed_ms,
        )
    except Exception as exc:
        return ctx.fail_with(exc, op="get_study", elapsed_ms=timer.elapsed_ms)


def delete_study(
    ctx: OperationContext,
    study_id: str,
) -> OperationResult[DeleteStudyResult]:
    """Delete a study; its assignments are removed with it."""
    timer = start_timer()

    if not study_id:
        return OperationResult.fail(
            "VALIDATION_FAILED",
            "study_id is required",
            elapsed_ms=timer.elapsed_ms,
        )

    try:
        if ctx.store.studies.get_by_id(study_id) is None:
            return _not_found(study_id, timer.elapsed_ms)
        if ctx.dry_run:
            return OperationResult.ok(
                DeleteStudyResult(study_id, deleted=False),
                elapsed_ms=timer.elapsed_ms,
                metadata={"dry_run": True},
            )
        ctx.store.studies.delete(study_id)
        ctx.store.commit()
    except Exception as exc:
        return ctx.fail_with(exc, op="delete_study", elapsed_ms=timer.elapsed_ms)

    logger.info("study_deleted", study_id=study_id)
    return OperationResult.ok(DeleteStudyResult(study_id), elapsed_ms=timer.elapsed_ms)


def get_assignment_status(
    ctx: OperationContext,
    study_id: str,
) -> OperationResult[AssignmentStatusResult]:
    """Return every assignment of a study after read-time reconciliation.

    Drift between stored and derived state is counted in ``drifted``;
    ``repairs_applied`` is non-zero only when write-back is enabled.
    """
    timer = start_timer()

    if not study_id:
        return OperationResult.fail(
            "VALIDATION_FAILED",
            "study_id is required",
            elapsed_ms=timer.elapsed_ms,
        )

    try:
        status = ctx.coordinator().assignment_status(study_id)
        if status.reconciliation.repairs_applied:
            ctx.store.commit()
    except Exception as exc:
        return ctx.fail_with(exc, op="get_assignment_status", elapsed_ms=timer.elapsed_ms)

    items = status.reconciliation.items
    return OperationResult.ok(
        AssignmentStatusResult(
            study=StudySummary.from_study(status.study),
            assignments=[ReconciledAssignmentView.from_reconciled(r) for r in items],
            drifted=sum(1 for r in items if r.drifted),
            repairs_applied=status.reconciliation.repairs_applied,
        ),
        elapsed_ms=timer.elapsed_ms,
    )


def get_study_diagnostics(
    ctx: OperationContext,
    study_id: str,
) -> OperationResult[StudyDiagnostics]:
    """Stored status counts and a lease check for each RUNNING assignment."""
    timer = start_timer()

    if not study_id:
        return OperationResult.fail(
            "VALIDATION_FAILED",
            "study_id is required",
            elapsed_ms=timer.elapsed_ms,
        )

    try:
        study = ctx.store.studies.get_by_id(study_id)
        if study is None:
            return _not_found(study_id, timer.elapsed_ms)

        counts = ctx.store.assignments.status_counts(study_id)
        running = [
            a
            for a in ctx.store.assignments.list_for_study(study_id)
            if a.status == AssignmentStatus.RUNNING
        ]
        workers = ctx.store.workers.get_many(
            list({a.worker_id for a in running if a.worker_id is not None})
        )

        checks = []
        for assignment in running:
            worker = workers.get(assignment.worker_id) if assignment.worker_id else None
            owned = (
                ctx.store.assignments.list_running_for_worker(worker.id) if worker else []
            )
            checks.append(
                RunningLeaseCheck(
                    assignment_id=assignment.id,
                    index=assignment.index,
                    progress=assignment.progress,
                    worker=SessionSummary.from_session(worker) if worker else None,
                    started_at=assignment.started_at,
                    completed_at=assignment.completed_at,
                    worker_has_this_assignment=any(a.id == assignment.id for a in owned),
                    worker_has_any_running_assignment=bool(owned),
                    any_running_assignment_id=owned[0].id if owned else None,
                )
            )

        return OperationResult.ok(
            StudyDiagnostics(
                study=StudySummary.from_study(study),
                status_counts={status.value: n for status, n in counts.items()},
                running=checks,
            ),
            elapsed_ms=timer.elapsed_ms,
        )
    except Exception as exc:
        return ctx.fail_with(exc, op="get_study_diagnostics", elapsed_ms=timer.elapsed_ms)
