"""
Progress operations.

Accepts a wire-form report from a worker, resolves the reporting session,
and applies the report.  Malformed reports fail with ``VALIDATION_FAILED``;
rollup and audit problems are returned as warnings on a successful result.
"""

from __future__ import annotations

from fleet.coordination.reports import parse_report, report_type
from fleet.ops.context import OperationContext
from fleet.ops.requests import ReportProgressRequest
from fleet.ops.responses import AssignmentView, LiveStateView, ProgressAck
from fleet.ops.result import OperationResult, start_timer


def report_progress(
    ctx: OperationContext,
    request: ReportProgressRequest,
) -> OperationResult[ProgressAck]:
    """Apply one progress report for the worker behind ``request.network_id``."""
    timer = start_timer()

    if not request.network_id:
        return OperationResult.fail(
            "VALIDATION_FAILED",
            "network_id is required",
            elapsed_ms=timer.elapsed_ms,
        )

    try:
        report = parse_report(request.report)
        result = ctx.coordinator().report_progress(
            request.network_id,
            report,
            hostname=request.hostname,
            timestamp=request.timestamp,
        )
        ctx.store.commit()
    except Exception as exc:
        return ctx.fail_with(exc, op="report_progress", elapsed_ms=timer.elapsed_ms)

    return OperationResult.ok(
        ProgressAck(
            session_id=result.session.id,
            report_type=report_type(report),
            live_state=LiveStateView.from_state(result.live_state),
            assignment=(
                AssignmentView.from_assignment(result.assignment)
                if result.assignment is not None
                else None
            ),
        ),
        warnings=result.warnings,
        elapsed_ms=timer.elapsed_ms,
    )
