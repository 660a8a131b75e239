"""
Assignment operations.

Claiming an assignment leases it to the session behind a network
identifier.  Claims never check the stored status: a second claim on a
RUNNING assignment overrides the first and is reported through
``previous_worker_id`` and a warning.
"""

from __future__ import annotations

from fleet.ops.context import OperationContext
from fleet.ops.requests import ClaimRequest
from fleet.ops.responses import AssignmentView, ClaimResult
from fleet.ops.result import OperationResult, start_timer


def claim_assignment(
    ctx: OperationContext,
    request: ClaimRequest,
) -> OperationResult[ClaimResult]:
    """Lease an assignment to the worker identified by ``request.network_id``."""
    timer = start_timer()

    if not request.assignment_id:
        return OperationResult.fail(
            "VALIDATION_FAILED",
            "assignment_id is required",
            elapsed_ms=timer.elapsed_ms,
        )
    if not request.network_id:
        return OperationResult.fail(
            "VALIDATION_FAILED",
            "network_id is required",
            elapsed_ms=timer.elapsed_ms,
        )

    try:
        claim = ctx.coordinator().claim(
            request.assignment_id, request.network_id, hostname=request.hostname
        )
        ctx.store.commit()
    except Exception as exc:
        return ctx.fail_with(exc, op="claim_assignment", elapsed_ms=timer.elapsed_ms)

    warnings = []
    if claim.overrode_lease:
        warnings.append(
            f"Assignment '{request.assignment_id}' was leased to session "
            f"'{claim.previous_worker_id}'; lease overridden"
        )
    return OperationResult.ok(
        ClaimResult(
            assignment=AssignmentView.from_assignment(claim.assignment),
            session_id=claim.session.id,
            previous_worker_id=claim.previous_worker_id,
        ),
        warnings=warnings,
        elapsed_ms=timer.elapsed_ms,
    )
