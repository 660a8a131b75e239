"""Tests for fleet.ops.assignments and fleet.ops.progress."""

from datetime import timedelta

from fleet.ops.assignments import claim_assignment
from fleet.ops.progress import report_progress
from fleet.ops.requests import ClaimRequest, ReportProgressRequest


class TestClaimAssignment:
    def test_claim(self, ctx, make_study):
        _, assignments = make_study(1)
        result = claim_assignment(ctx, ClaimRequest(assignments[0].id, "10.0.0.1", "render-01"))

        assert result.success
        assert result.warnings == []
        assert result.data.assignment.status == "RUNNING"
        assert result.data.assignment.worker_id == result.data.session_id

    def test_override_warns(self, ctx, make_study):
        _, assignments = make_study(1)
        first = claim_assignment(ctx, ClaimRequest(assignments[0].id, "10.0.0.1")).data
        second = claim_assignment(ctx, ClaimRequest(assignments[0].id, "10.0.0.2"))

        assert second.data.previous_worker_id == first.session_id
        assert len(second.warnings) == 1

    def test_reclaim_after_completion_does_not_warn(self, ctx, coordinator, make_study):
        _, assignments = make_study(1)
        first = claim_assignment(ctx, ClaimRequest(assignments[0].id, "10.0.0.1")).data
        coordinator.leases.report_finished(first.session_id)
        second = claim_assignment(ctx, ClaimRequest(assignments[0].id, "10.0.0.2"))

        assert second.data.previous_worker_id == first.session_id
        assert second.warnings == []

    def test_validation(self, ctx):
        assert claim_assignment(ctx, ClaimRequest("", "10.0.0.1")).error.code == "VALIDATION_FAILED"
        assert claim_assignment(ctx, ClaimRequest("a", "")).error.code == "VALIDATION_FAILED"

    def test_unknown_assignment_writes_nothing(self, ctx, store):
        result = claim_assignment(ctx, ClaimRequest("missing", "10.0.0.1"))
        assert result.error.code == "NOT_FOUND"
        _, total = store.workers.list_workers(include_stale=True)
        assert total == 0


class TestReportProgress:
    def test_ack(self, ctx, make_study):
        _, assignments = make_study(1)
        claim_assignment(ctx, ClaimRequest(assignments[0].id, "10.0.0.1"))

        result = report_progress(
            ctx,
            ReportProgressRequest("10.0.0.1", {"type": "overall_progress", "current": 3, "total": 4}),
        )

        assert result.data.report_type == "overall_progress"
        assert result.data.live_state.progress == 75.0
        assert result.data.assignment.progress == 75.0

    def test_finished(self, ctx, make_study):
        _, assignments = make_study(1)
        claim_assignment(ctx, ClaimRequest(assignments[0].id, "10.0.0.1"))
        result = report_progress(ctx, ReportProgressRequest("10.0.0.1", {"type": "finished"}))
        assert result.data.assignment.status == "COMPLETED"
        assert result.data.live_state.status == "IDLE"

    def test_warning_for_non_positive_total(self, ctx):
        result = report_progress(
            ctx, ReportProgressRequest("10.0.0.1", {"type": "overall_progress", "current": 1, "total": 0})
        )
        assert result.success
        assert result.warnings

    def test_log_uses_worker_timestamp(self, ctx, clock):
        stamp = clock.now() - timedelta(minutes=1)
        result = report_progress(
            ctx, ReportProgressRequest("10.0.0.1", {"type": "status", "message": "hi"}, timestamp=stamp)
        )
        assert result.data.live_state.log[0].timestamp == stamp

    def test_malformed_report(self, ctx, store):
        result = report_progress(ctx, ReportProgressRequest("10.0.0.1", {"type": "explode"}))
        assert result.error.code == "VALIDATION_FAILED"
        _, total = store.workers.list_workers(include_stale=True)
        assert total == 0

    def test_eta_out_of_range(self, ctx, store):
        report = {"type": "profiler_update", "eta_seconds": 1e12}
        result = report_progress(ctx, ReportProgressRequest("10.0.0.1", report))
        assert result.error.code == "VALIDATION_FAILED"
        _, total = store.workers.list_workers(include_stale=True)
        assert total == 0

    def test_network_id_required(self, ctx):
        result = report_progress(ctx, ReportProgressRequest("", {"type": "finished"}))
        assert result.error.code == "VALIDATION_FAILED"
