"""Tests for fleet.ops.workers."""

from fleet.ops import workers as ops
from fleet.ops.assignments import claim_assignment
from fleet.ops.progress import report_progress
from fleet.ops.requests import (
    ClaimRequest,
    HeartbeatRequest,
    ListWorkerEventsRequest,
    ListWorkersRequest,
    RegisterWorkerRequest,
    ReportProgressRequest,
)


def _heartbeat(ctx, network_id="10.0.0.1", **kw):
    result = ops.heartbeat(ctx, HeartbeatRequest(network_id=network_id, **kw))
    assert result.success, result.error
    return result.data


class TestHeartbeat:
    def test_creates_then_reuses(self, ctx, clock):
        first = _heartbeat(ctx, hostname="render-01", gpu_name="A100")
        clock.advance(seconds=5)
        second = _heartbeat(ctx)

        assert first.outcome == "created"
        assert first.session.gpu_name == "A100"
        assert second.outcome == "reused"
        assert second.session.session_id == first.session.session_id
        assert second.session.last_seen == clock.now()

    def test_missing_network_id(self, ctx):
        result = ops.heartbeat(ctx, HeartbeatRequest())
        assert result.error.code == "VALIDATION_FAILED"

    def test_blank_network_id_rejected_by_engine(self, ctx):
        result = ops.heartbeat(ctx, HeartbeatRequest(network_id="   "))
        assert result.error.code == "VALIDATION_FAILED"

    def test_reports_transfer(self, ctx, clock, make_study):
        _, assignments = make_study(1)
        _heartbeat(ctx)
        claim_assignment(ctx, ClaimRequest(assignments[0].id, "10.0.0.1"))
        clock.advance(seconds=61)

        data = _heartbeat(ctx)

        assert data.transferred == [assignments[0].id]
        assert data.session.status == "RUNNING"
        assert len(data.superseded) == 1


class TestLookupActive:
    def test_not_found(self, ctx):
        assert ops.lookup_active_session(ctx, "10.0.0.1").error.code == "NOT_FOUND"

    def test_running_and_offline(self, ctx, clock, make_study):
        _, assignments = make_study(1)
        claim_assignment(ctx, ClaimRequest(assignments[0].id, "10.0.0.1"))
        clock.advance(seconds=45)

        data = ops.lookup_active_session(ctx, "10.0.0.1").data

        assert data.is_offline
        assert data.session.status == "OFFLINE"
        assert [a.assignment_id for a in data.running] == [assignments[0].id]


class TestRegisterAndList:
    def test_register(self, ctx):
        result = ops.register_worker(
            ctx, RegisterWorkerRequest(network_id="10.0.0.1", hostname="render-01", machine_label="rack 4")
        )
        assert result.data.machine_label == "rack 4"
        assert result.data.hostname == "render-01"

    def test_register_requires_network_id(self, ctx):
        assert ops.register_worker(ctx, RegisterWorkerRequest()).error.code == "VALIDATION_FAILED"

    def test_list_shows_open_assignments(self, ctx, make_study):
        _, assignments = make_study(2)
        claim_assignment(ctx, ClaimRequest(assignments[0].id, "10.0.0.1"))
        _heartbeat(ctx, network_id="10.0.0.2")

        page = ops.list_workers(ctx, ListWorkersRequest())

        assert page.success
        assert page.total == 2
        by_network = {w.session.network_id: w for w in page.data}
        assert [a.assignment_id for a in by_network["10.0.0.1"].assignments] == [assignments[0].id]
        assert by_network["10.0.0.2"].assignments == []

    def test_list_hides_stale_by_default(self, ctx, clock):
        _heartbeat(ctx)
        clock.advance(seconds=16)
        _heartbeat(ctx)

        assert ops.list_workers(ctx, ListWorkersRequest()).total == 1
        assert ops.list_workers(ctx, ListWorkersRequest(include_stale=True)).total == 2

    def test_list_paging(self, ctx):
        for i in range(3):
            _heartbeat(ctx, network_id=f"10.0.0.{i}")
        page = ops.list_workers(ctx, ListWorkersRequest(limit=2))
        assert len(page.data) == 2
        assert page.has_more


class TestWorkerStatus:
    def test_status_with_live_state(self, ctx, make_study):
        _, assignments = make_study(1)
        claim = claim_assignment(ctx, ClaimRequest(assignments[0].id, "10.0.0.1")).data
        report_progress(
            ctx,
            ReportProgressRequest("10.0.0.1", {"type": "overall_progress", "current": 1, "total": 4}),
        )

        data = ops.get_worker_status(ctx, claim.session_id).data

        assert data.live_state.progress == 25.0
        assert not data.is_stale
        assert [a.assignment_id for a in data.running] == [assignments[0].id]

    def test_status_not_found(self, ctx):
        assert ops.get_worker_status(ctx, "missing").error.code == "NOT_FOUND"


class TestDeleteWorker:
    def test_dry_run_writes_nothing(self, ctx, store, make_study):
        _, assignments = make_study(1)
        session_id = claim_assignment(ctx, ClaimRequest(assignments[0].id, "10.0.0.1")).data.session_id
        ctx.dry_run = True

        result = ops.delete_worker(ctx, session_id)

        assert result.metadata == {"dry_run": True}
        assert result.data.released == [assignments[0].id]
        assert store.workers.get_by_id(session_id) is not None

    def test_delete(self, ctx, store, make_study):
        study, assignments = make_study(1)
        session_id = claim_assignment(ctx, ClaimRequest(assignments[0].id, "10.0.0.1")).data.session_id

        result = ops.delete_worker(ctx, session_id)

        assert result.data.released == [assignments[0].id]
        assert result.data.studies == [study.id]
        assert store.workers.get_by_id(session_id) is None

    def test_delete_unknown(self, ctx):
        assert ops.delete_worker(ctx, "missing").error.code == "NOT_FOUND"
        ctx.dry_run = True
        assert ops.delete_worker(ctx, "missing").error.code == "NOT_FOUND"


class TestWorkerEvents:
    def test_filter_and_page(self, ctx):
        session_id = _heartbeat(ctx).session.session_id
        for i in range(3):
            report_progress(ctx, ReportProgressRequest("10.0.0.1", {"type": "status", "message": f"m{i}"}))
        report_progress(
            ctx, ReportProgressRequest("10.0.0.1", {"type": "overall_progress", "current": 1, "total": 2})
        )

        everything = ops.list_worker_events(ctx, ListWorkerEventsRequest(session_id))
        logs = ops.list_worker_events(ctx, ListWorkerEventsRequest(session_id, event_type="log", limit=2))

        assert everything.total == 4
        assert logs.total == 3
        assert len(logs.data) == 2
        assert logs.has_more
        assert {e.event_type for e in logs.data} == {"LOG"}

    def test_unknown_event_type(self, ctx):
        session_id = _heartbeat(ctx).session.session_id
        result = ops.list_worker_events(ctx, ListWorkerEventsRequest(session_id, event_type="bogus"))
        assert result.error.code == "VALIDATION_FAILED"

    def test_unknown_session(self, ctx):
        result = ops.list_worker_events(ctx, ListWorkerEventsRequest("missing"))
        assert result.error.code == "NOT_FOUND"
