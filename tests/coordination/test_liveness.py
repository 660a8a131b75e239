"""Tests for fleet.coordination.liveness."""

from datetime import timedelta

from fleet.core.models import AssignmentStatus, WorkerSession, WorkerStatus
from fleet.core.timestamps import new_id
from fleet.coordination.liveness import LivenessTracker


def _create(store, clock, **kw) -> WorkerSession:
    now = clock.now()
    session = WorkerSession(id=new_id(), network_id="10.0.0.1", last_seen=now, created_at=now, **kw)
    store.workers.create(session)
    return session


class TestTimeoutTiers:
    def test_idle_session(self, store, clock, policy):
        tracker = LivenessTracker(store, clock, policy)
        s = _create(store, clock)
        assert tracker.timeout_for(s) == timedelta(seconds=15)

    def test_duty_running(self, store, clock, policy):
        tracker = LivenessTracker(store, clock, policy)
        s = _create(store, clock, status=WorkerStatus.RUNNING)
        assert tracker.timeout_for(s) == timedelta(seconds=60)

    def test_running_lease(self, store, clock, policy, make_study):
        tracker = LivenessTracker(store, clock, policy)
        _, assignments = make_study(1)
        s = _create(store, clock)
        store.assignments.update_fields(assignments[0].id, status=AssignmentStatus.RUNNING, worker_id=s.id)
        assert tracker.holds_running_lease(s)
        assert tracker.timeout_for(s) == timedelta(seconds=60)

    def test_provisional_wins(self, store, clock, policy):
        tracker = LivenessTracker(store, clock, policy)
        s = _create(store, clock, status=WorkerStatus.RUNNING, is_provisional=True)
        assert tracker.timeout_for(s) == timedelta(minutes=5)


class TestExpiry:
    def test_boundary_is_exclusive(self, store, clock, policy):
        tracker = LivenessTracker(store, clock, policy)
        s = _create(store, clock)
        clock.advance(seconds=15)
        assert not tracker.is_expired(s)
        clock.advance(seconds=1)
        assert tracker.is_expired(s)

    def test_is_stale_uses_flag_or_timeout(self, store, clock, policy):
        tracker = LivenessTracker(store, clock, policy)
        s = _create(store, clock, is_stale=True)
        assert tracker.is_stale(s)

    def test_offline_after_30s(self, store, clock, policy):
        tracker = LivenessTracker(store, clock, policy)
        s = _create(store, clock, status=WorkerStatus.RUNNING)
        clock.advance(seconds=30)
        assert not tracker.is_offline(s)
        clock.advance(seconds=1)
        assert tracker.is_offline(s)


class TestWrites:
    def test_touch_stamps_last_seen(self, store, clock, policy):
        tracker = LivenessTracker(store, clock, policy)
        s = _create(store, clock)
        later = clock.advance(seconds=7)
        touched = tracker.touch(s, hostname="render-01")
        assert touched.last_seen == later
        assert store.workers.get_by_id(s.id).hostname == "render-01"

    def test_mark_stale_skips_already_stale(self, store, clock, policy):
        tracker = LivenessTracker(store, clock, policy)
        a = _create(store, clock)
        b = _create(store, clock, is_stale=True)
        assert tracker.mark_stale([a, b], reason="test") == [a.id]
        assert store.workers.get_by_id(a.id).is_stale

    def test_marking_stale_keeps_assignment_running(self, store, clock, policy, make_study):
        tracker = LivenessTracker(store, clock, policy)
        _, assignments = make_study(1)
        s = _create(store, clock)
        store.assignments.update_fields(assignments[0].id, status=AssignmentStatus.RUNNING, worker_id=s.id)
        tracker.mark_stale([s], reason="timeout")
        assert store.assignments.get_by_id(assignments[0].id).status == AssignmentStatus.RUNNING
