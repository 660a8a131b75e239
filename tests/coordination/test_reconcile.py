"""Tests for fleet.coordination.reconcile."""

from datetime import UTC, datetime

import pytest

from fleet.core.models import Assignment, AssignmentStatus, WorkerSession, WorkerStatus
from fleet.core.settings import CoordinationPolicy
from fleet.coordination.coordinator import Coordinator
from fleet.coordination.reconcile import AssignmentSnapshot, WorkerView, reconcile

T0 = datetime(2025, 1, 1, 12, 0, tzinfo=UTC)


def _assignment(status=AssignmentStatus.RUNNING, worker_id="w1", completed_at=None) -> Assignment:
    return Assignment(
        id="a1",
        super_study_id="s1",
        index=0,
        status=status,
        worker_id=worker_id,
        progress=40.0,
        started_at=T0,
        completed_at=completed_at,
    )


def _worker(id="w1", status=WorkerStatus.RUNNING, stale=False, elsewhere=0) -> WorkerView:
    session = WorkerSession(id=id, network_id="10.0.0.1", last_seen=T0, created_at=T0, status=status)
    return WorkerView(session, stale, elsewhere)


class TestRules:
    def test_no_worker_goes_pending(self):
        result = reconcile(AssignmentSnapshot(_assignment()))
        assert result.status == AssignmentStatus.PENDING
        assert result.assignment.worker_id is None
        assert result.assignment.progress == 0.0
        assert result.drifted

    @pytest.mark.parametrize(
        "completed_at,expected",
        [(None, AssignmentStatus.PENDING), (T0, AssignmentStatus.COMPLETED)],
    )
    def test_idle_fresh_worker_without_other_work(self, completed_at, expected):
        result = reconcile(
            AssignmentSnapshot(_assignment(completed_at=completed_at), _worker(status=WorkerStatus.IDLE))
        )
        assert result.status == expected

    def test_idle_worker_busy_elsewhere_keeps_running(self):
        result = reconcile(
            AssignmentSnapshot(_assignment(), _worker(status=WorkerStatus.IDLE, elsewhere=1))
        )
        assert result.status == AssignmentStatus.RUNNING
        assert not result.drifted

    def test_error_worker_fails_assignment(self):
        result = reconcile(AssignmentSnapshot(_assignment(), _worker(status=WorkerStatus.ERROR)))
        assert result.status == AssignmentStatus.FAILED
        assert result.assignment.worker_id == "w1"
        assert result.repair.status == AssignmentStatus.FAILED

    @pytest.mark.parametrize(
        "completed_at,expected",
        [(None, AssignmentStatus.PENDING), (T0, AssignmentStatus.COMPLETED)],
    )
    def test_stale_worker_without_successor(self, completed_at, expected):
        result = reconcile(AssignmentSnapshot(_assignment(completed_at=completed_at), _worker(stale=True)))
        assert result.status == expected

    def test_successor_inherits_view(self):
        snapshot = AssignmentSnapshot(_assignment(), _worker(stale=True), _worker(id="w2"))
        result = reconcile(snapshot)
        assert result.status == AssignmentStatus.RUNNING
        assert result.assignment.worker_id == "w2"
        assert result.repair.worker_id == "w2"
        assert result.repair.expected_worker_id == "w1"

    def test_healthy_running_unchanged(self):
        stored = _assignment()
        result = reconcile(AssignmentSnapshot(stored, _worker()))
        assert result.assignment is stored
        assert result.repair is None

    @pytest.mark.parametrize("status", [AssignmentStatus.PENDING, AssignmentStatus.COMPLETED, AssignmentStatus.FAILED])
    def test_non_running_untouched(self, status):
        result = reconcile(AssignmentSnapshot(_assignment(status=status, worker_id=None)))
        assert result.status == status
        assert not result.drifted

    def test_pure(self):
        stored = _assignment()
        reconcile(AssignmentSnapshot(stored))
        assert stored.status == AssignmentStatus.RUNNING
        assert stored.worker_id == "w1"


class TestEngine:
    def test_idle_worker_view_is_transient(self, coordinator, store, make_study):
        study, assignments = make_study(1)
        session = coordinator.claim(assignments[0].id, "10.0.0.1").session
        store.workers.update_fields(session.id, status=WorkerStatus.IDLE)

        view = coordinator.assignment_status(study.id)

        item = view.reconciliation.items[0]
        assert item.status == AssignmentStatus.PENDING
        assert item.stored_status == AssignmentStatus.RUNNING
        assert view.reconciliation.repairs_applied == 0
        assert store.assignments.get_by_id(assignments[0].id).status == AssignmentStatus.RUNNING
        assert store.workers.get_by_id(session.id).status == WorkerStatus.IDLE

    def test_write_back_persists_repairs(self, store, clock, make_study):
        coordinator = Coordinator(store, clock, CoordinationPolicy(reconcile_write_back=True))
        study, assignments = make_study(2)
        session = coordinator.claim(assignments[0].id, "10.0.0.1").session
        store.workers.update_fields(session.id, status=WorkerStatus.ERROR)

        view = coordinator.assignment_status(study.id)

        assert view.reconciliation.repairs_applied == 1
        assert store.assignments.get_by_id(assignments[0].id).status == AssignmentStatus.FAILED

    def test_stale_worker_resolved_to_successor(self, coordinator, store, clock, make_study):
        study, assignments = make_study(1)
        old = coordinator.claim(assignments[0].id, "10.0.0.1").session
        coordinator.liveness.mark_stale([old], reason="test")
        new = coordinator.heartbeat("10.0.0.1").session
        # undo the transfer performed on creation so the stored row still names the old session
        store.assignments.update_fields(assignments[0].id, worker_id=old.id)
        store.workers.update_fields(new.id, status=WorkerStatus.RUNNING)

        item = coordinator.assignment_status(study.id).reconciliation.items[0]

        assert item.status == AssignmentStatus.RUNNING
        assert item.assignment.worker_id == new.id
        assert item.worker.id == new.id

    def test_expired_worker_counts_as_stale(self, coordinator, clock, make_study):
        study, assignments = make_study(1)
        coordinator.heartbeat("10.0.0.1")
        coordinator.claim(assignments[0].id, "10.0.0.1")
        clock.advance(seconds=61)

        item = coordinator.assignment_status(study.id).reconciliation.items[0]

        assert item.worker_is_stale
        assert item.status == AssignmentStatus.PENDING
