"""Tests for the Coordinator facade."""

import pytest

from fleet.core.errors import SessionNotFoundError, StudyNotFoundError
from fleet.core.models import AssignmentStatus, HardwareInfo, LiveState, StudyStatus, WorkerStatus


class TestLookupActive:
    def test_unknown_network(self, coordinator):
        assert coordinator.lookup_active("10.9.9.9") is None

    def test_reports_running_leases(self, coordinator, make_study):
        _, assignments = make_study(1)
        coordinator.claim(assignments[0].id, "10.0.0.1")
        active = coordinator.lookup_active("10.0.0.1")
        assert [a.id for a in active.running] == [assignments[0].id]
        assert not active.is_offline

    def test_silent_session_flagged_offline(self, coordinator, store, clock):
        session = coordinator.heartbeat("10.0.0.1").session
        clock.advance(seconds=31)

        active = coordinator.lookup_active("10.0.0.1")

        assert active.is_offline
        assert active.session.status == WorkerStatus.OFFLINE
        assert store.workers.get_by_id(session.id).status == WorkerStatus.OFFLINE


class TestRegisterAndStatus:
    def test_register_records_label(self, coordinator, store):
        session = coordinator.register_worker(
            "10.0.0.1",
            hostname="render-01",
            machine_label="rack 4",
            hardware=HardwareInfo(gpu_name="A100", cpu_cores=32, total_ram_gb=256.0),
        )
        stored = store.workers.get_by_id(session.id)
        assert stored.machine_label == "rack 4"
        assert stored.total_ram_gb == 256.0

    def test_worker_status(self, coordinator, store, clock):
        session = coordinator.heartbeat("10.0.0.1").session
        store.live_states.save(LiveState(worker_id=session.id, updated_at=clock.now(), stage="mesh"))
        clock.advance(seconds=16)

        view = coordinator.worker_status(session.id)

        assert view.live_state.stage == "mesh"
        assert view.is_stale
        assert not view.is_offline
        assert store.workers.get_by_id(session.id).is_stale is False

    def test_worker_status_unknown(self, coordinator):
        with pytest.raises(SessionNotFoundError):
            coordinator.worker_status("missing")

    def test_assignment_status_unknown(self, coordinator):
        with pytest.raises(StudyNotFoundError):
            coordinator.assignment_status("missing")


class TestDeleteWorker:
    def test_releases_assignments_across_studies(self, coordinator, store, make_study):
        first, first_assignments = make_study(2, name="first")
        second, second_assignments = make_study(1, name="second")
        session = coordinator.claim(first_assignments[0].id, "10.0.0.1").session
        store.assignments.update_fields(first_assignments[1].id, worker_id=session.id)
        store.assignments.update_fields(second_assignments[0].id, worker_id=session.id)
        coordinator.report_progress("10.0.0.1", {"type": "status", "message": "hello"})

        result = coordinator.delete_worker(session.id)

        assert len(result.released) == 3
        assert sorted(result.studies) == sorted([first.id, second.id])
        for a in first_assignments + second_assignments:
            stored = store.assignments.get_by_id(a.id)
            assert stored.status == AssignmentStatus.PENDING
            assert stored.worker_id is None
        assert store.studies.get_by_id(first.id).status == StudyStatus.PENDING
        assert store.workers.get_by_id(session.id) is None
        assert store.live_states.get(session.id) is None
        assert store.events.list_for_worker(session.id) == ([], 0)

    def test_unknown_session(self, coordinator):
        with pytest.raises(SessionNotFoundError):
            coordinator.delete_worker("missing")
