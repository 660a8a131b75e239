"""Tests for fleet.coordination.leases."""

import pytest

from fleet.core.errors import AssignmentNotFoundError, SessionNotFoundError, ValidationError
from fleet.core.models import AssignmentStatus, StudyStatus, WorkerStatus
from fleet.coordination.reconcile import RepairCommand


class TestClaim:
    def test_claim_leases_to_resolved_session(self, coordinator, store, make_study):
        study, assignments = make_study(2)
        worker = coordinator.heartbeat("10.0.0.1").session

        result = coordinator.claim(assignments[0].id, "10.0.0.1")

        assert result.session.id == worker.id
        assert result.previous_worker_id is None
        stored = store.assignments.get_by_id(assignments[0].id)
        assert stored.status == AssignmentStatus.RUNNING
        assert stored.worker_id == worker.id
        assert stored.started_at is not None
        assert store.workers.get_by_id(worker.id).status == WorkerStatus.RUNNING
        assert store.studies.get_by_id(study.id).status == StudyStatus.RUNNING

    def test_claim_without_prior_heartbeat_creates_provisional_session(self, coordinator, make_study):
        _, assignments = make_study(1)
        result = coordinator.claim(assignments[0].id, "10.0.0.7")
        assert result.session.is_provisional
        assert result.session.status == WorkerStatus.RUNNING

    def test_second_claim_overrides_last_write_wins(self, coordinator, store, make_study):
        _, assignments = make_study(1)
        first = coordinator.claim(assignments[0].id, "10.0.0.1").session
        second = coordinator.claim(assignments[0].id, "10.0.0.2")

        assert second.previous_worker_id == first.id
        assert store.assignments.get_by_id(assignments[0].id).worker_id == second.session.id

    def test_reclaim_of_completed_assignment_rolls_study_back(self, coordinator, store, make_study):
        study, assignments = make_study(1)
        first = coordinator.claim(assignments[0].id, "10.0.0.1").session
        coordinator.leases.report_finished(first.id)
        assert store.studies.get_by_id(study.id).status == StudyStatus.COMPLETED

        second = coordinator.claim(assignments[0].id, "10.0.0.2")

        stored = store.studies.get_by_id(study.id)
        assert stored.status == StudyStatus.RUNNING
        assert stored.completed_assignments == 0
        assert stored.master_progress == 0
        assert second.previous_status == AssignmentStatus.COMPLETED
        assert not second.overrode_lease

    def test_running_lease_override_is_flagged(self, coordinator, make_study):
        _, assignments = make_study(1)
        coordinator.claim(assignments[0].id, "10.0.0.1")
        assert coordinator.claim(assignments[0].id, "10.0.0.2").overrode_lease

    def test_claim_keeps_completed_at(self, coordinator, store, clock, make_study):
        _, assignments = make_study(1)
        store.assignments.update_fields(assignments[0].id, completed_at=clock.now())
        coordinator.claim(assignments[0].id, "10.0.0.1")
        assert store.assignments.get_by_id(assignments[0].id).completed_at == clock.now()

    def test_unknown_assignment(self, coordinator):
        with pytest.raises(AssignmentNotFoundError):
            coordinator.claim("missing", "10.0.0.1")

    def test_missing_assignment_id(self, coordinator):
        with pytest.raises(ValidationError):
            coordinator.claim("", "10.0.0.1")


class TestTerminalReports:
    def test_report_finished_completes_running_assignment(self, coordinator, store, make_study):
        study, assignments = make_study(1)
        session = coordinator.claim(assignments[0].id, "10.0.0.1").session

        completed = coordinator.leases.report_finished(session.id)

        assert completed.id == assignments[0].id
        stored = store.assignments.get_by_id(assignments[0].id)
        assert stored.status == AssignmentStatus.COMPLETED
        assert stored.progress == 100.0
        assert stored.completed_at is not None
        assert store.workers.get_by_id(session.id).status == WorkerStatus.IDLE
        rolled = store.studies.get_by_id(study.id)
        assert rolled.status == StudyStatus.COMPLETED
        assert rolled.master_progress == 100.0

    def test_report_finished_without_lease(self, coordinator):
        session = coordinator.heartbeat("10.0.0.1").session
        assert coordinator.leases.report_finished(session.id) is None

    def test_report_fatal_error_leaves_assignment(self, coordinator, store, make_study):
        _, assignments = make_study(1)
        session = coordinator.claim(assignments[0].id, "10.0.0.1").session

        coordinator.leases.report_fatal_error(session.id)

        assert store.workers.get_by_id(session.id).status == WorkerStatus.ERROR
        assert store.assignments.get_by_id(assignments[0].id).status == AssignmentStatus.RUNNING

    def test_unknown_session(self, coordinator):
        with pytest.raises(SessionNotFoundError):
            coordinator.leases.report_finished("nope")


class TestUnassign:
    def test_releases_everything_owned(self, coordinator, store, make_study):
        study, assignments = make_study(2)
        session = coordinator.claim(assignments[0].id, "10.0.0.1").session
        store.assignments.update_fields(assignments[1].id, worker_id=session.id)

        result = coordinator.leases.unassign(session.id)

        assert sorted(a.id for a in result.released) == sorted(a.id for a in assignments)
        assert result.studies == [study.id]
        for a in assignments:
            stored = store.assignments.get_by_id(a.id)
            assert stored.status == AssignmentStatus.PENDING
            assert stored.worker_id is None
        assert store.studies.get_by_id(study.id).status == StudyStatus.PENDING


class TestApplyRepair:
    def _repair(self, assignment, status, worker_id, *, expected_worker_id):
        return RepairCommand(
            assignment_id=assignment.id,
            super_study_id=assignment.super_study_id,
            status=status,
            worker_id=worker_id,
            expected_status=AssignmentStatus.RUNNING,
            expected_worker_id=expected_worker_id,
        )

    def test_applies_when_row_unchanged(self, coordinator, store, make_study):
        _, assignments = make_study(1)
        session = coordinator.claim(assignments[0].id, "10.0.0.1").session
        repair = self._repair(assignments[0], AssignmentStatus.PENDING, None, expected_worker_id=session.id)

        assert coordinator.leases.apply_repair(repair)
        stored = store.assignments.get_by_id(assignments[0].id)
        assert stored.status == AssignmentStatus.PENDING
        assert stored.worker_id is None

    def test_skipped_when_row_moved_on(self, coordinator, store, make_study):
        _, assignments = make_study(1)
        coordinator.claim(assignments[0].id, "10.0.0.1")
        repair = self._repair(assignments[0], AssignmentStatus.PENDING, None, expected_worker_id="someone-else")

        assert coordinator.leases.apply_repair(repair) is False
        assert store.assignments.get_by_id(assignments[0].id).status == AssignmentStatus.RUNNING

    def test_completed_repair_sets_full_progress(self, coordinator, store, make_study):
        _, assignments = make_study(1)
        session = coordinator.claim(assignments[0].id, "10.0.0.1").session
        repair = self._repair(
            assignments[0], AssignmentStatus.COMPLETED, session.id, expected_worker_id=session.id
        )

        assert coordinator.leases.apply_repair(repair)
        stored = store.assignments.get_by_id(assignments[0].id)
        assert stored.status == AssignmentStatus.COMPLETED
        assert stored.progress == 100.0
