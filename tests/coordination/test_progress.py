"""Tests for fleet.coordination.progress (report ingestion)."""

from datetime import timedelta

import pytest

from fleet.core.errors import ReportError
from fleet.core.models import AssignmentStatus, EventType, StudyStatus, WorkerStatus
from fleet.core.settings import CoordinationPolicy
from fleet.coordination.coordinator import Coordinator
from fleet.coordination.progress import percent


def _claimed(coordinator, make_study, n=1):
    study, assignments = make_study(n)
    coordinator.heartbeat("10.0.0.1", "render-01")
    session = coordinator.claim(assignments[0].id, "10.0.0.1").session
    return study, assignments, session


class TestPercent:
    @pytest.mark.parametrize(
        "current,total,expected",
        [(5, 20, 25.0), (30, 20, 100.0), (-3, 20, 0.0), (0, 1, 0.0)],
    )
    def test_clamped(self, current, total, expected):
        assert percent(current, total) == expected


class TestOverallProgress:
    def test_projects_onto_running_assignment(self, coordinator, store, make_study):
        _, assignments, session = _claimed(coordinator, make_study)

        result = coordinator.report_progress("10.0.0.1", {"type": "overall_progress", "current": 5, "total": 20})

        assert result.session.id == session.id
        assert result.live_state.progress == 25.0
        assert result.live_state.status == WorkerStatus.RUNNING
        assert store.assignments.get_by_id(assignments[0].id).progress == 25.0

    def test_non_positive_total_is_ignored_with_warning(self, coordinator, store, make_study):
        _, assignments, _ = _claimed(coordinator, make_study)
        result = coordinator.report_progress("10.0.0.1", {"type": "overall_progress", "current": 5, "total": 0})
        assert result.warnings
        assert result.live_state.progress == 0.0
        assert store.assignments.get_by_id(assignments[0].id).progress == 0.0

    def test_replay_is_idempotent(self, coordinator, store, make_study):
        _, assignments, session = _claimed(coordinator, make_study)
        reports = [
            {"type": "overall_progress", "current": 50, "total": 100},
            {"type": "overall_progress", "current": 100, "total": 100},
        ]
        for report in reports:
            coordinator.report_progress("10.0.0.1", report)
        once_state = store.live_states.get(session.id)
        once_assignment = store.assignments.get_by_id(assignments[0].id)

        for report in reports:
            coordinator.report_progress("10.0.0.1", report)

        assert store.live_states.get(session.id) == once_state
        assert store.assignments.get_by_id(assignments[0].id) == once_assignment
        assert once_assignment.progress == 100.0

    def test_without_session_creates_one(self, coordinator, store):
        result = coordinator.report_progress("10.0.0.9", {"type": "overall_progress", "current": 1, "total": 2})
        assert store.workers.get_by_id(result.session.id) is not None
        assert result.assignment is None


class TestStageAndEta:
    def test_stage_progress_leaves_overall_progress(self, coordinator, store, make_study):
        _, assignments, _ = _claimed(coordinator, make_study)
        coordinator.report_progress("10.0.0.1", {"type": "overall_progress", "current": 1, "total": 4})

        result = coordinator.report_progress(
            "10.0.0.1", {"type": "stage_progress", "name": "mesh", "current": 1, "total": 2}
        )

        assert result.live_state.stage == "mesh"
        assert result.live_state.stage_progress == 50.0
        assert result.live_state.progress == 25.0
        stored = store.assignments.get_by_id(assignments[0].id)
        assert stored.current_stage == "mesh"
        assert stored.progress == 25.0

    def test_profiler_update_sets_eta(self, coordinator, store, clock, make_study):
        _, assignments, _ = _claimed(coordinator, make_study)
        result = coordinator.report_progress("10.0.0.1", {"type": "profiler_update", "eta_seconds": 90})
        assert result.live_state.eta == clock.now() + timedelta(seconds=90)
        assert store.assignments.get_by_id(assignments[0].id).eta == result.live_state.eta

    def test_unrepresentable_eta_rejected(self, coordinator, store, make_study):
        _, assignments, _ = _claimed(coordinator, make_study)
        with pytest.raises(ReportError):
            coordinator.report_progress("10.0.0.1", {"type": "profiler_update", "eta_seconds": 1e12})
        assert store.assignments.get_by_id(assignments[0].id).eta is None


class TestStatusLog:
    def test_log_keeps_latest_entries(self, coordinator, store):
        session = coordinator.heartbeat("10.0.0.1").session
        for i in range(150):
            coordinator.report_progress("10.0.0.1", {"type": "status", "message": f"m{i}"})

        state = store.live_states.get(session.id)
        assert len(state.log) == 100
        assert [e.message for e in state.log] == [f"m{i}" for i in range(50, 150)]

    def test_counters_survive_eviction(self, store, clock):
        coordinator = Coordinator(store, clock, CoordinationPolicy(log_capacity=2))
        for log_type in ("warning", "highlight", "error", "fatal", "default"):
            coordinator.report_progress("10.0.0.1", {"type": "status", "message": "x", "log_type": log_type})

        state = coordinator.report_progress("10.0.0.1", {"type": "status", "message": "y"}).live_state
        assert len(state.log) == 2
        assert state.warning_count == 2
        assert state.error_count == 2

    def test_worker_timestamp_used_for_log_entry(self, coordinator, clock):
        stamp = clock.now() - timedelta(seconds=5)
        state = coordinator.report_progress(
            "10.0.0.1", {"type": "status", "message": "x"}, timestamp=stamp
        ).live_state
        assert state.log[-1].timestamp == stamp


class TestTerminal:
    def test_finished_completes_and_rolls_up(self, coordinator, store, make_study):
        study, assignments, session = _claimed(coordinator, make_study, n=2)

        result = coordinator.report_progress("10.0.0.1", {"type": "finished"})

        assert result.assignment.id == assignments[0].id
        stored = store.assignments.get_by_id(assignments[0].id)
        assert stored.status == AssignmentStatus.COMPLETED
        assert stored.progress == 100.0
        assert stored.completed_at is not None
        rolled = store.studies.get_by_id(study.id)
        assert rolled.completed_assignments == 1
        assert rolled.master_progress == 50.0
        assert rolled.status == StudyStatus.PENDING
        assert store.workers.get_by_id(session.id).status == WorkerStatus.IDLE

    def test_fatal_error_flags_session(self, coordinator, store, make_study):
        _, assignments, session = _claimed(coordinator, make_study)
        result = coordinator.report_progress("10.0.0.1", {"type": "fatal_error", "message": "boom"})
        assert result.session.status == WorkerStatus.ERROR
        assert store.workers.get_by_id(session.id).status == WorkerStatus.ERROR
        assert store.assignments.get_by_id(assignments[0].id).status == AssignmentStatus.RUNNING


class TestEvents:
    def test_every_report_is_audited(self, coordinator, store, make_study):
        _, _, session = _claimed(coordinator, make_study)
        for report in (
            {"type": "overall_progress", "current": 1, "total": 2},
            {"type": "stage_progress", "name": "mesh"},
            {"type": "status", "message": "hello"},
            {"type": "profiler_update", "eta_seconds": 10},
            {"type": "finished"},
        ):
            coordinator.report_progress("10.0.0.1", report)

        events, total = store.events.list_for_worker(session.id)
        assert total == 5
        assert {e.event_type for e in events} == {
            EventType.PROGRESS,
            EventType.STAGE_CHANGE,
            EventType.LOG,
            EventType.ETA_UPDATE,
            EventType.FINISHED,
        }

    def test_malformed_report_rejected(self, coordinator):
        with pytest.raises(ReportError):
            coordinator.report_progress("10.0.0.1", {"type": "status"})
