"""Tests for fleet.ops.studies."""

from fleet.core.models import WorkerStatus
from fleet.ops import studies as ops
from fleet.ops.assignments import claim_assignment
from fleet.ops.requests import AssignmentSpec, ClaimRequest, CreateStudyRequest, ListStudiesRequest


def _create(ctx, name="sweep", n=3):
    result = ops.create_study(
        ctx,
        CreateStudyRequest(
            name=name,
            description="parameter sweep",
            base_config={"solver": "cg"},
            assignments=[AssignmentSpec({"split": i}) for i in range(n)],
        ),
    )
    assert result.success, result.error
    return result.data


class TestCreateStudy:
    def test_creates_pending_assignments_in_order(self, ctx, store):
        detail = _create(ctx, name="  sweep  ")

        assert detail.study.name == "sweep"
        assert detail.study.status == "PENDING"
        assert detail.study.total_assignments == 3
        assert [a.index for a in detail.assignments] == [0, 1, 2]
        assert {a.status for a in detail.assignments} == {"PENDING"}
        assert store.studies.get_by_id(detail.study.study_id) is not None

    def test_name_required(self, ctx):
        result = ops.create_study(ctx, CreateStudyRequest(name="   "))
        assert result.error.code == "VALIDATION_FAILED"

    def test_dry_run(self, ctx, store):
        ctx.dry_run = True
        result = ops.create_study(ctx, CreateStudyRequest(name="preview", assignments=[AssignmentSpec()]))
        assert result.metadata == {"dry_run": True}
        assert store.studies.get_by_id(result.data.study.study_id) is None


class TestReadStudies:
    def test_list_filters_by_name(self, ctx):
        _create(ctx, name="alpha sweep")
        _create(ctx, name="beta")

        page = ops.list_studies(ctx, ListStudiesRequest(name="sweep"))

        assert page.total == 1
        assert page.data[0].name == "alpha sweep"

    def test_get_study(self, ctx):
        created = _create(ctx)
        detail = ops.get_study(ctx, created.study.study_id).data
        assert [a.assignment_id for a in detail.assignments] == [
            a.assignment_id for a in created.assignments
        ]

    def test_get_missing(self, ctx):
        assert ops.get_study(ctx, "missing").error.code == "NOT_FOUND"
        assert ops.get_study(ctx, "").error.code == "VALIDATION_FAILED"


class TestDeleteStudy:
    def test_delete(self, ctx, store):
        created = _create(ctx)
        result = ops.delete_study(ctx, created.study.study_id)
        assert result.data.deleted
        assert store.studies.get_by_id(created.study.study_id) is None
        assert store.assignments.list_for_study(created.study.study_id) == []

    def test_dry_run_keeps_study(self, ctx, store):
        created = _create(ctx)
        ctx.dry_run = True
        result = ops.delete_study(ctx, created.study.study_id)
        assert result.data.deleted is False
        assert store.studies.get_by_id(created.study.study_id) is not None

    def test_missing(self, ctx):
        assert ops.delete_study(ctx, "missing").error.code == "NOT_FOUND"


class TestAssignmentStatus:
    def test_reports_drift_without_writing(self, ctx, store):
        created = _create(ctx, n=2)
        first = created.assignments[0].assignment_id
        session_id = claim_assignment(ctx, ClaimRequest(first, "10.0.0.1")).data.session_id
        store.workers.update_fields(session_id, status=WorkerStatus.IDLE)
        store.commit()

        data = ops.get_assignment_status(ctx, created.study.study_id).data

        assert data.drifted == 1
        assert data.repairs_applied == 0
        view = data.assignments[0]
        assert view.stored_status == "RUNNING"
        assert view.assignment.status == "PENDING"
        assert view.drifted
        assert store.assignments.get_by_id(first).status.value == "RUNNING"

    def test_missing(self, ctx):
        assert ops.get_assignment_status(ctx, "missing").error.code == "NOT_FOUND"


class TestDiagnostics:
    def test_running_lease_checks(self, ctx):
        created = _create(ctx, n=3)
        first = created.assignments[0].assignment_id
        claim = claim_assignment(ctx, ClaimRequest(first, "10.0.0.1")).data

        data = ops.get_study_diagnostics(ctx, created.study.study_id).data

        assert data.status_counts == {"PENDING": 2, "RUNNING": 1, "COMPLETED": 0, "FAILED": 0}
        check = data.running[0]
        assert check.assignment_id == first
        assert check.worker.session_id == claim.session_id
        assert check.worker_has_this_assignment
        assert check.any_running_assignment_id == first

    def test_missing(self, ctx):
        assert ops.get_study_diagnostics(ctx, "missing").error.code == "NOT_FOUND"
