"""Tests for fleet.coordination.reports."""

import pytest

from fleet.core.errors import ReportError
from fleet.coordination.reports import (
    FatalError,
    Finished,
    OverallProgress,
    ProfilerUpdate,
    REPORT_TYPES,
    StageProgress,
    StatusMessage,
    parse_report,
    report_type,
)


class TestParseReport:
    @pytest.mark.parametrize(
        "payload,expected",
        [
            ({"type": "overall_progress", "current": 5, "total": 20}, OverallProgress(5.0, 20.0)),
            ({"type": "stage_progress", "name": "mesh"}, StageProgress("mesh")),
            ({"type": "stage_progress", "current": 1, "total": 4}, StageProgress(None, 1.0, 4.0)),
            ({"type": "status", "message": "hi"}, StatusMessage("hi", "default")),
            ({"type": "status", "message": "hot", "log_type": "warning"}, StatusMessage("hot", "warning")),
            ({"type": "profiler_update", "eta_seconds": 90}, ProfilerUpdate(90.0)),
            ({"type": "finished"}, Finished()),
            ({"type": "fatal_error", "message": "boom"}, FatalError("boom")),
            ({"type": "fatal_error"}, FatalError()),
        ],
    )
    def test_variants(self, payload, expected):
        assert parse_report(payload) == expected

    @pytest.mark.parametrize(
        "payload",
        [
            "not a dict",
            {},
            {"type": "explode"},
            {"type": "overall_progress", "current": 1},
            {"type": "overall_progress", "current": "1", "total": 2},
            {"type": "overall_progress", "current": True, "total": 2},
            {"type": "status"},
            {"type": "profiler_update"},
            {"type": "overall_progress", "current": float("nan"), "total": 100},
            {"type": "overall_progress", "current": 1, "total": float("inf")},
            {"type": "profiler_update", "eta_seconds": float("-inf")},
            {"type": "stage_progress", "current": 10**400, "total": 4},
        ],
    )
    def test_rejects(self, payload):
        with pytest.raises(ReportError):
            parse_report(payload)

    def test_report_error_is_validation_failure(self):
        with pytest.raises(ReportError) as excinfo:
            parse_report({"type": "explode"})
        assert excinfo.value.code == "VALIDATION_FAILED"


def test_report_type_round_trips_tags():
    reports = [
        OverallProgress(1, 2),
        StageProgress(),
        StatusMessage("x"),
        ProfilerUpdate(1),
        Finished(),
        FatalError(),
    ]
    assert tuple(report_type(r) for r in reports) == REPORT_TYPES
