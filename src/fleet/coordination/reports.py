"""
Progress report messages.

Workers send one tagged message per report; the ``type`` field selects the
variant.  The set is small and fixed, so it is modelled as a closed union of
frozen dataclasses and every consumer dispatches with a single ``match``.

Wire format (JSON object, ``type`` required)::

    {"type": "overall_progress", "current": 5, "total": 20}
    {"type": "stage_progress", "name": "mesh", "current": 2, "total": 4}
    {"type": "status", "message": "solver converged", "log_type": "highlight"}
    {"type": "profiler_update", "eta_seconds": 840}
    {"type": "finished"}
    {"type": "fatal_error", "message": "license server unreachable"}

Examples:
    >>> parse_report({"type": "overall_progress", "current": 50, "total": 100})
    OverallProgress(current=50.0, total=100.0)

Tags:
    reports, tagged-union, progress, fleet-coordination
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

from fleet.core.errors import ReportError


@dataclass(frozen=True, slots=True)
class OverallProgress:
    current: float
    total: float


@dataclass(frozen=True, slots=True)
class StageProgress:
    name: str | None = None
    current: float | None = None
    total: float | None = None


@dataclass(frozen=True, slots=True)
class StatusMessage:
    message: str
    log_type: str = "default"


@dataclass(frozen=True, slots=True)
class ProfilerUpdate:
    eta_seconds: float


@dataclass(frozen=True, slots=True)
class Finished:
    pass


@dataclass(frozen=True, slots=True)
class FatalError:
    message: str | None = None


Report = OverallProgress | StageProgress | StatusMessage | ProfilerUpdate | Finished | FatalError

REPORT_TYPES = (
    "overall_progress",
    "stage_progress",
    "status",
    "profiler_update",
    "finished",
    "fatal_error",
)


def _number(payload: dict[str, Any], key: str, *, required: bool) -> float | None:
    value = payload.get(key)
    if value is None:
        if required:
            raise ReportError(f"'{key}' is required for '{payload.get('type')}' reports")
        return None
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise ReportError(f"'{key}' must be a number")
    try:
        number = float(value)
    except OverflowError as exc:
        raise ReportError(f"'{key}' is out of range") from exc
    if not math.isfinite(number):
        raise ReportError(f"'{key}' must be finite")
    return number


def parse_report(payload: Any) -> Report:
    """Build a report variant from its wire form.

    Raises:
        ReportError: If the payload is not an object, has no known ``type``,
            or is missing a required field.
    """
    if not isinstance(payload, dict):
        raise ReportError("report must be an object")

    match payload.get("type"):
        case "overall_progress":
            return OverallProgress(
                current=_number(payload, "current", required=True),
                total=_number(payload, "total", required=True),
            )
        case "stage_progress":
            name = payload.get("name")
            return StageProgress(
                name=str(name) if name else None,
                current=_number(payload, "current", required=False),
                total=_number(payload, "total", required=False),
            )
        case "status":
            message = payload.get("message")
            if not message:
                raise ReportError("'message' is required for 'status' reports")
            return StatusMessage(str(message), str(payload.get("log_type") or "default"))
        case "profiler_update":
            return ProfilerUpdate(_number(payload, "eta_seconds", required=True))
        case "finished":
            return Finished()
        case "fatal_error":
            message = payload.get("message")
            return FatalError(str(message) if message else None)
        case None | "":
            raise ReportError("report 'type' is required")
        case other:
            raise ReportError(f"unknown report type '{other}'")


def report_type(report: Report) -> str:
    """Wire tag of a report variant."""
    match report:
        case OverallProgress():
            return "overall_progress"
        case StageProgress():
            return "stage_progress"
        case StatusMessage():
            return "status"
        case ProfilerUpdate():
            return "profiler_update"
        case Finished():
            return "finished"
        case FatalError():
            return "fatal_error"
    raise TypeError(f"not a report: {report!r}")


__all__ = [
    "FatalError",
    "Finished",
    "OverallProgress",
    "ProfilerUpdate",
    "REPORT_TYPES",
    "Report",
    "StageProgress",
    "StatusMessage",
    "parse_report",
    "report_type",
]
