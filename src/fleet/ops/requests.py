"""
Typed request objects for operations.

Each dataclass represents the *input* contract for a single operation
function.  Requests carry only validated, transport-agnostic data: no
raw HTTP bodies, no query-string parsing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

# ------------------------------------------------------------------ #
# Worker operations
# ------------------------------------------------------------------ #


@dataclass(frozen=True, slots=True)
class HeartbeatRequest:
    """Request for :func:`fleet.ops.workers.heartbeat`.

    Attributes:
        network_id: Network identifier the worker is reachable at (required).
        hostname: Self-reported machine name, if known.
        gpu_name: Optional hardware descriptor fields.
    """

    network_id: str = ""
    hostname: str | None = None
    gpu_name: str | None = None
    cpu_cores: int | None = None
    total_ram_gb: float | None = None


@dataclass(frozen=True, slots=True)
class RegisterWorkerRequest:
    """Request for :func:`fleet.ops.workers.register_worker`."""

    network_id: str = ""
    hostname: str | None = None
    machine_label: str | None = None
    gpu_name: str | None = None
    cpu_cores: int | None = None
    total_ram_gb: float | None = None


@dataclass(frozen=True, slots=True)
class ListWorkersRequest:
    """Request for :func:`fleet.ops.workers.list_workers`."""

    include_stale: bool = False
    network_id: str | None = None
    limit: int = 50
    offset: int = 0


@dataclass(frozen=True, slots=True)
class ListWorkerEventsRequest:
    """Request for :func:`fleet.ops.workers.list_worker_events`."""

    session_id: str = ""
    event_type: str | None = None
    limit: int = 50
    offset: int = 0


# ------------------------------------------------------------------ #
# Assignment and progress operations
# ------------------------------------------------------------------ #


@dataclass(frozen=True, slots=True)
class ClaimRequest:
    """Request for :func:`fleet.ops.assignments.claim_assignment`."""

    assignment_id: str = ""
    network_id: str = ""
    hostname: str | None = None


@dataclass(frozen=True, slots=True)
class ReportProgressRequest:
    """Request for :func:`fleet.ops.progress.report_progress`.

    Attributes:
        network_id: Network identifier of the reporting worker.
        report: Wire-form report object; ``report["type"]`` selects the variant.
        hostname: Hostname, when the worker sends one.
        timestamp: Worker-side time of the report.
    """

    network_id: str = ""
    report: dict[str, Any] = field(default_factory=dict)
    hostname: str | None = None
    timestamp: datetime | None = None


# ------------------------------------------------------------------ #
# Study operations
# ------------------------------------------------------------------ #


@dataclass(frozen=True, slots=True)
class AssignmentSpec:
    """One assignment to create with a study."""

    config: dict[str, Any] | None = None


@dataclass(frozen=True, slots=True)
class CreateStudyRequest:
    """Request for :func:`fleet.ops.studies.create_study`.

    Assignments are created PENDING and indexed in list order.
    """

    name: str = ""
    description: str = ""
    base_config: dict[str, Any] | None = None
    assignments: list[AssignmentSpec] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class ListStudiesRequest:
    """Request for :func:`fleet.ops.studies.list_studies`."""

    name: str | None = None
    limit: int = 50
    offset: int = 0
