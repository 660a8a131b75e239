"""Fleet coordination engine.

Identity resolution, liveness, leases, progress ingestion, read-time
reconciliation and study rollup, wired together by :class:`Coordinator`.
"""

from fleet.coordination.coordinator import Coordinator
from fleet.coordination.identity import Resolution, ResolutionOutcome, WorkerIdentityResolver
from fleet.coordination.leases import LeaseManager
from fleet.coordination.liveness import LivenessTracker
from fleet.coordination.progress import ProgressIngestor
from fleet.coordination.reconcile import ReconciliationEngine, RepairCommand, reconcile
from fleet.coordination.reports import parse_report
from fleet.coordination.rollup import RollupAggregator

__all__ = [
    "Coordinator",
    "LeaseManager",
    "LivenessTracker",
    "ProgressIngestor",
    "ReconciliationEngine",
    "RepairCommand",
    "Resolution",
    "ResolutionOutcome",
    "RollupAggregator",
    "WorkerIdentityResolver",
    "parse_report",
    "reconcile",
]
