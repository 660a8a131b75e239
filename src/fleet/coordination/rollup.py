"""Super study rollup.

Recomputes a study's derived fields from its assignments::

    completed       = count(status == COMPLETED)
    master_progress = 100 * completed / total        (0 when total == 0)
    status          = COMPLETED  if completed == total > 0
                      RUNNING    if any assignment is RUNNING
                      PENDING    otherwise

Idempotent; safe to call redundantly after any assignment mutation.
"""

from __future__ import annotations

from dataclasses import dataclass

from fleet.core.clock import Clock
from fleet.core.errors import FleetError, StudyNotFoundError
from fleet.core.logging import get_logger
from fleet.core.models import AssignmentStatus, StudyStatus
from fleet.core.store import FleetStore

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class Rollup:
    """Derived study aggregate."""

    study_id: str
    total: int
    completed: int
    master_progress: float
    status: StudyStatus


def derive_rollup(study_id: str, counts: dict[AssignmentStatus, int]) -> Rollup:
    """Pure aggregate derivation from per-status counts."""
    total = sum(counts.values())
    completed = counts.get(AssignmentStatus.COMPLETED, 0)
    progress = 100.0 * completed / total if total > 0 else 0.0
    if total > 0 and completed == total:
        status = StudyStatus.COMPLETED
    elif counts.get(AssignmentStatus.RUNNING, 0) > 0:
        status = StudyStatus.RUNNING
    else:
        status = StudyStatus.PENDING
    return Rollup(study_id, total, completed, progress, status)


class RollupAggregator:
    """Writes derived aggregates back to ``fleet_super_studies``."""

    def __init__(self, store: FleetStore, clock: Clock) -> None:
        self.store = store
        self.clock = clock

    def recompute(self, study_id: str) -> Rollup:
        """Recompute and persist the aggregate for *study_id*.

        Raises:
            StudyNotFoundError: If the study does not exist.
        """
        if self.store.studies.get_by_id(study_id) is None:
            raise StudyNotFoundError(study_id)
        rollup = derive_rollup(study_id, self.store.assignments.status_counts(study_id))
        self.store.studies.update_fields(
            study_id,
            total_assignments=rollup.total,
            completed_assignments=rollup.completed,
            master_progress=rollup.master_progress,
            status=rollup.status,
            updated_at=self.clock.now(),
        )
        logger.debug(
            "study_rolled_up",
            study_id=study_id,
            completed=rollup.completed,
            total=rollup.total,
            status=rollup.status.value,
        )
        return rollup

    def refresh(self, study_id: str) -> Rollup | None:
        """Best-effort :meth:`recompute`: failures are logged, never raised."""
        try:
            return self.recompute(study_id)
        except FleetError as exc:
            logger.warning("rollup_failed", study_id=study_id, error=str(exc), code=exc.code)
            return None

    def refresh_many(self, study_ids: list[str]) -> list[Rollup]:
        results = []
        for study_id in dict.fromkeys(study_ids):
            rollup = self.refresh(study_id)
            if rollup is not None:
                results.append(rollup)
        return results


__all__ = ["Rollup", "RollupAggregator", "derive_rollup"]
