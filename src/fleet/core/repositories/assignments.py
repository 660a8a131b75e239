"""Assignment repository: fleet_assignments.

Tags:
    fleet-core, repository, assignments, leases

Doc-Types:
    api-reference
"""

from __future__ import annotations

from typing import Any

from fleet.core.models import Assignment, AssignmentStatus
from fleet.core.repository import BaseRepository

from ._helpers import _build_where, _in_clause, _to_column

# Columns cleared when a lease is released back to PENDING
_RESET_FIELDS = {
    "status": AssignmentStatus.PENDING.value,
    "worker_id": None,
    "progress": 0.0,
    "current_stage": None,
    "eta": None,
    "started_at": None,
    "completed_at": None,
}


class AssignmentRepository(BaseRepository):
    """CRUD and lease lookups for the ``fleet_assignments`` table."""

    TABLE = "fleet_assignments"

    # -- reads -----------------------------------------------------------------

    def get_by_id(self, assignment_id: str) -> Assignment | None:
        row = self.query_one(
            f"SELECT * FROM {self.TABLE} WHERE id = {self.ph(1)}",
            (assignment_id,),
        )
        return Assignment.from_row(row) if row else None

    def list_for_study(self, study_id: str) -> list[Assignment]:
        rows = self.query(
            f"SELECT * FROM {self.TABLE} WHERE super_study_id = {self.ph(1)} "
            f"ORDER BY assignment_index ASC",
            (study_id,),
        )
        return [Assignment.from_row(r) for r in rows]

    def list_for_worker(
        self,
        worker_id: str,
        *,
        statuses: list[AssignmentStatus] | None = None,
    ) -> list[Assignment]:
        """Assignments owned by *worker_id*, most recently started first."""
        extra = []
        params: tuple = ()
        if statuses:
            clause, params = _in_clause("status", list(statuses))
            extra.append(clause)
        where, base = _build_where({"worker_id": worker_id}, extra_clauses=extra)
        rows = self.query(
            f"SELECT * FROM {self.TABLE} WHERE {where} "
            f"ORDER BY started_at DESC, assignment_index ASC",
            (*base, *params),
        )
        return [Assignment.from_row(r) for r in rows]

    def list_for_workers(
        self,
        worker_ids: list[str],
        *,
        statuses: list[AssignmentStatus] | None = None,
    ) -> list[Assignment]:
        if not worker_ids:
            return []
        clause, params = _in_clause("worker_id", worker_ids)
        extra: list[str] = [clause]
        if statuses:
            status_clause, status_params = _in_clause("status", list(statuses))
            extra.append(status_clause)
            params = (*params, *status_params)
        where, _ = _build_where({}, extra_clauses=extra)
        rows = self.query(
            f"SELECT * FROM {self.TABLE} WHERE {where} ORDER BY assignment_index ASC",
            params,
        )
        return [Assignment.from_row(r) for r in rows]

    def list_running_for_worker(self, worker_id: str) -> list[Assignment]:
        return self.list_for_worker(worker_id, statuses=[AssignmentStatus.RUNNING])

    def count_running_for_worker(self, worker_id: str, *, exclude_id: str | None = None) -> int:
        sql = (
            f"SELECT COUNT(*) AS value FROM {self.TABLE} "
            f"WHERE worker_id = {self.ph(1)} AND status = {self.ph(1)}"
        )
        params: list[Any] = [worker_id, AssignmentStatus.RUNNING.value]
        if exclude_id:
            sql += f" AND id != {self.ph(1)}"
            params.append(exclude_id)
        return self.scalar(sql, tuple(params))

    def status_counts(self, study_id: str) -> dict[AssignmentStatus, int]:
        """``{status: count}`` for every status (zero-filled)."""
        rows = self.query(
            f"SELECT status, COUNT(*) AS cnt FROM {self.TABLE} "
            f"WHERE super_study_id = {self.ph(1)} GROUP BY status",
            (study_id,),
        )
        counts = {status: 0 for status in AssignmentStatus}
        for row in rows:
            counts[AssignmentStatus(row["status"])] = row["cnt"]
        return counts

    # -- writes ----------------------------------------------------------------

    def create_many(self, assignments: list[Assignment]) -> int:
        return self.insert_many(self.TABLE, [a.to_row() for a in assignments])

    def update_fields(self, assignment_id: str, **fields: Any) -> int:
        data = {k: _to_column(v) for k, v in fields.items()}
        return self.update(self.TABLE, ("id", assignment_id), data)

    def transfer_running(self, from_worker_ids: list[str], to_worker_id: str) -> list[Assignment]:
        """Re-point RUNNING assignments owned by *from_worker_ids* at *to_worker_id*.

        Returns the assignments moved (with their new owner).
        """
        if not from_worker_ids:
            return []
        clause, params = _in_clause("worker_id", from_worker_ids)
        rows = self.query(
            f"SELECT * FROM {self.TABLE} WHERE {clause} AND status = {self.ph(1)}",
            (*params, AssignmentStatus.RUNNING.value),
        )
        moved = [Assignment.from_row(r) for r in rows]
        for assignment in moved:
            self.update_fields(assignment.id, worker_id=to_worker_id)
            assignment.worker_id = to_worker_id
        return moved

    def reset(self, assignment_id: str) -> int:
        """Release one assignment back to PENDING with cleared lease fields."""
        return self.update(self.TABLE, ("id", assignment_id), dict(_RESET_FIELDS))

    def reset_for_worker(self, worker_id: str) -> list[Assignment]:
        """Release every assignment owned by *worker_id*.

        Returns the assignments as they were before the reset so callers can
        recompute the affected studies.
        """
        owned = self.list_for_worker(worker_id)
        for assignment in owned:
            self.reset(assignment.id)
        return owned
