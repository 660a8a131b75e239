"""Live state repository: fleet_live_states.

Tags:
    fleet-core, repository, live-state

Doc-Types:
    api-reference
"""

from __future__ import annotations

from fleet.core.models import LiveState
from fleet.core.repository import BaseRepository

from ._helpers import _in_clause


class LiveStateRepository(BaseRepository):
    """One row per session, written back whole on every report."""

    TABLE = "fleet_live_states"

    def get(self, worker_id: str) -> LiveState | None:
        row = self.query_one(
            f"SELECT * FROM {self.TABLE} WHERE worker_id = {self.ph(1)}",
            (worker_id,),
        )
        return LiveState.from_row(row) if row else None

    def save(self, state: LiveState) -> None:
        row = state.to_row()
        columns = list(row.keys())
        self.execute(
            self.dialect.upsert(self.TABLE, columns, ["worker_id"]),
            tuple(row[c] for c in columns),
        )

    def delete_for_workers(self, worker_ids: list[str]) -> int:
        if not worker_ids:
            return 0
        clause, params = _in_clause("worker_id", worker_ids)
        cursor = self.execute(f"DELETE FROM {self.TABLE} WHERE {clause}", params)
        return getattr(cursor, "rowcount", -1)
