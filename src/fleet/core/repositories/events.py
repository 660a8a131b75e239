"""Progress event repository: fleet_progress_events.

Tags:
    fleet-core, repository, events, audit

Doc-Types:
    api-reference
"""

from __future__ import annotations

from fleet.core.models import EventType, ProgressEvent
from fleet.core.repository import BaseRepository

from ._helpers import _build_where


class EventRepository(BaseRepository):
    """Append-only audit trail of ingested reports."""

    TABLE = "fleet_progress_events"

    def add(self, event: ProgressEvent) -> None:
        self.insert(self.TABLE, event.to_row())

    def list_for_worker(
        self,
        worker_id: str,
        *,
        event_type: EventType | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[ProgressEvent], int]:
        """Events for a session, newest first.  Returns ``(events, total)``."""
        where, params = _build_where({"worker_id": worker_id, "event_type": event_type})
        total = self.scalar(f"SELECT COUNT(*) AS value FROM {self.TABLE} WHERE {where}", params)
        rows = self.query(
            f"SELECT * FROM {self.TABLE} WHERE {where} "
            f"ORDER BY created_at DESC LIMIT {self.ph(1)} OFFSET {self.ph(1)}",
            (*params, limit, offset),
        )
        return [ProgressEvent.from_row(r) for r in rows], total
