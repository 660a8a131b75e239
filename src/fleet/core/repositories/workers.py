"""Worker session repository: fleet_workers.

Tags:
    fleet-core, repository, workers

Doc-Types:
    api-reference
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from fleet.core.models import AssignmentStatus, WorkerSession
from fleet.core.repository import BaseRepository
from fleet.core.timestamps import to_iso8601

from ._helpers import _build_where, _in_clause, _to_column


class WorkerRepository(BaseRepository):
    """CRUD and identity lookups for the ``fleet_workers`` table."""

    TABLE = "fleet_workers"
    ASSIGNMENTS_TABLE = "fleet_assignments"

    # -- reads -----------------------------------------------------------------

    def get_by_id(self, worker_id: str) -> WorkerSession | None:
        row = self.query_one(
            f"SELECT * FROM {self.TABLE} WHERE id = {self.ph(1)}",
            (worker_id,),
        )
        return WorkerSession.from_row(row) if row else None

    def get_many(self, worker_ids: list[str]) -> dict[str, WorkerSession]:
        """Fetch sessions by id.  Returns ``{id: session}`` for those found."""
        if not worker_ids:
            return {}
        clause, params = _in_clause("id", sorted(set(worker_ids)))
        rows = self.query(f"SELECT * FROM {self.TABLE} WHERE {clause}", params)
        return {r["id"]: WorkerSession.from_row(r) for r in rows}

    def find_active_by_network(self, network_id: str) -> WorkerSession | None:
        """Most-recently-seen non-stale session for *network_id*."""
        row = self.query_one(
            f"SELECT * FROM {self.TABLE} "
            f"WHERE network_id = {self.ph(1)} AND is_stale = {self.dialect.boolean_false()} "
            f"ORDER BY last_seen DESC LIMIT 1",
            (network_id,),
        )
        return WorkerSession.from_row(row) if row else None

    def find_claim_placeholder(self, created_since: datetime) -> WorkerSession | None:
        """Non-stale, hostname-less session created since *created_since*
        that already owns a RUNNING assignment."""
        row = self.query_one(
            f"SELECT w.* FROM {self.TABLE} w "
            f"WHERE w.is_stale = {self.dialect.boolean_false()} "
            f"AND (w.hostname IS NULL OR w.hostname = '') "
            f"AND w.created_at >= {self.ph(1)} "
            f"AND EXISTS (SELECT 1 FROM {self.ASSIGNMENTS_TABLE} a "
            f"WHERE a.worker_id = w.id AND a.status = {self.ph(1)}) "
            f"ORDER BY w.created_at DESC LIMIT 1",
            (to_iso8601(created_since), AssignmentStatus.RUNNING.value),
        )
        return WorkerSession.from_row(row) if row else None

    def find_active_by_hostname(self, hostname: str, seen_since: datetime) -> WorkerSession | None:
        """Non-stale session with *hostname* seen since *seen_since*."""
        row = self.query_one(
            f"SELECT * FROM {self.TABLE} "
            f"WHERE hostname = {self.ph(1)} AND is_stale = {self.dialect.boolean_false()} "
            f"AND last_seen >= {self.ph(1)} "
            f"ORDER BY last_seen DESC LIMIT 1",
            (hostname, to_iso8601(seen_since)),
        )
        return WorkerSession.from_row(row) if row else None

    def list_stale_peers(
        self,
        network_id: str,
        hostname: str | None,
        *,
        exclude_id: str | None = None,
    ) -> list[WorkerSession]:
        """Stale sessions sharing *network_id* or *hostname*."""
        match_clause = f"network_id = {self.ph(1)}"
        params: list[Any] = [network_id]
        if hostname:
            match_clause = f"({match_clause} OR hostname = {self.ph(1)})"
            params.append(hostname)
        sql = (
            f"SELECT * FROM {self.TABLE} "
            f"WHERE is_stale = {self.dialect.boolean_true()} AND {match_clause}"
        )
        if exclude_id:
            sql += f" AND id != {self.ph(1)}"
            params.append(exclude_id)
        sql += " ORDER BY last_seen DESC"
        return [WorkerSession.from_row(r) for r in self.query(sql, tuple(params))]

    def list_active_for_network(self, network_id: str, *, exclude_id: str | None = None) -> list[WorkerSession]:
        """Every non-stale session for *network_id* (normally zero or one)."""
        sql = (
            f"SELECT * FROM {self.TABLE} "
            f"WHERE network_id = {self.ph(1)} AND is_stale = {self.dialect.boolean_false()}"
        )
        params: list[Any] = [network_id]
        if exclude_id:
            sql += f" AND id != {self.ph(1)}"
            params.append(exclude_id)
        return [WorkerSession.from_row(r) for r in self.query(sql, tuple(params))]

    def list_workers(
        self,
        *,
        include_stale: bool = False,
        network_id: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[WorkerSession], int]:
        """List sessions, newest contact first.  Returns ``(sessions, total)``."""
        extra = [] if include_stale else [f"is_stale = {self.dialect.boolean_false()}"]
        where, params = _build_where({"network_id": network_id}, extra_clauses=extra)
        total = self.scalar(
            f"SELECT COUNT(*) AS value FROM {self.TABLE} WHERE {where}",
            params,
        )
        rows = self.query(
            f"SELECT * FROM {self.TABLE} WHERE {where} "
            f"ORDER BY last_seen DESC LIMIT {self.ph(1)} OFFSET {self.ph(1)}",
            (*params, limit, offset),
        )
        return [WorkerSession.from_row(r) for r in rows], total

    # -- writes ----------------------------------------------------------------

    def create(self, session: WorkerSession) -> None:
        self.insert(self.TABLE, session.to_row())

    def update_fields(self, worker_id: str, **fields: Any) -> int:
        """Update selected columns.  Datetimes and enums are serialized here."""
        data = {k: _to_column(v) for k, v in fields.items()}
        return self.update(self.TABLE, ("id", worker_id), data)

    def mark_stale(self, worker_ids: list[str]) -> int:
        if not worker_ids:
            return 0
        clause, params = _in_clause("id", worker_ids)
        cursor = self.execute(
            f"UPDATE {self.TABLE} SET is_stale = {self.dialect.boolean_true()} WHERE {clause}",
            params,
        )
        return getattr(cursor, "rowcount", -1)

    def delete(self, worker_id: str) -> int:
        cursor = self.execute(
            f"DELETE FROM {self.TABLE} WHERE id = {self.ph(1)}",
            (worker_id,),
        )
        return getattr(cursor, "rowcount", -1)
