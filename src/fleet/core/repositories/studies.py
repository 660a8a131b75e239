"""Super study repository: fleet_super_studies.

Tags:
    fleet-core, repository, studies

Doc-Types:
    api-reference
"""

from __future__ import annotations

from typing import Any

from fleet.core.models import SuperStudy
from fleet.core.repository import BaseRepository

from ._helpers import _to_column


class StudyRepository(BaseRepository):
    """CRUD for the ``fleet_super_studies`` table."""

    TABLE = "fleet_super_studies"

    def get_by_id(self, study_id: str) -> SuperStudy | None:
        row = self.query_one(
            f"SELECT * FROM {self.TABLE} WHERE id = {self.ph(1)}",
            (study_id,),
        )
        return SuperStudy.from_row(row) if row else None

    def list_studies(
        self,
        *,
        name: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[SuperStudy], int]:
        """List studies, newest first; *name* is a substring filter."""
        where = "1=1"
        params: tuple = ()
        if name:
            where = f"name LIKE {self.ph(1)}"
            params = (f"%{name}%",)
        total = self.scalar(f"SELECT COUNT(*) AS value FROM {self.TABLE} WHERE {where}", params)
        rows = self.query(
            f"SELECT * FROM {self.TABLE} WHERE {where} "
            f"ORDER BY created_at DESC LIMIT {self.ph(1)} OFFSET {self.ph(1)}",
            (*params, limit, offset),
        )
        return [SuperStudy.from_row(r) for r in rows], total

    def create(self, study: SuperStudy) -> None:
        self.insert(self.TABLE, study.to_row())

    def update_fields(self, study_id: str, **fields: Any) -> int:
        data = {k: _to_column(v) for k, v in fields.items()}
        return self.update(self.TABLE, ("id", study_id), data)

    def delete(self, study_id: str) -> int:
        """Delete a study; its assignments go with it (ON DELETE CASCADE)."""
        cursor = self.execute(
            f"DELETE FROM {self.TABLE} WHERE id = {self.ph(1)}",
            (study_id,),
        )
        return getattr(cursor, "rowcount", -1)
