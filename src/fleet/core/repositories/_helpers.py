"""Shared helpers for repository classes.

Tags:
    fleet-core, repository, helpers

Doc-Types:
    api-reference
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from fleet.core.timestamps import to_iso8601


def _build_where(
    conditions: dict[str, Any],
    *,
    extra_clauses: list[str] | None = None,
) -> tuple[str, tuple]:
    """Build a WHERE clause from a conditions dict.

    Returns ``(where_fragment, params_tuple)``.  Skips ``None`` values.
    ``extra_clauses`` are appended literally (no params).
    """
    parts: list[str] = []
    params: list[Any] = []
    for col, val in conditions.items():
        if val is None:
            continue
        parts.append(f"{col} = ?")
        params.append(_to_column(val))
    if extra_clauses:
        parts.extend(extra_clauses)
    where = " AND ".join(parts) if parts else "1=1"
    return where, tuple(params)


def _in_clause(column: str, values: list[Any]) -> tuple[str, tuple]:
    """``column IN (?, ?, ...)`` for a non-empty *values* list."""
    ph = ", ".join("?" for _ in values)
    return f"{column} IN ({ph})", tuple(_to_column(v) for v in values)


def _to_column(value: Any) -> Any:
    """Serialize a Python value for a column (datetimes → ISO, enums → value, bools → 0/1)."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return to_iso8601(value)
    if isinstance(value, bool):
        return 1 if value else 0
    return value
