"""
Identifier and timestamp utilities (stdlib-only).

Shared primitives for generating unique IDs and working with UTC
timestamps. Every repository stores timestamps through
:func:`to_iso8601` so that stored values sort lexicographically in the
same order as the instants they represent; recency filters
(``last_seen >= ?``) rely on that.

Features:
    - **new_id():** Random UUID4 string for row identifiers
    - **utc_now():** Timezone-aware UTC datetime
    - **to_iso8601() / from_iso8601():** Fixed-width serialization round-trip

Tags:
    timestamps, uuid, utc, datetime, fleet-core, stdlib-only

Doc-Types:
    - API Reference
    - Utility Documentation

STDLIB ONLY - NO PYDANTIC.
"""

import uuid
from datetime import UTC, datetime


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(UTC)


def new_id() -> str:
    """Generate a row identifier."""
    return str(uuid.uuid4())


def to_iso8601(dt: datetime | None) -> str | None:
    """Convert datetime to a fixed-width UTC ISO 8601 string.

    Naive datetimes are assumed to already be UTC. Microseconds are always
    rendered so that string comparison matches chronological order.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC).isoformat(timespec="microseconds")


def from_iso8601(s: str | None) -> datetime | None:
    """Parse ISO 8601 string to a timezone-aware datetime."""
    if s is None or s == "":
        return None
    dt = datetime.fromisoformat(s)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt
