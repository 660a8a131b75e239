"""
Liveness tracking for worker sessions.

Staleness is never driven by a background timer.  It is computed lazily
whenever a contact or a read touches a session, by comparing ``last_seen``
with a timeout picked from the session's current duty.

Timeout tiers (most specific wins)::

    provisional (claim-created, never heartbeated)  → provisional_timeout (5 min)
    holds a RUNNING assignment, or duty RUNNING      → running_timeout     (60 s)
    anything else                                    → idle_timeout        (15 s)

Marking a session stale never touches the assignments it owns.  Lease
correctness is left to reconciliation so a late heartbeat can still resume
the session's work.

Tags:
    liveness, staleness, heartbeat, fleet-coordination
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any

from fleet.core.clock import Clock
from fleet.core.logging import get_logger
from fleet.core.models import WorkerSession, WorkerStatus
from fleet.core.settings import CoordinationPolicy
from fleet.core.store import FleetStore

logger = get_logger(__name__)


class LivenessTracker:
    """Stamps contacts and classifies sessions as alive or stale."""

    def __init__(self, store: FleetStore, clock: Clock, policy: CoordinationPolicy) -> None:
        self.store = store
        self.clock = clock
        self.policy = policy

    def holds_running_lease(self, session: WorkerSession) -> bool:
        return self.store.assignments.count_running_for_worker(session.id) > 0

    def timeout_for(
        self,
        session: WorkerSession,
        *,
        holds_running_lease: bool | None = None,
    ) -> timedelta:
        """Timeout tier for *session*.

        ``holds_running_lease`` may be passed when the caller already knows
        it, saving a query.
        """
        if session.is_provisional:
            return self.policy.provisional_timeout
        if holds_running_lease is None:
            holds_running_lease = self.holds_running_lease(session)
        if holds_running_lease or session.status == WorkerStatus.RUNNING:
            return self.policy.running_timeout
        return self.policy.idle_timeout

    def is_expired(
        self,
        session: WorkerSession,
        *,
        now: datetime | None = None,
        holds_running_lease: bool | None = None,
    ) -> bool:
        """Whether ``last_seen`` is older than the session's timeout tier."""
        now = now or self.clock.now()
        timeout = self.timeout_for(session, holds_running_lease=holds_running_lease)
        return now - session.last_seen > timeout

    def is_stale(self, session: WorkerSession, *, now: datetime | None = None) -> bool:
        """Effective staleness: the persisted flag, or an expired timeout."""
        return session.is_stale or self.is_expired(session, now=now)

    def is_offline(self, session: WorkerSession, *, now: datetime | None = None) -> bool:
        """Presence flag: no contact within ``offline_after``."""
        now = now or self.clock.now()
        return now - session.last_seen > self.policy.offline_after

    def touch(self, session: WorkerSession, **fields: Any) -> WorkerSession:
        """Stamp ``last_seen`` (plus any extra columns) and return the updated session."""
        now = self.clock.now()
        self.store.workers.update_fields(session.id, last_seen=now, **fields)
        return replace(session, last_seen=now, **fields)

    def mark_stale(self, sessions: list[WorkerSession], *, reason: str) -> list[str]:
        """Persist ``is_stale`` for *sessions*.  Returns the ids marked."""
        ids = [s.id for s in sessions if not s.is_stale]
        if not ids:
            return []
        self.store.workers.mark_stale(ids)
        for session in (s for s in sessions if s.id in ids):
            logger.info(
                "session_marked_stale",
                session_id=session.id,
                network_id=session.network_id,
                reason=reason,
                last_seen=session.last_seen.isoformat(),
            )
        return ids


__all__ = ["LivenessTracker"]
