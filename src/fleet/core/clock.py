"""Injectable time source.

Every liveness decision in fleet-core is a comparison between a stored
timestamp and "now".  Components never call ``datetime.now()`` directly;
they receive a :class:`Clock` so tests can pin and advance time without
patching modules.

Examples:
    >>> from fleet.core.clock import FrozenClock
    >>> clock = FrozenClock()
    >>> start = clock.now()
    >>> _ = clock.advance(seconds=61)
    >>> (clock.now() - start).total_seconds()
    61.0

Tags:
    clock, time, testing, fleet-core

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Protocol, runtime_checkable

from fleet.core.timestamps import utc_now


@runtime_checkable
class Clock(Protocol):
    """Source of timezone-aware UTC timestamps."""

    def now(self) -> datetime:
        """Return the current UTC time."""
        ...


class SystemClock:
    """Wall-clock time."""

    def now(self) -> datetime:
        return utc_now()

    def __repr__(self) -> str:
        return "SystemClock()"


class FrozenClock:
    """Manually-driven clock for tests and replays.

    Time only moves when :meth:`advance` or :meth:`set` is called.
    """

    def __init__(self, start: datetime | None = None) -> None:
        if start is None:
            start = datetime(2025, 1, 1, 12, 0, 0, tzinfo=UTC)
        if start.tzinfo is None:
            start = start.replace(tzinfo=UTC)
        self._now = start

    def now(self) -> datetime:
        return self._now

    def advance(self, *, seconds: float = 0, minutes: float = 0) -> datetime:
        """Move time forward and return the new "now"."""
        self._now = self._now + timedelta(seconds=seconds, minutes=minutes)
        return self._now

    def set(self, when: datetime) -> None:
        if when.tzinfo is None:
            when = when.replace(tzinfo=UTC)
        self._now = when

    def __repr__(self) -> str:
        return f"FrozenClock({self._now.isoformat()})"


__all__ = ["Clock", "FrozenClock", "SystemClock"]
