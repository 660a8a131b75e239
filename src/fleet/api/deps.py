"""
FastAPI dependency injection: shared singletons and per-request factories.

Usage in routers::

    from fleet.api.deps import OpContext

    @router.get("/things")
    def list_things(ctx: OpContext):
        ...

Each request opens its own connection and closes it when the response is
sent; handlers share nothing in memory.  Tests replace :func:`get_clock`
through ``app.dependency_overrides`` to drive liveness deterministically.

Tags:
    fleet-core, api, dependency-injection, OpContext
"""

from __future__ import annotations

import uuid
from collections.abc import Generator
from functools import lru_cache
from typing import Annotated, Any

from fastapi import Depends, Request

from fleet.api.settings import FleetAPISettings
from fleet.core.clock import Clock, SystemClock
from fleet.core.connection import create_connection
from fleet.ops.context import OperationContext

# ── Settings (singleton) ─────────────────────────────────────────────────


@lru_cache(maxsize=1)
def get_settings() -> FleetAPISettings:
    """Cached settings, loaded once per process."""
    return FleetAPISettings()


# ── Clock (singleton) ────────────────────────────────────────────────────

_SYSTEM_CLOCK = SystemClock()


def get_clock() -> Clock:
    return _SYSTEM_CLOCK


# ── Database connection (per-request) ────────────────────────────────────


def get_connection(
    settings: Annotated[FleetAPISettings, Depends(get_settings)],
) -> Generator[Any, None, None]:
    """Yield a database connection for the request lifespan."""
    conn, _info = create_connection(
        settings.database_url,
        data_dir=settings.data_dir,
    )

    try:
        yield conn
    finally:
        conn.close()


# ── Operation context (per-request) ──────────────────────────────────────


def get_operation_context(
    request: Request,
    conn: Annotated[Any, Depends(get_connection)],
    settings: Annotated[FleetAPISettings, Depends(get_settings)],
    clock: Annotated[Clock, Depends(get_clock)],
) -> OperationContext:
    """Build an :class:`OperationContext` from the current request."""
    request_id = getattr(request.state, "request_id", str(uuid.uuid4()))
    return OperationContext(
        conn=conn,
        clock=clock,
        policy=settings.coordination_policy(),
        request_id=request_id,
        caller="api",
    )


# ── Convenience type aliases ─────────────────────────────────────────────

Settings = Annotated[FleetAPISettings, Depends(get_settings)]
OpContext = Annotated[OperationContext, Depends(get_operation_context)]
