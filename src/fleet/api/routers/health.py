"""Health endpoints for container probes.

Mounted at the root (no API prefix)::

    GET /health         Runs the database check; 503 when it fails
    GET /health/live    Liveness probe, always 200

Tags:
    fleet-core, api, health, probes
"""

from __future__ import annotations

import time
from datetime import UTC, datetime
from typing import Literal

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from fleet.api.deps import Settings
from fleet.core.connection import create_connection
from fleet.core.logging import get_logger

logger = get_logger(__name__)

_START_TIME = time.monotonic()

router = APIRouter(prefix="/health")


class CheckResult(BaseModel):
    """Outcome of one dependency check."""

    status: Literal["healthy", "unhealthy"]
    latency_ms: float | None = None
    error: str | None = None


class HealthResponse(BaseModel):
    status: Literal["healthy", "unhealthy"]
    service: str
    version: str
    uptime_s: float
    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    checks: dict[str, CheckResult] = Field(default_factory=dict)


class LivenessResponse(BaseModel):
    status: str = "alive"


def _check_database(database_url: str, data_dir) -> CheckResult:
    start = time.monotonic()
    try:
        conn, _info = create_connection(database_url, data_dir=data_dir)
        try:
            conn.execute("SELECT 1")
            conn.fetchone()
        finally:
            conn.close()
    except Exception as exc:  # noqa: BLE001
        logger.warning("health_check_failed", check="database", error=str(exc))
        return CheckResult(status="unhealthy", error=str(exc)[:200])
    return CheckResult(status="healthy", latency_ms=round((time.monotonic() - start) * 1000, 2))


@router.get("", response_model=HealthResponse)
def health(settings: Settings) -> JSONResponse:
    """Primary health: 200 when the store answers, 503 otherwise."""
    database = _check_database(settings.database_url, settings.data_dir)
    body = HealthResponse(
        status=database.status,
        service="fleet-core",
        version=settings.api_version,
        uptime_s=round(time.monotonic() - _START_TIME, 1),
        checks={"database": database},
    )
    code = 503 if database.status == "unhealthy" else 200
    return JSONResponse(content=body.model_dump(), status_code=code)


@router.get("/live", response_model=LivenessResponse)
def liveness() -> LivenessResponse:
    return LivenessResponse()
