"""
API-specific settings.

Extends :class:`~fleet.core.settings.FleetBaseSettings` with parameters
that govern the REST transport (prefix, OpenAPI metadata, database URL,
CORS).  The coordination windows are inherited, so one ``FLEET_*``
environment configures both the transport and the engine.
"""

from __future__ import annotations

from pydantic import Field

from fleet.core.settings import FleetBaseSettings


class FleetAPISettings(FleetBaseSettings):
    """Settings for the fleet-core REST API.

    Order of precedence (highest → lowest):
        1. Environment variables (``FLEET_API_PREFIX``, ``FLEET_DATABASE_URL``, etc.)
        2. ``.env`` file
        3. Defaults below
    """

    # ── API ──────────────────────────────────────────────────────────────
    api_prefix: str = Field(default="/api/v1", description="URL prefix for all endpoints")
    api_title: str = Field(default="fleet-core API", description="OpenAPI title")
    api_version: str = Field(default="0.1.0", description="OpenAPI version string")

    # ── Database ─────────────────────────────────────────────────────────
    database_url: str = Field(
        default="sqlite:///fleet.db",
        description="SQLite URL or path; relative paths resolve under data_dir",
    )

    # ── CORS ─────────────────────────────────────────────────────────────
    cors_origins: list[str] = Field(
        default=["*"],
        description="Allowed CORS origins",
    )
