"""Base settings and coordination policy.

``FleetBaseSettings`` carries the knobs every fleet service shares (bind
address, log level, data directory).  ``CoordinationPolicy`` holds the
timing windows and limits the coordination engine runs with; it is a plain
frozen dataclass so engine code and tests never need pydantic-settings to
build one.

Environment variables use the ``FLEET_`` prefix::

    FLEET_IDLE_TIMEOUT_S=20
    FLEET_RECONCILE_WRITE_BACK=true

Examples:
    >>> from fleet.core.settings import CoordinationPolicy
    >>> CoordinationPolicy().running_timeout_s
    60.0

Tags:
    settings, configuration, pydantic, environment, fleet-core

Doc-Types:
    - API Reference
    - Configuration Guide
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


@dataclass(frozen=True, slots=True)
class CoordinationPolicy:
    """Timing windows and limits for the coordination engine.

    Attributes:
        idle_timeout_s: Staleness window for a session with no running lease.
        running_timeout_s: Staleness window for a session running an assignment.
        provisional_timeout_s: Staleness window for a claim-created session
            that has never sent a heartbeat.
        claim_adopt_window_s: How recently a hostname-less, lease-holding
            session must have been created to be adopted by a heartbeat.
        hostname_window_s: How recently a session must have been seen to be
            adopted by hostname after a network identifier change.
        offline_after_s: Presence threshold for the ``is_offline`` flag.
        log_capacity: Number of log entries retained in a live state.
        reconcile_write_back: Persist reconciled corrections on read.
    """

    idle_timeout_s: float = 15.0
    running_timeout_s: float = 60.0
    provisional_timeout_s: float = 300.0
    claim_adopt_window_s: float = 120.0
    hostname_window_s: float = 300.0
    offline_after_s: float = 30.0
    log_capacity: int = 100
    reconcile_write_back: bool = False

    @property
    def idle_timeout(self) -> timedelta:
        return timedelta(seconds=self.idle_timeout_s)

    @property
    def running_timeout(self) -> timedelta:
        return timedelta(seconds=self.running_timeout_s)

    @property
    def provisional_timeout(self) -> timedelta:
        return timedelta(seconds=self.provisional_timeout_s)

    @property
    def claim_adopt_window(self) -> timedelta:
        return timedelta(seconds=self.claim_adopt_window_s)

    @property
    def hostname_window(self) -> timedelta:
        return timedelta(seconds=self.hostname_window_s)

    @property
    def offline_after(self) -> timedelta:
        return timedelta(seconds=self.offline_after_s)


class FleetBaseSettings(BaseSettings):
    """Common settings shared across fleet services.

    Fields
    ──────
    host         : Bind address for the HTTP transport
    port         : Bind port for the HTTP transport
    debug        : Enable debug mode (error details in responses)
    log_level    : Structlog log level
    log_json     : Force JSON (True) / console (False) logs; auto when unset
    data_dir     : Directory for relative SQLite paths
    """

    model_config = SettingsConfigDict(
        env_prefix="FLEET_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Network ──────────────────────────────────────────────────
    host: str = "0.0.0.0"
    port: int = 8000

    # ── Observability ────────────────────────────────────────────
    debug: bool = False
    log_level: str = "INFO"
    log_json: bool | None = None

    # ── Storage ──────────────────────────────────────────────────
    data_dir: Path = Field(
        default_factory=lambda: Path.home() / ".fleet",
        description="Directory for relative SQLite database paths",
    )

    # ── Coordination ─────────────────────────────────────────────
    idle_timeout_s: float = Field(default=15.0, gt=0)
    running_timeout_s: float = Field(default=60.0, gt=0)
    provisional_timeout_s: float = Field(default=300.0, gt=0)
    claim_adopt_window_s: float = Field(default=120.0, gt=0)
    hostname_window_s: float = Field(default=300.0, gt=0)
    offline_after_s: float = Field(default=30.0, gt=0)
    log_capacity: int = Field(default=100, ge=1)
    reconcile_write_back: bool = False

    def coordination_policy(self) -> CoordinationPolicy:
        """Build the engine policy from these settings."""
        return CoordinationPolicy(
            idle_timeout_s=self.idle_timeout_s,
            running_timeout_s=self.running_timeout_s,
            provisional_timeout_s=self.provisional_timeout_s,
            claim_adopt_window_s=self.claim_adopt_window_s,
            hostname_window_s=self.hostname_window_s,
            offline_after_s=self.offline_after_s,
            log_capacity=self.log_capacity,
            reconcile_write_back=self.reconcile_write_back,
        )
