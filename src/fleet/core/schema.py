"""
Fleet coordination tables.

Defines table names and DDL for the coordination engine's durable state:
worker sessions, super studies, assignments, per-session live state, and
the progress event audit trail.

Architecture:
    ::

        Table Registry (FLEET_TABLES):
        ┌────────────────────────────────────────────────────────────┐
        │ workers          → fleet_workers          (session log)    │
        │ super_studies    → fleet_super_studies                     │
        │ assignments      → fleet_assignments      (leases)         │
        │ live_states      → fleet_live_states      (1 per session)  │
        │ progress_events  → fleet_progress_events  (audit trail)    │
        └────────────────────────────────────────────────────────────┘

        Cascades:
        ┌────────────────────────────────────────────────────────────┐
        │ super_study  ──delete──▶ assignments                       │
        │ worker       ──delete──▶ live_states, progress_events      │
        │ worker       ──delete──▶ assignments.worker_id = NULL      │
        └────────────────────────────────────────────────────────────┘

Features:
    - **FLEET_TABLES:** Logical name → table name
    - **FLEET_DDL:** CREATE TABLE statements (idempotent)
    - **FLEET_INDEXES:** Indexes for the identity-resolution lookups
    - **create_tables():** Apply everything to a connection

Timestamps are stored as fixed-width ISO 8601 UTC strings
(see :func:`fleet.core.timestamps.to_iso8601`), so range filters compare
strings directly.

Tags:
    schema, ddl, tables, fleet-core, database

Doc-Types:
    - Schema Documentation
"""

from __future__ import annotations

from fleet.core.protocols import Connection

# =============================================================================
# TABLE NAMES
# =============================================================================

FLEET_TABLES = {
    "workers": "fleet_workers",
    "super_studies": "fleet_super_studies",
    "assignments": "fleet_assignments",
    "live_states": "fleet_live_states",
    "progress_events": "fleet_progress_events",
}

# =============================================================================
# DDL STATEMENTS
# =============================================================================

FLEET_DDL = {
    # One row per (machine, connection epoch). Never deleted automatically.
    "workers": """
        CREATE TABLE IF NOT EXISTS fleet_workers (
            id TEXT PRIMARY KEY,
            network_id TEXT NOT NULL,
            hostname TEXT,
            machine_label TEXT,

            -- Hardware descriptor
            gpu_name TEXT,
            cpu_cores INTEGER,
            total_ram_gb REAL,

            status TEXT NOT NULL DEFAULT 'IDLE',    -- IDLE, RUNNING, ERROR, OFFLINE
            is_stale INTEGER NOT NULL DEFAULT 0,
            is_provisional INTEGER NOT NULL DEFAULT 0,  -- created by claim, never heartbeated

            last_seen TEXT NOT NULL,
            created_at TEXT NOT NULL
        )
    """,
    "super_studies": """
        CREATE TABLE IF NOT EXISTS fleet_super_studies (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            description TEXT NOT NULL DEFAULT '',
            base_config_json TEXT,

            -- Derived by the rollup aggregator
            total_assignments INTEGER NOT NULL DEFAULT 0,
            completed_assignments INTEGER NOT NULL DEFAULT 0,
            master_progress REAL NOT NULL DEFAULT 0,
            status TEXT NOT NULL DEFAULT 'PENDING',  -- PENDING, RUNNING, COMPLETED

            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
    """,
    "assignments": """
        CREATE TABLE IF NOT EXISTS fleet_assignments (
            id TEXT PRIMARY KEY,
            super_study_id TEXT NOT NULL
                REFERENCES fleet_super_studies(id) ON DELETE CASCADE,
            assignment_index INTEGER NOT NULL,

            status TEXT NOT NULL DEFAULT 'PENDING',  -- PENDING, RUNNING, COMPLETED, FAILED
            worker_id TEXT REFERENCES fleet_workers(id) ON DELETE SET NULL,

            progress REAL NOT NULL DEFAULT 0,
            current_stage TEXT,
            eta TEXT,
            started_at TEXT,
            completed_at TEXT,

            config_json TEXT,

            UNIQUE (super_study_id, assignment_index)
        )
    """,
    "live_states": """
        CREATE TABLE IF NOT EXISTS fleet_live_states (
            worker_id TEXT PRIMARY KEY
                REFERENCES fleet_workers(id) ON DELETE CASCADE,
            stage TEXT NOT NULL DEFAULT '',
            progress REAL NOT NULL DEFAULT 0,
            stage_progress REAL NOT NULL DEFAULT 0,
            status TEXT NOT NULL DEFAULT 'IDLE',
            log_json TEXT NOT NULL DEFAULT '[]',
            warning_count INTEGER NOT NULL DEFAULT 0,
            error_count INTEGER NOT NULL DEFAULT 0,
            eta TEXT,
            updated_at TEXT NOT NULL
        )
    """,
    # Append-only; best-effort writes
    "progress_events": """
        CREATE TABLE IF NOT EXISTS fleet_progress_events (
            id TEXT PRIMARY KEY,
            worker_id TEXT NOT NULL
                REFERENCES fleet_workers(id) ON DELETE CASCADE,
            event_type TEXT NOT NULL,   -- PROGRESS, STAGE_CHANGE, LOG, FINISHED, ERROR, ETA_UPDATE
            message TEXT,
            stage TEXT,
            progress REAL,
            eta TEXT,
            data_json TEXT,
            created_at TEXT NOT NULL
        )
    """,
}

FLEET_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_fleet_workers_network "
    "ON fleet_workers (network_id, is_stale, last_seen)",
    "CREATE INDEX IF NOT EXISTS idx_fleet_workers_hostname "
    "ON fleet_workers (hostname, is_stale, last_seen)",
    "CREATE INDEX IF NOT EXISTS idx_fleet_assignments_worker "
    "ON fleet_assignments (worker_id, status)",
    "CREATE INDEX IF NOT EXISTS idx_fleet_assignments_study "
    "ON fleet_assignments (super_study_id, assignment_index)",
    "CREATE INDEX IF NOT EXISTS idx_fleet_events_worker "
    "ON fleet_progress_events (worker_id, created_at)",
]


def create_tables(conn: Connection) -> list[str]:
    """Create all fleet tables and indexes (idempotent).

    Returns:
        Names of the tables ensured, in creation order.
    """
    for ddl in FLEET_DDL.values():
        conn.execute(ddl)
    for stmt in FLEET_INDEXES:
        conn.execute(stmt)
    conn.commit()
    return list(FLEET_TABLES.values())


__all__ = ["FLEET_DDL", "FLEET_INDEXES", "FLEET_TABLES", "create_tables"]
