"""
Worker identity resolution.

Maps an inbound ``(network_id, hostname?)`` contact to the worker session it
belongs to, re-establishing identity across IP churn, process restarts and
claims that arrive before the first heartbeat.

Manifesto:
    Workers sit behind VPNs and DHCP, restart without saying goodbye, and
    sometimes claim work before they have sent a single heartbeat.  No
    single identifier survives all of that, so resolution walks a short
    priority list and short-circuits on the first match.  Identity is
    decided by timestamps only; there is no lock, so two simultaneous first
    contacts may create two sessions.  The next contact and the read-side
    reconciliation converge them.

Architecture:
    ::

        resolve(network_id, hostname?, hardware?)
          │
          ├─ 1. active session for network_id ── expired? ─ yes → mark stale, fall through
          │                                        └─ no  → REUSED
          ├─ 2. hostname given: hostname-less claim placeholder created
          │     within claim_adopt_window owning a RUNNING lease → ADOPTED_PLACEHOLDER
          ├─ 3. hostname given: active session with that hostname seen
          │     within hostname_window                            → ADOPTED_HOSTNAME
          └─ 4. create new session                                → CREATED
                  └─ lease transfer: RUNNING assignments of stale sessions
                     sharing network_id / hostname move to the new session

Tags:
    identity, sessions, leases, fleet-coordination
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from fleet.core.clock import Clock
from fleet.core.errors import ValidationError
from fleet.core.logging import get_logger
from fleet.core.models import HardwareInfo, WorkerSession, WorkerStatus
from fleet.core.settings import CoordinationPolicy
from fleet.core.store import FleetStore
from fleet.core.timestamps import new_id
from fleet.coordination.liveness import LivenessTracker

logger = get_logger(__name__)


class ResolutionOutcome(str, Enum):
    REUSED = "reused"
    ADOPTED_PLACEHOLDER = "adopted_placeholder"
    ADOPTED_HOSTNAME = "adopted_hostname"
    CREATED = "created"


@dataclass
class Resolution:
    """Result of resolving one contact.

    Attributes:
        session: The session the contact is attributed to (already stamped).
        outcome: Which resolution step matched.
        superseded: Ids of sessions marked stale during resolution.
        transferred: Ids of RUNNING assignments moved to ``session``.
    """

    session: WorkerSession
    outcome: ResolutionOutcome
    superseded: list[str] = field(default_factory=list)
    transferred: list[str] = field(default_factory=list)

    @property
    def created(self) -> bool:
        return self.outcome == ResolutionOutcome.CREATED


class WorkerIdentityResolver:
    """Resolves contacts to worker sessions.

    Args:
        store: Store handle.
        clock: Time source.
        policy: Timing windows.
        liveness: Tracker used for expiry checks and contact stamping.
    """

    def __init__(
        self,
        store: FleetStore,
        clock: Clock,
        policy: CoordinationPolicy,
        liveness: LivenessTracker | None = None,
    ) -> None:
        self.store = store
        self.clock = clock
        self.policy = policy
        self.liveness = liveness or LivenessTracker(store, clock, policy)

    def resolve(
        self,
        network_id: str,
        hostname: str | None = None,
        hardware: HardwareInfo | None = None,
        *,
        provisional: bool = False,
    ) -> Resolution:
        """Attribute a contact to a session, creating one if necessary.

        Args:
            network_id: Network identifier of the caller (e.g. its address).
            hostname: Hostname, when the caller reports one.
            hardware: Hardware descriptor, when the caller reports one.
            provisional: ``True`` for claim contacts.  A session created by a
                claim is provisional until its first heartbeat; any other
                contact clears the flag.

        Raises:
            ValidationError: If ``network_id`` is empty.
        """
        if not network_id or not network_id.strip():
            raise ValidationError("network_id is required")
        resolution = self._resolve(network_id, hostname, hardware, provisional)
        if resolution.superseded:
            self.store.live_states.delete_for_workers(resolution.superseded)
        return resolution

    # -- internals -------------------------------------------------------------

    def _resolve(
        self,
        network_id: str,
        hostname: str | None,
        hardware: HardwareInfo | None,
        provisional: bool,
    ) -> Resolution:
        hostname = hostname.strip() if hostname and hostname.strip() else None
        now = self.clock.now()
        superseded: list[str] = []

        # 1. Active session for this network identifier
        current = self.store.workers.find_active_by_network(network_id)
        if current is not None:
            if self.liveness.is_expired(current, now=now):
                superseded += self.liveness.mark_stale([current], reason="timeout")
            else:
                session = self._refresh(current, hostname, hardware, provisional)
                superseded += self._supersede_duplicates(session)
                return Resolution(session, ResolutionOutcome.REUSED, superseded)

        if hostname:
            # 2. Claim placeholder waiting for its first full heartbeat
            placeholder = self.store.workers.find_claim_placeholder(
                now - self.policy.claim_adopt_window
            )
            if placeholder is not None and placeholder.network_id != network_id:
                session = self._refresh(
                    placeholder, hostname, hardware, provisional, network_id=network_id
                )
                logger.info(
                    "session_adopted",
                    session_id=session.id,
                    step="claim_placeholder",
                    old_network_id=placeholder.network_id,
                    network_id=network_id,
                    hostname=hostname,
                )
                superseded += self._supersede_duplicates(session)
                return Resolution(session, ResolutionOutcome.ADOPTED_PLACEHOLDER, superseded)

            # 3. Same machine, new network identifier
            same_host = self.store.workers.find_active_by_hostname(
                hostname, now - self.policy.hostname_window
            )
            if same_host is not None:
                session = self._refresh(
                    same_host, hostname, hardware, provisional, network_id=network_id
                )
                logger.info(
                    "session_adopted",
                    session_id=session.id,
                    step="hostname",
                    old_network_id=same_host.network_id,
                    network_id=network_id,
                    hostname=hostname,
                )
                superseded += self._supersede_duplicates(session)
                return Resolution(session, ResolutionOutcome.ADOPTED_HOSTNAME, superseded)

        # 4. New connection epoch
        return self._create(network_id, hostname, hardware, provisional, superseded)

    def _refresh(
        self,
        session: WorkerSession,
        hostname: str | None,
        hardware: HardwareInfo | None,
        provisional: bool,
        *,
        network_id: str | None = None,
    ) -> WorkerSession:
        fields: dict = {}
        if network_id is not None and network_id != session.network_id:
            fields["network_id"] = network_id
        if hostname and hostname != session.hostname:
            fields["hostname"] = hostname
        if hardware is not None:
            for name in ("gpu_name", "cpu_cores", "total_ram_gb"):
                value = getattr(hardware, name)
                if value is not None and value != getattr(session, name):
                    fields[name] = value
        if session.is_provisional and not provisional:
            fields["is_provisional"] = False
        if session.status == WorkerStatus.OFFLINE:
            running = self.liveness.holds_running_lease(session)
            fields["status"] = WorkerStatus.RUNNING if running else WorkerStatus.IDLE
        return self.liveness.touch(session, **fields)

    def _supersede_duplicates(self, session: WorkerSession) -> list[str]:
        """Retire other active sessions left behind by racing first contacts."""
        others = self.store.workers.list_active_for_network(
            session.network_id, exclude_id=session.id
        )
        return self.liveness.mark_stale(others, reason="superseded")

    def _create(
        self,
        network_id: str,
        hostname: str | None,
        hardware: HardwareInfo | None,
        provisional: bool,
        superseded: list[str],
    ) -> Resolution:
        now = self.clock.now()
        hardware = hardware or HardwareInfo()
        session = WorkerSession(
            id=new_id(),
            network_id=network_id,
            hostname=hostname,
            gpu_name=hardware.gpu_name,
            cpu_cores=hardware.cpu_cores,
            total_ram_gb=hardware.total_ram_gb,
            status=WorkerStatus.IDLE,
            is_stale=False,
            is_provisional=provisional,
            last_seen=now,
            created_at=now,
        )
        superseded = superseded + self.liveness.mark_stale(
            self.store.workers.list_active_for_network(network_id), reason="superseded"
        )
        self.store.workers.create(session)
        logger.info(
            "session_created",
            session_id=session.id,
            network_id=network_id,
            hostname=hostname,
            provisional=provisional,
        )

        # Lease transfer from earlier epochs of the same machine
        peers = self.store.workers.list_stale_peers(network_id, hostname, exclude_id=session.id)
        moved = self.store.assignments.transfer_running([p.id for p in peers], session.id)
        if moved:
            self.store.workers.update_fields(session.id, status=WorkerStatus.RUNNING)
            session.status = WorkerStatus.RUNNING
            for assignment in moved:
                logger.info(
                    "lease_transferred",
                    assignment_id=assignment.id,
                    session_id=session.id,
                    network_id=network_id,
                )

        return Resolution(
            session,
            ResolutionOutcome.CREATED,
            superseded=superseded,
            transferred=[a.id for a in moved],
        )


__all__ = ["Resolution", "ResolutionOutcome", "WorkerIdentityResolver"]
