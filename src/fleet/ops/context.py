"""
Request-scoped context for operations.

Every operation function receives an :class:`OperationContext` as its first
argument.  The context carries the database connection, the time source,
the coordination policy, caller identity, dry-run flag, and arbitrary
metadata.  The store handle and coordinator are built from it on first use.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any

from fleet.core.clock import Clock, SystemClock
from fleet.core.errors import FleetError
from fleet.core.logging import get_logger
from fleet.core.protocols import Connection
from fleet.core.settings import CoordinationPolicy
from fleet.core.store import FleetStore
from fleet.coordination.coordinator import Coordinator
from fleet.ops.result import OperationResult

logger = get_logger(__name__)


@dataclass
class OperationContext:
    """Context passed to every operation function.

    Attributes:
        conn: Database connection satisfying :class:`fleet.core.protocols.Connection`.
        clock: Time source for every liveness decision in the operation.
        policy: Timing windows and limits.
        request_id: Unique ID for this operation invocation (auto-generated).
        caller: Origin of the request, ``"api"`` or ``"sdk"``.
        dry_run: When ``True``, mutating operations return a preview without side effects.
        metadata: Arbitrary key/value pairs forwarded to logging.
    """

    conn: Connection
    clock: Clock = field(default_factory=SystemClock)
    policy: CoordinationPolicy = field(default_factory=CoordinationPolicy)
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    caller: str = "sdk"
    dry_run: bool = False
    metadata: dict[str, Any] = field(default_factory=dict)
    _store: FleetStore | None = field(default=None, init=False, repr=False)

    @property
    def store(self) -> FleetStore:
        if self._store is None:
            self._store = FleetStore(self.conn)
        return self._store

    def coordinator(self) -> Coordinator:
        return Coordinator(self.store, self.clock, self.policy)

    def fail_with(
        self,
        exc: Exception,
        *,
        op: str,
        elapsed_ms: float = 0.0,
        result_cls: type[OperationResult] = OperationResult,
    ) -> OperationResult[Any]:
        """Roll back the operation's writes and map *exc* onto a failed result.

        Paged operations pass ``result_cls=PagedResult``.

        Engine errors are expected outcomes and log at ``info``; anything
        else is logged with its traceback.
        """
        self.store.rollback()
        if isinstance(exc, FleetError):
            logger.info("op_rejected", op=op, code=exc.code, error=exc.message, request_id=self.request_id)
        else:
            logger.exception("op_failed", op=op, error=str(exc), request_id=self.request_id)
        return result_cls.from_exception(exc, elapsed_ms=elapsed_ms)
