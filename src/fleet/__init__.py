"""
Fleet - worker liveness and assignment coordination.

Packages:
- fleet.core: store handle, repositories, models, clock, errors, logging, settings
- fleet.coordination: identity resolver, liveness, leases, progress, reconcile, rollup
- fleet.ops: operation functions returning OperationResult envelopes
- fleet.api: FastAPI transport
"""

__version__ = "0.1.0"
