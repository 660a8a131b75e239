"""Fixtures for operation-layer tests."""

from __future__ import annotations

import pytest

from fleet.ops.context import OperationContext


@pytest.fixture()
def ctx(store, clock, policy) -> OperationContext:
    """Context sharing the test store's connection and frozen clock."""
    return OperationContext(conn=store.conn, clock=clock, policy=policy, caller="test")
