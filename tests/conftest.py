"""
Shared pytest fixtures for fleet-core tests.

This module provides:
- An in-memory SQLite store with the schema applied
- A FrozenClock so liveness windows are driven explicitly
- A Coordinator wired to both
- A factory for studies with PENDING assignments

Usage:
    Fixtures are auto-discovered by pytest.

    def test_something(coordinator, clock, make_study):
        study, assignments = make_study(3)
        coordinator.claim(assignments[0].id, "10.0.0.1")
        clock.advance(seconds=61)
        ...
"""

from __future__ import annotations

from collections.abc import Callable, Generator
from pathlib import Path

import pytest

from fleet.core.clock import FrozenClock
from fleet.core.models import Assignment, SuperStudy
from fleet.core.settings import CoordinationPolicy
from fleet.core.store import FleetStore
from fleet.core.timestamps import new_id
from fleet.coordination.coordinator import Coordinator


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests based on their location."""
    for item in items:
        test_path = Path(item.fspath).relative_to(Path(__file__).parent)
        if test_path.parts and test_path.parts[0] == "api":
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Engine fixtures
# =============================================================================


@pytest.fixture()
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture()
def policy() -> CoordinationPolicy:
    return CoordinationPolicy()


@pytest.fixture()
def store() -> Generator[FleetStore, None, None]:
    """Ephemeral store with every fleet table created."""
    store = FleetStore.in_memory()
    yield store
    store.conn.close()


@pytest.fixture()
def coordinator(store: FleetStore, clock: FrozenClock, policy: CoordinationPolicy) -> Coordinator:
    return Coordinator(store, clock, policy)


@pytest.fixture()
def make_study(store: FleetStore, clock: FrozenClock) -> Callable[..., tuple[SuperStudy, list[Assignment]]]:
    """Factory: ``make_study(n, name="study")`` → ``(study, assignments)``."""

    def _make(n: int = 2, name: str = "study") -> tuple[SuperStudy, list[Assignment]]:
        now = clock.now()
        study = SuperStudy(
            id=new_id(),
            name=name,
            total_assignments=n,
            created_at=now,
            updated_at=now,
        )
        assignments = [
            Assignment(id=new_id(), super_study_id=study.id, index=i, config={"split": i})
            for i in range(n)
        ]
        store.studies.create(study)
        store.assignments.create_many(assignments)
        store.commit()
        return study, assignments

    return _make
