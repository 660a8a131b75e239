"""Fixtures for API tests: a FastAPI app on a temporary SQLite file."""

from __future__ import annotations

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient

from fleet.api.app import create_app
from fleet.api.deps import get_clock
from fleet.api.settings import FleetAPISettings
from fleet.core.clock import FrozenClock

PREFIX = "/api/v1"


@pytest.fixture()
def api_settings(tmp_path) -> FleetAPISettings:
    return FleetAPISettings(
        database_url=f"sqlite:///{tmp_path / 'fleet.db'}",
        data_dir=tmp_path,
        log_level="WARNING",
    )


@pytest.fixture()
def client(api_settings: FleetAPISettings, clock: FrozenClock) -> Generator[TestClient, None, None]:
    """TestClient with the lifespan run (schema created) and a frozen clock."""
    app = create_app(settings=api_settings)
    app.dependency_overrides[get_clock] = lambda: clock
    with TestClient(app) as client:
        yield client


@pytest.fixture()
def study(client: TestClient) -> dict:
    """A study with three PENDING assignments, as returned by the create endpoint."""
    resp = client.post(
        f"{PREFIX}/super-studies",
        json={
            "name": "near_field_sweep",
            "baseConfig": {"solver": "fdtd"},
            "assignments": [{"config": {"split": i}} for i in range(3)],
        },
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]
