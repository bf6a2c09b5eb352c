"""Tests for the status API routes."""

from __future__ import annotations

import asyncio

import httpx
import pytest
from fastapi.testclient import TestClient

from conftest import FakeClock, make_config
from statusboard.api.server import create_app
from statusboard.health.incidents import IncidentMemory
from statusboard.health.scheduler import HealthScheduler
from statusboard.health.tracker import HealthTracker
from statusboard.services.registry import Service


@pytest.fixture
def scheduler(clock: FakeClock) -> HealthScheduler:
    services = [
        Service(name="api", url="http://api.local/health", env="production"),
        Service(name="db", url="http://db.local/", env="production"),
    ]

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200 if request.url.host == "api.local" else 503)

    sched = HealthScheduler(
        make_config(*services),
        HealthTracker(clock=clock),
        IncidentMemory(clock=clock),
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )
    asyncio.run(sched.run_cycle())
    return sched


@pytest.fixture
def client(scheduler: HealthScheduler) -> TestClient:
    app = create_app(with_monitor=False)
    app.state.scheduler = scheduler
    return TestClient(app)


class TestStatusRoutes:
    def test_health(self, client: TestClient) -> None:
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}

    def test_status(self, client: TestClient) -> None:
        resp = client.get("/api/status")
        assert resp.status_code == 200
        data = resp.json()
        assert data["cycles"] == 1
        assert data["healthy"] == 1
        assert data["down"] == 1
        assert data["running"] is False
        assert [s["name"] for s in data["services"]] == ["api", "db"]
        db = data["services"][1]
        assert db["up"] is False
        assert db["error"] == "http_503"
        assert db["state"]["consecutive_failures"] == 1
        assert db["state"]["is_down"] is False
        assert data["last_incident"] is None

    def test_status_without_monitor(self) -> None:
        client = TestClient(create_app(with_monitor=False))
        resp = client.get("/api/status")
        assert resp.status_code == 503
