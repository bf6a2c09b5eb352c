"""Shared test fixtures."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from statusboard.health.engine import ProbeOutcome
from statusboard.services.registry import MonitorConfig, Service


class FakeClock:
    """Deterministic clock for the tracker and incident memory."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def api_prod() -> Service:
    return Service(name="api", url="https://api.example.com/health", env="production")


def down(service: Service, error: str = "http_503") -> ProbeOutcome:
    return ProbeOutcome(service=service, up=False, latency_ms=12.0, status_code=503, error=error)


def up(service: Service, latency_ms: float = 42.0) -> ProbeOutcome:
    return ProbeOutcome(service=service, up=True, latency_ms=latency_ms, status_code=200)


def make_config(*services: Service, interval: int = 60, concurrency: int = 2) -> MonitorConfig:
    return MonitorConfig(
        interval_seconds=interval,
        timeout_ms=1000,
        concurrency=concurrency,
        services=list(services),
    )
