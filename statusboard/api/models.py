"""Pydantic models for status API responses."""

from __future__ import annotations

from pydantic import BaseModel


class TrackedState(BaseModel):
    is_down: bool
    consecutive_failures: int
    down_since: str | None = None


class ServiceStatus(BaseModel):
    name: str
    env: str
    url: str
    up: bool
    status_code: int | None = None
    latency_ms: float
    error: str | None = None
    checked_at: str
    state: TrackedState | None = None
    downtime: str | None = None


class LastIncidentOut(BaseModel):
    service_name: str
    occurred_at: str
    duration: str


class StatusResponse(BaseModel):
    running: bool
    cycles: int
    interval_seconds: int
    healthy: int
    down: int
    services: list[ServiceStatus]
    last_incident: LastIncidentOut | None = None
