"""Read-only status API.

Endpoints:
  GET  /api/health  — liveness
  GET  /api/status  — last cycle's outcomes, tracked state, last incident
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, Request

from statusboard.api.models import StatusResponse

status_router = APIRouter()


@status_router.get("/health")
def health() -> dict[str, Any]:
    return {"status": "ok"}


@status_router.get("/status", response_model=StatusResponse)
def status(request: Request) -> StatusResponse:
    """Current board state as JSON."""
    scheduler = getattr(request.app.state, "scheduler", None)
    if scheduler is None:
        raise HTTPException(status_code=503, detail="Monitor not running")
    return StatusResponse(**scheduler.status())
