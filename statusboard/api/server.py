"""FastAPI server. Runs the monitor in the app lifespan and exposes its status."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from statusboard import __version__
from statusboard.api.routes import status_router
from statusboard.config import settings
from statusboard.health.incidents import IncidentMemory
from statusboard.health.scheduler import HealthScheduler
from statusboard.health.tracker import HealthTracker
from statusboard.notifications.slack import SlackBoard
from statusboard.services.registry import load_config

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load config, start the cycle loop; on shutdown let the last cycle finish."""
    settings.validate_runtime()
    config = load_config(settings.services_file)

    board = SlackBoard()
    scheduler = HealthScheduler(
        config,
        HealthTracker(threshold=settings.fail_threshold),
        IncidentMemory(),
        board=board,
    )
    app.state.scheduler = scheduler
    await scheduler.start()

    yield

    await scheduler.stop()
    await board.close()


def create_app(with_monitor: bool = True) -> FastAPI:
    app = FastAPI(
        title="statusboard",
        version=__version__,
        lifespan=lifespan if with_monitor else None,
    )
    app.include_router(status_router, prefix="/api")
    return app


app = create_app()
