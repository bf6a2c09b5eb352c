"""Health check scheduler — runs one monitoring cycle per interval.

A cycle probes every service, feeds the outcomes through the HealthTracker,
records recoveries in IncidentMemory, then edits the Slack board and posts
alerts. Cycles never overlap: the next one is scheduled only after the
previous one has returned. Stopping lets an in-flight cycle finish.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import httpx

from statusboard.board.render import board_fallback_text, count_status, render_board
from statusboard.health.engine import ProbeOutcome, check_all, make_client
from statusboard.health.incidents import IncidentMemory
from statusboard.health.tracker import HealthTracker, Transition, TransitionKind
from statusboard.notifications.slack import SlackBoard, SlackError
from statusboard.services.registry import MonitorConfig

logger = logging.getLogger(__name__)


@dataclass
class CycleReport:
    """What a single cycle saw and emitted."""

    number: int
    outcomes: list[ProbeOutcome] = field(default_factory=list)
    transitions: list[Transition] = field(default_factory=list)
    duration_ms: float = 0.0


class HealthScheduler:
    """Drives probe → track → report cycles on a fixed interval.

    Lifecycle:
        scheduler = HealthScheduler(config, tracker, incidents, board)
        await scheduler.start()
        ...
        await scheduler.stop()
    """

    def __init__(
        self,
        config: MonitorConfig,
        tracker: HealthTracker,
        incidents: IncidentMemory,
        board: SlackBoard | None = None,
        client: httpx.AsyncClient | None = None,
        on_cycle: Callable[[CycleReport], Any] | None = None,
    ) -> None:
        self.config = config
        self.tracker = tracker
        self.incidents = incidents
        self.board = board
        self.on_cycle = on_cycle
        self._owns_client = client is None
        self._client = client or make_client(config.timeout_ms, config.concurrency)
        self._stop = asyncio.Event()
        self._task: asyncio.Task[None] | None = None
        self.last_report: CycleReport | None = None
        self.cycles = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start the cycle loop in the background."""
        if self.running:
            return
        self._stop.clear()
        self._task = asyncio.create_task(self.run_forever(), name="statusboard-cycles")
        logger.info(
            "Health scheduler started: %d services every %ds (concurrency=%d)",
            len(self.config.services), self.config.interval_seconds, self.config.concurrency,
        )

    def request_stop(self) -> None:
        """Stop waiting for further cycles. Safe to call from a signal handler."""
        self._stop.set()

    async def stop(self) -> None:
        """Request a stop and wait for any in-flight cycle to finish."""
        self.request_stop()
        if self._task:
            await self._task
            self._task = None
        if self._owns_client:
            await self._client.aclose()
        logger.info("Health scheduler stopped")

    async def run_forever(self) -> None:
        """First cycle immediately, then one per interval until stopped."""
        interval = self.config.interval_seconds
        next_run = time.monotonic()
        while not self._stop.is_set():
            try:
                await self.run_cycle()
            except Exception:
                logger.exception("Cycle error")

            # Fixed cadence; a slow cycle skips the ticks it overran.
            next_run += interval
            now = time.monotonic()
            if next_run < now:
                next_run = now + interval - ((now - next_run) % interval)
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=next_run - now)
            except asyncio.TimeoutError:
                pass
        logger.info("Shutting down...")

    async def run_cycle(self) -> CycleReport:
        """Probe all services, update tracked state, and report."""
        t0 = time.perf_counter()
        self.cycles += 1

        outcomes = await check_all(
            self._client, self.config.services, self.config.concurrency, self.config.timeout_ms,
        )
        for o in outcomes:
            logger.debug(
                "%s: up=%s latency=%.1fms %s",
                o.service.display_name, o.up, o.latency_ms, o.error or o.message,
            )

        transitions = self.tracker.process(outcomes)
        for t in transitions:
            if t.kind is TransitionKind.DOWN:
                logger.warning("%s is DOWN (%s)", t.service_name, t.error)
            else:
                logger.info("%s is back UP (down %s)", t.service_name, t.downtime or "?")
            self.incidents.record(t)

        report = CycleReport(
            number=self.cycles,
            outcomes=outcomes,
            transitions=transitions,
            duration_ms=round((time.perf_counter() - t0) * 1000, 1),
        )
        self.last_report = report

        healthy, down = count_status(outcomes)
        logger.info(
            "Cycle %d: %d healthy, %d down, %d transitions (%.0fms)",
            report.number, healthy, down, len(transitions), report.duration_ms,
        )

        if self.board is not None:
            await self._publish(self.board, report)

        if self.on_cycle:
            try:
                self.on_cycle(report)
            except Exception:
                logger.exception("Cycle callback error")

        return report

    async def _publish(self, board: SlackBoard, report: CycleReport) -> None:
        """Edit the board and post alerts; delivery problems never propagate."""
        blocks = render_board(report.outcomes, self.tracker, self.incidents.current())
        try:
            await board.upsert_board(blocks, board_fallback_text(report.outcomes))
        except (SlackError, httpx.HTTPError, OSError):
            logger.exception("Failed to update board")
        if report.transitions:
            await board.send_alerts(report.transitions)

    def status(self) -> dict[str, Any]:
        """Snapshot for the status API."""
        report = self.last_report
        services = []
        for o in (report.outcomes if report else []):
            state = self.tracker.get(o.service.key)
            services.append({
                "name": o.service.name,
                "env": o.service.env,
                "url": o.service.url,
                "up": o.up,
                "status_code": o.status_code,
                "latency_ms": o.latency_ms,
                "error": o.error or None,
                "checked_at": o.timestamp,
                "state": state.to_dict() if state else None,
                "downtime": self.tracker.downtime(o.service.key) or None,
            })
        healthy, down = count_status(report.outcomes) if report else (0, 0)
        incident = self.incidents.current()
        return {
            "running": self.running,
            "cycles": self.cycles,
            "interval_seconds": self.config.interval_seconds,
            "healthy": healthy,
            "down": down,
            "services": services,
            "last_incident": incident.to_dict() if incident else None,
        }
