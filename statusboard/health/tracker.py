"""Flap detection — turns raw probe outcomes into debounced up/down transitions.

Each service key is a two-state machine (up / down) plus a failure counter
that only matters while up:

    up,   probe ok    -> up,   counter = 0
    up,   probe fails -> counter += 1; at threshold: down + "down" transition
    down, probe fails -> down, counter += 1 (no transition)
    down, probe ok    -> up,   counter = 0, "up" transition with downtime

Recovery is reported on the first good probe; going down needs
``threshold`` consecutive failures.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any

from statusboard.health.engine import ProbeOutcome

logger = logging.getLogger(__name__)

FAIL_THRESHOLD = 4


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_duration(d: timedelta) -> str:
    """Compact duration: 42s, 17m, 3h, 3h5m."""
    seconds = int(d.total_seconds())
    if seconds < 60:
        return f"{max(seconds, 0)}s"
    if seconds < 3600:
        return f"{seconds // 60}m"
    hours, rem = divmod(seconds, 3600)
    minutes = rem // 60
    if minutes == 0:
        return f"{hours}h"
    return f"{hours}h{minutes}m"


# ── Models ───────────────────────────────────────────────────────────────────


class TransitionKind(str, Enum):
    DOWN = "down"
    UP = "up"


@dataclass
class ServiceState:
    """Tracked state for one service key."""

    is_down: bool = False
    consecutive_failures: int = 0
    down_since: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_down": self.is_down,
            "consecutive_failures": self.consecutive_failures,
            "down_since": self.down_since.isoformat() if self.down_since else None,
        }


@dataclass(frozen=True)
class Transition:
    """A confirmed change in a service's debounced health."""

    key: str
    service_name: str
    kind: TransitionKind
    error: str = ""
    downtime: str = ""


# ── Tracker ──────────────────────────────────────────────────────────────────


class HealthTracker:
    """Owns the per-service state map. Not thread-safe; one cycle at a time."""

    def __init__(
        self,
        threshold: int = FAIL_THRESHOLD,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        if threshold < 1:
            raise ValueError("threshold must be at least 1")
        self.threshold = threshold
        self._clock = clock
        self._states: dict[str, ServiceState] = {}

    @property
    def states(self) -> dict[str, ServiceState]:
        return self._states

    def get(self, key: str) -> ServiceState | None:
        return self._states.get(key)

    def downtime(self, key: str) -> str:
        """Formatted time since ``key`` went down, or "" if it is not down."""
        state = self._states.get(key)
        if state is None or not state.is_down or state.down_since is None:
            return ""
        return format_duration(self._clock() - state.down_since)

    def observe(self, outcome: ProbeOutcome) -> Transition | None:
        """Apply one outcome to its service's state."""
        svc = outcome.service
        state = self._states.get(svc.key)
        if state is None:
            state = ServiceState()
            self._states[svc.key] = state

        if outcome.up:
            transition = None
            if state.is_down:
                downtime = ""
                if state.down_since is not None:
                    downtime = format_duration(self._clock() - state.down_since)
                transition = Transition(
                    key=svc.key,
                    service_name=svc.display_name,
                    kind=TransitionKind.UP,
                    downtime=downtime,
                )
                state.is_down = False
                state.down_since = None
            state.consecutive_failures = 0
            return transition

        state.consecutive_failures += 1
        logger.debug(
            "%s failed (%d/%d): %s",
            svc.display_name, state.consecutive_failures, self.threshold, outcome.error,
        )
        if not state.is_down and state.consecutive_failures >= self.threshold:
            state.is_down = True
            state.down_since = self._clock()
            return Transition(
                key=svc.key,
                service_name=svc.display_name,
                kind=TransitionKind.DOWN,
                error=outcome.error,
            )
        return None

    def process(self, outcomes: list[ProbeOutcome]) -> list[Transition]:
        """Apply a whole cycle; transitions come back in outcome order."""
        transitions = []
        for outcome in outcomes:
            t = self.observe(outcome)
            if t is not None:
                transitions.append(t)
        return transitions
