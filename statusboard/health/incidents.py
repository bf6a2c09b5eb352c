"""Last-incident register shown in the board footer."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from statusboard.health.tracker import Transition, TransitionKind, utcnow


@dataclass(frozen=True)
class LastIncident:
    service_name: str
    occurred_at: datetime
    duration: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "service_name": self.service_name,
            "occurred_at": self.occurred_at.isoformat(),
            "duration": self.duration,
        }


class IncidentMemory:
    """Keeps only the most recent recovery that carried a downtime."""

    def __init__(self, clock: Callable[[], datetime] = utcnow) -> None:
        self._clock = clock
        self._last: LastIncident | None = None

    def record(self, transition: Transition) -> None:
        if transition.kind is not TransitionKind.UP or not transition.downtime:
            return
        self._last = LastIncident(
            service_name=transition.service_name,
            occurred_at=self._clock(),
            duration=transition.downtime,
        )

    def current(self) -> LastIncident | None:
        return self._last
