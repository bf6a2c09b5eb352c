"""Tests for board and alert rendering."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from conftest import FakeClock, down, up
from statusboard.board.render import (
    count_status,
    render_alerts,
    render_board,
    render_last_incident,
    render_service_line,
)
from statusboard.health.incidents import LastIncident
from statusboard.health.tracker import HealthTracker, Transition, TransitionKind, format_duration
from statusboard.services.registry import Service

DEV_WEB = Service(name="web", url="https://dev.example.com", env="development")
PROD_API = Service(name="api", url="https://api.example.com", env="production")
PROD_WEB = Service(name="web", url="https://example.com", env="production")


def _texts(blocks: list[dict]) -> list[str]:
    out = []
    for b in blocks:
        if b["type"] == "section":
            out.append(b["text"]["text"])
        elif b["type"] == "context":
            out.append(b["elements"][0]["text"])
        else:
            out.append(b["type"])
    return out


@pytest.mark.parametrize(
    ("seconds", "expected"),
    [
        (0, "0s"),
        (59, "59s"),
        (60, "1m"),
        (3599, "59m"),
        (3600, "1h"),
        (3 * 3600 + 5 * 60, "3h5m"),
        (26 * 3600, "26h"),
    ],
)
def test_format_duration(seconds: int, expected: str) -> None:
    assert format_duration(timedelta(seconds=seconds)) == expected


class TestServiceLine:
    def test_up_shows_latency(self) -> None:
        line = render_service_line(up(PROD_API, latency_ms=87.6), HealthTracker())
        assert line == "🟢  *api:* `87ms`"

    def test_down_before_threshold_shows_error_only(self) -> None:
        tracker = HealthTracker()
        outcome = down(PROD_API, "http_503")
        tracker.process([outcome])
        assert render_service_line(outcome, tracker) == "🔴  *api:* `http_503`"

    def test_confirmed_down_shows_downtime(self, clock: FakeClock) -> None:
        tracker = HealthTracker(clock=clock)
        outcome = down(PROD_API, "request_failed")
        for _ in range(4):
            tracker.process([outcome])
        clock.advance(300)
        assert render_service_line(outcome, tracker) == "🔴  *api:* `request_failed (5m)`"


class TestBoard:
    def test_grouped_by_environment(self, clock: FakeClock) -> None:
        outcomes = [up(DEV_WEB), up(PROD_API), down(PROD_WEB, "http_500")]
        blocks = render_board(outcomes, HealthTracker(clock=clock), now=clock.now)

        assert _texts(blocks) == [
            "Updated: 2025-01-01 12:00:00 UTC",
            "*Development*",
            "🟢  *web:* `42ms`",
            "divider",
            "*Production*",
            "🟢  *api:* `42ms`",
            "🔴  *web:* `http_500`",
            "divider",
            "2 healthy  •  1 down",
        ]

    def test_updated_stamp_is_labelled_utc(self) -> None:
        local = datetime(2025, 1, 1, 14, 30, 0, tzinfo=timezone(timedelta(hours=2)))
        blocks = render_board([up(PROD_API)], HealthTracker(), now=local)
        assert _texts(blocks)[0] == "Updated: 2025-01-01 12:30:00 UTC"

    def test_footer_includes_last_incident(self, clock: FakeClock) -> None:
        incident = LastIncident(service_name="api (production)", occurred_at=clock.now, duration="12m")
        clock.advance(3600)
        blocks = render_board([up(PROD_API)], HealthTracker(), incident, now=clock.now)
        assert _texts(blocks)[-1] == (
            "1 healthy  •  0 down\nLast incident: api (production), 1h ago (down 12m)"
        )

    def test_no_incident_no_text(self) -> None:
        assert render_last_incident(None) == ""

    def test_count_status(self) -> None:
        assert count_status([up(PROD_API), down(PROD_WEB), down(DEV_WEB)]) == (1, 2)
        assert count_status([]) == (0, 0)


class TestAlerts:
    def test_batches_down_and_up(self) -> None:
        transitions = [
            Transition(key="api:production", service_name="api (production)",
                       kind=TransitionKind.DOWN, error="http_503"),
            Transition(key="web:production", service_name="web (production)",
                       kind=TransitionKind.UP, downtime="4m"),
            Transition(key="db:production", service_name="db (production)",
                       kind=TransitionKind.DOWN, error="request_failed"),
            Transition(key="x:development", service_name="x (development)",
                       kind=TransitionKind.UP),
        ]
        messages = render_alerts(transitions)
        assert messages == [
            "🔴 *Services DOWN* <!here>\n"
            "• *api (production)*: `http_503`\n"
            "• *db (production)*: `request_failed`",
            "🟢 *Services back UP*\n"
            "• *web (production)* (was down 4m)\n"
            "• *x (development)*",
        ]

    def test_nothing_to_say(self) -> None:
        assert render_alerts([]) == []
