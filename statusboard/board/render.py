"""Slack Block Kit rendering for the status board and alert messages."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from statusboard.health.engine import ProbeOutcome
from statusboard.health.incidents import LastIncident
from statusboard.health.tracker import HealthTracker, Transition, TransitionKind, format_duration, utcnow
from statusboard.services.registry import environments_of

Block = dict[str, Any]


def _mrkdwn(text: str) -> dict[str, Any]:
    return {"type": "mrkdwn", "text": text}


def _context(text: str) -> Block:
    return {"type": "context", "elements": [_mrkdwn(text)]}


def _section(text: str) -> Block:
    return {"type": "section", "text": _mrkdwn(text)}


def _divider() -> Block:
    return {"type": "divider"}


def count_status(outcomes: list[ProbeOutcome]) -> tuple[int, int]:
    """Return (healthy, down) for one cycle."""
    healthy = sum(1 for o in outcomes if o.up)
    return healthy, len(outcomes) - healthy


def render_service_line(outcome: ProbeOutcome, tracker: HealthTracker) -> str:
    if outcome.up:
        return f"🟢  *{outcome.service.name}:* `{int(outcome.latency_ms)}ms`"

    downtime = tracker.downtime(outcome.service.key)
    if downtime:
        status = f"`{outcome.error} ({downtime})`"
    else:
        status = f"`{outcome.error}`"
    return f"🔴  *{outcome.service.name}:* {status}"


def render_last_incident(incident: LastIncident | None, now: datetime | None = None) -> str:
    if incident is None:
        return ""
    ago = format_duration((now or utcnow()) - incident.occurred_at)
    return f"Last incident: {incident.service_name}, {ago} ago (down {incident.duration})"


def render_board(
    outcomes: list[ProbeOutcome],
    tracker: HealthTracker,
    last_incident: LastIncident | None = None,
    now: datetime | None = None,
) -> list[Block]:
    """Build the board: one group per environment, in service order."""
    now = now or utcnow()
    updated = now.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
    blocks: list[Block] = [_context(f"Updated: {updated} UTC")]

    for env in environments_of([o.service for o in outcomes]):
        blocks.append(_context(f"*{env.title() or 'Default'}*"))
        for o in outcomes:
            if o.service.env == env:
                blocks.append(_section(render_service_line(o, tracker)))
        blocks.append(_divider())

    healthy, down = count_status(outcomes)
    footer = f"{healthy} healthy  •  {down} down"
    incident_text = render_last_incident(last_incident, now)
    if incident_text:
        footer += "\n" + incident_text
    blocks.append(_context(footer))
    return blocks


def board_fallback_text(outcomes: list[ProbeOutcome]) -> str:
    """Plain text used by Slack for notifications and clients without blocks."""
    healthy, down = count_status(outcomes)
    return f"Service status: {healthy} healthy, {down} down"


def render_alerts(transitions: list[Transition]) -> list[str]:
    """At most two messages per cycle: all downs together, all recoveries together."""
    down_lines: list[str] = []
    up_lines: list[str] = []
    for t in transitions:
        if t.kind is TransitionKind.DOWN:
            down_lines.append(f"• *{t.service_name}*: `{t.error}`")
        elif t.downtime:
            up_lines.append(f"• *{t.service_name}* (was down {t.downtime})")
        else:
            up_lines.append(f"• *{t.service_name}*")

    messages = []
    if down_lines:
        messages.append("🔴 *Services DOWN* <!here>\n" + "\n".join(down_lines))
    if up_lines:
        messages.append("🟢 *Services back UP*\n" + "\n".join(up_lines))
    return messages
