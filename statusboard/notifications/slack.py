"""Slack status board — one continuously edited message plus threaded alerts.

Uses the Slack Web API directly via httpx (chat.postMessage / chat.update)
with a bot token. The board message ``ts`` is kept in a small file so a
restarted monitor keeps editing the same message instead of posting a new one.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import httpx

from statusboard.board.render import Block, render_alerts
from statusboard.config import settings
from statusboard.health.tracker import Transition

logger = logging.getLogger(__name__)

SLACK_API = "https://slack.com/api"


class SlackError(Exception):
    """Raised when the Slack API answers with ok=false or a bad HTTP status."""

    def __init__(self, error: str) -> None:
        self.error = error
        super().__init__(f"Slack error: {error}")


class SlackBoard:
    """Posts / edits the board message and replies to it with alerts."""

    def __init__(
        self,
        bot_token: str = "",
        channel_id: str = "",
        ts_path: Path | str | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.bot_token = bot_token or settings.slack_bot_token
        self.channel_id = channel_id or settings.slack_channel_id
        self.ts_path = Path(ts_path or settings.board_ts_path)
        self._client = client or httpx.AsyncClient(timeout=10)

    # -- Board handle ---------------------------------------------------------

    def load_board_ts(self) -> str:
        try:
            return self.ts_path.read_text(encoding="utf-8").strip()
        except OSError:
            return ""

    def save_board_ts(self, ts: str) -> None:
        self.ts_path.write_text(ts, encoding="utf-8")
        self.ts_path.chmod(0o600)

    # -- Public API -----------------------------------------------------------

    async def upsert_board(self, blocks: list[Block], text: str = "") -> str:
        """Edit the stored board message, or post a fresh one if that fails.

        Returns the ts of the board message now on screen.
        """
        ts = self.load_board_ts()
        if ts:
            try:
                await self._call(
                    "chat.update",
                    {"channel": self.channel_id, "ts": ts, "blocks": blocks, "text": text},
                )
                return ts
            except (SlackError, httpx.HTTPError) as exc:
                logger.warning("Board update failed (%s); posting a new board message", exc)

        data = await self._call(
            "chat.postMessage",
            {"channel": self.channel_id, "blocks": blocks, "text": text},
        )
        new_ts = str(data.get("ts") or "")
        self.save_board_ts(new_ts)
        logger.info("Posted new board message ts=%s", new_ts)
        return new_ts

    async def post_alert(self, text: str) -> None:
        """Reply in the board message's thread."""
        ts = self.load_board_ts()
        if not ts:
            raise SlackError("no_board_message")
        await self._call(
            "chat.postMessage",
            {"channel": self.channel_id, "text": text, "thread_ts": ts},
        )

    async def send_alerts(self, transitions: list[Transition]) -> int:
        """Post the batched down / up alerts for one cycle.

        Failures are logged, not raised. Returns the number of alerts posted.
        """
        sent = 0
        for message in render_alerts(transitions):
            try:
                await self.post_alert(message)
                sent += 1
            except (SlackError, httpx.HTTPError):
                logger.exception("Failed to post alert")
        return sent

    async def close(self) -> None:
        await self._client.aclose()

    # -- Low-level ------------------------------------------------------------

    async def _call(self, method: str, payload: dict[str, Any]) -> dict[str, Any]:
        resp = await self._client.post(
            f"{SLACK_API}/{method}",
            json=payload,
            headers={"Authorization": f"Bearer {self.bot_token}"},
        )
        if resp.status_code != 200:
            raise SlackError(f"http_{resp.status_code}")
        try:
            data = resp.json()
        except ValueError as exc:
            raise SlackError("invalid_response") from exc
        if not isinstance(data, dict):
            raise SlackError("invalid_response")
        if not data.get("ok"):
            raise SlackError(str(data.get("error") or "unknown_error"))
        return data
