"""Slack notification formatting and ordered-fallback delivery.

``format_task_summary`` renders the task list as Block Kit blocks plus a
plain-text line. ``NotificationDispatcher`` hands the message to each
configured transport in priority order until one reports success.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional, Protocol, Sequence

from taskdigest.core.store import Task

logger = logging.getLogger("taskdigest.notify")

NOT_CONFIGURED_ERROR = "Slack not configured. Please set up either Webhook URL or Bot Token."

# Block Kit limits: section text length and blocks per message
MAX_SECTION_TEXT = 3000
MAX_BLOCKS = 50


@dataclass
class SlackMessage:
    text: str
    blocks: Optional[list[dict[str, Any]]] = None
    channel: Optional[str] = None


@dataclass
class NotificationResult:
    success: bool
    error: Optional[str] = None
    transport: Optional[str] = None


class Transport(Protocol):
    name: str

    async def send(self, message: SlackMessage) -> NotificationResult: ...


def _mrkdwn_section(text: str) -> dict[str, Any]:
    if len(text) > MAX_SECTION_TEXT:
        text = text[: MAX_SECTION_TEXT - 1] + "…"
    return {"type": "section", "text": {"type": "mrkdwn", "text": text}}


def format_task_summary(
    tasks: Sequence[Task],
    summary: Optional[str] = None,
    now: Optional[datetime] = None,
) -> SlackMessage:
    """Render tasks as a Slack message.

    An empty list yields a text-only "no todos" message. Otherwise the
    blocks hold a header, a divider, the optional generated summary, one
    section per pending task, a struck-through completed list and a
    footer with the counts. Section text and block count stay within
    Block Kit limits; surplus pending tasks collapse into one line.
    """
    if not tasks:
        return SlackMessage(text="📋 *Todo Summary*\n_No todos found. Time to relax! 🎉_")

    pending = [t for t in tasks if not t.completed]
    completed = [t for t in tasks if t.completed]
    generated_on = (now or datetime.now()).strftime("%Y-%m-%d %H:%M:%S")

    blocks: list[dict[str, Any]] = [
        _mrkdwn_section(f"📋 *Todo Summary*\n_Generated on {generated_on}_"),
        {"type": "divider"},
    ]

    if summary:
        blocks.append(_mrkdwn_section(summary))

    if pending:
        blocks.append(_mrkdwn_section(f"*📌 Pending Tasks ({len(pending)})*"))
        # leave room for the completed sections, the footer and an overflow line
        room = MAX_BLOCKS - len(blocks) - (2 if completed else 0) - 2
        shown = pending if len(pending) <= room + 1 else pending[:room]
        for t in shown:
            line = f"• *{t.title}*"
            if t.description:
                line += f"\n  _{t.description}_"
            blocks.append(_mrkdwn_section(line))
        if len(shown) < len(pending):
            blocks.append(_mrkdwn_section(f"_…and {len(pending) - len(shown)} more pending_"))

    if completed:
        blocks.append(_mrkdwn_section(f"\n*✅ Completed ({len(completed)})*"))
        blocks.append(_mrkdwn_section("\n".join(f"• ~{t.title}~" for t in completed)))

    blocks.append({
        "type": "context",
        "elements": [{
            "type": "mrkdwn",
            "text": f"_Total: {len(tasks)} • Pending: {len(pending)} • Completed: {len(completed)}_",
        }],
    })

    return SlackMessage(
        text=f"📋 Todo Summary ({len(pending)} pending, {len(completed)} completed)",
        blocks=blocks,
    )


@dataclass
class NotificationDispatcher:
    transports: list[Transport] = field(default_factory=list)
    channel: Optional[str] = None

    @property
    def configured(self) -> bool:
        return bool(self.transports)

    async def send(self, message: SlackMessage) -> NotificationResult:
        """Try each transport in order; return the first success or the last failure."""
        if not self.transports:
            logger.warning("⚠️ Neither SLACK_WEBHOOK_URL nor SLACK_BOT_TOKEN is configured")
            return NotificationResult(success=False, error=NOT_CONFIGURED_ERROR)

        result = NotificationResult(success=False, error=NOT_CONFIGURED_ERROR)
        for transport in self.transports:
            logger.info("Attempting to send message via %s", transport.name)
            try:
                result = await transport.send(message)
            except Exception as exc:  # noqa: BLE001
                logger.exception("Slack %s transport raised", transport.name)
                result = NotificationResult(success=False, error=str(exc), transport=transport.name)
            if result.success:
                return result
            logger.error("Slack %s transport failed: %s", transport.name, result.error)
        return result

    async def dispatch(
        self,
        tasks: Sequence[Task],
        summary: Optional[str] = None,
    ) -> NotificationResult:
        message = format_task_summary(tasks, summary=summary)
        message.channel = self.channel
        return await self.send(message)
