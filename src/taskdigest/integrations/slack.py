"""Slack delivery transports.

``SlackWebhookTransport`` posts to an incoming webhook URL.
``SlackBotTransport`` calls ``chat.postMessage`` on the Web API and can
join a ``#named`` public channel first when auto-join is enabled.

Env vars:
    SLACK_WEBHOOK_URL – Incoming webhook URL
    SLACK_BOT_TOKEN   – Bot User OAuth Token (xoxb-...)
    SLACK_CHANNEL     – Default channel id or #name for the bot
    SLACK_AUTO_JOIN   – Join #named channels before posting (default off)
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from taskdigest.core.errors import UpstreamError
from taskdigest.core.notify import NotificationResult, SlackMessage

logger = logging.getLogger("taskdigest.slack")

_API_BASE = "https://slack.com/api"

# Direct-message channel used when neither the message nor config names one
DEFAULT_DM_CHANNEL = "D08TUBJ8J13"


@dataclass
class SlackWebhookTransport:
    webhook_url: str
    timeout: float = 15.0
    transport: Optional[httpx.AsyncBaseTransport] = None
    name: str = "webhook"

    async def send(self, message: SlackMessage) -> NotificationResult:
        payload: dict[str, Any] = {"text": message.text}
        if message.blocks:
            payload["blocks"] = message.blocks
        if message.channel:
            payload["channel"] = message.channel
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                resp = await client.post(self.webhook_url, json=payload)
        except httpx.HTTPError as exc:
            logger.error("Slack webhook request failed: %s", exc)
            return NotificationResult(success=False, error=f"Slack Webhook error: {exc}", transport=self.name)
        if not resp.is_success:
            logger.error("Slack webhook failed: %s %s", resp.status_code, resp.text[:500])
            return NotificationResult(
                success=False,
                error=f"Slack Webhook error: {resp.status_code} {resp.text[:200]}",
                transport=self.name,
            )
        return NotificationResult(success=True, transport=self.name)


@dataclass
class SlackBotTransport:
    bot_token: str
    default_channel: Optional[str] = None
    auto_join: bool = False
    timeout: float = 15.0
    transport: Optional[httpx.AsyncBaseTransport] = None
    api_base: str = _API_BASE
    name: str = "bot"

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.bot_token}",
            "Content-Type": "application/json; charset=utf-8",
        }

    def resolve_channel(self, channel: Optional[str] = None) -> str:
        return channel or self.default_channel or DEFAULT_DM_CHANNEL

    async def _call(
        self,
        client: httpx.AsyncClient,
        method: str,
        api_method: str,
        **kwargs: Any,
    ) -> dict[str, Any]:
        """Call a Web API method and return the decoded body.

        Raises ``UpstreamError`` on a non-2xx status or undecodable body.
        ``ok: false`` bodies are returned so callers can inspect ``error``.
        """
        resp = await client.request(method, f"{self.api_base}/{api_method}", headers=self._headers(), **kwargs)
        if resp.status_code != 200:
            raise UpstreamError(f"Slack {api_method} failed: {resp.status_code} {resp.text[:200]}")
        try:
            data = resp.json()
        except ValueError as exc:
            raise UpstreamError(f"Slack {api_method} returned invalid JSON") from exc
        if not isinstance(data, dict):
            raise UpstreamError(f"Slack {api_method} returned unexpected payload")
        return data

    async def ensure_in_channel(self, client: httpx.AsyncClient, channel_name: str) -> str:
        """Make sure the bot is a member of ``#channel_name``; return the channel id.

        Raises ``UpstreamError`` when the channel cannot be found or joined.
        """
        name = channel_name.lstrip("#")
        listing = await self._call(client, "GET", "conversations.list")
        if not listing.get("ok"):
            raise UpstreamError(f"Error fetching channels: {listing.get('error', 'unknown')}")

        channels = listing.get("channels") or []
        if not isinstance(channels, list):
            raise UpstreamError("Slack conversations.list returned unexpected channels")
        match = next(
            (c for c in channels if isinstance(c, dict) and c.get("name") == name),
            None,
        )
        channel_id = match.get("id") if match else None
        if not channel_id:
            raise UpstreamError(f"Channel {channel_name} not found")

        members = await self._call(client, "GET", "conversations.members", params={"channel": channel_id})
        if not members.get("ok") and members.get("error") != "not_in_channel":
            raise UpstreamError(f"Error checking channel members: {members.get('error', 'unknown')}")

        if members.get("error") == "not_in_channel" or not members.get("members"):
            logger.info("Joining Slack channel %s (%s)", channel_name, channel_id)
            joined = await self._call(client, "POST", "conversations.join", json={"channel": channel_id})
            if not joined.get("ok"):
                raise UpstreamError(f"Error joining channel: {joined.get('error', 'unknown')}")
        return channel_id

    async def send(self, message: SlackMessage) -> NotificationResult:
        channel = self.resolve_channel(message.channel)
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                if self.auto_join and channel.startswith("#"):
                    try:
                        channel = await self.ensure_in_channel(client, channel)
                    except (UpstreamError, httpx.HTTPError, KeyError, TypeError, AttributeError) as exc:
                        logger.warning("Could not ensure bot is in channel %s: %s", channel, exc)

                payload: dict[str, Any] = {
                    "channel": channel,
                    "text": message.text,
                    "link_names": True,
                }
                if message.blocks:
                    payload["blocks"] = message.blocks
                data = await self._call(client, "POST", "chat.postMessage", json=payload)
        except (UpstreamError, httpx.HTTPError) as exc:
            logger.error("Slack bot delivery failed: %s", exc)
            return NotificationResult(success=False, error=f"Failed to send message: {exc}", transport=self.name)

        if not data.get("ok"):
            error = data.get("error") or "Failed to send message"
            logger.error("Slack chat.postMessage error: %s", error)
            return NotificationResult(success=False, error=f"Failed to send message: {error}", transport=self.name)
        return NotificationResult(success=True, transport=self.name)
