"""Google Gemini adapter using the ``generateContent`` REST endpoint.

Required env vars:
    GEMINI_API_KEY – API key for the Generative Language API
    GEMINI_MODEL   – optional, defaults to gemini-2.0-flash
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from taskdigest.core.config import DEFAULT_GEMINI_API_BASE, DEFAULT_GEMINI_MODEL
from taskdigest.core.errors import UpstreamError

logger = logging.getLogger("taskdigest.gemini")


def extract_text(data: Any) -> str:
    """Pull ``candidates[0].content.parts[0].text`` out of a response payload."""
    try:
        text = data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError) as exc:
        raise UpstreamError("Invalid response from Gemini API") from exc
    if not isinstance(text, str) or not text.strip():
        raise UpstreamError("Invalid response from Gemini API")
    return text.strip()


@dataclass
class GeminiClient:
    api_key: str
    model: str = DEFAULT_GEMINI_MODEL
    api_base: str = DEFAULT_GEMINI_API_BASE
    timeout: float = 15.0
    transport: Optional[httpx.AsyncBaseTransport] = None

    def _url(self) -> str:
        return f"{self.api_base.rstrip('/')}/models/{self.model}:generateContent"

    async def generate_text(self, prompt: str) -> str:
        """Send a single-turn prompt and return the generated text.

        Raises ``UpstreamError`` on transport failure, a non-2xx status, or a
        payload without candidate text.
        """
        payload = {"contents": [{"parts": [{"text": prompt}]}]}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                resp = await client.post(
                    self._url(),
                    params={"key": self.api_key},
                    json=payload,
                    headers={"Content-Type": "application/json"},
                )
        except httpx.HTTPError as exc:
            raise UpstreamError(f"Gemini request failed: {exc}") from exc

        if not resp.is_success:
            raise UpstreamError(
                f"Gemini API error: {resp.status_code} {resp.reason_phrase}"
            )
        try:
            data = resp.json()
        except ValueError as exc:
            raise UpstreamError("Invalid response from Gemini API") from exc
        return extract_text(data)
