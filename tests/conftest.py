from __future__ import annotations

import json
from typing import Callable

import httpx
import pytest

Handler = Callable[[httpx.Request], httpx.Response]


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it served."""

    def __init__(self, handler: Handler) -> None:
        self.requests: list[httpx.Request] = []

        def _record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(_record)

    def paths(self) -> list[str]:
        return [r.url.path for r in self.requests]

    def bodies(self) -> list[dict]:
        return [json.loads(r.content) if r.content else {} for r in self.requests]


@pytest.fixture
def recording_transport():
    return RecordingTransport


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in (
        "GEMINI_API_KEY",
        "GEMINI_MODEL",
        "GEMINI_API_BASE",
        "SLACK_WEBHOOK_URL",
        "SLACK_BOT_TOKEN",
        "SLACK_CHANNEL",
        "SLACK_AUTO_JOIN",
        "TASKDIGEST_HTTP_TIMEOUT",
        "TASKDIGEST_LOG_LEVEL",
        "TASKDIGEST_LOG_DIR",
        "TASKDIGEST_PORT",
    ):
        monkeypatch.delenv(name, raising=False)
