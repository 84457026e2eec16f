"""Tests for summary generation and the Gemini adapter."""
from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from taskdigest.core.errors import UpstreamError
from taskdigest.core.store import InMemoryTaskStore
from taskdigest.core.summary import SummaryGenerator, build_prompt, render_fallback_summary
from taskdigest.integrations.gemini import GeminiClient, extract_text


def _gemini_ok(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


@pytest.fixture
def tasks():
    store = InMemoryTaskStore()
    store.create("Buy milk")
    store.create("Write report", description="Q3 numbers")
    store.toggle(store.create("Call mom").id)
    return store.list()


# ── Fallback template ────────────────────────────────────────

def test_fallback_summary_counts_and_sections(tasks) -> None:
    summary = render_fallback_summary(tasks)
    assert summary == (
        "You have 3 total todos.\n\n"
        "📝 *2 Pending:*\n• Buy milk\n• Write report\n\n"
        "✅ *1 Completed:*\n• Call mom"
    )


def test_fallback_summary_omits_empty_sections() -> None:
    store = InMemoryTaskStore()
    store.create("Only one")
    summary = render_fallback_summary(store.list())
    assert "Pending" in summary
    assert "Completed" not in summary


def test_prompt_embeds_task_fields(tasks) -> None:
    prompt = build_prompt(tasks)
    assert "Keep it under 200 words" in prompt
    assert "acknowledge them briefly" in prompt
    start = prompt.index("[")
    end = prompt.rindex("]") + 1
    embedded = json.loads(prompt[start:end])
    assert [t["title"] for t in embedded] == ["Buy milk", "Write report", "Call mom"]
    assert embedded[1]["description"] == "Q3 numbers"
    assert embedded[2]["completed"] is True
    assert set(embedded[0]) == {"title", "description", "completed", "createdAt"}


# ── Generator paths ──────────────────────────────────────────

def test_generate_without_client_uses_template(tasks) -> None:
    generator = SummaryGenerator()
    assert generator.ai_enabled is False
    assert asyncio.run(generator.generate(tasks)) == render_fallback_summary(tasks)


def test_generate_with_ai(tasks, recording_transport) -> None:
    transport = recording_transport(lambda request: httpx.Response(200, json=_gemini_ok("  Nice work!  ")))
    client = GeminiClient(api_key="k-123", model="gemini-test", transport=transport)
    summary = asyncio.run(SummaryGenerator(client).generate(tasks))

    assert summary == "Nice work!"
    request = transport.requests[0]
    assert request.method == "POST"
    assert request.url.path.endswith("/models/gemini-test:generateContent")
    assert request.url.params["key"] == "k-123"
    body = json.loads(request.content)
    assert "Buy milk" in body["contents"][0]["parts"][0]["text"]


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, text="boom"),
        httpx.Response(429, json={"error": {"message": "quota"}}),
        httpx.Response(200, json={"candidates": []}),
        httpx.Response(200, json={"unexpected": True}),
        httpx.Response(200, text="not json"),
        httpx.Response(200, json=_gemini_ok("   ")),
    ],
)
def test_generate_falls_back_on_bad_response(tasks, recording_transport, response) -> None:
    transport = recording_transport(lambda request: response)
    generator = SummaryGenerator(GeminiClient(api_key="k", transport=transport))
    assert asyncio.run(generator.generate(tasks)) == render_fallback_summary(tasks)
    assert len(transport.requests) == 1


def test_generate_falls_back_on_transport_error(tasks) -> None:
    def _raise(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    generator = SummaryGenerator(GeminiClient(api_key="k", transport=httpx.MockTransport(_raise)))
    assert asyncio.run(generator.generate(tasks)) == render_fallback_summary(tasks)


def test_generate_with_ai_raises_upstream_error(tasks, recording_transport) -> None:
    transport = recording_transport(lambda request: httpx.Response(503))
    generator = SummaryGenerator(GeminiClient(api_key="k", transport=transport))
    with pytest.raises(UpstreamError, match="503"):
        asyncio.run(generator.generate_with_ai(tasks))


def test_extract_text_rejects_malformed() -> None:
    assert extract_text(_gemini_ok(" hi ")) == "hi"
    for payload in (None, [], {"candidates": [{}]}, {"candidates": [{"content": {"parts": []}}]}):
        with pytest.raises(UpstreamError):
            extract_text(payload)
