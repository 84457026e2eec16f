"""Natural-language digests of the task list.

The AI path asks Gemini for a short prioritized summary. Whenever the key
is missing or the call fails for any reason the deterministic template from
``render_fallback_summary`` is used instead, so ``generate`` never raises.
"""
from __future__ import annotations

import json
import logging
from typing import Optional, Sequence

from taskdigest.core.errors import UpstreamError
from taskdigest.core.store import Task
from taskdigest.integrations.gemini import GeminiClient

logger = logging.getLogger("taskdigest.summary")

EMPTY_LIST_SUMMARY = "Your todo list is empty. Add some tasks to get started!"

_PROMPT_TEMPLATE = """You are a helpful assistant that summarizes todo lists in a friendly, actionable way.
Here's a list of todos:
{todo_json}

Please provide a concise, friendly summary of these todos.
Group related items when possible and suggest priorities if appropriate.
If there are completed items, acknowledge them briefly.
Keep it under 200 words and make it sound natural and encouraging."""


def build_prompt(tasks: Sequence[Task]) -> str:
    todo_list = [
        {
            "title": t.title,
            "description": t.description,
            "completed": t.completed,
            "createdAt": t.to_dict()["createdAt"],
        }
        for t in tasks
    ]
    return _PROMPT_TEMPLATE.format(todo_json=json.dumps(todo_list, indent=2, ensure_ascii=False))


def render_fallback_summary(tasks: Sequence[Task]) -> str:
    pending = [t for t in tasks if not t.completed]
    completed = [t for t in tasks if t.completed]

    summary = f"You have {len(tasks)} total todos."
    if pending:
        summary += f"\n\n📝 *{len(pending)} Pending:*\n"
        summary += "\n".join(f"• {t.title}" for t in pending)
    if completed:
        summary += f"\n\n✅ *{len(completed)} Completed:*\n"
        summary += "\n".join(f"• {t.title}" for t in completed)
    return summary


class SummaryGenerator:
    def __init__(self, client: Optional[GeminiClient] = None) -> None:
        self._client = client

    @property
    def ai_enabled(self) -> bool:
        return self._client is not None

    async def generate_with_ai(self, tasks: Sequence[Task]) -> str:
        """Ask the AI backend for a summary. Raises ``UpstreamError``."""
        if self._client is None:
            raise UpstreamError("Gemini API key not configured")
        return await self._client.generate_text(build_prompt(tasks))

    async def generate(self, tasks: Sequence[Task]) -> str:
        if self._client is None:
            logger.info("Using fallback summary (Gemini API key not available)")
            return render_fallback_summary(tasks)
        try:
            return await self.generate_with_ai(tasks)
        except UpstreamError as exc:
            logger.error("Error generating summary with Gemini, falling back to simple summary: %s", exc)
        except Exception:  # noqa: BLE001
            logger.exception("Unexpected error generating summary, falling back to simple summary")
        return render_fallback_summary(tasks)
