from __future__ import annotations

import logging
from typing import Any, Optional

from dotenv import load_dotenv
from fastapi import APIRouter, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from taskdigest import __version__
from taskdigest.core.config import Settings
from taskdigest.core.errors import NotFoundError, ValidationError
from taskdigest.core.logging_config import setup_logging
from taskdigest.core.notify import NotificationDispatcher, Transport
from taskdigest.core.store import InMemoryTaskStore, TaskStore
from taskdigest.core.summary import EMPTY_LIST_SUMMARY, SummaryGenerator
from taskdigest.integrations.gemini import GeminiClient
from taskdigest.integrations.slack import SlackBotTransport, SlackWebhookTransport

logger = logging.getLogger("taskdigest.gateway")


class TaskCreateRequest(BaseModel):
    # the store decides what counts as a valid title
    title: Any = None
    description: Optional[str] = None
    completed: bool = False


def build_summary_generator(settings: Settings) -> SummaryGenerator:
    if not settings.gemini_api_key:
        return SummaryGenerator()
    return SummaryGenerator(GeminiClient(
        api_key=settings.gemini_api_key,
        model=settings.gemini_model,
        api_base=settings.gemini_api_base,
        timeout=settings.http_timeout,
    ))


def build_dispatcher(settings: Settings) -> NotificationDispatcher:
    """Webhook first, bot token second; only configured transports are included."""
    transports: list[Transport] = []
    if settings.slack_webhook_url:
        transports.append(SlackWebhookTransport(settings.slack_webhook_url, timeout=settings.http_timeout))
    if settings.slack_bot_token:
        transports.append(SlackBotTransport(
            bot_token=settings.slack_bot_token,
            default_channel=settings.slack_channel,
            auto_join=settings.slack_auto_join,
            timeout=settings.http_timeout,
        ))
    return NotificationDispatcher(transports=transports, channel=settings.slack_channel)


def _parse_id(raw: str) -> int:
    try:
        return int(raw)
    except ValueError:
        raise NotFoundError("Todo not found") from None


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[TaskStore] = None,
    summary_generator: Optional[SummaryGenerator] = None,
    dispatcher: Optional[NotificationDispatcher] = None,
) -> FastAPI:
    if settings is None:
        # Ensure .env is loaded before anything reads os.getenv
        load_dotenv(override=False)
        settings = Settings.from_env()
        setup_logging(log_dir=settings.log_dir, log_level=settings.log_level)

    settings.validate()

    tasks: TaskStore = store if store is not None else InMemoryTaskStore()
    generator = summary_generator or build_summary_generator(settings)
    notifier = dispatcher or build_dispatcher(settings)

    app = FastAPI(title="taskdigest", version=__version__)
    app.state.settings = settings
    app.state.store = tasks

    # ---- error mapping ----

    @app.exception_handler(ValidationError)
    async def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"message": str(exc)})

    @app.exception_handler(RequestValidationError)
    async def _request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.debug("Rejected request body on %s: %s", request.url.path, exc.errors())
        return JSONResponse(status_code=400, content={"message": "Invalid request body"})

    @app.exception_handler(NotFoundError)
    async def _not_found(request: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"message": str(exc)})

    @app.exception_handler(Exception)
    async def _internal_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"message": "Server error"})

    # ---- core routes ----

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/api/config/status")
    async def config_status() -> dict[str, Any]:
        return {
            "ai": {"status": "configured" if settings.ai_enabled else "missing", "model": settings.gemini_model},
            "slack_webhook": {"status": "configured" if settings.slack_webhook_url else "missing"},
            "slack_bot": {
                "status": "configured" if settings.slack_bot_token else "missing",
                "channel": settings.slack_channel or "",
                "auto_join": settings.slack_auto_join,
            },
        }

    # ---- todo routes ----

    todos = APIRouter(prefix="/api/todos")

    @todos.get("")
    async def list_todos() -> list[dict[str, Any]]:
        return [t.to_dict() for t in tasks.list()]

    @todos.post("", status_code=201)
    async def create_todo(body: TaskCreateRequest) -> dict[str, Any]:
        task = tasks.create(body.title, description=body.description, completed=body.completed)
        logger.info("Created todo %d", task.id)
        return task.to_dict()

    @todos.post("/summarize")
    async def summarize_todos() -> dict[str, Any]:
        snapshot = tasks.list()
        if not snapshot:
            return {"message": "No todos found", "summary": EMPTY_LIST_SUMMARY}

        summary = await generator.generate(snapshot)
        result = await notifier.dispatch(snapshot, summary=summary)
        if not result.success:
            logger.error("Failed to send to Slack: %s", result.error)

        return {
            "success": True,
            "message": "Summary generated successfully",
            "summary": summary,
            "sentToSlack": result.success,
        }

    @todos.delete("/{todo_id}")
    async def delete_todo(todo_id: str) -> dict[str, str]:
        tasks.delete(_parse_id(todo_id))
        return {"message": "Todo deleted successfully"}

    @todos.patch("/{todo_id}/toggle")
    async def toggle_todo(todo_id: str) -> dict[str, Any]:
        return tasks.toggle(_parse_id(todo_id)).to_dict()

    app.include_router(todos)
    return app
