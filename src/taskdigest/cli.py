from __future__ import annotations

import asyncio
from typing import Optional

import typer
import uvicorn
from dotenv import load_dotenv

from taskdigest.core.config import Settings

app = typer.Typer(add_completion=False)


def _load_env() -> None:
    load_dotenv()


def _setup_logging(settings: Settings) -> None:
    """Configure centralized logging to stdout and the optional log file."""
    from taskdigest.core.logging_config import setup_logging

    setup_logging(log_dir=settings.log_dir, log_level=settings.log_level)


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, help="Bind host (default: TASKDIGEST_HOST or 127.0.0.1)"),
    port: Optional[int] = typer.Option(None, help="Bind port (default: TASKDIGEST_PORT or 5002)"),
    reload: bool = typer.Option(False, help="Enable auto-reload"),
) -> None:
    _load_env()
    settings = Settings.from_env()
    _setup_logging(settings)
    uvicorn.run(
        "taskdigest.core.gateway:create_app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
        factory=True,
    )


@app.command()
def version() -> None:
    from taskdigest import __version__

    typer.echo(__version__)


@app.command("check-ai")
def check_ai() -> None:
    """Verify that GEMINI_API_KEY works by sending a tiny prompt."""
    _load_env()
    settings = Settings.from_env()
    _setup_logging(settings)

    from taskdigest.core.errors import UpstreamError
    from taskdigest.integrations.gemini import GeminiClient

    if not settings.gemini_api_key:
        typer.secho("❌ No GEMINI_API_KEY found in environment variables", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    typer.echo(f"🔑 Found Gemini API key (starts with {settings.gemini_api_key[:8]}...)")
    typer.echo(f"🔌 Testing connection to Gemini model {settings.gemini_model}...")
    client = GeminiClient(
        api_key=settings.gemini_api_key,
        model=settings.gemini_model,
        api_base=settings.gemini_api_base,
        timeout=settings.http_timeout,
    )
    try:
        reply = asyncio.run(client.generate_text("Hello, is this API key working? Answer in five words."))
    except UpstreamError as exc:
        typer.secho(f"❌ Error connecting to Gemini API: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    typer.echo("✅ Successfully connected to Gemini API!")
    typer.echo(f"Response received: {reply}")


if __name__ == "__main__":
    app()
