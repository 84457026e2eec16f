from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Callable, Optional

from taskdigest.core.errors import ConfigError

logger = logging.getLogger("taskdigest.config")

DEFAULT_GEMINI_MODEL = "gemini-2.0-flash"
DEFAULT_GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta"

_LOG_LEVELS = {"debug", "info", "warning", "error", "critical"}


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes"}


def _env_number(name: str, default: str, cast: Callable[[str], Any]) -> Any:
    raw = os.getenv(name) or default
    try:
        return cast(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from None


def _mask(value: Optional[str]) -> str:
    return "*** (exists)" if value else "Not found"


@dataclass
class Settings:
    gemini_api_key: Optional[str] = None
    gemini_model: str = DEFAULT_GEMINI_MODEL
    gemini_api_base: str = DEFAULT_GEMINI_API_BASE
    slack_webhook_url: Optional[str] = None
    slack_bot_token: Optional[str] = None
    slack_channel: Optional[str] = None
    slack_auto_join: bool = False
    http_timeout: float = 15.0
    log_level: str = "info"
    log_dir: Optional[str] = None
    host: str = "127.0.0.1"
    port: int = 5002

    @staticmethod
    def from_env() -> "Settings":
        return Settings(
            gemini_api_key=os.getenv("GEMINI_API_KEY") or None,
            gemini_model=os.getenv("GEMINI_MODEL") or DEFAULT_GEMINI_MODEL,
            gemini_api_base=os.getenv("GEMINI_API_BASE") or DEFAULT_GEMINI_API_BASE,
            slack_webhook_url=os.getenv("SLACK_WEBHOOK_URL") or None,
            slack_bot_token=os.getenv("SLACK_BOT_TOKEN") or None,
            slack_channel=os.getenv("SLACK_CHANNEL") or None,
            slack_auto_join=_env_flag("SLACK_AUTO_JOIN"),
            http_timeout=_env_number("TASKDIGEST_HTTP_TIMEOUT", "15", float),
            log_level=os.getenv("TASKDIGEST_LOG_LEVEL", "info"),
            log_dir=os.getenv("TASKDIGEST_LOG_DIR") or None,
            host=os.getenv("TASKDIGEST_HOST", "127.0.0.1"),
            port=_env_number("TASKDIGEST_PORT", "5002", int),
        )

    @property
    def ai_enabled(self) -> bool:
        return bool(self.gemini_api_key)

    @property
    def slack_enabled(self) -> bool:
        return bool(self.slack_webhook_url or self.slack_bot_token)

    def validate(self) -> None:
        """Check values once at startup and log which integrations are on.

        Missing credentials are not errors: they only switch code paths.
        """
        if self.slack_webhook_url and not self.slack_webhook_url.startswith(("http://", "https://")):
            raise ConfigError("SLACK_WEBHOOK_URL must be an http(s) URL")
        if self.http_timeout <= 0:
            raise ConfigError("TASKDIGEST_HTTP_TIMEOUT must be positive")
        if self.log_level.lower() not in _LOG_LEVELS:
            raise ConfigError(f"Unknown log level: {self.log_level}")
        if not self.gemini_model.strip():
            raise ConfigError("GEMINI_MODEL must not be blank")

        logger.info("GEMINI_API_KEY: %s", _mask(self.gemini_api_key))
        logger.info("GEMINI_MODEL: %s", self.gemini_model)
        logger.info("SLACK_WEBHOOK_URL: %s", _mask(self.slack_webhook_url))
        logger.info("SLACK_BOT_TOKEN: %s", _mask(self.slack_bot_token))
        logger.info("SLACK_CHANNEL: %s", self.slack_channel or "Using default channel")
        if not self.ai_enabled:
            logger.warning("GEMINI_API_KEY not set; summaries will use the plain template")
        if not self.slack_enabled:
            logger.warning("Neither SLACK_WEBHOOK_URL nor SLACK_BOT_TOKEN is configured")
