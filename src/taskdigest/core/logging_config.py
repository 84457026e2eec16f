"""Centralized logging configuration for taskdigest.

Sets up Python's logging system to write to stdout and, when a log
directory is configured, to a rotating ``taskdigest.log`` file there.
"""
from __future__ import annotations

import logging
import logging.handlers
import os
from typing import Optional

# Module-level log directory, set by setup_logging()
_log_dir: Optional[str] = None


def get_log_dir() -> Optional[str]:
    """Return the configured log directory, or None when logging to stdout only."""
    return _log_dir or os.getenv("TASKDIGEST_LOG_DIR") or None


def setup_logging(log_dir: Optional[str] = None, log_level: str = "info") -> None:
    """Configure the root logger.

    Safe to call more than once: existing handlers are replaced.
    """
    global _log_dir
    _log_dir = log_dir

    level = getattr(logging, log_level.upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)

    # Clear any existing handlers (avoid duplicate output on re-init)
    root.handlers.clear()

    fmt = logging.Formatter(
        "%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
    )

    stdout_handler = logging.StreamHandler()
    stdout_handler.setLevel(level)
    stdout_handler.setFormatter(fmt)
    root.addHandler(stdout_handler)

    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            os.path.join(log_dir, "taskdigest.log"),
            maxBytes=10 * 1024 * 1024,  # 10 MB
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)  # Capture everything to file
        file_handler.setFormatter(fmt)
        root.addHandler(file_handler)

    # httpx INFO request lines include the Gemini key query parameter
    logging.getLogger("httpx").setLevel(logging.WARNING)

    logging.getLogger("taskdigest").info(
        "Logging initialized: log_dir=%s, level=%s", log_dir or "(stdout only)", log_level
    )
