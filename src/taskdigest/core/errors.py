from __future__ import annotations


class TaskDigestError(Exception):
    """Base class for errors raised by taskdigest."""


class ValidationError(TaskDigestError):
    """Client input was rejected (HTTP 400)."""


class NotFoundError(TaskDigestError):
    """No task exists with the requested id (HTTP 404)."""


class UpstreamError(TaskDigestError):
    """An external AI or messaging backend failed.

    Always absorbed by the summary generator or notification transports,
    never surfaced to HTTP clients.
    """


class ConfigError(TaskDigestError, ValueError):
    """Startup configuration is malformed."""
