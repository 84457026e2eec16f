"""Task tracking API with AI summaries delivered to Slack."""

__version__ = "0.1.0"
