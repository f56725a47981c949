# app/realtime/__init__.py
"""Project update feed used by the server-sent events endpoint."""

from .feed import ProjectFeed, format_sse

__all__ = ["ProjectFeed", "format_sse"]
