# FILE: app/config.py
"""
Runtime configuration for the Klarnow backend.

Values come from environment variables (``KLARNOW_*``), usually loaded from a
``.env`` file by main.py before anything else is imported. Settings are read
once into an immutable ``Settings`` object which the app factory stores on
``app.state.settings``.
"""
import os
from dataclasses import dataclass, field
from typing import Optional, Tuple

from fastapi import Request

from app.progress.templates import TemplateRegistry

DEFAULT_DATABASE_URL = "sqlite:///./data/klarnow.db"
DEFAULT_CORS_ORIGINS = "http://localhost:3000,http://127.0.0.1:3000"


def _split_csv(raw: str) -> Tuple[str, ...]:
    return tuple(part.strip() for part in raw.split(",") if part.strip())


@dataclass(frozen=True)
class Settings:
    session_ttl_hours: int = 168
    admin_setup_token: Optional[str] = None
    poll_interval_sec: float = 3.0
    cors_origins: Tuple[str, ...] = field(default_factory=lambda: _split_csv(DEFAULT_CORS_ORIGINS))
    log_level: str = "INFO"


def load_settings() -> Settings:
    """Build Settings from the current environment."""
    return Settings(
        session_ttl_hours=int(os.getenv("KLARNOW_SESSION_TTL_HOURS", "168")),
        admin_setup_token=os.getenv("KLARNOW_ADMIN_SETUP_TOKEN") or None,
        poll_interval_sec=float(os.getenv("KLARNOW_POLL_INTERVAL_SEC", "3")),
        cors_origins=_split_csv(os.getenv("KLARNOW_CORS_ORIGINS", DEFAULT_CORS_ORIGINS)),
        log_level=os.getenv("KLARNOW_LOG_LEVEL", "INFO").upper(),
    )


def get_settings(request: Request) -> Settings:
    """FastAPI dependency: settings the running app was built with."""
    return request.app.state.settings


def get_registry(request: Request) -> TemplateRegistry:
    """FastAPI dependency: phase templates the running app was built with."""
    return request.app.state.registry


def get_session_factory(request: Request):
    """FastAPI dependency: sessionmaker for work that outlives the request session."""
    return request.app.state.session_factory
