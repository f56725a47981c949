# FILE: main.py
"""
Klarnow Backend - FastAPI Application
Version: 1.0.0

Client onboarding and build-tracker API:
- Email sessions for clients, password sessions for admins
- Three-step onboarding questionnaire per kit (LAUNCH / GROWTH)
- Project phases merged from fixed kit templates and persisted phase state
- Progress metrics (phase, checklist, timeline) and current-phase selection
- Admin client overview and phase status management
- Server-sent project updates
"""
import os
import logging
import time
import uuid
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from dotenv import load_dotenv

# Load .env FIRST before any other imports that might need env vars
load_dotenv()

from app.config import Settings, load_settings
from app.db import SessionLocal, init_db
from app.auth.router import router as auth_router
from app.onboarding.router import router as onboarding_router
from app.progress import DEFAULT_REGISTRY, TemplateRegistry
from app.projects.router import router as my_project_router, admin_router as projects_router

VERSION = "1.0.0"

logger = logging.getLogger("klarnow")


def create_app(
    settings: Optional[Settings] = None,
    registry: Optional[TemplateRegistry] = None,
    session_factory=None,
) -> FastAPI:
    settings = settings or load_settings()

    app = FastAPI(
        title="Klarnow",
        version=VERSION,
        description="Client onboarding and project progress tracking",
    )

    app.state.settings = settings
    app.state.registry = registry or DEFAULT_REGISTRY
    app.state.session_factory = session_factory or SessionLocal
    # Changes on every process start so clients can drop stale sessions after a deploy
    app.state.server_session_id = f"session-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"

    # ====== CORS ======

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ====== STARTUP ======

    @app.on_event("startup")
    def on_startup():
        os.makedirs("data", exist_ok=True)
        init_db()
        logger.info("[startup] Database ready")
        if settings.admin_setup_token:
            logger.info("[startup] Admin setup: [OK] protected by KLARNOW_ADMIN_SETUP_TOKEN")
        else:
            logger.warning("[startup] Admin setup: [X] KLARNOW_ADMIN_SETUP_TOKEN not set, /auth/admin/setup is open")
        logger.info(f"[startup] Kits loaded: {', '.join(k.value for k in app.state.registry.kits)}")

    # ====== ERRORS ======

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.exception(f"[main] Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    # ====== ROUTERS ======

    # Auth router - public endpoints for login/setup
    app.include_router(auth_router)

    # Client routers - protected
    app.include_router(onboarding_router)
    app.include_router(my_project_router)

    # Admin router - admin sessions only
    app.include_router(projects_router)

    # ====== HEALTH ======

    @app.get("/health")
    def health():
        return {"status": "ok", "version": VERSION}

    @app.get("/session/check")
    def session_check():
        """Server session id; a change means the server restarted."""
        return {
            "sessionId": app.state.server_session_id,
            "timestamp": int(time.time() * 1000),
        }

    return app


_settings = load_settings()
logging.basicConfig(
    level=getattr(logging, _settings.log_level, logging.INFO),
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
)

app = create_app(_settings)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=int(os.getenv("PORT", "8000")), reload=False)
