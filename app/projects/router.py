# FILE: app/projects/router.py
"""
Project endpoints.

/my-project  - the signed-in client's own project
/projects    - admin views across all clients
"""
import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from app.auth import require_auth, require_admin, AuthResult
from app.config import Settings, get_registry, get_session_factory, get_settings
from app.db import get_db
from app.progress import KitType, TemplateRegistry
from app.projects import schemas, service
from app.realtime import ProjectFeed, format_sse

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/my-project",
    tags=["my-project"],
    dependencies=[Depends(require_auth)],
)

admin_router = APIRouter(
    prefix="/projects",
    tags=["projects"],
    dependencies=[Depends(require_admin)],
)


def _project_envelope(
    db: Session,
    auth: AuthResult,
    kit_type: Optional[KitType],
    registry: TemplateRegistry,
) -> schemas.ProjectEnvelope:
    project = service.get_project_for_user(db, auth.email, kit_type)
    if project is None:
        return schemas.ProjectEnvelope(
            project=service.placeholder_project(auth.email, kit_type or KitType.LAUNCH, registry)
        )
    return schemas.ProjectEnvelope(project=service.build_project_out(project, registry))


# ============== CLIENT ==============

@router.get("", response_model=schemas.ProjectEnvelope)
def get_my_project(
    kit_type: Optional[KitType] = None,
    auth: AuthResult = Depends(require_auth),
    db: Session = Depends(get_db),
    registry: TemplateRegistry = Depends(get_registry),
):
    """
    The caller's project with merged phases.
    Without a project yet, returns the bare template for the kit (LAUNCH by default).
    """
    return _project_envelope(db, auth, kit_type, registry)


@router.get("/phases", response_model=schemas.ProjectEnvelope)
def get_my_phases(
    kit_type: Optional[KitType] = None,
    auth: AuthResult = Depends(require_auth),
    db: Session = Depends(get_db),
    registry: TemplateRegistry = Depends(get_registry),
):
    return _project_envelope(db, auth, kit_type, registry)


@router.patch("/phases", response_model=schemas.ToggleResponse)
def toggle_my_checklist_item(
    data: schemas.ChecklistToggleRequest,
    auth: AuthResult = Depends(require_auth),
    db: Session = Depends(get_db),
    registry: TemplateRegistry = Depends(get_registry),
):
    """Check or uncheck one checklist item on the caller's project."""
    project = service.get_project_for_user(db, auth.email, data.kit_type)
    if project is None:
        raise HTTPException(status_code=404, detail="Project not found. Please complete onboarding first.")

    try:
        project = service.toggle_checklist_item(
            db, project, data.phase_id, data.checklist_label, data.is_done, registry=registry
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return schemas.ToggleResponse(success=True, project=service.build_project_out(project, registry))


@router.get("/progress", response_model=schemas.ProgressResponse)
def get_my_progress(
    kit_type: Optional[KitType] = None,
    auth: AuthResult = Depends(require_auth),
    db: Session = Depends(get_db),
    registry: TemplateRegistry = Depends(get_registry),
):
    """Pre-computed progress metrics for the caller's project."""
    project = service.get_project_for_user(db, auth.email, kit_type)
    if project is None:
        raise HTTPException(status_code=404, detail="Project not found")
    return service.build_progress(project, registry)


@router.get("/events")
async def stream_my_project(
    request: Request,
    kit_type: Optional[KitType] = None,
    auth: AuthResult = Depends(require_auth),
    settings: Settings = Depends(get_settings),
    registry: TemplateRegistry = Depends(get_registry),
    session_factory=Depends(get_session_factory),
):
    """
    Server-sent events carrying the caller's project.
    An event is sent on connect and then whenever the project changes.
    """

    def load() -> dict:
        db = session_factory()
        try:
            return _project_envelope(db, auth, kit_type, registry).project.model_dump(mode="json")
        finally:
            db.close()

    async def fetch() -> dict:
        return await asyncio.to_thread(load)

    feed = ProjectFeed(fetch, interval=settings.poll_interval_sec)

    async def event_generator():
        try:
            await feed.refresh()
        except Exception as e:
            logger.error(f"[projects.router] Initial project load failed for {auth.user_id}: {e}")
            yield format_sse({"error": "Failed to load project"}, event="error")
            return

        poller = asyncio.create_task(feed.poll())
        try:
            async for payload in feed.subscribe():
                if await request.is_disconnected():
                    break
                yield format_sse({"project": payload}, event="project")
        finally:
            poller.cancel()

    return StreamingResponse(event_generator(), media_type="text/event-stream")


# ============== ADMIN ==============

@admin_router.get("/clients", response_model=schemas.ClientListResponse)
def list_clients(
    kit_type: Optional[KitType] = None,
    onboarding_finished: Optional[bool] = None,
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    registry: TemplateRegistry = Depends(get_registry),
):
    return service.list_clients(
        db,
        kit_type=kit_type,
        onboarding_finished=onboarding_finished,
        limit=limit,
        offset=offset,
        registry=registry,
    )


@admin_router.get("/{project_id}", response_model=schemas.ProjectEnvelope)
def get_project(
    project_id: int,
    db: Session = Depends(get_db),
    registry: TemplateRegistry = Depends(get_registry),
):
    project = service.get_project(db, project_id)
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")
    return schemas.ProjectEnvelope(project=service.build_project_out(project, registry))


@admin_router.patch("/{project_id}", response_model=schemas.ProjectEnvelope)
def update_project(
    project_id: int,
    data: schemas.ProjectUpdate,
    db: Session = Depends(get_db),
    registry: TemplateRegistry = Depends(get_registry),
):
    project = service.get_project(db, project_id)
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")
    project = service.update_project(db, project, data)
    return schemas.ProjectEnvelope(project=service.build_project_out(project, registry))


@admin_router.patch("/{project_id}/phases/{phase_id}", response_model=schemas.PhaseUpdateResponse)
def update_phase(
    project_id: int,
    phase_id: str,
    data: schemas.PhaseStatusUpdate,
    db: Session = Depends(get_db),
    registry: TemplateRegistry = Depends(get_registry),
):
    """Set a phase's status and/or timestamps."""
    project = service.get_project(db, project_id)
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")

    try:
        phase = service.change_phase_status(db, project, phase_id, data, registry=registry)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return schemas.PhaseUpdateResponse(phase=phase, message="Phase updated successfully")


@admin_router.patch("/{project_id}/phases/{phase_id}/checklist", response_model=schemas.ToggleResponse)
def toggle_checklist_item(
    project_id: int,
    phase_id: str,
    data: schemas.AdminChecklistToggleRequest,
    db: Session = Depends(get_db),
    registry: TemplateRegistry = Depends(get_registry),
):
    """Check or uncheck a checklist item on a client's behalf."""
    project = service.get_project(db, project_id)
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")

    try:
        project = service.toggle_checklist_item(
            db, project, phase_id, data.checklist_label, data.is_done, registry=registry
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return schemas.ToggleResponse(success=True, project=service.build_project_out(project, registry))
