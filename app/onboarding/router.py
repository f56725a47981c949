# FILE: app/onboarding/router.py
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.auth import require_auth, AuthResult
from app.config import get_registry
from app.db import get_db
from app.onboarding import schemas, service
from app.progress import KitType, TemplateRegistry
from app.projects import schemas as project_schemas, service as project_service

router = APIRouter(
    prefix="/onboarding",
    tags=["onboarding"],
    dependencies=[Depends(require_auth)],
)


@router.get("", response_model=schemas.OnboardingStepsResponse)
def get_onboarding(
    kit_type: Optional[KitType] = None,
    auth: AuthResult = Depends(require_auth),
    db: Session = Depends(get_db),
):
    """
    The caller's three questionnaire steps; step N+1 is locked until step N is done.
    Without kit_type, the most recent project's kit is used (LAUNCH if none).
    """
    return service.list_steps(db, auth.email, kit_type)


@router.post("/save", response_model=schemas.StepSaveResponse)
def save_step(
    data: schemas.OnboardingStepSave,
    auth: AuthResult = Depends(require_auth),
    db: Session = Depends(get_db),
):
    try:
        project, step = service.save_step(db, auth.email, data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return schemas.StepSaveResponse(
        success=True,
        project_id=project.id,
        onboarding_percent=project.onboarding_percent,
        step=service.step_out(step),
    )


@router.post("/complete", response_model=project_schemas.ProjectEnvelope)
def complete_onboarding(
    data: schemas.CompleteOnboardingRequest,
    auth: AuthResult = Depends(require_auth),
    db: Session = Depends(get_db),
    registry: TemplateRegistry = Depends(get_registry),
):
    """Finish onboarding: save all steps, create the build tracker state."""
    try:
        project = service.complete_onboarding(db, auth.email, data, registry=registry)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return project_schemas.ProjectEnvelope(project=project_service.build_project_out(project, registry))


@router.put("/projects/{project_id}/steps/{step_number}", response_model=schemas.StepSaveResponse)
def update_step(
    project_id: int,
    step_number: int,
    data: schemas.OnboardingStepUpdate,
    auth: AuthResult = Depends(require_auth),
    db: Session = Depends(get_db),
):
    """Edit a saved step. Clients may only touch their own projects."""
    project = project_service.get_project(db, project_id)
    if not project or (project.email != auth.email and not auth.is_admin):
        raise HTTPException(status_code=404, detail="Project not found")

    try:
        step = service.update_step(db, project, step_number, data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if step is None:
        raise HTTPException(status_code=404, detail="Step not found")

    return schemas.StepSaveResponse(
        success=True,
        project_id=project.id,
        onboarding_percent=project.onboarding_percent,
        step=service.step_out(step),
    )
