# FILE: app/onboarding/service.py
"""
Onboarding service layer.

Each kit has a fixed three-step questionnaire. Steps are saved as the client
fills them in; completing onboarding marks the project finished and seeds the
phase state for the build tracker.
"""
import logging
import math
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from app.db import as_utc, utcnow
from app.progress import DEFAULT_REGISTRY, KitType, Status, TemplateRegistry
from app.projects import models, service as project_service
from app.onboarding import schemas

logger = logging.getLogger(__name__)

STEP_COUNT = 3

# (title, time estimate) per step number
STEP_DEFINITIONS: Dict[KitType, Dict[int, Tuple[str, str]]] = {
    KitType.LAUNCH: {
        1: ("Tell us who you are", "About 5 minutes"),
        2: ("Show us your brand", "About 8 minutes"),
        3: ("Switch on the site", "About 5 minutes"),
    },
    KitType.GROWTH: {
        1: ("Snapshot and main offer", "About 8 minutes"),
        2: ("Clients, proof and content fuel", "About 10 minutes"),
        3: ("Systems and launch", "About 7 minutes"),
    },
}


def step_status(completed: int, total: int) -> Status:
    if total > 0 and completed >= total:
        return Status.DONE
    return Status.IN_PROGRESS


def compute_onboarding_percent(steps: Sequence[models.OnboardingStep]) -> int:
    """Required fields filled across saved steps, as a 0-100 integer."""
    total = sum(step.required_fields_total for step in steps)
    if not total:
        return 0
    completed = sum(min(step.required_fields_completed, step.required_fields_total) for step in steps)
    return int(math.floor(completed / total * 100 + 0.5))


def _check_step_number(step_number: int) -> None:
    if not 1 <= step_number <= STEP_COUNT:
        raise ValueError(f"step_number must be between 1 and {STEP_COUNT}")


def _upsert_step(
    project: models.Project,
    data: schemas.OnboardingStepIn,
    now: datetime,
) -> models.OnboardingStep:
    kit_type = KitType(project.kit_type)
    title, time_estimate = STEP_DEFINITIONS[kit_type][data.step_number]

    step = next((s for s in project.onboarding_steps if s.step_number == data.step_number), None)
    if step is None:
        step = models.OnboardingStep(step_number=data.step_number, title=title, time_estimate=time_estimate)
        project.onboarding_steps.append(step)

    status = step_status(data.required_fields_completed, data.required_fields_total)
    step.fields = dict(data.fields)
    step.required_fields_total = data.required_fields_total
    step.required_fields_completed = data.required_fields_completed
    step.status = status.value
    if data.started_at is not None:
        step.started_at = data.started_at
    elif step.started_at is None:
        step.started_at = now
    step.completed_at = (step.completed_at or now) if status == Status.DONE else None
    return step


def _refresh_percent(project: models.Project) -> None:
    # A finished onboarding stays at 100 whatever later edits do to the fields
    if project.onboarding_finished:
        project.onboarding_percent = 100
    else:
        project.onboarding_percent = compute_onboarding_percent(project.onboarding_steps)


def step_out(step: models.OnboardingStep, is_locked: bool = False) -> schemas.OnboardingStepOut:
    return schemas.OnboardingStepOut(
        step_number=step.step_number,
        title=step.title,
        status=Status(step.status),
        required_fields_total=step.required_fields_total,
        required_fields_completed=step.required_fields_completed,
        time_estimate=step.time_estimate,
        fields=step.fields,
        started_at=as_utc(step.started_at),
        completed_at=as_utc(step.completed_at),
        is_locked=is_locked,
    )


# ============== PUBLIC API ==============

def save_step(
    db: Session,
    email: str,
    data: schemas.OnboardingStepSave,
    now: Optional[datetime] = None,
) -> Tuple[models.Project, models.OnboardingStep]:
    """
    Save one questionnaire step, creating the project if needed.

    Raises:
        ValueError: step_number out of range
    """
    _check_step_number(data.step_number)
    now = now or utcnow()
    project = project_service.get_or_create_project(db, email, data.kit_type)

    try:
        step = _upsert_step(project, data, now)
        _refresh_percent(project)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(project)
    db.refresh(step)

    logger.info(
        f"[onboarding.service] Project {project.id} step {step.step_number} saved "
        f"({step.required_fields_completed}/{step.required_fields_total}, {step.status}), "
        f"onboarding {project.onboarding_percent}%"
    )
    return project, step


def list_steps(db: Session, email: str, kit_type: Optional[KitType] = None) -> schemas.OnboardingStepsResponse:
    """
    All three steps in order, with placeholders for unsaved ones and lock flags.
    Without a kit, the caller's most recent project is used (LAUNCH if none).
    """
    project = project_service.get_project_for_user(db, email, kit_type)
    if kit_type is None:
        kit_type = KitType(project.kit_type) if project else KitType.LAUNCH
    saved = {s.step_number: s for s in project.onboarding_steps} if project else {}

    steps: List[schemas.OnboardingStepOut] = []
    previous_done = True
    for number in range(1, STEP_COUNT + 1):
        locked = not previous_done
        if number in saved:
            out = step_out(saved[number], is_locked=locked)
        else:
            title, time_estimate = STEP_DEFINITIONS[KitType(kit_type)][number]
            out = schemas.OnboardingStepOut(
                step_number=number,
                title=title,
                status=Status.NOT_STARTED,
                required_fields_total=0,
                required_fields_completed=0,
                time_estimate=time_estimate,
                is_locked=locked,
            )
        steps.append(out)
        previous_done = out.status == Status.DONE

    return schemas.OnboardingStepsResponse(
        project_id=project.id if project else None,
        kit_type=kit_type,
        onboarding_percent=project.onboarding_percent if project else 0,
        onboarding_finished=bool(project.onboarding_finished) if project else False,
        steps=steps,
    )


def update_step(
    db: Session,
    project: models.Project,
    step_number: int,
    data: schemas.OnboardingStepUpdate,
    now: Optional[datetime] = None,
) -> Optional[models.OnboardingStep]:
    """
    Update one saved step of a project. Returns None if the step was never saved.

    Raises:
        ValueError: step_number out of range
    """
    _check_step_number(step_number)
    step = next((s for s in project.onboarding_steps if s.step_number == step_number), None)
    if step is None:
        return None

    update = schemas.OnboardingStepIn(
        step_number=step_number,
        fields=data.fields if data.fields is not None else (step.fields or {}),
        required_fields_completed=data.required_fields_completed,
        required_fields_total=step.required_fields_total,
        started_at=data.started_at,
    )
    try:
        _upsert_step(project, update, now or utcnow())
        _refresh_percent(project)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(step)

    logger.info(
        f"[onboarding.service] Project {project.id} step {step_number} updated "
        f"({step.required_fields_completed}/{step.required_fields_total}, {step.status})"
    )
    return step


def complete_onboarding(
    db: Session,
    email: str,
    data: schemas.CompleteOnboardingRequest,
    registry: TemplateRegistry = DEFAULT_REGISTRY,
    now: Optional[datetime] = None,
) -> models.Project:
    """
    Save all three steps, mark onboarding finished and seed phase state.

    Raises:
        ValueError: not exactly one entry for each of the three steps
    """
    numbers = sorted(step.step_number for step in data.steps)
    if numbers != list(range(1, STEP_COUNT + 1)):
        raise ValueError(f"Exactly {STEP_COUNT} steps are required (step_number 1-{STEP_COUNT})")

    now = now or utcnow()
    project = project_service.get_or_create_project(db, email, data.kit_type)

    try:
        for step in data.steps:
            _upsert_step(project, step, now)

        step_one = next(s for s in data.steps if s.step_number == 1)
        name = str(step_one.fields.get("name_and_role") or "").strip() or None
        project.name = name or project.name or project.email.split("@")[0] or "Client"
        project.onboarding_finished = True
        project.onboarding_percent = 100
        seeded = project_service.initialize_project_phases(project, registry)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(project)

    logger.info(
        f"[onboarding.service] Onboarding complete for project {project.id} ({project.kit_type})"
        + (", phase state initialised" if seeded else "")
    )
    return project
