# FILE: app/projects/service.py
"""
Projects service layer.

Loads per-phase state rows, runs them through the progress engine and writes
mutations back. Returns None/False for "not found" and raises ValueError for
requests the engine rejects; routers map those to HTTP errors.
"""
import logging
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.auth.config import normalize_email, user_id_for_email
from app.db import as_utc
from app.progress import (
    DEFAULT_REGISTRY,
    UNSET,
    KitType,
    MergedPhase,
    PhaseState,
    Status,
    TemplateRegistry,
    apply_checklist_toggle,
    apply_status_change,
    compute_checklist_completion,
    compute_checklist_totals,
    compute_overall_progress,
    compute_timeline,
    get_templates,
    initialize_phases_state,
    merge_state,
    select_current_phase,
    validate_checklist_label,
    validate_phase_id,
)
from app.projects import models, schemas

logger = logging.getLogger(__name__)


# ============== STATE <-> ROWS ==============

def load_state(project: models.Project) -> Optional[Dict[str, PhaseState]]:
    """Persisted phase state keyed by phase_id, or None when nothing is recorded."""
    if not project.phase_states:
        return None
    return {
        record.phase_id: PhaseState(
            status=Status(record.status),
            started_at=as_utc(record.started_at),
            completed_at=as_utc(record.completed_at),
            checklist=dict(record.checklist or {}),
        )
        for record in project.phase_states
    }


def _save_phase_state(project: models.Project, phase_id: str, state: PhaseState) -> None:
    record = next((r for r in project.phase_states if r.phase_id == phase_id), None)
    if record is None:
        record = models.PhaseStateRecord(project_id=project.id, phase_id=phase_id)
        project.phase_states.append(record)
    record.status = state.status.value
    record.started_at = state.started_at
    record.completed_at = state.completed_at
    # New dict so the JSON column registers the change
    record.checklist = dict(state.checklist)


def initialize_project_phases(project: models.Project, registry: TemplateRegistry = DEFAULT_REGISTRY) -> bool:
    """Write the all-NOT_STARTED state for every phase if the project has none yet."""
    if project.phase_states:
        return False
    templates = get_templates(KitType(project.kit_type), registry)
    for phase_id, state in initialize_phases_state(templates).items():
        _save_phase_state(project, phase_id, state)
    return True


# ============== READ ==============

def merged_phases(project: models.Project, registry: TemplateRegistry = DEFAULT_REGISTRY) -> List[MergedPhase]:
    templates = get_templates(KitType(project.kit_type), registry)
    return merge_state(templates, load_state(project))


def build_project_out(project: models.Project, registry: TemplateRegistry = DEFAULT_REGISTRY) -> schemas.ProjectOut:
    return schemas.ProjectOut(
        id=project.id,
        user_id=project.user_id,
        email=project.email,
        name=project.name,
        kit_type=KitType(project.kit_type),
        onboarding_percent=project.onboarding_percent or 0,
        onboarding_finished=bool(project.onboarding_finished),
        current_day_of_14=project.current_day_of_14,
        next_from_us=project.next_from_us,
        next_from_you=project.next_from_you,
        phases_state=load_state(project),
        created_at=as_utc(project.created_at),
        updated_at=as_utc(project.updated_at),
        phases=merged_phases(project, registry),
    )


def placeholder_project(email: str, kit_type: KitType, registry: TemplateRegistry = DEFAULT_REGISTRY) -> schemas.ProjectOut:
    """What a signed-in user without a project sees: the bare template."""
    email = normalize_email(email)
    return schemas.ProjectOut(
        id=None,
        user_id=user_id_for_email(email),
        email=email,
        kit_type=kit_type,
        phases=merge_state(get_templates(kit_type, registry), None),
    )


def get_project(db: Session, project_id: int) -> Optional[models.Project]:
    return db.query(models.Project).filter(models.Project.id == project_id).first()


def get_project_for_user(db: Session, email: str, kit_type: Optional[KitType] = None) -> Optional[models.Project]:
    """The user's project for a kit, or their most recent one when no kit is given."""
    query = db.query(models.Project).filter(models.Project.email == normalize_email(email))
    if kit_type is not None:
        query = query.filter(models.Project.kit_type == KitType(kit_type).value)
    return query.order_by(models.Project.created_at.desc(), models.Project.id.desc()).first()


def get_or_create_project(db: Session, email: str, kit_type: KitType) -> models.Project:
    project = get_project_for_user(db, email, kit_type)
    if project:
        return project

    email = normalize_email(email)
    project = models.Project(
        user_id=user_id_for_email(email),
        email=email,
        kit_type=KitType(kit_type).value,
        onboarding_percent=0,
        onboarding_finished=False,
    )
    db.add(project)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race with a concurrent first save for the same email and kit
        db.rollback()
        existing = get_project_for_user(db, email, kit_type)
        if existing is None:
            raise
        logger.info(f"[projects.service] Reusing concurrently created project {existing.id}")
        return existing
    db.refresh(project)
    logger.info(f"[projects.service] Created {project.kit_type} project {project.id} for user {project.user_id}")
    return project


# ============== PROGRESS ==============

def _current_phase_summary(phases: List[MergedPhase]) -> Optional[schemas.CurrentPhaseSummary]:
    current = select_current_phase(phases)
    if current is None:
        return None
    return schemas.CurrentPhaseSummary(
        phase_id=current.phase_id,
        phase_number=current.phase_number,
        title=current.title,
        status=current.status,
        checklist_completion=compute_checklist_completion(current),
    )


def build_progress(project: models.Project, registry: TemplateRegistry = DEFAULT_REGISTRY) -> schemas.ProgressResponse:
    phases = merged_phases(project, registry)
    return schemas.ProgressResponse(
        overall_progress=compute_overall_progress(phases),
        checklist_progress=compute_checklist_totals(phases),
        current_phase=_current_phase_summary(phases),
        next_actions=schemas.NextActions(from_us=project.next_from_us, from_you=project.next_from_you),
        timeline=compute_timeline(project.current_day_of_14),
    )


def list_clients(
    db: Session,
    kit_type: Optional[KitType] = None,
    onboarding_finished: Optional[bool] = None,
    limit: int = 100,
    offset: int = 0,
    registry: TemplateRegistry = DEFAULT_REGISTRY,
) -> schemas.ClientListResponse:
    """Every client project with its aggregate progress, newest first."""
    query = db.query(models.Project)
    if kit_type is not None:
        query = query.filter(models.Project.kit_type == KitType(kit_type).value)
    if onboarding_finished is not None:
        query = query.filter(models.Project.onboarding_finished == onboarding_finished)

    total = query.count()
    projects = (
        query.order_by(models.Project.created_at.desc(), models.Project.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )

    clients = []
    for project in projects:
        phases = merged_phases(project, registry)
        clients.append(schemas.ClientSummary(
            project_id=project.id,
            user_id=project.user_id,
            email=project.email,
            name=project.name,
            kit_type=KitType(project.kit_type),
            onboarding_percent=project.onboarding_percent or 0,
            onboarding_finished=bool(project.onboarding_finished),
            current_day_of_14=project.current_day_of_14,
            phase_completion_percent=compute_overall_progress(phases).phase_completion_percent,
            current_phase=_current_phase_summary(phases),
            created_at=as_utc(project.created_at),
        ))

    return schemas.ClientListResponse(
        clients=clients,
        total=total,
        count=len(clients),
        limit=limit,
        offset=offset,
        has_more=offset + len(clients) < total,
    )


# ============== MUTATIONS ==============

def toggle_checklist_item(
    db: Session,
    project: models.Project,
    phase_id: str,
    label: str,
    is_done: bool,
    registry: TemplateRegistry = DEFAULT_REGISTRY,
    now: Optional[datetime] = None,
) -> models.Project:
    """
    Set one checklist item on a project.

    Raises:
        ValueError: phase_id or label is not part of the project's kit
    """
    kit_type = KitType(project.kit_type)
    if not validate_phase_id(kit_type, phase_id, registry):
        logger.warning(f"[projects.service] Rejected toggle: unknown phase {phase_id} for {kit_type.value}")
        raise ValueError(f"Invalid phase_id: {phase_id}")
    if not validate_checklist_label(kit_type, phase_id, label, registry):
        logger.warning(f"[projects.service] Rejected toggle: unknown label {label!r} in {phase_id}")
        raise ValueError(f"Invalid checklist_label: {label} for phase {phase_id}")

    state = load_state(project)
    before = (state or {}).get(phase_id) or PhaseState()
    new_state = apply_checklist_toggle(state, phase_id, label, is_done, now=now)
    after = new_state[phase_id]

    try:
        _save_phase_state(project, phase_id, after)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(project)

    logger.info(f"[projects.service] Project {project.id} {phase_id} {label!r} -> {is_done}")
    if before.status != after.status:
        logger.info(f"[projects.service] Project {project.id} {phase_id} status {before.status.value} -> {after.status.value}")
    return project


def change_phase_status(
    db: Session,
    project: models.Project,
    phase_id: str,
    update: schemas.PhaseStatusUpdate,
    registry: TemplateRegistry = DEFAULT_REGISTRY,
    now: Optional[datetime] = None,
) -> MergedPhase:
    """
    Admin update of a phase's status and/or timestamps.

    Raises:
        ValueError: phase_id is not part of the project's kit
    """
    kit_type = KitType(project.kit_type)
    if not validate_phase_id(kit_type, phase_id, registry):
        logger.warning(f"[projects.service] Rejected status change: unknown phase {phase_id} for {kit_type.value}")
        raise ValueError(f"Invalid phase_id: {phase_id}")

    state = load_state(project)
    current = (state or {}).get(phase_id) or PhaseState()
    sent = update.model_fields_set
    started_at = update.started_at if "started_at" in sent else UNSET
    completed_at = update.completed_at if "completed_at" in sent else UNSET
    if update.status is None:
        # Timestamp correction only; no automatic stamping
        status = current.status
        changes = {}
        if started_at is not UNSET:
            changes["started_at"] = started_at
        if completed_at is not UNSET:
            changes["completed_at"] = completed_at
        after = current.model_copy(update=changes)
    else:
        status = update.status
        after = apply_status_change(state, phase_id, status, started_at, completed_at, now=now)[phase_id]

    try:
        _save_phase_state(project, phase_id, after)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(project)

    logger.info(f"[projects.service] Project {project.id} {phase_id} status {current.status.value} -> {status.value}")
    return next(p for p in merged_phases(project, registry) if p.phase_id == phase_id)


def update_project(db: Session, project: models.Project, data: schemas.ProjectUpdate) -> models.Project:
    for field in data.model_fields_set:
        setattr(project, field, getattr(data, field))
    db.commit()
    db.refresh(project)
    return project
