# FILE: app/projects/schemas.py
"""
Projects module Pydantic schemas (request bodies and responses).
"""
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, StrictBool

from app.progress.schemas import (
    ChecklistCompletion,
    ChecklistTotals,
    KitType,
    MergedPhase,
    OverallProgress,
    PhaseState,
    Status,
    Timeline,
)


# ============== PROJECT ==============

class ProjectOut(BaseModel):
    """Project with merged phases, as the dashboards consume it."""
    id: Optional[int]
    user_id: str
    email: str
    name: Optional[str] = None
    kit_type: KitType
    onboarding_percent: int = 0
    onboarding_finished: bool = False
    current_day_of_14: Optional[int] = None
    next_from_us: Optional[str] = None
    next_from_you: Optional[str] = None
    phases_state: Optional[Dict[str, PhaseState]] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    phases: List[MergedPhase]


class ProjectEnvelope(BaseModel):
    project: ProjectOut


class ProjectUpdate(BaseModel):
    current_day_of_14: Optional[int] = Field(None, ge=0, le=14)
    next_from_us: Optional[str] = None
    next_from_you: Optional[str] = None


# ============== CHECKLIST / PHASES ==============

class ChecklistToggleRequest(BaseModel):
    phase_id: str = Field(..., min_length=1)
    checklist_label: str = Field(..., min_length=1)
    is_done: StrictBool
    kit_type: Optional[KitType] = None


class AdminChecklistToggleRequest(BaseModel):
    checklist_label: str = Field(..., min_length=1)
    is_done: StrictBool


class ToggleResponse(BaseModel):
    success: bool
    project: ProjectOut


class PhaseStatusUpdate(BaseModel):
    """Fields left out of the body are left alone; explicit nulls clear timestamps."""
    status: Optional[Status] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class PhaseUpdateResponse(BaseModel):
    phase: MergedPhase
    message: str


# ============== PROGRESS ==============

class CurrentPhaseSummary(BaseModel):
    phase_id: str
    phase_number: int
    title: str
    status: Status
    checklist_completion: ChecklistCompletion


class NextActions(BaseModel):
    from_us: Optional[str] = None
    from_you: Optional[str] = None


class ProgressResponse(BaseModel):
    overall_progress: OverallProgress
    checklist_progress: ChecklistTotals
    current_phase: Optional[CurrentPhaseSummary]
    next_actions: NextActions
    timeline: Timeline


# ============== ADMIN CLIENT LIST ==============

class ClientSummary(BaseModel):
    project_id: int
    user_id: str
    email: str
    name: Optional[str] = None
    kit_type: KitType
    onboarding_percent: int
    onboarding_finished: bool
    current_day_of_14: Optional[int] = None
    phase_completion_percent: int
    current_phase: Optional[CurrentPhaseSummary] = None
    created_at: datetime


class ClientListResponse(BaseModel):
    clients: List[ClientSummary]
    total: int
    count: int
    limit: int
    offset: int
    has_more: bool
