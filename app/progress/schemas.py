# FILE: app/progress/schemas.py
"""
Progress engine records.

Templates are frozen; state and merged records are plain pydantic models that
serialize straight to the JSON the dashboard consumes.
"""
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# ENUMS
# =============================================================================

class KitType(str, Enum):
    """Product tier. Decides which phase template sequence applies."""
    LAUNCH = "LAUNCH"
    GROWTH = "GROWTH"


class Status(str, Enum):
    """Phase (and onboarding step) status."""
    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    WAITING_ON_CLIENT = "WAITING_ON_CLIENT"
    DONE = "DONE"


# =============================================================================
# TEMPLATE
# =============================================================================

class PhaseLink(BaseModel):
    model_config = ConfigDict(frozen=True)

    label: str
    url: Optional[str] = None


class PhaseTemplate(BaseModel):
    model_config = ConfigDict(frozen=True)

    phase_id: str
    phase_number: int = Field(..., ge=1)
    title: str
    subtitle: Optional[str] = None
    day_range: str
    checklist: Tuple[str, ...] = ()
    links: Tuple[PhaseLink, ...] = ()


# =============================================================================
# STATE
# =============================================================================

class PhaseState(BaseModel):
    """Persisted progress for one phase of one project."""
    status: Status = Status.NOT_STARTED
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    checklist: Dict[str, bool] = Field(default_factory=dict)


class ChecklistEntry(BaseModel):
    label: str
    is_done: bool = False


class MergedPhase(BaseModel):
    """Template fields plus resolved state. Never persisted."""
    phase_id: str
    phase_number: int
    title: str
    subtitle: Optional[str] = None
    day_range: str
    status: Status
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    checklist: List[ChecklistEntry]
    links: List[PhaseLink] = Field(default_factory=list)

    def to_state(self) -> PhaseState:
        """Fold a merged phase back into state form."""
        return PhaseState(
            status=self.status,
            started_at=self.started_at,
            completed_at=self.completed_at,
            checklist={item.label: item.is_done for item in self.checklist},
        )


# =============================================================================
# METRICS
# =============================================================================

class ChecklistCompletion(BaseModel):
    completed: int
    total: int
    percent: float


class OverallProgress(BaseModel):
    total_phases: int
    completed_phases: int
    in_progress_phases: int
    waiting_on_client_phases: int
    not_started_phases: int
    phase_completion_percent: int


class ChecklistTotals(BaseModel):
    total_items: int
    completed_items: int
    remaining_items: int
    completion_percent: float


class Timeline(BaseModel):
    current_day: int
    total_days: int
    days_remaining: int
    percent_complete: float
