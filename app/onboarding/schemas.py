# FILE: app/onboarding/schemas.py
"""
Onboarding module Pydantic schemas.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from app.progress.schemas import KitType, Status


class OnboardingStepIn(BaseModel):
    step_number: int
    fields: Dict[str, Any] = Field(default_factory=dict)
    required_fields_completed: int = Field(0, ge=0)
    required_fields_total: int = Field(0, ge=0)
    started_at: Optional[datetime] = None


class OnboardingStepSave(OnboardingStepIn):
    kit_type: KitType


class OnboardingStepUpdate(BaseModel):
    """Edit of an already saved step. The required total stays as saved."""
    fields: Optional[Dict[str, Any]] = None
    required_fields_completed: int = Field(..., ge=0)
    started_at: Optional[datetime] = None


class CompleteOnboardingRequest(BaseModel):
    kit_type: KitType
    steps: List[OnboardingStepIn]


class OnboardingStepOut(BaseModel):
    step_number: int
    title: str
    status: Status
    required_fields_total: int
    required_fields_completed: int
    time_estimate: Optional[str] = None
    fields: Optional[Dict[str, Any]] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    is_locked: bool = False


class StepSaveResponse(BaseModel):
    success: bool
    project_id: int
    onboarding_percent: int
    step: OnboardingStepOut


class OnboardingStepsResponse(BaseModel):
    project_id: Optional[int]
    kit_type: KitType
    onboarding_percent: int
    onboarding_finished: bool
    steps: List[OnboardingStepOut]
