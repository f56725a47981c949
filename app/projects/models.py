# FILE: app/projects/models.py
"""
SQLAlchemy ORM models for client projects.

Phase templates are not stored: only per-project phase state lives here and
is merged with the kit templates on every read.
"""
from sqlalchemy import Column, Integer, String, Text, ForeignKey, DateTime, Boolean, JSON, UniqueConstraint
from sqlalchemy.orm import relationship

from app.db import Base, utcnow


class Project(Base):
    """One project per client per kit."""
    __tablename__ = "projects"
    __table_args__ = (UniqueConstraint("email", "kit_type", name="uq_projects_email_kit"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(32), nullable=False, index=True)  # sha256(email)[:32]
    email = Column(String(255), nullable=False, index=True)
    name = Column(String(255), nullable=True)
    kit_type = Column(String(20), nullable=False)  # LAUNCH | GROWTH

    onboarding_percent = Column(Integer, default=0, nullable=False)
    onboarding_finished = Column(Boolean, default=False, nullable=False)
    current_day_of_14 = Column(Integer, nullable=True)
    next_from_us = Column(Text, nullable=True)
    next_from_you = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships
    phase_states = relationship("PhaseStateRecord", back_populates="project", cascade="all, delete-orphan")
    onboarding_steps = relationship(
        "OnboardingStep",
        back_populates="project",
        cascade="all, delete-orphan",
        order_by="OnboardingStep.step_number",
    )


class PhaseStateRecord(Base):
    """
    Persisted state of one phase. Created lazily on first mutation or when
    onboarding completes; never deleted while the project exists.
    """
    __tablename__ = "phase_states"
    __table_args__ = (UniqueConstraint("project_id", "phase_id", name="uq_phase_states_project_phase"),)

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    phase_id = Column(String(50), nullable=False)  # PHASE_1..PHASE_n
    status = Column(String(30), default="NOT_STARTED", nullable=False)
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    checklist = Column(JSON, default=dict, nullable=False)  # {label: bool}
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    project = relationship("Project", back_populates="phase_states")


class OnboardingStep(Base):
    __tablename__ = "onboarding_steps"
    __table_args__ = (UniqueConstraint("project_id", "step_number", name="uq_onboarding_steps_project_step"),)

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    step_number = Column(Integer, nullable=False)
    title = Column(String(255), nullable=False)
    status = Column(String(30), default="NOT_STARTED", nullable=False)
    required_fields_total = Column(Integer, default=0, nullable=False)
    required_fields_completed = Column(Integer, default=0, nullable=False)
    time_estimate = Column(String(50), nullable=True)
    fields = Column(JSON, nullable=True)
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    project = relationship("Project", back_populates="onboarding_steps")
