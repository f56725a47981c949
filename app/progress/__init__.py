# app/progress/__init__.py
"""
Progress engine for Klarnow projects.
Phase templates per kit, template/state merging and derived progress metrics.
"""

from .schemas import (
    KitType,
    Status,
    PhaseLink,
    PhaseTemplate,
    PhaseState,
    ChecklistEntry,
    MergedPhase,
    ChecklistCompletion,
    ChecklistTotals,
    OverallProgress,
    Timeline,
)
from .templates import TemplateRegistry, DEFAULT_REGISTRY, get_templates
from .engine import (
    UNSET,
    merge_state,
    initialize_phases_state,
    compute_checklist_completion,
    compute_checklist_totals,
    compute_overall_progress,
    select_current_phase,
    compute_timeline,
    validate_phase_id,
    validate_checklist_label,
    apply_checklist_toggle,
    apply_status_change,
)

__all__ = [
    # Types
    "KitType",
    "Status",
    "PhaseLink",
    "PhaseTemplate",
    "PhaseState",
    "ChecklistEntry",
    "MergedPhase",
    "ChecklistCompletion",
    "ChecklistTotals",
    "OverallProgress",
    "Timeline",
    # Templates
    "TemplateRegistry",
    "DEFAULT_REGISTRY",
    "get_templates",
    # Engine
    "UNSET",
    "merge_state",
    "initialize_phases_state",
    "compute_checklist_completion",
    "compute_checklist_totals",
    "compute_overall_progress",
    "select_current_phase",
    "compute_timeline",
    "validate_phase_id",
    "validate_checklist_label",
    "apply_checklist_toggle",
    "apply_status_change",
]
