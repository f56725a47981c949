# FILE: app/progress/engine.py
"""
Progress engine.

Merges the immutable phase templates of a kit with a project's persisted
phase state and derives the numbers the dashboards show.

Everything here is a pure function: no I/O, no module state, inputs are never
mutated. Invalid phase ids / checklist labels are reported through the
validate_* booleans, never raised.
"""
import math
from datetime import datetime, timezone
from typing import Dict, List, Mapping, Optional, Sequence

from app.progress.schemas import (
    ChecklistCompletion,
    ChecklistEntry,
    ChecklistTotals,
    KitType,
    MergedPhase,
    OverallProgress,
    PhaseState,
    PhaseTemplate,
    Status,
    Timeline,
)
from app.progress.templates import DEFAULT_REGISTRY, TemplateRegistry

StateMap = Mapping[str, PhaseState]

TOTAL_DAYS = 14


class _Unset:
    def __repr__(self):
        return "UNSET"


# Marks "argument not given" where None is a meaningful value (clear the field).
UNSET = _Unset()


def _now(now: Optional[datetime]) -> datetime:
    return now or datetime.now(timezone.utc)


def _round_half_up(value: float, digits: int = 0) -> float:
    scale = 10 ** digits
    return math.floor(value * scale + 0.5) / scale


# =============================================================================
# MERGE
# =============================================================================

def merge_state(templates: Sequence[PhaseTemplate], state: Optional[StateMap]) -> List[MergedPhase]:
    """
    Combine templates with persisted state, one MergedPhase per template.

    Labels missing from the stored checklist default to not-done; stored
    labels the template no longer has are dropped.
    """
    state = state or {}
    merged = []
    for template in templates:
        phase_state = state.get(template.phase_id) or PhaseState()
        merged.append(MergedPhase(
            phase_id=template.phase_id,
            phase_number=template.phase_number,
            title=template.title,
            subtitle=template.subtitle,
            day_range=template.day_range,
            status=phase_state.status,
            started_at=phase_state.started_at,
            completed_at=phase_state.completed_at,
            checklist=[
                ChecklistEntry(label=label, is_done=bool(phase_state.checklist.get(label, False)))
                for label in template.checklist
            ],
            links=list(template.links),
        ))
    return merged


def initialize_phases_state(templates: Sequence[PhaseTemplate]) -> Dict[str, PhaseState]:
    """State for a brand new project: everything NOT_STARTED and unchecked."""
    return {
        template.phase_id: PhaseState(checklist={label: False for label in template.checklist})
        for template in templates
    }


# =============================================================================
# METRICS
# =============================================================================

def compute_checklist_completion(phase: MergedPhase) -> ChecklistCompletion:
    total = len(phase.checklist)
    completed = sum(1 for item in phase.checklist if item.is_done)
    percent = _round_half_up(completed / total * 100, 1) if total else 0
    return ChecklistCompletion(completed=completed, total=total, percent=percent)


def compute_checklist_totals(phases: Sequence[MergedPhase]) -> ChecklistTotals:
    """Checklist progress summed over every phase."""
    total = sum(len(phase.checklist) for phase in phases)
    completed = sum(1 for phase in phases for item in phase.checklist if item.is_done)
    return ChecklistTotals(
        total_items=total,
        completed_items=completed,
        remaining_items=total - completed,
        completion_percent=_round_half_up(completed / total * 100, 1) if total else 0,
    )


def compute_overall_progress(phases: Sequence[MergedPhase]) -> OverallProgress:
    counts = {status: 0 for status in Status}
    for phase in phases:
        counts[phase.status] += 1

    total = len(phases)
    done = counts[Status.DONE]
    return OverallProgress(
        total_phases=total,
        completed_phases=done,
        in_progress_phases=counts[Status.IN_PROGRESS],
        waiting_on_client_phases=counts[Status.WAITING_ON_CLIENT],
        not_started_phases=counts[Status.NOT_STARTED],
        phase_completion_percent=int(_round_half_up(100 * done / total)) if total else 0,
    )


def select_current_phase(phases: Sequence[MergedPhase]) -> Optional[MergedPhase]:
    """
    The phase a client should land on.

    Priority: first IN_PROGRESS, then first WAITING_ON_CLIENT, then the
    highest-numbered DONE phase, then the first phase.
    """
    if not phases:
        return None

    ordered = sorted(phases, key=lambda p: p.phase_number)
    for wanted in (Status.IN_PROGRESS, Status.WAITING_ON_CLIENT):
        for phase in ordered:
            if phase.status == wanted:
                return phase

    done = [p for p in ordered if p.status == Status.DONE]
    if done:
        return done[-1]
    return ordered[0]


def compute_timeline(current_day_of_14: Optional[int]) -> Timeline:
    current_day = current_day_of_14 or 0
    return Timeline(
        current_day=current_day,
        total_days=TOTAL_DAYS,
        days_remaining=max(0, TOTAL_DAYS - current_day),
        percent_complete=_round_half_up(current_day / TOTAL_DAYS * 100, 1),
    )


# =============================================================================
# VALIDATION
# =============================================================================

def validate_phase_id(kit_type: KitType, phase_id: str, registry: TemplateRegistry = DEFAULT_REGISTRY) -> bool:
    return registry.find_phase(kit_type, phase_id) is not None


def validate_checklist_label(
    kit_type: KitType,
    phase_id: str,
    label: str,
    registry: TemplateRegistry = DEFAULT_REGISTRY,
) -> bool:
    phase = registry.find_phase(kit_type, phase_id)
    if phase is None:
        return False
    return label in phase.checklist


# =============================================================================
# MUTATIONS
# =============================================================================

def apply_checklist_toggle(
    state: Optional[StateMap],
    phase_id: str,
    label: str,
    is_done: bool,
    now: Optional[datetime] = None,
) -> Dict[str, PhaseState]:
    """
    Set one checklist item and return the new state map.

    Checking an item on a NOT_STARTED phase moves it to IN_PROGRESS and stamps
    started_at if unset. Unchecking never reverts; nothing here marks DONE.
    Call only after validate_phase_id / validate_checklist_label pass.
    """
    new_state = dict(state or {})
    current = new_state.get(phase_id) or PhaseState()

    updates = {"checklist": {**current.checklist, label: is_done}}
    if is_done and current.status == Status.NOT_STARTED:
        updates["status"] = Status.IN_PROGRESS
        if current.started_at is None:
            updates["started_at"] = _now(now)

    new_state[phase_id] = current.model_copy(update=updates)
    return new_state


def apply_status_change(
    state: Optional[StateMap],
    phase_id: str,
    status: Status,
    started_at=UNSET,
    completed_at=UNSET,
    now: Optional[datetime] = None,
) -> Dict[str, PhaseState]:
    """
    Admin status change for one phase.

    IN_PROGRESS stamps started_at if unset. DONE stamps completed_at with
    `now` every time, replacing an earlier value. NOT_STARTED clears both.
    Explicit timestamps (including None) win over the automatic ones.
    """
    new_state = dict(state or {})
    current = new_state.get(phase_id) or PhaseState()
    status = Status(status)

    updates = {"status": status}
    if status == Status.IN_PROGRESS and started_at is UNSET:
        if current.started_at is None:
            updates["started_at"] = _now(now)
    elif status == Status.DONE and completed_at is UNSET:
        updates["completed_at"] = _now(now)
    elif status == Status.NOT_STARTED:
        updates["started_at"] = None
        updates["completed_at"] = None

    if started_at is not UNSET:
        updates["started_at"] = started_at
    if completed_at is not UNSET:
        updates["completed_at"] = completed_at

    new_state[phase_id] = current.model_copy(update=updates)
    return new_state
