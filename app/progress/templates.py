# FILE: app/progress/templates.py
"""
Phase templates per kit.

Templates are build-time data. ``DEFAULT_REGISTRY`` is constructed once from
the literals below and is immutable; tests and callers that need a different
template set build their own ``TemplateRegistry`` and pass it explicitly.
"""
from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Sequence, Tuple

from app.progress.schemas import KitType, PhaseTemplate


@dataclass(frozen=True)
class TemplateRegistry:
    """Immutable kit -> ordered phase template mapping."""
    kits: Mapping[KitType, Tuple[PhaseTemplate, ...]]

    @classmethod
    def build(cls, kits: Mapping[KitType, Iterable[PhaseTemplate]]) -> "TemplateRegistry":
        frozen = {}
        for kit_type, phases in kits.items():
            ordered = tuple(sorted(phases, key=lambda p: p.phase_number))
            _check_phases(kit_type, ordered)
            frozen[KitType(kit_type)] = ordered
        return cls(kits=MappingProxyType(frozen))

    def get(self, kit_type: KitType) -> Tuple[PhaseTemplate, ...]:
        """Phases for a kit; unknown kits have none."""
        try:
            kit_type = KitType(kit_type)
        except ValueError:
            return ()
        return self.kits.get(kit_type, ())

    def find_phase(self, kit_type: KitType, phase_id: str) -> Optional[PhaseTemplate]:
        for phase in self.get(kit_type):
            if phase.phase_id == phase_id:
                return phase
        return None


def _check_phases(kit_type: KitType, phases: Sequence[PhaseTemplate]) -> None:
    numbers = [p.phase_number for p in phases]
    if numbers != list(range(1, len(phases) + 1)):
        raise ValueError(f"{kit_type}: phase numbers must be 1..n without gaps, got {numbers}")

    ids = [p.phase_id for p in phases]
    if len(set(ids)) != len(ids):
        raise ValueError(f"{kit_type}: duplicate phase_id in {ids}")

    for phase in phases:
        if len(set(phase.checklist)) != len(phase.checklist):
            raise ValueError(f"{kit_type}/{phase.phase_id}: duplicate checklist label")


def _phase(number: int, title: str, subtitle: str, day_range: str, checklist: Sequence[str]) -> PhaseTemplate:
    return PhaseTemplate(
        phase_id=f"PHASE_{number}",
        phase_number=number,
        title=title,
        subtitle=subtitle,
        day_range=day_range,
        checklist=tuple(checklist),
    )


LAUNCH_PHASES = (
    _phase(1, "Inputs & clarity", "Lock the message and plan.", "Days 0-2", [
        "Onboarding steps completed",
        "Brand / strategy call completed",
        "Simple 14 day plan agreed",
    ]),
    _phase(2, "Words that sell", "We write your 3 pages.", "Days 3-5", [
        "Draft homepage copy ready",
        "Draft offer / services page ready",
        "Draft contact / about copy ready",
        "You reviewed and approved copy",
    ]),
    _phase(3, "Design & build", "We turn copy into a 3 page site.", "Days 6-10", [
        "Site layout built for all 3 pages",
        "Mobile checks done",
        "Testimonials and proof added",
        "Staging link shared with you",
    ]),
    _phase(4, "Test & launch", "We connect domain, test and go live.", "Days 11-14", [
        "Forms tested",
        "Domain connected",
        "Final tweaks applied",
        "Loom walkthrough recorded and shared",
    ]),
)

GROWTH_PHASES = (
    _phase(1, "Strategy locked in", "Offer, goal and funnel map agreed.", "Days 0-2", [
        "Onboarding complete",
        "Strategy / funnel call done",
        "Main offer + 90 day goal confirmed",
        "Simple funnel map agreed",
    ]),
    _phase(2, "Copy & email engine", "We write your site copy and 5 emails.", "Days 3-5", [
        "Draft website copy ready",
        "Draft 5-email nurture sequence ready",
        "You reviewed and approved copy",
        "Any changes locked in",
    ]),
    _phase(3, "Build the funnel", "Pages, lead magnet and blog hub built.", "Days 6-10", [
        "4-6 page site built on staging",
        "Lead magnet page + thank you page built",
        "Opt-in forms wired to email platform",
        "Blog hub and 1-2 starter posts set up",
        "Staging link shared",
    ]),
    _phase(4, "Test, launch & handover", "We test the full journey and go live.", "Days 11-14", [
        "Funnel tested from first visit to booked call",
        "Domain connected",
        "Tracking checked (Analytics / pixels)",
        "5-email sequence switched on",
        "Loom walkthrough recorded and shared",
    ]),
)

DEFAULT_REGISTRY = TemplateRegistry.build({
    KitType.LAUNCH: LAUNCH_PHASES,
    KitType.GROWTH: GROWTH_PHASES,
})


def get_templates(kit_type: KitType, registry: TemplateRegistry = DEFAULT_REGISTRY) -> Tuple[PhaseTemplate, ...]:
    """Ordered phase templates for a kit."""
    return registry.get(kit_type)
