"""Drill, positional round and constraint menus for a weekly plan."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence

from .explainability import ExplainabilityRecorder
from .journal_models import Entry, WeeklyPlanMenuItem, WeeklyPlanReference, WeeklyPositionalFocusCard
from .skill_candidates import REFERENCE_SUMMARY_LENGTH, SignalHints, SkillCandidate
from .skill_identity import dekebab, truncate
from .weekly_plan_guidance import PlanGuidance

MAX_MENU_ITEMS = 4
MENU_LABEL_LENGTH = 140
MENU_REFERENCE_LIMIT = 2


@dataclass
class PlanMenus:
    drills: List[WeeklyPlanMenuItem]
    positional_rounds: List[WeeklyPlanMenuItem]
    constraints: List[WeeklyPlanMenuItem]


def to_menu_items(values: Sequence[str], prefix: str) -> List[WeeklyPlanMenuItem]:
    return [
        WeeklyPlanMenuItem(id=f"{prefix}-{index}", label=truncate(value, MENU_LABEL_LENGTH), status="pending")
        for index, value in enumerate(values[:MAX_MENU_ITEMS], start=1)
    ]


def drill_labels(primary: Sequence[SkillCandidate], hints: SignalHints) -> List[str]:
    labels: List[str] = []
    for candidate in primary:
        needle = dekebab(candidate.skill_id)
        matching = next((hint for hint in hints.drills if needle in hint.lower()), None)
        labels.append(matching or f"3 x 2m isolated reps focused on {candidate.label}.")
    labels.extend(hints.drills)
    labels.extend(f"Decision drill: {focus}" for focus in hints.one_focuses)
    return labels


def positional_round_labels(
    primary: Sequence[SkillCandidate],
    hints: SignalHints,
    cards: Sequence[WeeklyPositionalFocusCard],
) -> List[str]:
    labels: List[str] = list(hints.positional_requests)
    labels.extend(f"{card.position}: {card.title}" for card in cards)
    labels.extend(f"2 x 5m positional rounds centered on {candidate.label}." for candidate in primary)
    return labels


def constraint_labels(guidance: PlanGuidance, hints: SignalHints) -> List[str]:
    labels: List[str] = [guidance.conditioning_constraint]
    labels.extend(f"Fallback rule: {hint}" for hint in hints.fallback_guidance)
    labels.append(f"Coaching cue: {guidance.supporting_concept}")
    return labels


def _round_references(entries: Sequence[Entry], label: str) -> List[WeeklyPlanReference]:
    references: List[WeeklyPlanReference] = []
    for entry in entries[:MENU_REFERENCE_LIMIT]:
        action_pack = entry.effective_action_pack()
        requests = action_pack.positional_requests if action_pack is not None else []
        references.append(
            WeeklyPlanReference(
                source_type="entry-action-pack",
                source_id=entry.entry_id,
                created_at=entry.created_at,
                summary=truncate(requests[0] if requests else label, REFERENCE_SUMMARY_LENGTH),
            )
        )
    return references


def build_plan_menus(
    primary: Sequence[SkillCandidate],
    hints: SignalHints,
    guidance: PlanGuidance,
    cards: Sequence[WeeklyPositionalFocusCard],
    entries: Sequence[Entry],
    recorder: ExplainabilityRecorder,
) -> PlanMenus:
    drills = to_menu_items(drill_labels(primary, hints), "drill")
    positional_rounds = to_menu_items(positional_round_labels(primary, hints, cards), "round")
    constraints = to_menu_items(constraint_labels(guidance, hints), "constraint")

    top_references = primary[0].references[:MENU_REFERENCE_LIMIT] if primary else []
    for drill in drills:
        recorder.record(
            "drill",
            drill.label,
            "Drill selected to reinforce top primary skill and one-focus cue.",
            top_references,
        )
    for round_item in positional_rounds:
        recorder.record(
            "positional-round",
            round_item.label,
            "Positional round aligns to repeated failure positions in structured sessions.",
            _round_references(entries, round_item.label),
        )
    for constraint in constraints:
        recorder.record(
            "training-constraint",
            constraint.label,
            "Constraint keeps conditioning and decision-quality aligned to current leaks.",
            guidance.constraint_references,
        )

    return PlanMenus(drills=drills, positional_rounds=positional_rounds, constraints=constraints)


__all__ = [
    "MAX_MENU_ITEMS",
    "PlanMenus",
    "build_plan_menus",
    "constraint_labels",
    "drill_labels",
    "positional_round_labels",
    "to_menu_items",
]
