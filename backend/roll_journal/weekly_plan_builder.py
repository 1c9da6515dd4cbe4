"""Weekly training plan composition from journal signals."""

from __future__ import annotations

import logging
import uuid
from typing import List, Optional, Sequence

from .explainability import ExplainabilityRecorder
from .journal_models import (
    Checkoff,
    CurriculumGraph,
    Entry,
    WeeklyPlan,
    WeeklyPositionalFocus,
    WeeklyPositionalFocusCard,
)
from .positional_focus import PositionalFocusEngine
from .skill_candidates import MAX_PRIMARY_SKILLS, CandidateAggregator, SkillCandidate, select_primary_skills
from .skill_identity import label_from_skill_id, truncate
from .timestamps import normalize_week_date
from .weekly_plan_guidance import resolve_plan_guidance
from .weekly_plan_menus import build_plan_menus

logger = logging.getLogger(__name__)

DEFAULT_PLAN_ID_NAMESPACE = "roll-journal:weekly-plan"
UNKNOWN_ATHLETE_ID = "unknown"
SUPPORTING_CONCEPT_LENGTH = 140
CONDITIONING_CONSTRAINT_LENGTH = 180


def derive_plan_id(athlete_id: str, week_of: str, now_iso: str, namespace: str = DEFAULT_PLAN_ID_NAMESPACE) -> str:
    """Stable plan id: the same athlete, week and generation time always map to the same id."""
    return str(uuid.uuid5(uuid.NAMESPACE_URL, f"{namespace}:{athlete_id}:{week_of}:{now_iso}"))


def resolve_athlete_id(
    entries: Sequence[Entry],
    checkoffs: Sequence[Checkoff],
    curriculum_graph: Optional[CurriculumGraph],
) -> str:
    if entries and entries[0].athlete_id:
        return entries[0].athlete_id
    if checkoffs and checkoffs[0].athlete_id:
        return checkoffs[0].athlete_id
    if curriculum_graph is not None and curriculum_graph.athlete_id:
        return curriculum_graph.athlete_id
    return UNKNOWN_ATHLETE_ID


def primary_skill_label(candidate: SkillCandidate) -> str:
    return candidate.label.strip() or label_from_skill_id(candidate.skill_id)


class WeeklyPlanBuilder:
    """Fuses session logs, checkoffs, curriculum priorities and prior plans into one plan.

    The build is pure: no I/O, no clock reads, no randomness. Every selection point has a
    fallback so sparse input still yields a complete plan, and every selection is written to
    the plan's explainability trail.

    Trail order: primary skills, supporting concept, conditioning constraint, drills,
    positional rounds, training constraints, then one ``positional-focus`` item per focus
    card. ``positional-round`` covers round menu items only.
    """

    def __init__(self, *, focus_engine: Optional[PositionalFocusEngine] = None) -> None:
        self._focus_engine = focus_engine or PositionalFocusEngine()

    def build(
        self,
        entries: Sequence[Entry],
        checkoffs: Sequence[Checkoff],
        curriculum_graph: Optional[CurriculumGraph],
        prior_plans: Sequence[WeeklyPlan],
        *,
        week_of: str,
        now_iso: str,
        plan_id: Optional[str] = None,
        plan_id_namespace: str = DEFAULT_PLAN_ID_NAMESPACE,
    ) -> WeeklyPlan:
        recorder = ExplainabilityRecorder()

        aggregator = CandidateAggregator()
        aggregator.add_entries(entries)
        aggregator.add_checkoffs(checkoffs)
        aggregator.add_curriculum_graph(curriculum_graph)
        aggregator.add_prior_plans(prior_plans)
        hints = aggregator.hints

        primary = select_primary_skills(aggregator.candidates(), recorder, limit=MAX_PRIMARY_SKILLS)
        primary_skills = [primary_skill_label(candidate) for candidate in primary]

        guidance = resolve_plan_guidance(primary, curriculum_graph, hints, entries, recorder)

        cards = self._focus_engine.build_cards(
            entries,
            prior_plans,
            one_focuses=hints.one_focuses,
            primary_skills=primary_skills,
            now_iso=now_iso,
        )
        menus = build_plan_menus(primary, hints, guidance, cards, entries, recorder)
        self._record_focus_cards(cards, recorder)

        athlete_id = resolve_athlete_id(entries, checkoffs, curriculum_graph)
        normalized_week = normalize_week_date(week_of)
        resolved_plan_id = plan_id or derive_plan_id(athlete_id, normalized_week, now_iso, plan_id_namespace)

        logger.debug(
            "Weekly plan %s for %s: %d candidates, primary=%s, %d focus cards, %d explainability items",
            resolved_plan_id,
            athlete_id,
            len(aggregator.candidates()),
            primary_skills,
            len(cards),
            len(recorder),
        )

        return WeeklyPlan(
            plan_id=resolved_plan_id,
            athlete_id=athlete_id,
            week_of=normalized_week,
            generated_at=now_iso,
            updated_at=now_iso,
            status="active",
            primary_skills=primary_skills,
            supporting_concept=truncate(guidance.supporting_concept, SUPPORTING_CONCEPT_LENGTH),
            conditioning_constraint=truncate(guidance.conditioning_constraint, CONDITIONING_CONSTRAINT_LENGTH),
            drills=menus.drills,
            positional_rounds=menus.positional_rounds,
            constraints=menus.constraints,
            positional_focus=WeeklyPositionalFocus(cards=cards, locked=False, updated_at=now_iso),
            explainability=recorder.items(),
        )

    @staticmethod
    def _record_focus_cards(cards: List[WeeklyPositionalFocusCard], recorder: ExplainabilityRecorder) -> None:
        for card in cards:
            recorder.record("positional-focus", card.title, card.rationale, card.references)


builder = WeeklyPlanBuilder()


def build_weekly_plan_from_signals(
    entries: Sequence[Entry],
    checkoffs: Sequence[Checkoff],
    curriculum_graph: Optional[CurriculumGraph],
    prior_plans: Sequence[WeeklyPlan],
    week_of: str,
    now_iso: str,
    *,
    plan_id: Optional[str] = None,
    plan_id_namespace: str = DEFAULT_PLAN_ID_NAMESPACE,
) -> WeeklyPlan:
    """Build one weekly plan from already-fetched records and a caller-supplied "now"."""
    return builder.build(
        entries,
        checkoffs,
        curriculum_graph,
        prior_plans,
        week_of=week_of,
        now_iso=now_iso,
        plan_id=plan_id,
        plan_id_namespace=plan_id_namespace,
    )


__all__ = [
    "DEFAULT_PLAN_ID_NAMESPACE",
    "WeeklyPlanBuilder",
    "build_weekly_plan_from_signals",
    "builder",
    "derive_plan_id",
    "resolve_athlete_id",
]
