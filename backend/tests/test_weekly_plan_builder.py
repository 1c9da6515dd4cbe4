"""End-to-end tests for weekly plan generation from journal signals."""

from __future__ import annotations

from typing import List, Optional

from roll_journal.journal_models import (
    ActionPack,
    Checkoff,
    CurriculumGraph,
    CurriculumGraphNode,
    Entry,
    WeeklyPlan,
    WeeklyPlanMenuItem,
    WeeklyPositionalFocus,
    WeeklyPositionalFocusCard,
)
from roll_journal.weekly_plan_builder import (
    UNKNOWN_ATHLETE_ID,
    WeeklyPlanBuilder,
    build_weekly_plan_from_signals,
    derive_plan_id,
)
from roll_journal.weekly_plan_guidance import DEFAULT_CONDITIONING_CONSTRAINT, FALLBACK_SUPPORTING_CONCEPT

NOW = "2026-03-04T09:30:00.000Z"
WEEK_OF = "2026-03-04"
FRAMES_FIRST = "Frames first: win inside frame position before any escape or attack attempt."


def _entry(
    entry_id: str,
    created_at: str,
    *,
    leaks: Optional[List[str]] = None,
    wins: Optional[List[str]] = None,
    one_focus: str = "",
    drills: Optional[List[str]] = None,
    positional_requests: Optional[List[str]] = None,
    fallback: str = "",
    athlete_id: str = "athlete-1",
) -> Entry:
    return Entry(
        entry_id=entry_id,
        athlete_id=athlete_id,
        created_at=created_at,
        action_pack_draft=ActionPack(
            leaks=leaks or [],
            wins=wins or [],
            one_focus=one_focus,
            drills=drills or [],
            positional_requests=positional_requests or [],
            fallback_decision_guidance=fallback,
        ),
    )


def _prior_plan_with_card(title: str) -> WeeklyPlan:
    return WeeklyPlan(
        plan_id="prior-1",
        athlete_id="athlete-1",
        week_of="2026-02-23",
        generated_at="2026-02-23T08:00:00.000Z",
        updated_at="2026-02-27T08:00:00.000Z",
        primary_skills=["late pummel"],
        drills=[WeeklyPlanMenuItem(id="drill-1", label="Pummel x20", status="pending")],
        positional_focus=WeeklyPositionalFocus(
            cards=[WeeklyPositionalFocusCard(id="focus-1", title=title, priority=1, status="pending")],
            updated_at="2026-02-27T08:00:00.000Z",
        ),
    )


def _rich_signals():
    entries = [
        _entry(
            f"e{index:02d}",
            f"2026-02-{28 - index:02d}T18:00:00.000Z",
            leaks=[f"leak {index % 5}", "got tired late in rounds"],
            wins=[f"win {index % 3}"],
            one_focus=f"focus {index % 4}",
            drills=[f"drill {index}", "Knee cut entries"],
            positional_requests=[f"position {index}"],
            fallback=f"fallback {index}",
        )
        for index in range(20)
    ]
    checkoffs = [
        Checkoff(checkoff_id=f"c{index}", athlete_id="athlete-1", skill_id=f"skill-{index}", status=status)
        for index, status in enumerate(["pending", "earned", "superseded", "revalidated"])
    ]
    graph = CurriculumGraph(
        athlete_id="athlete-1",
        updated_at="2026-02-01T00:00:00.000Z",
        nodes=[CurriculumGraphNode(skill_id="knee-cut", label="Knee cut", priority=5)],
    )
    priors = [_prior_plan_with_card("Fix: late pummel"), _prior_plan_with_card("Fix: leak 1")]
    return entries, checkoffs, graph, priors


def test_repeated_leak_outranks_one_focus_scenario() -> None:
    entries = [
        _entry(f"e{index}", f"2026-03-0{index}T10:00:00.000Z", leaks=["lost underhook"], one_focus="frame first")
        for index in (1, 2, 3)
    ]

    plan = build_weekly_plan_from_signals(entries, [], None, [], WEEK_OF, NOW)

    assert plan.primary_skills == ["lost underhook", "frame first"]
    assert plan.supporting_concept == "frame first"
    assert plan.conditioning_constraint == FRAMES_FIRST
    assert plan.positional_focus.cards[0].title == "Fix: lost underhook"
    assert plan.athlete_id == "athlete-1"
    assert plan.status == "active"


def test_plan_is_deterministic_for_identical_inputs() -> None:
    entries, checkoffs, graph, priors = _rich_signals()

    first = build_weekly_plan_from_signals(entries, checkoffs, graph, priors, WEEK_OF, NOW)
    second = build_weekly_plan_from_signals(entries, checkoffs, graph, priors, WEEK_OF, NOW)

    assert first.model_dump_json() == second.model_dump_json()
    assert first.plan_id == derive_plan_id("athlete-1", "2026-03-02", NOW)


def test_plan_respects_cardinality_bounds() -> None:
    entries, checkoffs, graph, priors = _rich_signals()

    plan = build_weekly_plan_from_signals(entries, checkoffs, graph, priors, WEEK_OF, NOW)

    assert len(plan.primary_skills) <= 2
    assert len(plan.drills) <= 4
    assert len(plan.positional_rounds) <= 4
    assert len(plan.constraints) <= 4
    assert 1 <= len(plan.positional_focus.cards) <= 4
    assert all(len(item.references) <= 3 for item in plan.explainability)
    assert all(len(item.label) <= 140 for item in plan.menu_items())
    assert len(plan.conditioning_constraint) <= 180
    assert len(plan.supporting_concept) <= 140


def test_empty_inputs_still_produce_a_complete_plan() -> None:
    plan = build_weekly_plan_from_signals([], [], None, [], WEEK_OF, NOW)

    assert plan.primary_skills == ["Base positioning"]
    assert plan.supporting_concept == FALLBACK_SUPPORTING_CONCEPT
    assert plan.conditioning_constraint == DEFAULT_CONDITIONING_CONSTRAINT
    assert len(plan.positional_focus.cards) == 1
    assert plan.positional_focus.cards[0].title == "Reinforce: Base positioning"
    assert plan.athlete_id == UNKNOWN_ATHLETE_ID
    assert plan.drills[0].label == "3 x 2m isolated reps focused on Base positioning."
    assert plan.explainability[0].reason == "Fallback baseline skill"


def test_pending_focus_card_carries_into_next_week() -> None:
    plan = build_weekly_plan_from_signals([], [], None, [_prior_plan_with_card("Fix: late pummel")], WEEK_OF, NOW)

    carried = plan.positional_focus.cards[0]
    assert carried.focus_type == "carry-over"
    assert carried.title == "Fix: late pummel"
    assert plan.primary_skills == ["late pummel"]


def test_leak_frequency_orders_primary_skills() -> None:
    entries = [
        _entry("e1", "2026-03-01T10:00:00.000Z", leaks=["rare leak"]),
        _entry("e2", "2026-03-02T10:00:00.000Z", leaks=["common leak"]),
        _entry("e3", "2026-03-02T11:00:00.000Z", leaks=["common leak"]),
        _entry("e4", "2026-03-02T12:00:00.000Z", leaks=["common leak"]),
    ]

    plan = build_weekly_plan_from_signals(entries, [], None, [], WEEK_OF, NOW)

    assert plan.primary_skills == ["common leak", "rare leak"]


def test_week_is_normalized_and_timestamps_stamped() -> None:
    plan = build_weekly_plan_from_signals([], [], None, [], "2026-03-08", NOW)

    assert plan.week_of == "2026-03-02"
    assert plan.generated_at == NOW
    assert plan.updated_at == NOW
    assert plan.positional_focus.updated_at == NOW
    assert plan.positional_focus.locked is False


def test_explicit_plan_id_and_athlete_fallbacks() -> None:
    checkoff = Checkoff(checkoff_id="c1", athlete_id="athlete-9", skill_id="knee-cut", status="pending")
    plan = build_weekly_plan_from_signals([], [checkoff], None, [], WEEK_OF, NOW, plan_id="plan-fixed")

    assert plan.plan_id == "plan-fixed"
    assert plan.athlete_id == "athlete-9"

    graph = CurriculumGraph(athlete_id="athlete-7", nodes=[])
    assert build_weekly_plan_from_signals([], [], graph, [], WEEK_OF, NOW).athlete_id == "athlete-7"


def test_curriculum_guidance_feeds_concept_and_constraint() -> None:
    graph = CurriculumGraph(
        athlete_id="athlete-1",
        updated_at="2026-02-01T00:00:00.000Z",
        nodes=[
            CurriculumGraphNode(
                skill_id="knee-cut",
                label="Knee cut",
                priority=10,
                supporting_concepts=["Head over knee before the cut."],
                conditioning_constraints=["Pass within 20 seconds or reset."],
            )
        ],
    )
    entries = [_entry("e1", "2026-03-01T10:00:00.000Z", leaks=["got tired"])]

    plan = build_weekly_plan_from_signals(entries, [], graph, [], WEEK_OF, NOW)

    assert plan.primary_skills[0] == "Knee cut"
    assert plan.supporting_concept == "Head over knee before the cut."
    assert plan.conditioning_constraint == "Pass within 20 seconds or reset."
    assert plan.constraints[0].label == "Pass within 20 seconds or reset."


def test_explainability_covers_every_selection_in_order() -> None:
    entries, checkoffs, graph, priors = _rich_signals()

    plan = WeeklyPlanBuilder().build(entries, checkoffs, graph, priors, week_of=WEEK_OF, now_iso=NOW)

    types = [item.selection_type for item in plan.explainability]
    assert types[: len(plan.primary_skills)] == ["primary-skill"] * len(plan.primary_skills)
    assert types.count("supporting-concept") == 1
    assert types.count("conditioning-constraint") == 1
    assert types.count("drill") == len(plan.drills)
    assert types.count("positional-round") == len(plan.positional_rounds)
    assert types.count("training-constraint") == len(plan.constraints)
    assert types.count("positional-focus") == len(plan.positional_focus.cards)
    assert types[-len(plan.positional_focus.cards):] == ["positional-focus"] * len(plan.positional_focus.cards)

    round_values = [item.selected_value for item in plan.explainability if item.selection_type == "positional-round"]
    assert round_values == [item.label for item in plan.positional_rounds]
    focus_values = [item.selected_value for item in plan.explainability if item.selection_type == "positional-focus"]
    assert focus_values == [card.title for card in plan.positional_focus.cards]
    assert max(i for i, kind in enumerate(types) if kind == "training-constraint") < types.index("positional-focus")
