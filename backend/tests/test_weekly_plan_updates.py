"""Tests for validating and applying weekly plan edits."""

from __future__ import annotations

import pytest

from roll_journal.journal_models import (
    WeeklyPlan,
    WeeklyPlanCompletion,
    WeeklyPlanMenuItem,
)
from roll_journal.weekly_plan_updates import (
    MenuItemEdit,
    WeeklyPlanUpdateError,
    apply_menu_edits,
    apply_weekly_plan_update,
    parse_update_weekly_plan_payload,
)

GENERATED_AT = "2026-03-02T08:00:00.000Z"
NOW = "2026-03-05T19:00:00.000Z"


def _plan() -> WeeklyPlan:
    return WeeklyPlan(
        plan_id="plan-1",
        athlete_id="athlete-1",
        week_of="2026-03-02",
        generated_at=GENERATED_AT,
        updated_at=GENERATED_AT,
        primary_skills=["Knee cut"],
        supporting_concept="Head over knee",
        conditioning_constraint="Pace yourself",
        drills=[
            WeeklyPlanMenuItem(id="drill-1", label="Knee cut entries"),
            WeeklyPlanMenuItem(id="drill-2", label="Pummel x20", status="done", completed_at="2026-03-03T10:00:00.000Z"),
        ],
        positional_rounds=[WeeklyPlanMenuItem(id="round-1", label="Half guard top")],
        constraints=[WeeklyPlanMenuItem(id="constraint-1", label="Pace yourself")],
    )


def test_payload_strings_are_trimmed_and_blank_becomes_none() -> None:
    request = parse_update_weekly_plan_payload(
        {
            "coachReviewNote": "  Good week  ",
            "completionNotes": "   ",
            "primarySkills": [" Knee cut ", "Leg drag"],
            "drills": [{"id": " drill-1 ", "status": "done", "coachNote": "  "}],
            "unknownField": 1,
        }
    )

    assert request.coach_review_note == "Good week"
    assert request.completion_notes is None
    assert request.primary_skills == ["Knee cut", "Leg drag"]
    assert request.drills is not None
    assert request.drills[0].id == "drill-1"
    assert request.drills[0].coach_note is None


@pytest.mark.parametrize(
    ("payload", "message"),
    [
        ([], "Request body must be a JSON object."),
        ("status=completed", "Request body must be a JSON object."),
        ({"primarySkills": ["Knee cut", "  "]}, "primarySkills must be an array of non-empty strings."),
        ({"primarySkills": "Knee cut"}, "primarySkills must be an array of non-empty strings."),
        ({"status": "archived"}, "status"),
        ({"drills": [{"id": "  ", "status": "done"}]}, "drills.0.id"),
        ({"positionalRounds": [{"id": "round-1", "status": "finished"}]}, "positionalRounds.0.status"),
    ],
)
def test_invalid_payloads_raise_update_error(payload, message: str) -> None:
    with pytest.raises(WeeklyPlanUpdateError) as excinfo:
        parse_update_weekly_plan_payload(payload)
    assert message in str(excinfo.value)


def test_menu_edits_match_by_id_and_stamp_completion_once() -> None:
    existing = _plan().drills
    edits = [
        MenuItemEdit(id="drill-1", status="done", coach_note="Nice reps"),
        MenuItemEdit(id="drill-2", status="done"),
        MenuItemEdit(id="missing", status="skipped"),
    ]

    updated = apply_menu_edits(existing, edits, NOW)

    assert [item.id for item in updated] == ["drill-1", "drill-2"]
    assert updated[0].status == "done"
    assert updated[0].completed_at == NOW
    assert updated[0].coach_note == "Nice reps"
    assert updated[1].completed_at == "2026-03-03T10:00:00.000Z"
    assert existing[0].status == "pending"


def test_menu_edit_without_status_keeps_current_status() -> None:
    updated = apply_menu_edits(_plan().drills, [MenuItemEdit(id="drill-1", coach_note="Slow down")], NOW)
    assert updated[0].status == "pending"
    assert updated[0].completed_at is None
    assert updated[0].coach_note == "Slow down"


def test_update_applies_fields_and_coach_review() -> None:
    existing = _plan()
    request = parse_update_weekly_plan_payload(
        {
            "status": "completed",
            "coachReviewNote": "Solid progress",
            "completionNotes": "Passed guard twice in sparring",
            "primarySkills": ["Leg drag", "Knee cut", "Torreando"],
            "supportingConcept": "Hips low",
            "constraints": [{"id": "constraint-1", "status": "skipped"}],
        }
    )

    updated = apply_weekly_plan_update(existing, request, actor_id="coach-1", now_iso=NOW)

    assert updated.status == "completed"
    assert updated.primary_skills == ["Leg drag", "Knee cut"]
    assert updated.supporting_concept == "Hips low"
    assert updated.conditioning_constraint == "Pace yourself"
    assert updated.coach_review is not None
    assert updated.coach_review.reviewed_by == "coach-1"
    assert updated.coach_review.reviewed_at == NOW
    assert updated.coach_review.notes == "Solid progress"
    assert updated.completion is not None
    assert updated.completion.completed_at == NOW
    assert updated.completion.outcome_notes == "Passed guard twice in sparring"
    assert updated.constraints[0].status == "skipped"
    assert updated.updated_at == NOW
    assert updated.generated_at == GENERATED_AT
    assert existing.status == "active"
    assert existing.coach_review is None


def test_empty_update_only_touches_updated_at() -> None:
    existing = _plan()
    existing.completion = WeeklyPlanCompletion(outcome_notes="Earlier note")

    updated = apply_weekly_plan_update(
        existing,
        parse_update_weekly_plan_payload({"primarySkills": []}),
        actor_id="athlete-1",
        now_iso=NOW,
    )

    assert updated.primary_skills == ["Knee cut"]
    assert updated.completion == existing.completion
    assert updated.updated_at == NOW
    assert updated.model_dump(exclude={"updated_at"}) == existing.model_dump(exclude={"updated_at"})


def test_completing_twice_keeps_first_completion_time() -> None:
    existing = _plan()
    existing.completion = WeeklyPlanCompletion(completed_at="2026-03-04T10:00:00.000Z")

    updated = apply_weekly_plan_update(
        existing,
        parse_update_weekly_plan_payload({"status": "completed"}),
        actor_id="athlete-1",
        now_iso=NOW,
    )

    assert updated.completion is not None
    assert updated.completion.completed_at == "2026-03-04T10:00:00.000Z"
