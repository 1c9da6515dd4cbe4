"""Tests for the record-level weekly plan entry points and their telemetry."""

from __future__ import annotations

from typing import Any, Dict, Iterator, List

import pytest

from roll_journal import telemetry, weekly_plan_service
from roll_journal.weekly_plan_builder import derive_plan_id
from roll_journal.weekly_plan_records import WeeklyPlanRecordError
from roll_journal.weekly_plan_service import (
    build_weekly_plan_from_records,
    most_recent_items,
    update_weekly_plan_record,
)
from roll_journal.weekly_plan_updates import WeeklyPlanUpdateError

NOW = "2026-03-04T09:30:00.000Z"


@pytest.fixture
def events() -> Iterator[List[telemetry.TelemetryEvent]]:
    captured: List[telemetry.TelemetryEvent] = []
    telemetry.register_listener(captured.append)
    yield captured
    telemetry.clear_listeners()


def _entry_item(entry_id: str, created_at: str, leaks: List[str]) -> Dict[str, Any]:
    return {
        "PK": "USER#athlete-1",
        "SK": f"ENTRY#{created_at}#{entry_id}",
        "entityType": "ENTRY",
        "entryId": entry_id,
        "athleteId": "athlete-1",
        "createdAt": created_at,
        "actionPackDraft": {"leaks": leaks, "oneFocus": "frame first"},
    }


def _prior_plan_item(plan_id: str, week_of: str, skill: str) -> Dict[str, Any]:
    return {
        "PK": "USER#athlete-1",
        "SK": f"WEEKLY_PLAN#{week_of}#{plan_id}",
        "entityType": "WEEKLY_PLAN",
        "planId": plan_id,
        "athleteId": "athlete-1",
        "weekOf": week_of,
        "generatedAt": f"{week_of}T08:00:00.000Z",
        "updatedAt": f"{week_of}T08:00:00.000Z",
        "primarySkills": [skill],
        "drills": [{"id": "drill-1", "label": f"{skill} reps", "status": "pending"}],
    }


def test_most_recent_items_orders_by_first_present_key() -> None:
    items = [
        {"createdAt": "2026-03-01"},
        {"createdAt": "2026-03-03"},
        {"updatedAt": "2026-03-02"},
        {},
    ]
    assert most_recent_items(items, 2, "createdAt", "updatedAt") == [
        {"createdAt": "2026-03-03"},
        {"updatedAt": "2026-03-02"},
    ]
    assert most_recent_items(items, 0, "createdAt") == []


def test_build_from_records_parses_filters_and_encodes(events) -> None:
    entry_items = [
        _entry_item("e1", "2026-03-01T10:00:00.000Z", ["lost underhook"]),
        _entry_item("e2", "2026-03-03T10:00:00.000Z", ["lost underhook"]),
        {"entityType": "CHECKOFF", "checkoffId": "c1", "skillId": "x"},
        {"entityType": "ENTRY", "athleteId": "athlete-1"},
    ]
    checkoff_items = [{"entityType": "CHECKOFF", "checkoffId": "c1", "athleteId": "athlete-1", "skillId": "knee-cut", "status": "pending"}]
    prior_items = [
        _prior_plan_item("old", "2026-02-16", "Stale skill"),
        {"entityType": "WEEKLY_PLAN"},
        _prior_plan_item("recent", "2026-02-23", "Late pummel"),
    ]

    result = build_weekly_plan_from_records(
        "athlete-1",
        entry_items=entry_items,
        checkoff_items=checkoff_items,
        prior_plan_items=prior_items,
        week_of="2026-03-04",
        now_iso=NOW,
    )

    plan = result.plan
    assert plan.plan_id == derive_plan_id("athlete-1", "2026-03-02", NOW)
    assert plan.athlete_id == "athlete-1"
    assert plan.week_of == "2026-03-02"
    assert plan.primary_skills[0] == "lost underhook"
    assert plan.positional_focus.cards[0].references[0].source_id == "e2"
    assert result.plan_record["PK"] == "USER#athlete-1"
    assert result.plan_record["planId"] == plan.plan_id
    assert result.meta_record["PK"] == f"WEEKLY_PLAN#{plan.plan_id}"

    assert len(events) == 1
    event = events[0]
    assert event.name == telemetry.WEEKLY_PLAN_GENERATED
    assert event.status == "ok"
    assert event.payload["entry_count"] == 2
    assert event.payload["checkoff_count"] == 1
    assert event.payload["prior_plan_count"] == 2
    assert event.payload["has_curriculum_graph"] is False
    assert event.payload["focus_card_count"] == len(plan.positional_focus.cards)


def test_build_from_records_stamps_requested_athlete_even_without_signals() -> None:
    result = build_weekly_plan_from_records("athlete-5", week_of="2026-03-04", now_iso=NOW, plan_id="plan-explicit")

    assert result.plan.athlete_id == "athlete-5"
    assert result.plan.plan_id == "plan-explicit"
    assert result.plan_record["SK"] == "WEEKLY_PLAN#2026-03-02#plan-explicit"
    assert result.plan.primary_skills == ["Base positioning"]


def test_build_failure_is_reported_and_reraised(monkeypatch, events) -> None:
    def explode(*_args, **_kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(weekly_plan_service, "build_weekly_plan_from_signals", explode)

    with pytest.raises(RuntimeError, match="boom"):
        build_weekly_plan_from_records("athlete-1", week_of="2026-03-04", now_iso=NOW)

    assert len(events) == 1
    assert events[0].status == "error"
    assert events[0].payload["exception_type"] == "RuntimeError"
    assert events[0].payload["athlete_id"] == "athlete-1"


def test_update_record_round_trip_and_meta_created_at(events) -> None:
    built = build_weekly_plan_from_records(
        "athlete-1",
        entry_items=[_entry_item("e1", "2026-03-01T10:00:00.000Z", ["lost underhook"])],
        week_of="2026-03-04",
        now_iso=NOW,
    )
    drill_id = built.plan.drills[0].id
    later = "2026-03-06T18:00:00.000Z"

    result = update_weekly_plan_record(
        built.plan_record,
        {"status": "completed", "drills": [{"id": drill_id, "status": "done"}], "coachReviewNote": "Good"},
        actor_id="coach-1",
        now_iso=later,
        meta_created_at="2026-03-04T09:30:01.000Z",
    )

    assert result.plan.status == "completed"
    assert result.plan.drills[0].completed_at == later
    assert result.plan_record["drills"][0]["completedAt"] == later
    assert result.plan_record["coachReview"]["reviewedBy"] == "coach-1"
    assert result.meta_record["createdAt"] == "2026-03-04T09:30:01.000Z"
    assert result.meta_record["updatedAt"] == later

    update_event = events[-1]
    assert update_event.name == telemetry.WEEKLY_PLAN_UPDATED
    assert update_event.payload["plan_status"] == "completed"
    assert update_event.payload["edited_fields"] == ["coach_review_note", "drills", "status"]


def test_update_rejects_bad_records_and_payloads(events) -> None:
    with pytest.raises(WeeklyPlanRecordError):
        update_weekly_plan_record({"entityType": "WEEKLY_PLAN"}, {}, actor_id="coach-1", now_iso=NOW)

    record = {"entityType": "WEEKLY_PLAN", "planId": "plan-1", "athleteId": "athlete-1", "weekOf": "2026-03-02"}
    with pytest.raises(WeeklyPlanUpdateError):
        update_weekly_plan_record(record, ["not", "an", "object"], actor_id="coach-1", now_iso=NOW)

    assert [event.status for event in events] == ["error", "error"]
    assert events[1].payload["plan_id"] == "plan-1"
