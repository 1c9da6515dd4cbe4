"""Athlete and coach edits to a generated weekly plan."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence

from pydantic import Field, ValidationError, model_validator

from .journal_models import (
    JournalModel,
    WeeklyPlan,
    WeeklyPlanCoachReview,
    WeeklyPlanCompletion,
    WeeklyPlanItemStatus,
    WeeklyPlanMenuItem,
    WeeklyPlanStatus,
)
from .skill_candidates import MAX_PRIMARY_SKILLS


class WeeklyPlanUpdateError(ValueError):
    """Raised when an update payload fails validation."""


def _trim_optional_strings(values: Any, keys: Sequence[str]) -> Any:
    if not isinstance(values, dict):
        return values
    cleaned = dict(values)
    for key in keys:
        value = cleaned.get(key)
        if isinstance(value, str):
            cleaned[key] = value.strip() or None
    return cleaned


class MenuItemEdit(JournalModel):
    id: str = Field(min_length=1)
    status: Optional[WeeklyPlanItemStatus] = None
    coach_note: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _trim(cls, values: Any) -> Any:
        if isinstance(values, dict) and isinstance(values.get("id"), str):
            values = {**values, "id": values["id"].strip()}
        return _trim_optional_strings(values, ("coachNote", "coach_note"))


class UpdateWeeklyPlanRequest(JournalModel):
    status: Optional[WeeklyPlanStatus] = None
    coach_review_note: Optional[str] = None
    completion_notes: Optional[str] = None
    primary_skills: Optional[List[str]] = None
    supporting_concept: Optional[str] = None
    conditioning_constraint: Optional[str] = None
    drills: Optional[List[MenuItemEdit]] = None
    positional_rounds: Optional[List[MenuItemEdit]] = None
    constraints: Optional[List[MenuItemEdit]] = None

    @model_validator(mode="before")
    @classmethod
    def _normalize(cls, values: Any) -> Any:
        values = _trim_optional_strings(
            values,
            (
                "coachReviewNote",
                "completionNotes",
                "supportingConcept",
                "conditioningConstraint",
                "coach_review_note",
                "completion_notes",
                "supporting_concept",
                "conditioning_constraint",
            ),
        )
        if not isinstance(values, dict):
            return values
        for key in ("primarySkills", "primary_skills"):
            skills = values.get(key)
            if skills is None:
                continue
            if not isinstance(skills, list) or not all(isinstance(item, str) and item.strip() for item in skills):
                raise ValueError("primarySkills must be an array of non-empty strings.")
            values[key] = [item.strip() for item in skills]
        return values


def parse_update_weekly_plan_payload(payload: Any) -> UpdateWeeklyPlanRequest:
    if not isinstance(payload, Mapping):
        raise WeeklyPlanUpdateError("Request body must be a JSON object.")
    try:
        return UpdateWeeklyPlanRequest.model_validate(dict(payload))
    except ValidationError as exc:
        first = exc.errors()[0]
        location = ".".join(str(part) for part in first.get("loc", ())) or "payload"
        raise WeeklyPlanUpdateError(f"{location}: {first.get('msg', 'invalid value')}") from exc


def apply_menu_edits(
    existing: List[WeeklyPlanMenuItem],
    edits: Optional[List[MenuItemEdit]],
    now_iso: str,
) -> List[WeeklyPlanMenuItem]:
    """Apply edits by item id; unknown ids are ignored and ``done`` stamps completion once."""
    if not edits:
        return [item.model_copy() for item in existing]

    edits_by_id: Dict[str, MenuItemEdit] = {edit.id: edit for edit in edits}
    updated: List[WeeklyPlanMenuItem] = []
    for item in existing:
        edit = edits_by_id.get(item.id)
        if edit is None:
            updated.append(item.model_copy())
            continue
        status = edit.status or item.status
        changes: Dict[str, Any] = {"status": status}
        if status == "done":
            changes["completed_at"] = item.completed_at or now_iso
        if edit.coach_note:
            changes["coach_note"] = edit.coach_note
        updated.append(item.model_copy(update=changes))
    return updated


def _next_completion(
    existing: Optional[WeeklyPlanCompletion],
    request: UpdateWeeklyPlanRequest,
    now_iso: str,
) -> Optional[WeeklyPlanCompletion]:
    if not request.completion_notes and request.status != "completed":
        return existing.model_copy() if existing is not None else None

    completion = existing.model_copy() if existing is not None else WeeklyPlanCompletion()
    if request.completion_notes:
        completion.outcome_notes = request.completion_notes
    if request.status == "completed":
        completion.completed_at = completion.completed_at or now_iso
    return completion


def apply_weekly_plan_update(
    existing: WeeklyPlan,
    request: UpdateWeeklyPlanRequest,
    *,
    actor_id: str,
    now_iso: str,
) -> WeeklyPlan:
    updates: Dict[str, Any] = {
        "drills": apply_menu_edits(existing.drills, request.drills, now_iso),
        "positional_rounds": apply_menu_edits(existing.positional_rounds, request.positional_rounds, now_iso),
        "constraints": apply_menu_edits(existing.constraints, request.constraints, now_iso),
        "completion": _next_completion(existing.completion, request, now_iso),
        "updated_at": now_iso,
    }
    if request.status:
        updates["status"] = request.status
    if request.primary_skills:
        updates["primary_skills"] = request.primary_skills[:MAX_PRIMARY_SKILLS]
    if request.supporting_concept:
        updates["supporting_concept"] = request.supporting_concept
    if request.conditioning_constraint:
        updates["conditioning_constraint"] = request.conditioning_constraint
    if request.coach_review_note:
        updates["coach_review"] = WeeklyPlanCoachReview(
            reviewed_by=actor_id,
            reviewed_at=now_iso,
            notes=request.coach_review_note,
        )
    return existing.model_copy(deep=True, update=updates)


__all__ = [
    "MenuItemEdit",
    "UpdateWeeklyPlanRequest",
    "WeeklyPlanUpdateError",
    "apply_menu_edits",
    "apply_weekly_plan_update",
    "parse_update_weekly_plan_payload",
]
