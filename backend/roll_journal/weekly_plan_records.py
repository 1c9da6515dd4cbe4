"""Key-value record encoding for weekly plans and the journal records the planner reads.

Writes always stamp the canonical shape. Reads are schema tolerant: plans written by older
releases (or edited by hand) are decoded field by field, malformed optional pieces are
dropped, and only a missing plan identity is treated as an error.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, TypeVar, get_args

from pydantic import ValidationError

from .journal_models import (
    WEEKLY_PLAN_ITEM_STATUSES,
    WEEKLY_PLAN_STATUSES,
    WEEKLY_POSITIONAL_FOCUS_TYPES,
    Checkoff,
    CurriculumGraph,
    CurriculumGraphEdge,
    CurriculumGraphNode,
    Entry,
    WeeklyPlan,
    WeeklyPlanCoachReview,
    WeeklyPlanCompletion,
    WeeklyPlanExplainabilityItem,
    WeeklyPlanMenuItem,
    WeeklyPlanReference,
    WeeklyPlanReferenceSource,
    WeeklyPlanSelectionType,
    WeeklyPositionalFocus,
    WeeklyPositionalFocusCard,
)
from .timestamps import EPOCH_ISO

logger = logging.getLogger(__name__)

WEEKLY_PLAN_ENTITY = "WEEKLY_PLAN"
WEEKLY_PLAN_META_ENTITY = "WEEKLY_PLAN_META"
CURRICULUM_GRAPH_ENTITY = "CURRICULUM_GRAPH"
ENTRY_ENTITY = "ENTRY"
CHECKOFF_ENTITY = "CHECKOFF"

KEY_ATTRIBUTES = ("PK", "SK", "entityType")
LEGACY_FOCUS_CARD_LIMIT = 3
MAX_REFERENCES_PER_ITEM = 3

_REFERENCE_SOURCES = get_args(WeeklyPlanReferenceSource)
_SELECTION_TYPES = get_args(WeeklyPlanSelectionType)

T = TypeVar("T")
Decoded = Tuple[T, bool]


class WeeklyPlanRecordError(ValueError):
    """Raised when a stored item cannot be identified as a weekly plan at all."""


# ---------------------------------------------------------------------------
# Keys and writers
# ---------------------------------------------------------------------------


def weekly_plan_pk(athlete_id: str) -> str:
    return f"USER#{athlete_id}"


def weekly_plan_sk(week_of: str, plan_id: str) -> str:
    return f"WEEKLY_PLAN#{week_of}#{plan_id}"


def weekly_plan_meta_pk(plan_id: str) -> str:
    return f"WEEKLY_PLAN#{plan_id}"


def build_graph_sk() -> str:
    return "CURRICULUM_GRAPH#ACTIVE"


def build_weekly_plan_record(plan: WeeklyPlan) -> Dict[str, Any]:
    return {
        "PK": weekly_plan_pk(plan.athlete_id),
        "SK": weekly_plan_sk(plan.week_of, plan.plan_id),
        "entityType": WEEKLY_PLAN_ENTITY,
        **plan.model_dump(by_alias=True, exclude_none=True),
    }


def build_weekly_plan_meta_record(plan: WeeklyPlan) -> Dict[str, Any]:
    """Lightweight pointer so a plan can be found by id without knowing its athlete or week."""
    return {
        "PK": weekly_plan_meta_pk(plan.plan_id),
        "SK": "META",
        "entityType": WEEKLY_PLAN_META_ENTITY,
        "athleteId": plan.athlete_id,
        "weekOf": plan.week_of,
        "createdAt": plan.generated_at,
        "updatedAt": plan.updated_at,
    }


def strip_key_attributes(item: Mapping[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in item.items() if key not in KEY_ATTRIBUTES}


# ---------------------------------------------------------------------------
# Field decoders: each returns (value, ok) and never raises
# ---------------------------------------------------------------------------


def _decode_str(value: Any) -> Decoded[str]:
    if isinstance(value, str):
        return value, True
    return "", False


def _decode_non_blank(value: Any) -> Decoded[str]:
    if isinstance(value, str) and value.strip():
        return value.strip(), True
    return "", False


def _decode_string_list(value: Any) -> Decoded[List[str]]:
    if not isinstance(value, list):
        return [], False
    return [item for item in value if isinstance(item, str) and item.strip()], True


def _decode_choice(value: Any, choices: Tuple[str, ...]) -> Decoded[str]:
    if isinstance(value, str) and value in choices:
        return value, True
    return "", False


def _decode_positive_int(value: Any) -> Decoded[int]:
    if isinstance(value, int) and not isinstance(value, bool) and value > 0:
        return value, True
    return 0, False


def _with_default(decoded: Decoded[T], default: T) -> T:
    value, ok = decoded
    return value if ok else default


def _decode_list(value: Any, decode_item: Callable[[Any, int], Decoded[T]]) -> List[T]:
    if not isinstance(value, list):
        return []
    out: List[T] = []
    for index, raw in enumerate(value):
        item, ok = decode_item(raw, index)
        if ok:
            out.append(item)
    return out


def _decode_reference(raw: Any, _index: int = 0) -> Decoded[Optional[WeeklyPlanReference]]:
    if not isinstance(raw, Mapping):
        return None, False
    source_type, type_ok = _decode_choice(raw.get("sourceType"), _REFERENCE_SOURCES)
    source_id, id_ok = _decode_str(raw.get("sourceId"))
    if not (type_ok and id_ok):
        return None, False
    created_at, has_created_at = _decode_str(raw.get("createdAt"))
    return (
        WeeklyPlanReference(
            source_type=source_type,
            source_id=source_id,
            created_at=created_at if has_created_at else None,
            summary=_with_default(_decode_str(raw.get("summary")), ""),
        ),
        True,
    )


def _decode_references(value: Any) -> List[WeeklyPlanReference]:
    return _decode_list(value, _decode_reference)


def _decode_menu_item(raw: Any, index: int) -> Decoded[Optional[WeeklyPlanMenuItem]]:
    if not isinstance(raw, Mapping):
        return None, False
    label, ok = _decode_non_blank(raw.get("label"))
    if not ok:
        return None, False
    _, has_id = _decode_non_blank(raw.get("id"))
    completed_at, has_completed_at = _decode_str(raw.get("completedAt"))
    coach_note, has_coach_note = _decode_str(raw.get("coachNote"))
    return (
        WeeklyPlanMenuItem(
            id=raw["id"] if has_id else f"item-{index + 1}",
            label=label,
            status=_with_default(_decode_choice(raw.get("status"), WEEKLY_PLAN_ITEM_STATUSES), "pending"),
            completed_at=completed_at if has_completed_at else None,
            coach_note=coach_note if has_coach_note else None,
        ),
        True,
    )


def _decode_focus_card(raw: Any, index: int) -> Decoded[Optional[WeeklyPositionalFocusCard]]:
    if not isinstance(raw, Mapping):
        return None, False
    title, ok = _decode_non_blank(raw.get("title"))
    if not ok:
        return None, False
    coach_note, has_coach_note = _decode_non_blank(raw.get("coachNote"))
    return (
        WeeklyPositionalFocusCard(
            id=_with_default(_decode_non_blank(raw.get("id")), f"focus-{index + 1}"),
            title=title,
            focus_type=_with_default(
                _decode_choice(raw.get("focusType"), WEEKLY_POSITIONAL_FOCUS_TYPES), "remediate-weakness"
            ),
            priority=_with_default(_decode_positive_int(raw.get("priority")), index + 1),
            position=_with_default(_decode_non_blank(raw.get("position")), "mixed-position"),
            context=_with_default(_decode_non_blank(raw.get("context")), "live rounds"),
            success_criteria=_with_default(_decode_string_list(raw.get("successCriteria")), []),
            rationale=_with_default(_decode_str(raw.get("rationale")), ""),
            linked_one_thing_cues=_with_default(_decode_string_list(raw.get("linkedOneThingCues")), []),
            recurring_failures=_with_default(_decode_string_list(raw.get("recurringFailures")), []),
            references=_decode_references(raw.get("references")),
            status=_with_default(_decode_choice(raw.get("status"), WEEKLY_PLAN_ITEM_STATUSES), "pending"),
            coach_note=coach_note if has_coach_note else None,
        ),
        True,
    )


def _cards_from_legacy_rounds(rounds: List[WeeklyPlanMenuItem]) -> List[WeeklyPositionalFocusCard]:
    return [
        WeeklyPositionalFocusCard(
            id=f"focus-{index}",
            title=round_item.label,
            focus_type="remediate-weakness",
            priority=index,
            position=round_item.label.split(":")[0].strip() or "mixed-position",
            context="live rounds",
            success_criteria=["Run 3 rounds from this starting position and log outcomes."],
            rationale="Migrated from legacy positional rounds.",
            status=round_item.status,
            coach_note=round_item.coach_note or None,
        )
        for index, round_item in enumerate(rounds[:LEGACY_FOCUS_CARD_LIMIT], start=1)
    ]


def _decode_positional_focus(
    value: Any,
    legacy_rounds: List[WeeklyPlanMenuItem],
    plan_updated_at: str,
) -> WeeklyPositionalFocus:
    if isinstance(value, Mapping):
        cards = _decode_list(value.get("cards"), _decode_focus_card)
        if cards:
            ordered = sorted(cards, key=lambda card: card.priority)
            locked_at, has_locked_at = _decode_non_blank(value.get("lockedAt"))
            locked_by, has_locked_by = _decode_non_blank(value.get("lockedBy"))
            return WeeklyPositionalFocus(
                cards=[card.model_copy(update={"priority": index}) for index, card in enumerate(ordered, start=1)],
                locked=bool(value.get("locked")),
                locked_at=locked_at if has_locked_at else None,
                locked_by=locked_by if has_locked_by else None,
                updated_at=_with_default(_decode_non_blank(value.get("updatedAt")), EPOCH_ISO),
            )

    if legacy_rounds:
        logger.debug("Synthesizing %d focus cards from legacy positional rounds", min(len(legacy_rounds), 3))
    return WeeklyPositionalFocus(
        cards=_cards_from_legacy_rounds(legacy_rounds),
        locked=False,
        updated_at=plan_updated_at,
    )


def _decode_explainability_item(raw: Any, _index: int) -> Decoded[Optional[WeeklyPlanExplainabilityItem]]:
    if not isinstance(raw, Mapping):
        return None, False
    selection_type, type_ok = _decode_choice(raw.get("selectionType"), _SELECTION_TYPES)
    selected_value, value_ok = _decode_str(raw.get("selectedValue"))
    if not (type_ok and value_ok):
        return None, False
    return (
        WeeklyPlanExplainabilityItem(
            selection_type=selection_type,
            selected_value=selected_value,
            reason=_with_default(_decode_str(raw.get("reason")), ""),
            references=_decode_references(raw.get("references"))[:MAX_REFERENCES_PER_ITEM],
        ),
        True,
    )


def _decode_coach_review(value: Any) -> Decoded[Optional[WeeklyPlanCoachReview]]:
    if not isinstance(value, Mapping):
        return None, False
    reviewed_by, by_ok = _decode_str(value.get("reviewedBy"))
    reviewed_at, at_ok = _decode_str(value.get("reviewedAt"))
    notes, notes_ok = _decode_str(value.get("notes"))
    if not (by_ok and at_ok and notes_ok):
        return None, False
    return WeeklyPlanCoachReview(reviewed_by=reviewed_by, reviewed_at=reviewed_at, notes=notes), True


def _decode_completion(value: Any) -> Decoded[Optional[WeeklyPlanCompletion]]:
    if not isinstance(value, Mapping):
        return None, False
    completed_at, has_completed_at = _decode_str(value.get("completedAt"))
    outcome_notes, has_notes = _decode_str(value.get("outcomeNotes"))
    return (
        WeeklyPlanCompletion(
            completed_at=completed_at if has_completed_at else None,
            outcome_notes=outcome_notes if has_notes else None,
        ),
        True,
    )


# ---------------------------------------------------------------------------
# Record readers
# ---------------------------------------------------------------------------


def parse_weekly_plan_record(item: Any) -> WeeklyPlan:
    """Decode a stored weekly plan, tolerating missing or malformed optional fields."""
    if not isinstance(item, Mapping):
        raise WeeklyPlanRecordError("Weekly plan record must be a mapping.")
    entity_type = item.get("entityType")
    if entity_type is not None and entity_type != WEEKLY_PLAN_ENTITY:
        raise WeeklyPlanRecordError(f"Expected a {WEEKLY_PLAN_ENTITY} record, got {entity_type!r}.")

    record = strip_key_attributes(item)
    plan_id, ok = _decode_non_blank(record.get("planId"))
    if not ok:
        raise WeeklyPlanRecordError("Weekly plan record is missing planId.")

    updated_at = _with_default(_decode_str(record.get("updatedAt")), EPOCH_ISO)
    drills = _decode_list(record.get("drills"), _decode_menu_item)
    positional_rounds = _decode_list(record.get("positionalRounds"), _decode_menu_item)
    constraints = _decode_list(record.get("constraints"), _decode_menu_item)
    coach_review, _ = _decode_coach_review(record.get("coachReview"))
    completion, _ = _decode_completion(record.get("completion"))

    return WeeklyPlan(
        plan_id=plan_id,
        athlete_id=_with_default(_decode_str(record.get("athleteId")), ""),
        week_of=_with_default(_decode_str(record.get("weekOf")), ""),
        generated_at=_with_default(_decode_str(record.get("generatedAt")), EPOCH_ISO),
        updated_at=updated_at,
        status=_with_default(_decode_choice(record.get("status"), WEEKLY_PLAN_STATUSES), "active"),
        primary_skills=_with_default(_decode_string_list(record.get("primarySkills")), []),
        supporting_concept=_with_default(_decode_str(record.get("supportingConcept")), ""),
        conditioning_constraint=_with_default(_decode_str(record.get("conditioningConstraint")), ""),
        drills=drills,
        positional_rounds=positional_rounds,
        constraints=constraints,
        positional_focus=_decode_positional_focus(record.get("positionalFocus"), positional_rounds, updated_at),
        explainability=_decode_list(record.get("explainability"), _decode_explainability_item),
        coach_review=coach_review,
        completion=completion,
    )


def _validate_list(values: List[Any], model: Any, label: str) -> List[Any]:
    out = []
    for raw in values:
        try:
            out.append(model.model_validate(raw))
        except ValidationError:
            logger.warning("Dropping malformed curriculum graph %s", label)
    return out


def parse_curriculum_graph_record(item: Optional[Mapping[str, Any]]) -> Optional[CurriculumGraph]:
    if not item or item.get("entityType") != CURRICULUM_GRAPH_ENTITY:
        return None
    version = item.get("version")
    if (
        not isinstance(item.get("athleteId"), str)
        or not isinstance(item.get("graphId"), str)
        or not isinstance(version, (int, float))
        or isinstance(version, bool)
        or not isinstance(item.get("updatedAt"), str)
        or not isinstance(item.get("nodes"), list)
        or not isinstance(item.get("edges"), list)
    ):
        logger.warning("Ignoring curriculum graph record with an unexpected shape")
        return None
    return CurriculumGraph(
        athlete_id=item["athleteId"],
        graph_id=item["graphId"],
        version=int(version),
        updated_at=item["updatedAt"],
        nodes=_validate_list(item["nodes"], CurriculumGraphNode, "node"),
        edges=_validate_list(item["edges"], CurriculumGraphEdge, "edge"),
    )


def _parse_journal_record(item: Any, entity_type: str, model: Any) -> Optional[Any]:
    if not isinstance(item, Mapping) or item.get("entityType") != entity_type:
        return None
    try:
        return model.model_validate(strip_key_attributes(item))
    except ValidationError as exc:
        logger.warning("Skipping malformed %s record: %s", entity_type, exc.errors()[:1])
        return None


def parse_entry_record(item: Any) -> Optional[Entry]:
    return _parse_journal_record(item, ENTRY_ENTITY, Entry)


def parse_checkoff_record(item: Any) -> Optional[Checkoff]:
    return _parse_journal_record(item, CHECKOFF_ENTITY, Checkoff)


__all__ = [
    "CHECKOFF_ENTITY",
    "CURRICULUM_GRAPH_ENTITY",
    "ENTRY_ENTITY",
    "WEEKLY_PLAN_ENTITY",
    "WEEKLY_PLAN_META_ENTITY",
    "WeeklyPlanRecordError",
    "build_graph_sk",
    "build_weekly_plan_meta_record",
    "build_weekly_plan_record",
    "parse_checkoff_record",
    "parse_curriculum_graph_record",
    "parse_entry_record",
    "parse_weekly_plan_record",
    "strip_key_attributes",
    "weekly_plan_meta_pk",
    "weekly_plan_pk",
    "weekly_plan_sk",
]
