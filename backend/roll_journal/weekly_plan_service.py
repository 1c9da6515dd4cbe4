"""Record-level entry points: raw stored items in, encoded plan records out.

Callers own storage. They fetch the athlete's items, hand them over here, and persist the
two returned records (full plan plus the lookup pointer) together.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, TypeVar

from .config import get_settings
from .journal_models import WeeklyPlan
from .telemetry import WEEKLY_PLAN_GENERATED, WEEKLY_PLAN_UPDATED, track_operation
from .timestamps import normalize_week_date
from .weekly_plan_builder import build_weekly_plan_from_signals, derive_plan_id
from .weekly_plan_records import (
    WEEKLY_PLAN_ENTITY,
    WeeklyPlanRecordError,
    build_weekly_plan_meta_record,
    build_weekly_plan_record,
    parse_checkoff_record,
    parse_curriculum_graph_record,
    parse_entry_record,
    parse_weekly_plan_record,
)
from .weekly_plan_updates import apply_weekly_plan_update, parse_update_weekly_plan_payload

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class WeeklyPlanBuildResult:
    plan: WeeklyPlan
    plan_record: Dict[str, Any]
    meta_record: Dict[str, Any]


def most_recent_items(items: Iterable[Mapping[str, Any]], limit: int, *keys: str) -> List[Mapping[str, Any]]:
    """Newest-first slice of raw items ordered by the first present string key."""

    def sort_key(item: Mapping[str, Any]) -> str:
        for key in keys:
            value = item.get(key)
            if isinstance(value, str):
                return value
        return ""

    return sorted(items, key=sort_key, reverse=True)[: max(0, limit)]


def _parse_items(items: Iterable[Any], parser: Callable[[Any], Optional[T]]) -> List[T]:
    parsed: List[T] = []
    for item in items:
        value = parser(item)
        if value is not None:
            parsed.append(value)
    return parsed


def _parse_prior_plans(items: Iterable[Any]) -> List[WeeklyPlan]:
    plans: List[WeeklyPlan] = []
    for item in items:
        if not isinstance(item, Mapping) or item.get("entityType") != WEEKLY_PLAN_ENTITY:
            continue
        try:
            plans.append(parse_weekly_plan_record(item))
        except WeeklyPlanRecordError as exc:
            logger.warning("Skipping unreadable prior weekly plan: %s", exc)
    return sorted(plans, key=lambda plan: (plan.week_of, plan.updated_at), reverse=True)


def build_weekly_plan_from_records(
    athlete_id: str,
    *,
    entry_items: Sequence[Any] = (),
    checkoff_items: Sequence[Any] = (),
    graph_item: Optional[Mapping[str, Any]] = None,
    prior_plan_items: Sequence[Any] = (),
    week_of: str,
    now_iso: str,
    plan_id: Optional[str] = None,
) -> WeeklyPlanBuildResult:
    """Build, stamp and encode a plan for ``athlete_id`` from already-fetched items."""
    settings = get_settings()
    with track_operation(WEEKLY_PLAN_GENERATED, athlete_id=athlete_id, week_of=week_of) as extra:
        try:
            entries = sorted(
                _parse_items(entry_items, parse_entry_record),
                key=lambda entry: entry.created_at,
                reverse=True,
            )
            checkoffs = _parse_items(checkoff_items, parse_checkoff_record)
            graph = parse_curriculum_graph_record(graph_item)
            prior_plans = _parse_prior_plans(prior_plan_items)
            resolved_plan_id = plan_id or derive_plan_id(
                athlete_id,
                normalize_week_date(week_of),
                now_iso,
                settings.plan_id_namespace,
            )

            plan = build_weekly_plan_from_signals(
                entries,
                checkoffs,
                graph,
                prior_plans,
                week_of,
                now_iso,
                plan_id=resolved_plan_id,
            )
            plan = plan.model_copy(update={"athlete_id": athlete_id, "generated_at": now_iso, "updated_at": now_iso})
        except Exception:
            logger.exception("Failed to build weekly plan for %s", athlete_id)
            raise

        extra.update(
            plan_id=plan.plan_id,
            entry_count=len(entries),
            checkoff_count=len(checkoffs),
            prior_plan_count=len(prior_plans),
            has_curriculum_graph=graph is not None,
            focus_card_count=len(plan.positional_focus.cards),
            explainability_count=len(plan.explainability),
        )

    logger.info("Built weekly plan %s for %s (week of %s)", plan.plan_id, athlete_id, plan.week_of)
    return WeeklyPlanBuildResult(
        plan=plan,
        plan_record=build_weekly_plan_record(plan),
        meta_record=build_weekly_plan_meta_record(plan),
    )


def update_weekly_plan_record(
    record: Mapping[str, Any],
    payload: Any,
    *,
    actor_id: str,
    now_iso: str,
    meta_created_at: Optional[str] = None,
) -> WeeklyPlanBuildResult:
    """Apply an athlete or coach edit to a stored plan and re-encode both records.

    ``meta_created_at`` preserves the creation stamp of an existing lookup pointer.
    """
    plan_id = record.get("planId") if isinstance(record, Mapping) else None
    with track_operation(WEEKLY_PLAN_UPDATED, plan_id=plan_id, actor_id=actor_id) as extra:
        try:
            existing = parse_weekly_plan_record(record)
            request = parse_update_weekly_plan_payload(payload)
            updated = apply_weekly_plan_update(existing, request, actor_id=actor_id, now_iso=now_iso)
        except Exception:
            logger.exception("Failed to update weekly plan %s", plan_id)
            raise
        extra.update(
            plan_status=updated.status,
            edited_fields=sorted(request.model_dump(exclude_none=True)),
        )

    meta_record = build_weekly_plan_meta_record(updated)
    if meta_created_at:
        meta_record["createdAt"] = meta_created_at
    return WeeklyPlanBuildResult(
        plan=updated,
        plan_record=build_weekly_plan_record(updated),
        meta_record=meta_record,
    )


__all__ = [
    "WeeklyPlanBuildResult",
    "build_weekly_plan_from_records",
    "most_recent_items",
    "update_weekly_plan_record",
]
