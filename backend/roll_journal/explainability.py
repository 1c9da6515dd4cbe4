"""Append-only audit trail explaining why each weekly plan item was chosen."""

from __future__ import annotations

from typing import Iterable, List, Sequence

from .journal_models import WeeklyPlanExplainabilityItem, WeeklyPlanReference, WeeklyPlanSelectionType

MAX_EXPLAINABILITY_REFERENCES = 3


def most_recent_references(
    references: Sequence[WeeklyPlanReference],
    limit: int = MAX_EXPLAINABILITY_REFERENCES,
) -> List[WeeklyPlanReference]:
    """Newest-first references; undated references sort last, ties keep input order."""
    ordered = sorted(references, key=lambda reference: reference.created_at or "", reverse=True)
    return [reference.model_copy() for reference in ordered[:limit]]


class ExplainabilityRecorder:
    """Collects one record per consequential plan decision.

    Records are copied on the way in and out so later mutation of a candidate or card
    cannot rewrite history.
    """

    def __init__(self) -> None:
        self._items: List[WeeklyPlanExplainabilityItem] = []

    def record(
        self,
        selection_type: WeeklyPlanSelectionType,
        selected_value: str,
        reason: str,
        references: Iterable[WeeklyPlanReference] = (),
    ) -> WeeklyPlanExplainabilityItem:
        item = WeeklyPlanExplainabilityItem(
            selection_type=selection_type,
            selected_value=selected_value,
            reason=reason,
            references=[reference.model_copy() for reference in list(references)[:MAX_EXPLAINABILITY_REFERENCES]],
        )
        self._items.append(item)
        return item

    def __len__(self) -> int:
        return len(self._items)

    def items(self) -> List[WeeklyPlanExplainabilityItem]:
        return [item.model_copy(deep=True) for item in self._items]


__all__ = ["ExplainabilityRecorder", "MAX_EXPLAINABILITY_REFERENCES", "most_recent_references"]
