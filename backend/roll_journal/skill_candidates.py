"""Skill candidate aggregation and primary skill selection for weekly plans."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from .explainability import ExplainabilityRecorder, most_recent_references
from .journal_models import (
    Checkoff,
    CurriculumGraph,
    Entry,
    WeeklyPlan,
    WeeklyPlanReference,
)
from .skill_identity import as_skill_id, label_from_skill_id, truncate

logger = logging.getLogger(__name__)

MAX_PRIMARY_SKILLS = 2
REFERENCE_SUMMARY_LENGTH = 120

LEAK_WEIGHT = 4
WIN_WEIGHT = 1
ONE_FOCUS_WEIGHT = 3
CURRICULUM_PRIORITY_MULTIPLIER = 2
PRIOR_PLAN_INCOMPLETE_WEIGHT = 2
PRIOR_PLAN_COMPLETED_WEIGHT = -1
CHECKOFF_STATUS_WEIGHTS: Dict[str, int] = {
    "superseded": 4,
    "pending": 3,
    "earned": -2,
}
CHECKOFF_OTHER_STATUS_WEIGHT = -1

FALLBACK_SKILL_ID = "base-positioning"
FALLBACK_SKILL_LABEL = "Base positioning"


@dataclass
class SkillCandidate:
    skill_id: str
    label: str
    score: int = 0
    reasons: List[str] = field(default_factory=list)
    references: List[WeeklyPlanReference] = field(default_factory=list)

    def add_signal(self, delta: int, reason: str, reference: WeeklyPlanReference) -> None:
        self.score += delta
        self.reasons.append(reason)
        if any(
            existing.source_type == reference.source_type and existing.source_id == reference.source_id
            for existing in self.references
        ):
            return
        self.references.append(reference)


@dataclass
class SignalHints:
    """Raw text gathered from action packs while scoring; feeds concept, constraint and menus."""

    leaks: List[str] = field(default_factory=list)
    wins: List[str] = field(default_factory=list)
    one_focuses: List[str] = field(default_factory=list)
    drills: List[str] = field(default_factory=list)
    positional_requests: List[str] = field(default_factory=list)
    fallback_guidance: List[str] = field(default_factory=list)


def checkoff_status_weight(status: str) -> int:
    return CHECKOFF_STATUS_WEIGHTS.get(status, CHECKOFF_OTHER_STATUS_WEIGHT)


class CandidateAggregator:
    """Accumulates scored skill candidates keyed by normalized skill identity.

    Leak, win and one-focus statements have no canonical skill id, so the statement text
    itself is the identity; near-duplicate phrasings stay separate candidates.
    """

    def __init__(self) -> None:
        self._candidates: Dict[str, SkillCandidate] = {}
        self.hints = SignalHints()

    def candidate(self, skill_id: str, label: str) -> SkillCandidate:
        normalized = as_skill_id(skill_id)
        existing = self._candidates.get(normalized)
        if existing is not None:
            return existing
        created = SkillCandidate(
            skill_id=normalized,
            label=label.strip() or label_from_skill_id(normalized),
        )
        self._candidates[normalized] = created
        return created

    def candidates(self) -> List[SkillCandidate]:
        return list(self._candidates.values())

    def add_entries(self, entries: Iterable[Entry]) -> None:
        for entry in entries:
            action_pack = entry.effective_action_pack()
            if action_pack is None:
                continue

            for leak in action_pack.leaks:
                if not leak.strip():
                    continue
                self.hints.leaks.append(leak)
                self.candidate(leak, leak).add_signal(
                    LEAK_WEIGHT,
                    "Frequent leak in recent GPT action packs",
                    self._entry_reference(entry, leak),
                )

            for win in action_pack.wins:
                if not win.strip():
                    continue
                self.hints.wins.append(win)
                self.candidate(win, win).add_signal(
                    WIN_WEIGHT,
                    "Recent win to reinforce",
                    self._entry_reference(entry, win),
                )

            one_focus = action_pack.one_focus.strip()
            if one_focus:
                self.hints.one_focuses.append(one_focus)
                self.candidate(action_pack.one_focus, action_pack.one_focus).add_signal(
                    ONE_FOCUS_WEIGHT,
                    "One-focus cue from structured session",
                    self._entry_reference(entry, action_pack.one_focus),
                )

            self.hints.drills.extend(item for item in action_pack.drills if item.strip())
            self.hints.positional_requests.extend(item for item in action_pack.positional_requests if item.strip())
            guidance = action_pack.fallback_decision_guidance.strip()
            if guidance:
                self.hints.fallback_guidance.append(guidance)

    def add_checkoffs(self, checkoffs: Iterable[Checkoff]) -> None:
        for checkoff in checkoffs:
            self.candidate(checkoff.skill_id, checkoff.skill_id).add_signal(
                checkoff_status_weight(checkoff.status),
                f"Checkoff status {checkoff.status}",
                WeeklyPlanReference(
                    source_type="checkoff",
                    source_id=checkoff.checkoff_id,
                    created_at=checkoff.updated_at,
                    summary=(
                        f"Checkoff {checkoff.status} "
                        f"({checkoff.confirmed_evidence_count}/{checkoff.min_evidence_required})"
                    ),
                ),
            )

    def add_curriculum_graph(self, graph: Optional[CurriculumGraph]) -> None:
        if graph is None:
            return
        for node in graph.nodes:
            self.candidate(node.skill_id, node.label).add_signal(
                max(0, node.priority) * CURRICULUM_PRIORITY_MULTIPLIER,
                f"Curriculum priority {node.priority}",
                WeeklyPlanReference(
                    source_type="curriculum-graph",
                    source_id=node.skill_id,
                    created_at=graph.updated_at,
                    summary=f"Curriculum graph node: {node.label}",
                ),
            )

    def add_prior_plans(self, prior_plans: Iterable[WeeklyPlan]) -> None:
        for prior in prior_plans:
            incomplete = prior.has_pending_work()
            for skill in prior.primary_skills:
                self.candidate(skill, skill).add_signal(
                    PRIOR_PLAN_INCOMPLETE_WEIGHT if incomplete else PRIOR_PLAN_COMPLETED_WEIGHT,
                    (
                        "Prior weekly plan has incomplete work"
                        if incomplete
                        else "Prior weekly plan completed; lower immediate priority"
                    ),
                    WeeklyPlanReference(
                        source_type="weekly-plan",
                        source_id=prior.plan_id,
                        created_at=prior.updated_at,
                        summary=f"Prior week status {prior.status}",
                    ),
                )

    @staticmethod
    def _entry_reference(entry: Entry, statement: str) -> WeeklyPlanReference:
        return WeeklyPlanReference(
            source_type="entry-action-pack",
            source_id=entry.entry_id,
            created_at=entry.created_at,
            summary=truncate(statement, REFERENCE_SUMMARY_LENGTH),
        )


def rank_candidates(candidates: Iterable[SkillCandidate]) -> List[SkillCandidate]:
    """Highest score first; more corroborating references break ties, then first-seen order."""
    return sorted(candidates, key=lambda candidate: (-candidate.score, -len(candidate.references)))


def select_primary_skills(
    candidates: Iterable[SkillCandidate],
    recorder: ExplainabilityRecorder,
    limit: int = MAX_PRIMARY_SKILLS,
) -> List[SkillCandidate]:
    ranked = rank_candidates(candidates)
    positive = [candidate for candidate in ranked if candidate.score > 0]
    chosen = (positive or ranked)[:limit]
    if not chosen:
        logger.debug("No skill candidates available; using fallback %s", FALLBACK_SKILL_ID)
        chosen = [
            SkillCandidate(
                skill_id=FALLBACK_SKILL_ID,
                label=FALLBACK_SKILL_LABEL,
                score=1,
                reasons=["Fallback baseline skill"],
            )
        ]

    for candidate in chosen:
        recorder.record(
            "primary-skill",
            candidate.label,
            "; ".join(candidate.reasons[:2]),
            most_recent_references(candidate.references),
        )
    return chosen


__all__ = [
    "CandidateAggregator",
    "MAX_PRIMARY_SKILLS",
    "SignalHints",
    "SkillCandidate",
    "checkoff_status_weight",
    "rank_candidates",
    "select_primary_skills",
]
