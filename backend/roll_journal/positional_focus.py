"""Positional focus cards: targeted remediation and reinforcement for the coming week.

Runs its own aggregation over the most recent session logs, separate from primary skill
scoring. Failure statements (action pack leaks plus review "what failed" prompts) and win
statements are bucketed by normalized text; buckets are scored on frequency, recency,
overlap with the athlete's current one-thing cues and, for failures, unfinished focus cards
carried over from recent plans.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Literal, Optional, Sequence, Tuple

from .journal_models import ActionPack, Entry, WeeklyPlan, WeeklyPlanReference, WeeklyPositionalFocusCard
from .explainability import most_recent_references
from .session_review import extract_entry_one_thing_cue
from .skill_identity import as_skill_id, first_non_blank, strip_focus_title_prefix, truncate, unique_strings
from .timestamps import whole_days_between

logger = logging.getLogger(__name__)

MAX_POSITIONAL_FOCUS_CARDS = 4
MAX_REMEDIATION_CARDS = 2
MAX_ONE_THING_CUES = 3
RECENT_ENTRY_WINDOW = 16
CARRY_OVER_PLAN_WINDOW = 2
MIN_CUE_TOKEN_LENGTH = 4

STATEMENT_LENGTH = 120
TITLE_LENGTH = 120
RATIONALE_LENGTH = 180
POSITION_LENGTH = 80
CONTEXT_LENGTH = 100

DEFAULT_POSITION = "mixed-position"
DEFAULT_CONTEXT = "live rounds"

_TOKEN_SPLIT = re.compile(r"[^a-z0-9]+")

SignalKind = Literal["failure", "win"]


@dataclass
class FocusSignalBucket:
    key: str
    statement: str
    count: int
    last_seen_at: str
    one_thing_matches: int
    references: List[WeeklyPlanReference] = field(default_factory=list)
    recurring_failures: List[str] = field(default_factory=list)
    positions: List[str] = field(default_factory=list)
    contexts: List[str] = field(default_factory=list)

    @property
    def first_position(self) -> Optional[str]:
        found = unique_strings(self.positions, 1)
        return found[0] if found else None

    @property
    def first_context(self) -> Optional[str]:
        found = unique_strings(self.contexts, 1)
        return found[0] if found else None


@dataclass(frozen=True)
class _SessionSetting:
    position: str
    context: str


def recency_bonus(last_seen_at: str, now_iso: str) -> int:
    days = whole_days_between(last_seen_at, now_iso)
    if days is None:
        return 0
    if days <= 7:
        return 2
    if days <= 14:
        return 1
    return 0


def cue_tokens(cues: Sequence[str]) -> List[str]:
    tokens: List[str] = []
    for cue in cues:
        tokens.extend(token for token in _TOKEN_SPLIT.split(cue.lower()) if len(token) >= MIN_CUE_TOKEN_LENGTH)
    return tokens


def carry_over_key(title: str) -> str:
    return as_skill_id(strip_focus_title_prefix(title))


def _failure_statements(entry: Entry, action_pack: ActionPack) -> List[str]:
    statements = list(action_pack.leaks)
    if entry.session_review_final is not None:
        statements.extend(entry.session_review_final.review.prompt_set.what_failed)
    if entry.session_review_draft is not None:
        statements.extend(entry.session_review_draft.prompt_set.what_failed)
    return [statement for statement in statements if statement.strip()]


def _session_setting(entry: Entry, action_pack: ActionPack) -> _SessionSetting:
    structured_position = entry.structured.position if entry.structured is not None else None
    position = (
        first_non_blank(action_pack.positional_requests)
        or (structured_position if structured_position and structured_position.strip() else None)
        or first_non_blank(entry.session_metrics.tags)
        or DEFAULT_POSITION
    )
    ruleset = entry.session_context.ruleset if entry.session_context is not None else None
    context_parts = [
        part.strip()
        for part in (entry.quick_add.class_name, ruleset, entry.quick_add.gym)
        if isinstance(part, str) and part.strip()
    ]
    return _SessionSetting(
        position=truncate(position, POSITION_LENGTH),
        context=truncate(" | ".join(context_parts) or DEFAULT_CONTEXT, CONTEXT_LENGTH),
    )


def _aggregate_signal(
    buckets: Dict[str, FocusSignalBucket],
    statement: str,
    entry: Entry,
    setting: _SessionSetting,
    tokens: Sequence[str],
    kind: SignalKind,
) -> None:
    normalized = truncate(statement, STATEMENT_LENGTH)
    key = as_skill_id(normalized)
    lowered = normalized.lower()
    match = 1 if any(token in lowered for token in tokens) else 0
    reference = WeeklyPlanReference(
        source_type="entry-action-pack",
        source_id=entry.entry_id,
        created_at=entry.created_at,
        summary=f"{'Failure' if kind == 'failure' else 'Win'}: {normalized}",
    )

    bucket = buckets.get(key)
    if bucket is None:
        buckets[key] = FocusSignalBucket(
            key=key,
            statement=normalized,
            count=1,
            last_seen_at=entry.created_at,
            one_thing_matches=match,
            references=[reference],
            recurring_failures=[normalized] if kind == "failure" else [],
            positions=[setting.position] if setting.position else [],
            contexts=[setting.context] if setting.context else [],
        )
        return

    bucket.count += 1
    bucket.last_seen_at = max(bucket.last_seen_at, entry.created_at)
    bucket.one_thing_matches += match
    if not any(existing.source_id == entry.entry_id for existing in bucket.references):
        bucket.references.append(reference)
    if kind == "failure":
        bucket.recurring_failures.append(normalized)
    if setting.position.strip():
        bucket.positions.append(setting.position)
    if setting.context.strip():
        bucket.contexts.append(setting.context)


class PositionalFocusEngine:
    """Builds up to four prioritized positional focus cards for a week."""

    def build_cards(
        self,
        entries: Sequence[Entry],
        prior_plans: Sequence[WeeklyPlan],
        *,
        one_focuses: Sequence[str],
        primary_skills: Sequence[str],
        now_iso: str,
    ) -> List[WeeklyPositionalFocusCard]:
        recent = sorted(entries, key=lambda entry: entry.created_at, reverse=True)[:RECENT_ENTRY_WINDOW]
        cues = unique_strings(
            [cue for cue in (extract_entry_one_thing_cue(entry) for entry in recent) if cue],
            MAX_ONE_THING_CUES,
        )
        tokens = cue_tokens(cues)

        failures, wins = self._collect_buckets(recent, tokens)
        carry_overs = self._pending_carry_overs(prior_plans)
        carry_by_key: Dict[str, List[WeeklyPositionalFocusCard]] = {}
        for card in carry_overs:
            carry_by_key.setdefault(carry_over_key(card.title), []).append(card)

        def failure_score(bucket: FocusSignalBucket) -> int:
            carry_count = len(carry_by_key.get(bucket.key, []))
            return (
                bucket.count * 3
                + bucket.one_thing_matches
                + recency_bonus(bucket.last_seen_at, now_iso)
                + carry_count * 2
            )

        def win_score(bucket: FocusSignalBucket) -> int:
            return bucket.count * 2 + recency_bonus(bucket.last_seen_at, now_iso)

        remediation = sorted(failures.values(), key=failure_score, reverse=True)[:MAX_REMEDIATION_CARDS]
        remediation_keys = {bucket.key for bucket in remediation}
        reinforcement = next(
            (
                bucket
                for bucket in sorted(wins.values(), key=win_score, reverse=True)
                if bucket.key not in remediation_keys
            ),
            None,
        )

        cards: List[WeeklyPositionalFocusCard] = []
        for bucket in remediation:
            cards.append(self._remediation_card(bucket, len(carry_by_key.get(bucket.key, [])), cues, len(cards) + 1))

        if not cards and carry_overs:
            cards.append(self._carry_over_card(carry_overs[0], cues, len(cards) + 1))

        if reinforcement is not None:
            cards.append(self._reinforcement_card(reinforcement, cues, primary_skills, len(cards) + 1))

        if not cards:
            cards.append(self._fallback_card(one_focuses, primary_skills))

        logger.debug(
            "Positional focus: %d failure buckets, %d win buckets, %d carry-overs -> %d cards",
            len(failures),
            len(wins),
            len(carry_overs),
            len(cards),
        )
        return cards[:MAX_POSITIONAL_FOCUS_CARDS]

    def _collect_buckets(
        self,
        recent: Sequence[Entry],
        tokens: Sequence[str],
    ) -> Tuple[Dict[str, FocusSignalBucket], Dict[str, FocusSignalBucket]]:
        failures: Dict[str, FocusSignalBucket] = {}
        wins: Dict[str, FocusSignalBucket] = {}
        for entry in recent:
            action_pack = entry.effective_action_pack()
            if action_pack is None:
                continue
            setting = _session_setting(entry, action_pack)
            for statement in _failure_statements(entry, action_pack):
                _aggregate_signal(failures, statement, entry, setting, tokens, "failure")
            for statement in action_pack.wins:
                if statement.strip():
                    _aggregate_signal(wins, statement, entry, setting, tokens, "win")
        return failures, wins

    @staticmethod
    def _pending_carry_overs(prior_plans: Sequence[WeeklyPlan]) -> List[WeeklyPositionalFocusCard]:
        latest = sorted(prior_plans, key=lambda plan: (plan.week_of, plan.updated_at), reverse=True)
        return [
            card
            for plan in latest[:CARRY_OVER_PLAN_WINDOW]
            for card in plan.positional_focus.cards
            if card.status == "pending" and card.title.strip()
        ]

    @staticmethod
    def _remediation_card(
        bucket: FocusSignalBucket,
        carry_count: int,
        cues: List[str],
        priority: int,
    ) -> WeeklyPositionalFocusCard:
        carried = carry_count > 0
        title = f"Carry over: {bucket.statement}" if carried else f"Fix: {bucket.statement}"
        return WeeklyPositionalFocusCard(
            id=f"focus-{priority}",
            title=truncate(title, TITLE_LENGTH),
            focus_type="carry-over" if carried else "remediate-weakness",
            priority=priority,
            position=bucket.first_position or DEFAULT_POSITION,
            context=bucket.first_context or DEFAULT_CONTEXT,
            success_criteria=[
                f"Run 4 positional rounds from {bucket.first_position or 'assigned position'}.",
                "Keep failed outcomes to 1 or fewer per round in at least 3 rounds.",
                "Capture at least 2 successful corrections in the session log.",
            ],
            rationale=truncate(
                f"Recurring failures ({bucket.count}) plus active one-thing cues indicate this is the "
                "highest remediation need this week.",
                RATIONALE_LENGTH,
            ),
            linked_one_thing_cues=list(cues),
            recurring_failures=unique_strings(bucket.recurring_failures, 3),
            references=most_recent_references(bucket.references),
            status="pending",
        )

    @staticmethod
    def _carry_over_card(
        carry: WeeklyPositionalFocusCard,
        cues: List[str],
        priority: int,
    ) -> WeeklyPositionalFocusCard:
        # Stored cards may predate trimming; normalize to what the record reader yields.
        coach_note = (carry.coach_note or "").strip()
        return carry.model_copy(
            deep=True,
            update={
                "id": f"focus-{priority}",
                "title": truncate(carry.title, TITLE_LENGTH),
                "priority": priority,
                "focus_type": "carry-over",
                "position": truncate(carry.position, POSITION_LENGTH) or DEFAULT_POSITION,
                "context": truncate(carry.context, CONTEXT_LENGTH) or DEFAULT_CONTEXT,
                "coach_note": coach_note or None,
                "rationale": truncate(
                    carry.rationale or "Carry-over card kept active because prior weekly focus remained incomplete.",
                    RATIONALE_LENGTH,
                ),
                "linked_one_thing_cues": unique_strings([*carry.linked_one_thing_cues, *cues], MAX_ONE_THING_CUES),
                "success_criteria": [item for item in carry.success_criteria if item.strip()][:3],
                "recurring_failures": [item for item in carry.recurring_failures if item.strip()][:3],
                "references": most_recent_references(carry.references),
                "status": "pending",
            },
        )

    @staticmethod
    def _reinforcement_card(
        bucket: FocusSignalBucket,
        cues: List[str],
        primary_skills: Sequence[str],
        priority: int,
    ) -> WeeklyPositionalFocusCard:
        return WeeklyPositionalFocusCard(
            id=f"focus-{priority}",
            title=truncate(f"Reinforce: {bucket.statement}", TITLE_LENGTH),
            focus_type="reinforce-strength",
            priority=priority,
            position=bucket.first_position or (primary_skills[0] if primary_skills else DEFAULT_POSITION),
            context=bucket.first_context or DEFAULT_CONTEXT,
            success_criteria=[
                "Start 3 rounds in this position/context.",
                "Hit the target success sequence at least 2 times under resistance.",
                "Document the trigger and finish details in post-session notes.",
            ],
            rationale=truncate(
                f"Recent wins ({bucket.count}) justify reinforcement to preserve strengths while remediation "
                "work is in progress.",
                RATIONALE_LENGTH,
            ),
            linked_one_thing_cues=list(cues),
            recurring_failures=[],
            references=most_recent_references(bucket.references),
            status="pending",
        )

    @staticmethod
    def _fallback_card(one_focuses: Sequence[str], primary_skills: Sequence[str]) -> WeeklyPositionalFocusCard:
        subject = (primary_skills[0] if primary_skills else None) or (one_focuses[0] if one_focuses else None)
        return WeeklyPositionalFocusCard(
            id="focus-1",
            title=truncate(f"Reinforce: {subject or 'base positioning'}", TITLE_LENGTH),
            focus_type="reinforce-strength",
            priority=1,
            position=DEFAULT_POSITION,
            context=DEFAULT_CONTEXT,
            success_criteria=[
                "Start 3 rounds from the assigned position.",
                "Track 2 successful executions with clean decision timing.",
            ],
            rationale="Fallback focus generated because recent logs lacked recurring signal density.",
            linked_one_thing_cues=unique_strings(one_focuses, MAX_ONE_THING_CUES),
            recurring_failures=[],
            references=[],
            status="pending",
        )


__all__ = [
    "FocusSignalBucket",
    "MAX_POSITIONAL_FOCUS_CARDS",
    "PositionalFocusEngine",
    "carry_over_key",
    "cue_tokens",
    "recency_bonus",
]
