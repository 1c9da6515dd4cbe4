"""Journal records consumed by the weekly planner and the plan it produces."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

WeeklyPlanStatus = Literal["draft", "active", "completed"]
WeeklyPlanItemStatus = Literal["pending", "done", "skipped"]
WeeklyPositionalFocusType = Literal["remediate-weakness", "reinforce-strength", "carry-over"]
WeeklyPlanReferenceSource = Literal["entry-action-pack", "checkoff", "curriculum-graph", "weekly-plan"]
# "positional-focus" marks focus card selections; round menu items stay "positional-round".
WeeklyPlanSelectionType = Literal[
    "primary-skill",
    "supporting-concept",
    "conditioning-constraint",
    "drill",
    "positional-round",
    "positional-focus",
    "training-constraint",
]

WEEKLY_PLAN_STATUSES = ("draft", "active", "completed")
WEEKLY_PLAN_ITEM_STATUSES = ("pending", "done", "skipped")
WEEKLY_POSITIONAL_FOCUS_TYPES = ("remediate-weakness", "reinforce-strength", "carry-over")


class JournalModel(BaseModel):
    """Base model: snake_case attributes, camelCase on the wire, unknown keys ignored."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


# ---------------------------------------------------------------------------
# Session inputs
# ---------------------------------------------------------------------------


class ActionPackConfidenceFlag(JournalModel):
    field: str
    confidence: Literal["high", "medium", "low"]
    note: Optional[str] = None


class ActionPack(JournalModel):
    """GPT-derived summary of a session: what worked, what leaked, what to drill next."""

    wins: List[str] = Field(default_factory=list)
    leaks: List[str] = Field(default_factory=list)
    one_focus: str = ""
    drills: List[str] = Field(default_factory=list)
    positional_requests: List[str] = Field(default_factory=list)
    fallback_decision_guidance: str = ""
    confidence_flags: List[ActionPackConfidenceFlag] = Field(default_factory=list)


class CoachReviewState(JournalModel):
    requires_review: bool = False
    coach_notes: Optional[str] = None
    reviewed_at: Optional[str] = None


class FinalizedActionPack(JournalModel):
    action_pack: ActionPack
    coach_review: Optional[CoachReviewState] = None
    finalized_at: str = ""


class SessionReviewPromptSet(JournalModel):
    what_worked: List[str] = Field(default_factory=list)
    what_failed: List[str] = Field(default_factory=list)
    what_to_ask_coach: List[str] = Field(default_factory=list)
    what_to_drill_solo: List[str] = Field(default_factory=list)


class SessionReviewArtifact(JournalModel):
    prompt_set: SessionReviewPromptSet = Field(default_factory=SessionReviewPromptSet)
    one_thing: str = ""


class FinalizedSessionReview(JournalModel):
    review: SessionReviewArtifact
    finalized_at: str = ""


class EntryQuickAdd(JournalModel):
    time: str = ""
    class_name: str = Field(default="", alias="class")
    gym: str = ""
    partners: List[str] = Field(default_factory=list)
    rounds: int = 0
    notes: str = ""


class EntryStructuredFields(JournalModel):
    position: Optional[str] = None
    technique: Optional[str] = None
    outcome: Optional[str] = None
    problem: Optional[str] = None
    cue: Optional[str] = None
    constraint: Optional[str] = None


class SessionMetrics(JournalModel):
    duration_minutes: int = 0
    intensity: int = 0
    rounds: int = 0
    gi_or_no_gi: str = ""
    tags: List[str] = Field(default_factory=list)


class SessionContext(JournalModel):
    ruleset: Optional[str] = None


class Entry(JournalModel):
    """A training session log as stored by the journal."""

    entry_id: str
    athlete_id: str = ""
    schema_version: int = 3
    created_at: str = ""
    updated_at: str = ""
    quick_add: EntryQuickAdd = Field(default_factory=EntryQuickAdd)
    structured: Optional[EntryStructuredFields] = None
    tags: List[str] = Field(default_factory=list)
    session_metrics: SessionMetrics = Field(default_factory=SessionMetrics)
    session_context: Optional[SessionContext] = None
    action_pack_draft: Optional[ActionPack] = None
    action_pack_final: Optional[FinalizedActionPack] = None
    session_review_draft: Optional[SessionReviewArtifact] = None
    session_review_final: Optional[FinalizedSessionReview] = None

    def effective_action_pack(self) -> Optional[ActionPack]:
        if self.action_pack_final is not None:
            return self.action_pack_final.action_pack
        return self.action_pack_draft


# ---------------------------------------------------------------------------
# Skill progress inputs
# ---------------------------------------------------------------------------


class Checkoff(JournalModel):
    checkoff_id: str
    athlete_id: str = ""
    skill_id: str
    evidence_type: str = ""
    status: str = "pending"
    min_evidence_required: int = 0
    confirmed_evidence_count: int = 0
    created_at: str = ""
    updated_at: str = ""


class CurriculumGraphNode(JournalModel):
    skill_id: str
    label: str = ""
    priority: int = 0
    supporting_concepts: List[str] = Field(default_factory=list)
    conditioning_constraints: List[str] = Field(default_factory=list)


class CurriculumGraphEdge(JournalModel):
    from_skill_id: str
    to_skill_id: str
    relation: str = "prerequisite"


class CurriculumGraph(JournalModel):
    """Coach-curated skill priorities; edges are carried through but not scored."""

    athlete_id: str
    graph_id: str = "active"
    version: int = 1
    updated_at: str = ""
    nodes: List[CurriculumGraphNode] = Field(default_factory=list)
    edges: List[CurriculumGraphEdge] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Weekly plan output
# ---------------------------------------------------------------------------


class WeeklyPlanReference(JournalModel):
    source_type: WeeklyPlanReferenceSource
    source_id: str
    created_at: Optional[str] = None
    summary: str = ""


class WeeklyPlanMenuItem(JournalModel):
    id: str
    label: str
    status: WeeklyPlanItemStatus = "pending"
    completed_at: Optional[str] = None
    coach_note: Optional[str] = None


class WeeklyPositionalFocusCard(JournalModel):
    id: str
    title: str
    focus_type: WeeklyPositionalFocusType = "remediate-weakness"
    priority: int = Field(default=1, ge=1)
    position: str = "mixed-position"
    context: str = "live rounds"
    success_criteria: List[str] = Field(default_factory=list)
    rationale: str = ""
    linked_one_thing_cues: List[str] = Field(default_factory=list)
    recurring_failures: List[str] = Field(default_factory=list)
    references: List[WeeklyPlanReference] = Field(default_factory=list)
    status: WeeklyPlanItemStatus = "pending"
    coach_note: Optional[str] = None


class WeeklyPositionalFocus(JournalModel):
    cards: List[WeeklyPositionalFocusCard] = Field(default_factory=list)
    locked: bool = False
    locked_at: Optional[str] = None
    locked_by: Optional[str] = None
    updated_at: str = ""


class WeeklyPlanExplainabilityItem(JournalModel):
    selection_type: WeeklyPlanSelectionType
    selected_value: str
    reason: str
    references: List[WeeklyPlanReference] = Field(default_factory=list, max_length=3)


class WeeklyPlanCoachReview(JournalModel):
    reviewed_by: str
    reviewed_at: str
    notes: str


class WeeklyPlanCompletion(JournalModel):
    completed_at: Optional[str] = None
    outcome_notes: Optional[str] = None


class WeeklyPlan(JournalModel):
    """A generated week of training: primary skills, menus, focus cards and the audit trail."""

    plan_id: str
    athlete_id: str
    week_of: str
    generated_at: str
    updated_at: str
    status: WeeklyPlanStatus = "active"
    primary_skills: List[str] = Field(default_factory=list)
    supporting_concept: str = ""
    conditioning_constraint: str = ""
    drills: List[WeeklyPlanMenuItem] = Field(default_factory=list)
    positional_rounds: List[WeeklyPlanMenuItem] = Field(default_factory=list)
    constraints: List[WeeklyPlanMenuItem] = Field(default_factory=list)
    positional_focus: WeeklyPositionalFocus = Field(default_factory=WeeklyPositionalFocus)
    explainability: List[WeeklyPlanExplainabilityItem] = Field(default_factory=list)
    coach_review: Optional[WeeklyPlanCoachReview] = None
    completion: Optional[WeeklyPlanCompletion] = None

    def menu_items(self) -> List[WeeklyPlanMenuItem]:
        return [*self.drills, *self.positional_rounds, *self.constraints]

    def has_pending_work(self) -> bool:
        return any(item.status == "pending" for item in self.menu_items())


__all__ = [
    "ActionPack",
    "ActionPackConfidenceFlag",
    "Checkoff",
    "CoachReviewState",
    "CurriculumGraph",
    "CurriculumGraphEdge",
    "CurriculumGraphNode",
    "Entry",
    "EntryQuickAdd",
    "EntryStructuredFields",
    "FinalizedActionPack",
    "FinalizedSessionReview",
    "JournalModel",
    "SessionContext",
    "SessionMetrics",
    "SessionReviewArtifact",
    "SessionReviewPromptSet",
    "WEEKLY_PLAN_ITEM_STATUSES",
    "WEEKLY_PLAN_STATUSES",
    "WEEKLY_POSITIONAL_FOCUS_TYPES",
    "WeeklyPlan",
    "WeeklyPlanCoachReview",
    "WeeklyPlanCompletion",
    "WeeklyPlanExplainabilityItem",
    "WeeklyPlanItemStatus",
    "WeeklyPlanMenuItem",
    "WeeklyPlanReference",
    "WeeklyPlanReferenceSource",
    "WeeklyPlanSelectionType",
    "WeeklyPlanStatus",
    "WeeklyPositionalFocus",
    "WeeklyPositionalFocusCard",
    "WeeklyPositionalFocusType",
]
