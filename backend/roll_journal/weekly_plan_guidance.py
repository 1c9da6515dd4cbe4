"""Supporting concept and conditioning constraint resolution for weekly plans."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from .explainability import ExplainabilityRecorder
from .journal_models import CurriculumGraph, CurriculumGraphNode, Entry, WeeklyPlanReference
from .skill_candidates import REFERENCE_SUMMARY_LENGTH, SignalHints, SkillCandidate
from .skill_identity import as_skill_id, first_non_blank, truncate

FALLBACK_SUPPORTING_CONCEPT = "Win inside position before adding speed."
DEFAULT_CONDITIONING_CONSTRAINT = (
    "Decision speed: within 3 seconds choose attack, recover, or stand-up before stalling in neutral exchanges."
)

# Checked in order; the first rule with a keyword present in any leak wins.
CONSTRAINT_KEYWORD_RULES: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (
        ("gas", "tired", "fatigue", "pace"),
        "Gas tank: keep first two rounds at 70-80% pace and recover through nasal breathing between exchanges.",
    ),
    (
        ("head", "posture", "chin"),
        "Head position: establish forehead/chin line before grips, then move hips.",
    ),
    (
        ("frame", "underhook", "elbow"),
        "Frames first: win inside frame position before any escape or attack attempt.",
    ),
)


@dataclass
class PlanGuidance:
    supporting_concept: str
    conditioning_constraint: str
    concept_references: List[WeeklyPlanReference] = field(default_factory=list)
    constraint_references: List[WeeklyPlanReference] = field(default_factory=list)


def infer_constraint_from_leaks(leaks: Sequence[str]) -> str:
    lowered = [leak.lower() for leak in leaks]
    for keywords, constraint in CONSTRAINT_KEYWORD_RULES:
        if any(keyword in leak for leak in lowered for keyword in keywords):
            return constraint
    return DEFAULT_CONDITIONING_CONSTRAINT


def _graph_node_for(graph: Optional[CurriculumGraph], candidate: Optional[SkillCandidate]) -> Optional[CurriculumGraphNode]:
    if graph is None or candidate is None:
        return None
    nodes: Dict[str, CurriculumGraphNode] = {as_skill_id(node.skill_id): node for node in graph.nodes}
    return nodes.get(candidate.skill_id)


def _graph_reference(graph: CurriculumGraph, node: CurriculumGraphNode, text: str) -> WeeklyPlanReference:
    return WeeklyPlanReference(
        source_type="curriculum-graph",
        source_id=node.skill_id,
        created_at=graph.updated_at,
        summary=truncate(text, REFERENCE_SUMMARY_LENGTH),
    )


def _entry_reference(entry: Entry, text: str) -> WeeklyPlanReference:
    return WeeklyPlanReference(
        source_type="entry-action-pack",
        source_id=entry.entry_id,
        created_at=entry.created_at,
        summary=truncate(text, REFERENCE_SUMMARY_LENGTH),
    )


def resolve_plan_guidance(
    primary: Sequence[SkillCandidate],
    graph: Optional[CurriculumGraph],
    hints: SignalHints,
    entries: Sequence[Entry],
    recorder: ExplainabilityRecorder,
) -> PlanGuidance:
    """Pick one supporting concept and one conditioning constraint for the week.

    Curriculum guidance attached to the top primary skill wins; otherwise the concept comes
    from the first one-focus cue and the constraint from keyword rules over observed leaks.
    """
    node = _graph_node_for(graph, primary[0] if primary else None)
    first_entry = entries[0] if entries else None

    graph_concept = first_non_blank(node.supporting_concepts) if node else None
    supporting_concept = graph_concept or first_non_blank(hints.one_focuses) or FALLBACK_SUPPORTING_CONCEPT
    concept_references: List[WeeklyPlanReference] = []
    if graph_concept and graph is not None and node is not None:
        concept_references.append(_graph_reference(graph, node, graph_concept))
    elif first_entry is not None:
        one_focus = hints.one_focuses[0] if hints.one_focuses else supporting_concept
        concept_references.append(_entry_reference(first_entry, one_focus))
    recorder.record(
        "supporting-concept",
        supporting_concept,
        "Selected from curriculum node concept or most recent one-focus cue.",
        concept_references,
    )

    graph_constraint = first_non_blank(node.conditioning_constraints) if node else None
    conditioning_constraint = graph_constraint or infer_constraint_from_leaks(hints.leaks)
    constraint_references: List[WeeklyPlanReference] = []
    if graph_constraint and graph is not None and node is not None:
        constraint_references.append(_graph_reference(graph, node, graph_constraint))
    elif first_entry is not None:
        leak = hints.leaks[0] if hints.leaks else conditioning_constraint
        constraint_references.append(_entry_reference(first_entry, leak))
    recorder.record(
        "conditioning-constraint",
        conditioning_constraint,
        "Constraint tied to conditioning leak patterns or curriculum defaults.",
        constraint_references,
    )

    return PlanGuidance(
        supporting_concept=supporting_concept,
        conditioning_constraint=conditioning_constraint,
        concept_references=concept_references,
        constraint_references=constraint_references,
    )


__all__ = [
    "CONSTRAINT_KEYWORD_RULES",
    "DEFAULT_CONDITIONING_CONSTRAINT",
    "FALLBACK_SUPPORTING_CONCEPT",
    "PlanGuidance",
    "infer_constraint_from_leaks",
    "resolve_plan_guidance",
]
