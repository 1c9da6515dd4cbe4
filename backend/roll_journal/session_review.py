"""One-thing cue extraction from post-session reviews."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional

from .journal_models import Entry

MAX_ONE_THING_LENGTH = 140

_LEADING_BULLET = re.compile(r"^[\-\*\d.)\s]+")
_SENTENCE_END = re.compile(r"[.!?]")
_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class RecentOneThingCue:
    entry_id: str
    created_at: str
    cue: str


def _normalize_whitespace(value: str) -> str:
    return _WHITESPACE.sub(" ", value.strip())


def _first_sentence(value: str) -> str:
    first_line = value.splitlines()[0] if value else ""
    without_bullet = _LEADING_BULLET.sub("", first_line)
    return _normalize_whitespace(_SENTENCE_END.split(without_bullet, maxsplit=1)[0])


def _clip(value: str) -> str:
    if len(value) <= MAX_ONE_THING_LENGTH:
        return value
    clipped = value[:MAX_ONE_THING_LENGTH]
    last_space = clipped.rfind(" ")
    if last_space <= 0:
        return clipped
    return clipped[:last_space].strip()


def normalize_one_thing_cue(value: Any) -> str:
    """Reduce a review's "one thing" to a single short sentence."""
    if not isinstance(value, str):
        return ""
    sentence = _first_sentence(value)
    if not sentence:
        return ""
    return _clip(sentence)


def extract_entry_one_thing_cue(entry: Entry) -> Optional[str]:
    if entry.session_review_final is not None:
        cue = normalize_one_thing_cue(entry.session_review_final.review.one_thing)
        if cue:
            return cue
    if entry.session_review_draft is not None:
        cue = normalize_one_thing_cue(entry.session_review_draft.one_thing)
        if cue:
            return cue
    return None


def list_recent_one_thing_cues(entries: Iterable[Entry], limit: int = 5) -> List[RecentOneThingCue]:
    max_items = min(max(int(limit), 1), 20)
    cues: List[RecentOneThingCue] = []
    for entry in sorted(entries, key=lambda item: item.created_at, reverse=True):
        cue = extract_entry_one_thing_cue(entry)
        if not cue:
            continue
        cues.append(RecentOneThingCue(entry_id=entry.entry_id, created_at=entry.created_at, cue=cue))
        if len(cues) >= max_items:
            break
    return cues


__all__ = [
    "MAX_ONE_THING_LENGTH",
    "RecentOneThingCue",
    "extract_entry_one_thing_cue",
    "list_recent_one_thing_cues",
    "normalize_one_thing_cue",
]
