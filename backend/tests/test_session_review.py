"""Tests for one-thing cue extraction from session reviews."""

from __future__ import annotations

from typing import Optional

from roll_journal.journal_models import Entry
from roll_journal.session_review import (
    MAX_ONE_THING_LENGTH,
    extract_entry_one_thing_cue,
    list_recent_one_thing_cues,
    normalize_one_thing_cue,
)


def _entry(
    entry_id: str,
    created_at: str,
    *,
    final_cue: Optional[str] = None,
    draft_cue: Optional[str] = None,
) -> Entry:
    payload = {"entryId": entry_id, "athleteId": "athlete-1", "createdAt": created_at}
    if final_cue is not None:
        payload["sessionReviewFinal"] = {
            "review": {"promptSet": {}, "oneThing": final_cue},
            "finalizedAt": created_at,
        }
    if draft_cue is not None:
        payload["sessionReviewDraft"] = {"promptSet": {}, "oneThing": draft_cue}
    return Entry.model_validate(payload)


def test_normalize_keeps_first_sentence_without_bullets() -> None:
    assert normalize_one_thing_cue("- Keep elbows tight. Then pummel.") == "Keep elbows tight"
    assert normalize_one_thing_cue("1) Hips   back first!\nsecond line") == "Hips back first"
    assert normalize_one_thing_cue("   ") == ""
    assert normalize_one_thing_cue(None) == ""
    assert normalize_one_thing_cue(42) == ""


def test_normalize_clips_long_cues_at_word_boundary() -> None:
    cue = normalize_one_thing_cue("frame " * 40)
    assert len(cue) <= MAX_ONE_THING_LENGTH
    assert cue.endswith("frame")


def test_extract_prefers_finalized_review() -> None:
    both = _entry("e1", "2026-02-20T10:00:00.000Z", final_cue="Frames first.", draft_cue="Draft cue.")
    draft_only = _entry("e2", "2026-02-21T10:00:00.000Z", draft_cue="Chin down.")
    blank_final = _entry("e3", "2026-02-22T10:00:00.000Z", final_cue="  ", draft_cue="Fallback cue")
    assert extract_entry_one_thing_cue(both) == "Frames first"
    assert extract_entry_one_thing_cue(draft_only) == "Chin down"
    assert extract_entry_one_thing_cue(blank_final) == "Fallback cue"
    assert extract_entry_one_thing_cue(_entry("e4", "2026-02-23T10:00:00.000Z")) is None


def test_list_recent_cues_orders_newest_first_and_clamps_limit() -> None:
    entries = [
        _entry("old", "2026-02-01T10:00:00.000Z", final_cue="Old cue"),
        _entry("none", "2026-02-10T10:00:00.000Z"),
        _entry("new", "2026-02-20T10:00:00.000Z", draft_cue="New cue"),
    ]
    cues = list_recent_one_thing_cues(entries, limit=5)
    assert [cue.entry_id for cue in cues] == ["new", "old"]
    assert cues[0].cue == "New cue"

    assert len(list_recent_one_thing_cues(entries, limit=0)) == 1
