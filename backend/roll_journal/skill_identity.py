"""Skill identity normalization and text shaping shared by the weekly planner."""

from __future__ import annotations

import re
from typing import Iterable, List

FALLBACK_SKILL_ID = "general-fundamentals"
FOCUS_TITLE_PREFIXES = ("fix:", "carry over:", "reinforce:")

_NON_ALPHANUMERIC = re.compile(r"[^a-z0-9]+")


def as_skill_id(value: str) -> str:
    """Normalize free text or a skill id to a kebab-case identity key.

    >>> as_skill_id("  Lost Underhook (half guard) ")
    'lost-underhook-half-guard'
    """
    slug = _NON_ALPHANUMERIC.sub("-", value.strip().lower()).strip("-")
    return slug or FALLBACK_SKILL_ID


def label_from_skill_id(value: str) -> str:
    return " ".join(segment[:1].upper() + segment[1:] for segment in value.split("-") if segment)


def dekebab(skill_id: str) -> str:
    return skill_id.replace("-", " ")


def truncate(value: str, max_length: int = 160) -> str:
    trimmed = value.strip()
    if len(trimmed) <= max_length:
        return trimmed
    return f"{trimmed[: max(0, max_length - 3)].strip()}..."


def unique_strings(values: Iterable[str], limit: int = 3) -> List[str]:
    """First-seen, case-insensitively unique, non-blank strings up to ``limit``."""
    out: List[str] = []
    seen: set[str] = set()
    for value in values:
        trimmed = value.strip()
        if not trimmed:
            continue
        key = trimmed.lower()
        if key in seen:
            continue
        seen.add(key)
        out.append(trimmed)
        if len(out) >= limit:
            break
    return out


def strip_focus_title_prefix(title: str) -> str:
    """Drop the card-type label a focus card title was generated with."""
    trimmed = title.strip()
    lowered = trimmed.lower()
    for prefix in FOCUS_TITLE_PREFIXES:
        if lowered.startswith(prefix):
            return trimmed[len(prefix):].strip()
    return trimmed


def first_non_blank(values: Iterable[str]) -> str | None:
    for value in values:
        if value and value.strip():
            return value
    return None


__all__ = [
    "FALLBACK_SKILL_ID",
    "as_skill_id",
    "dekebab",
    "first_non_blank",
    "label_from_skill_id",
    "strip_focus_title_prefix",
    "truncate",
    "unique_strings",
]
