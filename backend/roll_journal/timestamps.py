"""ISO-8601 helpers for journal timestamps, which are stored as strings."""

from __future__ import annotations

import math
from datetime import date, datetime, timedelta, timezone
from typing import Optional

EPOCH_ISO = "1970-01-01T00:00:00.000Z"
SECONDS_PER_DAY = 24 * 60 * 60


def parse_iso_timestamp(value: str) -> Optional[datetime]:
    """Parse an ISO timestamp (``Z`` suffix allowed); naive values are read as UTC."""
    candidate = value.strip()
    if not candidate:
        return None
    if candidate.endswith(("Z", "z")):
        candidate = candidate[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def whole_days_between(earlier: str, later: str) -> Optional[int]:
    """Whole days from ``earlier`` to ``later``, floored at zero; ``None`` if either is unparsable."""
    start = parse_iso_timestamp(earlier)
    end = parse_iso_timestamp(later)
    if start is None or end is None:
        return None
    return max(0, math.floor((end - start).total_seconds() / SECONDS_PER_DAY))


def normalize_week_date(value: str) -> str:
    """Return the ISO Monday (UTC calendar date) of the week containing ``value``.

    Unparsable input is returned unchanged.
    """
    parsed = parse_iso_timestamp(value)
    if parsed is None:
        try:
            day = date.fromisoformat(value.strip())
        except ValueError:
            return value
    else:
        day = parsed.astimezone(timezone.utc).date()
    return (day - timedelta(days=day.weekday())).isoformat()


__all__ = ["EPOCH_ISO", "normalize_week_date", "parse_iso_timestamp", "whole_days_between"]
