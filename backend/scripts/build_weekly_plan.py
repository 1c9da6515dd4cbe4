"""Build a weekly plan offline from an exported signals document.

Operators use this to reproduce or preview a plan for one athlete without going through the
API: the input holds the raw stored items the service would have fetched.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from roll_journal.config import get_settings
from roll_journal.logging_config import configure_logging
from roll_journal.session_review import list_recent_one_thing_cues
from roll_journal.weekly_plan_records import parse_entry_record
from roll_journal.weekly_plan_service import build_weekly_plan_from_records, most_recent_items

LOGGER = logging.getLogger("roll_journal.scripts.build_weekly_plan")


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Build a weekly training plan from exported journal items.")
    parser.add_argument("signals", help="Path to a JSON document with athleteId, entries, checkoffs, curriculumGraph and priorPlans.")
    parser.add_argument(
        "--week-of",
        default=None,
        help="Any date inside the target week (default: today, UTC).",
    )
    parser.add_argument(
        "--now",
        default=None,
        help="Generation timestamp in ISO-8601 (default: current UTC time).",
    )
    parser.add_argument(
        "--output",
        default=None,
        help="Write the plan record here instead of stdout.",
    )
    return parser.parse_args(argv)


def load_signals(path: Path) -> Dict[str, Any]:
    document = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(document, dict):
        raise ValueError("Signals document must be a JSON object.")
    athlete_id = document.get("athleteId")
    if not isinstance(athlete_id, str) or not athlete_id.strip():
        raise ValueError("Signals document must include a non-empty athleteId.")
    return document


def _items(document: Dict[str, Any], key: str) -> list:
    value = document.get(key)
    return value if isinstance(value, list) else []


def run(args: argparse.Namespace) -> Dict[str, Any]:
    settings = get_settings()
    document = load_signals(Path(args.signals))
    now_iso = args.now or _utc_now_iso()
    week_of = args.week_of or now_iso[:10]

    entry_items = most_recent_items(_items(document, "entries"), settings.entry_fetch_limit, "createdAt")
    prior_plan_items = most_recent_items(
        _items(document, "priorPlans"),
        settings.prior_plan_fetch_limit,
        "weekOf",
        "updatedAt",
    )
    graph_item = document.get("curriculumGraph")

    result = build_weekly_plan_from_records(
        document["athleteId"].strip(),
        entry_items=entry_items,
        checkoff_items=_items(document, "checkoffs"),
        graph_item=graph_item if isinstance(graph_item, dict) else None,
        prior_plan_items=prior_plan_items,
        week_of=week_of,
        now_iso=now_iso,
    )
    plan = result.plan
    LOGGER.info(
        "Plan %s: primary skills %s, %d focus cards",
        plan.plan_id,
        ", ".join(plan.primary_skills),
        len(plan.positional_focus.cards),
    )
    entries = [entry for entry in (parse_entry_record(item) for item in entry_items) if entry is not None]
    for cue in list_recent_one_thing_cues(entries, limit=3):
        LOGGER.info("Recent one-thing cue (%s): %s", cue.created_at or cue.entry_id, cue.cue)
    return result.plan_record


def main(argv: Optional[list[str]] = None) -> int:
    configure_logging()
    args = parse_args(argv)
    try:
        record = run(args)
    except Exception as exc:  # noqa: BLE001
        LOGGER.exception("Weekly plan build failed: %s", exc)
        return 1

    rendered = json.dumps(record, indent=2, sort_keys=False)
    if args.output:
        Path(args.output).write_text(rendered + "\n", encoding="utf-8")
        LOGGER.info("Wrote plan record to %s", args.output)
    else:
        sys.stdout.write(rendered + "\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
