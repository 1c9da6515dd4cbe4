"""In-process telemetry for weekly plan generation and coach edits."""

from __future__ import annotations

import json
import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from threading import RLock
from typing import Any, Callable, Dict, Iterator, List

logger = logging.getLogger("roll_journal.telemetry")

WEEKLY_PLAN_GENERATED = "weekly_plan_generated"
WEEKLY_PLAN_UPDATED = "weekly_plan_updated"

TelemetryListener = Callable[["TelemetryEvent"], None]


@dataclass(frozen=True)
class TelemetryEvent:
    name: str
    payload: Dict[str, Any]

    @property
    def status(self) -> str:
        return str(self.payload.get("status", "ok"))


_listeners: List[TelemetryListener] = []
_lock = RLock()


def register_listener(listener: TelemetryListener) -> None:
    """Register an in-process listener (used in tests)."""
    with _lock:
        _listeners.append(listener)


def clear_listeners() -> None:
    with _lock:
        _listeners.clear()


def emit_event(name: str, **fields: Any) -> TelemetryEvent:
    """Fan a structured event out to listeners and the telemetry log channel."""
    event = TelemetryEvent(name=name, payload={key: _plain(value) for key, value in fields.items()})

    with _lock:
        listeners = list(_listeners)

    for listener in listeners:
        try:
            listener(event)
        except Exception:  # noqa: BLE001
            logger.exception("Telemetry listener failed for %s", name)

    logger.info(json.dumps({"event": name, **event.payload}, sort_keys=True, default=str))
    return event


@contextmanager
def track_operation(name: str, **fields: Any) -> Iterator[Dict[str, Any]]:
    """Time a unit of work and emit one ok/error event when it finishes.

    The yielded dict collects extra fields (counts, identifiers) that are only known once
    the work has run. Exceptions are reported and re-raised unchanged.
    """
    extra: Dict[str, Any] = {}
    start = time.perf_counter()
    try:
        yield extra
    except Exception as exc:
        emit_event(
            name,
            **fields,
            **extra,
            status="error",
            duration_ms=_elapsed_ms(start),
            error=str(exc),
            exception_type=exc.__class__.__name__,
        )
        raise
    emit_event(name, **fields, **extra, status="ok", duration_ms=_elapsed_ms(start))


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000.0, 2)


def _plain(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    return value


__all__ = [
    "TelemetryEvent",
    "WEEKLY_PLAN_GENERATED",
    "WEEKLY_PLAN_UPDATED",
    "clear_listeners",
    "emit_event",
    "register_listener",
    "track_operation",
]
