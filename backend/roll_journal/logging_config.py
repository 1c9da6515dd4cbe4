import logging
import os
from logging.config import dictConfig
from typing import Optional

DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
TELEMETRY_LOG_FORMAT = "%(asctime)s TELEMETRY %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """Configure process logging; telemetry events get their own line format."""
    resolved = (level or os.getenv("ROLL_JOURNAL_LOG_LEVEL", "INFO")).upper()

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {"format": DEFAULT_LOG_FORMAT},
                "telemetry": {"format": TELEMETRY_LOG_FORMAT},
            },
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                },
                "telemetry": {
                    "class": "logging.StreamHandler",
                    "formatter": "telemetry",
                },
            },
            "loggers": {
                "roll_journal.telemetry": {
                    "handlers": ["telemetry"],
                    "level": resolved,
                    "propagate": False,
                },
            },
            "root": {
                "handlers": ["default"],
                "level": resolved,
            },
        }
    )

    if os.getenv("ROLL_JOURNAL_DEBUG_BUILDER", "0") == "1":
        for name in ("roll_journal.weekly_plan_builder", "roll_journal.positional_focus"):
            logging.getLogger(name).setLevel(logging.DEBUG)
