"""Structured Logging — JSON formatter and setup for planner observability.

Invariants:
    - All logs include timestamp, level, logger name, and message
    - Extra fields (binder_id, set_id, step, completed_steps, error_code, item_count)
      surfaced when present
    - A BinderPlannerError attached as exc_info is logged with its error envelope,
      so log lines and host-facing reports carry the same code and context
    - JSON format in production, human-readable in development

Design Decisions:
    - JSONFormatter on stdlib logging: no extra dependency
    - setup_logging called once by the host application on startup
"""

import json
import logging
from datetime import datetime, timezone

from binder_planner.config import Settings, get_settings
from binder_planner.core.errors import BinderPlannerError

EXTRA_FIELDS = (
    "binder_id", "set_id", "step", "completed_steps", "error_code",
    "item_count", "move_count", "target_page",
)


class JSONFormatter(logging.Formatter):
    """One JSON object per record, planner error envelope included."""

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in EXTRA_FIELDS:
            val = record.__dict__.get(key)
            if val is not None:
                log[key] = val
        if record.exc_info:
            err = record.exc_info[1]
            if isinstance(err, BinderPlannerError):
                log["error"] = err.to_report()["error"]
                log.setdefault("error_code", err.code)
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO", fmt: str = "json") -> logging.Handler:
    """Configure root logging. Returns the installed handler."""
    handler = logging.StreamHandler()
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s: %(message)s",
        ))
    logging.root.addHandler(handler)
    logging.root.setLevel(getattr(logging, level.upper(), logging.INFO))
    return handler


def setup_logging_from_settings(settings: Settings | None = None) -> logging.Handler:
    """setup_logging with BINDER_LOG_LEVEL / BINDER_LOG_FORMAT."""
    settings = settings or get_settings()
    return setup_logging(settings.log_level, settings.log_format)
