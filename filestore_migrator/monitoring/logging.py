"""
Structured logging for migration runs

Workers set a per-task context (run id, record id, position in the
enumeration) that is stamped onto every log record they emit. Because the
context lives in a ContextVar, concurrent workers never see each other's
values.
"""

import json
import logging
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any

migration_context: ContextVar[dict[str, Any]] = ContextVar("migration_context", default={})


def set_migration_context(
    run_id: str | None = None,
    record_id: str | None = None,
    position: str | None = None,
    category: str | None = None,
) -> None:
    """Set the logging context for the current task."""
    context = dict(migration_context.get({}))
    updates = {
        "run_id": run_id,
        "record_id": record_id,
        "position": position,
        "category": category,
    }
    context.update({k: v for k, v in updates.items() if v is not None})
    migration_context.set(context)


def clear_migration_context() -> None:
    migration_context.set({})


class MigrationJsonFormatter(logging.Formatter):
    """
    JSON formatter for migration logs with structured fields
    """

    _EXTRA_FIELDS = (
        "run_id",
        "record_id",
        "position",
        "category",
        "stage",
        "backend",
        "duration_ms",
        "error_type",
    )

    def format(self, record: logging.LogRecord) -> str:
        log_entry = self._build_base_entry(record)
        self._add_migration_context(log_entry)
        self._add_record_extras(log_entry, record)
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, default=str)

    def _build_base_entry(self, record: logging.LogRecord) -> dict[str, Any]:
        return {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

    def _add_migration_context(self, log_entry: dict[str, Any]) -> None:
        context = migration_context.get({})
        for key, value in context.items():
            log_entry.setdefault(key, value)

    def _add_record_extras(self, log_entry: dict[str, Any], record: logging.LogRecord) -> None:
        for field in self._EXTRA_FIELDS:
            value = getattr(record, field, None)
            if value not in (None, ""):
                log_entry[field] = value


class MigrationContextFilter(logging.Filter):
    """
    Logging filter that adds migration context to log records
    """

    def filter(self, record: logging.LogRecord) -> bool:
        context = migration_context.get({})

        # Explicit ``extra=`` values win over the task context
        for field in ("run_id", "record_id", "position", "category"):
            if not getattr(record, field, None):
                setattr(record, field, context.get(field, ""))

        return True
