"""Structured logging for sync runs.

Every record carries the sync context fields below. Fields a call does not
supply render as ``-``, and a mapping ``summary`` renders as sorted JSON.
"""

from __future__ import annotations

import json
import logging
import sys
from threading import Lock
from typing import TYPE_CHECKING, Any, Final

from .config import get_settings

if TYPE_CHECKING:
    from ..schemas.sync import SyncLog

CONTEXT_FIELDS: Final[tuple[str, ...]] = (
    "data_source_id",
    "component",
    "sync_log_id",
    "attempt",
    "status",
    "duration_ms",
    "summary",
)

LOG_FORMAT: Final[str] = (
    "%(asctime)s | %(levelname)s | %(name)s | "
    + " | ".join(f"{name}=%({name})s" for name in CONTEXT_FIELDS)
    + " | %(message)s"
)

DEFAULT_CONTEXT: Final[dict[str, str]] = dict.fromkeys(CONTEXT_FIELDS, "-")

_configured = False
_configure_lock: Final = Lock()


class ContextualFormatter(logging.Formatter):
    def __init__(self, fmt: str = LOG_FORMAT, defaults: dict[str, str] | None = None) -> None:
        super().__init__(fmt)
        self._defaults = dict(DEFAULT_CONTEXT if defaults is None else defaults)

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        for key, value in self._defaults.items():
            if not hasattr(record, key):
                setattr(record, key, value)
        summary = record.__dict__.get("summary")
        if isinstance(summary, dict):
            record = logging.makeLogRecord(
                {**record.__dict__, "summary": json.dumps(summary, default=str, sort_keys=True)}
            )
        return super().format(record)


def configure_logging() -> None:
    """Install the contextual formatter on the root logger once per process."""

    global _configured
    with _configure_lock:
        if _configured:
            return

        level = getattr(logging, get_settings().log_level, logging.INFO)
        root = logging.getLogger()
        root.setLevel(level)
        formatter = ContextualFormatter()
        if not root.handlers:
            handler = logging.StreamHandler(sys.stdout)
            handler.setFormatter(formatter)
            root.addHandler(handler)
        else:
            for handler in root.handlers:
                handler.setFormatter(formatter)
        _configured = True


class SyncLoggerAdapter(logging.LoggerAdapter):
    """Adapter whose per-call ``extra`` is layered over its bound context."""

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:  # type: ignore[override]
        kwargs["extra"] = {**(self.extra or {}), **(kwargs.get("extra") or {})}
        return msg, kwargs

    def bind(self, **context: Any) -> SyncLoggerAdapter:
        """Return an adapter for the same logger with ``context`` added."""

        return SyncLoggerAdapter(self.logger, {**(self.extra or {}), **context})


def setup_logger(
    name: str,
    *,
    level: str | None = None,
    context: dict[str, Any] | None = None,
) -> SyncLoggerAdapter:
    """Return a sync logger for ``name``.

    Args:
        name: Logger name, normally the module's ``__name__``.
        level: Optional level override for this logger.
        context: Context fields bound to every record, typically ``component``.
    """

    configure_logging()
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO) if level else logging.NOTSET)
    return SyncLoggerAdapter(logger, {**DEFAULT_CONTEXT, **(context or {})})


def log_sync_attempt(
    logger: logging.Logger | logging.LoggerAdapter,
    log: SyncLog,
    **extra_context: Any,
) -> None:
    """Log a finalized attempt: INFO when it succeeded, ERROR otherwise.

    The record's ``summary`` holds the attempt's record counts.
    """

    duration_ms: int | str = "-"
    if log.completed_at is not None:
        duration_ms = int((log.completed_at - log.started_at).total_seconds() * 1000)

    context: dict[str, Any] = {
        **extra_context,
        "data_source_id": log.data_source_id,
        "sync_log_id": log.id or "-",
        "attempt": log.attempt,
        "status": log.status,
        "duration_ms": duration_ms,
        "summary": {
            "processed": log.records_processed,
            "failed": log.records_failed,
            "dropped": log.records_dropped,
            "written": log.records_written,
        },
    }
    if log.status == "success":
        logger.info("Sync attempt %s succeeded", log.attempt, extra=context)
    else:
        reason = log.error_message or "unknown error"
        logger.error("Sync attempt %s failed: %s", log.attempt, reason, extra=context)
