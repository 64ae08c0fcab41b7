"""Tests for structured sync logging."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta, timezone

import pytest

from sift_sync.schemas.sync import SyncLog
from sift_sync.utils.logging import ContextualFormatter, log_sync_attempt, setup_logger

STARTED = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)


def _log(**overrides) -> SyncLog:
    fields = {
        "id": "log-1",
        "data_source_id": "ds-members",
        "status": "success",
        "attempt": 2,
        "started_at": STARTED,
        "completed_at": STARTED + timedelta(milliseconds=1500),
        "records_processed": 3,
        "records_failed": 1,
        "records_written": 2,
    }
    fields.update(overrides)
    return SyncLog(**fields)


def test_setup_logger_binds_component_over_defaults() -> None:
    adapter = setup_logger("sift_sync.tests.logging", context={"component": "tests"})

    assert adapter.extra["component"] == "tests"
    assert adapter.extra["data_source_id"] == "-"


def test_bound_context_is_layered_under_per_call_extra(caplog: pytest.LogCaptureFixture) -> None:
    adapter = setup_logger("sift_sync.tests.bind", context={"component": "tests"})
    bound = adapter.bind(data_source_id="ds-1", status="running")

    with caplog.at_level(logging.INFO, logger="sift_sync.tests.bind"):
        bound.info("hello", extra={"status": "coalesced"})

    record = caplog.records[-1]
    assert record.data_source_id == "ds-1"
    assert record.component == "tests"
    assert record.status == "coalesced"
    assert adapter.extra["data_source_id"] == "-"


def test_formatter_fills_missing_fields_and_renders_summary_json() -> None:
    formatter = ContextualFormatter()
    bare = logging.LogRecord("x", logging.INFO, __file__, 1, "message", None, None)
    with_summary = logging.LogRecord("x", logging.INFO, __file__, 1, "done", None, None)
    with_summary.summary = {"written": 3, "failed": 0}

    assert "data_source_id=-" in formatter.format(bare)
    assert formatter.format(bare).endswith("| message")
    assert 'summary={"failed": 0, "written": 3}' in formatter.format(with_summary)


def test_successful_attempt_logs_counts_at_info(caplog: pytest.LogCaptureFixture) -> None:
    adapter = setup_logger("sift_sync.tests.attempts")

    with caplog.at_level(logging.INFO, logger="sift_sync.tests.attempts"):
        log_sync_attempt(adapter, _log())

    record = caplog.records[-1]
    assert record.levelno == logging.INFO
    assert record.getMessage() == "Sync attempt 2 succeeded"
    assert record.sync_log_id == "log-1"
    assert record.duration_ms == 1500
    assert record.summary == {"processed": 3, "failed": 1, "dropped": 0, "written": 2}
    rendered = ContextualFormatter().format(record).split("summary=")[1].split(" | ")[0]
    assert json.loads(rendered)["written"] == 2
    assert isinstance(record.summary, dict)


def test_failed_attempt_logs_reason_at_error(caplog: pytest.LogCaptureFixture) -> None:
    adapter = setup_logger("sift_sync.tests.failures")

    with caplog.at_level(logging.INFO, logger="sift_sync.tests.failures"):
        log_sync_attempt(
            adapter,
            _log(status="failed", error_message="source down", completed_at=None),
            classification="source_connection",
        )

    record = caplog.records[-1]
    assert record.levelno == logging.ERROR
    assert record.getMessage() == "Sync attempt 2 failed: source down"
    assert record.classification == "source_connection"
    assert record.duration_ms == "-"
