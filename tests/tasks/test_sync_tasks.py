"""Tests for the Celery sync tasks and their plain-function cores."""

from __future__ import annotations

import pytest

from sift_sync.exceptions import ConfigurationError, SourceConnectionError, SyncExecutionError
from sift_sync.models.base import session_scope
from sift_sync.models.records import ImportedRecord
from sift_sync.models.repository import SqlConfigStore
from sift_sync.orchestration.orchestrator import SyncOrchestrator
from sift_sync.orchestration.scheduler import SyncScheduler
from sift_sync.tasks.sync import run_scheduler_tick, run_sync, run_sync_task
from sift_sync.testing import InMemorySourceReader, InMemoryWriter


def _orchestrator(store, clock, settings, reader, writer=None) -> SyncOrchestrator:
    return SyncOrchestrator(
        store,
        reader_factory=lambda source_type: reader,
        writer_factory=lambda data_source: writer or InMemoryWriter(),
        clock=clock,
        sleep=lambda seconds: None,
        settings=settings,
    )


def test_run_sync_returns_serialized_log(store, clock, sync_settings, make_data_source, member_rows):
    store.save_data_source(make_data_source())
    orchestrator = _orchestrator(store, clock, sync_settings, InMemorySourceReader(member_rows))

    result = run_sync("ds-members", orchestrator=orchestrator)

    assert result["status"] == "success"
    assert result["message"] == "Sync completed"
    assert result["sync_log"]["recordsWritten"] == 3
    assert result["sync_log"]["dataSourceId"] == "ds-members"


def test_failed_sync_is_reported_in_result(store, clock, sync_settings, make_data_source, member_rows):
    store.save_data_source(make_data_source(field_mappings=[]))
    orchestrator = _orchestrator(store, clock, sync_settings, InMemorySourceReader(member_rows))

    result = run_sync("ds-members", orchestrator=orchestrator)

    assert result["status"] == "failed"
    assert "is not mapped" in result["message"]


def test_trigger_during_running_sync_is_coalesced(store, clock, sync_settings, make_data_source):
    store.save_data_source(make_data_source())
    store.acquire_sync_lease("ds-members", "worker", 600, clock.now())
    orchestrator = _orchestrator(store, clock, sync_settings, InMemorySourceReader([]))

    result = run_sync("ds-members", orchestrator=orchestrator)

    assert result["status"] == "coalesced"
    assert result["sync_log"] is None
    assert store.list_sync_logs("ds-members") == []


def test_unknown_data_source_raises_execution_error(store, clock, sync_settings):
    orchestrator = _orchestrator(store, clock, sync_settings, InMemorySourceReader([]))

    with pytest.raises(SyncExecutionError) as exc_info:
        run_sync("missing", orchestrator=orchestrator)

    assert exc_info.value.report.classification == "configuration"
    assert exc_info.value.as_dict()["error_type"] == "DataSourceNotFoundError"


def test_missing_required_environment_blocks_task(monkeypatch, tmp_path, store, clock, sync_settings):
    (tmp_path / "settings.base.yaml").write_text(
        "version: 1\nrequired_env:\n  - SIFT_TEST_REQUIRED_TOKEN\n", encoding="utf-8"
    )
    monkeypatch.setenv("SIFT_CONFIG_DIR", str(tmp_path))
    monkeypatch.delenv("SIFT_TEST_REQUIRED_TOKEN", raising=False)
    from sift_sync.utils.config import clear_settings_cache

    clear_settings_cache()

    with pytest.raises(ConfigurationError, match="SIFT_TEST_REQUIRED_TOKEN"):
        run_sync("ds-members", orchestrator=_orchestrator(store, clock, sync_settings, InMemorySourceReader([])))


def test_run_scheduler_tick_summarizes_dispatches(store, clock, make_data_source):
    store.save_data_source(make_data_source(next_sync_at=clock.now()))
    dispatched: list[str] = []

    result = run_scheduler_tick(SyncScheduler(store, dispatch=dispatched.append, clock=clock))

    assert result == {"dispatched": ["ds-members"], "count": 1}
    assert dispatched == ["ds-members"]


def test_celery_task_runs_csv_sync_end_to_end(make_data_source):
    store = SqlConfigStore()
    store.save_data_source(
        make_data_source(
            source_type="csv",
            source_config={
                "data": (
                    "Email,First Name,Phone\n"
                    "ADA@example.com,Ada,2125551234\n"
                    "grace@example.com,Grace,\n"
                )
            },
        )
    )

    result = run_sync_task.run("ds-members")

    assert result["status"] == "success"
    assert result["sync_log"]["recordsWritten"] == 2
    with session_scope() as session:
        keys = sorted(row.record_key for row in session.query(ImportedRecord))
    assert keys == ["ada@example.com", "grace@example.com"]
    (log,) = store.list_sync_logs("ds-members")
    assert log.status == "success"


def test_celery_task_reports_failed_sync(make_data_source):
    SqlConfigStore().save_data_source(
        make_data_source(
            source_type="csv",
            source_config={},
            schedule=make_data_source().schedule.model_copy(update={"retry_on_failure": False}),
        )
    )

    result = run_sync_task.run("ds-members")

    assert result["status"] == "failed"
    assert "requires either 'path' or inline 'data'" in result["message"]


def test_source_errors_are_classified_as_retryable():
    from sift_sync.tasks.error_handling import classify_exception

    assert classify_exception(SourceConnectionError("down")) == ("source_connection", True)
