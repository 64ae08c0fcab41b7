"""Tests for the SQLAlchemy-backed config store (SQLite)."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from sift_sync.exceptions import (
    DataSourceNotFoundError,
    InvalidStatusTransition,
    SyncLogFinalizedError,
)
from sift_sync.models.repository import SqlConfigStore
from sift_sync.schemas.sync import SyncLog, SyncStatus

NOW = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def sql_store(make_data_source) -> SqlConfigStore:
    store = SqlConfigStore()
    store.save_data_source(make_data_source(next_sync_at=NOW))
    return store


def test_data_source_round_trip(sql_store, make_data_source):
    loaded = sql_store.get_data_source("ds-members")

    assert loaded == make_data_source(next_sync_at=NOW)
    assert loaded.next_sync_at.tzinfo is not None
    assert loaded.column_config.columns[0].cleaning_rules[2].type == "validate_email"


def test_list_and_missing_data_sources(sql_store, make_data_source):
    sql_store.save_data_source(make_data_source(id="ds-alpha", name="Alpha"))

    assert [source.id for source in sql_store.list_data_sources()] == ["ds-alpha", "ds-members"]
    with pytest.raises(DataSourceNotFoundError):
        sql_store.get_data_source("missing")


def test_save_upserts_existing_row(sql_store, make_data_source):
    sql_store.save_data_source(make_data_source(name="Renamed", is_active=False))

    loaded = sql_store.get_data_source("ds-members")
    assert loaded.name == "Renamed"
    assert loaded.is_active is False
    assert len(sql_store.list_data_sources()) == 1


def test_update_data_source_validates_and_protects_status(sql_store):
    updated = sql_store.update_data_source("ds-members", retry_count=2, last_sync_at=NOW)

    assert updated.retry_count == 2
    assert updated.last_sync_at == NOW
    with pytest.raises(ValueError):
        sql_store.update_data_source("ds-members", sync_status=SyncStatus.SUCCESS)
    with pytest.raises(DataSourceNotFoundError):
        sql_store.update_data_source("missing", retry_count=1)


def test_transition_status_enforces_state_machine(sql_store):
    assert sql_store.transition_status("ds-members", SyncStatus.SYNCING).sync_status == SyncStatus.SYNCING

    with pytest.raises(InvalidStatusTransition):
        sql_store.transition_status("ds-members", SyncStatus.IDLE)
    assert sql_store.get_data_source("ds-members").sync_status == SyncStatus.SYNCING


def test_lease_is_exclusive_until_expiry(sql_store):
    assert sql_store.acquire_sync_lease("ds-members", "worker-a", 60, NOW)
    assert not sql_store.acquire_sync_lease("ds-members", "worker-b", 60, NOW + timedelta(seconds=30))
    assert sql_store.acquire_sync_lease("ds-members", "worker-b", 60, NOW + timedelta(seconds=61))


def test_renewal_extends_lease_for_owner_only(sql_store):
    assert sql_store.acquire_sync_lease("ds-members", "worker-a", 60, NOW)

    assert sql_store.renew_sync_lease("ds-members", "worker-a", 60, NOW + timedelta(seconds=50))
    assert not sql_store.renew_sync_lease("ds-members", "worker-b", 60, NOW + timedelta(seconds=50))
    assert not sql_store.acquire_sync_lease("ds-members", "worker-b", 60, NOW + timedelta(seconds=100))


def test_expired_lease_cannot_be_renewed(sql_store):
    assert sql_store.acquire_sync_lease("ds-members", "worker-a", 60, NOW)
    assert sql_store.acquire_sync_lease("ds-members", "worker-b", 60, NOW + timedelta(seconds=61))

    assert not sql_store.renew_sync_lease("ds-members", "worker-a", 60, NOW + timedelta(seconds=62))
    assert not sql_store.acquire_sync_lease("ds-members", "worker-a", 60, NOW + timedelta(seconds=62))


def test_release_only_by_owner(sql_store):
    assert sql_store.acquire_sync_lease("ds-members", "worker-a", 60, NOW)

    sql_store.release_sync_lease("ds-members", "worker-b")
    assert not sql_store.acquire_sync_lease("ds-members", "worker-b", 60, NOW)

    sql_store.release_sync_lease("ds-members", "worker-a")
    assert sql_store.acquire_sync_lease("ds-members", "worker-b", 60, NOW)


def test_cancellation_requires_running_sync(sql_store):
    assert sql_store.request_cancellation("ds-members") is False
    assert sql_store.cancellation_requested("ds-members") is False

    sql_store.acquire_sync_lease("ds-members", "worker-a", 60, NOW)
    assert sql_store.request_cancellation("ds-members") is True
    assert sql_store.cancellation_requested("ds-members") is True

    sql_store.release_sync_lease("ds-members", "worker-a")
    assert sql_store.cancellation_requested("ds-members") is False


def test_sync_log_is_finalized_once(sql_store):
    log = sql_store.append_sync_log(
        SyncLog(data_source_id="ds-members", status="running", attempt=1, started_at=NOW)
    )
    assert log.id is not None
    assert not log.is_finalized

    finished = log.model_copy(
        update={
            "status": "success",
            "completed_at": NOW + timedelta(seconds=5),
            "records_processed": 3,
            "records_written": 3,
            "errors": ["Row 2: Email: Invalid email: 'x'"],
        }
    )
    stored = sql_store.finalize_sync_log(finished)

    assert stored.status == "success"
    assert stored.records_written == 3
    assert stored.errors == ["Row 2: Email: Invalid email: 'x'"]
    with pytest.raises(SyncLogFinalizedError):
        sql_store.finalize_sync_log(finished)


def test_finalize_requires_appended_log(sql_store):
    with pytest.raises(ValueError):
        sql_store.finalize_sync_log(SyncLog(data_source_id="ds-members", started_at=NOW))


def test_sync_logs_listed_newest_first(sql_store):
    for started, attempt in ((NOW, 1), (NOW, 2), (NOW + timedelta(hours=1), 1)):
        sql_store.append_sync_log(
            SyncLog(data_source_id="ds-members", attempt=attempt, started_at=started)
        )

    logs = sql_store.list_sync_logs("ds-members")
    assert [(log.started_at, log.attempt) for log in logs] == [
        (NOW + timedelta(hours=1), 1),
        (NOW, 2),
        (NOW, 1),
    ]
    assert len(sql_store.list_sync_logs("ds-members", limit=2)) == 2


def test_sync_log_for_unknown_data_source_is_rejected(sql_store):
    with pytest.raises(DataSourceNotFoundError):
        sql_store.append_sync_log(SyncLog(data_source_id="missing", started_at=NOW))
