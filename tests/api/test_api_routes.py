"""HTTP tests for the Sift_Sync API using in-memory collaborators."""

from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from sift_sync.api.dependencies import get_config_store, get_sync_dispatcher
from sift_sync.api.main import app
from sift_sync.schemas.sync import SyncLog, SyncStatus


@pytest.fixture
def dispatched() -> list[str]:
    return []


@pytest.fixture
def client(store, dispatched) -> Iterator[TestClient]:
    def _dispatch(data_source_id: str) -> SimpleNamespace:
        dispatched.append(data_source_id)
        return SimpleNamespace(id=f"task-{data_source_id}")

    app.dependency_overrides[get_config_store] = lambda: store
    app.dependency_overrides[get_sync_dispatcher] = lambda: _dispatch
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def test_health_reports_database_status(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "service": "sift_sync", "database": {"status": "ok"}}


def test_metrics_endpoint_exposes_sync_counters(client):
    response = client.get("/metrics")

    assert response.status_code == 200
    assert "sync_attempts_total" in response.text


def test_metrics_endpoint_counts_data_sources_by_status(client, store, make_data_source):
    store.save_data_source(make_data_source(id="ds-idle"))
    store.save_data_source(make_data_source(id="ds-failed", sync_status=SyncStatus.FAILED))

    response = client.get("/metrics")

    assert response.status_code == 200
    assert 'data_sources{status="idle"} 1.0' in response.text
    assert 'data_sources{status="failed"} 1.0' in response.text
    assert 'data_sources{status="syncing"} 0.0' in response.text


def test_analyze_inline_rows(client):
    response = client.post(
        "/api/v1/analyze",
        json={
            "rows": [
                {"Email": "ada@example.com", "Visits": "3"},
                {"Email": "grace@example.com", "Visits": ""},
                {"Email": "linus@example.com", "Visits": "12"},
            ],
            "sample_limit": 2,
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["total_rows"] == 2
    assert [(column["name"], column["detectedType"]) for column in body["columns"]] == [
        ("Email", "email"),
        ("Visits", "integer"),
    ]
    assert body["columns"][1]["nullCount"] == 1
    assert [column["targetName"] for column in body["suggested_columns"]] == ["email", "visits"]


def test_analyze_reads_from_source(client):
    response = client.post(
        "/api/v1/analyze",
        json={"source_type": "csv", "source_config": {"data": "Phone\n2125551234\n(415) 555-0100\n"}},
    )

    assert response.status_code == 200
    assert response.json()["columns"][0]["detectedType"] == "phone"


def test_analyze_requires_rows_or_source(client):
    assert client.post("/api/v1/analyze", json={}).status_code == 422


def test_analyze_unknown_source_type(client):
    response = client.post("/api/v1/analyze", json={"source_type": "ftp"})

    assert response.status_code == 422
    assert response.json()["error_type"] == "SourceReaderNotFoundError"


def test_validate_schedule_previews_next_run(client):
    response = client.post(
        "/api/v1/schedules/validate",
        json={
            "schedule": {"frequency": "daily", "time": "02:00", "timezone": "UTC"},
            "now": "2024-01-15T12:00:00Z",
        },
    )

    body = response.json()
    assert body["valid"] is True
    assert body["description"] == "Daily at 02:00 UTC"
    assert datetime.fromisoformat(body["next_run"].replace("Z", "+00:00")) == datetime(
        2024, 1, 16, 2, 0, tzinfo=timezone.utc
    )


def test_validate_schedule_returns_errors(client):
    response = client.post("/api/v1/schedules/validate", json={"schedule": {"frequency": "weekly"}})

    body = response.json()
    assert response.status_code == 200
    assert body["valid"] is False
    assert "Day of week is required for weekly schedules" in body["errors"]
    assert body["next_run"] is None


def test_schedule_options(client):
    body = client.get("/api/v1/schedules/options").json()

    assert [option["value"] for option in body["frequencies"]][:3] == ["manual", "hourly", "daily"]
    assert body["timezones"]


def test_save_and_fetch_data_source(client, store, make_data_source):
    payload = make_data_source().to_wire()

    response = client.put("/api/v1/data-sources/ds-members", json=payload)

    assert response.status_code == 200
    assert response.json()["sync_status"] == "idle"
    assert response.json()["next_sync_at"] is not None
    assert store.get_data_source("ds-members").name == "Members export"
    assert [item["id"] for item in client.get("/api/v1/data-sources").json()] == ["ds-members"]
    assert client.get("/api/v1/data-sources/ds-members").json()["destination_type"] == "members"


def test_save_rejects_mismatched_id(client, make_data_source):
    response = client.put("/api/v1/data-sources/other", json=make_data_source().to_wire())

    assert response.status_code == 422
    assert response.json()["error_type"] == "ConfigurationError"


def test_save_rejects_invalid_mappings(client, make_data_source):
    payload = make_data_source(field_mappings=[]).to_wire()

    response = client.put("/api/v1/data-sources/ds-members", json=payload)

    assert response.status_code == 422
    assert response.json()["errors"] == ["Required field 'Email' (email) is not mapped"]


def test_unknown_data_source_is_404(client):
    response = client.get("/api/v1/data-sources/missing")

    assert response.status_code == 404
    assert response.json()["error_type"] == "DataSourceNotFoundError"


def test_trigger_sync_queues_task(client, store, dispatched, make_data_source):
    store.save_data_source(make_data_source())

    response = client.post("/api/v1/data-sources/ds-members/sync")

    assert response.status_code == 202
    assert response.json() == {
        "status": "queued",
        "data_source_id": "ds-members",
        "task_id": "task-ds-members",
    }
    assert dispatched == ["ds-members"]


def test_trigger_sync_while_syncing_is_conflict(client, store, dispatched, make_data_source):
    store.save_data_source(make_data_source(sync_status=SyncStatus.SYNCING))

    response = client.post("/api/v1/data-sources/ds-members/sync")

    assert response.status_code == 409
    assert response.json()["error_type"] == "SyncAlreadyRunningError"
    assert dispatched == []


def test_cancel_flags_running_sync(client, store, make_data_source):
    store.save_data_source(make_data_source())

    assert client.post("/api/v1/data-sources/ds-members/cancel").json()["cancelled"] is False

    store.acquire_sync_lease("ds-members", "worker", 60, datetime.now(timezone.utc))
    assert client.post("/api/v1/data-sources/ds-members/cancel").json() == {
        "data_source_id": "ds-members",
        "cancelled": True,
    }
    assert store.cancellation_requested("ds-members")


def test_acknowledge_moves_finished_sync_to_idle(client, store, make_data_source):
    store.save_data_source(make_data_source(sync_status=SyncStatus.FAILED))

    response = client.post("/api/v1/data-sources/ds-members/acknowledge")

    assert response.status_code == 200
    assert response.json()["sync_status"] == "idle"


def test_acknowledge_running_sync_is_conflict(client, store, make_data_source):
    store.save_data_source(make_data_source(sync_status=SyncStatus.SYNCING))

    assert client.post("/api/v1/data-sources/ds-members/acknowledge").status_code == 409


def test_sync_logs_are_listed_newest_first(client, store, make_data_source):
    store.save_data_source(make_data_source())
    for hour in (1, 2, 3):
        store.append_sync_log(
            SyncLog(
                data_source_id="ds-members",
                started_at=datetime(2024, 1, 15, hour, tzinfo=timezone.utc),
            )
        )

    response = client.get("/api/v1/data-sources/ds-members/sync-logs", params={"limit": 2})

    assert response.status_code == 200
    started = [log["startedAt"] for log in response.json()]
    assert len(started) == 2
    assert started[0].startswith("2024-01-15T03:00:00")
    assert client.get("/api/v1/data-sources/ds-members/sync-logs", params={"limit": 0}).status_code == 422
