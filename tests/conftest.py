"""Pytest configuration - no path manipulation, rely on proper package installation."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

import pytest

from sift_sync.models.base import reset_engine
from sift_sync.schemas.columns import ColumnConfig, ColumnConfiguration
from sift_sync.schemas.mapping import FieldMapping
from sift_sync.schemas.rules import LowercaseRule, TrimRule, ValidateEmailRule
from sift_sync.schemas.schedule import ScheduleConfiguration
from sift_sync.schemas.sync import DataSource
from sift_sync.testing import FrozenClock, InMemoryConfigStore
from sift_sync.utils.config import GlobalSettings, clear_settings_cache


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch, tmp_path_factory: pytest.TempPathFactory):
    """Point every test at its own SQLite database and an empty config directory."""

    db_path = tmp_path_factory.mktemp("sqlite-db") / "sift_sync.sqlite"
    monkeypatch.setenv("SIFT_DATABASE_URL", f"sqlite:///{db_path}")
    monkeypatch.setenv("SIFT_CONFIG_DIR", str(tmp_path_factory.mktemp("config")))
    monkeypatch.delenv("SIFT_CONFIG_PROFILE", raising=False)

    clear_settings_cache()
    reset_engine()
    yield
    reset_engine()
    clear_settings_cache()


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def store() -> InMemoryConfigStore:
    return InMemoryConfigStore()


@pytest.fixture
def sync_settings() -> GlobalSettings:
    """Small batches and a single worker keep orchestrator tests deterministic."""

    return GlobalSettings(
        sync_batch_size=2,
        sync_row_concurrency=1,
        sync_timeout_seconds=600,
        sync_lease_renew_seconds=3600,
        error_sample_limit=50,
    )


@pytest.fixture
def member_rows() -> list[dict[str, Any]]:
    return [
        {"Email": " Ada@Example.com ", "First Name": "Ada", "Phone": "2125551234"},
        {"Email": "grace@example.com", "First Name": "Grace", "Phone": ""},
        {"Email": "linus@example.com", "First Name": "Linus", "Phone": "(415) 555-0100"},
    ]


@pytest.fixture
def member_columns() -> ColumnConfiguration:
    return ColumnConfiguration(
        columns=[
            ColumnConfig(
                source_name="Email",
                target_name="email",
                cleaning_rules=[TrimRule(), LowercaseRule(), ValidateEmailRule(on_invalid="error")],
            ),
            ColumnConfig(source_name="First Name", target_name="first_name", cleaning_rules=[TrimRule()]),
            ColumnConfig(source_name="Phone", target_name="phone"),
        ]
    )


@pytest.fixture
def make_data_source(member_columns: ColumnConfiguration) -> Callable[..., DataSource]:
    """Build a members data source; keyword arguments override any field."""

    def _factory(**overrides: Any) -> DataSource:
        fields: dict[str, Any] = {
            "id": "ds-members",
            "name": "Members export",
            "source_type": "memory",
            "source_config": {},
            "column_config": member_columns,
            "destination_type": "members",
            "field_mappings": [
                FieldMapping(target_field="email", source_column="Email", required=True),
                FieldMapping(target_field="first_name", source_column="First Name"),
                FieldMapping(target_field="phone", source_column="Phone"),
            ],
            "schedule": ScheduleConfiguration(
                frequency="daily",
                time="02:00",
                timezone="UTC",
                retry_on_failure=True,
                max_retries=2,
                retry_delay_minutes=5,
            ),
        }
        fields.update(overrides)
        return DataSource(**fields)

    return _factory
