"""Shared FastAPI dependencies."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from fastapi import Depends

from ..models.repository import SqlConfigStore
from ..orchestration.interfaces import ConfigStore
from ..orchestration.scheduler import dispatch_via_celery
from ..orchestration.service import DataSourceService


def get_config_store() -> ConfigStore:
    """Return the config store backing the API."""

    return SqlConfigStore()


def get_sync_dispatcher() -> Callable[[str], Any]:
    """Return the callable that queues a sync for a data source id."""

    return dispatch_via_celery


def get_data_source_service(store: ConfigStore = Depends(get_config_store)) -> DataSourceService:
    return DataSourceService(store)
