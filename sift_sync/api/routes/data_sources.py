"""Data source configuration, sync trigger and sync log endpoints."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from fastapi import APIRouter, Depends, Query, status

from ...exceptions import ConfigurationError, SyncAlreadyRunningError
from ...orchestration.interfaces import ConfigStore
from ...orchestration.service import DataSourceService
from ...schemas.api import CancelResponse, SyncTriggerResponse
from ...schemas.sync import DataSource, SyncStatus
from ...utils.logging import setup_logger
from ..dependencies import get_config_store, get_data_source_service, get_sync_dispatcher

logger = setup_logger(__name__, context={"component": "DataSourcesAPI"})
router = APIRouter(prefix="/data-sources")


@router.get("")
def list_data_sources(store: ConfigStore = Depends(get_config_store)) -> list[dict[str, Any]]:
    return [data_source.to_wire() for data_source in store.list_data_sources()]


@router.get("/{data_source_id}")
def get_data_source(
    data_source_id: str, store: ConfigStore = Depends(get_config_store)
) -> dict[str, Any]:
    return store.get_data_source(data_source_id).to_wire()


@router.put("/{data_source_id}")
def save_data_source(
    data_source_id: str,
    data_source: DataSource,
    service: DataSourceService = Depends(get_data_source_service),
) -> dict[str, Any]:
    """Validate and store a data source configuration."""

    if data_source.id != data_source_id:
        raise ConfigurationError(
            f"Body id '{data_source.id}' does not match path id '{data_source_id}'"
        )
    return service.save_configuration(data_source).to_wire()


@router.post(
    "/{data_source_id}/sync",
    response_model=SyncTriggerResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
def trigger_sync(
    data_source_id: str,
    store: ConfigStore = Depends(get_config_store),
    dispatch: Callable[[str], Any] = Depends(get_sync_dispatcher),
) -> SyncTriggerResponse:
    """Queue a sync. A data source that is already syncing is rejected with 409."""

    data_source = store.get_data_source(data_source_id)
    if data_source.sync_status == SyncStatus.SYNCING:
        raise SyncAlreadyRunningError(data_source_id)

    result = dispatch(data_source_id)
    task_id = getattr(result, "id", None)
    logger.info(
        "Queued manual sync",
        extra={"data_source_id": data_source_id, "status": "queued"},
    )
    return SyncTriggerResponse(status="queued", data_source_id=data_source_id, task_id=task_id)


@router.post("/{data_source_id}/cancel", response_model=CancelResponse)
def cancel_sync(
    data_source_id: str, store: ConfigStore = Depends(get_config_store)
) -> CancelResponse:
    """Flag the running sync for cancellation; the worker stops at the next batch."""

    cancelled = store.request_cancellation(data_source_id)
    return CancelResponse(data_source_id=data_source_id, cancelled=cancelled)


@router.post("/{data_source_id}/acknowledge")
def acknowledge(
    data_source_id: str,
    service: DataSourceService = Depends(get_data_source_service),
) -> dict[str, Any]:
    return service.acknowledge_status(data_source_id).to_wire()


@router.get("/{data_source_id}/sync-logs")
def list_sync_logs(
    data_source_id: str,
    limit: int = Query(default=50, ge=1, le=500),
    service: DataSourceService = Depends(get_data_source_service),
) -> list[dict[str, Any]]:
    return [log.to_wire() for log in service.list_sync_logs(data_source_id, limit=limit)]
