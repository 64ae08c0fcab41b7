"""Prometheus scrape endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy.exc import SQLAlchemyError

from ...monitoring.metrics import record_data_source_statuses
from ...orchestration.interfaces import ConfigStore
from ...utils.logging import setup_logger
from ..dependencies import get_config_store

router = APIRouter()
logger = setup_logger(__name__, context={"component": "api.metrics"})


@router.get("/metrics", include_in_schema=False)
def metrics(store: ConfigStore = Depends(get_config_store)) -> Response:
    """Refresh the per-status data source gauge, then render every sync metric."""

    try:
        record_data_source_statuses(source.sync_status for source in store.list_data_sources())
    except SQLAlchemyError as exc:
        # keep serving the counters; the gauge holds its last scraped values
        logger.warning("Could not read data source statuses: %s", exc)
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
