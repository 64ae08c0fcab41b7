"""Column analysis endpoint."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from ...cleaning.analyzer import analyze_columns, generate_default_column_config
from ...orchestration.service import DataSourceService
from ...schemas.api import AnalyzeRequest
from ...utils.config import get_settings
from ..dependencies import get_data_source_service

router = APIRouter()


@router.post("/analyze")
def analyze(
    request: AnalyzeRequest,
    service: DataSourceService = Depends(get_data_source_service),
) -> dict[str, Any]:
    """
    Detect column types for a sample of rows.

    Rows are taken from the request body or, when ``source_type`` is given,
    read from the source. The response carries the analysis and a suggested
    default column configuration.
    """
    if request.rows is not None:
        rows = request.rows
        if request.sample_limit is not None:
            rows = rows[: request.sample_limit]
        result = analyze_columns(
            rows,
            request.column_names,
            sample_limit=get_settings().preview_sample_values,
        )
    else:
        result = service.analyze_source(
            request.source_type or "",
            request.source_config,
            limit=request.sample_limit,
        )

    payload = result.to_wire()
    payload["suggested_columns"] = [
        column.to_wire() for column in generate_default_column_config(result.columns)
    ]
    return payload
