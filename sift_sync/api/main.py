"""FastAPI application for Sift_Sync service."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from ..exceptions import (
    ConfigurationError,
    DataSourceNotFoundError,
    DestinationSchemaNotFoundError,
    InvalidStatusTransition,
    SiftSyncError,
    SourceReaderNotFoundError,
    SyncAlreadyRunningError,
    SyncConnectionError,
)
from ..utils.config import ensure_runtime_configuration, get_settings
from ..utils.logging import setup_logger

logger = setup_logger(__name__, context={"component": "FastAPI"})

_STATUS_CODES: tuple[tuple[type[SiftSyncError], int], ...] = (
    (DataSourceNotFoundError, status.HTTP_404_NOT_FOUND),
    (SyncAlreadyRunningError, status.HTTP_409_CONFLICT),
    (InvalidStatusTransition, status.HTTP_409_CONFLICT),
    (ConfigurationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (DestinationSchemaNotFoundError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (SourceReaderNotFoundError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (SyncConnectionError, status.HTTP_502_BAD_GATEWAY),
)


@asynccontextmanager
async def lifespan(app: FastAPI):  # type: ignore
    """Application lifespan context manager for startup/shutdown."""
    # Startup
    ensure_runtime_configuration(get_settings())
    logger.info("Sift_Sync API starting up...")
    yield
    # Shutdown
    logger.info("Sift_Sync API shutting down...")


# Create FastAPI app
app = FastAPI(
    title="Sift_Sync API",
    description="Scheduled import of external records with column cleaning and field mapping",
    version="0.1.0",
    lifespan=lifespan,
)


def _status_code_for(exc: SiftSyncError) -> int:
    for error_type, code in _STATUS_CODES:
        if isinstance(exc, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


# Global exception handler
@app.exception_handler(SiftSyncError)
async def sift_exception_handler(request: Request, exc: SiftSyncError) -> JSONResponse:
    """Handle custom Sift_Sync exceptions."""
    status_code = _status_code_for(exc)
    logger.error(
        "SiftSyncError: %s",
        exc,
        extra={"path": request.url.path, "status": "error", "status_code": status_code},
    )
    content = {"status": "error", "message": str(exc), "error_type": exc.__class__.__name__}
    if isinstance(exc, ConfigurationError) and exc.errors:
        content["errors"] = exc.errors
    return JSONResponse(status_code=status_code, content=content)


# Import routers
from .routes import analyze, data_sources, health, metrics, schedules  # noqa: E402

app.include_router(health.router, tags=["health"])
app.include_router(analyze.router, prefix="/api/v1", tags=["analysis"])
app.include_router(schedules.router, prefix="/api/v1", tags=["schedules"])
app.include_router(data_sources.router, prefix="/api/v1", tags=["data-sources"])
app.include_router(metrics.router, tags=["monitoring"])
