"""Sync orchestration, scheduling tick and configuration services."""
from .interfaces import (
    Clock,
    ConfigStore,
    DestinationWriter,
    SourceReader,
    SystemClock,
    WriteResult,
)
from .orchestrator import SyncOrchestrator
from .scheduler import SyncScheduler
from .service import DataSourceService

__all__ = [
    "Clock",
    "ConfigStore",
    "DataSourceService",
    "DestinationWriter",
    "SourceReader",
    "SyncOrchestrator",
    "SyncScheduler",
    "SystemClock",
    "WriteResult",
]
