# Ingestion agents
from .extraction_agent import PromiseExtractionAgent
from .duplicate_checker import DuplicateChecker
from .orchestrator import (
    SyncService, PromiseSyncService, IncidentSyncService, create_sync_service,
)

__all__ = [
    "PromiseExtractionAgent",
    "DuplicateChecker",
    "SyncService", "PromiseSyncService", "IncidentSyncService", "create_sync_service",
]
