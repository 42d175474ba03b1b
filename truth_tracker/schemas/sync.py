"""Sync run bookkeeping: per-run result and the append-only log record."""

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, Field

from .base import SyncPipeline, SyncStatus


class SyncResult(BaseModel):
    """Counts and errors accumulated over one orchestrator run."""
    pipeline: SyncPipeline = SyncPipeline.PROMISES
    success: bool = False
    status: SyncStatus = SyncStatus.FAILED
    total_fetched: int = 0
    total_extracted: int = 0
    total_saved: int = 0
    duplicates_skipped: int = 0
    errors: List[str] = Field(default_factory=list)
    duration: int = 0  # milliseconds
    cancelled: bool = False

    def details(self) -> str:
        return (
            f"Fetched: {self.total_fetched}, Extracted: {self.total_extracted}, "
            f"Saved: {self.total_saved}, Duplicates: {self.duplicates_skipped}"
        )

    class Config:
        use_enum_values = True


class SyncLog(BaseModel):
    """Immutable audit record written once per run."""
    id: Optional[str] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    result: SyncResult
    details: str = ""
