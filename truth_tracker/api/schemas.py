"""API response/request schemas -- shaped for the admin screen and public pages."""

from typing import List, Optional

from pydantic import BaseModel, Field

from truth_tracker.schemas import PoliticalIncident, SyncLog, SyncResult

# Admin summaries show at most this many error lines
MAX_ERRORS_SHOWN = 10


# -- Sync --

class SyncRunRequest(BaseModel):
    mock_mode: bool = False


class SyncRunResponse(BaseModel):
    run_id: str
    pipeline: str
    status: str  # started | running | completed | failed | cancelled
    message: str


class SyncSummary(BaseModel):
    success: bool
    status: str
    total_fetched: int
    total_extracted: int
    total_saved: int
    duplicates_skipped: int
    errors: List[str] = Field(default_factory=list)
    error_count: int = 0
    duration: int = 0
    cancelled: bool = False

    @classmethod
    def from_result(cls, result: SyncResult) -> "SyncSummary":
        return cls(
            success=result.success,
            status=result.status,
            total_fetched=result.total_fetched,
            total_extracted=result.total_extracted,
            total_saved=result.total_saved,
            duplicates_skipped=result.duplicates_skipped,
            errors=result.errors[:MAX_ERRORS_SHOWN],
            error_count=len(result.errors),
            duration=result.duration,
            cancelled=result.cancelled,
        )


class SyncRunStatusResponse(BaseModel):
    run_id: str
    pipeline: str
    status: str
    state: str
    started_at: str
    elapsed_seconds: float
    result: Optional[SyncSummary] = None


class SyncLogResponse(BaseModel):
    id: Optional[str] = None
    timestamp: str
    pipeline: str
    details: str
    result: SyncSummary

    @classmethod
    def from_log(cls, log: SyncLog) -> "SyncLogResponse":
        return cls(
            id=log.id,
            timestamp=log.timestamp.isoformat(),
            pipeline=log.result.pipeline,
            details=log.details,
            result=SyncSummary.from_result(log.result),
        )


# -- Incidents --

class IncidentResponse(BaseModel):
    id: Optional[str] = None
    title: str
    description: str = ""
    category: str
    date: str
    source: str
    source_url: str = ""
    verified: bool = False
    added_at: str

    @classmethod
    def from_incident(cls, incident: PoliticalIncident) -> "IncidentResponse":
        return cls(
            id=incident.id,
            title=incident.title,
            description=incident.description,
            category=incident.category,
            date=incident.date,
            source=incident.source,
            source_url=incident.source_url,
            verified=incident.verified,
            added_at=incident.added_at.isoformat(),
        )


class IncidentListResponse(BaseModel):
    incidents: List[IncidentResponse] = Field(default_factory=list)
    total: int = 0
