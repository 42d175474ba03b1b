"""
Schemas package -- all data models for the ingestion pipeline.

Models are organized by domain in submodules:
  - base.py: Common enums
  - sources.py: Source, CandidateContent, SourceBatch
  - promises.py: ExtractedPromise, PromiseAnalysis, LLM output contracts
  - incidents.py: RawIncidentRecord, PoliticalIncident
  - sync.py: SyncResult, SyncLog
"""

from truth_tracker.schemas.base import (
    IncidentCategory, PromiseStatus, IncidentState, ModelErrorPolicy,
    SyncPipeline, SyncStatus, SyncRunState,
)
from truth_tracker.schemas.sources import FetchType, Source, CandidateContent, SourceBatch
from truth_tracker.schemas.promises import (
    PromiseAnalysis, PromiseExtractionLLM, PromiseListLLM, DuplicateVerdictLLM,
    ExtractedPromise, generate_promise_id,
)
from truth_tracker.schemas.incidents import RawIncidentRecord, PoliticalIncident
from truth_tracker.schemas.sync import SyncResult, SyncLog

__all__ = [
    # base
    "IncidentCategory", "PromiseStatus", "IncidentState", "ModelErrorPolicy",
    "SyncPipeline", "SyncStatus", "SyncRunState",
    # sources
    "FetchType", "Source", "CandidateContent", "SourceBatch",
    # promises
    "PromiseAnalysis", "PromiseExtractionLLM", "PromiseListLLM", "DuplicateVerdictLLM",
    "ExtractedPromise", "generate_promise_id",
    # incidents
    "RawIncidentRecord", "PoliticalIncident",
    # sync
    "SyncResult", "SyncLog",
]
