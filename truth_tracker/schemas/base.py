"""
Common enums used across the ingestion pipeline.

They define the vocabulary of the system: how a source is fetched, how an
incident is classified, where a record sits in the review workflow, and how
a component reacts when the language model misbehaves.
"""

from enum import Enum


class IncidentCategory(str, Enum):
    """Incident classification, checked in this order (first match wins)."""
    CORRUPTION = "corruption"
    PROTEST = "protest"
    VIOLENCE = "violence"
    LEGAL_CASE = "legal-case"
    POLICY_FAILURE = "policy-failure"
    OTHER = "other"


class PromiseStatus(str, Enum):
    """Review workflow status of a stored promise."""
    PENDING_VERIFICATION = "pending_verification"
    VERIFIED = "verified"
    REJECTED = "rejected"


class IncidentState(str, Enum):
    """
    Incident review workflow.

    Machine-ingested incidents start PENDING and only become publicly visible
    once a reviewer moves them to VERIFIED. REJECTED incidents are deleted.
    """
    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"


class ModelErrorPolicy(str, Enum):
    """What a caller does when a language-model call or its JSON parse fails."""
    ASSUME_EMPTY = "assume_empty"                  # extraction yields no candidates
    ASSUME_NOT_DUPLICATE = "assume_not_duplicate"  # dedup fails open


class SyncPipeline(str, Enum):
    """Which ingestion pipeline a sync run drives."""
    PROMISES = "promises"
    INCIDENTS = "incidents"


class SyncStatus(str, Enum):
    """Outcome of a completed sync run."""
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"


class SyncRunState(str, Enum):
    """Orchestrator state within a single run."""
    IDLE = "idle"
    FETCHING = "fetching"
    EXTRACTING = "extracting"
    DEDUPLICATING = "deduplicating"
    PERSISTING = "persisting"
    COMPLETED = "completed"
