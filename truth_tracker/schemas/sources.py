"""Source registry models and the fetcher's per-source output."""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class FetchType(str, Enum):
    """How a source's content is retrieved."""
    FEED = "feed"
    API = "api"
    SCRAPE = "scrape"
    JSON = "json"  # incident-side alias of API


class Source(BaseModel):
    """An authorized external source. Immutable configuration."""
    name: str
    fetch_type: FetchType = FetchType.FEED
    url: str
    headers: Dict[str, str] = Field(default_factory=dict)
    active: bool = True
    category: str = "news"

    class Config:
        frozen = True


class CandidateContent(BaseModel):
    """A unit of raw text plus provenance. Never persisted."""
    text: str
    source_name: str
    source_url: str


class SourceBatch(BaseModel):
    """Everything one active source produced during a run.

    items holds candidate text blocks (promise pipeline) or raw incident
    records (incident pipeline). error is set when the fetch failed; items is
    then empty.
    """
    source: Source
    items: List[Any] = Field(default_factory=list)
    error: Optional[str] = None
