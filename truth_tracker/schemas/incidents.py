"""Incident models: raw feed records and normalized political incidents."""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field

from .base import IncidentCategory


class RawIncidentRecord(BaseModel):
    """One item parsed out of a feed/API body. Consumed immediately."""
    title: str = ""
    description: str = ""
    link: str = ""
    published_date: str = ""
    source_name: str = ""
    content: str = ""


class PoliticalIncident(BaseModel):
    """
    A normalized incident.

    Created unverified (pending) by the sync pipeline. Only a reviewer's
    approval produces a verified copy; public listings show verified ones only.
    id is None until the store assigns one.
    """
    id: Optional[str] = None
    title: str
    description: str = ""
    category: IncidentCategory = IncidentCategory.OTHER
    date: str
    source: str
    source_url: str = ""
    verified: bool = False
    added_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Config:
        use_enum_values = True
