"""
Promise models: the language model's output contract and the stored record.

Hierarchy: PromiseExtractionLLM (raw model output) → ExtractedPromise
(id + provenance attached) → promises table (status pending_verification).
"""

import random
import time
from datetime import datetime, timezone
from typing import List

from pydantic import BaseModel, Field, field_validator, model_validator

from .base import PromiseStatus

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _to_base36(n: int) -> str:
    if n == 0:
        return "0"
    digits = []
    while n:
        n, rem = divmod(n, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_promise_id() -> str:
    """Time + random token, e.g. 'm2x9k1a0' + 'q8z3v1c7p'."""
    millis = int(time.time() * 1000)
    noise = "".join(random.choice(_BASE36) for _ in range(9))
    return _to_base36(millis) + noise


class PromiseAnalysis(BaseModel):
    """Model-written assessment attached to every promise."""
    feasibility: str = ""
    specificity: str = ""
    red_flags: List[str] = Field(default_factory=list, alias="redFlags")
    confidence: float = Field(default=0.0, ge=0, le=100)

    @field_validator("red_flags", mode="before")
    @classmethod
    def coerce_red_flags(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            return [v] if v.strip() else []
        return [str(x) for x in v if x]

    class Config:
        populate_by_name = True


class PromiseExtractionLLM(BaseModel):
    """One promise as the extraction prompt asks the model to return it."""
    title: str
    description: str = ""
    party: str = ""
    politician: str = "Unknown"
    category: str = ""
    credibility_score: float = Field(alias="credibilityScore", ge=0, le=100)
    analysis: PromiseAnalysis = Field(default_factory=PromiseAnalysis)

    @field_validator("politician", mode="before")
    @classmethod
    def default_politician(cls, v):
        return v or "Unknown"

    class Config:
        populate_by_name = True


class PromiseListLLM(BaseModel):
    """LLM output for promise extraction.

    Handles two LLM output patterns:
      - Wrapped:  {"promises": [{...}, ...]}   (expected)
      - Flat list: [{...}, ...]                (LLM shortcut)
    """
    promises: List[PromiseExtractionLLM]

    @model_validator(mode="before")
    @classmethod
    def _coerce_list(cls, v):
        if isinstance(v, list):
            return {"promises": v}
        return v


class DuplicateVerdictLLM(BaseModel):
    """LLM output for the duplicate check."""
    is_duplicate: bool = Field(alias="isDuplicate")
    reason: str = ""

    class Config:
        populate_by_name = True


class ExtractedPromise(BaseModel):
    """A candidate promise produced by the extraction agent."""
    id: str = Field(default_factory=generate_promise_id)
    title: str
    description: str = ""
    party: str = ""
    politician: str = "Unknown"
    category: str = ""
    credibility_score: float = Field(ge=0, le=100)
    source: str
    source_url: str = ""
    extracted_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    analysis: PromiseAnalysis = Field(default_factory=PromiseAnalysis)
    status: PromiseStatus = PromiseStatus.PENDING_VERIFICATION

    def summary_line(self) -> str:
        """Title and description as shown to the duplicate checker."""
        return f'"{self.title} - {self.description}"'

    class Config:
        use_enum_values = True
