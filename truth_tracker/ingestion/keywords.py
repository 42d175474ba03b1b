"""
Relevance vocabularies for the ingestion pipeline.

Matching is plain substring search on lowercased text, so short terms such
as "mp" or "case" also hit inside longer words. The bucket order in
INCIDENT_CATEGORY_KEYWORDS is significant: the first bucket that matches
decides the category.
"""

from typing import Iterable, List, Tuple

from ..schemas.base import IncidentCategory

# Text worth sending to the promise extractor
PROMISE_KEYWORDS: Tuple[str, ...] = (
    "promise", "pledge", "commit", "manifesto", "policy", "reform",
    "election", "campaign", "party", "government", "minister",
    "parliament", "assembly", "constituency", "voter", "citizen",
    "development", "infrastructure", "healthcare", "education",
    "employment", "economy", "budget", "scheme", "program",
)

# Feed items worth keeping as incidents
INCIDENT_KEYWORDS: Tuple[str, ...] = (
    "policy", "scheme", "implementation", "failure", "delayed", "cancelled",
    "corruption", "scam", "bribe", "embezzlement", "fraud", "misuse",
    "protest", "demonstration", "rally", "violence", "clash", "arrest",
    "court", "case", "judgment", "verdict", "investigation", "inquiry",
    "minister", "government", "parliament", "assembly", "election",
    "constituency", "mla", "mp", "chief minister", "prime minister",
    "controversy", "allegation", "accused", "charged", "suspended",
)

INCIDENT_CATEGORY_KEYWORDS: List[Tuple[IncidentCategory, Tuple[str, ...]]] = [
    (IncidentCategory.CORRUPTION, ("corruption", "scam", "bribe")),
    (IncidentCategory.PROTEST, ("protest", "demonstration", "rally")),
    (IncidentCategory.VIOLENCE, ("violence", "clash", "attack")),
    (IncidentCategory.LEGAL_CASE, ("court", "case", "judgment")),
    (IncidentCategory.POLICY_FAILURE, ("policy", "scheme", "implementation")),
]


def contains_any(text: str, keywords: Iterable[str]) -> bool:
    lowered = (text or "").lower()
    return any(keyword in lowered for keyword in keywords)


def is_relevant_political_content(text: str) -> bool:
    return contains_any(text, PROMISE_KEYWORDS)


def is_political_incident(title: str, description: str) -> bool:
    return contains_any(f"{title} {description}", INCIDENT_KEYWORDS)
