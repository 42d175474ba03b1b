"""
Incident normalizer: raw feed/API records → PoliticalIncident.

Keeps only records that read like political incidents, infers a category
from keyword buckets (first match wins), and normalizes publish dates to
ISO-8601. A bad date never drops a record; it becomes "now".
"""

import logging
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import List, Optional

from ..config import Settings, get_settings
from ..schemas import FetchType, IncidentCategory, PoliticalIncident, RawIncidentRecord
from .keywords import INCIDENT_CATEGORY_KEYWORDS, is_political_incident
from .parsers import clean_text, get_parser

logger = logging.getLogger(__name__)

_DATE_FORMATS = [
    "%Y-%m-%dT%H:%M:%SZ",
    "%Y-%m-%dT%H:%M:%S.%fZ",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d",
    "%d %b %Y",
    "%B %d, %Y",
]


def categorize_incident(title: str, description: str) -> IncidentCategory:
    """Ordered keyword buckets: corruption, protest, violence, legal-case, policy-failure."""
    text = f"{title} {description}".lower()
    for category, keywords in INCIDENT_CATEGORY_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return category
    return IncidentCategory.OTHER


def normalize_date(value: Optional[str], now: Optional[datetime] = None) -> str:
    """Parse a feed/API date into an ISO-8601 UTC string; fall back to now."""
    fallback = (now or datetime.now(timezone.utc)).isoformat()
    value = (value or "").strip()
    if not value:
        return fallback

    parsed = None
    try:
        parsed = parsedate_to_datetime(value)  # RFC 822, the RSS pubDate format
    except (TypeError, ValueError, IndexError, OverflowError):
        pass
    if parsed is None:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            pass
    if parsed is None:
        for fmt in _DATE_FORMATS:
            try:
                parsed = datetime.strptime(value, fmt)
                break
            except ValueError:
                continue
    if parsed is None:
        logger.debug(f"Unparseable date {value!r}, using current time")
        return fallback

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    try:
        return parsed.astimezone(timezone.utc).isoformat()
    except (OverflowError, ValueError):
        # Offset pushes the instant outside datetime's range
        logger.debug(f"Out-of-range date {value!r}, using current time")
        return fallback


class IncidentNormalizer:
    """Parses raw bodies into incident records and normalizes them."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    def parse(
        self,
        raw_body: str,
        source_name: str,
        fetch_type: FetchType = FetchType.FEED,
    ) -> List[RawIncidentRecord]:
        """Relevant, cleaned records from one source body, capped per source.

        Raises ValueError when the body cannot be parsed at all.
        """
        records = get_parser(fetch_type).parse(raw_body, source_name)
        return self.filter_records(records)

    def filter_records(self, records: List[RawIncidentRecord]) -> List[RawIncidentRecord]:
        kept = []
        for record in records:
            if not record.title:
                continue
            title = clean_text(record.title)
            description = clean_text(record.description)
            if not is_political_incident(title, description):
                continue
            kept.append(record.model_copy(update={
                "title": title,
                "description": description,
                "content": description,
            }))
        return kept[: self.settings.incident_max_per_source]

    def normalize(self, record: RawIncidentRecord) -> PoliticalIncident:
        return PoliticalIncident(
            title=record.title,
            description=record.description,
            category=categorize_incident(record.title, record.description),
            date=normalize_date(record.published_date),
            source=record.source_name,
            source_url=record.link,
            verified=False,
        )
