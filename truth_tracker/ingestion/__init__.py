"""
Ingestion layer: source fetching, parsing, relevance filtering and
incident normalization.
"""

from truth_tracker.ingestion.fetcher import ContentFetcher
from truth_tracker.ingestion.normalizer import IncidentNormalizer, categorize_incident, normalize_date
from truth_tracker.ingestion.parsers import (
    ContentParser, FeedItemParser, ApiArrayParser, HtmlTextParser, get_parser,
)

__all__ = [
    "ContentFetcher",
    "IncidentNormalizer", "categorize_incident", "normalize_date",
    "ContentParser", "FeedItemParser", "ApiArrayParser", "HtmlTextParser", "get_parser",
]
