"""
Pluggable body parsers, one per source format.

Every parser turns a raw response body into RawIncidentRecord objects; the
promise fetcher and the incident normalizer decide what to do with them.
Parsers raise ValueError on a body they cannot understand. They do no
relevance filtering.

  - FeedItemParser:  RSS/Atom via feedparser (CDATA and entities unescaped)
  - ApiArrayParser:  JSON array of objects with common text fields
  - HtmlTextParser:  visible page text split into sentence-like segments
"""

import html
import json
import logging
import re
from typing import Dict, List

import feedparser
from bs4 import BeautifulSoup

from ..schemas import FetchType, RawIncidentRecord

logger = logging.getLogger(__name__)

# Fields that carry prose in generic news/API payloads, in join order
API_TEXT_FIELDS = ("title", "description", "content", "summary", "text")

_TAG_RE = re.compile(r"<[^>]+>")
_WS_RE = re.compile(r"\s+")
_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")


def clean_text(text: str) -> str:
    """Strip tags, decode entities, collapse whitespace."""
    text = _TAG_RE.sub(" ", text or "")
    text = html.unescape(text)
    return _WS_RE.sub(" ", text).strip()


class ContentParser:
    """Base parser. Subclasses implement parse()."""

    name = "base"

    def parse(self, body: str, source_name: str) -> List[RawIncidentRecord]:
        raise NotImplementedError


class FeedItemParser(ContentParser):
    """RSS/Atom items → records (title, description, link, pubDate)."""

    name = "feed"

    def parse(self, body: str, source_name: str) -> List[RawIncidentRecord]:
        feed = feedparser.parse(body)
        if feed.bozo and not feed.entries:
            raise ValueError(f"Malformed feed: {feed.get('bozo_exception')}")

        records = []
        for entry in feed.entries:
            description = entry.get("summary", "") or entry.get("description", "")
            content = description
            if entry.get("content"):
                content = entry.content[0].get("value", "") or description
            records.append(RawIncidentRecord(
                title=html.unescape(entry.get("title", "")).strip(),
                description=description,
                link=entry.get("link", ""),
                published_date=entry.get("published", "") or entry.get("updated", ""),
                source_name=source_name,
                content=content,
            ))
        return records


class ApiArrayParser(ContentParser):
    """JSON array of objects → records. Non-object items are skipped."""

    name = "api"

    def parse(self, body: str, source_name: str) -> List[RawIncidentRecord]:
        try:
            data = json.loads(body)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON body: {e}") from e
        if not isinstance(data, list):
            raise ValueError(f"Expected a JSON array, got {type(data).__name__}")

        records = []
        for item in data:
            if not isinstance(item, dict):
                continue
            records.append(self._parse_item(item, source_name))
        return records

    @staticmethod
    def _parse_item(item: Dict, source_name: str) -> RawIncidentRecord:
        joined = " ".join(
            str(item[field]) for field in API_TEXT_FIELDS if item.get(field)
        )
        return RawIncidentRecord(
            title=str(item.get("title") or ""),
            description=str(item.get("description") or item.get("summary") or item.get("content") or ""),
            link=str(item.get("url") or item.get("link") or ""),
            published_date=str(item.get("publishedAt") or item.get("date") or ""),
            source_name=source_name,
            content=joined,
        )


class HtmlTextParser(ContentParser):
    """HTML page → one record per sentence-like segment of visible text."""

    name = "scrape"

    def parse(self, body: str, source_name: str) -> List[RawIncidentRecord]:
        soup = BeautifulSoup(body, "lxml")
        for tag in soup.find_all(["script", "style"]):
            tag.decompose()
        text = _WS_RE.sub(" ", soup.get_text(" ")).strip()

        records = []
        for segment in _SENTENCE_SPLIT_RE.split(text):
            segment = segment.strip()
            if segment:
                records.append(RawIncidentRecord(
                    description=segment,
                    source_name=source_name,
                    content=segment,
                ))
        return records


PARSERS: Dict[FetchType, ContentParser] = {
    FetchType.FEED: FeedItemParser(),
    FetchType.API: ApiArrayParser(),
    FetchType.JSON: ApiArrayParser(),
    FetchType.SCRAPE: HtmlTextParser(),
}


def get_parser(fetch_type: FetchType) -> ContentParser:
    try:
        return PARSERS[FetchType(fetch_type)]
    except (KeyError, ValueError):
        raise ValueError(f"Unsupported source type: {fetch_type}")
