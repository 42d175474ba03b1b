"""
Content fetcher for authorized political sources.

Retrieves raw bodies per source fetch type, parses them with the pluggable
parsers, and keeps only text that looks politically relevant. Sources are
visited one at a time with a fixed pause in between so upstream hosts are
not hammered.

Feed sources go through the same-origin relay (/fetch-relay) when
RELAY_BASE_URL is set; either way the destination host must be on the
allow-list.
"""

import asyncio
import logging
from typing import AsyncIterator, Awaitable, Callable, Iterable, List, Optional

import httpx

from ..config import RELAY_ALLOWED_HOSTS, Settings, get_settings
from ..errors import HostNotAllowed, SourceFetchError
from ..schemas import FetchType, RawIncidentRecord, Source, SourceBatch
from .allowlist import is_host_allowed, parse_http_url
from .keywords import is_relevant_political_content
from .parsers import clean_text, get_parser

logger = logging.getLogger(__name__)

FetchFn = Callable[[Source], Awaitable[List]]


class ContentFetcher:
    """
    Fetches candidate text blocks from feed, API and scrape sources.

    fetch() never raises: failures are logged and yield an empty list.
    fetch_or_raise() surfaces them as SourceFetchError so the orchestrator
    can report which source failed.
    """

    _USER_AGENT = "Political Truth Tracker Bot 1.0"

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        allowed_hosts: Iterable[str] = RELAY_ALLOWED_HOSTS,
    ):
        self.settings = settings or get_settings()
        self._transport = transport
        self.allowed_hosts = tuple(allowed_hosts)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.settings.fetch_timeout_seconds,
            follow_redirects=True,
            transport=self._transport,
        )

    def _headers(self, source: Source, accept: Optional[str] = None) -> dict:
        headers = {"User-Agent": self._USER_AGENT}
        if accept:
            headers["Accept"] = accept
        headers.update(source.headers)
        return headers

    # ── Public API ────────────────────────────────────────────────────

    async def fetch(self, source: Source) -> List[str]:
        """Relevant text blocks for one source; [] on any failure."""
        try:
            return await self.fetch_or_raise(source)
        except SourceFetchError as e:
            logger.warning(f"[FAIL] {e}")
            return []

    async def fetch_or_raise(self, source: Source) -> List[str]:
        records = await self.fetch_records(source)
        segments = self._segments(records, FetchType(source.fetch_type))
        logger.info(f"[OK] {source.name}: {len(segments)} relevant of {len(records)} parsed")
        return segments

    async def fetch_records(self, source: Source) -> List[RawIncidentRecord]:
        """Fetch and parse one source into raw records (no relevance filter)."""
        body = await self.fetch_raw(source)
        try:
            return get_parser(source.fetch_type).parse(body, source.name)
        except ValueError as e:
            raise SourceFetchError(source.name, f"parse failure: {e}") from e

    async def fetch_raw(self, source: Source) -> str:
        """Raw response body for one source. Raises SourceFetchError."""
        fetch_type = FetchType(source.fetch_type)
        if fetch_type == FetchType.FEED:
            return await self._fetch_feed_body(source)
        if fetch_type in (FetchType.API, FetchType.JSON):
            return await self._get(source, source.url, self._headers(source, "application/json"))
        if fetch_type == FetchType.SCRAPE:
            return await self._get(source, source.url, self._headers(source))
        raise SourceFetchError(source.name, f"Unsupported source type: {source.fetch_type}")

    async def iter_sources(
        self,
        sources: Iterable[Source],
        fetch: Optional[FetchFn] = None,
        delay: Optional[float] = None,
    ) -> AsyncIterator[SourceBatch]:
        """Yield one SourceBatch per ACTIVE source, pausing between sources.

        Inactive sources are skipped without any fetch. A failing source
        yields a batch with error set and no items.
        """
        fetch = fetch or self.fetch_or_raise
        if delay is None:
            delay = self.settings.promise_source_delay
        active = [s for s in sources if s.active]

        for i, source in enumerate(active):
            logger.info(f"Fetching from {source.name}...")
            try:
                items = await fetch(source)
                batch = SourceBatch(source=source, items=items)
            except Exception as e:
                logger.warning(f"[FAIL] {source.name}: {e}")
                batch = SourceBatch(source=source, error=str(e))
            yield batch

            if delay and i < len(active) - 1:
                await asyncio.sleep(delay)

    # ── Internals ─────────────────────────────────────────────────────

    async def _fetch_feed_body(self, source: Source) -> str:
        hostname = parse_http_url(source.url)
        if hostname is None:
            raise SourceFetchError(source.name, f"Invalid URL: {source.url}")
        if not is_host_allowed(hostname, self.allowed_hosts):
            raise HostNotAllowed(source.name, hostname)

        relay = self.settings.relay_base_url
        if not relay:
            return await self._get(source, source.url, self._headers(source))

        relay_url = f"{relay.rstrip('/')}/fetch-relay"
        try:
            async with self._client() as client:
                response = await client.get(relay_url, params={"url": source.url})
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise SourceFetchError(source.name, f"relay error: {type(e).__name__}: {e}") from e
        if response.status_code == 403:
            raise HostNotAllowed(source.name, hostname)
        if not response.is_success:
            raise SourceFetchError(source.name, f"relay returned HTTP {response.status_code}")
        return response.text

    async def _get(self, source: Source, url: str, headers: dict) -> str:
        try:
            async with self._client() as client:
                response = await client.get(url, headers=headers)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise SourceFetchError(source.name, f"{type(e).__name__}: {e}") from e
        if not response.is_success:
            raise SourceFetchError(source.name, f"HTTP {response.status_code}: {response.reason_phrase}")
        return response.text

    def _segments(self, records: List[RawIncidentRecord], fetch_type: FetchType) -> List[str]:
        """Candidate text blocks for promise extraction, relevance-filtered."""
        if fetch_type == FetchType.FEED:
            min_length = self.settings.feed_min_length
            texts = [r.title for r in records] + [clean_text(r.description) for r in records]
        elif fetch_type == FetchType.SCRAPE:
            min_length = self.settings.scrape_min_length
            texts = [r.content for r in records]
        else:
            min_length = 0
            texts = [r.content for r in records]

        return [
            text for text in texts
            if text and len(text) > min_length and is_relevant_political_content(text)
        ]
