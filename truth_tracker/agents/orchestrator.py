"""
Sync Orchestrator -- drives one ingestion run end to end.

Promise flow:  load history -> fetch -> extract -> dedup -> persist -> log
Incident flow: fetch -> normalize -> persist (pending) -> log

Sources and items are processed sequentially. A failing source or item is
recorded in SyncResult.errors and the run moves on; anything that escapes
those guards aborts the run. Either way exactly one SyncLog is written.
"""

import asyncio
import logging
import time
from contextlib import aclosing
from typing import Any, List, Optional, Sequence

from ..config import INCIDENT_SOURCES, PROMISE_SOURCES, Settings, get_settings
from ..errors import OrchestratorFatalError, PersistenceError, SourceFetchError
from ..ingestion import ContentFetcher, IncidentNormalizer
from ..schemas import (
    ExtractedPromise, RawIncidentRecord, Source, SourceBatch,
    SyncLog, SyncPipeline, SyncResult, SyncRunState, SyncStatus,
)
from .duplicate_checker import DuplicateChecker
from .extraction_agent import PromiseExtractionAgent

logger = logging.getLogger(__name__)

CANCELLED_MESSAGE = "Sync cancelled"


class _SyncCancelled(Exception):
    pass


class SyncService:
    """Shared run skeleton: timing, cancellation, success policy, logging."""

    pipeline: SyncPipeline
    source_delay_setting: str

    def __init__(
        self,
        db,
        fetcher: Optional[ContentFetcher] = None,
        sources: Optional[Sequence[Source]] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.db = db
        self.fetcher = fetcher or ContentFetcher(self.settings)
        self.sources = list(sources) if sources is not None else self.default_sources()
        self.state = SyncRunState.IDLE

    def default_sources(self) -> List[Source]:
        raise NotImplementedError

    async def run(self, cancel_event: Optional[asyncio.Event] = None) -> SyncResult:
        """
        Execute one sync run and return its SyncResult.

        Setting cancel_event stops the run before the next source or item;
        sync_timeout_seconds sets it automatically. Never raises.
        """
        cancel_event = cancel_event or asyncio.Event()
        result = SyncResult(pipeline=self.pipeline)
        start = time.monotonic()
        deadline = asyncio.get_running_loop().call_later(
            self.settings.sync_timeout_seconds, cancel_event.set,
        )

        logger.info("=" * 50)
        logger.info(f"SYNC START: {self.pipeline.value}")
        logger.info("=" * 50)
        try:
            self._check_cancelled(cancel_event)
            await self._execute(result, cancel_event)
        except _SyncCancelled:
            logger.warning(f"[{self.pipeline.value}] {CANCELLED_MESSAGE}")
            result.cancelled = True
            result.errors.append(CANCELLED_MESSAGE)
        except Exception as e:
            fatal = OrchestratorFatalError(f"Sync failed: {e}")
            logger.error(f"[{self.pipeline.value}] {fatal}", exc_info=True)
            result.errors.append(str(fatal))
        finally:
            deadline.cancel()
            result.duration = int((time.monotonic() - start) * 1000)
            self._apply_success_policy(result)
            self._write_log(result)
            self.state = SyncRunState.COMPLETED

        logger.info(
            f"SYNC DONE: {self.pipeline.value} status={result.status} | {result.details()} "
            f"| errors={len(result.errors)} | {result.duration}ms"
        )
        return result

    async def _execute(self, result: SyncResult, cancel_event: asyncio.Event):
        self.state = SyncRunState.FETCHING
        batches = self.fetcher.iter_sources(
            self.sources,
            fetch=self._fetch_source,
            delay=getattr(self.settings, self.source_delay_setting),
        )
        async with aclosing(batches):
            async for batch in batches:
                self._check_cancelled(cancel_event)
                await self._process_batch(batch, result, cancel_event)
                self._check_cancelled(cancel_event)
                self.state = SyncRunState.FETCHING

    async def _process_batch(self, batch: SourceBatch, result: SyncResult, cancel_event: asyncio.Event):
        name = batch.source.name
        if batch.error:
            msg = f"Error fetching from {name}: {batch.error}"
            logger.warning(msg)
            result.errors.append(msg)
            return

        logger.info(f"Processing {len(batch.items)} items from {name}")
        result.total_fetched += len(batch.items)
        for item in batch.items:
            self._check_cancelled(cancel_event)
            try:
                await self._process_item(item, batch.source, result)
            except Exception as e:
                msg = f"Error processing item from {name}: {e}"
                logger.warning(msg)
                result.errors.append(msg)

    def _apply_success_policy(self, result: SyncResult):
        result.success = self._is_successful(result)
        if not result.success:
            result.status = SyncStatus.FAILED.value
        elif result.errors:
            result.status = SyncStatus.PARTIAL.value
        else:
            result.status = SyncStatus.SUCCESS.value

    def _write_log(self, result: SyncResult):
        log = SyncLog(result=result, details=result.details())
        try:
            self.db.save_sync_log(log)
        except PersistenceError as e:
            logger.error(f"[FAIL] Could not write sync log: {e}")

    @staticmethod
    def _check_cancelled(cancel_event: asyncio.Event):
        if cancel_event.is_set():
            raise _SyncCancelled()

    def get_sync_history(self, limit: Optional[int] = None):
        """Latest SyncLogs, newest first."""
        return self.db.get_sync_history(limit or self.settings.sync_history_limit)

    async def _fetch_source(self, source: Source) -> List[Any]:
        raise NotImplementedError

    async def _process_item(self, item: Any, source: Source, result: SyncResult):
        raise NotImplementedError

    def _is_successful(self, result: SyncResult) -> bool:
        raise NotImplementedError


class PromiseSyncService(SyncService):
    """Fetch -> extract -> dedup -> persist for the promise sources."""

    pipeline = SyncPipeline.PROMISES
    source_delay_setting = "promise_source_delay"

    def __init__(
        self,
        db,
        llm,
        fetcher: Optional[ContentFetcher] = None,
        sources: Optional[Sequence[Source]] = None,
        settings: Optional[Settings] = None,
        extractor: Optional[PromiseExtractionAgent] = None,
        checker: Optional[DuplicateChecker] = None,
    ):
        super().__init__(db, fetcher=fetcher, sources=sources, settings=settings)
        self.extractor = extractor or PromiseExtractionAgent(llm, self.settings)
        self.checker = checker or DuplicateChecker(llm, self.settings)
        self.history: List[ExtractedPromise] = []

    def default_sources(self) -> List[Source]:
        return list(PROMISE_SOURCES)

    async def _execute(self, result: SyncResult, cancel_event: asyncio.Event):
        self.history = self._load_history()
        logger.info(f"Found {len(self.history)} existing promises")
        await super()._execute(result, cancel_event)

    def _load_history(self) -> List[ExtractedPromise]:
        """Recent promises, oldest first so the tail holds the newest."""
        try:
            recent = self.db.get_recent_promises(limit=self.settings.dedup_history_limit)
        except Exception as e:
            logger.warning(f"Could not load existing promises, deduplicating against none: {e}")
            return []
        return list(reversed(recent))

    async def _fetch_source(self, source: Source) -> List[str]:
        return await self.fetcher.fetch_or_raise(source)

    async def _process_item(self, item: str, source: Source, result: SyncResult):
        self.state = SyncRunState.EXTRACTING
        promises = await self.extractor.extract(item, source.name, source.url)
        result.total_extracted += len(promises)

        try:
            for promise in promises:
                self.state = SyncRunState.DEDUPLICATING
                if await self.checker.is_duplicate(promise, self.history):
                    result.duplicates_skipped += 1
                    logger.info(f"Skipping duplicate: {promise.title}")
                    continue

                self.state = SyncRunState.PERSISTING
                try:
                    self.db.save_promise(promise)
                except PersistenceError as e:
                    msg = f"Error processing item from {source.name}: {e}"
                    logger.warning(msg)
                    result.errors.append(msg)
                    continue
                self.history.append(promise)
                result.total_saved += 1
                logger.info(f"[OK] Saved new promise: {promise.title}")
        finally:
            # Rate limiting between model calls
            await asyncio.sleep(self.settings.item_delay)

    def _is_successful(self, result: SyncResult) -> bool:
        return not result.errors or result.total_saved > 0


class IncidentSyncService(SyncService):
    """Fetch -> normalize -> persist (pending) for the incident sources."""

    pipeline = SyncPipeline.INCIDENTS
    source_delay_setting = "incident_source_delay"

    def __init__(
        self,
        db,
        fetcher: Optional[ContentFetcher] = None,
        sources: Optional[Sequence[Source]] = None,
        settings: Optional[Settings] = None,
        normalizer: Optional[IncidentNormalizer] = None,
    ):
        super().__init__(db, fetcher=fetcher, sources=sources, settings=settings)
        self.normalizer = normalizer or IncidentNormalizer(self.settings)

    def default_sources(self) -> List[Source]:
        return list(INCIDENT_SOURCES)

    async def _fetch_source(self, source: Source) -> List[RawIncidentRecord]:
        body = await self.fetcher.fetch_raw(source)
        try:
            return self.normalizer.parse(body, source.name, source.fetch_type)
        except ValueError as e:
            raise SourceFetchError(source.name, f"parse failure: {e}") from e

    async def _process_item(self, item: RawIncidentRecord, source: Source, result: SyncResult):
        self.state = SyncRunState.EXTRACTING
        incident = self.normalizer.normalize(item)
        result.total_extracted += 1

        self.state = SyncRunState.PERSISTING
        self.db.save_pending_incident(incident)
        result.total_saved += 1

    def _is_successful(self, result: SyncResult) -> bool:
        return result.total_saved > 0


def create_sync_service(
    pipeline: SyncPipeline,
    db,
    settings: Optional[Settings] = None,
    mock_mode: bool = False,
) -> SyncService:
    """Build the sync service for a pipeline with production collaborators."""
    settings = settings or get_settings()
    if SyncPipeline(pipeline) == SyncPipeline.INCIDENTS:
        return IncidentSyncService(db, settings=settings)
    from ..tools.llm_service import LLMService
    return PromiseSyncService(db, LLMService(settings, mock_mode=mock_mode), settings=settings)
