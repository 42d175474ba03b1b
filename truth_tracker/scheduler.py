"""
Daily scheduled sync.

A background asyncio task that sleeps until SYNC_SCHEDULE_HOUR (UTC) and
then calls the service's public run(). It owns no pipeline logic of its own.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

logger = logging.getLogger(__name__)


def seconds_until(hour: int, now: Optional[datetime] = None) -> float:
    """Seconds from now until the next occurrence of hour:00 UTC."""
    now = now or datetime.now(timezone.utc)
    target = now.replace(hour=hour, minute=0, second=0, microsecond=0)
    if target <= now:
        target += timedelta(days=1)
    return (target - now).total_seconds()


class ScheduledSync:
    """
    Runs service.run() once a day.

    When a run manager is given, each firing is registered with it like an
    API-started run: the scheduler skips the day while another run is in
    progress, and the API refuses to start one while the scheduled run is.
    The admin cancel route can stop a scheduled run too.
    """

    def __init__(
        self,
        service,
        hour: int = 2,
        runs=None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        if not 0 <= hour <= 23:
            raise ValueError(f"hour must be 0-23, got {hour}")
        self.service = service
        self.hour = hour
        self.runs = runs
        self.clock = clock
        self._task: Optional[asyncio.Task] = None
        self._cancel_event: Optional[asyncio.Event] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self):
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name="scheduled-sync")
        logger.info(f"Scheduled sync armed: daily at {self.hour:02d}:00 UTC")

    async def stop(self):
        """Cancel the timer and signal any in-flight run to stop."""
        if self._cancel_event is not None:
            self._cancel_event.set()
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Scheduled sync stopped")

    async def _loop(self):
        while True:
            await asyncio.sleep(seconds_until(self.hour, self.clock()))
            await self.fire()

    async def fire(self):
        """One scheduled firing. Returns the SyncResult, or None if skipped."""
        if self.runs is not None and self.runs.is_running:
            logger.warning("Scheduled sync skipped: another run is in progress")
            return None

        logger.info("Running scheduled daily sync...")
        run = None
        if self.runs is not None:
            pipeline = getattr(self.service, "pipeline", "promises")
            pipeline = getattr(pipeline, "value", pipeline)
            run_id = f"{pipeline}_scheduled_{self.clock().strftime('%Y%m%d_%H%M%S_%f')}"
            run = self.runs.create_run(run_id, pipeline)
            run.service = self.service
            run.status = "running"
            self._cancel_event = run.cancel_event
        else:
            self._cancel_event = asyncio.Event()

        try:
            result = await self.service.run(cancel_event=self._cancel_event)
        except Exception:
            if run is not None:
                run.status = "failed"
                run.completed_at = datetime.now(timezone.utc)
            raise
        finally:
            self._cancel_event = None

        if run is not None:
            run.finish(result)
        return result
