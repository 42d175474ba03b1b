"""Sync run manager -- tracks active and completed sync runs in-memory.

One run at a time per process. Runs are identified by timestamp-based IDs
(e.g., "promises_20260226_143022").
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from truth_tracker.schemas import SyncResult


@dataclass
class SyncRun:
    """State for a single sync execution."""
    run_id: str
    pipeline: str
    status: str = "started"  # started | running | completed | failed | cancelled
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: Optional[datetime] = None
    result: Optional[SyncResult] = None
    service: Optional[Any] = None
    cancel_event: asyncio.Event = field(default_factory=asyncio.Event)

    @property
    def state(self) -> str:
        """Orchestrator state while running (fetching, extracting, ...)."""
        if self.service is None:
            return "idle"
        return getattr(self.service.state, "value", str(self.service.state))

    def finish(self, result: SyncResult):
        self.result = result
        self.completed_at = datetime.now(timezone.utc)
        if result.cancelled:
            self.status = "cancelled"
        else:
            self.status = "completed" if result.success else "failed"


class RunManager:
    """Tracks sync runs across API requests."""

    def __init__(self):
        self._runs: Dict[str, SyncRun] = {}

    def create_run(self, run_id: str, pipeline: str) -> SyncRun:
        run = SyncRun(run_id=run_id, pipeline=pipeline)
        self._runs[run_id] = run
        return run

    def get_run(self, run_id: str) -> Optional[SyncRun]:
        return self._runs.get(run_id)

    def list_runs(self, limit: int = 20) -> List[SyncRun]:
        runs = sorted(self._runs.values(), key=lambda r: r.started_at, reverse=True)
        return runs[:limit]

    @property
    def is_running(self) -> bool:
        return any(r.status in ("started", "running") for r in self._runs.values())


# Module-level singleton
run_manager = RunManager()
