"""Sync API router -- trigger, inspect and cancel sync runs; read the audit log.

Every route here is an admin operation gated by the injected authorization
policy. A run executes in a background task; the client polls
GET /sync/runs/{run_id} for its state and summary.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, HTTPException, Query

from truth_tracker.api.dependencies import DB, Admin, AppSettings, SyncServiceFactory
from truth_tracker.api.run_manager import SyncRun, run_manager
from truth_tracker.api.schemas import (
    SyncLogResponse,
    SyncRunRequest,
    SyncRunResponse,
    SyncRunStatusResponse,
    SyncSummary,
)
from truth_tracker.schemas import SyncPipeline

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/{pipeline}", response_model=SyncRunResponse)
async def start_sync(
    pipeline: SyncPipeline,
    background_tasks: BackgroundTasks,
    db: DB,
    settings: AppSettings,
    factory: SyncServiceFactory,
    admin: Admin,
    body: Optional[SyncRunRequest] = None,
):
    """Start a sync run in the background. Returns run_id for polling."""
    if run_manager.is_running:
        raise HTTPException(409, "Sync already running")

    body = body or SyncRunRequest()
    run_id = f"{pipeline.value}_{datetime.now(timezone.utc).strftime('%Y%m%d_%H%M%S_%f')}"
    run = run_manager.create_run(run_id, pipeline.value)
    run.service = factory(pipeline, db, settings=settings, mock_mode=body.mock_mode)

    logger.info(f"Sync {run_id} requested by {admin}")
    background_tasks.add_task(_execute_sync, run)
    return SyncRunResponse(
        run_id=run_id,
        pipeline=pipeline.value,
        status=run.status,
        message=f"Sync started. Poll /sync/runs/{run_id}",
    )


async def _execute_sync(run: SyncRun):
    """Background task: drive the service's public run()."""
    run.status = "running"
    try:
        result = await run.service.run(cancel_event=run.cancel_event)
    except Exception as e:
        logger.error(f"Sync {run.run_id} crashed: {e}", exc_info=True)
        run.status = "failed"
        run.completed_at = datetime.now(timezone.utc)
        return
    run.finish(result)


@router.get("/runs/{run_id}", response_model=SyncRunStatusResponse)
async def get_sync_run(run_id: str, _admin: Admin):
    run = run_manager.get_run(run_id)
    if run is None:
        raise HTTPException(404, f"Run {run_id} not found")

    end = run.completed_at or datetime.now(timezone.utc)
    return SyncRunStatusResponse(
        run_id=run.run_id,
        pipeline=run.pipeline,
        status=run.status,
        state=run.state,
        started_at=run.started_at.isoformat(),
        elapsed_seconds=round((end - run.started_at).total_seconds(), 1),
        result=SyncSummary.from_result(run.result) if run.result else None,
    )


@router.post("/runs/{run_id}/cancel", response_model=SyncRunResponse)
async def cancel_sync_run(run_id: str, admin: Admin):
    run = run_manager.get_run(run_id)
    if run is None:
        raise HTTPException(404, f"Run {run_id} not found")
    if run.status not in ("started", "running"):
        raise HTTPException(409, f"Run {run_id} is already {run.status}")

    run.cancel_event.set()
    logger.info(f"Sync {run_id} cancellation requested by {admin}")
    return SyncRunResponse(
        run_id=run.run_id,
        pipeline=run.pipeline,
        status=run.status,
        message="Cancellation requested; the run stops before its next source or item",
    )


@router.get("/history", response_model=List[SyncLogResponse])
async def sync_history(db: DB, settings: AppSettings, _admin: Admin,
                       limit: Optional[int] = Query(None, ge=1, le=100)):
    """Latest sync logs, newest first."""
    logs = db.get_sync_history(limit or settings.sync_history_limit)
    return [SyncLogResponse.from_log(log) for log in logs]
