"""Health check router -- DB status and config summary."""

from datetime import datetime, timezone

from fastapi import APIRouter

from truth_tracker import __version__
from truth_tracker.api.dependencies import DB, AppSettings
from truth_tracker.api.run_manager import run_manager

router = APIRouter()


@router.get("/")
async def root():
    return {"service": "Political Truth Tracker API", "version": __version__}


@router.get("/health")
async def health(db: DB, settings: AppSettings):
    try:
        database = {"status": "ok", **db.get_stats()}
    except Exception as e:
        database = {"status": "error", "error": str(e)[:200]}

    return {
        "status": "healthy" if database["status"] == "ok" else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "database": database,
        "sync_running": run_manager.is_running,
        "config": {
            "llm_provider": settings.get_llm_config()["provider"],
            "mock_mode": settings.mock_mode,
            "min_credibility_score": settings.min_credibility_score,
            "relay_base_url": settings.relay_base_url or None,
            "sync_schedule_enabled": settings.sync_schedule_enabled,
            "sync_schedule_hour": settings.sync_schedule_hour,
        },
    }
