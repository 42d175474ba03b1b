"""
Political Truth Tracker - Main Entry Point.
FastAPI server and CLI interface.
"""

import argparse
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .agents.orchestrator import create_sync_service
from .api import health, incidents, relay, sync
from .api.run_manager import run_manager
from .auth import AuthorizationPolicy
from .config import Settings, get_settings
from .database import Database, get_database
from .scheduler import ScheduledSync
from .schemas import SyncPipeline

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S"
)
logger = logging.getLogger(__name__)

# Suppress noisy loggers
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)


def create_app(
    settings: Optional[Settings] = None,
    db: Optional[Database] = None,
    auth_policy: Optional[AuthorizationPolicy] = None,
) -> FastAPI:
    """Build the API. Collaborators default to the process-wide ones."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.settings = settings or get_settings()
        app.state.db = db or get_database()
        app.state.auth_policy = auth_policy or AuthorizationPolicy.from_settings(app.state.settings)
        app.state.sync_service_factory = create_sync_service

        scheduler = None
        if app.state.settings.sync_schedule_enabled:
            scheduler = ScheduledSync(
                create_sync_service(SyncPipeline.PROMISES, app.state.db, settings=app.state.settings),
                hour=app.state.settings.sync_schedule_hour,
                runs=run_manager,
            )
            scheduler.start()
        app.state.scheduler = scheduler

        logger.info("Political Truth Tracker API started")
        yield

        if scheduler is not None:
            await scheduler.stop()

    app = FastAPI(
        title="Political Truth Tracker",
        description="Promise and incident ingestion pipeline with admin review",
        version=__version__,
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router, tags=["health"])
    app.include_router(relay.router, tags=["relay"])
    app.include_router(incidents.router, prefix="/incidents", tags=["incidents"])
    app.include_router(sync.router, prefix="/sync", tags=["sync"])
    return app


app = create_app()


# CLI Runner
async def cli_main(args: argparse.Namespace):
    """Run one sync from the command line and print its summary."""
    settings = get_settings()
    db = get_database()
    service = create_sync_service(
        SyncPipeline(args.pipeline), db, settings=settings, mock_mode=args.mock,
    )

    print("\n" + "=" * 60)
    print(f"POLITICAL TRUTH TRACKER - {args.pipeline.upper()} SYNC")
    print("=" * 60 + "\n")
    if args.mock:
        print("Running in MOCK MODE (no real model calls)\n")

    result = await service.run()

    print("\n" + "=" * 60)
    print("FINAL RESULTS")
    print("=" * 60)
    print(f"Status: {result.status}")
    print(result.details())
    print(f"Runtime: {result.duration / 1000:.2f}s")

    if result.errors:
        print(f"\nErrors: {len(result.errors)}")
        for error in result.errors[:5]:
            print(f"   - {error}")

    if args.history:
        print("\nRecent syncs:")
        for log in service.get_sync_history():
            print(f"   {log.timestamp:%Y-%m-%d %H:%M} [{log.result.pipeline}] "
                  f"{log.result.status}: {log.details}")

    print("=" * 60 + "\n")
    return result


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Political Truth Tracker")
    parser.add_argument(
        "--pipeline",
        choices=[p.value for p in SyncPipeline],
        default=SyncPipeline.PROMISES.value,
        help="Which sync to run (default: promises)"
    )
    parser.add_argument(
        "--mock",
        action="store_true",
        help="Run in mock mode (no real model calls)"
    )
    parser.add_argument(
        "--history",
        action="store_true",
        help="Print recent sync logs after the run"
    )
    parser.add_argument(
        "--server",
        action="store_true",
        help="Start the FastAPI server"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Server port (default: 8000)"
    )
    return parser


def main():
    """Entry point for CLI."""
    args = build_parser().parse_args()
    if args.server:
        import uvicorn
        logger.info(f"Starting server on port {args.port}...")
        uvicorn.run(app, host="0.0.0.0", port=args.port)
        return
    asyncio.run(cli_main(args))


if __name__ == "__main__":
    main()
