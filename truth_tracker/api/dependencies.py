"""FastAPI dependency injection -- Depends() patterns using app.state from lifespan."""

from typing import Annotated, Any, AsyncIterator, Callable, Optional

import httpx
from fastapi import Depends, Header, HTTPException, Request

from truth_tracker.auth import AuthorizationPolicy
from truth_tracker.config import Settings
from truth_tracker.database import Database


def get_db(request: Request) -> Database:
    return request.app.state.db


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_auth_policy(request: Request) -> AuthorizationPolicy:
    return request.app.state.auth_policy


def get_sync_service_factory(request: Request):
    return request.app.state.sync_service_factory


async def get_relay_client(request: Request) -> AsyncIterator[httpx.AsyncClient]:
    settings: Settings = request.app.state.settings
    async with httpx.AsyncClient(
        timeout=settings.fetch_timeout_seconds,
        follow_redirects=True,
    ) as client:
        yield client


async def require_admin(
    policy: Annotated[AuthorizationPolicy, Depends(get_auth_policy)],
    x_user_email: Annotated[Optional[str], Header()] = None,
) -> str:
    """Admin gate. The principal is the X-User-Email header, judged by the injected policy."""
    if not policy.is_authorized(x_user_email):
        raise HTTPException(status_code=403, detail="Admin privileges required")
    return x_user_email


# Type aliases for cleaner route signatures
DB = Annotated[Database, Depends(get_db)]
AppSettings = Annotated[Settings, Depends(get_app_settings)]
RelayClient = Annotated[httpx.AsyncClient, Depends(get_relay_client)]
SyncServiceFactory = Annotated[Callable[..., Any], Depends(get_sync_service_factory)]
Admin = Annotated[str, Depends(require_admin)]
