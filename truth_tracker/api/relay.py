"""Feed relay -- same-origin proxy for allow-listed feed hosts.

GET /fetch-relay?url=<encoded>. Only hosts on the relay allow-list (or their
subdomains) are fetched, so the endpoint never becomes an open proxy.
"""

import logging
from typing import Optional

import httpx
from fastapi import APIRouter
from fastapi.responses import JSONResponse, Response

from truth_tracker.api.dependencies import RelayClient
from truth_tracker.config import RELAY_ALLOWED_HOSTS
from truth_tracker.ingestion.allowlist import is_host_allowed, parse_http_url

logger = logging.getLogger(__name__)

router = APIRouter()

# Some feeds block non-browser user agents
RELAY_USER_AGENT = "Mozilla/5.0 (compatible; Political-Truth-Tracker/1.0)"


@router.get("/fetch-relay")
async def fetch_relay(client: RelayClient, url: Optional[str] = None):
    if not url:
        return JSONResponse({"error": "Missing 'url' query param"}, status_code=400)

    hostname = parse_http_url(url)
    if hostname is None:
        return JSONResponse({"error": "Invalid URL"}, status_code=400)
    if not is_host_allowed(hostname, RELAY_ALLOWED_HOSTS):
        logger.warning(f"[FAIL] Relay refused host: {hostname}")
        return JSONResponse({"error": "Host not allowed"}, status_code=403)

    try:
        upstream = await client.get(url, headers={"User-Agent": RELAY_USER_AGENT})
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        logger.error(f"fetch-relay error for {hostname}: {type(e).__name__}: {e}")
        return JSONResponse({"error": str(e) or "Internal server error"}, status_code=500)

    if not upstream.is_success:
        return JSONResponse(
            {"error": f"Upstream HTTP {upstream.status_code}"},
            status_code=upstream.status_code,
        )

    return Response(
        content=upstream.text,
        status_code=200,
        media_type="application/xml; charset=utf-8",
    )
