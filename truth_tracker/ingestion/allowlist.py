"""Destination host allow-list shared by the feed relay and the fetcher."""

from typing import Iterable, Optional
from urllib.parse import urlparse

from ..config import RELAY_ALLOWED_HOSTS


def parse_http_url(url: str) -> Optional[str]:
    """Return the lowercased hostname of an http(s) URL, or None if invalid."""
    try:
        parsed = urlparse(url or "")
    except ValueError:
        return None
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        return None
    return parsed.hostname.lower()


def is_host_allowed(hostname: str, allowed_hosts: Iterable[str] = RELAY_ALLOWED_HOSTS) -> bool:
    """Exact match or subdomain of an allowed host ('www.thehindu.com' → 'thehindu.com')."""
    hostname = (hostname or "").lower().rstrip(".")
    return any(hostname == h or hostname.endswith("." + h) for h in allowed_hosts)
