"""
Environment-driven settings.

AIRFOCUS_BASE_URL: upstream API root (default https://app.airfocus.com/api).
AIRFOCUS_CACHE_TTL_SECONDS: snapshot time-to-live (default 300 = 5 minutes).
AIRFOCUS_REQUEST_TIMEOUT_SECONDS: deadline the HTTP layer puts on each request (default 30).
AIRFOCUS_MAX_CACHED_KEYS: per-key caches the HTTP layer keeps alive (default 32).

The API key itself is never read from the environment; callers pass it per request.
"""

import os

DEFAULT_BASE_URL = "https://app.airfocus.com/api"
DEFAULT_CACHE_TTL_SECONDS = 300.0


def base_url() -> str:
    """Upstream API root without a trailing slash."""
    return os.getenv("AIRFOCUS_BASE_URL", DEFAULT_BASE_URL).rstrip("/")


def cache_ttl_seconds() -> float:
    """Seconds a fetched snapshot stays fresh."""
    return float(os.getenv("AIRFOCUS_CACHE_TTL_SECONDS", str(DEFAULT_CACHE_TTL_SECONDS)))


def request_timeout_seconds() -> float:
    """Deadline for one inbound request, upstream calls included. 0 = no deadline."""
    return float(os.getenv("AIRFOCUS_REQUEST_TIMEOUT_SECONDS", "30"))


def max_cached_keys() -> int:
    return int(os.getenv("AIRFOCUS_MAX_CACHED_KEYS", "32"))
