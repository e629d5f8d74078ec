# oddsdesk/deps.py
from datetime import datetime, timezone
from functools import lru_cache

from fastapi import Depends, HTTPException

from .clients.oddsapi import OddsApiClient
from .core.cache import TTLCache
from .core.config import Settings, get_settings
from .services.feed import OddsFeed
from .services.tracker import InMemoryPickStore, PickStore


@lru_cache(maxsize=1)
def get_cache() -> TTLCache:
    """One process-wide cache, built on first use and shared by every request."""
    s = get_settings()
    return TTLCache(default_ttl=s.cache_ttl_seconds, max_items=s.cache_max_items)


@lru_cache(maxsize=4)
def _client(api_key: str, base_url: str, region: str, timeout: float) -> OddsApiClient:
    return OddsApiClient(api_key=api_key, base_url=base_url, region=region, timeout=timeout)


def get_client(settings: Settings = Depends(get_settings)) -> OddsApiClient:
    if not settings.odds_api_key:
        raise HTTPException(status_code=500, detail="ODDS_API_KEY missing")
    return _client(settings.odds_api_key, settings.odds_api_base, settings.default_region,
                   settings.http_timeout_seconds)


def get_feed(client: OddsApiClient = Depends(get_client), cache: TTLCache = Depends(get_cache),
             settings: Settings = Depends(get_settings)) -> OddsFeed:
    return OddsFeed(client, cache, ttl=settings.cache_ttl_seconds, props_ttl=settings.props_cache_ttl_seconds,
                    scores_days_from=settings.scores_days_from)


@lru_cache(maxsize=1)
def get_store() -> PickStore:
    return InMemoryPickStore()


def get_now() -> datetime:
    """Request clock. Stats windows and settlement cut-offs read this once per request."""
    return datetime.now(timezone.utc)
