# oddsdesk/routers/health.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from ..core.cache import TTLCache
from ..core.config import Settings, get_settings
from ..deps import get_cache, get_store
from ..services.tracker import PickStore

router = APIRouter(tags=["health"])


@router.get("/api/v1/ping", summary="Liveness")
def ping():
    return {"status": "ok", "service": "oddsdesk"}


@router.get(
    "/health",
    summary="Readiness and local state",
    description="Never calls the Odds API; reports whether a key is configured and what is held in memory.",
)
def health(
    settings: Settings = Depends(get_settings),
    cache: TTLCache = Depends(get_cache),
    store: PickStore = Depends(get_store),
):
    return {
        "status": "ok",
        "odds_api_configured": bool(settings.odds_api_key),
        "cached_entries": len(cache),
        "pending_picks": len(store.get_pending()),
    }


@router.head("/")
def head_root():
    return Response(status_code=200)
