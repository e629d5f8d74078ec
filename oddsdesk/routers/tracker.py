# oddsdesk/routers/tracker.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Literal

from fastapi import APIRouter, Depends, Query

from ..core.config import Settings, get_settings
from ..deps import get_now, get_store
from ..domain.models import GameInfo
from ..schemas.picks import SavePickRequest, SavePickResponse, TrackerDashboard
from ..services.stats import compute_performance_stats
from ..services.tracker import PickStore, create_pick
from ..services.validation import validate_tracker_sport

router = APIRouter(prefix="/tracker", tags=["tracker"])
logger = logging.getLogger(__name__)

RECENT_PICKS = 20


@router.get(
    "",
    summary="Performance stats, recent picks and pending picks",
    description="`view=stats` returns only stats, `view=pending` only the pending queue.",
)
def tracker(
    view: Literal["dashboard", "stats", "pending"] = Query("dashboard"),
    store: PickStore = Depends(get_store),
    now: datetime = Depends(get_now),
):
    if view == "stats":
        return {"stats": compute_performance_stats(store.get_all(), now=now)}
    if view == "pending":
        return {"pending_picks": store.get_pending()}
    return TrackerDashboard(
        stats=compute_performance_stats(store.get_all(), now=now),
        recent_picks=store.get_recent(RECENT_PICKS),
        pending_picks=store.get_pending(),
    )


@router.post("", summary="Record a new pick", response_model=SavePickResponse)
def save_pick(
    body: SavePickRequest,
    store: PickStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    game = GameInfo(
        game_id=body.game_id,
        sport=validate_tracker_sport(body.sport),
        home_team=body.home_team,
        away_team=body.away_team,
        game_time=body.game_time,
    )
    pick = create_pick(
        game, body.bet_type, body.pick, body.odds,
        confidence=body.confidence, line=body.line, reasoning=body.reasoning,
        edge=body.edge, is_value_bet=body.is_value_bet, side=body.side,
        value_edge=settings.value_bet_edge,
    )
    store.save(pick)
    logger.info("saved pick %s: %s", pick.id, pick.pick)
    return SavePickResponse(pick=pick)
