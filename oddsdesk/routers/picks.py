# oddsdesk/routers/picks.py
from __future__ import annotations

import logging
from datetime import datetime

from fastapi import APIRouter, Depends

from ..clients.oddsapi import OddsApiError
from ..core.config import Settings, get_settings
from ..deps import get_feed, get_now, get_store
from ..domain.models import GameInfo
from ..schemas.picks import (
    DailyPicksRequest,
    PendingSettlement,
    RecordedPicks,
    RecordPredictionRequest,
    SettlementReport,
)
from ..services.feed import OddsFeed
from ..services.tracker import (
    PickStore,
    pending_summary,
    picks_from_prediction,
    picks_from_props,
    select_daily_picks,
    settle_pending,
)
from ..services.validation import validate_tracker_sport

router = APIRouter(prefix="/picks", tags=["picks"])
logger = logging.getLogger(__name__)


# -------- /picks/record : one game's prediction -> tracked picks --------
@router.post(
    "/record",
    summary="Record the picks from one game's prediction",
    description="Winner/spread/total legs below MIN_PICK_CONFIDENCE and props below MIN_PROP_CONFIDENCE are dropped.",
    response_model=RecordedPicks,
)
def record(body: RecordPredictionRequest, store: PickStore = Depends(get_store),
           settings: Settings = Depends(get_settings)):
    game = _canonical(body.game)
    picks = picks_from_prediction(game, body.prediction, min_confidence=settings.min_pick_confidence)
    picks += picks_from_props(game, body.props, min_confidence=settings.min_prop_confidence)
    for p in picks:
        store.save(p)
    logger.info("recorded %d pick(s) for %s", len(picks), game.game_id)
    return RecordedPicks(picks=picks)


# -------- /picks/daily : best leg from the most confident games --------
@router.post(
    "/daily",
    summary="Build the daily card from a slate of predictions",
    description="Keeps the DAILY_PICKS_PER_SPORT most confident games per sport and one leg per game.",
    response_model=RecordedPicks,
)
def daily(body: DailyPicksRequest, store: PickStore = Depends(get_store),
          settings: Settings = Depends(get_settings)):
    by_sport = {}
    for c in body.candidates:
        game = _canonical(c.game)
        by_sport.setdefault(game.sport, []).append((game, c.prediction))
    picks = []
    for sport, candidates in by_sport.items():
        chosen = select_daily_picks(candidates, settings.daily_picks_per_sport,
                                    min_confidence=settings.min_pick_confidence)
        logger.info("%s daily picks: %d of %d games", sport, len(chosen), len(candidates))
        picks.extend(chosen)
    for p in picks:
        store.save(p)
    return RecordedPicks(picks=picks)


# -------- /picks/settle --------
@router.post(
    "/settle",
    summary="Settle pending picks against final scores",
    description=(
        "Groups pending picks by sport, fetches completed scores per sport and moves each pick "
        "with a final score to won/lost/push/void. Player props stay pending. Safe to re-run."
    ),
    response_model=SettlementReport,
)
def settle(store: PickStore = Depends(get_store), feed: OddsFeed = Depends(get_feed),
           now: datetime = Depends(get_now)):
    return settle_pending(store, feed.final_scores, now, fetch_errors=(OddsApiError,))


@router.get(
    "/settle",
    summary="Pending picks whose game has started",
    response_model=PendingSettlement,
)
def settle_status(store: PickStore = Depends(get_store), now: datetime = Depends(get_now)):
    return pending_summary(store, now)


def _canonical(game: GameInfo) -> GameInfo:
    # settlement looks sports up by their upper-case tracker key
    return game.model_copy(update={"sport": validate_tracker_sport(game.sport)})
