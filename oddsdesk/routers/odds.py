# oddsdesk/routers/odds.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ..clients.oddsapi import OddsApiError
from ..core.cache import TTLCache
from ..core.config import Settings, get_settings
from ..deps import get_cache, get_feed
from ..services.feed import OddsFeed
from ..services.odds_math import convert_odds, expected_value, is_positive_ev, kelly_stake
from ..services.props import group_props_by_market, rank_by_likelihood
from ..services.validation import parse_prop_markets, validate_sport

router = APIRouter(tags=["odds"])


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------- Full-game odds ----------------
@router.get(
    "/odds/{sport}",
    summary="Normalized moneyline / spread / total odds for a sport",
    description="Best price per side, consensus lines, soccer draw. `fresh=true` bypasses the cache.",
)
def game_odds(
    sport: str,
    fresh: bool = Query(False, description="Skip the cache and refetch"),
    feed: OddsFeed = Depends(get_feed),
):
    sport = validate_sport(sport)
    try:
        games = feed.game_odds(sport, fresh=fresh)
    except OddsApiError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return {"sport": sport, "count": len(games), "games": games, "fetched_at": _now()}


# ---------------- Alternate lines ----------------
@router.get(
    "/odds/{sport}/events/{event_id}/alternate",
    summary="Alternate spreads, alternate totals and team totals grouped by line",
)
def alternate_lines(sport: str, event_id: str, fresh: bool = Query(False), feed: OddsFeed = Depends(get_feed)):
    sport = validate_sport(sport)
    try:
        return feed.alternate_lines(sport, event_id, fresh=fresh)
    except OddsApiError as e:
        raise HTTPException(status_code=502, detail=str(e))


# ---------------- Period markets ----------------
@router.get(
    "/odds/{sport}/events/{event_id}/periods",
    summary="Quarter / half / period / first-five markets",
    description="Sports without period markets (soccer) return an empty `periods` map.",
)
def period_markets(sport: str, event_id: str, fresh: bool = Query(False), feed: OddsFeed = Depends(get_feed)):
    sport = validate_sport(sport)
    try:
        return feed.period_markets(sport, event_id, fresh=fresh)
    except OddsApiError as e:
        raise HTTPException(status_code=502, detail=str(e))


# ---------------- Player props ----------------
@router.get(
    "/odds/{sport}/events/{event_id}/props",
    summary="Player props grouped by (market, player, line)",
    description="Defaults to the sport's prop market catalog. Props are ranked by average implied probability.",
)
def player_props(
    sport: str,
    event_id: str,
    markets: Optional[str] = Query(None, description="csv of prop market keys, e.g. player_points,player_assists"),
    fresh: bool = Query(False),
    feed: OddsFeed = Depends(get_feed),
):
    sport = validate_sport(sport)
    wanted = parse_prop_markets(markets)
    try:
        props = feed.player_props(sport, event_id, markets=wanted, fresh=fresh)
    except OddsApiError as e:
        raise HTTPException(status_code=502, detail=str(e))
    ranked = rank_by_likelihood(props)
    return {
        "event_id": event_id,
        "count": len(ranked),
        "props": ranked,
        "by_market": group_props_by_market(ranked),
        "fetched_at": _now(),
    }


# ---------------- Scores ----------------
@router.get("/scores/{sport}", summary="Live, upcoming and completed scores")
def scores(sport: str, feed: OddsFeed = Depends(get_feed)):
    sport = validate_sport(sport)
    try:
        rows = feed.scores(sport)
    except OddsApiError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return {
        "sport": sport,
        "count": len(rows),
        "live_games": sum(1 for r in rows if r.is_live),
        "completed_games": sum(1 for r in rows if r.completed),
        "scores": rows,
    }


# ---------------- Cache ----------------
@router.post("/cache/clear", summary="Drop every cached odds / props payload")
def clear_cache(cache: TTLCache = Depends(get_cache)):
    return {"success": True, "cleared": cache.clear()}


# ---------------- Value calculator ----------------
@router.get(
    "/tools/value",
    summary="Price conversions, expected value and fractional Kelly stake",
    description="EV is per 100 staked. The Kelly fraction comes from KELLY_FRACTION.",
)
def value(
    fair_probability: float = Query(..., gt=0, lt=1, description="Your estimate of the win probability"),
    decimal_odds: float = Query(..., gt=1, description="Offered price, decimal"),
    bankroll: float = Query(100.0, gt=0),
    settings: Settings = Depends(get_settings),
):
    return {
        "odds": convert_odds(decimal_odds),
        "expected_value": round(expected_value(fair_probability, decimal_odds), 2),
        "positive_ev": is_positive_ev(fair_probability, decimal_odds),
        "kelly_stake": round(kelly_stake(fair_probability, decimal_odds, bankroll, settings.kelly_fraction), 2),
    }
