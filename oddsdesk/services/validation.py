# oddsdesk/services/validation.py
from __future__ import annotations

from typing import List, Optional

from fastapi import HTTPException

from ..core.config import SPORT_KEYS, TRACKER_SPORTS
from .props import is_prop_market


def validate_sport(sport: str) -> str:
    """
    Ensure the short sport name is one we have an Odds API key for.
    Returns the lower-cased name; anything else is a clean 422.
    """
    s = (sport or "").strip().lower()
    if s not in SPORT_KEYS:
        raise HTTPException(
            status_code=422,
            detail={"message": "Invalid sport", "input": sport, "expected": sorted(SPORT_KEYS)},
        )
    return s


def validate_tracker_sport(sport: str) -> str:
    s = (sport or "").strip().upper()
    if s not in TRACKER_SPORTS:
        raise HTTPException(
            status_code=422,
            detail={"message": "Invalid tracker sport", "input": sport, "expected": sorted(TRACKER_SPORTS)},
        )
    return s


def parse_prop_markets(markets: Optional[str]) -> Optional[List[str]]:
    """
    'player_points,player_assists' -> list. Only player_/batter_/pitcher_ keys pass;
    game markets would bypass the props path entirely.
    """
    if not markets:
        return None
    keys = [m.strip() for m in markets.split(",") if m.strip()]
    bad = [k for k in keys if not is_prop_market(k)]
    if bad:
        raise HTTPException(
            status_code=422,
            detail={"message": "Not a player prop market", "unknown": sorted(bad)},
        )
    return keys or None
