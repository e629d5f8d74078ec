from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional

from ..clients.oddsapi import OddsApiClient
from ..core import cache as ns
from ..core.cache import TTLCache
from ..core.config import (
    ALTERNATE_MARKETS,
    GAME_MARKETS,
    TRACKER_SPORTS,
    get_period_markets,
    get_prop_markets,
    get_sport_key,
)
from ..domain.models import (
    AlternateLines,
    GameScore,
    NormalizedGameOdds,
    NormalizedScore,
    PeriodMarkets,
    PlayerProp,
)
from .odds import normalize_alternate_lines, normalize_events, normalize_period_markets
from .props import normalize_player_props
from .scores import final_scores, normalize_score

logger = logging.getLogger(__name__)


class OddsFeed:
    """Fetch -> normalize -> cache. `fresh=True` skips the cache read but still refreshes it."""

    def __init__(self, client: OddsApiClient, cache: TTLCache, *, ttl: float, props_ttl: float,
                 scores_days_from: int = 3):
        self._client = client
        self._cache = cache
        self._ttl = ttl
        self._props_ttl = props_ttl
        self._days_from = scores_days_from

    def game_odds(self, sport: str, fresh: bool = False) -> List[NormalizedGameOdds]:
        key = TTLCache.key(ns.ODDS, sport)
        hit = None if fresh else self._cache.get(key)
        if hit is not None:
            return hit
        games = normalize_events(self._client.odds(get_sport_key(sport), markets=GAME_MARKETS))
        self._cache.set(key, games, ttl=self._ttl)
        logger.info("odds %s: %d games", sport, len(games))
        return games

    def alternate_lines(self, sport: str, event_id: str, fresh: bool = False) -> AlternateLines:
        key = TTLCache.key(ns.ALTERNATE, sport, event_id)
        hit = None if fresh else self._cache.get(key)
        if hit is not None:
            return hit
        out = normalize_alternate_lines(self._client.event_odds(get_sport_key(sport), event_id, ALTERNATE_MARKETS))
        self._cache.set(key, out, ttl=self._ttl)
        return out

    def period_markets(self, sport: str, event_id: str, fresh: bool = False) -> PeriodMarkets:
        markets = get_period_markets(sport)
        if not markets:
            return PeriodMarkets(game_id=event_id)
        key = TTLCache.key(ns.PERIODS, sport, event_id)
        hit = None if fresh else self._cache.get(key)
        if hit is not None:
            return hit
        out = normalize_period_markets(self._client.event_odds(get_sport_key(sport), event_id, markets))
        self._cache.set(key, out, ttl=self._ttl)
        return out

    def player_props(self, sport: str, event_id: str, markets: Optional[Iterable[str]] = None,
                     fresh: bool = False) -> List[PlayerProp]:
        wanted = list(markets or get_prop_markets(sport) or [])
        if not wanted:
            return []
        key = TTLCache.key(ns.PROPS, sport, event_id, ",".join(sorted(wanted)))
        hit = None if fresh else self._cache.get(key)
        if hit is not None:
            return hit
        event = self._client.event_odds(get_sport_key(sport), event_id, wanted)
        props = normalize_player_props(event, markets=wanted)
        self._cache.set(key, props, ttl=self._props_ttl)
        return props

    def scores(self, sport: str) -> List[NormalizedScore]:
        events = self._client.scores(get_sport_key(sport), days_from=self._days_from)
        return [normalize_score(e) for e in events or []]

    def final_scores(self, tracker_sport: str) -> Dict[str, GameScore]:
        """Completed games for a tracker sport label (NBA, NHL, ...), keyed by game id. Never cached."""
        sport_key = TRACKER_SPORTS.get(tracker_sport.upper()) or get_sport_key(tracker_sport)
        return final_scores(self._client.scores(sport_key, days_from=self._days_from))
