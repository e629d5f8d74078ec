# oddsdesk/services/props.py
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..core.config import PROP_MARKET_PREFIXES
from ..domain.errors import InvalidOddsError, MalformedInputError
from ..domain.models import PlayerProp
from .odds import best_quote, make_quote

logger = logging.getLogger(__name__)

PropKey = Tuple[str, str, Optional[float]]   # (market, player, line)


def is_prop_market(market_key: str) -> bool:
    return str(market_key or "").startswith(PROP_MARKET_PREFIXES)


def normalize_player_props(event: Dict[str, Any], markets: Optional[Iterable[str]] = None) -> List[PlayerProp]:
    """
    Group one event's player-prop outcomes by (market, player, line).

    - Player = outcome `description` when present, else `name` (yes/no markets put the player in `name`).
    - "Over" -> over side, "Under" -> under side.
    - Single-sided markets ("Yes" or a bare player name) land on the over side; "No" lands on the under side.
    - The same player at a different line is a separate entry, never merged.
    - Without `markets`, only keys starting with player_/batter_/pitcher_ are read.

    Entries come back in first-seen order.
    """
    wanted = set(markets) if markets else None
    props: Dict[PropKey, PlayerProp] = {}

    for book in event.get("bookmakers") or []:
        if not isinstance(book, dict):
            continue
        for market in book.get("markets") or []:
            key = str((market or {}).get("key") or "")
            if (wanted is not None and key not in wanted) or (wanted is None and not is_prop_market(key)):
                continue
            last_update = market.get("last_update") or book.get("last_update")
            for outcome in market.get("outcomes") or []:
                try:
                    player, side = _classify(outcome)
                    q = make_quote(book, outcome, last_update)
                except (MalformedInputError, InvalidOddsError) as e:
                    logger.debug("event %s: skip prop %s/%s %r: %s", event.get("id"), book.get("key"), key, outcome, e)
                    continue
                k = (key, player, q.point)
                prop = props.get(k)
                if prop is None:
                    prop = props[k] = PlayerProp(player_name=player, market=key, line=q.point)
                (prop.over_odds if side == "over" else prop.under_odds).append(q)

    for prop in props.values():
        prop.best_over = best_quote(prop.over_odds)
        prop.best_under = best_quote(prop.under_odds)
        prop.average_implied_probability = _average_probability(prop)
    return list(props.values())


def group_props_by_market(props: Iterable[PlayerProp]) -> Dict[str, List[PlayerProp]]:
    out: Dict[str, List[PlayerProp]] = {}
    for p in props:
        out.setdefault(p.market, []).append(p)
    return out


def rank_by_likelihood(props: Iterable[PlayerProp]) -> List[PlayerProp]:
    """Most likely first, by average implied probability across books (stable for ties)."""
    return sorted(props, key=lambda p: p.average_implied_probability, reverse=True)


# -------------------------------
# Internals
# -------------------------------
def _classify(outcome: Any) -> Tuple[str, str]:
    if not isinstance(outcome, dict):
        raise MalformedInputError("outcome is not an object")
    name = outcome.get("name")
    player = outcome.get("description") or name
    if not player:
        raise MalformedInputError("prop outcome has no player")
    if name in ("Under", "No"):
        return str(player), "under"
    return str(player), "over"


def _average_probability(prop: PlayerProp) -> float:
    side = prop.over_odds or prop.under_odds
    if not side:
        return 0.0
    return sum(q.implied_probability for q in side) / len(side)
