# oddsdesk/services/odds.py
from __future__ import annotations

import logging
from collections import Counter
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from ..domain.errors import InvalidOddsError, MalformedInputError
from ..domain.models import (
    AlternateLines,
    LineGroup,
    MoneylineMarket,
    NormalizedGameOdds,
    PeriodMarket,
    PeriodMarkets,
    PeriodMoneyline,
    Quote,
    SpreadLines,
    SpreadMarket,
    TeamTotalLine,
    TotalLines,
    TotalMarket,
)
from .odds_math import decimal_to_american, implied_probability_from_decimal

logger = logging.getLogger(__name__)

OVER, UNDER, DRAW = "Over", "Under", "Draw"

# Checked in order against the part of the key after the market prefix.
_PERIOD_TOKENS: List[Tuple[str, str]] = [
    ("1st_5_innings", "1st5"),
    ("1st_half", "1H"),
    ("2nd_half", "2H"),
    ("q1", "Q1"),
    ("q2", "Q2"),
    ("q3", "Q3"),
    ("q4", "Q4"),
    ("h1", "1H"),
    ("h2", "2H"),
    ("p1", "P1"),
    ("p2", "P2"),
    ("p3", "P3"),
]
_MARKET_PREFIXES = ("h2h", "spreads", "totals")


# -------------------------------
# Public API
# -------------------------------
def normalize_game_odds(event: Dict[str, Any]) -> NormalizedGameOdds:
    """
    Normalize one Odds API event into full-game moneyline / spread / total views.

    Expected input (decimal prices):
      {"id", "home_team", "away_team", "commence_time",
       "bookmakers": [{"key", "title", "markets": [{"key", "outcomes": [{"name", "price", "point"?}]}]}]}

    Notes:
      - Moneyline sides match home/away team names exactly; "Draw" feeds the soccer draw side.
      - Away spread points are the negation of the same book's home point.
      - Best quote = highest American odds, first bookmaker wins ties.
      - Consensus line = the point of the first bookmaker seen on that side (not a mode);
        the mode is reported separately as most_common_line.
      - Outcomes that cannot be classified or priced are logged and skipped.
    """
    home, away = event.get("home_team"), event.get("away_team")
    ml, sp, tot = MoneylineMarket(), SpreadMarket(), TotalMarket()
    skipped = 0

    for book, market in _iter_markets(event):
        key = market.get("key")
        last_update = market.get("last_update") or book.get("last_update")

        if key == "h2h":
            for outcome in market.get("outcomes") or []:
                try:
                    side = _classify_team(outcome.get("name"), home, away, allow_draw=True)
                    q = make_quote(book, outcome, last_update)
                except (MalformedInputError, InvalidOddsError) as e:
                    skipped += _skip(event, book, key, outcome, e)
                    continue
                getattr(ml, side).append(q)

        elif key == "spreads":
            outcomes = market.get("outcomes") or []
            home_point = _home_point(outcomes, home)
            for outcome in outcomes:
                try:
                    side = _classify_team(outcome.get("name"), home, away)
                    point = _require_point(outcome)
                    if side == "away" and home_point is not None:
                        point = _negate(home_point)
                    q = make_quote(book, outcome, last_update, point=point)
                except (MalformedInputError, InvalidOddsError) as e:
                    skipped += _skip(event, book, key, outcome, e)
                    continue
                getattr(sp, side).append(q)

        elif key == "totals":
            for outcome in market.get("outcomes") or []:
                try:
                    side = _classify_total(outcome.get("name"))
                    q = make_quote(book, outcome, last_update, point=_require_point(outcome))
                except (MalformedInputError, InvalidOddsError) as e:
                    skipped += _skip(event, book, key, outcome, e)
                    continue
                getattr(tot, side).append(q)

    ml.best_home = best_quote(ml.home)
    ml.best_away = best_quote(ml.away)
    ml.best_draw = best_quote(ml.draw)
    sp.consensus_line = sp.home[0].point if sp.home else None
    sp.most_common_line = _most_common(q.point for q in sp.home)
    tot.consensus_line = tot.over[0].point if tot.over else None
    tot.most_common_line = _most_common(q.point for q in tot.over)

    if skipped:
        logger.info("event %s: skipped %d malformed outcome(s)", event.get("id"), skipped)

    return NormalizedGameOdds(
        game_id=str(event.get("id") or ""),
        sport_key=event.get("sport_key"),
        home_team=home,
        away_team=away,
        commence_time=event.get("commence_time"),
        moneyline=ml,
        spread=sp,
        total=tot,
    )


def normalize_events(events: Iterable[Dict[str, Any]]) -> List[NormalizedGameOdds]:
    """Normalize a slate; soonest games first (events without a start time go last)."""
    games = [normalize_game_odds(e) for e in events or [] if isinstance(e, dict)]
    return sorted(games, key=lambda g: (g.commence_time is None, g.commence_time or ""))


def normalize_alternate_lines(event: Dict[str, Any]) -> AlternateLines:
    """
    Group alternate spreads, alternate totals and team totals by line.

    Alternate spreads are keyed by the home-perspective line: an away outcome at +3.5
    belongs to the home -3.5 group, so every group's away line is the negation of its
    home line.
    """
    home, away = event.get("home_team"), event.get("away_team")
    spreads: Dict[float, Dict[str, List[Quote]]] = {}
    totals: Dict[float, Dict[str, List[Quote]]] = {}
    team_totals: Dict[str, Dict[float, Dict[str, List[Quote]]]] = {}

    for book, market in _iter_markets(event):
        key = market.get("key")
        last_update = market.get("last_update") or book.get("last_update")
        for outcome in market.get("outcomes") or []:
            try:
                if key == "alternate_spreads":
                    side = _classify_team(outcome.get("name"), home, away)
                    point = _require_point(outcome)
                    line = point if side == "home" else _negate(point)
                    q = make_quote(book, outcome, last_update, point=point)
                    spreads.setdefault(line, {"home": [], "away": []})[side].append(q)
                elif key == "alternate_totals":
                    side = _classify_total(outcome.get("name"))
                    line = _require_point(outcome)
                    q = make_quote(book, outcome, last_update, point=line)
                    totals.setdefault(line, {"over": [], "under": []})[side].append(q)
                elif key == "team_totals":
                    team = _classify_team_loose(outcome.get("description"), home, away)
                    side = _classify_total(outcome.get("name"))
                    line = _require_point(outcome)
                    q = make_quote(book, outcome, last_update, point=line)
                    (team_totals.setdefault(team, {})
                     .setdefault(line, {"over": [], "under": []})[side].append(q))
                else:
                    break
            except (MalformedInputError, InvalidOddsError) as e:
                _skip(event, book, key, outcome, e)

    out = AlternateLines(
        game_id=str(event.get("id") or ""),
        home_team=home,
        away_team=away,
        commence_time=event.get("commence_time"),
        spread_lines_available=len(spreads),
        total_lines_available=len(totals),
        has_team_totals=bool(team_totals),
    )
    out.spreads = _spread_groups(spreads)
    out.totals = _total_groups(totals)
    for team, by_line in team_totals.items():
        rows = [TeamTotalLine(line=line, over=g["over"], under=g["under"]) for line, g in sorted(by_line.items())]
        setattr(out.team_totals, team, rows)
    return out


def normalize_period_markets(event: Dict[str, Any]) -> PeriodMarkets:
    """Quarter / half / period / first-five-innings markets, grouped per period label."""
    home, away = event.get("home_team"), event.get("away_team")
    ml: Dict[str, PeriodMoneyline] = {}
    spreads: Dict[str, Dict[float, Dict[str, List[Quote]]]] = {}
    totals: Dict[str, Dict[float, Dict[str, List[Quote]]]] = {}
    order: List[str] = []

    for book, market in _iter_markets(event):
        key = str(market.get("key") or "")
        kind = key.split("_", 1)[0]
        period = detect_period(key)
        if kind not in _MARKET_PREFIXES or period is None:
            logger.debug("skip unrecognized period market %r", key)
            continue
        if period not in order:
            order.append(period)
        last_update = market.get("last_update") or book.get("last_update")

        for outcome in market.get("outcomes") or []:
            try:
                if kind == "h2h":
                    side = _classify_team(outcome.get("name"), home, away)
                    q = make_quote(book, outcome, last_update)
                    getattr(ml.setdefault(period, PeriodMoneyline()), side).append(q)
                elif kind == "spreads":
                    side = _classify_team(outcome.get("name"), home, away)
                    point = _require_point(outcome)
                    line = point if side == "home" else _negate(point)
                    q = make_quote(book, outcome, last_update, point=point)
                    spreads.setdefault(period, {}).setdefault(line, {"home": [], "away": []})[side].append(q)
                else:
                    side = _classify_total(outcome.get("name"))
                    line = _require_point(outcome)
                    q = make_quote(book, outcome, last_update, point=line)
                    totals.setdefault(period, {}).setdefault(line, {"over": [], "under": []})[side].append(q)
            except (MalformedInputError, InvalidOddsError) as e:
                _skip(event, book, key, outcome, e)

    periods: Dict[str, PeriodMarket] = {}
    for period in order:
        pm = PeriodMarket(period=period)
        if period in ml:
            m = ml[period]
            m.best_home = best_quote(m.home)
            m.best_away = best_quote(m.away)
            pm.moneyline = m
        if period in spreads:
            pm.spread = _spread_groups(spreads[period])
        if period in totals:
            pm.total = _total_groups(totals[period])
        periods[period] = pm

    return PeriodMarkets(
        game_id=str(event.get("id") or ""),
        home_team=home,
        away_team=away,
        commence_time=event.get("commence_time"),
        periods=periods,
        available_periods=order,
    )


def detect_period(market_key: str) -> Optional[str]:
    """'spreads_q1' -> 'Q1', 'h2h_p2' -> 'P2', 'totals_1st_5_innings' -> '1st5'; None if unknown."""
    key = (market_key or "").lower()
    prefix, _, rest = key.partition("_")
    if prefix in _MARKET_PREFIXES:
        key = rest
    for token, label in _PERIOD_TOKENS:
        if token in key:
            return label
    return None


def make_quote(book: Dict[str, Any], outcome: Dict[str, Any], last_update: Optional[str] = None,
               *, point: Optional[float] = None) -> Quote:
    """Build a Quote from a decimal price. Raises InvalidOddsError for prices <= 1.0."""
    price = _to_float(outcome.get("price"))
    if price is None:
        raise MalformedInputError("outcome has no numeric price")
    return Quote(
        bookmaker=str(book.get("key") or book.get("title") or ""),
        bookmaker_title=str(book.get("title") or book.get("key") or ""),
        decimal_odds=price,
        american_odds=decimal_to_american(price),
        implied_probability=implied_probability_from_decimal(price),
        point=point if point is not None else _to_float(outcome.get("point")),
        last_update=last_update,
    )


def best_quote(quotes: List[Quote]) -> Optional[Quote]:
    # max() keeps the first maximal element, i.e. bookmaker encounter order breaks ties
    return max(quotes, key=lambda q: q.american_odds) if quotes else None


# -------------------------------
# Internals (helpers)
# -------------------------------
def _iter_markets(event: Dict[str, Any]) -> Iterator[Tuple[Dict[str, Any], Dict[str, Any]]]:
    for book in event.get("bookmakers") or []:
        if not isinstance(book, dict):
            continue
        for market in book.get("markets") or []:
            if isinstance(market, dict):
                yield book, market


def _skip(event: Dict[str, Any], book: Dict[str, Any], key: Any, outcome: Any, err: Exception) -> int:
    logger.debug("event %s: skip %s/%s outcome %r: %s", event.get("id"), book.get("key"), key, outcome, err)
    return 1


def _to_float(x: Any) -> Optional[float]:
    if x is None or isinstance(x, bool):
        return None
    try:
        return float(str(x).strip())
    except (TypeError, ValueError):
        return None


def _negate(x: float) -> float:
    return -x if x else 0.0


def _require_point(outcome: Dict[str, Any]) -> float:
    point = _to_float(outcome.get("point"))
    if point is None:
        raise MalformedInputError("line market outcome has no point")
    return point


def _classify_team(name: Any, home: Optional[str], away: Optional[str], *, allow_draw: bool = False) -> str:
    if not home or not away:
        raise MalformedInputError("event has no home_team/away_team")
    if name == home:
        return "home"
    if name == away:
        return "away"
    if allow_draw and name == DRAW:
        return "draw"
    raise MalformedInputError(f"outcome {name!r} matches neither team")


def _classify_team_loose(description: Any, home: Optional[str], away: Optional[str]) -> str:
    """Team totals carry the team in `description`, sometimes with extra words."""
    if not home or not away:
        raise MalformedInputError("event has no home_team/away_team")
    desc = str(description or "")
    if desc == home or desc == away:
        return "home" if desc == home else "away"
    if home in desc and away not in desc:
        return "home"
    if away in desc and home not in desc:
        return "away"
    raise MalformedInputError(f"team total description {description!r} matches no single team")


def _classify_total(name: Any) -> str:
    if name == OVER:
        return "over"
    if name == UNDER:
        return "under"
    raise MalformedInputError(f"total outcome {name!r} is neither Over nor Under")


def _home_point(outcomes: List[Dict[str, Any]], home: Optional[str]) -> Optional[float]:
    for o in outcomes:
        if isinstance(o, dict) and home and o.get("name") == home:
            return _to_float(o.get("point"))
    return None


def _most_common(values: Iterable[Optional[float]]) -> Optional[float]:
    counts = Counter(v for v in values if v is not None)
    if not counts:
        return None
    # Counter preserves first-seen order, so ties go to the earliest line
    return counts.most_common(1)[0][0]


# -------------------------------
# Line grouping
# -------------------------------
def _spread_groups(by_line: Dict[float, Dict[str, List[Quote]]]) -> SpreadLines:
    out = SpreadLines()
    for line, g in sorted(by_line.items()):
        if g["home"]:
            out.home.append(LineGroup(line=line, quotes=g["home"], best=best_quote(g["home"])))
        if g["away"]:
            out.away.append(LineGroup(line=_negate(line), quotes=g["away"], best=best_quote(g["away"])))
    out.away.sort(key=lambda lg: lg.line)
    return out


def _total_groups(by_line: Dict[float, Dict[str, List[Quote]]]) -> TotalLines:
    out = TotalLines()
    for line, g in sorted(by_line.items()):
        if g["over"]:
            out.over.append(LineGroup(line=line, quotes=g["over"], best=best_quote(g["over"])))
        if g["under"]:
            out.under.append(LineGroup(line=line, quotes=g["under"], best=best_quote(g["under"])))
    return out
