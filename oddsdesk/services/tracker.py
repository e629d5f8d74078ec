# oddsdesk/services/tracker.py
from __future__ import annotations

import logging
import random
import string
import threading
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional, Protocol, Tuple

from ..core.retry import RetryPolicy
from ..domain.models import (
    GameInfo,
    GamePrediction,
    GameScore,
    PickResult,
    PickStatus,
    PredictionLeg,
    PropPrediction,
    TrackedPick,
)
from ..schemas.picks import PendingPickSummary, PendingSettlement, SettledPick, SettlementReport
from .settlement import apply_settlement, evaluate
from .teams import resolve_team_side, resolve_total_side

logger = logging.getLogger(__name__)

DEFAULT_ML_ODDS = -150
DEFAULT_LINE_ODDS = -110
DAILY_VALUE_CONFIDENCE = 70

Predictor = Callable[[GameInfo], GamePrediction]
ScoreFetcher = Callable[[str], Dict[str, GameScore]]


# -------------------------------
# Persistence
# -------------------------------
class PickStore(Protocol):
    def save(self, pick: TrackedPick) -> None: ...
    def get(self, pick_id: str) -> Optional[TrackedPick]: ...
    def get_pending(self) -> List[TrackedPick]: ...
    def update_status(self, pick_id: str, status: PickStatus, result: Optional[PickResult]) -> Optional[TrackedPick]: ...
    def get_recent(self, n: int = 20) -> List[TrackedPick]: ...
    def get_all(self) -> List[TrackedPick]: ...


class InMemoryPickStore:
    """
    Process-local PickStore. update_status only moves picks that are still pending,
    so two settlement runs racing on the same id settle it once.
    """
    def __init__(self, picks: Iterable[TrackedPick] = ()):
        self._picks: Dict[str, TrackedPick] = {p.id: p for p in picks}
        self._lock = threading.Lock()

    def save(self, pick: TrackedPick) -> None:
        with self._lock:
            self._picks[pick.id] = pick

    def get(self, pick_id: str) -> Optional[TrackedPick]:
        with self._lock:
            return self._picks.get(pick_id)

    def get_pending(self) -> List[TrackedPick]:
        with self._lock:
            return [p for p in self._picks.values() if p.status == "pending"]

    def update_status(self, pick_id: str, status: PickStatus, result: Optional[PickResult]) -> Optional[TrackedPick]:
        with self._lock:
            current = self._picks.get(pick_id)
            if current is None or current.status != "pending":
                return None
            updated = current.model_copy(update={"status": status, "result": result})
            self._picks[pick_id] = updated
            return updated

    def get_recent(self, n: int = 20) -> List[TrackedPick]:
        with self._lock:
            ordered = sorted(self._picks.values(), key=lambda p: p.created_at, reverse=True)
        return ordered[:n]

    def get_all(self) -> List[TrackedPick]:
        with self._lock:
            return list(self._picks.values())


# -------------------------------
# Pick creation
# -------------------------------
def new_pick_id(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"pick_{int(now.timestamp() * 1000)}_{suffix}"


def resolve_side(bet_type: str, text: str, home_team: str, away_team: str) -> Optional[str]:
    if bet_type in ("moneyline", "spread"):
        return resolve_team_side(text, home_team, away_team)
    if bet_type in ("total", "player_prop"):
        return resolve_total_side(text)
    return None


def create_pick(game: GameInfo, bet_type: str, pick: str, odds: int, *, confidence: float,
                line: Optional[float] = None, reasoning: str = "", edge: Optional[float] = None,
                is_value_bet: Optional[bool] = None, side: Optional[str] = None,
                value_edge: float = 5.0, now: Optional[datetime] = None) -> TrackedPick:
    """New pending pick; the side is resolved once here so settlement never re-parses the text."""
    now = now or datetime.now(timezone.utc)
    if is_value_bet is None:
        is_value_bet = edge is not None and edge > value_edge
    return TrackedPick(
        id=new_pick_id(now),
        created_at=now,
        game_id=game.game_id,
        sport=game.sport,
        home_team=game.home_team,
        away_team=game.away_team,
        game_time=game.game_time,
        bet_type=bet_type,
        pick=pick,
        odds=odds,
        line=line,
        side=side or resolve_side(bet_type, pick, game.home_team, game.away_team),
        confidence=confidence,
        reasoning=reasoning,
        edge=edge,
        is_value_bet=is_value_bet,
    )


def picks_from_prediction(game: GameInfo, prediction: GamePrediction, *, min_confidence: float = 60.0,
                          now: Optional[datetime] = None) -> List[TrackedPick]:
    """Winner / spread / total legs at or above `min_confidence` become pending picks."""
    out: List[TrackedPick] = []
    w = prediction.winner
    if w and w.confidence >= min_confidence:
        out.append(create_pick(
            game, "moneyline", f"{w.pick} ML", w.odds or DEFAULT_ML_ODDS,
            confidence=w.confidence, reasoning=w.reasoning,
            side=_exact_side(w.pick, game), now=now,
        ))
    s = prediction.spread
    if s and s.confidence >= min_confidence:
        out.append(create_pick(
            game, "spread", s.pick, s.odds or DEFAULT_LINE_ODDS, line=s.line,
            confidence=s.confidence, reasoning=s.reasoning, now=now,
        ))
    t = prediction.total
    if t and t.confidence >= min_confidence:
        out.append(create_pick(
            game, "total", t.pick, t.odds or DEFAULT_LINE_ODDS, line=t.line,
            confidence=t.confidence, reasoning=t.reasoning, now=now,
        ))
    return out


def picks_from_props(game: GameInfo, props: Iterable[PropPrediction], *, min_confidence: float = 65.0,
                     now: Optional[datetime] = None) -> List[TrackedPick]:
    return [
        create_pick(
            game, "player_prop", f"{p.player} {p.pick} {p.market}", p.odds, line=p.line,
            confidence=p.confidence, reasoning=p.reasoning, now=now,
        )
        for p in props
        if p.confidence >= min_confidence
    ]


def select_daily_picks(candidates: Iterable[Tuple[GameInfo, GamePrediction]], count: int, *,
                       min_confidence: float = 60.0, now: Optional[datetime] = None) -> List[TrackedPick]:
    """
    Daily card: rank games by their most confident leg, keep the top `count`, and
    pick one leg per game (spread, then winner, then total on equal confidence).
    """
    ranked = sorted(candidates, key=lambda c: _max_confidence(c[1]), reverse=True)[:count]
    out: List[TrackedPick] = []
    for game, prediction in ranked:
        legs = [("spread", prediction.spread), ("winner", prediction.winner), ("total", prediction.total)]
        kind, leg = max(legs, key=lambda kl: kl[1].confidence if kl[1] else 0)
        if leg is None or leg.confidence < min_confidence:
            continue
        out.append(_daily_pick(game, kind, leg, now))
    return out


def record_game_predictions(store: PickStore, game: GameInfo, predict: Predictor, *,
                            retry: RetryPolicy = RetryPolicy(), min_confidence: float = 60.0,
                            now: Optional[datetime] = None) -> List[TrackedPick]:
    """
    Ask the predictor (with bounded retries), turn the answer into picks, persist them.

    Entry point for a scheduled prediction job. The HTTP routes take finished
    predictions in the request body instead, so no route calls this.
    """
    prediction = retry.call(lambda: predict(game))
    picks = picks_from_prediction(game, prediction, min_confidence=min_confidence, now=now)
    for p in picks:
        store.save(p)
        logger.info("saved pick %s: %s (%.0f%% conf)", p.id, p.pick, p.confidence)
    return picks


# -------------------------------
# Settlement run
# -------------------------------
def needs_settlement(picks: Iterable[TrackedPick], now: Optional[datetime] = None) -> List[TrackedPick]:
    """Pending picks whose game has started."""
    now = now or datetime.now(timezone.utc)
    return [p for p in picks if p.status == "pending" and _aware(p.game_time) < now]


def pending_summary(store: PickStore, now: Optional[datetime] = None) -> PendingSettlement:
    pending = store.get_pending()
    due = needs_settlement(pending, now)
    return PendingSettlement(
        total_pending=len(pending),
        needs_settlement=len(due),
        picks=[PendingPickSummary(id=p.id, pick=p.pick, sport=p.sport, game_time=p.game_time) for p in due],
    )


def settle_pending(store: PickStore, fetch_scores: ScoreFetcher, now: Optional[datetime] = None,
                   *, fetch_errors: Tuple[type, ...] = ()) -> SettlementReport:
    """
    Settle every pending pick whose game has a final score.

    `fetch_scores(sport)` returns final scores keyed by game id. A sport whose fetch
    raises one of `fetch_errors` is reported and skipped; its picks stay pending for
    the next run. Safe to re-run: the store only moves picks that are still pending.
    """
    now = now or datetime.now(timezone.utc)
    pending = store.get_pending()
    if not pending:
        return SettlementReport(message="No pending picks to settle", timestamp=now)

    by_sport: Dict[str, List[TrackedPick]] = {}
    for p in pending:
        by_sport.setdefault(p.sport, []).append(p)

    results: List[SettledPick] = []
    errors: Dict[str, str] = {}
    for sport, picks in by_sport.items():
        try:
            scores = fetch_scores(sport)
        except fetch_errors as e:
            logger.warning("score fetch failed for %s: %s", sport, e)
            errors[sport] = str(e)
            continue

        for pick in picks:
            score = scores.get(pick.game_id)
            if score is None:
                continue
            status = evaluate(pick, score)
            if status == "pending":
                continue
            settled = apply_settlement(pick, status, score, settled_at=now)
            if store.update_status(pick.id, status, settled.result) is None:
                logger.info("pick %s already settled elsewhere", pick.id)
                continue
            results.append(SettledPick(
                pick_id=pick.id,
                pick=pick.pick,
                status=status,
                score=f"{score.home_team} {score.home_score} - {score.away_team} {score.away_score}",
            ))
            logger.info("settled pick %s: %s -> %s", pick.id, pick.pick, status)

    return SettlementReport(
        message=f"Settled {len(results)} picks",
        settled=len(results),
        results=results,
        errors=errors,
        timestamp=now,
    )


# -------------------------------
# Internals
# -------------------------------
def _aware(dt: datetime) -> datetime:
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def _exact_side(team: str, game: GameInfo) -> Optional[str]:
    if team == game.home_team:
        return "home"
    if team == game.away_team:
        return "away"
    return None


def _max_confidence(p: GamePrediction) -> float:
    return max((leg.confidence for leg in (p.winner, p.spread, p.total) if leg), default=0.0)


def _daily_pick(game: GameInfo, kind: str, leg: PredictionLeg, now: Optional[datetime]) -> TrackedPick:
    value = leg.confidence >= DAILY_VALUE_CONFIDENCE
    if kind == "winner":
        side = _exact_side(leg.pick, game)
        odds = leg.odds or (DEFAULT_ML_ODDS if side == "home" else -DEFAULT_ML_ODDS)
        return create_pick(game, "moneyline", f"{leg.pick} ML", odds, confidence=leg.confidence,
                           reasoning=leg.reasoning, is_value_bet=value, side=side, now=now)
    if kind == "spread":
        text = leg.pick if leg.line is None else f"{leg.pick} {leg.line:+g}"
        return create_pick(game, "spread", text, leg.odds or DEFAULT_LINE_ODDS, line=leg.line,
                           confidence=leg.confidence, reasoning=leg.reasoning, is_value_bet=value, now=now)
    text = leg.pick if leg.line is None else f"{leg.pick} {leg.line:g}"
    return create_pick(game, "total", text, leg.odds or DEFAULT_LINE_ODDS, line=leg.line,
                       confidence=leg.confidence, reasoning=leg.reasoning, is_value_bet=value, now=now)
