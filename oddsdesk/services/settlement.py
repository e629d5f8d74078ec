# oddsdesk/services/settlement.py
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from ..domain.errors import MissingLineError, SettlementConflictError, UnsettleableError
from ..domain.models import ActualScore, GameScore, PickResult, PickStatus, TrackedPick
from .teams import resolve_team_side

logger = logging.getLogger(__name__)


# -------------------------------
# Public API
# -------------------------------
def evaluate(pick: TrackedPick, score: GameScore) -> PickStatus:
    """
    Settlement status for `pick` against a final `score`. Pure; never raises for
    incomplete input.

      moneyline   -> won/lost (no push; ties go against the picked side)
      spread      -> won/lost/push, void without a line
      total       -> won/lost/push, void without a line
      player_prop -> pending (no automatic settlement source)
      other       -> void

    A score that is not completed leaves the pick pending.
    """
    if not score.completed:
        return "pending"
    try:
        if pick.bet_type == "moneyline":
            return _moneyline(pick, score)
        if pick.bet_type == "spread":
            return _spread(pick, score)
        if pick.bet_type == "total":
            return _total(pick, score)
        if pick.bet_type == "player_prop":
            raise UnsettleableError(f"pick {pick.id}: player props are settled manually")
    except MissingLineError as e:
        logger.debug("%s -> void", e)
        return "void"
    except UnsettleableError as e:
        logger.debug("%s -> pending", e)
        return "pending"
    return "void"


def apply_settlement(pick: TrackedPick, status: PickStatus, score: Optional[GameScore] = None,
                     settled_at: Optional[datetime] = None) -> TrackedPick:
    """
    Move a pending pick to `status` and return the settled copy.

    Re-applying a pick's current status returns it unchanged, so retries are safe.
    Moving a settled pick to a different terminal status raises SettlementConflictError.
    """
    if status == "pending" or status == pick.status:
        return pick
    if pick.is_settled:
        raise SettlementConflictError(f"pick {pick.id} already {pick.status}, refusing {status}")
    result = PickResult(
        actual_score=ActualScore(home=score.home_score, away=score.away_score) if score else None,
        settled_at=settled_at or datetime.now(timezone.utc),
    )
    return pick.model_copy(update={"status": status, "result": result})


def picked_home(pick: TrackedPick, home_team: str, away_team: str) -> bool:
    """Stored side first, then alias matching on the pick text, then plain containment of the home name."""
    if pick.side in ("home", "away"):
        return pick.side == "home"
    side = resolve_team_side(pick.pick, home_team, away_team)
    if side is not None:
        return side == "home"
    return home_team in pick.pick


# -------------------------------
# Bet types
# -------------------------------
def _moneyline(pick: TrackedPick, s: GameScore) -> PickStatus:
    if picked_home(pick, s.home_team, s.away_team):
        return "won" if s.home_score > s.away_score else "lost"
    return "won" if s.away_score > s.home_score else "lost"


def _spread(pick: TrackedPick, s: GameScore) -> PickStatus:
    line = _require_line(pick)
    margin = s.home_score - s.away_score
    if picked_home(pick, s.home_team, s.away_team):
        adjusted = margin + line
    else:
        adjusted = -margin + abs(line)
    if adjusted == 0:
        return "push"
    return "won" if adjusted > 0 else "lost"


def _total(pick: TrackedPick, s: GameScore) -> PickStatus:
    line = _require_line(pick)
    total = s.home_score + s.away_score
    if total == line:
        return "push"
    if pick.side == "over" or (pick.side is None and "OVER" in pick.pick.upper()):
        return "won" if total > line else "lost"
    return "won" if total < line else "lost"


def _require_line(pick: TrackedPick) -> float:
    if pick.line is None:
        raise MissingLineError(f"pick {pick.id}: {pick.bet_type} without a line")
    return pick.line
