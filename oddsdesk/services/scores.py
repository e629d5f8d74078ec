from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional

from ..domain.models import GameScore, NormalizedScore

logger = logging.getLogger(__name__)


def normalize_score(event: Dict[str, Any], now: Optional[datetime] = None) -> NormalizedScore:
    """
    Odds API /scores event -> NormalizedScore.
    Live = not completed and already started. Scores stay None until the provider posts them.
    """
    now = now or datetime.now(timezone.utc)
    home, away = event.get("home_team") or "", event.get("away_team") or ""
    commence = _parse_ts(event.get("commence_time"))
    completed = bool(event.get("completed"))

    home_score = away_score = None
    for row in event.get("scores") or []:
        name = (row or {}).get("name")
        if name == home:
            home_score = _to_int(row.get("score"))
        elif name == away:
            away_score = _to_int(row.get("score"))

    return NormalizedScore(
        game_id=str(event.get("id") or ""),
        home_team=home,
        away_team=away,
        home_score=home_score,
        away_score=away_score,
        is_live=not completed and commence is not None and commence <= now,
        completed=completed,
        commence_time=commence,
        last_update=_parse_ts(event.get("last_update")),
    )


def final_scores(events: Iterable[Dict[str, Any]]) -> Dict[str, GameScore]:
    """Completed games with both scores posted, keyed by game id."""
    out: Dict[str, GameScore] = {}
    for e in events or []:
        final = normalize_score(e).to_game_score()
        if final is not None:
            out[final.game_id] = final
    return out


# -------------------------------
# Internals
# -------------------------------
def _parse_ts(s: Any) -> Optional[datetime]:
    if not s:
        return None
    try:
        dt = datetime.fromisoformat(str(s).replace("Z", "+00:00"))
    except ValueError:
        logger.debug("unparseable timestamp %r", s)
        return None
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def _to_int(x: Any) -> Optional[int]:
    try:
        return int(str(x).strip())
    except (TypeError, ValueError):
        return None
