from datetime import datetime, timedelta, timezone

from oddsdesk.domain.models import TrackedPick

NOW = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)


def book(key, markets, title=None):
    return {"key": key, "title": title or key.title(), "markets": markets}


def market(key, *outcomes):
    return {"key": key, "outcomes": list(outcomes)}


def outcome(name, price, point=None, description=None):
    o = {"name": name, "price": price}
    if point is not None:
        o["point"] = point
    if description is not None:
        o["description"] = description
    return o


def event(bookmakers, home="Boston Celtics", away="Miami Heat", event_id="evt1",
          commence="2025-01-15T00:00:00Z"):
    return {
        "id": event_id,
        "sport_key": "basketball_nba",
        "home_team": home,
        "away_team": away,
        "commence_time": commence,
        "bookmakers": bookmakers,
    }


def make_pick(status="pending", bet_type="moneyline", pick="Boston Celtics ML", odds=-110, line=None,
              side=None, confidence=65.0, sport="NBA", minutes=0, is_value_bet=False, pick_id=None, **kw):
    created = NOW + timedelta(minutes=minutes)
    return TrackedPick(
        id=pick_id or f"pick_{minutes}",
        created_at=created,
        game_id=kw.pop("game_id", "evt1"),
        sport=sport,
        home_team=kw.pop("home_team", "Boston Celtics"),
        away_team=kw.pop("away_team", "Miami Heat"),
        game_time=kw.pop("game_time", created + timedelta(hours=2)),
        bet_type=bet_type,
        pick=pick,
        odds=odds,
        line=line,
        side=side,
        confidence=confidence,
        is_value_bet=is_value_bet,
        status=status,
        **kw,
    )
