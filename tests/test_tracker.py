from datetime import timedelta

import pytest

from helpers import NOW, make_pick
from oddsdesk.core.retry import RetryPolicy
from oddsdesk.domain.models import GameInfo, GamePrediction, GameScore, PredictionLeg, PropPrediction
from oddsdesk.services.tracker import (
    InMemoryPickStore,
    create_pick,
    needs_settlement,
    new_pick_id,
    pending_summary,
    picks_from_prediction,
    picks_from_props,
    record_game_predictions,
    select_daily_picks,
    settle_pending,
)

HOME, AWAY = "Boston Celtics", "Miami Heat"


class ScoresDown(Exception):
    pass


def game(game_id="evt1", sport="NBA"):
    return GameInfo(game_id=game_id, sport=sport, home_team=HOME, away_team=AWAY,
                    game_time=NOW + timedelta(hours=6))


def final(home, away, game_id="evt1"):
    return GameScore(game_id=game_id, home_team=HOME, away_team=AWAY, home_score=home, away_score=away, completed=True)


def prediction(winner=None, spread=None, total=None):
    return GamePrediction(
        winner=PredictionLeg(pick=HOME, confidence=winner, reasoning="form") if winner is not None else None,
        spread=PredictionLeg(pick=AWAY, line=4.5, confidence=spread) if spread is not None else None,
        total=PredictionLeg(pick="Under 219.5", line=219.5, confidence=total) if total is not None else None,
    )


# ---------------- pick creation ----------------
def test_new_pick_id_format():
    pid = new_pick_id(NOW)
    prefix, ms, suffix = pid.split("_")
    assert prefix == "pick"
    assert int(ms) == int(NOW.timestamp() * 1000)
    assert len(suffix) == 9 and suffix.isalnum()


def test_create_pick_resolves_side_once():
    ml = create_pick(game(), "moneyline", "Heat ML", -120, confidence=70, now=NOW)
    assert ml.side == "away"
    assert ml.status == "pending" and ml.units == 1.0
    tot = create_pick(game(), "total", "Over 220.5", -110, line=220.5, confidence=70, now=NOW)
    assert tot.side == "over"


def test_value_bet_defaults_to_edge_threshold():
    assert create_pick(game(), "spread", f"{HOME} -3", -110, line=-3, confidence=65, edge=6.2, now=NOW).is_value_bet
    assert not create_pick(game(), "spread", f"{HOME} -3", -110, line=-3, confidence=65, edge=4.0, now=NOW).is_value_bet
    assert not create_pick(game(), "spread", f"{HOME} -3", -110, line=-3, confidence=65, now=NOW).is_value_bet


def test_picks_from_prediction_applies_threshold_and_defaults():
    picks = picks_from_prediction(game(), prediction(winner=72, spread=64, total=55), now=NOW)
    assert [p.bet_type for p in picks] == ["moneyline", "spread"]
    ml, spread = picks
    assert ml.pick == f"{HOME} ML" and ml.odds == -150 and ml.side == "home"
    assert spread.odds == -110 and spread.line == 4.5 and spread.side == "away"


def test_picks_from_props():
    props = [
        PropPrediction(player="Jayson Tatum", market="player_points", pick="Over", line=27.5, odds=-115, confidence=68),
        PropPrediction(player="Jaylen Brown", market="player_points", pick="Under", line=21.5, odds=-110, confidence=60),
    ]
    picks = picks_from_props(game(), props, now=NOW)
    assert len(picks) == 1
    assert picks[0].pick == "Jayson Tatum Over player_points"
    assert picks[0].bet_type == "player_prop" and picks[0].side == "over"


def test_select_daily_picks_ranks_games_and_takes_best_leg():
    candidates = [
        (game("g1"), prediction(winner=61, spread=62, total=58)),
        (game("g2"), prediction(winner=80, spread=70, total=70)),
        (game("g3"), prediction(winner=65, spread=66, total=66)),
    ]
    picks = select_daily_picks(candidates, count=2, now=NOW)
    assert [p.game_id for p in picks] == ["g2", "g3"]
    g2, g3 = picks
    assert g2.bet_type == "moneyline" and g2.pick == f"{HOME} ML" and g2.odds == -150 and g2.is_value_bet
    assert g3.bet_type == "spread"      # spread wins the 66/66 tie
    assert g3.pick == f"{AWAY} +4.5"
    assert not g3.is_value_bet


def test_select_daily_picks_skips_low_confidence():
    assert select_daily_picks([(game(), prediction(winner=50))], count=3, now=NOW) == []
    assert select_daily_picks([(game(), GamePrediction())], count=3, now=NOW) == []


def test_record_game_predictions_retries_then_saves():
    store = InMemoryPickStore()
    calls = []
    sleeps = []

    def flaky(g):
        calls.append(g.game_id)
        if len(calls) < 2:
            raise RuntimeError("model busy")
        return prediction(winner=75)

    retry = RetryPolicy(max_attempts=3, delay_seconds=0.5)
    saved = record_game_predictions(store, game(), flaky, retry=RetryPolicy(max_attempts=3, delay_seconds=0.0), now=NOW)
    assert len(calls) == 2
    assert [p.id for p in store.get_all()] == [p.id for p in saved]

    def down():
        raise RuntimeError("down")

    with pytest.raises(RuntimeError):
        retry.call(down, sleep=sleeps.append)
    assert sleeps == [0.5, 0.5]


# ---------------- store ----------------
def test_store_update_status_is_compare_and_swap():
    store = InMemoryPickStore([make_pick(pick_id="p1")])
    assert store.update_status("p1", "won", None).status == "won"
    assert store.update_status("p1", "lost", None) is None
    assert store.get("p1").status == "won"
    assert store.update_status("missing", "won", None) is None


def test_store_recent_is_newest_first():
    store = InMemoryPickStore([make_pick(pick_id="old", minutes=0), make_pick(pick_id="new", minutes=5)])
    assert [p.id for p in store.get_recent(1)] == ["new"]


# ---------------- settlement run ----------------
def test_needs_settlement_only_started_games():
    started = make_pick(pick_id="a", game_time=NOW - timedelta(hours=1))
    later = make_pick(pick_id="b", game_time=NOW + timedelta(hours=1))
    done = make_pick(pick_id="c", status="won", game_time=NOW - timedelta(hours=1))
    assert [p.id for p in needs_settlement([started, later, done], now=NOW)] == ["a"]


def test_pending_summary():
    store = InMemoryPickStore([make_pick(pick_id="a", game_time=NOW - timedelta(hours=1)),
                               make_pick(pick_id="b", game_time=NOW + timedelta(hours=1))])
    summary = pending_summary(store, now=NOW)
    assert (summary.total_pending, summary.needs_settlement) == (2, 1)
    assert summary.picks[0].id == "a"


def test_settle_pending_end_to_end():
    store = InMemoryPickStore([
        make_pick(pick_id="ml", pick=f"{HOME} ML", side="home"),
        make_pick(pick_id="sp", bet_type="spread", pick=f"{HOME} -3", line=-3, side="home"),
        make_pick(pick_id="prop", bet_type="player_prop", pick="Jayson Tatum Over player_points", line=27.5),
        make_pick(pick_id="open", game_id="evt2"),
    ])
    fetched = []

    def fetch(sport):
        fetched.append(sport)
        return {"evt1": final(103, 100)}

    report = settle_pending(store, fetch, now=NOW)
    assert fetched == ["NBA"]
    assert report.settled == 2
    assert {r.pick_id: r.status for r in report.results} == {"ml": "won", "sp": "push"}
    assert report.results[0].score == f"{HOME} 103 - {AWAY} 100"
    assert store.get("ml").result.actual_score.home == 103
    assert store.get("ml").result.settled_at == NOW
    assert store.get("prop").status == "pending"
    assert store.get("open").status == "pending"


def test_settle_pending_is_safe_to_rerun():
    store = InMemoryPickStore([make_pick(pick_id="ml", pick=f"{HOME} ML")])
    fetch = lambda sport: {"evt1": final(90, 100)}
    assert settle_pending(store, fetch, now=NOW).settled == 1
    again = settle_pending(store, fetch, now=NOW)
    assert again.settled == 0
    assert again.message == "No pending picks to settle"
    assert store.get("ml").status == "lost"


def test_settle_pending_reports_fetch_failures_per_sport():
    store = InMemoryPickStore([
        make_pick(pick_id="nba", sport="NBA"),
        make_pick(pick_id="nhl", sport="NHL", game_id="evt9"),
    ])

    def fetch(sport):
        if sport == "NHL":
            raise ScoresDown("503 from provider")
        return {"evt1": final(110, 100)}

    report = settle_pending(store, fetch, now=NOW, fetch_errors=(ScoresDown,))
    assert report.settled == 1
    assert report.errors == {"NHL": "503 from provider"}
    assert store.get("nhl").status == "pending"


def test_retry_policy_from_settings():
    from oddsdesk.core.config import Settings

    policy = RetryPolicy.from_settings(Settings(prediction_max_attempts=5, prediction_retry_delay=1.5))
    assert (policy.max_attempts, policy.delay_seconds) == (5, 1.5)
