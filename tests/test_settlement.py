from datetime import datetime, timezone

import pytest

from helpers import make_pick
from oddsdesk.domain.errors import SettlementConflictError
from oddsdesk.domain.models import GameScore
from oddsdesk.services.settlement import apply_settlement, evaluate, picked_home

HOME, AWAY = "Boston Celtics", "Miami Heat"


def score(home, away, completed=True, home_team=HOME, away_team=AWAY):
    return GameScore(game_id="evt1", home_team=home_team, away_team=away_team,
                     home_score=home, away_score=away, completed=completed)


# ---------------- moneyline ----------------
def test_moneyline_home_pick_wins():
    assert evaluate(make_pick(pick=f"{HOME} ML"), score(110, 105)) == "won"


def test_moneyline_away_pick_loses():
    assert evaluate(make_pick(pick=f"{AWAY} ML"), score(110, 105)) == "lost"


def test_moneyline_away_pick_wins_on_road():
    assert evaluate(make_pick(pick=f"{AWAY} ML"), score(99, 104)) == "won"


def test_moneyline_uses_stored_side_over_text():
    p = make_pick(pick="the road team", side="away")
    assert evaluate(p, score(99, 104)) == "won"


def test_moneyline_resolves_nickname():
    assert evaluate(make_pick(pick="Celtics ML"), score(110, 105)) == "won"
    assert evaluate(make_pick(pick="Heat ML"), score(110, 105)) == "lost"


def test_shared_city_names_do_not_confuse_side():
    s = score(101, 99, home_team="Los Angeles Clippers", away_team="Los Angeles Lakers")
    assert evaluate(make_pick(pick="Lakers ML", home_team=s.home_team, away_team=s.away_team), s) == "lost"
    assert evaluate(make_pick(pick="Clippers ML", home_team=s.home_team, away_team=s.away_team), s) == "won"


def test_picked_home_falls_back_to_containment():
    p = make_pick(pick="Take Boston Celtics tonight")
    assert picked_home(p, HOME, AWAY)
    assert not picked_home(make_pick(pick="nobody in particular"), HOME, AWAY)


# ---------------- spread ----------------
def test_spread_home_covers():
    p = make_pick(bet_type="spread", pick=f"{HOME} -3.5", line=-3.5)
    assert evaluate(p, score(100, 95)) == "won"


def test_spread_home_push():
    p = make_pick(bet_type="spread", pick=f"{HOME} -3", line=-3)
    assert evaluate(p, score(103, 100)) == "push"


def test_spread_home_fails_to_cover():
    p = make_pick(bet_type="spread", pick=f"{HOME} -7.5", line=-7.5)
    assert evaluate(p, score(103, 100)) == "lost"


def test_spread_away_underdog_covers():
    p = make_pick(bet_type="spread", pick=f"{AWAY} +3.5", line=3.5)
    assert evaluate(p, score(100, 98)) == "won"      # -2 + 3.5
    assert evaluate(p, score(100, 95)) == "lost"     # -5 + 3.5


def test_spread_missing_line_is_void():
    assert evaluate(make_pick(bet_type="spread", pick=f"{HOME} -3.5", line=None), score(100, 95)) == "void"


def test_spread_zero_line_is_a_real_line():
    p = make_pick(bet_type="spread", pick=f"{HOME} PK", line=0.0)
    assert evaluate(p, score(100, 95)) == "won"
    assert evaluate(p, score(100, 100)) == "push"


# ---------------- total ----------------
@pytest.mark.parametrize("home,away,expected", [(110, 105, "won"), (100, 105, "lost"), (105, 105, "push")])
def test_total_over(home, away, expected):
    p = make_pick(bet_type="total", pick="Over 210", line=210)
    assert evaluate(p, score(home, away)) == expected


@pytest.mark.parametrize("home,away,expected", [(110, 105, "lost"), (100, 105, "won"), (105, 105, "push")])
def test_total_under(home, away, expected):
    p = make_pick(bet_type="total", pick="Under 210", line=210)
    assert evaluate(p, score(home, away)) == expected


def test_total_over_is_case_insensitive():
    assert evaluate(make_pick(bet_type="total", pick="over 210", line=210), score(110, 105)) == "won"


def test_total_missing_line_is_void():
    assert evaluate(make_pick(bet_type="total", pick="Over", line=None), score(110, 105)) == "void"


# ---------------- other ----------------
@pytest.mark.parametrize("final", [score(0, 0), score(120, 80), score(80, 120)])
def test_player_prop_stays_pending(final):
    p = make_pick(bet_type="player_prop", pick="Jayson Tatum Over player_points", line=27.5)
    assert evaluate(p, final) == "pending"


def test_unknown_bet_type_is_void():
    assert evaluate(make_pick(bet_type="parlay", pick="everything"), score(110, 105)) == "void"


def test_incomplete_score_leaves_pick_pending():
    assert evaluate(make_pick(pick=f"{HOME} ML"), score(50, 40, completed=False)) == "pending"


def test_evaluate_is_deterministic():
    p = make_pick(bet_type="spread", pick=f"{HOME} -3.5", line=-3.5)
    s = score(100, 95)
    assert evaluate(p, s) == evaluate(p, s)


# ---------------- terminal transition ----------------
def test_apply_settlement_records_result():
    at = datetime(2025, 1, 16, tzinfo=timezone.utc)
    settled = apply_settlement(make_pick(), "won", score(110, 105), settled_at=at)
    assert settled.status == "won"
    assert settled.result.actual_score.home == 110
    assert settled.result.settled_at == at


def test_apply_settlement_is_idempotent():
    once = apply_settlement(make_pick(), "won", score(110, 105))
    assert apply_settlement(once, "won", score(110, 105)) is once


def test_apply_settlement_refuses_terminal_change():
    once = apply_settlement(make_pick(), "won", score(110, 105))
    with pytest.raises(SettlementConflictError):
        apply_settlement(once, "lost", score(110, 105))


def test_apply_pending_is_a_no_op():
    p = make_pick()
    assert apply_settlement(p, "pending") is p
