import logging

import pytest

from helpers import book, event, market, outcome
from oddsdesk.services.odds import (
    best_quote,
    detect_period,
    make_quote,
    normalize_alternate_lines,
    normalize_events,
    normalize_game_odds,
    normalize_period_markets,
)

HOME, AWAY = "Boston Celtics", "Miami Heat"


def _full_game():
    return event([
        book("draftkings", [
            market("h2h", outcome(HOME, 1.5), outcome(AWAY, 2.7)),
            market("spreads", outcome(HOME, 1.91, -6.5), outcome(AWAY, 1.91, 6.5)),
            market("totals", outcome("Over", 1.91, 220.5), outcome("Under", 1.91, 220.5)),
        ], title="DraftKings"),
        book("fanduel", [
            market("h2h", outcome(HOME, 1.52), outcome(AWAY, 2.6)),
            # away point deliberately inconsistent with the home point
            market("spreads", outcome(HOME, 1.87, -7.0), outcome(AWAY, 1.95, 6.5)),
            market("totals", outcome("Over", 1.87, 221.5), outcome("Under", 1.95, 221.5)),
        ], title="FanDuel"),
        book("betmgm", [
            market("spreads", outcome(HOME, 1.91, -7.0), outcome(AWAY, 1.91, 7.0)),
            market("totals", outcome("Over", 1.91, 221.5), outcome("Under", 1.91, 221.5)),
        ], title="BetMGM"),
    ])


def test_moneyline_sides_and_best_price():
    g = normalize_game_odds(_full_game())
    assert [q.bookmaker for q in g.moneyline.home] == ["draftkings", "fanduel"]
    assert g.moneyline.best_home.bookmaker == "fanduel"      # 1.52 beats 1.5
    assert g.moneyline.best_away.bookmaker == "draftkings"   # 2.7 beats 2.6
    assert g.moneyline.best_away.american_odds == 170
    assert g.moneyline.best_draw is None


def test_quotes_carry_both_price_formats():
    g = normalize_game_odds(_full_game())
    q = g.moneyline.home[0]
    assert q.decimal_odds == 1.5
    assert q.american_odds == -200
    assert q.implied_probability == pytest.approx(1 / 1.5)
    assert q.bookmaker_title == "DraftKings"


def test_spread_away_line_is_negated_home_line():
    g = normalize_game_odds(_full_game())
    for h, a in zip(g.spread.home, g.spread.away):
        assert h.bookmaker == a.bookmaker
        assert h.point == -a.point
    # fanduel listed the away side at +6.5 against a home -7
    assert g.spread.away[1].point == 7.0


def test_consensus_line_is_first_seen_and_mode_is_separate():
    g = normalize_game_odds(_full_game())
    assert g.spread.consensus_line == -6.5
    assert g.spread.most_common_line == -7.0
    assert g.total.consensus_line == 220.5
    assert g.total.most_common_line == 221.5


def test_best_odds_picks_highest_american():
    quotes = [
        make_quote({"key": "a", "title": "BookA"}, {"price": 1.833}),   # -120
        make_quote({"key": "b", "title": "BookB"}, {"price": 2.05}),    # +105
        make_quote({"key": "c", "title": "BookC"}, {"price": 1.909}),   # -110
    ]
    assert [q.american_odds for q in quotes] == [-120, 105, -110]
    assert best_quote(quotes).bookmaker == "b"


def test_best_odds_tie_keeps_first_bookmaker():
    quotes = [
        make_quote({"key": "first"}, {"price": 1.91}),
        make_quote({"key": "second"}, {"price": 1.91}),
    ]
    assert best_quote(quotes).bookmaker == "first"
    assert best_quote([]) is None


def test_soccer_draw():
    e = event([book("bet365", [market("h2h", outcome("Arsenal", 2.1), outcome("Chelsea", 3.4), outcome("Draw", 3.3))])],
              home="Arsenal", away="Chelsea")
    g = normalize_game_odds(e)
    assert g.moneyline.best_draw.american_odds == 230
    assert len(g.moneyline.home) == len(g.moneyline.away) == 1


def test_malformed_outcomes_are_skipped_not_fatal(caplog):
    e = event([
        book("good", [market("h2h", outcome(HOME, 1.5), outcome(AWAY, 2.7))]),
        book("bad", [market("h2h", outcome("Someone Else", 1.5), outcome(AWAY, 1.0), outcome(HOME, "n/a"))]),
        book("nopoint", [market("totals", outcome("Over", 1.91), outcome("Sideways", 1.91, 200))]),
    ])
    with caplog.at_level(logging.DEBUG, logger="oddsdesk.services.odds"):
        g = normalize_game_odds(e)
    assert [q.bookmaker for q in g.moneyline.home] == ["good"]
    assert [q.bookmaker for q in g.moneyline.away] == ["good"]
    assert g.total.over == [] and g.total.under == []
    assert "skipped 5 malformed" in caplog.text


def test_missing_teams_drop_two_way_outcomes_only():
    e = event([book("dk", [
        market("h2h", outcome(HOME, 1.5)),
        market("totals", outcome("Over", 1.91, 210.5), outcome("Under", 1.91, 210.5)),
    ])])
    e["home_team"] = None
    g = normalize_game_odds(e)
    assert g.moneyline.home == []
    assert len(g.total.over) == 1


def test_normalize_events_sorts_soonest_first():
    late = event([], event_id="late", commence="2025-01-16T00:00:00Z")
    early = event([], event_id="early", commence="2025-01-15T00:00:00Z")
    assert [g.game_id for g in normalize_events([late, early])] == ["early", "late"]


# ---------------- alternate lines ----------------
def _alternates():
    return event([
        book("dk", [
            market("alternate_spreads",
                   outcome(HOME, 2.2, -9.5), outcome(AWAY, 1.7, 9.5),
                   outcome(HOME, 1.6, -4.5), outcome(AWAY, 2.35, 4.5)),
            market("alternate_totals",
                   outcome("Over", 1.5, 215.5), outcome("Under", 2.6, 215.5),
                   outcome("Over", 2.4, 225.5), outcome("Under", 1.57, 225.5)),
            market("team_totals",
                   outcome("Over", 1.87, 112.5, description=HOME), outcome("Under", 1.95, 112.5, description=HOME),
                   outcome("Over", 1.91, 106.5, description=AWAY)),
        ]),
        book("fd", [
            market("alternate_spreads", outcome(HOME, 2.25, -9.5), outcome(AWAY, 1.68, 9.5)),
        ]),
    ])


def test_alternate_spreads_grouped_and_sorted():
    alt = normalize_alternate_lines(_alternates())
    assert [g.line for g in alt.spreads.home] == [-9.5, -4.5]
    assert [g.line for g in alt.spreads.away] == [4.5, 9.5]
    top = alt.spreads.home[0]
    assert [q.bookmaker for q in top.quotes] == ["dk", "fd"]
    assert top.best.bookmaker == "fd"
    assert alt.spread_lines_available == 2


def test_alternate_totals_grouped_and_sorted():
    alt = normalize_alternate_lines(_alternates())
    assert [g.line for g in alt.totals.over] == [215.5, 225.5]
    assert [g.line for g in alt.totals.under] == [215.5, 225.5]
    assert alt.total_lines_available == 2


def test_team_totals_per_team():
    alt = normalize_alternate_lines(_alternates())
    assert alt.has_team_totals
    assert alt.team_totals.home[0].line == 112.5
    assert len(alt.team_totals.home[0].under) == 1
    assert alt.team_totals.away[0].under == []


# ---------------- period markets ----------------
@pytest.mark.parametrize("key,label", [
    ("h2h_q1", "Q1"), ("spreads_q4", "Q4"), ("totals_h1", "1H"), ("h2h_h2", "2H"),
    ("totals_p3", "P3"), ("spreads_1st_5_innings", "1st5"), ("h2h_1st_half", "1H"),
])
def test_detect_period(key, label):
    assert detect_period(key) == label


@pytest.mark.parametrize("key", ["h2h", "spreads", "totals", "player_points", "h2h_lay"])
def test_detect_period_unknown(key):
    assert detect_period(key) is None


def test_period_markets_grouped_by_label():
    e = event([
        book("dk", [
            market("h2h_q1", outcome(HOME, 1.8), outcome(AWAY, 2.0)),
            market("spreads_q1", outcome(HOME, 1.91, -1.5), outcome(AWAY, 1.91, 1.5)),
            market("totals_h1", outcome("Over", 1.91, 110.5), outcome("Under", 1.91, 110.5)),
            market("h2h", outcome(HOME, 1.5), outcome(AWAY, 2.7)),        # full game, ignored here
            market("spreads_mystery", outcome(HOME, 1.91, -1.5)),        # unrecognized, skipped
        ]),
        book("fd", [market("h2h_q1", outcome(HOME, 1.85), outcome(AWAY, 1.95))]),
    ])
    pm = normalize_period_markets(e)
    assert pm.available_periods == ["Q1", "1H"]
    q1 = pm.periods["Q1"]
    assert q1.moneyline.best_home.bookmaker == "fd"
    assert q1.spread.home[0].line == -1.5
    assert q1.spread.away[0].line == 1.5
    assert q1.total is None
    assert pm.periods["1H"].total.over[0].line == 110.5
