# oddsdesk/core/config.py
from __future__ import annotations

from functools import lru_cache
from typing import Dict, List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


# ----- App settings (env-driven) -----
class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="", env_file=".env", case_sensitive=False, extra="ignore")

    odds_api_key: str = ""
    odds_api_base: str = "https://api.the-odds-api.com/v4"
    default_region: str = "us"
    http_timeout_seconds: float = 20.0

    cache_ttl_seconds: int = 6 * 60 * 60
    props_cache_ttl_seconds: int = 6 * 60 * 60
    cache_max_items: int = 500
    log_level: str = "INFO"

    kelly_fraction: float = 0.25
    value_bet_edge: float = 5.0          # edge % above which a pick counts as a value bet
    min_pick_confidence: float = 60.0
    min_prop_confidence: float = 65.0
    daily_picks_per_sport: int = 3
    scores_days_from: int = 3

    prediction_max_attempts: int = 3
    prediction_retry_delay: float = 2.0


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


# ----- The Odds API static metadata -----
SPORT_KEYS: Dict[str, str] = {
    "nba": "basketball_nba",
    "nhl": "icehockey_nhl",
    "nfl": "americanfootball_nfl",
    "mlb": "baseball_mlb",
    "epl": "soccer_epl",
    "mls": "soccer_usa_mls",
    "laliga": "soccer_spain_la_liga",
    "bundesliga": "soccer_germany_bundesliga",
    "seriea": "soccer_italy_serie_a",
    "ligue1": "soccer_france_ligue_one",
    "ucl": "soccer_uefa_champs_league",
}

# Tracker sport label (NBA, NHL, ...) -> sport key used for /scores
TRACKER_SPORTS: Dict[str, str] = {
    "NBA": "basketball_nba",
    "NHL": "icehockey_nhl",
    "NFL": "americanfootball_nfl",
    "MLB": "baseball_mlb",
}

GAME_MARKETS: List[str] = ["h2h", "spreads", "totals"]
ALTERNATE_MARKETS: List[str] = ["alternate_spreads", "alternate_totals", "team_totals"]

PERIOD_MARKETS: Dict[str, List[str]] = {
    "nba": ["h2h_q1", "h2h_h1", "spreads_q1", "spreads_h1", "totals_q1", "totals_h1"],
    "nhl": ["h2h_p1", "h2h_p2", "spreads_p1", "spreads_p2", "totals_p1", "totals_p2"],
    "nfl": ["h2h_q1", "h2h_h1", "spreads_q1", "spreads_h1", "totals_q1", "totals_h1"],
    "mlb": ["h2h_1st_5_innings", "spreads_1st_5_innings", "totals_1st_5_innings"],
}

PROP_MARKETS: Dict[str, List[str]] = {
    "nba": [
        "player_points", "player_rebounds", "player_assists", "player_threes",
        "player_points_rebounds_assists", "player_points_rebounds",
        "player_points_assists", "player_rebounds_assists",
    ],
    "nhl": ["player_goal_scorer_first", "player_goal_scorer_anytime", "player_goal_scorer_last"],
    "nfl": [
        "player_pass_tds", "player_pass_yds", "player_rush_yds",
        "player_reception_yds", "player_receptions", "player_anytime_td",
    ],
    "mlb": [
        "batter_home_runs", "batter_hits", "batter_total_bases", "batter_rbis",
        "batter_runs_scored", "batter_strikeouts", "batter_walks", "batter_stolen_bases",
        "pitcher_strikeouts", "pitcher_hits_allowed", "pitcher_walks",
        "pitcher_earned_runs", "pitcher_outs", "pitcher_record_a_win",
    ],
}

PROP_MARKET_PREFIXES = ("player_", "batter_", "pitcher_")


def get_sport_key(sport: str) -> str:
    """Odds API sport key for a short sport name; full keys pass through."""
    s = (sport or "").strip().lower()
    return SPORT_KEYS.get(s, s)


def get_period_markets(sport: str) -> Optional[List[str]]:
    return PERIOD_MARKETS.get((sport or "").strip().lower())


def get_prop_markets(sport: str) -> Optional[List[str]]:
    return PROP_MARKETS.get((sport or "").strip().lower())
