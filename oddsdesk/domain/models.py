from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

PickStatus = Literal["pending", "won", "lost", "push", "void"]
BetType = Literal["moneyline", "spread", "total", "player_prop"]
PickSide = Literal["home", "away", "over", "under"]

TERMINAL_STATUSES = ("won", "lost", "push", "void")
BET_TYPES: tuple = ("moneyline", "spread", "total", "player_prop")


def check_american_odds(v: Optional[int]) -> Optional[int]:
    """American prices live at or beyond +/-100; anything inside cannot be priced."""
    if v is not None and abs(v) < 100:
        raise ValueError(f"american odds must be <= -100 or >= 100, got {v}")
    return v


# -------------------------------
# Odds
# -------------------------------
class Quote(BaseModel):
    bookmaker: str
    bookmaker_title: str
    decimal_odds: float = Field(..., gt=1.0)   # drives the math
    american_odds: int                          # display form of the same price
    implied_probability: float
    point: Optional[float] = None
    last_update: Optional[str] = None


class LineGroup(BaseModel):
    line: float
    quotes: List[Quote] = Field(default_factory=list)
    best: Optional[Quote] = None


class MoneylineMarket(BaseModel):
    home: List[Quote] = Field(default_factory=list)
    away: List[Quote] = Field(default_factory=list)
    draw: List[Quote] = Field(default_factory=list)  # soccer only
    best_home: Optional[Quote] = None
    best_away: Optional[Quote] = None
    best_draw: Optional[Quote] = None


class SpreadMarket(BaseModel):
    home: List[Quote] = Field(default_factory=list)
    away: List[Quote] = Field(default_factory=list)
    consensus_line: Optional[float] = None      # first bookmaker seen on the home side
    most_common_line: Optional[float] = None


class TotalMarket(BaseModel):
    over: List[Quote] = Field(default_factory=list)
    under: List[Quote] = Field(default_factory=list)
    consensus_line: Optional[float] = None      # first bookmaker seen on the over side
    most_common_line: Optional[float] = None


class NormalizedGameOdds(BaseModel):
    game_id: str
    sport_key: Optional[str] = None
    home_team: Optional[str] = None
    away_team: Optional[str] = None
    commence_time: Optional[str] = None
    moneyline: MoneylineMarket = Field(default_factory=MoneylineMarket)
    spread: SpreadMarket = Field(default_factory=SpreadMarket)
    total: TotalMarket = Field(default_factory=TotalMarket)


class SpreadLines(BaseModel):
    home: List[LineGroup] = Field(default_factory=list)
    away: List[LineGroup] = Field(default_factory=list)


class TotalLines(BaseModel):
    over: List[LineGroup] = Field(default_factory=list)
    under: List[LineGroup] = Field(default_factory=list)


class TeamTotalLine(BaseModel):
    line: float
    over: List[Quote] = Field(default_factory=list)
    under: List[Quote] = Field(default_factory=list)


class TeamTotals(BaseModel):
    home: List[TeamTotalLine] = Field(default_factory=list)
    away: List[TeamTotalLine] = Field(default_factory=list)


class AlternateLines(BaseModel):
    game_id: str
    home_team: Optional[str] = None
    away_team: Optional[str] = None
    commence_time: Optional[str] = None
    spreads: SpreadLines = Field(default_factory=SpreadLines)
    totals: TotalLines = Field(default_factory=TotalLines)
    team_totals: TeamTotals = Field(default_factory=TeamTotals)
    spread_lines_available: int = 0
    total_lines_available: int = 0
    has_team_totals: bool = False


class PeriodMoneyline(BaseModel):
    home: List[Quote] = Field(default_factory=list)
    away: List[Quote] = Field(default_factory=list)
    best_home: Optional[Quote] = None
    best_away: Optional[Quote] = None


class PeriodMarket(BaseModel):
    period: str
    moneyline: Optional[PeriodMoneyline] = None
    spread: Optional[SpreadLines] = None
    total: Optional[TotalLines] = None


class PeriodMarkets(BaseModel):
    game_id: str
    home_team: Optional[str] = None
    away_team: Optional[str] = None
    commence_time: Optional[str] = None
    periods: Dict[str, PeriodMarket] = Field(default_factory=dict)
    available_periods: List[str] = Field(default_factory=list)


class PlayerProp(BaseModel):
    player_name: str
    market: str
    line: Optional[float] = None
    over_odds: List[Quote] = Field(default_factory=list)
    under_odds: List[Quote] = Field(default_factory=list)  # empty for yes-only markets
    best_over: Optional[Quote] = None
    best_under: Optional[Quote] = None
    average_implied_probability: float = 0.0


# -------------------------------
# Scores
# -------------------------------
class GameScore(BaseModel):
    game_id: Optional[str] = None
    home_team: str
    away_team: str
    home_score: int
    away_score: int
    completed: bool


class NormalizedScore(BaseModel):
    game_id: str
    home_team: str
    away_team: str
    home_score: Optional[int] = None
    away_score: Optional[int] = None
    is_live: bool = False
    completed: bool = False
    commence_time: Optional[datetime] = None
    last_update: Optional[datetime] = None

    def to_game_score(self) -> Optional[GameScore]:
        """Final score for settlement, or None while the game is open or scores are missing."""
        if not self.completed or self.home_score is None or self.away_score is None:
            return None
        return GameScore(
            game_id=self.game_id,
            home_team=self.home_team,
            away_team=self.away_team,
            home_score=self.home_score,
            away_score=self.away_score,
            completed=True,
        )


# -------------------------------
# Picks
# -------------------------------
class ActualScore(BaseModel):
    home: int
    away: int


class PickResult(BaseModel):
    actual_score: Optional[ActualScore] = None
    actual_value: Optional[float] = None      # player props
    settled_at: Optional[datetime] = None


class GameInfo(BaseModel):
    game_id: str
    sport: str
    home_team: str
    away_team: str
    game_time: datetime


class TrackedPick(BaseModel):
    id: str
    created_at: datetime
    game_id: str
    sport: str

    home_team: str
    away_team: str
    game_time: datetime

    # Stored records may carry bet types outside BetType; those settle as void.
    bet_type: str
    pick: str                                  # "Lakers -3.5", "Over 220.5", ...
    odds: int                                  # American
    line: Optional[float] = None
    side: Optional[PickSide] = None            # resolved once when the pick is created

    confidence: float = Field(..., ge=0, le=100)
    reasoning: str = ""
    edge: Optional[float] = None
    is_value_bet: bool = False

    status: PickStatus = "pending"
    result: Optional[PickResult] = None
    units: float = 1.0

    @field_validator("odds")
    @classmethod
    def validate_odds(cls, v: int) -> int:
        return check_american_odds(v)

    @property
    def is_settled(self) -> bool:
        return self.status in TERMINAL_STATUSES


# -------------------------------
# Predictions (opaque collaborator output)
# -------------------------------
class PredictionLeg(BaseModel):
    pick: str
    confidence: float = Field(..., ge=0, le=100)
    reasoning: str = ""
    line: Optional[float] = None
    odds: Optional[int] = None

    @field_validator("odds")
    @classmethod
    def validate_odds(cls, v: Optional[int]) -> Optional[int]:
        return check_american_odds(v)


class GamePrediction(BaseModel):
    winner: Optional[PredictionLeg] = None
    spread: Optional[PredictionLeg] = None
    total: Optional[PredictionLeg] = None


class PropPrediction(BaseModel):
    player: str
    market: str
    pick: str                                   # "Over" / "Under" / "Yes"
    line: Optional[float] = None
    odds: int
    confidence: float = Field(..., ge=0, le=100)
    reasoning: str = ""

    @field_validator("odds")
    @classmethod
    def validate_odds(cls, v: int) -> int:
        return check_american_odds(v)


# -------------------------------
# Performance
# -------------------------------
class Breakdown(BaseModel):
    picks: int = 0
    wins: int = 0
    losses: int = 0
    pushes: int = 0
    win_rate: float = 0.0
    net_units: float = 0.0


class ConfidenceBucket(BaseModel):
    picks: int = 0
    wins: int = 0
    win_rate: float = 0.0


class ConfidenceBreakdown(BaseModel):
    high: ConfidenceBucket = Field(default_factory=ConfidenceBucket)     # 70+
    medium: ConfidenceBucket = Field(default_factory=ConfidenceBucket)   # 60-69
    low: ConfidenceBucket = Field(default_factory=ConfidenceBucket)      # <60


class ValueBetStats(BaseModel):
    picks: int = 0
    wins: int = 0
    win_rate: float = 0.0
    net_units: float = 0.0


class Streak(BaseModel):
    type: Literal["W", "L", "none"] = "none"
    count: int = 0


class WindowStats(BaseModel):
    picks: int = 0
    wins: int = 0
    net_units: float = 0.0


class PerformanceStats(BaseModel):
    total_picks: int = 0
    pending_picks: int = 0
    settled_picks: int = 0

    wins: int = 0
    losses: int = 0
    pushes: int = 0
    voids: int = 0
    win_rate: float = 0.0

    units_wagered: float = 0.0
    units_won: float = 0.0
    units_lost: float = 0.0
    net_units: float = 0.0
    roi: float = 0.0

    by_bet_type: Dict[str, Breakdown] = Field(default_factory=dict)
    by_sport: Dict[str, Breakdown] = Field(default_factory=dict)
    by_confidence: ConfidenceBreakdown = Field(default_factory=ConfidenceBreakdown)
    value_bets: ValueBetStats = Field(default_factory=ValueBetStats)

    current_streak: Streak = Field(default_factory=Streak)
    longest_win_streak: int = 0
    longest_loss_streak: int = 0

    last_7_days: WindowStats = Field(default_factory=WindowStats)
    last_30_days: WindowStats = Field(default_factory=WindowStats)
