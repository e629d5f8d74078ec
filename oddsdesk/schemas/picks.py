from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from ..domain.models import (
    BetType,
    GameInfo,
    GamePrediction,
    PerformanceStats,
    PickSide,
    PickStatus,
    PropPrediction,
    TrackedPick,
    check_american_odds,
)


class SavePickRequest(BaseModel):
    game_id: str
    sport: str
    home_team: str
    away_team: str
    game_time: datetime
    bet_type: BetType
    pick: str
    odds: int
    line: Optional[float] = None
    side: Optional[PickSide] = None      # resolved from `pick` when omitted
    confidence: float = Field(..., ge=0, le=100)
    reasoning: str = ""
    edge: Optional[float] = None
    is_value_bet: Optional[bool] = None  # defaults to edge > VALUE_BET_EDGE

    @field_validator("odds")
    @classmethod
    def validate_odds(cls, v: int) -> int:
        return check_american_odds(v)


class SavePickResponse(BaseModel):
    success: bool = True
    pick: TrackedPick


class TrackerDashboard(BaseModel):
    stats: PerformanceStats
    recent_picks: List[TrackedPick] = Field(default_factory=list)
    pending_picks: List[TrackedPick] = Field(default_factory=list)


class SettledPick(BaseModel):
    pick_id: str
    pick: str
    status: PickStatus
    score: str          # "Home 110 - Away 105"


class SettlementReport(BaseModel):
    success: bool = True
    message: str
    settled: int = 0
    results: List[SettledPick] = Field(default_factory=list)
    errors: Dict[str, str] = Field(default_factory=dict)   # sport -> score fetch failure
    timestamp: datetime


class PendingPickSummary(BaseModel):
    id: str
    pick: str
    sport: str
    game_time: datetime


class PendingSettlement(BaseModel):
    total_pending: int
    needs_settlement: int
    picks: List[PendingPickSummary] = Field(default_factory=list)


class RecordPredictionRequest(BaseModel):
    game: GameInfo
    prediction: GamePrediction = Field(default_factory=GamePrediction)
    props: List[PropPrediction] = Field(default_factory=list)


class DailyPicksRequest(BaseModel):
    candidates: List[RecordPredictionRequest]


class RecordedPicks(BaseModel):
    success: bool = True
    picks: List[TrackedPick] = Field(default_factory=list)
