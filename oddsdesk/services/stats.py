# oddsdesk/services/stats.py
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Iterable, List, Optional

from ..domain.models import (
    BET_TYPES,
    Breakdown,
    ConfidenceBreakdown,
    ConfidenceBucket,
    PerformanceStats,
    Streak,
    TrackedPick,
    ValueBetStats,
    WindowStats,
)
from .odds_math import american_to_decimal

HIGH_CONFIDENCE = 70
MEDIUM_CONFIDENCE = 60


def compute_performance_stats(picks: Iterable[TrackedPick], now: Optional[datetime] = None) -> PerformanceStats:
    """
    Fold picks (any status) into PerformanceStats. Recomputed from scratch each call;
    the same input always yields the same output.

    Each pick stakes `units` (1 by convention). A win returns units * (decimal - 1),
    a loss costs units, push and void move nothing. Win rate and ROI are on a 0-100 scale.
    """
    now = _aware(now or datetime.now(timezone.utc))
    ordered = sorted(picks, key=lambda p: _aware(p.created_at))
    settled = [p for p in ordered if p.is_settled]

    wins = _count(settled, "won")
    losses = _count(settled, "lost")
    won_units = sum(_profit(p) for p in settled if p.status == "won")
    lost_units = sum(p.units for p in settled if p.status == "lost")
    wagered = sum(p.units for p in settled if p.status != "void")
    net = won_units - lost_units

    by_sport: Dict[str, List[TrackedPick]] = {}
    for p in settled:
        by_sport.setdefault(p.sport, []).append(p)

    longest_w, longest_l = _longest_runs(settled)

    return PerformanceStats(
        total_picks=len(ordered),
        pending_picks=sum(1 for p in ordered if p.status == "pending"),
        settled_picks=len(settled),
        wins=wins,
        losses=losses,
        pushes=_count(settled, "push"),
        voids=_count(settled, "void"),
        win_rate=_rate(wins, losses),
        units_wagered=round(wagered, 2),
        units_won=round(won_units, 2),
        units_lost=round(lost_units, 2),
        net_units=round(net, 2),
        roi=round(net / wagered * 100, 1) if wagered else 0.0,
        by_bet_type={bt: _breakdown([p for p in settled if p.bet_type == bt]) for bt in BET_TYPES},
        by_sport={sport: _breakdown(group) for sport, group in by_sport.items()},
        by_confidence=ConfidenceBreakdown(
            high=_bucket(settled, lambda c: c >= HIGH_CONFIDENCE),
            medium=_bucket(settled, lambda c: MEDIUM_CONFIDENCE <= c < HIGH_CONFIDENCE),
            low=_bucket(settled, lambda c: c < MEDIUM_CONFIDENCE),
        ),
        value_bets=_value_bets([p for p in settled if p.is_value_bet]),
        current_streak=current_streak(settled),
        longest_win_streak=longest_w,
        longest_loss_streak=longest_l,
        last_7_days=_window(settled, now - timedelta(days=7)),
        last_30_days=_window(settled, now - timedelta(days=30)),
    )


def current_streak(picks: List[TrackedPick]) -> Streak:
    """Consecutive W/L from the most recent settled pick back; a push or void ends the scan."""
    kind, count = "none", 0
    for p in reversed(picks):
        if p.status not in ("won", "lost"):
            if p.status == "pending":
                continue
            break
        mark = "W" if p.status == "won" else "L"
        if count and mark != kind:
            break
        kind, count = mark, count + 1
    return Streak(type=kind, count=count)


# -------------------------------
# Internals
# -------------------------------
def _aware(dt: datetime) -> datetime:
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def _count(picks: Iterable[TrackedPick], status: str) -> int:
    return sum(1 for p in picks if p.status == status)


def _profit(p: TrackedPick) -> float:
    return p.units * (american_to_decimal(p.odds) - 1)


def _net(picks: Iterable[TrackedPick]) -> float:
    total = 0.0
    for p in picks:
        if p.status == "won":
            total += _profit(p)
        elif p.status == "lost":
            total -= p.units
    return total


def _rate(wins: int, losses: int) -> float:
    decided = wins + losses
    return round(wins / decided * 100, 1) if decided else 0.0


def _breakdown(picks: List[TrackedPick]) -> Breakdown:
    wins, losses = _count(picks, "won"), _count(picks, "lost")
    return Breakdown(
        picks=len(picks),
        wins=wins,
        losses=losses,
        pushes=_count(picks, "push"),
        win_rate=_rate(wins, losses),
        net_units=round(_net(picks), 2),
    )


def _bucket(picks: List[TrackedPick], match: Callable[[float], bool]) -> ConfidenceBucket:
    subset = [p for p in picks if match(p.confidence)]
    wins = _count(subset, "won")
    return ConfidenceBucket(picks=len(subset), wins=wins, win_rate=_rate(wins, _count(subset, "lost")))


def _value_bets(picks: List[TrackedPick]) -> ValueBetStats:
    wins = _count(picks, "won")
    return ValueBetStats(
        picks=len(picks),
        wins=wins,
        win_rate=_rate(wins, _count(picks, "lost")),
        net_units=round(_net(picks), 2),
    )


def _longest_runs(picks: List[TrackedPick]):
    best = {"won": 0, "lost": 0}
    run_status, run = None, 0
    for p in picks:
        if p.status == run_status:
            run += 1
        else:
            run_status, run = p.status, 1
        if run_status in best:
            best[run_status] = max(best[run_status], run)
    return best["won"], best["lost"]


def _window(picks: List[TrackedPick], since: datetime) -> WindowStats:
    recent = [p for p in picks if _aware(p.created_at) >= since and p.status != "void"]
    return WindowStats(picks=len(recent), wins=_count(recent, "won"), net_units=round(_net(recent), 2))
