# oddsdesk/services/odds_math.py
from __future__ import annotations

from typing import Any, Dict

from ..domain.errors import InvalidOddsError


def _check_decimal(decimal_odds: float) -> float:
    d = float(decimal_odds)
    if not d > 1.0:
        raise InvalidOddsError(f"decimal odds must be > 1.0, got {decimal_odds!r}")
    return d


def _check_probability(p: float, *, closed: bool = False) -> float:
    p = float(p)
    ok = (0.0 <= p <= 1.0) if closed else (0.0 < p < 1.0)
    if not ok:
        raise InvalidOddsError(f"probability out of range: {p!r}")
    return p


# -------------------------------
# Format conversions
# -------------------------------
def american_to_decimal(american: float) -> float:
    if american == 0:
        raise InvalidOddsError("american odds cannot be 0")
    if american > 0:
        return american / 100 + 1
    return 100 / abs(american) + 1


def decimal_to_american(decimal_odds: float) -> int:
    d = _check_decimal(decimal_odds)
    if d >= 2:
        return int(round((d - 1) * 100))
    return int(round(-100 / (d - 1)))


def probability_to_decimal(p: float) -> float:
    return 1 / _check_probability(p)


def probability_to_american(p: float) -> int:
    p = _check_probability(p)
    return int(round(100 * (1 - p) / p)) if p < 0.5 else int(round(-100 * p / (1 - p)))


# -------------------------------
# Probabilities
# -------------------------------
def implied_probability_from_decimal(decimal_odds: float) -> float:
    return 1 / _check_decimal(decimal_odds)


def implied_probability_from_american(american: float) -> float:
    if american == 0:
        raise InvalidOddsError("american odds cannot be 0")
    if american > 0:
        return 100 / (american + 100)
    return abs(american) / (abs(american) + 100)


def vig(decimal_a: float, decimal_b: float) -> float:
    """Bookmaker margin of a two-outcome market (0.045 == 4.5%)."""
    return implied_probability_from_decimal(decimal_a) + implied_probability_from_decimal(decimal_b) - 1


def fair_probability(decimal_odds: float, opposing_decimal_odds: float) -> float:
    """No-vig probability for the first side; the margin is removed proportionally."""
    raw = implied_probability_from_decimal(decimal_odds)
    return raw / (1 + vig(decimal_odds, opposing_decimal_odds))


# -------------------------------
# Value & staking
# -------------------------------
def expected_value(fair_prob: float, decimal_odds: float, stake: float = 100.0) -> float:
    p = _check_probability(fair_prob, closed=True)
    d = _check_decimal(decimal_odds)
    return p * stake * (d - 1) - (1 - p) * stake


def is_positive_ev(fair_prob: float, decimal_odds: float) -> bool:
    return _check_probability(fair_prob, closed=True) > implied_probability_from_decimal(decimal_odds)


def kelly_stake(fair_prob: float, decimal_odds: float, bankroll: float, fraction: float = 0.25) -> float:
    """
    Fractional Kelly stake: bankroll * fraction * (b*p - q) / b with b = d - 1.
    Returns 0 when the edge is not positive.
    """
    p = _check_probability(fair_prob, closed=True)
    b = _check_decimal(decimal_odds) - 1
    k = (b * p - (1 - p)) / b
    if k <= 0:
        return 0.0
    return max(0.0, bankroll * k * fraction)


# -------------------------------
# Display
# -------------------------------
def format_american(american: int) -> str:
    return f"+{american}" if american > 0 else f"{american}"


def format_decimal(decimal_odds: float) -> str:
    return f"{decimal_odds:.2f}"


def format_probability(p: float) -> str:
    return f"{p * 100:.1f}%"


def convert_odds(decimal_odds: float) -> Dict[str, Any]:
    american = decimal_to_american(decimal_odds)
    prob = implied_probability_from_decimal(decimal_odds)
    return {
        "decimal": float(decimal_odds),
        "american": american,
        "implied_probability": prob,
        "formatted": {
            "decimal": format_decimal(decimal_odds),
            "american": format_american(american),
            "probability": format_probability(prob),
        },
    }
