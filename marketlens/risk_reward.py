"""
Kelly-criterion position sizing for binary prediction-market contracts.

A YES share bought at `price` pays 1.0 if the event happens, so the
payout ratio is 1/price - 1 and the market-implied probability is `price`.
"""
import math

from .models import RiskRewardResult


# Upper bounds (exclusive) on the half-Kelly fraction for each tier
LOW_RISK_LIMIT = 0.02
MEDIUM_RISK_LIMIT = 0.05
HIGH_RISK_LIMIT = 0.10

# Tier boundaries are compared at this precision so 0.6/0.5 (half-Kelly
# 0.09999999999999998 in doubles) rates the same as exact 0.10
RATING_PRECISION = 10


class RiskRewardError(ValueError):
    """Raised when sizing inputs are outside the domain of the formulas."""


def risk_rating(half_kelly: float) -> str:
    """Classify a half-Kelly fraction; each tier includes its lower bound."""
    value = round(half_kelly, RATING_PRECISION)
    if value < LOW_RISK_LIMIT:
        return "low"
    if value < MEDIUM_RISK_LIMIT:
        return "medium"
    if value < HIGH_RISK_LIMIT:
        return "high"
    return "extreme"


def _validate(probability: float, price: float, bankroll: float) -> None:
    for name, value in (("probability", probability), ("price", price), ("bankroll", bankroll)):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise RiskRewardError(f"{name} must be a number")
        if not math.isfinite(value):
            raise RiskRewardError(f"{name} must be finite")

    if not 0.0 <= probability <= 1.0:
        raise RiskRewardError("probability must be between 0 and 1")
    # price 0 divides by zero in the odds, price 1 gives zero odds
    if not 0.0 < price < 1.0:
        raise RiskRewardError("price must be strictly between 0 and 1")
    if bankroll < 0:
        raise RiskRewardError("bankroll must not be negative")


def compute(probability: float, price: float, bankroll: float) -> RiskRewardResult:
    """
    Size a YES position with half-Kelly.

    Args:
        probability: Estimated probability the market resolves YES (0-1)
        price: Current YES price, strictly between 0 and 1
        bankroll: Capital available to stake

    Returns:
        RiskRewardResult with edge, Kelly fractions, stake and risk tier

    Raises:
        RiskRewardError: If any input is non-numeric or out of range
    """
    _validate(probability, price, bankroll)

    expected_value = probability - price
    odds = 1 / price - 1
    if odds <= 0:
        raise RiskRewardError("price too close to 1 to size a position")
    kelly_fraction = max(0.0, (probability * (odds + 1) - 1) / odds)
    half_kelly = kelly_fraction / 2
    recommended_stake = bankroll * half_kelly

    return RiskRewardResult(
        expected_value=expected_value,
        kelly_fraction=kelly_fraction,
        half_kelly=half_kelly,
        recommended_stake=recommended_stake,
        potential_profit=recommended_stake * odds,
        potential_loss=recommended_stake,
        risk_rating=risk_rating(half_kelly),
        odds=odds,
        break_even_probability=price,
    )
