"""
Decimal Utilities
evaluator/scoring/utils.py

Provides precision-safe decimal math for scoring calculations. Means are
computed from exact Decimal sums, so the result does not depend on the order
in which entries were submitted.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Iterable, List, Optional

from evaluator.config import settings

HUNDRED = Decimal("100")


def to_decimal(value) -> Decimal:
    """Convert int/float/str/Decimal to Decimal without binary float noise."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise TypeError("bool is not a valid score")
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"not a number: {value!r}") from exc


def quantize(value: Optional[Decimal], places: Optional[int] = None) -> Optional[Decimal]:
    """Round half-up to `places` (default settings.SCORE_DECIMAL_PLACES)."""
    if value is None:
        return None
    places = settings.SCORE_DECIMAL_PLACES if places is None else places
    return value.quantize(Decimal(10) ** -places, rounding=ROUND_HALF_UP)


def mean(values: Iterable[Decimal]) -> Optional[Decimal]:
    """Arithmetic mean, or None for an empty input."""
    values = list(values)
    if not values:
        return None
    return sum(values, Decimal("0")) / Decimal(len(values))


def weighted_mean(values: List[Decimal], weights: List[Decimal]) -> Optional[Decimal]:
    """
    Calculate weighted mean.

    Formula: Σ(value_i × weight_i) / Σ(weight_i)
    Returns None if all weights are zero (nothing contributes).
    """
    if len(values) != len(weights):
        raise ValueError("values and weights must have same length")

    total_weight = sum(weights, Decimal("0"))
    if total_weight == 0:
        return None

    numerator = sum((v * w for v, w in zip(values, weights)), Decimal("0"))
    return numerator / total_weight


def population_variance(values: List[Decimal]) -> Decimal:
    """
    Population variance.

    Formula: Σ(value_i − mean)² / n
    """
    if len(values) < 2:
        return Decimal("0")
    avg = mean(values)
    return sum(((v - avg) ** 2 for v in values), Decimal("0")) / Decimal(len(values))


def to_percentage(score: Optional[Decimal], scale_max: Decimal) -> Optional[Decimal]:
    """Normalise a score to 0-100: score / scale_max × 100, quantized to 0.01."""
    if score is None or scale_max == 0:
        return None
    return quantize(score / scale_max * HUNDRED, 2)


def on_granularity(score: Decimal, half_points: bool) -> bool:
    """Whole points only, or half points when enabled."""
    step_count = score * 2 if half_points else score
    return step_count == step_count.to_integral_value()
