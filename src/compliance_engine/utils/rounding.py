"""
Rounding helpers.

Scores are rounded half-up (2.5 -> 3, -2.5 -> -2) rather than with Python's
banker's rounding so published percentages do not drift between runs on
boundary values.
"""
import math


def round_half_up(value: float, digits: int = 0) -> float:
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def round_percentage(numerator: float, denominator: float) -> int:
    """Whole-number percentage; 0 when the denominator is 0."""
    if not denominator:
        return 0
    return int(round_half_up(100 * numerator / denominator))
