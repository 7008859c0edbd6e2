"""Numeric helpers shared by the financial and health engines."""

from decimal import ROUND_HALF_UP, Decimal


def round_half_up(value: float, digits: int = 2) -> float:
    """
    Round half away from zero, the way ledger figures are shown.

    Python's built-in round() uses banker's rounding (2.5 -> 2); snapshot
    figures and health scores round .5 upward instead. The value goes through
    its shortest repr so 2.675 rounds to 2.68 rather than 2.67.

    Args:
        value: Number to round
        digits: Decimal places to keep

    Returns:
        Rounded float
    """
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(repr(float(value))).quantize(quantum, rounding=ROUND_HALF_UP))


def safe_pct(numerator: float, denominator: float) -> float:
    """Return numerator / denominator * 100, or 0.0 when denominator is not positive."""
    if denominator <= 0:
        return 0.0
    return numerator / denominator * 100
