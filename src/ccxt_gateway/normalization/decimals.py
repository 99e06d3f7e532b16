"""
Decimal helpers tied to the 8-decimal crypto convention.

All derived values (trade price, target price, fee-adjusted price/rate) go
through Decimal(str(x)) so binary float artefacts such as
0.001 * 0.0001 -> 1.0000000000000001e-7 never reach the canonical payload.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Any

EIGHT_PLACES = Decimal("0.00000001")
MIN_VALUE = 0.00000001


def to_decimal(value: Any) -> Decimal:
    """Convert a connector number to Decimal through its string form."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round8(value: Any) -> float | None:
    """Round to 8 decimals (half up), returning a float or None."""
    if value is None:
        return None
    return float(to_decimal(value).quantize(EIGHT_PLACES, rounding=ROUND_HALF_UP))


def multiply8(left: Any, right: Any) -> float | None:
    """``round(left * right, 8)``; None when either operand is absent."""
    if left is None or right is None:
        return None
    return round8(to_decimal(left) * to_decimal(right))


def divide8(numerator: Any, denominator: Any) -> float | None:
    """``round(numerator / denominator, 8)``; None when undefined."""
    if numerator is None or denominator is None:
        return None
    denominator = to_decimal(denominator)
    if denominator == 0:
        return None
    return round8(to_decimal(numerator) / denominator)


def optional_float(value: Any) -> float | None:
    """Absent upstream numbers stay None (never 0)."""
    if value is None:
        return None
    return float(value)
