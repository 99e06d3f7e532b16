"""
Shared enumerations for the gateway's canonical model.
"""

import enum


# ============================================================================
# ORDERS
# ============================================================================
class OrderType(str, enum.Enum):
    """Canonical order side."""

    BUY = "buy"
    SELL = "sell"


class OrderState(str, enum.Enum):
    """Lifecycle state tracked by the facade order cache."""

    OPEN = "open"
    CLOSED = "closed"
    CANCELLED = "cancelled"


# ============================================================================
# MARKET METADATA
# ============================================================================
class PrecisionMode(str, enum.Enum):
    """How the connector reports market precision.

    DECIMAL_PLACES: integer digit counts (e.g. 8)
    TICK_SIZE: tick sizes (e.g. 0.01)
    SIGNIFICANT_DIGITS: significant digit counts, not convertible to a step
    """

    DECIMAL_PLACES = "decimal_places"
    TICK_SIZE = "tick_size"
    SIGNIFICANT_DIGITS = "significant_digits"


# Kline interval -> duration in seconds
KLINE_INTERVAL_SECONDS: dict[str, int] = {
    "1m": 60,
    "3m": 3 * 60,
    "5m": 5 * 60,
    "15m": 15 * 60,
    "30m": 30 * 60,
    "1h": 60 * 60,
    "2h": 2 * 60 * 60,
    "4h": 4 * 60 * 60,
    "6h": 6 * 60 * 60,
    "8h": 8 * 60 * 60,
    "12h": 12 * 60 * 60,
    "1d": 24 * 60 * 60,
    "3d": 3 * 24 * 60 * 60,
    "1w": 7 * 24 * 60 * 60,
    "1M": 30 * 24 * 60 * 60,
}
