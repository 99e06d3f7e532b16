"""Shared canonical models."""

from ccxt_gateway.shared.models.canonical import (
    CanonicalBalance,
    CanonicalClosedOrder,
    CanonicalKline,
    CanonicalModel,
    CanonicalNewOrder,
    CanonicalOpenOrder,
    CanonicalOrderBook,
    CanonicalPair,
    CanonicalTicker,
    CanonicalTrade,
    Fees,
    Limits,
    OrderBookEntry,
    PriceLimits,
    StepLimits,
    canonical_to_dict,
)
from ccxt_gateway.shared.models.enums import (
    KLINE_INTERVAL_SECONDS,
    OrderState,
    OrderType,
    PrecisionMode,
)

__all__ = [
    "CanonicalBalance",
    "CanonicalClosedOrder",
    "CanonicalKline",
    "CanonicalModel",
    "CanonicalNewOrder",
    "CanonicalOpenOrder",
    "CanonicalOrderBook",
    "CanonicalPair",
    "CanonicalTicker",
    "CanonicalTrade",
    "Fees",
    "KLINE_INTERVAL_SECONDS",
    "Limits",
    "OrderBookEntry",
    "OrderState",
    "OrderType",
    "PrecisionMode",
    "PriceLimits",
    "StepLimits",
    "canonical_to_dict",
]
