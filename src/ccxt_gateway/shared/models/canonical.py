# ccxt_gateway/shared/models/canonical.py

"""
Canonical entities returned by the gateway.

Every entity is an immutable value record. The serialized form
(``to_dict()``) uses camelCase keys and is the exact canonical shape exposed
to the transport layer, e.g. ``{"pair": "USDT-BTC", "baseCurrency": "USDT"}``.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ccxt_gateway.shared.models.enums import OrderType


class CanonicalModel(BaseModel):
    """Base for canonical records: frozen, camelCase on the wire."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
    )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the canonical (camelCase) shape."""
        return self.model_dump(by_alias=True)


# ============================================================================
# PAIRS
# ============================================================================


class StepLimits(CanonicalModel):
    """Rate or quantity limits: ``step == 10^-precision`` and ``min >= step``."""

    min: float
    max: float | None = None
    step: float
    precision: int


class PriceLimits(CanonicalModel):
    """Limits on ``rate * quantity``; ``min`` is never below 1e-8."""

    min: float
    max: float | None = None


class Limits(CanonicalModel):
    rate: StepLimits
    quantity: StepLimits
    price: PriceLimits


class CanonicalPair(CanonicalModel):
    pair: str = Field(..., description="Canonical pair (QUOTE-BASE)")
    base_currency: str
    currency: str
    limits: Limits


# ============================================================================
# MARKET DATA
# ============================================================================


class CanonicalTicker(CanonicalModel):
    """Ticker; absent upstream values are None, timestamp in float seconds."""

    pair: str
    last: float | None = None
    buy: float | None = None
    sell: float | None = None
    high: float | None = None
    low: float | None = None
    volume: float | None = None
    price_change_percent: float | None = None
    timestamp: float | None = None


class OrderBookEntry(CanonicalModel):
    rate: float
    quantity: float


class CanonicalOrderBook(CanonicalModel):
    """Order book in connector order (best price first, never re-sorted)."""

    buy: list[OrderBookEntry] = Field(default_factory=list)
    sell: list[OrderBookEntry] = Field(default_factory=list)


class CanonicalTrade(CanonicalModel):
    id: str | None = None
    timestamp: float | None = None
    order_type: OrderType | None = None
    quantity: float | None = None
    rate: float | None = None
    price: float | None = None


class CanonicalKline(CanonicalModel):
    """OHLCV candle; timestamp is integer seconds."""

    timestamp: int
    open: float | None = None
    high: float | None = None
    low: float | None = None
    close: float | None = None
    volume: float | None = None


# ============================================================================
# ORDERS
# ============================================================================


class CanonicalOpenOrder(CanonicalModel):
    pair: str
    order_number: str
    open_timestamp: float | None = None
    order_type: OrderType | None = None
    quantity: float | None = None
    remaining_quantity: float | None = None
    target_rate: float | None = None
    target_price: float | None = None


class Fees(CanonicalModel):
    amount: float | None = None
    currency: str | None = None


class CanonicalClosedOrder(CanonicalModel):
    """Closed order.

    When ``fees.currency`` is the pair's base currency, ``final_price`` and
    ``final_rate`` are fee adjusted (+fees for buy, -fees for sell).
    Otherwise they equal ``actual_price`` / ``actual_rate``.
    """

    pair: str
    order_number: str
    closed_timestamp: float | None = None
    order_type: OrderType | None = None
    quantity: float | None = None
    actual_rate: float | None = None
    actual_price: float | None = None
    fees: Fees | None = None
    final_rate: float | None = None
    final_price: float | None = None


class CanonicalNewOrder(CanonicalModel):
    order_number: str


# ============================================================================
# BALANCES
# ============================================================================


class CanonicalBalance(CanonicalModel):
    currency: str
    total: float | None = None
    available: float | None = None
    on_orders: float | None = None


def canonical_to_dict(value: Any) -> Any:
    """Recursively serialize canonical payloads (models, dicts and lists)."""
    if isinstance(value, BaseModel):
        return value.model_dump(by_alias=True)
    if isinstance(value, dict):
        return {key: canonical_to_dict(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [canonical_to_dict(item) for item in value]
    return value
