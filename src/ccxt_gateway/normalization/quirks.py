"""Per-exchange behavioral overrides.

An ExchangeQuirks value is injected into the default adapter and the
formatters. Each field is one explicit override point; exchanges without
a registered value use DEFAULT_QUIRKS. Overrides only change where a value
comes from, never the canonical shape.

Adding an exchange requires registration, not code modification.
"""

import time
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, replace
from typing import Any

from ccxt_gateway.normalization.decimals import multiply8

# ============================================================================
# Default hooks
# ============================================================================


def default_trade_id(trade: Mapping[str, Any]) -> str | None:
    trade_id = trade.get("id")
    return None if trade_id is None else str(trade_id)


def default_ticker_timestamp(ticker: Mapping[str, Any]) -> float | None:
    """Ticker timestamp in milliseconds, None when absent."""
    return ticker.get("timestamp")


def default_actual_rate(order: Mapping[str, Any]) -> float | None:
    return order.get("price")


def default_actual_price(order: Mapping[str, Any], actual_rate: float | None) -> float | None:
    return order.get("cost")


def default_klines_start(since_ms: int) -> int:
    return since_ms


def is_spot_market(market: Mapping[str, Any]) -> bool:
    """Swap, futures and option markets carry a settle suffix (``BTC/USDT:USDT``)."""
    if market.get("spot") is False:
        return False
    return ":" not in (market.get("symbol") or "")


def keep_pair(market: Mapping[str, Any]) -> bool:
    return is_spot_market(market)


def clamp_limit(limit: int | None, supported: Sequence[int] | None) -> int | None:
    """Round ``limit`` up to the nearest supported value, capped at the maximum.

    Returns ``limit`` unchanged when the exchange has no discrete limits.
    """
    if limit is None or not supported:
        return limit
    ordered = sorted(supported)
    for value in ordered:
        if value >= limit:
            return value
    return ordered[-1]


# ============================================================================
# Strategy value
# ============================================================================


@dataclass(frozen=True)
class ExchangeQuirks:
    """Override set for one exchange.

    Attributes:
        name: Exchange id the quirks belong to
        extract_trade_id: trade -> id (None when the exchange assigns none)
        ticker_timestamp: ticker -> timestamp in ms (None when absent)
        derive_actual_rate: closed order -> realized rate
        derive_actual_price: (closed order, realized rate) -> realized price
        adjust_klines_start: requested start (ms) -> start sent to the connector
        filter_pair: market -> keep it in the pair universe
        order_book_limits: discrete supported order book limits
        trades_limits: discrete supported trades limits
        trades_newest_first: native trade order (None = detect from timestamps)
        ticker_percentage_is_ratio: connector percentage is a ratio, not a percent
    """

    name: str = "default"
    extract_trade_id: Callable[[Mapping[str, Any]], str | None] = default_trade_id
    ticker_timestamp: Callable[[Mapping[str, Any]], float | None] = default_ticker_timestamp
    derive_actual_rate: Callable[[Mapping[str, Any]], float | None] = default_actual_rate
    derive_actual_price: Callable[[Mapping[str, Any], float | None], float | None] = (
        default_actual_price
    )
    adjust_klines_start: Callable[[int], int] = default_klines_start
    filter_pair: Callable[[Mapping[str, Any]], bool] = keep_pair
    order_book_limits: tuple[int, ...] | None = None
    trades_limits: tuple[int, ...] | None = None
    trades_newest_first: bool | None = None
    ticker_percentage_is_ratio: bool = False

    def clamp_order_book_limit(self, limit: int | None) -> int | None:
        return clamp_limit(limit, self.order_book_limits)

    def clamp_trades_limit(self, limit: int | None) -> int | None:
        return clamp_limit(limit, self.trades_limits)

    def with_overrides(self, **changes: Any) -> "ExchangeQuirks":
        """Copy with some override points replaced."""
        return replace(self, **changes)


DEFAULT_QUIRKS = ExchangeQuirks()


# ============================================================================
# KuCoin
# ============================================================================


def kucoin_trade_id(trade: Mapping[str, Any]) -> str | None:
    """Native id, falling back to the trade sequence number."""
    trade_id = trade.get("id")
    if trade_id is not None:
        return str(trade_id)
    info = trade.get("info")
    sequence = None
    if isinstance(info, (list, tuple)) and len(info) > 5:
        sequence = info[5]
    elif isinstance(info, Mapping):
        sequence = info.get("sequence")
    return None if sequence is None else str(sequence)


def now_when_missing(ticker: Mapping[str, Any]) -> float | None:
    timestamp = ticker.get("timestamp")
    if timestamp is None:
        return time.time() * 1000
    return timestamp


KUCOIN_QUIRKS = ExchangeQuirks(
    name="kucoin",
    extract_trade_id=kucoin_trade_id,
    ticker_timestamp=now_when_missing,
    order_book_limits=(20, 100),
)


# ============================================================================
# OKX (formerly OKEx)
# ============================================================================


def average_then_price(order: Mapping[str, Any]) -> float | None:
    average = order.get("average")
    if average is not None:
        return average
    return order.get("price")


def filled_times_rate(order: Mapping[str, Any], actual_rate: float | None) -> float | None:
    return multiply8(order.get("filled"), actual_rate)


def exclude_usd_base(market: Mapping[str, Any]) -> bool:
    """Futures pairs are identified by a USD base currency."""
    return is_spot_market(market) and market.get("quote") != "USD"


def one_second_earlier(since_ms: int) -> int:
    """The connector excludes a candle starting exactly at the requested start."""
    return since_ms - 1000


OKX_QUIRKS = ExchangeQuirks(
    name="okx",
    derive_actual_rate=average_then_price,
    derive_actual_price=filled_times_rate,
    adjust_klines_start=one_second_earlier,
    filter_pair=exclude_usd_base,
)


# ============================================================================
# Binance
# ============================================================================


def cost_or_filled_times_rate(
    order: Mapping[str, Any], actual_rate: float | None
) -> float | None:
    cost = order.get("cost")
    if cost is not None:
        return cost
    return filled_times_rate(order, actual_rate)


BINANCE_QUIRKS = ExchangeQuirks(
    name="binance",
    derive_actual_rate=average_then_price,
    derive_actual_price=cost_or_filled_times_rate,
    order_book_limits=(5, 10, 20, 50, 100, 500, 1000, 5000),
)


# ============================================================================
# Registry
# ============================================================================


class QuirksRegistry:
    """Registry of quirks per exchange id, with a default for unknown ids."""

    def __init__(self):
        self._quirks: dict[str, ExchangeQuirks] = {}
        self._default: ExchangeQuirks | None = None

    def register(self, exchange: str, quirks: ExchangeQuirks) -> None:
        """Register quirks for an exchange id (lower case)."""
        self._quirks[exchange.lower()] = quirks

    def set_default(self, quirks: ExchangeQuirks) -> None:
        """Set quirks used for unknown exchanges."""
        self._default = quirks

    def get(self, exchange: str) -> ExchangeQuirks:
        """Get quirks for an exchange.

        Raises:
            KeyError: If exchange not found and no default set
        """
        key = exchange.lower()
        if key in self._quirks:
            return self._quirks[key]
        if self._default is not None:
            return self._default
        raise KeyError(f"No quirks registered for exchange: {exchange}")

    def __contains__(self, exchange: str) -> bool:
        return exchange.lower() in self._quirks


def default_registry() -> QuirksRegistry:
    """Registry with the shipped exchange quirks."""
    registry = QuirksRegistry()
    registry.set_default(DEFAULT_QUIRKS)
    registry.register("kucoin", KUCOIN_QUIRKS)
    registry.register("okx", OKX_QUIRKS)
    registry.register("okex", replace(OKX_QUIRKS, name="okex"))
    registry.register("binance", BINANCE_QUIRKS)
    return registry
