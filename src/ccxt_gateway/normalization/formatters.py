"""Canonical formatters.

Pure functions turning connector (ccxt unified) records into canonical
records. They hold no state and never log directly: warnings go to the
diagnostics sink passed by the caller.

Collections follow the gateway conventions:
- pairs, tickers: dict keyed by canonical pair
- open/closed orders: dict keyed by order number
- balances: dict keyed by currency (zero totals dropped)
- trades: list, oldest first
- klines: list, connector order
"""

from collections.abc import Iterable, Mapping
from typing import Any

from ccxt_gateway.normalization.decimals import (
    divide8,
    multiply8,
    optional_float,
    round8,
    to_decimal,
)
from ccxt_gateway.normalization.diagnostics import NULL_DIAGNOSTICS, DiagnosticsSink
from ccxt_gateway.normalization.pairs import split_canonical_pair, to_canonical_pair
from ccxt_gateway.normalization.precision import reconcile
from ccxt_gateway.normalization.quirks import DEFAULT_QUIRKS, ExchangeQuirks
from ccxt_gateway.shared.models import (
    CanonicalBalance,
    CanonicalClosedOrder,
    CanonicalKline,
    CanonicalNewOrder,
    CanonicalOpenOrder,
    CanonicalOrderBook,
    CanonicalPair,
    CanonicalTicker,
    CanonicalTrade,
    Fees,
    OrderBookEntry,
    OrderType,
    PrecisionMode,
)


def _seconds(timestamp_ms: Any) -> float | None:
    if timestamp_ms is None:
        return None
    return timestamp_ms / 1000.0


def _records(data: Mapping[str, Any] | Iterable[Any]) -> Iterable[Any]:
    if isinstance(data, Mapping):
        return data.values()
    return data


# ============================================================================
# PAIRS
# ============================================================================


def format_pair(
    pair: str,
    market: Mapping[str, Any],
    currency_precision: Mapping[str, Any] | None = None,
    precision_mode: PrecisionMode = PrecisionMode.DECIMAL_PLACES,
    diagnostics: DiagnosticsSink | None = None,
) -> CanonicalPair:
    """Format a single connector market."""
    return CanonicalPair(
        pair=pair,
        base_currency=market["quote"],
        currency=market["base"],
        limits=reconcile(market, currency_precision, precision_mode, diagnostics),
    )


def format_pairs(
    markets: Mapping[str, Any] | Iterable[Mapping[str, Any]],
    quirks: ExchangeQuirks = DEFAULT_QUIRKS,
    currency_precision: Mapping[str, Any] | None = None,
    precision_mode: PrecisionMode = PrecisionMode.DECIMAL_PLACES,
    diagnostics: DiagnosticsSink | None = None,
) -> dict[str, CanonicalPair]:
    """Format connector markets, skipping inactive and filtered-out pairs."""
    result: dict[str, CanonicalPair] = {}
    for market in _records(markets):
        # active=None means "unknown" in ccxt: keep the pair
        if market.get("active") is False:
            continue
        if not quirks.filter_pair(market):
            continue
        pair = to_canonical_pair(market["symbol"])
        result[pair] = format_pair(
            pair, market, currency_precision, precision_mode, diagnostics
        )
    return result


# ============================================================================
# TICKERS
# ============================================================================


def format_ticker(
    pair: str,
    ticker: Mapping[str, Any],
    quirks: ExchangeQuirks = DEFAULT_QUIRKS,
) -> CanonicalTicker:
    """Format a single connector ticker (absent numbers stay None)."""
    percentage = ticker.get("percentage")
    if percentage is not None and quirks.ticker_percentage_is_ratio:
        percentage = round8(to_decimal(percentage) * 100)
    return CanonicalTicker(
        pair=pair,
        last=optional_float(ticker.get("last")),
        buy=optional_float(ticker.get("bid")),
        sell=optional_float(ticker.get("ask")),
        high=optional_float(ticker.get("high")),
        low=optional_float(ticker.get("low")),
        volume=optional_float(ticker.get("baseVolume")),
        price_change_percent=optional_float(percentage),
        timestamp=_seconds(quirks.ticker_timestamp(ticker)),
    )


def format_tickers(
    tickers: Mapping[str, Any] | Iterable[Mapping[str, Any]],
    quirks: ExchangeQuirks = DEFAULT_QUIRKS,
) -> dict[str, CanonicalTicker]:
    result: dict[str, CanonicalTicker] = {}
    for ticker in _records(tickers):
        pair = to_canonical_pair(ticker["symbol"])
        result[pair] = format_ticker(pair, ticker, quirks)
    return result


# ============================================================================
# ORDER BOOK / TRADES / KLINES
# ============================================================================


def _book_side(entries: Iterable[Any] | None) -> list[OrderBookEntry]:
    return [OrderBookEntry(rate=entry[0], quantity=entry[1]) for entry in entries or []]


def format_order_book(book: Mapping[str, Any]) -> CanonicalOrderBook:
    """Bids become ``buy``, asks become ``sell``, order untouched."""
    return CanonicalOrderBook(
        buy=_book_side(book.get("bids")),
        sell=_book_side(book.get("asks")),
    )


def format_trade(
    trade: Mapping[str, Any], quirks: ExchangeQuirks = DEFAULT_QUIRKS
) -> CanonicalTrade:
    quantity = trade.get("amount")
    rate = trade.get("price")
    return CanonicalTrade(
        id=quirks.extract_trade_id(trade),
        timestamp=_seconds(trade.get("timestamp")),
        order_type=trade.get("side"),
        quantity=optional_float(quantity),
        rate=optional_float(rate),
        price=multiply8(quantity, rate),
    )


def _newest_first(trades: list[Mapping[str, Any]], quirks: ExchangeQuirks) -> bool:
    if quirks.trades_newest_first is not None:
        return quirks.trades_newest_first
    if len(trades) < 2:
        return False
    first = trades[0].get("timestamp")
    last = trades[-1].get("timestamp")
    if first is None or last is None:
        return False
    return first > last


def format_trades(
    trades: Iterable[Mapping[str, Any]], quirks: ExchangeQuirks = DEFAULT_QUIRKS
) -> list[CanonicalTrade]:
    """Format trades, oldest first whatever the connector's native order."""
    trades = list(trades)
    if _newest_first(trades, quirks):
        trades.reverse()
    return [format_trade(trade, quirks) for trade in trades]


def format_klines(ohlcv: Iterable[Any]) -> list[CanonicalKline]:
    """``[ms, open, high, low, close, volume]`` rows to klines (timestamp in s)."""
    result = []
    for row in ohlcv:
        volume = row[5] if len(row) > 5 else None
        result.append(
            CanonicalKline(
                timestamp=int(row[0] // 1000),
                open=optional_float(row[1]),
                high=optional_float(row[2]),
                low=optional_float(row[3]),
                close=optional_float(row[4]),
                volume=optional_float(volume),
            )
        )
    return result


# ============================================================================
# ORDERS
# ============================================================================


def format_open_order(order: Mapping[str, Any]) -> CanonicalOpenOrder:
    quantity = order.get("amount")
    target_rate = order.get("price")
    return CanonicalOpenOrder(
        pair=to_canonical_pair(order["symbol"]),
        order_number=str(order["id"]),
        open_timestamp=_seconds(order.get("timestamp")),
        order_type=order.get("side"),
        quantity=optional_float(quantity),
        remaining_quantity=optional_float(order.get("remaining")),
        target_rate=optional_float(target_rate),
        target_price=multiply8(target_rate, quantity),
    )


def format_open_orders(orders: Iterable[Mapping[str, Any]]) -> dict[str, CanonicalOpenOrder]:
    result: dict[str, CanonicalOpenOrder] = {}
    for order in orders:
        formatted = format_open_order(order)
        result[formatted.order_number] = formatted
    return result


def apply_fees(
    order_type: str | None,
    quantity: Any,
    actual_price: Any,
    actual_rate: Any,
    fees: Fees | None,
    base_currency: str,
) -> tuple[float | None, float | None]:
    """Compute ``(final_price, final_rate)``.

    Fees are only applied when paid in the pair's base currency: added for
    a buy, subtracted for a sell. Otherwise final values equal actual ones.
    """
    if (
        fees is None
        or fees.amount is None
        or fees.currency != base_currency
        or actual_price is None
        or not quantity
    ):
        return optional_float(actual_price), optional_float(actual_rate)

    if order_type == OrderType.BUY.value:
        final_price = to_decimal(actual_price) + to_decimal(fees.amount)
    else:
        final_price = to_decimal(actual_price) - to_decimal(fees.amount)
    return round8(final_price), divide8(final_price, quantity)


def format_closed_order(
    order: Mapping[str, Any], quirks: ExchangeQuirks = DEFAULT_QUIRKS
) -> CanonicalClosedOrder:
    """Format a closed (or cancelled) order.

    A zero quantity (order cancelled without any fill) yields
    ``actualPrice = 0``, no fees and no final values.
    """
    pair = to_canonical_pair(order["symbol"])
    base_currency, _ = split_canonical_pair(pair)
    order_type = order.get("side")
    quantity = order.get("filled")
    actual_rate = quirks.derive_actual_rate(order)

    timestamp = order.get("lastTradeTimestamp")
    if timestamp is None:
        timestamp = order.get("timestamp")

    actual_price: Any = 0
    fees = None
    final_price = final_rate = None
    if quantity:
        actual_price = quirks.derive_actual_price(order, actual_rate)
        fee = order.get("fee")
        if fee:
            fees = Fees(amount=fee.get("cost"), currency=fee.get("currency"))
        final_price, final_rate = apply_fees(
            order_type, quantity, actual_price, actual_rate, fees, base_currency
        )

    return CanonicalClosedOrder(
        pair=pair,
        order_number=str(order["id"]),
        closed_timestamp=_seconds(timestamp),
        order_type=order_type,
        quantity=optional_float(quantity),
        actual_rate=optional_float(actual_rate),
        actual_price=optional_float(actual_price),
        fees=fees,
        final_rate=final_rate,
        final_price=final_price,
    )


def format_closed_orders(
    orders: Iterable[Mapping[str, Any]], quirks: ExchangeQuirks = DEFAULT_QUIRKS
) -> dict[str, CanonicalClosedOrder]:
    result: dict[str, CanonicalClosedOrder] = {}
    for order in orders:
        formatted = format_closed_order(order, quirks)
        result[formatted.order_number] = formatted
    return result


def _add(left: Any, right: Any) -> Any:
    if left is None:
        return right
    if right is None:
        return left
    return to_decimal(left) + to_decimal(right)


def _merge_fees(
    current: CanonicalClosedOrder,
    other: CanonicalClosedOrder,
    base_currency: str,
    sink: DiagnosticsSink,
) -> Fees | None:
    if not (current.fees and other.fees):
        return current.fees or other.fees
    if current.fees.currency == other.fees.currency:
        return Fees(
            amount=round8(_add(current.fees.amount, other.fees.amount)),
            currency=current.fees.currency,
        )
    # only one currency can be kept: the base currency one drives final values
    kept, dropped = current.fees, other.fees
    if dropped.currency == base_currency:
        kept, dropped = dropped, kept
    sink.warning(
        "fees_currency_mismatch",
        order_number=current.order_number,
        kept_currency=kept.currency,
        kept_amount=kept.amount,
        dropped_currency=dropped.currency,
        dropped_amount=dropped.amount,
    )
    return kept


def _merge_pair(
    current: CanonicalClosedOrder,
    other: CanonicalClosedOrder,
    sink: DiagnosticsSink,
) -> CanonicalClosedOrder:
    base_currency, _ = split_canonical_pair(current.pair)
    quantity = _add(current.quantity, other.quantity)
    actual_price = _add(current.actual_price, other.actual_price)
    fees = _merge_fees(current, other, base_currency, sink)

    actual_rate = divide8(actual_price, quantity)
    if actual_rate is None:
        actual_rate = current.actual_rate
    final_price, final_rate = apply_fees(
        current.order_type, quantity, round8(actual_price), actual_rate, fees, base_currency
    )

    closed = [ts for ts in (current.closed_timestamp, other.closed_timestamp) if ts is not None]
    return current.model_copy(
        update={
            "closed_timestamp": max(closed) if closed else None,
            "quantity": round8(quantity),
            "actual_price": round8(actual_price),
            "actual_rate": actual_rate,
            "fees": fees,
            "final_price": final_price,
            "final_rate": final_rate,
        }
    )


def merge_closed_orders(
    orders: Iterable[CanonicalClosedOrder],
    diagnostics: DiagnosticsSink | None = None,
) -> dict[str, CanonicalClosedOrder]:
    """Merge partial fills reported under the same order number.

    Quantities, actual prices and same-currency fees accumulate. Fees paid in
    two currencies cannot be summed: the base currency fee is kept and the
    other one is reported to ``diagnostics`` as ``fees_currency_mismatch``.
    ``actualRate = actualPrice / quantity`` and final values are recomputed.
    The first seen order number keeps its position. A record identical to the
    one already held (same order seen by two overlapping queries) is skipped.
    """
    sink = diagnostics or NULL_DIAGNOSTICS
    result: dict[str, CanonicalClosedOrder] = {}
    for order in orders:
        existing = result.get(order.order_number)
        if existing == order:
            continue
        if existing is None:
            result[order.order_number] = order
        else:
            result[order.order_number] = _merge_pair(existing, order, sink)
    return result


# ============================================================================
# NEW ORDERS / BALANCES
# ============================================================================


def format_new_order(order: Mapping[str, Any]) -> CanonicalNewOrder:
    return CanonicalNewOrder(order_number=str(order["id"]))


def format_balance(currency: str, balance: Mapping[str, Any]) -> CanonicalBalance:
    return CanonicalBalance(
        currency=currency,
        total=optional_float(balance.get("total")),
        available=optional_float(balance.get("free")),
        on_orders=optional_float(balance.get("used")),
    )


def format_balances(balances: Mapping[str, Any]) -> dict[str, CanonicalBalance]:
    """Format balances; currencies with a zero (or unknown) total are dropped."""
    result: dict[str, CanonicalBalance] = {}
    for currency, total in (balances.get("total") or {}).items():
        if not total:
            continue
        result[currency] = format_balance(currency, balances.get(currency) or {"total": total})
    return result


__all__ = [
    "apply_fees",
    "format_balance",
    "format_balances",
    "format_closed_order",
    "format_closed_orders",
    "format_klines",
    "format_new_order",
    "format_open_order",
    "format_open_orders",
    "format_order_book",
    "format_pair",
    "format_pairs",
    "format_ticker",
    "format_tickers",
    "format_trade",
    "format_trades",
    "merge_closed_orders",
]
