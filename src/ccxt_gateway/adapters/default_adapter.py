"""
Default adapter: uniform request/response contract on top of a connector.

Every operation:
1. translates canonical arguments (``QUOTE-BASE`` pairs, seconds, kline
   intervals) to connector arguments (``BASE/QUOTE``, ms, candle count)
2. calls the connector exactly once
3. wraps any non-domain failure into a DomainError carrying the captured
   request/response
4. runs the matching canonical formatter
5. returns AdapterResult(raw, canonical)

Exchange differences are injected as an ExchangeQuirks value; nothing here
is exchange specific.
"""

import math
from dataclasses import dataclass
from typing import Any

from ccxt_gateway.adapters.base import ConnectorPort
from ccxt_gateway.errors import DomainError, UnsupportedKlinesInterval, wrap
from ccxt_gateway.infrastructure.observability import (
    get_adapter_logger,
    get_normalization_logger,
)
from ccxt_gateway.normalization import formatters
from ccxt_gateway.normalization.diagnostics import DiagnosticsSink
from ccxt_gateway.normalization.pairs import to_connector_pair
from ccxt_gateway.normalization.quirks import DEFAULT_QUIRKS, ExchangeQuirks
from ccxt_gateway.shared.models import KLINE_INTERVAL_SECONDS, canonical_to_dict


@dataclass(frozen=True)
class AdapterResult:
    """Raw connector payload and its canonical form, always both present."""

    raw: Any
    canonical: Any

    def to_dict(self) -> dict[str, Any]:
        return {"raw": self.raw, "canonical": canonical_to_dict(self.canonical)}


def klines_count(interval: str, from_timestamp: float, to_timestamp: float) -> int:
    """Number of candles covering ``[from, to)`` (timestamps in seconds)."""
    duration = KLINE_INTERVAL_SECONDS.get(interval)
    if duration is None:
        raise UnsupportedKlinesInterval(interval, list(KLINE_INTERVAL_SECONDS))
    return math.ceil((to_timestamp - from_timestamp) / duration)


def is_open_order(order: dict[str, Any]) -> bool:
    """Open vs closed dispatch for a single fetched order.

    A connector status wins when present; otherwise the order is open when
    it reports a remaining quantity.
    """
    status = order.get("status")
    if status is not None:
        return status == "open"
    return order.get("remaining") is not None


class DefaultAdapter:
    """Connector operations returning raw and canonical payloads."""

    def __init__(
        self,
        connector: ConnectorPort,
        quirks: ExchangeQuirks = DEFAULT_QUIRKS,
        logger: Any = None,
        diagnostics: DiagnosticsSink | None = None,
    ):
        self.connector = connector
        self.quirks = quirks
        self.exchange_id = connector.exchange_id
        self.logger = logger or get_adapter_logger("default-adapter", exchange=self.exchange_id)
        self.diagnostics = diagnostics or get_normalization_logger(
            "formatters", exchange=self.exchange_id
        )

    async def _call(self, method: str, *args: Any) -> Any:
        """Call the connector once, wrapping failures into DomainError."""
        fn = getattr(self.connector, method)
        self.logger.debug("connector_call", method=method)
        with self.connector.capture_exchange() as exchange:
            try:
                return await fn(*args)
            except DomainError:
                raise
            except Exception as exc:
                raise wrap(
                    exc, exchange.request, exchange.response, exchange.parsed_body
                ) from exc

    # ------------------------------------------------------------------
    # Market data
    # ------------------------------------------------------------------

    async def get_pairs(self) -> AdapterResult:
        raw = await self._call("load_markets", True)
        currency_precision = None
        if self.connector.supports_currency_precision:
            currency_precision = self.connector.currency_precision()
        canonical = formatters.format_pairs(
            raw,
            self.quirks,
            currency_precision,
            self.connector.precision_mode,
            self.diagnostics,
        )
        return AdapterResult(raw, canonical)

    async def get_tickers(
        self, pairs: list[str] | None = None, params: dict | None = None
    ) -> AdapterResult:
        symbols = [to_connector_pair(pair) for pair in pairs] if pairs else None
        raw = await self._call("fetch_tickers", symbols, params)
        return AdapterResult(raw, formatters.format_tickers(raw, self.quirks))

    async def get_ticker(self, pair: str, params: dict | None = None) -> AdapterResult:
        raw = await self._call("fetch_ticker", to_connector_pair(pair), params)
        return AdapterResult(raw, formatters.format_ticker(pair, raw, self.quirks))

    async def get_order_book(
        self, pair: str, limit: int | None = None, params: dict | None = None
    ) -> AdapterResult:
        limit = self.quirks.clamp_order_book_limit(limit)
        raw = await self._call("fetch_order_book", to_connector_pair(pair), limit, params)
        return AdapterResult(raw, formatters.format_order_book(raw))

    async def get_trades(
        self, pair: str, limit: int | None = None, params: dict | None = None
    ) -> AdapterResult:
        limit = self.quirks.clamp_trades_limit(limit)
        raw = await self._call("fetch_trades", to_connector_pair(pair), None, limit, params)
        return AdapterResult(raw, formatters.format_trades(raw, self.quirks))

    async def get_klines(
        self,
        pair: str,
        interval: str,
        from_timestamp: float,
        to_timestamp: float,
        params: dict | None = None,
    ) -> AdapterResult:
        """Candles between two timestamps (seconds).

        Raises:
            UnsupportedKlinesInterval: If the interval is unknown (ValueError)
        """
        count = klines_count(interval, from_timestamp, to_timestamp)
        since = self.quirks.adjust_klines_start(int(from_timestamp * 1000))
        raw = await self._call(
            "fetch_ohlcv", to_connector_pair(pair), interval, since, count, params
        )
        return AdapterResult(raw, formatters.format_klines(raw))

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------

    async def get_open_orders_for_pair(
        self, pair: str, params: dict | None = None
    ) -> AdapterResult:
        raw = await self._call("fetch_open_orders", to_connector_pair(pair), None, None, params)
        return AdapterResult(raw, formatters.format_open_orders(raw))

    async def get_closed_orders_for_pair(
        self,
        pair: str,
        from_timestamp: float | None = None,
        to_timestamp: float | None = None,
        params: dict | None = None,
    ) -> AdapterResult:
        """Closed orders, optionally restricted to ``[from, to]`` (seconds)."""
        since = None if from_timestamp is None else round(from_timestamp * 1000)
        if to_timestamp is not None:
            params = {**(params or {}), "until": round(to_timestamp * 1000)}
        raw = await self._call(
            "fetch_closed_orders", to_connector_pair(pair), since, None, params
        )
        return AdapterResult(raw, formatters.format_closed_orders(raw, self.quirks))

    async def get_order(
        self, order_number: str, pair: str | None = None, params: dict | None = None
    ) -> AdapterResult:
        symbol = None if pair is None else to_connector_pair(pair)
        raw = await self._call("fetch_order", order_number, symbol, params)
        if is_open_order(raw):
            return AdapterResult(raw, formatters.format_open_order(raw))
        return AdapterResult(raw, formatters.format_closed_order(raw, self.quirks))

    async def create_order(
        self,
        order_type: str,
        pair: str,
        target_rate: float,
        quantity: float,
        params: dict | None = None,
    ) -> AdapterResult:
        """Place a limit order."""
        raw = await self._call(
            "create_order",
            to_connector_pair(pair),
            "limit",
            order_type,
            quantity,
            target_rate,
            params,
        )
        return AdapterResult(raw, formatters.format_new_order(raw))

    async def cancel_order(
        self, order_number: str, pair: str | None = None, params: dict | None = None
    ) -> AdapterResult:
        symbol = None if pair is None else to_connector_pair(pair)
        raw = await self._call("cancel_order", order_number, symbol, params)
        return AdapterResult(raw, {})

    # ------------------------------------------------------------------
    # Balances
    # ------------------------------------------------------------------

    async def get_balances(self, params: dict | None = None) -> AdapterResult:
        raw = await self._call("fetch_balance", params)
        return AdapterResult(raw, formatters.format_balances(raw))

    async def close(self) -> None:
        await self.connector.close()
