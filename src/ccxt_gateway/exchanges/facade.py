"""
Exchange facade.

Orchestrates the default adapter for one exchange and adds the cross-cutting
behavior that depends on exchange quirks:
- defaults from the exchange profile (limits, kline intervals)
- order cache updated after every order call
- error message reclassification (create/cancel)
- closed-order history split in day-sized windows fetched concurrently,
  then merged

Facade methods return canonical payloads.
"""

import asyncio
import time
from collections.abc import Awaitable
from dataclasses import dataclass, field, replace
from typing import Any, TypeVar

from ccxt_gateway.adapters.default_adapter import AdapterResult, DefaultAdapter
from ccxt_gateway.errors import (
    DomainError,
    UnsupportedKlinesInterval,
    is_network_error,
    log_domain_error,
)
from ccxt_gateway.exchanges.error_rules import (
    BINANCE_ERROR_RULES,
    CANCEL_ORDER,
    CREATE_ORDER,
    KUCOIN_ERROR_RULES,
    ErrorRuleTable,
)
from ccxt_gateway.exchanges.order_cache import CachedOrder, OrderCache
from ccxt_gateway.infrastructure.observability import get_exchange_logger
from ccxt_gateway.normalization.formatters import merge_closed_orders
from ccxt_gateway.shared.models import (
    KLINE_INTERVAL_SECONDS,
    CanonicalClosedOrder,
    CanonicalOpenOrder,
    OrderState,
)

T = TypeVar("T")

SECONDS_PER_DAY = 24 * 60 * 60


@dataclass(frozen=True)
class ExchangeProfile:
    """Static facts about an exchange the facade relies on."""

    exchange_id: str
    default_order_book_limit: int | None = None
    default_trades_limit: int | None = None
    kline_intervals: tuple[str, ...] = tuple(KLINE_INTERVAL_SECONDS)
    default_kline_interval: str = "5m"
    history_window_days: int | None = None
    error_rules: ErrorRuleTable = field(default_factory=ErrorRuleTable, compare=False)

    def supports_kline_interval(self, interval: str) -> bool:
        return interval in self.kline_intervals


PROFILES: dict[str, ExchangeProfile] = {
    "kucoin": ExchangeProfile(
        exchange_id="kucoin",
        default_order_book_limit=20,
        default_trades_limit=20,
        kline_intervals=("1m", "5m", "15m", "30m", "1h", "8h", "1d", "1w"),
        error_rules=ErrorRuleTable(KUCOIN_ERROR_RULES),
    ),
    "okx": ExchangeProfile(
        exchange_id="okx",
        default_order_book_limit=200,
        default_trades_limit=600,
        kline_intervals=(
            "1m", "3m", "5m", "15m", "30m", "1h", "2h", "4h", "6h", "12h", "1d", "1w",
        ),
    ),
    "binance": ExchangeProfile(
        exchange_id="binance",
        kline_intervals=(
            "1m", "3m", "5m", "15m", "30m", "1h", "2h", "4h", "6h", "8h", "12h",
            "1d", "3d", "1w", "1M",
        ),
        # order history queries cannot span more than 24 hours
        history_window_days=1,
        error_rules=ErrorRuleTable(BINANCE_ERROR_RULES),
    ),
}
PROFILES["okex"] = replace(PROFILES["okx"], exchange_id="okex")


def profile_for(exchange_id: str, overrides: Any = None) -> ExchangeProfile:
    """Shipped profile for ``exchange_id`` with non-None config overrides applied.

    Args:
        exchange_id: Gateway exchange id
        overrides: Object exposing ExchangeConfig facade fields (optional)
    """
    key = exchange_id.lower()
    profile = PROFILES.get(key) or ExchangeProfile(exchange_id=key)
    if overrides is None:
        return profile

    changes: dict[str, Any] = {}
    for name in (
        "default_order_book_limit",
        "default_trades_limit",
        "default_kline_interval",
        "history_window_days",
    ):
        value = getattr(overrides, name, None)
        if value is not None:
            changes[name] = value
    intervals = getattr(overrides, "kline_intervals", None)
    if intervals is not None:
        changes["kline_intervals"] = tuple(intervals)
    return replace(profile, **changes) if changes else profile


def history_windows(
    from_timestamp: float, to_timestamp: float, window_days: int
) -> list[tuple[float, float]]:
    """Split ``[from, to]`` (seconds) in consecutive day-sized windows.

    Windows do not overlap: every window but the last ends 1 ms before the
    next one starts.
    """
    size = window_days * SECONDS_PER_DAY
    windows = []
    start = from_timestamp
    while start < to_timestamp:
        end = min(start + size, to_timestamp)
        windows.append((start, end if end == to_timestamp else end - 0.001))
        start = end
    return windows


class ExchangeFacade:
    """Per-exchange entry point used by the transport layer."""

    def __init__(
        self,
        exchange_id: str,
        adapter: DefaultAdapter,
        profile: ExchangeProfile | None = None,
        cache: OrderCache | None = None,
        logger: Any = None,
    ):
        self.exchange_id = exchange_id
        self.adapter = adapter
        self.profile = profile or profile_for(exchange_id)
        self.cache = cache if cache is not None else OrderCache()
        self.logger = logger or get_exchange_logger(exchange_id)

    async def _guard(self, operation: str, call: Awaitable[T]) -> T:
        """Await an adapter call, logging network errors and reclassifying."""
        try:
            return await call
        except DomainError as error:
            if is_network_error(error):
                log_domain_error(self.logger, error, self.exchange_id, operation)
            reclassified = self.profile.error_rules.reclassify(error, operation)
            if reclassified is not error:
                self.logger.info(
                    "error_reclassified",
                    operation=operation,
                    kind=reclassified.kind,
                    original_kind=error.kind,
                )
                raise reclassified from error
            raise

    # ------------------------------------------------------------------
    # Market data
    # ------------------------------------------------------------------

    async def get_pairs(self):
        result = await self._guard("get_pairs", self.adapter.get_pairs())
        return result.canonical

    async def get_tickers(self, pairs: list[str] | None = None):
        result = await self._guard("get_tickers", self.adapter.get_tickers(pairs))
        return result.canonical

    async def get_ticker(self, pair: str):
        result = await self._guard("get_ticker", self.adapter.get_ticker(pair))
        return result.canonical

    async def get_order_book(self, pair: str, limit: int | None = None):
        if limit is None:
            limit = self.profile.default_order_book_limit
        result = await self._guard("get_order_book", self.adapter.get_order_book(pair, limit))
        return result.canonical

    async def get_trades(self, pair: str, limit: int | None = None):
        if limit is None:
            limit = self.profile.default_trades_limit
        result = await self._guard("get_trades", self.adapter.get_trades(pair, limit))
        return result.canonical

    async def get_klines(
        self,
        pair: str,
        interval: str | None = None,
        from_timestamp: float | None = None,
        to_timestamp: float | None = None,
    ):
        """Candles for ``[from, to]`` (seconds, ``to`` defaults to now).

        Without ``from_timestamp``, the last 100 candles are requested.

        Raises:
            UnsupportedKlinesInterval: If the exchange does not support the interval
        """
        interval = interval or self.profile.default_kline_interval
        if not self.profile.supports_kline_interval(interval):
            raise UnsupportedKlinesInterval(interval, list(self.profile.kline_intervals))
        if to_timestamp is None:
            to_timestamp = time.time()
        if from_timestamp is None:
            from_timestamp = to_timestamp - 100 * KLINE_INTERVAL_SECONDS[interval]
        result = await self._guard(
            "get_klines",
            self.adapter.get_klines(pair, interval, from_timestamp, to_timestamp),
        )
        return result.canonical

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------

    def get_cached_order(self, order_number: str) -> CachedOrder | None:
        return self.cache.get(order_number)

    def _pair_of(self, order_number: str, pair: str | None) -> str | None:
        if pair is not None:
            return pair
        cached = self.cache.get(order_number)
        return cached.pair if cached is not None else None

    async def get_open_orders(self, pair: str) -> dict[str, CanonicalOpenOrder]:
        result = await self._guard("get_open_orders", self.adapter.get_open_orders_for_pair(pair))
        for order_number, order in result.canonical.items():
            self.cache.update(order_number, order.order_type, order.pair, OrderState.OPEN)
        return result.canonical

    async def get_closed_orders(
        self,
        pair: str,
        from_timestamp: float | None = None,
        to_timestamp: float | None = None,
    ) -> dict[str, CanonicalClosedOrder]:
        """Closed orders of a pair, optionally restricted to ``[from, to]`` (seconds).

        When the profile sets ``history_window_days`` and ``from_timestamp`` is
        given, one request per window is launched concurrently and the results
        are merged. Orders straddling a window boundary are merged best effort.
        """
        window_days = self.profile.history_window_days
        if window_days is None or from_timestamp is None:
            result = await self._guard(
                "get_closed_orders",
                self.adapter.get_closed_orders_for_pair(pair, from_timestamp, to_timestamp),
            )
            orders = result.canonical
        else:
            if to_timestamp is None:
                to_timestamp = time.time()
            windows = history_windows(from_timestamp, to_timestamp, window_days)
            results: list[AdapterResult] = await asyncio.gather(
                *(
                    self._guard(
                        "get_closed_orders",
                        self.adapter.get_closed_orders_for_pair(pair, start, end),
                    )
                    for start, end in windows
                )
            )
            orders = merge_closed_orders(
                (order for result in results for order in result.canonical.values()),
                diagnostics=self.logger,
            )
            self.logger.debug(
                "closed_orders_merged", pair=pair, windows=len(windows), orders=len(orders)
            )

        for order_number, order in orders.items():
            self.cache.update(order_number, order.order_type, order.pair, OrderState.CLOSED)
        return orders

    async def get_order(self, order_number: str, pair: str | None = None):
        pair = self._pair_of(order_number, pair)
        result = await self._guard("get_order", self.adapter.get_order(order_number, pair))
        order = result.canonical
        state = OrderState.OPEN if isinstance(order, CanonicalOpenOrder) else OrderState.CLOSED
        self.cache.update(order_number, order.order_type, order.pair, state)
        return order

    async def create_order(
        self, order_type: str, pair: str, target_rate: float, quantity: float
    ):
        result = await self._guard(
            CREATE_ORDER,
            self.adapter.create_order(order_type, pair, target_rate, quantity),
        )
        self.cache.update(result.canonical.order_number, order_type, pair, OrderState.OPEN)
        return result.canonical

    async def cancel_order(self, order_number: str, pair: str | None = None):
        pair = self._pair_of(order_number, pair)
        result = await self._guard(
            CANCEL_ORDER, self.adapter.cancel_order(order_number, pair)
        )
        if self.cache.mark(order_number, OrderState.CANCELLED) is None and pair is not None:
            self.cache.update(order_number, None, pair, OrderState.CANCELLED)
        return result.canonical

    # ------------------------------------------------------------------
    # Balances
    # ------------------------------------------------------------------

    async def get_balances(self):
        result = await self._guard("get_balances", self.adapter.get_balances())
        return result.canonical

    async def close(self) -> None:
        await self.adapter.close()

    def __repr__(self) -> str:
        return f"ExchangeFacade(exchange_id={self.exchange_id!r})"
