"""
ccxt connector plugin.

Thin wrapper treating ccxt as a plugin behind ConnectorPort. Sync ccxt
clients run in a worker thread (``asyncio.to_thread``); ``ccxt.async_support``
clients are awaited directly.

The wrapper hooks two client methods to fill the ExchangeCapture of the
running call:
- ``fetch``: records the outgoing request (method, url)
- ``handle_errors``: called by ccxt for every response before any error is
  raised; records status code, status message, body and parsed JSON
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any

from ccxt.base.decimal_to_precision import SIGNIFICANT_DIGITS, TICK_SIZE

from ccxt_gateway.adapters.base import capture_exchange, current_capture
from ccxt_gateway.shared.models import PrecisionMode

from .client_factory import create_ccxt_client

logger = logging.getLogger(__name__)


class CcxtConnector:
    """ConnectorPort implementation backed by a ccxt exchange client."""

    def __init__(self, client: Any, exchange_id: str | None = None):
        self.client = client
        self.exchange_id = exchange_id or getattr(client, "id", "unknown")
        # keep exchange currency codes as reported (no XBT -> BTC style rewrite)
        client.substituteCommonCurrencyCodes = False
        self._install_capture_hooks()

    # ------------------------------------------------------------------
    # Capture hooks
    # ------------------------------------------------------------------

    def _install_capture_hooks(self) -> None:
        client = self.client
        original_fetch = client.fetch
        original_handle_errors = client.handle_errors

        if inspect.iscoroutinefunction(original_fetch):

            async def fetch(url, method="GET", headers=None, body=None, *args, **kwargs):
                capture = current_capture()
                if capture is not None:
                    capture.record_request(method, url)
                return await original_fetch(url, method, headers, body, *args, **kwargs)

        else:

            def fetch(url, method="GET", headers=None, body=None, *args, **kwargs):
                capture = current_capture()
                if capture is not None:
                    capture.record_request(method, url)
                return original_fetch(url, method, headers, body, *args, **kwargs)

        def handle_errors(code, reason, url, method, headers, body, response, *args, **kwargs):
            capture = current_capture()
            if capture is not None:
                capture.record_request(method, url)
                capture.record_response(code, reason, body, response)
            return original_handle_errors(
                code, reason, url, method, headers, body, response, *args, **kwargs
            )

        client.fetch = fetch
        client.handle_errors = handle_errors

    def capture_exchange(self):
        return capture_exchange()

    # ------------------------------------------------------------------
    # Capabilities
    # ------------------------------------------------------------------

    @property
    def supports_currency_precision(self) -> bool:
        has = getattr(self.client, "has", None) or {}
        return bool(has.get("fetchCurrencies"))

    @property
    def precision_mode(self) -> PrecisionMode:
        mode = getattr(self.client, "precisionMode", None)
        if mode == TICK_SIZE:
            return PrecisionMode.TICK_SIZE
        if mode == SIGNIFICANT_DIGITS:
            return PrecisionMode.SIGNIFICANT_DIGITS
        return PrecisionMode.DECIMAL_PLACES

    def currency_precision(self) -> dict[str, Any]:
        currencies = getattr(self.client, "currencies", None) or {}
        return {
            code: (currency or {}).get("precision")
            for code, currency in currencies.items()
        }

    # ------------------------------------------------------------------
    # Calls
    # ------------------------------------------------------------------

    async def _call(self, method: str, *args: Any) -> Any:
        fn = getattr(self.client, method)
        if inspect.iscoroutinefunction(fn):
            return await fn(*args)
        return await asyncio.to_thread(fn, *args)

    async def load_markets(self, reload: bool = True) -> dict[str, Any]:
        return await self._call("load_markets", reload)

    async def fetch_tickers(self, symbols=None, params=None):
        return await self._call("fetch_tickers", symbols, params or {})

    async def fetch_ticker(self, symbol, params=None):
        return await self._call("fetch_ticker", symbol, params or {})

    async def fetch_order_book(self, symbol, limit=None, params=None):
        return await self._call("fetch_order_book", symbol, limit, params or {})

    async def fetch_trades(self, symbol, since=None, limit=None, params=None):
        return await self._call("fetch_trades", symbol, since, limit, params or {})

    async def fetch_ohlcv(self, symbol, timeframe, since=None, limit=None, params=None):
        return await self._call("fetch_ohlcv", symbol, timeframe, since, limit, params or {})

    async def fetch_open_orders(self, symbol=None, since=None, limit=None, params=None):
        return await self._call("fetch_open_orders", symbol, since, limit, params or {})

    async def fetch_closed_orders(self, symbol=None, since=None, limit=None, params=None):
        return await self._call("fetch_closed_orders", symbol, since, limit, params or {})

    async def fetch_order(self, order_id, symbol=None, params=None):
        return await self._call("fetch_order", order_id, symbol, params or {})

    async def create_order(self, symbol, order_type, side, amount, price=None, params=None):
        return await self._call(
            "create_order", symbol, order_type, side, amount, price, params or {}
        )

    async def cancel_order(self, order_id, symbol=None, params=None):
        return await self._call("cancel_order", order_id, symbol, params or {})

    async def fetch_balance(self, params=None):
        return await self._call("fetch_balance", params or {})

    async def close(self) -> None:
        """Close the ccxt client if supported."""
        close_fn = getattr(self.client, "close", None)
        if callable(close_fn):
            try:
                maybe_coro = close_fn()
                if asyncio.iscoroutine(maybe_coro):
                    await maybe_coro
            except Exception as exc:  # pragma: no cover - best-effort cleanup
                logger.warning("Error closing ccxt client: %s", exc)

    def __repr__(self) -> str:
        return f"CcxtConnector(exchange_id={self.exchange_id!r})"


__all__ = ["CcxtConnector", "create_ccxt_client"]
