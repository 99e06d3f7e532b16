"""
Shared fixtures.

FakeConnector implements the connector port with scripted responses so
adapter and facade tests never touch ccxt or the network.
"""

import logging
import sys
from pathlib import Path
from typing import Any

import pytest

# Ensure src on path
sys.path.insert(0, str(Path(__file__).parent / "src"))

from ccxt_gateway.adapters.base import capture_exchange, current_capture  # noqa: E402
from ccxt_gateway.normalization.diagnostics import CollectingDiagnostics  # noqa: E402
from ccxt_gateway.shared.models import PrecisionMode  # noqa: E402

logger = logging.getLogger(__name__)


class FakeConnector:
    """Connector port double.

    ``responses[method]`` is returned (a callable is called with the call
    arguments); ``errors[method]`` is raised instead. Every call is recorded
    in ``calls`` as ``(method, args)``. ``http`` pre-fills the capture as a
    real connector would before failing.
    """

    def __init__(self, exchange_id: str = "fake"):
        self.exchange_id = exchange_id
        self.responses: dict[str, Any] = {}
        self.errors: dict[str, BaseException] = {}
        self.http: dict[str, Any] | None = None
        self.calls: list[tuple[str, tuple]] = []
        self.supports_currency_precision = False
        self.precision_mode = PrecisionMode.DECIMAL_PLACES
        self.currencies: dict[str, Any] = {}
        self.closed = False

    def currency_precision(self) -> dict[str, Any]:
        return dict(self.currencies)

    def capture_exchange(self):
        return capture_exchange()

    async def _respond(self, method: str, *args: Any) -> Any:
        self.calls.append((method, args))
        if self.http is not None:
            capture = current_capture()
            capture.record_request(self.http.get("method"), self.http.get("url"))
            capture.record_response(
                self.http.get("status_code"),
                self.http.get("status_message"),
                self.http.get("body"),
                self.http.get("parsed_body"),
            )
        if method in self.errors:
            raise self.errors[method]
        response = self.responses.get(method)
        if callable(response):
            return response(*args)
        return response

    def calls_to(self, method: str) -> list[tuple]:
        return [args for name, args in self.calls if name == method]

    async def load_markets(self, reload=True):
        return await self._respond("load_markets", reload)

    async def fetch_tickers(self, symbols=None, params=None):
        return await self._respond("fetch_tickers", symbols, params)

    async def fetch_ticker(self, symbol, params=None):
        return await self._respond("fetch_ticker", symbol, params)

    async def fetch_order_book(self, symbol, limit=None, params=None):
        return await self._respond("fetch_order_book", symbol, limit, params)

    async def fetch_trades(self, symbol, since=None, limit=None, params=None):
        return await self._respond("fetch_trades", symbol, since, limit, params)

    async def fetch_ohlcv(self, symbol, timeframe, since=None, limit=None, params=None):
        return await self._respond("fetch_ohlcv", symbol, timeframe, since, limit, params)

    async def fetch_open_orders(self, symbol=None, since=None, limit=None, params=None):
        return await self._respond("fetch_open_orders", symbol, since, limit, params)

    async def fetch_closed_orders(self, symbol=None, since=None, limit=None, params=None):
        return await self._respond("fetch_closed_orders", symbol, since, limit, params)

    async def fetch_order(self, order_id, symbol=None, params=None):
        return await self._respond("fetch_order", order_id, symbol, params)

    async def create_order(self, symbol, order_type, side, amount, price=None, params=None):
        return await self._respond("create_order", symbol, order_type, side, amount, price, params)

    async def cancel_order(self, order_id, symbol=None, params=None):
        return await self._respond("cancel_order", order_id, symbol, params)

    async def fetch_balance(self, params=None):
        return await self._respond("fetch_balance", params)

    async def close(self):
        self.closed = True


@pytest.fixture
def fake_connector():
    return FakeConnector()


@pytest.fixture
def diagnostics():
    return CollectingDiagnostics()


@pytest.fixture
def btc_usdt_market():
    """ccxt market entry for BTC/USDT (canonical USDT-BTC)."""
    return {
        "symbol": "BTC/USDT",
        "base": "BTC",
        "quote": "USDT",
        "active": True,
        "precision": {"price": 2, "amount": 6},
        "limits": {
            "amount": {"min": 0.00001, "max": 9000},
            "price": {"min": 0.01, "max": 1000000},
            "cost": {"min": 10, "max": None},
        },
    }


@pytest.fixture
def closed_buy_order():
    return {
        "id": "1001",
        "symbol": "BTC/USDT",
        "side": "buy",
        "status": "closed",
        "timestamp": 1700000000000,
        "lastTradeTimestamp": 1700000005000,
        "amount": 0.5,
        "filled": 0.5,
        "remaining": 0.0,
        "price": 30000.0,
        "average": 30000.0,
        "cost": 15000.0,
        "fee": {"cost": 15.0, "currency": "USDT"},
    }
