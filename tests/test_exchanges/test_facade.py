"""
ExchangeFacade: profile defaults, order cache, error reclassification and
closed-order history windows.
"""

import ccxt
import pytest
from unittest.mock import MagicMock

from ccxt_gateway.adapters.default_adapter import DefaultAdapter
from ccxt_gateway.config.state import ExchangeConfig
from ccxt_gateway.errors import DomainError, UnsupportedKlinesInterval
from ccxt_gateway.exchanges.facade import (
    PROFILES,
    ExchangeFacade,
    ExchangeProfile,
    history_windows,
    profile_for,
)
from ccxt_gateway.normalization.quirks import BINANCE_QUIRKS, KUCOIN_QUIRKS
from ccxt_gateway.shared.models import OrderState

DAY = 24 * 60 * 60


def make_facade(connector, exchange_id, quirks, profile=None, logger=None):
    adapter = DefaultAdapter(connector, quirks)
    return ExchangeFacade(exchange_id, adapter, profile or PROFILES[exchange_id], logger=logger)


@pytest.fixture
def kucoin(fake_connector):
    fake_connector.exchange_id = "kucoin"
    return make_facade(fake_connector, "kucoin", KUCOIN_QUIRKS)


@pytest.fixture
def binance(fake_connector):
    fake_connector.exchange_id = "binance"
    return make_facade(fake_connector, "binance", BINANCE_QUIRKS)


# ============================================
# Profiles
# ============================================
class TestProfiles:
    def test_shipped_profiles(self):
        assert PROFILES["kucoin"].default_order_book_limit == 20
        assert PROFILES["okex"].default_trades_limit == 600
        assert PROFILES["okex"].kline_intervals == PROFILES["okx"].kline_intervals
        assert PROFILES["binance"].supports_kline_interval("1M")
        assert not PROFILES["kucoin"].supports_kline_interval("3m")

    def test_unknown_exchange_default_profile(self):
        profile = profile_for("bitstamp")

        assert profile.exchange_id == "bitstamp"
        assert profile.default_kline_interval == "5m"
        assert len(profile.error_rules) == 0

    def test_config_overrides(self):
        config = ExchangeConfig(
            exchange_id="kucoin",
            default_order_book_limit=100,
            kline_intervals=["1m", "1h"],
            default_kline_interval="1h",
        )

        profile = profile_for("kucoin", config)

        assert profile.default_order_book_limit == 100
        assert profile.default_trades_limit == 20
        assert profile.kline_intervals == ("1m", "1h")
        assert profile.default_kline_interval == "1h"
        assert len(profile.error_rules) == len(PROFILES["kucoin"].error_rules)


@pytest.mark.parametrize(
    "start,end,expected",
    [
        (0, DAY, [(0, DAY)]),
        (0, 2.5 * DAY, [(0, DAY - 0.001), (DAY, 2 * DAY - 0.001), (2 * DAY, 2.5 * DAY)]),
        (100, 100, []),
    ],
)
def test_history_windows(start, end, expected):
    assert history_windows(start, end, 1) == expected


# ============================================
# Market data defaults
# ============================================
class TestMarketData:
    @pytest.mark.asyncio
    async def test_order_book_default_limit(self, kucoin, fake_connector):
        fake_connector.responses["fetch_order_book"] = {"bids": [], "asks": []}

        book = await kucoin.get_order_book("USDT-BTC")

        assert book.buy == []
        assert fake_connector.calls_to("fetch_order_book") == [("BTC/USDT", 20, None)]

    @pytest.mark.asyncio
    async def test_trades_default_limit(self, kucoin, fake_connector):
        fake_connector.responses["fetch_trades"] = []

        await kucoin.get_trades("USDT-BTC")

        assert fake_connector.calls_to("fetch_trades") == [("BTC/USDT", None, 20, None)]

    @pytest.mark.asyncio
    async def test_klines_default_interval(self, kucoin, fake_connector):
        fake_connector.responses["fetch_ohlcv"] = []

        await kucoin.get_klines("USDT-BTC", from_timestamp=0, to_timestamp=3000)

        assert fake_connector.calls_to("fetch_ohlcv") == [("BTC/USDT", "5m", 0, 10, None)]

    @pytest.mark.asyncio
    async def test_klines_last_hundred_candles(self, kucoin, fake_connector):
        fake_connector.responses["fetch_ohlcv"] = []

        await kucoin.get_klines("USDT-BTC", "1h", to_timestamp=1700000000)

        symbol, interval, since, count, _ = fake_connector.calls_to("fetch_ohlcv")[0]
        assert since == (1700000000 - 100 * 3600) * 1000
        assert count == 100

    @pytest.mark.asyncio
    async def test_unsupported_interval(self, kucoin, fake_connector):
        with pytest.raises(UnsupportedKlinesInterval) as exc_info:
            await kucoin.get_klines("USDT-BTC", "3m", 0, 600)

        assert "8h" in exc_info.value.supported
        assert fake_connector.calls == []

    @pytest.mark.asyncio
    async def test_pairs_tickers_balances_return_canonical(self, binance, fake_connector, btc_usdt_market):
        fake_connector.responses["load_markets"] = {"BTC/USDT": btc_usdt_market}
        fake_connector.responses["fetch_ticker"] = {"symbol": "BTC/USDT", "last": 5}
        fake_connector.responses["fetch_tickers"] = {"BTC/USDT": {"symbol": "BTC/USDT"}}
        fake_connector.responses["fetch_balance"] = {"total": {"BTC": 2}, "BTC": {"total": 2}}

        assert list(await binance.get_pairs()) == ["USDT-BTC"]
        assert (await binance.get_ticker("USDT-BTC")).last == 5
        assert list(await binance.get_tickers()) == ["USDT-BTC"]
        assert (await binance.get_balances())["BTC"].total == 2


# ============================================
# Orders & cache
# ============================================
class TestOrders:
    @pytest.mark.asyncio
    async def test_create_then_cancel_without_pair(self, kucoin, fake_connector):
        fake_connector.responses["create_order"] = {"id": "X1"}
        fake_connector.responses["cancel_order"] = {"orderId": "X1"}

        created = await kucoin.create_order("buy", "USDT-BTC", 30000, 0.1)
        assert kucoin.get_cached_order("X1").state == OrderState.OPEN

        result = await kucoin.cancel_order("X1")

        assert created.order_number == "X1"
        assert result == {}
        # pair recovered from the cache
        assert fake_connector.calls_to("cancel_order") == [("X1", "BTC/USDT", None)]
        cached = kucoin.get_cached_order("X1")
        assert cached.state == OrderState.CANCELLED
        assert cached.order_type == "buy"

    @pytest.mark.asyncio
    async def test_cancel_unknown_order_with_pair_is_cached(self, kucoin, fake_connector):
        fake_connector.responses["cancel_order"] = {}

        await kucoin.cancel_order("Y", "USDT-BTC")

        assert kucoin.get_cached_order("Y").state == OrderState.CANCELLED

    @pytest.mark.asyncio
    async def test_open_orders_cached(self, kucoin, fake_connector):
        fake_connector.responses["fetch_open_orders"] = [
            {"id": "1", "symbol": "BTC/USDT", "side": "sell", "amount": 1, "remaining": 1, "price": 2}
        ]

        orders = await kucoin.get_open_orders("USDT-BTC")

        assert list(orders) == ["1"]
        assert kucoin.get_cached_order("1").state == OrderState.OPEN
        assert kucoin.get_cached_order("1").order_type == "sell"

    @pytest.mark.asyncio
    async def test_get_order_updates_state(self, kucoin, fake_connector, closed_buy_order):
        kucoin.cache.update("1001", "buy", "USDT-BTC", OrderState.OPEN)
        fake_connector.responses["fetch_order"] = closed_buy_order

        order = await kucoin.get_order("1001")

        assert order.final_price == 15015.0
        assert fake_connector.calls_to("fetch_order") == [("1001", "BTC/USDT", None)]
        assert kucoin.get_cached_order("1001").state == OrderState.CLOSED

    @pytest.mark.asyncio
    async def test_get_open_order(self, kucoin, fake_connector, closed_buy_order):
        fake_connector.responses["fetch_order"] = dict(closed_buy_order, status="open", remaining=0.2)

        await kucoin.get_order("1001", "USDT-BTC")

        assert kucoin.get_cached_order("1001").state == OrderState.OPEN

    @pytest.mark.asyncio
    async def test_closed_orders_single_call_without_window(self, kucoin, fake_connector, closed_buy_order):
        fake_connector.responses["fetch_closed_orders"] = [closed_buy_order]

        orders = await kucoin.get_closed_orders("USDT-BTC", 0, 10 * DAY)

        assert len(fake_connector.calls_to("fetch_closed_orders")) == 1
        assert kucoin.get_cached_order("1001").state == OrderState.CLOSED
        assert orders["1001"].quantity == 0.5

    @pytest.mark.asyncio
    async def test_closed_orders_windows_merged(self, binance, fake_connector, closed_buy_order):
        fills = {
            0: [dict(closed_buy_order, filled=0.2, cost=6000.0, fee={"cost": 6.0, "currency": "USDT"})],
            DAY * 1000: [dict(closed_buy_order, filled=0.3, cost=9030.0, fee={"cost": 9.0, "currency": "USDT"})],
            2 * DAY * 1000: [dict(closed_buy_order, id="2002", lastTradeTimestamp=2 * DAY * 1000)],
        }
        fake_connector.responses["fetch_closed_orders"] = (
            lambda symbol, since, limit, params: fills[since]
        )

        orders = await binance.get_closed_orders("USDT-BTC", 0, 2.5 * DAY)

        calls = fake_connector.calls_to("fetch_closed_orders")
        assert [call[1] for call in calls] == [0, DAY * 1000, 2 * DAY * 1000]
        assert [call[3]["until"] for call in calls] == [
            DAY * 1000 - 1,
            2 * DAY * 1000 - 1,
            int(2.5 * DAY * 1000),
        ]
        assert list(orders) == ["1001", "2002"]
        merged = orders["1001"]
        assert merged.quantity == 0.5
        assert merged.actual_price == 15030.0
        assert merged.actual_rate == 30060.0
        assert merged.fees.amount == 15.0
        assert merged.final_price == 15045.0
        assert binance.get_cached_order("2002").state == OrderState.CLOSED

    @pytest.mark.asyncio
    async def test_closed_orders_fee_currency_mismatch_reported(self, fake_connector, closed_buy_order):
        fake_connector.exchange_id = "binance"
        logger = MagicMock()
        facade = make_facade(fake_connector, "binance", BINANCE_QUIRKS, logger=logger)
        fills = {
            0: [dict(closed_buy_order, filled=0.2, cost=6000.0, fee={"cost": 0.0002, "currency": "BTC"})],
            DAY * 1000: [dict(closed_buy_order, filled=0.3, cost=9000.0, fee={"cost": 9.0, "currency": "USDT"})],
        }
        fake_connector.responses["fetch_closed_orders"] = (
            lambda symbol, since, limit, params: fills[since]
        )

        orders = await facade.get_closed_orders("USDT-BTC", 0, 1.5 * DAY)

        merged = orders["1001"]
        assert merged.fees.currency == "USDT"
        assert merged.final_price == 15009.0
        logger.warning.assert_called_once()
        assert logger.warning.call_args.args[0] == "fees_currency_mismatch"
        assert logger.warning.call_args.kwargs["dropped_currency"] == "BTC"

    @pytest.mark.asyncio
    async def test_closed_orders_window_failure_raises_once(self, binance, fake_connector):
        fake_connector.errors["fetch_closed_orders"] = ccxt.ExchangeNotAvailable("down")

        with pytest.raises(DomainError) as exc_info:
            await binance.get_closed_orders("USDT-BTC", 0, 2 * DAY)

        assert exc_info.value.kind == "ExchangeNotAvailable"

    @pytest.mark.asyncio
    async def test_close(self, kucoin, fake_connector):
        await kucoin.close()

        assert fake_connector.closed


# ============================================
# Errors
# ============================================
class TestErrors:
    @pytest.mark.asyncio
    async def test_create_order_reclassified(self, kucoin, fake_connector):
        fake_connector.http = {"parsed_body": {"code": "400100", "msg": "Min amount each order 0.1"}}
        fake_connector.errors["create_order"] = ccxt.InvalidOrder("kucoin Min amount each order 0.1")

        with pytest.raises(DomainError) as exc_info:
            await kucoin.create_order("buy", "USDT-BTC", 1, 0.01)

        error = exc_info.value
        assert error.kind == "InvalidPrice"
        assert error.__cause__.kind == "InvalidOrder"
        assert len(kucoin.cache) == 0

    @pytest.mark.asyncio
    async def test_cancel_order_reclassified(self, kucoin, fake_connector):
        fake_connector.errors["cancel_order"] = ccxt.ExchangeError(
            "kucoin order_not_exist_or_not_allow_to_cancel"
        )

        with pytest.raises(DomainError) as exc_info:
            await kucoin.cancel_order("Z", "USDT-BTC")

        assert exc_info.value.kind == "OrderNotOpen"
        assert kucoin.get_cached_order("Z") is None

    @pytest.mark.asyncio
    async def test_unmatched_error_unchanged(self, kucoin, fake_connector):
        fake_connector.errors["fetch_balance"] = ccxt.AuthenticationError("bad key")

        with pytest.raises(DomainError) as exc_info:
            await kucoin.get_balances()

        assert exc_info.value.kind == "AuthenticationError"

    @pytest.mark.asyncio
    async def test_network_error_logged(self, fake_connector):
        logger = MagicMock()
        facade = make_facade(fake_connector, "kucoin", KUCOIN_QUIRKS, logger=logger)
        fake_connector.http = {
            "method": "GET",
            "url": "https://api.kucoin.com/api/v1/market/allTickers",
            "status_code": 503,
            "status_message": "Service Unavailable",
            "body": "<html>maintenance</html>",
        }
        fake_connector.errors["fetch_tickers"] = ccxt.ExchangeNotAvailable("maintenance")

        with pytest.raises(DomainError):
            await facade.get_tickers()

        logger.error.assert_called_once()
        assert logger.error.call_args.args[0] == "network_error"
        assert logger.error.call_args.kwargs["method"] == "get_tickers"
        assert logger.error.call_args.kwargs["status_code"] == 503

    @pytest.mark.asyncio
    async def test_custom_profile_rules(self, fake_connector):
        from ccxt_gateway.exchanges.error_rules import ErrorRule, ErrorRuleTable

        profile = ExchangeProfile(
            exchange_id="fake",
            error_rules=ErrorRuleTable([ErrorRule("insufficient", "InsufficientFunds")]),
        )
        facade = make_facade(fake_connector, "fake", KUCOIN_QUIRKS, profile=profile)
        fake_connector.errors["create_order"] = ccxt.ExchangeError("fake: insufficient balance")

        with pytest.raises(DomainError) as exc_info:
            await facade.create_order("sell", "USDT-BTC", 1, 1)

        assert exc_info.value.kind == "InsufficientFunds"
