"""Bounded order cache."""

import pytest

from ccxt_gateway.exchanges.order_cache import CachedOrder, OrderCache
from ccxt_gateway.shared.models import OrderState


def test_update_and_get():
    cache = OrderCache()

    cache.update("1", "buy", "USDT-BTC", OrderState.OPEN)

    assert cache.get("1") == CachedOrder("buy", "USDT-BTC", OrderState.OPEN)
    assert "1" in cache
    assert cache.get("2") is None


def test_last_write_wins():
    cache = OrderCache()

    cache.update("1", "buy", "USDT-BTC", OrderState.OPEN)
    cache.update("1", "buy", "USDT-BTC", "closed")

    assert cache.get("1").state == OrderState.CLOSED
    assert len(cache) == 1


def test_mark_known_and_unknown():
    cache = OrderCache()
    cache.update("1", "sell", "BTC-ETH", OrderState.OPEN)

    marked = cache.mark("1", OrderState.CANCELLED)

    assert marked == CachedOrder("sell", "BTC-ETH", OrderState.CANCELLED)
    assert cache.get("1").state == OrderState.CANCELLED
    assert cache.mark("unknown", OrderState.CANCELLED) is None
    assert "unknown" not in cache


def test_lru_eviction():
    cache = OrderCache(max_entries=2)
    cache.update("1", "buy", "USDT-BTC", OrderState.OPEN)
    cache.update("2", "buy", "USDT-BTC", OrderState.OPEN)

    # touching "1" makes "2" the least recently used entry
    cache.get("1")
    cache.update("3", "buy", "USDT-BTC", OrderState.OPEN)

    assert "1" in cache
    assert "2" not in cache
    assert "3" in cache
    assert len(cache) == 2


def test_pop():
    cache = OrderCache()
    cache.update("1", "buy", "USDT-BTC", OrderState.OPEN)

    assert cache.pop("1").pair == "USDT-BTC"
    assert cache.pop("1") is None


def test_entries_are_frozen():
    order = CachedOrder("buy", "USDT-BTC", OrderState.OPEN)

    with pytest.raises(AttributeError):
        order.state = OrderState.CLOSED


def test_invalid_size():
    with pytest.raises(ValueError):
        OrderCache(max_entries=0)
