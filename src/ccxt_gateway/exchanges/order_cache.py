"""
Order cache of the exchange facade.

Keyed store ``{order number -> CachedOrder}`` remembering side, pair and
state of orders seen through the facade, so that later calls lacking the
pair (cancel, get) and history merging can be reconciled.

Entries are plain frozen values. Every update is a single dict assignment
on the event loop thread (last write wins); the store is bounded with LRU
eviction.
"""

from collections import OrderedDict
from dataclasses import dataclass

from ccxt_gateway.shared.models import OrderState

DEFAULT_MAX_ENTRIES = 1000


@dataclass(frozen=True)
class CachedOrder:
    order_type: str | None
    pair: str
    state: OrderState


class OrderCache:
    """Bounded LRU store of CachedOrder values."""

    def __init__(self, max_entries: int = DEFAULT_MAX_ENTRIES):
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self.max_entries = max_entries
        self._orders: OrderedDict[str, CachedOrder] = OrderedDict()

    def get(self, order_number: str) -> CachedOrder | None:
        order = self._orders.get(order_number)
        if order is not None:
            self._orders.move_to_end(order_number)
        return order

    def put(self, order_number: str, order: CachedOrder) -> None:
        self._orders[order_number] = order
        self._orders.move_to_end(order_number)
        while len(self._orders) > self.max_entries:
            self._orders.popitem(last=False)

    def update(
        self,
        order_number: str,
        order_type: str | None,
        pair: str,
        state: OrderState,
    ) -> CachedOrder:
        """Store a fresh entry for ``order_number`` (last write wins)."""
        order = CachedOrder(order_type=order_type, pair=pair, state=OrderState(state))
        self.put(order_number, order)
        return order

    def mark(self, order_number: str, state: OrderState) -> CachedOrder | None:
        """Change the state of a known order; unknown orders are ignored."""
        order = self._orders.get(order_number)
        if order is None:
            return None
        updated = CachedOrder(order.order_type, order.pair, OrderState(state))
        self.put(order_number, updated)
        return updated

    def pop(self, order_number: str) -> CachedOrder | None:
        return self._orders.pop(order_number, None)

    def __contains__(self, order_number: str) -> bool:
        return order_number in self._orders

    def __len__(self) -> int:
        return len(self._orders)
