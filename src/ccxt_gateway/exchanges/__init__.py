"""Exchange facade layer: profiles, order cache, error rules and factory."""

from ccxt_gateway.exchanges.error_rules import (
    BINANCE_ERROR_RULES,
    CANCEL_ORDER,
    CREATE_ORDER,
    KUCOIN_ERROR_RULES,
    ErrorRule,
    ErrorRuleTable,
)
from ccxt_gateway.exchanges.facade import (
    PROFILES,
    ExchangeFacade,
    ExchangeProfile,
    history_windows,
    profile_for,
)
from ccxt_gateway.exchanges.factory import create_exchange
from ccxt_gateway.exchanges.order_cache import CachedOrder, OrderCache

__all__ = [
    "BINANCE_ERROR_RULES",
    "CANCEL_ORDER",
    "CREATE_ORDER",
    "CachedOrder",
    "ErrorRule",
    "ErrorRuleTable",
    "ExchangeFacade",
    "ExchangeProfile",
    "KUCOIN_ERROR_RULES",
    "OrderCache",
    "PROFILES",
    "create_exchange",
    "history_windows",
    "profile_for",
]
