"""Exchange factory: config -> ccxt client -> connector -> adapter -> facade."""

from typing import Any

from ccxt_gateway.adapters.ccxt_plugin import CcxtConnector, create_ccxt_client
from ccxt_gateway.adapters.default_adapter import DefaultAdapter
from ccxt_gateway.config.state import ExchangeConfig, GatewayConfig
from ccxt_gateway.exchanges.facade import ExchangeFacade, profile_for
from ccxt_gateway.exchanges.order_cache import OrderCache
from ccxt_gateway.infrastructure.observability import get_infrastructure_logger
from ccxt_gateway.normalization.quirks import QuirksRegistry, default_registry

logger = get_infrastructure_logger("exchange-factory")


def _exchange_config(
    exchange_id: str, config: ExchangeConfig | GatewayConfig | None
) -> ExchangeConfig:
    if config is None:
        return ExchangeConfig(exchange_id=exchange_id)
    if isinstance(config, GatewayConfig):
        return config.exchange(exchange_id)
    return config


def create_exchange(
    exchange_id: str,
    config: ExchangeConfig | GatewayConfig | None = None,
    quirks_registry: QuirksRegistry | None = None,
    client: Any = None,
    cache: OrderCache | None = None,
) -> ExchangeFacade:
    """
    Build a ready-to-use facade for one exchange.

    Args:
        exchange_id: Gateway exchange id (``kucoin``, ``okex``, ``binance``...)
        config: Exchange or gateway configuration (defaults when omitted)
        quirks_registry: Quirks lookup (shipped registry when omitted)
        client: Pre-built ccxt client, skips client creation
        cache: Order cache to share between facades

    Returns:
        ExchangeFacade wired to a CcxtConnector

    Raises:
        ValueError: If the exchange is disabled or unknown to ccxt
    """
    exchange_id = exchange_id.lower()
    exchange_config = _exchange_config(exchange_id, config)
    if not exchange_config.enabled:
        raise ValueError(f"Exchange is disabled: {exchange_id}")

    if client is None:
        client = create_ccxt_client(exchange_config)

    registry = quirks_registry or default_registry()
    connector = CcxtConnector(client, exchange_id=exchange_id)
    adapter = DefaultAdapter(connector, quirks=registry.get(exchange_id))
    facade = ExchangeFacade(
        exchange_id,
        adapter,
        profile=profile_for(exchange_id, exchange_config),
        cache=cache,
    )

    logger.info(
        "exchange_created",
        exchange=exchange_id,
        ccxt_id=exchange_config.connector_id,
        authenticated=exchange_config.has_credentials,
    )
    return facade
