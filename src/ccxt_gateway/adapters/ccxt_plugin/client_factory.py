"""ccxt client factory.

Creates configured ccxt clients for CcxtConnector from an ExchangeConfig.
"""

from __future__ import annotations

import logging
from typing import Any

import ccxt
import ccxt.async_support as ccxt_async

from ccxt_gateway.config.state import ExchangeConfig

logger = logging.getLogger(__name__)

# Gateway exchange ids whose ccxt class name differs
EXCHANGE_ALIASES = {
    "okex": "okx",
}


def _build_options(config: ExchangeConfig) -> dict[str, Any]:
    options: dict[str, Any] = {
        "apiKey": config.api_key or "",
        "secret": config.api_secret or "",
        "enableRateLimit": config.throttle.enabled,
        "timeout": config.timeout_ms,
    }

    if config.password:
        options["password"] = config.password

    # ccxt expects the delay between two requests in ms
    if config.throttle.rate_limit_ms is not None:
        options["rateLimit"] = config.throttle.rate_limit_ms

    if config.verbose:
        options["verbose"] = True

    if config.options:
        options["options"] = dict(config.options)

    return options


def resolve_ccxt_id(config: ExchangeConfig) -> str:
    """ccxt class name for an exchange configuration."""
    if config.ccxt_id:
        return config.ccxt_id
    return EXCHANGE_ALIASES.get(config.exchange_id, config.exchange_id)


def create_ccxt_client(config: ExchangeConfig):
    """Instantiate a ccxt exchange client with sane defaults.

    Raises:
        ValueError: If ccxt has no class for the exchange
    """
    module = ccxt_async if config.async_client else ccxt
    ccxt_class_name = resolve_ccxt_id(config)
    if not hasattr(module, ccxt_class_name):
        raise ValueError(f"Unsupported exchange for ccxt client: {config.exchange_id}")

    exchange_class = getattr(module, ccxt_class_name)
    client = exchange_class(_build_options(config))
    if config.sandbox:
        client.set_sandbox_mode(True)

    logger.debug(
        "Created ccxt client %s for %s (async=%s, sandbox=%s)",
        ccxt_class_name,
        config.exchange_id,
        config.async_client,
        config.sandbox,
    )
    return client
