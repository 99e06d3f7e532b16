"""Configuration package for ccxt_gateway."""

from .state import (
    ConfigLoader,
    ExchangeConfig,
    GatewayConfig,
    LoggingConfig,
    ThrottleConfig,
    get_config,
)

__all__ = [
    "ConfigLoader",
    "ExchangeConfig",
    "GatewayConfig",
    "LoggingConfig",
    "ThrottleConfig",
    "get_config",
]
