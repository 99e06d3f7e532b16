"""
Observability for the gateway: structured logs describing connector calls,
normalization warnings and error classification. Every component obtains
its logger from the layer-specific factories below so that log records carry
the same app/layer/component/exchange context and can be filtered uniformly.
"""

from .logging import (
    get_adapter_logger,
    get_exchange_logger,
    # Layer-specific logger factories
    get_infrastructure_logger,
    # Base logger factory
    get_logger,
    get_normalization_logger,
    # Setup
    setup_logging,
)

__all__ = [
    # Setup
    "setup_logging",
    # Base
    "get_logger",
    # Layer-specific
    "get_infrastructure_logger",
    "get_normalization_logger",
    "get_adapter_logger",
    "get_exchange_logger",
]
