"""
Adapters between the connector and the canonical model.

- base: ConnectorPort protocol and per-call HTTP capture
- default_adapter: DefaultAdapter and AdapterResult
- ccxt_plugin: ConnectorPort implementation backed by ccxt
"""

from .base import ConnectorPort, ExchangeCapture, capture_exchange, current_capture
from .default_adapter import AdapterResult, DefaultAdapter

__all__ = [
    "AdapterResult",
    "ConnectorPort",
    "DefaultAdapter",
    "ExchangeCapture",
    "capture_exchange",
    "current_capture",
]
