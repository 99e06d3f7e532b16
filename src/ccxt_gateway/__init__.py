"""
Normalization adapter layer of the ccxt gateway.
Turns heterogeneous ccxt exchange payloads into one canonical model.

Modules:
- errors: Domain error taxonomy wrapping connector failures
- normalization: Pair notation, precision reconciliation, formatters, exchange quirks
- adapters: Connector port, ccxt connector and the default adapter
- exchanges: Exchange facade (order cache, error rules, history windows)
- infrastructure: Logging
- config: Typed configuration loading
"""

__version__ = "1.0.0"
