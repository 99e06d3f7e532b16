"""
Normalization layer: pure functions turning connector payloads into the
canonical model.

- pairs: pair notation conversion
- precision: precision/limits reconciliation
- formatters: one formatter per canonical entity
- quirks: per-exchange override strategies
- diagnostics: sinks receiving non-fatal warnings
"""

from ccxt_gateway.normalization.diagnostics import (
    CollectingDiagnostics,
    DiagnosticsSink,
    NullDiagnostics,
)
from ccxt_gateway.normalization.pairs import to_canonical_pair, to_connector_pair
from ccxt_gateway.normalization.precision import precision_to_step, reconcile
from ccxt_gateway.normalization.quirks import (
    DEFAULT_QUIRKS,
    ExchangeQuirks,
    QuirksRegistry,
    default_registry,
)

__all__ = [
    "CollectingDiagnostics",
    "DEFAULT_QUIRKS",
    "DiagnosticsSink",
    "ExchangeQuirks",
    "NullDiagnostics",
    "QuirksRegistry",
    "default_registry",
    "precision_to_step",
    "reconcile",
    "to_canonical_pair",
    "to_connector_pair",
]
