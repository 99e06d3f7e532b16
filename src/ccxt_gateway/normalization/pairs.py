"""
Pair notation conversion.

Connector notation is ``BASE/QUOTE`` (e.g. ``BTC/USDT``); canonical notation
is ``QUOTE-BASE`` (e.g. ``USDT-BTC``). Conversion is a naive split and swap
with no validation: pair strings are connector controlled, and malformed
input raises IndexError.
"""


def to_canonical_pair(symbol: str) -> str:
    """``BTC/USDT`` -> ``USDT-BTC``."""
    parts = symbol.split("/")
    return f"{parts[1]}-{parts[0]}"


def to_connector_pair(pair: str) -> str:
    """``USDT-BTC`` -> ``BTC/USDT``."""
    parts = pair.split("-")
    return f"{parts[1]}/{parts[0]}"


def split_canonical_pair(pair: str) -> tuple[str, str]:
    """Return ``(base_currency, currency)`` of a canonical pair."""
    parts = pair.split("-")
    return parts[0], parts[1]
