"""
Precision/limits reconciliation.

Computes the authoritative {min, max, step, precision} for rate and quantity
and {min, max} for price (rate * quantity) of a pair:

1. hard defaults (precision 8, step 1e-8, min 1e-8, no max)
2. pair-level precision and limits from the connector market
3. optional currency-level precision, which can only tighten a step
4. price floor: price.min >= round(rate.min * quantity.min, 8) and >= 1e-8

Canonical naming: the pair ``USDT-BTC`` has base currency ``USDT`` (the
connector's quote) and currency ``BTC`` (the connector's base). Rate and price
are expressed in the base currency, quantity in the currency.
"""

from collections.abc import Mapping
from decimal import Decimal, InvalidOperation
from typing import Any

from ccxt_gateway.normalization.decimals import MIN_VALUE, multiply8, round8
from ccxt_gateway.normalization.diagnostics import NULL_DIAGNOSTICS, DiagnosticsSink
from ccxt_gateway.shared.models import Limits, PrecisionMode

DEFAULT_PRECISION = 8
DEFAULT_STEP = MIN_VALUE

# precision (number of decimals) -> step
PRECISION_TO_STEP = (
    1,
    0.1,
    0.01,
    0.001,
    0.0001,
    0.00001,
    0.000001,
    0.0000001,
    0.00000001,
)


def _is_integral(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and value.is_integer()


def precision_to_step(
    precision: Any,
    default: float = DEFAULT_STEP,
    diagnostics: DiagnosticsSink | None = None,
) -> float:
    """Convert a digit count in [0, 8] to its step.

    Any other value is reported to ``diagnostics`` and ``default`` (the prior
    step) is returned.
    """
    if _is_integral(precision) and 0 <= precision <= 8:
        return PRECISION_TO_STEP[int(precision)]
    (diagnostics or NULL_DIAGNOSTICS).warning(
        "invalid_precision", precision=precision, kept_step=default
    )
    return default


def tick_to_precision(tick: Any) -> int | None:
    """Digit count of a power-of-ten tick in [1e-8, 1], else None.

    ``0.01`` -> 2, ``1`` -> 0, ``0.05`` -> None.
    """
    if tick is None or isinstance(tick, bool):
        return None
    try:
        value = Decimal(str(tick))
    except InvalidOperation:
        return None
    if not value.is_finite() or value <= 0:
        return None
    exponent = value.adjusted()
    if value != Decimal(1).scaleb(exponent):
        return None
    digits = -exponent
    if 0 <= digits <= 8:
        return digits
    return None


def to_digits(
    value: Any,
    precision_mode: PrecisionMode = PrecisionMode.DECIMAL_PLACES,
    diagnostics: DiagnosticsSink | None = None,
    field: str | None = None,
) -> int | None:
    """Normalize a connector precision value to a digit count in [0, 8].

    Returns None (after reporting to diagnostics) when the value cannot be
    used, so callers keep their prior precision.
    """
    if value is None:
        return None
    mode = PrecisionMode(precision_mode)
    if mode == PrecisionMode.SIGNIFICANT_DIGITS:
        # a significant digit count says nothing about decimal places
        (diagnostics or NULL_DIAGNOSTICS).warning(
            "unsupported_precision_mode", field=field, mode=mode.value, precision=value
        )
        return None
    if mode == PrecisionMode.TICK_SIZE:
        digits = tick_to_precision(value)
        if digits is None:
            (diagnostics or NULL_DIAGNOSTICS).warning(
                "invalid_tick_size", field=field, tick=value
            )
        return digits
    if _is_integral(value) and 0 <= value <= 8:
        return int(value)
    (diagnostics or NULL_DIAGNOSTICS).warning(
        "invalid_precision", field=field, precision=value
    )
    return None


def default_limits() -> dict[str, dict[str, Any]]:
    """Fresh mutable default limits."""
    return {
        "rate": {
            "min": MIN_VALUE,
            "max": None,
            "step": DEFAULT_STEP,
            "precision": DEFAULT_PRECISION,
        },
        "quantity": {
            "min": MIN_VALUE,
            "max": None,
            "step": DEFAULT_STEP,
            "precision": DEFAULT_PRECISION,
        },
        "price": {"min": MIN_VALUE, "max": None},
    }


def _overlay_precision(entry: dict[str, Any], digits: int | None) -> None:
    if digits is None:
        return
    entry["precision"] = digits
    entry["step"] = precision_to_step(digits, entry["step"])


def _overlay_min_max(entry: dict[str, Any], limits: Mapping[str, Any] | None) -> None:
    if not limits:
        return
    if limits.get("min") is not None:
        entry["min"] = limits["min"]
    if limits.get("max") is not None:
        entry["max"] = limits["max"]


def _tighten(entry: dict[str, Any], digits: int | None) -> None:
    """Adopt a finer currency-level precision; never widens the step."""
    if digits is None or digits <= entry["precision"]:
        return
    entry["precision"] = digits
    entry["step"] = precision_to_step(digits, entry["step"])
    if entry["step"] > entry["min"]:
        entry["min"] = entry["step"]


def _raise_min_to_step(entry: dict[str, Any]) -> None:
    if entry["min"] < entry["step"]:
        entry["min"] = entry["step"]


def reconcile(
    market: Mapping[str, Any],
    currency_precision: Mapping[str, Any] | None = None,
    precision_mode: PrecisionMode = PrecisionMode.DECIMAL_PLACES,
    diagnostics: DiagnosticsSink | None = None,
) -> Limits:
    """Reconcile pair-level and currency-level precision into canonical limits.

    Args:
        market: Connector market entry (``precision``, ``limits``, ``base``, ``quote``)
        currency_precision: Optional ``{currency code: precision}`` lookup, only
            supplied when the connector reports currency precision
        precision_mode: How precision values are expressed (digits or ticks)
        diagnostics: Sink receiving warnings for unusable precision values

    Returns:
        Limits for rate, quantity and price
    """
    sink = diagnostics or NULL_DIAGNOSTICS
    limits = default_limits()
    rate, quantity, price = limits["rate"], limits["quantity"], limits["price"]
    symbol = market.get("symbol")

    precision = market.get("precision") or {}
    _overlay_precision(
        rate, to_digits(precision.get("price"), precision_mode, sink, f"{symbol}:price")
    )
    _overlay_precision(
        quantity,
        to_digits(precision.get("amount"), precision_mode, sink, f"{symbol}:amount"),
    )

    market_limits = market.get("limits") or {}
    _overlay_min_max(rate, market_limits.get("price"))
    _overlay_min_max(quantity, market_limits.get("amount"))
    cost = market_limits.get("cost") or {}
    if cost.get("min") is not None:
        # explicit cost minimum fixed to 8 decimals
        price["min"] = max(round8(cost["min"]), MIN_VALUE)
    if cost.get("max") is not None:
        price["max"] = cost["max"]

    if currency_precision is not None:
        base_currency = market.get("quote")
        currency = market.get("base")
        base_digits = to_digits(
            currency_precision.get(base_currency), precision_mode, sink, base_currency
        )
        _tighten(rate, base_digits)
        if base_digits is not None:
            base_step = precision_to_step(base_digits)
            if base_step > price["min"]:
                price["min"] = base_step
        _tighten(
            quantity,
            to_digits(currency_precision.get(currency), precision_mode, sink, currency),
        )

    _raise_min_to_step(rate)
    _raise_min_to_step(quantity)

    price_floor = multiply8(rate["min"], quantity["min"])
    price["min"] = max(price["min"], price_floor, MIN_VALUE)

    return Limits.model_validate(limits)
