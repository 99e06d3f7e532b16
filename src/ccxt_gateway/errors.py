"""
Domain error taxonomy for connector failures.

Every failure raised by the connector (ccxt) is wrapped exactly once into a
DomainError carrying:
- kind: the low-level error's class name, captured verbatim (e.g. "RequestTimeout")
- message: the original message (exchange wording preserved)
- request / response / parsed_body: HTTP context captured during the call
- original: the low-level exception itself

Callers branch on the predicates (is_network_error, is_timeout_error,
is_ddos_protection_error) or on the derived ErrorCategory. Nothing in this
module retries.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

# Maximum number of response body characters kept in log records
LOG_BODY_MAX_LENGTH = 256


class ErrorCategory(str, Enum):
    """Stable semantic categories callers can branch on."""

    TRANSPORT_FAILURE = "transport_failure"
    TIMEOUT = "timeout"
    RATE_LIMITED = "rate_limited"
    NONCE_ERROR = "nonce_error"
    EXCHANGE_REJECTION = "exchange_rejection"
    INVALID_ORDER_PARAMETERS = "invalid_order_parameters"
    ORDER_NOT_FOUND = "order_not_found"
    PARSE_FAILURE = "parse_failure"


NETWORK_ERROR_KINDS = frozenset(
    {"ExchangeNotAvailable", "DDoSProtection", "InvalidNonce", "RequestTimeout"}
)

RETRYABLE_CATEGORIES = frozenset(
    {
        ErrorCategory.TRANSPORT_FAILURE,
        ErrorCategory.TIMEOUT,
        ErrorCategory.RATE_LIMITED,
        ErrorCategory.NONCE_ERROR,
    }
)

# Class names (ccxt hierarchy, builtins, facade kinds) -> category.
# Looked up along the low-level error's MRO, most specific first.
CATEGORY_BY_KIND: dict[str, ErrorCategory] = {
    # ccxt.NetworkError branch
    "RequestTimeout": ErrorCategory.TIMEOUT,
    "DDoSProtection": ErrorCategory.RATE_LIMITED,
    "RateLimitExceeded": ErrorCategory.RATE_LIMITED,
    "InvalidNonce": ErrorCategory.NONCE_ERROR,
    "ExchangeNotAvailable": ErrorCategory.TRANSPORT_FAILURE,
    "NetworkError": ErrorCategory.TRANSPORT_FAILURE,
    # ccxt.ExchangeError branch
    "OrderNotFound": ErrorCategory.ORDER_NOT_FOUND,
    "InvalidOrder": ErrorCategory.INVALID_ORDER_PARAMETERS,
    "BadResponse": ErrorCategory.PARSE_FAILURE,
    "NullResponse": ErrorCategory.PARSE_FAILURE,
    "ExchangeError": ErrorCategory.EXCHANGE_REJECTION,
    # Kinds assigned by the exchange facade error rules
    "InvalidQuantity": ErrorCategory.INVALID_ORDER_PARAMETERS,
    "InvalidRate": ErrorCategory.INVALID_ORDER_PARAMETERS,
    "InvalidPrice": ErrorCategory.INVALID_ORDER_PARAMETERS,
    "OrderNotOpen": ErrorCategory.ORDER_NOT_FOUND,
    # Builtins leaking from transports / decoders
    "JSONDecodeError": ErrorCategory.PARSE_FAILURE,
    "TimeoutError": ErrorCategory.TIMEOUT,
    "ConnectionError": ErrorCategory.TRANSPORT_FAILURE,
}


def _category_for(kind: str, original: BaseException | None) -> ErrorCategory:
    names = [kind]
    if original is not None:
        names.extend(cls.__name__ for cls in type(original).__mro__)
    for name in names:
        category = CATEGORY_BY_KIND.get(name)
        if category is not None:
            return category
    return ErrorCategory.EXCHANGE_REJECTION


class DomainError(Exception):
    """Structured, classified failure produced in place of a raw connector exception.

    Attributes:
        kind: Low-level error class name (or a facade kind after reclassification)
        message: Original error message
        request: {"method": str, "url": str} when captured
        response: {"statusCode": int, "statusMessage": str, "body": str} when captured
        parsed_body: Parsed JSON body of the failed response when captured
        original: The wrapped low-level exception (None for synthetic errors)
    """

    def __init__(
        self,
        kind: str,
        message: str,
        request: dict[str, Any] | None = None,
        response: dict[str, Any] | None = None,
        parsed_body: Any = None,
        original: BaseException | None = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.request = request
        self.response = response
        self.parsed_body = parsed_body
        self.original = original

    @property
    def category(self) -> ErrorCategory:
        """Semantic category derived from the kind and the original's class hierarchy."""
        return _category_for(self.kind, self.original)

    @property
    def retryable(self) -> bool:
        """Whether a caller may safely retry (this layer never does)."""
        return self.category in RETRYABLE_CATEGORIES

    def reclassify(self, kind: str) -> DomainError:
        """Return a copy carrying another kind but the same context."""
        return DomainError(
            kind,
            self.message,
            request=self.request,
            response=self.response,
            parsed_body=self.parsed_body,
            original=self.original,
        )

    def to_hash(self) -> dict[str, Any]:
        """Serializable view. Never includes the original exception or its stack."""
        return {
            "kind": self.kind,
            "message": self.message,
            "request": self.request,
            "response": self.response,
            "parsedBody": self.parsed_body,
        }

    def to_dict(self) -> dict[str, Any]:
        """Alias of to_hash()."""
        return self.to_hash()

    def response_summary(self, max_body: int = LOG_BODY_MAX_LENGTH) -> dict[str, Any]:
        """Status code, status message and truncated body only (safe for logs)."""
        if not self.response:
            return {}
        summary = {
            "status_code": self.response.get("statusCode"),
            "status_message": self.response.get("statusMessage"),
        }
        body = self.response.get("body")
        if body is not None and max_body > 0:
            body = str(body)
            summary["body"] = body if len(body) <= max_body else body[:max_body] + "..."
        return summary

    def __str__(self) -> str:
        return f"{self.kind}: {self.message}"

    def __repr__(self) -> str:
        return f"DomainError(kind={self.kind!r}, message={self.message!r})"


class UnsupportedKlinesInterval(ValueError):
    """Raised for a kline interval the exchange (or the gateway) does not support."""

    def __init__(self, interval: str, supported: list[str] | None = None):
        self.interval = interval
        self.supported = supported
        message = f"Unsupported klines interval: {interval}"
        if supported:
            message += f" (supported: {', '.join(supported)})"
        super().__init__(message)


def _message_of(error: Any) -> str:
    if isinstance(error, BaseException):
        if error.args and isinstance(error.args[0], str):
            return error.args[0]
        return str(error)
    if isinstance(error, str):
        return error
    return repr(error)


def wrap(
    error: Any,
    request: dict[str, Any] | None = None,
    response: dict[str, Any] | None = None,
    parsed_body: Any = None,
) -> DomainError:
    """Wrap a connector failure into a DomainError.

    Idempotent: a DomainError is returned unchanged.

    Args:
        error: Whatever the connector raised
        request: Captured request context
        response: Captured transport response
        parsed_body: Parsed response body

    Returns:
        DomainError with kind set to the error's class name
    """
    if isinstance(error, DomainError):
        return error

    original = error if isinstance(error, BaseException) else None
    return DomainError(
        type(error).__name__,
        _message_of(error),
        request=request,
        response=response,
        parsed_body=parsed_body,
        original=original,
    )


def is_network_error(error: Any) -> bool:
    """True iff the wrapped low-level error is a network-level failure."""
    if not isinstance(error, DomainError) or error.original is None:
        return False
    return error.kind in NETWORK_ERROR_KINDS


def is_timeout_error(error: Any) -> bool:
    """True iff the wrapped low-level error is a request timeout."""
    if not isinstance(error, DomainError) or error.original is None:
        return False
    return error.kind == "RequestTimeout"


def is_ddos_protection_error(error: Any) -> bool:
    """True iff the wrapped low-level error is an exchange DDoS protection."""
    if not isinstance(error, DomainError) or error.original is None:
        return False
    return error.kind == "DDoSProtection"


def log_domain_error(logger: Any, error: DomainError, exchange_id: str, method: str) -> None:
    """Log a domain error without credentials or oversized payloads.

    Only kind, message, status code, status message and a truncated body
    are emitted.
    """
    event = "network_error" if is_network_error(error) else "connector_error"
    logger.error(
        event,
        exchange=exchange_id,
        method=method,
        kind=error.kind,
        category=error.category.value,
        reason=error.message,
        **error.response_summary(),
    )


__all__ = [
    "CATEGORY_BY_KIND",
    "DomainError",
    "ErrorCategory",
    "NETWORK_ERROR_KINDS",
    "RETRYABLE_CATEGORIES",
    "UnsupportedKlinesInterval",
    "is_ddos_protection_error",
    "is_network_error",
    "is_timeout_error",
    "log_domain_error",
    "wrap",
]
