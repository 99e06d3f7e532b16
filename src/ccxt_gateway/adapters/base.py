"""
Connector port and per-call HTTP capture.

The default adapter talks to the connector only through ConnectorPort, so
tests can script a fake connector and any ccxt-like library can be plugged
in. Each connector call runs inside ``capture_exchange()``: the connector
records the last HTTP request/response it saw into the current
ExchangeCapture, which the adapter hands to ``errors.wrap`` on failure.

The capture lives in a ContextVar, so concurrent calls never see each
other's context.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from ccxt_gateway.shared.models import PrecisionMode

# Bodies kept in the capture (the full body is never needed for diagnostics)
CAPTURE_BODY_MAX_LENGTH = 4096


@dataclass
class ExchangeCapture:
    """HTTP context of the last exchange round trip of a connector call."""

    request: dict[str, Any] | None = None
    response: dict[str, Any] | None = None
    parsed_body: Any = None

    def record_request(self, method: str | None, url: str | None) -> None:
        self.request = {"method": method, "url": url}
        self.response = None
        self.parsed_body = None

    def record_response(
        self,
        status_code: int | None,
        status_message: str | None,
        body: Any,
        parsed_body: Any = None,
    ) -> None:
        if isinstance(body, bytes):
            body = body.decode("utf-8", errors="replace")
        if isinstance(body, str) and len(body) > CAPTURE_BODY_MAX_LENGTH:
            body = body[:CAPTURE_BODY_MAX_LENGTH]
        self.response = {
            "statusCode": status_code,
            "statusMessage": status_message,
            "body": body,
        }
        self.parsed_body = parsed_body


_current_capture: ContextVar[ExchangeCapture | None] = ContextVar(
    "exchange_capture", default=None
)


@contextmanager
def capture_exchange() -> Iterator[ExchangeCapture]:
    """Open a fresh capture for the duration of one connector call."""
    capture = ExchangeCapture()
    token = _current_capture.set(capture)
    try:
        yield capture
    finally:
        _current_capture.reset(token)


def current_capture() -> ExchangeCapture | None:
    """Capture of the connector call running in this context, if any."""
    return _current_capture.get()


@runtime_checkable
class ConnectorPort(Protocol):
    """Asynchronous single-result operations of a multi-exchange connector.

    Argument and payload shapes are the connector's own (ccxt unified API):
    symbols ``BASE/QUOTE``, timestamps in ms.
    """

    exchange_id: str

    @property
    def supports_currency_precision(self) -> bool:
        """Whether ``currency_precision()`` is meaningful for this exchange."""
        ...

    @property
    def precision_mode(self) -> PrecisionMode: ...

    def currency_precision(self) -> dict[str, Any]:
        """``{currency code: precision}`` from the last market load."""
        ...

    def capture_exchange(self) -> Any:
        """Context manager yielding the ExchangeCapture of one call."""
        ...

    async def load_markets(self, reload: bool = True) -> dict[str, Any]: ...

    async def fetch_tickers(
        self, symbols: list[str] | None = None, params: dict | None = None
    ) -> dict[str, Any]: ...

    async def fetch_ticker(self, symbol: str, params: dict | None = None) -> dict[str, Any]: ...

    async def fetch_order_book(
        self, symbol: str, limit: int | None = None, params: dict | None = None
    ) -> dict[str, Any]: ...

    async def fetch_trades(
        self,
        symbol: str,
        since: int | None = None,
        limit: int | None = None,
        params: dict | None = None,
    ) -> list[dict[str, Any]]: ...

    async def fetch_ohlcv(
        self,
        symbol: str,
        timeframe: str,
        since: int | None = None,
        limit: int | None = None,
        params: dict | None = None,
    ) -> list[list[Any]]: ...

    async def fetch_open_orders(
        self,
        symbol: str | None = None,
        since: int | None = None,
        limit: int | None = None,
        params: dict | None = None,
    ) -> list[dict[str, Any]]: ...

    async def fetch_closed_orders(
        self,
        symbol: str | None = None,
        since: int | None = None,
        limit: int | None = None,
        params: dict | None = None,
    ) -> list[dict[str, Any]]: ...

    async def fetch_order(
        self, order_id: str, symbol: str | None = None, params: dict | None = None
    ) -> dict[str, Any]: ...

    async def create_order(
        self,
        symbol: str,
        order_type: str,
        side: str,
        amount: float,
        price: float | None = None,
        params: dict | None = None,
    ) -> dict[str, Any]: ...

    async def cancel_order(
        self, order_id: str, symbol: str | None = None, params: dict | None = None
    ) -> Any: ...

    async def fetch_balance(self, params: dict | None = None) -> dict[str, Any]: ...

    async def close(self) -> None: ...
