"""Error message reclassification rules.

Exchanges report many order failures through one generic ccxt class
(``InvalidOrder``, ``ExchangeError``) and only the message tells them apart.
An ErrorRuleTable maps known message substrings to facade kinds:

    ErrorRule("The precision of amount", "InvalidQuantity", {"create_order"})

Rules are evaluated in registration order, case-sensitively, against the
parsed response body's message (``msg``, ``message`` or ``error`` key) or,
without a parsed body, the error message. First match wins. Without a
match the error is returned unchanged: the table fails closed.

Adding an exchange requires registration, not code modification.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from ccxt_gateway.errors import DomainError

CREATE_ORDER = "create_order"
CANCEL_ORDER = "cancel_order"

# Keys holding the human readable message in exchange error bodies
MESSAGE_KEYS = ("msg", "message", "error")


@dataclass(frozen=True)
class ErrorRule:
    """Substring -> kind, limited to some facade operations (all when empty)."""

    substring: str
    kind: str
    operations: frozenset[str] = field(default_factory=frozenset)

    def __post_init__(self):
        object.__setattr__(self, "operations", frozenset(self.operations))

    def applies_to(self, operation: str) -> bool:
        return not self.operations or operation in self.operations

    def matches(self, message: str) -> bool:
        return self.substring in message


def message_of(error: DomainError) -> str:
    """Exchange message used for matching."""
    body = error.parsed_body
    if isinstance(body, dict):
        for key in MESSAGE_KEYS:
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    return error.message or ""


class ErrorRuleTable:
    """Ordered rules; first match wins, no match leaves the error unchanged."""

    def __init__(self, rules: Iterable[ErrorRule] = ()):
        self._rules: list[ErrorRule] = list(rules)

    def register(self, rule: ErrorRule) -> None:
        """Append a rule (tried after the existing ones)."""
        self._rules.append(rule)

    def match(self, error: DomainError, operation: str) -> ErrorRule | None:
        message = message_of(error)
        for rule in self._rules:
            if rule.applies_to(operation) and rule.matches(message):
                return rule
        return None

    def reclassify(self, error: Any, operation: str) -> Any:
        """Return a reclassified copy of ``error``, or ``error`` itself.

        Non-domain errors and errors no rule matches are returned unchanged.
        """
        if not isinstance(error, DomainError):
            return error
        rule = self.match(error, operation)
        if rule is None:
            return error
        return error.reclassify(rule.kind)

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self):
        return iter(self._rules)


KUCOIN_ERROR_RULES = (
    ErrorRule("The precision of amount", "InvalidQuantity", {CREATE_ORDER}),
    ErrorRule("Min price", "InvalidRate", {CREATE_ORDER}),
    ErrorRule("Max price", "InvalidRate", {CREATE_ORDER}),
    ErrorRule("The precision of price", "InvalidRate", {CREATE_ORDER}),
    ErrorRule("Min amount each order", "InvalidPrice", {CREATE_ORDER}),
    ErrorRule("order not exist", "OrderNotFound", {CANCEL_ORDER}),
    ErrorRule("order_not_exist_or_not_allow_to_cancel", "OrderNotOpen", {CANCEL_ORDER}),
)

BINANCE_ERROR_RULES = (
    ErrorRule("Filter failure: LOT_SIZE", "InvalidQuantity", {CREATE_ORDER}),
    ErrorRule("Filter failure: PRICE_FILTER", "InvalidRate", {CREATE_ORDER}),
    ErrorRule("Filter failure: MIN_NOTIONAL", "InvalidPrice", {CREATE_ORDER}),
    ErrorRule("Filter failure: NOTIONAL", "InvalidPrice", {CREATE_ORDER}),
    ErrorRule("Unknown order sent", "OrderNotFound", {CANCEL_ORDER}),
)
