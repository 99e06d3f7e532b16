"""Error message reclassification rules."""

import ccxt
import pytest

from ccxt_gateway.errors import DomainError, ErrorCategory, wrap
from ccxt_gateway.exchanges.error_rules import (
    BINANCE_ERROR_RULES,
    CANCEL_ORDER,
    CREATE_ORDER,
    KUCOIN_ERROR_RULES,
    ErrorRule,
    ErrorRuleTable,
    message_of,
)


def kucoin_error(msg, exc_class=ccxt.InvalidOrder):
    return wrap(exc_class(f"kucoin {msg}"), parsed_body={"code": "400100", "msg": msg})


@pytest.fixture
def kucoin_rules():
    return ErrorRuleTable(KUCOIN_ERROR_RULES)


class TestKucoinRules:
    @pytest.mark.parametrize(
        "msg,kind",
        [
            ("The precision of amount 0.0000001 is invalid", "InvalidQuantity"),
            ("Min price 0.0001", "InvalidRate"),
            ("Max price 10000", "InvalidRate"),
            ("The precision of price 0.123456789 is invalid", "InvalidRate"),
            ("Min amount each order 0.1", "InvalidPrice"),
        ],
    )
    def test_create_order(self, kucoin_rules, msg, kind):
        error = kucoin_rules.reclassify(kucoin_error(msg), CREATE_ORDER)

        assert error.kind == kind
        assert error.category == ErrorCategory.INVALID_ORDER_PARAMETERS

    @pytest.mark.parametrize(
        "msg,kind",
        [
            ("order not exist.", "OrderNotFound"),
            ("order_not_exist_or_not_allow_to_cancel", "OrderNotOpen"),
        ],
    )
    def test_cancel_order(self, kucoin_rules, msg, kind):
        error = kucoin_rules.reclassify(kucoin_error(msg, ccxt.ExchangeError), CANCEL_ORDER)

        assert error.kind == kind
        assert error.category == ErrorCategory.ORDER_NOT_FOUND

    def test_rules_limited_to_their_operation(self, kucoin_rules):
        error = kucoin_error("Min price 0.0001")

        assert kucoin_rules.reclassify(error, CANCEL_ORDER) is error

    def test_no_match_fails_closed(self, kucoin_rules):
        error = kucoin_error("Balance insufficient!", ccxt.InsufficientFunds)

        assert kucoin_rules.reclassify(error, CREATE_ORDER) is error

    def test_case_sensitive(self, kucoin_rules):
        error = kucoin_error("min price 0.0001")

        assert kucoin_rules.reclassify(error, CREATE_ORDER) is error

    def test_original_context_kept(self, kucoin_rules):
        error = kucoin_error("Min price 0.0001")

        reclassified = kucoin_rules.reclassify(error, CREATE_ORDER)

        assert reclassified.original is error.original
        assert reclassified.parsed_body == error.parsed_body
        assert reclassified.message == error.message


def test_binance_rules():
    rules = ErrorRuleTable(BINANCE_ERROR_RULES)
    error = wrap(
        ccxt.InvalidOrder('binance {"code":-1013,"msg":"Filter failure: LOT_SIZE"}'),
        parsed_body={"code": -1013, "msg": "Filter failure: LOT_SIZE"},
    )

    assert rules.reclassify(error, CREATE_ORDER).kind == "InvalidQuantity"


def test_message_from_error_without_body():
    rules = ErrorRuleTable(BINANCE_ERROR_RULES)
    error = wrap(ccxt.OrderNotFound('binance {"code":-2011,"msg":"Unknown order sent."}'))

    assert message_of(error).startswith("binance")
    assert rules.reclassify(error, CANCEL_ORDER).kind == "OrderNotFound"


@pytest.mark.parametrize("key", ["msg", "message", "error"])
def test_message_keys(key):
    error = DomainError("ExchangeError", "generic", parsed_body={key: "specific"})

    assert message_of(error) == "specific"


def test_first_match_wins_and_registration():
    table = ErrorRuleTable()
    table.register(ErrorRule("price", "InvalidRate"))
    table.register(ErrorRule("Min price", "InvalidPrice"))
    error = DomainError("InvalidOrder", "Min price 1", original=ValueError("x"))

    assert len(table) == 2
    assert table.reclassify(error, CREATE_ORDER).kind == "InvalidRate"
    # an empty operation set applies everywhere
    assert table.reclassify(error, CANCEL_ORDER).kind == "InvalidRate"


def test_non_domain_errors_untouched(kucoin_rules):
    error = RuntimeError("Min price")

    assert kucoin_rules.reclassify(error, CREATE_ORDER) is error
