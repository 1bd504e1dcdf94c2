"""Tests for money rounding and currency conversion"""
from decimal import Decimal

import pytest

from family_ledger.domain.errors import DomainValidationError
from family_ledger.utils.money import quantize_money, convert_currency, to_base, is_supported_currency
from family_ledger.utils.validation import validate_and_normalize_amount, validate_currency_code


def test_quantize_rounds_half_up():
    assert quantize_money("1.005") == Decimal("1.01")
    assert quantize_money(2) == Decimal("2.00")


def test_quantize_rejects_garbage():
    with pytest.raises(DomainValidationError):
        quantize_money("abc")


@pytest.mark.parametrize("value", ["NaN", "Infinity", "-inf", "sNaN"])
def test_quantize_rejects_non_finite(value):
    with pytest.raises(DomainValidationError):
        quantize_money(value)


def test_to_base_uses_rate_table():
    assert to_base(Decimal("100"), "USD", "CNY") == Decimal("725.00")
    assert to_base(Decimal("100"), "CNY", "CNY") == Decimal("100.00")


def test_convert_between_foreign_currencies():
    # 1 GBP = 9.15 CNY, 1 USD = 7.25 CNY
    assert convert_currency(Decimal("725"), "GBP", "USD") == Decimal("915.00")


def test_unknown_currency_fails():
    assert not is_supported_currency("XYZ")
    with pytest.raises(DomainValidationError, match="Unsupported currency"):
        to_base(Decimal("1"), "XYZ", "CNY")


class TestAmountValidation:
    def test_comma_is_decimal_separator(self):
        assert validate_and_normalize_amount("100,50") == "100.50"

    def test_too_many_decimals_fail(self):
        with pytest.raises(ValueError, match="decimal places"):
            validate_and_normalize_amount("100.505")

    def test_negative_needs_opt_in(self):
        with pytest.raises(ValueError, match="negative"):
            validate_and_normalize_amount("-5")
        assert validate_and_normalize_amount("-5", allow_negative=True) == "-5"

    @pytest.mark.parametrize("value", ["", "abc", "1.2.3", "1e5"])
    def test_garbage_fails(self, value):
        with pytest.raises(ValueError, match="Invalid amount"):
            validate_and_normalize_amount(value)

    def test_currency_code_is_upper_cased(self):
        assert validate_currency_code("usd") == "USD"

    def test_unknown_currency_code_fails(self):
        with pytest.raises(ValueError):
            validate_currency_code("BTC")
