"""Tests for ledger change math (pure, no database)"""
from decimal import Decimal

import pytest

from family_ledger.domain.asset_change import (
    compute_change,
    profit_loss_rate,
    AssetValidationError,
    ASSET_STATUS_DISPOSED,
)


class TestIncreases:
    def test_buy_adds_amount(self):
        values = compute_change("buy", Decimal("100000"), amount=Decimal("20000"))
        assert values.amount == Decimal("20000.00")
        assert values.before_value == Decimal("100000.00")
        assert values.after_value == Decimal("120000.00")
        assert values.profit_loss is None

    def test_transfer_in_adds_amount(self):
        values = compute_change("transfer_in", Decimal("10"), amount="5.5")
        assert values.after_value == Decimal("15.50")

    @pytest.mark.parametrize("change_type", ["buy", "transfer_in", "sell", "transfer_out"])
    def test_amount_must_be_positive(self, change_type):
        with pytest.raises(AssetValidationError, match="greater than zero"):
            compute_change(change_type, Decimal("100"), amount=Decimal("0"))


class TestDecreases:
    def test_sell_keeps_zero_profit(self):
        values = compute_change("sell", Decimal("1000"), amount=Decimal("400"))
        assert values.after_value == Decimal("600.00")
        assert values.profit_loss == Decimal("0")
        assert values.profit_loss_rate is None

    def test_sell_whole_value_is_allowed(self):
        values = compute_change("sell", Decimal("1000"), amount=Decimal("1000"))
        assert values.after_value == Decimal("0.00")

    def test_sell_below_zero_fails(self):
        with pytest.raises(AssetValidationError, match="exceeds"):
            compute_change("sell", Decimal("1000"), amount=Decimal("1000.01"))

    def test_transfer_out_below_zero_fails(self):
        with pytest.raises(AssetValidationError):
            compute_change("transfer_out", Decimal("50000"), amount=Decimal("60000"))

    def test_depreciation_is_a_loss(self):
        values = compute_change("depreciation", Decimal("200000"), amount=Decimal("20000"))
        assert values.after_value == Decimal("180000.00")
        assert values.profit_loss == Decimal("-20000.00")
        assert values.profit_loss_rate == Decimal("-10.00")

    def test_depreciation_below_zero_fails(self):
        with pytest.raises(AssetValidationError):
            compute_change("depreciation", Decimal("100"), amount=Decimal("101"))


class TestValuation:
    def test_valuation_adjust_gain(self):
        values = compute_change("valuation_adjust", Decimal("100000"), new_value=Decimal("130000"))
        assert values.amount == Decimal("30000.00")
        assert values.after_value == Decimal("130000.00")
        assert values.profit_loss == Decimal("30000.00")
        assert values.profit_loss_rate == Decimal("30.00")

    def test_valuation_adjust_loss(self):
        values = compute_change("valuation_adjust", Decimal("80"), new_value=Decimal("60"))
        assert values.amount == Decimal("-20.00")
        assert values.profit_loss_rate == Decimal("-25.00")

    def test_valuation_adjust_requires_new_value(self):
        with pytest.raises(AssetValidationError, match="required"):
            compute_change("valuation_adjust", Decimal("80"))

    def test_valuation_adjust_rejects_negative_target(self):
        with pytest.raises(AssetValidationError):
            compute_change("valuation_adjust", Decimal("80"), new_value=Decimal("-1"))

    def test_rate_is_zero_from_zero_base(self):
        values = compute_change("valuation_adjust", Decimal("0"), new_value=Decimal("500"))
        assert values.profit_loss_rate == Decimal("0.00")


class TestDispose:
    def test_dispose_zeroes_value_and_records_proceeds(self):
        values = compute_change("dispose", Decimal("50000"), new_value=Decimal("45000"))
        assert values.amount == Decimal("45000.00")
        assert values.after_value == Decimal("0.00")
        assert values.profit_loss == Decimal("-5000.00")
        assert values.profit_loss_rate == Decimal("-10.00")
        assert values.new_status == ASSET_STATUS_DISPOSED

    def test_dispose_rejects_negative_proceeds(self):
        with pytest.raises(AssetValidationError):
            compute_change("dispose", Decimal("100"), new_value=Decimal("-5"))


def test_unknown_change_type_fails():
    with pytest.raises(AssetValidationError, match="Unknown change type"):
        compute_change("gift", Decimal("100"), amount=Decimal("1"))


def test_profit_loss_rate_rounds_half_up():
    assert profit_loss_rate(Decimal("1"), Decimal("3")) == Decimal("33.33")
    assert profit_loss_rate(Decimal("2"), Decimal("3")) == Decimal("66.67")
