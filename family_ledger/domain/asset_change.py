"""
Asset ledger math

Pure functions: given the asset's current value and the requested operation,
compute every field of the AssetChange row that records it. Nothing here
touches the database; the ledger use case persists the result.
"""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP

from family_ledger.domain.errors import DomainValidationError
from family_ledger.utils.money import quantize_money

# Change types
CHANGE_TYPE_BUY = "buy"
CHANGE_TYPE_SELL = "sell"
CHANGE_TYPE_TRANSFER_IN = "transfer_in"
CHANGE_TYPE_TRANSFER_OUT = "transfer_out"
CHANGE_TYPE_VALUATION_ADJUST = "valuation_adjust"
CHANGE_TYPE_DEPRECIATION = "depreciation"
CHANGE_TYPE_DISPOSE = "dispose"

CHANGE_TYPES = (
    CHANGE_TYPE_BUY,
    CHANGE_TYPE_SELL,
    CHANGE_TYPE_TRANSFER_IN,
    CHANGE_TYPE_TRANSFER_OUT,
    CHANGE_TYPE_VALUATION_ADJUST,
    CHANGE_TYPE_DEPRECIATION,
    CHANGE_TYPE_DISPOSE,
)

# Asset statuses
ASSET_STATUS_ACTIVE = "active"
ASSET_STATUS_PENDING = "pending"
ASSET_STATUS_DISPOSED = "disposed"

ASSET_STATUSES = (ASSET_STATUS_ACTIVE, ASSET_STATUS_PENDING, ASSET_STATUS_DISPOSED)


class AssetValidationError(DomainValidationError):
    """Asset operation rejected"""
    pass


@dataclass(frozen=True)
class ChangeValues:
    """Derived fields of one ledger entry"""
    change_type: str
    amount: Decimal
    before_value: Decimal
    after_value: Decimal
    profit_loss: Decimal | None = None
    profit_loss_rate: Decimal | None = None
    new_status: str | None = None

    @property
    def delta(self) -> Decimal:
        return self.after_value - self.before_value


def profit_loss_rate(profit_loss: Decimal, before_value: Decimal) -> Decimal:
    """profit_loss / before * 100, rounded to 2 places; 0 when before <= 0"""
    if before_value <= 0:
        return Decimal("0.00")
    return (profit_loss / before_value * 100).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def _positive(amount, label: str) -> Decimal:
    value = quantize_money(amount)
    if value <= 0:
        raise AssetValidationError(f"{label} amount must be greater than zero")
    return value


def _non_negative(amount, label: str) -> Decimal:
    value = quantize_money(amount)
    if value < 0:
        raise AssetValidationError(f"{label} cannot be negative")
    return value


def compute_change(
    change_type: str,
    before_value: Decimal,
    amount: Decimal | None = None,
    new_value: Decimal | None = None,
) -> ChangeValues:
    """
    Compute the ledger entry for one operation

    Args:
        change_type: one of CHANGE_TYPES
        before_value: asset.current_value at the time of the operation
        amount: moved amount (buy, sell, transfer_in, transfer_out, depreciation)
        new_value: target value (valuation_adjust) or dispose proceeds (dispose)

    Returns:
        ChangeValues with after_value and profit/loss filled per type

    Raises:
        AssetValidationError: bad input, or the result would be negative

    Example:
        >>> compute_change("buy", Decimal("100000"), amount=Decimal("20000")).after_value
        Decimal('120000.00')
    """
    before = quantize_money(before_value)

    if change_type == CHANGE_TYPE_BUY:
        value = _positive(amount, "Buy")
        return ChangeValues(change_type, value, before, before + value)

    if change_type == CHANGE_TYPE_TRANSFER_IN:
        value = _positive(amount, "Transfer-in")
        return ChangeValues(change_type, value, before, before + value)

    if change_type == CHANGE_TYPE_SELL:
        value = _positive(amount, "Sell")
        after = before - value
        if after < 0:
            raise AssetValidationError(
                f"Sell amount {value} exceeds the current value {before}"
            )
        # No cost-basis tracking: a sell never realises profit or loss
        return ChangeValues(
            change_type, value, before, after,
            profit_loss=Decimal("0.00"), profit_loss_rate=None,
        )

    if change_type == CHANGE_TYPE_TRANSFER_OUT:
        value = _positive(amount, "Transfer-out")
        after = before - value
        if after < 0:
            raise AssetValidationError(
                f"Transfer-out amount {value} exceeds the current value {before}"
            )
        return ChangeValues(change_type, value, before, after)

    if change_type == CHANGE_TYPE_DEPRECIATION:
        value = _non_negative(amount if amount is not None else 0, "Depreciation amount")
        after = before - value
        if after < 0:
            raise AssetValidationError(
                f"Depreciation {value} exceeds the current value {before}"
            )
        loss = -value
        return ChangeValues(
            change_type, value, before, after,
            profit_loss=loss, profit_loss_rate=profit_loss_rate(loss, before),
        )

    if change_type == CHANGE_TYPE_VALUATION_ADJUST:
        if new_value is None:
            raise AssetValidationError("New value is required for a valuation adjustment")
        target = _non_negative(new_value, "New value")
        diff = target - before
        return ChangeValues(
            change_type, diff, before, target,
            profit_loss=diff, profit_loss_rate=profit_loss_rate(diff, before),
        )

    if change_type == CHANGE_TYPE_DISPOSE:
        if new_value is None:
            raise AssetValidationError("Dispose value is required")
        proceeds = _non_negative(new_value, "Dispose value")
        diff = proceeds - before
        return ChangeValues(
            change_type, proceeds, before, Decimal("0.00"),
            profit_loss=diff, profit_loss_rate=profit_loss_rate(diff, before),
            new_status=ASSET_STATUS_DISPOSED,
        )

    raise AssetValidationError(
        f"Unknown change type: {change_type}. Use one of {', '.join(CHANGE_TYPES)}"
    )
