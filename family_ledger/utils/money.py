"""
Money helpers: rounding and conversion into the base currency.

Usage:
    from family_ledger.utils.money import to_base

    to_base(Decimal("100"), "USD")          -> Decimal("725.00")   (base CNY)
    convert_currency(Decimal("725"), "CNY", "USD") -> Decimal("100.00")
"""
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation

from family_ledger.config import get_settings
from family_ledger.domain.errors import DomainValidationError

CENT = Decimal("0.01")

# Static table: value of one unit of the currency, expressed in CNY
EXCHANGE_RATES: dict[str, Decimal] = {
    "CNY": Decimal("1"),
    "HKD": Decimal("0.92"),
    "USD": Decimal("7.25"),
    "GBP": Decimal("9.15"),
    "EUR": Decimal("7.85"),
    "JPY": Decimal("0.048"),
}


def quantize_money(value) -> Decimal:
    """
    Round to cents (half-up).

    Args:
        value: int / str / Decimal

    Raises:
        DomainValidationError: value is not a number
    """
    if isinstance(value, float):
        value = str(value)
    try:
        number = Decimal(value)
        if not number.is_finite():
            raise InvalidOperation
        return number.quantize(CENT, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError, TypeError):
        raise DomainValidationError(f"Invalid amount: {value!r}") from None


def is_supported_currency(code: str) -> bool:
    return code in EXCHANGE_RATES


def _rate(code: str) -> Decimal:
    rate = EXCHANGE_RATES.get(code)
    if rate is None:
        raise DomainValidationError(
            f"Unsupported currency: {code}. Use one of {', '.join(sorted(EXCHANGE_RATES))}"
        )
    return rate


def convert_currency(amount: Decimal, from_code: str, to_code: str) -> Decimal:
    """amount * rate[from] / rate[to], rounded to cents"""
    if from_code == to_code:
        return quantize_money(amount)
    return quantize_money(Decimal(amount) * _rate(from_code) / _rate(to_code))


def to_base(amount: Decimal, currency: str, base_currency: str | None = None) -> Decimal:
    """Convert into the configured base currency (Settings.BASE_CURRENCY)"""
    base = base_currency or get_settings().BASE_CURRENCY
    return convert_currency(amount, currency, base)
