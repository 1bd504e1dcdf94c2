"""
Input checks for amounts and currency codes arriving in request bodies.

Both raise ValueError so pydantic field validators turn failures into 422s.
"""
import re
from decimal import Decimal, InvalidOperation

from family_ledger.utils.money import EXCHANGE_RATES

_AMOUNT_RE = re.compile(r"^(?P<sign>-?)\d+(\.(?P<frac>\d+))?$")


def normalize_decimal_input(value: str) -> str:
    """' 100,50 ' -> '100.50'"""
    return value.strip().replace(",", ".")


def amount_error(value: str, max_decimal_places: int = 2, allow_negative: bool = False) -> str | None:
    """
    Reason the amount string is unacceptable, or None when it is fine.

    Example:
        >>> amount_error("100.505")
        'At most 2 decimal places'
        >>> amount_error("-5")
        'Amount cannot be negative'
    """
    normalized = normalize_decimal_input(value)
    match = _AMOUNT_RE.match(normalized)
    if not match:
        return "Invalid amount"

    try:
        Decimal(normalized)
    except InvalidOperation:
        return "Invalid amount"

    if match.group("sign") and not allow_negative:
        return "Amount cannot be negative"
    if len(match.group("frac") or "") > max_decimal_places:
        return f"At most {max_decimal_places} decimal places"
    return None


def validate_and_normalize_amount(value: str, max_decimal_places: int = 2, allow_negative: bool = False) -> str:
    """
    Raises:
        ValueError: the amount is malformed, negative or too precise
    """
    error = amount_error(value, max_decimal_places, allow_negative)
    if error:
        raise ValueError(error)
    return normalize_decimal_input(value)


def validate_currency_code(value: str) -> str:
    """Upper-case a currency code and check it against the rate table"""
    code = value.strip().upper()
    if code not in EXCHANGE_RATES:
        raise ValueError(f"Unsupported currency: {value}. Use one of {', '.join(sorted(EXCHANGE_RATES))}")
    return code
