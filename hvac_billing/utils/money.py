"""
Decimal helpers for form input and currency rounding.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

from hvac_billing.utils.errors import ValidationError

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def round_money(value: Decimal) -> Decimal:
    """Round to 2 decimal places, half away from zero."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def round_half_up(value) -> int:
    """Round to a whole number, half away from zero."""
    return int(Decimal(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def round_rupees(value: Decimal) -> int:
    """Round to whole rupees for the amount-in-words line."""
    return round_half_up(value)


def parse_amount(value: Any, field: str, allow_negative: bool = False) -> Decimal:
    """
    Parse a numeric form value into a Decimal.
    
    None and blank strings are an empty form field and parse as zero.
    Anything else that is not a finite number raises ValidationError,
    as does a negative value unless allow_negative is set.
    """
    if value is None:
        return Decimal("0")
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number", field=field)
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return Decimal("0")
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number, got {value!r}", field=field)
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a finite number", field=field)
    if amount < 0 and not allow_negative:
        raise ValidationError(f"{field} must not be negative", field=field)
    return amount


def format_amount(value: Decimal) -> str:
    """Two-decimal string as printed on invoices."""
    return f"{round_money(value):.2f}"
