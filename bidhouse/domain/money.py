"""Parsing and formatting of monetary amounts.

Amounts are ``Decimal`` values with exactly two fractional digits. Keeping a
single canonical form means the text stored in the database for a highest
bid can be compared byte for byte in conditional updates.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation

from .errors import ValidationError

CENT = Decimal("0.01")


def parse_amount(
    value: object, *, field: str = "amount", allow_zero: bool = False
) -> Decimal:
    """Convert user input into a canonical two-decimal amount.

    Raises:
        ValidationError: if the value is missing, not numeric, not finite,
            has more than two fractional digits, is too large to hold in cents,
            or is not positive (or negative when ``allow_zero`` is set).
    """
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} is required")
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number") from None
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    if amount.as_tuple().exponent < -2:  # type: ignore[operator]
        raise ValidationError(f"{field} must have at most two decimal places")
    if allow_zero:
        if amount < 0:
            raise ValidationError(f"{field} must not be negative")
    elif amount <= 0:
        raise ValidationError(f"{field} must be positive")
    try:
        return amount.quantize(CENT)
    except InvalidOperation:
        raise ValidationError(f"{field} is too large") from None


def decimal_or_none(value: object) -> Decimal | None:
    """Read a stored amount back into a ``Decimal``."""
    if value is None or value == "":
        return None
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def format_amount(amount: Decimal) -> str:
    """Render an amount for messages: ``110`` or ``110.50``."""
    if amount == amount.to_integral_value():
        return str(amount.quantize(Decimal(1)))
    return str(amount.quantize(CENT))


__all__ = ["CENT", "decimal_or_none", "format_amount", "parse_amount"]
