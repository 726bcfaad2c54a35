"""
Money conversion helpers.

Amounts travel through the API as decimals with two fraction digits
("150.25") and are stored as integer cents (15025). All balance
arithmetic happens on integers, so 0.10 + 0.20 is exactly 0.30.

Amounts and balances are capped at DECIMAL(18, 2), sixteen integer digits,
which keeps every cent value inside a signed 64-bit INTEGER column.
"""

from decimal import Decimal, InvalidOperation

from cashbook.exceptions import ValidationError

CENT = Decimal("0.01")
MAX_CENTS = 10**18 - 1
MAX_AMOUNT = Decimal(MAX_CENTS).scaleb(-2)


def to_cents(amount: Decimal | int | str, *, allow_zero: bool = False) -> int:
    """
    Convert a decimal amount to integer cents.

    Raises:
        ValidationError: If the amount is not a finite number, has more than
            two fraction digits, exceeds MAX_AMOUNT, or is not positive
            (zero is accepted only with allow_zero=True, e.g. opening
            balances).
    """
    try:
        value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
        if not value.is_finite():
            raise ValidationError("Invalid amount")
        if value > MAX_AMOUNT:
            raise ValidationError(f"Amount cannot exceed {MAX_AMOUNT}")
        rounded = value.quantize(CENT)
    except InvalidOperation:
        raise ValidationError("Invalid amount")

    if value != rounded:
        raise ValidationError("Amount cannot have more than 2 decimal places")
    if value < 0 or (value == 0 and not allow_zero):
        raise ValidationError("Invalid amount")

    return int(value * 100)


def from_cents(cents: int) -> Decimal:
    """Integer cents to a Decimal with exactly two fraction digits."""
    return Decimal(cents).scaleb(-2)
