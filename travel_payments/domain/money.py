"""Exact 2-decimal currency arithmetic"""

from decimal import Decimal, ROUND_FLOOR, ROUND_HALF_UP, InvalidOperation
from typing import Iterable

from travel_payments.domain.exceptions import ValidationError

Money = Decimal

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value, field: str = "amount") -> Money:
    """
    Coerce a number into a 2-decimal Money value.

    None becomes zero. Floats go through str() so 0.1 stays 0.10.
    Non-numeric and non-finite input raises ValidationError.
    """
    if value is None:
        return ZERO
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number, got {value!r}")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ValidationError(f"{field} must be a number, got {value!r}") from e
    if not amount.is_finite():
        raise ValidationError(f"{field} must be finite, got {value!r}")
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def non_negative(value, field: str = "amount") -> Money:
    """to_money() that also rejects negative amounts"""
    amount = to_money(value, field)
    if amount < 0:
        raise ValidationError(f"{field} must not be negative, got {amount}")
    return amount


def round2(value: Decimal) -> Money:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def floor2(value: Decimal) -> Money:
    return value.quantize(CENT, rounding=ROUND_FLOOR)


def percent_of(amount: Money, percent: Decimal) -> Money:
    """amount * percent / 100, rounded half-up to the cent"""
    return round2(amount * Decimal(percent) / Decimal(100))


def total(amounts: Iterable[Money]) -> Money:
    return sum((to_money(a) for a in amounts), ZERO)


def to_cents(amount: Money) -> int:
    """Storage representation: integer cents"""
    return int(to_money(amount) * 100)


def from_cents(cents: int) -> Money:
    return (Decimal(cents) / 100).quantize(CENT)
