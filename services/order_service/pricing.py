"""
Order amount arithmetic.

Prices are stored as floats, so every computation goes through Decimal built
from the float's shortest repr (Decimal(str(x))). That keeps 33.33 * 3 equal
to 99.99 instead of 99.98999999999999.
"""
from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal
from typing import Iterable

TAX_RATE = Decimal("0.02")


def to_decimal(value) -> Decimal:
    return Decimal(str(value))


def subtotal(lines: Iterable[tuple[float, int]]) -> Decimal:
    """Sum of unit_price * quantity over (unit_price, quantity) pairs."""
    return sum((to_decimal(price) * quantity for price, quantity in lines), Decimal("0"))


def apply_tax(amount: Decimal) -> int:
    """floor(amount * 1.02), the single rounding rule for every order."""
    return int((amount * (1 + TAX_RATE)).to_integral_value(rounding=ROUND_FLOOR))


def to_minor_units(price: float) -> int:
    """Unit price in the provider's minor currency unit, rounded half up."""
    return int((to_decimal(price) * 100).to_integral_value(rounding=ROUND_HALF_UP))
