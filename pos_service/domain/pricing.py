"""
Order pricing.

Totals are always recomputed from the full set of lines; nothing here keeps
state, so the same lines and tax configuration always price identically.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Protocol, Union

Number = Union[Decimal, int, float, str]

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


class PricedLine(Protocol):
    price: Number
    quantity: int


@dataclass(frozen=True)
class Totals:
    subtotal: Decimal
    tax: Decimal
    total: Decimal


def to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() keeps 19.99 as 19.99 instead of its binary float expansion
    return Decimal(str(value))


def round2(value: Number) -> Decimal:
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def line_total(price: Number, quantity: int) -> Decimal:
    return round2(to_decimal(price) * quantity)


def percent_to_rate(percent: Number) -> Decimal:
    """Convert a UI percentage (5 for 5%) to the fraction compute_totals expects."""
    return to_decimal(percent) / Decimal(100)


def compute_totals(lines: Iterable[PricedLine], tax_enabled: bool, tax_rate: Number) -> Totals:
    """
    Price a set of order lines.

    Each line is rounded to cents before summing. Tax is applied to the
    rounded subtotal, and only when enabled with a positive rate.
    """
    subtotal = round2(sum((line_total(line.price, line.quantity) for line in lines), ZERO))
    rate = to_decimal(tax_rate)
    if not tax_enabled or rate <= 0:
        return Totals(subtotal=subtotal, tax=ZERO, total=subtotal)
    tax = round2(subtotal * rate)
    return Totals(subtotal=subtotal, tax=tax, total=round2(subtotal + tax))
