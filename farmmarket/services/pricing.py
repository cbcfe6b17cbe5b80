"""Order totals. All arithmetic is done in Decimal and rounded to cents."""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Tuple, Union

Number = Union[Decimal, float, int, str]

CENT = Decimal("0.01")
FREE_SHIPPING_THRESHOLD = Decimal("50")
SHIPPING_FEE = Decimal("5.99")
TAX_RATE = Decimal("0.08")
PRICE_TOLERANCE = Decimal("0.01")


def to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def to_cents(value: Number) -> int:
    """Dollar amount to integer cents, as the payment provider expects."""
    return int((to_decimal(value) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def money(value: Number) -> Decimal:
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def prices_match(a: Number, b: Number, tolerance: Decimal = PRICE_TOLERANCE) -> bool:
    return abs(to_decimal(a) - to_decimal(b)) <= tolerance


@dataclass(frozen=True)
class Totals:
    subtotal: Decimal
    shipping: Decimal
    tax: Decimal
    total: Decimal

    def as_dict(self):
        return {
            "subtotal": float(self.subtotal),
            "shipping": float(self.shipping),
            "tax": float(self.tax),
            "total": float(self.total),
        }


def shipping_for(subtotal: Number) -> Decimal:
    return Decimal("0.00") if to_decimal(subtotal) > FREE_SHIPPING_THRESHOLD else SHIPPING_FEE


def compute_totals(lines: Iterable[Tuple[Number, int]]) -> Totals:
    """Totals for ``(unit_price, quantity)`` pairs: subtotal + shipping + 8% tax."""
    subtotal = sum((to_decimal(price) * quantity for price, quantity in lines), Decimal("0"))
    subtotal = money(subtotal)
    shipping = shipping_for(subtotal)
    tax = money(subtotal * TAX_RATE)
    return Totals(subtotal=subtotal, shipping=shipping, tax=tax, total=money(subtotal + shipping + tax))
