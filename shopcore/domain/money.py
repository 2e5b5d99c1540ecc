# shopcore/domain/money.py
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, NamedTuple

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


class Totals(NamedTuple):
    subtotal: Decimal
    tax: Decimal
    shipping_fee: Decimal
    discount: Decimal
    total: Decimal


def to_money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def to_minor_units(amount: Decimal) -> int:
    # stripe liczy w groszach/orach
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_minor_units(amount: int) -> Decimal:
    return (Decimal(amount) / 100).quantize(CENT)


def amounts_match(expected: Decimal, actual: Decimal, epsilon: Decimal = CENT) -> bool:
    return abs(Decimal(str(expected)) - Decimal(str(actual))) <= Decimal(str(epsilon))


def compute_totals(
    lines: Iterable[tuple[Decimal, int]],
    tax_rate: Decimal,
    shipping_fee: Decimal = ZERO,
    discount: Decimal = ZERO,
) -> Totals:
    """lines: (cena jednostkowa, ilosc) ze snapshotu koszyka"""
    subtotal = to_money(sum((Decimal(str(price)) * qty for price, qty in lines), ZERO))
    tax = to_money(subtotal * Decimal(str(tax_rate)))
    shipping_fee = to_money(shipping_fee)
    discount = to_money(discount)
    total = subtotal + tax + shipping_fee - discount
    return Totals(subtotal, tax, shipping_fee, discount, total)
