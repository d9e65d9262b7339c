from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Protocol

from app.economy.promo.constants import MONEY_QUANTUM, PERCENTAGE_MAX, ZERO_AMOUNT
from app.economy.promo.types import DiscountType


class DiscountTerms(Protocol):
    discount_type: str
    discount_value: Decimal
    maximum_discount_amount: Decimal | None


def round_money(amount: Decimal) -> Decimal:
    return amount.quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


def compute_discount(promo_code: DiscountTerms, order_subtotal: Decimal) -> Decimal:
    """Discount for ``order_subtotal``, clamped to the subtotal and the code's cap.

    Rounded half-up to cents, same as order totals.
    """
    subtotal = Decimal(order_subtotal)
    value = Decimal(promo_code.discount_value)
    if value <= 0 or subtotal <= 0:
        return ZERO_AMOUNT

    if DiscountType(promo_code.discount_type) is DiscountType.PERCENTAGE:
        raw = subtotal * value / PERCENTAGE_MAX
    else:
        raw = value

    discount = min(raw, subtotal)
    if promo_code.maximum_discount_amount is not None:
        discount = min(discount, Decimal(promo_code.maximum_discount_amount))

    return max(ZERO_AMOUNT, round_money(discount))
