from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True, slots=True)
class OrderLine:
    product_id: int
    quantity: int


@dataclass(slots=True)
class PlacedOrder:
    order_id: int
    order_number: str
    subtotal: Decimal
    discount_amount: Decimal
    total: Decimal
    promo_code: str | None = None
    promo_code_id: int | None = None
