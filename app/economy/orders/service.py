from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.orders import Order, OrderItem
from app.db.repo.orders_repo import OrdersRepo
from app.db.repo.products_repo import ProductsRepo
from app.economy.orders.errors import OrderPromoRejectedError, OrderValidationError
from app.economy.orders.types import OrderLine, PlacedOrder
from app.economy.promo.constants import ZERO_AMOUNT
from app.economy.promo.discount import round_money
from app.economy.promo.service import PromoService
from app.economy.promo.types import PromoErrorKind

logger = structlog.get_logger(__name__)

ORDER_STATUS_PENDING = "PENDING"


def _merge_lines(lines: Sequence[OrderLine]) -> dict[int, int]:
    quantities: dict[int, int] = {}
    for line in lines:
        if line.quantity <= 0:
            raise OrderValidationError(f"Invalid quantity for product {line.product_id}")
        quantities[line.product_id] = quantities.get(line.product_id, 0) + line.quantity
    if not quantities:
        raise OrderValidationError("Order must contain at least one item")
    return quantities


def _build_order_number(now_utc: datetime) -> str:
    return f"ORD-{now_utc:%Y%m%d}-{uuid4().hex[:8].upper()}"


class OrderService:
    @staticmethod
    async def place_order(
        session: AsyncSession,
        *,
        user_id: int | None,
        lines: Sequence[OrderLine],
        promo_code: str | None = None,
        customer_email: str | None = None,
        now_utc: datetime | None = None,
    ) -> PlacedOrder:
        """Create an order and redeem its promo code in the caller's transaction.

        The caller owns the transaction: if anything here raises, neither the
        order nor the promo usage row is committed.
        """
        now_utc = now_utc or datetime.now(timezone.utc)
        quantities = _merge_lines(lines)

        products = {
            product.id: product
            for product in await ProductsRepo.list_by_ids(session, list(quantities))
        }
        items: list[OrderItem] = []
        for product_id, quantity in sorted(quantities.items()):
            product = products.get(product_id)
            if product is None or not product.is_active:
                raise OrderValidationError(f"Product {product_id} is not available")
            line_total = round_money(product.price * quantity)
            items.append(
                OrderItem(
                    product_id=product_id,
                    quantity=quantity,
                    unit_price=product.price,
                    line_total=line_total,
                )
            )
        subtotal = round_money(sum((item.line_total for item in items), ZERO_AMOUNT))

        discount_amount = ZERO_AMOUNT
        promo_code_id: int | None = None
        applied_code: str | None = None
        if promo_code:
            validation = await PromoService.validate(
                session,
                code=promo_code,
                user_id=user_id,
                order_subtotal=subtotal,
                product_ids=list(quantities),
                now_utc=now_utc,
            )
            if not validation.valid:
                raise OrderPromoRejectedError(
                    validation.error_kind or PromoErrorKind.NOT_FOUND,
                    validation.message,
                )
            discount_amount = validation.discount_amount
            promo_code_id = validation.promo_code_id
            applied_code = validation.code

        order = await OrdersRepo.create(
            session,
            order=Order(
                order_number=_build_order_number(now_utc),
                user_id=user_id,
                customer_email=customer_email,
                subtotal=subtotal,
                discount_amount=discount_amount,
                total=subtotal - discount_amount,
                promo_code_id=promo_code_id,
                status=ORDER_STATUS_PENDING,
                created_at=now_utc,
            ),
            items=items,
        )

        if promo_code_id is not None:
            await PromoService.redeem(
                session,
                promo_code_id=promo_code_id,
                order_id=order.id,
                user_id=user_id,
                discount_amount=discount_amount,
                now_utc=now_utc,
            )

        logger.info(
            "order_placed",
            order_id=order.id,
            order_number=order.order_number,
            user_id=user_id,
            subtotal=str(subtotal),
            discount_amount=str(discount_amount),
            promo_code_id=promo_code_id,
        )
        return PlacedOrder(
            order_id=order.id,
            order_number=order.order_number,
            subtotal=subtotal,
            discount_amount=discount_amount,
            total=order.total,
            promo_code=applied_code,
            promo_code_id=promo_code_id,
        )
