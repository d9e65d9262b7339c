from __future__ import annotations

from decimal import Decimal

import structlog
from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from app.db.session import SessionLocal
from app.economy.orders.errors import OrderPromoRejectedError, OrderValidationError
from app.economy.orders.service import OrderService
from app.economy.orders.types import OrderLine
from app.economy.promo.errors import PromoCodeNotFoundError, PromoRedemptionConflictError

router = APIRouter(tags=["orders"])
logger = structlog.get_logger(__name__)


class CheckoutItemRequest(BaseModel):
    product_id: int = Field(gt=0)
    quantity: int = Field(gt=0, le=1000)


class CheckoutRequest(BaseModel):
    user_id: int | None = Field(default=None, gt=0)
    customer_email: str | None = Field(default=None, max_length=255)
    items: list[CheckoutItemRequest] = Field(min_length=1)
    promo_code: str | None = Field(default=None, max_length=50)


class CheckoutResponse(BaseModel):
    order_id: int
    order_number: str
    subtotal: Decimal
    discount_amount: Decimal
    total: Decimal
    promo_code: str | None = None


@router.post("/orders/checkout", response_model=CheckoutResponse, status_code=201)
async def checkout(payload: CheckoutRequest) -> CheckoutResponse:
    try:
        async with SessionLocal.begin() as session:
            placed = await OrderService.place_order(
                session,
                user_id=payload.user_id,
                lines=[
                    OrderLine(product_id=item.product_id, quantity=item.quantity)
                    for item in payload.items
                ],
                promo_code=payload.promo_code,
                customer_email=payload.customer_email,
            )
    except OrderValidationError as exc:
        raise HTTPException(
            status_code=422,
            detail={"code": "E_ORDER_INVALID", "message": str(exc)},
        ) from exc
    except OrderPromoRejectedError as exc:
        raise HTTPException(
            status_code=422,
            detail={"code": "E_PROMO_REJECTED", "reason": exc.kind.value, "message": exc.message},
        ) from exc
    except (PromoRedemptionConflictError, PromoCodeNotFoundError) as exc:
        logger.warning("checkout_promo_conflict", promo_code=payload.promo_code)
        raise HTTPException(
            status_code=409,
            detail={"code": "E_PROMO_CONFLICT", "message": "Promo code is no longer available, please retry"},
        ) from exc

    return CheckoutResponse(
        order_id=placed.order_id,
        order_number=placed.order_number,
        subtotal=placed.subtotal,
        discount_amount=placed.discount_amount,
        total=placed.total,
        promo_code=placed.promo_code,
    )
