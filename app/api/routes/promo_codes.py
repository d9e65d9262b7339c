from __future__ import annotations

from decimal import Decimal

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from app.db.session import SessionLocal
from app.economy.promo.service import PromoService
from app.economy.promo.types import DiscountType, PromoErrorKind

router = APIRouter(tags=["promo"])


class PromoValidateRequest(BaseModel):
    code: str
    user_id: int | None = Field(default=None, gt=0)
    order_amount: Decimal = Field(ge=0)
    product_ids: list[int] = Field(default_factory=list)


class PromoValidateResponse(BaseModel):
    valid: bool
    message: str
    discount_amount: Decimal
    code: str | None = None
    promo_code_id: int | None = None
    discount_type: DiscountType | None = None
    discount_value: Decimal | None = None
    applies_to_products: bool = False
    eligible_product_ids: list[int] = Field(default_factory=list)
    error_kind: PromoErrorKind | None = None


@router.post("/promo-codes/validate", response_model=PromoValidateResponse)
async def validate_promo_code(payload: PromoValidateRequest) -> PromoValidateResponse | JSONResponse:
    async with SessionLocal() as session:
        result = await PromoService.validate(
            session,
            code=payload.code,
            user_id=payload.user_id,
            order_subtotal=payload.order_amount,
            product_ids=payload.product_ids,
        )

    response = PromoValidateResponse(
        valid=result.valid,
        message=result.message,
        discount_amount=result.discount_amount,
        code=result.code,
        promo_code_id=result.promo_code_id,
        discount_type=result.discount_type,
        discount_value=result.discount_value,
        applies_to_products=result.applies_to_products,
        eligible_product_ids=result.eligible_product_ids,
        error_kind=result.error_kind,
    )
    if result.error_kind is PromoErrorKind.NOT_FOUND:
        return JSONResponse(status_code=400, content=response.model_dump(mode="json"))
    return response
