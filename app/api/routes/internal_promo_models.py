from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from app.economy.promo.types import DiscountType


class PromoCodeCreateRequest(BaseModel):
    code: str = Field(min_length=1, max_length=50)
    description: str | None = Field(default=None, max_length=200)
    discount_type: DiscountType = DiscountType.PERCENTAGE
    discount_value: Decimal = Field(ge=0)
    start_date: datetime
    end_date: datetime | None = None
    usage_limit: int | None = Field(default=None, gt=0)
    usage_limit_per_user: int | None = Field(default=None, gt=0)
    minimum_order_amount: Decimal | None = Field(default=None, ge=0)
    maximum_discount_amount: Decimal | None = Field(default=None, ge=0)
    user_ids: list[int] = Field(default_factory=list)
    product_ids: list[int] = Field(default_factory=list)
    created_by_user_id: int | None = Field(default=None, gt=0)


class PromoCodeUpdateRequest(BaseModel):
    code: str | None = Field(default=None, min_length=1, max_length=50)
    description: str | None = Field(default=None, max_length=200)
    discount_type: DiscountType | None = None
    discount_value: Decimal | None = Field(default=None, ge=0)
    start_date: datetime | None = None
    end_date: datetime | None = None
    usage_limit: int | None = Field(default=None, gt=0)
    usage_limit_per_user: int | None = Field(default=None, gt=0)
    minimum_order_amount: Decimal | None = Field(default=None, ge=0)
    maximum_discount_amount: Decimal | None = Field(default=None, ge=0)
    is_active: bool | None = None
    user_ids: list[int] | None = None
    product_ids: list[int] | None = None


class PromoCodeResponse(BaseModel):
    id: int
    code: str
    description: str | None = None
    discount_type: DiscountType
    discount_value: Decimal
    start_date: datetime
    end_date: datetime | None = None
    usage_limit: int | None = None
    used_count: int = Field(ge=0)
    usage_limit_per_user: int | None = None
    minimum_order_amount: Decimal | None = None
    maximum_discount_amount: Decimal | None = None
    is_active: bool
    is_expired: bool
    is_valid: bool
    created_at: datetime
    updated_at: datetime | None = None
    created_by_user_id: int | None = None
    user_ids: list[int]
    product_ids: list[int]


class PromoCodeListItemResponse(BaseModel):
    id: int
    code: str
    description: str | None = None
    discount_type: DiscountType
    discount_value: Decimal
    start_date: datetime
    end_date: datetime | None = None
    usage_limit: int | None = None
    used_count: int = Field(ge=0)
    user_count: int = Field(ge=0)
    product_count: int = Field(ge=0)
    is_active: bool
    is_expired: bool
    is_valid: bool


class PromoCodeListResponse(BaseModel):
    promo_codes: list[PromoCodeListItemResponse]


class PromoUsageRecordResponse(BaseModel):
    order_id: int
    order_number: str
    discount_amount: Decimal
    used_at: datetime


class PromoUserUsageResponse(BaseModel):
    user_id: int
    user_name: str
    user_email: str | None = None
    usage_count: int = Field(ge=0)
    usage_limit: int | None = None
    has_exceeded_limit: bool
    usage_records: list[PromoUsageRecordResponse]


class PromoCodeUsageResponse(BaseModel):
    promo_code_id: int
    code: str
    user_usages: list[PromoUserUsageResponse]
