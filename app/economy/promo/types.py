from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum


class DiscountType(str, Enum):
    PERCENTAGE = "PERCENTAGE"
    FIXED = "FIXED"


class ProductMatchMode(str, Enum):
    ANY = "any"
    ALL = "all"


class PromoErrorKind(str, Enum):
    NOT_FOUND = "NOT_FOUND"
    INACTIVE = "INACTIVE"
    OUT_OF_WINDOW = "OUT_OF_WINDOW"
    NOT_ELIGIBLE_USER = "NOT_ELIGIBLE_USER"
    GLOBAL_LIMIT_EXCEEDED = "GLOBAL_LIMIT_EXCEEDED"
    USER_LIMIT_EXCEEDED = "USER_LIMIT_EXCEEDED"
    BELOW_MINIMUM = "BELOW_MINIMUM"
    NO_ELIGIBLE_PRODUCTS = "NO_ELIGIBLE_PRODUCTS"


@dataclass(frozen=True, slots=True)
class PromoRuleFailure:
    kind: PromoErrorKind
    message: str


@dataclass(slots=True)
class PromoValidationResult:
    valid: bool
    message: str
    discount_amount: Decimal = Decimal("0.00")
    code: str | None = None
    promo_code_id: int | None = None
    discount_type: DiscountType | None = None
    discount_value: Decimal | None = None
    applies_to_products: bool = False
    eligible_product_ids: list[int] = field(default_factory=list)
    error_kind: PromoErrorKind | None = None

    @classmethod
    def failure(cls, failure: PromoRuleFailure) -> PromoValidationResult:
        return cls(valid=False, message=failure.message, error_kind=failure.kind)


@dataclass(slots=True)
class PromoUsageRecord:
    order_id: int
    order_number: str
    discount_amount: Decimal
    used_at: datetime


@dataclass(slots=True)
class PromoUserUsage:
    user_id: int
    user_name: str
    user_email: str | None
    usage_count: int
    usage_limit: int | None
    has_exceeded_limit: bool
    usage_records: list[PromoUsageRecord] = field(default_factory=list)


@dataclass(slots=True)
class PromoCodeUsageReport:
    promo_code_id: int
    code: str
    user_usages: list[PromoUserUsage]


@dataclass(slots=True)
class PromoCodeSummary:
    promo_code_id: int
    code: str
    description: str | None
    discount_type: DiscountType
    discount_value: Decimal
    start_date: datetime
    end_date: datetime | None
    usage_limit: int | None
    used_count: int
    usage_limit_per_user: int | None
    minimum_order_amount: Decimal | None
    maximum_discount_amount: Decimal | None
    is_active: bool
    is_expired: bool
    is_valid: bool
    created_at: datetime
    updated_at: datetime | None
    created_by_user_id: int | None
    user_ids: list[int] = field(default_factory=list)
    product_ids: list[int] = field(default_factory=list)


@dataclass(slots=True)
class PromoCodeListItem:
    promo_code_id: int
    code: str
    description: str | None
    discount_type: DiscountType
    discount_value: Decimal
    start_date: datetime
    end_date: datetime | None
    usage_limit: int | None
    used_count: int
    user_count: int
    product_count: int
    is_active: bool
    is_expired: bool
    is_valid: bool


@dataclass(frozen=True, slots=True)
class PromoAssignmentNotice:
    assignment_id: int
    promo_code_id: int
    user_id: int
