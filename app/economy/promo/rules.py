from __future__ import annotations

from collections.abc import Collection
from datetime import datetime
from decimal import Decimal

from app.db.models.promo_codes import PromoCode
from app.economy.promo.constants import (
    PROMO_MESSAGE_EXPIRED,
    PROMO_MESSAGE_GLOBAL_LIMIT,
    PROMO_MESSAGE_GUEST_NOT_ALLOWED,
    PROMO_MESSAGE_INACTIVE,
    PROMO_MESSAGE_NO_ELIGIBLE_PRODUCTS,
    PROMO_MESSAGE_NOT_ALL_ELIGIBLE,
    PROMO_MESSAGE_NOT_STARTED,
    PROMO_MESSAGE_REQUIRES_PRODUCTS,
    PROMO_MESSAGE_USER_LIMIT,
    PROMO_MESSAGE_USER_NOT_ALLOWED,
)
from app.economy.promo.types import ProductMatchMode, PromoErrorKind, PromoRuleFailure


def check_active(promo_code: PromoCode) -> PromoRuleFailure | None:
    if not promo_code.is_active:
        return PromoRuleFailure(PromoErrorKind.INACTIVE, PROMO_MESSAGE_INACTIVE)
    return None


def check_window(promo_code: PromoCode, *, now_utc: datetime) -> PromoRuleFailure | None:
    if now_utc < promo_code.start_date:
        return PromoRuleFailure(PromoErrorKind.OUT_OF_WINDOW, PROMO_MESSAGE_NOT_STARTED)
    if promo_code.end_date is not None and now_utc > promo_code.end_date:
        return PromoRuleFailure(PromoErrorKind.OUT_OF_WINDOW, PROMO_MESSAGE_EXPIRED)
    return None


def check_allowed_user(
    *,
    user_id: int | None,
    allowed_user_ids: Collection[int],
) -> PromoRuleFailure | None:
    if not allowed_user_ids:
        return None
    if user_id is None:
        return PromoRuleFailure(PromoErrorKind.NOT_ELIGIBLE_USER, PROMO_MESSAGE_GUEST_NOT_ALLOWED)
    if user_id not in allowed_user_ids:
        return PromoRuleFailure(PromoErrorKind.NOT_ELIGIBLE_USER, PROMO_MESSAGE_USER_NOT_ALLOWED)
    return None


def check_global_limit(promo_code: PromoCode) -> PromoRuleFailure | None:
    if promo_code.usage_limit is not None and promo_code.used_count >= promo_code.usage_limit:
        return PromoRuleFailure(PromoErrorKind.GLOBAL_LIMIT_EXCEEDED, PROMO_MESSAGE_GLOBAL_LIMIT)
    return None


def requires_user_usage_count(promo_code: PromoCode, *, user_id: int | None) -> bool:
    return promo_code.usage_limit_per_user is not None and user_id is not None


def check_user_limit(
    promo_code: PromoCode,
    *,
    user_id: int | None,
    user_usage_count: int,
) -> PromoRuleFailure | None:
    if promo_code.usage_limit_per_user is None:
        return None
    # Guests cannot be tracked per user.
    if user_id is None:
        return PromoRuleFailure(PromoErrorKind.NOT_ELIGIBLE_USER, PROMO_MESSAGE_GUEST_NOT_ALLOWED)
    if user_usage_count >= promo_code.usage_limit_per_user:
        return PromoRuleFailure(PromoErrorKind.USER_LIMIT_EXCEEDED, PROMO_MESSAGE_USER_LIMIT)
    return None


def check_minimum_order(
    promo_code: PromoCode,
    *,
    order_subtotal: Decimal,
    currency_label: str,
) -> PromoRuleFailure | None:
    minimum = promo_code.minimum_order_amount
    if minimum is not None and order_subtotal < minimum:
        return PromoRuleFailure(
            PromoErrorKind.BELOW_MINIMUM,
            f"Minimum order amount of {currency_label} {minimum:.2f} required",
        )
    return None


def check_eligible_products(
    *,
    product_ids: Collection[int],
    eligible_product_ids: Collection[int],
    match_mode: ProductMatchMode,
) -> PromoRuleFailure | None:
    if not eligible_product_ids:
        return None
    if not product_ids:
        return PromoRuleFailure(
            PromoErrorKind.NO_ELIGIBLE_PRODUCTS,
            PROMO_MESSAGE_REQUIRES_PRODUCTS,
        )

    eligible = set(eligible_product_ids)
    cart = set(product_ids)
    if match_mode is ProductMatchMode.ALL:
        if not cart <= eligible:
            return PromoRuleFailure(
                PromoErrorKind.NO_ELIGIBLE_PRODUCTS,
                PROMO_MESSAGE_NOT_ALL_ELIGIBLE,
            )
        return None

    if cart.isdisjoint(eligible):
        return PromoRuleFailure(
            PromoErrorKind.NO_ELIGIBLE_PRODUCTS,
            PROMO_MESSAGE_NO_ELIGIBLE_PRODUCTS,
        )
    return None


def is_expired(promo_code: PromoCode, *, now_utc: datetime) -> bool:
    return promo_code.end_date is not None and now_utc > promo_code.end_date


def is_currently_valid(promo_code: PromoCode, *, now_utc: datetime) -> bool:
    return (
        check_active(promo_code) is None
        and check_window(promo_code, now_utc=now_utc) is None
        and check_global_limit(promo_code) is None
    )
