from __future__ import annotations

from collections.abc import Collection
from datetime import datetime, timezone
from decimal import Decimal

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.db.models.promo_code_usages import PromoCodeUsage
from app.db.models.promo_codes import PromoCode
from app.db.repo.promo_repo import PromoRepo
from app.economy.promo.constants import PROMO_MESSAGE_APPLIED, PROMO_MESSAGE_INVALID
from app.economy.promo.discount import compute_discount, round_money
from app.economy.promo.errors import PromoCodeNotFoundError, PromoRedemptionConflictError
from app.economy.promo.rules import (
    check_active,
    check_allowed_user,
    check_eligible_products,
    check_global_limit,
    check_minimum_order,
    check_user_limit,
    check_window,
    requires_user_usage_count,
)
from app.economy.promo.types import (
    DiscountType,
    ProductMatchMode,
    PromoErrorKind,
    PromoRuleFailure,
    PromoValidationResult,
)
from app.services.promo_codes import normalize_promo_code

logger = structlog.get_logger(__name__)


class PromoService:
    @staticmethod
    async def _user_usage_count(
        session: AsyncSession,
        *,
        promo_code: PromoCode,
        user_id: int | None,
    ) -> int:
        if user_id is None or not requires_user_usage_count(promo_code, user_id=user_id):
            return 0
        return await PromoRepo.count_user_usages(
            session,
            promo_code_id=promo_code.id,
            user_id=user_id,
        )

    @staticmethod
    async def _evaluate(
        session: AsyncSession,
        *,
        promo_code: PromoCode,
        user_id: int | None,
        order_subtotal: Decimal,
        product_ids: Collection[int],
        now_utc: datetime,
        match_mode: ProductMatchMode,
        currency_label: str,
    ) -> tuple[PromoRuleFailure | None, list[int]]:
        failure = check_active(promo_code) or check_window(promo_code, now_utc=now_utc)
        if failure is not None:
            return failure, []

        allowed_user_ids = await PromoRepo.list_allowed_user_ids(session, promo_code.id)
        failure = check_allowed_user(user_id=user_id, allowed_user_ids=allowed_user_ids)
        if failure is None:
            failure = check_global_limit(promo_code)
        if failure is None:
            user_usage_count = await PromoService._user_usage_count(
                session,
                promo_code=promo_code,
                user_id=user_id,
            )
            failure = check_user_limit(
                promo_code,
                user_id=user_id,
                user_usage_count=user_usage_count,
            )
        if failure is None:
            failure = check_minimum_order(
                promo_code,
                order_subtotal=order_subtotal,
                currency_label=currency_label,
            )
        if failure is not None:
            return failure, []

        eligible_product_ids = await PromoRepo.list_eligible_product_ids(session, promo_code.id)
        failure = check_eligible_products(
            product_ids=product_ids,
            eligible_product_ids=eligible_product_ids,
            match_mode=match_mode,
        )
        return failure, eligible_product_ids

    @staticmethod
    async def validate(
        session: AsyncSession,
        *,
        code: str,
        user_id: int | None,
        order_subtotal: Decimal,
        product_ids: Collection[int],
        now_utc: datetime | None = None,
        match_mode: ProductMatchMode | None = None,
    ) -> PromoValidationResult:
        """Check whether ``code`` applies to the prospective order.

        Read-only. Rules run in a fixed order and the first failing one decides
        the result; business failures come back as ``valid=False`` results and
        only store errors propagate.
        """
        now_utc = now_utc or datetime.now(timezone.utc)
        settings = get_settings()
        match_mode = match_mode or ProductMatchMode(settings.promo_product_match_mode)
        subtotal = Decimal(order_subtotal)

        normalized_code = normalize_promo_code(code)
        promo_code = None
        if normalized_code:
            promo_code = await PromoRepo.get_code_by_code(session, normalized_code)
        if promo_code is None:
            logger.info("promo_validation_failed", reason=PromoErrorKind.NOT_FOUND.value)
            return PromoValidationResult.failure(
                PromoRuleFailure(PromoErrorKind.NOT_FOUND, PROMO_MESSAGE_INVALID)
            )

        failure, eligible_product_ids = await PromoService._evaluate(
            session,
            promo_code=promo_code,
            user_id=user_id,
            order_subtotal=subtotal,
            product_ids=product_ids,
            now_utc=now_utc,
            match_mode=match_mode,
            currency_label=settings.currency_label,
        )
        if failure is not None:
            logger.info(
                "promo_validation_failed",
                promo_code_id=promo_code.id,
                user_id=user_id,
                reason=failure.kind.value,
            )
            return PromoValidationResult.failure(failure)

        return PromoValidationResult(
            valid=True,
            message=PROMO_MESSAGE_APPLIED,
            discount_amount=compute_discount(promo_code, subtotal),
            code=promo_code.code,
            promo_code_id=promo_code.id,
            discount_type=DiscountType(promo_code.discount_type),
            discount_value=promo_code.discount_value,
            applies_to_products=bool(eligible_product_ids),
            eligible_product_ids=eligible_product_ids,
        )

    @staticmethod
    async def redeem(
        session: AsyncSession,
        *,
        promo_code_id: int,
        order_id: int,
        user_id: int | None,
        discount_amount: Decimal,
        now_utc: datetime | None = None,
    ) -> PromoCodeUsage:
        """Record one redemption inside the caller's order transaction.

        The promo row stays locked until the caller commits or rolls back, so
        concurrent redemptions of the same code are serialised and the limits
        re-checked here cannot be overrun.
        """
        now_utc = now_utc or datetime.now(timezone.utc)

        promo_code = await PromoRepo.get_code_by_id_for_update(session, promo_code_id)
        if promo_code is None:
            raise PromoCodeNotFoundError

        failure = check_global_limit(promo_code)
        if failure is None:
            user_usage_count = await PromoService._user_usage_count(
                session,
                promo_code=promo_code,
                user_id=user_id,
            )
            failure = check_user_limit(
                promo_code,
                user_id=user_id,
                user_usage_count=user_usage_count,
            )
        if failure is not None:
            logger.warning(
                "promo_redeem_conflict",
                promo_code_id=promo_code_id,
                order_id=order_id,
                user_id=user_id,
                reason=failure.kind.value,
            )
            raise PromoRedemptionConflictError(failure.kind, failure.message)

        usage = await PromoRepo.create_usage(
            session,
            usage=PromoCodeUsage(
                promo_code_id=promo_code.id,
                order_id=order_id,
                user_id=user_id,
                discount_amount=round_money(Decimal(discount_amount)),
                used_at=now_utc,
            ),
        )
        promo_code.used_count += 1
        promo_code.updated_at = now_utc
        await session.flush()

        logger.info(
            "promo_redeemed",
            promo_code_id=promo_code.id,
            order_id=order_id,
            user_id=user_id,
            discount_amount=str(usage.discount_amount),
            used_count=promo_code.used_count,
        )
        return usage
