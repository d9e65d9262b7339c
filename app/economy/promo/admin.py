from __future__ import annotations

from collections import defaultdict
from collections.abc import Sequence
from datetime import datetime, timezone
from decimal import Decimal

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.promo_codes import PromoCode
from app.db.repo.products_repo import ProductsRepo
from app.db.repo.promo_repo import PromoRepo
from app.db.repo.users_repo import UsersRepo
from app.economy.promo.constants import PERCENTAGE_MAX
from app.economy.promo.errors import (
    PromoCodeAlreadyExistsError,
    PromoCodeInvalidError,
    PromoCodeNotFoundError,
)
from app.economy.promo.rules import is_currently_valid, is_expired
from app.economy.promo.types import (
    DiscountType,
    PromoAssignmentNotice,
    PromoCodeListItem,
    PromoCodeSummary,
    PromoCodeUsageReport,
    PromoUsageRecord,
    PromoUserUsage,
)
from app.services.promo_codes import is_valid_promo_code, normalize_promo_code

logger = structlog.get_logger(__name__)


def ensure_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _validate_terms(
    *,
    discount_type: DiscountType,
    discount_value: Decimal,
    start_date: datetime,
    end_date: datetime | None,
) -> None:
    if discount_type is DiscountType.PERCENTAGE and not (0 <= discount_value <= PERCENTAGE_MAX):
        raise PromoCodeInvalidError("Percentage discount must be between 0 and 100")
    if discount_value < 0:
        raise PromoCodeInvalidError("Discount value cannot be negative")
    if end_date is not None and end_date < start_date:
        raise PromoCodeInvalidError("End date must be after start date")


class PromoAdminService:
    @staticmethod
    async def _get_or_raise(session: AsyncSession, promo_code_id: int) -> PromoCode:
        promo_code = await PromoRepo.get_code_by_id(session, promo_code_id)
        if promo_code is None:
            raise PromoCodeNotFoundError
        return promo_code

    @staticmethod
    async def _ensure_code_available(
        session: AsyncSession,
        *,
        normalized_code: str,
        exclude_id: int | None = None,
    ) -> None:
        if not normalized_code:
            raise PromoCodeInvalidError("Promo code must not be empty")
        if not is_valid_promo_code(normalized_code):
            raise PromoCodeInvalidError(
                "Promo code must be 2-50 letters, digits, hyphens or underscores"
            )
        existing = await PromoRepo.get_code_by_code(session, normalized_code)
        if existing is not None and existing.id != exclude_id:
            raise PromoCodeAlreadyExistsError(
                f"A promo code with code '{normalized_code}' already exists"
            )

    @staticmethod
    async def _sync_allowed_users(
        session: AsyncSession,
        *,
        promo_code_id: int,
        user_ids: Sequence[int],
        now_utc: datetime,
    ) -> None:
        # Only registered, active users can be put on the allow-list.
        wanted = set(await UsersRepo.list_active_ids(session, user_ids))
        current = set(await PromoRepo.list_allowed_user_ids(session, promo_code_id))
        await PromoRepo.remove_assignments(
            session,
            promo_code_id=promo_code_id,
            user_ids=sorted(current - wanted),
        )
        await PromoRepo.add_assignments(
            session,
            promo_code_id=promo_code_id,
            user_ids=sorted(wanted - current),
            now_utc=now_utc,
        )

    @staticmethod
    async def _sync_eligible_products(
        session: AsyncSession,
        *,
        promo_code_id: int,
        product_ids: Sequence[int],
        now_utc: datetime,
    ) -> None:
        existing_ids = await ProductsRepo.list_existing_ids(session, product_ids)
        await PromoRepo.replace_eligible_products(
            session,
            promo_code_id=promo_code_id,
            product_ids=existing_ids,
            now_utc=now_utc,
        )

    @staticmethod
    async def create_promo_code(
        session: AsyncSession,
        *,
        code: str,
        description: str | None,
        discount_type: DiscountType,
        discount_value: Decimal,
        start_date: datetime,
        end_date: datetime | None = None,
        usage_limit: int | None = None,
        usage_limit_per_user: int | None = None,
        minimum_order_amount: Decimal | None = None,
        maximum_discount_amount: Decimal | None = None,
        user_ids: Sequence[int] = (),
        product_ids: Sequence[int] = (),
        created_by_user_id: int | None = None,
        now_utc: datetime | None = None,
    ) -> PromoCodeSummary:
        now_utc = now_utc or datetime.now(timezone.utc)
        normalized_code = normalize_promo_code(code)
        start_date = ensure_utc(start_date)
        end_date = ensure_utc(end_date) if end_date is not None else None

        await PromoAdminService._ensure_code_available(session, normalized_code=normalized_code)
        _validate_terms(
            discount_type=discount_type,
            discount_value=discount_value,
            start_date=start_date,
            end_date=end_date,
        )

        promo_code = await PromoRepo.create_code(
            session,
            promo_code=PromoCode(
                code=normalized_code,
                description=description.strip() if description else None,
                discount_type=discount_type.value,
                discount_value=discount_value,
                start_date=start_date,
                end_date=end_date,
                usage_limit=usage_limit,
                used_count=0,
                usage_limit_per_user=usage_limit_per_user,
                minimum_order_amount=minimum_order_amount,
                maximum_discount_amount=maximum_discount_amount,
                is_active=True,
                created_by_user_id=created_by_user_id,
                created_at=now_utc,
                updated_at=None,
            ),
        )
        if user_ids:
            await PromoAdminService._sync_allowed_users(
                session,
                promo_code_id=promo_code.id,
                user_ids=user_ids,
                now_utc=now_utc,
            )
        if product_ids:
            await PromoAdminService._sync_eligible_products(
                session,
                promo_code_id=promo_code.id,
                product_ids=product_ids,
                now_utc=now_utc,
            )

        logger.info(
            "promo_code_created",
            promo_code_id=promo_code.id,
            code=promo_code.code,
            created_by_user_id=created_by_user_id,
        )
        return await PromoAdminService.get_promo_code(session, promo_code.id, now_utc=now_utc)

    @staticmethod
    async def update_promo_code(
        session: AsyncSession,
        *,
        promo_code_id: int,
        code: str | None = None,
        description: str | None = None,
        discount_type: DiscountType | None = None,
        discount_value: Decimal | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        usage_limit: int | None = None,
        usage_limit_per_user: int | None = None,
        minimum_order_amount: Decimal | None = None,
        maximum_discount_amount: Decimal | None = None,
        is_active: bool | None = None,
        user_ids: Sequence[int] | None = None,
        product_ids: Sequence[int] | None = None,
        now_utc: datetime | None = None,
    ) -> PromoCodeSummary:
        """Apply a partial update; ``None`` leaves a field unchanged.

        Passing ``user_ids`` or ``product_ids`` replaces the whole list. Users who
        stay on the allow-list keep their assignment and notification state.
        """
        now_utc = now_utc or datetime.now(timezone.utc)
        promo_code = await PromoRepo.get_code_by_id_for_update(session, promo_code_id)
        if promo_code is None:
            raise PromoCodeNotFoundError

        if code is not None:
            normalized_code = normalize_promo_code(code)
            await PromoAdminService._ensure_code_available(
                session,
                normalized_code=normalized_code,
                exclude_id=promo_code.id,
            )
            promo_code.code = normalized_code

        next_type = discount_type or DiscountType(promo_code.discount_type)
        next_value = discount_value if discount_value is not None else promo_code.discount_value
        next_start = ensure_utc(start_date) if start_date is not None else promo_code.start_date
        next_end = ensure_utc(end_date) if end_date is not None else promo_code.end_date
        _validate_terms(
            discount_type=next_type,
            discount_value=next_value,
            start_date=next_start,
            end_date=next_end,
        )
        if usage_limit is not None and usage_limit < promo_code.used_count:
            raise PromoCodeInvalidError("Usage limit cannot be lower than the current usage count")

        promo_code.discount_type = next_type.value
        promo_code.discount_value = next_value
        promo_code.start_date = next_start
        promo_code.end_date = next_end
        if description is not None:
            promo_code.description = description.strip() or None
        if usage_limit is not None:
            promo_code.usage_limit = usage_limit
        if usage_limit_per_user is not None:
            promo_code.usage_limit_per_user = usage_limit_per_user
        if minimum_order_amount is not None:
            promo_code.minimum_order_amount = minimum_order_amount
        if maximum_discount_amount is not None:
            promo_code.maximum_discount_amount = maximum_discount_amount
        if is_active is not None:
            promo_code.is_active = is_active
        promo_code.updated_at = now_utc
        await session.flush()

        if user_ids is not None:
            await PromoAdminService._sync_allowed_users(
                session,
                promo_code_id=promo_code.id,
                user_ids=user_ids,
                now_utc=now_utc,
            )
        if product_ids is not None:
            await PromoAdminService._sync_eligible_products(
                session,
                promo_code_id=promo_code.id,
                product_ids=product_ids,
                now_utc=now_utc,
            )

        logger.info("promo_code_updated", promo_code_id=promo_code.id, code=promo_code.code)
        return await PromoAdminService.get_promo_code(session, promo_code.id, now_utc=now_utc)

    @staticmethod
    async def deactivate_promo_code(
        session: AsyncSession,
        *,
        promo_code_id: int,
        now_utc: datetime | None = None,
    ) -> None:
        now_utc = now_utc or datetime.now(timezone.utc)
        promo_code = await PromoRepo.get_code_by_id_for_update(session, promo_code_id)
        if promo_code is None:
            raise PromoCodeNotFoundError

        promo_code.is_active = False
        promo_code.updated_at = now_utc
        await session.flush()
        logger.info("promo_code_deactivated", promo_code_id=promo_code.id, code=promo_code.code)

    @staticmethod
    async def get_promo_code(
        session: AsyncSession,
        promo_code_id: int,
        *,
        now_utc: datetime | None = None,
    ) -> PromoCodeSummary:
        now_utc = now_utc or datetime.now(timezone.utc)
        promo_code = await PromoAdminService._get_or_raise(session, promo_code_id)
        return PromoCodeSummary(
            promo_code_id=promo_code.id,
            code=promo_code.code,
            description=promo_code.description,
            discount_type=DiscountType(promo_code.discount_type),
            discount_value=promo_code.discount_value,
            start_date=promo_code.start_date,
            end_date=promo_code.end_date,
            usage_limit=promo_code.usage_limit,
            used_count=promo_code.used_count,
            usage_limit_per_user=promo_code.usage_limit_per_user,
            minimum_order_amount=promo_code.minimum_order_amount,
            maximum_discount_amount=promo_code.maximum_discount_amount,
            is_active=promo_code.is_active,
            is_expired=is_expired(promo_code, now_utc=now_utc),
            is_valid=is_currently_valid(promo_code, now_utc=now_utc),
            created_at=promo_code.created_at,
            updated_at=promo_code.updated_at,
            created_by_user_id=promo_code.created_by_user_id,
            user_ids=await PromoRepo.list_allowed_user_ids(session, promo_code.id),
            product_ids=await PromoRepo.list_eligible_product_ids(session, promo_code.id),
        )

    @staticmethod
    async def list_promo_codes(
        session: AsyncSession,
        *,
        is_active: bool | None = None,
        limit: int = 100,
        now_utc: datetime | None = None,
    ) -> list[PromoCodeListItem]:
        now_utc = now_utc or datetime.now(timezone.utc)
        promo_codes = await PromoRepo.list_codes(session, is_active=is_active, limit=limit)
        code_ids = [promo_code.id for promo_code in promo_codes]
        user_counts = await PromoRepo.count_assignments_by_code(session, code_ids)
        product_counts = await PromoRepo.count_products_by_code(session, code_ids)
        return [
            PromoCodeListItem(
                promo_code_id=promo_code.id,
                code=promo_code.code,
                description=promo_code.description,
                discount_type=DiscountType(promo_code.discount_type),
                discount_value=promo_code.discount_value,
                start_date=promo_code.start_date,
                end_date=promo_code.end_date,
                usage_limit=promo_code.usage_limit,
                used_count=promo_code.used_count,
                user_count=user_counts.get(promo_code.id, 0),
                product_count=product_counts.get(promo_code.id, 0),
                is_active=promo_code.is_active,
                is_expired=is_expired(promo_code, now_utc=now_utc),
                is_valid=is_currently_valid(promo_code, now_utc=now_utc),
            )
            for promo_code in promo_codes
        ]

    @staticmethod
    async def get_promo_code_usage(
        session: AsyncSession,
        promo_code_id: int,
    ) -> PromoCodeUsageReport:
        """Per-user usage for allow-listed users first, then other redeeming users."""
        promo_code = await PromoAdminService._get_or_raise(session, promo_code_id)
        allowed_user_ids = await PromoRepo.list_allowed_user_ids(session, promo_code.id)
        usages = await PromoRepo.list_usages_with_order_numbers(session, promo_code.id)

        records_by_user: dict[int, list[PromoUsageRecord]] = defaultdict(list)
        for usage, order_number in usages:
            if usage.user_id is None:
                continue
            records_by_user[usage.user_id].append(
                PromoUsageRecord(
                    order_id=usage.order_id,
                    order_number=order_number,
                    discount_amount=usage.discount_amount,
                    used_at=usage.used_at,
                )
            )

        allowed = set(allowed_user_ids)
        ordered_user_ids = list(allowed_user_ids)
        ordered_user_ids.extend(
            user_id for user_id in sorted(records_by_user) if user_id not in allowed
        )
        users = {user.id: user for user in await UsersRepo.list_by_ids(session, ordered_user_ids)}

        user_usages: list[PromoUserUsage] = []
        for user_id in ordered_user_ids:
            user = users.get(user_id)
            records = records_by_user.get(user_id, [])
            limit = promo_code.usage_limit_per_user
            user_usages.append(
                PromoUserUsage(
                    user_id=user_id,
                    user_name=(user.full_name or user.email) if user is not None else "",
                    user_email=user.email if user is not None else None,
                    usage_count=len(records),
                    usage_limit=limit,
                    has_exceeded_limit=limit is not None and len(records) >= limit,
                    usage_records=records,
                )
            )

        return PromoCodeUsageReport(
            promo_code_id=promo_code.id,
            code=promo_code.code,
            user_usages=user_usages,
        )

    @staticmethod
    async def claim_pending_assignment_notices(
        session: AsyncSession,
        *,
        limit: int = 100,
        now_utc: datetime | None = None,
    ) -> list[PromoAssignmentNotice]:
        """Mark up to ``limit`` un-notified allow-list assignments as notified.

        Rows are locked with ``SKIP LOCKED`` so parallel workers never claim the
        same assignment twice.
        """
        now_utc = now_utc or datetime.now(timezone.utc)
        assignments = await PromoRepo.list_pending_assignments(session, limit=limit)
        notices = [
            PromoAssignmentNotice(
                assignment_id=assignment.id,
                promo_code_id=assignment.promo_code_id,
                user_id=assignment.user_id,
            )
            for assignment in assignments
        ]
        await PromoRepo.mark_assignments_notified(
            session,
            assignment_ids=[notice.assignment_id for notice in notices],
            now_utc=now_utc,
        )
        return notices
