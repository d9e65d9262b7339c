from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.orders import Order
from app.db.models.promo_code_products import PromoCodeProduct
from app.db.models.promo_code_usages import PromoCodeUsage
from app.db.models.promo_code_users import PromoCodeUser
from app.db.models.promo_codes import PromoCode


class PromoRepo:
    @staticmethod
    async def get_code_by_code(session: AsyncSession, normalized_code: str) -> PromoCode | None:
        stmt = select(PromoCode).where(PromoCode.code == normalized_code)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_code_by_id(session: AsyncSession, promo_code_id: int) -> PromoCode | None:
        return await session.get(PromoCode, promo_code_id)

    @staticmethod
    async def get_code_by_id_for_update(
        session: AsyncSession, promo_code_id: int
    ) -> PromoCode | None:
        stmt = (
            select(PromoCode)
            .where(PromoCode.id == promo_code_id)
            # FOR NO KEY UPDATE: order and usage inserts hold FOR KEY SHARE on this row.
            .with_for_update(key_share=True)
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def list_codes(
        session: AsyncSession,
        *,
        is_active: bool | None = None,
        limit: int = 100,
    ) -> list[PromoCode]:
        stmt = select(PromoCode).order_by(PromoCode.created_at.desc(), PromoCode.id.desc()).limit(limit)
        if is_active is not None:
            stmt = stmt.where(PromoCode.is_active.is_(is_active))
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def create_code(session: AsyncSession, *, promo_code: PromoCode) -> PromoCode:
        session.add(promo_code)
        await session.flush()
        return promo_code

    @staticmethod
    async def list_allowed_user_ids(session: AsyncSession, promo_code_id: int) -> list[int]:
        stmt = (
            select(PromoCodeUser.user_id)
            .where(PromoCodeUser.promo_code_id == promo_code_id)
            .order_by(PromoCodeUser.user_id.asc())
        )
        result = await session.execute(stmt)
        return [int(user_id) for user_id in result.scalars().all()]

    @staticmethod
    async def list_eligible_product_ids(session: AsyncSession, promo_code_id: int) -> list[int]:
        stmt = (
            select(PromoCodeProduct.product_id)
            .where(PromoCodeProduct.promo_code_id == promo_code_id)
            .order_by(PromoCodeProduct.product_id.asc())
        )
        result = await session.execute(stmt)
        return [int(product_id) for product_id in result.scalars().all()]

    @staticmethod
    async def count_assignments_by_code(
        session: AsyncSession,
        promo_code_ids: Sequence[int],
    ) -> dict[int, int]:
        if not promo_code_ids:
            return {}
        stmt = (
            select(PromoCodeUser.promo_code_id, func.count(PromoCodeUser.id))
            .where(PromoCodeUser.promo_code_id.in_(tuple(promo_code_ids)))
            .group_by(PromoCodeUser.promo_code_id)
        )
        result = await session.execute(stmt)
        return {int(code_id): int(count) for code_id, count in result.all()}

    @staticmethod
    async def count_products_by_code(
        session: AsyncSession,
        promo_code_ids: Sequence[int],
    ) -> dict[int, int]:
        if not promo_code_ids:
            return {}
        stmt = (
            select(PromoCodeProduct.promo_code_id, func.count(PromoCodeProduct.id))
            .where(PromoCodeProduct.promo_code_id.in_(tuple(promo_code_ids)))
            .group_by(PromoCodeProduct.promo_code_id)
        )
        result = await session.execute(stmt)
        return {int(code_id): int(count) for code_id, count in result.all()}

    @staticmethod
    async def list_assignments(session: AsyncSession, promo_code_id: int) -> list[PromoCodeUser]:
        stmt = select(PromoCodeUser).where(PromoCodeUser.promo_code_id == promo_code_id)
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def add_assignments(
        session: AsyncSession,
        *,
        promo_code_id: int,
        user_ids: Iterable[int],
        now_utc: datetime,
    ) -> list[PromoCodeUser]:
        assignments = [
            PromoCodeUser(
                promo_code_id=promo_code_id,
                user_id=user_id,
                assigned_at=now_utc,
                is_notified=False,
                notified_at=None,
            )
            for user_id in user_ids
        ]
        session.add_all(assignments)
        await session.flush()
        return assignments

    @staticmethod
    async def remove_assignments(
        session: AsyncSession,
        *,
        promo_code_id: int,
        user_ids: Iterable[int],
    ) -> int:
        values = tuple(user_ids)
        if not values:
            return 0
        stmt = delete(PromoCodeUser).where(
            PromoCodeUser.promo_code_id == promo_code_id,
            PromoCodeUser.user_id.in_(values),
        )
        result = await session.execute(stmt)
        return int(getattr(result, "rowcount", 0) or 0)

    @staticmethod
    async def replace_eligible_products(
        session: AsyncSession,
        *,
        promo_code_id: int,
        product_ids: Iterable[int],
        now_utc: datetime,
    ) -> None:
        await session.execute(
            delete(PromoCodeProduct).where(PromoCodeProduct.promo_code_id == promo_code_id)
        )
        session.add_all(
            PromoCodeProduct(
                promo_code_id=promo_code_id,
                product_id=product_id,
                created_at=now_utc,
            )
            for product_id in product_ids
        )
        await session.flush()

    @staticmethod
    async def list_pending_assignments(
        session: AsyncSession,
        *,
        limit: int = 100,
    ) -> list[PromoCodeUser]:
        stmt = (
            select(PromoCodeUser)
            .where(PromoCodeUser.is_notified.is_(False))
            .order_by(PromoCodeUser.assigned_at.asc(), PromoCodeUser.id.asc())
            .limit(limit)
            .with_for_update(skip_locked=True)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def mark_assignments_notified(
        session: AsyncSession,
        *,
        assignment_ids: Sequence[int],
        now_utc: datetime,
    ) -> int:
        if not assignment_ids:
            return 0
        stmt = (
            update(PromoCodeUser)
            .where(
                PromoCodeUser.id.in_(tuple(assignment_ids)),
                PromoCodeUser.is_notified.is_(False),
            )
            .values(is_notified=True, notified_at=now_utc)
        )
        result = await session.execute(stmt)
        return int(getattr(result, "rowcount", 0) or 0)

    @staticmethod
    async def count_user_usages(
        session: AsyncSession,
        *,
        promo_code_id: int,
        user_id: int,
    ) -> int:
        stmt = select(func.count(PromoCodeUsage.id)).where(
            PromoCodeUsage.promo_code_id == promo_code_id,
            PromoCodeUsage.user_id == user_id,
        )
        result = await session.execute(stmt)
        return int(result.scalar_one() or 0)

    @staticmethod
    async def count_usages(session: AsyncSession, *, promo_code_id: int) -> int:
        stmt = select(func.count(PromoCodeUsage.id)).where(
            PromoCodeUsage.promo_code_id == promo_code_id
        )
        result = await session.execute(stmt)
        return int(result.scalar_one() or 0)

    @staticmethod
    async def create_usage(session: AsyncSession, *, usage: PromoCodeUsage) -> PromoCodeUsage:
        session.add(usage)
        await session.flush()
        return usage

    @staticmethod
    async def list_usages_with_order_numbers(
        session: AsyncSession,
        promo_code_id: int,
    ) -> list[tuple[PromoCodeUsage, str]]:
        stmt = (
            select(PromoCodeUsage, Order.order_number)
            .join(Order, Order.id == PromoCodeUsage.order_id)
            .where(PromoCodeUsage.promo_code_id == promo_code_id)
            .order_by(PromoCodeUsage.used_at.asc(), PromoCodeUsage.id.asc())
        )
        result = await session.execute(stmt)
        return [(usage, str(order_number)) for usage, order_number in result.all()]

    @staticmethod
    async def list_used_count_drift(
        session: AsyncSession,
        *,
        limit: int = 100,
    ) -> list[tuple[int, str, int, int]]:
        ledger_counts = (
            select(
                PromoCodeUsage.promo_code_id.label("promo_code_id"),
                func.count(PromoCodeUsage.id).label("ledger_count"),
            )
            .group_by(PromoCodeUsage.promo_code_id)
            .subquery()
        )
        ledger_count = func.coalesce(ledger_counts.c.ledger_count, 0)
        stmt = (
            select(PromoCode.id, PromoCode.code, PromoCode.used_count, ledger_count)
            .outerjoin(ledger_counts, ledger_counts.c.promo_code_id == PromoCode.id)
            .where(PromoCode.used_count != ledger_count)
            .order_by(PromoCode.id.asc())
            .limit(limit)
        )
        result = await session.execute(stmt)
        return [
            (int(code_id), str(code), int(used_count), int(count))
            for code_id, code, used_count, count in result.all()
        ]
