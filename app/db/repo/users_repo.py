from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.users import User


class UsersRepo:
    @staticmethod
    async def list_by_ids(
        session: AsyncSession,
        user_ids: Sequence[int],
    ) -> list[User]:
        ids = tuple({int(user_id) for user_id in user_ids})
        if not ids:
            return []
        stmt = select(User).where(User.id.in_(ids))
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def list_active_ids(
        session: AsyncSession,
        user_ids: Sequence[int],
    ) -> list[int]:
        ids = tuple({int(user_id) for user_id in user_ids if int(user_id) > 0})
        if not ids:
            return []
        stmt = (
            select(User.id)
            .where(User.id.in_(ids), User.is_active.is_(True))
            .order_by(User.id.asc())
        )
        result = await session.execute(stmt)
        return [int(user_id) for user_id in result.scalars().all()]

    @staticmethod
    async def create(
        session: AsyncSession,
        *,
        email: str,
        full_name: str | None,
        phone: str | None = None,
        is_active: bool = True,
    ) -> User:
        user = User(
            email=email,
            full_name=full_name,
            phone=phone,
            is_active=is_active,
        )
        session.add(user)
        await session.flush()
        return user
