from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.orders import Order, OrderItem


class OrdersRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, order_id: int) -> Order | None:
        return await session.get(Order, order_id)

    @staticmethod
    async def create(session: AsyncSession, *, order: Order, items: list[OrderItem]) -> Order:
        session.add(order)
        await session.flush()
        for item in items:
            item.order_id = order.id
        session.add_all(items)
        await session.flush()
        return order

    @staticmethod
    async def list_items(session: AsyncSession, order_id: int) -> list[OrderItem]:
        stmt = select(OrderItem).where(OrderItem.order_id == order_id).order_by(OrderItem.id.asc())
        result = await session.execute(stmt)
        return list(result.scalars().all())
