from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.products import Product


class ProductsRepo:
    @staticmethod
    async def list_by_ids(session: AsyncSession, product_ids: Sequence[int]) -> list[Product]:
        ids = tuple({int(product_id) for product_id in product_ids})
        if not ids:
            return []
        stmt = select(Product).where(Product.id.in_(ids))
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def list_existing_ids(session: AsyncSession, product_ids: Sequence[int]) -> list[int]:
        ids = tuple({int(product_id) for product_id in product_ids})
        if not ids:
            return []
        stmt = select(Product.id).where(Product.id.in_(ids)).order_by(Product.id.asc())
        result = await session.execute(stmt)
        return [int(product_id) for product_id in result.scalars().all()]

    @staticmethod
    async def create(
        session: AsyncSession,
        *,
        name: str,
        price: Decimal,
        is_active: bool = True,
    ) -> Product:
        product = Product(name=name, price=price, is_active=is_active)
        session.add(product)
        await session.flush()
        return product
