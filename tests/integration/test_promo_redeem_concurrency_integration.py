from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from app.db.models.orders import Order
from app.db.models.promo_codes import PromoCode
from app.db.repo.promo_repo import PromoRepo
from app.db.session import SessionLocal
from app.economy.orders.errors import OrderPromoRejectedError
from app.economy.orders.service import OrderService
from app.economy.orders.types import OrderLine
from app.economy.promo.errors import PromoRedemptionConflictError
from app.economy.promo.service import PromoService
from app.economy.promo.types import PromoErrorKind
from tests.integration.promo_fixtures import create_product, create_promo_code, create_user

UTC = timezone.utc


@pytest.mark.asyncio
async def test_parallel_checkout_on_single_use_code_allows_only_one_redemption() -> None:
    now_utc = datetime.now(UTC)
    user_a = await create_user("parallel-a")
    user_b = await create_user("parallel-b")
    product_id = await create_product("Oak dining table", "2400.00")
    promo_code_id = await create_promo_code(code="ONCE", now_utc=now_utc, usage_limit=1)
    barrier = asyncio.Event()

    async def _attempt(user_id: int) -> str:
        await barrier.wait()
        try:
            async with SessionLocal.begin() as session:
                await OrderService.place_order(
                    session,
                    user_id=user_id,
                    lines=[OrderLine(product_id=product_id, quantity=1)],
                    promo_code="ONCE",
                    now_utc=now_utc,
                )
            return "accepted"
        except (PromoRedemptionConflictError, OrderPromoRejectedError):
            return "rejected"

    task_1 = asyncio.create_task(_attempt(user_a))
    task_2 = asyncio.create_task(_attempt(user_b))
    barrier.set()
    outcomes = await asyncio.gather(task_1, task_2)

    assert sorted(outcomes) == ["accepted", "rejected"]

    async with SessionLocal.begin() as session:
        promo_code = await session.get(PromoCode, promo_code_id)
        usages = await PromoRepo.count_usages(session, promo_code_id=promo_code_id)
        orders = await session.scalar(select(func.count(Order.id)))

    assert promo_code is not None
    assert promo_code.used_count == 1
    assert usages == 1
    # The losing checkout rolled back its order too.
    assert orders == 1


@pytest.mark.asyncio
async def test_parallel_redeem_respects_per_user_limit() -> None:
    now_utc = datetime.now(UTC)
    user_id = await create_user("parallel-same-user")
    product_id = await create_product("Velvet armchair", "800.00")
    promo_code_id = await create_promo_code(
        code="ONEEACH",
        now_utc=now_utc,
        usage_limit=10,
        usage_limit_per_user=1,
    )
    barrier = asyncio.Event()

    async def _attempt() -> str:
        await barrier.wait()
        try:
            async with SessionLocal.begin() as session:
                await OrderService.place_order(
                    session,
                    user_id=user_id,
                    lines=[OrderLine(product_id=product_id, quantity=1)],
                    promo_code="ONEEACH",
                    now_utc=now_utc,
                )
            return "accepted"
        except (PromoRedemptionConflictError, OrderPromoRejectedError):
            return "rejected"

    task_1 = asyncio.create_task(_attempt())
    task_2 = asyncio.create_task(_attempt())
    barrier.set()
    outcomes = await asyncio.gather(task_1, task_2)

    assert sorted(outcomes) == ["accepted", "rejected"]

    async with SessionLocal.begin() as session:
        promo_code = await session.get(PromoCode, promo_code_id)
    assert promo_code is not None
    assert promo_code.used_count == 1


@pytest.mark.asyncio
async def test_parallel_redeem_calls_yield_one_success_and_one_limit_conflict() -> None:
    now_utc = datetime.now(UTC)
    user_id = await create_user("parallel-direct")
    product_id = await create_product("Walnut bookshelf", "950.00")
    promo_code_id = await create_promo_code(code="LIMITED", now_utc=now_utc, usage_limit=1)

    order_ids: list[int] = []
    for _ in range(2):
        async with SessionLocal.begin() as session:
            placed = await OrderService.place_order(
                session,
                user_id=user_id,
                lines=[OrderLine(product_id=product_id, quantity=1)],
                now_utc=now_utc,
            )
            order_ids.append(placed.order_id)

    barrier = asyncio.Event()

    async def _redeem(order_id: int) -> str:
        await barrier.wait()
        try:
            async with SessionLocal.begin() as session:
                await PromoService.redeem(
                    session,
                    promo_code_id=promo_code_id,
                    order_id=order_id,
                    user_id=user_id,
                    discount_amount=Decimal("95.00"),
                    now_utc=now_utc,
                )
            return "accepted"
        except PromoRedemptionConflictError as exc:
            return exc.kind.value

    task_1 = asyncio.create_task(_redeem(order_ids[0]))
    task_2 = asyncio.create_task(_redeem(order_ids[1]))
    barrier.set()
    outcomes = await asyncio.gather(task_1, task_2)

    assert sorted(outcomes) == ["GLOBAL_LIMIT_EXCEEDED", "accepted"]

    async with SessionLocal() as session:
        result = await PromoService.validate(
            session,
            code="limited",
            user_id=user_id,
            order_subtotal=Decimal("950.00"),
            product_ids=[product_id],
            now_utc=now_utc,
        )
    assert result.error_kind is PromoErrorKind.GLOBAL_LIMIT_EXCEEDED


@pytest.mark.asyncio
async def test_checkouts_that_both_inserted_orders_before_locking_do_not_deadlock(monkeypatch) -> None:
    now_utc = datetime.now(UTC)
    user_a = await create_user("lock-order-a")
    user_b = await create_user("lock-order-b")
    product_id = await create_product("Linen sofa", "3100.00")
    promo_code_id = await create_promo_code(code="LASTONE", now_utc=now_utc, usage_limit=1)

    # Both orders referencing the code exist before either checkout takes the row lock.
    both_orders_inserted = asyncio.Barrier(2)
    lock_code_row = PromoRepo.get_code_by_id_for_update

    async def _lock_after_both_orders(session, promo_code_id: int):
        await both_orders_inserted.wait()
        return await lock_code_row(session, promo_code_id)

    monkeypatch.setattr(PromoRepo, "get_code_by_id_for_update", _lock_after_both_orders)

    async def _attempt(user_id: int) -> str:
        try:
            async with SessionLocal.begin() as session:
                await OrderService.place_order(
                    session,
                    user_id=user_id,
                    lines=[OrderLine(product_id=product_id, quantity=1)],
                    promo_code="LASTONE",
                    now_utc=now_utc,
                )
            return "accepted"
        except (PromoRedemptionConflictError, OrderPromoRejectedError):
            return "rejected"

    outcomes = await asyncio.wait_for(
        asyncio.gather(_attempt(user_a), _attempt(user_b)),
        timeout=30,
    )

    assert sorted(outcomes) == ["accepted", "rejected"]

    async with SessionLocal.begin() as session:
        promo_code = await session.get(PromoCode, promo_code_id)
        usages = await PromoRepo.count_usages(session, promo_code_id=promo_code_id)
        orders = await session.scalar(select(func.count(Order.id)))

    assert promo_code is not None
    assert promo_code.used_count == 1
    assert usages == 1
    assert orders == 1
