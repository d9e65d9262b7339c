from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from app.db.models.orders import Order
from app.db.repo.orders_repo import OrdersRepo
from app.db.models.promo_code_usages import PromoCodeUsage
from app.db.models.promo_codes import PromoCode
from app.db.session import SessionLocal
from app.economy.orders.errors import OrderPromoRejectedError
from app.economy.orders.service import OrderService
from app.economy.orders.types import OrderLine
from app.economy.promo.service import PromoService
from app.economy.promo.types import DiscountType, PromoErrorKind
from tests.integration.promo_fixtures import create_product, create_promo_code, create_user

UTC = timezone.utc


async def _checkout(*, user_id: int | None, product_id: int, code: str, now_utc: datetime):
    async with SessionLocal.begin() as session:
        return await OrderService.place_order(
            session,
            user_id=user_id,
            lines=[OrderLine(product_id=product_id, quantity=1)],
            promo_code=code,
            now_utc=now_utc,
        )


async def _validate(
    *,
    code: str,
    user_id: int | None,
    subtotal: str,
    product_ids: list[int],
    now_utc: datetime,
):
    async with SessionLocal() as session:
        return await PromoService.validate(
            session,
            code=code,
            user_id=user_id,
            order_subtotal=Decimal(subtotal),
            product_ids=product_ids,
            now_utc=now_utc,
        )


@pytest.mark.asyncio
async def test_checkout_applies_discount_and_writes_ledger_row() -> None:
    now_utc = datetime.now(UTC)
    user_id = await create_user("checkout")
    product_id = await create_product("Linen sofa", "1000.00")
    promo_code_id = await create_promo_code(code="SAVE20", now_utc=now_utc, discount_value="20")

    placed = await _checkout(user_id=user_id, product_id=product_id, code="save20", now_utc=now_utc)

    assert placed.discount_amount == Decimal("200.00")
    assert placed.total == Decimal("800.00")

    async with SessionLocal() as session:
        order = await OrdersRepo.get_by_id(session, placed.order_id)
        items = await OrdersRepo.list_items(session, placed.order_id)
        promo_code = await session.get(PromoCode, promo_code_id)
        usage = await session.scalar(
            select(PromoCodeUsage).where(PromoCodeUsage.order_id == placed.order_id)
        )

    assert order is not None and order.promo_code_id == promo_code_id
    assert [(item.product_id, item.quantity, item.line_total) for item in items] == [
        (product_id, 1, Decimal("1000.00"))
    ]
    assert promo_code is not None and promo_code.used_count == 1
    assert usage is not None
    assert usage.user_id == user_id
    assert usage.discount_amount == Decimal("200.00")


@pytest.mark.asyncio
async def test_fixed_discount_capped_by_maximum() -> None:
    now_utc = datetime.now(UTC)
    product_id = await create_product("Side table", "400.00")
    await create_promo_code(
        code="FLAT50",
        now_utc=now_utc,
        discount_type=DiscountType.FIXED,
        discount_value="50",
        maximum_discount_amount=Decimal("30"),
    )

    result = await _validate(
        code="FLAT50",
        user_id=None,
        subtotal="400.00",
        product_ids=[product_id],
        now_utc=now_utc,
    )

    assert result.valid is True
    assert result.discount_amount == Decimal("30.00")


@pytest.mark.asyncio
async def test_global_limit_reached_after_usage_limit_redemptions() -> None:
    now_utc = datetime.now(UTC)
    user_id = await create_user("global-limit")
    product_id = await create_product("Bar stool", "150.00")
    await create_promo_code(code="TWICE", now_utc=now_utc, usage_limit=2)

    await _checkout(user_id=user_id, product_id=product_id, code="TWICE", now_utc=now_utc)
    await _checkout(user_id=user_id, product_id=product_id, code="TWICE", now_utc=now_utc)

    result = await _validate(
        code="TWICE",
        user_id=user_id,
        subtotal="150.00",
        product_ids=[product_id],
        now_utc=now_utc,
    )
    assert result.error_kind is PromoErrorKind.GLOBAL_LIMIT_EXCEEDED


@pytest.mark.asyncio
async def test_per_user_limit_blocks_only_that_user() -> None:
    now_utc = datetime.now(UTC)
    first_user = await create_user("per-user-a")
    second_user = await create_user("per-user-b")
    product_id = await create_product("Floor lamp", "300.00")
    await create_promo_code(code="ONEEACH", now_utc=now_utc, usage_limit_per_user=1)

    await _checkout(user_id=first_user, product_id=product_id, code="ONEEACH", now_utc=now_utc)

    first = await _validate(
        code="ONEEACH",
        user_id=first_user,
        subtotal="300.00",
        product_ids=[product_id],
        now_utc=now_utc,
    )
    second = await _validate(
        code="ONEEACH",
        user_id=second_user,
        subtotal="300.00",
        product_ids=[product_id],
        now_utc=now_utc,
    )

    assert first.error_kind is PromoErrorKind.USER_LIMIT_EXCEEDED
    assert second.valid is True


@pytest.mark.asyncio
async def test_rejected_promo_leaves_no_order_behind() -> None:
    now_utc = datetime.now(UTC)
    user_id = await create_user("rejected")
    allowed_user = await create_user("vip")
    product_id = await create_product("Dresser", "900.00")
    await create_promo_code(code="VIP10", now_utc=now_utc, user_ids=[allowed_user])

    with pytest.raises(OrderPromoRejectedError) as exc_info:
        await _checkout(user_id=user_id, product_id=product_id, code="VIP10", now_utc=now_utc)

    assert exc_info.value.kind is PromoErrorKind.NOT_ELIGIBLE_USER
    async with SessionLocal() as session:
        assert (await session.scalar(select(func.count(Order.id)))) == 0


@pytest.mark.asyncio
async def test_window_and_minimum_rules_against_store() -> None:
    now_utc = datetime.now(UTC)
    product_id = await create_product("Bed frame", "4000.00")
    await create_promo_code(
        code="LATER",
        now_utc=now_utc,
        start_date=now_utc + timedelta(days=1),
        end_date=None,
    )
    await create_promo_code(
        code="BIGORDER",
        now_utc=now_utc,
        minimum_order_amount=Decimal("5000"),
    )

    later = await _validate(
        code="LATER",
        user_id=None,
        subtotal="4000",
        product_ids=[product_id],
        now_utc=now_utc,
    )
    big = await _validate(
        code="BIGORDER",
        user_id=None,
        subtotal="4000",
        product_ids=[product_id],
        now_utc=now_utc,
    )

    assert later.error_kind is PromoErrorKind.OUT_OF_WINDOW
    assert big.error_kind is PromoErrorKind.BELOW_MINIMUM
