from __future__ import annotations

from decimal import Decimal
from types import SimpleNamespace

import pytest

from app.economy.orders import service as order_service
from app.economy.orders.errors import OrderPromoRejectedError, OrderValidationError
from app.economy.orders.service import OrderService
from app.economy.orders.types import OrderLine
from app.economy.promo.errors import PromoRedemptionConflictError
from app.economy.promo.types import (
    PromoErrorKind,
    PromoRuleFailure,
    PromoValidationResult,
)
from tests.economy.promo_fixtures import NOW_UTC

PRODUCTS = {
    1: SimpleNamespace(id=1, price=Decimal("1200.00"), is_active=True),
    2: SimpleNamespace(id=2, price=Decimal("150.00"), is_active=True),
    3: SimpleNamespace(id=3, price=Decimal("99.00"), is_active=False),
}


class _Recorder:
    def __init__(self) -> None:
        self.orders: list[object] = []
        self.items: list[object] = []
        self.validations: list[dict[str, object]] = []
        self.redeems: list[dict[str, object]] = []


def _install(
    monkeypatch,
    *,
    validation: PromoValidationResult | None = None,
    redeem_error: Exception | None = None,
) -> _Recorder:
    recorder = _Recorder()

    async def list_by_ids(session, product_ids):
        return [PRODUCTS[product_id] for product_id in product_ids if product_id in PRODUCTS]

    async def create(session, *, order, items):
        order.id = 501
        recorder.orders.append(order)
        recorder.items.extend(items)
        return order

    async def validate(session, **kwargs):
        recorder.validations.append(kwargs)
        return validation

    async def redeem(session, **kwargs):
        if redeem_error is not None:
            raise redeem_error
        recorder.redeems.append(kwargs)

    monkeypatch.setattr(order_service.ProductsRepo, "list_by_ids", list_by_ids)
    monkeypatch.setattr(order_service.OrdersRepo, "create", create)
    monkeypatch.setattr(order_service.PromoService, "validate", validate)
    monkeypatch.setattr(order_service.PromoService, "redeem", redeem)
    return recorder


def _applied(discount: str) -> PromoValidationResult:
    return PromoValidationResult(
        valid=True,
        message="Promo code applied",
        discount_amount=Decimal(discount),
        code="SAVE10",
        promo_code_id=5,
    )


@pytest.mark.asyncio
async def test_place_order_without_promo(monkeypatch) -> None:
    recorder = _install(monkeypatch)

    placed = await OrderService.place_order(
        object(),
        user_id=7,
        lines=[OrderLine(product_id=2, quantity=2), OrderLine(product_id=2, quantity=1)],
        now_utc=NOW_UTC,
    )

    assert placed.subtotal == Decimal("450.00")
    assert placed.discount_amount == Decimal("0.00")
    assert placed.total == Decimal("450.00")
    assert placed.order_number.startswith("ORD-20260301-")
    assert [(item.product_id, item.quantity) for item in recorder.items] == [(2, 3)]
    assert recorder.validations == []
    assert recorder.redeems == []


@pytest.mark.asyncio
async def test_place_order_redeems_applied_promo(monkeypatch) -> None:
    recorder = _install(monkeypatch, validation=_applied("135.00"))

    placed = await OrderService.place_order(
        object(),
        user_id=7,
        lines=[OrderLine(product_id=1, quantity=1), OrderLine(product_id=2, quantity=1)],
        promo_code="save10",
        now_utc=NOW_UTC,
    )

    assert placed.total == Decimal("1215.00")
    assert placed.promo_code == "SAVE10"
    assert recorder.orders[0].promo_code_id == 5
    assert recorder.validations[0]["order_subtotal"] == Decimal("1350.00")
    assert sorted(recorder.validations[0]["product_ids"]) == [1, 2]
    assert recorder.redeems == [
        {
            "promo_code_id": 5,
            "order_id": 501,
            "user_id": 7,
            "discount_amount": Decimal("135.00"),
            "now_utc": NOW_UTC,
        }
    ]


@pytest.mark.asyncio
async def test_place_order_rejects_invalid_promo(monkeypatch) -> None:
    recorder = _install(
        monkeypatch,
        validation=PromoValidationResult.failure(
            PromoRuleFailure(PromoErrorKind.USER_LIMIT_EXCEEDED, "limit")
        ),
    )

    with pytest.raises(OrderPromoRejectedError) as exc_info:
        await OrderService.place_order(
            object(),
            user_id=7,
            lines=[OrderLine(product_id=1, quantity=1)],
            promo_code="SAVE10",
            now_utc=NOW_UTC,
        )

    assert exc_info.value.kind is PromoErrorKind.USER_LIMIT_EXCEEDED
    assert recorder.orders == []


@pytest.mark.asyncio
async def test_place_order_propagates_redeem_conflict(monkeypatch) -> None:
    _install(
        monkeypatch,
        validation=_applied("10.00"),
        redeem_error=PromoRedemptionConflictError(PromoErrorKind.GLOBAL_LIMIT_EXCEEDED, "used up"),
    )

    with pytest.raises(PromoRedemptionConflictError):
        await OrderService.place_order(
            object(),
            user_id=7,
            lines=[OrderLine(product_id=1, quantity=1)],
            promo_code="SAVE10",
            now_utc=NOW_UTC,
        )


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "lines",
    [
        [],
        [OrderLine(product_id=1, quantity=0)],
        [OrderLine(product_id=3, quantity=1)],
        [OrderLine(product_id=42, quantity=1)],
    ],
)
async def test_place_order_rejects_bad_lines(monkeypatch, lines: list[OrderLine]) -> None:
    _install(monkeypatch)

    with pytest.raises(OrderValidationError):
        await OrderService.place_order(object(), user_id=None, lines=lines, now_utc=NOW_UTC)
