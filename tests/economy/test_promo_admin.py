from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from app.economy.promo import admin as promo_admin
from app.economy.promo.admin import PromoAdminService, _validate_terms, ensure_utc
from app.economy.promo.errors import PromoCodeAlreadyExistsError, PromoCodeInvalidError
from app.economy.promo.types import DiscountType
from tests.economy.promo_fixtures import NOW_UTC, make_promo_code


def test_ensure_utc_assumes_naive_values_are_utc() -> None:
    naive = datetime(2026, 3, 1, 12, 0)
    cairo = datetime(2026, 3, 1, 14, 0, tzinfo=timezone(timedelta(hours=2)))

    assert ensure_utc(naive) == NOW_UTC
    assert ensure_utc(cairo) == NOW_UTC
    assert ensure_utc(cairo).tzinfo == timezone.utc


@pytest.mark.parametrize(
    ("discount_type", "value"),
    [
        (DiscountType.PERCENTAGE, Decimal("100.01")),
        (DiscountType.PERCENTAGE, Decimal("-1")),
        (DiscountType.FIXED, Decimal("-0.01")),
    ],
)
def test_validate_terms_rejects_out_of_range_values(discount_type: DiscountType, value: Decimal) -> None:
    with pytest.raises(PromoCodeInvalidError):
        _validate_terms(
            discount_type=discount_type,
            discount_value=value,
            start_date=NOW_UTC,
            end_date=None,
        )


def test_validate_terms_rejects_end_before_start() -> None:
    with pytest.raises(PromoCodeInvalidError, match="End date"):
        _validate_terms(
            discount_type=DiscountType.FIXED,
            discount_value=Decimal("50"),
            start_date=NOW_UTC,
            end_date=NOW_UTC - timedelta(seconds=1),
        )


def test_validate_terms_accepts_fixed_amount_above_hundred() -> None:
    _validate_terms(
        discount_type=DiscountType.FIXED,
        discount_value=Decimal("750"),
        start_date=NOW_UTC,
        end_date=NOW_UTC,
    )


@pytest.mark.asyncio
async def test_create_rejects_duplicate_code_case_insensitively(monkeypatch) -> None:
    looked_up: list[str] = []

    async def fake_get_code_by_code(session, normalized_code):
        looked_up.append(normalized_code)
        return make_promo_code(id=3, code="SOFA10")

    monkeypatch.setattr(promo_admin.PromoRepo, "get_code_by_code", fake_get_code_by_code)

    with pytest.raises(PromoCodeAlreadyExistsError):
        await PromoAdminService.create_promo_code(
            object(),
            code=" sofa10",
            description=None,
            discount_type=DiscountType.PERCENTAGE,
            discount_value=Decimal("10"),
            start_date=NOW_UTC,
        )

    assert looked_up == ["SOFA10"]


@pytest.mark.asyncio
async def test_create_rejects_blank_code() -> None:
    with pytest.raises(PromoCodeInvalidError):
        await PromoAdminService.create_promo_code(
            object(),
            code="   ",
            description=None,
            discount_type=DiscountType.FIXED,
            discount_value=Decimal("10"),
            start_date=NOW_UTC,
        )


@pytest.mark.asyncio
async def test_create_rejects_code_with_inner_space() -> None:
    with pytest.raises(PromoCodeInvalidError, match="letters, digits"):
        await PromoAdminService.create_promo_code(
            object(),
            code="summer 20",
            description=None,
            discount_type=DiscountType.PERCENTAGE,
            discount_value=Decimal("20"),
            start_date=NOW_UTC,
        )
