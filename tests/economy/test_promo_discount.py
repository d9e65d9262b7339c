from decimal import Decimal
from types import SimpleNamespace

import pytest

from app.economy.promo.discount import compute_discount, round_money


def _terms(discount_type: str, value: str, maximum: str | None = None) -> SimpleNamespace:
    return SimpleNamespace(
        discount_type=discount_type,
        discount_value=Decimal(value),
        maximum_discount_amount=None if maximum is None else Decimal(maximum),
    )


def test_percentage_discount_of_subtotal() -> None:
    assert compute_discount(_terms("PERCENTAGE", "20"), Decimal("1000")) == Decimal("200.00")


def test_fixed_discount_clamped_to_maximum() -> None:
    assert compute_discount(_terms("FIXED", "50", maximum="30"), Decimal("1000")) == Decimal("30.00")


def test_percentage_discount_clamped_to_maximum() -> None:
    assert compute_discount(_terms("PERCENTAGE", "50", maximum="100"), Decimal("1000")) == Decimal(
        "100.00"
    )


def test_percentage_above_hundred_never_exceeds_subtotal() -> None:
    assert compute_discount(_terms("PERCENTAGE", "150"), Decimal("80")) == Decimal("80.00")


def test_fixed_discount_never_exceeds_subtotal() -> None:
    assert compute_discount(_terms("FIXED", "500"), Decimal("120.50")) == Decimal("120.50")


@pytest.mark.parametrize("value", ["0", "-5"])
def test_non_positive_value_gives_no_discount(value: str) -> None:
    assert compute_discount(_terms("FIXED", value), Decimal("100")) == Decimal("0.00")


def test_zero_subtotal_gives_no_discount() -> None:
    assert compute_discount(_terms("PERCENTAGE", "10"), Decimal("0")) == Decimal("0.00")


def test_discount_rounds_half_up_to_cents() -> None:
    # 12.5% of 0.20 = 0.025
    assert compute_discount(_terms("PERCENTAGE", "12.5"), Decimal("0.20")) == Decimal("0.03")
    assert round_money(Decimal("2.345")) == Decimal("2.35")


def test_compute_discount_is_pure() -> None:
    terms = _terms("PERCENTAGE", "15", maximum="40")
    first = compute_discount(terms, Decimal("333.33"))
    second = compute_discount(terms, Decimal("333.33"))

    assert first == second == Decimal("40.00")
    assert terms.discount_value == Decimal("15")


def test_unknown_discount_type_is_rejected() -> None:
    with pytest.raises(ValueError):
        compute_discount(_terms("BOGO", "10"), Decimal("100"))
