from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

from app.db.models.promo_codes import PromoCode

NOW_UTC = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def make_promo_code(**overrides: object) -> PromoCode:
    values: dict[str, object] = {
        "id": 1,
        "code": "SAVE20",
        "description": None,
        "discount_type": "PERCENTAGE",
        "discount_value": Decimal("20.00"),
        "start_date": NOW_UTC - timedelta(days=1),
        "end_date": NOW_UTC + timedelta(days=30),
        "usage_limit": None,
        "used_count": 0,
        "usage_limit_per_user": None,
        "minimum_order_amount": None,
        "maximum_discount_amount": None,
        "is_active": True,
        "created_by_user_id": None,
        "created_at": NOW_UTC - timedelta(days=2),
        "updated_at": None,
    }
    values.update(overrides)
    return PromoCode(**values)
