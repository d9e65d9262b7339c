from __future__ import annotations

import pytest
from sqlalchemy import text

from app.core.integration_db_safety import assert_safe_integration_db
from app.db.session import dispose_engine, engine

# Children first so the list also reads as a safe delete order.
PROMO_AND_ORDER_TABLES = (
    "promo_code_usages",
    "promo_code_products",
    "promo_code_users",
    "order_items",
    "orders",
    "promo_codes",
    "products",
    "users",
)


async def _reset_tables() -> None:
    async with engine.begin() as conn:
        await conn.execute(
            text(f"TRUNCATE TABLE {', '.join(PROMO_AND_ORDER_TABLES)} RESTART IDENTITY CASCADE")
        )


@pytest.fixture(scope="session", autouse=True)
def refuse_unsafe_database() -> None:
    assert_safe_integration_db(engine.url.render_as_string(hide_password=False))


@pytest.fixture(autouse=True)
async def clean_promo_tables():
    # Each test runs on its own event loop; pooled asyncpg connections cannot follow.
    await dispose_engine()
    try:
        await _reset_tables()
    except Exception as exc:  # pragma: no cover - depends on a local Postgres
        pytest.skip(f"Postgres is required for integration tests: {exc}")

    yield

    await dispose_engine()
