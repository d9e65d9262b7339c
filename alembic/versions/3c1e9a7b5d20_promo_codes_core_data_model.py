"""promo_codes_core_data_model

Revision ID: 3c1e9a7b5d20
Revises:
Create Date: 2026-09-14 10:20:00.000000
"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "3c1e9a7b5d20"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("email", sa.String(256), nullable=False),
        sa.Column("full_name", sa.Text(), nullable=True),
        sa.Column("phone", sa.String(32), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )
    op.create_index("idx_users_created_at", "users", ["created_at"])

    op.create_table(
        "products",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("price >= 0", name="ck_products_price_non_negative"),
    )

    op.create_table(
        "promo_codes",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("code", sa.String(50), nullable=False),
        sa.Column("description", sa.String(200), nullable=True),
        sa.Column("discount_type", sa.String(20), nullable=False),
        sa.Column("discount_value", sa.Numeric(12, 2), nullable=False),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("usage_limit", sa.Integer(), nullable=True),
        sa.Column("used_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("usage_limit_per_user", sa.Integer(), nullable=True),
        sa.Column("minimum_order_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("maximum_discount_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_by_user_id", sa.BigInteger(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("discount_type IN ('PERCENTAGE','FIXED')", name="ck_promo_codes_discount_type"),
        sa.CheckConstraint("discount_value >= 0", name="ck_promo_codes_discount_value_non_negative"),
        sa.CheckConstraint(
            "discount_type <> 'PERCENTAGE' OR discount_value <= 100",
            name="ck_promo_codes_percentage_range",
        ),
        sa.CheckConstraint("end_date IS NULL OR end_date >= start_date", name="ck_promo_codes_window"),
        sa.CheckConstraint("usage_limit IS NULL OR usage_limit > 0", name="ck_promo_codes_usage_limit_positive"),
        sa.CheckConstraint(
            "usage_limit_per_user IS NULL OR usage_limit_per_user > 0",
            name="ck_promo_codes_usage_limit_per_user_positive",
        ),
        sa.CheckConstraint("used_count >= 0", name="ck_promo_codes_used_count_non_negative"),
        sa.CheckConstraint(
            "usage_limit IS NULL OR used_count <= usage_limit",
            name="ck_promo_codes_used_count_le_limit",
        ),
        sa.ForeignKeyConstraint(["created_by_user_id"], ["users.id"]),
        sa.UniqueConstraint("code", name="uq_promo_codes_code"),
    )
    op.create_index("idx_promo_codes_start_date", "promo_codes", ["start_date"])
    op.create_index("idx_promo_codes_end_date", "promo_codes", ["end_date"])

    op.create_table(
        "promo_code_users",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("promo_code_id", sa.BigInteger(), nullable=False),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("assigned_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_notified", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("notified_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["promo_code_id"], ["promo_codes.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.UniqueConstraint("promo_code_id", "user_id", name="uq_promo_code_users_code_user"),
    )
    op.create_index("idx_promo_code_users_user", "promo_code_users", ["user_id"])
    op.create_index(
        "idx_promo_code_users_pending_notification",
        "promo_code_users",
        ["assigned_at"],
        postgresql_where=sa.text("is_notified = false"),
    )

    op.create_table(
        "promo_code_products",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("promo_code_id", sa.BigInteger(), nullable=False),
        sa.Column("product_id", sa.BigInteger(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["promo_code_id"], ["promo_codes.id"]),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"]),
        sa.UniqueConstraint("promo_code_id", "product_id", name="uq_promo_code_products_code_product"),
    )
    op.create_index("idx_promo_code_products_product", "promo_code_products", ["product_id"])

    op.create_table(
        "orders",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("order_number", sa.String(32), nullable=False),
        sa.Column("user_id", sa.BigInteger(), nullable=True),
        sa.Column("customer_email", sa.String(256), nullable=True),
        sa.Column("subtotal", sa.Numeric(12, 2), nullable=False),
        sa.Column("discount_amount", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("total", sa.Numeric(12, 2), nullable=False),
        sa.Column("promo_code_id", sa.BigInteger(), nullable=True),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "status IN ('PENDING','CONFIRMED','SHIPPED','DELIVERED','CANCELLED')",
            name="ck_orders_status",
        ),
        sa.CheckConstraint("subtotal >= 0", name="ck_orders_subtotal_non_negative"),
        sa.CheckConstraint(
            "discount_amount >= 0 AND discount_amount <= subtotal",
            name="ck_orders_discount_range",
        ),
        sa.CheckConstraint("total = subtotal - discount_amount", name="ck_orders_total"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["promo_code_id"], ["promo_codes.id"]),
        sa.UniqueConstraint("order_number", name="uq_orders_order_number"),
    )
    op.create_index("idx_orders_user_created", "orders", ["user_id", "created_at"])
    op.create_index("idx_orders_promo_code", "orders", ["promo_code_id"])

    op.create_table(
        "order_items",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("order_id", sa.BigInteger(), nullable=False),
        sa.Column("product_id", sa.BigInteger(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("line_total", sa.Numeric(12, 2), nullable=False),
        sa.CheckConstraint("quantity > 0", name="ck_order_items_quantity_positive"),
        sa.CheckConstraint("unit_price >= 0", name="ck_order_items_unit_price_non_negative"),
        sa.ForeignKeyConstraint(["order_id"], ["orders.id"]),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"]),
    )
    op.create_index("idx_order_items_order", "order_items", ["order_id"])

    op.create_table(
        "promo_code_usages",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("promo_code_id", sa.BigInteger(), nullable=False),
        sa.Column("order_id", sa.BigInteger(), nullable=False),
        sa.Column("user_id", sa.BigInteger(), nullable=True),
        sa.Column("discount_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("used_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("discount_amount >= 0", name="ck_promo_code_usages_discount_non_negative"),
        sa.ForeignKeyConstraint(["promo_code_id"], ["promo_codes.id"]),
        sa.ForeignKeyConstraint(["order_id"], ["orders.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.UniqueConstraint("order_id", name="uq_promo_code_usages_order_id"),
    )
    op.create_index("idx_promo_code_usages_code_user", "promo_code_usages", ["promo_code_id", "user_id"])
    op.create_index("idx_promo_code_usages_used_at", "promo_code_usages", ["used_at"])


def downgrade() -> None:
    op.drop_index("idx_promo_code_usages_used_at", table_name="promo_code_usages")
    op.drop_index("idx_promo_code_usages_code_user", table_name="promo_code_usages")
    op.drop_table("promo_code_usages")

    op.drop_index("idx_order_items_order", table_name="order_items")
    op.drop_table("order_items")

    op.drop_index("idx_orders_promo_code", table_name="orders")
    op.drop_index("idx_orders_user_created", table_name="orders")
    op.drop_table("orders")

    op.drop_index("idx_promo_code_products_product", table_name="promo_code_products")
    op.drop_table("promo_code_products")

    op.drop_index("idx_promo_code_users_pending_notification", table_name="promo_code_users")
    op.drop_index("idx_promo_code_users_user", table_name="promo_code_users")
    op.drop_table("promo_code_users")

    op.drop_index("idx_promo_codes_end_date", table_name="promo_codes")
    op.drop_index("idx_promo_codes_start_date", table_name="promo_codes")
    op.drop_table("promo_codes")

    op.drop_table("products")

    op.drop_index("idx_users_created_at", table_name="users")
    op.drop_table("users")
