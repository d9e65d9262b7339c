from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import BigInteger, CheckConstraint, DateTime, ForeignKey, Index, Numeric
from sqlalchemy.orm import Mapped, mapped_column

from app.db.models.base import Base


class PromoCodeUsage(Base):
    __tablename__ = "promo_code_usages"
    __table_args__ = (
        CheckConstraint(
            "discount_amount >= 0",
            name="ck_promo_code_usages_discount_non_negative",
        ),
        Index("idx_promo_code_usages_code_user", "promo_code_id", "user_id"),
        Index("idx_promo_code_usages_used_at", "used_at"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    promo_code_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("promo_codes.id"),
        nullable=False,
    )
    order_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("orders.id"),
        unique=True,
        nullable=False,
    )
    user_id: Mapped[int | None] = mapped_column(BigInteger, ForeignKey("users.id"), nullable=True)
    discount_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    used_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
