from __future__ import annotations

from datetime import datetime

from sqlalchemy import BOOLEAN, BigInteger, DateTime, ForeignKey, Index, UniqueConstraint, text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.models.base import Base


class PromoCodeUser(Base):
    __tablename__ = "promo_code_users"
    __table_args__ = (
        UniqueConstraint("promo_code_id", "user_id", name="uq_promo_code_users_code_user"),
        Index("idx_promo_code_users_user", "user_id"),
        Index(
            "idx_promo_code_users_pending_notification",
            "assigned_at",
            postgresql_where=text("is_notified = false"),
        ),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    promo_code_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("promo_codes.id"),
        nullable=False,
    )
    user_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id"), nullable=False)
    assigned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    is_notified: Mapped[bool] = mapped_column(BOOLEAN, nullable=False, server_default=text("false"))
    notified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
