from __future__ import annotations

from app.economy.promo.types import PromoErrorKind


class OrderError(Exception):
    pass


class OrderValidationError(OrderError):
    pass


class OrderPromoRejectedError(OrderError):
    def __init__(self, kind: PromoErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
