from __future__ import annotations

from app.economy.promo.types import PromoErrorKind


class PromoError(Exception):
    pass


class PromoCodeNotFoundError(PromoError):
    pass


class PromoCodeAlreadyExistsError(PromoError):
    pass


class PromoCodeInvalidError(PromoError):
    """Rejected admin input (discount range, date window, unknown discount type)."""


class PromoRedemptionConflictError(PromoError):
    """A limit re-checked under the row lock no longer holds.

    Raised from ``PromoService.redeem`` so the enclosing order transaction
    rolls back without writing a usage row.
    """

    def __init__(self, kind: PromoErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
