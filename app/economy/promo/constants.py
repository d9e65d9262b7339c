from __future__ import annotations

from decimal import Decimal

MONEY_QUANTUM = Decimal("0.01")
ZERO_AMOUNT = Decimal("0.00")
PERCENTAGE_MAX = Decimal("100")

PROMO_MESSAGE_INVALID = "Invalid promo code"
PROMO_MESSAGE_INACTIVE = "This promo code has been deactivated"
PROMO_MESSAGE_NOT_STARTED = "This promo code is not yet valid"
PROMO_MESSAGE_EXPIRED = "This promo code has expired"
PROMO_MESSAGE_GUEST_NOT_ALLOWED = (
    "You must be a registered user to use this promo code. Please sign up first."
)
PROMO_MESSAGE_USER_NOT_ALLOWED = "This promo code is not available for your account"
PROMO_MESSAGE_GLOBAL_LIMIT = "This promo code has reached its usage limit"
PROMO_MESSAGE_USER_LIMIT = "You have reached the usage limit for this promo code"
PROMO_MESSAGE_REQUIRES_PRODUCTS = "This promo code requires specific products in your cart."
PROMO_MESSAGE_NO_ELIGIBLE_PRODUCTS = (
    "None of the products in your cart are eligible for this promo code."
)
PROMO_MESSAGE_NOT_ALL_ELIGIBLE = "Some products in your cart are not eligible for this promo code."
PROMO_MESSAGE_APPLIED = "Promo code applied"
