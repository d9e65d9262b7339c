from app.economy.orders import OrderService
from app.economy.promo import PromoAdminService, PromoService

__all__ = [
    "OrderService",
    "PromoAdminService",
    "PromoService",
]
