from app.economy.promo.admin import PromoAdminService
from app.economy.promo.discount import compute_discount
from app.economy.promo.service import PromoService

__all__ = ["PromoAdminService", "PromoService", "compute_discount"]
