from app.db.models.orders import Order, OrderItem
from app.db.models.products import Product
from app.db.models.promo_code_products import PromoCodeProduct
from app.db.models.promo_code_usages import PromoCodeUsage
from app.db.models.promo_code_users import PromoCodeUser
from app.db.models.promo_codes import PromoCode
from app.db.models.users import User

__all__ = [
    "Order",
    "OrderItem",
    "Product",
    "PromoCode",
    "PromoCodeProduct",
    "PromoCodeUsage",
    "PromoCodeUser",
    "User",
]
