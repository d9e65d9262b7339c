from app.db.repo.orders_repo import OrdersRepo
from app.db.repo.products_repo import ProductsRepo
from app.db.repo.promo_repo import PromoRepo
from app.db.repo.users_repo import UsersRepo

__all__ = [
    "OrdersRepo",
    "ProductsRepo",
    "PromoRepo",
    "UsersRepo",
]
