from app.economy.orders.service import OrderService

__all__ = ["OrderService"]
