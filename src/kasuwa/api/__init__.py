"""Kasuwa HTTP API package."""

from kasuwa.api.errors import register_error_handlers
from kasuwa.api.routes import cart_router, order_router, payment_router, product_router, review_router

__all__ = [
    "product_router",
    "cart_router",
    "order_router",
    "payment_router",
    "review_router",
    "register_error_handlers",
]
