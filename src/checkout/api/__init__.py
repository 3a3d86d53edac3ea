"""Checkout domain API package."""

from checkout.api.errors import register_checkout_exception_handlers
from checkout.api.routes import cart_router, discount_router

__all__ = ["cart_router", "discount_router", "register_checkout_exception_handlers"]
