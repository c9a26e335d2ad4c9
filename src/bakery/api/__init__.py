"""Bakery HTTP API package."""

from bakery.api.errors import register_error_handlers
from bakery.api.routes import order_router

__all__ = ["order_router", "register_error_handlers"]
