# ============================================================================
# API MODULE
# ============================================================================
# STATUS: API - FastAPI routes
# PURPOSE: HTTP surface for operators and the storefront app proxy
# ============================================================================
"""
API Module

FastAPI routers, admission dependencies and error translation for the
sync gateway.
"""

from .dependencies import GatewayServices
from .errors import register_exception_handlers
from .price_routes import router as price_router
from .proxy_routes import build_proxy_router
from .service_routes import router as service_router
from .sync_routes import router as sync_router

__all__ = [
    "GatewayServices",
    "register_exception_handlers",
    "price_router",
    "build_proxy_router",
    "service_router",
    "sync_router",
]
