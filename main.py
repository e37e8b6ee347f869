# ============================================================================
# BUNJANG SYNC GATEWAY - MAIN APPLICATION
# ============================================================================
# STATUS: Core - FastAPI application entry point
# PURPOSE: Composition root: config, queue registry, dispatcher, routes
# ============================================================================
"""
Bunjang Sync Gateway Main Application

FastAPI application that:
1. Authenticates operator and storefront proxy requests
2. Validates their parameters
3. Queues sync jobs for background workers (one job per request)

Usage:
    uvicorn main:app --host 0.0.0.0 --port 8000
"""

import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from __version__ import __version__, BUILD_DATE

from api import (
    GatewayServices,
    build_proxy_router,
    price_router,
    register_exception_handlers,
    service_router,
    sync_router,
)
from core.config import GatewayConfig, get_config
from core.logging import configure_logging, get_logger
from infrastructure import build_queue_registry
from security.auth import InternalKeyGate, ProxySignatureGate
from services import JobDispatcher, PriceCalculator, ProductCatalog

logger = get_logger(__name__)


def build_services(
    config: GatewayConfig,
    price_calculator: Optional[PriceCalculator] = None,
    product_catalog: Optional[ProductCatalog] = None,
) -> GatewayServices:
    """Wire the process-wide collaborators. Does not contact the broker."""
    registry = build_queue_registry(config)
    dispatcher = JobDispatcher(
        registry,
        catalog_queue=config.catalog_queue,
        product_sync_queue=config.product_sync_queue,
        policy=config.dispatch_policy,
    )
    return GatewayServices(
        config=config,
        registry=registry,
        dispatcher=dispatcher,
        internal_gate=InternalKeyGate(config.internal_api_key),
        proxy_gate=ProxySignatureGate(config.shopify_api_secret),
        price_calculator=price_calculator,
        product_catalog=product_catalog,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Pre-initializes queues on startup (failures are logged, not fatal),
    closes them on shutdown.
    """
    services: GatewayServices = app.state.services
    config = services.config

    logger.info(f"Starting {config.service_name} v{__version__} (Build {BUILD_DATE}, env={config.env})")
    config.warn_if_insecure()

    failed = services.registry.initialize_all(config.queue_names)
    if services.registry.is_enabled:
        logger.info(
            f"Queue registry ready (backend={services.registry.backend}, "
            f"initialized={services.registry.initialized_queues()}, failed={failed})"
        )
    else:
        logger.warning("Queue system disabled (QUEUE_ENABLED is not true); sync triggers will answer 503")

    yield

    logger.info(f"Shutting down {config.service_name}...")
    services.registry.close_all()
    logger.info(f"{config.service_name} stopped")


def create_app(
    config: Optional[GatewayConfig] = None,
    price_calculator: Optional[PriceCalculator] = None,
    product_catalog: Optional[ProductCatalog] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        config: Gateway configuration (defaults to environment)
        price_calculator: Collaborator for the price utility route
        product_catalog: Collaborator for the storefront proxy routes
    """
    config = config or get_config()
    configure_logging(level=config.log_level, json_output=config.log_json)

    app = FastAPI(
        title="Bunjang Sync Gateway",
        description="Authenticated, idempotent sync job dispatch for the storefront",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.services = build_services(config, price_calculator, product_catalog)

    register_exception_handlers(app, production=config.is_production)

    # Service routes (no prefix - /api, /health)
    app.include_router(service_router)

    # Operator routes
    app.include_router(sync_router, prefix="/api")
    if not config.is_production:
        app.include_router(price_router, prefix="/api")

    # Storefront app proxy routes
    app.include_router(build_proxy_router(config.app_proxy_subpath_prefix), prefix="/api")

    return app


app = create_app()


# ============================================================================
# MAIN ENTRY POINT
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    host = os.environ.get("HOST", "0.0.0.0")
    port = int(os.environ.get("PORT", "8000"))

    uvicorn.run(
        "main:app",
        host=host,
        port=port,
        reload=os.environ.get("RELOAD", "false").lower() == "true",
    )
