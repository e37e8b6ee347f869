# ============================================================================
# API DEPENDENCIES
# ============================================================================
# STATUS: API - Request admission wiring
# PURPOSE: Services container, auth gates and validation as FastAPI dependencies
# ============================================================================
"""
API Dependencies

The composition root (main.create_app) stores a GatewayServices container
on app.state; routes reach it through get_services().

Ordering: every validation dependency depends on its auth dependency, so
FastAPI always resolves the auth gate first. An unauthenticated caller gets
401/403 and never a validation error.
"""

import re
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Request

from core.config import GatewayConfig
from core.contracts import AuthenticatedRequestContext
from core.errors import ServiceNotConfigured
from infrastructure.queue_registry import QueueRegistry
from security.auth import API_KEY_HEADER, API_KEY_QUERY_PARAM, InternalKeyGate, ProxySignatureGate
from security.validation import ValidationGate
from services.collaborators import PriceCalculator, ProductCatalog
from services.dispatch_service import JobDispatcher

from .schemas import PriceQuery, ProductSyncPath, ProxyProductDetailPath, ProxyProductListQuery


@dataclass
class GatewayServices:
    """Process-wide collaborators, built once at startup."""
    config: GatewayConfig
    registry: QueueRegistry
    dispatcher: JobDispatcher
    internal_gate: InternalKeyGate
    proxy_gate: ProxySignatureGate
    price_calculator: Optional[PriceCalculator] = None
    product_catalog: Optional[ProductCatalog] = None


def get_services(request: Request) -> GatewayServices:
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise ServiceNotConfigured("Gateway services are not initialized.")
    return services


def client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


REQUEST_ID_HEADER = "x-request-id"
_REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


def request_id(request: Request) -> Optional[str]:
    """Caller-supplied correlation id, if well formed; the gate generates one otherwise."""
    supplied = request.headers.get(REQUEST_ID_HEADER)
    if supplied and _REQUEST_ID_PATTERN.match(supplied):
        return supplied
    return None


# ============================================================================
# AUTH
# ============================================================================

def require_internal_key(
    request: Request,
    services: GatewayServices = Depends(get_services),
) -> AuthenticatedRequestContext:
    """Operator endpoints: x-api-key header, falling back to ?apiKey=."""
    supplied = request.headers.get(API_KEY_HEADER) or request.query_params.get(API_KEY_QUERY_PARAM)
    return services.internal_gate.check(supplied, client_ip(request), request_id(request))


def require_proxy_signature(
    request: Request,
    services: GatewayServices = Depends(get_services),
) -> AuthenticatedRequestContext:
    """Storefront proxy endpoints: HMAC over the raw query string items."""
    return services.proxy_gate.check(
        request.query_params.multi_items(), client_ip(request), request_id(request)
    )


# ============================================================================
# VALIDATION (runs after auth)
# ============================================================================

def validated_price_query(
    request: Request,
    context: AuthenticatedRequestContext = Depends(require_internal_key),
) -> PriceQuery:
    return ValidationGate.enforce(PriceQuery, request.query_params)


def validated_product_sync_path(
    request: Request,
    context: AuthenticatedRequestContext = Depends(require_internal_key),
) -> ProductSyncPath:
    return ValidationGate.enforce(ProductSyncPath, request.path_params)


def validated_product_list_query(
    context: AuthenticatedRequestContext = Depends(require_proxy_signature),
) -> ProxyProductListQuery:
    # Only signed parameters are considered
    return ValidationGate.enforce(ProxyProductListQuery, context.verified_parameters)


def validated_product_detail_path(
    request: Request,
    context: AuthenticatedRequestContext = Depends(require_proxy_signature),
) -> ProxyProductDetailPath:
    return ValidationGate.enforce(ProxyProductDetailPath, request.path_params)


# ============================================================================
# COLLABORATORS
# ============================================================================

def get_price_calculator(services: GatewayServices = Depends(get_services)) -> PriceCalculator:
    if services.price_calculator is None:
        raise ServiceNotConfigured("Price calculation service is not configured.")
    return services.price_calculator


def get_product_catalog(services: GatewayServices = Depends(get_services)) -> ProductCatalog:
    if services.product_catalog is None:
        raise ServiceNotConfigured("Product catalog service is not configured.")
    return services.product_catalog


__all__ = [
    "GatewayServices",
    "get_services",
    "client_ip",
    "require_internal_key",
    "require_proxy_signature",
    "validated_price_query",
    "validated_product_sync_path",
    "validated_product_list_query",
    "validated_product_detail_path",
    "get_price_calculator",
    "get_product_catalog",
]
