# ============================================================================
# COLLABORATOR INTERFACES
# ============================================================================
# STATUS: Service - Boundary to pricing and catalog logic
# PURPOSE: Protocols the gateway delegates to; implementations live elsewhere
# ============================================================================
"""
Collaborator Interfaces

The gateway never computes prices or reads the product catalog itself. It
validates the request and hands the coerced parameters to one of these.

Implementations are passed to create_app(); a route whose collaborator was
not supplied answers 503 SERVICE_NOT_CONFIGURED.
"""

from typing import Any, Dict, List, Optional, Protocol


class PriceCalculator(Protocol):
    """KRW marketplace price -> storefront price."""

    def calculate_shopify_price(self, krw_price: float, krw_shipping_fee: float = 0.0) -> Dict[str, Any]:
        ...


class ProductCatalog(Protocol):
    """Read access to synced products for the storefront proxy."""

    def list_products(
        self,
        *,
        categories: List[str],
        search: Optional[str],
        page: int,
        limit: int,
        sort: str,
    ) -> Dict[str, Any]:
        ...

    def get_product(self, identifier: str) -> Optional[Dict[str, Any]]:
        """Product by pid or handle, or None when unknown."""
        ...


__all__ = ["PriceCalculator", "ProductCatalog"]
