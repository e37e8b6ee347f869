# ============================================================================
# STOREFRONT PROXY ROUTES
# ============================================================================
# STATUS: API - Signed storefront app proxy reads
# PURPOSE: Product list and detail for the storefront, via ProductCatalog
# ============================================================================
"""
Storefront Proxy Routes

Mounted under /api/{SHOPIFY_APP_PROXY_SUBPATH_PREFIX}. Every request must
carry a valid app proxy signature; only signed parameters reach the
catalog.
"""

from fastapi import APIRouter, Depends

from core.errors import NotFound
from services.collaborators import ProductCatalog

from .dependencies import (
    get_product_catalog,
    validated_product_detail_path,
    validated_product_list_query,
)
from .schemas import ProxyProductDetailPath, ProxyProductListQuery


def build_proxy_router(prefix: str) -> APIRouter:
    """Router for the configured app proxy sub-path."""
    router = APIRouter(prefix=f"/{prefix.strip('/')}", tags=["Storefront Proxy"])

    @router.get("/products")
    def list_products(
        query: ProxyProductListQuery = Depends(validated_product_list_query),
        catalog: ProductCatalog = Depends(get_product_catalog),
    ):
        """Paged product list."""
        return catalog.list_products(
            categories=query.category_list,
            search=query.search,
            page=query.page,
            limit=query.limit,
            sort=query.sort,
        )

    @router.get("/product/{identifier}")
    def get_product(
        path: ProxyProductDetailPath = Depends(validated_product_detail_path),
        catalog: ProductCatalog = Depends(get_product_catalog),
    ):
        """One product by pid or handle."""
        product = catalog.get_product(path.identifier)
        if product is None:
            raise NotFound(f"Product '{path.identifier}' not found.")
        return product

    return router


__all__ = ["build_proxy_router"]
