# ============================================================================
# API SCHEMAS
# ============================================================================
# STATUS: API - Per-endpoint input rules
# PURPOSE: Pydantic models evaluated by the validation gate
# ============================================================================
"""
API Schemas

One model per endpoint input. Field constraints are the rule set; the
validation gate turns their failures into violations. Incoming parameters
arrive as strings and are coerced here (lax mode).

Fields use camelCase aliases to match the wire names; unknown parameters
(apiKey, shop, timestamp, ...) are ignored.
"""

import html
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


_INPUT_CONFIG = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)


# ============================================================================
# OPERATOR SCHEMAS
# ============================================================================

class PriceQuery(BaseModel):
    """GET /api/price-utils/calculate-shopify query."""
    krw_price: float = Field(..., alias="krwPrice", gt=0, allow_inf_nan=False, description="Marketplace price in KRW")
    krw_shipping_fee: float = Field(0.0, alias="krwShippingFee", ge=0, allow_inf_nan=False)

    model_config = _INPUT_CONFIG


class ProductSyncPath(BaseModel):
    """POST /api/sync/product/{bunjangPid} path."""
    bunjang_pid: str = Field(..., alias="bunjangPid", pattern=r"^[A-Za-z0-9_-]{1,64}$")

    model_config = _INPUT_CONFIG


# ============================================================================
# STOREFRONT PROXY SCHEMAS
# ============================================================================

ProductSort = Literal["latest", "price_asc", "price_desc", "name_asc"]


class ProxyProductListQuery(BaseModel):
    """GET /products query, evaluated over signature-verified parameters."""
    categories: Optional[str] = Field(
        None,
        pattern=r"^[\w,-]+$",
        description="Comma-separated category ids",
    )
    search: Optional[str] = Field(None, max_length=100)
    page: int = Field(1, ge=1)
    limit: int = Field(20, ge=1, le=100)
    sort: ProductSort = "latest"

    model_config = _INPUT_CONFIG

    @field_validator("categories", "search", mode="before")
    @classmethod
    def _blank_to_none(cls, value):
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    @field_validator("search")
    @classmethod
    def _escape_search(cls, value: Optional[str]) -> Optional[str]:
        return html.escape(value) if value is not None else None

    @property
    def category_list(self) -> List[str]:
        if not self.categories:
            return []
        return [c for c in self.categories.split(",") if c]


class ProxyProductDetailPath(BaseModel):
    """GET /product/{identifier} path."""
    identifier: str = Field(..., pattern=r"^[A-Za-z0-9_.:-]{1,128}$")

    model_config = _INPUT_CONFIG


__all__ = [
    "PriceQuery",
    "ProductSyncPath",
    "ProxyProductListQuery",
    "ProxyProductDetailPath",
]
