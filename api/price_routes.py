# ============================================================================
# PRICE UTILITY ROUTES
# ============================================================================
# STATUS: API - Operator price preview (non-production only)
# PURPOSE: Validate KRW inputs and delegate to the PriceCalculator
# ============================================================================
"""
Price Utility Routes

GET /api/price-utils/calculate-shopify?krwPrice=&krwShippingFee=

Mounted by main.create_app only when APP_ENV is not production.
"""

from fastapi import APIRouter, Depends

from services.collaborators import PriceCalculator

from .dependencies import get_price_calculator, validated_price_query
from .schemas import PriceQuery

router = APIRouter(prefix="/price-utils", tags=["Price Utils"])


@router.get("/calculate-shopify")
def calculate_shopify_price(
    query: PriceQuery = Depends(validated_price_query),
    calculator: PriceCalculator = Depends(get_price_calculator),
):
    result = calculator.calculate_shopify_price(query.krw_price, query.krw_shipping_fee)
    return {
        "krwPrice": query.krw_price,
        "krwShippingFee": query.krw_shipping_fee,
        **result,
    }


__all__ = ["router"]
