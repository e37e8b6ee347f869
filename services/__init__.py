# ============================================================================
# SERVICES MODULE
# ============================================================================
# STATUS: Service - Dispatch and collaborator boundary
# PURPOSE: Job dispatch logic and interfaces to external business logic
# ============================================================================
"""
Services Module

Usage:
    from services import JobDispatcher

    dispatcher = JobDispatcher(registry, config.catalog_queue,
                               config.product_sync_queue, config.dispatch_policy)
    ack = dispatcher.trigger_full_catalog_sync(context)
"""

from .dispatch_service import JobDispatcher
from .collaborators import PriceCalculator, ProductCatalog

__all__ = [
    "JobDispatcher",
    "PriceCalculator",
    "ProductCatalog",
]
