# ============================================================================
# SYNC TRIGGER ROUTES
# ============================================================================
# STATUS: API - Operator-triggered sync jobs
# PURPOSE: Admit a request, queue exactly one job, answer 202
# ============================================================================
"""
Sync Trigger Routes

ENDPOINT SUMMARY:
-----------------
| Endpoint                          | Job                                       |
|-----------------------------------|-------------------------------------------|
| POST /api/sync/catalog/full       | ManualTrigger-FetchBunjangCatalog-Full    |
| POST /api/sync/catalog/segment    | ManualTrigger-FetchBunjangCatalog-Segment |
| POST /api/sync/product/{pid}      | ManualTrigger-SyncSingleProduct           |

All routes require the internal API key. Handlers are sync; FastAPI runs
them in its threadpool and the broker send blocks that thread.

A duplicate identity is still a 202, with "duplicate": true.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from core.contracts import AuthenticatedRequestContext
from core.models import DispatchAcknowledgment

from .dependencies import (
    GatewayServices,
    get_services,
    require_internal_key,
    validated_product_sync_path,
)
from .schemas import ProductSyncPath

router = APIRouter(prefix="/sync", tags=["Sync"])


def _accepted(ack: DispatchAcknowledgment, message: str, **extra) -> JSONResponse:
    if ack.duplicate:
        message = f"{message} (already queued)"
    return JSONResponse(status_code=202, content={**ack.to_response(message), **extra})


@router.post("/catalog/full", status_code=202)
def trigger_full_catalog_sync(
    context: AuthenticatedRequestContext = Depends(require_internal_key),
    services: GatewayServices = Depends(get_services),
):
    """Queue a full marketplace catalog fetch."""
    ack = services.dispatcher.trigger_full_catalog_sync(context)
    return _accepted(ack, "Full catalog sync job has been queued.")


@router.post("/catalog/segment", status_code=202)
def trigger_segment_catalog_sync(
    context: AuthenticatedRequestContext = Depends(require_internal_key),
    services: GatewayServices = Depends(get_services),
):
    """Queue a segment (incremental) catalog fetch."""
    ack = services.dispatcher.trigger_segment_catalog_sync(context)
    return _accepted(ack, "Segment catalog sync job has been queued.")


@router.post("/product/{bunjangPid}", status_code=202)
def trigger_single_product_sync(
    path: ProductSyncPath = Depends(validated_product_sync_path),
    context: AuthenticatedRequestContext = Depends(require_internal_key),
    services: GatewayServices = Depends(get_services),
):
    """Queue a resync of one marketplace product."""
    ack = services.dispatcher.trigger_single_product_sync(path.bunjang_pid, context)
    return _accepted(
        ack,
        f"Sync job for product {path.bunjang_pid} has been queued.",
        bunjangPid=path.bunjang_pid,
    )


__all__ = ["router"]
