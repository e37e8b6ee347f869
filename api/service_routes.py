# ============================================================================
# SERVICE ROUTES
# ============================================================================
# STATUS: API - Service info and liveness
# PURPOSE: Unauthenticated GET /api and GET /health
# ============================================================================
"""
Service Routes

/health reports registry state only. It never contacts the broker, so it
stays cheap enough for platform probes.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from __version__ import __version__, BUILD_DATE

from .dependencies import GatewayServices, get_services

router = APIRouter(tags=["Service"])


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@router.get("/api")
def service_info(services: GatewayServices = Depends(get_services)):
    return {
        "service": services.config.service_name,
        "version": __version__,
        "buildDate": BUILD_DATE,
        "environment": services.config.env,
        "status": "running",
        "timestamp": _timestamp(),
    }


@router.get("/health")
def health(services: GatewayServices = Depends(get_services)):
    """Liveness plus queue registry status."""
    return {
        "status": "ok",
        "timestamp": _timestamp(),
        "queue": services.registry.status(),
    }


__all__ = ["router"]
