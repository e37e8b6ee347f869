# ============================================================================
# BASE CONTRACTS & ENUMS
# ============================================================================
# STATUS: Foundation - Request source types and authenticated context
# PURPOSE: Identity fields that cross the auth -> validation -> dispatch seam
# EXPORTS: SourceType, CatalogType, AuthenticatedRequestContext, new_request_id
# DEPENDENCIES: enum, pydantic
# ============================================================================
"""
Base contracts for the sync gateway.

The AuthenticatedRequestContext is produced by an auth gate for each
request and discarded when the request completes. Downstream code reads
parameters from `verified_parameters` only, never from the raw query.
"""

import uuid
from enum import Enum
from typing import Dict
from pydantic import BaseModel, Field


# ============================================================================
# ENUMS
# ============================================================================

class SourceType(str, Enum):
    """Trust boundary a request was admitted through."""
    INTERNAL_OPERATOR = "internal_operator"
    STOREFRONT_PROXY = "storefront_proxy"


class CatalogType(str, Enum):
    """Marketplace catalog refresh scope."""
    FULL = "full"
    SEGMENT = "segment"


# ============================================================================
# AUTHENTICATED CONTEXT
# ============================================================================

def new_request_id() -> str:
    return uuid.uuid4().hex[:16]


class AuthenticatedRequestContext(BaseModel):
    """
    Result of a successful auth gate check.

    verified_parameters is only populated for storefront proxy requests and
    never contains the signature field.
    """
    source_type: SourceType
    verified_parameters: Dict[str, str] = Field(default_factory=dict)
    client_identity: str = Field(..., max_length=128, description="Client IP or key fingerprint")
    request_id: str = Field(
        default_factory=new_request_id,
        max_length=64,
        description="Correlation id for logs (X-Request-ID or generated)",
    )

    model_config = {"frozen": True}

    @property
    def is_proxy(self) -> bool:
        return self.source_type == SourceType.STOREFRONT_PROXY


__all__ = [
    "SourceType",
    "CatalogType",
    "AuthenticatedRequestContext",
    "new_request_id",
]
