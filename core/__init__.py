# ============================================================================
# CORE MODULE
# ============================================================================
# STATUS: Core module initialization
# PURPOSE: Export core contracts, models, and errors
# ============================================================================

from core.contracts import SourceType, CatalogType, AuthenticatedRequestContext
from core.models import JobSpec, DispatchAcknowledgment
from core.errors import (
    GatewayError,
    Unauthorized,
    Forbidden,
    ValidationFailed,
    QueueDisabled,
    QueueUnavailable,
    JobSubmissionFailed,
    DuplicateJobError,
)

__all__ = [
    # Enums
    "SourceType",
    "CatalogType",
    # Models
    "AuthenticatedRequestContext",
    "JobSpec",
    "DispatchAcknowledgment",
    # Errors
    "GatewayError",
    "Unauthorized",
    "Forbidden",
    "ValidationFailed",
    "QueueDisabled",
    "QueueUnavailable",
    "JobSubmissionFailed",
    "DuplicateJobError",
]
