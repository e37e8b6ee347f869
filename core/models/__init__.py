# ============================================================================
# MODELS MODULE
# ============================================================================
# STATUS: Model exports
# PURPOSE: Central export point for job models
# ============================================================================
"""
Models Module - Central Export Point
"""

from core.models.job import JobSpec, JobEnvelope, DispatchAcknowledgment

__all__ = [
    "JobSpec",
    "JobEnvelope",
    "DispatchAcknowledgment",
]
