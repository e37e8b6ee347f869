# ============================================================================
# JOB SPEC & DISPATCH ACKNOWLEDGMENT
# ============================================================================
# STATUS: Core model - Work order handed to the broker
# PURPOSE: Pydantic models for job submission and its acknowledgment
# EXPORTS: JobSpec, DispatchAcknowledgment
# DEPENDENCIES: pydantic
# ============================================================================
"""
Job Models

JobSpec is the "work order" built by the dispatcher and handed to a queue
handle. Ownership passes to the broker on submission.

DispatchAcknowledgment is what the caller gets back. It is a value with no
lifecycle of its own; nothing tracks it after the response is sent.

Identity:
- identity=None lets the broker assign a fresh id (unlimited duplicates)
- identity="..." is used as the broker's dedup key (at most one live job)
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field


class JobSpec(BaseModel):
    """Job submission handed to a queue handle."""

    logical_name: str = Field(
        ...,
        max_length=128,
        description="Job name, e.g. ManualTrigger-SyncSingleProduct",
    )
    queue_name: str = Field(..., max_length=260)
    payload: Dict[str, Any] = Field(default_factory=dict)
    identity: Optional[str] = Field(
        default=None,
        max_length=128,
        description="Broker dedup key; None lets the broker assign an id",
    )

    def to_message_body(self) -> str:
        """
        Serialize the broker message body.

        Workers consume {"name": ..., "data": {...}}.
        """
        return JobEnvelope(name=self.logical_name, data=self.payload).model_dump_json()


class JobEnvelope(BaseModel):
    """Wire body of a queued job."""

    name: str
    data: Dict[str, Any] = Field(default_factory=dict)


class DispatchAcknowledgment(BaseModel):
    """Caller-facing result of a successful (or idempotent) dispatch."""

    job_id: str = Field(..., min_length=1)
    queue_name: str
    job_name: str
    submitted_at_utc: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    duplicate: bool = Field(
        default=False,
        description="True when the broker already held a live job with this identity",
    )

    model_config = {"frozen": True}

    def to_response(self, message: str) -> Dict[str, Any]:
        """202 response body for operator endpoints."""
        return {
            "message": message,
            "jobId": self.job_id,
            "queueName": self.queue_name,
            "jobName": self.job_name,
            "timestamp": self.submitted_at_utc.isoformat().replace("+00:00", "Z"),
            "duplicate": self.duplicate,
        }


__all__ = ["JobSpec", "JobEnvelope", "DispatchAcknowledgment"]
