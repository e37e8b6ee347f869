# ============================================================================
# DISPATCH SERVICE
# ============================================================================
# STATUS: Service - Validated request -> exactly one queued job
# PURPOSE: Build job payloads and identities, submit, acknowledge
# ============================================================================
"""
Dispatch Service

Turns an authenticated, validated request into one background job.

Flow:
    1. Resolve the queue via QueueRegistry
         disabled         -> QueueDisabled (broker never touched)
         not initialized  -> QueueUnavailable
    2. Merge business fields with dispatch metadata (triggeredBy, requestedBy)
    3. Submit with the identity chosen by DispatchPolicy
    4. Return a DispatchAcknowledgment
         broker duplicate -> acknowledgment(duplicate=True), not an error
         anything else    -> JobSubmissionFailed(code per operation), cause chained

No retries happen here; retry policy belongs to the broker.

triggeredBy / requestedBy are advisory tags for workers and logs. They are
never used for authorization.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from core.config import DispatchPolicy
from core.contracts import AuthenticatedRequestContext, CatalogType
from core.errors import (
    DuplicateJobError,
    JobSubmissionFailed,
    QueueDisabled,
    QueueUnavailable,
)
from core.logging import get_logger, log_checkpoint, log_context, ComponentType
from core.models import DispatchAcknowledgment, JobSpec
from infrastructure.queue_registry import QueueRegistry

logger = get_logger(__name__, ComponentType.SERVICE)


# Job names consumed by workers
FULL_CATALOG_JOB = "ManualTrigger-FetchBunjangCatalog-Full"
SEGMENT_CATALOG_JOB = "ManualTrigger-FetchBunjangCatalog-Segment"
SINGLE_PRODUCT_JOB = "ManualTrigger-SyncSingleProduct"

# Stable failure codes, one per dispatch operation
FAILURE_FULL_CATALOG = "QUEUE_JOB_ADD_FAILED_FULL_CATALOG"
FAILURE_SEGMENT_CATALOG = "QUEUE_JOB_ADD_FAILED_SEGMENT_CATALOG"
FAILURE_SINGLE_PRODUCT = "QUEUE_JOB_ADD_FAILED_SINGLE_PRODUCT"

TRIGGER_MANUAL_FULL = "api_manual_full_sync"
TRIGGER_MANUAL_SEGMENT = "api_manual_segment_sync"
TRIGGER_MANUAL_SINGLE = "api_manual_single_product_sync"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobDispatcher:
    """
    Submits jobs through the queue registry.

    One instance per process, constructed by main.py with the registry and
    the configured identity policy.
    """

    def __init__(
        self,
        registry: QueueRegistry,
        catalog_queue: str,
        product_sync_queue: str,
        policy: Optional[DispatchPolicy] = None,
    ):
        self.registry = registry
        self.catalog_queue = catalog_queue
        self.product_sync_queue = product_sync_queue
        self.policy = policy or DispatchPolicy()

    # =========================================================================
    # CORE DISPATCH
    # =========================================================================

    def dispatch(
        self,
        job_name: str,
        queue_name: str,
        payload: Mapping[str, Any],
        identity: Optional[str] = None,
        *,
        failure_code: str = JobSubmissionFailed.error_code,
        triggered_by: str = "api_manual",
        requested_by: Optional[str] = None,
    ) -> DispatchAcknowledgment:
        """
        Submit one job.

        Args:
            job_name: Logical job name workers switch on
            queue_name: Logical queue name
            payload: Business fields for the job
            identity: Broker dedup key; None lets the broker assign an id
            failure_code: errorCode reported if submission fails
            triggered_by: Initiating surface tag
            requested_by: Caller tag (address or key fingerprint)

        Returns:
            DispatchAcknowledgment

        Raises:
            QueueDisabled: Broker administratively off
            QueueUnavailable: Queue could not be initialized
            JobSubmissionFailed: Broker errored on this submission
        """
        with log_context(queue_name=queue_name, job_name=job_name, operation="dispatch"):
            if not self.registry.is_enabled:
                logger.warning(f"Queue system disabled; '{job_name}' not queued")
                raise QueueDisabled(
                    "The queue system is disabled; the job cannot be queued.",
                )

            handle = self.registry.get_queue(queue_name)
            if handle is None:
                cause = self.registry.last_error(queue_name)
                logger.error(f"Queue '{queue_name}' unavailable: {cause}")
                raise QueueUnavailable(
                    f"Queue '{queue_name}' is not available.",
                    details={"queueName": queue_name, "reason": _error_class(cause)},
                )

            spec = JobSpec(
                logical_name=job_name,
                queue_name=queue_name,
                payload={
                    **dict(payload),
                    "triggeredBy": triggered_by,
                    "requestedBy": requested_by,
                },
                identity=identity,
            )
            submitted_at = _utcnow()

            try:
                job_id = handle.add(spec.logical_name, spec.payload, spec.identity)
            except DuplicateJobError as dup:
                log_checkpoint("job_duplicate", {"job_id": dup.job_id}, logger=logger.logger)
                logger.info(f"Job '{dup.job_id}' already queued on {queue_name}; treating as success")
                return DispatchAcknowledgment(
                    job_id=dup.job_id,
                    queue_name=queue_name,
                    job_name=job_name,
                    submitted_at_utc=submitted_at,
                    duplicate=True,
                )
            except Exception as exc:
                logger.error(
                    f"Error adding job '{job_name}' to queue '{queue_name}': "
                    f"{type(exc).__name__}: {exc}",
                    exc_info=True,
                )
                raise JobSubmissionFailed(
                    "The job could not be added to the queue.",
                    error_code=failure_code,
                    cause=exc,
                    queue_name=queue_name,
                    job_name=job_name,
                ) from exc

            if not job_id:
                raise JobSubmissionFailed(
                    "The queue did not return a job id.",
                    error_code=failure_code,
                    queue_name=queue_name,
                    job_name=job_name,
                )

            log_checkpoint("job_enqueued", {"job_id": job_id}, logger=logger.logger)
            logger.info(f"Job '{job_name}' (ID: {job_id}) added to queue '{queue_name}'")
            return DispatchAcknowledgment(
                job_id=str(job_id),
                queue_name=queue_name,
                job_name=job_name,
                submitted_at_utc=submitted_at,
            )

    # =========================================================================
    # IDENTITY POLICY
    # =========================================================================

    def full_catalog_identity(self, now: Optional[datetime] = None) -> Optional[str]:
        """One manual full sync per UTC day when enabled, otherwise unlimited."""
        if not self.policy.full_catalog_daily_identity:
            return None
        now = now or _utcnow()
        return f"manual-full-catalog-{now.strftime('%Y-%m-%d')}"

    def single_product_identity(self, bunjang_pid: str, now: Optional[datetime] = None) -> str:
        """
        Identity for a single-product resync.

        Default: timestamp + nonce, so repeated resyncs of one product each
        get their own job. Single-flight: derived from the pid alone.
        """
        if self.policy.product_sync_single_flight:
            return f"manual-single-product-{bunjang_pid}"
        now = now or _utcnow()
        epoch_ms = int(now.timestamp() * 1000)
        return f"manual-single-product-{bunjang_pid}-{epoch_ms}-{uuid.uuid4().hex[:8]}"

    # =========================================================================
    # OPERATIONS
    # =========================================================================

    def trigger_full_catalog_sync(self, context: AuthenticatedRequestContext) -> DispatchAcknowledgment:
        with _request_log_context(context):
            return self.dispatch(
                FULL_CATALOG_JOB,
                self.catalog_queue,
                {"catalogType": CatalogType.FULL.value},
                identity=self.full_catalog_identity(),
                failure_code=FAILURE_FULL_CATALOG,
                triggered_by=TRIGGER_MANUAL_FULL,
                requested_by=context.client_identity,
            )

    def trigger_segment_catalog_sync(self, context: AuthenticatedRequestContext) -> DispatchAcknowledgment:
        with _request_log_context(context):
            return self.dispatch(
                SEGMENT_CATALOG_JOB,
                self.catalog_queue,
                {"catalogType": CatalogType.SEGMENT.value},
                identity=None,
                failure_code=FAILURE_SEGMENT_CATALOG,
                triggered_by=TRIGGER_MANUAL_SEGMENT,
                requested_by=context.client_identity,
            )

    def trigger_single_product_sync(
        self,
        bunjang_pid: str,
        context: AuthenticatedRequestContext,
    ) -> DispatchAcknowledgment:
        with _request_log_context(context):
            return self.dispatch(
                SINGLE_PRODUCT_JOB,
                self.product_sync_queue,
                {"bunjangPid": bunjang_pid},
                identity=self.single_product_identity(bunjang_pid),
                failure_code=FAILURE_SINGLE_PRODUCT,
                triggered_by=TRIGGER_MANUAL_SINGLE,
                requested_by=context.client_identity,
            )


def _request_log_context(context: AuthenticatedRequestContext):
    return log_context(
        request_id=context.request_id,
        client=context.client_identity,
        source_type=context.source_type.value,
    )


def _error_class(error: Optional[str]) -> str:
    """Exception class name only; the full message stays in the logs."""
    if not error:
        return "unknown"
    return error.split(":", 1)[0]


__all__ = [
    "JobDispatcher",
    "FULL_CATALOG_JOB",
    "SEGMENT_CATALOG_JOB",
    "SINGLE_PRODUCT_JOB",
    "FAILURE_FULL_CATALOG",
    "FAILURE_SEGMENT_CATALOG",
    "FAILURE_SINGLE_PRODUCT",
]
