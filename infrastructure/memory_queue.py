# ============================================================================
# IN-PROCESS QUEUE
# ============================================================================
# STATUS: Infrastructure - Local broker for development and tests
# PURPOSE: QueueHandle backed by process memory (QUEUE_BACKEND=memory)
# ============================================================================
"""
In-Process Queue

A QueueHandle that keeps jobs in memory. Used when running the gateway
locally without a Service Bus namespace, and in tests.

Unlike Service Bus (which silently drops duplicate message ids), this
backend reports a live duplicate identity with DuplicateJobError, the way
Redis-backed job queues do. Completing a job frees its identity.

Development and test backend only: not durable and not shared between
processes. Pending jobs are held until completed (no worker drains this
queue); completed jobs are kept for inspection up to `max_completed`, oldest
dropped first.
"""

import logging
import threading
import uuid
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from core.errors import DuplicateJobError
from core.models import JobSpec

logger = logging.getLogger(__name__)

DEFAULT_MAX_COMPLETED = 1000


@dataclass
class QueuedJob:
    """A job held by the in-process queue."""
    job_id: str
    spec: JobSpec
    enqueued_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed: bool = False


class InMemoryQueue:
    """Thread-safe in-memory QueueHandle."""

    def __init__(self, name: str, max_completed: int = DEFAULT_MAX_COMPLETED):
        self.name = name
        self.max_completed = max_completed
        # Submission order is the dict order
        self._jobs: "OrderedDict[str, QueuedJob]" = OrderedDict()
        self._completed: "OrderedDict[str, None]" = OrderedDict()
        self._lock = threading.Lock()
        self._closed = False

    def add(
        self,
        job_name: str,
        payload: Dict[str, Any],
        identity: Optional[str] = None,
    ) -> str:
        if self._closed:
            raise RuntimeError(f"Queue '{self.name}' is closed")

        spec = JobSpec(
            logical_name=job_name,
            queue_name=self.name,
            payload=dict(payload),
            identity=identity,
        )

        with self._lock:
            if identity is not None:
                existing = self._jobs.get(identity)
                if existing is not None and not existing.completed:
                    raise DuplicateJobError(identity)

            job_id = identity or uuid.uuid4().hex
            if job_id in self._jobs:
                # Completed job with a reused identity
                del self._jobs[job_id]
                self._completed.pop(job_id, None)
            self._jobs[job_id] = QueuedJob(job_id=job_id, spec=spec)

        logger.debug(f"Job {job_id} ({job_name}) held in memory queue {self.name}")
        return job_id

    def complete(self, job_id: str) -> None:
        """Mark a job completed; its identity becomes reusable."""
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise KeyError(job_id)
            if job.completed:
                return
            job.completed = True
            self._completed[job_id] = None
            while len(self._completed) > self.max_completed:
                oldest, _ = self._completed.popitem(last=False)
                del self._jobs[oldest]

    def pending(self) -> List[QueuedJob]:
        """Jobs not yet completed, in submission order."""
        with self._lock:
            return [job for job in self._jobs.values() if not job.completed]

    def get(self, job_id: str) -> Optional[QueuedJob]:
        with self._lock:
            return self._jobs.get(job_id)

    def size(self) -> int:
        """Jobs held, pending and retained completed."""
        with self._lock:
            return len(self._jobs)

    def close(self) -> None:
        self._closed = True


def memory_queue_factory(name: str) -> InMemoryQueue:
    """QueueFactory for QueueRegistry."""
    return InMemoryQueue(name)


__all__ = ["QueuedJob", "InMemoryQueue", "memory_queue_factory"]
