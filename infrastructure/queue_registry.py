# ============================================================================
# QUEUE REGISTRY
# ============================================================================
# STATUS: Infrastructure - Process-wide named queue handles
# PURPOSE: Lazy, thread-safe lookup-or-init of broker queues by logical name
# ============================================================================
"""
Queue Registry

One registry per process, built by the composition root (main.py) and
injected into the dispatcher. It owns every queue handle; callers borrow a
handle for a single submission and never close it.

    registry = QueueRegistry(factory=broker.open_queue, enabled=True, backend="servicebus")
    handle = registry.get_queue("catalog-processing-queue")

get_queue() returns None in two distinct situations:
    - the broker is administratively disabled    -> registry.is_enabled is False
    - the queue could not be initialized         -> registry.last_error(name) is set

Handles are created on first request and reused for the process lifetime.
Failed initialization is not cached; the next lookup tries again.
"""

import logging
import threading
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol

logger = logging.getLogger(__name__)


class QueueHandle(Protocol):
    """A named, initialized broker queue."""

    name: str

    def add(
        self,
        job_name: str,
        payload: Dict[str, Any],
        identity: Optional[str] = None,
    ) -> str:
        """
        Submit one job and return the broker-assigned id.

        Raises DuplicateJobError when the broker reports `identity` as live.
        """
        ...

    def close(self) -> None:
        ...


QueueFactory = Callable[[str], QueueHandle]


class QueueRegistry:
    """Lazily-initialized set of named queue handles."""

    def __init__(
        self,
        factory: Optional[QueueFactory],
        enabled: bool = True,
        backend: str = "",
        on_close: Optional[Callable[[], None]] = None,
    ):
        """
        Args:
            factory: Builds a handle for a queue name; may raise on bad config
            enabled: False when the broker is administratively disabled
            backend: Backend label for status reporting
            on_close: Called after all handles are closed (broker teardown)
        """
        self._factory = factory
        self._enabled = bool(enabled and factory is not None)
        self.backend = backend
        self._on_close = on_close
        self._handles: Dict[str, QueueHandle] = {}
        self._errors: Dict[str, str] = {}
        self._lock = threading.Lock()

    @property
    def is_enabled(self) -> bool:
        return self._enabled

    def get_queue(self, name: str) -> Optional[QueueHandle]:
        """
        Look up or initialize the queue handle for `name`.

        Returns:
            The handle, or None if disabled or initialization failed
        """
        if not self._enabled:
            logger.warning(f"Queue system is disabled; queue '{name}' cannot be initialized")
            return None

        handle = self._handles.get(name)
        if handle is not None:
            return handle

        with self._lock:
            handle = self._handles.get(name)
            if handle is not None:
                return handle

            logger.info(f"Initializing queue: {name} (backend={self.backend or 'custom'})")
            try:
                handle = self._factory(name)
            except Exception as e:
                self._errors[name] = f"{type(e).__name__}: {e}"
                logger.error(f"Queue '{name}' could not be initialized: {type(e).__name__}: {e}")
                return None

            self._handles[name] = handle
            self._errors.pop(name, None)
            return handle

    def last_error(self, name: str) -> Optional[str]:
        """Most recent initialization error for `name`, if any."""
        return self._errors.get(name)

    def initialize_all(self, names: Iterable[str]) -> List[str]:
        """
        Pre-initialize queues at startup.

        Returns:
            Names that failed to initialize
        """
        if not self._enabled:
            logger.info("Queue system disabled; skipping queue pre-initialization")
            return []

        failed = [name for name in names if self.get_queue(name) is None]
        if failed:
            logger.warning(f"Queues unavailable after startup: {', '.join(failed)}")
        return failed

    def initialized_queues(self) -> List[str]:
        return sorted(self._handles)

    def status(self) -> Dict[str, Any]:
        """Registry status for health reporting. Does not contact the broker."""
        return {
            "enabled": self._enabled,
            "backend": self.backend,
            "initialized": self.initialized_queues(),
            "errors": dict(self._errors),
        }

    def close_all(self) -> None:
        """Close every handle. Called once at shutdown."""
        with self._lock:
            handles = list(self._handles.items())
            self._handles.clear()

        for name, handle in handles:
            try:
                handle.close()
                logger.info(f"Queue '{name}' closed")
            except Exception as e:
                logger.warning(f"Error closing queue '{name}': {e}")

        if self._on_close is not None:
            self._on_close()


__all__ = ["QueueHandle", "QueueFactory", "QueueRegistry"]
