# ============================================================================
# SERVICE BUS INFRASTRUCTURE
# ============================================================================
# STATUS: Infrastructure - Azure Service Bus job queues
# PURPOSE: QueueHandle implementation on Azure Service Bus senders
# ============================================================================
"""
Service Bus Infrastructure

QueueHandle implementation for Azure Service Bus.

Key Design Decisions:
    - One ServiceBusClient per broker (credential reuse)
    - One sender per queue, opened at init (AMQP connection warmup)
    - Dual auth: connection string OR managed identity
    - Job identity -> message_id; with duplicate detection enabled on the
      queue, Service Bus drops repeats of a live message_id
    - Error categorization: permanent vs transient, logged; no retry here
      beyond the SDK's own transport retry

Usage:
    broker = ServiceBusBroker(settings)
    registry = QueueRegistry(factory=broker.open_queue, enabled=True, backend="servicebus")
"""

import logging
import threading
import uuid
from datetime import timedelta
from typing import Any, Dict, Optional

from azure.identity import DefaultAzureCredential, ManagedIdentityCredential
from azure.servicebus import ServiceBusClient, ServiceBusMessage, ServiceBusSender
from azure.servicebus.exceptions import (
    MessageSizeExceededError,
    MessagingEntityNotFoundError,
    OperationTimeoutError,
    ServiceBusAuthenticationError,
    ServiceBusAuthorizationError,
    ServiceBusCommunicationError,
    ServiceBusConnectionError,
    ServiceBusError,
    ServiceBusQuotaExceededError,
    ServiceBusServerBusyError,
)

from core.config import ServiceBusSettings
from core.models import JobSpec

logger = logging.getLogger(__name__)


class QueueBrokerError(RuntimeError):
    """Service Bus rejected or failed a send. `permanent` marks non-transient causes."""

    def __init__(self, message: str, permanent: bool = False):
        super().__init__(message)
        self.permanent = permanent


# ============================================================================
# QUEUE HANDLE
# ============================================================================

class ServiceBusQueue:
    """
    A single Service Bus queue with a warmed-up sender.

    Senders are not safe for concurrent use, so sends on one queue are
    serialized with a lock. Requests on different queues do not contend.
    """

    def __init__(self, name: str, sender: ServiceBusSender, message_ttl_hours: int = 24):
        self.name = name
        self._sender = sender
        self._ttl = timedelta(hours=message_ttl_hours)
        self._send_lock = threading.Lock()

    def add(
        self,
        job_name: str,
        payload: Dict[str, Any],
        identity: Optional[str] = None,
    ) -> str:
        """
        Send one job message.

        Returns:
            The message_id (identity when given, otherwise a fresh UUID)

        Raises:
            QueueBrokerError: If the send fails
        """
        spec = JobSpec(
            logical_name=job_name,
            queue_name=self.name,
            payload=payload,
            identity=identity,
        )
        message_id = identity or str(uuid.uuid4())

        sb_message = ServiceBusMessage(
            body=spec.to_message_body(),
            content_type="application/json",
            message_id=message_id,
            subject=job_name,
            time_to_live=self._ttl,
            application_properties={
                "job_name": job_name,
                "triggered_by": str(payload.get("triggeredBy", "")),
            },
        )

        try:
            with self._send_lock:
                self._sender.send_messages(sb_message)

        except (ServiceBusAuthenticationError, ServiceBusAuthorizationError) as e:
            logger.error(f"Auth failed for {self.name}: {e}")
            raise QueueBrokerError(f"Service Bus auth failed: {e}", permanent=True) from e

        except MessageSizeExceededError as e:
            logger.error(f"Message too large for {self.name}: {e}")
            raise QueueBrokerError(f"Message exceeds size limit: {e}", permanent=True) from e

        except MessagingEntityNotFoundError as e:
            logger.error(f"Queue '{self.name}' not found: {e}")
            raise QueueBrokerError(f"Queue '{self.name}' does not exist: {e}", permanent=True) from e

        except ServiceBusQuotaExceededError as e:
            logger.error(f"Service Bus quota exceeded: {e}")
            raise QueueBrokerError(f"Service Bus quota exceeded: {e}", permanent=True) from e

        except (OperationTimeoutError, ServiceBusServerBusyError,
                ServiceBusConnectionError, ServiceBusCommunicationError) as e:
            logger.warning(f"Transient error sending to {self.name}: {type(e).__name__}")
            raise QueueBrokerError(f"Transient Service Bus error: {type(e).__name__}") from e

        except ServiceBusError as e:
            logger.warning(f"ServiceBusError sending to {self.name}: {type(e).__name__}")
            raise QueueBrokerError(f"Failed to send to {self.name}: {e}") from e

        logger.info(
            f"Message sent to {self.name}: {message_id}",
            extra={
                "queue": self.name,
                "message_id": message_id,
                "job_name": job_name,
            },
        )
        return message_id

    def close(self) -> None:
        with self._send_lock:
            self._sender.close()


# ============================================================================
# BROKER
# ============================================================================

class ServiceBusBroker:
    """
    Owns the ServiceBusClient and opens queue handles on demand.

    The client is created lazily on the first open_queue() call so that a
    misconfigured namespace surfaces as an unavailable queue rather than a
    startup crash.
    """

    def __init__(self, settings: ServiceBusSettings):
        self.settings = settings
        self._client: Optional[ServiceBusClient] = None
        self._credential = None
        self._lock = threading.Lock()

    def _connect(self) -> ServiceBusClient:
        """Establish connection to Service Bus."""
        with self._lock:
            if self._client is not None:
                return self._client

            if self.settings.use_connection_string:
                logger.info("Using connection string authentication")
                self._client = ServiceBusClient.from_connection_string(
                    self.settings.connection_string,
                    retry_total=3,
                    retry_backoff_factor=0.5,
                    retry_backoff_max=30,
                    retry_mode="exponential",
                )
            else:
                if not self.settings.fully_qualified_namespace:
                    raise ValueError(
                        "SERVICE_BUS_NAMESPACE environment variable not set. "
                        "Required for managed identity authentication."
                    )

                logger.info(
                    f"Using managed identity for namespace: {self.settings.fully_qualified_namespace}"
                )
                if self.settings.managed_identity_client_id:
                    self._credential = ManagedIdentityCredential(
                        client_id=self.settings.managed_identity_client_id
                    )
                else:
                    self._credential = DefaultAzureCredential()
                self._client = ServiceBusClient(
                    fully_qualified_namespace=self.settings.fully_qualified_namespace,
                    credential=self._credential,
                    retry_total=3,
                    retry_backoff_factor=0.5,
                    retry_backoff_max=30,
                    retry_mode="exponential",
                )
            return self._client

    def open_queue(self, queue_name: str) -> ServiceBusQueue:
        """
        Create a queue handle with connection warmup.

        The SDK creates senders with lazy AMQP links; a message sent while
        the link is still attaching can be lost, so the link is opened here
        before the handle is handed out.

        Raises:
            RuntimeError: If the sender cannot be opened
        """
        client = self._connect()
        sender = client.get_queue_sender(queue_name)

        try:
            sender._open()
            logger.debug(f"Sender AMQP link established for queue: {queue_name}")
        except Exception as e:
            logger.error(f"Sender warmup failed for {queue_name}: {e}")
            try:
                sender.close()
            except Exception as close_error:
                logger.debug(f"Ignoring close error after failed warmup: {close_error}")
            raise RuntimeError(f"Sender warmup failed for '{queue_name}': {e}") from e

        return ServiceBusQueue(queue_name, sender, self.settings.message_ttl_hours)

    def close(self) -> None:
        """Close the client. Queue handles are closed by the registry."""
        if self._client:
            try:
                self._client.close()
            except Exception as e:
                logger.warning(f"Error closing Service Bus client: {e}")
            self._client = None


__all__ = [
    "QueueBrokerError",
    "ServiceBusQueue",
    "ServiceBusBroker",
]
