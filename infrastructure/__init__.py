# ============================================================================
# INFRASTRUCTURE MODULE
# ============================================================================
# STATUS: Infrastructure - Queue broker access
# PURPOSE: Queue registry and broker-specific queue handles
# ============================================================================
"""
Infrastructure module for the sync gateway.

Provides:
- QueueRegistry: process-wide named queue handles
- InMemoryQueue: local broker (QUEUE_BACKEND=memory)
- ServiceBusBroker / ServiceBusQueue: Azure Service Bus (QUEUE_BACKEND=servicebus)

Usage:
    from infrastructure import QueueRegistry, build_queue_registry

    registry = build_queue_registry(config)
    handle = registry.get_queue(config.catalog_queue)
"""

from infrastructure.queue_registry import QueueHandle, QueueFactory, QueueRegistry
from infrastructure.memory_queue import InMemoryQueue, memory_queue_factory


def build_queue_registry(config) -> QueueRegistry:
    """
    Build the registry for the configured backend.

    The Service Bus module is imported only when that backend is selected.
    """
    if config.queue_backend == "memory":
        return QueueRegistry(
            factory=memory_queue_factory,
            enabled=config.queue_enabled,
            backend="memory",
        )

    from infrastructure.service_bus import ServiceBusBroker

    broker = ServiceBusBroker(config.service_bus)
    return QueueRegistry(
        factory=broker.open_queue,
        enabled=config.queue_enabled,
        backend="servicebus",
        on_close=broker.close,
    )


__all__ = [
    "QueueHandle",
    "QueueFactory",
    "QueueRegistry",
    "InMemoryQueue",
    "memory_queue_factory",
    "build_queue_registry",
]
