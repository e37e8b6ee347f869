# ============================================================================
# GATEWAY CONFIGURATION
# ============================================================================
# STATUS: Core - Environment-based configuration
# PURPOSE: Secrets, queue names, broker connection, dispatch policy
# ============================================================================
"""
Gateway Configuration

Loads configuration from environment variables with sensible defaults.

Secrets:
    INTERNAL_API_KEY            static key for operator endpoints
    SHOPIFY_API_SECRET          HMAC secret shared with the storefront
Neither is ever logged or echoed. Both gates fail closed when unset.

Queue broker:
    QUEUE_ENABLED               "true" to admit jobs (default false)
    QUEUE_BACKEND               servicebus | memory (default servicebus)
    QUEUE_CATALOG               catalog queue name
    QUEUE_PRODUCT_SYNC          single-product sync queue name
    SERVICE_BUS_CONNECTION_STRING or SERVICE_BUS_NAMESPACE (+ MANAGED_IDENTITY_CLIENT_ID)

Dispatch identity policy:
    PRODUCT_SYNC_SINGLE_FLIGHT  "true" -> one live resync per product
    FULL_CATALOG_DAILY_IDENTITY "true" -> one manual full sync per UTC day
"""

import logging
import os
from dataclasses import dataclass, field
from typing import List, Optional

logger = logging.getLogger(__name__)

QUEUE_BACKENDS = ("servicebus", "memory")


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class DispatchPolicy:
    """
    Identity policy per dispatch kind.

    Single-product resync defaults to a nonce-bearing identity: rapid
    repeated resyncs of one product are an accepted operational pattern.
    """
    product_sync_single_flight: bool = False
    full_catalog_daily_identity: bool = False


@dataclass
class ServiceBusSettings:
    """Azure Service Bus connection settings."""

    connection_string: Optional[str] = None
    fully_qualified_namespace: str = ""
    managed_identity_client_id: Optional[str] = None
    message_ttl_hours: int = 24

    @property
    def use_connection_string(self) -> bool:
        return bool(self.connection_string)

    @property
    def is_configured(self) -> bool:
        return bool(self.connection_string or self.fully_qualified_namespace)


@dataclass
class GatewayConfig:
    """Configuration for the sync gateway."""

    # App info
    env: str = "development"
    service_name: str = "bunjang-sync-gateway"

    # Secrets
    internal_api_key: Optional[str] = field(default=None, repr=False)
    shopify_api_secret: Optional[str] = field(default=None, repr=False)
    app_proxy_subpath_prefix: str = "bunjang-proxy"

    # Queue broker
    queue_enabled: bool = False
    queue_backend: str = "servicebus"
    catalog_queue: str = "catalog-processing-queue"
    product_sync_queue: str = "product-sync-queue"
    service_bus: ServiceBusSettings = field(default_factory=ServiceBusSettings)

    dispatch_policy: DispatchPolicy = field(default_factory=DispatchPolicy)

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    @classmethod
    def from_env(cls) -> "GatewayConfig":
        """Load configuration from environment variables."""
        backend = os.environ.get("QUEUE_BACKEND", "servicebus").strip().lower()
        if backend not in QUEUE_BACKENDS:
            raise ValueError(
                f"QUEUE_BACKEND must be one of {', '.join(QUEUE_BACKENDS)}, got '{backend}'"
            )

        return cls(
            env=os.environ.get("APP_ENV", "development"),
            service_name=os.environ.get("SERVICE_NAME", "bunjang-sync-gateway"),
            internal_api_key=os.environ.get("INTERNAL_API_KEY") or None,
            shopify_api_secret=os.environ.get("SHOPIFY_API_SECRET") or None,
            app_proxy_subpath_prefix=os.environ.get(
                "SHOPIFY_APP_PROXY_SUBPATH_PREFIX", "bunjang-proxy"
            ).strip("/"),
            queue_enabled=_env_bool("QUEUE_ENABLED"),
            queue_backend=backend,
            catalog_queue=os.environ.get("QUEUE_CATALOG", "catalog-processing-queue"),
            product_sync_queue=os.environ.get("QUEUE_PRODUCT_SYNC", "product-sync-queue"),
            service_bus=ServiceBusSettings(
                connection_string=os.environ.get("SERVICE_BUS_CONNECTION_STRING") or None,
                fully_qualified_namespace=os.environ.get("SERVICE_BUS_NAMESPACE", ""),
                managed_identity_client_id=os.environ.get("MANAGED_IDENTITY_CLIENT_ID") or None,
                message_ttl_hours=int(os.environ.get("SERVICE_BUS_MESSAGE_TTL_HOURS", "24")),
            ),
            dispatch_policy=DispatchPolicy(
                product_sync_single_flight=_env_bool("PRODUCT_SYNC_SINGLE_FLIGHT"),
                full_catalog_daily_identity=_env_bool("FULL_CATALOG_DAILY_IDENTITY"),
            ),
            log_level=os.environ.get("LOG_LEVEL", "INFO"),
            log_json=os.environ.get("LOG_FORMAT", "").lower() == "json",
        )

    @property
    def is_production(self) -> bool:
        return self.env == "production"

    @property
    def queue_names(self) -> List[str]:
        """Every queue the gateway dispatches to, deduplicated, in order."""
        return list(dict.fromkeys([self.catalog_queue, self.product_sync_queue]))

    def warn_if_insecure(self) -> None:
        """Log missing secrets at startup. Gates fail closed either way."""
        level = logging.CRITICAL if self.is_production else logging.WARNING
        if not self.internal_api_key:
            logger.log(
                level,
                f"INTERNAL_API_KEY is not set; operator endpoints will reject every request ({self.env})",
            )
        if not self.shopify_api_secret:
            logger.log(
                level,
                f"SHOPIFY_API_SECRET is not set; app proxy endpoints will reject every request ({self.env})",
            )
        if self.queue_enabled and self.queue_backend == "servicebus" and not self.service_bus.is_configured:
            logger.log(
                level,
                "QUEUE_ENABLED=true but neither SERVICE_BUS_CONNECTION_STRING nor "
                "SERVICE_BUS_NAMESPACE is set; queues will report unavailable",
            )


# Global config singleton
_config: Optional[GatewayConfig] = None


def get_config() -> GatewayConfig:
    """Get the global configuration singleton."""
    global _config
    if _config is None:
        _config = GatewayConfig.from_env()
    return _config


def reset_config() -> None:
    """Drop the cached configuration (tests and reloads)."""
    global _config
    _config = None


__all__ = [
    "DispatchPolicy",
    "ServiceBusSettings",
    "GatewayConfig",
    "get_config",
    "reset_config",
]
