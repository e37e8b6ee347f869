# ============================================================================
# CONFIGURATION MODULE
# ============================================================================
# STATUS: Core - Configuration
# PURPOSE: Centralized configuration management
# ============================================================================
"""
Configuration Module

Provides centralized, environment-driven configuration for the gateway.
"""

from core.config.settings import (
    DispatchPolicy,
    ServiceBusSettings,
    GatewayConfig,
    get_config,
    reset_config,
)

__all__ = [
    "DispatchPolicy",
    "ServiceBusSettings",
    "GatewayConfig",
    "get_config",
    "reset_config",
]
