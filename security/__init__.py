# ============================================================================
# SECURITY MODULE
# ============================================================================
# STATUS: Security - Admission layer
# PURPOSE: Signature verification, auth gates, validation gate
# ============================================================================
"""
Security Module

Everything a request passes through before any side effect:

    AuthGate (InternalKeyGate | ProxySignatureGate) -> ValidationGate
"""

from security.signature import canonicalize, sign, verify
from security.auth import InternalKeyGate, ProxySignatureGate
from security.validation import ValidationGate, ValidationResult, Violation

__all__ = [
    "canonicalize",
    "sign",
    "verify",
    "InternalKeyGate",
    "ProxySignatureGate",
    "ValidationGate",
    "ValidationResult",
    "Violation",
]
