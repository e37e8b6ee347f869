# ============================================================================
# APP PROXY SIGNATURE VERIFICATION
# ============================================================================
# STATUS: Security - HMAC-SHA256 over canonicalized query parameters
# PURPOSE: Verify storefront-proxied requests against the shared secret
# ============================================================================
"""
App Proxy Signature Verification

The storefront forwards proxied requests with a `signature` query parameter:
hex HMAC-SHA256 of the remaining parameters, canonicalized as

    sorted(keys) -> "key=value" (list values joined by ",") -> concatenated

with no separator between pairs and no escaping. The canonical form must
match the signing party byte for byte.

Security contract:
- Comparison uses hmac.compare_digest() (constant time)
- verify() never raises; every failure is False
- Empty secret -> always False (fail closed)

All functions are pure and safe to call concurrently.
"""

import hashlib
import hmac
from typing import Any, Mapping, Optional, Union

SIGNATURE_FIELD = "signature"


def _render_value(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return ",".join(str(item) for item in value)
    return str(value)


def canonicalize(parameters: Mapping[str, Any]) -> str:
    """
    Build the canonical signing string for a parameter set.

    The signature field, if present, is excluded. Keys are sorted by raw
    string order, so insertion order of the mapping does not matter.
    """
    return "".join(
        f"{key}={_render_value(parameters[key])}"
        for key in sorted(parameters)
        if key != SIGNATURE_FIELD
    )


def sign(parameters: Mapping[str, Any], secret: Union[bytes, str]) -> str:
    """Compute the lowercase hex signature for a parameter set."""
    if isinstance(secret, str):
        secret = secret.encode("utf-8")
    return hmac.new(
        secret,
        canonicalize(parameters).encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


def verify(
    raw_parameters: Mapping[str, Any],
    signature_hex: Optional[str],
    secret: Optional[Union[bytes, str]],
) -> bool:
    """
    Verify an app proxy signature.

    Args:
        raw_parameters: Query parameters as received (signature may be included)
        signature_hex: Value of the signature parameter
        secret: Shared HMAC secret

    Returns:
        True if the signature matches the canonicalized parameters
    """
    if not isinstance(signature_hex, str) or not signature_hex or not secret:
        return False

    expected = sign(raw_parameters, secret)
    return hmac.compare_digest(
        expected.encode("ascii"),
        signature_hex.encode("utf-8", "replace"),
    )


__all__ = ["SIGNATURE_FIELD", "canonicalize", "sign", "verify"]
