# ============================================================================
# AUTH GATES
# ============================================================================
# STATUS: Security - Admission checks for the two trust boundaries
# PURPOSE: Internal static-key check and storefront proxy signature check
# ============================================================================
"""
Auth Gates

Two independent gates; a route is protected by exactly one of them.

InternalKeyGate (operator endpoints):
    key absent            -> Unauthorized(API_KEY_MISSING)
    key wrong             -> Forbidden(API_KEY_INVALID)
    server key unset      -> AuthNotConfigured (fail closed)

ProxySignatureGate (storefront app proxy endpoints):
    signature absent      -> Unauthorized(SIGNATURE_MISSING)
    signature wrong       -> Forbidden(SIGNATURE_INVALID)
    server secret unset   -> AuthNotConfigured (fail closed)
    ok                    -> context.verified_parameters (signature excluded)

Gates run before validation so an unauthenticated caller never sees
validation details.
"""

import hmac
import logging
from collections import OrderedDict
from typing import Dict, Iterable, List, Optional, Tuple, Union

from core.contracts import AuthenticatedRequestContext, SourceType, new_request_id
from core.errors import AuthNotConfigured, Forbidden, Unauthorized
from core.logging import key_fingerprint, log_context
from security import signature as signature_verifier

logger = logging.getLogger(__name__)

API_KEY_HEADER = "x-api-key"
API_KEY_QUERY_PARAM = "apiKey"


class InternalKeyGate:
    """Static API key check for operator-triggered endpoints."""

    def __init__(self, api_key: Optional[str]):
        self._api_key = api_key.encode("utf-8") if api_key else None

    @property
    def is_configured(self) -> bool:
        return self._api_key is not None

    def check(
        self,
        supplied_key: Optional[str],
        client_ip: str,
        request_id: Optional[str] = None,
    ) -> AuthenticatedRequestContext:
        """
        Admit or reject an operator request.

        Args:
            supplied_key: Key from the x-api-key header or apiKey query param
            client_ip: Caller address, for logs only
            request_id: Correlation id carried into the context (generated if None)

        Returns:
            AuthenticatedRequestContext with the key fingerprint as identity
        """
        request_id = request_id or new_request_id()
        with log_context(request_id=request_id, client=client_ip, source_type=SourceType.INTERNAL_OPERATOR.value):
            if self._api_key is None:
                logger.error("Internal API key is not configured on the server; denying access")
                raise AuthNotConfigured(
                    "API authentication is not configured on the server. Contact an administrator."
                )

            if not supplied_key:
                logger.warning(f"API key missing in request from {client_ip}")
                raise Unauthorized(
                    f"API key is missing. Send it in the '{API_KEY_HEADER}' header "
                    f"or the '{API_KEY_QUERY_PARAM}' query parameter.",
                    error_code="API_KEY_MISSING",
                )

            fingerprint = key_fingerprint(supplied_key)
            if not hmac.compare_digest(supplied_key.encode("utf-8"), self._api_key):
                logger.warning(f"Invalid API key from {client_ip} (fingerprint={fingerprint})")
                raise Forbidden("The supplied API key is not valid.", error_code="API_KEY_INVALID")

            return AuthenticatedRequestContext(
                request_id=request_id,
                source_type=SourceType.INTERNAL_OPERATOR,
                client_identity=f"key:{fingerprint}",
            )


QueryItems = Iterable[Tuple[str, str]]


def group_query_items(items: QueryItems) -> "OrderedDict[str, Union[str, List[str]]]":
    """
    Group raw (key, value) pairs, keeping repeated keys as lists.

    Repeated keys must stay lists so canonicalization joins them with ","
    exactly as the signing party did.
    """
    grouped: "OrderedDict[str, Union[str, List[str]]]" = OrderedDict()
    for key, value in items:
        if key in grouped:
            existing = grouped[key]
            if isinstance(existing, list):
                existing.append(value)
            else:
                grouped[key] = [existing, value]
        else:
            grouped[key] = value
    return grouped


class ProxySignatureGate:
    """HMAC signature check for storefront app proxy requests."""

    def __init__(self, secret: Optional[str]):
        self._secret = secret.encode("utf-8") if secret else None

    @property
    def is_configured(self) -> bool:
        return self._secret is not None

    def check(
        self,
        query_items: QueryItems,
        client_ip: str,
        request_id: Optional[str] = None,
    ) -> AuthenticatedRequestContext:
        """
        Admit or reject a proxied request.

        Args:
            query_items: Raw query (key, value) pairs, repeated keys allowed
            client_ip: Caller address
            request_id: Correlation id carried into the context (generated if None)

        Returns:
            AuthenticatedRequestContext whose verified_parameters exclude the signature
        """
        request_id = request_id or new_request_id()
        with log_context(request_id=request_id, client=client_ip, source_type=SourceType.STOREFRONT_PROXY.value):
            if self._secret is None:
                logger.error("App proxy secret is not configured on the server; denying access")
                raise AuthNotConfigured(
                    "App proxy authentication is not configured on the server. Contact an administrator."
                )

            params = group_query_items(query_items)
            supplied = params.pop(signature_verifier.SIGNATURE_FIELD, None)

            if not supplied:
                logger.warning(f"App proxy signature missing (client={client_ip})")
                raise Unauthorized("App proxy signature is missing.", error_code="SIGNATURE_MISSING")

            # A repeated signature parameter arrives as a list and never verifies
            if isinstance(supplied, list) or not signature_verifier.verify(params, supplied, self._secret):
                logger.warning(f"App proxy signature verification failed (client={client_ip})")
                raise Forbidden("App proxy signature verification failed.", error_code="SIGNATURE_INVALID")

            verified: Dict[str, str] = {
                key: ",".join(value) if isinstance(value, list) else value
                for key, value in params.items()
            }

            return AuthenticatedRequestContext(
                request_id=request_id,
                source_type=SourceType.STOREFRONT_PROXY,
                verified_parameters=verified,
                client_identity=client_ip,
            )


__all__ = [
    "API_KEY_HEADER",
    "API_KEY_QUERY_PARAM",
    "InternalKeyGate",
    "ProxySignatureGate",
    "group_query_items",
]
