# ============================================================================
# API ERROR TRANSLATION
# ============================================================================
# STATUS: API - Single translation step from errors to HTTP responses
# PURPOSE: Exception handlers producing the JSON error envelope
# ============================================================================
"""
API Error Translation

Every failure leaves the gateway as:

    {"status": "error", "errorCode": "...", "message": "...", "details": ...}

- GatewayError subclasses carry their own status and code
- ValidationFailed always includes its violations in details
- Other details are included only outside production
- Framework errors (unknown route, wrong method, malformed request) are
  mapped onto the same envelope
- Anything else is a generic 500; the traceback goes to the log only
"""

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.errors import GatewayError, ValidationFailed
from security.validation import Violation

logger = logging.getLogger(__name__)

_HTTP_ERROR_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    503: "SERVICE_UNAVAILABLE",
}


def error_response(
    status_code: int,
    error_code: str,
    message: str,
    details: Optional[Any] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    content = {"status": "error", "errorCode": error_code, "message": message}
    if details is not None:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def register_exception_handlers(app: FastAPI, production: bool = False) -> None:
    """Attach the gateway's exception handlers to `app`."""

    async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(f"{exc.error_code} on {request.method} {request.url.path}: {exc.message}")
        else:
            logger.info(f"{exc.error_code} on {request.method} {request.url.path}")

        if isinstance(exc, ValidationFailed):
            details = exc.violations
        elif production:
            details = None
        else:
            details = exc.details

        content = exc.to_dict()
        if details is not None:
            content["details"] = details
        return JSONResponse(status_code=exc.status_code, content=content)

    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        violations = []
        for error in exc.errors():
            loc = error.get("loc", ())
            violations.append(
                Violation(
                    field=".".join(str(part) for part in loc) or "__root__",
                    message=error.get("msg", "Invalid value"),
                    constraint=error.get("type"),
                ).to_dict()
            )
        logger.info(f"VALIDATION_FAILED on {request.method} {request.url.path}: {len(violations)} errors")
        failed = ValidationFailed(violations)
        return error_response(failed.status_code, failed.error_code, failed.message, violations)

    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        error_code = _HTTP_ERROR_CODES.get(exc.status_code, "HTTP_ERROR")
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        return error_response(exc.status_code, error_code, message, headers=getattr(exc, "headers", None))

    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            f"Unhandled exception on {request.method} {request.url.path}: {type(exc).__name__}: {exc}",
            exc_info=True,
        )
        return error_response(500, "INTERNAL_SERVER_ERROR", "An unexpected error occurred.")

    app.add_exception_handler(GatewayError, gateway_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)


__all__ = ["register_exception_handlers", "error_response"]
