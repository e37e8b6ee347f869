# ============================================================================
# GATEWAY ERROR TAXONOMY
# ============================================================================
# STATUS: Core - Typed admission and dispatch failures
# PURPOSE: Narrow set of error kinds translated once into HTTP responses
# ============================================================================
"""
Gateway Errors

Every failure that can leave the gateway is one of these kinds. They are
raised only at admission boundaries (auth gates, validation gate,
dispatcher) and translated into the JSON error envelope by a single set of
exception handlers in api/errors.py.

    Unauthorized          401  credential absent
    Forbidden             403  credential present but wrong
    ValidationFailed      422  well-formed request, bad field values
    NotFound              404  collaborator found nothing
    QueueDisabled         503  broker administratively off
    QueueUnavailable      503  broker on but unreachable / misconfigured
    ServiceNotConfigured  503  collaborator not wired at startup
    AuthNotConfigured     500  server-side secret missing (fail closed)
    JobSubmissionFailed   500  broker errored on this submission
"""

from typing import Any, Dict, List, Optional


class GatewayError(Exception):
    """
    Base class for all gateway failures.

    Attributes:
        message: Human-readable, safe to return to the caller
        status_code: HTTP status for the response
        error_code: Stable machine-readable code
        details: Optional structured details (never secrets)
    """

    status_code: int = 500
    error_code: str = "INTERNAL_SERVER_ERROR"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Any = None,
    ):
        super().__init__(message)
        self.message = message
        if error_code is not None:
            self.error_code = error_code
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": "error",
            "errorCode": self.error_code,
            "message": self.message,
        }


class Unauthorized(GatewayError):
    status_code = 401
    error_code = "UNAUTHORIZED"


class Forbidden(GatewayError):
    status_code = 403
    error_code = "FORBIDDEN"


class NotFound(GatewayError):
    status_code = 404
    error_code = "NOT_FOUND"


class ValidationFailed(GatewayError):
    """Carries every violation found, not just the first."""

    status_code = 422
    error_code = "VALIDATION_FAILED"

    def __init__(self, violations: List[Dict[str, Any]], message: str = "Request validation failed"):
        super().__init__(message, details=violations)
        self.violations = violations


class QueueDisabled(GatewayError):
    status_code = 503
    error_code = "QUEUE_SYSTEM_DISABLED"


class QueueUnavailable(GatewayError):
    status_code = 503
    error_code = "QUEUE_INSTANCE_UNAVAILABLE"


class ServiceNotConfigured(GatewayError):
    status_code = 503
    error_code = "SERVICE_NOT_CONFIGURED"


class AuthNotConfigured(GatewayError):
    status_code = 500
    error_code = "AUTH_NOT_CONFIGURED_ON_SERVER"


class JobSubmissionFailed(GatewayError):
    """
    Broker rejected or errored on one submission.

    The original exception is kept on `cause` (and chained via
    `raise ... from`) for logs; `message` stays generic.
    """

    status_code = 500
    error_code = "QUEUE_JOB_ADD_FAILED"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        cause: Optional[BaseException] = None,
        queue_name: Optional[str] = None,
        job_name: Optional[str] = None,
    ):
        super().__init__(
            message,
            error_code=error_code,
            details={"queueName": queue_name, "jobName": job_name},
        )
        self.cause = cause
        self.queue_name = queue_name
        self.job_name = job_name


class DuplicateJobError(Exception):
    """
    Raised by a queue handle when the identity is already live.

    Not a GatewayError: the dispatcher turns it into an idempotent
    success acknowledgment.
    """

    def __init__(self, job_id: str):
        super().__init__(f"Job '{job_id}' is already enqueued")
        self.job_id = job_id


__all__ = [
    "GatewayError",
    "Unauthorized",
    "Forbidden",
    "NotFound",
    "ValidationFailed",
    "QueueDisabled",
    "QueueUnavailable",
    "ServiceNotConfigured",
    "AuthNotConfigured",
    "JobSubmissionFailed",
    "DuplicateJobError",
]
