"""Error responses as RFC 9457 Problem Details (https://tools.ietf.org/rfc/rfc9457.txt)."""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

PROBLEM_BASE_URI = "https://ceylonbooking.lk/problems/"


class ProblemDetailsException(HTTPException):
    """
    Base class for every error the API reports.

    Subclasses fix ``status_code``, ``title``, ``slug`` and ``code``; each
    raise site supplies the ``detail`` and any extension members. The
    rendered body is kept in ``problem_details``.
    """

    status_code: int = 500
    title: str = "Internal Server Error"
    slug: str = "internal-server-error"
    code: Optional[str] = None
    retryable: Optional[bool] = None

    def __init__(
        self,
        detail: Optional[str] = None,
        instance: Optional[str] = None,
        extensions: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.problem_details: Dict[str, Any] = {
            "type": PROBLEM_BASE_URI + self.slug,
            "title": self.title,
            "status": self.status_code,
        }
        if detail:
            self.problem_details["detail"] = detail
        if instance:
            self.problem_details["instance"] = instance
        if self.code:
            self.problem_details["code"] = self.code
        if self.retryable is not None:
            self.problem_details["retryable"] = self.retryable
        self.problem_details.update(extensions or {})

        super().__init__(status_code=self.status_code, detail=self.problem_details, headers=headers)


class ValidationError(ProblemDetailsException):
    """Input rejected before it reaches the ledger: non-positive quantity, price or unknown currency."""

    status_code = 400
    title = "Validation Error"
    slug = "validation-error"
    code = "INVALID_INPUT"
    retryable = False

    def __init__(self, detail: str = "The request data failed validation", errors: Optional[Dict[str, Any]] = None):
        super().__init__(detail=detail, extensions={"errors": errors} if errors else None)


class AuthenticationError(ProblemDetailsException):
    status_code = 401
    title = "Authentication Required"
    slug = "authentication-required"
    code = "UNAUTHENTICATED"

    def __init__(self, detail: str = "Authentication credentials are required"):
        super().__init__(detail=detail, headers={"WWW-Authenticate": "Bearer"})


class PermissionDeniedError(ProblemDetailsException):
    """
    Access refused.

    Raised for ownership checks at the HTTP boundary and when the capacity
    ledger refuses to show existing bookings. In the latter case availability
    is indeterminate and the request fails closed.
    """

    status_code = 403
    title = "Access Forbidden"
    slug = "access-forbidden"
    code = "PERMISSION_DENIED"
    retryable = False

    def __init__(self, detail: str = "Insufficient permissions to access this resource"):
        super().__init__(detail=detail)


class NotFoundError(ProblemDetailsException):
    status_code = 404
    title = "Resource Not Found"
    slug = "resource-not-found"
    code = "NOT_FOUND"

    def __init__(self, resource_type: str = "resource", resource_id: Optional[str] = None):
        detail = f"The requested {resource_type}"
        if resource_id:
            detail += f" with ID '{resource_id}'"
        detail += " could not be found"

        extensions = {"resource_type": resource_type}
        if resource_id:
            extensions["resource_id"] = resource_id
        super().__init__(detail=detail, extensions=extensions)


class InsufficientCapacityError(ProblemDetailsException):
    """Normal business rejection: the conflict key has fewer units left than requested."""

    status_code = 409
    title = "Insufficient Capacity"
    slug = "insufficient-capacity"
    code = "INSUFFICIENT_CAPACITY"
    retryable = False

    def __init__(
        self,
        listing_id: str,
        requested_quantity: int,
        remaining_capacity: int,
        detail: Optional[str] = None,
    ):
        self.remaining_capacity = remaining_capacity
        super().__init__(
            detail=detail or f"Insufficient capacity. Only {remaining_capacity} slots remaining.",
            extensions={
                "conflicting_resource": {
                    "listing_id": listing_id,
                    "requested_quantity": requested_quantity,
                    "remaining_capacity": remaining_capacity,
                }
            },
        )


class LedgerWriteFailedError(ProblemDetailsException):
    """The capacity ledger rejected the booking insert. Never retried automatically."""

    status_code = 502
    title = "Ledger Write Failed"
    slug = "ledger-write-failed"
    code = "LEDGER_WRITE_FAILED"
    retryable = False

    def __init__(self, detail: str = "The booking could not be recorded"):
        super().__init__(detail=detail)


class InternalServerError(ProblemDetailsException):
    """Unexpected failure; the ``error_id`` ties the response to the server log line."""

    def __init__(self, instance: Optional[str] = None, error_id: Optional[str] = None):
        super().__init__(
            detail="An unexpected error occurred while processing the request",
            instance=instance,
            extensions={
                "error_id": error_id or str(uuid.uuid4()),
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
        )


async def problem_details_handler(request: Request, exc: ProblemDetailsException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.problem_details,
        headers=exc.headers,
    )


async def validation_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Render request body validation failures as Problem Details with violations."""
    violations = [
        {
            "path": ".".join(str(part) for part in error.get("loc", ())),
            "message": error.get("msg", "Invalid value"),
        }
        for error in getattr(exc, "errors", lambda: [])()
    ]

    return JSONResponse(
        status_code=422,
        content={
            "type": PROBLEM_BASE_URI + "validation-error",
            "title": "Unprocessable Entity",
            "status": 422,
            "detail": "The request body failed validation",
            "code": "INVALID_INPUT",
            "retryable": False,
            "violations": violations,
        },
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log the unhandled exception under a fresh error id and hide its details from the client."""
    problem = InternalServerError(instance=str(request.url))
    logger.error(
        "Unhandled exception",
        exc_info=exc,
        extra={"error_id": problem.problem_details["error_id"], "path": request.url.path}
    )
    return JSONResponse(status_code=500, content=problem.problem_details)
