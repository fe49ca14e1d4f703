"""
Custom exception hierarchy for the Momentum engine.

Rule: every error has a machine-readable `code` string so clients
can branch on it without parsing English messages.

Every error response uses the result envelope
    {"success": false, "error": {"code", "message", "details"?}}
which mirrors the success shape {"success": true, "data": ...}.
"""
from __future__ import annotations

import logging
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exception classes
# ---------------------------------------------------------------------------

class MomentumException(Exception):
    """Base class for all application-level errors."""
    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(MomentumException):
    """Malformed or out-of-range input. Message is surfaced verbatim."""
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "VALIDATION_ERROR"


class AuthorizationError(MomentumException):
    """No owner, owner mismatch or missing elevated capability."""
    http_status = status.HTTP_403_FORBIDDEN
    code = "UNAUTHORIZED"

    def __init__(self, message: str = "Unauthorized"):
        # Never echo resource ids back: a denial must not leak existence.
        super().__init__(message=message)


class NotFoundError(MomentumException):
    http_status = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"

    def __init__(self, resource: str):
        super().__init__(
            message=f"{resource} not found.",
            details={"resource": resource},
        )


class StateError(MomentumException):
    """Operation invalid for the entity's current state."""
    http_status = status.HTTP_409_CONFLICT
    code = "INVALID_STATE"


class ConflictError(MomentumException):
    """Uniqueness rule violated (second active cycle, duplicate shield week)."""
    http_status = status.HTTP_409_CONFLICT
    code = "CONFLICT"


class IntegrityError(MomentumException):
    """
    A structural invariant is broken (seed fan-out count, two active heads).
    Fatal: the enclosing transaction is rolled back before this is raised.
    """
    http_status = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "INTEGRITY_VIOLATION"


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

def _error_envelope(status_code: int, error: dict[str, Any]) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": error},
    )


async def momentum_exception_handler(request: Request, exc: MomentumException) -> JSONResponse:
    if isinstance(exc, IntegrityError):
        logger.error(
            "Integrity violation on %s %s: %s",
            request.method, request.url.path, exc.message,
            extra={"extra_fields": {"details": exc.details}},
        )
    return _error_envelope(exc.http_status, exc.to_dict())


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Return structured 422 with machine-readable field errors."""
    field_errors = []
    for error in exc.errors():
        field_errors.append({
            "field": ".".join(str(loc) for loc in error["loc"] if loc != "body"),
            "message": error["msg"],
            "type": error["type"],
        })
    return _error_envelope(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        {
            "code": "VALIDATION_ERROR",
            "message": "Request validation failed.",
            "details": {"errors": field_errors},
        },
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error_envelope(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        {
            "code": "INTERNAL_ERROR",
            "message": "An unexpected error occurred.",
        },
    )
