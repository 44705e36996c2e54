"""
Domain exceptions for the booking platform.

Every exception here is caller-recoverable: the API layer turns it into a
JSON error response instead of a server fault. ``DependencyFailure`` is the
one kind that signals a collaborator (database, payment processor) failed,
and it is reported as 503 so callers can decide whether to retry.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message, "code": self.code, "details": self.details}


class ValidationError(DomainException):
    """Malformed times, non-positive durations, missing references."""


class NotFound(DomainException):
    status_code = status.HTTP_404_NOT_FOUND


class Forbidden(DomainException):
    status_code = status.HTTP_403_FORBIDDEN


class SlotUnavailable(DomainException):
    """The requested window overlaps an active booking or a blocked slot."""

    status_code = status.HTTP_409_CONFLICT


class InvalidStateTransition(DomainException):
    """An event was applied to a booking whose state forbids it."""


class CheckInRejected(InvalidStateTransition):
    WRONG_STATUS = "wrong_status"
    UNPAID = "unpaid"
    ALREADY_CHECKED_IN = "already_checked_in"
    DATE_PASSED = "date_passed"

    def __init__(self, reason: str, message: str) -> None:
        self.reason = reason
        super().__init__(message, code="CheckInRejected", details={"reason": reason})


class PaymentMismatch(DomainException):
    """A payment confirmation does not match the processor's record."""


class DependencyFailure(DomainException):
    """Repository or payment processor failure. The core never retries."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(DomainException)
    async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
        if isinstance(exc, DependencyFailure):
            logger.error("dependency failure on %s: %s", request.url.path, exc.message)
        else:
            logger.info("%s on %s: %s", exc.code, request.url.path, exc.message)
        return JSONResponse({"detail": exc.to_dict()}, status_code=exc.status_code)
