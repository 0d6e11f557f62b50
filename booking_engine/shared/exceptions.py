"""Custom exception hierarchy and handlers."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import date

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import InterfaceError, OperationalError

logger = logging.getLogger(__name__)


class AppException(Exception):
    """Base application exception."""

    status_code = 400
    code = "app_error"
    retryable = False

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class NotFoundException(AppException):
    """Raised when entity is not found."""

    status_code = 404
    code = "not_found"


class ConflictException(AppException):
    """Raised when entity conflicts with current state."""

    status_code = 409
    code = "conflict"


class BusinessRuleException(AppException):
    """Raised when business rule validation fails."""

    status_code = 422
    code = "business_rule_violation"


class BookingValidationException(BusinessRuleException):
    """Raised when a proposal fails local checks; never reaches storage."""

    code = "validation_error"

    def __init__(self, message: str, fields: Iterable[str] = ()) -> None:
        super().__init__(message)
        self.fields = tuple(fields)


class SlotUnavailableException(ConflictException):
    """Base for the two recoverable 'someone else has it' outcomes."""

    retryable = True

    def __init__(
        self,
        message: str,
        *,
        excluded_dates: Iterable[date] = (),
        excluded_slot: str | None = None,
    ) -> None:
        super().__init__(message)
        self.excluded_dates = tuple(sorted(set(excluded_dates)))
        self.excluded_slot = excluded_slot


class StaleAvailabilityException(SlotUnavailableException):
    """Raised when the pre-commit re-check finds the offered option taken."""

    code = "stale_availability"


class CommitConflictException(SlotUnavailableException):
    """Raised when the atomic write loses the race after passing the re-check."""

    code = "commit_conflict"


class TransportException(AppException):
    """Raised when the database is unreachable; nothing was written."""

    status_code = 503
    code = "transport_error"
    retryable = True


class PartialCommitException(AppException):
    """Raised when only half of an order/booking pair could be handled."""

    status_code = 500
    code = "partial_commit"


@contextmanager
def transport_errors(message: str = "Booking storage is unavailable, please retry") -> Iterator[None]:
    """Translate connection level database failures into ``TransportException``."""
    try:
        yield
    except (OperationalError, InterfaceError) as exc:
        raise TransportException(message) from exc


async def app_exception_handler(_: Request, exc: AppException) -> JSONResponse:
    """Handle custom domain exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": {"code": exc.code, "message": exc.message}},
    )


async def http_exception_handler(_: Request, exc: HTTPException) -> JSONResponse:
    """Handle FastAPI HTTP exceptions in unified shape."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": {"code": "http_error", "message": str(exc.detail)}},
    )


async def unhandled_exception_handler(_: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.exception("Unhandled error: %s", exc)
    return JSONResponse(
        status_code=500,
        content={"error": {"code": "internal_error", "message": "Internal server error"}},
    )


def register_exception_handlers(app) -> None:
    """Register global exception handlers."""
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
