"""FastAPI exception handlers for converting BookingError to HTTP responses.

Every BookingError carries an ErrorKind; the kind alone decides the status:
- 400 Bad Request: malformed or out-of-range input
- 402 Payment Required: not enough loyalty points
- 404 Not Found: unknown reservation, resource, user or account
- 409 Conflict: overlapping booking, lost race, already cancelled
- 422 Unprocessable Entity: lifecycle rule violations
- 503 Service Unavailable: storage outcome unknown (re-query before retrying)

Usage:
    from stayledger_api.exceptions import register_exception_handlers
    register_exception_handlers(app)
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_402_PAYMENT_REQUIRED,
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
    HTTP_422_UNPROCESSABLE_ENTITY,
    HTTP_500_INTERNAL_SERVER_ERROR,
    HTTP_503_SERVICE_UNAVAILABLE,
)

from stayledger.models.errors import BookingError, ErrorKind

logger = logging.getLogger(__name__)

ERROR_KIND_TO_HTTP_STATUS: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: HTTP_400_BAD_REQUEST,
    ErrorKind.INSUFFICIENT_BALANCE: HTTP_402_PAYMENT_REQUIRED,
    ErrorKind.NOT_FOUND: HTTP_404_NOT_FOUND,
    ErrorKind.CONFLICT: HTTP_409_CONFLICT,
    ErrorKind.ALREADY_CANCELLED: HTTP_409_CONFLICT,
    ErrorKind.BUSINESS_RULE: HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorKind.OUTCOME_UNKNOWN: HTTP_503_SERVICE_UNAVAILABLE,
}


def get_http_status_for_error(kind: ErrorKind) -> int:
    """Get HTTP status code for an ErrorKind, defaulting to 400."""
    return ERROR_KIND_TO_HTTP_STATUS.get(kind, HTTP_400_BAD_REQUEST)


async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
    """Handle BookingError exceptions and convert to JSON response.

    Args:
        request: The incoming request (unused but required by FastAPI)
        exc: The BookingError exception

    Returns:
        JSONResponse with the ErrorResponse body and the kind's status code.
    """
    status_code = get_http_status_for_error(exc.kind)
    if status_code >= HTTP_500_INTERNAL_SERVER_ERROR:
        logger.warning("Request failed with %s: %s", exc.code.value, exc.message)

    return JSONResponse(
        status_code=status_code,
        content=exc.to_response().model_dump(mode="json"),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions with a generic error response.

    Internal details are logged, never returned to the client.
    """
    logger.exception("Unhandled exception: %s", exc)

    return JSONResponse(
        status_code=HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "kind": "internal",
            "error_code": "ERR_INTERNAL",
            "message": "An unexpected error occurred",
            "recovery": "Please try again later or contact support",
            "details": None,
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app.

    Args:
        app: The FastAPI application instance.
    """
    app.add_exception_handler(BookingError, booking_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, generic_exception_handler)
