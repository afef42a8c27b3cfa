"""FastAPI exception handlers for converting BookingError to HTTP responses.

The ErrorCode-to-HTTP status mapping follows REST conventions:
- 400 Bad Request: malformed request
- 401 Unauthorized: caller identity missing
- 403 Forbidden: caller does not own the booking
- 404 Not Found: booking missing
- 409 Conflict: booking state forbids the refund (already refunded, non-refundable, ...)
- 502 Bad Gateway: the payment gateway rejected the refund

Usage:
    from mukhymat_api.exceptions import register_exception_handlers
    register_exception_handlers(app)
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_401_UNAUTHORIZED,
    HTTP_403_FORBIDDEN,
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
    HTTP_502_BAD_GATEWAY,
)

from mukhymat.models.errors import BookingError, ErrorCode
from mukhymat.utils.logging import get_logger

logger = get_logger(__name__)

ERROR_CODE_TO_HTTP_STATUS: dict[ErrorCode, int] = {
    ErrorCode.INVALID_REQUEST: HTTP_400_BAD_REQUEST,
    ErrorCode.AUTH_REQUIRED: HTTP_401_UNAUTHORIZED,
    ErrorCode.UNAUTHORIZED: HTTP_403_FORBIDDEN,
    ErrorCode.BOOKING_NOT_FOUND: HTTP_404_NOT_FOUND,
    # Booking state preconditions
    ErrorCode.ALREADY_REFUNDED: HTTP_409_CONFLICT,
    ErrorCode.ALREADY_CANCELLED: HTTP_409_CONFLICT,
    ErrorCode.BOOKING_NOT_PAID: HTTP_409_CONFLICT,
    ErrorCode.MISSING_PAYMENT_INTENT: HTTP_409_CONFLICT,
    ErrorCode.NON_REFUNDABLE: HTTP_409_CONFLICT,
    ErrorCode.INVALID_AMOUNT: HTTP_409_CONFLICT,
    ErrorCode.REFUND_NOT_AVAILABLE: HTTP_409_CONFLICT,
    ErrorCode.REFUND_FAILED: HTTP_502_BAD_GATEWAY,
}


def get_http_status_for_error(code: ErrorCode) -> int:
    """Get HTTP status code for an ErrorCode, defaulting to 400."""
    return ERROR_CODE_TO_HTTP_STATUS.get(code, HTTP_400_BAD_REQUEST)


async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
    """Convert a BookingError to a JSON ErrorResponse with the mapped status."""
    status_code = get_http_status_for_error(exc.code)
    logger.info(
        "Request rejected: %s %s -> %s (%s)",
        request.method,
        request.url.path,
        exc.code.value,
        status_code,
    )
    return JSONResponse(
        status_code=status_code,
        content=exc.to_error_response().model_dump(mode="json"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app."""
    app.add_exception_handler(BookingError, booking_error_handler)  # type: ignore[arg-type]
