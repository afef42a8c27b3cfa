"""Standard error codes for refund and cancellation operations.

The refund policy engine itself never raises; these errors belong to the
callers that validate bookings and issue gateway refunds.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class ErrorCode(str, Enum):
    """Standard error codes for booking cancellation and refunds."""

    BOOKING_NOT_FOUND = "ERR_001"
    UNAUTHORIZED = "ERR_002"
    INVALID_REQUEST = "ERR_003"
    ALREADY_REFUNDED = "ERR_004"
    BOOKING_NOT_PAID = "ERR_005"
    MISSING_PAYMENT_INTENT = "ERR_006"
    NON_REFUNDABLE = "ERR_007"
    INVALID_AMOUNT = "ERR_008"
    REFUND_NOT_AVAILABLE = "ERR_009"
    ALREADY_CANCELLED = "ERR_010"
    REFUND_FAILED = "ERR_011"

    AUTH_REQUIRED = "ERR_AUTH_001"


# Human-readable error messages
ERROR_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.BOOKING_NOT_FOUND: "Booking not found",
    ErrorCode.UNAUTHORIZED: "You do not have permission to modify this booking",
    ErrorCode.INVALID_REQUEST: "Missing or invalid request fields",
    ErrorCode.ALREADY_REFUNDED: "Booking has already been refunded",
    ErrorCode.BOOKING_NOT_PAID: "Cannot refund a booking that has not been paid",
    ErrorCode.MISSING_PAYMENT_INTENT: "No payment intent found for this booking",
    ErrorCode.NON_REFUNDABLE: "This booking is non-refundable",
    ErrorCode.INVALID_AMOUNT: "Invalid refund amount calculated",
    ErrorCode.REFUND_NOT_AVAILABLE: "Refund deadline has passed",
    ErrorCode.ALREADY_CANCELLED: "Booking has already been cancelled",
    ErrorCode.REFUND_FAILED: "Refund processing failed",
    ErrorCode.AUTH_REQUIRED: "User must be authenticated to perform this action",
}

# Recovery suggestions for clients
ERROR_RECOVERY: dict[ErrorCode, str] = {
    ErrorCode.BOOKING_NOT_FOUND: "Verify the booking ID",
    ErrorCode.UNAUTHORIZED: "Only the guest or host of the booking may cancel it",
    ErrorCode.INVALID_REQUEST: "Provide a cancellation reason and retry",
    ErrorCode.ALREADY_REFUNDED: "No action needed; check the refund status",
    ErrorCode.BOOKING_NOT_PAID: "Cancel the booking without a refund",
    ErrorCode.MISSING_PAYMENT_INTENT: "Contact support to reconcile the payment",
    ErrorCode.NON_REFUNDABLE: "Cancel the booking without a refund",
    ErrorCode.INVALID_AMOUNT: "Contact support to review the booking price",
    ErrorCode.REFUND_NOT_AVAILABLE: "Cancel the booking without a refund",
    ErrorCode.ALREADY_CANCELLED: "No action needed",
    ErrorCode.REFUND_FAILED: "Try again or contact support",
    ErrorCode.AUTH_REQUIRED: "Sign in and retry",
}


class ErrorResponse(BaseModel):
    """Standard error response body for failed operations."""

    model_config = ConfigDict(strict=True)

    success: bool = False
    error_code: ErrorCode
    message: str
    recovery: str
    details: Optional[dict[str, str]] = None

    @classmethod
    def from_code(
        cls,
        code: ErrorCode,
        details: Optional[dict[str, str]] = None,
    ) -> "ErrorResponse":
        """Create an ErrorResponse from an error code.

        Args:
            code: The error code
            details: Optional additional context about the error

        Returns:
            An ErrorResponse with the message and recovery hint for the code.
        """
        return cls(
            error_code=code,
            message=ERROR_MESSAGES[code],
            recovery=ERROR_RECOVERY[code],
            details=details,
        )


class BookingError(Exception):
    """Exception raised by cancellation and refund operations.

    Caught by the API layer and converted to an ErrorResponse.
    """

    def __init__(
        self,
        code: ErrorCode,
        details: Optional[dict[str, str]] = None,
    ):
        self.code = code
        self.message = ERROR_MESSAGES[code]
        self.recovery = ERROR_RECOVERY[code]
        self.details = details
        super().__init__(self.message)

    def to_error_response(self) -> ErrorResponse:
        """Convert this exception to an ErrorResponse."""
        return ErrorResponse.from_code(self.code, self.details)
