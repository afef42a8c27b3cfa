"""Pydantic models for Mukhymat refund and cancellation data."""

from .booking import Booking, RefundTransaction
from .cancellation import (
    DEFAULT_ARBOON_PERCENTAGE,
    DEFAULT_FLEXIBLE_RULES,
    DEFAULT_FULL_REFUNDABLE_RULES,
    DEFAULT_HOST_PENALTY_RULES,
    DEFAULT_MODERATE_RULES,
    DEFAULT_PARTIAL_REFUND_RULES,
    DEFAULT_STRICT_RULES,
    NO_REFUND_REASON,
    NON_REFUNDABLE_REASON,
    NON_REFUNDABLE_RULES,
    CancellationPolicy,
    FullRefundablePolicy,
    HostPenaltyRule,
    PartialRefundablePolicy,
    RefundRule,
)
from .enums import (
    BookingStatus,
    CancelledBy,
    ListingRefundPolicy,
    PaymentStatus,
    PolicyPreset,
    PolicyTier,
    RefundStatus,
)
from .errors import (
    ERROR_MESSAGES,
    ERROR_RECOVERY,
    BookingError,
    ErrorCode,
    ErrorResponse,
)
from .refund import CancellationOutcome, HostCancellationPenalty, RefundCalculationResult

__all__ = [
    # Enums
    "BookingStatus",
    "CancelledBy",
    "ListingRefundPolicy",
    "PaymentStatus",
    "PolicyPreset",
    "PolicyTier",
    "RefundStatus",
    # Policies
    "CancellationPolicy",
    "FullRefundablePolicy",
    "PartialRefundablePolicy",
    "RefundRule",
    "HostPenaltyRule",
    "DEFAULT_ARBOON_PERCENTAGE",
    "DEFAULT_FLEXIBLE_RULES",
    "DEFAULT_FULL_REFUNDABLE_RULES",
    "DEFAULT_HOST_PENALTY_RULES",
    "DEFAULT_MODERATE_RULES",
    "DEFAULT_PARTIAL_REFUND_RULES",
    "DEFAULT_STRICT_RULES",
    "NO_REFUND_REASON",
    "NON_REFUNDABLE_REASON",
    "NON_REFUNDABLE_RULES",
    # Results
    "RefundCalculationResult",
    "HostCancellationPenalty",
    "CancellationOutcome",
    # Booking
    "Booking",
    "RefundTransaction",
    # Errors
    "BookingError",
    "ErrorCode",
    "ErrorResponse",
    "ERROR_MESSAGES",
    "ERROR_RECOVERY",
]
