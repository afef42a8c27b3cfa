"""Enumeration types for Mukhymat refund data models."""

from enum import Enum


class PolicyPreset(str, Enum):
    """Named policy presets offered to hosts."""

    FLEXIBLE = "flexible"
    MODERATE = "moderate"
    STRICT = "strict"
    FULL_REFUNDABLE = "full_refundable"
    PARTIAL_REFUNDABLE = "partial_refundable"  # with عربون deposit
    NON_REFUNDABLE = "non_refundable"


class ListingRefundPolicy(str, Enum):
    """Listing-level refund override stored on the camp."""

    REFUNDABLE = "refundable"
    NON_REFUNDABLE = "non-refundable"


class PolicyTier(str, Enum):
    """Coarse tier a refund falls into."""

    FULL = "full"
    PARTIAL = "partial"
    NONE = "none"


class BookingStatus(str, Enum):
    """Status of a booking."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class PaymentStatus(str, Enum):
    """Payment status for a booking."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class RefundStatus(str, Enum):
    """Refund status persisted on a booking."""

    NONE = "none"
    NOT_ELIGIBLE = "not_eligible"  # cancelled with nothing to refund
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class CancelledBy(str, Enum):
    """Party that initiated a cancellation."""

    GUEST = "guest"
    HOST = "host"
