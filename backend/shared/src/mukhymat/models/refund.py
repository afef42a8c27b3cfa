"""Refund and host-penalty calculation results.

These are value objects built fresh on every calculation. They are never
stored as entities; callers persist only the refund fields they need onto
bookings and transactions.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from .enums import CancelledBy, PolicyTier, RefundStatus


class RefundCalculationResult(BaseModel):
    """Breakdown of a refund for a cancelled booking.

    Amounts are in BHD with three decimal places.
    """

    model_config = ConfigDict(frozen=True)

    original_amount: Decimal = Field(..., description="Guest's total booking price")
    service_fee: Decimal = Field(..., ge=0, description="Platform fee, never refunded")
    arboon_amount: Decimal = Field(
        default=Decimal("0.000"),
        ge=0,
        description="Non-refundable deposit (عربون) kept under partial_refundable policies",
    )
    refund_percentage: int = Field(..., ge=0, le=100)
    refund_amount: Decimal = Field(..., ge=0)
    hours_until_check_in: Decimal | None = Field(
        default=None,
        description="Hours between evaluation and check-in; negative once check-in has passed",
    )
    eligibility_reason: str
    policy_tier: PolicyTier
    refund_deadline: datetime | None = Field(
        default=None,
        description="When the current refund tier expires",
    )

    @property
    def is_refundable(self) -> bool:
        """True when there is money to send back to the guest."""
        return self.refund_amount > 0


class HostCancellationPenalty(BaseModel):
    """Deduction from the host's payout for a host-initiated cancellation."""

    model_config = ConfigDict(frozen=True)

    penalty_percentage: int = Field(..., ge=0, le=100)
    penalty_amount: Decimal = Field(..., ge=0)
    message: str
    hours_until_check_in: Decimal | None = None


class CancellationOutcome(BaseModel):
    """Result of a guest or host cancellation, as returned to the caller."""

    model_config = ConfigDict(frozen=True)

    success: bool = True
    booking_id: str
    cancelled_by: CancelledBy
    refund_status: RefundStatus
    refund_amount: Decimal = Field(..., ge=0)
    refund_percentage: int = Field(..., ge=0, le=100)
    eligibility_reason: str
    refund_id: str | None = None
    transaction_id: str | None = None
    host_penalty: HostCancellationPenalty | None = None
