"""Booking and refund transaction records.

Only the fields the refund flow reads or writes are modelled here.
Amounts are in BHD.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .enums import BookingStatus, CancelledBy, PaymentStatus, RefundStatus


class Booking(BaseModel):
    """A guest's booking of a camp."""

    model_config = ConfigDict(validate_assignment=True)

    booking_id: str
    user_id: str = Field(..., description="Guest who made the booking")
    host_id: str
    camp_id: str
    total_price: Decimal = Field(..., description="Total charged to the guest")
    check_in_date: datetime
    status: BookingStatus = BookingStatus.CONFIRMED
    payment_status: PaymentStatus = PaymentStatus.PENDING
    payment_intent_id: str | None = None
    payment_method: str = "card"
    cancellation_policy: Any = Field(
        default=None,
        description="Preset name, stored policy mapping, or None for the default preset",
    )

    refund_status: RefundStatus = RefundStatus.NONE
    refund_amount: Decimal | None = None
    refund_percentage: int | None = None
    refund_reason: str | None = None
    refund_id: str | None = None
    cancelled_at: datetime | None = None
    cancelled_by: CancelledBy | None = None
    host_penalty_amount: Decimal | None = None
    host_penalty_percentage: int | None = None


class RefundTransaction(BaseModel):
    """Ledger entry written whenever a refund is issued."""

    model_config = ConfigDict(frozen=True)

    transaction_id: str
    booking_id: str
    user_id: str
    host_id: str
    camp_id: str
    type: str = "refund"
    amount: Decimal = Field(..., ge=0)
    currency: str = "BHD"
    status: str
    stripe_refund_id: str | None = None
    stripe_payment_intent_id: str | None = None
    payment_method: str = "card"
    description: str
    created_at: datetime
    metadata: dict[str, str] = Field(default_factory=dict)
