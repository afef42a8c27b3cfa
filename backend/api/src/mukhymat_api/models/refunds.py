"""API models for refund and cancellation endpoints.

Results are returned as the shared models (RefundCalculationResult,
HostCancellationPenalty, CancellationOutcome); only requests live here.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# Largest amount the quote endpoints accept, in BHD
MAX_AMOUNT = Decimal("1000000000")


class RefundQuoteRequest(BaseModel):
    """Ad-hoc refund calculation, without touching any booking."""

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {
                    "amount": "100.000",
                    "check_in_date": "2026-11-20T14:00:00Z",
                    "policy": "flexible",
                },
                {
                    "amount": "100.000",
                    "check_in_date": "2026-11-20T14:00:00Z",
                    "policy": {"type": "partial_refundable", "arboonPercentage": 30},
                },
            ]
        },
    )

    amount: Decimal = Field(..., ge=0, le=MAX_AMOUNT, description="Booking total in BHD")
    check_in_date: datetime
    evaluation_time: datetime | None = Field(
        default=None,
        description="When the cancellation is evaluated (defaults to now)",
    )
    policy: str | dict[str, Any] | None = Field(
        default=None,
        description="Preset name, legacy listing value, or stored policy document",
    )


class HostPenaltyQuoteRequest(BaseModel):
    """Ad-hoc host penalty calculation."""

    amount: Decimal = Field(..., ge=0, le=MAX_AMOUNT, description="Booking total in BHD")
    check_in_date: datetime
    evaluation_time: datetime | None = None


class RefundRequest(BaseModel):
    """Guest request to refund a paid booking."""

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [{"reason": "Change of plans", "notes": "Family emergency"}]
        },
    )

    reason: str = Field(default="", max_length=500)
    notes: str | None = Field(default=None, max_length=2000)


class CancelRequest(BaseModel):
    """Guest or host request to cancel a booking."""

    reason: str = Field(default="", max_length=500)
