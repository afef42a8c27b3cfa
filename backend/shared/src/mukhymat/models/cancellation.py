"""Cancellation policy models and default tier tables.

A listing's policy is one of two shapes:
- full_refundable: no deposit, timing-based tier table
- partial_refundable: a non-refundable عربون (arboon) deposit is kept,
  the rest is refunded per the tier table

The guest-facing Flexible / Moderate / Strict policies are named presets of
the full_refundable shape. Tier tables are evaluated highest threshold first;
the first rule whose threshold is <= hours-until-check-in wins.
"""

from collections.abc import Iterable
from decimal import Decimal
from typing import Annotated, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class RefundRule(BaseModel):
    """One timing tier of a refund table."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    hours_before_check_in: Decimal = Field(..., ge=0, description="Minimum hours before check-in")
    refund_percentage: int = Field(..., ge=0, le=100)
    description: str


class HostPenaltyRule(BaseModel):
    """One timing tier of the host-cancellation penalty table."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    hours_before_check_in: Decimal = Field(..., ge=0)
    penalty_percentage: int = Field(..., ge=0, le=100)
    message: str


RuleT = TypeVar("RuleT", RefundRule, HostPenaltyRule)


def sort_rules(rules: Iterable[RuleT]) -> tuple[RuleT, ...]:
    """Order rules by descending threshold so the first match wins."""
    return tuple(sorted(rules, key=lambda rule: rule.hours_before_check_in, reverse=True))


class _PolicyBase(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    refund_rules: tuple[RefundRule, ...] = Field(..., min_length=1)

    @field_validator("refund_rules")
    @classmethod
    def _order_rules(cls, rules: tuple[RefundRule, ...]) -> tuple[RefundRule, ...]:
        return sort_rules(rules)


class FullRefundablePolicy(_PolicyBase):
    """Policy without a deposit. Flexible, Moderate and Strict are presets of this."""

    type: Literal["full_refundable"] = "full_refundable"
    name: str = "full_refundable"


class PartialRefundablePolicy(_PolicyBase):
    """Policy where ``arboon_percentage`` of the booking is always forfeited."""

    type: Literal["partial_refundable"] = "partial_refundable"
    name: str = "partial_refundable"
    arboon_percentage: int = Field(default=20, ge=10, le=50, multiple_of=5)


CancellationPolicy = Annotated[
    FullRefundablePolicy | PartialRefundablePolicy,
    Field(discriminator="type"),
]


def _refund(hours: int, percentage: int, description: str) -> RefundRule:
    return RefundRule(
        hours_before_check_in=Decimal(hours),
        refund_percentage=percentage,
        description=description,
    )


def _penalty(hours: int, percentage: int, message: str) -> HostPenaltyRule:
    return HostPenaltyRule(
        hours_before_check_in=Decimal(hours),
        penalty_percentage=percentage,
        message=message,
    )


NO_REFUND_REASON = "No refund (cancellation deadline passed)"
NON_REFUNDABLE_REASON = "This booking is non-refundable"

DEFAULT_FLEXIBLE_RULES: tuple[RefundRule, ...] = (
    _refund(48, 100, "Full refund (48+ hours before check-in)"),
    _refund(24, 50, "50% refund (24-48 hours before check-in)"),
    _refund(0, 0, NO_REFUND_REASON),
)

# Same thresholds as Flexible in every observed call site; kept separate so
# the two can diverge through configuration.
DEFAULT_MODERATE_RULES: tuple[RefundRule, ...] = (
    _refund(48, 100, "Full refund (48+ hours before check-in)"),
    _refund(24, 50, "50% refund (24-48 hours before check-in)"),
    _refund(0, 0, NO_REFUND_REASON),
)

DEFAULT_STRICT_RULES: tuple[RefundRule, ...] = (
    _refund(168, 50, "50% refund (7+ days before check-in)"),
    _refund(0, 0, NO_REFUND_REASON),
)

DEFAULT_FULL_REFUNDABLE_RULES: tuple[RefundRule, ...] = (
    _refund(24, 100, "Full refund (cancelled 24+ hours before check-in)"),
    _refund(0, 0, "No refund (cancelled less than 24 hours before check-in)"),
)

# Listings marked non-refundable: nothing comes back at any time
NON_REFUNDABLE_RULES: tuple[RefundRule, ...] = (_refund(0, 0, NON_REFUNDABLE_REASON),)

DEFAULT_PARTIAL_REFUND_RULES: tuple[RefundRule, ...] = (
    _refund(48, 100, "Full refund (minus عربون) if cancelled 48+ hours before check-in"),
    _refund(24, 50, "50% refund (minus عربون) if cancelled 24-48 hours before check-in"),
    _refund(0, 0, "No refund if cancelled less than 24 hours before check-in"),
)

DEFAULT_HOST_PENALTY_RULES: tuple[HostPenaltyRule, ...] = (
    _penalty(168, 0, "No penalty - cancelled well in advance (7+ days before check-in)"),
    _penalty(48, 10, "10% penalty (cancelled 2-7 days before check-in)"),
    _penalty(
        24,
        25,
        "25% penalty (cancelled 24-48 hours before check-in). "
        "Cancelling close to check-in incurs a penalty to maintain guest trust",
    ),
    _penalty(
        0,
        50,
        "50% penalty (cancelled less than 24 hours before check-in). "
        "Cancelling this close to check-in incurs a penalty to maintain guest trust",
    ),
)

DEFAULT_ARBOON_PERCENTAGE = 20
