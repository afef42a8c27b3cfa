"""Refund quote endpoints.

Stateless calculations for listing pages and checkout:
- Guest refund quote for an amount, check-in and policy
- Host cancellation penalty quote
- Human-readable policy description
"""

from datetime import UTC, datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ValidationError

from mukhymat.models.errors import BookingError, ErrorCode
from mukhymat.models.refund import HostCancellationPenalty, RefundCalculationResult
from mukhymat.services.refund_policy_service import RefundPolicyService
from mukhymat_api.dependencies import get_policy_engine
from mukhymat_api.models.refunds import HostPenaltyQuoteRequest, RefundQuoteRequest

router = APIRouter(prefix="/refunds", tags=["refunds"])


def _utc(value: datetime | None) -> datetime:
    if value is None:
        return datetime.now(UTC)
    return value if value.tzinfo else value.replace(tzinfo=UTC)


class PolicyDescription(BaseModel):
    """Resolved policy and its display text."""

    policy: str
    description: str


@router.post(
    "/quote",
    summary="Quote a guest refund",
    response_model=RefundCalculationResult,
)
async def quote_refund(
    request: RefundQuoteRequest,
    engine: RefundPolicyService = Depends(get_policy_engine),
) -> RefundCalculationResult:
    """Calculate what a guest would get back if they cancelled now."""
    try:
        policy = engine.resolve_policy(request.policy)
    except ValidationError as e:
        raise BookingError(
            ErrorCode.INVALID_REQUEST, {"field": "policy", "error": str(e.errors()[0]["msg"])}
        ) from e
    return engine.calculate_refund(
        request.amount,
        _utc(request.check_in_date),
        _utc(request.evaluation_time),
        policy,
    )


@router.post(
    "/host-penalty/quote",
    summary="Quote a host cancellation penalty",
    response_model=HostCancellationPenalty,
)
async def quote_host_penalty(
    request: HostPenaltyQuoteRequest,
    engine: RefundPolicyService = Depends(get_policy_engine),
) -> HostCancellationPenalty:
    """Calculate the payout deduction for a host cancelling now."""
    return engine.calculate_host_penalty(
        request.amount,
        _utc(request.check_in_date),
        _utc(request.evaluation_time),
    )


@router.get(
    "/policies/{policy_name}",
    summary="Describe a cancellation policy",
    response_model=PolicyDescription,
)
async def describe_policy(
    policy_name: str,
    engine: RefundPolicyService = Depends(get_policy_engine),
) -> PolicyDescription:
    """Display text for a preset; unknown names describe the default policy."""
    resolved = engine.resolve_policy(policy_name)
    return PolicyDescription(
        policy=resolved.name,
        description=engine.describe_policy(resolved),
    )
