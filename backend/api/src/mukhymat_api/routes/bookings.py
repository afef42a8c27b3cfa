"""Booking cancellation and refund endpoints.

The caller is identified by the X-User-Id header set by the upstream
authorizer. Guests act on their own bookings; hosts cancel bookings on
their camps.
"""

from datetime import UTC, datetime

from fastapi import APIRouter, Depends
from starlette.status import HTTP_200_OK

from mukhymat.models.refund import CancellationOutcome, RefundCalculationResult
from mukhymat.services.refund_service import RefundService
from mukhymat_api.dependencies import get_caller_id, get_refund_service
from mukhymat_api.models.refunds import CancelRequest, RefundRequest

router = APIRouter(prefix="/bookings", tags=["bookings"])

_ERROR_RESPONSES: dict[int | str, dict[str, str]] = {
    400: {"description": "Missing reason"},
    401: {"description": "Caller identity required"},
    403: {"description": "Not the booking's guest or host"},
    404: {"description": "Booking not found"},
    409: {"description": "Booking state does not allow this operation"},
    502: {"description": "Payment gateway refund failed"},
}


@router.get(
    "/{booking_id}/refund-preview",
    summary="Preview cancellation refund",
    response_model=RefundCalculationResult,
    responses={k: v for k, v in _ERROR_RESPONSES.items() if k in (401, 403, 404)},
)
async def preview_refund(
    booking_id: str,
    caller_id: str | None = Depends(get_caller_id),
    refunds: RefundService = Depends(get_refund_service),
) -> RefundCalculationResult:
    """Refund the guest would receive if they cancelled right now."""
    return refunds.preview_cancellation(booking_id, caller_id, datetime.now(UTC))


@router.post(
    "/{booking_id}/refund",
    summary="Request a refund",
    description="""
Refund a paid booking and cancel it.

**Rejected unless** the booking is the caller's, paid through the gateway,
not already cancelled or refunded, on a refundable camp, and the policy
still grants a positive refund.
""",
    response_model=CancellationOutcome,
    status_code=HTTP_200_OK,
    responses=_ERROR_RESPONSES,
)
async def request_refund(
    booking_id: str,
    request: RefundRequest,
    caller_id: str | None = Depends(get_caller_id),
    refunds: RefundService = Depends(get_refund_service),
) -> CancellationOutcome:
    return refunds.process_refund(
        booking_id,
        caller_id,
        request.reason,
        notes=request.notes,
        now=datetime.now(UTC),
    )


@router.post(
    "/{booking_id}/cancel",
    summary="Cancel a booking as the guest",
    response_model=CancellationOutcome,
    responses=_ERROR_RESPONSES,
)
async def cancel_booking(
    booking_id: str,
    request: CancelRequest,
    caller_id: str | None = Depends(get_caller_id),
    refunds: RefundService = Depends(get_refund_service),
) -> CancellationOutcome:
    """Cancel and refund whatever the policy still grants."""
    return refunds.cancel_booking(booking_id, caller_id, request.reason, now=datetime.now(UTC))


@router.post(
    "/{booking_id}/host-cancel",
    summary="Cancel a booking as the host",
    response_model=CancellationOutcome,
    responses=_ERROR_RESPONSES,
)
async def host_cancel_booking(
    booking_id: str,
    request: CancelRequest,
    caller_id: str | None = Depends(get_caller_id),
    refunds: RefundService = Depends(get_refund_service),
) -> CancellationOutcome:
    """Cancel with a full guest refund; the host penalty is recorded."""
    return refunds.cancel_booking_as_host(
        booking_id, caller_id, request.reason, now=datetime.now(UTC)
    )
