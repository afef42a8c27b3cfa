"""Server-side cancellation and refund processing.

This is the authoritative caller of the refund policy engine. It re-runs the
calculation with its own clock reading instead of trusting any amount
previewed in the browser. It then enforces the preconditions the engine leaves
to callers, issues the gateway refund and persists the result.

Preconditions for a monetary refund:
- the booking belongs to the caller, is paid and has a PaymentIntent
- it has not already been refunded or cancelled
- the camp is not marked non-refundable
- the booking amount and the computed refund are both above zero

Guest cancellation (cancel_booking) always cancels and only skips the
refund when one of the refund preconditions fails. The strict refund
request (process_refund) rejects instead. The preview applies the same
overrides as cancel_booking, so it shows what a cancellation would pay.

A booking whose gateway refund failed stays cancelled with refund_status
failed. Any later refund or cancel request on it retries the recorded
amount under the same idempotency key.
"""

import datetime as dt
import uuid
from decimal import Decimal
from typing import TYPE_CHECKING

from mukhymat.models import (
    NON_REFUNDABLE_REASON,
    Booking,
    BookingError,
    BookingStatus,
    CancellationOutcome,
    CancelledBy,
    ErrorCode,
    HostCancellationPenalty,
    ListingRefundPolicy,
    PaymentStatus,
    PolicyTier,
    RefundCalculationResult,
    RefundStatus,
    RefundTransaction,
)
from mukhymat.utils.logging import get_logger, log_refund_operation
from mukhymat.utils.money import ZERO, quantize_amount, to_minor_units

from .refund_policy_service import RefundPolicyService, get_refund_policy_service
from .stripe_service import StripeServiceError

if TYPE_CHECKING:
    from .booking_repository import BookingRepository
    from .stripe_service import StripeService

logger = get_logger(__name__)

NOT_PAID_REASON = "Booking was not paid; nothing to refund"
RETRY_REASON = "Retry of a previously failed refund"


def _aware(value: dt.datetime) -> dt.datetime:
    """Treat naive timestamps as UTC."""
    return value if value.tzinfo else value.replace(tzinfo=dt.UTC)


class RefundService:
    """Cancels bookings and issues refunds computed by the policy engine."""

    def __init__(
        self,
        repository: "BookingRepository",
        gateway: "StripeService",
        engine: RefundPolicyService | None = None,
    ) -> None:
        """Initialize refund service.

        Args:
            repository: Booking persistence
            gateway: Payment gateway used to issue refunds
            engine: Refund policy engine. Defaults to the shared instance.
        """
        self.repository = repository
        self.gateway = gateway
        self.engine = engine or get_refund_policy_service()

    def _generate_transaction_id(self) -> str:
        return f"TXN-{uuid.uuid4().hex[:12].upper()}"

    def _load_booking(self, booking_id: str) -> Booking:
        booking = self.repository.get_booking(booking_id)
        if booking is None:
            raise BookingError(ErrorCode.BOOKING_NOT_FOUND, {"booking_id": booking_id})
        return booking

    def _load_guest_booking(self, booking_id: str, user_id: str | None) -> Booking:
        if not user_id:
            raise BookingError(ErrorCode.AUTH_REQUIRED)
        booking = self._load_booking(booking_id)
        if booking.user_id != user_id:
            raise BookingError(ErrorCode.UNAUTHORIZED, {"booking_id": booking_id})
        return booking

    def _is_non_refundable(self, booking: Booking) -> bool:
        return self.repository.get_camp_refund_policy(booking.camp_id) is (
            ListingRefundPolicy.NON_REFUNDABLE
        )

    def _is_unpaid(self, booking: Booking) -> bool:
        paid = booking.payment_status is PaymentStatus.COMPLETED
        return not paid or not booking.payment_intent_id

    def _guest_calculation(self, booking: Booking, now: dt.datetime) -> RefundCalculationResult:
        """Engine result for a guest cancellation, with booking-level overrides applied.

        A non-refundable camp or an unpaid booking zeroes the refund whatever
        the timing; the fee breakdown is kept for display.
        """
        if self._is_non_refundable(booking):
            reason = NON_REFUNDABLE_REASON
        elif self._is_unpaid(booking):
            reason = NOT_PAID_REASON
        else:
            reason = None

        calculation = self.engine.calculate_refund(
            booking.total_price,
            _aware(booking.check_in_date),
            now,
            booking.cancellation_policy,
        )
        if reason is None:
            return calculation
        return calculation.model_copy(
            update={
                "refund_percentage": 0,
                "refund_amount": quantize_amount(ZERO, self.engine.config.currency_exponent),
                "eligibility_reason": reason,
                "policy_tier": PolicyTier.NONE,
                "refund_deadline": None,
            }
        )

    def preview_cancellation(
        self,
        booking_id: str,
        user_id: str | None,
        now: dt.datetime | None = None,
    ) -> RefundCalculationResult:
        """Refund a guest would receive if they cancelled at ``now``.

        Raises:
            BookingError: If the booking is missing or not the caller's.
        """
        booking = self._load_guest_booking(booking_id, user_id)
        return self._guest_calculation(booking, _aware(now or dt.datetime.now(dt.UTC)))

    def process_refund(
        self,
        booking_id: str,
        user_id: str | None,
        reason: str,
        notes: str | None = None,
        now: dt.datetime | None = None,
    ) -> CancellationOutcome:
        """Handle an explicit guest refund request.

        Every precondition failure is rejected with a BookingError before any
        gateway call. On success the booking is cancelled with the refund
        in progress. A booking left cancelled by a failed gateway refund is
        retried instead of rejected.

        Args:
            booking_id: Booking to refund
            user_id: Authenticated guest
            reason: Guest's reason for the refund
            notes: Optional free-text notes
            now: Evaluation time; defaults to the current UTC time

        Returns:
            CancellationOutcome with refund details

        Raises:
            BookingError: On any failed precondition or gateway failure
        """
        if not reason or not reason.strip():
            raise BookingError(ErrorCode.INVALID_REQUEST, {"field": "reason"})

        booking = self._load_guest_booking(booking_id, user_id)
        now = _aware(now or dt.datetime.now(dt.UTC))

        if booking.refund_status is RefundStatus.COMPLETED:
            raise BookingError(ErrorCode.ALREADY_REFUNDED, {"booking_id": booking_id})
        if booking.status is BookingStatus.CANCELLED:
            return self._retry_failed_refund(booking, notes, now)
        if booking.payment_status is not PaymentStatus.COMPLETED:
            raise BookingError(ErrorCode.BOOKING_NOT_PAID, {"booking_id": booking_id})
        if not booking.payment_intent_id:
            raise BookingError(ErrorCode.MISSING_PAYMENT_INTENT, {"booking_id": booking_id})
        if self._is_non_refundable(booking):
            raise BookingError(ErrorCode.NON_REFUNDABLE, {"camp_id": booking.camp_id})
        if booking.total_price <= 0:
            raise BookingError(ErrorCode.INVALID_AMOUNT, {"booking_id": booking_id})

        calculation = self.engine.calculate_refund(
            booking.total_price,
            _aware(booking.check_in_date),
            now,
            booking.cancellation_policy,
        )
        if not calculation.is_refundable:
            raise BookingError(
                ErrorCode.REFUND_NOT_AVAILABLE,
                {"eligibility_reason": calculation.eligibility_reason},
            )

        return self._cancel_and_refund(
            booking,
            refund_amount=calculation.refund_amount,
            refund_percentage=calculation.refund_percentage,
            eligibility_reason=calculation.eligibility_reason,
            reason=reason,
            notes=notes,
            cancelled_by=CancelledBy.GUEST,
            now=now,
        )

    def cancel_booking(
        self,
        booking_id: str,
        user_id: str | None,
        reason: str,
        now: dt.datetime | None = None,
    ) -> CancellationOutcome:
        """Cancel a booking on the guest's behalf.

        The cancellation always goes through. A refund is issued only when
        the booking was paid, the camp is refundable and the engine computes
        a positive amount; otherwise refund_status is not_eligible.

        Raises:
            BookingError: If the booking is missing, not the caller's,
                already cancelled, or the gateway refund fails
        """
        if not reason or not reason.strip():
            raise BookingError(ErrorCode.INVALID_REQUEST, {"field": "reason"})

        booking = self._load_guest_booking(booking_id, user_id)
        now = _aware(now or dt.datetime.now(dt.UTC))
        if booking.status is BookingStatus.CANCELLED:
            return self._retry_failed_refund(booking, None, now)

        calculation = self._guest_calculation(booking, now)
        return self._cancel_and_refund(
            booking,
            refund_amount=calculation.refund_amount,
            refund_percentage=calculation.refund_percentage,
            eligibility_reason=calculation.eligibility_reason,
            reason=reason,
            notes=None,
            cancelled_by=CancelledBy.GUEST,
            now=now,
        )

    def cancel_booking_as_host(
        self,
        booking_id: str,
        host_id: str | None,
        reason: str,
        now: dt.datetime | None = None,
    ) -> CancellationOutcome:
        """Cancel a booking on the host's behalf.

        The guest is refunded 100% of the total. The host penalty is computed
        from the time left before check-in and recorded on the booking.

        Raises:
            BookingError: If the booking is missing, not the host's,
                already cancelled, or the gateway refund fails
        """
        if not host_id:
            raise BookingError(ErrorCode.AUTH_REQUIRED)
        if not reason or not reason.strip():
            raise BookingError(ErrorCode.INVALID_REQUEST, {"field": "reason"})

        booking = self._load_booking(booking_id)
        if booking.host_id != host_id:
            raise BookingError(ErrorCode.UNAUTHORIZED, {"booking_id": booking_id})

        now = _aware(now or dt.datetime.now(dt.UTC))
        if booking.status is BookingStatus.CANCELLED:
            return self._retry_failed_refund(booking, None, now)

        guest_refund = self.engine.calculate_host_cancellation_refund(booking.total_price)
        penalty = self.engine.calculate_host_penalty(
            booking.total_price, _aware(booking.check_in_date), now
        )

        refund_amount = guest_refund.refund_amount
        eligibility_reason = guest_refund.eligibility_reason
        if self._is_unpaid(booking):
            refund_amount, eligibility_reason = ZERO, NOT_PAID_REASON

        return self._cancel_and_refund(
            booking,
            refund_amount=refund_amount,
            refund_percentage=guest_refund.refund_percentage if refund_amount > 0 else 0,
            eligibility_reason=eligibility_reason,
            reason=reason,
            notes=None,
            cancelled_by=CancelledBy.HOST,
            now=now,
            penalty=penalty,
        )

    def _retry_failed_refund(
        self,
        booking: Booking,
        notes: str | None,
        now: dt.datetime,
    ) -> CancellationOutcome:
        """Re-issue the refund recorded on a cancelled booking whose gateway call failed.

        The amount is the one persisted at cancellation, not a fresh
        calculation, so the idempotency key always carries the same request.

        Raises:
            BookingError: ALREADY_CANCELLED unless the booking's refund failed
                and this caller claimed the retry; REFUND_FAILED if the
                gateway fails again.
        """
        retryable = (
            booking.refund_status is RefundStatus.FAILED
            and booking.refund_amount is not None
            and booking.refund_amount > 0
            and bool(booking.payment_intent_id)
        )
        if not retryable or not self.repository.claim_failed_refund(booking.booking_id):
            raise BookingError(ErrorCode.ALREADY_CANCELLED, {"booking_id": booking.booking_id})

        logger.info("Retrying failed refund for %s", booking.booking_id)
        return self._issue_refund(
            booking,
            eligibility_reason=RETRY_REASON,
            notes=notes,
            now=now,
            penalty=None,
        )

    def _cancel_and_refund(
        self,
        booking: Booking,
        *,
        refund_amount: Decimal,
        refund_percentage: int,
        eligibility_reason: str,
        reason: str,
        notes: str | None,
        cancelled_by: CancelledBy,
        now: dt.datetime,
        penalty: HostCancellationPenalty | None = None,
    ) -> CancellationOutcome:
        """Persist the cancellation, then issue the gateway refund if one is owed."""
        refundable = refund_amount > 0 and bool(booking.payment_intent_id)

        booking.status = BookingStatus.CANCELLED
        booking.refund_status = RefundStatus.PROCESSING if refundable else RefundStatus.NOT_ELIGIBLE
        booking.refund_amount = refund_amount
        booking.refund_percentage = refund_percentage
        booking.refund_reason = reason
        booking.cancelled_at = now
        booking.cancelled_by = cancelled_by
        if penalty is not None:
            booking.host_penalty_amount = penalty.penalty_amount
            booking.host_penalty_percentage = penalty.penalty_percentage

        if not self.repository.save_cancellation(booking):
            raise BookingError(ErrorCode.ALREADY_CANCELLED, {"booking_id": booking.booking_id})

        if not refundable:
            log_refund_operation(
                logger,
                "host_cancel" if cancelled_by is CancelledBy.HOST else "guest_cancel",
                booking_id=booking.booking_id,
                amount=refund_amount,
                status=RefundStatus.NOT_ELIGIBLE.value,
                eligibility_reason=eligibility_reason,
            )
            return CancellationOutcome(
                booking_id=booking.booking_id,
                cancelled_by=cancelled_by,
                refund_status=RefundStatus.NOT_ELIGIBLE,
                refund_amount=refund_amount,
                refund_percentage=refund_percentage,
                eligibility_reason=eligibility_reason,
                host_penalty=penalty,
            )

        return self._issue_refund(
            booking,
            eligibility_reason=eligibility_reason,
            notes=notes,
            now=now,
            penalty=penalty,
        )

    def _issue_refund(
        self,
        booking: Booking,
        *,
        eligibility_reason: str,
        notes: str | None,
        now: dt.datetime,
        penalty: HostCancellationPenalty | None,
    ) -> CancellationOutcome:
        """Send the refund recorded on ``booking`` through the gateway and record the outcome."""
        cancelled_by = booking.cancelled_by or CancelledBy.GUEST
        operation = "host_cancel" if cancelled_by is CancelledBy.HOST else "guest_cancel"
        refund_amount = booking.refund_amount or ZERO
        refund_percentage = booking.refund_percentage or 0
        config = self.engine.config

        actor_id = booking.host_id if cancelled_by is CancelledBy.HOST else booking.user_id
        metadata = {
            "booking_id": booking.booking_id,
            "user_id": actor_id,
            "cancelled_by": cancelled_by.value,
            "reason": booking.refund_reason or "",
            "notes": notes or "",
            "eligibility_reason": eligibility_reason,
        }

        try:
            refund = self.gateway.create_refund(
                payment_intent_id=booking.payment_intent_id or "",
                amount_minor=to_minor_units(refund_amount, config.currency_exponent),
                metadata=metadata,
                idempotency_key=f"refund_{booking.booking_id}",
            )
        except StripeServiceError as e:
            self.repository.update_refund(booking.booking_id, RefundStatus.FAILED)
            log_refund_operation(
                logger,
                operation,
                booking_id=booking.booking_id,
                user_id=actor_id,
                amount=refund_amount,
                status=RefundStatus.FAILED.value,
                error=str(e),
            )
            details = {"booking_id": booking.booking_id}
            if e.stripe_error_code:
                details["stripe_error_code"] = e.stripe_error_code
            raise BookingError(ErrorCode.REFUND_FAILED, details) from e

        refund_status = (
            RefundStatus.COMPLETED if refund["status"] == "succeeded" else RefundStatus.PROCESSING
        )
        self.repository.update_refund(booking.booking_id, refund_status, refund["refund_id"])

        transaction = RefundTransaction(
            transaction_id=self._generate_transaction_id(),
            booking_id=booking.booking_id,
            user_id=booking.user_id,
            host_id=booking.host_id,
            camp_id=booking.camp_id,
            amount=refund_amount,
            currency=config.currency,
            status=refund_status.value,
            stripe_refund_id=refund["refund_id"],
            stripe_payment_intent_id=booking.payment_intent_id,
            payment_method=booking.payment_method,
            description=f"Refund for booking {booking.booking_id}",
            created_at=now,
            metadata={**metadata, "refund_percentage": str(refund_percentage)},
        )
        self.repository.add_transaction(transaction)

        log_refund_operation(
            logger,
            operation,
            booking_id=booking.booking_id,
            user_id=actor_id,
            amount=refund_amount,
            refund_percentage=refund_percentage,
            status=refund_status.value,
            refund_id=refund["refund_id"],
        )

        return CancellationOutcome(
            booking_id=booking.booking_id,
            cancelled_by=cancelled_by,
            refund_status=refund_status,
            refund_amount=refund_amount,
            refund_percentage=refund_percentage,
            eligibility_reason=eligibility_reason,
            refund_id=refund["refund_id"],
            transaction_id=transaction.transaction_id,
            host_penalty=penalty,
        )
