"""Stripe refund adapter.

The refund engine decides how much goes back to the guest; this adapter only
moves that amount through Stripe. Amounts arrive in fils (1 BD = 1000 fils)
and refunds are keyed per booking so a retried cancellation never pays twice.
The secret key is read from SSM on first use.
"""

import logging
from functools import lru_cache
from typing import Any

import stripe
from stripe import StripeClient

from mukhymat.config import get_environment, parameter_path

from .ssm_service import SSMServiceError, get_ssm_service

logger = logging.getLogger(__name__)


class StripeServiceError(Exception):
    """A Stripe call failed; ``stripe_error_code`` carries Stripe's code when known."""

    def __init__(self, message: str, stripe_error_code: str | None = None) -> None:
        super().__init__(message)
        self.stripe_error_code = stripe_error_code


class StripeService:
    """Creates refunds against Stripe PaymentIntents.

    Usage:
        gateway = get_stripe_service()
        refund = gateway.create_refund(
            payment_intent_id="pi_123",
            amount_minor=90000,  # 90.000 BD
            idempotency_key="refund_BK-123",
        )
    """

    def __init__(self, environment: str | None = None) -> None:
        """Initialize the adapter.

        Args:
            environment: Selects the SSM key path. Defaults to ENVIRONMENT.
        """
        self._environment = environment or get_environment()
        self._ssm = get_ssm_service()
        self._client: StripeClient | None = None

    def _get_client(self) -> StripeClient:
        """Build the StripeClient on first use.

        Raises:
            StripeServiceError: If the secret key cannot be read from SSM.
        """
        if self._client is not None:
            return self._client

        key_path = parameter_path("stripe/secret_key", self._environment)
        try:
            secret_key = self._ssm.get_parameter(key_path)
        except SSMServiceError as e:
            raise StripeServiceError(f"Failed to initialize Stripe client: {e}") from e

        self._client = StripeClient(secret_key)
        logger.info("Stripe client ready (%s)", self._environment)
        return self._client

    def create_refund(
        self,
        *,
        payment_intent_id: str,
        amount_minor: int,
        reason: str = "requested_by_customer",
        metadata: dict[str, str] | None = None,
        idempotency_key: str | None = None,
    ) -> dict[str, Any]:
        """Refund part or all of a captured PaymentIntent.

        Args:
            payment_intent_id: PaymentIntent to refund (pi_xxx)
            amount_minor: Amount in fils; must be positive
            reason: Stripe refund reason code
            metadata: Booking context stored on the Stripe refund
            idempotency_key: Reused on retries so Stripe returns the first refund

        Returns:
            ``{"refund_id", "amount", "status"}`` where status is Stripe's
            (succeeded, pending, requires_action, failed or canceled).

        Raises:
            StripeServiceError: If the amount is not positive or Stripe rejects the refund.
        """
        if amount_minor <= 0:
            raise StripeServiceError(f"Refund amount must be positive, got {amount_minor}")

        params: dict[str, Any] = {
            "payment_intent": payment_intent_id,
            "amount": amount_minor,
            "reason": reason,
        }
        if metadata:
            params["metadata"] = metadata
        options: dict[str, Any] = {"idempotency_key": idempotency_key} if idempotency_key else {}

        client = self._get_client()
        logger.info("Refunding %d fils on %s", amount_minor, payment_intent_id)
        try:
            refund = client.refunds.create(params=params, options=options)
        except stripe.StripeError as e:
            code = getattr(e, "code", None)
            logger.error("Stripe rejected refund on %s: %s (code: %s)", payment_intent_id, e, code)
            raise StripeServiceError(f"Failed to create refund: {e}", stripe_error_code=code) from e

        logger.info("Refund %s is %s", refund.id, refund.status)
        return {"refund_id": refund.id, "amount": refund.amount, "status": refund.status}


@lru_cache(maxsize=1)
def get_stripe_service() -> StripeService:
    """Get the shared StripeService instance."""
    return StripeService()
