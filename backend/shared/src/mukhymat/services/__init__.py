"""Backend services for Mukhymat refunds and cancellations."""

from .booking_repository import BookingRepository, get_booking_repository
from .refund_policy_service import (
    RefundPolicyService,
    calculate_host_cancellation_refund,
    calculate_host_penalty,
    calculate_refund,
    get_refund_policy_service,
)
from .refund_service import RefundService
from .ssm_service import SSMService, SSMServiceError, get_ssm_service
from .stripe_service import StripeService, StripeServiceError, get_stripe_service

__all__ = [
    "BookingRepository",
    "get_booking_repository",
    "RefundPolicyService",
    "get_refund_policy_service",
    "calculate_refund",
    "calculate_host_cancellation_refund",
    "calculate_host_penalty",
    "RefundService",
    "SSMService",
    "SSMServiceError",
    "get_ssm_service",
    "StripeService",
    "StripeServiceError",
    "get_stripe_service",
]
