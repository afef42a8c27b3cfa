"""FastAPI dependency injection providers for the refund services.

Services are lazily instantiated and cached with @lru_cache so every request
shares one engine, one repository and one payment gateway client.

Usage in routes:
    from mukhymat_api.dependencies import get_refund_service

    @router.post("/bookings/{booking_id}/cancel")
    async def cancel(refunds: RefundService = Depends(get_refund_service)):
        ...

Service Dependency Graph:
    RefundPolicyService (config from env vars or SSM)
        └── RefundService
                ├── BookingRepository (DynamoDB)
                └── StripeService (secret key from SSM)

Testing:
    Use app.dependency_overrides between tests.
"""

from functools import lru_cache

from fastapi import Header

from mukhymat.services.booking_repository import get_booking_repository
from mukhymat.services.refund_policy_service import (
    RefundPolicyService,
    get_refund_policy_service,
)
from mukhymat.services.refund_service import RefundService
from mukhymat.services.stripe_service import get_stripe_service

USER_ID_HEADER = "X-User-Id"


def get_policy_engine() -> RefundPolicyService:
    """Get the shared refund policy engine."""
    return get_refund_policy_service()


@lru_cache
def get_refund_service() -> RefundService:
    """Get cached RefundService wired to DynamoDB and Stripe."""
    return RefundService(
        repository=get_booking_repository(),
        gateway=get_stripe_service(),
        engine=get_refund_policy_service(),
    )


def get_caller_id(
    x_user_id: str | None = Header(default=None, alias=USER_ID_HEADER),
) -> str | None:
    """Authenticated caller forwarded by the gateway authorizer.

    Missing identity is not rejected here; the service raises AUTH_REQUIRED
    so the error body stays consistent with other refund failures.
    """
    return x_user_id.strip() if x_user_id and x_user_id.strip() else None
