"""Pytest configuration and fixtures for Mukhymat refunds backend tests.

This module provides reusable fixtures for testing:
- DynamoDB mocking with moto (bookings, camps, transactions tables)
- Singleton resets for config, engine, repository and gateway
- Sample booking data
"""

import datetime as dt
import os
from decimal import Decimal
from typing import Any, Generator
from unittest.mock import MagicMock

import boto3
import pytest
from moto import mock_aws

# === Environment Setup ===

# Set environment variables for testing before imports
os.environ.setdefault("AWS_DEFAULT_REGION", "me-south-1")
os.environ.setdefault("DYNAMODB_TABLE_PREFIX", "test-mukhymat")
os.environ.setdefault("ENVIRONMENT", "dev")

# Only set fake credentials for moto if no real credentials are present
if not os.environ.get("AWS_PROFILE") and not os.environ.get("AWS_ACCESS_KEY_ID"):
    os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
    os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")

TABLE_PREFIX = os.environ["DYNAMODB_TABLE_PREFIX"]

# Fixed clock used across tests
NOW = dt.datetime(2026, 11, 1, 12, 0, tzinfo=dt.UTC)


# === Singleton Resets ===


@pytest.fixture(autouse=True)
def reset_singletons() -> Generator[None, None, None]:
    """Reset cached services before and after each test.

    Tests using mock_aws must get a fresh boto3 resource created inside
    the mock context, and config tests must see their own env vars.
    """
    from mukhymat.config import get_refund_policy_config
    from mukhymat.services.booking_repository import reset_booking_repository
    from mukhymat.services.refund_policy_service import get_refund_policy_service
    from mukhymat.services.ssm_service import get_ssm_service
    from mukhymat.services.stripe_service import get_stripe_service

    def _reset() -> None:
        get_refund_policy_config.cache_clear()
        get_refund_policy_service.cache_clear()
        get_ssm_service.cache_clear()
        get_stripe_service.cache_clear()
        reset_booking_repository()

    _reset()
    yield
    _reset()


# === AWS Fixtures ===


@pytest.fixture
def aws_credentials() -> None:
    """Mocked AWS Credentials for moto."""
    os.environ["AWS_ACCESS_KEY_ID"] = "testing"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
    os.environ["AWS_SECURITY_TOKEN"] = "testing"
    os.environ["AWS_SESSION_TOKEN"] = "testing"
    os.environ["AWS_DEFAULT_REGION"] = "me-south-1"


@pytest.fixture
def dynamodb_tables(aws_credentials: None) -> Generator[Any, None, None]:
    """Create the bookings, camps and transactions tables in a mocked DynamoDB."""
    with mock_aws():
        resource = boto3.resource("dynamodb", region_name="me-south-1")
        for table, key in (
            ("bookings", "booking_id"),
            ("camps", "camp_id"),
            ("transactions", "transaction_id"),
        ):
            resource.create_table(
                TableName=f"{TABLE_PREFIX}-{table}",
                KeySchema=[{"AttributeName": key, "KeyType": "HASH"}],
                AttributeDefinitions=[{"AttributeName": key, "AttributeType": "S"}],
                BillingMode="PAY_PER_REQUEST",
            )
        yield resource


@pytest.fixture
def repository(dynamodb_tables: Any) -> Any:
    """BookingRepository bound to the mocked tables."""
    from mukhymat.services.booking_repository import BookingRepository

    return BookingRepository(environment="dev")


@pytest.fixture
def mock_gateway() -> MagicMock:
    """Payment gateway whose refunds always succeed."""
    gateway = MagicMock()
    gateway.create_refund.return_value = {
        "refund_id": "re_test_123",
        "amount": 90000,
        "status": "succeeded",
    }
    return gateway


# === Sample Data Fixtures ===


@pytest.fixture
def sample_booking() -> Any:
    """A paid booking checking in 72 hours after NOW."""
    from mukhymat.models import Booking, BookingStatus, PaymentStatus

    return Booking(
        booking_id="BK-2026-0001",
        user_id="guest-1",
        host_id="host-1",
        camp_id="camp-1",
        total_price=Decimal("100.000"),
        check_in_date=NOW + dt.timedelta(hours=72),
        status=BookingStatus.CONFIRMED,
        payment_status=PaymentStatus.COMPLETED,
        payment_intent_id="pi_test_123",
        cancellation_policy="flexible",
    )


@pytest.fixture
def put_camp(dynamodb_tables: Any) -> Any:
    """Insert a camp with the given listing-level refund policy."""

    def _put(camp_id: str, refund_policy: str | None) -> None:
        item: dict[str, Any] = {"camp_id": camp_id, "name": "Sakhir Desert Camp"}
        if refund_policy is not None:
            item["refund_policy"] = refund_policy
        dynamodb_tables.Table(f"{TABLE_PREFIX}-camps").put_item(Item=item)

    return _put
