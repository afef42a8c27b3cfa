"""DynamoDB persistence for bookings, camps and refund transactions.

Tables (prefixed with DYNAMODB_TABLE_PREFIX, default ``mukhymat-{env}``):
- bookings:     hash key booking_id
- camps:        hash key camp_id (carries the listing-level refund_policy)
- transactions: hash key transaction_id
"""

import datetime as dt
import os
from decimal import Decimal
from typing import Any

import boto3
from botocore.exceptions import ClientError

from mukhymat.config import get_environment
from mukhymat.models import (
    Booking,
    BookingStatus,
    CancelledBy,
    ListingRefundPolicy,
    PaymentStatus,
    RefundStatus,
    RefundTransaction,
)

_repository_instance: "BookingRepository | None" = None


def get_booking_repository() -> "BookingRepository":
    """Get or create the shared BookingRepository instance."""
    global _repository_instance
    if _repository_instance is None:
        _repository_instance = BookingRepository()
    return _repository_instance


def reset_booking_repository() -> None:
    """Reset the shared instance (for testing only)."""
    global _repository_instance
    _repository_instance = None


class BookingRepository:
    """Reads and writes the records touched by the refund flow."""

    BOOKINGS_TABLE = "bookings"
    CAMPS_TABLE = "camps"
    TRANSACTIONS_TABLE = "transactions"

    def __init__(self, environment: str | None = None) -> None:
        """Initialize the repository.

        Args:
            environment: Environment name. Defaults to ENVIRONMENT env var.
        """
        self.environment = environment or get_environment()
        self.name_prefix = os.getenv("DYNAMODB_TABLE_PREFIX", f"mukhymat-{self.environment}")
        self._dynamodb = boto3.resource("dynamodb")

    def _get_table(self, table: str) -> Any:
        return self._dynamodb.Table(f"{self.name_prefix}-{table}")

    def get_booking(self, booking_id: str) -> Booking | None:
        """Get a booking by ID, or None if it does not exist."""
        response = self._get_table(self.BOOKINGS_TABLE).get_item(Key={"booking_id": booking_id})
        item = response.get("Item")
        return self._item_to_booking(item) if item else None

    def put_booking(self, booking: Booking) -> None:
        """Create or replace a booking record."""
        self._get_table(self.BOOKINGS_TABLE).put_item(Item=self._booking_to_item(booking))

    def get_camp_refund_policy(self, camp_id: str) -> ListingRefundPolicy:
        """Listing-level refund override for a camp (refundable when unset)."""
        response = self._get_table(self.CAMPS_TABLE).get_item(Key={"camp_id": camp_id})
        value = (response.get("Item") or {}).get("refund_policy")
        if value == ListingRefundPolicy.NON_REFUNDABLE.value:
            return ListingRefundPolicy.NON_REFUNDABLE
        return ListingRefundPolicy.REFUNDABLE

    def save_cancellation(self, booking: Booking) -> bool:
        """Persist the cancellation and refund fields of a booking.

        The write only succeeds if the booking is not already cancelled, so
        two concurrent cancellations cannot both issue a refund.

        Returns:
            True if written, False if the booking was already cancelled
        """
        names = {"#status": "status"}
        values: dict[str, Any] = {
            ":status": booking.status.value,
            ":refund_status": booking.refund_status.value,
            ":cancelled": BookingStatus.CANCELLED.value,
        }
        assignments = ["#status = :status", "refund_status = :refund_status"]

        optional = {
            "refund_amount": booking.refund_amount,
            "refund_percentage": booking.refund_percentage,
            "refund_reason": booking.refund_reason,
            "refund_id": booking.refund_id,
            "cancelled_at": booking.cancelled_at.isoformat() if booking.cancelled_at else None,
            "cancelled_by": booking.cancelled_by.value if booking.cancelled_by else None,
            "host_penalty_amount": booking.host_penalty_amount,
            "host_penalty_percentage": booking.host_penalty_percentage,
        }
        for field, value in optional.items():
            if value is not None:
                assignments.append(f"{field} = :{field}")
                values[f":{field}"] = value

        try:
            self._get_table(self.BOOKINGS_TABLE).update_item(
                Key={"booking_id": booking.booking_id},
                UpdateExpression="SET " + ", ".join(assignments),
                ConditionExpression="#status <> :cancelled",
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
            )
            return True
        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                return False
            raise

    def claim_failed_refund(self, booking_id: str) -> bool:
        """Move a failed refund back to processing before it is retried.

        Only one caller can claim a given failure, so concurrent retries
        cannot both reach the gateway.

        Returns:
            True if claimed, False if the refund is no longer failed
        """
        try:
            self._get_table(self.BOOKINGS_TABLE).update_item(
                Key={"booking_id": booking_id},
                UpdateExpression="SET refund_status = :processing",
                ConditionExpression="refund_status = :failed",
                ExpressionAttributeValues={
                    ":processing": RefundStatus.PROCESSING.value,
                    ":failed": RefundStatus.FAILED.value,
                },
            )
            return True
        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                return False
            raise

    def update_refund(
        self,
        booking_id: str,
        status: RefundStatus,
        refund_id: str | None = None,
    ) -> None:
        """Record the gateway outcome of a refund on its booking."""
        expression = "SET refund_status = :rs"
        values: dict[str, Any] = {":rs": status.value}
        if refund_id:
            expression += ", refund_id = :rid"
            values[":rid"] = refund_id
        self._get_table(self.BOOKINGS_TABLE).update_item(
            Key={"booking_id": booking_id},
            UpdateExpression=expression,
            ExpressionAttributeValues=values,
        )

    def add_transaction(self, transaction: RefundTransaction) -> None:
        """Record a refund transaction."""
        item = transaction.model_dump(mode="python", exclude_none=True)
        item["created_at"] = transaction.created_at.isoformat()
        self._get_table(self.TRANSACTIONS_TABLE).put_item(Item=item)

    def get_transaction(self, transaction_id: str) -> dict[str, Any] | None:
        """Get a raw transaction item by ID."""
        response = self._get_table(self.TRANSACTIONS_TABLE).get_item(
            Key={"transaction_id": transaction_id}
        )
        item: dict[str, Any] | None = response.get("Item")
        return item

    # Conversion helpers

    def _booking_to_item(self, booking: Booking) -> dict[str, Any]:
        item: dict[str, Any] = {
            "booking_id": booking.booking_id,
            "user_id": booking.user_id,
            "host_id": booking.host_id,
            "camp_id": booking.camp_id,
            "total_price": booking.total_price,
            "check_in_date": booking.check_in_date.isoformat(),
            "status": booking.status.value,
            "payment_status": booking.payment_status.value,
            "payment_method": booking.payment_method,
            "refund_status": booking.refund_status.value,
        }
        if booking.payment_intent_id:
            item["payment_intent_id"] = booking.payment_intent_id
        if booking.cancellation_policy is not None:
            item["cancellation_policy"] = booking.cancellation_policy
        return item

    def _item_to_booking(self, item: dict[str, Any]) -> Booking:
        def _dt(key: str) -> dt.datetime | None:
            return dt.datetime.fromisoformat(item[key]) if item.get(key) else None

        def _int(key: str) -> int | None:
            return int(item[key]) if item.get(key) is not None else None

        return Booking(
            booking_id=item["booking_id"],
            user_id=item["user_id"],
            host_id=item.get("host_id", ""),
            camp_id=item["camp_id"],
            total_price=Decimal(str(item["total_price"])),
            check_in_date=dt.datetime.fromisoformat(item["check_in_date"]),
            status=BookingStatus(item.get("status", BookingStatus.CONFIRMED.value)),
            payment_status=PaymentStatus(item.get("payment_status", PaymentStatus.PENDING.value)),
            payment_intent_id=item.get("payment_intent_id"),
            payment_method=item.get("payment_method", "card"),
            cancellation_policy=item.get("cancellation_policy"),
            refund_status=RefundStatus(item.get("refund_status", RefundStatus.NONE.value)),
            refund_amount=item.get("refund_amount"),
            refund_percentage=_int("refund_percentage"),
            refund_reason=item.get("refund_reason"),
            refund_id=item.get("refund_id"),
            cancelled_at=_dt("cancelled_at"),
            cancelled_by=CancelledBy(item["cancelled_by"]) if item.get("cancelled_by") else None,
            host_penalty_amount=item.get("host_penalty_amount"),
            host_penalty_percentage=_int("host_penalty_percentage"),
        )
