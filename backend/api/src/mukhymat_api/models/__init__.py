"""Request models for the refunds API."""

from .refunds import CancelRequest, HostPenaltyQuoteRequest, RefundQuoteRequest, RefundRequest

__all__ = ["CancelRequest", "HostPenaltyQuoteRequest", "RefundQuoteRequest", "RefundRequest"]
