"""Mukhymat refund and cancellation-policy backend."""
