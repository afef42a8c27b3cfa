"""REST API for Mukhymat refunds and cancellations."""
