"""
Payment specific codes and gateway event mapping.
"""
from __future__ import annotations

from enum import IntEnum


class PaymentCode(IntEnum):
    # Provider/Network errors (6xxxx)
    PROVIDER_ERROR = 60000
    PROVIDER_RECOVERABLE = 60001


# Gateway webhook event -> internal refund status
REFUND_EVENT_TO_STATUS = {
    "razorpay": {
        "refund.created": "pending",
        "refund.processed": "processed",
        "refund.failed": "failed",
    },
}

# Gateway refund object status -> internal refund status
PROVIDER_REFUND_STATUS_TO_INTERNAL = {
    "razorpay": {
        "pending": "pending",
        "processed": "processed",
        "failed": "failed",
    },
}
