"""Cancellation domain: policy engine, immutable record, repository contract."""
from .entity import CancellationRecord, CancellationInitiator
from .policy import CancellationAmounts, compute_cancellation
from .repository import CancellationRepository

__all__ = [
    "CancellationRecord",
    "CancellationInitiator",
    "CancellationAmounts",
    "compute_cancellation",
    "CancellationRepository",
]
