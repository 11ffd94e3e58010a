"""Infrastructure models package exports."""
from .base import Base, metadata
from .appointment import AppointmentModel
from .payment import PaymentModel
from .cancellation import CancellationModel

__all__ = [
    "Base",
    "metadata",
    "AppointmentModel",
    "PaymentModel",
    "CancellationModel",
]
