"""
Cancellation policy: refund and penalty amounts for a cancellation request.

Pure functions only. Amounts use Decimal and are quantized to two places
with ROUND_HALF_UP; the 50% tier derives the penalty as ``amount - refund``
so both figures always add up to the paid amount.

Policy (first match wins):
    doctor initiated   -> full refund; 20% penalty if < 24h before start
    anyone else, >= 24h -> full refund, no penalty
    anyone else, >= 6h  -> 50% refund, remainder as penalty
    anyone else, < 6h   -> no refund, full amount as penalty
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from domain.common.exceptions import InvalidPolicyInputException
from .entity import CancellationInitiator


CENTS = Decimal("0.01")

FULL_REFUND_HOURS = Decimal(24)
PARTIAL_REFUND_HOURS = Decimal(6)
PARTIAL_REFUND_RATE = Decimal("0.5")
DOCTOR_LATE_PENALTY_RATE = Decimal("0.2")


@dataclass(frozen=True)
class CancellationAmounts:
    refund_amount: Decimal
    penalty_amount: Decimal


def _money(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def _to_decimal(amount) -> Decimal:
    if isinstance(amount, float):
        # no binary floats for money
        raise InvalidPolicyInputException(
            "payment_amount must be a Decimal, int or numeric string",
            field="payment_amount",
        )
    try:
        value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidPolicyInputException(
            f"Invalid payment_amount: {amount!r}",
            field="payment_amount",
        ) from None
    if not value.is_finite():
        raise InvalidPolicyInputException(
            f"Invalid payment_amount: {amount!r}",
            field="payment_amount",
        )
    if value < 0:
        raise InvalidPolicyInputException(
            f"payment_amount must be >= 0: {value}",
            field="payment_amount",
            details={"payment_amount": str(value)},
        )
    return value


def hours_before(appointment_at: datetime, now: datetime) -> Decimal:
    """Hours between ``now`` and the appointment start (negative once started)."""
    if appointment_at.tzinfo is None or now.tzinfo is None:
        raise InvalidPolicyInputException(
            "appointment_at and now must be timezone-aware",
            field="appointment_at",
        )
    delta: timedelta = appointment_at - now
    micros = (delta.days * 86_400 + delta.seconds) * 1_000_000 + delta.microseconds
    return Decimal(micros) / Decimal(3_600_000_000)


def compute_cancellation(
    initiated_by: CancellationInitiator | str,
    appointment_at: datetime,
    payment_amount: Decimal | int | str,
    now: datetime,
) -> CancellationAmounts:
    """Compute refund and penalty for a cancellation.

    Raises:
        InvalidPolicyInputException: negative/non-numeric amount, unknown
            initiator, or naive datetimes.
    """
    initiator = CancellationInitiator.parse(initiated_by)
    amount = _money(_to_decimal(payment_amount))
    hours = hours_before(appointment_at, now)

    if initiator is CancellationInitiator.DOCTOR:
        # penalty is booked separately, the refund stays whole
        penalty = _money(amount * DOCTOR_LATE_PENALTY_RATE) if hours < FULL_REFUND_HOURS else Decimal("0.00")
        return CancellationAmounts(refund_amount=amount, penalty_amount=penalty)

    if hours >= FULL_REFUND_HOURS:
        return CancellationAmounts(refund_amount=amount, penalty_amount=Decimal("0.00"))
    if hours >= PARTIAL_REFUND_HOURS:
        refund = _money(amount * PARTIAL_REFUND_RATE)
        return CancellationAmounts(refund_amount=refund, penalty_amount=amount - refund)
    return CancellationAmounts(refund_amount=Decimal("0.00"), penalty_amount=amount)
