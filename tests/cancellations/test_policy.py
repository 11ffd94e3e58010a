from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from domain.cancellation.policy import compute_cancellation, hours_before
from domain.common.exceptions import InvalidPolicyInputException


NOW = datetime(2026, 3, 1, 8, 0, tzinfo=timezone.utc)


def _at(hours: float) -> datetime:
    return NOW + timedelta(hours=hours)


def test_patient_ten_hours_before_gets_half_refund():
    amounts = compute_cancellation("patient", _at(10), Decimal("1000"), NOW)
    assert amounts.refund_amount == Decimal("500.00")
    assert amounts.penalty_amount == Decimal("500.00")


def test_doctor_two_hours_before_full_refund_with_penalty():
    amounts = compute_cancellation("doctor", _at(2), Decimal("1000"), NOW)
    assert amounts.refund_amount == Decimal("1000.00")
    assert amounts.penalty_amount == Decimal("200.00")


def test_doctor_early_cancellation_has_no_penalty():
    amounts = compute_cancellation("doctor", _at(48), Decimal("1000"), NOW)
    assert amounts.refund_amount == Decimal("1000.00")
    assert amounts.penalty_amount == Decimal("0.00")


@pytest.mark.parametrize(
    "hours, refund, penalty",
    [
        (24, "800.00", "0.00"),
        (23.99, "400.00", "400.00"),
        (6, "400.00", "400.00"),
        (5.99, "0.00", "800.00"),
        (-1, "0.00", "800.00"),
    ],
)
def test_tier_boundaries_for_non_doctor(hours, refund, penalty):
    amounts = compute_cancellation("hospital", _at(hours), "800", NOW)
    assert amounts.refund_amount == Decimal(refund)
    assert amounts.penalty_amount == Decimal(penalty)


def test_half_refund_rounds_half_up_and_sums_to_amount():
    amounts = compute_cancellation("patient", _at(12), Decimal("100.01"), NOW)
    assert amounts.refund_amount == Decimal("50.01")
    assert amounts.penalty_amount == Decimal("50.00")
    assert amounts.refund_amount + amounts.penalty_amount == Decimal("100.01")


def test_refund_never_exceeds_amount_and_nothing_negative():
    for initiator in ("patient", "doctor", "hospital", "system", "admin"):
        for hours in (-5, 0, 3, 6, 12, 24, 72):
            amounts = compute_cancellation(initiator, _at(hours), Decimal("999.99"), NOW)
            assert Decimal("0") <= amounts.refund_amount <= Decimal("999.99")
            assert amounts.penalty_amount >= 0


def test_zero_amount_is_allowed():
    amounts = compute_cancellation("patient", _at(1), Decimal("0"), NOW)
    assert amounts.refund_amount == Decimal("0.00")
    assert amounts.penalty_amount == Decimal("0.00")


@pytest.mark.parametrize("amount", [Decimal("-1"), "abc", 10.5, Decimal("NaN")])
def test_invalid_amount_rejected(amount):
    with pytest.raises(InvalidPolicyInputException):
        compute_cancellation("patient", _at(30), amount, NOW)


def test_unknown_initiator_rejected():
    with pytest.raises(InvalidPolicyInputException) as exc_info:
        compute_cancellation("nurse", _at(30), Decimal("10"), NOW)
    assert exc_info.value.field == "initiated_by"


def test_naive_datetime_rejected():
    with pytest.raises(InvalidPolicyInputException):
        hours_before(datetime(2026, 3, 1, 10, 0), NOW)


def test_offset_timezones_are_compared_as_instants():
    ist = timezone(timedelta(hours=5, minutes=30))
    # 18:30 IST == 13:00 UTC, five hours after NOW
    start = datetime(2026, 3, 1, 18, 30, tzinfo=ist)
    assert hours_before(start, NOW) == Decimal(5)
