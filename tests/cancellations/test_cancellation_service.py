import asyncio
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

import application.services.cancellation_service as cancellation_module
from application.dtos.cancellations import CancelAppointmentRequest
from application.services.cancellation_service import CancellationApplicationService
from domain.common.exceptions import (
    AlreadyCancelledException,
    AppointmentNotFoundException,
    CancellationNotFoundException,
    InvalidPolicyInputException,
    InvalidReasonException,
    PaymentNotFoundException,
)


NOW = datetime(2026, 3, 1, 8, 0, tzinfo=timezone.utc)


class StubDispatcher:
    def __init__(self, fail: bool = False):
        self.calls = []
        self.fail = fail

    def dispatch_refund(self, **kwargs):
        if self.fail:
            raise ConnectionError("broker down")
        self.calls.append(kwargs)
        return "task-1"


def _service(uow_factory, dispatcher=None):
    return CancellationApplicationService(uow_factory, refund_dispatcher=dispatcher, clock=lambda: NOW)


def _request(initiated_by="patient", reason="Feeling better"):
    return CancelAppointmentRequest(initiated_by=initiated_by, reason=reason)


@pytest.mark.asyncio
async def test_cancel_persists_record_and_dispatches_refund(store, uow_factory, recorder, monkeypatch):
    monkeypatch.setattr(cancellation_module, "logger", recorder)
    appointment = store.add_appointment(NOW + timedelta(hours=10))
    store.add_payment(appointment.id, amount="1000.00", transaction_id="pay_A")
    dispatcher = StubDispatcher()

    result = await _service(uow_factory, dispatcher).cancel(appointment.id, _request())

    assert result.refund_amount == Decimal("500.00")
    assert result.penalty_amount == Decimal("500.00")
    assert result.initiated_by == "patient"
    assert store.cancellations[appointment.id].id == result.id
    assert store.commits == 1
    assert dispatcher.calls == [{
        "cancellation_id": result.id,
        "appointment_id": appointment.id,
        "gateway_transaction_id": "pay_A",
        "amount": Decimal("500.00"),
        "reason": "Feeling better",
    }]
    assert "cancellation_created" in recorder.events("info")
    # reconciliation is left to webhooks
    assert store.payment_by_transaction("pay_A").refund_status.value == "none"


@pytest.mark.asyncio
async def test_no_dispatch_when_nothing_to_refund(store, uow_factory):
    appointment = store.add_appointment(NOW + timedelta(hours=2))
    store.add_payment(appointment.id)
    dispatcher = StubDispatcher()

    result = await _service(uow_factory, dispatcher).cancel(appointment.id, _request())

    assert result.refund_amount == Decimal("0.00")
    assert result.penalty_amount == Decimal("1000.00")
    assert dispatcher.calls == []


@pytest.mark.asyncio
async def test_dispatch_failure_keeps_cancellation(store, uow_factory, recorder, monkeypatch):
    monkeypatch.setattr(cancellation_module, "logger", recorder)
    appointment = store.add_appointment(NOW + timedelta(days=3))
    store.add_payment(appointment.id)

    result = await _service(uow_factory, StubDispatcher(fail=True)).cancel(appointment.id, _request())

    assert result.refund_amount == Decimal("1000.00")
    assert appointment.id in store.cancellations
    assert "refund_dispatch_failed" in recorder.events("error")


@pytest.mark.asyncio
async def test_reason_is_trimmed(store, uow_factory):
    appointment = store.add_appointment(NOW + timedelta(days=3))
    store.add_payment(appointment.id)

    result = await _service(uow_factory).cancel(appointment.id, _request(reason="  clash  "))

    assert result.reason == "clash"


@pytest.mark.asyncio
@pytest.mark.parametrize("reason", ["", "   "])
async def test_blank_reason_rejected_before_any_write(store, uow_factory, reason):
    appointment = store.add_appointment(NOW + timedelta(days=3))
    store.add_payment(appointment.id)

    with pytest.raises(InvalidReasonException):
        await _service(uow_factory).cancel(appointment.id, _request(reason=reason))
    assert store.cancellations == {}


@pytest.mark.asyncio
async def test_unknown_initiator_rejected(store, uow_factory):
    appointment = store.add_appointment(NOW + timedelta(days=3))
    store.add_payment(appointment.id)

    with pytest.raises(InvalidPolicyInputException):
        await _service(uow_factory).cancel(appointment.id, _request(initiated_by="receptionist"))
    assert store.cancellations == {}


@pytest.mark.asyncio
async def test_missing_appointment(uow_factory):
    with pytest.raises(AppointmentNotFoundException):
        await _service(uow_factory).cancel(404, _request())


@pytest.mark.asyncio
async def test_missing_payment(store, uow_factory):
    appointment = store.add_appointment(NOW + timedelta(days=3))

    with pytest.raises(PaymentNotFoundException):
        await _service(uow_factory).cancel(appointment.id, _request())


@pytest.mark.asyncio
async def test_second_cancellation_conflicts(store, uow_factory):
    appointment = store.add_appointment(NOW + timedelta(days=3))
    store.add_payment(appointment.id)
    service = _service(uow_factory)
    await service.cancel(appointment.id, _request())

    with pytest.raises(AlreadyCancelledException):
        await service.cancel(appointment.id, _request(initiated_by="doctor"))
    assert len(store.cancellations) == 1


@pytest.mark.asyncio
async def test_concurrent_cancellations_create_exactly_one_record(store, uow_factory):
    appointment = store.add_appointment(NOW + timedelta(hours=10))
    store.add_payment(appointment.id)
    service = _service(uow_factory, StubDispatcher())

    results = await asyncio.gather(
        *(service.cancel(appointment.id, _request()) for _ in range(5)),
        return_exceptions=True,
    )

    created = [r for r in results if not isinstance(r, Exception)]
    conflicts = [r for r in results if isinstance(r, AlreadyCancelledException)]
    assert len(created) == 1
    assert len(conflicts) == 4
    assert len(store.cancellations) == 1
    assert store.rollbacks == 4


@pytest.mark.asyncio
async def test_get_cancellation(store, uow_factory):
    appointment = store.add_appointment(NOW + timedelta(days=3))
    store.add_payment(appointment.id)
    service = _service(uow_factory)
    created = await service.cancel(appointment.id, _request(initiated_by="doctor"))

    fetched = await service.get_cancellation(appointment.id)

    assert fetched == created
    with pytest.raises(CancellationNotFoundException):
        await service.get_cancellation(appointment.id + 100)
