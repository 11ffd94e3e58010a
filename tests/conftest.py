"""Pytest bootstrap configuration.

Ensure mandatory environment variables are set before test collection
and module imports that depend on application settings, and provide the
in-memory unit of work used by the service tests.
"""
import asyncio
import dataclasses
import os
from datetime import datetime
from decimal import Decimal

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DEBUG", "false")
os.environ.setdefault("DATABASE__URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("PAYMENT__WEBHOOK__SECRET", "test-webhook-secret")

import pytest

from domain.appointment.entity import Appointment
from domain.appointment.repository import AppointmentRepository
from domain.cancellation.repository import CancellationRepository
from domain.common.exceptions import AlreadyCancelledException
from domain.common.unit_of_work import AbstractUnitOfWork
from domain.payment.entity import Payment, RefundStatus
from domain.payment.repository import PaymentRepository


WEBHOOK_SECRET = os.environ["PAYMENT__WEBHOOK__SECRET"]


class InMemoryStore:
    def __init__(self):
        self.appointments = {}
        self.payments = {}
        self.cancellations = {}
        self.commits = 0
        self.rollbacks = 0
        self._next_id = 0

    def next_id(self) -> int:
        self._next_id += 1
        return self._next_id

    def add_appointment(self, scheduled_at: datetime, appointment_id: int = None) -> Appointment:
        appointment = Appointment(
            id=appointment_id or self.next_id(),
            patient_id=1,
            doctor_id=2,
            scheduled_at=scheduled_at,
        )
        self.appointments[appointment.id] = appointment
        return appointment

    def add_payment(self, appointment_id: int, amount="1000.00", transaction_id="pay_test_1",
                    refund_status=RefundStatus.NONE) -> Payment:
        payment = Payment(
            id=self.next_id(),
            appointment_id=appointment_id,
            amount=Decimal(amount),
            gateway_transaction_id=transaction_id,
            refund_status=refund_status,
        )
        self.payments[payment.id] = payment
        return payment

    def payment_by_transaction(self, transaction_id: str) -> Payment:
        return next(p for p in self.payments.values() if p.gateway_transaction_id == transaction_id)


class FakeAppointmentRepository(AppointmentRepository):
    def __init__(self, store: InMemoryStore):
        self.store = store

    async def get_by_id(self, appointment_id):
        await asyncio.sleep(0)
        return self.store.appointments.get(appointment_id)


class FakePaymentRepository(PaymentRepository):
    def __init__(self, store: InMemoryStore):
        self.store = store

    async def create(self, payment):
        saved = dataclasses.replace(payment, id=self.store.next_id())
        self.store.payments[saved.id] = saved
        return dataclasses.replace(saved)

    async def get_by_id(self, payment_id):
        payment = self.store.payments.get(payment_id)
        return dataclasses.replace(payment) if payment else None

    async def get_by_appointment_id(self, appointment_id):
        await asyncio.sleep(0)
        for payment in self.store.payments.values():
            if payment.appointment_id == appointment_id:
                return dataclasses.replace(payment)
        return None

    async def get_by_transaction_id(self, gateway_transaction_id):
        await asyncio.sleep(0)
        for payment in self.store.payments.values():
            if payment.gateway_transaction_id == gateway_transaction_id:
                return dataclasses.replace(payment)
        return None

    async def advance_refund_status(self, gateway_transaction_id, target):
        await asyncio.sleep(0)
        # check-and-set without awaiting in between, like a conditional UPDATE
        for payment in self.store.payments.values():
            if payment.gateway_transaction_id == gateway_transaction_id:
                return payment.advance_refund_status(target)
        return False


class FakeCancellationRepository(CancellationRepository):
    def __init__(self, store: InMemoryStore):
        self.store = store

    async def create(self, record):
        await asyncio.sleep(0)
        # emulates the unique constraint on appointment_id
        if record.appointment_id in self.store.cancellations:
            raise AlreadyCancelledException(record.appointment_id)
        saved = dataclasses.replace(record, id=self.store.next_id())
        self.store.cancellations[record.appointment_id] = saved
        return saved

    async def get_by_appointment_id(self, appointment_id):
        return self.store.cancellations.get(appointment_id)

    async def exists_by_appointment_id(self, appointment_id):
        await asyncio.sleep(0)
        return appointment_id in self.store.cancellations


class FakeUnitOfWork(AbstractUnitOfWork):
    def __init__(self, store: InMemoryStore, *, readonly: bool = False):
        super().__init__(readonly=readonly)
        self.store = store
        self.appointment_repository = FakeAppointmentRepository(store)
        self.payment_repository = FakePaymentRepository(store)
        self.cancellation_repository = FakeCancellationRepository(store)

    async def commit(self):
        self._committed = True
        self.store.commits += 1

    async def rollback(self):
        self.store.rollbacks += 1


class RecordingLogger:
    """Stand-in for a structlog logger that keeps (level, event, fields)."""

    def __init__(self):
        self.records = []

    def _record(level):
        def log(self, event, *args, **kwargs):
            self.records.append((level, event, kwargs))
        return log

    debug = _record("debug")
    info = _record("info")
    warning = _record("warning")
    error = _record("error")
    exception = _record("error")

    def events(self, level=None):
        return [event for lvl, event, _ in self.records if level is None or lvl == level]

    def fields(self, event):
        return next(kw for _, ev, kw in self.records if ev == event)


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def uow_factory(store):
    def factory(*, readonly: bool = False):
        return FakeUnitOfWork(store, readonly=readonly)
    return factory


@pytest.fixture
def recorder():
    return RecordingLogger()
