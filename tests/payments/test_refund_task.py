import pickle
from decimal import Decimal

import pytest

import infrastructure.tasks.tasks.refunds as refunds_module
from application.dtos.payments import RefundResult
from infrastructure.external.payments.exceptions import (
    PaymentConfigurationError,
    PaymentProviderError,
    PaymentRecoverableError,
)
from infrastructure.tasks import TaskDispatcher, celery_app
from infrastructure.tasks.tasks.refunds import EXECUTE_REFUND_TASK, execute_refund


class StubGateway:
    provider = "stub"

    def __init__(self, error=None):
        self.requests = []
        self.closed = False
        self.error = error

    async def refund(self, req):
        self.requests.append(req)
        if self.error:
            raise self.error
        return RefundResult(
            refund_id="rfnd_1",
            status="pending",
            provider=self.provider,
            gateway_transaction_id=req.gateway_transaction_id,
        )

    def parse_webhook(self, body):
        raise NotImplementedError

    async def aclose(self):
        self.closed = True


TASK_KWARGS = {
    "cancellation_id": 7,
    "appointment_id": 3,
    "gateway_transaction_id": "pay_1",
    "amount": "500.00",
    "reason": "Travel",
}


def test_execute_refund_calls_gateway(monkeypatch):
    gateway = StubGateway()
    monkeypatch.setattr(refunds_module, "get_payment_gateway", lambda: gateway)

    result = execute_refund.apply(kwargs=TASK_KWARGS).get()

    assert result == {"refund_id": "rfnd_1", "status": "pending"}
    req = gateway.requests[0]
    assert req.amount == Decimal("500.00")
    assert req.gateway_transaction_id == "pay_1"
    assert req.idempotency_key == "cancellation-7"
    assert gateway.closed


def test_execute_refund_retries_recoverable_errors(monkeypatch):
    gateway = StubGateway(error=PaymentRecoverableError("HTTP 503", provider="stub"))
    monkeypatch.setattr(refunds_module, "get_payment_gateway", lambda: gateway)

    outcome = execute_refund.apply(kwargs=TASK_KWARGS)

    with pytest.raises(PaymentRecoverableError) as exc_info:
        outcome.get()
    assert exc_info.value.provider == "stub"
    # first attempt plus the configured retries
    assert len(gateway.requests) > 1


@pytest.mark.parametrize(
    "error",
    [
        PaymentRecoverableError("HTTP 503", provider="razorpay", provider_code="503"),
        PaymentProviderError("bad amount", provider="razorpay", details={"field": "amount"}),
        PaymentConfigurationError("keys missing", provider="razorpay"),
    ],
)
def test_gateway_errors_survive_pickling(error):
    restored = pickle.loads(pickle.dumps(error))

    assert type(restored) is type(error)
    assert restored.message == error.message
    assert restored.code == error.code
    assert restored.details == error.details
    assert restored.provider == "razorpay"


def test_dispatcher_sends_task_by_name(monkeypatch):
    sent = {}

    class _Result:
        id = "celery-task-id"

    def _send_task(name, args=None, kwargs=None, **options):
        sent["name"] = name
        sent["kwargs"] = kwargs
        return _Result()

    monkeypatch.setattr(celery_app, "send_task", _send_task)

    task_id = TaskDispatcher().dispatch_refund(
        cancellation_id=7,
        appointment_id=3,
        gateway_transaction_id="pay_1",
        amount=Decimal("500.00"),
        reason="Travel",
    )

    assert task_id == "celery-task-id"
    assert sent["name"] == EXECUTE_REFUND_TASK
    assert sent["kwargs"]["amount"] == "500.00"
