import asyncio
import json
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from api.dependencies import get_webhook_service
from application.services.payment_service import PaymentWebhookService
from core.settings import payment_settings
from domain.common.exceptions import PersistenceFailureException
from domain.payment.entity import RefundStatus
from infrastructure.external.payments.razorpay_client import RazorpayClient
from infrastructure.external.payments.signature import WebhookAuthenticator, compute_signature
from main import app


SECRET = "route-secret"
URL = "/api/v1/payments/webhooks/razorpay"
HEADER = payment_settings.webhook.signature_header


def _body(event: str, transaction_id: str = "pay_route") -> bytes:
    return json.dumps({"event": event, "payload": {"payment": {"entity": {"id": transaction_id}}}}).encode()


def _post(client, body: bytes, signature: str = None):
    headers = {"Content-Type": "application/json"}
    if signature is not False:
        headers[HEADER] = signature or compute_signature(body, SECRET)
    return client.post(URL, content=body, headers=headers)


@pytest.fixture
def client(store, uow_factory):
    appointment = store.add_appointment(datetime(2026, 3, 2, tzinfo=timezone.utc))
    store.add_payment(appointment.id, transaction_id="pay_route")

    def _service():
        return PaymentWebhookService(
            uow_factory,
            WebhookAuthenticator(SECRET),
            RazorpayClient(key_id=None, key_secret=None),
        )

    app.dependency_overrides[get_webhook_service] = _service
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_valid_webhook_advances_and_returns_success(client, store):
    resp = _post(client, _body("refund.processed"))

    assert resp.status_code == 200
    assert resp.json() == {"status": "success"}
    assert store.payment_by_transaction("pay_route").refund_status is RefundStatus.PROCESSED


def test_duplicate_webhook_still_returns_success(client, store):
    body = _body("refund.created")
    assert _post(client, body).status_code == 200
    resp = _post(client, body)

    assert resp.status_code == 200
    assert store.payment_by_transaction("pay_route").refund_status is RefundStatus.PENDING


def test_unknown_transaction_returns_success(client, store):
    resp = _post(client, _body("refund.processed", transaction_id="pay_elsewhere"))

    assert resp.status_code == 200
    assert resp.json() == {"status": "success"}
    assert store.payment_by_transaction("pay_route").refund_status is RefundStatus.NONE


def test_tampered_body_returns_401(client, store):
    body = _body("refund.processed")
    resp = _post(client, body + b" ", signature=compute_signature(body, SECRET))

    assert resp.status_code == 401
    assert resp.json() == {"error": "Invalid signature"}
    assert store.payment_by_transaction("pay_route").refund_status is RefundStatus.NONE


def test_missing_signature_returns_401(client):
    resp = _post(client, _body("refund.processed"), signature=False)

    assert resp.status_code == 401
    assert resp.json() == {"error": "Invalid signature"}


def test_malformed_payload_returns_400(client):
    resp = _post(client, b'{"payload": {}}')

    assert resp.status_code == 400
    assert resp.json() == {"error": "Invalid payload"}


def test_persistence_failure_returns_generic_500():
    class _FailingService:
        provider = "razorpay"

        async def handle_webhook(self, raw_body, signature):
            raise PersistenceFailureException("transaction")

    app.dependency_overrides[get_webhook_service] = lambda: _FailingService()
    try:
        resp = _post(TestClient(app), _body("refund.processed"))
    finally:
        app.dependency_overrides.clear()

    assert resp.status_code == 500
    assert resp.json() == {"error": "Internal server error"}


def test_processing_budget_exceeded_returns_500(monkeypatch):
    class _SlowService:
        provider = "razorpay"

        async def handle_webhook(self, raw_body, signature):
            await asyncio.sleep(1)

    monkeypatch.setattr(payment_settings.webhook, "processing_timeout_seconds", 0.01)
    app.dependency_overrides[get_webhook_service] = lambda: _SlowService()
    try:
        resp = _post(TestClient(app), _body("refund.processed"))
    finally:
        app.dependency_overrides.clear()

    assert resp.status_code == 500
    assert resp.json() == {"error": "Internal server error"}
