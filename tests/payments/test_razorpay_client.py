import base64
import json
from decimal import Decimal

import httpx
import pytest

from application.dtos.payments import RefundRequest
from domain.common.exceptions import InvalidWebhookPayloadException
from infrastructure.external.payments import get_payment_gateway
from infrastructure.external.payments.base import to_minor_units
from infrastructure.external.payments.exceptions import (
    PaymentConfigurationError,
    PaymentProviderError,
    PaymentRecoverableError,
)
from infrastructure.external.payments.razorpay_client import RazorpayClient


def _client(handler, **kwargs) -> RazorpayClient:
    return RazorpayClient(
        key_id="rzp_test_key",
        key_secret="rzp_test_secret",
        transport=httpx.MockTransport(handler),
        retry={"max": 2, "base": 0.01},
        **kwargs,
    )


def _refund_request(**overrides) -> RefundRequest:
    data = dict(gateway_transaction_id="pay_29QQoUBi66xm2f", amount=Decimal("500.50"), reason="Cancelled", cancellation_id=7)
    data.update(overrides)
    return RefundRequest(**data)


def test_minor_units():
    assert to_minor_units(Decimal("500.50"), "INR") == 50050
    assert to_minor_units(Decimal("0.01"), "inr") == 1
    assert to_minor_units(Decimal("100"), "JPY") == 100


@pytest.mark.asyncio
async def test_refund_posts_paise_with_basic_auth():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["authorization"]
        seen["json"] = json.loads(request.content)
        return httpx.Response(200, json={
            "id": "rfnd_FP8QHiV938haTz",
            "entity": "refund",
            "amount": 50050,
            "payment_id": "pay_29QQoUBi66xm2f",
            "status": "processed",
        })

    client = _client(handler)
    try:
        result = await client.refund(_refund_request())
    finally:
        await client.aclose()

    assert seen["url"] == "https://api.razorpay.com/v1/payments/pay_29QQoUBi66xm2f/refund"
    expected_auth = base64.b64encode(b"rzp_test_key:rzp_test_secret").decode()
    assert seen["auth"] == f"Basic {expected_auth}"
    assert seen["json"]["amount"] == 50050
    assert seen["json"]["speed"] == "normal"
    assert seen["json"]["notes"] == {"reason": "Cancelled", "cancellation_id": "7"}
    assert result.refund_id == "rfnd_FP8QHiV938haTz"
    assert result.status == "processed"
    assert result.amount == Decimal("500.50")


@pytest.mark.asyncio
async def test_transport_errors_are_retried_then_succeed():
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        if len(attempts) < 3:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(200, json={"id": "rfnd_1", "status": "pending", "amount": 100})

    client = _client(handler)
    result = await client.refund(_refund_request(amount=Decimal("1.00")))

    assert len(attempts) == 3
    assert result.status == "pending"


@pytest.mark.asyncio
async def test_exhausted_retries_raise_recoverable():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(PaymentRecoverableError):
        await _client(handler).refund(_refund_request())


@pytest.mark.asyncio
async def test_server_error_is_recoverable():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="unavailable")

    with pytest.raises(PaymentRecoverableError):
        await _client(handler).refund(_refund_request())


@pytest.mark.asyncio
async def test_client_error_is_not_recoverable():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"error": {"code": "BAD_REQUEST_ERROR", "description": "The refund amount is invalid"}})

    with pytest.raises(PaymentProviderError) as exc_info:
        await _client(handler).refund(_refund_request())
    assert exc_info.value.message == "The refund amount is invalid"
    assert exc_info.value.details["provider_code"] == "BAD_REQUEST_ERROR"


@pytest.mark.asyncio
async def test_missing_keys_refuses_to_call():
    client = RazorpayClient(key_id=None, key_secret=None)
    with pytest.raises(PaymentConfigurationError):
        await client.refund(_refund_request())


def test_parse_webhook_extracts_transaction_id():
    body = json.dumps({
        "entity": "event",
        "event": "refund.processed",
        "payload": {
            "refund": {"entity": {"id": "rfnd_1", "payment_id": "pay_1", "status": "processed"}},
            "payment": {"entity": {"id": "pay_1", "status": "refunded"}},
        },
    }).encode()

    event = RazorpayClient(key_id=None, key_secret=None).parse_webhook(body)

    assert event.event == "refund.processed"
    assert event.gateway_transaction_id == "pay_1"
    assert event.refund_id == "rfnd_1"
    assert event.provider == "razorpay"


def test_parse_webhook_falls_back_to_refund_payment_id():
    body = json.dumps({
        "event": "refund.created",
        "payload": {"refund": {"entity": {"id": "rfnd_2", "payment_id": "pay_9"}}},
    }).encode()

    event = RazorpayClient(key_id=None, key_secret=None).parse_webhook(body)

    assert event.gateway_transaction_id == "pay_9"


@pytest.mark.parametrize("body", [
    b"",
    b"[]",
    b'{"payload": {}}',
    b'{"event": "refund.created"}',
    b'{"event": "refund.created", "payload": {"payment": {"entity": {}}}}',
])
def test_parse_webhook_rejects_malformed(body):
    with pytest.raises(InvalidWebhookPayloadException):
        RazorpayClient(key_id=None, key_secret=None).parse_webhook(body)


def test_factory_builds_razorpay_client():
    gateway = get_payment_gateway("razorpay")
    assert isinstance(gateway, RazorpayClient)
    with pytest.raises(ValueError):
        get_payment_gateway("stripe")
