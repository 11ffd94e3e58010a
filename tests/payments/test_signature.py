import hashlib
import hmac

from infrastructure.external.payments.signature import (
    WebhookAuthenticator,
    compute_signature,
    verify_signature,
)


SECRET = "whsec_razorpay"
BODY = b'{"event":"refund.processed","payload":{"payment":{"entity":{"id":"pay_1"}}}}'


def _sign(body: bytes, secret: str = SECRET) -> str:
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


def test_valid_signature_verifies():
    assert compute_signature(BODY, SECRET) == _sign(BODY)
    assert verify_signature(BODY, _sign(BODY), SECRET) is True


def test_single_byte_tamper_fails():
    signature = _sign(BODY)
    tampered = bytearray(BODY)
    tampered[10] ^= 0x01
    assert verify_signature(bytes(tampered), signature, SECRET) is False


def test_reserialized_body_fails():
    # same JSON, different bytes
    spaced = BODY.replace(b":", b": ")
    assert verify_signature(spaced, _sign(BODY), SECRET) is False


def test_wrong_secret_fails():
    assert verify_signature(BODY, _sign(BODY, "other"), SECRET) is False


def test_missing_or_malformed_inputs_fail_without_raising():
    signature = _sign(BODY)
    assert verify_signature(BODY, None, SECRET) is False
    assert verify_signature(BODY, "", SECRET) is False
    assert verify_signature(BODY, "   ", SECRET) is False
    assert verify_signature(BODY, "sïgnature", SECRET) is False
    assert verify_signature(BODY, signature, "") is False
    assert verify_signature(BODY, signature, None) is False


def test_authenticator_binds_secret():
    authenticator = WebhookAuthenticator(SECRET)
    assert authenticator.configured
    assert authenticator.verify(BODY, _sign(BODY))
    assert not authenticator.verify(BODY, _sign(BODY, "other"))


def test_unconfigured_authenticator_rejects_everything():
    authenticator = WebhookAuthenticator(None)
    assert not authenticator.configured
    assert not authenticator.verify(BODY, _sign(BODY, ""))
