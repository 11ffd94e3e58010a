"""
Factory for payment gateway clients and webhook authenticators.
"""
from __future__ import annotations

from typing import Optional

from core.settings import PaymentSettings, payment_settings
from application.ports.payment_gateway import PaymentGateway
from .signature import WebhookAuthenticator


def get_payment_gateway(provider: Optional[str] = None, config: PaymentSettings = payment_settings) -> PaymentGateway:
    name = (provider or config.default_provider).lower()
    if name == "razorpay":
        from .razorpay_client import RazorpayClient
        rzp = config.razorpay
        return RazorpayClient(
            key_id=rzp.key_id,
            key_secret=rzp.key_secret.get_secret_value() if rzp.key_secret else None,
            base_url=rzp.base_url,
            refund_speed=rzp.refund_speed,
            currency=config.currency,
            timeouts=config.timeouts.model_dump(),
            retry={"max": config.retry.max, "base": config.retry.base_backoff},
        )
    raise ValueError(f"Unsupported payment provider: {name}")


def get_webhook_authenticator(config: PaymentSettings = payment_settings) -> WebhookAuthenticator:
    return WebhookAuthenticator(config.webhook_secret(), provider=config.default_provider)
