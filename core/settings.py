"""
Payment-related settings using pydantic-settings v2 with nested env keys.

Secrets live here and are handed to the webhook authenticator and gateway
client at construction time; nothing else reads them.
"""
from __future__ import annotations

from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import BaseModel, Field, SecretStr


class PaymentTimeouts(BaseModel):
    connect: float = 1.0
    read: float = 3.0
    write: float = 3.0
    total: float = 5.0


class PaymentRetry(BaseModel):
    max: int = 2
    base_backoff: float = 0.2


class WebhookSettings(BaseModel):
    secret: Optional[SecretStr] = None
    signature_header: str = "X-Razorpay-Signature"
    # Budget for verifying + applying a webhook before answering 500
    processing_timeout_seconds: float = 5.0


class RazorpaySettings(BaseModel):
    key_id: Optional[str] = None
    key_secret: Optional[SecretStr] = None
    base_url: str = "https://api.razorpay.com/v1"
    refund_speed: str = "normal"  # normal | optimum


class PaymentSettings(BaseSettings):
    default_provider: str = Field(default="razorpay")
    currency: str = Field(default="INR")
    timeouts: PaymentTimeouts = Field(default_factory=PaymentTimeouts)
    retry: PaymentRetry = Field(default_factory=PaymentRetry)
    webhook: WebhookSettings = Field(default_factory=WebhookSettings)
    razorpay: RazorpaySettings = Field(default_factory=RazorpaySettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="PAYMENT__",
        case_sensitive=False,
        extra="allow",
        env_nested_delimiter="__",
    )

    def webhook_secret(self) -> str:
        return self.webhook.secret.get_secret_value() if self.webhook.secret else ""


payment_settings = PaymentSettings()
