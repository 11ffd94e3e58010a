"""
Payments API routes.

Gateway webhook endpoint. Responses use the fixed bodies Razorpay expects;
any 5xx makes the gateway redeliver, which the reconciliation tolerates.
"""
from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from api.dependencies import get_webhook_service
from application.services.payment_service import PaymentWebhookService
from core.logging_config import get_logger
from core.settings import payment_settings
from domain.common.exceptions import (
    InvalidWebhookPayloadException,
    PersistenceFailureException,
    UnauthenticatedWebhookException,
)


router = APIRouter(prefix="/payments", tags=["Payments"])
logger = get_logger(__name__)

SUCCESS_BODY = {"status": "success"}
INVALID_PAYLOAD_BODY = {"error": "Invalid payload"}
INVALID_SIGNATURE_BODY = {"error": "Invalid signature"}
INTERNAL_ERROR_BODY = {"error": "Internal server error"}


@router.post("/webhooks/razorpay", summary="Razorpay webhook")
async def razorpay_webhook(
    request: Request,
    service: PaymentWebhookService = Depends(get_webhook_service),
):
    # Signature is computed over the exact bytes received
    raw_body = await request.body()
    signature = request.headers.get(payment_settings.webhook.signature_header)

    try:
        outcome = await asyncio.wait_for(
            service.handle_webhook(raw_body, signature),
            timeout=payment_settings.webhook.processing_timeout_seconds,
        )
    except UnauthenticatedWebhookException:
        return JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content=INVALID_SIGNATURE_BODY)
    except InvalidWebhookPayloadException as exc:
        logger.info("webhook_payload_invalid", provider=service.provider, details=exc.details)
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=INVALID_PAYLOAD_BODY)
    except asyncio.TimeoutError:
        logger.error(
            "webhook_processing_timeout",
            provider=service.provider,
            timeout_seconds=payment_settings.webhook.processing_timeout_seconds,
        )
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=INTERNAL_ERROR_BODY)
    except PersistenceFailureException as exc:
        logger.error("webhook_persistence_failure", provider=service.provider, details=exc.details)
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=INTERNAL_ERROR_BODY)
    except Exception:
        logger.exception("webhook_unhandled_error", provider=service.provider)
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=INTERNAL_ERROR_BODY)

    logger.debug("webhook_acknowledged", provider=service.provider, outcome=outcome.value)
    return JSONResponse(status_code=status.HTTP_200_OK, content=SUCCESS_BODY)
