"""
API依赖项 - 组装应用服务（组合根）
"""
from functools import lru_cache

from fastapi import Depends

from application.ports.payment_gateway import PaymentGateway, WebhookVerifier
from application.ports.tasks import RefundDispatcher
from application.services.cancellation_service import CancellationApplicationService
from application.services.payment_service import PaymentWebhookService
from infrastructure.external.payments import get_payment_gateway, get_webhook_authenticator
from infrastructure.unit_of_work import SQLAlchemyUnitOfWork


@lru_cache(maxsize=1)
def _webhook_authenticator() -> WebhookVerifier:
    # 密钥只在此处读取一次并注入
    return get_webhook_authenticator()


async def get_webhook_verifier() -> WebhookVerifier:
    return _webhook_authenticator()


async def get_payment_gateway_dep() -> PaymentGateway:
    return get_payment_gateway()


async def get_task_dispatcher() -> RefundDispatcher:
    from infrastructure.tasks import TaskDispatcher
    return TaskDispatcher()


async def get_cancellation_service(
    dispatcher: RefundDispatcher = Depends(get_task_dispatcher),
) -> CancellationApplicationService:
    return CancellationApplicationService(uow_factory=SQLAlchemyUnitOfWork, refund_dispatcher=dispatcher)


async def get_webhook_service(
    verifier: WebhookVerifier = Depends(get_webhook_verifier),
    gateway: PaymentGateway = Depends(get_payment_gateway_dep),
) -> PaymentWebhookService:
    return PaymentWebhookService(uow_factory=SQLAlchemyUnitOfWork, authenticator=verifier, gateway=gateway)
