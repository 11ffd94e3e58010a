"""领域层业务异常定义，供领域与基础设施使用。

核心（core）层仅负责全局映射与异常处理，尽量避免领域层反向依赖核心层。
"""
from __future__ import annotations

from typing import Optional
from shared.codes import BusinessCode


class BusinessException(Exception):
    """业务异常基类"""

    def __init__(
        self,
        code: int,
        message: str,
        error_type: str = "BusinessError",
        details: Optional[dict] = None,
        field: Optional[str] = None,
        message_key: Optional[str] = None,
        format_params: Optional[dict] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.error_type = error_type
        self.details = details
        self.field = field
        self.message_key = message_key
        self.format_params = format_params
        super().__init__(self.message)


class DomainValidationException(BusinessException):
    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        details: dict | None = None,
        message_key: str | None = None,
        format_params: dict | None = None,
    ):
        super().__init__(
            code=BusinessCode.PARAM_VALIDATION_ERROR,
            message=message,
            error_type="DomainValidationError",
            details=details,
            field=field,
            message_key=message_key or "validation.domain",
            format_params=format_params,
        )


class InvalidPolicyInputException(BusinessException):
    """退款策略输入非法（调用方错误，不重试）"""

    def __init__(self, message: str, *, field: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(
            code=BusinessCode.INVALID_POLICY_INPUT,
            message=message,
            error_type="InvalidPolicyInput",
            details=details,
            field=field,
            message_key="cancellation.policy.invalid_input",
        )


class InvalidReasonException(BusinessException):
    def __init__(self):
        super().__init__(
            code=BusinessCode.INVALID_CANCELLATION_REASON,
            message="Cancellation reason must not be empty",
            error_type="InvalidReason",
            field="reason",
            message_key="cancellation.reason.required",
        )


class AppointmentNotFoundException(BusinessException):
    def __init__(self, appointment_id: Optional[int] = None):
        details = {"appointment_id": appointment_id} if appointment_id is not None else None
        super().__init__(
            code=BusinessCode.APPOINTMENT_NOT_FOUND,
            message="Appointment not found",
            error_type="AppointmentNotFound",
            details=details,
            message_key="appointment.not_found",
        )


class PaymentNotFoundException(BusinessException):
    """预约没有关联的支付记录"""

    def __init__(self, appointment_id: Optional[int] = None):
        details = {"appointment_id": appointment_id} if appointment_id is not None else None
        super().__init__(
            code=BusinessCode.PAYMENT_NOT_FOUND,
            message="No payment found for this appointment",
            error_type="PaymentNotFound",
            details=details,
            message_key="payment.not_found",
        )


class AlreadyCancelledException(BusinessException):
    def __init__(self, appointment_id: int):
        super().__init__(
            code=BusinessCode.ALREADY_CANCELLED,
            message=f"Appointment {appointment_id} has already been cancelled",
            error_type="AlreadyCancelled",
            details={"appointment_id": appointment_id},
            message_key="cancellation.already_exists",
            format_params={"appointment_id": appointment_id},
        )


class CancellationNotFoundException(BusinessException):
    def __init__(self, appointment_id: int):
        super().__init__(
            code=BusinessCode.NOT_FOUND,
            message="Cancellation not found",
            error_type="CancellationNotFound",
            details={"appointment_id": appointment_id},
            message_key="cancellation.not_found",
        )


class UnauthenticatedWebhookException(BusinessException):
    """Webhook 签名校验失败（对外只返回通用信息）"""

    def __init__(self, provider: str):
        super().__init__(
            code=BusinessCode.WEBHOOK_SIGNATURE_INVALID,
            message="Invalid signature",
            error_type="Unauthenticated",
            details={"provider": provider},
            message_key="payments.webhook.signature.invalid",
        )


class InvalidWebhookPayloadException(BusinessException):
    def __init__(self, reason: str):
        super().__init__(
            code=BusinessCode.PARAM_ERROR,
            message="Invalid payload",
            error_type="InvalidWebhookPayload",
            details={"reason": reason},
            message_key="payments.webhook.payload.invalid",
        )


class PersistenceFailureException(BusinessException):
    """持久化失败（瞬时错误，可安全重试）"""

    def __init__(self, operation: Optional[str] = None):
        details = {"operation": operation} if operation else None
        super().__init__(
            code=BusinessCode.DATABASE_ERROR,
            message="Persistence failure",
            error_type="PersistenceFailure",
            details=details,
            message_key="error.persistence",
        )
