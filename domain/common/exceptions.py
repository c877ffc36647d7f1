"""Domain-level business exceptions, shared by domain and infrastructure.

The core layer only maps these to HTTP responses; the domain never imports
from core.
"""
from __future__ import annotations

from typing import Optional
from shared.codes import BusinessCode


class BusinessException(Exception):
    """Base class for business errors."""

    def __init__(
        self,
        code: int,
        message: str,
        error_type: str = "BusinessError",
        details: Optional[dict] = None,
        field: Optional[str] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.error_type = error_type
        self.details = details
        self.field = field
        super().__init__(self.message)


class DomainValidationException(BusinessException):
    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(
            code=BusinessCode.PARAM_VALIDATION_ERROR,
            message=message,
            error_type="DomainValidationError",
            details=details,
            field=field,
        )


class PaymentNotFoundException(BusinessException):
    def __init__(self, payment_id: str):
        super().__init__(
            code=BusinessCode.PAYMENT_NOT_FOUND,
            message=f"Payment with ID {payment_id} not found",
            error_type="PaymentNotFound",
            details={"payment_id": payment_id},
        )


class InvalidPaymentStatusException(BusinessException):
    """Requested status change is not an edge of the payment state machine."""

    def __init__(self, current_status: str, attempted_status: str):
        self.current_status = current_status
        self.attempted_status = attempted_status
        super().__init__(
            code=BusinessCode.INVALID_PAYMENT_STATUS,
            message=f"Cannot change payment status from {current_status} to {attempted_status}",
            error_type="InvalidPaymentStatus",
            details={"current_status": current_status, "attempted_status": attempted_status},
            field="status",
        )


class PaymentProcessingException(BusinessException):
    """Raised inside the background processing pipeline; never reaches a caller."""

    def __init__(self, message: str, payment_id: str):
        self.payment_id = payment_id
        super().__init__(
            code=BusinessCode.PAYMENT_PROCESSING_ERROR,
            message=f"Payment processing failed: {message}",
            error_type="PaymentProcessingError",
            details={"payment_id": payment_id},
        )
