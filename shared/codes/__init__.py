"""
Shared business codes used across layers (Domain/Core/API).

This package exposes BusinessCode at `shared.codes`.
"""
from enum import IntEnum


class BusinessCode(IntEnum):
    """Unified business status codes (single source of truth)."""

    # Success
    SUCCESS = 0

    # Parameter errors (1xxxx)
    PARAM_ERROR = 10000
    PARAM_MISSING = 10001
    PARAM_TYPE_ERROR = 10002
    PARAM_VALIDATION_ERROR = 10003

    # Business errors (2xxxx)
    BUSINESS_ERROR = 20000
    NOT_FOUND = 20006  # Generic resource not found

    # Payment errors (201xx)
    PAYMENT_NOT_FOUND = 20101
    INVALID_PAYMENT_STATUS = 20102
    PAYMENT_PROCESSING_ERROR = 20103

    # Authorization errors (3xxxx)
    PERMISSION_ERROR = 30000
    UNAUTHORIZED = 30001
    FORBIDDEN = 30002

    # System errors (4xxxx)
    SYSTEM_ERROR = 40000
    STORAGE_ERROR = 40001
    SERVICE_UNAVAILABLE = 40003


__all__ = ["BusinessCode"]
