"""
Payment DTOs (Pydantic v2) used at application boundaries.

Wire names are camelCase (`paymentMethod`, `customerId`, ...); Python code
uses the snake_case attribute names.
"""
from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_serializer
from pydantic.alias_generators import to_camel

from core.config import settings
from domain.payment.entity import Payment, PaymentMethod, PaymentStatus


class DTOBase(BaseModel):
    """Base DTO: camelCase aliases and UTC-Z datetime serialization."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @model_serializer(mode="wrap")
    def _serialize_model(self, handler):  # type: ignore[override]
        data = handler(self)

        def convert(value):
            if isinstance(value, datetime):
                ts = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
                s = ts.astimezone(timezone.utc).isoformat()
                return s.replace("+00:00", "Z")
            if isinstance(value, list):
                return [convert(v) for v in value]
            if isinstance(value, dict):
                return {k: convert(v) for k, v in value.items()}
            return value

        return convert(data)


class CreatePaymentDTO(DTOBase):
    amount: int = Field(..., ge=1, description="Amount in the smallest currency unit (e.g. cents)")
    currency: str = Field(..., min_length=1, max_length=3, description="Currency code (ISO 4217)")
    payment_method: PaymentMethod
    customer_id: str = Field(..., min_length=1)
    description: Optional[str] = Field(default=None, max_length=500)
    metadata: Optional[dict[str, Any]] = None


class UpdatePaymentDTO(DTOBase):
    status: Optional[PaymentStatus] = None
    metadata: Optional[dict[str, Any]] = None
    failure_reason: Optional[str] = Field(default=None, max_length=1000)


class PageRequestDTO(DTOBase):
    """Page number/size plus ordering."""
    page: int = Field(1, ge=1, description="1-based page number")
    limit: int = Field(
        default=settings.DEFAULT_PAGE_SIZE,
        ge=1,
        le=settings.MAX_PAGE_SIZE,
        description="Page size",
    )
    sort_by: str = Field(default="createdAt", description="amount, status, customerId, paymentMethod, currency, createdAt or updatedAt")
    sort_order: Literal["asc", "desc"] = "desc"


class PaymentQueryDTO(PageRequestDTO):
    """Listing query; customerId takes precedence over status when both are sent."""
    customer_id: Optional[str] = None
    status: Optional[PaymentStatus] = None


class PaymentResponseDTO(DTOBase):
    id: str
    amount: int
    currency: str
    payment_method: PaymentMethod
    status: PaymentStatus
    customer_id: str
    description: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime
    processed_at: Optional[datetime] = None
    failure_reason: Optional[str] = None

    @classmethod
    def from_entity(cls, payment: Payment) -> "PaymentResponseDTO":
        return cls(
            id=payment.id,
            amount=payment.amount,
            currency=payment.currency,
            payment_method=payment.payment_method,
            status=payment.status,
            customer_id=payment.customer_id,
            description=payment.description,
            metadata=dict(payment.metadata or {}),
            created_at=payment.created_at,
            updated_at=payment.updated_at,
            processed_at=payment.processed_at,
            failure_reason=payment.failure_reason,
        )


class PageMetaDTO(DTOBase):
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_previous: bool

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "PageMetaDTO":
        total_pages = math.ceil(total / limit) if limit else 0
        return cls(
            page=page,
            limit=limit,
            total=total,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_previous=page > 1,
        )


class PaymentPageDTO(DTOBase):
    data: list[PaymentResponseDTO]
    meta: PageMetaDTO
