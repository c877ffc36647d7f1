"""
Payments API routes.

Thin adapters over PaymentService: parse the request, call the service and
render the entity. Every route requires a valid X-API-Key.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, status

from api.dependencies import get_payment_service, payment_query_params, require_api_key
from application.dtos.payments import (
    CreatePaymentDTO,
    PaymentPageDTO,
    PaymentQueryDTO,
    PaymentResponseDTO,
    UpdatePaymentDTO,
)
from application.services.payment_service import PaymentService


router = APIRouter(
    prefix="/payments",
    tags=["Payments"],
    dependencies=[Depends(require_api_key)],
)


@router.post(
    "",
    response_model=PaymentResponseDTO,
    status_code=status.HTTP_201_CREATED,
    summary="Create payment",
)
async def create_payment(
    payload: CreatePaymentDTO,
    service: PaymentService = Depends(get_payment_service),
):
    payment = await service.create_payment(payload)
    return PaymentResponseDTO.from_entity(payment)


@router.get("", response_model=PaymentPageDTO, summary="List payments")
async def list_payments(
    query: PaymentQueryDTO = Depends(payment_query_params),
    service: PaymentService = Depends(get_payment_service),
):
    """Paginated listing, optionally filtered by customerId or by status."""
    return await service.search_payments(query)


@router.get("/{payment_id}", response_model=PaymentResponseDTO, summary="Get payment")
async def get_payment(
    payment_id: str,
    service: PaymentService = Depends(get_payment_service),
):
    payment = await service.get_payment_by_id(payment_id)
    return PaymentResponseDTO.from_entity(payment)


@router.put("/{payment_id}", response_model=PaymentResponseDTO, summary="Update payment")
async def update_payment(
    payment_id: str,
    payload: UpdatePaymentDTO,
    service: PaymentService = Depends(get_payment_service),
):
    payment = await service.update_payment(payment_id, payload)
    return PaymentResponseDTO.from_entity(payment)
