"""
Application service orchestrating payment use-cases.

Depends on the domain repository and the processing scheduler port; concrete
implementations are injected from the composition root (main/api), keeping
dependencies one-way.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

from application.dtos.payments import (
    CreatePaymentDTO,
    UpdatePaymentDTO,
    PageRequestDTO,
    PaymentQueryDTO,
    PaymentPageDTO,
    PaymentResponseDTO,
    PageMetaDTO,
)
from application.ports.payment_processing import PaymentProcessingScheduler
from application.utils.locks import KeyedLock
from core.logging_config import get_logger
from domain.common.exceptions import PaymentNotFoundException
from domain.payment.entity import Payment, PaymentStatus
from domain.payment.repository import PaymentRepository, PaymentFilter


logger = get_logger(__name__)


class PaymentService:
    def __init__(
        self,
        repository: PaymentRepository,
        scheduler: PaymentProcessingScheduler,
        locks: Optional[KeyedLock] = None,
    ) -> None:
        self.repository = repository
        self.scheduler = scheduler
        self.locks = locks or KeyedLock()

    async def create_payment(self, req: CreatePaymentDTO) -> Payment:
        """Persist a new pending payment and hand it to background processing."""
        logger.info("payment_create_request", customer_id=req.customer_id, amount=req.amount)
        now = datetime.now(timezone.utc)
        payment = Payment(
            id=str(uuid.uuid4()),
            amount=req.amount,
            currency=req.currency,
            payment_method=req.payment_method,
            status=PaymentStatus.PENDING,
            customer_id=req.customer_id,
            description=req.description,
            metadata=dict(req.metadata or {}),
            created_at=now,
            updated_at=now,
        )
        saved = await self.repository.create(payment)
        self.scheduler.schedule(saved.id)
        return saved

    async def get_payment_by_id(self, payment_id: str) -> Payment:
        payment = await self.repository.get_by_id(payment_id)
        if payment is None:
            raise PaymentNotFoundException(payment_id)
        return payment

    async def update_payment(self, payment_id: str, req: UpdatePaymentDTO) -> Payment:
        """
        Apply a status transition and/or a metadata merge.

        An illegal status rejects the whole request: nothing is written, the
        metadata part included.
        """
        logger.info(
            "payment_update_request",
            payment_id=payment_id,
            status=req.status.value if req.status else None,
            has_metadata=req.metadata is not None,
        )
        async with self.locks.hold(payment_id):
            payment = await self.get_payment_by_id(payment_id)
            if req.status is not None:
                payment.transition_to(req.status, req.failure_reason)
            if req.metadata:
                payment.merge_metadata(req.metadata)
            return await self.repository.update(payment)

    async def _page(self, params: PageRequestDTO, filters: Optional[PaymentFilter] = None) -> PaymentPageDTO:
        items, total = await self.repository.find_paginated(
            page=params.page,
            limit=params.limit,
            sort_by=params.sort_by,
            sort_order=params.sort_order,
            filters=filters,
        )
        return PaymentPageDTO(
            data=[PaymentResponseDTO.from_entity(p) for p in items],
            meta=PageMetaDTO.build(params.page, params.limit, total),
        )

    async def list_payments(self, params: PageRequestDTO) -> PaymentPageDTO:
        logger.info("payment_list_request", page=params.page, limit=params.limit)
        return await self._page(params)

    async def list_by_customer(self, customer_id: str, params: PageRequestDTO) -> PaymentPageDTO:
        logger.info("payment_list_request", customer_id=customer_id, page=params.page, limit=params.limit)
        return await self._page(params, PaymentFilter(customer_id=customer_id))

    async def list_by_status(self, status: PaymentStatus, params: PageRequestDTO) -> PaymentPageDTO:
        logger.info("payment_list_request", status=PaymentStatus(status).value, page=params.page, limit=params.limit)
        return await self._page(params, PaymentFilter(status=PaymentStatus(status)))

    async def search_payments(self, query: PaymentQueryDTO) -> PaymentPageDTO:
        """Dispatch a listing query: customerId first, then status, then everything."""
        if query.customer_id is not None:
            return await self.list_by_customer(query.customer_id, query)
        if query.status is not None:
            return await self.list_by_status(query.status, query)
        return await self.list_payments(query)
