"""
Background payment processing - an asyncio stand-in for a real gateway.

Each created payment gets one task that waits, moves the payment to
processing, waits again and settles it as completed or failed. All state is
re-read from the repository after every wait, so a task only needs the id.
"""
from __future__ import annotations

import asyncio
import random
import uuid
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Optional

from application.utils.locks import KeyedLock
from core.logging_config import get_logger
from core.settings import ProcessingSettings
from domain.common.exceptions import PaymentProcessingException
from domain.payment.entity import Payment, PaymentMethod, PaymentStatus
from domain.payment.repository import PaymentRepository


logger = get_logger(__name__)

FAILURE_REASONS = (
    "Insufficient funds",
    "Card declined",
    "Invalid card number",
    "Expired card",
    "Network timeout",
    "Fraud detection",
)
APPROVAL_MESSAGE = "Payment approved"
INTERNAL_ERROR_REASON = "Internal processing error"


@dataclass
class ProcessingOutcome:
    success: bool
    transaction_id: Optional[str] = None
    response: Optional[str] = None
    error: Optional[str] = None


def failure_rate(payment: Payment, settings: ProcessingSettings) -> float:
    """Chance that the simulated gateway declines `payment`."""
    rate = settings.base_failure_rate
    if payment.amount > settings.high_amount_threshold:
        rate += settings.high_amount_surcharge
    if payment.payment_method == PaymentMethod.CREDIT_CARD:
        rate += settings.credit_card_surcharge
    return min(rate, settings.max_failure_rate)


class PaymentProcessingSimulator:
    """Implements PaymentProcessingScheduler with one asyncio task per payment."""

    def __init__(
        self,
        repository: PaymentRepository,
        locks: KeyedLock,
        settings: Optional[ProcessingSettings] = None,
        rng: Optional[random.Random] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._repository = repository
        self._locks = locks
        self._settings = settings or ProcessingSettings()
        self._rng = rng or random.Random()
        self._sleep = sleep
        self._tasks: Dict[str, asyncio.Task] = {}

    @property
    def pending_count(self) -> int:
        return sum(1 for t in self._tasks.values() if not t.done())

    def schedule(self, payment_id: str) -> None:
        task = asyncio.create_task(self.process(payment_id), name=f"payment-processing:{payment_id}")
        self._tasks[payment_id] = task
        task.add_done_callback(lambda t, pid=payment_id: self._forget(pid, t))
        logger.info("payment_processing_scheduled", payment_id=payment_id)

    def _forget(self, payment_id: str, task: asyncio.Task) -> None:
        if self._tasks.get(payment_id) is task:
            del self._tasks[payment_id]

    async def cancel_all(self) -> None:
        """Stop every outstanding task. Status changes already written stay."""
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
        logger.info("payment_processing_cancelled", count=len(tasks))

    async def join(self) -> None:
        """Wait until no processing task is outstanding."""
        while True:
            pending = [t for t in self._tasks.values() if not t.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    def _next_delay(self) -> float:
        s = self._settings
        return self._rng.uniform(s.min_delay_ms, s.max_delay_ms) / 1000

    async def process(self, payment_id: str) -> None:
        logger.info("payment_processing_started", payment_id=payment_id)
        try:
            await self._sleep(self._next_delay())

            async with self._locks.hold(payment_id):
                payment = await self._repository.get_by_id(payment_id)
                if payment is None:
                    logger.error("payment_processing_payment_missing", payment_id=payment_id)
                    return
                if payment.status != PaymentStatus.PENDING:
                    logger.warning(
                        "payment_processing_skipped",
                        payment_id=payment_id,
                        status=payment.status.value,
                    )
                    return
                payment.transition_to(PaymentStatus.PROCESSING)
                await self._repository.update(payment)

            outcome = await self.simulate_gateway(payment)

            async with self._locks.hold(payment_id):
                payment = await self._repository.get_by_id(payment_id)
                if payment is None:
                    raise PaymentProcessingException("payment disappeared while processing", payment_id)
                if payment.status != PaymentStatus.PROCESSING:
                    logger.warning(
                        "payment_processing_superseded",
                        payment_id=payment_id,
                        status=payment.status.value,
                    )
                    return
                if outcome.success:
                    payment.transition_to(PaymentStatus.COMPLETED)
                    payment.merge_metadata({
                        "transactionId": outcome.transaction_id,
                        "processorResponse": outcome.response,
                    })
                else:
                    payment.transition_to(PaymentStatus.FAILED, outcome.error)
                await self._repository.update(payment)

            logger.info(
                "payment_processing_completed",
                payment_id=payment_id,
                status=payment.status.value,
                failure_reason=payment.failure_reason,
            )
        except Exception as exc:
            logger.error(
                "payment_processing_failed",
                payment_id=payment_id,
                error=str(exc),
                exc_info=True,
            )
            await self._mark_internal_failure(payment_id)

    async def simulate_gateway(self, payment: Payment) -> ProcessingOutcome:
        """Wait like a gateway would, then approve or decline."""
        await self._sleep(self._next_delay())

        if self._rng.random() < failure_rate(payment, self._settings):
            return ProcessingOutcome(success=False, error=self._rng.choice(FAILURE_REASONS))

        return ProcessingOutcome(
            success=True,
            transaction_id=f"txn_{uuid.uuid4().hex}",
            response=APPROVAL_MESSAGE,
        )

    async def _mark_internal_failure(self, payment_id: str) -> None:
        try:
            async with self._locks.hold(payment_id):
                payment = await self._repository.get_by_id(payment_id)
                if payment is None:
                    return
                payment.transition_to(PaymentStatus.FAILED, INTERNAL_ERROR_REASON, force=True)
                await self._repository.update(payment)
        except Exception as exc:
            logger.error(
                "payment_processing_fallback_failed",
                payment_id=payment_id,
                error=str(exc),
                exc_info=True,
            )
