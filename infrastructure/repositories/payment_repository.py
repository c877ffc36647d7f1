"""
Payment repository implementation - in-memory collection mirrored to a JSON file.

The in-memory map is authoritative for the life of the process. Every create or
update rewrites the whole file; read/write failures are logged, never raised.
"""
from __future__ import annotations

import asyncio
import copy
import json
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

import aiofiles
import aiofiles.os

from domain.payment.entity import Payment, PaymentStatus, PaymentMethod
from domain.payment.repository import PaymentRepository, PaymentFilter
from domain.common.exceptions import BusinessException
from core.logging_config import get_logger


logger = get_logger(__name__)

DEFAULT_SORT_FIELD = "createdAt"

SORT_FIELDS: Dict[str, Callable[[Payment], Any]] = {
    "amount": lambda p: p.amount,
    "status": lambda p: p.status.value,
    "customerId": lambda p: p.customer_id,
    "paymentMethod": lambda p: p.payment_method.value,
    "currency": lambda p: p.currency,
    "createdAt": lambda p: p.created_at,
    "updatedAt": lambda p: p.updated_at,
}
# snake_case spellings resolve to the same keys
SORT_FIELDS.update({
    "customer_id": SORT_FIELDS["customerId"],
    "payment_method": SORT_FIELDS["paymentMethod"],
    "created_at": SORT_FIELDS["createdAt"],
    "updated_at": SORT_FIELDS["updatedAt"],
})


def _parse_ts(value: Optional[str]) -> Optional[datetime]:
    # fromisoformat only accepts a trailing Z from 3.11 on
    return datetime.fromisoformat(value.replace("Z", "+00:00")) if value else None


def _format_ts(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class JsonFilePaymentRepository(PaymentRepository):
    """Payment repository backed by a dict and a JSON array file"""

    def __init__(self, data_file: str | Path):
        self.data_file = Path(data_file)
        self._payments: Dict[str, Payment] = {}
        self._write_lock = asyncio.Lock()

    def _to_record(self, entity: Payment) -> dict:
        """Entity -> persisted JSON object"""
        return {
            "id": entity.id,
            "amount": entity.amount,
            "currency": entity.currency,
            "paymentMethod": entity.payment_method.value,
            "status": entity.status.value,
            "customerId": entity.customer_id,
            "description": entity.description,
            "metadata": entity.metadata,
            "createdAt": _format_ts(entity.created_at),
            "updatedAt": _format_ts(entity.updated_at),
            "processedAt": _format_ts(entity.processed_at),
            "failureReason": entity.failure_reason,
        }

    def _to_entity(self, record: dict) -> Payment:
        """Persisted JSON object -> entity"""
        return Payment(
            id=record["id"],
            amount=record["amount"],
            currency=record["currency"],
            payment_method=PaymentMethod(record["paymentMethod"]),
            status=PaymentStatus(record["status"]),
            customer_id=record["customerId"],
            description=record.get("description"),
            metadata=record.get("metadata") or {},
            created_at=_parse_ts(record.get("createdAt")),
            updated_at=_parse_ts(record.get("updatedAt")),
            processed_at=_parse_ts(record.get("processedAt")),
            failure_reason=record.get("failureReason"),
        )

    async def load(self) -> None:
        """Rehydrate the collection from the file mirror, if there is one."""
        try:
            self.data_file.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(self.data_file, "r", encoding="utf-8") as f:
                raw = await f.read()
        except FileNotFoundError:
            logger.info("payment_store_empty", path=str(self.data_file))
            return
        except OSError as exc:
            logger.error("payment_store_read_failed", path=str(self.data_file), error=str(exc))
            return

        try:
            loaded = {}
            for record in json.loads(raw):
                payment = self._to_entity(record)
                loaded[payment.id] = payment
        except (ValueError, KeyError, TypeError, BusinessException) as exc:
            # malformed mirror: start empty rather than refuse to boot
            logger.error(
                "payment_store_load_failed",
                path=str(self.data_file),
                error=str(exc),
                error_type=type(exc).__name__,
            )
            return

        self._payments = loaded
        logger.info("payment_store_loaded", path=str(self.data_file), count=len(loaded))

    async def _save(self) -> None:
        snapshot = [self._to_record(p) for p in self._payments.values()]
        body = json.dumps(snapshot, indent=2, ensure_ascii=False, default=str)
        tmp_path = self.data_file.with_name(self.data_file.name + ".tmp")
        async with self._write_lock:
            try:
                self.data_file.parent.mkdir(parents=True, exist_ok=True)
                async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
                    await f.write(body)
                await aiofiles.os.replace(tmp_path, self.data_file)
            except OSError as exc:
                logger.error(
                    "payment_store_write_failed",
                    path=str(self.data_file),
                    error=str(exc),
                )

    async def create(self, payment: Payment) -> Payment:
        self._payments[payment.id] = copy.deepcopy(payment)
        await self._save()
        logger.info(
            "payment_created",
            payment_id=payment.id,
            customer_id=payment.customer_id,
            amount=payment.amount,
            currency=payment.currency,
        )
        return copy.deepcopy(payment)

    async def get_by_id(self, payment_id: str) -> Optional[Payment]:
        payment = self._payments.get(payment_id)
        return copy.deepcopy(payment) if payment else None

    async def update(self, payment: Payment) -> Payment:
        self._payments[payment.id] = copy.deepcopy(payment)
        await self._save()
        logger.info("payment_updated", payment_id=payment.id, status=payment.status.value)
        return copy.deepcopy(payment)

    async def find_paginated(
        self,
        page: int = 1,
        limit: int = 10,
        sort_by: str = DEFAULT_SORT_FIELD,
        sort_order: str = "desc",
        filters: Optional[PaymentFilter] = None,
    ) -> Tuple[List[Payment], int]:
        candidates = list(self._payments.values())
        if filters is not None:
            candidates = [p for p in candidates if filters.matches(p)]

        key = SORT_FIELDS.get(sort_by) or SORT_FIELDS[DEFAULT_SORT_FIELD]
        ordered = sorted(
            candidates,
            key=lambda p: (key(p), p.id),
            reverse=(sort_order or "desc").lower() != "asc",
        )

        total = len(ordered)
        start = (page - 1) * limit
        data = ordered[start:start + limit] if start >= 0 else []
        return [copy.deepcopy(p) for p in data], total

    async def list_all(self) -> List[Payment]:
        return [copy.deepcopy(p) for p in self._payments.values()]

    async def list_by_customer(self, customer_id: str) -> List[Payment]:
        return [copy.deepcopy(p) for p in self._payments.values() if p.customer_id == customer_id]

    async def list_by_status(self, status: PaymentStatus) -> List[Payment]:
        status = PaymentStatus(status)
        return [copy.deepcopy(p) for p in self._payments.values() if p.status == status]

    async def count(self) -> int:
        return len(self._payments)
