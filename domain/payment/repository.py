"""
Payment repository interface - the abstract data access contract.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, List, Tuple

from .entity import Payment, PaymentStatus


@dataclass(frozen=True)
class PaymentFilter:
    """Filter applied before sorting and pagination."""
    customer_id: Optional[str] = None
    status: Optional[PaymentStatus] = None

    def matches(self, payment: Payment) -> bool:
        if self.customer_id is not None and payment.customer_id != self.customer_id:
            return False
        if self.status is not None and payment.status != self.status:
            return False
        return True


class PaymentRepository(ABC):
    """Payment repository - defines what can be done, not how"""

    @abstractmethod
    async def create(self, payment: Payment) -> Payment:
        """Insert a payment and persist it"""
        pass

    @abstractmethod
    async def get_by_id(self, payment_id: str) -> Optional[Payment]:
        """Return the payment or None when absent"""
        pass

    @abstractmethod
    async def find_paginated(
        self,
        page: int = 1,
        limit: int = 10,
        sort_by: str = "createdAt",
        sort_order: str = "desc",
        filters: Optional[PaymentFilter] = None,
    ) -> Tuple[List[Payment], int]:
        """Return one page of the filtered, sorted set plus the filtered total"""
        pass

    @abstractmethod
    async def update(self, payment: Payment) -> Payment:
        """Overwrite a payment by id and persist it"""
        pass

    @abstractmethod
    async def list_all(self) -> List[Payment]:
        pass

    @abstractmethod
    async def list_by_customer(self, customer_id: str) -> List[Payment]:
        pass

    @abstractmethod
    async def list_by_status(self, status: PaymentStatus) -> List[Payment]:
        pass

    @abstractmethod
    async def count(self) -> int:
        pass
