"""
Payment domain entity - the payment aggregate root and its state machine.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Optional

from domain.common.exceptions import DomainValidationException, InvalidPaymentStatusException


MAX_FAILURE_REASON_LENGTH = 1000


class PaymentStatus(str, Enum):
    """Payment status"""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class PaymentMethod(str, Enum):
    """Payment method"""
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    BANK_TRANSFER = "bank_transfer"
    DIGITAL_WALLET = "digital_wallet"


# current status -> statuses it may move to
VALID_TRANSITIONS: dict[PaymentStatus, frozenset[PaymentStatus]] = {
    PaymentStatus.PENDING: frozenset({PaymentStatus.PROCESSING, PaymentStatus.CANCELLED}),
    PaymentStatus.PROCESSING: frozenset({PaymentStatus.COMPLETED, PaymentStatus.FAILED}),
    PaymentStatus.COMPLETED: frozenset({PaymentStatus.REFUNDED}),
    PaymentStatus.FAILED: frozenset({PaymentStatus.PENDING}),  # retry
    PaymentStatus.CANCELLED: frozenset(),
    PaymentStatus.REFUNDED: frozenset(),
}

PROCESSED_STATUSES = frozenset({PaymentStatus.COMPLETED, PaymentStatus.FAILED})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Normalize a timestamp to UTC (naive values are assumed to be UTC)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


@dataclass
class Payment:
    """
    Payment aggregate root - manages the payment lifecycle.

    Business rules:
    1. amount must be a positive integer in the smallest currency unit
    2. status changes only along VALID_TRANSITIONS
    3. processed_at is set once, the first time the payment completes or fails
    4. metadata updates are merged, never replaced wholesale
    """

    id: str
    amount: int
    currency: str
    payment_method: PaymentMethod
    status: PaymentStatus
    customer_id: str
    description: Optional[str] = None
    metadata: dict[str, Any] = field(default_factory=dict)

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    processed_at: Optional[datetime] = None
    failure_reason: Optional[str] = None

    def __post_init__(self):
        self._validate_amount()
        self._validate_currency()
        if not self.customer_id:
            raise DomainValidationException("customer_id must not be empty", field="customer_id")
        self.payment_method = PaymentMethod(self.payment_method)
        self.status = PaymentStatus(self.status)
        if self.metadata is None:
            self.metadata = {}
        self._normalize_timestamps()

    def _validate_amount(self) -> None:
        if isinstance(self.amount, bool) or not isinstance(self.amount, int) or self.amount <= 0:
            raise DomainValidationException(
                f"Amount must be a positive integer: {self.amount}",
                field="amount",
            )

    def _validate_currency(self) -> None:
        if not self.currency or len(self.currency) > 3:
            raise DomainValidationException(
                f"Invalid currency code: {self.currency}",
                field="currency",
            )

    def _normalize_timestamps(self) -> None:
        now = _utcnow()
        self.created_at = _ensure_utc(self.created_at) or now
        self.updated_at = _ensure_utc(self.updated_at) or self.created_at
        self.processed_at = _ensure_utc(self.processed_at)

    def _touch(self) -> None:
        now = _utcnow()
        # keep updated_at strictly increasing even on coarse clocks
        if now <= self.updated_at:
            now = self.updated_at + timedelta(microseconds=1)
        self.updated_at = now

    def can_transition_to(self, status: PaymentStatus) -> bool:
        return PaymentStatus(status) in VALID_TRANSITIONS[self.status]

    def transition_to(
        self,
        status: PaymentStatus,
        failure_reason: Optional[str] = None,
        *,
        force: bool = False,
    ) -> None:
        """
        Move the payment to `status`.

        Illegal edges raise InvalidPaymentStatusException and leave the
        payment untouched. `force` skips the edge check; it exists for the
        processing pipeline's internal-error fallback only.
        """
        status = PaymentStatus(status)
        if not force and not self.can_transition_to(status):
            raise InvalidPaymentStatusException(self.status.value, status.value)
        if failure_reason is not None and len(failure_reason) > MAX_FAILURE_REASON_LENGTH:
            raise DomainValidationException(
                f"Failure reason must be {MAX_FAILURE_REASON_LENGTH} characters or less",
                field="failure_reason",
            )

        self.status = status
        self._touch()
        if status in PROCESSED_STATUSES and self.processed_at is None:
            self.processed_at = self.updated_at
        if failure_reason and status == PaymentStatus.FAILED:
            self.failure_reason = failure_reason

    def merge_metadata(self, metadata: dict[str, Any]) -> None:
        """Overlay `metadata` onto the existing map."""
        self.metadata = {**(self.metadata or {}), **metadata}
        self._touch()

    def is_final_status(self) -> bool:
        return not VALID_TRANSITIONS[self.status]
