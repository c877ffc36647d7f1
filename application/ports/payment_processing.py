"""
Payment processing port (application/ports).

The application service only needs to hand a freshly created payment over to
background processing; infrastructure decides how that processing runs.
"""
from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class PaymentProcessingScheduler(Protocol):
    """Schedules fire-and-forget processing of a payment by id.

    `schedule` must not block: it is called from the creation path, which
    returns before any processing happens.
    """

    def schedule(self, payment_id: str) -> None: ...

    async def cancel_all(self) -> None: ...
