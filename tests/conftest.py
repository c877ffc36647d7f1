"""Pytest bootstrap configuration.

Environment variables are set before any application module is imported,
because settings are read at import time.
"""
import asyncio
import os
import random

os.environ["API_KEYS"] = "test-api-key-123,second-key-456"
os.environ.setdefault("DEBUG", "false")

import pytest  # noqa: E402

from application.utils.locks import KeyedLock  # noqa: E402
from application.services.payment_service import PaymentService  # noqa: E402
from core.settings import ProcessingSettings  # noqa: E402
from infrastructure.repositories.payment_repository import JsonFilePaymentRepository  # noqa: E402
from infrastructure.tasks.payment_tasks import PaymentProcessingSimulator  # noqa: E402


class FixedRandom(random.Random):
    """random() always returns `value`; uniform() and choice() follow from it."""

    def __init__(self, value: float):
        super().__init__(0)
        self.value = value

    def random(self):
        return self.value


class RecordingScheduler:
    """Scheduler stand-in that only remembers what it was asked to process."""

    def __init__(self):
        self.scheduled = []

    def schedule(self, payment_id: str) -> None:
        self.scheduled.append(payment_id)

    async def cancel_all(self) -> None:
        self.scheduled.clear()


async def no_wait(_seconds: float) -> None:
    await asyncio.sleep(0)


@pytest.fixture
def data_file(tmp_path):
    return tmp_path / "data" / "payments.json"


@pytest.fixture
def repository(data_file):
    return JsonFilePaymentRepository(data_file)


@pytest.fixture
def locks():
    return KeyedLock()


@pytest.fixture
def instant_settings():
    return ProcessingSettings(min_delay_ms=0, max_delay_ms=0)


@pytest.fixture
def make_simulator(repository, locks, instant_settings):
    """Build a zero-delay simulator whose gateway roll is fixed."""

    def factory(roll: float = 0.99, **kwargs):
        return PaymentProcessingSimulator(
            repository=kwargs.pop("repo", repository),
            locks=locks,
            settings=kwargs.pop("settings", instant_settings),
            rng=FixedRandom(roll),
            sleep=kwargs.pop("sleep", no_wait),
        )

    return factory


@pytest.fixture
def scheduler():
    return RecordingScheduler()


@pytest.fixture
def service(repository, scheduler, locks):
    return PaymentService(repository, scheduler, locks)
