import json
from datetime import datetime, timedelta, timezone

import pytest

from domain.payment.entity import Payment, PaymentMethod, PaymentStatus
from domain.payment.repository import PaymentFilter
from infrastructure.repositories.payment_repository import JsonFilePaymentRepository


BASE_TIME = datetime(2024, 5, 1, 9, 0, 0, tzinfo=timezone.utc)


def make_payment(pid: str, minutes: int = 0, **overrides) -> Payment:
    data = dict(
        id=pid,
        amount=1000,
        currency="USD",
        payment_method=PaymentMethod.DEBIT_CARD,
        status=PaymentStatus.PENDING,
        customer_id="cust_1",
        created_at=BASE_TIME + timedelta(minutes=minutes),
    )
    data.update(overrides)
    return Payment(**data)


@pytest.mark.asyncio
async def test_create_then_get_returns_copies(repository):
    saved = await repository.create(make_payment("p1", metadata={"k": "v"}))
    saved.metadata["k"] = "changed"

    fetched = await repository.get_by_id("p1")
    assert fetched.metadata == {"k": "v"}
    fetched.status = PaymentStatus.CANCELLED
    assert (await repository.get_by_id("p1")).status == PaymentStatus.PENDING


@pytest.mark.asyncio
async def test_get_unknown_returns_none(repository):
    assert await repository.get_by_id("missing") is None


@pytest.mark.asyncio
async def test_file_mirror_uses_camel_case_records(repository, data_file):
    await repository.create(make_payment("p1", description="coffee"))

    records = json.loads(data_file.read_text(encoding="utf-8"))
    assert len(records) == 1
    record = records[0]
    assert record["paymentMethod"] == "debit_card"
    assert record["customerId"] == "cust_1"
    assert record["createdAt"].startswith("2024-05-01T09:00:00")
    assert record["processedAt"] is None


@pytest.mark.asyncio
async def test_restart_round_trip(repository, data_file):
    p = make_payment("p1", metadata={"orderId": "o-9"})
    p.transition_to(PaymentStatus.PROCESSING)
    p.transition_to(PaymentStatus.FAILED, "Expired card")
    await repository.create(p)
    await repository.create(make_payment("p2", minutes=1))

    reloaded = JsonFilePaymentRepository(data_file)
    await reloaded.load()

    assert await reloaded.count() == 2
    again = await reloaded.get_by_id("p1")
    assert again == p


@pytest.mark.asyncio
async def test_load_missing_file_starts_empty(repository, data_file):
    await repository.load()
    assert await repository.count() == 0
    assert data_file.parent.is_dir()


@pytest.mark.asyncio
async def test_load_malformed_file_starts_empty(data_file):
    data_file.parent.mkdir(parents=True)
    data_file.write_text("{not json", encoding="utf-8")

    repo = JsonFilePaymentRepository(data_file)
    await repo.load()
    assert await repo.count() == 0


@pytest.mark.asyncio
async def test_write_failure_is_not_raised(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("a file, not a directory", encoding="utf-8")
    repo = JsonFilePaymentRepository(blocker / "payments.json")

    await repo.create(make_payment("p1"))
    assert (await repo.get_by_id("p1")) is not None


@pytest.mark.asyncio
async def test_update_overwrites_and_persists(repository, data_file):
    await repository.create(make_payment("p1"))
    p = await repository.get_by_id("p1")
    p.merge_metadata({"note": "x"})
    await repository.update(p)

    records = json.loads(data_file.read_text(encoding="utf-8"))
    assert records[0]["metadata"] == {"note": "x"}


@pytest.mark.asyncio
async def test_pagination_meta_inputs(repository):
    for i in range(3):
        await repository.create(make_payment(f"p{i}", minutes=i))

    items, total = await repository.find_paginated(page=2, limit=1)
    assert total == 3
    # newest first by default
    assert [p.id for p in items] == ["p1"]

    items, total = await repository.find_paginated(page=5, limit=10)
    assert items == [] and total == 3


@pytest.mark.asyncio
async def test_sort_by_amount_ascending(repository):
    for pid, amount in (("a", 500), ("b", 100), ("c", 300)):
        await repository.create(make_payment(pid, amount=amount))

    items, _ = await repository.find_paginated(sort_by="amount", sort_order="asc")
    assert [p.amount for p in items] == [100, 300, 500]


@pytest.mark.asyncio
async def test_unknown_sort_key_falls_back_to_created_at(repository):
    await repository.create(make_payment("old", minutes=0, amount=900))
    await repository.create(make_payment("new", minutes=5, amount=100))

    items, _ = await repository.find_paginated(sort_by="bogus")
    assert [p.id for p in items] == ["new", "old"]


@pytest.mark.asyncio
async def test_ties_are_ordered_by_id(repository):
    for pid in ("c", "a", "b"):
        await repository.create(make_payment(pid))

    asc, _ = await repository.find_paginated(sort_by="amount", sort_order="asc")
    desc, _ = await repository.find_paginated(sort_by="amount", sort_order="desc")
    assert [p.id for p in asc] == ["a", "b", "c"]
    assert [p.id for p in desc] == ["c", "b", "a"]


@pytest.mark.asyncio
async def test_filters_apply_before_pagination(repository):
    await repository.create(make_payment("p1", customer_id="alice", minutes=1))
    await repository.create(make_payment("p2", customer_id="bob", minutes=2))
    await repository.create(make_payment("p3", customer_id="alice", minutes=3, status=PaymentStatus.FAILED))

    items, total = await repository.find_paginated(limit=1, filters=PaymentFilter(customer_id="alice"))
    assert total == 2
    assert [p.id for p in items] == ["p3"]

    items, total = await repository.find_paginated(filters=PaymentFilter(status=PaymentStatus.PENDING))
    assert total == 2
    assert {p.id for p in items} == {"p1", "p2"}


@pytest.mark.asyncio
async def test_list_helpers(repository):
    await repository.create(make_payment("p1", customer_id="alice"))
    await repository.create(make_payment("p2", customer_id="bob", status=PaymentStatus.CANCELLED))

    assert len(await repository.list_all()) == 2
    assert [p.id for p in await repository.list_by_customer("bob")] == ["p2"]
    assert [p.id for p in await repository.list_by_status("pending")] == ["p1"]


@pytest.mark.asyncio
async def test_load_accepts_z_suffixed_timestamps(data_file):
    data_file.parent.mkdir(parents=True)
    data_file.write_text(
        json.dumps([
            {
                "id": "p1",
                "amount": 1000,
                "currency": "USD",
                "paymentMethod": "credit_card",
                "status": "completed",
                "customerId": "c1",
                "description": None,
                "metadata": {},
                "createdAt": "2024-05-01T09:00:00.000Z",
                "updatedAt": "2024-05-01T09:00:03.250Z",
                "processedAt": "2024-05-01T09:00:03.250Z",
                "failureReason": None,
            }
        ]),
        encoding="utf-8",
    )

    repo = JsonFilePaymentRepository(data_file)
    await repo.load()

    p = await repo.get_by_id("p1")
    assert p is not None
    assert p.created_at == BASE_TIME
    assert p.processed_at == BASE_TIME + timedelta(seconds=3.25)
