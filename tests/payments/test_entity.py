from datetime import datetime, timezone

import pytest

from domain.common.exceptions import DomainValidationException, InvalidPaymentStatusException
from domain.payment.entity import Payment, PaymentMethod, PaymentStatus, VALID_TRANSITIONS


def make_payment(**overrides) -> Payment:
    data = dict(
        id="pay_1",
        amount=1000,
        currency="USD",
        payment_method=PaymentMethod.CREDIT_CARD,
        status=PaymentStatus.PENDING,
        customer_id="cust_1",
    )
    data.update(overrides)
    return Payment(**data)


def test_new_payment_defaults():
    p = make_payment()
    assert p.status == PaymentStatus.PENDING
    assert p.metadata == {}
    assert p.created_at == p.updated_at
    assert p.created_at.tzinfo is not None
    assert p.processed_at is None
    assert p.failure_reason is None


def test_enum_values_are_coerced():
    p = make_payment(payment_method="bank_transfer", status="failed")
    assert p.payment_method is PaymentMethod.BANK_TRANSFER
    assert p.status is PaymentStatus.FAILED


def test_naive_timestamps_are_treated_as_utc():
    p = make_payment(created_at=datetime(2024, 1, 1, 12, 0, 0))
    assert p.created_at == datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
    assert p.updated_at == p.created_at


@pytest.mark.parametrize("amount", [0, -5, 10.5, True, "100"])
def test_invalid_amount_rejected(amount):
    with pytest.raises(DomainValidationException) as exc:
        make_payment(amount=amount)
    assert exc.value.field == "amount"


@pytest.mark.parametrize("currency", ["", "EURO"])
def test_invalid_currency_rejected(currency):
    with pytest.raises(DomainValidationException):
        make_payment(currency=currency)


def test_empty_customer_rejected():
    with pytest.raises(DomainValidationException):
        make_payment(customer_id="")


@pytest.mark.parametrize(
    "current, target",
    [
        (current, target)
        for current in PaymentStatus
        for target in PaymentStatus
        if target not in VALID_TRANSITIONS[current]
    ],
)
def test_illegal_transitions_leave_payment_untouched(current, target):
    p = make_payment(status=current)
    before = (p.status, p.updated_at, p.processed_at)
    with pytest.raises(InvalidPaymentStatusException) as exc:
        p.transition_to(target)
    assert exc.value.message == f"Cannot change payment status from {current.value} to {target.value}"
    assert (p.status, p.updated_at, p.processed_at) == before


def test_happy_path_to_completed_sets_processed_at():
    p = make_payment()
    p.transition_to(PaymentStatus.PROCESSING)
    assert p.processed_at is None
    p.transition_to(PaymentStatus.COMPLETED)
    assert p.status == PaymentStatus.COMPLETED
    assert p.processed_at == p.updated_at


def test_failure_records_reason_and_processed_at():
    p = make_payment()
    p.transition_to(PaymentStatus.PROCESSING)
    p.transition_to(PaymentStatus.FAILED, "Card declined")
    assert p.failure_reason == "Card declined"
    assert p.processed_at is not None


def test_processed_at_is_set_only_once():
    p = make_payment()
    p.transition_to(PaymentStatus.PROCESSING)
    p.transition_to(PaymentStatus.FAILED, "Network timeout")
    first = p.processed_at

    # retry path
    p.transition_to(PaymentStatus.PENDING)
    p.transition_to(PaymentStatus.PROCESSING)
    p.transition_to(PaymentStatus.COMPLETED)
    p.transition_to(PaymentStatus.REFUNDED)
    assert p.processed_at == first
    assert p.is_final_status()


def test_failure_reason_only_recorded_for_failed():
    p = make_payment()
    p.transition_to(PaymentStatus.CANCELLED, "changed my mind")
    assert p.failure_reason is None
    assert p.is_final_status()


def test_failure_reason_length_limit():
    p = make_payment(status=PaymentStatus.PROCESSING)
    with pytest.raises(DomainValidationException):
        p.transition_to(PaymentStatus.FAILED, "x" * 1001)
    assert p.status == PaymentStatus.PROCESSING


def test_forced_transition_skips_edge_check():
    p = make_payment()
    p.transition_to(PaymentStatus.FAILED, "Internal processing error", force=True)
    assert p.status == PaymentStatus.FAILED
    assert p.failure_reason == "Internal processing error"


def test_merge_metadata_overlays_keys():
    p = make_payment(metadata={"orderId": "o-1", "channel": "web"})
    before = p.updated_at
    p.merge_metadata({"channel": "mobile", "note": "gift"})
    assert p.metadata == {"orderId": "o-1", "channel": "mobile", "note": "gift"}
    assert p.updated_at > before


def test_updated_at_strictly_increases():
    p = make_payment()
    stamps = [p.updated_at]
    for _ in range(5):
        p.merge_metadata({"n": len(stamps)})
        stamps.append(p.updated_at)
    assert stamps == sorted(set(stamps))
