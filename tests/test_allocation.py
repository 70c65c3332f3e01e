"""Tests for the allocation ledger."""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from profitrack.database import sqlalchemy_db
from profitrack.domain.allocation import AllocationLedger
from profitrack.domain.entities import CostSource
from profitrack.domain.errors import (
    ConflictError,
    NotFoundError,
    OverAllocationError,
    ValidationError,
)


@pytest.fixture
def two_jobs(job_service):
    job_a = job_service.create_job(client="Job A", revenue=Decimal("4000"), issue_date=date(2024, 6, 1))
    job_b = job_service.create_job(client="Job B", revenue=Decimal("4000"), issue_date=date(2024, 6, 2))
    return job_a, job_b


def _allocated(db, transaction_id):
    return sum((a.amount for a in db.list_allocations(transaction_id=transaction_id)), Decimal("0"))


def test_over_allocation_is_rejected_and_exact_fit_accepted(ledger, two_jobs, supplier_payment):
    job_a, job_b = two_jobs

    first = ledger.allocate(supplier_payment.id, job_a, amount=Decimal("1600.00"))
    assert first.amount == Decimal("1600.00")

    with pytest.raises(OverAllocationError) as excinfo:
        ledger.allocate(supplier_payment.id, job_b, amount=Decimal("1700.00"))
    assert excinfo.value.allocated_amount == Decimal("1600.00")
    assert excinfo.value.remaining_amount == Decimal("1600.00")
    assert "would exceed 100%" in str(excinfo.value)

    ledger.allocate(supplier_payment.id, job_b, amount=Decimal("1600.00"))
    summary = ledger.allocation_summary(supplier_payment.id)
    assert summary.allocated == Decimal("3200.00")
    assert summary.remaining == Decimal("0")
    assert summary.fully_allocated
    assert not summary.over_allocated
    assert summary.allocation_count == 2


def test_rejected_allocation_leaves_ledger_unchanged(ledger, temp_db, two_jobs, supplier_payment):
    job_a, job_b = two_jobs
    ledger.allocate(supplier_payment.id, job_a, amount=Decimal("3000"))

    with pytest.raises(OverAllocationError):
        ledger.allocate(supplier_payment.id, job_b, amount=Decimal("300"))

    assert _allocated(temp_db, supplier_payment.id) == Decimal("3000")
    assert temp_db.list_allocations(job_id=job_b) == []


def test_tolerance_allows_a_cent_of_rounding(ledger, two_jobs, supplier_payment):
    job_a, job_b = two_jobs
    ledger.allocate(supplier_payment.id, job_a, amount=Decimal("1600.00"))
    ledger.allocate(supplier_payment.id, job_b, amount=Decimal("1600.01"))

    assert ledger.allocation_summary(supplier_payment.id).fully_allocated


def test_percentage_allocation_uses_transaction_magnitude(ledger, two_jobs, supplier_payment):
    job_a, _ = two_jobs

    allocation = ledger.allocate(supplier_payment.id, job_a, percentage=Decimal("50"))

    assert allocation.amount == Decimal("1600.00")
    assert allocation.percentage == Decimal("50")


def test_reallocating_same_pair_replaces_amount(ledger, temp_db, two_jobs, supplier_payment):
    job_a, _ = two_jobs
    ledger.allocate(supplier_payment.id, job_a, amount=Decimal("3000"))

    # 3000 + 3100 would exceed the transaction, but the pair is replaced
    updated = ledger.allocate(supplier_payment.id, job_a, amount=Decimal("3100"))

    assert updated.amount == Decimal("3100")
    assert len(temp_db.list_allocations(transaction_id=supplier_payment.id)) == 1


def test_allocation_requires_amount_or_percentage(ledger, two_jobs, supplier_payment):
    job_a, _ = two_jobs
    with pytest.raises(ValidationError, match="amount or a percentage"):
        ledger.allocate(supplier_payment.id, job_a)


@pytest.mark.parametrize("percentage", [Decimal("0"), Decimal("-5"), Decimal("100.5")])
def test_allocation_rejects_out_of_range_percentage(ledger, two_jobs, supplier_payment, percentage):
    job_a, _ = two_jobs
    with pytest.raises(ValidationError, match="Percentage"):
        ledger.allocate(supplier_payment.id, job_a, percentage=percentage)


def test_allocation_rejects_zero_amount(ledger, two_jobs, supplier_payment):
    job_a, _ = two_jobs
    with pytest.raises(ValidationError, match="greater than zero"):
        ledger.allocate(supplier_payment.id, job_a, amount=Decimal("0"))


def test_allocation_to_missing_records(ledger, two_jobs, supplier_payment):
    job_a, _ = two_jobs
    with pytest.raises(NotFoundError, match="Transaction 999"):
        ledger.allocate(999, job_a, amount=Decimal("10"))
    with pytest.raises(NotFoundError, match="Job 999"):
        ledger.allocate(supplier_payment.id, 999, amount=Decimal("10"))


def test_allocation_updates_stored_job_cost(ledger, temp_db, two_jobs, supplier_payment):
    job_a, _ = two_jobs

    ledger.allocate(supplier_payment.id, job_a, amount=Decimal("1200"))

    job = temp_db.get_job(job_a)
    assert job.total_cost == Decimal("1200")
    assert job.cost_data_source == CostSource.TRANSACTION_LINKED


def test_unlink_recomputes_job_cost(ledger, temp_db, two_jobs, supplier_payment, transaction_service):
    job_a, _ = two_jobs
    other_id = transaction_service.create_transaction(
        amount=Decimal("-500"), date=date(2024, 6, 4), name="Lumber yard"
    )
    first = ledger.allocate(supplier_payment.id, job_a, amount=Decimal("1200"))
    second = ledger.allocate(other_id, job_a, amount=Decimal("500"))

    ledger.unlink(first.id)
    assert temp_db.get_job(job_a).total_cost == Decimal("500")

    ledger.unlink(second.id)
    job = temp_db.get_job(job_a)
    assert job.total_cost is None
    assert job.cost_data_source is None


def test_unlink_missing_allocation(ledger):
    with pytest.raises(NotFoundError, match="Allocation 42"):
        ledger.unlink(42)


def test_allocation_details_for_transaction_and_job(ledger, two_jobs, supplier_payment):
    job_a, job_b = two_jobs
    ledger.allocate(supplier_payment.id, job_a, amount=Decimal("1000"), notes="tiles")
    ledger.allocate(supplier_payment.id, job_b, amount=Decimal("500"))

    details = ledger.allocations_for_transaction(supplier_payment.id)
    assert [d.job_client for d in details] == ["Job A", "Job B"]
    assert details[0].allocation.notes == "tiles"
    assert details[0].transaction_amount == Decimal("-3200.00")

    job_details = ledger.allocations_for_job(job_b)
    assert len(job_details) == 1
    assert job_details[0].transaction_name == "Home Depot"


def test_racing_writer_is_checked_against_committed_allocations(
    temp_db, second_db, two_jobs, supplier_payment, monkeypatch
):
    """A writer whose check read is overtaken by another commit retries and is rejected."""
    job_a, job_b = two_jobs
    first_ledger = AllocationLedger(temp_db)
    second_ledger = AllocationLedger(second_db)

    real_read = second_db._read_allocation_state
    reads = []

    def interleaved_read(session, transaction_id):
        state = real_read(session, transaction_id)
        if not reads:
            # The other writer commits after this check has read the old sum
            first_ledger.allocate(transaction_id, job_a, amount=Decimal("1600.00"))
        reads.append(state)
        return state

    monkeypatch.setattr(second_db, "_read_allocation_state", interleaved_read)

    with pytest.raises(OverAllocationError):
        second_ledger.allocate(supplier_payment.id, job_b, amount=Decimal("1700.00"))

    assert len(reads) == 2
    assert _allocated(second_db, supplier_payment.id) == Decimal("1600.00")
    assert second_db.list_allocations(job_id=job_b) == []


def test_racing_writer_succeeds_when_retry_still_fits(
    temp_db, second_db, two_jobs, supplier_payment, monkeypatch
):
    job_a, job_b = two_jobs
    first_ledger = AllocationLedger(temp_db)
    second_ledger = AllocationLedger(second_db)

    real_read = second_db._read_allocation_state
    reads = []

    def interleaved_read(session, transaction_id):
        state = real_read(session, transaction_id)
        if not reads:
            first_ledger.allocate(transaction_id, job_a, amount=Decimal("1600.00"))
        reads.append(state)
        return state

    monkeypatch.setattr(second_db, "_read_allocation_state", interleaved_read)

    second_ledger.allocate(supplier_payment.id, job_b, amount=Decimal("1600.00"))

    assert len(reads) == 2
    assert _allocated(second_db, supplier_payment.id) == Decimal("3200.00")


def test_locked_database_is_retried(ledger, temp_db, two_jobs, supplier_payment, monkeypatch):
    job_a, _ = two_jobs
    real_allocate_once = temp_db._allocate_once
    calls = []

    def flaky_allocate_once(*args):
        calls.append(args)
        if len(calls) == 1:
            raise OperationalError("UPDATE transactions", {}, Exception("database is locked"))
        return real_allocate_once(*args)

    monkeypatch.setattr(temp_db, "_allocate_once", flaky_allocate_once)
    monkeypatch.setattr(sqlalchemy_db.time, "sleep", lambda seconds: None)

    allocation = ledger.allocate(supplier_payment.id, job_a, amount=Decimal("100"))

    assert allocation.amount == Decimal("100")
    assert len(calls) == 2


def test_allocation_gives_up_after_repeated_conflicts(ledger, temp_db, two_jobs, supplier_payment, monkeypatch):
    job_a, _ = two_jobs

    def always_stale(*args):
        raise sqlalchemy_db._StaleAllocationState()

    monkeypatch.setattr(temp_db, "_allocate_once", always_stale)

    with pytest.raises(ConflictError, match="try again"):
        ledger.allocate(supplier_payment.id, job_a, amount=Decimal("100"))
