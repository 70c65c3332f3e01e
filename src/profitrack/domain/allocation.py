"""Allocation ledger domain service."""

from decimal import Decimal
from typing import Optional

import structlog

from profitrack.database.base import Database
from profitrack.domain.entities import (
    ALLOCATION_TOLERANCE,
    Allocation,
    AllocationDetail,
    AllocationSummary,
)
from profitrack.domain.errors import (
    NotFoundError,
    OverAllocationError,
    ValidationError,
    allocation_not_found,
    job_not_found,
    transaction_not_found,
)
from profitrack.utils.money import HUNDRED

logger = structlog.get_logger(__name__)


class AllocationLedger:
    """Service for attributing portions of bank transactions to jobs.

    The sum of allocation magnitudes of a transaction never exceeds the
    transaction's own magnitude (plus ALLOCATION_TOLERANCE). The check and the
    write happen as one atomic unit inside the database layer.
    """

    def __init__(self, db: Database):
        """Initialize allocation ledger.

        Args:
            db: Database instance
        """
        self.db = db
        self.log = logger.bind(component="allocation_ledger")

    def allocate(
        self,
        transaction_id: int,
        job_id: int,
        amount: Optional[Decimal] = None,
        percentage: Optional[Decimal] = None,
        notes: Optional[str] = None,
    ) -> Allocation:
        """Allocate part of a transaction to a job.

        If only a percentage is given, the amount is that percentage of the
        transaction's magnitude. If both are given, the amount is used and the
        percentage is kept for reference. Allocating again to the same job
        replaces the previous allocation.

        Args:
            transaction_id: Transaction ID
            job_id: Job ID
            amount: Amount to allocate (sign is ignored)
            percentage: Percentage of the transaction, in (0, 100]
            notes: Optional notes

        Returns:
            The stored allocation

        Raises:
            ValidationError: If neither amount nor percentage is usable
            OverAllocationError: If the transaction would be over-allocated
            NotFoundError: If the transaction or job doesn't exist
        """
        if amount is None and percentage is None:
            raise ValidationError("Either an amount or a percentage is required")

        transaction = self.db.get_transaction(transaction_id)
        if transaction is None:
            raise NotFoundError(transaction_not_found(transaction_id))
        if self.db.get_job(job_id) is None:
            raise NotFoundError(job_not_found(job_id))

        if percentage is not None and (percentage <= 0 or percentage > HUNDRED):
            raise ValidationError(
                f"Percentage must be greater than 0 and at most 100, got {percentage}"
            )
        if amount is None:
            amount = transaction.magnitude * percentage / HUNDRED
        amount = abs(amount)
        if amount == 0:
            raise ValidationError("Allocation amount must be greater than zero")

        try:
            allocation = self.db.allocate(
                transaction_id=transaction_id,
                job_id=job_id,
                amount=amount,
                percentage=percentage,
                notes=notes,
                tolerance=ALLOCATION_TOLERANCE,
            )
        except OverAllocationError as e:
            self.log.info(
                "allocation_rejected",
                transaction_id=transaction_id,
                job_id=job_id,
                attempted=str(e.attempted_amount),
                allocated=str(e.allocated_amount),
                remaining=str(e.remaining_amount),
            )
            raise

        self.log.info(
            "allocation_committed",
            allocation_id=allocation.id,
            transaction_id=transaction_id,
            job_id=job_id,
            amount=str(allocation.amount),
        )
        return allocation

    def unlink(self, allocation_id: int) -> None:
        """Remove an allocation.

        Raises:
            NotFoundError: If the allocation doesn't exist
        """
        allocation = self.db.get_allocation(allocation_id)
        if allocation is None:
            raise NotFoundError(allocation_not_found(allocation_id))

        self.db.delete_allocation(allocation_id)
        self.log.info(
            "allocation_unlinked",
            allocation_id=allocation_id,
            transaction_id=allocation.transaction_id,
            job_id=allocation.job_id,
        )

    def allocations_for_transaction(self, transaction_id: int) -> list[AllocationDetail]:
        """List the jobs a transaction is allocated to.

        Raises:
            NotFoundError: If the transaction doesn't exist
        """
        if self.db.get_transaction(transaction_id) is None:
            raise NotFoundError(transaction_not_found(transaction_id))
        return self.db.list_allocation_details(transaction_id=transaction_id)

    def allocations_for_job(self, job_id: int) -> list[AllocationDetail]:
        """List the transactions allocated to a job.

        Raises:
            NotFoundError: If the job doesn't exist
        """
        if self.db.get_job(job_id) is None:
            raise NotFoundError(job_not_found(job_id))
        return self.db.list_allocation_details(job_id=job_id)

    def allocation_summary(self, transaction_id: int) -> AllocationSummary:
        """Summarize how much of a transaction is allocated.

        Raises:
            NotFoundError: If the transaction doesn't exist
        """
        transaction = self.db.get_transaction(transaction_id)
        if transaction is None:
            raise NotFoundError(transaction_not_found(transaction_id))

        allocations = self.db.list_allocations(transaction_id=transaction_id)
        allocated = sum((abs(a.amount) for a in allocations), Decimal("0"))
        magnitude = transaction.magnitude

        return AllocationSummary(
            transaction_id=transaction_id,
            transaction_amount=transaction.amount,
            allocated=allocated,
            remaining=magnitude - allocated,
            allocation_count=len(allocations),
            fully_allocated=allocated >= magnitude - ALLOCATION_TOLERANCE,
            over_allocated=allocated > magnitude + ALLOCATION_TOLERANCE,
        )
