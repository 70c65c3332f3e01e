"""Abstract database interface."""

from abc import ABC, abstractmethod
from typing import Optional, Iterable
from datetime import date
from decimal import Decimal

# Import entities directly to avoid circular import through domain/__init__.py
from profitrack.domain.entities import (
    ALLOCATION_TOLERANCE,
    Allocation,
    AllocationDetail,
    CostOverride,
    CostSource,
    CostTemplate,
    ExternalCostRecord,
    ExternalCostTrust,
    ExternalPnL,
    Job,
    JobSource,
    JobStatus,
    OverrideMethod,
    TemplateUsage,
    Transaction,
)


class Database(ABC):
    """Abstract record store for profitrack."""

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    # Job operations
    @abstractmethod
    def create_job(
        self,
        client: str,
        revenue: Decimal,
        issue_date: date,
        reference: Optional[str] = None,
        service_type: Optional[str] = None,
        status: JobStatus = JobStatus.DRAFT,
        source: JobSource = JobSource.INTERNAL,
        external_id: Optional[str] = None,
        total_cost: Optional[Decimal] = None,
    ) -> int:
        """Create a job. Returns job ID.

        Args:
            total_cost: Actual cost already known when the job is recorded
        """
        pass

    @abstractmethod
    def get_job(self, job_id: int) -> Optional[Job]:
        """Get job by ID."""
        pass

    @abstractmethod
    def list_jobs(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        service_type: Optional[str] = None,
        source: Optional[JobSource] = None,
        job_ids: Optional[Iterable[int]] = None,
    ) -> list[Job]:
        """List jobs ordered by issue date, with optional filters."""
        pass

    @abstractmethod
    def update_job(
        self,
        job_id: int,
        revenue: Optional[Decimal] = None,
        status: Optional[JobStatus] = None,
        service_type: Optional[str] = None,
        mark_edited: bool = False,
    ) -> None:
        """Update job fields.

        Args:
            mark_edited: If True, flag the job as edited after its last sync
        """
        pass

    @abstractmethod
    def update_job_cost_source(
        self,
        job_id: int,
        cost_data_source: Optional[CostSource],
        total_cost: Optional[Decimal] = None,
        update_total: bool = False,
    ) -> None:
        """Record the resolved cost source on a job.

        Args:
            update_total: If True, also store total_cost (even if it is None)
        """
        pass

    @abstractmethod
    def mark_job_synced(self, job_id: int, synced_revenue: Decimal, synced_cost: Optional[Decimal]) -> None:
        """Store the values a job had when it was last synced externally."""
        pass

    # Cost override operations
    @abstractmethod
    def apply_cost_override(
        self,
        job_id: int,
        materials_cost: Optional[Decimal],
        labor_cost: Optional[Decimal],
        overhead_cost: Optional[Decimal],
        total_cost: Decimal,
        new_profit: Decimal,
        previous_total_cost: Optional[Decimal],
        previous_profit: Optional[Decimal],
        reason: str,
        method: OverrideMethod,
        mark_edited: bool = False,
    ) -> int:
        """Store an override snapshot and its audit record atomically.

        Returns the override record ID.
        """
        pass

    @abstractmethod
    def clear_cost_override(self, job_id: int) -> None:
        """Drop the override flag and restore the cost stored before it."""
        pass

    @abstractmethod
    def list_cost_overrides(self, job_id: int) -> list[CostOverride]:
        """List override audit records for a job, newest first."""
        pass

    # Transaction operations
    @abstractmethod
    def create_transaction(
        self,
        amount: Decimal,
        date: date,
        name: str,
        merchant_name: Optional[str] = None,
        category: Optional[str] = None,
    ) -> int:
        """Create a transaction. Returns transaction ID."""
        pass

    @abstractmethod
    def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        """Get transaction by ID."""
        pass

    @abstractmethod
    def list_transactions(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        transaction_ids: Optional[Iterable[int]] = None,
    ) -> list[Transaction]:
        """List transactions ordered by date, with optional filters."""
        pass

    # Allocation operations
    @abstractmethod
    def allocate(
        self,
        transaction_id: int,
        job_id: int,
        amount: Decimal,
        percentage: Optional[Decimal] = None,
        notes: Optional[str] = None,
        tolerance: Decimal = ALLOCATION_TOLERANCE,
    ) -> Allocation:
        """Insert or update the allocation of a transaction to a job.

        The sum of the transaction's other allocations is re-read and the
        write is rejected or committed as one atomic unit, after which the
        job's stored cost total is recomputed.

        Raises:
            OverAllocationError: If the transaction would be over-allocated
            NotFoundError: If the transaction or job does not exist
            ConflictError: If concurrent writers kept invalidating the check
        """
        pass

    @abstractmethod
    def get_allocation(self, allocation_id: int) -> Optional[Allocation]:
        """Get allocation by ID."""
        pass

    @abstractmethod
    def delete_allocation(self, allocation_id: int) -> None:
        """Delete an allocation and recompute its job's stored cost total."""
        pass

    @abstractmethod
    def list_allocations(
        self,
        transaction_id: Optional[int] = None,
        job_id: Optional[int] = None,
        job_ids: Optional[Iterable[int]] = None,
    ) -> list[Allocation]:
        """List allocations with optional filters."""
        pass

    @abstractmethod
    def list_allocation_details(
        self, transaction_id: Optional[int] = None, job_id: Optional[int] = None
    ) -> list[AllocationDetail]:
        """List allocations with display fields of the linked records."""
        pass

    # Cost template operations
    @abstractmethod
    def create_cost_template(
        self,
        name: str,
        template_type: str,
        estimated_materials_cost: Decimal,
        estimated_labor_cost: Decimal,
        estimated_overhead_cost: Decimal,
        target_sale_price: Optional[Decimal] = None,
        target_margin: Optional[Decimal] = None,
    ) -> int:
        """Create a cost template. Returns template ID."""
        pass

    @abstractmethod
    def get_cost_template(self, template_id: int) -> Optional[CostTemplate]:
        """Get cost template by ID."""
        pass

    @abstractmethod
    def list_cost_templates(self, template_ids: Optional[Iterable[int]] = None) -> list[CostTemplate]:
        """List cost templates."""
        pass

    @abstractmethod
    def create_template_usage(
        self,
        job_id: int,
        template_id: int,
        actual_materials_cost: Decimal,
        actual_labor_cost: Decimal,
        actual_overhead_cost: Decimal,
        actual_sale_price: Optional[Decimal] = None,
    ) -> int:
        """Link a template to a job. Returns usage ID."""
        pass

    @abstractmethod
    def list_template_usages(
        self, job_ids: Optional[Iterable[int]] = None, template_id: Optional[int] = None
    ) -> list[TemplateUsage]:
        """List template usages with optional filters."""
        pass

    # External accounting data
    @abstractmethod
    def create_external_cost_record(
        self,
        job_id: int,
        amount: Decimal,
        trust: ExternalCostTrust,
        description: Optional[str] = None,
    ) -> int:
        """Store an external cost record. Returns record ID."""
        pass

    @abstractmethod
    def list_external_cost_records(self, job_ids: Optional[Iterable[int]] = None) -> list[ExternalCostRecord]:
        """List external cost records."""
        pass

    @abstractmethod
    def create_external_pnl(
        self,
        start_date: date,
        end_date: date,
        total_income: Decimal,
        cost_of_goods_sold: Decimal,
        total_expenses: Decimal,
        net_income: Decimal,
    ) -> int:
        """Store an external P&L summary. Returns report ID."""
        pass

    @abstractmethod
    def get_latest_external_pnl(self, start_date: date, end_date: date) -> Optional[ExternalPnL]:
        """Get the most recently synced P&L overlapping the date range."""
        pass
