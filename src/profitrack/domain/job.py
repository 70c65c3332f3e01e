"""Job domain service."""

from datetime import date
from decimal import Decimal
from typing import Iterable, Optional, Sequence

import structlog

from profitrack.database.base import Database
from profitrack.domain.cost_resolver import CostResolver
from profitrack.domain.entities import (
    ALLOCATION_TOLERANCE,
    CostOverride,
    Job,
    JobSource,
    JobStatus,
    LineItemSplit,
    OverrideMethod,
)
from profitrack.domain.errors import (
    NotFoundError,
    SplitMismatchError,
    ValidationError,
    job_not_found,
)
from profitrack.domain.template import TemplateService

logger = structlog.get_logger(__name__)

DEFAULT_OVERRIDE_REASON = "Manual cost update"


class JobService:
    """Service for managing jobs and their manual cost overrides."""

    def __init__(self, db: Database, resolver: Optional[CostResolver] = None):
        """Initialize job service.

        Args:
            db: Database instance
            resolver: Cost resolver, created from db if omitted
        """
        self.db = db
        self.resolver = resolver or CostResolver(db)
        self.log = logger.bind(component="job_service")

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
        template_ids: Iterable[int] = (),
    ) -> int:
        """Create a job.

        Args:
            client: Client name
            revenue: Job revenue, not negative
            issue_date: Date the job was invoiced
            reference: Optional invoice number
            service_type: Optional service type label
            status: Lifecycle status
            source: Where the job originated
            external_id: ID of the job in the accounting system
            total_cost: Actual cost already known for the job
            template_ids: Templates the job is built from; each gets a usage
                with the template estimate as actuals

        Returns:
            Job ID

        Raises:
            ValidationError: If the client is empty or an amount is negative
            NotFoundError: If a template doesn't exist
        """
        if not client or not client.strip():
            raise ValidationError("Client name is required")
        if revenue < 0:
            raise ValidationError(f"Revenue must not be negative, got {revenue}")
        if total_cost is not None and total_cost < 0:
            raise ValidationError(f"Cost must not be negative, got {total_cost}")

        templates = TemplateService(self.db)
        template_ids = list(template_ids)
        for template_id in template_ids:
            templates.get_template(template_id)

        job_id = self.db.create_job(
            client=client.strip(),
            revenue=revenue,
            issue_date=issue_date,
            reference=reference,
            service_type=service_type,
            status=status,
            source=source,
            external_id=external_id,
            total_cost=total_cost,
        )
        for template_id in template_ids:
            self.db.create_template_usage(job_id=job_id, **templates.estimate_actuals(template_id))

        self.resolver.refresh(job_id)
        return job_id

    def get_job(self, job_id: int) -> Job:
        """Get job by ID.

        Raises:
            NotFoundError: If the job doesn't exist
        """
        job = self.db.get_job(job_id)
        if job is None:
            raise NotFoundError(job_not_found(job_id))
        return job

    def list_jobs(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        service_type: Optional[str] = None,
        source: Optional[JobSource] = None,
    ) -> list[Job]:
        """List jobs issued in a date range."""
        return self.db.list_jobs(
            start_date=start_date, end_date=end_date, service_type=service_type, source=source
        )

    def update_revenue(self, job_id: int, revenue: Decimal) -> None:
        """Change a job's revenue.

        Raises:
            NotFoundError: If the job doesn't exist
            ValidationError: If revenue is negative
        """
        job = self.get_job(job_id)
        if revenue < 0:
            raise ValidationError(f"Revenue must not be negative, got {revenue}")
        self.db.update_job(job_id, revenue=revenue, mark_edited=job.source == JobSource.EXTERNAL)

    def update_status(self, job_id: int, status: JobStatus) -> None:
        self.get_job(job_id)
        self.db.update_job(job_id, status=status)

    def mark_synced(self, job_id: int) -> None:
        """Record the job's current revenue and cost as its externally synced values.

        Raises:
            NotFoundError: If the job doesn't exist
            ValidationError: If the job did not come from the accounting system
        """
        job = self.get_job(job_id)
        if job.source != JobSource.EXTERNAL:
            raise ValidationError(f"Job {job_id} is not sourced from the accounting system")

        resolution = self.resolver.resolve_job(job_id)
        synced_cost = resolution.amount if resolution.has_cost_data else None
        self.db.mark_job_synced(job_id, synced_revenue=job.revenue, synced_cost=synced_cost)

    def override_costs(
        self,
        job_id: int,
        materials_cost: Optional[Decimal] = None,
        labor_cost: Optional[Decimal] = None,
        overhead_cost: Optional[Decimal] = None,
        reason: Optional[str] = None,
    ) -> CostOverride:
        """Manually set a job's cost breakdown.

        Components that are not given keep their currently stored value (or 0).
        The override takes precedence over every other cost source until it
        is cleared.

        Returns:
            The audit record of the override

        Raises:
            NotFoundError: If the job doesn't exist
            ValidationError: If no component is given or a component is negative
        """
        if materials_cost is None and labor_cost is None and overhead_cost is None:
            raise ValidationError("At least one cost component is required")
        for value in (materials_cost, labor_cost, overhead_cost):
            if value is not None and value < 0:
                raise ValidationError(f"Cost must not be negative, got {value}")

        job = self.get_job(job_id)
        materials = _first_present(materials_cost, job.materials_cost)
        labor = _first_present(labor_cost, job.labor_cost)
        overhead = _first_present(overhead_cost, job.overhead_cost)

        return self._apply_override(
            job,
            materials=materials,
            labor=labor,
            overhead=overhead,
            total=materials + labor + overhead,
            reason=reason,
            method=OverrideMethod.MANUAL,
        )

    def override_split(
        self,
        job_id: int,
        splits: Sequence[LineItemSplit],
        reason: Optional[str] = None,
    ) -> CostOverride:
        """Override a job's cost with per-line income/cost splits.

        Each split's income and cost must add up to its line total within the
        allocation tolerance. The job's cost is the sum of the split costs.

        Raises:
            NotFoundError: If the job doesn't exist
            SplitMismatchError: If a split does not add up
            ValidationError: If there are no splits or a split cost is negative
        """
        if not splits:
            raise ValidationError("At least one line item split is required")
        for split in splits:
            if split.cost < 0 or split.income < 0:
                raise ValidationError(
                    f"Split amounts for '{split.description}' must not be negative"
                )
            if abs(split.income + split.cost - split.line_total) > ALLOCATION_TOLERANCE:
                raise SplitMismatchError(
                    split.description, split.line_total, split.income, split.cost
                )

        job = self.get_job(job_id)
        total = sum((split.cost for split in splits), Decimal("0"))
        return self._apply_override(
            job,
            materials=None,
            labor=None,
            overhead=None,
            total=total,
            reason=reason,
            method=OverrideMethod.LINE_ITEM_SPLIT,
        )

    def _apply_override(
        self,
        job: Job,
        materials: Optional[Decimal],
        labor: Optional[Decimal],
        overhead: Optional[Decimal],
        total: Decimal,
        reason: Optional[str],
        method: OverrideMethod,
    ) -> CostOverride:
        previous = self.resolver.resolve_job(job.id)
        previous_total = previous.amount if previous.has_cost_data else None
        previous_profit = job.revenue - previous_total if previous_total is not None else None

        override_id = self.db.apply_cost_override(
            job_id=job.id,
            materials_cost=materials,
            labor_cost=labor,
            overhead_cost=overhead,
            total_cost=total,
            new_profit=job.revenue - total,
            previous_total_cost=previous_total,
            previous_profit=previous_profit,
            reason=reason or DEFAULT_OVERRIDE_REASON,
            method=method,
            mark_edited=job.source == JobSource.EXTERNAL,
        )
        self.log.info(
            "manual_override_applied",
            job_id=job.id,
            override_id=override_id,
            method=method.value,
            previous_total=str(previous_total) if previous_total is not None else None,
            new_total=str(total),
        )
        return next(o for o in self.db.list_cost_overrides(job.id) if o.id == override_id)

    def clear_override(self, job_id: int) -> None:
        """Remove a manual override so the job's cost is resolved again.

        The stored cost the job had before its first override comes back.

        Raises:
            NotFoundError: If the job doesn't exist
            ValidationError: If the job has no override
        """
        job = self.get_job(job_id)
        if not job.manually_overridden:
            raise ValidationError(f"Job {job_id} has no manual cost override")

        self.db.clear_cost_override(job_id)
        resolution = self.resolver.refresh(job_id)
        self.log.info("manual_override_cleared", job_id=job_id, source=resolution.source.value)

    def override_history(self, job_id: int) -> list[CostOverride]:
        """Cost override audit records of a job, newest first.

        Raises:
            NotFoundError: If the job doesn't exist
        """
        self.get_job(job_id)
        return self.db.list_cost_overrides(job_id)


def _first_present(value: Optional[Decimal], fallback: Optional[Decimal]) -> Decimal:
    if value is not None:
        return value
    if fallback is not None:
        return fallback
    return Decimal("0")
