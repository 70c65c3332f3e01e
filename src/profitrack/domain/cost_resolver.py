"""Cost resolution domain service.

A job's effective cost is taken from the first applicable source, in order:

1. manual override (flag set and a stored total exists)
2. external real cost (accounting records derived from actual item costs)
3. transaction linked (sum of allocation magnitudes)
4. stored actual (a previously stored total cost)
5. template estimate (sum of the estimated totals of the job's templates)
6. none (no evidence; cost is 0 and the job lacks cost data)

Missing data is a valid resolution, never an error. Malformed records are
skipped and reported as DataIntegrityWarning values.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, Optional

import structlog

from profitrack.database.base import Database
from profitrack.domain.entities import (
    Allocation,
    CostResolution,
    CostSource,
    CostTemplate,
    DataIntegrityWarning,
    ExternalCostRecord,
    Job,
    TemplateUsage,
)
from profitrack.domain.errors import NotFoundError, job_not_found
from profitrack.utils.money import percent_of

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CostEvidence:
    """Cost records for a batch of jobs, indexed by job ID.

    Built once at the start of a batch and discarded with it.
    """

    allocations: dict[int, tuple[Allocation, ...]] = field(default_factory=dict)
    usages: dict[int, tuple[TemplateUsage, ...]] = field(default_factory=dict)
    external_costs: dict[int, tuple[ExternalCostRecord, ...]] = field(default_factory=dict)
    templates: dict[int, CostTemplate] = field(default_factory=dict)

    def templates_for(self, job_id: int) -> list[CostTemplate]:
        """Templates used by a job, in usage order, skipping dangling references."""
        return [
            self.templates[usage.template_id]
            for usage in self.usages.get(job_id, ())
            if usage.template_id in self.templates
        ]


def _index_by_job(records: Iterable) -> dict[int, tuple]:
    grouped: dict[int, list] = defaultdict(list)
    for record in records:
        grouped[record.job_id].append(record)
    return {job_id: tuple(items) for job_id, items in grouped.items()}


class CostResolver:
    """Service for resolving a single effective cost per job."""

    def __init__(self, db: Database):
        """Initialize cost resolver.

        Args:
            db: Database instance
        """
        self.db = db
        self.log = logger.bind(component="cost_resolver")

    def build_evidence(self, job_ids: Iterable[int]) -> CostEvidence:
        """Load the allocations, template usages and external costs of jobs."""
        ids = list(job_ids)
        if not ids:
            return CostEvidence()

        usages = self.db.list_template_usages(job_ids=ids)
        template_ids = {usage.template_id for usage in usages}
        templates = self.db.list_cost_templates(template_ids=template_ids) if template_ids else []

        return CostEvidence(
            allocations=_index_by_job(self.db.list_allocations(job_ids=ids)),
            usages=_index_by_job(usages),
            external_costs=_index_by_job(self.db.list_external_cost_records(job_ids=ids)),
            templates={template.id: template for template in templates},
        )

    def resolve(self, job: Job, evidence: CostEvidence) -> CostResolution:
        """Resolve the effective cost of a job from pre-loaded evidence.

        Args:
            job: Job to resolve
            evidence: Evidence containing the job's records

        Returns:
            CostResolution with amount, source and variance against the
            template estimate (variance is None unless both an actual cost
            and an estimate exist)
        """
        warnings: list[DataIntegrityWarning] = []
        allocations = self._valid_allocations(job, evidence, warnings)
        real_costs = self._valid_real_costs(job, evidence, warnings)
        estimate = self._template_estimate(job, evidence, warnings)

        if job.manually_overridden and job.total_cost is not None:
            amount, source = job.total_cost, CostSource.MANUAL_OVERRIDE
        elif real_costs:
            amount = sum((r.amount for r in real_costs), Decimal("0"))
            source = CostSource.EXTERNAL_REAL_COST
        elif allocations:
            amount = sum((abs(a.amount) for a in allocations), Decimal("0"))
            source = CostSource.TRANSACTION_LINKED
        elif job.total_cost is not None:
            amount, source = job.total_cost, CostSource.STORED_ACTUAL
        elif estimate is not None:
            amount, source = estimate, CostSource.TEMPLATE_ESTIMATE
        else:
            amount, source = Decimal("0"), CostSource.NONE

        variance = None
        variance_percentage = None
        if estimate is not None and source.is_actual:
            variance = amount - estimate
            variance_percentage = percent_of(variance, estimate)

        for warning in warnings:
            self.log.warning(
                "data_integrity_warning",
                record_type=warning.record_type,
                record_id=warning.record_id,
                job_id=warning.job_id,
                message=warning.message,
            )

        return CostResolution(
            job_id=job.id,
            amount=amount,
            source=source,
            estimate=estimate,
            variance=variance,
            variance_percentage=variance_percentage,
            warnings=tuple(warnings),
        )

    def _valid_allocations(
        self, job: Job, evidence: CostEvidence, warnings: list[DataIntegrityWarning]
    ) -> list[Allocation]:
        valid = []
        for allocation in evidence.allocations.get(job.id, ()):
            if allocation.amount < 0:
                warnings.append(
                    DataIntegrityWarning(
                        record_type="allocation",
                        record_id=allocation.id,
                        job_id=job.id,
                        message=f"Negative allocation amount {allocation.amount} skipped",
                    )
                )
                continue
            valid.append(allocation)
        return valid

    def _valid_real_costs(
        self, job: Job, evidence: CostEvidence, warnings: list[DataIntegrityWarning]
    ) -> list[ExternalCostRecord]:
        valid = []
        for record in evidence.external_costs.get(job.id, ()):
            if not record.trust.is_real:
                continue
            if record.amount < 0:
                warnings.append(
                    DataIntegrityWarning(
                        record_type="external_cost",
                        record_id=record.id,
                        job_id=job.id,
                        message=f"Negative external cost {record.amount} skipped",
                    )
                )
                continue
            valid.append(record)
        return valid

    def _template_estimate(
        self, job: Job, evidence: CostEvidence, warnings: list[DataIntegrityWarning]
    ) -> Optional[Decimal]:
        """Sum of estimated totals of the job's templates, None without usable usages."""
        estimate = None
        for usage in evidence.usages.get(job.id, ()):
            template = evidence.templates.get(usage.template_id)
            if template is None:
                warnings.append(
                    DataIntegrityWarning(
                        record_type="template_usage",
                        record_id=usage.id,
                        job_id=job.id,
                        message=f"Template {usage.template_id} does not exist",
                    )
                )
                continue
            if template.estimated_total < 0 or usage.actual_total < 0:
                warnings.append(
                    DataIntegrityWarning(
                        record_type="template_usage",
                        record_id=usage.id,
                        job_id=job.id,
                        message=f"Negative cost on usage of template '{template.name}' skipped",
                    )
                )
                continue
            estimate = (estimate or Decimal("0")) + template.estimated_total
        return estimate

    def resolve_job(self, job_id: int) -> CostResolution:
        """Resolve the effective cost of one job.

        Raises:
            NotFoundError: If the job doesn't exist
        """
        job = self.db.get_job(job_id)
        if job is None:
            raise NotFoundError(job_not_found(job_id))
        return self.resolve(job, self.build_evidence([job_id]))

    def resolve_all(self, jobs: Iterable[Job]) -> dict[int, CostResolution]:
        """Resolve many jobs against one evidence lookup.

        Returns:
            Resolutions keyed by job ID
        """
        jobs = list(jobs)
        evidence = self.build_evidence(job.id for job in jobs)
        return {job.id: self.resolve(job, evidence) for job in jobs}

    def refresh(self, job_id: int) -> CostResolution:
        """Resolve a job and store the result on it.

        Totals are only stored for sources computed from other records
        (external real cost, transaction linked). Estimates and "no data" only
        update the source tag, and manual overrides and stored actuals are left
        untouched, so resolving again yields the same result.
        """
        resolution = self.resolve_job(job_id)
        source = resolution.source

        if source in (CostSource.EXTERNAL_REAL_COST, CostSource.TRANSACTION_LINKED):
            self.db.update_job_cost_source(
                job_id, source, total_cost=resolution.amount, update_total=True
            )
        elif source in (CostSource.TEMPLATE_ESTIMATE, CostSource.NONE):
            self.db.update_job_cost_source(job_id, source)

        return resolution
