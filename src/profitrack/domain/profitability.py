"""Profitability domain service."""

from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Callable, Iterable, Optional, Sequence, Union

from profitrack.database.base import Database
from profitrack.domain.cost_resolver import CostEvidence, CostResolver
from profitrack.domain.entities import (
    AggregateSummary,
    AlertReport,
    CostResolution,
    CostSpike,
    GroupAggregate,
    GroupBy,
    Job,
    JobProfitability,
    JobSource,
    TemplatePerformance,
)
from profitrack.domain.errors import NotFoundError, job_not_found
from profitrack.domain.metrics import margin, mean, median
from profitrack.domain.trends import declining_margin_alert
from profitrack.utils.date_parser import period_key
from profitrack.utils.money import to_money

NO_TEMPLATE = "no_template"
UNSPECIFIED = "unspecified"

KeyFunction = Callable[[JobProfitability], str]


def _primary_template(job: JobProfitability) -> str:
    return str(job.template_ids[0]) if job.template_ids else NO_TEMPLATE


def _primary_template_type(job: JobProfitability) -> str:
    return job.template_types[0] if job.template_types else NO_TEMPLATE


# Each job lands in exactly one group, so totals are invariant under regrouping.
GROUP_KEYS: dict[GroupBy, KeyFunction] = {
    GroupBy.SERVICE_TYPE: lambda job: job.service_type or UNSPECIFIED,
    GroupBy.TEMPLATE: _primary_template,
    GroupBy.TEMPLATE_TYPE: _primary_template_type,
    GroupBy.CLIENT: lambda job: job.client,
    GroupBy.MONTH: lambda job: period_key(job.issue_date, "month"),
    GroupBy.QUARTER: lambda job: period_key(job.issue_date, "quarter"),
    GroupBy.YEAR: lambda job: period_key(job.issue_date, "year"),
}


def build_job_profitability(
    job: Job, resolution: CostResolution, evidence: Optional[CostEvidence] = None
) -> JobProfitability:
    """Derive profit and margin from a job and its resolved cost."""
    templates = evidence.templates_for(job.id) if evidence is not None else []
    profit = job.revenue - resolution.amount
    return JobProfitability(
        job_id=job.id,
        client=job.client,
        issue_date=job.issue_date,
        revenue=job.revenue,
        cost=resolution,
        profit=profit,
        margin=margin(profit, job.revenue),
        reference=job.reference,
        service_type=job.service_type,
        source=job.source,
        template_ids=tuple(t.id for t in templates),
        template_types=tuple(t.template_type for t in templates),
    )


class ProfitabilityCalculator:
    """Service for job profit, margins and margin alerts."""

    def __init__(self, db: Database, resolver: Optional[CostResolver] = None):
        """Initialize profitability calculator.

        Args:
            db: Database instance
            resolver: Cost resolver, created from db if omitted
        """
        self.db = db
        self.resolver = resolver or CostResolver(db)

    def job_profitability(self, job_id: int) -> JobProfitability:
        """Compute profitability of one job.

        Raises:
            NotFoundError: If the job doesn't exist
        """
        job = self.db.get_job(job_id)
        if job is None:
            raise NotFoundError(job_not_found(job_id))
        return self.profitability_for_jobs([job])[0]

    def profitability_for_jobs(self, jobs: Iterable[Job]) -> list[JobProfitability]:
        """Compute profitability of many jobs with one evidence lookup."""
        jobs = list(jobs)
        evidence = self.resolver.build_evidence(job.id for job in jobs)
        return [
            build_job_profitability(job, self.resolver.resolve(job, evidence), evidence)
            for job in jobs
        ]

    def jobs_in_range(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        service_type: Optional[str] = None,
        source: Optional[JobSource] = None,
    ) -> list[JobProfitability]:
        """Compute profitability of the jobs issued in a date range."""
        jobs = self.db.list_jobs(
            start_date=start_date, end_date=end_date, service_type=service_type, source=source
        )
        return self.profitability_for_jobs(jobs)

    def aggregate(
        self,
        jobs: Iterable[JobProfitability],
        group_by: Union[GroupBy, KeyFunction],
    ) -> list[GroupAggregate]:
        """Aggregate jobs into groups sorted by key.

        Group margin is group profit over group revenue. Margin statistics are
        taken over the individual margins of jobs with cost data.

        Args:
            jobs: Job profitability records
            group_by: A GroupBy key or a function returning a group key
        """
        key_of = GROUP_KEYS[GroupBy(group_by)] if isinstance(group_by, str) else group_by

        groups: dict[str, list[JobProfitability]] = defaultdict(list)
        for job in jobs:
            groups[key_of(job)].append(job)

        return [self._aggregate_group(key, groups[key]) for key in sorted(groups)]

    def _aggregate_group(self, key: str, jobs: Sequence[JobProfitability]) -> GroupAggregate:
        revenue = sum((job.revenue for job in jobs), Decimal("0"))
        cost = sum((job.effective_cost for job in jobs), Decimal("0"))
        profit = sum((job.profit for job in jobs), Decimal("0"))
        margins = [job.margin for job in jobs if job.has_cost_data]
        return GroupAggregate(
            key=key,
            revenue=revenue,
            cost=cost,
            profit=profit,
            margin=margin(profit, revenue),
            count=len(jobs),
            count_with_cost_data=len(margins),
            mean_margin=mean(margins),
            median_margin=median(margins),
            min_margin=min(margins) if margins else None,
            max_margin=max(margins) if margins else None,
        )

    def summarize(self, jobs: Sequence[JobProfitability]) -> AggregateSummary:
        """Totals, margin statistics and data quality counts for a set of jobs."""
        revenue = sum((job.revenue for job in jobs), Decimal("0"))
        cost = sum((job.effective_cost for job in jobs), Decimal("0"))
        profit = sum((job.profit for job in jobs), Decimal("0"))
        margins = [job.margin for job in jobs if job.has_cost_data]

        by_quality: dict[str, int] = defaultdict(int)
        by_source: dict[str, int] = defaultdict(int)
        for job in jobs:
            by_quality[job.quality.value] += 1
            by_source[job.cost.source.value] += 1

        return AggregateSummary(
            total_jobs=len(jobs),
            jobs_with_cost_data=len(margins),
            total_revenue=revenue,
            total_cost=cost,
            total_profit=profit,
            overall_margin=margin(profit, revenue),
            average_margin=mean(margins),
            median_margin=median(margins),
            by_quality=dict(by_quality),
            by_source=dict(by_source),
        )

    def low_margin_jobs(
        self,
        jobs: Iterable[JobProfitability],
        threshold: Decimal,
        include_negative: bool = True,
    ) -> list[JobProfitability]:
        """Jobs with cost data whose margin is below threshold, lowest first.

        Args:
            include_negative: If False, leave out jobs that lose money
        """
        low = [
            job
            for job in jobs
            if job.has_cost_data
            and job.margin < threshold
            and (include_negative or job.profit >= 0)
        ]
        return sorted(low, key=lambda job: job.margin)

    def high_margin_jobs(self, jobs: Iterable[JobProfitability], limit: int = 10) -> list[JobProfitability]:
        """Jobs with cost data with the highest margins."""
        ranked = sorted(
            (job for job in jobs if job.has_cost_data), key=lambda job: job.margin, reverse=True
        )
        return ranked[:limit]

    def negative_profit_jobs(self, jobs: Iterable[JobProfitability]) -> list[JobProfitability]:
        """Jobs with cost data that lose money, most negative first."""
        losing = [job for job in jobs if job.has_cost_data and job.profit < 0]
        return sorted(losing, key=lambda job: job.profit)

    def revenue_lost(self, jobs: Iterable[JobProfitability]) -> Decimal:
        """Total loss of the money-losing jobs."""
        return sum((-job.profit for job in self.negative_profit_jobs(jobs)), Decimal("0"))

    def cost_spikes(self, jobs: Iterable[JobProfitability], threshold: Decimal) -> list[CostSpike]:
        """Jobs whose actual cost exceeds their template estimate by more than threshold percent."""
        spikes = [
            CostSpike(
                job=job,
                estimated_cost=job.estimate,
                actual_cost=job.effective_cost,
                variance=job.cost.variance,
                variance_percentage=job.cost.variance_percentage,
            )
            for job in jobs
            if job.cost.variance_percentage is not None and job.cost.variance_percentage > threshold
        ]
        return sorted(spikes, key=lambda spike: spike.variance_percentage, reverse=True)

    def underperforming_templates(
        self, jobs: Iterable[JobProfitability], threshold: Decimal
    ) -> list[TemplatePerformance]:
        """Templates whose average job margin is below threshold, lowest first.

        A job counts towards every template it uses.
        """
        margins_by_template: dict[int, list[Decimal]] = defaultdict(list)
        for job in jobs:
            if not job.has_cost_data:
                continue
            for template_id in job.template_ids:
                margins_by_template[template_id].append(job.margin)

        if not margins_by_template:
            return []

        names = {
            template.id: template.name
            for template in self.db.list_cost_templates(template_ids=margins_by_template.keys())
        }
        underperforming = [
            TemplatePerformance(
                template_id=template_id,
                template_name=names.get(template_id, str(template_id)),
                usage_count=len(margins),
                average_margin=mean(margins),
            )
            for template_id, margins in margins_by_template.items()
            if mean(margins) < threshold
        ]
        return sorted(underperforming, key=lambda perf: perf.average_margin)

    def margin_alerts(
        self,
        jobs: Sequence[JobProfitability],
        margin_threshold: Decimal,
        cost_spike_threshold: Decimal,
        declining_trend_window: int,
        decline_threshold: Decimal = Decimal("5"),
        min_trend_observations: int = 6,
    ) -> AlertReport:
        """Build the margin alert report for a set of jobs.

        Jobs without cost data never raise margin alerts; they are listed
        separately as missing cost data.
        """
        low_margin = self.low_margin_jobs(jobs, margin_threshold, include_negative=False)
        negative = self.negative_profit_jobs(jobs)
        revenue_lost = sum((-job.profit for job in negative), Decimal("0"))
        spikes = self.cost_spikes(jobs, cost_spike_threshold)
        templates = self.underperforming_templates(jobs, margin_threshold)

        history = sorted(
            (job for job in jobs if job.has_cost_data), key=lambda job: (job.issue_date, job.job_id)
        )
        declining = declining_margin_alert(
            [job.margin for job in history],
            declining_trend_window,
            decline_threshold,
            min_trend_observations,
        )

        recommendations = []
        if negative:
            recommendations.append(
                f"{len(negative)} job(s) are losing money (${to_money(revenue_lost):,} in total). "
                "Review pricing strategy immediately."
            )
        if len(low_margin) > 3:
            recommendations.append(
                "Multiple low-margin jobs detected. Consider raising prices or reducing costs."
            )
        if len(spikes) > 2:
            recommendations.append(
                "Cost overruns detected. Update template estimates or improve cost control."
            )
        if declining is not None:
            recommendations.append(
                "Margins are trending down. Investigate vendor pricing or operational changes."
            )
        if not recommendations:
            recommendations.append("No major margin issues detected. Keep monitoring for changes.")

        return AlertReport(
            low_margin_jobs=tuple(low_margin),
            negative_profit_jobs=tuple(negative),
            revenue_lost=revenue_lost,
            cost_spikes=tuple(spikes),
            underperforming_templates=tuple(templates),
            declining_trend=declining,
            missing_cost_data=tuple(job for job in jobs if not job.has_cost_data),
            recommendations=tuple(recommendations),
        )
