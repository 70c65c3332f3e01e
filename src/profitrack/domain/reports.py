"""Report building domain service.

Reports are plain dicts ready for JSON output. All rounding to two decimal
places happens here; the services feeding the reports keep full precision.
"""

from datetime import date
from decimal import Decimal
from typing import Any, Optional

from profitrack.config.settings import ProfitrackSettings, get_settings
from profitrack.database.base import Database
from profitrack.domain.allocation import AllocationLedger
from profitrack.domain.entities import (
    AllocationDetail,
    AllocationSummary,
    BankActivity,
    CostOverride,
    DataIntegrityWarning,
    Granularity,
    GroupAggregate,
    GroupBy,
    Job,
    JobProfitability,
    Reconciliation,
    ReconciliationTotals,
    TemplateVariance,
)
from profitrack.domain.profitability import ProfitabilityCalculator
from profitrack.domain.reconciliation import ExternalProvider, ReconciliationService
from profitrack.domain.transaction import TransactionService
from profitrack.domain.trends import TrendAnalyzer
from profitrack.utils.money import to_money, to_percent


def _warning(warning: DataIntegrityWarning) -> dict[str, Any]:
    return {
        "record_type": warning.record_type,
        "record_id": warning.record_id,
        "job_id": warning.job_id,
        "message": warning.message,
    }


def job_dict(job: JobProfitability) -> dict[str, Any]:
    """Per-job profitability object."""
    return {
        "job_id": job.job_id,
        "client": job.client,
        "reference": job.reference,
        "issue_date": job.issue_date.isoformat(),
        "service_type": job.service_type,
        "revenue": to_money(job.revenue),
        "cost": {
            "effective": to_money(job.effective_cost),
            "source": job.cost.source.value,
            "quality": job.quality.value,
        },
        "profit": to_money(job.profit),
        "margin": to_percent(job.margin),
        "estimate": to_money(job.estimate),
        "estimate_variance": to_money(job.estimate_variance),
        "estimate_variance_percentage": to_percent(job.cost.variance_percentage),
        "warnings": [_warning(w) for w in job.cost.warnings],
    }


def group_dict(group: GroupAggregate) -> dict[str, Any]:
    return {
        "key": group.key,
        "revenue": to_money(group.revenue),
        "cost": to_money(group.cost),
        "profit": to_money(group.profit),
        "margin": to_percent(group.margin),
        "count": group.count,
        "count_with_cost_data": group.count_with_cost_data,
        "mean_margin": to_percent(group.mean_margin),
        "median_margin": to_percent(group.median_margin),
        "min_margin": to_percent(group.min_margin),
        "max_margin": to_percent(group.max_margin),
    }


def job_record_dict(job: Job) -> dict[str, Any]:
    """Stored fields of a job."""
    return {
        "id": job.id,
        "client": job.client,
        "reference": job.reference,
        "revenue": to_money(job.revenue),
        "issue_date": job.issue_date.isoformat(),
        "service_type": job.service_type,
        "status": job.status.value,
        "source": job.source.value,
        "external_id": job.external_id,
        "stored_cost": {
            "materials": to_money(job.materials_cost),
            "labor": to_money(job.labor_cost),
            "overhead": to_money(job.overhead_cost),
            "total": to_money(job.total_cost),
            "source": job.cost_data_source.value if job.cost_data_source else None,
        },
        "manually_overridden": job.manually_overridden,
        "edited_after_sync": job.edited_after_sync,
    }


def override_dict(override: CostOverride) -> dict[str, Any]:
    return {
        "id": override.id,
        "job_id": override.job_id,
        "previous_total_cost": to_money(override.previous_total_cost),
        "previous_profit": to_money(override.previous_profit),
        "new_materials_cost": to_money(override.new_materials_cost),
        "new_labor_cost": to_money(override.new_labor_cost),
        "new_overhead_cost": to_money(override.new_overhead_cost),
        "new_total_cost": to_money(override.new_total_cost),
        "new_profit": to_money(override.new_profit),
        "reason": override.reason,
        "method": override.method.value,
        "created_at": override.created_at.isoformat(),
    }


def allocation_detail_dict(detail: AllocationDetail) -> dict[str, Any]:
    allocation = detail.allocation
    return {
        "id": allocation.id,
        "transaction_id": allocation.transaction_id,
        "job_id": allocation.job_id,
        "amount": to_money(allocation.amount),
        "percentage": to_percent(allocation.percentage),
        "notes": allocation.notes,
        "transaction": {
            "name": detail.transaction_name,
            "date": detail.transaction_date.isoformat(),
            "amount": to_money(detail.transaction_amount),
        },
        "job": {"client": detail.job_client, "reference": detail.job_reference},
    }


def allocation_summary_dict(summary: AllocationSummary) -> dict[str, Any]:
    return {
        "transaction_id": summary.transaction_id,
        "transaction_amount": to_money(summary.transaction_amount),
        "allocated": to_money(summary.allocated),
        "remaining": to_money(summary.remaining),
        "allocation_count": summary.allocation_count,
        "fully_allocated": summary.fully_allocated,
        "over_allocated": summary.over_allocated,
    }


def bank_activity_dict(activity: BankActivity) -> dict[str, Any]:
    return {
        "income": to_money(activity.income),
        "expenses": to_money(activity.expenses),
        "net": to_money(activity.net),
        "income_count": activity.income_count,
        "expense_count": activity.expense_count,
        "expenses_by_category": [
            {"category": category, "amount": to_money(amount)}
            for category, amount in activity.expenses_by_category
        ],
    }


def template_variance_dict(variance: TemplateVariance) -> dict[str, Any]:
    return {
        "template_id": variance.template_id,
        "template_name": variance.template_name,
        "usage_count": variance.usage_count,
        "estimated_total": to_money(variance.estimated_total),
        "average_actual_total": to_money(variance.average_actual_total),
        "average_variance": to_money(variance.average_variance),
        "average_variance_percentage": to_percent(variance.average_variance_percentage),
    }


def _totals_dict(totals: Optional[ReconciliationTotals]) -> Optional[dict[str, Any]]:
    if totals is None:
        return None
    return {
        "revenue": to_money(totals.revenue),
        "cost": to_money(totals.cost),
        "gross_profit": to_money(totals.gross_profit),
        "expenses": to_money(totals.expenses),
        "net_profit": to_money(totals.net_profit),
    }


def reconciliation_dict(result: Reconciliation) -> dict[str, Any]:
    return {
        "period": {
            "start_date": result.start_date.isoformat(),
            "end_date": result.end_date.isoformat(),
        },
        "external": _totals_dict(result.external),
        "internal": _totals_dict(result.internal),
        "merged": _totals_dict(result.merged),
        "discrepancy": {
            "revenue": to_money(result.revenue_discrepancy),
            "cost": to_money(result.cost_discrepancy),
            "note": result.discrepancy_note,
        },
        "breakdown": {
            "internal_only_jobs": result.internal_only_jobs,
            "external_jobs": result.external_jobs,
            "edited_after_sync": [
                {
                    "job_id": delta.job_id,
                    "revenue_delta": to_money(delta.revenue_delta),
                    "cost_delta": to_money(delta.cost_delta),
                }
                for delta in result.edited_jobs
            ],
        },
        "recommendation": {
            "use": result.recommended_source,
            "reason": result.recommendation,
            "data_quality": {
                "percentage": to_percent(result.high_quality_coverage),
                "rating": result.coverage_rating,
            },
        },
    }


class ReportService:
    """Service for building profitability reports."""

    def __init__(self, db: Database, settings: Optional[ProfitrackSettings] = None):
        """Initialize report service.

        Args:
            db: Database instance
            settings: Analysis defaults, read from the environment if omitted
        """
        self.db = db
        self.settings = settings or get_settings()
        self.calculator = ProfitabilityCalculator(db)
        self.analyzer = TrendAnalyzer()

    def job(self, job_id: int) -> dict[str, Any]:
        return job_dict(self.calculator.job_profitability(job_id))

    def allocations(
        self, transaction_id: Optional[int] = None, job_id: Optional[int] = None
    ) -> list[dict[str, Any]]:
        ledger = AllocationLedger(self.db)
        if transaction_id is not None:
            details = ledger.allocations_for_transaction(transaction_id)
        elif job_id is not None:
            details = ledger.allocations_for_job(job_id)
        else:
            details = self.db.list_allocation_details()
        return [allocation_detail_dict(d) for d in details]

    def profitability(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        group_by: GroupBy = GroupBy.SERVICE_TYPE,
        service_type: Optional[str] = None,
    ) -> dict[str, Any]:
        """Aggregate report of the jobs in a date range."""
        jobs = self.calculator.jobs_in_range(start_date, end_date, service_type=service_type)
        groups = self.calculator.aggregate(jobs, group_by)
        summary = self.calculator.summarize(jobs)
        return {
            "group_by": GroupBy(group_by).value,
            "groups": [group_dict(g) for g in groups],
            "summary": {
                "total_jobs": summary.total_jobs,
                "jobs_with_cost_data": summary.jobs_with_cost_data,
                "total_revenue": to_money(summary.total_revenue),
                "total_cost": to_money(summary.total_cost),
                "total_profit": to_money(summary.total_profit),
                "overall_margin": to_percent(summary.overall_margin),
                "average_margin": to_percent(summary.average_margin),
                "median_margin": to_percent(summary.median_margin),
                "data_quality": {
                    "by_quality": summary.by_quality,
                    "by_source": summary.by_source,
                },
            },
            "jobs": [job_dict(job) for job in jobs],
            "warnings": [_warning(w) for job in jobs for w in job.cost.warnings],
        }

    def margins(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        threshold: Optional[Decimal] = None,
        limit: int = 10,
    ) -> dict[str, Any]:
        """Low- and high-margin jobs of a date range."""
        threshold = threshold if threshold is not None else self.settings.margin_threshold
        jobs = self.calculator.jobs_in_range(start_date, end_date)
        summary = self.calculator.summarize(jobs)
        return {
            "threshold": to_percent(threshold),
            "low_margin_jobs": [
                job_dict(job) for job in self.calculator.low_margin_jobs(jobs, threshold)
            ],
            "high_margin_jobs": [
                job_dict(job) for job in self.calculator.high_margin_jobs(jobs, limit)
            ],
            "summary": {
                "total_jobs": summary.total_jobs,
                "jobs_with_cost_data": summary.jobs_with_cost_data,
                "average_margin": to_percent(summary.average_margin),
                "median_margin": to_percent(summary.median_margin),
            },
        }

    def alerts(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        margin_threshold: Optional[Decimal] = None,
        cost_spike_threshold: Optional[Decimal] = None,
    ) -> dict[str, Any]:
        """Margin alert report of a date range."""
        settings = self.settings
        margin_threshold = (
            margin_threshold if margin_threshold is not None else settings.margin_threshold
        )
        cost_spike_threshold = (
            cost_spike_threshold if cost_spike_threshold is not None else settings.cost_spike_threshold
        )
        jobs = self.calculator.jobs_in_range(start_date, end_date)
        report = self.calculator.margin_alerts(
            jobs,
            margin_threshold=margin_threshold,
            cost_spike_threshold=cost_spike_threshold,
            declining_trend_window=settings.declining_trend_window,
            decline_threshold=settings.decline_threshold,
            min_trend_observations=settings.min_trend_observations,
        )

        declining = None
        if report.declining_trend is not None:
            trend = report.declining_trend
            declining = {
                "first_period_average_margin": to_percent(trend.first_period_average),
                "second_period_average_margin": to_percent(trend.second_period_average),
                "decline": to_percent(trend.decline),
                "observations": trend.observations,
                "message": trend.message,
            }

        return {
            "settings": {
                "margin_threshold": to_percent(margin_threshold),
                "cost_spike_threshold": to_percent(cost_spike_threshold),
            },
            "summary": {
                "total_alerts": report.total_alerts,
                "revenue_lost": to_money(report.revenue_lost),
            },
            "low_margin_jobs": [job_dict(job) for job in report.low_margin_jobs],
            "negative_profit_jobs": [job_dict(job) for job in report.negative_profit_jobs],
            "cost_spikes": [
                {
                    "job_id": spike.job.job_id,
                    "client": spike.job.client,
                    "estimated_cost": to_money(spike.estimated_cost),
                    "actual_cost": to_money(spike.actual_cost),
                    "variance": to_money(spike.variance),
                    "variance_percentage": to_percent(spike.variance_percentage),
                }
                for spike in report.cost_spikes
            ],
            "underperforming_templates": [
                {
                    "template_id": perf.template_id,
                    "template_name": perf.template_name,
                    "usage_count": perf.usage_count,
                    "average_margin": to_percent(perf.average_margin),
                }
                for perf in report.underperforming_templates
            ],
            "declining_trend": declining,
            "missing_cost_data": [
                {"job_id": job.job_id, "client": job.client, "revenue": to_money(job.revenue)}
                for job in report.missing_cost_data
            ],
            "recommendations": list(report.recommendations),
        }

    def trends(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        granularity: Granularity = Granularity.MONTH,
    ) -> dict[str, Any]:
        """Period trend report of jobs and bank expenses in a date range."""
        jobs = self.calculator.jobs_in_range(start_date, end_date)
        transactions = TransactionService(self.db).list_transactions(start_date, end_date)
        report = self.analyzer.trend_report(jobs, transactions, granularity)
        return {
            "granularity": report.granularity.value,
            "periods": [
                {
                    "period": row.period,
                    "revenue": to_money(row.revenue),
                    "cost": to_money(row.cost),
                    "profit": to_money(row.profit),
                    "margin": to_percent(row.margin),
                    "count": row.count,
                    "expenses": to_money(row.expenses),
                    "net_profit": to_money(row.net_profit),
                }
                for row in report.periods
            ],
            "growth_rates": [
                {
                    "period": rate.period,
                    "revenue_growth_pct": to_percent(rate.revenue_growth_pct),
                    "profit_growth_pct": to_percent(rate.profit_growth_pct),
                }
                for rate in report.growth_rates
            ],
            "trend_direction": report.trend_direction.value,
            "summary": {
                "periods_analyzed": len(report.periods),
                "total_revenue": to_money(report.total_revenue),
                "total_expenses": to_money(report.total_expenses),
                "average_period_revenue": to_money(report.average_period_revenue),
                "average_period_net_profit": to_money(report.average_period_net_profit),
            },
        }

    def reconcile(
        self,
        start_date: date,
        end_date: date,
        external_provider: Optional[ExternalProvider] = None,
    ) -> dict[str, Any]:
        """Reconciliation report of a date range."""
        service = ReconciliationService(
            self.db,
            calculator=self.calculator,
            external_provider=external_provider,
            discrepancy_threshold=self.settings.discrepancy_threshold,
            high_quality_coverage=self.settings.high_quality_coverage,
        )
        return reconciliation_dict(service.reconcile_range(start_date, end_date))
