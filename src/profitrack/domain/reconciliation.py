"""Reconciliation of internal profitability with accounting-system figures."""

from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Callable, Iterable, Optional, Sequence

import structlog

from profitrack.database.base import Database
from profitrack.domain.entities import (
    EditedJobDelta,
    ExternalPnL,
    Job,
    JobProfitability,
    JobSource,
    QualityTier,
    Reconciliation,
    ReconciliationTotals,
    Transaction,
)
from profitrack.domain.errors import UpstreamUnavailableError
from profitrack.domain.external import ExternalDataService
from profitrack.domain.profitability import ProfitabilityCalculator
from profitrack.domain.transaction import is_expense
from profitrack.utils.money import percent_of, to_money

logger = structlog.get_logger(__name__)

ExternalProvider = Callable[[date, date], Optional[ExternalPnL]]

EXTERNAL = "external"
INTERNAL = "internal"


def coverage_rating(coverage: Decimal) -> str:
    """Rate the share of jobs with high-quality cost data."""
    if coverage >= 80:
        return "excellent"
    if coverage >= 50:
        return "good"
    if coverage >= 25:
        return "fair"
    return "needs_improvement"


def edited_job_delta(job: Job, profitability: JobProfitability) -> Optional[EditedJobDelta]:
    """Change of an externally sourced job since its last sync, None if unchanged.

    A job that was never synced has no baseline, so its current figures are
    taken as synced. A job synced without cost data counts its whole local
    cost as added.
    """
    if job.source != JobSource.EXTERNAL or not job.edited_after_sync:
        return None
    if job.synced_revenue is None:
        synced_revenue, synced_cost = job.revenue, profitability.effective_cost
    else:
        synced_revenue = job.synced_revenue
        synced_cost = job.synced_cost if job.synced_cost is not None else Decimal("0")
    return EditedJobDelta(
        job_id=job.id,
        revenue_delta=job.revenue - synced_revenue,
        cost_delta=profitability.effective_cost - synced_cost,
    )


def unallocated_expenses(
    transactions: Iterable[Transaction], allocated: dict[int, Decimal]
) -> Decimal:
    """Expense magnitudes not already attributed to a job as cost."""
    total = Decimal("0")
    for txn in transactions:
        if is_expense(txn):
            total += max(txn.magnitude - allocated.get(txn.id, Decimal("0")), Decimal("0"))
    return total


class ReconciliationService:
    """Service for merging an external P&L with internally computed totals."""

    def __init__(
        self,
        db: Database,
        calculator: Optional[ProfitabilityCalculator] = None,
        external_provider: Optional[ExternalProvider] = None,
        discrepancy_threshold: Decimal = Decimal("100"),
        high_quality_coverage: Decimal = Decimal("80"),
    ):
        """Initialize reconciliation service.

        Args:
            db: Database instance
            calculator: Profitability calculator, created from db if omitted
            external_provider: Returns the external P&L for a date range and may
                raise UpstreamUnavailableError; defaults to the stored P&L
            discrepancy_threshold: Largest cost discrepancy for which the
                external figures are still preferred
            high_quality_coverage: Percentage of jobs with excellent cost data
                required to prefer the external figures
        """
        self.db = db
        self.calculator = calculator or ProfitabilityCalculator(db)
        self.external_provider = external_provider or ExternalDataService(db).latest_pnl
        self.discrepancy_threshold = discrepancy_threshold
        self.high_quality_coverage = high_quality_coverage
        self.log = logger.bind(component="reconciliation")

    def reconcile_range(self, start_date: date, end_date: date) -> Reconciliation:
        """Reconcile the jobs and bank activity of a date range."""
        jobs = self.db.list_jobs(start_date=start_date, end_date=end_date)
        profits = self.calculator.profitability_for_jobs(jobs)

        transactions = self.db.list_transactions(start_date=start_date, end_date=end_date)
        allocated: dict[int, Decimal] = defaultdict(Decimal)
        for allocation in self.db.list_allocations():
            allocated[allocation.transaction_id] += abs(allocation.amount)
        expenses = unallocated_expenses(transactions, allocated)

        edited = []
        for job, profitability in zip(jobs, profits):
            delta = edited_job_delta(job, profitability)
            if delta is not None:
                edited.append(delta)

        try:
            external_pnl = self.external_provider(start_date, end_date)
        except UpstreamUnavailableError as e:
            self.log.warning("external_data_unavailable", error=str(e))
            external_pnl = None

        return self.reconcile(
            start_date=start_date,
            end_date=end_date,
            jobs=profits,
            expenses=expenses,
            external_pnl=external_pnl,
            edited_jobs=edited,
        )

    def reconcile(
        self,
        start_date: date,
        end_date: date,
        jobs: Sequence[JobProfitability],
        expenses: Decimal,
        external_pnl: Optional[ExternalPnL],
        edited_jobs: Sequence[EditedJobDelta],
    ) -> Reconciliation:
        """Merge external totals with internal ones.

        Merged figures are the external totals plus the internal totals of
        jobs that did not come from the external system plus the local
        changes of external jobs edited after their last sync. Without
        external figures the merged totals are the internal ones.
        """
        internal = ReconciliationTotals(
            revenue=sum((job.revenue for job in jobs), Decimal("0")),
            cost=sum((job.effective_cost for job in jobs), Decimal("0")),
            expenses=expenses,
        )
        internal_only = [job for job in jobs if job.source != JobSource.EXTERNAL]
        external_count = len(jobs) - len(internal_only)

        high_quality = sum(1 for job in jobs if job.quality == QualityTier.EXCELLENT)
        coverage = percent_of(Decimal(high_quality), Decimal(len(jobs)))
        rating = coverage_rating(coverage)

        if external_pnl is None:
            return Reconciliation(
                start_date=start_date,
                end_date=end_date,
                internal=internal,
                external=None,
                merged=internal,
                revenue_discrepancy=None,
                cost_discrepancy=None,
                discrepancy_note="External accounting data unavailable; showing internal totals only",
                edited_jobs=tuple(edited_jobs),
                internal_only_jobs=len(internal_only),
                external_jobs=external_count,
                high_quality_coverage=coverage,
                coverage_rating=rating,
                recommended_source=INTERNAL,
                recommendation=self._internal_recommendation(rating),
            )

        external = ReconciliationTotals(
            revenue=external_pnl.total_income,
            cost=external_pnl.cost_of_goods_sold,
            expenses=external_pnl.total_expenses,
        )
        merged = ReconciliationTotals(
            revenue=(
                external.revenue
                + sum((job.revenue for job in internal_only), Decimal("0"))
                + sum((delta.revenue_delta for delta in edited_jobs), Decimal("0"))
            ),
            cost=(
                external.cost
                + sum((job.effective_cost for job in internal_only), Decimal("0"))
                + sum((delta.cost_delta for delta in edited_jobs), Decimal("0"))
            ),
            expenses=external.expenses,
        )
        revenue_discrepancy = external.revenue - merged.revenue
        cost_discrepancy = external.cost - merged.cost

        if revenue_discrepancy == 0 and cost_discrepancy == 0:
            note = "Numbers match"
        else:
            note = (
                f"Revenue differs by ${to_money(abs(revenue_discrepancy)):,} and cost of goods "
                f"sold by ${to_money(abs(cost_discrepancy)):,}; locally tracked jobs and edits "
                "made after the last sync are not in the external figures"
            )

        if abs(cost_discrepancy) < self.discrepancy_threshold and coverage > self.high_quality_coverage:
            source = EXTERNAL
            recommendation = "The accounting data is well maintained. Both sets of numbers are reliable."
        else:
            source = INTERNAL
            recommendation = self._internal_recommendation(rating)

        return Reconciliation(
            start_date=start_date,
            end_date=end_date,
            internal=internal,
            external=external,
            merged=merged,
            revenue_discrepancy=revenue_discrepancy,
            cost_discrepancy=cost_discrepancy,
            discrepancy_note=note,
            edited_jobs=tuple(edited_jobs),
            internal_only_jobs=len(internal_only),
            external_jobs=external_count,
            high_quality_coverage=coverage,
            coverage_rating=rating,
            recommended_source=source,
            recommendation=recommendation,
        )

    def _internal_recommendation(self, rating: str) -> str:
        if rating in ("excellent", "good"):
            return (
                f"Cost data coverage is {rating}. The internal calculation uses actual job "
                "costs and is the more accurate view of job-level profitability."
            )
        if rating == "fair":
            return (
                "Cost data coverage is fair. Link more bank transactions to jobs to "
                "improve the internal figures."
            )
        return (
            "Cost data coverage needs improvement. Record actual costs or link "
            "transactions to jobs for accurate profit tracking."
        )
