"""Domain model entities for profitrack.

These are pure data classes representing business concepts, independent of
database schema. Cost sources and quality tiers are closed enumerations so the
resolution precedence chain can be checked exhaustively.
"""

from dataclasses import dataclass, field
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Optional

# Slack allowed when comparing allocated sums against a transaction amount.
ALLOCATION_TOLERANCE = Decimal("0.01")


class QualityTier(str, Enum):
    """Trust ranking of an effective cost."""

    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    NONE = "none"


class CostSource(str, Enum):
    """Where an effective cost came from, in precedence order."""

    MANUAL_OVERRIDE = "manual_override"
    EXTERNAL_REAL_COST = "external_real_cost"
    TRANSACTION_LINKED = "transaction_linked"
    STORED_ACTUAL = "stored_actual"
    TEMPLATE_ESTIMATE = "template_estimate"
    NONE = "none"

    @property
    def precedence(self) -> int:
        """1 for the most trusted source, 6 when there is no cost data."""
        return list(CostSource).index(self) + 1

    @property
    def quality(self) -> QualityTier:
        return _SOURCE_QUALITY[self]

    @property
    def is_actual(self) -> bool:
        """True for sources that describe money actually spent."""
        return self not in (CostSource.TEMPLATE_ESTIMATE, CostSource.NONE)


_SOURCE_QUALITY = {
    CostSource.MANUAL_OVERRIDE: QualityTier.EXCELLENT,
    CostSource.EXTERNAL_REAL_COST: QualityTier.EXCELLENT,
    CostSource.TRANSACTION_LINKED: QualityTier.GOOD,
    CostSource.STORED_ACTUAL: QualityTier.GOOD,
    CostSource.TEMPLATE_ESTIMATE: QualityTier.FAIR,
    CostSource.NONE: QualityTier.NONE,
}


class JobStatus(str, Enum):
    DRAFT = "draft"
    SENT = "sent"
    PAID = "paid"
    OVERDUE = "overdue"


class JobSource(str, Enum):
    """Where a job originated."""

    INTERNAL = "internal"
    EXTERNAL = "external"
    MANUAL = "manual"


class ExternalCostTrust(str, Enum):
    """How an accounting-system cost figure was derived."""

    ITEM_COST = "item_cost"
    EXPENSE_LINKED = "expense_linked"
    ACCOUNT_CLASSIFICATION = "account_classification"
    KEYWORD_FALLBACK = "keyword_fallback"
    ESTIMATED = "estimated"

    @property
    def is_real(self) -> bool:
        return self in (ExternalCostTrust.ITEM_COST, ExternalCostTrust.EXPENSE_LINKED)


class OverrideMethod(str, Enum):
    MANUAL = "manual"
    LINE_ITEM_SPLIT = "line_item_split"


class GroupBy(str, Enum):
    """Grouping keys for aggregate reports."""

    SERVICE_TYPE = "service_type"
    TEMPLATE = "template"
    TEMPLATE_TYPE = "template_type"
    CLIENT = "client"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"


class Granularity(str, Enum):
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"


class TrendDirection(str, Enum):
    GROWING = "growing"
    DECLINING = "declining"
    STABLE = "stable"


@dataclass(frozen=True)
class Job:
    """A priced unit of work, usually an invoice."""

    id: int
    client: str
    revenue: Decimal
    issue_date: date
    status: JobStatus
    source: JobSource
    created_at: datetime
    reference: Optional[str] = None
    service_type: Optional[str] = None
    materials_cost: Optional[Decimal] = None
    labor_cost: Optional[Decimal] = None
    overhead_cost: Optional[Decimal] = None
    total_cost: Optional[Decimal] = None
    cost_data_source: Optional[CostSource] = None
    manually_overridden: bool = False
    external_id: Optional[str] = None
    synced_revenue: Optional[Decimal] = None
    synced_cost: Optional[Decimal] = None
    edited_after_sync: bool = False


@dataclass(frozen=True)
class Transaction:
    """Bank transaction. Negative amounts are money out."""

    id: int
    amount: Decimal
    date: date
    name: str
    created_at: datetime
    merchant_name: Optional[str] = None
    category: Optional[str] = None

    @property
    def magnitude(self) -> Decimal:
        return abs(self.amount)


@dataclass(frozen=True)
class Allocation:
    """A portion of one transaction attributed to one job."""

    id: int
    transaction_id: int
    job_id: int
    amount: Decimal
    created_at: datetime
    percentage: Optional[Decimal] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class AllocationDetail:
    """Allocation with display fields of both linked records."""

    allocation: Allocation
    transaction_name: str
    transaction_date: date
    transaction_amount: Decimal
    job_client: str
    job_reference: Optional[str]


@dataclass(frozen=True)
class AllocationSummary:
    transaction_id: int
    transaction_amount: Decimal
    allocated: Decimal
    remaining: Decimal
    allocation_count: int
    fully_allocated: bool
    over_allocated: bool


@dataclass(frozen=True)
class CostTemplate:
    """Reusable cost estimate ("blueprint")."""

    id: int
    name: str
    template_type: str
    estimated_materials_cost: Decimal
    estimated_labor_cost: Decimal
    estimated_overhead_cost: Decimal
    created_at: datetime
    target_sale_price: Optional[Decimal] = None
    target_margin: Optional[Decimal] = None

    @property
    def estimated_total(self) -> Decimal:
        return self.estimated_materials_cost + self.estimated_labor_cost + self.estimated_overhead_cost


@dataclass(frozen=True)
class TemplateUsage:
    """One application of a template to a job, with per-use actuals."""

    id: int
    job_id: int
    template_id: int
    actual_materials_cost: Decimal
    actual_labor_cost: Decimal
    actual_overhead_cost: Decimal
    created_at: datetime
    actual_sale_price: Optional[Decimal] = None

    @property
    def actual_total(self) -> Decimal:
        return self.actual_materials_cost + self.actual_labor_cost + self.actual_overhead_cost


@dataclass(frozen=True)
class CostOverride:
    """Audit record of a manual cost correction."""

    id: int
    job_id: int
    new_total_cost: Decimal
    new_profit: Decimal
    reason: str
    method: OverrideMethod
    created_at: datetime
    previous_total_cost: Optional[Decimal] = None
    previous_profit: Optional[Decimal] = None
    new_materials_cost: Optional[Decimal] = None
    new_labor_cost: Optional[Decimal] = None
    new_overhead_cost: Optional[Decimal] = None


@dataclass(frozen=True)
class ExternalCostRecord:
    """Cost figure reported by the connected accounting system."""

    id: int
    job_id: int
    amount: Decimal
    trust: ExternalCostTrust
    created_at: datetime
    description: Optional[str] = None


@dataclass(frozen=True)
class ExternalPnL:
    """Profit-and-loss summary from the accounting system."""

    id: int
    start_date: date
    end_date: date
    total_income: Decimal
    cost_of_goods_sold: Decimal
    total_expenses: Decimal
    net_income: Decimal
    synced_at: datetime


@dataclass(frozen=True)
class LineItemSplit:
    """Income/cost split of one invoice line for a split override."""

    description: str
    line_total: Decimal
    income: Decimal
    cost: Decimal


@dataclass(frozen=True)
class DataIntegrityWarning:
    """A malformed record skipped during a computation."""

    record_type: str
    record_id: Optional[int]
    job_id: Optional[int]
    message: str


@dataclass(frozen=True)
class CostResolution:
    """Effective cost of a job with its provenance."""

    job_id: int
    amount: Decimal
    source: CostSource
    estimate: Optional[Decimal] = None
    variance: Optional[Decimal] = None
    variance_percentage: Optional[Decimal] = None
    warnings: tuple[DataIntegrityWarning, ...] = ()

    @property
    def quality(self) -> QualityTier:
        return self.source.quality

    @property
    def has_cost_data(self) -> bool:
        return self.source != CostSource.NONE


@dataclass(frozen=True)
class JobProfitability:
    """Per-job profit figures derived from a cost resolution."""

    job_id: int
    client: str
    issue_date: date
    revenue: Decimal
    cost: CostResolution
    profit: Decimal
    margin: Decimal
    reference: Optional[str] = None
    service_type: Optional[str] = None
    source: JobSource = JobSource.INTERNAL
    template_ids: tuple[int, ...] = ()
    template_types: tuple[str, ...] = ()

    @property
    def effective_cost(self) -> Decimal:
        return self.cost.amount

    @property
    def quality(self) -> QualityTier:
        return self.cost.quality

    @property
    def has_cost_data(self) -> bool:
        return self.cost.has_cost_data

    @property
    def estimate(self) -> Optional[Decimal]:
        return self.cost.estimate

    @property
    def estimate_variance(self) -> Optional[Decimal]:
        return self.cost.variance


@dataclass(frozen=True)
class GroupAggregate:
    """Totals for one group of jobs.

    ``margin`` is group profit over group revenue; the mean and median are
    taken over the individual margins of jobs that have cost data.
    """

    key: str
    revenue: Decimal
    cost: Decimal
    profit: Decimal
    margin: Decimal
    count: int
    count_with_cost_data: int
    mean_margin: Optional[Decimal] = None
    median_margin: Optional[Decimal] = None
    min_margin: Optional[Decimal] = None
    max_margin: Optional[Decimal] = None


@dataclass(frozen=True)
class AggregateSummary:
    total_jobs: int
    jobs_with_cost_data: int
    total_revenue: Decimal
    total_cost: Decimal
    total_profit: Decimal
    overall_margin: Decimal
    average_margin: Optional[Decimal]
    median_margin: Optional[Decimal]
    by_quality: dict[str, int] = field(default_factory=dict)
    by_source: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class CostSpike:
    job: JobProfitability
    estimated_cost: Decimal
    actual_cost: Decimal
    variance: Decimal
    variance_percentage: Decimal


@dataclass(frozen=True)
class TemplatePerformance:
    template_id: int
    template_name: str
    usage_count: int
    average_margin: Decimal


@dataclass(frozen=True)
class DecliningTrendAlert:
    first_period_average: Decimal
    second_period_average: Decimal
    decline: Decimal
    observations: int
    message: str


@dataclass(frozen=True)
class AlertReport:
    low_margin_jobs: tuple[JobProfitability, ...]
    negative_profit_jobs: tuple[JobProfitability, ...]
    revenue_lost: Decimal
    cost_spikes: tuple[CostSpike, ...]
    underperforming_templates: tuple[TemplatePerformance, ...]
    declining_trend: Optional[DecliningTrendAlert]
    missing_cost_data: tuple[JobProfitability, ...]
    recommendations: tuple[str, ...]

    @property
    def total_alerts(self) -> int:
        return (
            len(self.low_margin_jobs)
            + len(self.negative_profit_jobs)
            + len(self.cost_spikes)
            + len(self.underperforming_templates)
            + (1 if self.declining_trend else 0)
        )


@dataclass(frozen=True)
class PeriodRow:
    """Aggregates for one period bucket."""

    period: str
    revenue: Decimal
    cost: Decimal
    profit: Decimal
    margin: Decimal
    count: int
    expenses: Decimal = Decimal("0")

    @property
    def net_profit(self) -> Decimal:
        return self.revenue - self.expenses


@dataclass(frozen=True)
class GrowthRate:
    period: str
    revenue_growth_pct: Decimal
    profit_growth_pct: Decimal


@dataclass(frozen=True)
class TemplateVariance:
    """Estimate vs. actual figures of one template across its usages."""

    template_id: int
    template_name: str
    usage_count: int
    estimated_total: Decimal
    average_actual_total: Decimal
    average_variance: Decimal
    average_variance_percentage: Decimal


@dataclass(frozen=True)
class TrendReport:
    granularity: Granularity
    periods: tuple[PeriodRow, ...]
    growth_rates: tuple[GrowthRate, ...]
    trend_direction: TrendDirection

    @property
    def total_revenue(self) -> Decimal:
        return sum((row.revenue for row in self.periods), Decimal("0"))

    @property
    def total_expenses(self) -> Decimal:
        return sum((row.expenses for row in self.periods), Decimal("0"))

    @property
    def average_period_revenue(self) -> Decimal:
        if not self.periods:
            return Decimal("0")
        return self.total_revenue / len(self.periods)

    @property
    def average_period_net_profit(self) -> Decimal:
        if not self.periods:
            return Decimal("0")
        return sum((row.net_profit for row in self.periods), Decimal("0")) / len(self.periods)


@dataclass(frozen=True)
class BankActivity:
    """Income and expense totals of a set of bank transactions."""

    income: Decimal
    expenses: Decimal
    income_count: int
    expense_count: int
    expenses_by_category: tuple[tuple[str, Decimal], ...] = ()

    @property
    def net(self) -> Decimal:
        return self.income - self.expenses


@dataclass(frozen=True)
class ReconciliationTotals:
    revenue: Decimal
    cost: Decimal
    expenses: Decimal

    @property
    def gross_profit(self) -> Decimal:
        return self.revenue - self.cost

    @property
    def net_profit(self) -> Decimal:
        return self.revenue - self.cost - self.expenses


@dataclass(frozen=True)
class EditedJobDelta:
    """Local change of an externally sourced job since its last sync."""

    job_id: int
    revenue_delta: Decimal
    cost_delta: Decimal


@dataclass(frozen=True)
class Reconciliation:
    """Internal and external totals merged for one date range."""

    start_date: date
    end_date: date
    internal: ReconciliationTotals
    external: Optional[ReconciliationTotals]
    merged: ReconciliationTotals
    revenue_discrepancy: Optional[Decimal]
    cost_discrepancy: Optional[Decimal]
    discrepancy_note: str
    edited_jobs: tuple[EditedJobDelta, ...]
    internal_only_jobs: int
    external_jobs: int
    high_quality_coverage: Decimal
    coverage_rating: str
    recommended_source: str
    recommendation: str
