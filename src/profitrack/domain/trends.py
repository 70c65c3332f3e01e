"""Trend and growth analysis domain service."""

from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Iterable, Optional, Sequence

from profitrack.domain.entities import (
    DecliningTrendAlert,
    Granularity,
    GrowthRate,
    JobProfitability,
    PeriodRow,
    Transaction,
    TrendDirection,
    TrendReport,
)
from profitrack.domain.metrics import margin, mean
from profitrack.domain.transaction import is_expense
from profitrack.utils.date_parser import period_key
from profitrack.utils.money import HUNDRED

# Periods compared on each side by trend_direction
TREND_SPAN = 3


def _item_date(item: Any) -> date:
    if isinstance(item, JobProfitability):
        return item.issue_date
    return item.date


def growth_pct(current: Decimal, previous: Decimal) -> Decimal:
    """Percentage change from previous to current; 0 when previous is 0."""
    if previous == 0:
        return Decimal("0")
    return (current - previous) / abs(previous) * HUNDRED


def declining_margin_alert(
    historical_margins: Sequence[Decimal],
    lookback_periods: int,
    decline_threshold_pct: Decimal,
    min_observations: int = 6,
) -> Optional[DecliningTrendAlert]:
    """Flag a margin decline between the two halves of the lookback window.

    Only the most recent ``lookback_periods`` margins are considered, oldest
    first. With fewer than ``min_observations`` margins nothing is evaluated.
    An odd window puts the extra observation in the second half.
    """
    window = list(historical_margins)[-lookback_periods:] if lookback_periods > 0 else []
    if len(window) < max(min_observations, 2):
        return None

    half = len(window) // 2
    first_average = mean(window[:half])
    second_average = mean(window[half:])
    decline = first_average - second_average
    if decline <= decline_threshold_pct:
        return None

    return DecliningTrendAlert(
        first_period_average=first_average,
        second_period_average=second_average,
        decline=decline,
        observations=len(window),
        message=f"Profit margins have declined by {decline:.1f} points over the last {len(window)} jobs",
    )


class TrendAnalyzer:
    """Service for period bucketing, growth rates and trend classification."""

    def bucket(
        self,
        items: Iterable[Any],
        granularity: Granularity,
        date_of: Optional[Callable[[Any], date]] = None,
    ) -> dict[str, list]:
        """Group jobs or transactions into period buckets sorted ascending.

        Args:
            items: JobProfitability or Transaction records
            granularity: Month, quarter or year buckets
            date_of: Date accessor, defaults to the issue date of jobs and the
                date of transactions
        """
        date_of = date_of or _item_date
        buckets: dict[str, list] = defaultdict(list)
        for item in items:
            buckets[period_key(date_of(item), granularity)].append(item)
        return {key: buckets[key] for key in sorted(buckets)}

    def expenses_by_period(
        self, transactions: Iterable[Transaction], granularity: Granularity
    ) -> dict[str, Decimal]:
        """Sum the magnitudes of expense transactions per period."""
        expenses = [txn for txn in transactions if is_expense(txn)]
        return {
            key: sum((txn.magnitude for txn in items), Decimal("0"))
            for key, items in self.bucket(expenses, granularity).items()
        }

    def period_series(
        self,
        periods: dict[str, list[JobProfitability]],
        expenses: Optional[dict[str, Decimal]] = None,
    ) -> list[PeriodRow]:
        """Build one aggregate row per period.

        Periods that only have expenses get a row with zero job figures.
        """
        expenses = expenses or {}
        rows = []
        for key in sorted(set(periods) | set(expenses)):
            jobs = periods.get(key, [])
            revenue = sum((job.revenue for job in jobs), Decimal("0"))
            cost = sum((job.effective_cost for job in jobs), Decimal("0"))
            profit = revenue - cost
            rows.append(
                PeriodRow(
                    period=key,
                    revenue=revenue,
                    cost=cost,
                    profit=profit,
                    margin=margin(profit, revenue),
                    count=len(jobs),
                    expenses=expenses.get(key, Decimal("0")),
                )
            )
        return rows

    def growth_rates(self, series: Sequence[PeriodRow]) -> list[GrowthRate]:
        """Period-over-period growth for every period after the first."""
        return [
            GrowthRate(
                period=current.period,
                revenue_growth_pct=growth_pct(current.revenue, previous.revenue),
                profit_growth_pct=growth_pct(current.profit, previous.profit),
            )
            for previous, current in zip(series, series[1:])
        ]

    def trend_direction(self, series: Sequence[PeriodRow]) -> TrendDirection:
        """Compare mean revenue of the latest periods with the periods before them.

        A missing window counts as a mean of 0, so a history shorter than
        four periods is growing as soon as it has revenue.
        """
        recent = [row.revenue for row in series[-TREND_SPAN:]]
        older = [row.revenue for row in series[-2 * TREND_SPAN:-TREND_SPAN]]

        difference = (mean(recent) or Decimal("0")) - (mean(older) or Decimal("0"))
        if difference > 0:
            return TrendDirection.GROWING
        if difference < 0:
            return TrendDirection.DECLINING
        return TrendDirection.STABLE

    def declining_margin_alert(
        self,
        historical_margins: Sequence[Decimal],
        lookback_periods: int,
        decline_threshold_pct: Decimal,
        min_observations: int = 6,
    ) -> Optional[DecliningTrendAlert]:
        return declining_margin_alert(
            historical_margins, lookback_periods, decline_threshold_pct, min_observations
        )

    def trend_report(
        self,
        jobs: Iterable[JobProfitability],
        transactions: Iterable[Transaction] = (),
        granularity: Granularity = Granularity.MONTH,
    ) -> TrendReport:
        """Bucket jobs and bank expenses and derive growth and direction."""
        series = self.period_series(
            self.bucket(jobs, granularity),
            self.expenses_by_period(transactions, granularity),
        )
        return TrendReport(
            granularity=granularity,
            periods=tuple(series),
            growth_rates=tuple(self.growth_rates(series)),
            trend_direction=self.trend_direction(series),
        )
