"""Margin arithmetic shared by the profitability and trend services."""

from decimal import Decimal
from typing import Optional, Sequence

from profitrack.utils.money import percent_of


def margin(profit: Decimal, revenue: Decimal) -> Decimal:
    """Profit as a percentage of revenue, 0 when there is no positive revenue."""
    if revenue <= 0:
        return Decimal("0")
    return percent_of(profit, revenue)


def mean(values: Sequence[Decimal]) -> Optional[Decimal]:
    if not values:
        return None
    return sum(values, Decimal("0")) / len(values)


def median(values: Sequence[Decimal]) -> Optional[Decimal]:
    """Middle value of the sorted values; mean of the two middle ones for even counts."""
    if not values:
        return None
    ordered = sorted(values)
    middle = len(ordered) // 2
    if len(ordered) % 2:
        return ordered[middle]
    return (ordered[middle - 1] + ordered[middle]) / 2
