"""Accounting-system data domain service."""

from datetime import date
from decimal import Decimal
from typing import Optional

from profitrack.database.base import Database
from profitrack.domain.entities import ExternalCostRecord, ExternalCostTrust, ExternalPnL
from profitrack.domain.errors import NotFoundError, ValidationError, job_not_found


class ExternalDataService:
    """Service for cost and P&L figures supplied by the accounting system."""

    def __init__(self, db: Database):
        """Initialize external data service.

        Args:
            db: Database instance
        """
        self.db = db

    def record_cost(
        self,
        job_id: int,
        amount: Decimal,
        trust: ExternalCostTrust,
        description: Optional[str] = None,
    ) -> int:
        """Store a cost figure for a job.

        Raises:
            NotFoundError: If the job doesn't exist
            ValidationError: If the amount is negative
        """
        if self.db.get_job(job_id) is None:
            raise NotFoundError(job_not_found(job_id))
        if amount < 0:
            raise ValidationError(f"External cost must not be negative, got {amount}")
        return self.db.create_external_cost_record(
            job_id=job_id, amount=amount, trust=trust, description=description
        )

    def costs_for_job(self, job_id: int) -> list[ExternalCostRecord]:
        return self.db.list_external_cost_records(job_ids=[job_id])

    def record_pnl(
        self,
        start_date: date,
        end_date: date,
        total_income: Decimal,
        cost_of_goods_sold: Decimal,
        total_expenses: Decimal,
        net_income: Optional[Decimal] = None,
    ) -> int:
        """Store a P&L summary for a date range.

        Net income defaults to income minus cost of goods sold and expenses.

        Raises:
            ValidationError: If the date range is reversed
        """
        if start_date > end_date:
            raise ValidationError("P&L start date must not be after its end date")
        if net_income is None:
            net_income = total_income - cost_of_goods_sold - total_expenses
        return self.db.create_external_pnl(
            start_date=start_date,
            end_date=end_date,
            total_income=total_income,
            cost_of_goods_sold=cost_of_goods_sold,
            total_expenses=total_expenses,
            net_income=net_income,
        )

    def latest_pnl(self, start_date: date, end_date: date) -> Optional[ExternalPnL]:
        """Most recently synced P&L overlapping the date range, if any."""
        return self.db.get_latest_external_pnl(start_date, end_date)
