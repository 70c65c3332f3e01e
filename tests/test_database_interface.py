"""Tests for Database interface returning domain models."""

import pytest
from datetime import date, datetime
from decimal import Decimal

from profitrack.database.factories import create_sqlite_database
from profitrack.domain import entities
from profitrack.domain.errors import NotFoundError


class TestDatabaseInterface:
    """Tests to verify Database interface returns domain models."""

    def test_get_job_returns_domain_model(self, temp_db):
        """Test that get_job returns a domain Job entity."""
        job_id = temp_db.create_job(
            client="Smith Wedding",
            revenue=Decimal("5000.00"),
            issue_date=date(2024, 6, 1),
            reference="INV-1001",
        )

        job = temp_db.get_job(job_id)

        assert isinstance(job, entities.Job)
        assert job.id == job_id
        assert job.revenue == Decimal("5000.00")
        assert job.status == entities.JobStatus.DRAFT
        assert job.source == entities.JobSource.INTERNAL
        assert job.total_cost is None
        assert job.cost_data_source is None
        assert isinstance(job.created_at, datetime)

    def test_get_missing_job_returns_none(self, temp_db):
        assert temp_db.get_job(999) is None

    def test_list_jobs_orders_by_issue_date(self, temp_db):
        """Test that list_jobs filters and sorts domain Job entities."""
        late = temp_db.create_job(client="Late", revenue=Decimal("10"), issue_date=date(2024, 3, 1))
        early = temp_db.create_job(
            client="Early",
            revenue=Decimal("10"),
            issue_date=date(2024, 1, 1),
            source=entities.JobSource.EXTERNAL,
        )
        temp_db.create_job(client="Outside", revenue=Decimal("10"), issue_date=date(2023, 12, 31))

        jobs = temp_db.list_jobs(start_date=date(2024, 1, 1), end_date=date(2024, 12, 31))
        external = temp_db.list_jobs(source=entities.JobSource.EXTERNAL)
        selected = temp_db.list_jobs(job_ids=[late])

        assert [job.id for job in jobs] == [early, late]
        assert [job.id for job in external] == [early]
        assert [job.client for job in selected] == ["Late"]

    def test_update_job_marks_edit(self, temp_db):
        job_id = temp_db.create_job(client="Acme", revenue=Decimal("100"), issue_date=date(2024, 1, 1))

        temp_db.update_job(job_id, revenue=Decimal("150"), status=entities.JobStatus.SENT, mark_edited=True)

        job = temp_db.get_job(job_id)
        assert job.revenue == Decimal("150")
        assert job.status == entities.JobStatus.SENT
        assert job.edited_after_sync is True

    def test_update_missing_job_raises(self, temp_db):
        with pytest.raises(NotFoundError):
            temp_db.update_job(42, revenue=Decimal("1"))

    def test_update_job_cost_source(self, temp_db):
        job_id = temp_db.create_job(
            client="Acme", revenue=Decimal("100"), issue_date=date(2024, 1, 1), total_cost=Decimal("40")
        )

        temp_db.update_job_cost_source(job_id, entities.CostSource.TEMPLATE_ESTIMATE)
        assert temp_db.get_job(job_id).total_cost == Decimal("40")

        temp_db.update_job_cost_source(job_id, None, total_cost=None, update_total=True)
        job = temp_db.get_job(job_id)
        assert job.total_cost is None
        assert job.cost_data_source is None

    def test_mark_job_synced_resets_edit_flag(self, temp_db):
        job_id = temp_db.create_job(client="Acme", revenue=Decimal("100"), issue_date=date(2024, 1, 1))
        temp_db.update_job(job_id, revenue=Decimal("120"), mark_edited=True)

        temp_db.mark_job_synced(job_id, synced_revenue=Decimal("120"), synced_cost=None)

        job = temp_db.get_job(job_id)
        assert job.synced_revenue == Decimal("120")
        assert job.synced_cost is None
        assert job.edited_after_sync is False

    def test_cost_override_round_trip(self, temp_db):
        """Test that overrides store a snapshot and an audit record."""
        job_id = temp_db.create_job(client="Acme", revenue=Decimal("1000"), issue_date=date(2024, 1, 1))

        override_id = temp_db.apply_cost_override(
            job_id=job_id,
            materials_cost=Decimal("300"),
            labor_cost=Decimal("200"),
            overhead_cost=Decimal("0"),
            total_cost=Decimal("500"),
            new_profit=Decimal("500"),
            previous_total_cost=None,
            previous_profit=None,
            reason="Supplier invoice",
            method=entities.OverrideMethod.MANUAL,
        )

        job = temp_db.get_job(job_id)
        assert job.manually_overridden is True
        assert job.total_cost == Decimal("500")
        assert job.cost_data_source == entities.CostSource.MANUAL_OVERRIDE

        (record,) = temp_db.list_cost_overrides(job_id)
        assert isinstance(record, entities.CostOverride)
        assert record.id == override_id
        assert record.reason == "Supplier invoice"
        assert record.previous_total_cost is None

        temp_db.clear_cost_override(job_id)
        job = temp_db.get_job(job_id)
        assert job.manually_overridden is False
        assert job.total_cost is None
        assert len(temp_db.list_cost_overrides(job_id)) == 1

    def test_clearing_override_restores_prior_cost(self, temp_db):
        job_id = temp_db.create_job(
            client="Acme", revenue=Decimal("1000"), issue_date=date(2024, 1, 1), total_cost=Decimal("400")
        )
        temp_db.update_job_cost_source(job_id, entities.CostSource.EXTERNAL_REAL_COST)
        override = dict(
            labor_cost=None,
            overhead_cost=None,
            new_profit=Decimal("0"),
            previous_total_cost=Decimal("400"),
            previous_profit=Decimal("600"),
            reason="Correction",
            method=entities.OverrideMethod.MANUAL,
        )
        for cost in (Decimal("900"), Decimal("950")):
            temp_db.apply_cost_override(job_id=job_id, materials_cost=cost, total_cost=cost, **override)

        temp_db.clear_cost_override(job_id)

        job = temp_db.get_job(job_id)
        assert job.total_cost == Decimal("400")
        assert job.materials_cost is None
        assert job.cost_data_source == entities.CostSource.EXTERNAL_REAL_COST

    def test_get_transaction_returns_domain_model(self, temp_db):
        """Test that get_transaction returns a domain Transaction entity."""
        txn_id = temp_db.create_transaction(
            amount=Decimal("-50.00"),
            date=date(2024, 1, 15),
            name="Shell",
            category="Fuel",
        )

        txn = temp_db.get_transaction(txn_id)

        assert isinstance(txn, entities.Transaction)
        assert txn.amount == Decimal("-50.00")
        assert txn.date == date(2024, 1, 15)
        assert txn.merchant_name is None
        assert txn.category == "Fuel"

    def test_list_transactions_filters_dates(self, temp_db):
        temp_db.create_transaction(amount=Decimal("-50.00"), date=date(2024, 1, 15), name="In")
        temp_db.create_transaction(amount=Decimal("100.00"), date=date(2024, 2, 15), name="Out")

        transactions = temp_db.list_transactions(start_date=date(2024, 1, 1), end_date=date(2024, 1, 31))

        assert [t.name for t in transactions] == ["In"]

    def test_allocation_details_join_transaction_and_job(self, temp_db, sample_job, supplier_payment):
        allocation = temp_db.allocate(
            transaction_id=supplier_payment.id, job_id=sample_job.id, amount=Decimal("1000")
        )

        (detail,) = temp_db.list_allocation_details(job_id=sample_job.id)

        assert isinstance(detail, entities.AllocationDetail)
        assert detail.allocation.id == allocation.id
        assert detail.allocation.amount == Decimal("1000")
        assert detail.transaction_name == "Home Depot"
        assert detail.job_client == "Smith Wedding"

    def test_template_usage_lookup(self, temp_db, sample_job, wedding_template):
        temp_db.create_template_usage(
            job_id=sample_job.id,
            template_id=wedding_template.id,
            actual_materials_cost=Decimal("1300"),
            actual_labor_cost=Decimal("1500"),
            actual_overhead_cost=Decimal("300"),
        )

        (usage,) = temp_db.list_template_usages(job_ids=[sample_job.id])
        templates = temp_db.list_cost_templates(template_ids=[usage.template_id])

        assert isinstance(usage, entities.TemplateUsage)
        assert usage.actual_total == Decimal("3100")
        assert [t.id for t in templates] == [wedding_template.id]
        assert temp_db.list_template_usages(template_id=wedding_template.id + 1) == []

    def test_latest_pnl_overlapping_range(self, temp_db):
        """Test that the most recently synced overlapping P&L is returned."""
        temp_db.create_external_pnl(
            start_date=date(2024, 1, 1),
            end_date=date(2024, 12, 31),
            total_income=Decimal("100"),
            cost_of_goods_sold=Decimal("40"),
            total_expenses=Decimal("10"),
            net_income=Decimal("50"),
        )
        newer = temp_db.create_external_pnl(
            start_date=date(2024, 1, 1),
            end_date=date(2024, 12, 31),
            total_income=Decimal("120"),
            cost_of_goods_sold=Decimal("40"),
            total_expenses=Decimal("10"),
            net_income=Decimal("70"),
        )

        pnl = temp_db.get_latest_external_pnl(date(2024, 6, 1), date(2024, 6, 30))

        assert isinstance(pnl, entities.ExternalPnL)
        assert pnl.id == newer
        assert pnl.total_income == Decimal("120")
        assert temp_db.get_latest_external_pnl(date(2025, 1, 1), date(2025, 1, 31)) is None


def test_factory_reads_path_from_environment(monkeypatch, tmp_path):
    db_path = str(tmp_path / "env.db")
    monkeypatch.setenv("PROFITRACK_DB_PATH", db_path)

    db = create_sqlite_database()
    try:
        assert db.database_path == db_path
        assert db.database_url == f"sqlite:///{db_path}"
    finally:
        db.disconnect()
