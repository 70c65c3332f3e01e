"""Tests for job service and manual cost overrides."""

from datetime import date
from decimal import Decimal

import pytest

from profitrack.domain.entities import (
    CostSource,
    JobSource,
    JobStatus,
    LineItemSplit,
    OverrideMethod,
)
from profitrack.domain.errors import NotFoundError, SplitMismatchError, ValidationError
from profitrack.domain.job import DEFAULT_OVERRIDE_REASON


class TestCreateJob:
    def test_create_job_strips_client(self, job_service):
        job_id = job_service.create_job(
            client="  Acme  ", revenue=Decimal("1200"), issue_date=date(2024, 5, 1)
        )

        job = job_service.get_job(job_id)
        assert job.client == "Acme"
        assert job.status == JobStatus.DRAFT
        assert job.source == JobSource.INTERNAL
        assert job.cost_data_source == CostSource.NONE

    def test_create_job_with_templates_records_usages(self, job_service, template_service, wedding_template):
        job_id = job_service.create_job(
            client="Smith",
            revenue=Decimal("5000"),
            issue_date=date(2024, 6, 1),
            template_ids=[wedding_template.id],
        )

        usages = template_service.usages(wedding_template.id)
        assert [u.job_id for u in usages] == [job_id]
        assert usages[0].actual_total == Decimal("3000.00")
        assert job_service.get_job(job_id).cost_data_source == CostSource.TEMPLATE_ESTIMATE

    def test_create_job_with_known_cost(self, job_service):
        job_id = job_service.create_job(
            client="Acme", revenue=Decimal("1200"), issue_date=date(2024, 5, 1), total_cost=Decimal("700")
        )

        job = job_service.get_job(job_id)
        assert job.total_cost == Decimal("700")

    @pytest.mark.parametrize(
        "kwargs,message",
        [
            ({"client": " ", "revenue": Decimal("1")}, "Client name is required"),
            ({"client": "Acme", "revenue": Decimal("-1")}, "Revenue must not be negative"),
            ({"client": "Acme", "revenue": Decimal("1"), "total_cost": Decimal("-5")}, "Cost must not be negative"),
        ],
    )
    def test_create_job_validation(self, job_service, kwargs, message):
        with pytest.raises(ValidationError, match=message):
            job_service.create_job(issue_date=date(2024, 5, 1), **kwargs)

    def test_create_job_with_missing_template(self, job_service):
        with pytest.raises(NotFoundError, match="Cost template 77"):
            job_service.create_job(
                client="Acme", revenue=Decimal("1"), issue_date=date(2024, 5, 1), template_ids=[77]
            )
        assert job_service.list_jobs() == []

    def test_get_missing_job(self, job_service):
        with pytest.raises(NotFoundError, match="Job 5 not found"):
            job_service.get_job(5)

    def test_list_jobs_filters(self, job_service):
        job_service.create_job(client="A", revenue=Decimal("1"), issue_date=date(2024, 1, 10), service_type="install")
        job_service.create_job(client="B", revenue=Decimal("1"), issue_date=date(2024, 2, 10), service_type="repair")
        job_service.create_job(client="C", revenue=Decimal("1"), issue_date=date(2024, 3, 10), service_type="install")

        assert [j.client for j in job_service.list_jobs(start_date=date(2024, 2, 1))] == ["B", "C"]
        assert [j.client for j in job_service.list_jobs(service_type="install")] == ["A", "C"]
        assert [j.client for j in job_service.list_jobs(end_date=date(2024, 1, 31))] == ["A"]


class TestUpdates:
    def test_update_status(self, job_service, sample_job):
        job_service.update_status(sample_job.id, JobStatus.PAID)
        assert job_service.get_job(sample_job.id).status == JobStatus.PAID

    def test_revenue_edit_of_internal_job_is_not_flagged(self, job_service, sample_job):
        job_service.update_revenue(sample_job.id, Decimal("5500"))

        job = job_service.get_job(sample_job.id)
        assert job.revenue == Decimal("5500")
        assert not job.edited_after_sync

    def test_revenue_edit_of_synced_external_job_is_flagged(self, job_service):
        job_id = job_service.create_job(
            client="Acme",
            revenue=Decimal("1000"),
            issue_date=date(2024, 5, 1),
            source=JobSource.EXTERNAL,
            external_id="INV-9",
        )
        job_service.mark_synced(job_id)
        assert job_service.get_job(job_id).synced_revenue == Decimal("1000")

        job_service.update_revenue(job_id, Decimal("1100"))

        assert job_service.get_job(job_id).edited_after_sync

    def test_only_external_jobs_can_be_synced(self, job_service, sample_job):
        with pytest.raises(ValidationError, match="not sourced from the accounting system"):
            job_service.mark_synced(sample_job.id)

    def test_negative_revenue_update(self, job_service, sample_job):
        with pytest.raises(ValidationError):
            job_service.update_revenue(sample_job.id, Decimal("-1"))


class TestOverrides:
    def test_override_records_audit_entry(self, job_service, ledger, sample_job, supplier_payment):
        ledger.allocate(supplier_payment.id, sample_job.id, amount=Decimal("3200"))

        override = job_service.override_costs(
            sample_job.id, materials_cost=Decimal("2000"), labor_cost=Decimal("600"), reason="Invoice"
        )

        assert override.method == OverrideMethod.MANUAL
        assert override.previous_total_cost == Decimal("3200")
        assert override.previous_profit == Decimal("1800")
        assert override.new_total_cost == Decimal("2600")
        assert override.new_profit == Decimal("2400")
        assert override.reason == "Invoice"

        job = job_service.get_job(sample_job.id)
        assert job.manually_overridden
        assert job.cost_data_source == CostSource.MANUAL_OVERRIDE
        assert job.overhead_cost == Decimal("0")

    def test_partial_override_keeps_other_components(self, job_service, sample_job):
        job_service.override_costs(sample_job.id, materials_cost=Decimal("100"), labor_cost=Decimal("200"))
        override = job_service.override_costs(sample_job.id, labor_cost=Decimal("250"))

        assert override.new_total_cost == Decimal("350")
        assert override.previous_total_cost == Decimal("300")
        assert override.reason == DEFAULT_OVERRIDE_REASON

    def test_override_survives_new_allocations(self, job_service, ledger, calculator, sample_job, supplier_payment):
        job_service.override_costs(sample_job.id, materials_cost=Decimal("1000"))
        ledger.allocate(supplier_payment.id, sample_job.id, amount=Decimal("3200"))

        result = calculator.job_profitability(sample_job.id)
        assert result.cost.source == CostSource.MANUAL_OVERRIDE
        assert result.effective_cost == Decimal("1000")

    def test_override_requires_a_component(self, job_service, sample_job):
        with pytest.raises(ValidationError, match="At least one cost component"):
            job_service.override_costs(sample_job.id)

    def test_override_rejects_negative_cost(self, job_service, sample_job):
        with pytest.raises(ValidationError, match="must not be negative"):
            job_service.override_costs(sample_job.id, materials_cost=Decimal("-1"))

    def test_split_override(self, job_service, sample_job):
        splits = [
            LineItemSplit(description="Flowers", line_total=Decimal("1000"), income=Decimal("600"), cost=Decimal("400")),
            LineItemSplit(description="Venue", line_total=Decimal("2000"), income=Decimal("1500"), cost=Decimal("500")),
        ]

        override = job_service.override_split(sample_job.id, splits)

        assert override.method == OverrideMethod.LINE_ITEM_SPLIT
        assert override.new_total_cost == Decimal("900")
        assert override.new_materials_cost is None

    def test_split_must_add_up(self, job_service, sample_job):
        splits = [
            LineItemSplit(description="Flowers", line_total=Decimal("1000"), income=Decimal("600"), cost=Decimal("300")),
        ]

        with pytest.raises(SplitMismatchError, match="Flowers") as excinfo:
            job_service.override_split(sample_job.id, splits)
        assert excinfo.value.line_total == Decimal("1000")
        assert not job_service.get_job(sample_job.id).manually_overridden

    def test_split_tolerates_a_cent(self, job_service, sample_job):
        splits = [
            LineItemSplit(description="Flowers", line_total=Decimal("1000"), income=Decimal("600"), cost=Decimal("399.99")),
        ]
        override = job_service.override_split(sample_job.id, splits)
        assert override.new_total_cost == Decimal("399.99")

    def test_clear_override_restores_resolution(self, job_service, ledger, calculator, sample_job, supplier_payment):
        ledger.allocate(supplier_payment.id, sample_job.id, amount=Decimal("1500"))
        job_service.override_costs(sample_job.id, materials_cost=Decimal("1000"))

        job_service.clear_override(sample_job.id)

        job = job_service.get_job(sample_job.id)
        assert not job.manually_overridden
        assert job.cost_data_source == CostSource.TRANSACTION_LINKED
        assert job.total_cost == Decimal("1500")
        assert calculator.job_profitability(sample_job.id).effective_cost == Decimal("1500")

    def test_clear_without_override(self, job_service, sample_job):
        with pytest.raises(ValidationError, match="no manual cost override"):
            job_service.clear_override(sample_job.id)

    def test_history_is_newest_first(self, job_service, sample_job):
        job_service.override_costs(sample_job.id, materials_cost=Decimal("100"), reason="first")
        job_service.override_costs(sample_job.id, materials_cost=Decimal("200"), reason="second")

        history = job_service.override_history(sample_job.id)

        assert [o.reason for o in history] == ["second", "first"]

    def test_override_of_external_job_flags_edit(self, job_service):
        job_id = job_service.create_job(
            client="Acme",
            revenue=Decimal("1000"),
            issue_date=date(2024, 5, 1),
            source=JobSource.EXTERNAL,
            external_id="INV-10",
        )
        job_service.override_costs(job_id, materials_cost=Decimal("100"))
        assert job_service.get_job(job_id).edited_after_sync
