"""Tests for cost templates."""

from datetime import date
from decimal import Decimal

import pytest

from profitrack.domain.errors import NotFoundError, ValidationError


def test_create_and_list_templates(template_service, wedding_template):
    template_service.create_template(name="Basic install", template_type="installation")

    names = [t.name for t in template_service.list_templates()]
    assert names == ["Basic install", "Standard wedding"]
    assert wedding_template.estimated_total == Decimal("3000.00")
    assert wedding_template.target_sale_price == Decimal("5000.00")


def test_template_names_are_unique(template_service, wedding_template):
    with pytest.raises(ValidationError, match="already exists"):
        template_service.create_template(name=" Standard wedding ", template_type="wedding")


def test_template_rejects_negative_estimate(template_service):
    with pytest.raises(ValidationError, match="must not be negative"):
        template_service.create_template(
            name="Broken", template_type="x", estimated_labor_cost=Decimal("-1")
        )


def test_use_template_defaults_to_estimate(template_service, wedding_template, sample_job):
    template_service.use_template(sample_job.id, wedding_template.id, actual_labor_cost=Decimal("1800"))

    usage = template_service.usages(wedding_template.id)[0]
    assert usage.actual_materials_cost == Decimal("1200.00")
    assert usage.actual_labor_cost == Decimal("1800")
    assert usage.actual_total == Decimal("3300.00")
    assert usage.actual_sale_price == Decimal("5000.00")


def test_use_template_on_missing_records(template_service, wedding_template, sample_job):
    with pytest.raises(NotFoundError, match="Job 99"):
        template_service.use_template(99, wedding_template.id)
    with pytest.raises(NotFoundError, match="Cost template 99"):
        template_service.use_template(sample_job.id, 99)


def test_variance_report(template_service, job_service, wedding_template):
    template_service.create_template(name="Unused", template_type="x")
    for labor in ("1500", "2100"):
        job_id = job_service.create_job(client="Client", revenue=Decimal("5000"), issue_date=date(2024, 6, 1))
        template_service.use_template(job_id, wedding_template.id, actual_labor_cost=Decimal(labor))

    report = template_service.variance_report()

    assert len(report) == 1
    variance = report[0]
    assert variance.template_name == "Standard wedding"
    assert variance.usage_count == 2
    assert variance.average_actual_total == Decimal("3300")
    assert variance.average_variance == Decimal("300")
    assert variance.average_variance_percentage == Decimal("10")


def test_variance_report_for_missing_template(template_service):
    with pytest.raises(NotFoundError):
        template_service.variance_report(template_id=12)
