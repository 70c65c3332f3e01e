"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic, including the string to enum
conversion of the tagged columns.
"""

from profitrack.domain import entities as domain
from profitrack.database.models import (
    Job as ORMJob,
    Transaction as ORMTransaction,
    Allocation as ORMAllocation,
    CostTemplate as ORMCostTemplate,
    TemplateUsage as ORMTemplateUsage,
    CostOverride as ORMCostOverride,
    ExternalCostRecord as ORMExternalCostRecord,
    ExternalPnL as ORMExternalPnL,
)


def job_to_domain(orm_job: ORMJob) -> domain.Job:
    """Convert SQLAlchemy Job model to domain Job entity."""
    return domain.Job(
        id=orm_job.id,
        reference=orm_job.reference,
        client=orm_job.client,
        revenue=orm_job.revenue,
        issue_date=orm_job.issue_date,
        service_type=orm_job.service_type,
        status=domain.JobStatus(orm_job.status),
        source=domain.JobSource(orm_job.source),
        materials_cost=orm_job.materials_cost,
        labor_cost=orm_job.labor_cost,
        overhead_cost=orm_job.overhead_cost,
        total_cost=orm_job.total_cost,
        cost_data_source=(
            domain.CostSource(orm_job.cost_data_source) if orm_job.cost_data_source else None
        ),
        manually_overridden=bool(orm_job.manually_overridden),
        external_id=orm_job.external_id,
        synced_revenue=orm_job.synced_revenue,
        synced_cost=orm_job.synced_cost,
        edited_after_sync=bool(orm_job.edited_after_sync),
        created_at=orm_job.created_at,
    )


def transaction_to_domain(orm_transaction: ORMTransaction) -> domain.Transaction:
    """Convert SQLAlchemy Transaction model to domain Transaction entity."""
    return domain.Transaction(
        id=orm_transaction.id,
        amount=orm_transaction.amount,
        date=orm_transaction.date,
        name=orm_transaction.name,
        merchant_name=orm_transaction.merchant_name,
        category=orm_transaction.category,
        created_at=orm_transaction.created_at,
    )


def allocation_to_domain(orm_allocation: ORMAllocation) -> domain.Allocation:
    """Convert SQLAlchemy Allocation model to domain Allocation entity."""
    return domain.Allocation(
        id=orm_allocation.id,
        transaction_id=orm_allocation.transaction_id,
        job_id=orm_allocation.job_id,
        amount=orm_allocation.amount,
        percentage=orm_allocation.percentage,
        notes=orm_allocation.notes,
        created_at=orm_allocation.created_at,
    )


def allocation_detail_to_domain(orm_allocation: ORMAllocation) -> domain.AllocationDetail:
    """Convert an allocation and its linked records to an AllocationDetail."""
    txn = orm_allocation.transaction
    job = orm_allocation.job
    return domain.AllocationDetail(
        allocation=allocation_to_domain(orm_allocation),
        transaction_name=txn.merchant_name or txn.name,
        transaction_date=txn.date,
        transaction_amount=txn.amount,
        job_client=job.client,
        job_reference=job.reference,
    )


def cost_template_to_domain(orm_template: ORMCostTemplate) -> domain.CostTemplate:
    """Convert SQLAlchemy CostTemplate model to domain CostTemplate entity."""
    return domain.CostTemplate(
        id=orm_template.id,
        name=orm_template.name,
        template_type=orm_template.template_type,
        estimated_materials_cost=orm_template.estimated_materials_cost,
        estimated_labor_cost=orm_template.estimated_labor_cost,
        estimated_overhead_cost=orm_template.estimated_overhead_cost,
        target_sale_price=orm_template.target_sale_price,
        target_margin=orm_template.target_margin,
        created_at=orm_template.created_at,
    )


def template_usage_to_domain(orm_usage: ORMTemplateUsage) -> domain.TemplateUsage:
    """Convert SQLAlchemy TemplateUsage model to domain TemplateUsage entity."""
    return domain.TemplateUsage(
        id=orm_usage.id,
        job_id=orm_usage.job_id,
        template_id=orm_usage.template_id,
        actual_materials_cost=orm_usage.actual_materials_cost,
        actual_labor_cost=orm_usage.actual_labor_cost,
        actual_overhead_cost=orm_usage.actual_overhead_cost,
        actual_sale_price=orm_usage.actual_sale_price,
        created_at=orm_usage.created_at,
    )


def cost_override_to_domain(orm_override: ORMCostOverride) -> domain.CostOverride:
    """Convert SQLAlchemy CostOverride model to domain CostOverride entity."""
    return domain.CostOverride(
        id=orm_override.id,
        job_id=orm_override.job_id,
        previous_total_cost=orm_override.previous_total_cost,
        previous_profit=orm_override.previous_profit,
        new_materials_cost=orm_override.new_materials_cost,
        new_labor_cost=orm_override.new_labor_cost,
        new_overhead_cost=orm_override.new_overhead_cost,
        new_total_cost=orm_override.new_total_cost,
        new_profit=orm_override.new_profit,
        reason=orm_override.reason,
        method=domain.OverrideMethod(orm_override.method),
        created_at=orm_override.created_at,
    )


def external_cost_to_domain(orm_record: ORMExternalCostRecord) -> domain.ExternalCostRecord:
    """Convert SQLAlchemy ExternalCostRecord model to domain entity."""
    return domain.ExternalCostRecord(
        id=orm_record.id,
        job_id=orm_record.job_id,
        amount=orm_record.amount,
        trust=domain.ExternalCostTrust(orm_record.trust),
        description=orm_record.description,
        created_at=orm_record.created_at,
    )


def external_pnl_to_domain(orm_pnl: ORMExternalPnL) -> domain.ExternalPnL:
    """Convert SQLAlchemy ExternalPnL model to domain ExternalPnL entity."""
    return domain.ExternalPnL(
        id=orm_pnl.id,
        start_date=orm_pnl.start_date,
        end_date=orm_pnl.end_date,
        total_income=orm_pnl.total_income,
        cost_of_goods_sold=orm_pnl.cost_of_goods_sold,
        total_expenses=orm_pnl.total_expenses,
        net_income=orm_pnl.net_income,
        synced_at=orm_pnl.synced_at,
    )
