"""SQLAlchemy models for profitrack database."""

from datetime import datetime, UTC
from typing import Optional
from sqlalchemy import (
    Column,
    Integer,
    String,
    ForeignKey,
    DateTime,
    Date,
    Numeric,
    Boolean,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()

# Allocation amounts keep sub-cent precision so percentage splits are not
# rounded before aggregation.
Money = Numeric(14, 2)
PreciseMoney = Numeric(18, 6)


class Job(Base):
    """Job (invoice) model."""

    __tablename__ = "jobs"

    id = Column(Integer, primary_key=True)
    reference = Column(String, nullable=True)
    client = Column(String, nullable=False)
    revenue = Column(Money, nullable=False)
    issue_date = Column(Date, nullable=False)
    service_type = Column(String, nullable=True)
    status = Column(String, default="draft", nullable=False)
    source = Column(String, default="internal", nullable=False)

    # Stored cost snapshot
    materials_cost = Column(PreciseMoney, nullable=True)
    labor_cost = Column(PreciseMoney, nullable=True)
    overhead_cost = Column(PreciseMoney, nullable=True)
    total_cost = Column(PreciseMoney, nullable=True)
    cost_data_source = Column(String, nullable=True)
    manually_overridden = Column(Boolean, default=False, nullable=False)

    # Stored cost before the first override, restored when it is cleared
    pre_override_materials_cost = Column(PreciseMoney, nullable=True)
    pre_override_labor_cost = Column(PreciseMoney, nullable=True)
    pre_override_overhead_cost = Column(PreciseMoney, nullable=True)
    pre_override_total_cost = Column(PreciseMoney, nullable=True)
    pre_override_cost_source = Column(String, nullable=True)

    # Accounting-system sync tracking
    external_id = Column(String, nullable=True, unique=True)
    synced_revenue = Column(Money, nullable=True)
    synced_cost = Column(PreciseMoney, nullable=True)
    edited_after_sync = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # Relationships
    allocations = relationship("Allocation", back_populates="job")
    template_usages = relationship("TemplateUsage", back_populates="job", order_by="TemplateUsage.id")
    cost_overrides = relationship("CostOverride", back_populates="job")
    external_costs = relationship("ExternalCostRecord", back_populates="job")


class Transaction(Base):
    """Bank transaction model."""

    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True)
    amount = Column(Money, nullable=False)
    date = Column(Date, nullable=False)
    name = Column(String, nullable=False)
    merchant_name = Column(String, nullable=True)
    category = Column(String, nullable=True)
    # Bumped on every allocation write; guards the per-transaction sum.
    allocation_version = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # Relationships
    allocations = relationship("Allocation", back_populates="transaction")


class Allocation(Base):
    """Transaction-to-job allocation model."""

    __tablename__ = "allocations"

    id = Column(Integer, primary_key=True)
    transaction_id = Column(Integer, ForeignKey("transactions.id"), nullable=False)
    job_id = Column(Integer, ForeignKey("jobs.id"), nullable=False)
    amount = Column(PreciseMoney, nullable=False)
    percentage = Column(Numeric(9, 4), nullable=True)
    notes = Column(String, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # One allocation per transaction/job pair; re-allocating updates it
    __table_args__ = (UniqueConstraint("transaction_id", "job_id", name="uq_transaction_job"),)

    # Relationships
    transaction = relationship("Transaction", back_populates="allocations")
    job = relationship("Job", back_populates="allocations")


class CostTemplate(Base):
    """Reusable cost estimate model."""

    __tablename__ = "cost_templates"

    id = Column(Integer, primary_key=True)
    name = Column(String, unique=True, nullable=False)
    template_type = Column(String, nullable=False)
    estimated_materials_cost = Column(Money, default=0, nullable=False)
    estimated_labor_cost = Column(Money, default=0, nullable=False)
    estimated_overhead_cost = Column(Money, default=0, nullable=False)
    target_sale_price = Column(Money, nullable=True)
    target_margin = Column(Numeric(9, 4), nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # Relationships
    usages = relationship("TemplateUsage", back_populates="template")


class TemplateUsage(Base):
    """Template applied to a job."""

    __tablename__ = "template_usages"

    id = Column(Integer, primary_key=True)
    job_id = Column(Integer, ForeignKey("jobs.id"), nullable=False)
    template_id = Column(Integer, ForeignKey("cost_templates.id"), nullable=False)
    actual_materials_cost = Column(Money, nullable=False)
    actual_labor_cost = Column(Money, nullable=False)
    actual_overhead_cost = Column(Money, nullable=False)
    actual_sale_price = Column(Money, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # Relationships
    job = relationship("Job", back_populates="template_usages")
    template = relationship("CostTemplate", back_populates="usages")


class CostOverride(Base):
    """Append-only audit trail of manual cost corrections."""

    __tablename__ = "cost_overrides"

    id = Column(Integer, primary_key=True)
    job_id = Column(Integer, ForeignKey("jobs.id"), nullable=False)
    previous_total_cost = Column(PreciseMoney, nullable=True)
    previous_profit = Column(PreciseMoney, nullable=True)
    new_materials_cost = Column(PreciseMoney, nullable=True)
    new_labor_cost = Column(PreciseMoney, nullable=True)
    new_overhead_cost = Column(PreciseMoney, nullable=True)
    new_total_cost = Column(PreciseMoney, nullable=False)
    new_profit = Column(PreciseMoney, nullable=False)
    reason = Column(String, nullable=False)
    method = Column(String, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # Relationships
    job = relationship("Job", back_populates="cost_overrides")


class ExternalCostRecord(Base):
    """Cost figure synced from the accounting system."""

    __tablename__ = "external_cost_records"

    id = Column(Integer, primary_key=True)
    job_id = Column(Integer, ForeignKey("jobs.id"), nullable=False)
    amount = Column(PreciseMoney, nullable=False)
    trust = Column(String, nullable=False)
    description = Column(String, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # Relationships
    job = relationship("Job", back_populates="external_costs")


class ExternalPnL(Base):
    """Profit-and-loss summary synced from the accounting system."""

    __tablename__ = "external_pnl_reports"

    id = Column(Integer, primary_key=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    total_income = Column(Money, nullable=False)
    cost_of_goods_sold = Column(Money, nullable=False)
    total_expenses = Column(Money, nullable=False)
    net_income = Column(Money, nullable=False)
    synced_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)


def create_session_factory(database_url: str, connect_args: Optional[dict] = None) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False, connect_args=connect_args or {})
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
