"""Shared pytest fixtures for profitrack tests."""

import tempfile
import os
from datetime import date
from decimal import Decimal

import pytest

from profitrack.database.factories import create_sqlite_database
from profitrack.domain.allocation import AllocationLedger
from profitrack.domain.cost_resolver import CostResolver
from profitrack.domain.external import ExternalDataService
from profitrack.domain.job import JobService
from profitrack.domain.profitability import ProfitabilityCalculator
from profitrack.domain.template import TemplateService
from profitrack.domain.transaction import TransactionService


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    # Create a temporary file for the database
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    # Create database
    db = create_sqlite_database(database_path=db_path)
    db.connect()
    db.initialize_schema()

    yield db

    # Cleanup
    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def second_db(temp_db):
    """A second, independent connection to the temporary database."""
    db = create_sqlite_database(database_path=temp_db.database_path)
    db.connect()
    yield db
    db.disconnect()


@pytest.fixture
def job_service(temp_db):
    """Create a JobService with a temporary database."""
    return JobService(temp_db)


@pytest.fixture
def transaction_service(temp_db):
    """Create a TransactionService with a temporary database."""
    return TransactionService(temp_db)


@pytest.fixture
def template_service(temp_db):
    """Create a TemplateService with a temporary database."""
    return TemplateService(temp_db)


@pytest.fixture
def ledger(temp_db):
    """Create an AllocationLedger with a temporary database."""
    return AllocationLedger(temp_db)


@pytest.fixture
def resolver(temp_db):
    """Create a CostResolver with a temporary database."""
    return CostResolver(temp_db)


@pytest.fixture
def calculator(temp_db):
    """Create a ProfitabilityCalculator with a temporary database."""
    return ProfitabilityCalculator(temp_db)


@pytest.fixture
def external_service(temp_db):
    """Create an ExternalDataService with a temporary database."""
    return ExternalDataService(temp_db)


@pytest.fixture
def wedding_template(template_service):
    """A template estimating 3000.00 in total."""
    template_id = template_service.create_template(
        name="Standard wedding",
        template_type="wedding",
        estimated_materials_cost=Decimal("1200.00"),
        estimated_labor_cost=Decimal("1500.00"),
        estimated_overhead_cost=Decimal("300.00"),
        target_sale_price=Decimal("5000.00"),
    )
    return template_service.get_template(template_id)


@pytest.fixture
def sample_job(job_service):
    """A job with revenue 5000.00 and no cost evidence."""
    job_id = job_service.create_job(
        client="Smith Wedding",
        revenue=Decimal("5000.00"),
        issue_date=date(2024, 6, 1),
        reference="INV-1001",
        service_type="wedding",
    )
    return job_service.get_job(job_id)


@pytest.fixture
def supplier_payment(transaction_service):
    """An outgoing bank transaction of 3200.00."""
    transaction_id = transaction_service.create_transaction(
        amount=Decimal("-3200.00"),
        date=date(2024, 6, 3),
        name="Home Depot",
        category="Supplies",
    )
    return transaction_service.get_transaction(transaction_id)


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()
