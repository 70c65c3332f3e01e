"""Allocation commands."""

import click

from profitrack.cli.error_handling import echo_json, handle_domain_error, parse_or_exit
from profitrack.domain.allocation import AllocationLedger
from profitrack.domain.errors import DomainError
from profitrack.domain.reports import ReportService, allocation_summary_dict
from profitrack.utils.money import parse_amount, parse_percentage, to_money


@click.group()
def alloc_group():
    """Allocate bank transactions to jobs."""
    pass


@alloc_group.command("link")
@click.argument("transaction_id", type=int)
@click.argument("job_id", type=int)
@click.option("--amount", help="Amount to allocate")
@click.option("--percentage", help="Percentage of the transaction to allocate (e.g., 50 or 50%)")
@click.option("--notes", help="Notes")
@click.pass_context
def link(
    ctx,
    transaction_id: int,
    job_id: int,
    amount: str | None,
    percentage: str | None,
    notes: str | None,
):
    """Allocate part of TRANSACTION_ID to JOB_ID.

    Linking the same transaction and job again replaces the allocation.

    Examples:
        profitrack alloc link 12 3 --amount 1600
        profitrack alloc link 12 4 --percentage 50
    """
    db = ctx.obj["db"]
    ledger = AllocationLedger(db)

    if amount is None and percentage is None:
        click.echo("Error: Either --amount or --percentage is required.", err=True)
        ctx.exit(1)

    alloc_amount = parse_or_exit(ctx, parse_amount, amount, "amount") if amount is not None else None
    alloc_pct = (
        parse_or_exit(ctx, parse_percentage, percentage, "percentage") if percentage is not None else None
    )

    try:
        allocation = ledger.allocate(
            transaction_id, job_id, amount=alloc_amount, percentage=alloc_pct, notes=notes
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    else:
        click.echo(
            f"Allocated ${to_money(allocation.amount):,} of transaction {transaction_id} "
            f"to job {job_id} (allocation ID: {allocation.id})"
        )


@alloc_group.command("unlink")
@click.argument("allocation_id", type=int)
@click.pass_context
def unlink(ctx, allocation_id: int):
    """Remove an allocation."""
    db = ctx.obj["db"]
    ledger = AllocationLedger(db)

    try:
        ledger.unlink(allocation_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    else:
        click.echo(f"Removed allocation {allocation_id}")


@alloc_group.command("list")
@click.option("--transaction", "transaction_id", type=int, help="Only allocations of this transaction")
@click.option("--job", "job_id", type=int, help="Only allocations to this job")
@click.pass_context
def list_allocations(ctx, transaction_id: int | None, job_id: int | None):
    """List allocations."""
    db = ctx.obj["db"]
    reports = ReportService(db, ctx.obj["settings"])

    try:
        echo_json(reports.allocations(transaction_id=transaction_id, job_id=job_id))
    except DomainError as e:
        handle_domain_error(ctx, e)


@alloc_group.command("summary")
@click.argument("transaction_id", type=int)
@click.pass_context
def summary(ctx, transaction_id: int):
    """Show how much of a transaction is allocated."""
    db = ctx.obj["db"]
    ledger = AllocationLedger(db)

    try:
        echo_json(allocation_summary_dict(ledger.allocation_summary(transaction_id)))
    except DomainError as e:
        handle_domain_error(ctx, e)


def register_commands(cli: click.Group) -> None:
    """Register allocation commands with main CLI."""
    cli.add_command(alloc_group, name="alloc")
