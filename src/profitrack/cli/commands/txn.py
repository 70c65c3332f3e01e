"""Bank transaction commands."""

from datetime import date

import click

from profitrack.cli.date_filters import date_range_options, resolve_cli_date_range
from profitrack.cli.error_handling import echo_json, handle_domain_error, parse_or_exit
from profitrack.domain.errors import DomainError
from profitrack.domain.reports import bank_activity_dict
from profitrack.domain.transaction import TransactionService
from profitrack.utils.date_parser import parse_date
from profitrack.utils.money import parse_amount, to_money


@click.group()
def txn_group():
    """Manage bank transactions."""
    pass


@txn_group.command("add")
@click.argument("name")
@click.option("--amount", required=True, help="Signed amount, negative for money out (e.g., -3200.00)")
@click.option("--date", "txn_date", help="Transaction date (YYYY-MM-DD or relative like 'today'), defaults to today")
@click.option("--merchant", help="Merchant name")
@click.option("--category", help="Category label, 'Revenue' marks income")
@click.pass_context
def add_transaction(
    ctx,
    name: str,
    amount: str,
    txn_date: str | None,
    merchant: str | None,
    category: str | None,
):
    """Add a bank transaction.

    Examples:
        profitrack txn add "Home Depot" --amount -3200.00 --date 2024-06-03
        profitrack txn add "Client payment" --amount 5000 --category Revenue
    """
    db = ctx.obj["db"]
    service = TransactionService(db)

    txn_amount = parse_or_exit(ctx, parse_amount, amount, "amount")
    day = parse_or_exit(ctx, parse_date, txn_date, "date") if txn_date else date.today()

    try:
        transaction_id = service.create_transaction(
            amount=txn_amount, date=day, name=name, merchant_name=merchant, category=category
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    else:
        click.echo(f"Created transaction '{name.strip()}' (ID: {transaction_id})")


@txn_group.command("list")
@date_range_options
@click.pass_context
def list_transactions(ctx, start_date: str | None, end_date: str | None, **period_flags):
    """List bank transactions."""
    db = ctx.obj["db"]
    service = TransactionService(db)
    start, end = resolve_cli_date_range(
        ctx, start_date=start_date, end_date=end_date, period_flags=period_flags
    )

    transactions = service.list_transactions(start_date=start, end_date=end)
    if not transactions:
        click.echo("No transactions found.")
        return

    click.echo(f"{'ID':>5}  {'Date':<10}  {'Name':<30} {'Category':<16} {'Amount':>12}")
    click.echo("-" * 80)
    for txn in transactions:
        click.echo(
            f"{txn.id:>5}  {txn.date.isoformat():<10}  {(txn.merchant_name or txn.name)[:30]:<30} "
            f"{(txn.category or '')[:16]:<16} {format(to_money(txn.amount), ','):>12}"
        )


@txn_group.command("activity")
@date_range_options
@click.pass_context
def bank_activity(ctx, start_date: str | None, end_date: str | None, **period_flags):
    """Show income, expenses and the expense breakdown by category."""
    db = ctx.obj["db"]
    service = TransactionService(db)
    start, end = resolve_cli_date_range(
        ctx, start_date=start_date, end_date=end_date, period_flags=period_flags
    )
    echo_json(bank_activity_dict(service.bank_activity(start_date=start, end_date=end)))


def register_commands(cli: click.Group) -> None:
    """Register transaction commands with main CLI."""
    cli.add_command(txn_group, name="txn")
