"""Commands for figures supplied by the accounting system."""

import click

from profitrack.cli.error_handling import handle_domain_error, parse_or_exit
from profitrack.domain.entities import ExternalCostTrust
from profitrack.domain.errors import DomainError
from profitrack.domain.external import ExternalDataService
from profitrack.utils.date_parser import parse_date
from profitrack.utils.money import parse_amount, to_money


@click.group()
def external_group():
    """Record accounting-system costs and P&L summaries."""
    pass


@external_group.command("cost")
@click.argument("job_id", type=int)
@click.argument("amount")
@click.option(
    "--trust",
    type=click.Choice([t.value for t in ExternalCostTrust]),
    default=ExternalCostTrust.ITEM_COST.value,
    show_default=True,
    help="How the accounting system derived the cost",
)
@click.option("--description", help="Description")
@click.pass_context
def record_cost(ctx, job_id: int, amount: str, trust: str, description: str | None):
    """Record an accounting-system cost of AMOUNT for JOB_ID."""
    db = ctx.obj["db"]
    service = ExternalDataService(db)
    cost = parse_or_exit(ctx, parse_amount, amount, "amount")

    try:
        record_id = service.record_cost(
            job_id, cost, trust=ExternalCostTrust(trust), description=description
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    else:
        click.echo(f"Recorded external cost ${to_money(cost):,} for job {job_id} (ID: {record_id})")


@external_group.command("pnl")
@click.option("--start-date", required=True, help="Start of the P&L period")
@click.option("--end-date", required=True, help="End of the P&L period")
@click.option("--income", required=True, help="Total income")
@click.option("--cogs", required=True, help="Cost of goods sold")
@click.option("--expenses", required=True, help="Total operating expenses")
@click.option("--net-income", help="Net income, computed if omitted")
@click.pass_context
def record_pnl(
    ctx,
    start_date: str,
    end_date: str,
    income: str,
    cogs: str,
    expenses: str,
    net_income: str | None,
):
    """Record a P&L summary from the accounting system.

    Examples:
        profitrack external pnl --start-date 2024-01-01 --end-date 2024-03-31 \\
            --income 30000 --cogs 12000 --expenses 8000
    """
    db = ctx.obj["db"]
    service = ExternalDataService(db)

    start = parse_or_exit(ctx, parse_date, start_date, "start date")
    end = parse_or_exit(ctx, parse_date, end_date, "end date")
    net = parse_or_exit(ctx, parse_amount, net_income, "net income") if net_income is not None else None

    try:
        pnl_id = service.record_pnl(
            start,
            end,
            total_income=parse_or_exit(ctx, parse_amount, income, "income"),
            cost_of_goods_sold=parse_or_exit(ctx, parse_amount, cogs, "cost of goods sold"),
            total_expenses=parse_or_exit(ctx, parse_amount, expenses, "expenses"),
            net_income=net,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    else:
        click.echo(f"Recorded P&L for {start.isoformat()} to {end.isoformat()} (ID: {pnl_id})")


def register_commands(cli: click.Group) -> None:
    """Register accounting-system commands with main CLI."""
    cli.add_command(external_group, name="external")
