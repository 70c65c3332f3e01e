"""Job management commands."""

from datetime import date

import click

from profitrack.cli.date_filters import date_range_options, resolve_cli_date_range
from profitrack.cli.error_handling import echo_json, handle_domain_error, parse_or_exit
from profitrack.domain.entities import JobSource, JobStatus, LineItemSplit
from profitrack.domain.errors import DomainError
from profitrack.domain.job import JobService
from profitrack.domain.reports import ReportService, job_record_dict, override_dict
from profitrack.utils.date_parser import parse_date
from profitrack.utils.money import parse_amount, to_money


@click.group()
def job_group():
    """Manage jobs and their cost overrides."""
    pass


@job_group.command("add")
@click.argument("client")
@click.argument("revenue")
@click.option("--date", "issue_date", help="Issue date (YYYY-MM-DD or relative like 'today'), defaults to today")
@click.option("--reference", help="Invoice number")
@click.option("--service-type", help="Service type label")
@click.option(
    "--status",
    type=click.Choice([s.value for s in JobStatus]),
    default=JobStatus.DRAFT.value,
    show_default=True,
)
@click.option(
    "--source",
    type=click.Choice([s.value for s in JobSource]),
    default=JobSource.INTERNAL.value,
    show_default=True,
    help="Where the job originated",
)
@click.option("--external-id", help="ID of the job in the accounting system")
@click.option("--cost", help="Actual total cost, if already known")
@click.option("--template", "template_ids", type=int, multiple=True, help="Template ID (repeatable)")
@click.pass_context
def add_job(
    ctx,
    client: str,
    revenue: str,
    issue_date: str | None,
    reference: str | None,
    service_type: str | None,
    status: str,
    source: str,
    external_id: str | None,
    cost: str | None,
    template_ids: tuple[int, ...],
):
    """Add a job for CLIENT with REVENUE.

    Examples:
        profitrack job add "Smith Wedding" 5000 --date 2024-06-01 --template 1
        profitrack job add "Acme" 1200 --source external --external-id INV-77
    """
    db = ctx.obj["db"]
    service = JobService(db)

    job_revenue = parse_or_exit(ctx, parse_amount, revenue, "revenue")
    job_cost = parse_or_exit(ctx, parse_amount, cost, "cost") if cost is not None else None
    job_date = parse_or_exit(ctx, parse_date, issue_date, "date") if issue_date else date.today()

    try:
        job_id = service.create_job(
            client=client,
            revenue=job_revenue,
            issue_date=job_date,
            reference=reference,
            service_type=service_type,
            status=JobStatus(status),
            source=JobSource(source),
            external_id=external_id,
            total_cost=job_cost,
            template_ids=template_ids,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    else:
        click.echo(f"Created job for '{client.strip()}' (ID: {job_id})")


@job_group.command("list")
@date_range_options
@click.option("--service-type", help="Only jobs with this service type")
@click.pass_context
def list_jobs(ctx, start_date: str | None, end_date: str | None, service_type: str | None, **period_flags):
    """List jobs."""
    db = ctx.obj["db"]
    service = JobService(db)
    start, end = resolve_cli_date_range(
        ctx, start_date=start_date, end_date=end_date, period_flags=period_flags
    )

    jobs = service.list_jobs(start_date=start, end_date=end, service_type=service_type)
    if not jobs:
        click.echo("No jobs found.")
        return

    click.echo(f"{'ID':>5}  {'Date':<10}  {'Client':<28} {'Reference':<12} {'Revenue':>12}  Source")
    click.echo("-" * 80)
    for job in jobs:
        click.echo(
            f"{job.id:>5}  {job.issue_date.isoformat():<10}  {job.client[:28]:<28} "
            f"{(job.reference or '')[:12]:<12} {'$' + format(to_money(job.revenue), ','):>12}  "
            f"{job.source.value}"
        )


@job_group.command("show")
@click.argument("job_id", type=int)
@click.pass_context
def show_job(ctx, job_id: int):
    """Show a job with its resolved profitability and allocations."""
    db = ctx.obj["db"]
    service = JobService(db)
    reports = ReportService(db, ctx.obj["settings"])

    try:
        job = service.get_job(job_id)
        echo_json(
            {
                "job": job_record_dict(job),
                "profitability": reports.job(job_id),
                "allocations": reports.allocations(job_id=job_id),
            }
        )
    except DomainError as e:
        handle_domain_error(ctx, e)


@job_group.command("update")
@click.argument("job_id", type=int)
@click.option("--revenue", help="New revenue")
@click.option("--status", type=click.Choice([s.value for s in JobStatus]))
@click.pass_context
def update_job(ctx, job_id: int, revenue: str | None, status: str | None):
    """Update a job's revenue or status."""
    db = ctx.obj["db"]
    service = JobService(db)

    if revenue is None and status is None:
        click.echo("Error: Nothing to update. Use --revenue or --status.", err=True)
        ctx.exit(1)

    new_revenue = parse_or_exit(ctx, parse_amount, revenue, "revenue") if revenue is not None else None
    try:
        if new_revenue is not None:
            service.update_revenue(job_id, new_revenue)
        if status is not None:
            service.update_status(job_id, JobStatus(status))
    except DomainError as e:
        handle_domain_error(ctx, e)
    else:
        click.echo(f"Updated job {job_id}")


@job_group.command("override")
@click.argument("job_id", type=int)
@click.option("--materials", help="Materials cost")
@click.option("--labor", help="Labor cost")
@click.option("--overhead", help="Overhead cost")
@click.option("--reason", help="Reason for the override")
@click.pass_context
def override_job(
    ctx,
    job_id: int,
    materials: str | None,
    labor: str | None,
    overhead: str | None,
    reason: str | None,
):
    """Manually set a job's cost breakdown.

    Components that are left out keep their current value.

    Examples:
        profitrack job override 3 --materials 1200 --labor 800 --reason "Supplier invoice"
    """
    db = ctx.obj["db"]
    service = JobService(db)
    values = {
        name: parse_or_exit(ctx, parse_amount, value, f"{name} cost") if value is not None else None
        for name, value in (("materials", materials), ("labor", labor), ("overhead", overhead))
    }

    try:
        override = service.override_costs(
            job_id,
            materials_cost=values["materials"],
            labor_cost=values["labor"],
            overhead_cost=values["overhead"],
            reason=reason,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    else:
        click.echo(
            f"Overrode cost of job {job_id}: total ${to_money(override.new_total_cost):,}, "
            f"profit ${to_money(override.new_profit):,}"
        )


@job_group.command("split")
@click.argument("job_id", type=int)
@click.option(
    "--line",
    "lines",
    type=(str, str, str, str),
    multiple=True,
    required=True,
    help="DESCRIPTION TOTAL INCOME COST for one invoice line (repeatable)",
)
@click.option("--reason", help="Reason for the override")
@click.pass_context
def split_job(ctx, job_id: int, lines: tuple[tuple[str, str, str, str], ...], reason: str | None):
    """Override a job's cost from income/cost splits of its invoice lines.

    Examples:
        profitrack job split 3 --line "Flowers" 1000 600 400 --line "Venue" 2000 1500 500
    """
    db = ctx.obj["db"]
    service = JobService(db)

    splits = [
        LineItemSplit(
            description=description,
            line_total=parse_or_exit(ctx, parse_amount, total, "line total"),
            income=parse_or_exit(ctx, parse_amount, income, "income"),
            cost=parse_or_exit(ctx, parse_amount, cost, "cost"),
        )
        for description, total, income, cost in lines
    ]

    try:
        override = service.override_split(job_id, splits, reason=reason)
    except DomainError as e:
        handle_domain_error(ctx, e)
    else:
        click.echo(
            f"Overrode cost of job {job_id} from {len(splits)} line(s): "
            f"total ${to_money(override.new_total_cost):,}"
        )


@job_group.command("clear-override")
@click.argument("job_id", type=int)
@click.pass_context
def clear_override(ctx, job_id: int):
    """Remove a job's manual cost override."""
    db = ctx.obj["db"]
    service = JobService(db)

    try:
        service.clear_override(job_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    else:
        click.echo(f"Cleared cost override of job {job_id}")


@job_group.command("history")
@click.argument("job_id", type=int)
@click.pass_context
def override_history(ctx, job_id: int):
    """Show a job's cost override history, newest first."""
    db = ctx.obj["db"]
    service = JobService(db)

    try:
        overrides = service.override_history(job_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    else:
        echo_json([override_dict(o) for o in overrides])


@job_group.command("sync")
@click.argument("job_id", type=int)
@click.pass_context
def sync_job(ctx, job_id: int):
    """Mark an externally sourced job as synced with the accounting system."""
    db = ctx.obj["db"]
    service = JobService(db)

    try:
        service.mark_synced(job_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    else:
        click.echo(f"Marked job {job_id} as synced")


def register_commands(cli: click.Group) -> None:
    """Register job commands with main CLI."""
    cli.add_command(job_group, name="job")
