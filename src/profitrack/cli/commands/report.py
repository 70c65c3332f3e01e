"""Profitability report commands."""

import click

from profitrack.cli.date_filters import date_range_options, resolve_cli_date_range
from profitrack.cli.error_handling import echo_json, handle_domain_error, parse_or_exit
from profitrack.domain.entities import GroupBy, Granularity
from profitrack.domain.errors import DomainError
from profitrack.domain.reports import ReportService
from profitrack.utils.date_parser import get_date_range
from profitrack.utils.money import parse_percentage


@click.group()
def report_group():
    """Profitability, margin, trend and reconciliation reports."""
    pass


@report_group.command("profitability")
@date_range_options
@click.option(
    "--group-by",
    type=click.Choice([g.value for g in GroupBy]),
    default=GroupBy.SERVICE_TYPE.value,
    show_default=True,
)
@click.option("--service-type", help="Only jobs with this service type")
@click.pass_context
def profitability(
    ctx,
    start_date: str | None,
    end_date: str | None,
    group_by: str,
    service_type: str | None,
    **period_flags,
):
    """Show profit and margin per group of jobs."""
    reports = ReportService(ctx.obj["db"], ctx.obj["settings"])
    start, end = resolve_cli_date_range(
        ctx, start_date=start_date, end_date=end_date, period_flags=period_flags
    )
    echo_json(
        reports.profitability(start, end, group_by=GroupBy(group_by), service_type=service_type)
    )


@report_group.command("margins")
@date_range_options
@click.option("--threshold", help="Margin percentage below which a job is low-margin")
@click.option("--limit", type=int, default=10, show_default=True, help="Number of high-margin jobs")
@click.pass_context
def margins(
    ctx,
    start_date: str | None,
    end_date: str | None,
    threshold: str | None,
    limit: int,
    **period_flags,
):
    """Show the lowest and highest margin jobs."""
    reports = ReportService(ctx.obj["db"], ctx.obj["settings"])
    start, end = resolve_cli_date_range(
        ctx, start_date=start_date, end_date=end_date, period_flags=period_flags
    )
    margin_threshold = (
        parse_or_exit(ctx, parse_percentage, threshold, "threshold") if threshold is not None else None
    )
    echo_json(reports.margins(start, end, threshold=margin_threshold, limit=limit))


@report_group.command("alerts")
@date_range_options
@click.option("--margin-threshold", help="Margin percentage below which a job is flagged")
@click.option("--cost-spike-threshold", help="Percent over estimate that counts as a cost spike")
@click.pass_context
def alerts(
    ctx,
    start_date: str | None,
    end_date: str | None,
    margin_threshold: str | None,
    cost_spike_threshold: str | None,
    **period_flags,
):
    """Show margin alerts and recommendations."""
    reports = ReportService(ctx.obj["db"], ctx.obj["settings"])
    start, end = resolve_cli_date_range(
        ctx, start_date=start_date, end_date=end_date, period_flags=period_flags
    )
    margin = (
        parse_or_exit(ctx, parse_percentage, margin_threshold, "margin threshold")
        if margin_threshold is not None
        else None
    )
    spike = (
        parse_or_exit(ctx, parse_percentage, cost_spike_threshold, "cost spike threshold")
        if cost_spike_threshold is not None
        else None
    )
    echo_json(reports.alerts(start, end, margin_threshold=margin, cost_spike_threshold=spike))


@report_group.command("trends")
@date_range_options
@click.option(
    "--granularity",
    type=click.Choice([g.value for g in Granularity]),
    default=Granularity.MONTH.value,
    show_default=True,
)
@click.pass_context
def trends(ctx, start_date: str | None, end_date: str | None, granularity: str, **period_flags):
    """Show revenue and profit per period. Defaults to the last 12 months."""
    reports = ReportService(ctx.obj["db"], ctx.obj["settings"])
    start, end = resolve_cli_date_range(
        ctx,
        start_date=start_date,
        end_date=end_date,
        period_flags=period_flags,
        default_range=get_date_range("last-12-months"),
    )
    echo_json(reports.trends(start, end, granularity=Granularity(granularity)))


@report_group.command("reconcile")
@date_range_options
@click.pass_context
def reconcile(ctx, start_date: str | None, end_date: str | None, **period_flags):
    """Compare internal figures with the accounting system. Defaults to this year."""
    reports = ReportService(ctx.obj["db"], ctx.obj["settings"])
    default_start, default_end = get_date_range("this-year")
    start, end = resolve_cli_date_range(
        ctx, start_date=start_date, end_date=end_date, period_flags=period_flags
    )
    start = start or default_start
    end = end or default_end

    try:
        echo_json(reports.reconcile(start, end))
    except DomainError as e:
        handle_domain_error(ctx, e)


def register_commands(cli: click.Group) -> None:
    """Register report commands with main CLI."""
    cli.add_command(report_group, name="report")
