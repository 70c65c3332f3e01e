"""Cost template commands."""

import click

from profitrack.cli.error_handling import echo_json, handle_domain_error, parse_or_exit
from profitrack.domain.errors import DomainError
from profitrack.domain.reports import template_variance_dict
from profitrack.domain.template import TemplateService
from profitrack.utils.money import parse_amount, parse_percentage, to_money


@click.group()
def template_group():
    """Manage cost templates."""
    pass


@template_group.command("add")
@click.argument("name")
@click.option("--type", "template_type", required=True, help="Template type (e.g., wedding, installation)")
@click.option("--materials", default="0", show_default=True, help="Estimated materials cost")
@click.option("--labor", default="0", show_default=True, help="Estimated labor cost")
@click.option("--overhead", default="0", show_default=True, help="Estimated overhead cost")
@click.option("--sale-price", help="Target sale price")
@click.option("--target-margin", help="Target margin percentage")
@click.pass_context
def add_template(
    ctx,
    name: str,
    template_type: str,
    materials: str,
    labor: str,
    overhead: str,
    sale_price: str | None,
    target_margin: str | None,
):
    """Add a cost template.

    Examples:
        profitrack template add "Standard wedding" --type wedding --materials 800 --labor 1200
    """
    db = ctx.obj["db"]
    service = TemplateService(db)

    estimates = {
        label: parse_or_exit(ctx, parse_amount, value, f"{label} cost")
        for label, value in (("materials", materials), ("labor", labor), ("overhead", overhead))
    }
    price = parse_or_exit(ctx, parse_amount, sale_price, "sale price") if sale_price is not None else None
    margin = (
        parse_or_exit(ctx, parse_percentage, target_margin, "target margin")
        if target_margin is not None
        else None
    )

    try:
        template_id = service.create_template(
            name=name,
            template_type=template_type,
            estimated_materials_cost=estimates["materials"],
            estimated_labor_cost=estimates["labor"],
            estimated_overhead_cost=estimates["overhead"],
            target_sale_price=price,
            target_margin=margin,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    else:
        click.echo(f"Created template '{name.strip()}' (ID: {template_id})")


@template_group.command("use")
@click.argument("job_id", type=int)
@click.argument("template_id", type=int)
@click.option("--materials", help="Actual materials cost, defaults to the estimate")
@click.option("--labor", help="Actual labor cost, defaults to the estimate")
@click.option("--overhead", help="Actual overhead cost, defaults to the estimate")
@click.pass_context
def use_template(
    ctx,
    job_id: int,
    template_id: int,
    materials: str | None,
    labor: str | None,
    overhead: str | None,
):
    """Apply TEMPLATE_ID to JOB_ID."""
    db = ctx.obj["db"]
    service = TemplateService(db)

    actuals = {
        label: parse_or_exit(ctx, parse_amount, value, f"{label} cost") if value is not None else None
        for label, value in (("materials", materials), ("labor", labor), ("overhead", overhead))
    }

    try:
        usage_id = service.use_template(
            job_id,
            template_id,
            actual_materials_cost=actuals["materials"],
            actual_labor_cost=actuals["labor"],
            actual_overhead_cost=actuals["overhead"],
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    else:
        click.echo(f"Applied template {template_id} to job {job_id} (usage ID: {usage_id})")


@template_group.command("list")
@click.pass_context
def list_templates(ctx):
    """List cost templates."""
    db = ctx.obj["db"]
    service = TemplateService(db)

    templates = service.list_templates()
    if not templates:
        click.echo("No templates found.")
        return

    click.echo(f"{'ID':>5}  {'Name':<30} {'Type':<16} {'Estimate':>12}")
    click.echo("-" * 68)
    for template in templates:
        estimate = to_money(template.estimated_total)
        click.echo(
            f"{template.id:>5}  {template.name[:30]:<30} {template.template_type[:16]:<16} "
            f"{'$' + format(estimate, ','):>12}"
        )


@template_group.command("variance")
@click.option("--template", "template_id", type=int, help="Only this template")
@click.pass_context
def variance(ctx, template_id: int | None):
    """Compare template estimates with the actual costs of their usages."""
    db = ctx.obj["db"]
    service = TemplateService(db)

    try:
        report = service.variance_report(template_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    else:
        echo_json([template_variance_dict(v) for v in report])


def register_commands(cli: click.Group) -> None:
    """Register template commands with main CLI."""
    cli.add_command(template_group, name="template")
