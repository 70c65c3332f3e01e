"""CLI error handling helpers."""

import json
from decimal import Decimal
from typing import Any

import click

from profitrack.domain.errors import DomainError


def handle_domain_error(ctx: click.Context, error: DomainError | ValueError) -> None:
    """Render a domain error and exit with failure."""
    click.echo(f"Error: {error}", err=True)
    ctx.exit(1)


def parse_or_exit(ctx: click.Context, parser, value: str, label: str) -> Any:
    """Parse a CLI value, exiting with an error message if it is invalid."""
    try:
        return parser(value)
    except ValueError as e:
        click.echo(f"Error: Invalid {label}: {e}", err=True)
        ctx.exit(1)


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def echo_json(data: Any) -> None:
    """Print a report as indented JSON."""
    click.echo(json.dumps(data, indent=2, default=_json_default))
