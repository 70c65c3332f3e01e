"""Main CLI entry point."""

import click
import structlog

from profitrack.config import configure_logging, get_settings
from profitrack.database.factories import create_sqlite_database

# Import and register all commands at module level
from profitrack.cli.commands import alloc, external, job, report, template, txn

logger = structlog.get_logger(__name__)


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides PROFITRACK_DB_PATH environment variable)",
    envvar="PROFITRACK_DB_PATH",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Log level (overrides PROFITRACK_LOG_LEVEL environment variable)",
)
@click.pass_context
def cli(ctx, db_path: str | None, log_level: str | None):
    """Profitrack - job profitability tracking.

    Attribute bank transactions to jobs, resolve each job's true cost from
    the evidence available and report profit, margins, trends and how the
    numbers reconcile with your accounting system.
    """
    ctx.ensure_object(dict)

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        settings = get_settings()
        configure_logging(level=log_level.upper() if log_level else None, settings=settings)
        db = create_sqlite_database(database_path=db_path)
        db.connect()
        db.initialize_schema()
        ctx.call_on_close(db.disconnect)
        ctx.obj["db"] = db
        ctx.obj["settings"] = settings
        logger.debug("database_opened", url=db.database_url, command=ctx.invoked_subcommand)


# Register all commands
job.register_commands(cli)
txn.register_commands(cli)
alloc.register_commands(cli)
template.register_commands(cli)
external.register_commands(cli)
report.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
