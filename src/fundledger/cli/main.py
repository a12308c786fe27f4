"""Main CLI entry point."""

import click
from fundledger.cli.error_handling import handle_domain_error
from fundledger.config import load_config
from fundledger.database.factories import create_sqlite_database
from fundledger.domain.errors import DomainError
from fundledger.logging_config import configure_logging

# Import and register all commands at module level
from fundledger.cli.commands import (
    account,
    budget,
    journal,
    reference,
    report,
)


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides FUNDLEDGER_DB_PATH environment variable)",
    envvar="FUNDLEDGER_DB_PATH",
)
@click.option(
    "--user",
    default="cli",
    show_default=True,
    envvar="FUNDLEDGER_USER",
    help="Identity recorded as the actor of journal operations",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Log level (overrides FUNDLEDGER_LOG_LEVEL)",
)
@click.pass_context
def cli(ctx, db_path: str | None, user: str, log_level: str | None):
    """Fundledger - double-entry fund accounting ledger.

    Maintain a chart of accounts, record journals through a review and
    posting workflow, track budgets, and produce financial statements.
    """
    ctx.ensure_object(dict)
    try:
        config = load_config(database_path=db_path, log_level=log_level.upper() if log_level else None)
    except DomainError as e:
        handle_domain_error(ctx, e)
    configure_logging(level=config.log_level, json_format=config.log_json)

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        db = create_sqlite_database(database_path=config.database_path)
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db
        ctx.call_on_close(db.disconnect)
    ctx.obj["config"] = config
    ctx.obj["user"] = user


# Register all commands
account.register_commands(cli)
reference.register_commands(cli)
journal.register_commands(cli)
budget.register_commands(cli)
report.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
