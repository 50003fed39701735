"""Main CLI entry point."""

import click
from ledgerly.config import Settings
from ledgerly.database.factories import create_sqlite_database
from ledgerly.logging_config import configure_logging

# Import and register all commands at module level
from ledgerly.cli.commands import (
    account,
    post,
    transaction,
    report,
    debt,
)


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides LEDGERLY_DB_PATH environment variable)",
    envvar="LEDGERLY_DB_PATH",
)
@click.option(
    "--owner",
    help="Owner whose ledger is used (overrides LEDGERLY_OWNER environment variable)",
    envvar="LEDGERLY_OWNER",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    help="Logging level (overrides LEDGERLY_LOG_LEVEL environment variable)",
)
@click.pass_context
def cli(ctx, db_path: str | None, owner: str | None, log_level: str | None):
    """Ledgerly - double-entry personal finance ledger.

    Record balanced transactions, derive balances and net worth, and compare
    debt repayment plans before committing to one.
    """
    ctx.ensure_object(dict)
    settings = Settings.from_env()
    configure_logging(log_level or settings.log_level, settings.log_file)
    ctx.obj["settings"] = settings
    ctx.obj["owner"] = owner

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        db = create_sqlite_database(database_path=db_path)
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db
        ctx.call_on_close(db.disconnect)


# Register all commands
account.register_commands(cli)
post.register_commands(cli)
transaction.register_commands(cli)
report.register_commands(cli)
debt.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
