"""Main CLI entry point."""

import os

import click
from ledgerkit.database.factories import create_sqlite_database
from ledgerkit.domain.account import DEFAULT_OWNER
from ledgerkit.logging_config import configure_logging

# Import and register all commands at module level
from ledgerkit.cli.commands import (
    account,
    journal,
    ledger,
    reconcile,
)


def _default_actor() -> str:
    return os.environ.get("USER") or "cli"


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides LEDGERKIT_DB_PATH environment variable)",
    envvar="LEDGERKIT_DB_PATH",
)
@click.option(
    "--owner",
    default=DEFAULT_OWNER,
    show_default=True,
    envvar="LEDGERKIT_OWNER",
    help="Owner scope for account codes",
)
@click.option(
    "--actor",
    envvar="LEDGERKIT_ACTOR",
    help="Name recorded as creator of entries and runs (defaults to the login name)",
)
@click.option(
    "--log-level",
    default="WARNING",
    show_default=True,
    envvar="LEDGERKIT_LOG_LEVEL",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging verbosity (written to stderr)",
)
@click.pass_context
def cli(ctx, db_path: str | None, owner: str, actor: str | None, log_level: str):
    """Ledgerkit - Double-entry ledger and bank reconciliation.

    Post balanced journal entries against a chart of accounts, read ledgers
    and trial balances, and reconcile bank statements against the ledger.
    """
    ctx.ensure_object(dict)
    configure_logging(log_level)

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        db = create_sqlite_database(database_path=db_path)
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db
        ctx.obj["owner"] = owner
        ctx.obj["actor"] = actor or _default_actor()


# Register all commands
account.register_commands(cli)
journal.register_commands(cli)
ledger.register_commands(cli)
reconcile.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
