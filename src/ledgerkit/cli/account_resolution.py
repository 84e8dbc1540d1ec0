"""CLI helpers for account resolution."""

from __future__ import annotations

import click
from ledgerkit.domain.account import AccountService
from ledgerkit.domain.errors import NotFoundError
from ledgerkit.utils.account_resolver import resolve_account


def resolve_account_or_exit(
    ctx: click.Context, account_service: AccountService, account: str | int
) -> int:
    """Resolve account code or ID within the CLI owner scope, or exit with a CLI error.

    This keeps error messaging and exit behavior consistent across commands.
    """
    owner = ctx.obj.get("owner", "default") if ctx.obj else "default"
    try:
        return resolve_account(account_service, account, owner=owner)
    except NotFoundError as exc:
        click.echo(f"Error: {exc}", err=True)
        ctx.exit(1)
