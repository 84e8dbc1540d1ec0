"""Account management commands."""

import click
from ledgerkit.cli.account_resolution import resolve_account_or_exit
from ledgerkit.cli.error_handling import format_amount, handle_domain_error
from ledgerkit.domain.account import AccountService, parse_account_type
from ledgerkit.domain.entities import AccountType
from ledgerkit.domain.errors import DomainError

ACCOUNT_TYPES = [t.value for t in AccountType]


@click.group()
def account_group():
    """Manage the chart of accounts."""
    pass


@account_group.command("create")
@click.argument("code", metavar="CODE")
@click.argument("name", metavar="ACCOUNT_NAME")
@click.option(
    "--type",
    "account_type",
    required=True,
    type=click.Choice(ACCOUNT_TYPES, case_sensitive=False),
    help="Account type",
)
@click.pass_context
def create_account(ctx, code: str, name: str, account_type: str):
    """Create a new account.

    CODE must be unique within the owner scope.

    Examples:
        ledgerkit account create 1000 "Cash" --type asset
        ledgerkit account create 4000 "Sales Revenue" --type revenue
    """
    db = ctx.obj["db"]
    service = AccountService(db)

    try:
        account_id = service.create_account(
            code=code, name=name, account_type=account_type, owner=ctx.obj["owner"]
        )
        click.echo(f"Created {account_type.lower()} account {code} '{name}' (ID: {account_id})")
    except DomainError as e:
        handle_domain_error(ctx, e)


@account_group.command("list")
@click.option(
    "--type",
    "account_type",
    type=click.Choice(ACCOUNT_TYPES, case_sensitive=False),
    help="Only show accounts of this type",
)
@click.option("--active-only", is_flag=True, help="Hide inactive accounts")
@click.pass_context
def list_accounts(ctx, account_type: str | None, active_only: bool):
    """List accounts with their current balances."""
    db = ctx.obj["db"]
    service = AccountService(db)

    accounts = service.list_accounts(
        owner=ctx.obj["owner"],
        account_type=parse_account_type(account_type) if account_type else None,
        active_only=active_only,
    )
    if not accounts:
        click.echo("No accounts found.")
        return

    click.echo("\nAccounts:")
    click.echo("-" * 80)
    for acc in accounts:
        status = "" if acc.is_active else " (inactive)"
        click.echo(
            f"ID: {acc.id:3d} | {acc.code:8s} | {acc.name:24s} | {acc.account_type.value:9s} | "
            f"{format_amount(acc.presented_balance):>14s}{status}"
        )


@account_group.command("rename")
@click.argument("account", metavar="ACCOUNT")
@click.argument("new_name", metavar="NEW_NAME")
@click.pass_context
def rename_account(ctx, account: str, new_name: str) -> None:
    """Rename an account.

    ACCOUNT can be an account code or ID.

    Examples:
        ledgerkit account rename 1000 "Petty Cash"
    """
    db = ctx.obj["db"]
    service = AccountService(db)
    account_id = resolve_account_or_exit(ctx, service, account)

    try:
        service.rename_account(account_id=account_id, name=new_name)
        click.echo(f"Renamed account to '{new_name}'")
    except DomainError as e:
        handle_domain_error(ctx, e)


@account_group.command("activate")
@click.argument("account", metavar="ACCOUNT")
@click.pass_context
def activate_account(ctx, account: str) -> None:
    """Allow new postings to an account."""
    _set_active(ctx, account, True)


@account_group.command("deactivate")
@click.argument("account", metavar="ACCOUNT")
@click.pass_context
def deactivate_account(ctx, account: str) -> None:
    """Reject new postings to an account. Its history stays intact."""
    _set_active(ctx, account, False)


def _set_active(ctx, account: str, is_active: bool) -> None:
    db = ctx.obj["db"]
    service = AccountService(db)
    account_id = resolve_account_or_exit(ctx, service, account)

    try:
        service.set_active(account_id, is_active)
        click.echo(f"Account {account} {'activated' if is_active else 'deactivated'}")
    except DomainError as e:
        handle_domain_error(ctx, e)


@account_group.command("delete")
@click.argument("account", metavar="ACCOUNT")
@click.option("--yes", is_flag=True, help="Skip the confirmation prompt")
@click.pass_context
def delete_account(ctx, account: str, yes: bool) -> None:
    """Delete an account.

    ACCOUNT can be an account code or ID.

    The account can only be deleted if no ledger line references it.
    Deactivate it instead to keep its history.

    Examples:
        ledgerkit account delete 1000
    """
    db = ctx.obj["db"]
    service = AccountService(db)
    account_id = resolve_account_or_exit(ctx, service, account)
    account_obj = service.require_account(account_id)

    if not yes and not click.confirm(
        f"Are you sure you want to delete account {account_obj.code} '{account_obj.name}'?"
    ):
        click.echo("Deletion cancelled.")
        return

    try:
        service.delete_account(account_id)
        click.echo(f"Deleted account {account_obj.code} '{account_obj.name}'")
    except DomainError as e:
        handle_domain_error(ctx, e)


@account_group.command("balance")
@click.argument("account", metavar="ACCOUNT")
@click.pass_context
def account_balance(ctx, account: str) -> None:
    """Show an account's current balance in its normal direction."""
    db = ctx.obj["db"]
    service = AccountService(db)
    account_id = resolve_account_or_exit(ctx, service, account)

    try:
        account_obj = service.require_account(account_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"{account_obj.code} {account_obj.name}: {format_amount(account_obj.presented_balance)}")


def register_commands(cli):
    """Register account commands with main CLI."""
    cli.add_command(account_group, name="account")
