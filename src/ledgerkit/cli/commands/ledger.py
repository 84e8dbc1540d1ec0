"""Ledger and trial balance commands."""

import click
from ledgerkit.cli.account_resolution import resolve_account_or_exit
from ledgerkit.cli.date_filters import period_options, pop_period_flags, resolve_cli_date_range
from ledgerkit.cli.error_handling import format_amount, handle_domain_error
from ledgerkit.domain.account import AccountService
from ledgerkit.domain.balance import BalanceService
from ledgerkit.domain.errors import DomainError
from ledgerkit.utils.date_parser import parse_date


@click.group()
def ledger_group():
    """Read ledgers and balances."""
    pass


@ledger_group.command("account")
@click.argument("account", metavar="ACCOUNT")
@click.option("--start-date", help="Start date (YYYY-MM-DD)")
@click.option("--end-date", help="End date (YYYY-MM-DD)")
@period_options
@click.pass_context
def account_ledger(ctx, account: str, start_date: str | None, end_date: str | None, **period_kwargs):
    """Show an account's lines with running balances.

    Examples:
        ledgerkit ledger account 1000
        ledgerkit ledger account 1000 --last-month
    """
    db = ctx.obj["db"]
    account_service = AccountService(db)
    service = BalanceService(db)

    account_id = resolve_account_or_exit(ctx, account_service, account)
    start, end = resolve_cli_date_range(
        ctx,
        start_date=start_date,
        end_date=end_date,
        period_flags=pop_period_flags(period_kwargs),
    )

    try:
        account_obj = account_service.require_account(account_id)
        lines = service.account_ledger(account_id, start_date=start, end_date=end)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"\nLedger for {account_obj.code} {account_obj.name} ({account_obj.account_type.value})")
    click.echo("-" * 100)
    if not lines:
        click.echo("No ledger lines found.")
        return

    click.echo(f"{'Date':<10}  {'Entry':>5}  {'Description':<36} {'Debit':>13} {'Credit':>13} {'Balance':>14}")
    for line in lines:
        click.echo(
            f"{line.date!s:<10}  {line.journal_id:>5}  {(line.description or '')[:36]:<36} "
            f"{format_amount(line.debit_amount):>13} {format_amount(line.credit_amount):>13} "
            f"{format_amount(line.balance):>14}"
        )
    click.echo("-" * 100)
    click.echo(f"Current balance: {format_amount(account_obj.presented_balance)}")


@ledger_group.command("general")
@click.option("--start-date", help="Start date (YYYY-MM-DD)")
@click.option("--end-date", help="End date (YYYY-MM-DD)")
@click.option("--account", help="Account code or ID")
@click.option("--description", help="Only lines whose description contains this text")
@period_options
@click.pass_context
def general_ledger(
    ctx,
    start_date: str | None,
    end_date: str | None,
    account: str | None,
    description: str | None,
    **period_kwargs,
):
    """Show ledger lines across all accounts."""
    db = ctx.obj["db"]
    account_service = AccountService(db)
    service = BalanceService(db)

    start, end = resolve_cli_date_range(
        ctx,
        start_date=start_date,
        end_date=end_date,
        period_flags=pop_period_flags(period_kwargs),
    )
    account_id = resolve_account_or_exit(ctx, account_service, account) if account else None

    lines = service.general_ledger(
        start_date=start, end_date=end, account_id=account_id, description=description
    )
    if not lines:
        click.echo("No ledger lines found.")
        return

    codes = {acc.id: acc.code for acc in db.list_accounts()}
    click.echo(f"\n{'Date':<10}  {'Entry':>5}  {'Account':<8} {'Description':<36} {'Debit':>13} {'Credit':>13}")
    click.echo("-" * 92)
    for line in lines:
        click.echo(
            f"{line.date!s:<10}  {line.journal_id:>5}  {codes.get(line.account_id, '?'):<8} "
            f"{(line.description or '')[:36]:<36} {format_amount(line.debit_amount):>13} "
            f"{format_amount(line.credit_amount):>13}"
        )


@ledger_group.command("trial-balance")
@click.option("--as-of", help="Only count lines dated on or before this date")
@click.option("--include-zero", is_flag=True, help="Include accounts with a zero balance")
@click.pass_context
def trial_balance(ctx, as_of: str | None, include_zero: bool):
    """Show the trial balance. Debit and credit totals must agree."""
    db = ctx.obj["db"]
    service = BalanceService(db)

    as_of_date = None
    if as_of:
        try:
            as_of_date = parse_date(as_of)
        except ValueError as e:
            click.echo(f"Error: Invalid date format: {e}", err=True)
            ctx.exit(1)

    report = service.trial_balance(as_of_date=as_of_date, include_zero=include_zero)

    title = f"Trial Balance as of {as_of_date}" if as_of_date else "Trial Balance"
    click.echo(f"\n{title}")
    click.echo("-" * 80)
    click.echo(f"{'Code':<8} {'Account':<30} {'Type':<9} {'Debit':>14} {'Credit':>14}")
    click.echo("-" * 80)
    for row in report.rows:
        click.echo(
            f"{row.account_code:<8} {row.account_name[:30]:<30} {row.account_type.value:<9} "
            f"{format_amount(row.debit_balance):>14} {format_amount(row.credit_balance):>14}"
        )
    click.echo("=" * 80)
    click.echo(
        f"{'Total':<49} {format_amount(report.debit_total):>14} {format_amount(report.credit_total):>14}"
    )
    click.echo(f"{'Difference':<49} {format_amount(report.difference):>14}")


@ledger_group.command("recompute")
@click.argument("account", metavar="ACCOUNT", required=False)
@click.option("--all", "all_accounts", is_flag=True, help="Recompute every account")
@click.pass_context
def recompute(ctx, account: str | None, all_accounts: bool):
    """Rebuild running balances from the ledger lines.

    Examples:
        ledgerkit ledger recompute 1000
        ledgerkit ledger recompute --all
    """
    if bool(account) == all_accounts:
        click.echo("Error: Specify either ACCOUNT or --all.", err=True)
        ctx.exit(1)

    db = ctx.obj["db"]
    account_service = AccountService(db)
    service = BalanceService(db)

    if all_accounts:
        account_ids = [acc.id for acc in db.list_accounts()]
    else:
        account_ids = [resolve_account_or_exit(ctx, account_service, account)]

    failed = service.recompute_accounts(account_ids)
    if failed:
        click.echo(f"Error: Could not recompute accounts: {', '.join(map(str, failed))}", err=True)
        ctx.exit(1)
    click.echo(f"Recomputed {len(account_ids)} account{'s' if len(account_ids) != 1 else ''}")


def register_commands(cli):
    """Register ledger commands with main CLI."""
    cli.add_command(ledger_group, name="ledger")
