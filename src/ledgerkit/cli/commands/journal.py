"""Journal entry commands."""

from decimal import Decimal

import click
from ledgerkit.cli.account_resolution import resolve_account_or_exit
from ledgerkit.cli.date_filters import period_options, pop_period_flags, resolve_cli_date_range
from ledgerkit.cli.error_handling import format_amount, handle_domain_error
from ledgerkit.domain.account import AccountService
from ledgerkit.domain.entities import JournalEntry, JournalLineInput, JournalStatus
from ledgerkit.domain.errors import DomainError
from ledgerkit.domain.journal import JournalService
from ledgerkit.utils.amount_parser import parse_non_negative_amount
from ledgerkit.utils.date_parser import parse_date

LINE_HELP = "Line as ACCOUNT:DEBIT:CREDIT, e.g. 1000:500:0 (repeat for each line)"


@click.group()
def journal_group():
    """Post and manage journal entries."""
    pass


def parse_line_spec(ctx, account_service: AccountService, spec: str) -> JournalLineInput:
    """Parse an ACCOUNT:DEBIT:CREDIT option value into a journal line."""
    parts = spec.rsplit(":", 2)
    if len(parts) != 3:
        click.echo(f"Error: Invalid line '{spec}'. Expected ACCOUNT:DEBIT:CREDIT", err=True)
        ctx.exit(1)

    account, debit, credit = parts
    account_id = resolve_account_or_exit(ctx, account_service, account)
    try:
        debit_amount = parse_non_negative_amount(debit) if debit.strip() else Decimal("0")
        credit_amount = parse_non_negative_amount(credit) if credit.strip() else Decimal("0")
    except ValueError as e:
        click.echo(f"Error: Invalid line '{spec}': {e}", err=True)
        ctx.exit(1)

    return JournalLineInput(
        account_id=account_id, debit_amount=debit_amount, credit_amount=credit_amount
    )


def _parse_date_or_exit(ctx, value: str):
    try:
        return parse_date(value)
    except ValueError as e:
        click.echo(f"Error: Invalid date format: {e}", err=True)
        ctx.exit(1)


def _echo_entry(entry: JournalEntry, codes: dict[int, str]) -> None:
    click.echo(f"\nJournal Entry {entry.reference} (ID: {entry.id})")
    click.echo(f"  Date: {entry.date}")
    click.echo(f"  Status: {entry.status.value}")
    click.echo(f"  Description: {entry.description}")
    click.echo(f"  Created by: {entry.created_by}")
    if entry.reversal_of_id is not None:
        click.echo(f"  Reverses entry: {entry.reversal_of_id}")
    click.echo("-" * 72)
    click.echo(f"  {'Line':>6}  {'Account':<12} {'Debit':>14} {'Credit':>14}")
    for line in entry.lines:
        click.echo(
            f"  {line.id:>6}  {codes.get(line.account_id, str(line.account_id)):<12} "
            f"{format_amount(line.debit_amount):>14} {format_amount(line.credit_amount):>14}"
        )
    click.echo("-" * 72)
    click.echo(
        f"  {'':>6}  {'Total':<12} {format_amount(entry.debit_total):>14} "
        f"{format_amount(entry.credit_total):>14}"
    )


def _account_codes(db) -> dict[int, str]:
    return {acc.id: acc.code for acc in db.list_accounts()}


@journal_group.command("post")
@click.option("--date", "entry_date", default="today", help="Entry date (YYYY-MM-DD or 'today')")
@click.option("--description", required=True, help="Entry description")
@click.option("--line", "lines", multiple=True, required=True, help=LINE_HELP)
@click.option("--draft", is_flag=True, help="Save as an editable draft")
@click.pass_context
def post_entry(ctx, entry_date: str, description: str, lines: tuple[str, ...], draft: bool):
    """Post a balanced journal entry.

    Examples:
        ledgerkit journal post --description "Cash sale" --line 1000:1000:0 --line 4000:0:1000
        ledgerkit journal post --date 2025-01-15 --description "Rent" \\
            --line 6000:1200:0 --line 1000:0:1200 --draft
    """
    db = ctx.obj["db"]
    service = JournalService(db)
    account_service = AccountService(db)

    parsed_date = _parse_date_or_exit(ctx, entry_date)
    line_inputs = [parse_line_spec(ctx, account_service, spec) for spec in lines]

    try:
        entry = service.post(
            date=parsed_date,
            description=description,
            lines=line_inputs,
            actor=ctx.obj["actor"],
            status=JournalStatus.DRAFT if draft else JournalStatus.POSTED,
        )
        click.echo(
            f"Created {entry.status.value} entry {entry.reference} (ID: {entry.id}) "
            f"for {format_amount(entry.debit_total)}"
        )
    except DomainError as e:
        handle_domain_error(ctx, e)


@journal_group.command("show")
@click.argument("entry_id", type=int)
@click.pass_context
def show_entry(ctx, entry_id: int):
    """Show a journal entry with its lines."""
    db = ctx.obj["db"]
    service = JournalService(db)

    try:
        entry = service.require_entry(entry_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    _echo_entry(entry, _account_codes(db))
    reversal = db.find_reversal_of(entry.id)
    if reversal is not None:
        click.echo(f"\nReversed by {reversal.reference} (ID: {reversal.id})")


@journal_group.command("list")
@click.option("--start-date", help="Start date (YYYY-MM-DD or relative like 'yesterday')")
@click.option("--end-date", help="End date (YYYY-MM-DD or relative like 'today')")
@click.option("--account", help="Account code or ID")
@click.option(
    "--status",
    type=click.Choice([s.value for s in JournalStatus], case_sensitive=False),
    help="Only show draft or posted entries",
)
@period_options
@click.pass_context
def list_entries(
    ctx,
    start_date: str | None,
    end_date: str | None,
    account: str | None,
    status: str | None,
    **period_kwargs,
):
    """List journal entries, newest first."""
    db = ctx.obj["db"]
    service = JournalService(db)
    account_service = AccountService(db)

    start, end = resolve_cli_date_range(
        ctx,
        start_date=start_date,
        end_date=end_date,
        period_flags=pop_period_flags(period_kwargs),
    )
    account_id = resolve_account_or_exit(ctx, account_service, account) if account else None

    entries = service.list_entries(
        start_date=start,
        end_date=end,
        account_id=account_id,
        status=JournalStatus(status.lower()) if status else None,
    )
    if not entries:
        click.echo("No journal entries found.")
        return

    click.echo(f"\nFound {len(entries)} journal entr{'y' if len(entries) == 1 else 'ies'}:")
    click.echo("-" * 96)
    for entry in entries:
        click.echo(
            f"ID: {entry.id:4d} | {entry.reference} | {entry.date} | {entry.status.value:6s} | "
            f"{format_amount(entry.debit_total):>14s} | {entry.description}"
        )


@journal_group.command("update")
@click.argument("entry_id", type=int)
@click.option("--date", "entry_date", help="New entry date")
@click.option("--description", help="New description")
@click.option("--line", "lines", multiple=True, help=f"{LINE_HELP}; replaces all lines")
@click.pass_context
def update_entry(
    ctx, entry_id: int, entry_date: str | None, description: str | None, lines: tuple[str, ...]
):
    """Edit a draft entry.

    Only the provided fields change. Passing any --line replaces every line.

    Examples:
        ledgerkit journal update 3 --description "Office rent (January)"
        ledgerkit journal update 3 --line 6000:1250:0 --line 1000:0:1250
    """
    db = ctx.obj["db"]
    service = JournalService(db)
    account_service = AccountService(db)

    try:
        existing = service.require_entry(entry_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    new_date = _parse_date_or_exit(ctx, entry_date) if entry_date else existing.date
    if lines:
        line_inputs = [parse_line_spec(ctx, account_service, spec) for spec in lines]
    else:
        line_inputs = [
            JournalLineInput(
                account_id=line.account_id,
                debit_amount=line.debit_amount,
                credit_amount=line.credit_amount,
                description=line.description if line.description != existing.description else None,
            )
            for line in existing.lines
        ]

    try:
        entry = service.update_entry(
            entry_id=entry_id,
            date=new_date,
            description=description if description is not None else existing.description,
            lines=line_inputs,
            actor=ctx.obj["actor"],
        )
        click.echo(f"Updated draft entry {entry.reference}")
    except DomainError as e:
        handle_domain_error(ctx, e)


@journal_group.command("delete")
@click.argument("entry_id", type=int)
@click.option("--yes", is_flag=True, help="Skip the confirmation prompt")
@click.pass_context
def delete_entry(ctx, entry_id: int, yes: bool):
    """Delete a draft entry and undo its effect on balances."""
    db = ctx.obj["db"]
    service = JournalService(db)

    try:
        entry = service.require_entry(entry_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    if not yes and not click.confirm(f"Are you sure you want to delete entry {entry.reference}?"):
        click.echo("Deletion cancelled.")
        return

    try:
        service.delete_entry(entry_id)
        click.echo(f"Deleted draft entry {entry.reference}")
    except DomainError as e:
        handle_domain_error(ctx, e)


@journal_group.command("post-draft")
@click.argument("entry_id", type=int)
@click.pass_context
def post_draft(ctx, entry_id: int):
    """Post a draft entry. Posted entries can only be reversed."""
    db = ctx.obj["db"]
    service = JournalService(db)

    try:
        entry = service.post_draft(entry_id)
        click.echo(f"Posted entry {entry.reference}")
    except DomainError as e:
        handle_domain_error(ctx, e)


@journal_group.command("reverse")
@click.argument("entry_id", type=int)
@click.option("--date", "reversal_date", help="Reversal date (defaults to today)")
@click.option("--description", help="Reversal description")
@click.pass_context
def reverse_entry(ctx, entry_id: int, reversal_date: str | None, description: str | None):
    """Post an entry that cancels a posted entry.

    Examples:
        ledgerkit journal reverse 7
        ledgerkit journal reverse 7 --date 2025-02-01 --description "Void duplicate invoice"
    """
    db = ctx.obj["db"]
    service = JournalService(db)

    parsed_date = _parse_date_or_exit(ctx, reversal_date) if reversal_date else None
    try:
        reversal = service.reverse_entry(
            entry_id, actor=ctx.obj["actor"], date=parsed_date, description=description
        )
        click.echo(f"Reversed entry {entry_id} with {reversal.reference} (ID: {reversal.id})")
    except DomainError as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register journal commands with main CLI."""
    cli.add_command(journal_group, name="journal")
