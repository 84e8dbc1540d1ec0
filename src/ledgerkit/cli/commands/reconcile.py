"""Bank reconciliation commands."""

import click
from ledgerkit.cli.account_resolution import resolve_account_or_exit
from ledgerkit.cli.error_handling import format_amount, handle_domain_error
from ledgerkit.domain.account import AccountService
from ledgerkit.domain.entities import (
    BulkAction,
    ItemOutcome,
    ItemResolution,
    MatchType,
    ReconciliationRun,
    ReconciliationStats,
    RunItem,
)
from ledgerkit.domain.errors import DomainError
from ledgerkit.domain.statement import load_statement
from ledgerkit.domain.workflow import ReconciliationWorkflow
from ledgerkit.utils.date_parser import parse_date


@click.group()
def reconcile_group():
    """Reconcile bank statements against the ledger."""
    pass


def _echo_stats(stats: ReconciliationStats) -> None:
    click.echo(
        f"  Items: {stats.total_items} total | {stats.matched_items} exact | "
        f"{stats.adjusted_items} fuzzy | {stats.unmatched_items} unmatched"
    )
    click.echo(f"  Bank balance:   {format_amount(stats.bank_balance):>14}")
    click.echo(f"  Ledger balance: {format_amount(stats.ledger_balance):>14}")
    click.echo(
        f"  Review: {stats.pending_items} pending | {stats.approved_items} approved | "
        f"{stats.created_items} created | {stats.manual_items} manual | "
        f"{stats.rejected_items} rejected"
    )
    click.echo(f"  Difference:     {format_amount(stats.difference):>14}")


def _echo_run(run: ReconciliationRun, pending_only: bool = False) -> None:
    click.echo(f"\nReconciliation run {run.id} for account {run.account_id}: {run.status.value}")
    click.echo(f"  Created by {run.created_by} at {run.created_at:%Y-%m-%d %H:%M}")
    if run.completed_at is not None:
        suffix = " (override)" if run.overridden else ""
        click.echo(f"  Completed at {run.completed_at:%Y-%m-%d %H:%M}{suffix}")
    _echo_stats(run.stats)

    items = run.pending_items if pending_only else list(run.items)
    if not items:
        click.echo("\nNo pending items." if pending_only else "\nNo items.")
        return

    click.echo("-" * 104)
    click.echo(
        f"{'Item':>5}  {'Date':<10}  {'Description':<30} {'Amount':>12} {'Type':<6} "
        f"{'Match':<6} {'Line':>5} {'Resolution':<10}"
    )
    for item in items:
        statement = item.statement_item
        line = str(item.ledger_line_id) if item.ledger_line_id is not None else "-"
        click.echo(
            f"{item.id:>5}  {statement.date!s:<10}  {statement.description[:30]:<30} "
            f"{format_amount(statement.amount):>12} {statement.type.value:<6} "
            f"{item.match_type.value:<6} {line:>5} {item.resolution.value:<10}"
        )


def _echo_outcomes(ctx, outcomes: list[ItemOutcome] | tuple[ItemOutcome, ...]) -> None:
    failures = 0
    for outcome in outcomes:
        if outcome.ok:
            click.echo(f"  Item {outcome.item_id}: {outcome.message}")
        else:
            failures += 1
            click.echo(f"  Item {outcome.item_id}: failed: {outcome.message}", err=True)
    click.echo(f"{len(outcomes) - failures} succeeded, {failures} failed")
    if failures:
        ctx.exit(1)


def _fits_action(action: BulkAction, item: RunItem) -> bool:
    if action == BulkAction.CREATE:
        return item.match_type == MatchType.NONE or item.resolution == ItemResolution.REJECTED
    return item.match_type == MatchType.FUZZY and item.resolution == ItemResolution.PENDING


def _require_items(ctx, items: tuple[int, ...]) -> None:
    if not items:
        click.echo("Error: Specify at least one ITEM.", err=True)
        ctx.exit(1)


@reconcile_group.command("auto-match")
@click.argument("statement_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--account", required=True, help="Bank account code or ID to reconcile")
@click.pass_context
def auto_match(ctx, statement_file: str, account: str):
    """Match a normalized statement (JSON or CSV) against an account's ledger.

    The statement must list date, description, amount, type (credit/debit)
    and optionally reference for each transaction. A new run replaces any
    open run of the same account.

    Examples:
        ledgerkit reconcile auto-match january.json --account 1000
    """
    db = ctx.obj["db"]
    workflow = ReconciliationWorkflow(db)
    account_id = resolve_account_or_exit(ctx, AccountService(db), account)

    try:
        transactions = load_statement(statement_file)
        run = workflow.start_run(transactions, account_id, actor=ctx.obj["actor"])
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    _echo_run(run)


@reconcile_group.command("runs")
@click.option("--account", required=True, help="Account code or ID")
@click.pass_context
def list_runs(ctx, account: str):
    """List reconciliation runs of an account, newest first."""
    db = ctx.obj["db"]
    workflow = ReconciliationWorkflow(db)
    account_id = resolve_account_or_exit(ctx, AccountService(db), account)

    runs = workflow.list_runs(account_id)
    if not runs:
        click.echo("No reconciliation runs found.")
        return

    for run in runs:
        stats = run.stats
        click.echo(
            f"Run {run.id:4d} | {run.created_at:%Y-%m-%d} | {run.status.value:12s} | "
            f"{stats.total_items:3d} items | {len(run.pending_items):3d} pending | "
            f"difference {format_amount(stats.difference)}"
        )


@reconcile_group.command("show")
@click.argument("run_id", type=int)
@click.option("--pending", is_flag=True, help="Only show items awaiting review")
@click.pass_context
def show_run(ctx, run_id: int, pending: bool):
    """Show a reconciliation run and its items."""
    db = ctx.obj["db"]
    workflow = ReconciliationWorkflow(db)

    try:
        run = workflow.require_run(run_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    _echo_run(run, pending_only=pending)


@reconcile_group.command("approve")
@click.argument("run_id", type=int)
@click.argument("items", type=int, nargs=-1)
@click.pass_context
def approve(ctx, run_id: int, items: tuple[int, ...]):
    """Approve exact or fuzzy matches. The ledger is not changed."""
    _require_items(ctx, items)
    db = ctx.obj["db"]
    workflow = ReconciliationWorkflow(db)

    try:
        outcomes = workflow.approve_matches(run_id, list(items))
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    _echo_outcomes(ctx, outcomes)


@reconcile_group.command("reject")
@click.argument("run_id", type=int)
@click.argument("items", type=int, nargs=-1)
@click.pass_context
def reject(ctx, run_id: int, items: tuple[int, ...]):
    """Reject wrong matches; the items go back to pending review.

    Examples:
        ledgerkit reconcile reject 4 12
    """
    _require_items(ctx, items)
    db = ctx.obj["db"]
    workflow = ReconciliationWorkflow(db)

    try:
        outcomes = workflow.reject_matches(run_id, list(items))
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    _echo_outcomes(ctx, outcomes)


@reconcile_group.command("create-entries")
@click.argument("run_id", type=int)
@click.argument("items", type=int, nargs=-1)
@click.option("--debit-account", required=True, help="Account to debit (code or ID)")
@click.option("--credit-account", required=True, help="Account to credit (code or ID)")
@click.pass_context
def create_entries(
    ctx, run_id: int, items: tuple[int, ...], debit_account: str, credit_account: str
):
    """Post journal entries for unmatched or rejected statement items.

    Examples:
        ledgerkit reconcile create-entries 4 12 13 --debit-account 6100 --credit-account 1000
    """
    _require_items(ctx, items)
    db = ctx.obj["db"]
    workflow = ReconciliationWorkflow(db)
    account_service = AccountService(db)
    debit_id = resolve_account_or_exit(ctx, account_service, debit_account)
    credit_id = resolve_account_or_exit(ctx, account_service, credit_account)

    try:
        outcomes = workflow.create_entries_for_unmatched(
            run_id, list(items), debit_id, credit_id, actor=ctx.obj["actor"]
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    _echo_outcomes(ctx, outcomes)


@reconcile_group.command("bulk")
@click.argument("run_id", type=int)
@click.argument("action", type=click.Choice([a.value for a in BulkAction], case_sensitive=False))
@click.argument("items", type=int, nargs=-1)
@click.option("--pending", is_flag=True, help="Apply to every pending item the action fits")
@click.option("--debit-account", help="Account to debit (create only)")
@click.option("--credit-account", help="Account to credit (create only)")
@click.pass_context
def bulk(
    ctx,
    run_id: int,
    action: str,
    items: tuple[int, ...],
    pending: bool,
    debit_account: str | None,
    credit_account: str | None,
):
    """Approve, create entries for, or reject many items at once.

    Each item succeeds or fails on its own; failures are listed and the
    command exits non-zero if any item failed.

    Examples:
        ledgerkit reconcile bulk 4 approve --pending
        ledgerkit reconcile bulk 4 reject 7 8
        ledgerkit reconcile bulk 4 create 12 13 --debit-account 6100 --credit-account 1000
    """
    db = ctx.obj["db"]
    workflow = ReconciliationWorkflow(db)
    account_service = AccountService(db)
    bulk_action = BulkAction(action.lower())

    try:
        run = workflow.require_run(run_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    item_ids = list(items)
    if pending:
        item_ids += [
            item.id for item in run.pending_items
            if _fits_action(bulk_action, item) and item.id not in item_ids
        ]
    _require_items(ctx, tuple(item_ids))

    debit_id = resolve_account_or_exit(ctx, account_service, debit_account) if debit_account else None
    credit_id = (
        resolve_account_or_exit(ctx, account_service, credit_account) if credit_account else None
    )

    try:
        result = workflow.bulk_action(
            run_id,
            bulk_action,
            item_ids,
            debit_account_id=debit_id,
            credit_account_id=credit_id,
            actor=ctx.obj["actor"],
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    _echo_outcomes(ctx, result.outcomes)


@reconcile_group.command("match")
@click.argument("run_id", type=int)
@click.argument("item_id", type=int)
@click.argument("line_id", type=int)
@click.pass_context
def manual_match(ctx, run_id: int, item_id: int, line_id: int):
    """Match a pending item to a ledger line by hand."""
    db = ctx.obj["db"]
    workflow = ReconciliationWorkflow(db)

    try:
        workflow.manual_match(run_id, item_id, line_id)
        click.echo(f"Matched item {item_id} to ledger line {line_id}")
    except DomainError as e:
        handle_domain_error(ctx, e)


@reconcile_group.command("complete")
@click.argument("run_id", type=int)
@click.option("--override", is_flag=True, help="Complete despite pending items or a difference")
@click.pass_context
def complete(ctx, run_id: int, override: bool):
    """Mark a run reconciled."""
    db = ctx.obj["db"]
    workflow = ReconciliationWorkflow(db)

    try:
        run = workflow.complete_run(run_id, override=override)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    suffix = " with override" if run.overridden else ""
    click.echo(f"Run {run.id} reconciled{suffix}")


@reconcile_group.command("lock")
@click.argument("account", metavar="ACCOUNT")
@click.option(
    "--period-end",
    required=True,
    help="Last day of the closed period (YYYY-MM-DD or e.g. 'end of last month')",
)
@click.pass_context
def lock(ctx, account: str, period_end: str):
    """Lock an account's period; earlier-dated postings are rejected afterwards."""
    db = ctx.obj["db"]
    workflow = ReconciliationWorkflow(db)
    account_id = resolve_account_or_exit(ctx, AccountService(db), account)

    try:
        end = parse_date(period_end)
    except ValueError as e:
        click.echo(f"Error: Invalid date format: {e}", err=True)
        ctx.exit(1)

    try:
        period_lock = workflow.lock_reconciliation(account_id, end, actor=ctx.obj["actor"])
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"Account {account} locked through {period_lock.period_end}")


@reconcile_group.command("stats")
@click.option("--account", required=True, help="Account code or ID")
@click.pass_context
def stats(ctx, account: str):
    """Show statistics of the account's latest reconciliation run."""
    db = ctx.obj["db"]
    workflow = ReconciliationWorkflow(db)
    account_id = resolve_account_or_exit(ctx, AccountService(db), account)

    current = workflow.get_stats(account_id)
    if current is None:
        click.echo("No reconciliation runs found.")
        return

    click.echo(f"\nReconciliation statistics for account {account}")
    _echo_stats(current)


def register_commands(cli):
    """Register reconciliation commands with main CLI."""
    cli.add_command(reconcile_group, name="reconcile")
