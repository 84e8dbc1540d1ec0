"""Reconciliation workflow domain service.

A run snapshots one matcher result for an account and carries it through
review:

    uploaded -> matched -> under_review -> reconciled

Fuzzy and unmatched items keep a run under review until they are approved,
manually matched, or turned into journal entries. Reaching ``reconciled``
is always an explicit step.
"""

import logging
from datetime import datetime, date, UTC
from decimal import Decimal
from typing import Callable, Optional, Sequence

from ledgerkit.database.base import Database
from ledgerkit.domain.entities import (
    BulkAction,
    BulkActionResult,
    ItemOutcome,
    ItemResolution,
    JournalLineInput,
    MatchType,
    PeriodLock,
    ReconciliationRun,
    ReconciliationStats,
    RunItem,
    RunStatus,
    StatementTransaction,
)
from ledgerkit.domain.errors import (
    ConflictError,
    DomainError,
    NotFoundError,
    ValidationError,
    account_not_found,
    run_item_not_found,
    run_not_found,
)
from ledgerkit.domain.journal import JournalService
from ledgerkit.domain.reconciliation import (
    DEFAULT_TOLERANCES,
    MatchTolerances,
    ReconciliationMatcher,
)

log = logging.getLogger(__name__)

CLOSED_STATUSES = (RunStatus.RECONCILED, RunStatus.SUPERSEDED)


class ReconciliationWorkflow:
    """Service driving review, approval and locking of reconciliation runs."""

    def __init__(self, db: Database, tolerances: MatchTolerances = DEFAULT_TOLERANCES):
        """Initialize reconciliation workflow.

        Args:
            db: Database instance
            tolerances: Matcher tier bounds
        """
        self.db = db
        self.matcher = ReconciliationMatcher(db, tolerances)
        self.journal = JournalService(db)

    def start_run(
        self,
        statement_transactions: Sequence[StatementTransaction],
        account_id: int,
        actor: str,
    ) -> ReconciliationRun:
        """Match a statement against an account and record the result as a new run.

        Open runs of the same account are superseded by the new one.

        Args:
            statement_transactions: Normalized statement transactions
            account_id: Account being reconciled
            actor: Who uploaded the statement

        Returns:
            The new run, in ``matched`` or ``under_review`` status

        Raises:
            NotFoundError: If the account doesn't exist
        """
        result = self.matcher.match(statement_transactions, account_id)

        with self.db.transaction():
            for previous in self.db.list_reconciliation_runs(
                account_id, include_superseded=False
            ):
                if previous.status != RunStatus.RECONCILED:
                    self.db.update_run_status(previous.id, RunStatus.SUPERSEDED)
                    log.info("Run %s superseded by a new upload", previous.id)

            run_id = self.db.create_reconciliation_run(
                account_id=account_id,
                status=RunStatus.UPLOADED,
                created_by=actor,
                bank_balance=result.summary.bank_balance,
                ledger_balance=result.summary.ledger_balance,
            )
            for item in result.items:
                self.db.add_run_item(
                    run_id=run_id,
                    position=item.statement_index,
                    statement_item=item.statement_item,
                    ledger_line_id=item.ledger_item.id if item.ledger_item else None,
                    match_type=item.match_type,
                    confidence=item.confidence,
                    needs_review=item.needs_review,
                    needs_creation=item.needs_creation,
                    amount_delta=item.amount_delta,
                    date_delta_days=item.date_delta_days,
                )
            self.db.update_run_status(run_id, RunStatus.MATCHED)
            if result.unmatched_items or result.adjustments:
                self.db.update_run_status(run_id, RunStatus.UNDER_REVIEW)

        run = self.require_run(run_id)
        log.info("Started reconciliation run %s for account %s: %s", run.id, account_id, run.status.value)
        return run

    def get_run(self, run_id: int) -> Optional[ReconciliationRun]:
        """Get a reconciliation run by ID."""
        return self.db.get_reconciliation_run(run_id)

    def require_run(self, run_id: int) -> ReconciliationRun:
        """Get a reconciliation run by ID or raise NotFoundError."""
        run = self.db.get_reconciliation_run(run_id)
        if run is None:
            raise NotFoundError(run_not_found(run_id))
        return run

    def list_runs(self, account_id: int) -> list[ReconciliationRun]:
        """List an account's runs, newest first."""
        return self.db.list_reconciliation_runs(account_id)

    def approve_matches(self, run_id: int, item_ids: Sequence[int]) -> list[ItemOutcome]:
        """Confirm exact or fuzzy matches. Bookkeeping only; the ledger is untouched.

        Approving an already approved item is a no-op.

        Args:
            run_id: Reconciliation run ID
            item_ids: Items to approve

        Returns:
            One outcome per item
        """
        run = self._require_open_run(run_id)

        def approve(item: RunItem) -> ItemOutcome:
            if item.ledger_line_id is None:
                raise ValidationError(f"Item {item.id} has no ledger match to approve")
            if item.resolution != ItemResolution.PENDING:
                return ItemOutcome(item.id, True, f"Item {item.id} already {item.resolution.value}")
            self.db.update_run_item(item.id, ItemResolution.APPROVED)
            return ItemOutcome(item.id, True, f"Approved item {item.id}")

        outcomes = self._apply(run, item_ids, approve)
        self._refresh_balances(run_id)
        return outcomes

    def create_entries_for_unmatched(
        self,
        run_id: int,
        item_ids: Sequence[int],
        debit_account_id: int,
        credit_account_id: int,
        actor: str,
    ) -> list[ItemOutcome]:
        """Post a two-line journal entry for each unmatched or rejected item.

        Each entry debits ``debit_account_id`` and credits ``credit_account_id``
        with the statement amount, dated and described like the statement
        transaction. Items that already have an entry are skipped, and an item
        listed twice is posted once.

        Args:
            run_id: Reconciliation run ID
            item_ids: Unmatched items to create entries for
            debit_account_id: Account to debit
            credit_account_id: Account to credit
            actor: Who is creating the entries

        Returns:
            One outcome per item, carrying the created journal entry ID

        Raises:
            ValidationError: If debit and credit accounts are the same
        """
        run = self._require_open_run(run_id)
        if debit_account_id == credit_account_id:
            raise ValidationError("Debit and credit accounts must differ")

        def create(item: RunItem) -> ItemOutcome:
            if item.resolution == ItemResolution.CREATED:
                return ItemOutcome(
                    item.id, True, f"Item {item.id} already has an entry", item.journal_id
                )
            rejected = item.resolution == ItemResolution.REJECTED
            if item.match_type != MatchType.NONE and not rejected:
                raise ValidationError(f"Item {item.id} is not unmatched")
            if item.resolution != ItemResolution.PENDING and not rejected:
                return ItemOutcome(item.id, True, f"Item {item.id} already {item.resolution.value}")

            statement = item.statement_item
            entry = self.journal.post(
                date=statement.date,
                description=statement.description or f"Bank statement item {item.id}",
                lines=[
                    JournalLineInput(account_id=debit_account_id, debit_amount=statement.amount),
                    JournalLineInput(account_id=credit_account_id, credit_amount=statement.amount),
                ],
                actor=actor,
            )
            reconciled_line = next(
                (line for line in entry.lines if line.account_id == run.account_id), None
            )
            self.db.update_run_item(
                item.id,
                ItemResolution.CREATED,
                ledger_line_id=reconciled_line.id if reconciled_line else None,
                journal_id=entry.id,
            )
            return ItemOutcome(item.id, True, f"Created {entry.reference}", entry.id)

        outcomes = self._apply(run, item_ids, create)
        self._refresh_balances(run_id)
        return outcomes

    def reject_matches(self, run_id: int, item_ids: Sequence[int]) -> list[ItemOutcome]:
        """Undo the matcher's pairing of items with ledger lines.

        A rejected item loses its ledger line and is pending again, so it can
        be manually matched or turned into a journal entry. Rejecting an
        already rejected item is a no-op.

        Args:
            run_id: Reconciliation run ID
            item_ids: Items whose match is wrong

        Returns:
            One outcome per item
        """
        run = self._require_open_run(run_id)

        def reject(item: RunItem) -> ItemOutcome:
            if item.resolution == ItemResolution.REJECTED:
                return ItemOutcome(item.id, True, f"Item {item.id} already rejected")
            if item.resolution == ItemResolution.CREATED:
                raise ValidationError(
                    f"Item {item.id} has a created journal entry; reverse the entry instead"
                )
            if item.ledger_line_id is None:
                raise ValidationError(f"Item {item.id} has no ledger match to reject")
            self.db.update_run_item(item.id, ItemResolution.REJECTED, clear_ledger_line=True)
            return ItemOutcome(item.id, True, f"Rejected match of item {item.id}")

        outcomes = self._apply(run, item_ids, reject)
        if any(o.ok for o in outcomes):
            run = self.require_run(run_id)
            if run.status == RunStatus.MATCHED and run.pending_items:
                self.db.update_run_status(run_id, RunStatus.UNDER_REVIEW)
            log.info("Rejected matches in run %s: %s", run_id, [o.item_id for o in outcomes if o.ok])
        self._refresh_balances(run_id)
        return outcomes

    def manual_match(self, run_id: int, item_id: int, ledger_line_id: int) -> RunItem:
        """Resolve a pending item against a ledger line chosen by the operator.

        Raises:
            NotFoundError: If the run, item or line doesn't exist
            ValidationError: If the item is not pending or the line belongs to another account
            ConflictError: If another item of the run already claims the line
        """
        run = self._require_open_run(run_id)
        item = self._find_item(run, item_id)
        if not item.is_pending:
            raise ValidationError(f"Item {item_id} is not pending review")

        line = self.db.get_ledger_line(ledger_line_id)
        if line is None:
            raise NotFoundError(f"Ledger line {ledger_line_id} not found")
        if line.account_id != run.account_id:
            raise ValidationError(
                f"Ledger line {ledger_line_id} does not belong to account {run.account_id}"
            )
        for other in run.items:
            if other.id != item.id and other.ledger_line_id == ledger_line_id:
                raise ConflictError(
                    f"Ledger line {ledger_line_id} is already matched to item {other.id}"
                )

        self.db.update_run_item(item.id, ItemResolution.MANUAL, ledger_line_id=ledger_line_id)
        self._refresh_balances(run_id)
        log.info("Manually matched item %s of run %s to line %s", item_id, run_id, ledger_line_id)
        return self._find_item(self.require_run(run_id), item_id)

    def bulk_action(
        self,
        run_id: int,
        action: BulkAction | str,
        item_ids: Sequence[int],
        debit_account_id: Optional[int] = None,
        credit_account_id: Optional[int] = None,
        actor: str = "system",
    ) -> BulkActionResult:
        """Apply approve, create or reject across a selection of items.

        Every item is attempted; one item's failure is reported in its own
        outcome and does not stop the rest.

        Raises:
            ValidationError: If the action is unknown, or create is missing accounts
        """
        try:
            action = BulkAction(action)
        except ValueError:
            allowed = ", ".join(a.value for a in BulkAction)
            raise ValidationError(f"Unknown bulk action '{action}'. Expected one of: {allowed}")

        if action == BulkAction.APPROVE:
            outcomes = self.approve_matches(run_id, item_ids)
        elif action == BulkAction.REJECT:
            outcomes = self.reject_matches(run_id, item_ids)
        else:
            if debit_account_id is None or credit_account_id is None:
                raise ValidationError("Creating entries requires a debit and a credit account")
            outcomes = self.create_entries_for_unmatched(
                run_id, item_ids, debit_account_id, credit_account_id, actor
            )
        return BulkActionResult(action=action, outcomes=tuple(outcomes))

    def complete_run(self, run_id: int, override: bool = False) -> ReconciliationRun:
        """Mark a run reconciled.

        Requires no pending items and a zero difference between bank and
        ledger balance, unless ``override`` is set.

        Raises:
            NotFoundError: If the run doesn't exist
            ConflictError: If the run is already closed
            ValidationError: If items are pending or a difference remains without override
        """
        run = self._require_open_run(run_id)
        pending = run.pending_items
        difference = run.stats.difference
        if (pending or difference != 0) and not override:
            raise ValidationError(
                f"Run {run_id} has {len(pending)} pending item"
                f"{'s' if len(pending) != 1 else ''} and a difference of {difference}; "
                "resolve them or override"
            )

        self.db.update_run_status(
            run_id,
            RunStatus.RECONCILED,
            completed_at=datetime.now(UTC),
            overridden=bool(pending or difference != 0),
        )
        log.info("Run %s reconciled%s", run_id, " with override" if override else "")
        return self.require_run(run_id)

    def lock_reconciliation(self, account_id: int, period_end: date, actor: str) -> PeriodLock:
        """Close an account's period; later writes dated on/before period_end fail.

        Locking a date on or before an existing lock returns that lock.

        Raises:
            NotFoundError: If the account doesn't exist
        """
        if self.db.get_account(account_id) is None:
            raise NotFoundError(account_not_found(account_id))

        existing = self.db.get_latest_period_lock(account_id)
        if existing is not None and existing.period_end >= period_end:
            return existing

        self.db.create_period_lock(account_id, period_end, actor)
        log.info("Locked account %s through %s by %s", account_id, period_end.isoformat(), actor)
        return self.db.get_latest_period_lock(account_id)

    def get_stats(self, account_id: int) -> Optional[ReconciliationStats]:
        """Statistics of the account's latest run that has not been superseded."""
        runs = self.db.list_reconciliation_runs(account_id, include_superseded=False)
        if not runs:
            return None
        return runs[0].stats

    def _require_open_run(self, run_id: int) -> ReconciliationRun:
        run = self.require_run(run_id)
        if run.status in CLOSED_STATUSES:
            raise ConflictError(f"Reconciliation run {run_id} is {run.status.value}")
        return run

    def _find_item(self, run: ReconciliationRun, item_id: int) -> RunItem:
        for item in run.items:
            if item.id == item_id:
                return item
        raise NotFoundError(run_item_not_found(run.id, item_id))

    def _apply(
        self,
        run: ReconciliationRun,
        item_ids: Sequence[int],
        action: Callable[[RunItem], ItemOutcome],
    ) -> list[ItemOutcome]:
        outcomes = []
        # Each item is read again so an earlier action in the same batch is visible.
        for item_id in dict.fromkeys(item_ids):
            try:
                outcomes.append(action(self._find_item(self.require_run(run.id), item_id)))
            except DomainError as exc:
                log.warning("Run %s item %s failed: %s", run.id, item_id, exc)
                outcomes.append(ItemOutcome(item_id, False, str(exc)))
        return outcomes

    def _refresh_balances(self, run_id: int) -> None:
        """Re-derive the run's ledger balance from the lines its items now point at."""
        run = self.require_run(run_id)
        ledger_balance = Decimal("0")
        for item in run.items:
            if item.ledger_line_id is None:
                continue
            line = self.db.get_ledger_line(item.ledger_line_id)
            if line is not None:
                ledger_balance += line.net_amount
        self.db.update_run_balances(run_id, run.bank_balance, ledger_balance)
