"""Journal posting domain service.

This is the only write path into the ledger. Every entry is validated as a
balanced double-entry transaction before anything is written; the entry and
its lines are then committed as one unit and the affected accounts'
balances are recomputed.
"""

import logging
from datetime import date as date_type
from decimal import Decimal, InvalidOperation
from typing import Iterable, Optional, Sequence

from ledgerkit.database.base import Database
from ledgerkit.domain.balance import BalanceService
from ledgerkit.domain.entities import (
    BALANCE_EPSILON,
    JournalEntry,
    JournalLineInput,
    JournalStatus,
)
from ledgerkit.domain.errors import (
    ConflictError,
    LockedPeriodError,
    NotFoundError,
    ValidationError,
    account_inactive,
    account_not_found,
    journal_entry_not_found,
    period_locked,
    unbalanced_entry,
)

log = logging.getLogger(__name__)


def format_reference(entry_date: date_type, sequence: int) -> str:
    """Build a human-readable journal reference, e.g. JE-20250115-0001."""
    return f"JE-{entry_date:%Y%m%d}-{sequence:04d}"


def _to_amount(value, field: str, position: int) -> Decimal:
    if value is None or value == "":
        return Decimal("0")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Line {position}: invalid {field} '{value}'")
    if not amount.is_finite():
        raise ValidationError(f"Line {position}: invalid {field} '{value}'")
    if amount < 0:
        raise ValidationError(f"Line {position}: {field} cannot be negative")
    return amount


class JournalService:
    """Service for posting, editing and reversing journal entries."""

    def __init__(self, db: Database):
        """Initialize journal service.

        Args:
            db: Database instance
        """
        self.db = db
        self.balances = BalanceService(db)

    def post(
        self,
        date: date_type,
        description: str,
        lines: Sequence[JournalLineInput],
        actor: str,
        status: JournalStatus = JournalStatus.POSTED,
        reversal_of_id: Optional[int] = None,
    ) -> JournalEntry:
        """Validate and atomically record a journal entry.

        Args:
            date: Entry date
            description: Entry description
            lines: At least two debit/credit lines
            actor: Who is posting (stored as created_by)
            status: POSTED (default) or DRAFT
            reversal_of_id: ID of the entry this one reverses, if any

        Returns:
            The created journal entry with its lines

        Raises:
            ValidationError: If the entry is imbalanced, has fewer than two
                lines, negative amounts, or unknown/inactive accounts
            LockedPeriodError: If a line falls into a locked period
        """
        description = self._validate_header(date, description)
        normalized = self._validate_lines(lines)
        self._check_period_locks((line.account_id, date) for line in normalized)

        account_ids = {line.account_id for line in normalized}
        with self.db.account_lock(account_ids):
            with self.db.transaction():
                self.db.lock_account_rows(account_ids)
                reference = format_reference(date, self.db.next_reference_number(date))
                entry_id = self.db.create_journal_entry(
                    reference=reference,
                    date=date,
                    description=description,
                    status=status,
                    created_by=actor,
                    reversal_of_id=reversal_of_id,
                )
                self._write_lines(entry_id, date, description, normalized)
                self.db.mark_accounts_stale(account_ids)
            self.balances.recompute_accounts(account_ids)

        entry = self.require_entry(entry_id)
        log.info(
            "Posted %s journal entry %s (%s) by %s: %s across %d lines",
            entry.status.value,
            entry.reference,
            entry.id,
            actor,
            entry.debit_total,
            len(entry.lines),
        )
        return entry

    def update_entry(
        self,
        entry_id: int,
        date: date_type,
        description: str,
        lines: Sequence[JournalLineInput],
        actor: str,
    ) -> JournalEntry:
        """Replace a draft entry's header and lines.

        The old lines' balance contribution is reversed by deleting them and
        recomputing every account touched before or after the edit.

        Raises:
            NotFoundError: If the entry doesn't exist
            ConflictError: If the entry is posted
            ValidationError: If the new lines are invalid
            LockedPeriodError: If old or new lines fall into a locked period
        """
        existing = self.require_entry(entry_id)
        if existing.status != JournalStatus.DRAFT:
            raise ConflictError(
                f"Journal entry {existing.reference} is posted and cannot be edited; reverse it instead"
            )
        description = self._validate_header(date, description)
        normalized = self._validate_lines(lines)
        self._check_period_locks(
            [(line.account_id, existing.date) for line in existing.lines]
            + [(line.account_id, date) for line in normalized]
        )

        account_ids = existing.account_ids | {line.account_id for line in normalized}
        with self.db.account_lock(account_ids):
            with self.db.transaction():
                self.db.lock_account_rows(account_ids)
                self.db.mark_accounts_stale(account_ids)
                self.db.update_journal_entry(entry_id, date=date, description=description)
                self.db.delete_ledger_lines(entry_id)
                self._write_lines(entry_id, date, description, normalized)
            self.balances.recompute_accounts(account_ids)

        log.info("Updated draft journal entry %s by %s", existing.reference, actor)
        return self.require_entry(entry_id)

    def delete_entry(self, entry_id: int) -> None:
        """Delete a draft entry and reverse its balance effect.

        Raises:
            NotFoundError: If the entry doesn't exist
            ConflictError: If the entry is posted
            LockedPeriodError: If the entry falls into a locked period
        """
        existing = self.require_entry(entry_id)
        if existing.status != JournalStatus.DRAFT:
            raise ConflictError(
                f"Journal entry {existing.reference} is posted and cannot be deleted; reverse it instead"
            )
        self._check_period_locks((line.account_id, existing.date) for line in existing.lines)

        account_ids = existing.account_ids
        with self.db.account_lock(account_ids):
            with self.db.transaction():
                self.db.lock_account_rows(account_ids)
                self.db.mark_accounts_stale(account_ids)
                self.db.delete_journal_entry(entry_id)
            self.balances.recompute_accounts(account_ids)

        log.info("Deleted draft journal entry %s", existing.reference)

    def post_draft(self, entry_id: int) -> JournalEntry:
        """Move a draft entry to posted, after which it is immutable.

        Raises:
            NotFoundError: If the entry doesn't exist
            ConflictError: If the entry is already posted
            LockedPeriodError: If the entry falls into a locked period
        """
        existing = self.require_entry(entry_id)
        if existing.status != JournalStatus.DRAFT:
            raise ConflictError(f"Journal entry {existing.reference} is already posted")
        self._check_period_locks((line.account_id, existing.date) for line in existing.lines)

        self.db.update_journal_entry(entry_id, status=JournalStatus.POSTED)
        log.info("Posted draft journal entry %s", existing.reference)
        return self.require_entry(entry_id)

    def reverse_entry(
        self,
        entry_id: int,
        actor: str,
        date: Optional[date_type] = None,
        description: Optional[str] = None,
    ) -> JournalEntry:
        """Post an entry that swaps the debits and credits of a posted entry.

        Args:
            entry_id: Posted entry to reverse
            actor: Who is reversing
            date: Reversal date (defaults to today)
            description: Reversal description (defaults to "Reversal of <reference>")

        Returns:
            The reversing journal entry

        Raises:
            NotFoundError: If the entry doesn't exist
            ConflictError: If the entry is a draft or was already reversed
            LockedPeriodError: If the reversal date falls into a locked period
        """
        existing = self.require_entry(entry_id)
        if existing.status != JournalStatus.POSTED:
            raise ConflictError(
                f"Journal entry {existing.reference} is a draft; delete or edit it instead"
            )
        reversal = self.db.find_reversal_of(entry_id)
        if reversal is not None:
            raise ConflictError(
                f"Journal entry {existing.reference} was already reversed by {reversal.reference}"
            )

        lines = [
            JournalLineInput(
                account_id=line.account_id,
                debit_amount=line.credit_amount,
                credit_amount=line.debit_amount,
                description=line.description,
            )
            for line in existing.lines
        ]
        return self.post(
            date=date or date_type.today(),
            description=description or f"Reversal of {existing.reference}",
            lines=lines,
            actor=actor,
            reversal_of_id=existing.id,
        )

    def get_entry(self, entry_id: int) -> Optional[JournalEntry]:
        """Get journal entry by ID.

        Args:
            entry_id: Journal entry ID

        Returns:
            Journal entry or None if not found
        """
        return self.db.get_journal_entry(entry_id)

    def require_entry(self, entry_id: int) -> JournalEntry:
        """Get journal entry by ID or raise NotFoundError."""
        entry = self.db.get_journal_entry(entry_id)
        if entry is None:
            raise NotFoundError(journal_entry_not_found(entry_id))
        return entry

    def list_entries(
        self,
        start_date: Optional[date_type] = None,
        end_date: Optional[date_type] = None,
        account_id: Optional[int] = None,
        status: Optional[JournalStatus] = None,
    ) -> list[JournalEntry]:
        """List journal entries with filters, newest first."""
        return self.db.list_journal_entries(
            start_date=start_date, end_date=end_date, account_id=account_id, status=status
        )

    def _validate_header(self, date: Optional[date_type], description: Optional[str]) -> str:
        if date is None:
            raise ValidationError("Journal entry date is required")
        description = (description or "").strip()
        if not description:
            raise ValidationError("Journal entry description is required")
        return description

    def _validate_lines(self, lines: Sequence[JournalLineInput]) -> list[JournalLineInput]:
        """Check line count, amounts, accounts and balance; return normalized lines."""
        if lines is None or len(lines) < 2:
            raise ValidationError("Journal entries must include at least two lines")

        normalized = []
        for position, line in enumerate(lines, start=1):
            debit = _to_amount(line.debit_amount, "debit amount", position)
            credit = _to_amount(line.credit_amount, "credit amount", position)
            if debit == 0 and credit == 0:
                raise ValidationError(f"Line {position}: a debit or credit amount is required")

            account = self.db.get_account(line.account_id)
            if account is None:
                raise ValidationError(account_not_found(line.account_id))
            if not account.is_active:
                raise ValidationError(account_inactive(account.code))

            normalized.append(
                JournalLineInput(
                    account_id=line.account_id,
                    debit_amount=debit,
                    credit_amount=credit,
                    description=line.description,
                )
            )

        debit_total = sum((line.debit_amount for line in normalized), Decimal("0"))
        credit_total = sum((line.credit_amount for line in normalized), Decimal("0"))
        if abs(debit_total - credit_total) > BALANCE_EPSILON:
            raise ValidationError(unbalanced_entry(debit_total, credit_total))
        return normalized

    def _check_period_locks(self, touched: Iterable[tuple[int, date_type]]) -> None:
        """Reject writes dated on or before an account's locked period end."""
        earliest: dict[int, date_type] = {}
        for account_id, line_date in touched:
            if account_id not in earliest or line_date < earliest[account_id]:
                earliest[account_id] = line_date

        for account_id, earliest_date in earliest.items():
            lock = self.db.get_latest_period_lock(account_id)
            if lock is not None and earliest_date <= lock.period_end:
                raise LockedPeriodError(period_locked(account_id, lock.period_end))

    def _write_lines(
        self,
        entry_id: int,
        date: date_type,
        description: str,
        lines: Iterable[JournalLineInput],
    ) -> None:
        for line in lines:
            self.db.add_ledger_line(
                journal_id=entry_id,
                account_id=line.account_id,
                date=date,
                description=line.description or description,
                debit_amount=line.debit_amount,
                credit_amount=line.credit_amount,
            )
