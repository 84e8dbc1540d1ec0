"""Abstract database interface."""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import Optional, Iterable
from datetime import date, datetime
from decimal import Decimal

# Import entities directly to avoid circular import through domain/__init__.py
from ledgerkit.domain.entities import (
    Account,
    AccountType,
    JournalEntry,
    JournalStatus,
    LedgerLine,
    PeriodLock,
    ReconciliationRun,
    RunStatus,
    ItemResolution,
    StatementTransaction,
    MatchType,
    Confidence,
)


class Database(ABC):
    """Abstract database interface for the ledger store.

    Write methods commit immediately unless they run inside ``transaction()``,
    in which case everything is committed (or rolled back) together when the
    outermost ``transaction()`` block exits.
    """

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    # Transactions and serialization
    @abstractmethod
    def transaction(self) -> AbstractContextManager[None]:
        """Open an atomic unit of work; nested calls join the outer one."""
        pass

    @abstractmethod
    def account_lock(self, account_ids: Iterable[int]) -> AbstractContextManager[None]:
        """Serialize writers per account (lines written, then balances recomputed)."""
        pass

    @abstractmethod
    def lock_account_rows(self, account_ids: Iterable[int]) -> None:
        """Take row locks on accounts inside the current transaction, where supported."""
        pass

    # Account operations
    @abstractmethod
    def create_account(
        self, owner: str, code: str, name: str, account_type: AccountType
    ) -> int:
        """Create a new account. Returns account ID."""
        pass

    @abstractmethod
    def get_account(self, account_id: int) -> Optional[Account]:
        """Get account by ID."""
        pass

    @abstractmethod
    def get_account_by_code(self, code: str, owner: str) -> Optional[Account]:
        """Get account by code within an owner scope."""
        pass

    @abstractmethod
    def list_accounts(
        self,
        owner: Optional[str] = None,
        account_type: Optional[AccountType] = None,
        active_only: bool = False,
    ) -> list[Account]:
        """List accounts ordered by code."""
        pass

    @abstractmethod
    def update_account(
        self, account_id: int, name: Optional[str] = None, is_active: Optional[bool] = None
    ) -> None:
        """Update account name and/or active flag."""
        pass

    @abstractmethod
    def delete_account(self, account_id: int) -> None:
        """Delete an account."""
        pass

    @abstractmethod
    def get_account_line_count(self, account_id: int) -> int:
        """Count ledger lines referencing an account."""
        pass

    @abstractmethod
    def mark_accounts_stale(self, account_ids: Iterable[int]) -> None:
        """Flag cached balances as needing a rebuild."""
        pass

    @abstractmethod
    def list_stale_account_ids(self) -> list[int]:
        """IDs of accounts whose cached balance needs a rebuild."""
        pass

    @abstractmethod
    def set_account_balance(self, account_id: int, current_balance: Decimal) -> None:
        """Store the recomputed balance and clear the stale flag."""
        pass

    # Journal operations
    @abstractmethod
    def next_reference_number(self, day: date) -> int:
        """Increment and return the journal reference counter for a day."""
        pass

    @abstractmethod
    def create_journal_entry(
        self,
        reference: str,
        date: date,
        description: str,
        status: JournalStatus,
        created_by: str,
        reversal_of_id: Optional[int] = None,
    ) -> int:
        """Create a journal entry header. Returns entry ID."""
        pass

    @abstractmethod
    def add_ledger_line(
        self,
        journal_id: int,
        account_id: int,
        date: date,
        description: Optional[str],
        debit_amount: Decimal,
        credit_amount: Decimal,
    ) -> int:
        """Append a ledger line to a journal entry. Returns line ID."""
        pass

    @abstractmethod
    def get_journal_entry(self, entry_id: int) -> Optional[JournalEntry]:
        """Get journal entry with its lines."""
        pass

    @abstractmethod
    def find_reversal_of(self, entry_id: int) -> Optional[JournalEntry]:
        """Get the entry that reverses the given entry, if any."""
        pass

    @abstractmethod
    def list_journal_entries(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        account_id: Optional[int] = None,
        status: Optional[JournalStatus] = None,
    ) -> list[JournalEntry]:
        """List journal entries, newest first."""
        pass

    @abstractmethod
    def update_journal_entry(
        self,
        entry_id: int,
        date: Optional[date] = None,
        description: Optional[str] = None,
        status: Optional[JournalStatus] = None,
    ) -> None:
        """Update journal entry header fields."""
        pass

    @abstractmethod
    def delete_ledger_lines(self, journal_id: int) -> None:
        """Delete all lines of a journal entry."""
        pass

    @abstractmethod
    def delete_journal_entry(self, entry_id: int) -> None:
        """Delete a journal entry and its lines."""
        pass

    # Ledger line operations
    @abstractmethod
    def list_ledger_lines(
        self,
        account_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        description: Optional[str] = None,
    ) -> list[LedgerLine]:
        """List ledger lines in chronological order (date, then creation order)."""
        pass

    @abstractmethod
    def get_ledger_line(self, line_id: int) -> Optional[LedgerLine]:
        """Get ledger line by ID."""
        pass

    @abstractmethod
    def update_line_balances(self, balances: dict[int, Decimal]) -> None:
        """Write running balance snapshots keyed by line ID."""
        pass

    # Period locks
    @abstractmethod
    def create_period_lock(self, account_id: int, period_end: date, locked_by: str) -> int:
        """Record a locked period. Returns lock ID."""
        pass

    @abstractmethod
    def get_latest_period_lock(self, account_id: int) -> Optional[PeriodLock]:
        """Get the lock with the latest period end for an account."""
        pass

    # Reconciliation runs
    @abstractmethod
    def create_reconciliation_run(
        self,
        account_id: int,
        status: RunStatus,
        created_by: str,
        bank_balance: Decimal,
        ledger_balance: Decimal,
    ) -> int:
        """Create a reconciliation run. Returns run ID."""
        pass

    @abstractmethod
    def add_run_item(
        self,
        run_id: int,
        position: int,
        statement_item: StatementTransaction,
        ledger_line_id: Optional[int],
        match_type: MatchType,
        confidence: Confidence,
        needs_review: bool,
        needs_creation: bool,
        amount_delta: Optional[Decimal],
        date_delta_days: Optional[int],
    ) -> int:
        """Add an item snapshot to a run. Returns item ID."""
        pass

    @abstractmethod
    def get_reconciliation_run(self, run_id: int) -> Optional[ReconciliationRun]:
        """Get reconciliation run with its items."""
        pass

    @abstractmethod
    def list_reconciliation_runs(
        self, account_id: int, include_superseded: bool = True
    ) -> list[ReconciliationRun]:
        """List runs for an account, newest first."""
        pass

    @abstractmethod
    def update_run_status(
        self,
        run_id: int,
        status: RunStatus,
        completed_at: Optional[datetime] = None,
        overridden: Optional[bool] = None,
    ) -> None:
        """Update run status."""
        pass

    @abstractmethod
    def update_run_balances(
        self, run_id: int, bank_balance: Decimal, ledger_balance: Decimal
    ) -> None:
        """Update the bank/ledger balance snapshot of a run."""
        pass

    @abstractmethod
    def update_run_item(
        self,
        item_id: int,
        resolution: ItemResolution,
        ledger_line_id: Optional[int] = None,
        journal_id: Optional[int] = None,
        clear_ledger_line: bool = False,
    ) -> None:
        """Record how a run item was resolved.

        Args:
            item_id: Run item ID
            resolution: New resolution
            ledger_line_id: Ledger line the item now points at, if it changes
            journal_id: Journal entry created for the item, if any
            clear_ledger_line: Drop the item's ledger line (a rejected match)
        """
        pass
