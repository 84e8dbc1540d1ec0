"""Domain model entities for ledgerkit.

These are pure data classes representing accounting concepts, independent of
database schema. Balances stored on accounts and ledger lines are a cache of
what the ledger lines say; they can always be rebuilt from the lines.
"""

from dataclasses import dataclass, field
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Optional

BALANCE_EPSILON = Decimal("0.01")


class AccountType(str, Enum):
    """Closed set of account types in the chart of accounts."""

    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    REVENUE = "revenue"
    EXPENSE = "expense"

    @property
    def is_debit_normal(self) -> bool:
        """Asset and expense accounts grow with debits."""
        return self in (AccountType.ASSET, AccountType.EXPENSE)


def present_balance(account_type: AccountType, raw_balance: Decimal) -> Decimal:
    """Apply the account type's sign convention to a raw debit-minus-credit balance.

    Args:
        account_type: Type of the account
        raw_balance: Sum of debits minus sum of credits

    Returns:
        Debit-positive balance for asset/expense accounts, credit-positive
        balance for liability/equity/revenue accounts
    """
    if account_type.is_debit_normal:
        return raw_balance
    return -raw_balance


class JournalStatus(str, Enum):
    """Lifecycle status of a journal entry."""

    DRAFT = "draft"
    POSTED = "posted"


class StatementType(str, Enum):
    """Direction of a bank statement transaction, from the bank's point of view."""

    CREDIT = "credit"
    DEBIT = "debit"


class MatchType(str, Enum):
    EXACT = "exact"
    FUZZY = "fuzzy"
    NONE = "none"


class Confidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class RunStatus(str, Enum):
    """Status of a reconciliation run."""

    UPLOADED = "uploaded"
    MATCHED = "matched"
    UNDER_REVIEW = "under_review"
    RECONCILED = "reconciled"
    SUPERSEDED = "superseded"


class ItemResolution(str, Enum):
    """How a reconciliation run item was dealt with by the operator."""

    PENDING = "pending"
    APPROVED = "approved"
    CREATED = "created"
    MANUAL = "manual"
    REJECTED = "rejected"


class BulkAction(str, Enum):
    APPROVE = "approve"
    CREATE = "create"
    REJECT = "reject"


@dataclass(frozen=True)
class Account:
    """Chart-of-accounts entry."""

    id: int
    owner: str
    code: str
    name: str
    account_type: AccountType
    is_active: bool
    current_balance: Decimal
    balance_stale: bool
    created_at: datetime

    @property
    def presented_balance(self) -> Decimal:
        """Current balance with the account type's sign convention applied."""
        return present_balance(self.account_type, self.current_balance)


@dataclass(frozen=True)
class LedgerLine:
    """One account-level debit or credit row of a journal entry."""

    id: int
    journal_id: int
    account_id: int
    date: date
    description: Optional[str]
    debit_amount: Decimal
    credit_amount: Decimal
    balance: Decimal
    created_at: datetime

    @property
    def net_amount(self) -> Decimal:
        """Signed amount of the line, debit minus credit."""
        return self.debit_amount - self.credit_amount


@dataclass(frozen=True)
class JournalEntry:
    """A balanced set of ledger lines recorded as one accounting event."""

    id: int
    reference: str
    date: date
    description: str
    status: JournalStatus
    created_by: str
    created_at: datetime
    reversal_of_id: Optional[int] = None
    lines: tuple[LedgerLine, ...] = ()

    @property
    def debit_total(self) -> Decimal:
        return sum((line.debit_amount for line in self.lines), Decimal("0"))

    @property
    def credit_total(self) -> Decimal:
        return sum((line.credit_amount for line in self.lines), Decimal("0"))

    @property
    def account_ids(self) -> set[int]:
        return {line.account_id for line in self.lines}


@dataclass(frozen=True)
class JournalLineInput:
    """A requested debit/credit line, before it is posted."""

    account_id: int
    debit_amount: Decimal = Decimal("0")
    credit_amount: Decimal = Decimal("0")
    description: Optional[str] = None


@dataclass(frozen=True)
class StatementTransaction:
    """Normalized bank statement transaction as emitted by a statement parser."""

    date: date
    description: str
    amount: Decimal
    type: StatementType
    reference: Optional[str] = None

    @property
    def signed_amount(self) -> Decimal:
        """Amount as it would appear on the bank account's ledger (debit minus credit).

        A statement credit is money paid into the bank account, which the
        ledger records as a debit on the asset account.
        """
        if self.type == StatementType.CREDIT:
            return self.amount
        return -self.amount


@dataclass(frozen=True)
class ReconciliationItem:
    """Classification of one statement transaction by the matcher."""

    statement_index: int
    statement_item: StatementTransaction
    ledger_item: Optional[LedgerLine]
    match_type: MatchType
    confidence: Confidence
    needs_review: bool = False
    needs_creation: bool = False
    amount_delta: Optional[Decimal] = None
    date_delta_days: Optional[int] = None


@dataclass(frozen=True)
class ReconciliationStats:
    """Counts and balances over a reconciliation result set."""

    total_items: int
    matched_items: int
    unmatched_items: int
    adjusted_items: int
    bank_balance: Decimal
    ledger_balance: Decimal
    # Review progress; the counts above describe the matcher's classification.
    pending_items: int = 0
    approved_items: int = 0
    created_items: int = 0
    manual_items: int = 0
    rejected_items: int = 0

    @property
    def difference(self) -> Decimal:
        return self.bank_balance - self.ledger_balance


@dataclass(frozen=True)
class ReconciliationResult:
    """Output of one matcher run."""

    bank_statement: tuple[StatementTransaction, ...]
    ledger_entries: tuple[LedgerLine, ...]
    matched_items: tuple[ReconciliationItem, ...]
    unmatched_items: tuple[ReconciliationItem, ...]
    adjustments: tuple[ReconciliationItem, ...]
    summary: ReconciliationStats

    @property
    def items(self) -> list[ReconciliationItem]:
        """All items in statement order."""
        return sorted(
            self.matched_items + self.unmatched_items + self.adjustments,
            key=lambda item: item.statement_index,
        )


@dataclass(frozen=True)
class RunItem:
    """Persisted snapshot of a reconciliation item inside a workflow run."""

    id: int
    run_id: int
    position: int
    statement_item: StatementTransaction
    ledger_line_id: Optional[int]
    match_type: MatchType
    confidence: Confidence
    needs_review: bool
    needs_creation: bool
    amount_delta: Optional[Decimal]
    date_delta_days: Optional[int]
    resolution: ItemResolution
    journal_id: Optional[int]

    @property
    def is_pending(self) -> bool:
        """Fuzzy and unmatched items stay pending until the operator resolves them.

        A rejected match is pending again: it needs an entry or a manual match.
        """
        if self.resolution == ItemResolution.REJECTED:
            return True
        return (
            self.match_type != MatchType.EXACT
            and self.resolution == ItemResolution.PENDING
        )


@dataclass(frozen=True)
class ReconciliationRun:
    """A reconciliation of one statement upload against an account."""

    id: int
    account_id: int
    status: RunStatus
    created_by: str
    created_at: datetime
    completed_at: Optional[datetime]
    overridden: bool
    bank_balance: Decimal
    ledger_balance: Decimal
    items: tuple[RunItem, ...] = ()

    @property
    def pending_items(self) -> list[RunItem]:
        return [item for item in self.items if item.is_pending]

    @property
    def stats(self) -> ReconciliationStats:
        def resolved(resolution: ItemResolution) -> int:
            return sum(1 for i in self.items if i.resolution == resolution)

        return ReconciliationStats(
            total_items=len(self.items),
            matched_items=sum(1 for i in self.items if i.match_type == MatchType.EXACT),
            unmatched_items=sum(1 for i in self.items if i.match_type == MatchType.NONE),
            adjusted_items=sum(1 for i in self.items if i.match_type == MatchType.FUZZY),
            bank_balance=self.bank_balance,
            ledger_balance=self.ledger_balance,
            pending_items=len(self.pending_items),
            approved_items=resolved(ItemResolution.APPROVED),
            created_items=resolved(ItemResolution.CREATED),
            manual_items=resolved(ItemResolution.MANUAL),
            rejected_items=resolved(ItemResolution.REJECTED),
        )


@dataclass(frozen=True)
class PeriodLock:
    """Closed period for an account; lines dated on or before period_end are immutable."""

    id: int
    account_id: int
    period_end: date
    locked_by: str
    locked_at: datetime


@dataclass(frozen=True)
class ItemOutcome:
    """Result of applying a workflow action to one run item."""

    item_id: int
    ok: bool
    message: str
    journal_id: Optional[int] = None


@dataclass(frozen=True)
class BulkActionResult:
    action: BulkAction
    outcomes: tuple[ItemOutcome, ...]

    @property
    def succeeded(self) -> list[ItemOutcome]:
        return [o for o in self.outcomes if o.ok]

    @property
    def failed(self) -> list[ItemOutcome]:
        return [o for o in self.outcomes if not o.ok]


@dataclass(frozen=True)
class TrialBalanceRow:
    account_id: int
    account_code: str
    account_name: str
    account_type: AccountType
    debit_balance: Decimal
    credit_balance: Decimal


@dataclass(frozen=True)
class TrialBalance:
    """Trial balance report; difference is zero for a balanced ledger."""

    as_of_date: Optional[date]
    rows: tuple[TrialBalanceRow, ...] = field(default_factory=tuple)

    @property
    def debit_total(self) -> Decimal:
        return sum((row.debit_balance for row in self.rows), Decimal("0"))

    @property
    def credit_total(self) -> Decimal:
        return sum((row.credit_balance for row in self.rows), Decimal("0"))

    @property
    def difference(self) -> Decimal:
        return self.debit_total - self.credit_total
