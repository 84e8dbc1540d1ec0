"""Bank-statement reconciliation matcher.

Each statement transaction is compared against the account's ledger lines in
two tiers: an exact tier (amount within 1, dates less than 3 days apart) and
a fuzzy tier (amount within 10, less than 7 days apart). A ledger line can
satisfy at most one statement transaction per run.

The matcher never writes; turning unmatched items into journal entries is a
separate, explicit workflow step.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from ledgerkit.database.base import Database
from ledgerkit.domain.entities import (
    Confidence,
    LedgerLine,
    MatchType,
    ReconciliationItem,
    ReconciliationResult,
    ReconciliationStats,
    StatementTransaction,
)
from ledgerkit.domain.errors import (
    MatchInconsistencyError,
    NotFoundError,
    account_not_found,
)

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class MatchTier:
    """Strict upper bounds for one matching tier."""

    amount_tolerance: Decimal
    max_days: int

    def accepts(self, amount_delta: Decimal, date_delta_days: int) -> bool:
        return amount_delta < self.amount_tolerance and date_delta_days < self.max_days


@dataclass(frozen=True)
class MatchTolerances:
    exact: MatchTier = MatchTier(Decimal("1"), 3)
    fuzzy: MatchTier = MatchTier(Decimal("10"), 7)


DEFAULT_TOLERANCES = MatchTolerances()


def _deltas(statement: StatementTransaction, line: LedgerLine) -> tuple[Decimal, int]:
    amount_delta = abs(line.net_amount - statement.signed_amount)
    date_delta = abs((line.date - statement.date).days)
    return amount_delta, date_delta


def _best_candidate(
    statement: StatementTransaction,
    lines: Iterable[LedgerLine],
    tier: MatchTier,
) -> Optional[tuple[LedgerLine, Decimal, int]]:
    """Pick the closest line accepted by a tier.

    Ties are broken by smallest amount delta, then smallest date delta, then
    lowest line ID, so the result never depends on the order lines arrive in.
    """
    best = None
    best_key = None
    for line in lines:
        amount_delta, date_delta = _deltas(statement, line)
        if not tier.accepts(amount_delta, date_delta):
            continue
        key = (amount_delta, date_delta, line.id)
        if best_key is None or key < best_key:
            best, best_key = (line, amount_delta, date_delta), key
    return best


def _compute_stats(
    statement_transactions: Sequence[StatementTransaction],
    matched: Sequence[ReconciliationItem],
    unmatched: Sequence[ReconciliationItem],
    adjustments: Sequence[ReconciliationItem],
) -> ReconciliationStats:
    bank_balance = sum((s.signed_amount for s in statement_transactions), Decimal("0"))
    ledger_balance = sum(
        (
            item.ledger_item.net_amount
            for item in list(matched) + list(adjustments)
            if item.ledger_item is not None
        ),
        Decimal("0"),
    )
    return ReconciliationStats(
        total_items=len(statement_transactions),
        matched_items=len(matched),
        unmatched_items=len(unmatched),
        adjusted_items=len(adjustments),
        bank_balance=bank_balance,
        ledger_balance=ledger_balance,
        pending_items=len(unmatched) + len(adjustments),
    )


def _check_no_double_claim(items: Iterable[ReconciliationItem]) -> None:
    seen: set[int] = set()
    for item in items:
        if item.ledger_item is None:
            continue
        if item.ledger_item.id in seen:
            raise MatchInconsistencyError(
                f"Ledger line {item.ledger_item.id} claimed by more than one statement item"
            )
        seen.add(item.ledger_item.id)


def match_transactions(
    statement_transactions: Sequence[StatementTransaction],
    ledger_lines: Sequence[LedgerLine],
    tolerances: MatchTolerances = DEFAULT_TOLERANCES,
) -> ReconciliationResult:
    """Classify statement transactions against ledger lines.

    Statement transactions are processed in the order given; each one claims
    at most one ledger line that no earlier statement transaction claimed.

    Args:
        statement_transactions: Normalized statement transactions
        ledger_lines: Ledger lines of the account being reconciled
        tolerances: Tier bounds

    Returns:
        ReconciliationResult with matched (exact), adjustments (fuzzy) and
        unmatched items plus summary statistics

    Raises:
        MatchInconsistencyError: If a ledger line ends up claimed twice
    """
    available: dict[int, LedgerLine] = {line.id: line for line in ledger_lines}
    matched: list[ReconciliationItem] = []
    unmatched: list[ReconciliationItem] = []
    adjustments: list[ReconciliationItem] = []

    for index, statement in enumerate(statement_transactions):
        exact = _best_candidate(statement, available.values(), tolerances.exact)
        if exact is not None:
            line, amount_delta, date_delta = exact
            del available[line.id]
            matched.append(
                ReconciliationItem(
                    statement_index=index,
                    statement_item=statement,
                    ledger_item=line,
                    match_type=MatchType.EXACT,
                    confidence=Confidence.HIGH,
                    amount_delta=amount_delta,
                    date_delta_days=date_delta,
                )
            )
            continue

        fuzzy = _best_candidate(statement, available.values(), tolerances.fuzzy)
        if fuzzy is not None:
            line, amount_delta, date_delta = fuzzy
            del available[line.id]
            adjustments.append(
                ReconciliationItem(
                    statement_index=index,
                    statement_item=statement,
                    ledger_item=line,
                    match_type=MatchType.FUZZY,
                    confidence=Confidence.MEDIUM,
                    needs_review=True,
                    amount_delta=amount_delta,
                    date_delta_days=date_delta,
                )
            )
            continue

        unmatched.append(
            ReconciliationItem(
                statement_index=index,
                statement_item=statement,
                ledger_item=None,
                match_type=MatchType.NONE,
                confidence=Confidence.LOW,
                needs_creation=True,
            )
        )

    _check_no_double_claim(matched + adjustments)

    return ReconciliationResult(
        bank_statement=tuple(statement_transactions),
        ledger_entries=tuple(ledger_lines),
        matched_items=tuple(matched),
        unmatched_items=tuple(unmatched),
        adjustments=tuple(adjustments),
        summary=_compute_stats(statement_transactions, matched, unmatched, adjustments),
    )


class ReconciliationMatcher:
    """Read-only service matching statement transactions against an account's ledger."""

    def __init__(self, db: Database, tolerances: MatchTolerances = DEFAULT_TOLERANCES):
        """Initialize matcher.

        Args:
            db: Database instance
            tolerances: Tier bounds
        """
        self.db = db
        self.tolerances = tolerances

    def match(
        self,
        statement_transactions: Sequence[StatementTransaction],
        account_id: int,
    ) -> ReconciliationResult:
        """Match statement transactions against the account's ledger lines.

        Args:
            statement_transactions: Normalized statement transactions
            account_id: Account being reconciled

        Returns:
            ReconciliationResult

        Raises:
            NotFoundError: If the account doesn't exist
        """
        if self.db.get_account(account_id) is None:
            raise NotFoundError(account_not_found(account_id))

        # One read of the line set; amounts come from the lines themselves,
        # never from cached balances.
        ledger_lines = self.db.list_ledger_lines(account_id=account_id)
        result = match_transactions(statement_transactions, ledger_lines, self.tolerances)
        log.info(
            "Matched %d statement transactions against account %s: "
            "%d exact, %d fuzzy, %d unmatched",
            result.summary.total_items,
            account_id,
            result.summary.matched_items,
            result.summary.adjusted_items,
            result.summary.unmatched_items,
        )
        return result
