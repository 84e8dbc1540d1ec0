"""Balance recomputation and ledger read models.

Account and line balances are a materialized view of the ledger lines. They
are rebuilt here and nowhere else; nothing treats them as input to a
decision.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from ledgerkit.database.base import Database
from ledgerkit.domain.entities import (
    LedgerLine,
    TrialBalance,
    TrialBalanceRow,
)
from ledgerkit.domain.errors import NotFoundError, account_not_found

log = logging.getLogger(__name__)

RECOMPUTE_ATTEMPTS = 3


def running_balances(lines: Iterable[LedgerLine]) -> tuple[dict[int, Decimal], Decimal]:
    """Walk lines in the given order accumulating debit minus credit.

    Args:
        lines: Ledger lines of one account, already in (date, creation) order

    Returns:
        Tuple of (snapshot balance per line ID, final balance)
    """
    balance = Decimal("0")
    snapshots: dict[int, Decimal] = {}
    for line in lines:
        balance += line.debit_amount - line.credit_amount
        snapshots[line.id] = balance
    return snapshots, balance


class BalanceService:
    """Service for recomputing balances and reading the ledger."""

    def __init__(self, db: Database):
        """Initialize balance service.

        Args:
            db: Database instance
        """
        self.db = db

    def recompute(self, account_id: int) -> Decimal:
        """Rebuild running balances of one account from its ledger lines.

        The full, latest line set is re-read under the account lock on every
        call, so two postings to the same account cannot leave a stale
        snapshot behind.

        Args:
            account_id: Account ID

        Returns:
            The account's raw (debit minus credit) current balance

        Raises:
            NotFoundError: If the account doesn't exist
        """
        with self.db.account_lock([account_id]):
            with self.db.transaction():
                if self.db.get_account(account_id) is None:
                    raise NotFoundError(account_not_found(account_id))
                self.db.lock_account_rows([account_id])
                lines = self.db.list_ledger_lines(account_id=account_id)
                snapshots, balance = running_balances(lines)
                self.db.update_line_balances(snapshots)
                self.db.set_account_balance(account_id, balance)
        log.debug("Recomputed account %s over %d lines: %s", account_id, len(lines), balance)
        return balance

    def recompute_accounts(
        self, account_ids: Iterable[int], attempts: int = RECOMPUTE_ATTEMPTS
    ) -> list[int]:
        """Recompute several accounts, retrying each one on failure.

        Failures never propagate: the account keeps its stale flag and is
        rebuilt on the next read.

        Args:
            account_ids: Account IDs to recompute
            attempts: Tries per account

        Returns:
            IDs of accounts that could not be recomputed
        """
        failed = []
        for account_id in sorted(set(account_ids)):
            for attempt in range(1, attempts + 1):
                try:
                    self.recompute(account_id)
                    break
                except Exception:
                    if attempt == attempts:
                        log.exception(
                            "Giving up recomputing account %s after %d attempts; "
                            "balance stays stale until next read",
                            account_id,
                            attempts,
                        )
                        failed.append(account_id)
                    else:
                        log.warning(
                            "Recomputing account %s failed (attempt %d/%d), retrying",
                            account_id,
                            attempt,
                            attempts,
                        )
        return failed

    def refresh_stale(self, account_ids: Optional[Iterable[int]] = None) -> list[int]:
        """Recompute accounts whose cached balance is flagged stale.

        Args:
            account_ids: Limit the refresh to these accounts (all stale accounts if None)

        Returns:
            IDs of accounts that are still stale afterwards
        """
        stale = set(self.db.list_stale_account_ids())
        if account_ids is not None:
            stale &= set(account_ids)
        if not stale:
            return []
        log.info("Rebuilding stale balances for accounts %s", sorted(stale))
        return self.recompute_accounts(stale)

    def account_ledger(
        self,
        account_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> list[LedgerLine]:
        """Get an account's ledger lines with their running balance snapshots.

        Args:
            account_id: Account ID
            start_date: Optional start date filter
            end_date: Optional end date filter

        Returns:
            Lines in recomputation order

        Raises:
            NotFoundError: If the account doesn't exist
        """
        if self.db.get_account(account_id) is None:
            raise NotFoundError(account_not_found(account_id))
        self.refresh_stale([account_id])
        return self.db.list_ledger_lines(
            account_id=account_id, start_date=start_date, end_date=end_date
        )

    def general_ledger(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        account_id: Optional[int] = None,
        description: Optional[str] = None,
    ) -> list[LedgerLine]:
        """Get ledger lines across accounts."""
        self.refresh_stale()
        return self.db.list_ledger_lines(
            account_id=account_id,
            start_date=start_date,
            end_date=end_date,
            description=description,
        )

    def trial_balance(
        self, as_of_date: Optional[date] = None, include_zero: bool = False
    ) -> TrialBalance:
        """Build a trial balance from the ledger lines.

        Each account's net debit-minus-credit lands in the debit column when
        positive and in the credit column when negative, so the two columns
        total the same for any balanced ledger.

        Args:
            as_of_date: Only count lines dated on or before this date
            include_zero: Include accounts whose balance is zero

        Returns:
            TrialBalance report
        """
        totals: dict[int, Decimal] = {}
        for line in self.db.list_ledger_lines(end_date=as_of_date):
            totals[line.account_id] = totals.get(line.account_id, Decimal("0")) + (
                line.debit_amount - line.credit_amount
            )

        rows = []
        for account in self.db.list_accounts():
            net = totals.get(account.id, Decimal("0"))
            if net == 0 and not include_zero:
                continue
            rows.append(
                TrialBalanceRow(
                    account_id=account.id,
                    account_code=account.code,
                    account_name=account.name,
                    account_type=account.account_type,
                    debit_balance=net if net > 0 else Decimal("0"),
                    credit_balance=-net if net < 0 else Decimal("0"),
                )
            )
        return TrialBalance(as_of_date=as_of_date, rows=tuple(rows))
