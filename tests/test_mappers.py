"""Tests for database mappers."""

import pytest
from datetime import datetime, date, UTC
from decimal import Decimal

from ledgerkit.database.models import (
    Account as ORMAccount,
    JournalEntry as ORMJournalEntry,
    LedgerLine as ORMLedgerLine,
    ReconciliationRun as ORMReconciliationRun,
    ReconciliationRunItem as ORMReconciliationRunItem,
)
from ledgerkit.database.mappers import (
    account_to_domain,
    journal_entry_to_domain,
    ledger_line_to_domain,
    reconciliation_run_to_domain,
)
from ledgerkit.domain.entities import (
    Account,
    AccountType,
    ItemResolution,
    JournalEntry,
    JournalStatus,
    LedgerLine,
    MatchType,
    ReconciliationRun,
    RunStatus,
    StatementType,
)


def _orm_line(line_id, debit, credit):
    return ORMLedgerLine(
        id=line_id,
        journal_id=1,
        account_id=1,
        date=date(2025, 1, 15),
        description="Line",
        debit_amount=Decimal(debit),
        credit_amount=Decimal(credit),
        balance=Decimal(debit) - Decimal(credit),
        created_at=datetime.now(UTC),
    )


class TestAccountMapper:
    """Tests for Account mapper."""

    def test_account_to_domain(self):
        """Test converting ORM Account to domain Account."""
        orm_account = ORMAccount(
            id=1,
            owner="acme",
            code="1000",
            name="Cash",
            account_type="asset",
            is_active=True,
            current_balance=Decimal("150.00"),
            balance_stale=False,
            created_at=datetime.now(UTC),
        )
        domain_account = account_to_domain(orm_account)

        assert isinstance(domain_account, Account)
        assert domain_account.id == 1
        assert domain_account.owner == "acme"
        assert domain_account.code == "1000"
        assert domain_account.account_type == AccountType.ASSET
        assert domain_account.current_balance == Decimal("150.00")
        assert domain_account.created_at == orm_account.created_at


class TestLedgerLineMapper:
    """Tests for LedgerLine mapper."""

    def test_ledger_line_to_domain(self):
        domain_line = ledger_line_to_domain(_orm_line(7, "0", "42.10"))

        assert isinstance(domain_line, LedgerLine)
        assert domain_line.id == 7
        assert domain_line.debit_amount == Decimal("0")
        assert domain_line.credit_amount == Decimal("42.10")
        assert isinstance(domain_line.balance, Decimal)


class TestJournalEntryMapper:
    """Tests for JournalEntry mapper."""

    def test_journal_entry_to_domain_includes_lines(self):
        orm_entry = ORMJournalEntry(
            id=1,
            reference="JE-20250115-0001",
            date=date(2025, 1, 15),
            description="Sale",
            status="draft",
            created_by="tester",
            reversal_of_id=None,
            created_at=datetime.now(UTC),
        )
        orm_entry.lines = [_orm_line(1, "10", "0"), _orm_line(2, "0", "10")]

        domain_entry = journal_entry_to_domain(orm_entry)

        assert isinstance(domain_entry, JournalEntry)
        assert domain_entry.status == JournalStatus.DRAFT
        assert len(domain_entry.lines) == 2
        assert all(isinstance(line, LedgerLine) for line in domain_entry.lines)
        assert domain_entry.debit_total == domain_entry.credit_total


class TestReconciliationRunMapper:
    """Tests for ReconciliationRun mapper."""

    def test_run_to_domain_includes_items(self):
        orm_run = ORMReconciliationRun(
            id=3,
            account_id=1,
            status="under_review",
            created_by="tester",
            created_at=datetime.now(UTC),
            completed_at=None,
            overridden=False,
            bank_balance=Decimal("-25.00"),
            ledger_balance=Decimal("0"),
        )
        orm_run.items = [
            ORMReconciliationRunItem(
                id=9,
                run_id=3,
                position=0,
                statement_date=date(2025, 1, 20),
                statement_description="Service fee",
                statement_amount=Decimal("25.00"),
                statement_type="debit",
                statement_reference=None,
                ledger_line_id=None,
                match_type="none",
                confidence="low",
                needs_review=False,
                needs_creation=True,
                amount_delta=None,
                date_delta_days=None,
                resolution="pending",
                journal_id=None,
            )
        ]

        run = reconciliation_run_to_domain(orm_run)

        assert isinstance(run, ReconciliationRun)
        assert run.status == RunStatus.UNDER_REVIEW
        item = run.items[0]
        assert item.match_type == MatchType.NONE
        assert item.resolution == ItemResolution.PENDING
        assert item.statement_item.type == StatementType.DEBIT
        assert item.statement_item.signed_amount == Decimal("-25.00")
        assert item.amount_delta is None
        assert run.pending_items == [item]
