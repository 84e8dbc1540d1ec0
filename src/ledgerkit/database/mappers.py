"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic, so the ORM schema can change
without touching the domain services.
"""

from decimal import Decimal

from ledgerkit.domain import entities as domain
from ledgerkit.database.models import (
    Account as ORMAccount,
    JournalEntry as ORMJournalEntry,
    LedgerLine as ORMLedgerLine,
    PeriodLock as ORMPeriodLock,
    ReconciliationRun as ORMReconciliationRun,
    ReconciliationRunItem as ORMReconciliationRunItem,
)


def _amount(value) -> Decimal:
    """Normalize a Numeric column value to Decimal."""
    if value is None:
        return Decimal("0")
    return Decimal(str(value))


def account_to_domain(orm_account: ORMAccount) -> domain.Account:
    """Convert SQLAlchemy Account model to domain Account entity."""
    return domain.Account(
        id=orm_account.id,
        owner=orm_account.owner,
        code=orm_account.code,
        name=orm_account.name,
        account_type=domain.AccountType(orm_account.account_type),
        is_active=bool(orm_account.is_active),
        current_balance=_amount(orm_account.current_balance),
        balance_stale=bool(orm_account.balance_stale),
        created_at=orm_account.created_at,
    )


def ledger_line_to_domain(orm_line: ORMLedgerLine) -> domain.LedgerLine:
    """Convert SQLAlchemy LedgerLine model to domain LedgerLine entity."""
    return domain.LedgerLine(
        id=orm_line.id,
        journal_id=orm_line.journal_id,
        account_id=orm_line.account_id,
        date=orm_line.date,
        description=orm_line.description,
        debit_amount=_amount(orm_line.debit_amount),
        credit_amount=_amount(orm_line.credit_amount),
        balance=_amount(orm_line.balance),
        created_at=orm_line.created_at,
    )


def journal_entry_to_domain(orm_entry: ORMJournalEntry) -> domain.JournalEntry:
    """Convert SQLAlchemy JournalEntry model (with its lines) to domain JournalEntry."""
    return domain.JournalEntry(
        id=orm_entry.id,
        reference=orm_entry.reference,
        date=orm_entry.date,
        description=orm_entry.description,
        status=domain.JournalStatus(orm_entry.status),
        created_by=orm_entry.created_by,
        created_at=orm_entry.created_at,
        reversal_of_id=orm_entry.reversal_of_id,
        lines=tuple(ledger_line_to_domain(line) for line in orm_entry.lines),
    )


def period_lock_to_domain(orm_lock: ORMPeriodLock) -> domain.PeriodLock:
    """Convert SQLAlchemy PeriodLock model to domain PeriodLock entity."""
    return domain.PeriodLock(
        id=orm_lock.id,
        account_id=orm_lock.account_id,
        period_end=orm_lock.period_end,
        locked_by=orm_lock.locked_by,
        locked_at=orm_lock.locked_at,
    )


def run_item_to_domain(orm_item: ORMReconciliationRunItem) -> domain.RunItem:
    """Convert SQLAlchemy ReconciliationRunItem model to domain RunItem entity."""
    return domain.RunItem(
        id=orm_item.id,
        run_id=orm_item.run_id,
        position=orm_item.position,
        statement_item=domain.StatementTransaction(
            date=orm_item.statement_date,
            description=orm_item.statement_description,
            amount=_amount(orm_item.statement_amount),
            type=domain.StatementType(orm_item.statement_type),
            reference=orm_item.statement_reference,
        ),
        ledger_line_id=orm_item.ledger_line_id,
        match_type=domain.MatchType(orm_item.match_type),
        confidence=domain.Confidence(orm_item.confidence),
        needs_review=bool(orm_item.needs_review),
        needs_creation=bool(orm_item.needs_creation),
        amount_delta=(
            _amount(orm_item.amount_delta) if orm_item.amount_delta is not None else None
        ),
        date_delta_days=orm_item.date_delta_days,
        resolution=domain.ItemResolution(orm_item.resolution),
        journal_id=orm_item.journal_id,
    )


def reconciliation_run_to_domain(orm_run: ORMReconciliationRun) -> domain.ReconciliationRun:
    """Convert SQLAlchemy ReconciliationRun model (with items) to domain ReconciliationRun."""
    return domain.ReconciliationRun(
        id=orm_run.id,
        account_id=orm_run.account_id,
        status=domain.RunStatus(orm_run.status),
        created_by=orm_run.created_by,
        created_at=orm_run.created_at,
        completed_at=orm_run.completed_at,
        overridden=bool(orm_run.overridden),
        bank_balance=_amount(orm_run.bank_balance),
        ledger_balance=_amount(orm_run.ledger_balance),
        items=tuple(run_item_to_domain(item) for item in orm_run.items),
    )
