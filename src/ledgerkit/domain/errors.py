"""Shared domain error messages and error types."""

from datetime import date
from decimal import Decimal


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class ConflictError(DomainError):
    """Domain conflict, such as uniqueness violations or dependent data."""


class LockedPeriodError(DomainError):
    """Write touches a reconciled, locked date range."""


class MatchInconsistencyError(RuntimeError):
    """A ledger line was claimed twice within one matcher run.

    This is a defect in the matcher, not a condition users can cause.
    """


def account_not_found(account_id: int) -> str:
    """Return message for missing account."""
    return f"Account {account_id} not found"


def account_inactive(code: str) -> str:
    """Return message for posting against an inactive account."""
    return f"Account {code} is inactive"


def duplicate_account_code(code: str, owner: str) -> str:
    """Return message for duplicate account code within an owner scope."""
    return f"Account with code '{code}' already exists for '{owner}'"


def account_delete_blocked(account_id: int, line_count: int) -> str:
    """Return message when account has ledger lines."""
    return (
        f"Cannot delete account {account_id}: it has "
        f"{line_count} ledger line{'s' if line_count != 1 else ''}."
    )


def journal_entry_not_found(entry_id: int) -> str:
    """Return message for missing journal entry."""
    return f"Journal entry {entry_id} not found"


def unbalanced_entry(debit_total: Decimal, credit_total: Decimal) -> str:
    """Return message for an entry whose debits and credits differ."""
    return (
        f"Total debits ({debit_total}) must equal total credits ({credit_total})"
    )


def period_locked(account_id: int, period_end: date) -> str:
    """Return message for a write into a locked period."""
    return (
        f"Account {account_id} is reconciled and locked through "
        f"{period_end.isoformat()}"
    )


def run_not_found(run_id: int) -> str:
    """Return message for missing reconciliation run."""
    return f"Reconciliation run {run_id} not found"


def run_item_not_found(run_id: int, item_id: int) -> str:
    """Return message for an item id that is not part of a run."""
    return f"Item {item_id} is not part of reconciliation run {run_id}"
