"""Account registry domain service."""

import logging
from decimal import Decimal
from typing import Optional

from ledgerkit.database.base import Database
from ledgerkit.domain.balance import BalanceService
from ledgerkit.domain.entities import Account as AccountEntity, AccountType
from ledgerkit.domain.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    account_delete_blocked,
    account_not_found,
    duplicate_account_code,
)

log = logging.getLogger(__name__)

DEFAULT_OWNER = "default"


class AccountService:
    """Service for managing the chart of accounts."""

    def __init__(self, db: Database):
        """Initialize account service.

        Args:
            db: Database instance
        """
        self.db = db
        self.balances = BalanceService(db)

    def create_account(
        self,
        code: str,
        name: str,
        account_type: AccountType | str,
        owner: str = DEFAULT_OWNER,
    ) -> int:
        """Create a new account.

        Args:
            code: Account code, unique within the owner scope
            name: Account name
            account_type: One of asset, liability, equity, revenue, expense
            owner: Owning user or business scope

        Returns:
            Account ID

        Raises:
            ValidationError: If code, name or type is invalid
            ConflictError: If the code already exists for the owner
        """
        code = (code or "").strip()
        name = (name or "").strip()
        if not code:
            raise ValidationError("Account code is required")
        if not name:
            raise ValidationError("Account name is required")
        account_type = parse_account_type(account_type)

        if self.db.get_account_by_code(code, owner) is not None:
            raise ConflictError(duplicate_account_code(code, owner))

        account_id = self.db.create_account(
            owner=owner, code=code, name=name, account_type=account_type
        )
        log.info("Created %s account %s '%s' (ID %s)", account_type.value, code, name, account_id)
        return account_id

    def get_account(self, account_id: int) -> Optional[AccountEntity]:
        """Get account by ID, rebuilding its balance first if it is stale.

        Args:
            account_id: Account ID

        Returns:
            Account entity or None if not found
        """
        account = self.db.get_account(account_id)
        if account is None or not account.balance_stale:
            return account
        self.balances.refresh_stale([account_id])
        return self.db.get_account(account_id)

    def require_account(self, account_id: int) -> AccountEntity:
        """Get account by ID or raise NotFoundError."""
        account = self.get_account(account_id)
        if account is None:
            raise NotFoundError(account_not_found(account_id))
        return account

    def get_account_by_code(
        self, code: str, owner: str = DEFAULT_OWNER
    ) -> Optional[AccountEntity]:
        """Get account by code within an owner scope."""
        account = self.db.get_account_by_code(code, owner)
        if account is None:
            return None
        return self.get_account(account.id)

    def list_accounts(
        self,
        owner: Optional[str] = None,
        account_type: Optional[AccountType] = None,
        active_only: bool = False,
    ) -> list[AccountEntity]:
        """List accounts ordered by code.

        Args:
            owner: Optional owner scope filter
            account_type: Optional account type filter
            active_only: Only return active accounts

        Returns:
            List of account entities
        """
        self.balances.refresh_stale()
        return self.db.list_accounts(
            owner=owner, account_type=account_type, active_only=active_only
        )

    def rename_account(self, account_id: int, name: str) -> None:
        """Rename an account.

        Raises:
            NotFoundError: If account not found
            ValidationError: If the name is blank
        """
        self.require_account(account_id)
        name = (name or "").strip()
        if not name:
            raise ValidationError("Account name is required")
        self.db.update_account(account_id, name=name)

    def set_active(self, account_id: int, is_active: bool) -> None:
        """Activate or deactivate an account.

        Inactive accounts keep their history but reject new postings.
        """
        self.require_account(account_id)
        self.db.update_account(account_id, is_active=is_active)
        log.info("Account %s %s", account_id, "activated" if is_active else "deactivated")

    def delete_account(self, account_id: int) -> None:
        """Delete an account.

        Args:
            account_id: Account ID to delete

        Raises:
            NotFoundError: If account not found
            ConflictError: If any ledger line references the account
        """
        self.require_account(account_id)

        line_count = self.db.get_account_line_count(account_id)
        if line_count > 0:
            raise ConflictError(account_delete_blocked(account_id, line_count))

        self.db.delete_account(account_id)
        log.info("Deleted account %s", account_id)

    def get_balance(self, account_id: int) -> Decimal:
        """Get the account balance with its type's sign convention applied."""
        return self.require_account(account_id).presented_balance


def parse_account_type(value: AccountType | str) -> AccountType:
    """Convert a string to AccountType, raising ValidationError on unknown values."""
    if isinstance(value, AccountType):
        return value
    try:
        return AccountType(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(t.value for t in AccountType)
        raise ValidationError(f"Unknown account type '{value}'. Expected one of: {allowed}")
