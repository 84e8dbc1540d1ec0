"""Utility for resolving account codes to IDs."""

from ledgerkit.domain.account import AccountService, DEFAULT_OWNER
from ledgerkit.domain.errors import NotFoundError


def resolve_account(
    account_service: AccountService, account: str | int, owner: str = DEFAULT_OWNER
) -> int:
    """Resolve an account code or ID to an account ID.

    Codes are looked up within the owner scope first, so a numeric code
    such as "1000" wins over an account whose ID happens to be 1000.

    Args:
        account_service: AccountService instance
        account: Account code, or ID (int or string representation of int)
        owner: Owner scope for code lookup

    Returns:
        Account ID

    Raises:
        NotFoundError: If no account matches
    """
    if isinstance(account, int):
        if account_service.db.get_account(account) is None:
            raise NotFoundError(f"Account ID {account} not found")
        return account

    text = str(account).strip()
    by_code = account_service.db.get_account_by_code(text, owner)
    if by_code is not None:
        return by_code.id

    try:
        account_id = int(text)
    except ValueError:
        raise NotFoundError(f"Account '{text}' not found")

    if account_service.db.get_account(account_id) is None:
        raise NotFoundError(f"Account '{text}' not found")
    return account_id
