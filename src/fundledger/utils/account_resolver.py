"""Utility for resolving account codes and names to IDs."""

from fundledger.domain.account import AccountService
from fundledger.domain.errors import NotFoundError


def resolve_account(account_service: AccountService, account: str | int) -> int:
    """Resolve an account code, name or ID to an account ID.

    Account codes are numeric strings, so a code match always wins over an
    ID match. Lookup order: code, then ID (for integer input), then exact
    name.

    Args:
        account_service: AccountService instance
        account: Account code ("1100"), ID, or name ("Cash")

    Returns:
        Account ID

    Raises:
        NotFoundError: If no account matches
    """
    text = str(account).strip()

    by_code = account_service.get_account_by_code(text)
    if by_code is not None:
        return by_code.id

    try:
        account_id = int(text)
    except ValueError:
        account_id = None
    if account_id is not None:
        by_id = account_service.get_account(account_id)
        if by_id is not None:
            return by_id.id

    for acc in account_service.list_accounts():
        if acc.name == text or (acc.name_en is not None and acc.name_en == text):
            return acc.id

    raise NotFoundError(f"Account '{text}' not found")
