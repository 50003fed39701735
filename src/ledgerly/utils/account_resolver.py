"""Utility for resolving account and debt names to IDs."""

from ledgerly.domain.account import AccountService
from ledgerly.domain.debt import DebtService
from ledgerly.domain.errors import NotFoundError, account_not_found, debt_not_found


def resolve_account(account_service: AccountService, owner_id: str, account: str | int) -> int:
    """Resolve an owner's account name or ID to an account ID.

    Args:
        account_service: AccountService instance
        owner_id: Owner whose accounts are searched
        account: Account name, or ID (int or string representation of int)

    Returns:
        Account ID

    Raises:
        NotFoundError: If the owner has no such account
    """
    if isinstance(account, int) or str(account).strip().isdigit():
        account_id = int(account)
        if account_service.get_account(owner_id, account_id) is not None:
            return account_id
        # A purely numeric name is still allowed
        by_name = account_service.db.get_account_by_name(owner_id, str(account).strip())
        if by_name is None:
            raise NotFoundError(account_not_found(account_id))
        return by_name.id

    by_name = account_service.db.get_account_by_name(owner_id, account.strip())
    if by_name is None:
        raise NotFoundError(f"Account '{account}' not found")
    return by_name.id


def resolve_debt(debt_service: DebtService, owner_id: str, debt: str | int) -> int:
    """Resolve an owner's debt name or ID to a debt ID.

    Raises:
        NotFoundError: If the owner has no such debt
    """
    if isinstance(debt, int) or str(debt).strip().isdigit():
        debt_id = int(debt)
        if debt_service.get_debt(owner_id, debt_id) is not None:
            return debt_id
        raise NotFoundError(debt_not_found(debt_id))

    for candidate in debt_service.list_debts(owner_id):
        if candidate.name == debt.strip():
            return candidate.id
    raise NotFoundError(f"Debt '{debt}' not found")
