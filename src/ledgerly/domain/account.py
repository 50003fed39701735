"""Account domain service."""

import logging
from dataclasses import dataclass
from typing import Optional

from ledgerly.database.base import Database
from ledgerly.domain.entities import Account as AccountEntity, AccountType
from ledgerly.domain.errors import (
    ConflictError,
    DependencyError,
    NotFoundError,
    ValidationError,
    account_delete_blocked,
    account_not_found,
    duplicate_account_name,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SystemAccount:
    """Account the ledger creates on demand to keep postings balanced."""

    name: str
    account_type: AccountType
    category: str


OPENING_BALANCES = SystemAccount("Opening Balances", AccountType.EQUITY, "opening_balance")
BALANCE_ADJUSTMENTS = SystemAccount("Balance Adjustments", AccountType.EQUITY, "adjustment")
INTEREST_EXPENSE = SystemAccount("Interest Expense", AccountType.EXPENSE, "interest")

USER_ACCOUNT_TYPES = (
    AccountType.ASSET,
    AccountType.LIABILITY,
    AccountType.INCOME,
    AccountType.EXPENSE,
)


class AccountService:
    """Service for managing an owner's chart of accounts."""

    def __init__(self, db: Database):
        """Initialize account service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_account(
        self,
        owner_id: str,
        name: str,
        account_type: AccountType | str,
        category: Optional[str] = None,
    ) -> int:
        """Create a new account.

        Args:
            owner_id: Owner of the account
            name: Account name, unique per owner
            account_type: asset, liability, income or expense
            category: Optional free-form category (e.g. "checking", "loan")

        Returns:
            Account ID

        Raises:
            ValidationError: If the name is empty or the type is not user-creatable
            ConflictError: If the owner already has an account with that name
        """
        name = name.strip()
        if not name:
            raise ValidationError.single("empty_name", "Account name must not be empty")
        try:
            account_type = AccountType(account_type)
        except ValueError:
            raise ValidationError.single(
                "invalid_account_type", f"Unknown account type '{account_type}'"
            )
        if account_type not in USER_ACCOUNT_TYPES:
            raise ValidationError.single(
                "equity_reserved", "Equity accounts are managed by the ledger itself"
            )

        if self.db.get_account_by_name(owner_id, name) is not None:
            raise ConflictError(duplicate_account_name(name))

        account_id = self.db.create_account(
            owner_id=owner_id, name=name, account_type=account_type, category=category
        )
        logger.info("Created %s account %d '%s' for %s", account_type.value, account_id, name, owner_id)
        return account_id

    def get_account(self, owner_id: str, account_id: int) -> Optional[AccountEntity]:
        """Get an owner's account by ID.

        Returns:
            Account entity, or None if missing or owned by someone else
        """
        account = self.db.get_account(account_id)
        if account is None or account.owner_id != owner_id:
            return None
        return account

    def require_account(self, owner_id: str, account_id: int) -> AccountEntity:
        """Get an owner's account or raise NotFoundError."""
        account = self.get_account(owner_id, account_id)
        if account is None:
            raise NotFoundError(account_not_found(account_id))
        return account

    def list_accounts(
        self,
        owner_id: str,
        account_type: Optional[AccountType] = None,
        active_only: bool = False,
    ) -> list[AccountEntity]:
        """List an owner's accounts."""
        return self.db.list_accounts(owner_id, account_type=account_type, active_only=active_only)

    def rename_account(
        self, owner_id: str, account_id: int, name: str, category: Optional[str] = None
    ) -> None:
        """Rename an account. The account type can never be changed.

        Raises:
            NotFoundError: If account not found
            ConflictError: If another account already has the name
        """
        account = self.require_account(owner_id, account_id)
        name = name.strip()
        if not name:
            raise ValidationError.single("empty_name", "Account name must not be empty")

        existing = self.db.get_account_by_name(owner_id, name)
        if existing is not None and existing.id != account.id:
            raise ConflictError(duplicate_account_name(name))

        self.db.update_account_name(account_id=account_id, name=name, category=category)

    def deactivate_account(self, owner_id: str, account_id: int) -> None:
        """Soft-deactivate an account; its history stays in the ledger."""
        self.require_account(owner_id, account_id)
        self.db.set_account_active(account_id, False)
        logger.info("Deactivated account %d for %s", account_id, owner_id)

    def activate_account(self, owner_id: str, account_id: int) -> None:
        """Reactivate a deactivated account."""
        self.require_account(owner_id, account_id)
        self.db.set_account_active(account_id, True)

    def delete_account(self, owner_id: str, account_id: int) -> None:
        """Delete an account that was never used.

        Raises:
            NotFoundError: If account not found
            DependencyError: If entries or debts reference the account
        """
        self.require_account(owner_id, account_id)

        entry_count = self.db.get_account_entry_count(account_id)
        debt_count = self.db.get_account_debt_count(account_id)
        if entry_count > 0 or debt_count > 0:
            raise DependencyError(account_delete_blocked(account_id, entry_count, debt_count))

        self.db.delete_account(account_id)

    def find_system_account(self, owner_id: str, system_account: SystemAccount) -> Optional[AccountEntity]:
        """Return the owner's active system account without writing anything.

        Returns None when the account does not exist yet or is inactive;
        ensure_system_account creates or reactivates it.

        Raises:
            ConflictError: If a user account already uses the system name
        """
        account = self.db.get_account_by_name(owner_id, system_account.name)
        if account is None:
            return None
        if not account.is_system or account.account_type != system_account.account_type:
            raise ConflictError(
                f"Account '{system_account.name}' exists but is not the ledger's "
                f"{system_account.account_type.value} account"
            )
        return account if account.is_active else None

    def ensure_system_account(self, owner_id: str, system_account: SystemAccount) -> AccountEntity:
        """Return the owner's system account, creating it on first use.

        Raises:
            ConflictError: If a user account already uses the system name
        """
        with self.db.owner_lock(owner_id):
            account = self.find_system_account(owner_id, system_account)
            if account is not None:
                return account

            existing = self.db.get_account_by_name(owner_id, system_account.name)
            if existing is not None:
                self.db.set_account_active(existing.id, True)
                logger.info("Reactivated system account '%s' for %s", system_account.name, owner_id)
                return self.db.get_account(existing.id)

            account_id = self.db.create_account(
                owner_id=owner_id,
                name=system_account.name,
                account_type=system_account.account_type,
                category=system_account.category,
                is_system=True,
            )
            logger.info("Created system account '%s' for %s", system_account.name, owner_id)
            return self.db.get_account(account_id)
