"""Abstract database interface."""

import threading
from abc import ABC, abstractmethod
from typing import Optional, Iterable
from datetime import date
from decimal import Decimal

# Import entities directly to avoid circular import through domain/__init__.py
from ledgerly.domain.entities import (
    Account,
    AccountType,
    Debt,
    PostedEntry,
    Transaction,
    TransactionDraft,
)
from ledgerly.database.locks import OwnerLockRegistry


class Database(ABC):
    """Abstract database interface for ledgerly.

    Implementations must make append_transaction atomic: either the header
    and every entry become visible together, or nothing does.
    """

    def __init__(self):
        self._owner_locks = OwnerLockRegistry()

    def owner_lock(self, owner_id: str) -> threading.RLock:
        """Lock that serializes balance-affecting commits for one owner."""
        return self._owner_locks.lock_for(owner_id)

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    # Account operations
    @abstractmethod
    def create_account(
        self,
        owner_id: str,
        name: str,
        account_type: AccountType,
        category: Optional[str] = None,
        is_system: bool = False,
    ) -> int:
        """Create a new account. Returns account ID."""
        pass

    @abstractmethod
    def get_account(self, account_id: int) -> Optional[Account]:
        """Get account by ID."""
        pass

    @abstractmethod
    def get_accounts(self, account_ids: Iterable[int]) -> dict[int, Account]:
        """Get several accounts by ID; missing IDs are absent from the result."""
        pass

    @abstractmethod
    def get_account_by_name(self, owner_id: str, name: str) -> Optional[Account]:
        """Get an owner's account by name."""
        pass

    @abstractmethod
    def list_accounts(
        self,
        owner_id: str,
        account_type: Optional[AccountType] = None,
        active_only: bool = False,
    ) -> list[Account]:
        """List an owner's accounts, optionally filtered by type and activity."""
        pass

    @abstractmethod
    def update_account_name(self, account_id: int, name: str, category: Optional[str] = None) -> None:
        """Rename an account and optionally change its category. Type never changes."""
        pass

    @abstractmethod
    def set_account_active(self, account_id: int, is_active: bool) -> None:
        """Activate or deactivate an account."""
        pass

    @abstractmethod
    def delete_account(self, account_id: int) -> None:
        """Hard-delete an account that has no entries."""
        pass

    @abstractmethod
    def get_account_entry_count(self, account_id: int) -> int:
        """Count entries posted to an account."""
        pass

    @abstractmethod
    def get_account_debt_count(self, account_id: int) -> int:
        """Count debts backed by an account."""
        pass

    # Ledger operations
    @abstractmethod
    def append_transaction(self, owner_id: str, draft: TransactionDraft) -> int:
        """Atomically write a transaction header and all its entries. Returns ID."""
        pass

    @abstractmethod
    def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        """Get a transaction with its entries."""
        pass

    @abstractmethod
    def get_reversal_of(self, transaction_id: int) -> Optional[Transaction]:
        """Get the transaction that reverses transaction_id, if any."""
        pass

    @abstractmethod
    def list_transactions(
        self,
        owner_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        account_id: Optional[int] = None,
    ) -> list[Transaction]:
        """List an owner's transactions in ledger order (date, then commit order)."""
        pass

    @abstractmethod
    def query_entries(
        self,
        owner_id: str,
        account_ids: Optional[Iterable[int]] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> list[PostedEntry]:
        """Query posted entries in ledger order (date, transaction ID, entry ID)."""
        pass

    # Debt operations
    @abstractmethod
    def create_debt(
        self,
        owner_id: str,
        name: str,
        liability_account_id: int,
        principal: Decimal,
        interest_rate: Decimal,
        rate_frequency: str,
        repayment_method: str,
        payment_amount: Decimal,
        payment_frequency: str,
        start_date: date,
        total_periods: Optional[int] = None,
    ) -> int:
        """Create a debt record. Returns debt ID."""
        pass

    @abstractmethod
    def get_debt(self, debt_id: int) -> Optional[Debt]:
        """Get debt by ID."""
        pass

    @abstractmethod
    def list_debts(self, owner_id: str, active_only: bool = False) -> list[Debt]:
        """List an owner's debts."""
        pass

    @abstractmethod
    def update_debt_balance(
        self,
        debt_id: int,
        current_balance: Decimal,
        is_active: bool,
        payoff_date: Optional[date] = None,
    ) -> None:
        """Replace the cached debt balance with a freshly derived one."""
        pass
