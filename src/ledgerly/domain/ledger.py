"""Ledger domain service: the only write path for transactions."""

import logging
from datetime import date
from typing import Optional, Sequence

from ledgerly.database.base import Database
from ledgerly.domain.entities import (
    EntryDraft,
    EntrySide,
    Transaction as TransactionEntity,
    TransactionDraft,
)
from ledgerly.domain.errors import (
    ConflictError,
    IntegrityViolation,
    NotFoundError,
    transaction_not_found,
)
from ledgerly.domain.money import ZERO
from ledgerly.domain.validation import TransactionValidator

logger = logging.getLogger(__name__)


class LedgerService:
    """Service for committing and reading balanced transactions."""

    def __init__(self, db: Database):
        """Initialize ledger service.

        Args:
            db: Database instance
        """
        self.db = db
        self.validator = TransactionValidator(db)

    def commit(self, owner_id: str, draft: TransactionDraft) -> int:
        """Validate and append one transaction.

        Validation and append happen under the owner's lock, so two commits
        for the same owner never interleave.

        Returns:
            Transaction ID

        Raises:
            ValidationError: If any rule is violated; nothing is written
        """
        with self.db.owner_lock(owner_id):
            self.validator.validate(owner_id, draft)
            transaction_id = self.db.append_transaction(owner_id, draft)
        logger.info(
            "Committed transaction %d for %s on %s (%d entries)",
            transaction_id,
            owner_id,
            draft.date,
            len(draft.entries),
        )
        return transaction_id

    def commit_many(self, owner_id: str, drafts: Sequence[TransactionDraft]) -> list[int]:
        """Validate every draft, then commit each as its own atomic transaction."""
        with self.db.owner_lock(owner_id):
            self.validator.validate_all(owner_id, drafts)
            ids = [self.db.append_transaction(owner_id, draft) for draft in drafts]
        logger.info("Committed %d transactions for %s: %s", len(ids), owner_id, ids)
        return ids

    def get_transaction(self, owner_id: str, transaction_id: int) -> Optional[TransactionEntity]:
        """Get an owner's transaction, or None."""
        txn = self.db.get_transaction(transaction_id)
        if txn is None or txn.owner_id != owner_id:
            return None
        return txn

    def require_transaction(self, owner_id: str, transaction_id: int) -> TransactionEntity:
        """Get an owner's transaction or raise NotFoundError."""
        txn = self.get_transaction(owner_id, transaction_id)
        if txn is None:
            raise NotFoundError(transaction_not_found(transaction_id))
        return txn

    def list_transactions(
        self,
        owner_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        account_id: Optional[int] = None,
    ) -> list[TransactionEntity]:
        """List an owner's transactions in ledger order."""
        return self.db.list_transactions(
            owner_id, start_date=start_date, end_date=end_date, account_id=account_id
        )

    def void(self, owner_id: str, transaction_id: int, on: Optional[date] = None) -> int:
        """Append a compensating transaction that cancels transaction_id.

        History is never edited: the original stays, and a mirror image with
        every side swapped is committed.

        Returns:
            ID of the reversing transaction

        Raises:
            NotFoundError: If the transaction does not exist for this owner
            ConflictError: If it is already voided or is itself a reversal
        """
        original = self.require_transaction(owner_id, transaction_id)
        if original.reverses_id is not None:
            raise ConflictError(f"Transaction {transaction_id} is a reversal and cannot be voided")

        draft = TransactionDraft(
            date=on or original.date,
            description=f"Void: {original.description}",
            notes=f"Reverses transaction {transaction_id}",
            reverses_id=transaction_id,
            entries=tuple(
                EntryDraft(account_id=e.account_id, side=e.side.opposite, amount=e.amount)
                for e in original.entries
            ),
        )
        with self.db.owner_lock(owner_id):
            if self.db.get_reversal_of(transaction_id) is not None:
                raise ConflictError(f"Transaction {transaction_id} is already voided")
            self.validator.validate(owner_id, draft)
            reversal_id = self.db.append_transaction(owner_id, draft)
        logger.info("Voided transaction %d with %d for %s", transaction_id, reversal_id, owner_id)
        return reversal_id

    def verify_integrity(self, owner_id: str) -> int:
        """Re-check every committed transaction of an owner.

        Returns:
            Number of transactions checked

        Raises:
            IntegrityViolation: If a stored transaction is short or unbalanced
        """
        transactions = self.db.list_transactions(owner_id)
        for txn in transactions:
            check_committed_transaction(txn)
        return len(transactions)


def check_committed_transaction(txn: TransactionEntity) -> None:
    """Raise IntegrityViolation if a stored transaction breaks double entry."""
    if len(txn.entries) < 2:
        logger.critical("Transaction %d has %d entries", txn.id, len(txn.entries))
        raise IntegrityViolation(f"Transaction {txn.id} has {len(txn.entries)} entries")
    debits = sum((e.amount for e in txn.entries if e.side is EntrySide.DEBIT), ZERO)
    credits = sum((e.amount for e in txn.entries if e.side is EntrySide.CREDIT), ZERO)
    if debits != credits:
        logger.critical("Transaction %d unbalanced: debits=%s credits=%s", txn.id, debits, credits)
        raise IntegrityViolation(
            f"Transaction {txn.id} is unbalanced: debits={debits}, credits={credits}"
        )
