"""Transaction validation: every rule is checked before anything is written."""

from decimal import Decimal
from typing import Collection, Iterable

from ledgerly.database.base import Database
from ledgerly.domain.entities import Account, EntrySide, TransactionDraft
from ledgerly.domain.errors import ValidationError, Violation
from ledgerly.domain.money import ZERO, is_minor_unit_exact


class TransactionValidator:
    """Checks drafts against the double-entry rules.

    Rules (codes in parentheses):
        - at least two entries (too_few_entries)
        - at least two distinct accounts (single_account)
        - every account exists (unknown_account), belongs to the owner
          (foreign_account) and is active (inactive_account)
        - amounts are positive (non_positive_amount) with no sub-cent
          precision (sub_minor_unit)
        - debits equal credits exactly (unbalanced)

    pending_account_ids names placeholder IDs for system accounts that will
    be created once the drafts pass; the account checks skip them.
    """

    def __init__(self, db: Database):
        self.db = db

    def violations(
        self,
        owner_id: str,
        draft: TransactionDraft,
        pending_account_ids: Collection[int] = (),
    ) -> list[Violation]:
        """Return every violated rule for the draft (empty when valid)."""
        found: list[Violation] = []
        entries = draft.entries

        if len(entries) < 2:
            found.append(
                Violation("too_few_entries", f"Transaction needs at least 2 entries, got {len(entries)}")
            )
        account_ids = {entry.account_id for entry in entries}
        if entries and len(account_ids) < 2:
            found.append(Violation("single_account", "Transaction must touch at least 2 distinct accounts"))
        if not draft.description or not draft.description.strip():
            found.append(Violation("missing_description", "Transaction description must not be empty"))

        found.extend(self._account_violations(owner_id, account_ids - set(pending_account_ids)))

        debits = ZERO
        credits = ZERO
        for index, entry in enumerate(entries, start=1):
            amount = entry.amount
            if not isinstance(amount, Decimal) or not amount.is_finite():
                found.append(Violation("non_positive_amount", f"Entry {index}: amount must be a finite Decimal"))
                continue
            if amount <= ZERO:
                found.append(Violation("non_positive_amount", f"Entry {index}: amount must be positive, got {amount}"))
            if not is_minor_unit_exact(amount):
                found.append(
                    Violation("sub_minor_unit", f"Entry {index}: amount {amount} has more precision than one cent")
                )
            try:
                side = EntrySide(entry.side)
            except ValueError:
                found.append(Violation("invalid_side", f"Entry {index}: unknown side '{entry.side}'"))
                continue
            if side is EntrySide.DEBIT:
                debits += amount
            else:
                credits += amount

        if debits != credits:
            found.append(
                Violation("unbalanced", f"Transaction not balanced: debits={debits}, credits={credits}")
            )
        return found

    def validate(self, owner_id: str, draft: TransactionDraft) -> None:
        """Raise ValidationError listing all violations, if any."""
        found = self.violations(owner_id, draft)
        if found:
            raise ValidationError(found)

    def validate_all(
        self,
        owner_id: str,
        drafts: Iterable[TransactionDraft],
        pending_account_ids: Collection[int] = (),
    ) -> None:
        """Validate several drafts, prefixing each violation with its draft number."""
        found: list[Violation] = []
        drafts = list(drafts)
        for number, draft in enumerate(drafts, start=1):
            for violation in self.violations(owner_id, draft, pending_account_ids):
                if len(drafts) > 1:
                    violation = Violation(violation.rule, f"Transaction {number}: {violation.message}")
                found.append(violation)
        if found:
            raise ValidationError(found)

    def _account_violations(self, owner_id: str, account_ids: set[int]) -> list[Violation]:
        accounts: dict[int, Account] = self.db.get_accounts(account_ids)
        found = []
        for account_id in sorted(account_ids):
            account = accounts.get(account_id)
            if account is None:
                found.append(Violation("unknown_account", f"Account {account_id} not found"))
            elif account.owner_id != owner_id:
                found.append(
                    Violation("foreign_account", f"Account {account_id} does not belong to {owner_id}")
                )
            elif not account.is_active:
                found.append(Violation("inactive_account", f"Account '{account.name}' is inactive"))
        return found
