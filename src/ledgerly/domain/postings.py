"""Transaction shapes and the service that turns them into ledger commits.

Each shape is a small frozen dataclass describing one kind of money movement.
PostingService plans the balanced drafts for a shape, and everything then
goes through the generic LedgerService commit path, so no shape can bypass
validation.
"""

import logging
from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal, ROUND_DOWN
from typing import Optional, Union

from ledgerly.database.base import Database
from ledgerly.domain.account import (
    BALANCE_ADJUSTMENTS,
    INTEREST_EXPENSE,
    OPENING_BALANCES,
    AccountService,
    SystemAccount,
)
from ledgerly.domain.balances import BalanceProjector
from ledgerly.domain.entities import (
    Account,
    AccountType,
    EntryDraft,
    EntrySide,
    PostingResult,
    TransactionDraft,
)
from ledgerly.domain.errors import ValidationError, Violation
from ledgerly.domain.ledger import LedgerService
from ledgerly.domain.money import HUNDRED, MINOR_UNIT, ZERO, to_decimal

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OpeningBalance:
    """Starting balance of an account, offset against Opening Balances equity.

    A negative amount moves the account against its normal side (an
    overdrawn checking account, for example).
    """

    account_id: int
    amount: Decimal


@dataclass(frozen=True)
class Transfer:
    """Money moved between two of the owner's asset accounts."""

    from_account_id: int
    to_account_id: int
    amount: Decimal


@dataclass(frozen=True)
class Expense:
    """Spending: debit an expense account, credit an asset or liability."""

    expense_account_id: int
    paid_from_account_id: int
    amount: Decimal


@dataclass(frozen=True)
class Income:
    """Earnings: debit an asset account, credit an income account."""

    income_account_id: int
    deposit_account_id: int
    amount: Decimal


@dataclass(frozen=True)
class BalanceAdjustment:
    """Move an account to a stated actual balance."""

    account_id: int
    stated_actual: Decimal


@dataclass(frozen=True)
class Allocation:
    """Percentage of a windfall sent to one account."""

    account_id: int
    percent: Decimal


@dataclass(frozen=True)
class WindfallSplit:
    """Income deposited once, then split across several targets."""

    income_account_id: int
    deposit_account_id: int
    amount: Decimal
    allocations: tuple[Allocation, ...]


@dataclass(frozen=True)
class LoanDisbursement:
    """Borrowed money arriving in an asset account."""

    liability_account_id: int
    deposit_account_id: int
    amount: Decimal


@dataclass(frozen=True)
class DebtPayment:
    """Payment that reduces a liability: debit liability, credit asset."""

    liability_account_id: int
    paid_from_account_id: int
    amount: Decimal


@dataclass(frozen=True)
class InterestAccrual:
    """Interest charged on a liability: debit interest expense, credit liability."""

    liability_account_id: int
    amount: Decimal
    interest_account_id: Optional[int] = None


Shape = Union[
    OpeningBalance,
    Transfer,
    Expense,
    Income,
    BalanceAdjustment,
    WindfallSplit,
    LoanDisbursement,
    DebtPayment,
    InterestAccrual,
]

DEFAULT_DESCRIPTIONS = {
    OpeningBalance: "Opening balance",
    Transfer: "Transfer",
    Expense: "Expense",
    Income: "Income",
    BalanceAdjustment: "Balance adjustment",
    WindfallSplit: "Windfall",
    LoanDisbursement: "Loan disbursement",
    DebtPayment: "Debt payment",
    InterestAccrual: "Interest accrual",
}

# Stand-ins for system accounts that do not exist yet. They are swapped for
# real IDs only after the drafts pass validation.
SYSTEM_PLACEHOLDERS = {
    OPENING_BALANCES: -1,
    BALANCE_ADJUSTMENTS: -2,
    INTEREST_EXPENSE: -3,
}


def split_amount(amount: Decimal, percents: list[Decimal]) -> list[Decimal]:
    """Split amount by percentages into whole cents.

    Each share is rounded down; the cents left over go to the first share, so
    the shares always add up to amount exactly.
    """
    shares = [(amount * pct / HUNDRED).quantize(MINOR_UNIT, rounding=ROUND_DOWN) for pct in percents]
    if shares:
        shares[0] += amount - sum(shares, ZERO)
    return shares


class PostingService:
    """Plans balanced drafts for each transaction shape and commits them."""

    def __init__(self, db: Database):
        """Initialize posting service.

        Args:
            db: Database instance
        """
        self.db = db
        self.accounts = AccountService(db)
        self.ledger = LedgerService(db)
        self.projector = BalanceProjector(db)
        self._planners = {
            OpeningBalance: self._plan_opening_balance,
            Transfer: self._plan_transfer,
            Expense: self._plan_expense,
            Income: self._plan_income,
            BalanceAdjustment: self._plan_adjustment,
            WindfallSplit: self._plan_windfall,
            LoanDisbursement: self._plan_disbursement,
            DebtPayment: self._plan_debt_payment,
            InterestAccrual: self._plan_interest,
        }

    def post(
        self,
        owner_id: str,
        shape: Shape,
        on: date,
        description: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> PostingResult:
        """Plan and commit a shape.

        Args:
            owner_id: Owner the posting is made for
            shape: One of the shape dataclasses in this module
            on: Transaction date
            description: Overrides the shape's default description
            notes: Optional notes (adjustments always record old -> new)

        Returns:
            PostingResult with committed IDs, or a skipped_reason for no-ops

        Raises:
            ValidationError: If the shape or any planned draft is invalid
        """
        planner = self._planners.get(type(shape))
        if planner is None:
            raise TypeError(f"Unsupported transaction shape: {type(shape).__name__}")
        description = description or DEFAULT_DESCRIPTIONS[type(shape)]

        # Planning reads balances, so it runs under the same lock as the commit
        with self.db.owner_lock(owner_id):
            drafts, details = planner(owner_id, shape, on, description, notes)
            if not drafts:
                reason = details.pop("skipped_reason")
                logger.info("Skipped %s for %s: %s", type(shape).__name__, owner_id, reason)
                return PostingResult(skipped_reason=reason, details=details)

            drafts = self._create_pending_accounts(owner_id, drafts)
            if len(drafts) == 1:
                ids = [self.ledger.commit(owner_id, drafts[0])]
            else:
                ids = self.ledger.commit_many(owner_id, drafts)
        return PostingResult(transaction_ids=tuple(ids), details=details)

    # Helpers

    def _system_account_id(self, owner_id: str, system_account: SystemAccount) -> int:
        account = self.accounts.find_system_account(owner_id, system_account)
        return account.id if account is not None else SYSTEM_PLACEHOLDERS[system_account]

    def _create_pending_accounts(self, owner_id: str, drafts: list[TransactionDraft]) -> list[TransactionDraft]:
        """Validate drafts that use placeholder accounts, then create those accounts.

        Nothing is written when validation fails.
        """
        used = {entry.account_id for draft in drafts for entry in draft.entries}
        pending = {pid: system for system, pid in SYSTEM_PLACEHOLDERS.items() if pid in used}
        if not pending:
            return drafts

        self.ledger.validator.validate_all(owner_id, drafts, pending_account_ids=pending)
        resolved = {
            pid: self.accounts.ensure_system_account(owner_id, system).id for pid, system in pending.items()
        }
        return [
            replace(
                draft,
                entries=tuple(
                    replace(entry, account_id=resolved.get(entry.account_id, entry.account_id))
                    for entry in draft.entries
                ),
            )
            for draft in drafts
        ]

    def _owned(self, owner_id: str, account_id: int) -> Optional[Account]:
        # Missing or foreign accounts are reported by the validator
        return self.accounts.get_account(owner_id, account_id)

    def _require_type(self, owner_id, account_id, allowed, rule, message) -> list[Violation]:
        account = self._owned(owner_id, account_id)
        if account is not None and account.account_type not in allowed:
            return [Violation(rule, message.format(name=account.name, type=account.account_type.value))]
        return []

    @staticmethod
    def _pair(debit_id: int, credit_id: int, amount: Decimal) -> tuple[EntryDraft, ...]:
        return (
            EntryDraft(account_id=debit_id, side=EntrySide.DEBIT, amount=amount),
            EntryDraft(account_id=credit_id, side=EntrySide.CREDIT, amount=amount),
        )

    @staticmethod
    def _raise_if(violations: list[Violation]) -> None:
        if violations:
            raise ValidationError(violations)

    # Planners: each returns (drafts, details)

    def _plan_opening_balance(self, owner_id, shape: OpeningBalance, on, description, notes):
        amount = to_decimal(shape.amount)
        if amount == ZERO:
            return [], {"skipped_reason": "zero_amount"}
        account = self._owned(owner_id, shape.account_id)
        equity_id = self._system_account_id(owner_id, OPENING_BALANCES)
        normal = account.account_type.normal_side if account else EntrySide.DEBIT
        side = normal if amount > ZERO else normal.opposite
        entries = (
            EntryDraft(account_id=shape.account_id, side=side, amount=abs(amount)),
            EntryDraft(account_id=equity_id, side=side.opposite, amount=abs(amount)),
        )
        return [TransactionDraft(on, description, entries, notes)], {"amount": amount}

    def _plan_transfer(self, owner_id, shape: Transfer, on, description, notes):
        violations = []
        for account_id in (shape.from_account_id, shape.to_account_id):
            violations += self._require_type(
                owner_id,
                account_id,
                (AccountType.ASSET,),
                "transfer_requires_assets",
                "Transfers move money between asset accounts; '{name}' is {type}",
            )
        self._raise_if(violations)
        amount = to_decimal(shape.amount)
        entries = self._pair(shape.to_account_id, shape.from_account_id, amount)
        return [TransactionDraft(on, description, entries, notes)], {"amount": amount}

    def _plan_expense(self, owner_id, shape: Expense, on, description, notes):
        violations = self._require_type(
            owner_id,
            shape.expense_account_id,
            (AccountType.EXPENSE,),
            "expense_account_required",
            "Expenses must debit an expense account; '{name}' is {type}",
        )
        violations += self._require_type(
            owner_id,
            shape.paid_from_account_id,
            (AccountType.ASSET, AccountType.LIABILITY),
            "invalid_funding_account",
            "Expenses are paid from an asset or liability account; '{name}' is {type}",
        )
        self._raise_if(violations)
        amount = to_decimal(shape.amount)
        entries = self._pair(shape.expense_account_id, shape.paid_from_account_id, amount)
        return [TransactionDraft(on, description, entries, notes)], {"amount": amount}

    def _plan_income(self, owner_id, shape: Income, on, description, notes):
        self._raise_if(self._income_violations(owner_id, shape.income_account_id, shape.deposit_account_id))
        amount = to_decimal(shape.amount)
        entries = self._pair(shape.deposit_account_id, shape.income_account_id, amount)
        return [TransactionDraft(on, description, entries, notes)], {"amount": amount}

    def _income_violations(self, owner_id, income_account_id, deposit_account_id) -> list[Violation]:
        violations = self._require_type(
            owner_id,
            income_account_id,
            (AccountType.INCOME,),
            "income_account_required",
            "Income must credit an income account; '{name}' is {type}",
        )
        violations += self._require_type(
            owner_id,
            deposit_account_id,
            (AccountType.ASSET,),
            "deposit_requires_asset",
            "Income is deposited into an asset account; '{name}' is {type}",
        )
        return violations

    def _plan_adjustment(self, owner_id, shape: BalanceAdjustment, on, description, notes):
        account = self.accounts.require_account(owner_id, shape.account_id)
        stated = to_decimal(shape.stated_actual)
        current = self.projector.balance_as_of(owner_id, account.id, on)
        difference = stated - current
        details = {"old": current, "new": stated, "difference": difference}
        if difference == ZERO:
            return [], {"skipped_reason": "no_difference", **details}

        equity_id = self._system_account_id(owner_id, BALANCE_ADJUSTMENTS)
        normal = account.account_type.normal_side
        side = normal if difference > ZERO else normal.opposite
        entries = (
            EntryDraft(account_id=account.id, side=side, amount=abs(difference)),
            EntryDraft(account_id=equity_id, side=side.opposite, amount=abs(difference)),
        )
        adjustment_note = f"Adjustment: {current} -> {stated}"
        notes = f"{adjustment_note}; {notes}" if notes else adjustment_note
        return [TransactionDraft(on, description, entries, notes)], details

    def _plan_windfall(self, owner_id, shape: WindfallSplit, on, description, notes):
        violations = self._income_violations(owner_id, shape.income_account_id, shape.deposit_account_id)
        if not shape.allocations:
            violations.append(Violation("allocations_required", "A windfall split needs at least one allocation"))
        percents = [to_decimal(a.percent) for a in shape.allocations]
        if any(pct < ZERO for pct in percents):
            violations.append(Violation("negative_allocation", "Allocation percentages must not be negative"))
        if shape.allocations and sum(percents, ZERO) != HUNDRED:
            violations.append(
                Violation(
                    "allocations_must_total_100",
                    f"Allocation percentages must add up to 100, got {sum(percents, ZERO)}",
                )
            )
        for allocation in shape.allocations:
            violations += self._require_type(
                owner_id,
                allocation.account_id,
                (AccountType.ASSET, AccountType.EXPENSE),
                "invalid_allocation_target",
                "Windfall allocations go to asset or expense accounts; '{name}' is {type}",
            )
        self._raise_if(violations)

        amount = to_decimal(shape.amount)
        drafts = [
            TransactionDraft(
                on,
                description,
                self._pair(shape.deposit_account_id, shape.income_account_id, amount),
                notes,
            )
        ]
        shares = split_amount(amount, percents)
        allocated = {}
        for allocation, share in zip(shape.allocations, shares):
            allocated[allocation.account_id] = allocated.get(allocation.account_id, ZERO) + share
            # Money allocated to the deposit account itself stays where it is
            if share == ZERO or allocation.account_id == shape.deposit_account_id:
                continue
            drafts.append(
                TransactionDraft(
                    on,
                    f"{description}: allocation",
                    self._pair(allocation.account_id, shape.deposit_account_id, share),
                    notes,
                )
            )
        return drafts, {"amount": amount, "allocations": allocated}

    def _plan_disbursement(self, owner_id, shape: LoanDisbursement, on, description, notes):
        violations = self._liability_violations(owner_id, shape.liability_account_id)
        violations += self._require_type(
            owner_id,
            shape.deposit_account_id,
            (AccountType.ASSET,),
            "deposit_requires_asset",
            "Loan money is deposited into an asset account; '{name}' is {type}",
        )
        self._raise_if(violations)
        amount = to_decimal(shape.amount)
        entries = self._pair(shape.deposit_account_id, shape.liability_account_id, amount)
        return [TransactionDraft(on, description, entries, notes)], {"amount": amount}

    def _plan_debt_payment(self, owner_id, shape: DebtPayment, on, description, notes):
        violations = self._liability_violations(owner_id, shape.liability_account_id)
        violations += self._require_type(
            owner_id,
            shape.paid_from_account_id,
            (AccountType.ASSET,),
            "invalid_funding_account",
            "Debt payments are made from an asset account; '{name}' is {type}",
        )
        self._raise_if(violations)
        amount = to_decimal(shape.amount)
        entries = self._pair(shape.liability_account_id, shape.paid_from_account_id, amount)
        return [TransactionDraft(on, description, entries, notes)], {"amount": amount}

    def _plan_interest(self, owner_id, shape: InterestAccrual, on, description, notes):
        violations = self._liability_violations(owner_id, shape.liability_account_id)
        if shape.interest_account_id is not None:
            violations += self._require_type(
                owner_id,
                shape.interest_account_id,
                (AccountType.EXPENSE,),
                "expense_account_required",
                "Interest is charged to an expense account; '{name}' is {type}",
            )
        self._raise_if(violations)
        interest_account_id = shape.interest_account_id
        if interest_account_id is None:
            interest_account_id = self._system_account_id(owner_id, INTEREST_EXPENSE)
        amount = to_decimal(shape.amount)
        entries = self._pair(interest_account_id, shape.liability_account_id, amount)
        return [TransactionDraft(on, description, entries, notes)], {"amount": amount}

    def _liability_violations(self, owner_id, account_id) -> list[Violation]:
        return self._require_type(
            owner_id,
            account_id,
            (AccountType.LIABILITY,),
            "liability_account_required",
            "Debt postings need a liability account; '{name}' is {type}",
        )
