"""Debt domain service: create, accrue, pay and reconcile debts."""

import logging
from datetime import date
from decimal import Decimal
from typing import Optional

from ledgerly.database.base import Database
from ledgerly.domain.account import AccountService
from ledgerly.domain.amortization import periodic_rate
from ledgerly.domain.balances import BalanceProjector
from ledgerly.domain.entities import (
    AccountType,
    Debt as DebtEntity,
    DebtInputs,
    MethodProjection,
    PaymentFrequency,
    PostingResult,
    RateFrequency,
    RepaymentMethod,
)
from ledgerly.domain.errors import (
    ConflictError,
    IntegrityViolation,
    NotFoundError,
    ValidationError,
    Violation,
    debt_not_found,
)
from ledgerly.domain.money import ZERO, ceil_money, is_minor_unit_exact, round_money, to_decimal
from ledgerly.domain.postings import (
    DebtPayment,
    InterestAccrual,
    LoanDisbursement,
    OpeningBalance,
    PostingService,
)

logger = logging.getLogger(__name__)


class DebtService:
    """Service for debts backed by liability accounts.

    The liability account's derived balance is the truth; the debt's
    ``current_balance`` is a cache refreshed from it after every posting.
    """

    def __init__(self, db: Database):
        """Initialize debt service.

        Args:
            db: Database instance
        """
        self.db = db
        self.accounts = AccountService(db)
        self.postings = PostingService(db)
        self.projector = BalanceProjector(db)

    def create_debt(
        self,
        owner_id: str,
        name: str,
        principal: Decimal,
        interest_rate: Decimal,
        payment_amount: Decimal,
        start_date: date,
        rate_frequency: RateFrequency = RateFrequency.ANNUAL,
        payment_frequency: PaymentFrequency = PaymentFrequency.MONTHLY,
        repayment_method: RepaymentMethod = RepaymentMethod.FIXED_TERM,
        total_periods: Optional[int] = None,
        funding_account_id: Optional[int] = None,
    ) -> DebtEntity:
        """Create a debt, its liability account and the posting of its principal.

        Args:
            owner_id: Owner of the debt
            name: Debt name, also used for the liability account
            principal: Amount borrowed
            interest_rate: Rate in percent
            payment_amount: Planned payment per period
            start_date: Date the principal is posted
            rate_frequency: annual or monthly
            payment_frequency: weekly, biweekly or monthly
            repayment_method: Method chosen for the debt
            total_periods: Planned number of payments, if known
            funding_account_id: Asset account that received the money; when
                omitted the principal is offset against Opening Balances

        Returns:
            The created debt

        Raises:
            ValidationError: If amounts or the funding account are invalid
            ConflictError: If an account with the name already exists
        """
        principal = to_decimal(principal)
        payment_amount = to_decimal(payment_amount)
        interest_rate = to_decimal(interest_rate)
        violations = []
        for label, value in (("principal", principal), ("payment", payment_amount)):
            if value <= ZERO or not is_minor_unit_exact(value):
                violations.append(
                    Violation(f"invalid_{label}", f"The {label} must be a positive amount in whole cents, got {value}")
                )
        if interest_rate < ZERO:
            violations.append(Violation("invalid_rate", f"Interest rate must not be negative, got {interest_rate}"))
        if total_periods is not None and total_periods <= 0:
            violations.append(Violation("invalid_term", f"Number of periods must be positive, got {total_periods}"))
        if funding_account_id is not None:
            funding = self.accounts.require_account(owner_id, funding_account_id)
            if funding.account_type is not AccountType.ASSET or not funding.is_active:
                violations.append(
                    Violation(
                        "deposit_requires_asset",
                        f"Loan money is deposited into an active asset account; '{funding.name}' is not",
                    )
                )
        if violations:
            raise ValidationError(violations)

        with self.db.owner_lock(owner_id):
            liability_id = self.accounts.create_account(owner_id, name, AccountType.LIABILITY, category="debt")
            if funding_account_id is None:
                shape = OpeningBalance(account_id=liability_id, amount=principal)
            else:
                shape = LoanDisbursement(
                    liability_account_id=liability_id, deposit_account_id=funding_account_id, amount=principal
                )
            try:
                self.postings.post(owner_id, shape, start_date, description=f"Loan: {name}")
            except ValidationError:
                # The principal was never posted, so the new account is still empty
                self.db.delete_account(liability_id)
                raise

            debt_id = self.db.create_debt(
                owner_id=owner_id,
                name=name,
                liability_account_id=liability_id,
                principal=principal,
                interest_rate=interest_rate,
                rate_frequency=RateFrequency(rate_frequency),
                repayment_method=RepaymentMethod(repayment_method),
                payment_amount=payment_amount,
                payment_frequency=PaymentFrequency(payment_frequency),
                start_date=start_date,
                total_periods=total_periods,
            )
        logger.info("Created debt %d '%s' of %s for %s", debt_id, name, principal, owner_id)
        return self.db.get_debt(debt_id)

    def create_from_projection(
        self,
        owner_id: str,
        name: str,
        inputs: DebtInputs,
        projection: MethodProjection,
        funding_account_id: Optional[int] = None,
    ) -> DebtEntity:
        """Commit the method a user picked from a comparison.

        Raises:
            ValidationError: If the projection is hidden (infeasible)
        """
        if projection.hidden:
            raise ValidationError.single(
                "infeasible_projection",
                f"The {projection.title} plan is not feasible: {projection.hide_reason}",
            )
        return self.create_debt(
            owner_id=owner_id,
            name=name,
            principal=inputs.principal,
            interest_rate=inputs.interest_rate,
            payment_amount=ceil_money(projection.highest_payment),
            start_date=inputs.start_date,
            rate_frequency=inputs.rate_frequency,
            payment_frequency=inputs.payment_frequency,
            repayment_method=projection.method,
            total_periods=projection.schedule.periods,
            funding_account_id=funding_account_id,
        )

    def get_debt(self, owner_id: str, debt_id: int) -> Optional[DebtEntity]:
        """Get an owner's debt, or None."""
        debt = self.db.get_debt(debt_id)
        if debt is None or debt.owner_id != owner_id:
            return None
        return debt

    def require_debt(self, owner_id: str, debt_id: int) -> DebtEntity:
        """Get an owner's debt or raise NotFoundError."""
        debt = self.get_debt(owner_id, debt_id)
        if debt is None:
            raise NotFoundError(debt_not_found(debt_id))
        return debt

    def list_debts(self, owner_id: str, active_only: bool = False) -> list[DebtEntity]:
        """List an owner's debts."""
        return self.db.list_debts(owner_id, active_only=active_only)

    def period_interest(self, owner_id: str, debt: DebtEntity, on: Optional[date] = None) -> Decimal:
        """One period of interest on the derived balance, rounded to the cent."""
        balance = self.projector.balance_as_of(owner_id, debt.liability_account_id, on)
        if balance <= ZERO:
            return ZERO
        rate = periodic_rate(debt.interest_rate, debt.rate_frequency, debt.payment_frequency)
        return round_money(balance * rate)

    def accrue_interest(self, owner_id: str, debt_id: int, on: date) -> PostingResult:
        """Post one period of interest on the debt.

        Returns:
            PostingResult; skipped when the interest rounds to zero

        Raises:
            ConflictError: If the debt is already paid off
        """
        with self.db.owner_lock(owner_id):
            debt = self._require_active(owner_id, debt_id)
            interest = self.period_interest(owner_id, debt, on)
            if interest <= ZERO:
                logger.info("No interest to accrue on debt %d", debt_id)
                return PostingResult(skipped_reason="no_interest", details={"interest": ZERO})

            result = self.postings.post(
                owner_id,
                InterestAccrual(liability_account_id=debt.liability_account_id, amount=interest),
                on,
                description=f"Interest: {debt.name}",
            )
            balance = self._refresh_balance(owner_id, debt, on)
        return PostingResult(
            transaction_ids=result.transaction_ids,
            details={"interest": interest, "balance": balance},
        )

    def record_payment(
        self,
        owner_id: str,
        debt_id: int,
        amount: Decimal,
        paid_from_account_id: int,
        on: date,
        accrue_interest: bool = True,
    ) -> PostingResult:
        """Record a payment, optionally accruing the period's interest first.

        Raises:
            ValidationError: If the payment exceeds what is owed
            ConflictError: If the debt is already paid off
        """
        amount = to_decimal(amount)
        with self.db.owner_lock(owner_id):
            debt = self._require_active(owner_id, debt_id)
            if amount <= ZERO or not is_minor_unit_exact(amount):
                raise ValidationError.single(
                    "invalid_payment", f"The payment must be a positive amount in whole cents, got {amount}"
                )
            funding = self.accounts.require_account(owner_id, paid_from_account_id)
            if funding.account_type is not AccountType.ASSET or not funding.is_active:
                raise ValidationError.single(
                    "invalid_funding_account",
                    f"Debt payments are made from an active asset account; '{funding.name}' is not",
                )
            interest = self.period_interest(owner_id, debt, on) if accrue_interest else ZERO
            owed = self.projector.balance_as_of(owner_id, debt.liability_account_id) + interest
            if amount > owed:
                raise ValidationError.single(
                    "payment_exceeds_balance",
                    f"Payment of {amount} exceeds the {round_money(owed)} owed on '{debt.name}'",
                )

            transaction_ids = []
            if interest > ZERO:
                accrual = self.postings.post(
                    owner_id,
                    InterestAccrual(liability_account_id=debt.liability_account_id, amount=interest),
                    on,
                    description=f"Interest: {debt.name}",
                )
                transaction_ids.extend(accrual.transaction_ids)
            payment = self.postings.post(
                owner_id,
                DebtPayment(
                    liability_account_id=debt.liability_account_id,
                    paid_from_account_id=paid_from_account_id,
                    amount=amount,
                ),
                on,
                description=f"Payment: {debt.name}",
            )
            transaction_ids.extend(payment.transaction_ids)

            balance = self._refresh_balance(owner_id, debt, on)
        return PostingResult(
            transaction_ids=tuple(transaction_ids),
            details={"interest": interest, "payment": amount, "balance": balance},
        )

    def reconcile(self, owner_id: str, debt_id: int) -> Decimal:
        """Check the cached balance against the ledger.

        Returns:
            The derived balance

        Raises:
            IntegrityViolation: If the cache and the ledger disagree
        """
        debt = self.require_debt(owner_id, debt_id)
        derived = self.projector.verify_account(owner_id, debt.liability_account_id)
        if derived != debt.current_balance:
            logger.critical(
                "Debt %d cache drift: cached=%s derived=%s", debt_id, debt.current_balance, derived
            )
            raise IntegrityViolation(
                f"Debt {debt_id} balance {debt.current_balance} does not match ledger balance {derived}"
            )
        return derived

    def _require_active(self, owner_id: str, debt_id: int) -> DebtEntity:
        debt = self.require_debt(owner_id, debt_id)
        if not debt.is_active:
            raise ConflictError(f"Debt '{debt.name}' is already paid off")
        return debt

    def _refresh_balance(self, owner_id: str, debt: DebtEntity, on: date) -> Decimal:
        balance = self.projector.balance_as_of(owner_id, debt.liability_account_id)
        paid_off = balance <= ZERO
        self.db.update_debt_balance(
            debt.id,
            current_balance=balance,
            is_active=not paid_off,
            payoff_date=on if paid_off else None,
        )
        if paid_off:
            logger.info("Debt %d '%s' paid off on %s", debt.id, debt.name, on)
        return balance
