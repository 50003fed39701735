"""Domain model entities for ledgerly.

These are pure data classes representing business concepts, independent of
database schema. Balances are deliberately absent from Account: they are
always derived from entries.
"""

from dataclasses import dataclass, field
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Optional

from ledgerly.domain.errors import NoViableRepaymentOption


class AccountType(str, Enum):
    """Kind of account, which fixes its normal balance side."""

    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    INCOME = "income"
    EXPENSE = "expense"

    @property
    def normal_side(self) -> "EntrySide":
        """Side on which this account type increases."""
        if self in (AccountType.ASSET, AccountType.EXPENSE):
            return EntrySide.DEBIT
        return EntrySide.CREDIT


class EntrySide(str, Enum):
    """Side of a ledger entry."""

    DEBIT = "debit"
    CREDIT = "credit"

    @property
    def opposite(self) -> "EntrySide":
        return EntrySide.CREDIT if self is EntrySide.DEBIT else EntrySide.DEBIT


class RateFrequency(str, Enum):
    """Period the stated interest rate refers to."""

    ANNUAL = "annual"
    MONTHLY = "monthly"


class PaymentFrequency(str, Enum):
    """How often a debt payment is made."""

    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"

    @property
    def periods_per_year(self) -> int:
        return {"weekly": 52, "biweekly": 26, "monthly": 12}[self.value]


class RepaymentMethod(str, Enum):
    """Repayment strategies the comparator knows how to project."""

    FIXED_TERM = "fixed_term"
    MINIMUM = "minimum"
    AGGRESSIVE = "aggressive"
    EQUAL_PRINCIPAL = "equal_principal"
    BULLET = "bullet"
    INTEREST_ONLY_BALLOON = "interest_only_balloon"
    GRADUATED = "graduated"


class WarningLevel(str, Enum):
    """Severity of a projection warning. CRITICAL means infeasible."""

    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


@dataclass(frozen=True)
class Account:
    """Ledger account domain entity."""

    id: int
    owner_id: str
    name: str
    account_type: AccountType
    category: Optional[str]
    is_active: bool
    opened_at: datetime
    is_system: bool = False


@dataclass(frozen=True)
class Entry:
    """One leg of a transaction."""

    id: int
    transaction_id: int
    account_id: int
    side: EntrySide
    amount: Decimal


@dataclass(frozen=True)
class Transaction:
    """Committed transaction with its entries."""

    id: int
    owner_id: str
    date: date
    description: str
    notes: Optional[str]
    created_at: datetime
    reverses_id: Optional[int] = None
    entries: tuple[Entry, ...] = ()


@dataclass(frozen=True)
class PostedEntry:
    """Entry joined with its transaction's date, as read by the projector."""

    entry_id: int
    transaction_id: int
    account_id: int
    date: date
    side: EntrySide
    amount: Decimal


@dataclass(frozen=True)
class EntryDraft:
    """An entry not yet committed."""

    account_id: int
    side: EntrySide
    amount: Decimal


@dataclass(frozen=True)
class TransactionDraft:
    """A transaction not yet committed; validated as a whole."""

    date: date
    description: str
    entries: tuple[EntryDraft, ...]
    notes: Optional[str] = None
    reverses_id: Optional[int] = None


@dataclass(frozen=True)
class Debt:
    """Debt domain entity. current_balance is a cache of the ledger."""

    id: int
    owner_id: str
    name: str
    liability_account_id: int
    principal: Decimal
    current_balance: Decimal
    interest_rate: Decimal
    rate_frequency: RateFrequency
    repayment_method: RepaymentMethod
    payment_amount: Decimal
    payment_frequency: PaymentFrequency
    start_date: date
    total_periods: Optional[int]
    is_active: bool
    created_at: datetime
    payoff_date: Optional[date] = None


@dataclass(frozen=True)
class ProjectionWarning:
    """Typed warning attached to a projection."""

    level: WarningLevel
    code: str
    message: str
    period: Optional[int] = None


@dataclass(frozen=True)
class ScheduleRow:
    """One payment period of an amortization schedule (full precision)."""

    period: int
    date: date
    balance: Decimal
    payment: Decimal
    interest: Decimal
    principal_portion: Decimal


@dataclass(frozen=True)
class Schedule:
    """Result of one amortization run."""

    rows: tuple[ScheduleRow, ...]
    principal: Decimal
    periodic_rate: Decimal
    start_date: date
    total_interest: Decimal
    total_paid: Decimal
    payoff_date: Optional[date]
    warnings: tuple[ProjectionWarning, ...] = ()

    @property
    def feasible(self) -> bool:
        return not any(w.level == WarningLevel.CRITICAL for w in self.warnings)

    @property
    def periods(self) -> int:
        return len(self.rows)

    @property
    def highest_payment(self) -> Decimal:
        return max((row.payment for row in self.rows), default=Decimal("0"))


@dataclass(frozen=True)
class DebtInputs:
    """Loan parameters and household cash flow fed to the comparator.

    Income, living costs and obligations are monthly amounts; they are
    converted to the payment frequency when compared with payments.
    """

    principal: Decimal
    interest_rate: Decimal
    term_periods: int
    start_date: date
    rate_frequency: RateFrequency = RateFrequency.ANNUAL
    payment_frequency: PaymentFrequency = PaymentFrequency.MONTHLY
    monthly_income: Optional[Decimal] = None
    monthly_living_costs: Decimal = Decimal("0")
    other_obligations: Decimal = Decimal("0")
    minimum_payment: Optional[Decimal] = None

    def _per_period(self, monthly_amount: Decimal) -> Decimal:
        return monthly_amount * 12 / PaymentFrequency(self.payment_frequency).periods_per_year

    @property
    def cash_margin(self) -> Optional[Decimal]:
        """Income minus living costs, per payment period."""
        if self.monthly_income is None:
            return None
        return self._per_period(self.monthly_income - self.monthly_living_costs)

    @property
    def spare_cash(self) -> Optional[Decimal]:
        """Income minus living costs and other obligations, per payment period."""
        if self.monthly_income is None:
            return None
        return self._per_period(self.monthly_income - self.monthly_living_costs - self.other_obligations)


@dataclass(frozen=True)
class MethodProjection:
    """A schedule produced under one repayment strategy, with display metadata."""

    method: RepaymentMethod
    title: str
    payment: Decimal
    schedule: Schedule
    highest_payment: Decimal
    sparkline: tuple[tuple[date, Decimal], ...]
    hidden: bool
    hide_reason: Optional[str] = None

    @property
    def warnings(self) -> tuple[ProjectionWarning, ...]:
        return self.schedule.warnings

    @property
    def total_interest(self) -> Decimal:
        return self.schedule.total_interest

    @property
    def payoff_date(self) -> Optional[date]:
        return self.schedule.payoff_date


@dataclass(frozen=True)
class Comparison:
    """Ranked set of method projections."""

    projections: tuple[MethodProjection, ...]

    @property
    def visible(self) -> tuple[MethodProjection, ...]:
        return tuple(p for p in self.projections if not p.hidden)

    @property
    def no_viable_option(self) -> bool:
        """True only when projections exist and all of them are hidden."""
        return bool(self.projections) and not self.visible

    @property
    def recommended(self) -> Optional[MethodProjection]:
        visible = self.visible
        return visible[0] if visible else None

    def require_viable(self) -> "Comparison":
        """Return self, or raise NoViableRepaymentOption when every method is hidden."""
        if self.no_viable_option:
            raise NoViableRepaymentOption(
                "No repayment method is feasible: "
                + "; ".join(p.hide_reason or p.method.value for p in self.projections)
            )
        return self


@dataclass(frozen=True)
class PortfolioDebt:
    """One debt in a multi-debt payoff plan."""

    name: str
    balance: Decimal
    interest_rate: Decimal
    minimum_payment: Decimal
    rate_frequency: RateFrequency = RateFrequency.ANNUAL


@dataclass(frozen=True)
class PortfolioRow:
    """Aggregate figures for one period of a portfolio plan."""

    period: int
    date: date
    balance: Decimal
    payment: Decimal
    interest: Decimal


@dataclass(frozen=True)
class PortfolioPlan:
    """Result of simulating avalanche or snowball across several debts."""

    strategy: str
    budget: Decimal
    rows: tuple[PortfolioRow, ...]
    payoff_order: tuple[str, ...]
    payoff_dates: dict
    total_interest: Decimal
    total_paid: Decimal
    payoff_date: Optional[date]
    warnings: tuple[ProjectionWarning, ...] = ()

    @property
    def feasible(self) -> bool:
        return not any(w.level == WarningLevel.CRITICAL for w in self.warnings)

    @property
    def periods(self) -> int:
        return len(self.rows)


@dataclass(frozen=True)
class BalancePoint:
    """Balance of an account (or net worth) at the end of a date."""

    date: date
    balance: Decimal


@dataclass(frozen=True)
class BalanceTotals:
    """Asset, liability and net-worth totals at a point in time."""

    as_of: Optional[date]
    assets: Decimal
    liabilities: Decimal

    @property
    def net_worth(self) -> Decimal:
        return self.assets - self.liabilities


@dataclass(frozen=True)
class PostingResult:
    """Outcome of posting a transaction shape."""

    transaction_ids: tuple[int, ...] = ()
    skipped_reason: Optional[str] = None
    details: dict = field(default_factory=dict)

    @property
    def committed(self) -> bool:
        return bool(self.transaction_ids)
