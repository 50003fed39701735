"""Repayment method comparator and multi-debt payoff planner."""

import logging
from dataclasses import replace
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from ledgerly.domain.amortization import (
    DEFAULT_MAX_PERIODS,
    DUST,
    add_periods,
    amortize,
    annuity_payment,
    periodic_rate,
)
from ledgerly.domain.entities import (
    Comparison,
    DebtInputs,
    MethodProjection,
    PaymentFrequency,
    PortfolioDebt,
    PortfolioPlan,
    PortfolioRow,
    ProjectionWarning,
    RepaymentMethod,
    Schedule,
    WarningLevel,
)
from ledgerly.domain.money import ZERO, ceil_money, format_money, round_money, to_decimal

logger = logging.getLogger(__name__)

METHOD_ORDER = (
    RepaymentMethod.FIXED_TERM,
    RepaymentMethod.MINIMUM,
    RepaymentMethod.AGGRESSIVE,
    RepaymentMethod.EQUAL_PRINCIPAL,
    RepaymentMethod.BULLET,
    RepaymentMethod.INTEREST_ONLY_BALLOON,
    RepaymentMethod.GRADUATED,
)

METHOD_TITLES = {
    RepaymentMethod.FIXED_TERM: "Fixed term",
    RepaymentMethod.MINIMUM: "Minimum payment",
    RepaymentMethod.AGGRESSIVE: "Aggressive (all spare cash)",
    RepaymentMethod.EQUAL_PRINCIPAL: "Equal principal",
    RepaymentMethod.BULLET: "Bullet (pay at end)",
    RepaymentMethod.INTEREST_ONLY_BALLOON: "Interest-only + balloon",
    RepaymentMethod.GRADUATED: "Graduated (step-up)",
}

DEFERRED_METHODS = (
    RepaymentMethod.BULLET,
    RepaymentMethod.INTEREST_ONLY_BALLOON,
    RepaymentMethod.GRADUATED,
)

# Share of the principal added to first-period interest for a rate-driven minimum.
MINIMUM_PRINCIPAL_SHARE = Decimal("0.01")

# Graduated payments start at half the cash margin and rise 25% every 3 periods.
GRADUATED_MARGIN_SHARE = Decimal("0.5")
GRADUATED_STEP_PERIODS = 3
GRADUATED_STEP_RATE = Decimal("0.25")

AVALANCHE = "avalanche"
SNOWBALL = "snowball"
PORTFOLIO_STRATEGIES = (AVALANCHE, SNOWBALL)


def minimum_payment(inputs: DebtInputs) -> Decimal:
    """Lender-stated minimum, or first-period interest plus 1% of principal."""
    if inputs.minimum_payment is not None:
        return to_decimal(inputs.minimum_payment)
    rate = periodic_rate(inputs.interest_rate, inputs.rate_frequency, inputs.payment_frequency)
    return ceil_money(inputs.principal * rate + inputs.principal * MINIMUM_PRINCIPAL_SHARE)


def graduated_base_payment(inputs: DebtInputs) -> Decimal:
    """First graduated payment: half the cash margin, or the minimum payment.

    The minimum is used when income is unknown or leaves no margin.
    """
    margin = inputs.cash_margin
    if margin is None or margin <= ZERO:
        return minimum_payment(inputs)
    return round_money(margin * GRADUATED_MARGIN_SHARE)


def sparkline(schedule: Schedule, points: int = 10) -> tuple:
    """Sample the balance series at an even stride.

    The series starts with the principal at the start date and includes every
    schedule row; the first and last points are always kept.
    """
    series = [(schedule.start_date, schedule.principal)]
    series.extend((row.date, row.balance) for row in schedule.rows)
    if points < 2 or len(series) <= points:
        sampled = series
    else:
        last = len(series) - 1
        sampled = [series[i * last // (points - 1)] for i in range(points)]
    return tuple((day, round_money(balance)) for day, balance in sampled)


def rank_projections(projections: Iterable[MethodProjection]) -> tuple[MethodProjection, ...]:
    """Visible first, then least total interest, fewest periods, method order."""
    return tuple(
        sorted(
            projections,
            key=lambda p: (p.hidden, p.total_interest, p.schedule.periods, METHOD_ORDER.index(p.method)),
        )
    )


class RepaymentComparator:
    """Runs the amortization engine under each repayment method and ranks them."""

    def __init__(self, max_periods: int = DEFAULT_MAX_PERIODS, sparkline_points: int = 10):
        """Initialize comparator.

        Args:
            max_periods: Horizon handed to every amortization run
            sparkline_points: Number of samples in each projection's sparkline
        """
        self.max_periods = max_periods
        self.sparkline_points = sparkline_points

    def compare_all(
        self, inputs: DebtInputs, methods: Optional[Sequence[RepaymentMethod]] = None
    ) -> Comparison:
        """Project every requested method and rank the results.

        Infeasible methods are kept in the result with ``hidden=True``; use
        ``Comparison.no_viable_option`` or ``require_viable()`` to detect the
        case where nothing is left to choose from.
        """
        if inputs.term_periods <= 0:
            raise ValueError(f"term_periods must be positive, got {inputs.term_periods}")
        methods = [RepaymentMethod(m) for m in (methods or METHOD_ORDER)]
        projections = [self.project(inputs, method) for method in methods]
        comparison = Comparison(projections=rank_projections(projections))
        logger.debug(
            "Compared %d methods for principal %s: %d visible",
            len(projections),
            inputs.principal,
            len(comparison.visible),
        )
        return comparison

    def project(self, inputs: DebtInputs, method: RepaymentMethod) -> MethodProjection:
        """Amortize the debt under a single method."""
        method = RepaymentMethod(method)
        rate = periodic_rate(inputs.interest_rate, inputs.rate_frequency, inputs.payment_frequency)
        extra_warnings: list[ProjectionWarning] = []

        if method is RepaymentMethod.FIXED_TERM:
            payment = ceil_money(annuity_payment(inputs.principal, rate, inputs.term_periods))
        elif method is RepaymentMethod.MINIMUM:
            payment = minimum_payment(inputs)
        elif method is RepaymentMethod.AGGRESSIVE:
            payment = minimum_payment(inputs)
            spare = inputs.spare_cash
            if spare is not None and spare < ZERO:
                extra_warnings.append(
                    ProjectionWarning(
                        level=WarningLevel.CRITICAL,
                        code="negative_spare_cash",
                        message=f"Spare cash is negative ({format_money(spare)} per period)",
                    )
                )
            elif spare is not None:
                payment = payment + round_money(spare)
        elif method is RepaymentMethod.EQUAL_PRINCIPAL:
            share = inputs.principal / inputs.term_periods
            payment = _equal_principal_rule(share)
        elif method is RepaymentMethod.BULLET:
            payment = _balloon_rule(inputs.term_periods, interest_only=False)
        elif method is RepaymentMethod.INTEREST_ONLY_BALLOON:
            payment = _balloon_rule(inputs.term_periods, interest_only=True)
        else:
            payment = _graduated_rule(graduated_base_payment(inputs))

        schedule = amortize(
            principal=inputs.principal,
            interest_rate=inputs.interest_rate,
            payment=payment,
            payment_frequency=inputs.payment_frequency,
            rate_frequency=inputs.rate_frequency,
            start_date=inputs.start_date,
            max_periods=self.max_periods,
            term_periods=inputs.term_periods,
            cash_margin=inputs.cash_margin,
            allow_deferral=method in DEFERRED_METHODS,
        )
        if extra_warnings:
            schedule = replace(schedule, warnings=tuple(extra_warnings) + schedule.warnings)

        critical = [w for w in schedule.warnings if w.level == WarningLevel.CRITICAL]
        highest = schedule.highest_payment if schedule.rows else (payment if not callable(payment) else ZERO)
        return MethodProjection(
            method=method,
            title=METHOD_TITLES[method],
            payment=highest,
            schedule=schedule,
            highest_payment=highest,
            sparkline=sparkline(schedule, self.sparkline_points),
            hidden=bool(critical),
            hide_reason=critical[0].message if critical else None,
        )


def _equal_principal_rule(share: Decimal):
    def rule(period: int, balance: Decimal, interest: Decimal) -> Decimal:
        return min(share, balance) + interest

    return rule


def _balloon_rule(term_periods: int, interest_only: bool):
    """Nothing (bullet) or just the interest until the last period, then everything owed."""

    def rule(period: int, balance: Decimal, interest: Decimal) -> Decimal:
        if period >= term_periods:
            return balance + interest
        return interest if interest_only else ZERO

    return rule


def _graduated_rule(base: Decimal):
    def rule(period: int, balance: Decimal, interest: Decimal) -> Decimal:
        steps = (period - 1) // GRADUATED_STEP_PERIODS
        stepped = base * (1 + GRADUATED_STEP_RATE) ** steps
        # Never below the interest, so the balance does not grow
        return max(stepped, interest)

    return rule


def plan_portfolio(
    debts: Sequence[PortfolioDebt],
    surplus: Decimal,
    strategy: str,
    start_date,
    payment_frequency: PaymentFrequency = PaymentFrequency.MONTHLY,
    max_periods: int = DEFAULT_MAX_PERIODS,
) -> PortfolioPlan:
    """Simulate paying several debts with a fixed budget.

    Each period every debt gets its minimum, and the rest of the budget
    (surplus plus minimums freed by paid-off debts) goes to the target debt:
    the highest rate for avalanche, the smallest balance for snowball.

    A budget that does not exceed the first period's total interest can never
    reduce the total balance; that is reported as a critical warning up front.

    Args:
        debts: Debts to plan; names must be unique
        surplus: Extra cash per period on top of the minimums
        strategy: "avalanche" or "snowball"
        start_date: Plan start; period 1 falls one period later
        payment_frequency: Length of a period
        max_periods: Horizon

    Returns:
        PortfolioPlan with aggregate rows and per-debt payoff dates
    """
    if strategy not in PORTFOLIO_STRATEGIES:
        raise ValueError(f"Unknown strategy '{strategy}'. Use one of: {', '.join(PORTFOLIO_STRATEGIES)}")
    if not debts:
        raise ValueError("At least one debt is required")
    names = [debt.name for debt in debts]
    if len(set(names)) != len(names):
        raise ValueError("Debt names must be unique")
    surplus = to_decimal(surplus)
    if surplus < ZERO:
        raise ValueError(f"Surplus must not be negative, got {surplus}")

    rates = {
        debt.name: periodic_rate(debt.interest_rate, debt.rate_frequency, payment_frequency) for debt in debts
    }
    balances = {debt.name: to_decimal(debt.balance) for debt in debts}
    minimums = {debt.name: to_decimal(debt.minimum_payment) for debt in debts}
    position = {name: index for index, name in enumerate(names)}
    budget = sum(minimums.values(), ZERO) + surplus

    first_interest = sum((balances[name] * rates[name] for name in names), ZERO)
    if budget <= first_interest:
        warning = ProjectionWarning(
            level=WarningLevel.CRITICAL,
            code="payment_below_interest",
            message=(
                f"Budget of {format_money(budget)} does not cover the first period's "
                f"interest of {format_money(first_interest)}"
            ),
            period=1,
        )
        return PortfolioPlan(
            strategy=strategy,
            budget=budget,
            rows=(),
            payoff_order=(),
            payoff_dates={},
            total_interest=ZERO,
            total_paid=ZERO,
            payoff_date=None,
            warnings=(warning,),
        )

    rows = []
    payoff_order: list[str] = []
    payoff_dates = {}
    total_interest = ZERO
    total_paid = ZERO
    for period in range(1, max_periods + 1):
        active = [name for name in names if balances[name] > ZERO]
        due = {name: balances[name] * (1 + rates[name]) for name in active}
        interest = sum((due[name] - balances[name] for name in active), ZERO)

        paid = {name: min(minimums[name], due[name]) for name in active}
        remaining = budget - sum(paid.values(), ZERO)
        if strategy == AVALANCHE:
            targets = sorted(active, key=lambda name: (-rates[name], position[name]))
        else:
            targets = sorted(active, key=lambda name: (balances[name], position[name]))
        for name in targets:
            if remaining <= ZERO:
                break
            extra = min(remaining, due[name] - paid[name])
            paid[name] += extra
            remaining -= extra

        period_date = add_periods(start_date, payment_frequency, period)
        for name in active:
            if due[name] - paid[name] < DUST:
                paid[name] = due[name]
                balances[name] = ZERO
                payoff_order.append(name)
                payoff_dates[name] = period_date
            else:
                balances[name] = due[name] - paid[name]

        payment = sum(paid.values(), ZERO)
        total_interest += interest
        total_paid += payment
        rows.append(
            PortfolioRow(
                period=period,
                date=period_date,
                balance=sum(balances.values(), ZERO),
                payment=payment,
                interest=interest,
            )
        )
        if len(payoff_order) == len(names):
            break

    warnings = []
    payoff_date = rows[-1].date if len(payoff_order) == len(names) else None
    if payoff_date is None:
        warnings.append(
            ProjectionWarning(
                level=WarningLevel.CRITICAL,
                code="no_payoff_within_horizon",
                message=f"Debts are not paid off within {max_periods} periods",
            )
        )
    return PortfolioPlan(
        strategy=strategy,
        budget=budget,
        rows=tuple(rows),
        payoff_order=tuple(payoff_order),
        payoff_dates=payoff_dates,
        total_interest=total_interest,
        total_paid=total_paid,
        payoff_date=payoff_date,
        warnings=tuple(warnings),
    )
