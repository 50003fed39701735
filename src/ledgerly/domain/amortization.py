"""Debt amortization engine.

Pure functions: Decimal in, dataclass out. No I/O and no clock reads, so the
same inputs always produce the same schedule.

Values are carried at full Decimal precision through every period; rounding
to the cent happens only when an amount is posted to the ledger or rendered.
"""

from datetime import date, timedelta
from decimal import Decimal, ROUND_CEILING
from typing import Callable, Optional, Union

from dateutil.relativedelta import relativedelta

from ledgerly.domain.entities import (
    PaymentFrequency,
    ProjectionWarning,
    RateFrequency,
    Schedule,
    ScheduleRow,
    WarningLevel,
)
from ledgerly.domain.money import HUNDRED, ZERO, format_money, to_decimal

# Balance left after a payment that is smaller than this is paid off with it.
DUST = Decimal("0.005")

DEFAULT_MAX_PERIODS = 1200

PaymentRule = Callable[[int, Decimal, Decimal], Decimal]


def periodic_rate(
    interest_rate: Decimal,
    rate_frequency: RateFrequency | str = RateFrequency.ANNUAL,
    payment_frequency: PaymentFrequency | str = PaymentFrequency.MONTHLY,
) -> Decimal:
    """Convert a percentage rate into the rate applied each payment period.

    Args:
        interest_rate: Rate in percent (12 means 12%)
        rate_frequency: Period the rate is quoted for
        payment_frequency: How often interest is charged and paid

    Returns:
        Fractional rate per payment period (0.01 for 12% annual, monthly)
    """
    rate = to_decimal(interest_rate)
    if rate < ZERO:
        raise ValueError(f"Interest rate must not be negative, got {rate}")
    periods_per_year = PaymentFrequency(payment_frequency).periods_per_year
    if RateFrequency(rate_frequency) is RateFrequency.MONTHLY:
        return rate / HUNDRED * 12 / periods_per_year
    return rate / HUNDRED / periods_per_year


def add_periods(start: date, frequency: PaymentFrequency | str, periods: int) -> date:
    """Date of the given payment period counted from start.

    Monthly periods keep the day of month where possible (Jan 31 + 1 month is
    Feb 28/29); weekly and biweekly periods are exact day counts.
    """
    frequency = PaymentFrequency(frequency)
    if frequency is PaymentFrequency.MONTHLY:
        return start + relativedelta(months=periods)
    if frequency is PaymentFrequency.BIWEEKLY:
        return start + timedelta(days=14 * periods)
    return start + timedelta(days=7 * periods)


def annuity_payment(principal: Decimal, rate: Decimal, periods: int) -> Decimal:
    """Level payment that amortizes principal over periods at rate per period.

    payment = P * r / (1 - (1 + r) ** -n), or P / n when r is zero.
    The result is unrounded.
    """
    if periods <= 0:
        raise ValueError(f"Number of periods must be positive, got {periods}")
    principal = to_decimal(principal)
    rate = to_decimal(rate)
    if rate == ZERO:
        return principal / periods
    return principal * rate / (1 - (1 + rate) ** -periods)


def periods_to_payoff(principal: Decimal, rate: Decimal, payment: Decimal) -> Optional[int]:
    """Closed-form number of level payments needed to clear principal.

    Returns:
        Period count, or None when the payment never covers the interest
    """
    principal = to_decimal(principal)
    rate = to_decimal(rate)
    payment = to_decimal(payment)
    if principal <= ZERO:
        return 0
    if payment <= principal * rate or payment <= ZERO:
        return None
    if rate == ZERO:
        periods = principal / payment
    else:
        periods = -(1 - principal * rate / payment).ln() / (1 + rate).ln()
    return int(periods.to_integral_value(rounding=ROUND_CEILING))


def amortize(
    principal: Decimal,
    interest_rate: Decimal,
    payment: Union[Decimal, PaymentRule],
    payment_frequency: PaymentFrequency | str = PaymentFrequency.MONTHLY,
    rate_frequency: RateFrequency | str = RateFrequency.ANNUAL,
    start_date: Optional[date] = None,
    max_periods: int = DEFAULT_MAX_PERIODS,
    term_periods: Optional[int] = None,
    cash_margin: Optional[Decimal] = None,
    allow_deferral: bool = False,
) -> Schedule:
    """Produce the payment schedule for one debt under one payment rule.

    Each period charges ``balance * periodic_rate`` in interest and applies the
    rest of the payment to principal. When the nominal payment would overshoot,
    the final period pays exactly ``balance + interest``.

    A payment that does not exceed the first period's interest never reduces
    the balance. That case is detected before iterating and returned as an
    infeasible schedule with no rows and a critical warning, unless the
    payment rule defers on purpose (bullet and balloon loans).

    Args:
        principal: Starting balance, must be positive
        interest_rate: Rate in percent
        payment: Fixed payment per period, or a callable
            ``(period, balance, interest) -> payment`` for varying payments
        payment_frequency: weekly, biweekly or monthly
        rate_frequency: annual or monthly
        start_date: Date the debt starts; period 1 falls one period later
        max_periods: Horizon; no payoff within it is a critical warning
        term_periods: Requested term; paying off later is a warning
        cash_margin: Cash available per period; payments above it warn
        allow_deferral: Let early payments fall short of the interest (unpaid
            interest is added to the balance); only the horizon bounds the run

    Returns:
        Schedule (check ``feasible`` before relying on ``payoff_date``)

    Raises:
        ValueError: For non-positive principal or horizon, or a negative rate
    """
    principal = to_decimal(principal)
    if principal <= ZERO:
        raise ValueError(f"Principal must be positive, got {principal}")
    if max_periods <= 0:
        raise ValueError(f"max_periods must be positive, got {max_periods}")
    if start_date is None:
        raise ValueError("start_date is required")

    rate = periodic_rate(interest_rate, rate_frequency, payment_frequency)
    if callable(payment):
        payment_rule = payment
    else:
        fixed_payment = to_decimal(payment)
        payment_rule = lambda period, balance, interest: fixed_payment  # noqa: E731

    first_interest = principal * rate
    first_payment = to_decimal(payment_rule(1, principal, first_interest))
    if first_payment <= first_interest and not allow_deferral:
        warning = ProjectionWarning(
            level=WarningLevel.CRITICAL,
            code="payment_below_interest",
            message=(
                f"Payment of {format_money(first_payment)} does not cover the first "
                f"period's interest of {format_money(first_interest)}; the debt never amortizes"
            ),
            period=1,
        )
        return Schedule(
            rows=(),
            principal=principal,
            periodic_rate=rate,
            start_date=start_date,
            total_interest=ZERO,
            total_paid=ZERO,
            payoff_date=None,
            warnings=(warning,),
        )

    rows = []
    balance = principal
    total_interest = ZERO
    total_paid = ZERO
    payoff_date = None
    for period in range(1, max_periods + 1):
        interest = balance * rate
        nominal = to_decimal(payment_rule(period, balance, interest))
        due = balance + interest
        if due - nominal < DUST:
            amount = due
            principal_portion = balance
            balance = ZERO
        else:
            amount = nominal
            principal_portion = nominal - interest
            balance -= principal_portion

        period_date = add_periods(start_date, payment_frequency, period)
        rows.append(
            ScheduleRow(
                period=period,
                date=period_date,
                balance=balance,
                payment=amount,
                interest=interest,
                principal_portion=principal_portion,
            )
        )
        total_interest += interest
        total_paid += amount
        if balance == ZERO:
            payoff_date = period_date
            break

    warnings = _schedule_warnings(rows, payoff_date, max_periods, term_periods, cash_margin)
    return Schedule(
        rows=tuple(rows),
        principal=principal,
        periodic_rate=rate,
        start_date=start_date,
        total_interest=total_interest,
        total_paid=total_paid,
        payoff_date=payoff_date,
        warnings=tuple(warnings),
    )


def _schedule_warnings(rows, payoff_date, max_periods, term_periods, cash_margin) -> list[ProjectionWarning]:
    warnings = []
    if payoff_date is None:
        warnings.append(
            ProjectionWarning(
                level=WarningLevel.CRITICAL,
                code="no_payoff_within_horizon",
                message=f"Debt is not paid off within {max_periods} periods",
            )
        )
    elif term_periods is not None and len(rows) > term_periods:
        warnings.append(
            ProjectionWarning(
                level=WarningLevel.WARNING,
                code="exceeds_term",
                message=f"Payoff takes {len(rows)} periods, longer than the requested {term_periods}",
                period=term_periods,
            )
        )

    if cash_margin is not None and rows:
        margin = to_decimal(cash_margin)
        highest = max(rows, key=lambda row: row.payment)
        if highest.payment > margin:
            warnings.append(
                ProjectionWarning(
                    level=WarningLevel.WARNING,
                    code="exceeds_cash_margin",
                    message=(
                        f"Payment of {format_money(highest.payment)} exceeds the available "
                        f"cash margin of {format_money(margin)} per period"
                    ),
                    period=highest.period,
                )
            )
        elif highest.payment > margin / 2:
            warnings.append(
                ProjectionWarning(
                    level=WarningLevel.INFO,
                    code="high_margin_share",
                    message=(
                        f"Payment of {format_money(highest.payment)} uses more than half "
                        f"of the {format_money(margin)} cash margin"
                    ),
                    period=highest.period,
                )
            )
    return warnings
