"""Tests for the amortization engine."""

from datetime import date
from decimal import Decimal

import pytest

from ledgerly.domain.amortization import (
    add_periods,
    amortize,
    annuity_payment,
    periodic_rate,
    periods_to_payoff,
)
from ledgerly.domain.entities import PaymentFrequency, RateFrequency, WarningLevel
from ledgerly.domain.money import round_money

START = date(2024, 1, 1)


def _codes(schedule):
    return [w.code for w in schedule.warnings]


def test_periodic_rate_conversions():
    assert periodic_rate(Decimal("12")) == Decimal("0.01")
    assert periodic_rate(Decimal("26"), payment_frequency=PaymentFrequency.BIWEEKLY) == Decimal("0.01")
    assert periodic_rate(Decimal("1.5"), rate_frequency=RateFrequency.MONTHLY) == Decimal("0.015")
    assert periodic_rate(Decimal("0")) == Decimal("0")
    with pytest.raises(ValueError):
        periodic_rate(Decimal("-1"))


def test_add_periods():
    assert add_periods(date(2024, 1, 31), PaymentFrequency.MONTHLY, 1) == date(2024, 2, 29)
    assert add_periods(START, PaymentFrequency.MONTHLY, 12) == date(2025, 1, 1)
    assert add_periods(START, PaymentFrequency.BIWEEKLY, 2) == date(2024, 1, 29)
    assert add_periods(START, PaymentFrequency.WEEKLY, 1) == date(2024, 1, 8)


def test_annuity_payment():
    assert round_money(annuity_payment(Decimal("1200"), Decimal("0.01"), 12)) == Decimal("106.62")
    assert annuity_payment(Decimal("1200"), Decimal("0"), 12) == Decimal("100")
    with pytest.raises(ValueError):
        annuity_payment(Decimal("1200"), Decimal("0.01"), 0)


def test_periods_to_payoff():
    assert periods_to_payoff(Decimal("1200"), Decimal("0.01"), Decimal("100")) == 13
    assert periods_to_payoff(Decimal("1200"), Decimal("0"), Decimal("100")) == 12
    assert periods_to_payoff(Decimal("10000"), Decimal("0.02"), Decimal("200")) is None


def test_level_payment_with_short_final_period():
    schedule = amortize(Decimal("1200"), Decimal("12"), Decimal("100"), start_date=START)

    assert schedule.feasible
    assert schedule.periods == 13
    assert schedule.rows[0].interest == Decimal("12.00")
    assert schedule.rows[0].principal_portion == Decimal("88.00")
    assert round_money(schedule.rows[11].balance) == Decimal("83.94")
    assert round_money(schedule.rows[-1].payment) == Decimal("84.78")
    assert round_money(schedule.total_interest) == Decimal("84.78")
    assert schedule.rows[-1].balance == 0
    assert schedule.payoff_date == date(2025, 2, 1)


def test_schedule_totals_are_consistent():
    schedule = amortize(Decimal("1200"), Decimal("12"), Decimal("100"), start_date=START)

    tolerance = Decimal("1e-20")
    assert abs(schedule.total_paid - (schedule.principal + schedule.total_interest)) < tolerance
    assert abs(sum(row.principal_portion for row in schedule.rows) - schedule.principal) < tolerance
    for row in schedule.rows:
        assert abs(row.payment - (row.interest + row.principal_portion)) < tolerance


def test_fixed_term_payment_matches_closed_form():
    payment = annuity_payment(Decimal("1200"), Decimal("0.01"), 12)
    schedule = amortize(Decimal("1200"), Decimal("12"), Decimal("106.62"), start_date=START, term_periods=12)

    assert schedule.periods == 12
    assert abs(schedule.total_interest - (payment * 12 - Decimal("1200"))) < Decimal("0.01")
    assert _codes(schedule) == []


def test_zero_rate():
    schedule = amortize(Decimal("1200"), Decimal("0"), Decimal("100"), start_date=START)

    assert schedule.periods == 12
    assert schedule.total_interest == 0
    assert schedule.total_paid == Decimal("1200")


def test_payment_below_interest_is_infeasible():
    schedule = amortize(Decimal("10000"), Decimal("24"), Decimal("50"), start_date=START)

    assert not schedule.feasible
    assert schedule.rows == ()
    assert schedule.payoff_date is None
    assert _codes(schedule) == ["payment_below_interest"]
    assert schedule.warnings[0].level is WarningLevel.CRITICAL


def test_payment_equal_to_interest_is_infeasible():
    schedule = amortize(Decimal("10000"), Decimal("24"), Decimal("200"), start_date=START)
    assert _codes(schedule) == ["payment_below_interest"]


def test_deferred_payments_capitalize_interest():
    def rule(period, balance, interest):
        return balance + interest if period == 3 else Decimal("0")

    assert _codes(amortize(Decimal("1000"), Decimal("12"), rule, start_date=START)) == ["payment_below_interest"]

    schedule = amortize(Decimal("1000"), Decimal("12"), rule, start_date=START, allow_deferral=True)

    assert [row.balance for row in schedule.rows] == [Decimal("1010"), Decimal("1020.1"), 0]
    assert schedule.rows[1].principal_portion == Decimal("-10.1")
    assert schedule.total_paid == Decimal("1030.301")
    assert schedule.payoff_date == date(2024, 4, 1)


def test_horizon_exceeded():
    schedule = amortize(Decimal("1200"), Decimal("12"), Decimal("100"), start_date=START, max_periods=6)

    assert not schedule.feasible
    assert schedule.periods == 6
    assert schedule.payoff_date is None
    assert _codes(schedule) == ["no_payoff_within_horizon"]


def test_exceeding_term_is_a_warning():
    schedule = amortize(Decimal("1200"), Decimal("12"), Decimal("100"), start_date=START, term_periods=12)

    assert schedule.feasible
    assert _codes(schedule) == ["exceeds_term"]
    assert schedule.warnings[0].level is WarningLevel.WARNING


def test_cash_margin_warnings():
    over = amortize(Decimal("1200"), Decimal("12"), Decimal("100"), start_date=START, cash_margin=Decimal("90"))
    half = amortize(Decimal("1200"), Decimal("12"), Decimal("100"), start_date=START, cash_margin=Decimal("150"))
    plenty = amortize(Decimal("1200"), Decimal("12"), Decimal("100"), start_date=START, cash_margin=Decimal("500"))

    assert _codes(over) == ["exceeds_cash_margin"]
    assert over.feasible
    assert _codes(half) == ["high_margin_share"]
    assert half.warnings[0].level is WarningLevel.INFO
    assert _codes(plenty) == []


def test_varying_payment_rule():
    def rule(period, balance, interest):
        return min(Decimal("100"), balance) + interest

    schedule = amortize(Decimal("1200"), Decimal("12"), rule, start_date=START)

    assert schedule.periods == 12
    assert schedule.total_interest == Decimal("78.00")
    assert schedule.rows[0].payment == Decimal("112.00")
    assert schedule.rows[-1].payment == Decimal("101.00")


def test_weekly_schedule_dates():
    schedule = amortize(
        Decimal("520"), Decimal("0"), Decimal("10"), payment_frequency=PaymentFrequency.WEEKLY, start_date=START
    )

    assert schedule.periods == 52
    assert schedule.rows[0].date == date(2024, 1, 8)
    assert schedule.payoff_date == date(2024, 12, 30)


def test_deterministic():
    first = amortize(Decimal("5000"), Decimal("7.9"), Decimal("150"), start_date=START)
    second = amortize(Decimal("5000"), Decimal("7.9"), Decimal("150"), start_date=START)
    assert first == second


def test_invalid_inputs():
    with pytest.raises(ValueError):
        amortize(Decimal("0"), Decimal("12"), Decimal("100"), start_date=START)
    with pytest.raises(ValueError):
        amortize(Decimal("1200"), Decimal("12"), Decimal("100"), start_date=START, max_periods=0)
    with pytest.raises(ValueError):
        amortize(Decimal("1200"), Decimal("12"), Decimal("100"))
    with pytest.raises(TypeError):
        amortize(1200.0, Decimal("12"), Decimal("100"), start_date=START)
