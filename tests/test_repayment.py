"""Tests for the repayment comparator and the multi-debt planner."""

from datetime import date
from decimal import Decimal

import pytest

from ledgerly.domain.entities import DebtInputs, PortfolioDebt, RepaymentMethod
from ledgerly.domain.errors import NoViableRepaymentOption
from ledgerly.domain.repayment import (
    AVALANCHE,
    SNOWBALL,
    RepaymentComparator,
    graduated_base_payment,
    minimum_payment,
    plan_portfolio,
)

START = date(2024, 1, 1)


def _inputs(**overrides):
    values = dict(
        principal=Decimal("1200"),
        interest_rate=Decimal("12"),
        term_periods=12,
        start_date=START,
    )
    values.update(overrides)
    return DebtInputs(**values)


def _by_method(comparison):
    return {p.method: p for p in comparison.projections}


def test_cash_figures_are_per_period():
    inputs = _inputs(
        monthly_income=Decimal("4200"),
        monthly_living_costs=Decimal("2900"),
        other_obligations=Decimal("300"),
    )
    assert inputs.cash_margin == Decimal("1300")
    assert inputs.spare_cash == Decimal("1000")
    assert _inputs().spare_cash is None


def test_minimum_payment():
    assert minimum_payment(_inputs()) == Decimal("24.00")
    assert minimum_payment(_inputs(minimum_payment=Decimal("35"))) == Decimal("35")


def test_compare_all_projects_every_method(comparator):
    comparison = comparator.compare_all(_inputs())

    methods = _by_method(comparison)
    assert set(methods) == set(RepaymentMethod)
    assert not comparison.no_viable_option

    fixed = methods[RepaymentMethod.FIXED_TERM]
    assert fixed.payment == Decimal("106.62")
    assert fixed.schedule.periods == 12
    assert abs(fixed.total_interest - Decimal("79.42")) < Decimal("0.01")

    minimum = methods[RepaymentMethod.MINIMUM]
    assert minimum.payment == Decimal("24.00")
    assert minimum.schedule.periods == 70
    assert not minimum.hidden
    assert [w.code for w in minimum.warnings] == ["exceeds_term"]

    equal = methods[RepaymentMethod.EQUAL_PRINCIPAL]
    assert equal.total_interest == Decimal("78.00")
    assert equal.highest_payment == Decimal("112.00")


def test_ranking_prefers_least_interest(comparator):
    comparison = comparator.compare_all(_inputs())

    assert comparison.recommended.method is RepaymentMethod.EQUAL_PRINCIPAL
    assert [p.method for p in comparison.projections] == [
        RepaymentMethod.EQUAL_PRINCIPAL,
        RepaymentMethod.FIXED_TERM,
        RepaymentMethod.INTEREST_ONLY_BALLOON,
        RepaymentMethod.BULLET,
        RepaymentMethod.GRADUATED,
        RepaymentMethod.MINIMUM,
        RepaymentMethod.AGGRESSIVE,
    ]


def test_bullet_pays_everything_at_the_end(comparator):
    bullet = comparator.project(_inputs(), RepaymentMethod.BULLET)

    rows = bullet.schedule.rows
    assert len(rows) == 12
    assert rows[0].payment == 0
    assert rows[0].balance == Decimal("1212")
    assert all(row.payment == 0 for row in rows[:-1])
    assert round(rows[-1].payment, 2) == Decimal("1352.19")
    assert rows[-1].balance == 0
    assert bullet.payoff_date == date(2025, 1, 1)
    assert not bullet.hidden


def test_interest_only_balloon(comparator):
    balloon = comparator.project(_inputs(), RepaymentMethod.INTEREST_ONLY_BALLOON)

    rows = balloon.schedule.rows
    assert len(rows) == 12
    assert all(row.payment == Decimal("12") and row.balance == Decimal("1200") for row in rows[:-1])
    assert rows[-1].payment == Decimal("1212")
    assert balloon.highest_payment == Decimal("1212")
    assert balloon.total_interest == Decimal("144")


def test_balloon_beyond_horizon_is_hidden():
    comparator = RepaymentComparator(max_periods=6)

    for method in (RepaymentMethod.BULLET, RepaymentMethod.INTEREST_ONLY_BALLOON):
        projection = comparator.project(_inputs(), method)
        assert projection.hidden
        assert "not paid off within 6" in projection.hide_reason


def test_balloon_larger_than_cash_margin_warns(comparator):
    inputs = _inputs(monthly_income=Decimal("3000"), monthly_living_costs=Decimal("2500"))

    balloon = comparator.project(inputs, RepaymentMethod.INTEREST_ONLY_BALLOON)

    assert not balloon.hidden
    assert [w.code for w in balloon.warnings] == ["exceeds_cash_margin"]


def test_graduated_steps_up(comparator):
    inputs = _inputs(monthly_income=Decimal("3000"), monthly_living_costs=Decimal("2500"))

    graduated = comparator.project(inputs, RepaymentMethod.GRADUATED)

    payments = [row.payment for row in graduated.schedule.rows]
    assert payments[:3] == [Decimal("250.00")] * 3
    assert payments[3] == Decimal("312.50")
    assert graduated.schedule.periods == 5
    assert not graduated.hidden


def test_graduated_base_payment():
    with_margin = _inputs(monthly_income=Decimal("3000"), monthly_living_costs=Decimal("2500"))
    no_margin = _inputs(monthly_income=Decimal("2000"), monthly_living_costs=Decimal("2100"))

    assert graduated_base_payment(with_margin) == Decimal("250.00")
    assert graduated_base_payment(_inputs()) == Decimal("24.00")
    assert graduated_base_payment(no_margin) == Decimal("24.00")


def test_graduated_never_pays_less_than_interest():
    comparator = RepaymentComparator(max_periods=12)
    inputs = _inputs(principal=Decimal("10000"), interest_rate=Decimal("24"), minimum_payment=Decimal("50"))

    graduated = comparator.project(inputs, RepaymentMethod.GRADUATED)

    assert all(row.payment >= row.interest for row in graduated.schedule.rows)
    assert graduated.schedule.rows[0].balance == Decimal("10000")
    assert graduated.hidden


def test_aggressive_adds_spare_cash(comparator):
    inputs = _inputs(monthly_income=Decimal("3000"), monthly_living_costs=Decimal("2500"))

    aggressive = comparator.project(inputs, RepaymentMethod.AGGRESSIVE)

    assert aggressive.payment == Decimal("524.00")
    assert aggressive.schedule.periods == 3
    assert aggressive.total_interest < comparator.project(inputs, RepaymentMethod.MINIMUM).total_interest


def test_negative_spare_cash_hides_aggressive(comparator):
    inputs = _inputs(monthly_income=Decimal("2000"), monthly_living_costs=Decimal("2100"))

    aggressive = comparator.project(inputs, RepaymentMethod.AGGRESSIVE)

    assert aggressive.hidden
    assert aggressive.warnings[0].code == "negative_spare_cash"


def test_one_infeasible_method_is_hidden_not_fatal(comparator):
    inputs = _inputs(
        principal=Decimal("10000"),
        interest_rate=Decimal("24"),
        minimum_payment=Decimal("50"),
        monthly_income=Decimal("10000"),
        monthly_living_costs=Decimal("2000"),
    )

    comparison = comparator.compare_all(inputs)

    methods = _by_method(comparison)
    assert methods[RepaymentMethod.MINIMUM].hidden
    assert "does not cover" in methods[RepaymentMethod.MINIMUM].hide_reason
    assert not methods[RepaymentMethod.FIXED_TERM].hidden
    assert not methods[RepaymentMethod.AGGRESSIVE].hidden
    assert not methods[RepaymentMethod.EQUAL_PRINCIPAL].hidden
    assert comparison.projections[-1].method is RepaymentMethod.MINIMUM
    assert not comparison.no_viable_option
    assert comparison.require_viable() is comparison


def test_all_methods_infeasible():
    comparator = RepaymentComparator(max_periods=6)
    inputs = _inputs(
        principal=Decimal("10000"),
        interest_rate=Decimal("24"),
        minimum_payment=Decimal("50"),
        monthly_income=Decimal("1000"),
        monthly_living_costs=Decimal("1200"),
    )

    comparison = comparator.compare_all(inputs)

    assert all(p.hidden for p in comparison.projections)
    assert comparison.no_viable_option
    assert comparison.recommended is None
    with pytest.raises(NoViableRepaymentOption):
        comparison.require_viable()


def test_single_method_comparison(comparator):
    comparison = comparator.compare_all(_inputs(), methods=[RepaymentMethod.FIXED_TERM])
    assert len(comparison.projections) == 1
    assert not comparison.no_viable_option


def test_compare_all_is_idempotent(comparator):
    inputs = _inputs(monthly_income=Decimal("3000"), monthly_living_costs=Decimal("2500"))
    assert comparator.compare_all(inputs) == comparator.compare_all(inputs)


def test_invalid_term(comparator):
    with pytest.raises(ValueError):
        comparator.compare_all(_inputs(term_periods=0))


def test_sparkline_samples(comparator):
    fixed = comparator.project(_inputs(), RepaymentMethod.FIXED_TERM)

    assert len(fixed.sparkline) == 10
    assert fixed.sparkline[0] == (START, Decimal("1200.00"))
    assert fixed.sparkline[-1] == (date(2025, 1, 1), Decimal("0.00"))
    balances = [balance for _, balance in fixed.sparkline]
    assert balances == sorted(balances, reverse=True)


def test_short_schedule_sparkline_keeps_every_point():
    comparator = RepaymentComparator(sparkline_points=10)
    projection = comparator.project(
        _inputs(monthly_income=Decimal("3000"), monthly_living_costs=Decimal("2500")), RepaymentMethod.AGGRESSIVE
    )
    assert len(projection.sparkline) == projection.schedule.periods + 1


CARDS = [
    PortfolioDebt("Visa", Decimal("3000"), Decimal("22.9"), Decimal("90")),
    PortfolioDebt("Store", Decimal("500"), Decimal("12"), Decimal("25")),
    PortfolioDebt("Car", Decimal("8000"), Decimal("6.5"), Decimal("250")),
]


def test_avalanche_targets_highest_rate():
    plan = plan_portfolio(CARDS, Decimal("300"), AVALANCHE, START)

    assert plan.feasible
    assert plan.budget == Decimal("665")
    assert plan.payoff_order[0] == "Visa"
    assert set(plan.payoff_order) == {"Visa", "Store", "Car"}
    assert plan.payoff_date == max(plan.payoff_dates.values())
    assert plan.rows[-1].balance == 0


def test_snowball_targets_smallest_balance():
    plan = plan_portfolio(CARDS, Decimal("300"), SNOWBALL, START)

    assert plan.feasible
    assert plan.payoff_order[0] == "Store"


def test_avalanche_pays_no_more_interest_than_snowball():
    avalanche = plan_portfolio(CARDS, Decimal("300"), AVALANCHE, START)
    snowball = plan_portfolio(CARDS, Decimal("300"), SNOWBALL, START)

    assert avalanche.total_interest <= snowball.total_interest


def test_plan_totals_are_consistent():
    plan = plan_portfolio(CARDS, Decimal("300"), AVALANCHE, START)

    owed = sum(debt.balance for debt in CARDS)
    assert abs(plan.total_paid - (owed + plan.total_interest)) < Decimal("1e-15")
    assert all(row.payment <= plan.budget + Decimal("0.01") for row in plan.rows)


def test_plan_budget_below_interest():
    debts = [PortfolioDebt("Loan", Decimal("10000"), Decimal("24"), Decimal("50"))]

    plan = plan_portfolio(debts, Decimal("0"), SNOWBALL, START)

    assert not plan.feasible
    assert plan.rows == ()
    assert plan.warnings[0].code == "payment_below_interest"


def test_plan_horizon():
    plan = plan_portfolio(CARDS, Decimal("0"), AVALANCHE, START, max_periods=3)

    assert not plan.feasible
    assert plan.periods == 3
    assert plan.warnings[0].code == "no_payoff_within_horizon"


def test_plan_input_checks():
    with pytest.raises(ValueError):
        plan_portfolio(CARDS, Decimal("0"), "tallest-first", START)
    with pytest.raises(ValueError):
        plan_portfolio([], Decimal("0"), AVALANCHE, START)
    with pytest.raises(ValueError):
        plan_portfolio(CARDS + CARDS[:1], Decimal("0"), AVALANCHE, START)
    with pytest.raises(ValueError):
        plan_portfolio(CARDS, Decimal("-1"), AVALANCHE, START)
