"""Debt commands: compare repayment methods, then create, pay and reconcile debts."""

from datetime import date

import click
from ledgerly.cli.account_resolution import require_owner, resolve_account_or_exit, resolve_debt_or_exit
from ledgerly.cli.date_filters import parse_date_or_exit
from ledgerly.cli.error_handling import (
    EXIT_NO_VIABLE_OPTION,
    handle_domain_error,
    handle_integrity_violation,
)
from ledgerly.cli.output import (
    debt_to_dict,
    echo_json,
    echo_warnings,
    plan_to_dict,
    posting_to_dict,
    projection_to_dict,
    sparkline_text,
)
from ledgerly.domain.account import AccountService
from ledgerly.domain.debt import DebtService
from ledgerly.domain.entities import (
    DebtInputs,
    PaymentFrequency,
    PortfolioDebt,
    RateFrequency,
    RepaymentMethod,
)
from ledgerly.domain.errors import IntegrityViolation
from ledgerly.domain.money import ZERO, format_money
from ledgerly.domain.repayment import PORTFOLIO_STRATEGIES, RepaymentComparator, plan_portfolio
from ledgerly.utils.amount_parser import parse_amount, parse_percent

FREQUENCY_CHOICE = click.Choice([f.value for f in PaymentFrequency])
RATE_FREQUENCY_CHOICE = click.Choice([f.value for f in RateFrequency])
METHOD_CHOICE = click.Choice([m.value for m in RepaymentMethod])


@click.group()
def debt_group():
    """Plan and track debts."""
    pass


def _amount(ctx, value, label="amount", allow_negative=False):
    if value is None:
        return None
    try:
        return parse_amount(value, allow_negative=allow_negative)
    except ValueError as e:
        click.echo(f"Error: Invalid {label}: {e}", err=True)
        ctx.exit(1)


def _percent(ctx, value):
    try:
        return parse_percent(value)
    except ValueError as e:
        click.echo(f"Error: Invalid rate: {e}", err=True)
        ctx.exit(1)


def _comparator(ctx) -> RepaymentComparator:
    settings = ctx.obj["settings"]
    return RepaymentComparator(
        max_periods=settings.max_projection_periods, sparkline_points=settings.sparkline_points
    )


def loan_options(func):
    """Options describing a loan, shared by compare and create."""
    options = [
        click.option("--principal", required=True, help="Amount borrowed"),
        click.option("--rate", required=True, help="Interest rate in percent (e.g. 6.5)"),
        click.option("--rate-frequency", type=RATE_FREQUENCY_CHOICE, default="annual", show_default=True),
        click.option("--frequency", type=FREQUENCY_CHOICE, default="monthly", show_default=True, help="Payment frequency"),
        click.option("--start-date", help="Loan start date (default: today)"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@debt_group.command("compare")
@loan_options
@click.option("--term", type=click.IntRange(min=1), required=True, help="Requested number of payments")
@click.option("--income", help="Monthly income")
@click.option("--living-costs", default="0", help="Monthly living costs")
@click.option("--obligations", default="0", help="Other monthly obligations")
@click.option("--minimum", help="Lender-stated minimum payment")
@click.option("--method", "methods", type=METHOD_CHOICE, multiple=True, help="Limit to these methods")
@click.option("--schedule", "show_schedule", is_flag=True, help="Include full schedules")
@click.option("--json", "as_json", is_flag=True, help="Output JSON")
@click.pass_context
def compare(
    ctx,
    principal,
    rate,
    rate_frequency,
    frequency,
    start_date,
    term,
    income,
    living_costs,
    obligations,
    minimum,
    methods,
    show_schedule,
    as_json,
):
    """Compare repayment methods for a loan.

    Infeasible methods are listed as hidden. Exits with status 2 when no
    method is feasible.

    Example:
        ledgerly debt compare --principal 12000 --rate 7.9 --term 48 --income 4200 --living-costs 2900
    """
    inputs = DebtInputs(
        principal=_amount(ctx, principal, "principal"),
        interest_rate=_percent(ctx, rate),
        term_periods=term,
        start_date=parse_date_or_exit(ctx, start_date, "start date", default=date.today()),
        rate_frequency=RateFrequency(rate_frequency),
        payment_frequency=PaymentFrequency(frequency),
        monthly_income=_amount(ctx, income, "income"),
        monthly_living_costs=_amount(ctx, living_costs, "living costs"),
        other_obligations=_amount(ctx, obligations, "obligations"),
        minimum_payment=_amount(ctx, minimum, "minimum payment"),
    )
    try:
        comparison = _comparator(ctx).compare_all(inputs, methods=methods or None)
    except ValueError as e:
        handle_domain_error(ctx, e)
        return

    if as_json:
        echo_json(
            {
                "no_viable_option": comparison.no_viable_option,
                "recommended": comparison.recommended.method if comparison.recommended else None,
                "projections": [projection_to_dict(p, show_schedule) for p in comparison.projections],
            }
        )
    else:
        for projection in comparison.projections:
            label = "hidden" if projection.hidden else "option"
            click.echo(f"\n{projection.title} [{label}]")
            if not projection.hidden:
                schedule = projection.schedule
                click.echo(
                    f"  Payment up to {format_money(projection.highest_payment)} x {schedule.periods}, "
                    f"interest {format_money(schedule.total_interest)}, "
                    f"paid off {schedule.payoff_date.isoformat()}"
                )
                click.echo(f"  {sparkline_text(projection.sparkline)}")
            echo_warnings(projection.warnings)
            if show_schedule:
                for row in projection.schedule.rows:
                    click.echo(
                        f"    {row.period:4d} {row.date.isoformat()} {format_money(row.payment):>12s} "
                        f"{format_money(row.interest):>10s} {format_money(row.balance):>12s}"
                    )

    if comparison.no_viable_option:
        if not as_json:
            click.echo("\nNo viable repayment option.", err=True)
        ctx.exit(EXIT_NO_VIABLE_OPTION)


@debt_group.command("create")
@click.argument("name", metavar="DEBT_NAME")
@loan_options
@click.option("--payment", help="Payment per period; omit to use the chosen method's payment")
@click.option("--method", type=METHOD_CHOICE, default="fixed_term", show_default=True)
@click.option("--term", type=click.IntRange(min=1), help="Number of payments")
@click.option("--minimum", help="Lender-stated minimum payment (minimum/aggressive methods)")
@click.option("--funding-account", help="Asset account that received the loan (default: opening balance)")
@click.option("--json", "as_json", is_flag=True, help="Output JSON")
@click.pass_context
def create(
    ctx,
    name,
    principal,
    rate,
    rate_frequency,
    frequency,
    start_date,
    payment,
    method,
    term,
    minimum,
    funding_account,
    as_json,
):
    """Create a debt and post its principal to a new liability account.

    Examples:
        ledgerly debt create "Car loan" --principal 12000 --rate 7.9 --term 48
        ledgerly debt create "Visa" --principal 3000 --rate 1.5 --rate-frequency monthly --payment 150
    """
    db = ctx.obj["db"]
    owner_id = require_owner(ctx)
    service = DebtService(db)
    funding_id = None
    if funding_account:
        funding_id = resolve_account_or_exit(ctx, AccountService(db), owner_id, funding_account)

    principal_value = _amount(ctx, principal, "principal")
    rate_value = _percent(ctx, rate)
    start = parse_date_or_exit(ctx, start_date, "start date", default=date.today())

    try:
        if payment is not None:
            debt = service.create_debt(
                owner_id,
                name,
                principal=principal_value,
                interest_rate=rate_value,
                payment_amount=_amount(ctx, payment, "payment"),
                start_date=start,
                rate_frequency=RateFrequency(rate_frequency),
                payment_frequency=PaymentFrequency(frequency),
                repayment_method=RepaymentMethod(method),
                total_periods=term,
                funding_account_id=funding_id,
            )
        else:
            if term is None:
                click.echo("Error: --term is required when --payment is not given", err=True)
                ctx.exit(1)
            inputs = DebtInputs(
                principal=principal_value,
                interest_rate=rate_value,
                term_periods=term,
                start_date=start,
                rate_frequency=RateFrequency(rate_frequency),
                payment_frequency=PaymentFrequency(frequency),
                minimum_payment=_amount(ctx, minimum, "minimum payment"),
            )
            projection = _comparator(ctx).project(inputs, RepaymentMethod(method))
            debt = service.create_from_projection(owner_id, name, inputs, projection, funding_account_id=funding_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
        return

    if as_json:
        echo_json(debt_to_dict(debt))
    else:
        click.echo(
            f"Created debt '{debt.name}' (ID: {debt.id}) of {format_money(debt.principal)}, "
            f"paying {format_money(debt.payment_amount)} {debt.payment_frequency.value}"
        )


@debt_group.command("pay")
@click.argument("debt", metavar="DEBT")
@click.argument("amount", metavar="AMOUNT")
@click.option("--from", "paid_from", required=True, help="Asset account the payment comes from")
@click.option("--date", "on", help="Payment date (default: today)")
@click.option("--no-interest", is_flag=True, help="Do not accrue the period's interest first")
@click.option("--json", "as_json", is_flag=True, help="Output JSON")
@click.pass_context
def pay(ctx, debt, amount, paid_from, on, no_interest, as_json):
    """Record a debt payment (accruing the period's interest first)."""
    db = ctx.obj["db"]
    owner_id = require_owner(ctx)
    service = DebtService(db)
    debt_id = resolve_debt_or_exit(ctx, service, owner_id, debt)
    account_id = resolve_account_or_exit(ctx, AccountService(db), owner_id, paid_from)
    value = _amount(ctx, amount)
    paid_on = parse_date_or_exit(ctx, on, default=date.today())

    try:
        result = service.record_payment(
            owner_id, debt_id, value, account_id, paid_on, accrue_interest=not no_interest
        )
    except ValueError as e:
        handle_domain_error(ctx, e)
        return

    if as_json:
        echo_json(posting_to_dict(result))
        return
    details = result.details
    if details["interest"] > ZERO:
        click.echo(f"Accrued interest {format_money(details['interest'])}")
    click.echo(f"Paid {format_money(details['payment'])}; remaining balance {format_money(details['balance'])}")
    if details["balance"] <= ZERO:
        click.echo("Debt paid off.")


@debt_group.command("accrue")
@click.argument("debt", metavar="DEBT")
@click.option("--date", "on", help="Accrual date (default: today)")
@click.pass_context
def accrue(ctx, debt, on):
    """Post one period of interest on a debt."""
    db = ctx.obj["db"]
    owner_id = require_owner(ctx)
    service = DebtService(db)
    debt_id = resolve_debt_or_exit(ctx, service, owner_id, debt)
    accrued_on = parse_date_or_exit(ctx, on, default=date.today())

    try:
        result = service.accrue_interest(owner_id, debt_id, accrued_on)
    except ValueError as e:
        handle_domain_error(ctx, e)
        return
    if result.committed:
        click.echo(
            f"Accrued interest {format_money(result.details['interest'])}; "
            f"balance {format_money(result.details['balance'])}"
        )
    else:
        click.echo("No interest to accrue.")


@debt_group.command("list")
@click.option("--active-only", is_flag=True, help="Hide paid-off debts")
@click.option("--json", "as_json", is_flag=True, help="Output JSON")
@click.pass_context
def list_debts(ctx, active_only: bool, as_json: bool):
    """List debts with their cached balances."""
    db = ctx.obj["db"]
    owner_id = require_owner(ctx)
    debts = DebtService(db).list_debts(owner_id, active_only=active_only)

    if as_json:
        echo_json([debt_to_dict(d) for d in debts])
        return
    if not debts:
        click.echo("No debts found.")
        return
    for d in debts:
        status = f"paid off {d.payoff_date.isoformat()}" if not d.is_active and d.payoff_date else (
            "active" if d.is_active else "inactive"
        )
        click.echo(
            f"ID: {d.id:3d} | {d.name:20s} | {format_money(d.current_balance):>12s} | "
            f"{d.interest_rate}% {d.rate_frequency.value} | {d.repayment_method.value} | {status}"
        )


@debt_group.command("reconcile")
@click.argument("debt", metavar="DEBT")
@click.pass_context
def reconcile(ctx, debt):
    """Check a debt's cached balance against the ledger (exit 3 on mismatch)."""
    db = ctx.obj["db"]
    owner_id = require_owner(ctx)
    service = DebtService(db)
    debt_id = resolve_debt_or_exit(ctx, service, owner_id, debt)

    try:
        balance = service.reconcile(owner_id, debt_id)
    except IntegrityViolation as e:
        handle_integrity_violation(ctx, e)
        return
    except ValueError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Debt {debt_id} reconciled: {format_money(balance)}")


def _parse_portfolio_debt(ctx, spec: str) -> PortfolioDebt:
    parts = spec.split(":")
    if len(parts) != 4 or not parts[0]:
        click.echo(f"Error: Invalid debt '{spec}', expected NAME:BALANCE:RATE:MINIMUM", err=True)
        ctx.exit(1)
    name, balance, rate, minimum = parts
    return PortfolioDebt(
        name=name,
        balance=_amount(ctx, balance, "balance"),
        interest_rate=_percent(ctx, rate),
        minimum_payment=_amount(ctx, minimum, "minimum payment"),
    )


@debt_group.command("plan")
@click.option("--debt", "debt_specs", multiple=True, help="NAME:BALANCE:RATE:MINIMUM; default: your active debts")
@click.option("--surplus", default="0", help="Extra cash per period beyond the minimums")
@click.option("--strategy", type=click.Choice(PORTFOLIO_STRATEGIES), default="avalanche", show_default=True)
@click.option("--frequency", type=FREQUENCY_CHOICE, default="monthly", show_default=True)
@click.option("--start-date", help="Plan start date (default: today)")
@click.option("--json", "as_json", is_flag=True, help="Output JSON")
@click.pass_context
def plan(ctx, debt_specs, surplus, strategy, frequency, start_date, as_json):
    """Plan paying off several debts with avalanche or snowball.

    Example:
        ledgerly debt plan --debt Visa:3000:22.9:90 --debt Car:8000:6.5:250 --surplus 300
    """
    if debt_specs:
        debts = [_parse_portfolio_debt(ctx, spec) for spec in debt_specs]
    else:
        owner_id = require_owner(ctx)
        debts = [
            PortfolioDebt(
                name=d.name,
                balance=d.current_balance,
                interest_rate=d.interest_rate,
                minimum_payment=d.payment_amount,
                rate_frequency=d.rate_frequency,
            )
            for d in DebtService(ctx.obj["db"]).list_debts(owner_id, active_only=True)
        ]
        if not debts:
            click.echo("No active debts to plan.")
            return

    try:
        result = plan_portfolio(
            debts,
            surplus=_amount(ctx, surplus, "surplus"),
            strategy=strategy,
            start_date=parse_date_or_exit(ctx, start_date, "start date", default=date.today()),
            payment_frequency=PaymentFrequency(frequency),
            max_periods=ctx.obj["settings"].max_projection_periods,
        )
    except ValueError as e:
        handle_domain_error(ctx, e)
        return

    if as_json:
        echo_json(plan_to_dict(result))
    else:
        click.echo(f"{strategy.capitalize()} plan, {format_money(result.budget)} per period")
        if result.feasible:
            click.echo(
                f"  Debt free {result.payoff_date.isoformat()} after {result.periods} payments, "
                f"interest {format_money(result.total_interest)}"
            )
            for name in result.payoff_order:
                click.echo(f"  {name:20s} paid off {result.payoff_dates[name].isoformat()}")
        echo_warnings(result.warnings)
    if not result.feasible:
        ctx.exit(EXIT_NO_VIABLE_OPTION)


def register_commands(cli):
    """Register debt commands with main CLI."""
    cli.add_command(debt_group, name="debt")
