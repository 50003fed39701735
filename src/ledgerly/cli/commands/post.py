"""Posting commands: one per transaction shape, plus void."""

from datetime import date

import click
from ledgerly.cli.account_resolution import require_owner, resolve_account_or_exit
from ledgerly.cli.date_filters import parse_date_or_exit
from ledgerly.cli.error_handling import handle_domain_error
from ledgerly.cli.output import echo_json, posting_to_dict
from ledgerly.domain.account import AccountService
from ledgerly.domain.entities import PostingResult
from ledgerly.domain.ledger import LedgerService
from ledgerly.domain.postings import (
    Allocation,
    BalanceAdjustment,
    Expense,
    Income,
    OpeningBalance,
    PostingService,
    Transfer,
    WindfallSplit,
)
from ledgerly.utils.amount_parser import parse_amount, parse_percent


@click.group()
def post_group():
    """Post balanced transactions."""
    pass


def posting_options(func):
    """Options shared by every posting command."""
    func = click.option("--json", "as_json", is_flag=True, help="Output JSON")(func)
    func = click.option("--notes", help="Notes")(func)
    func = click.option("--description", help="Transaction description")(func)
    func = click.option("--date", "on", help="Transaction date (YYYY-MM-DD or 'today', 'yesterday')")(func)
    return func


def _amount_or_exit(ctx, value: str, allow_negative: bool = False):
    try:
        return parse_amount(value, allow_negative=allow_negative)
    except ValueError as e:
        click.echo(f"Error: Invalid amount format: {e}", err=True)
        ctx.exit(1)


def _post(ctx, shape_factory, on, description, notes, as_json):
    """Resolve common options, post the shape and report the outcome."""
    db = ctx.obj["db"]
    owner_id = require_owner(ctx)
    txn_date = parse_date_or_exit(ctx, on, default=date.today())
    accounts = AccountService(db)

    shape = shape_factory(lambda name: resolve_account_or_exit(ctx, accounts, owner_id, name))
    try:
        result = PostingService(db).post(owner_id, shape, txn_date, description=description, notes=notes)
    except ValueError as e:
        handle_domain_error(ctx, e)
        return
    _report(result, as_json)


def _report(result: PostingResult, as_json: bool) -> None:
    if as_json:
        echo_json(posting_to_dict(result))
        return
    if not result.committed:
        click.echo(f"Nothing posted: {result.skipped_reason.replace('_', ' ')}")
        return
    ids = ", ".join(str(i) for i in result.transaction_ids)
    noun = "transaction" if len(result.transaction_ids) == 1 else "transactions"
    click.echo(f"Posted {noun} {ids}")


@post_group.command("opening")
@click.argument("account", metavar="ACCOUNT")
@click.argument("amount", metavar="AMOUNT")
@posting_options
@click.pass_context
def post_opening(ctx, account, amount, on, description, notes, as_json):
    """Post an opening balance against Opening Balances equity.

    Examples:
        ledgerly post opening Checking 2500.00
        ledgerly post opening Checking -- -35.10
    """
    value = _amount_or_exit(ctx, amount, allow_negative=True)
    _post(ctx, lambda resolve: OpeningBalance(resolve(account), value), on, description, notes, as_json)


@post_group.command("transfer")
@click.argument("from_account", metavar="FROM")
@click.argument("to_account", metavar="TO")
@click.argument("amount", metavar="AMOUNT")
@posting_options
@click.pass_context
def post_transfer(ctx, from_account, to_account, amount, on, description, notes, as_json):
    """Move money between two asset accounts. Net worth is unchanged.

    Example:
        ledgerly post transfer Checking Savings 200
    """
    value = _amount_or_exit(ctx, amount)
    _post(
        ctx,
        lambda resolve: Transfer(resolve(from_account), resolve(to_account), value),
        on,
        description,
        notes,
        as_json,
    )


@post_group.command("expense")
@click.argument("expense_account", metavar="EXPENSE_ACCOUNT")
@click.argument("paid_from", metavar="PAID_FROM")
@click.argument("amount", metavar="AMOUNT")
@posting_options
@click.pass_context
def post_expense(ctx, expense_account, paid_from, amount, on, description, notes, as_json):
    """Record spending from an asset or credit account.

    Example:
        ledgerly post expense Groceries Checking 54.20 --description "Market"
    """
    value = _amount_or_exit(ctx, amount)
    _post(
        ctx,
        lambda resolve: Expense(resolve(expense_account), resolve(paid_from), value),
        on,
        description,
        notes,
        as_json,
    )


@post_group.command("income")
@click.argument("income_account", metavar="INCOME_ACCOUNT")
@click.argument("deposit_account", metavar="DEPOSIT_ACCOUNT")
@click.argument("amount", metavar="AMOUNT")
@posting_options
@click.pass_context
def post_income(ctx, income_account, deposit_account, amount, on, description, notes, as_json):
    """Record income deposited into an asset account.

    Example:
        ledgerly post income Salary Checking 3100
    """
    value = _amount_or_exit(ctx, amount)
    _post(
        ctx,
        lambda resolve: Income(resolve(income_account), resolve(deposit_account), value),
        on,
        description,
        notes,
        as_json,
    )


@post_group.command("adjust")
@click.argument("account", metavar="ACCOUNT")
@click.argument("stated_actual", metavar="ACTUAL_BALANCE")
@posting_options
@click.pass_context
def post_adjust(ctx, account, stated_actual, on, description, notes, as_json):
    """Move an account to the balance shown on a statement.

    Nothing is posted when the ledger already agrees.

    Example:
        ledgerly post adjust Checking 1204.33
    """
    value = _amount_or_exit(ctx, stated_actual, allow_negative=True)
    _post(ctx, lambda resolve: BalanceAdjustment(resolve(account), value), on, description, notes, as_json)


@post_group.command("windfall")
@click.argument("income_account", metavar="INCOME_ACCOUNT")
@click.argument("deposit_account", metavar="DEPOSIT_ACCOUNT")
@click.argument("amount", metavar="AMOUNT")
@click.option(
    "--split",
    "splits",
    multiple=True,
    required=True,
    help="ACCOUNT=PERCENT allocation; repeat for each target, percentages must total 100",
)
@posting_options
@click.pass_context
def post_windfall(ctx, income_account, deposit_account, amount, splits, on, description, notes, as_json):
    """Deposit a windfall and split it across several accounts.

    The deposit and each allocation are separate balanced transactions;
    all of them are validated before the first one is committed.

    Example:
        ledgerly post windfall Bonus Checking 1000 --split Savings=50 --split Fun=20 --split Checking=30
    """
    value = _amount_or_exit(ctx, amount)
    parsed = []
    for split in splits:
        name, sep, percent = split.rpartition("=")
        if not sep or not name:
            click.echo(f"Error: Invalid split '{split}', expected ACCOUNT=PERCENT", err=True)
            ctx.exit(1)
        try:
            parsed.append((name, parse_percent(percent)))
        except ValueError as e:
            click.echo(f"Error: {e}", err=True)
            ctx.exit(1)

    def build(resolve):
        allocations = tuple(Allocation(resolve(name), pct) for name, pct in parsed)
        return WindfallSplit(resolve(income_account), resolve(deposit_account), value, allocations)

    _post(ctx, build, on, description, notes, as_json)


@post_group.command("void")
@click.argument("transaction_id", type=int)
@click.option("--date", "on", help="Date of the reversing transaction (default: original date)")
@click.option("--json", "as_json", is_flag=True, help="Output JSON")
@click.pass_context
def post_void(ctx, transaction_id: int, on: str | None, as_json: bool):
    """Void a transaction by appending its mirror image.

    The original is never edited or removed.
    """
    db = ctx.obj["db"]
    owner_id = require_owner(ctx)
    reversal_date = parse_date_or_exit(ctx, on)

    try:
        reversal_id = LedgerService(db).void(owner_id, transaction_id, on=reversal_date)
    except ValueError as e:
        handle_domain_error(ctx, e)
        return
    if as_json:
        echo_json({"voided_id": transaction_id, "reversal_id": reversal_id})
    else:
        click.echo(f"Voided transaction {transaction_id} with transaction {reversal_id}")


def register_commands(cli):
    """Register posting commands with main CLI."""
    cli.add_command(post_group, name="post")
