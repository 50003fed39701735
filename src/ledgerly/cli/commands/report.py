"""Balance, net worth, history and integrity check commands."""

import click
from ledgerly.cli.account_resolution import require_owner, resolve_account_or_exit
from ledgerly.cli.date_filters import parse_date_or_exit
from ledgerly.cli.error_handling import handle_domain_error, handle_integrity_violation
from ledgerly.cli.output import echo_json
from ledgerly.domain.account import AccountService
from ledgerly.domain.balances import BalanceProjector
from ledgerly.domain.debt import DebtService
from ledgerly.domain.entities import AccountType
from ledgerly.domain.errors import IntegrityViolation
from ledgerly.domain.ledger import LedgerService
from ledgerly.domain.money import format_money


@click.command("balance")
@click.argument("account", metavar="ACCOUNT", required=False)
@click.option("--as-of", help="Include transactions up to this date (default: all)")
@click.option("--json", "as_json", is_flag=True, help="Output JSON")
@click.pass_context
def balance(ctx, account: str | None, as_of: str | None, as_json: bool):
    """Show derived balances.

    With ACCOUNT, show that account's balance; otherwise show every account
    grouped by type.
    """
    db = ctx.obj["db"]
    owner_id = require_owner(ctx)
    accounts = AccountService(db)
    projector = BalanceProjector(db)
    cutoff = parse_date_or_exit(ctx, as_of, "as-of date")

    if account is not None:
        account_id = resolve_account_or_exit(ctx, accounts, owner_id, account)
        try:
            value = projector.balance_as_of(owner_id, account_id, cutoff)
        except ValueError as e:
            handle_domain_error(ctx, e)
            return
        if as_json:
            echo_json({"account_id": account_id, "as_of": cutoff, "balance": value})
        else:
            click.echo(format_money(value))
        return

    balances = projector.balances(owner_id, cutoff)
    all_accounts = accounts.list_accounts(owner_id)
    if as_json:
        echo_json(
            [
                {"account_id": acc.id, "name": acc.name, "type": acc.account_type, "balance": balances[acc.id]}
                for acc in all_accounts
            ]
        )
        return
    if not all_accounts:
        click.echo("No accounts found.")
        return

    for account_type in AccountType:
        group = [acc for acc in all_accounts if acc.account_type is account_type]
        if not group:
            continue
        click.echo(f"\n{account_type.value.capitalize()}:")
        for acc in group:
            click.echo(f"  {acc.name:30s} {format_money(balances[acc.id]):>14s}")


@click.command("net-worth")
@click.option("--as-of", help="Compute as of this date (default: all transactions)")
@click.option("--months", type=click.IntRange(min=1), help="Show month-end net worth for the last N months")
@click.option("--json", "as_json", is_flag=True, help="Output JSON")
@click.pass_context
def net_worth(ctx, as_of: str | None, months: int | None, as_json: bool):
    """Show assets, liabilities and net worth."""
    db = ctx.obj["db"]
    owner_id = require_owner(ctx)
    projector = BalanceProjector(db)
    cutoff = parse_date_or_exit(ctx, as_of, "as-of date")

    if months is not None:
        points = projector.net_worth_history(owner_id, months=months, as_of=cutoff)
        if as_json:
            echo_json([{"date": p.date, "net_worth": p.balance} for p in points])
        else:
            for point in points:
                click.echo(f"{point.date.isoformat()}  {format_money(point.balance):>14s}")
        return

    totals = projector.totals(owner_id, cutoff)
    if as_json:
        echo_json(
            {
                "as_of": totals.as_of,
                "assets": totals.assets,
                "liabilities": totals.liabilities,
                "net_worth": totals.net_worth,
            }
        )
        return
    click.echo(f"Assets:      {format_money(totals.assets):>14s}")
    click.echo(f"Liabilities: {format_money(totals.liabilities):>14s}")
    click.echo(f"Net worth:   {format_money(totals.net_worth):>14s}")


@click.command("history")
@click.argument("account", metavar="ACCOUNT")
@click.option("--start-date", help="First date to show")
@click.option("--end-date", help="Last date to show")
@click.option("--json", "as_json", is_flag=True, help="Output JSON")
@click.pass_context
def history(ctx, account: str, start_date: str | None, end_date: str | None, as_json: bool):
    """Show an account's end-of-day balance on each date with activity."""
    db = ctx.obj["db"]
    owner_id = require_owner(ctx)
    account_id = resolve_account_or_exit(ctx, AccountService(db), owner_id, account)
    start = parse_date_or_exit(ctx, start_date, "start date")
    end = parse_date_or_exit(ctx, end_date, "end date")

    points = BalanceProjector(db).history(owner_id, account_id, start, end)
    if as_json:
        echo_json([{"date": p.date, "balance": p.balance} for p in points])
        return
    if not points:
        click.echo("No activity in range.")
        return
    for point in points:
        click.echo(f"{point.date.isoformat()}  {format_money(point.balance):>14s}")


@click.command("check")
@click.option("--json", "as_json", is_flag=True, help="Output JSON")
@click.pass_context
def check(ctx, as_json: bool):
    """Verify the ledger: balanced transactions, consistent balances, debt caches.

    Exits with status 3 on any integrity violation.
    """
    db = ctx.obj["db"]
    owner_id = require_owner(ctx)
    projector = BalanceProjector(db)
    debts = DebtService(db)

    try:
        transaction_count = LedgerService(db).verify_integrity(owner_id)
        accounts = AccountService(db).list_accounts(owner_id)
        for acc in accounts:
            projector.verify_account(owner_id, acc.id)
        owner_debts = debts.list_debts(owner_id)
        for debt in owner_debts:
            debts.reconcile(owner_id, debt.id)
    except IntegrityViolation as e:
        handle_integrity_violation(ctx, e)
        return

    if as_json:
        echo_json(
            {
                "ok": True,
                "transactions": transaction_count,
                "accounts": len(accounts),
                "debts": len(owner_debts),
            }
        )
    else:
        click.echo(
            f"OK: {transaction_count} transactions, {len(accounts)} accounts, "
            f"{len(owner_debts)} debts verified"
        )


def register_commands(cli):
    """Register report commands with main CLI."""
    cli.add_command(balance)
    cli.add_command(net_worth)
    cli.add_command(history)
    cli.add_command(check)
