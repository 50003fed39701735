"""Transaction browsing commands."""

import click
from ledgerly.cli.account_resolution import require_owner, resolve_account_or_exit
from ledgerly.cli.date_filters import period_options, resolve_cli_date_range
from ledgerly.cli.error_handling import handle_domain_error
from ledgerly.cli.output import echo_json, transaction_to_dict
from ledgerly.domain.account import AccountService
from ledgerly.domain.ledger import LedgerService
from ledgerly.domain.money import format_money


@click.group()
def transaction_group():
    """Browse committed transactions."""
    pass


@transaction_group.command("list")
@click.option("--start-date", help="Start date (YYYY-MM-DD or relative like 'start of month')")
@click.option("--end-date", help="End date (YYYY-MM-DD or relative like 'today')")
@period_options
@click.option("--account", help="Only transactions touching this account (name or ID)")
@click.option("--json", "as_json", is_flag=True, help="Output JSON")
@click.pass_context
def list_transactions(
    ctx,
    start_date: str | None,
    end_date: str | None,
    this_month: bool,
    last_month: bool,
    this_year: bool,
    last_year: bool,
    account: str | None,
    as_json: bool,
):
    """List transactions in ledger order."""
    db = ctx.obj["db"]
    owner_id = require_owner(ctx)
    accounts = AccountService(db)

    start, end = resolve_cli_date_range(
        ctx,
        start_date=start_date,
        end_date=end_date,
        period_flags={
            "this-month": this_month,
            "last-month": last_month,
            "this-year": this_year,
            "last-year": last_year,
        },
    )
    account_id = resolve_account_or_exit(ctx, accounts, owner_id, account) if account else None

    transactions = LedgerService(db).list_transactions(
        owner_id, start_date=start, end_date=end, account_id=account_id
    )
    if as_json:
        echo_json([transaction_to_dict(txn) for txn in transactions])
        return
    if not transactions:
        click.echo("No transactions found.")
        return

    names = {acc.id: acc.name for acc in accounts.list_accounts(owner_id)}
    click.echo(f"\n{'ID':>5s}  {'Date':10s}  {'Description':30s}  {'Amount':>12s}  Accounts")
    click.echo("-" * 90)
    for txn in transactions:
        total = sum(e.amount for e in txn.entries if e.side.value == "debit")
        legs = ", ".join(f"{e.side.value[:2]} {names.get(e.account_id, e.account_id)}" for e in txn.entries)
        marker = " (void)" if txn.reverses_id else ""
        click.echo(
            f"{txn.id:5d}  {txn.date.isoformat():10s}  {txn.description[:30]:30s}  "
            f"{format_money(total):>12s}  {legs}{marker}"
        )


@transaction_group.command("show")
@click.argument("transaction_id", type=int)
@click.option("--json", "as_json", is_flag=True, help="Output JSON")
@click.pass_context
def show_transaction(ctx, transaction_id: int, as_json: bool):
    """Show one transaction with all of its entries."""
    db = ctx.obj["db"]
    owner_id = require_owner(ctx)
    ledger = LedgerService(db)

    try:
        txn = ledger.require_transaction(owner_id, transaction_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
        return

    if as_json:
        echo_json(transaction_to_dict(txn))
        return

    names = {acc.id: acc.name for acc in AccountService(db).list_accounts(owner_id)}
    click.echo(f"Transaction {txn.id} on {txn.date.isoformat()}: {txn.description}")
    if txn.notes:
        click.echo(f"Notes: {txn.notes}")
    if txn.reverses_id:
        click.echo(f"Reverses transaction {txn.reverses_id}")
    for entry in txn.entries:
        debit = format_money(entry.amount) if entry.side.value == "debit" else ""
        credit = format_money(entry.amount) if entry.side.value == "credit" else ""
        click.echo(f"  {names.get(entry.account_id, entry.account_id)!s:30s} {debit:>12s} {credit:>12s}")


def register_commands(cli):
    """Register transaction commands with main CLI."""
    cli.add_command(transaction_group, name="transaction")
