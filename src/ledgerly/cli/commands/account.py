"""Account management commands."""

from datetime import date

import click
from ledgerly.cli.account_resolution import require_owner, resolve_account_or_exit
from ledgerly.cli.date_filters import parse_date_or_exit
from ledgerly.cli.error_handling import handle_domain_error
from ledgerly.cli.output import account_to_dict, echo_json
from ledgerly.domain.account import USER_ACCOUNT_TYPES, AccountService
from ledgerly.domain.balances import BalanceProjector
from ledgerly.domain.entities import AccountType
from ledgerly.domain.money import format_money
from ledgerly.domain.postings import OpeningBalance, PostingService
from ledgerly.utils.amount_parser import parse_amount

ACCOUNT_TYPE_CHOICE = click.Choice([t.value for t in USER_ACCOUNT_TYPES])


@click.group()
def account_group():
    """Manage accounts."""
    pass


@account_group.command("create")
@click.argument("name", metavar="ACCOUNT_NAME")
@click.option("--type", "account_type", type=ACCOUNT_TYPE_CHOICE, required=True, help="Account type")
@click.option("--category", help="Free-form category (e.g. checking, credit_card)")
@click.option("--opening-balance", help="Post an opening balance for the new account")
@click.option("--date", "on", help="Date of the opening balance (default: today)")
@click.pass_context
def create_account(
    ctx, name: str, account_type: str, category: str | None, opening_balance: str | None, on: str | None
):
    """Create a new account.

    Examples:
        ledgerly account create "Checking" --type asset --category checking
        ledgerly account create "Visa" --type liability --opening-balance 420.18
        ledgerly account create "Groceries" --type expense
    """
    db = ctx.obj["db"]
    owner_id = require_owner(ctx)
    service = AccountService(db)

    amount = None
    if opening_balance is not None:
        try:
            amount = parse_amount(opening_balance)
        except ValueError as e:
            click.echo(f"Error: Invalid amount format: {e}", err=True)
            ctx.exit(1)
    opened_on = parse_date_or_exit(ctx, on, default=date.today())

    try:
        account_id = service.create_account(owner_id, name, account_type, category=category)
        click.echo(f"Created {account_type} account '{name}' (ID: {account_id})")
        if amount is not None:
            result = PostingService(db).post(owner_id, OpeningBalance(account_id, amount), opened_on)
            if result.committed:
                click.echo(f"Opening balance {format_money(amount)} posted (transaction {result.transaction_ids[0]})")
    except ValueError as e:
        handle_domain_error(ctx, e)


@account_group.command("list")
@click.option("--type", "account_type", type=click.Choice([t.value for t in AccountType]), help="Only this type")
@click.option("--active-only", is_flag=True, help="Hide deactivated accounts")
@click.option("--json", "as_json", is_flag=True, help="Output JSON")
@click.pass_context
def list_accounts(ctx, account_type: str | None, active_only: bool, as_json: bool):
    """List accounts with their derived balances."""
    db = ctx.obj["db"]
    owner_id = require_owner(ctx)
    service = AccountService(db)

    accounts = service.list_accounts(
        owner_id, account_type=AccountType(account_type) if account_type else None, active_only=active_only
    )
    balances = BalanceProjector(db).balances(owner_id)

    if as_json:
        echo_json([account_to_dict(acc, balances.get(acc.id)) for acc in accounts])
        return
    if not accounts:
        click.echo("No accounts found.")
        return

    click.echo("\nAccounts:")
    click.echo("-" * 78)
    for acc in accounts:
        status = "" if acc.is_active else " (inactive)"
        click.echo(
            f"ID: {acc.id:3d} | {acc.name:24s} | {acc.account_type.value:9s} | "
            f"{format_money(balances.get(acc.id)):>14s}{status}"
        )


@account_group.command("rename")
@click.argument("account", metavar="ACCOUNT")
@click.argument("new_name", metavar="NEW_NAME")
@click.option("--category", help="New category (optional)")
@click.pass_context
def rename_account(ctx, account: str, new_name: str, category: str | None) -> None:
    """Rename an account. The account type never changes.

    ACCOUNT can be an account name or ID.

    Examples:
        ledgerly account rename "Checking" "Main Checking"
        ledgerly account rename 1 "Joint Checking" --category joint
    """
    db = ctx.obj["db"]
    owner_id = require_owner(ctx)
    service = AccountService(db)
    account_id = resolve_account_or_exit(ctx, service, owner_id, account)

    try:
        service.rename_account(owner_id, account_id, new_name, category=category)
        click.echo(f"Renamed account to '{new_name}'")
    except ValueError as e:
        handle_domain_error(ctx, e)


@account_group.command("deactivate")
@click.argument("account", metavar="ACCOUNT")
@click.pass_context
def deactivate_account(ctx, account: str) -> None:
    """Deactivate an account. Its history stays; new postings are refused."""
    db = ctx.obj["db"]
    owner_id = require_owner(ctx)
    service = AccountService(db)
    account_id = resolve_account_or_exit(ctx, service, owner_id, account)

    try:
        service.deactivate_account(owner_id, account_id)
        click.echo(f"Deactivated account {account_id}")
    except ValueError as e:
        handle_domain_error(ctx, e)


@account_group.command("activate")
@click.argument("account", metavar="ACCOUNT")
@click.pass_context
def activate_account(ctx, account: str) -> None:
    """Reactivate a deactivated account."""
    db = ctx.obj["db"]
    owner_id = require_owner(ctx)
    service = AccountService(db)
    account_id = resolve_account_or_exit(ctx, service, owner_id, account)

    try:
        service.activate_account(owner_id, account_id)
        click.echo(f"Activated account {account_id}")
    except ValueError as e:
        handle_domain_error(ctx, e)


@account_group.command("delete")
@click.argument("account", metavar="ACCOUNT")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete_account(ctx, account: str, yes: bool) -> None:
    """Delete an account that has never been used.

    ACCOUNT can be an account name or ID.

    Accounts with entries or debts cannot be deleted; deactivate them instead.
    """
    db = ctx.obj["db"]
    owner_id = require_owner(ctx)
    service = AccountService(db)
    account_id = resolve_account_or_exit(ctx, service, owner_id, account)
    account_obj = service.require_account(owner_id, account_id)

    if not yes and not click.confirm(
        f"Are you sure you want to delete account '{account_obj.name}' (ID: {account_id})?"
    ):
        click.echo("Deletion cancelled.")
        return

    try:
        service.delete_account(owner_id, account_id)
        click.echo(f"Deleted account '{account_obj.name}'")
    except ValueError as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register account commands with main CLI."""
    cli.add_command(account_group, name="account")
