"""CLI helpers for owner, account and debt resolution."""

from __future__ import annotations

import click
from ledgerly.domain.account import AccountService
from ledgerly.domain.debt import DebtService
from ledgerly.domain.errors import DomainError
from ledgerly.utils.account_resolver import resolve_account, resolve_debt


def require_owner(ctx: click.Context) -> str:
    """Return the owner for this invocation, or exit with a CLI error.

    The owner comes from --owner or LEDGERLY_OWNER and is resolved once in
    the root command; commands never take it from anywhere else.
    """
    owner_id = ctx.obj.get("owner")
    if not owner_id:
        click.echo("Error: No owner given. Use --owner or set LEDGERLY_OWNER.", err=True)
        ctx.exit(1)
    return owner_id


def resolve_account_or_exit(
    ctx: click.Context, account_service: AccountService, owner_id: str, account: str | int
) -> int:
    """Resolve account name or ID, or exit with a CLI error.

    This keeps error messaging and exit behavior consistent across commands.
    """
    try:
        return resolve_account(account_service, owner_id, account)
    except DomainError as exc:
        click.echo(f"Error: {exc}", err=True)
        ctx.exit(1)


def resolve_debt_or_exit(
    ctx: click.Context, debt_service: DebtService, owner_id: str, debt: str | int
) -> int:
    """Resolve debt name or ID, or exit with a CLI error."""
    try:
        return resolve_debt(debt_service, owner_id, debt)
    except DomainError as exc:
        click.echo(f"Error: {exc}", err=True)
        ctx.exit(1)
