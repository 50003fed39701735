"""Balance projection: every balance is a fold over the entry log."""

import logging
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, Optional

from dateutil.relativedelta import relativedelta

from ledgerly.database.base import Database
from ledgerly.domain.entities import (
    AccountType,
    BalancePoint,
    BalanceTotals,
    EntrySide,
    PostedEntry,
)
from ledgerly.domain.errors import IntegrityViolation, NotFoundError, account_not_found
from ledgerly.domain.money import ZERO

logger = logging.getLogger(__name__)


def signed_amount(side: EntrySide, amount: Decimal, account_type: AccountType) -> Decimal:
    """Apply the normal-balance convention: + on the normal side, - otherwise."""
    return amount if side == account_type.normal_side else -amount


def fold_balance(entries: Iterable[PostedEntry], account_type: AccountType) -> Decimal:
    """Balance after applying entries one by one, in the order given."""
    balance = ZERO
    for entry in entries:
        balance += signed_amount(entry.side, entry.amount, account_type)
    return balance


class BalanceProjector:
    """Read side of the ledger: balances, net worth and history."""

    def __init__(self, db: Database):
        """Initialize balance projector.

        Args:
            db: Database instance
        """
        self.db = db

    def _require_account(self, owner_id: str, account_id: int):
        account = self.db.get_account(account_id)
        if account is None or account.owner_id != owner_id:
            raise NotFoundError(account_not_found(account_id))
        return account

    def balance_as_of(self, owner_id: str, account_id: int, as_of: Optional[date] = None) -> Decimal:
        """Balance of an account including every transaction dated on or before as_of."""
        account = self._require_account(owner_id, account_id)
        entries = self.db.query_entries(owner_id, account_ids=[account_id], end_date=as_of)
        return fold_balance(entries, account.account_type)

    def balances(self, owner_id: str, as_of: Optional[date] = None) -> dict[int, Decimal]:
        """Balances of all the owner's accounts, keyed by account ID."""
        accounts = {acc.id: acc for acc in self.db.list_accounts(owner_id)}
        result = {account_id: ZERO for account_id in accounts}
        for entry in self.db.query_entries(owner_id, end_date=as_of):
            account = accounts[entry.account_id]
            result[entry.account_id] += signed_amount(entry.side, entry.amount, account.account_type)
        return result

    def totals(self, owner_id: str, as_of: Optional[date] = None) -> BalanceTotals:
        """Asset and liability totals (inactive accounts included)."""
        assets = ZERO
        liabilities = ZERO
        accounts = {acc.id: acc for acc in self.db.list_accounts(owner_id)}
        for account_id, balance in self.balances(owner_id, as_of).items():
            account_type = accounts[account_id].account_type
            if account_type is AccountType.ASSET:
                assets += balance
            elif account_type is AccountType.LIABILITY:
                liabilities += balance
        return BalanceTotals(as_of=as_of, assets=assets, liabilities=liabilities)

    def net_worth(self, owner_id: str, as_of: Optional[date] = None) -> Decimal:
        """Total asset balances minus total liability balances."""
        return self.totals(owner_id, as_of).net_worth

    def history(
        self,
        owner_id: str,
        account_id: int,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> list[BalancePoint]:
        """End-of-day balances for each date with activity between start and end.

        Balances carry everything posted before start.
        """
        account = self._require_account(owner_id, account_id)
        entries = self.db.query_entries(owner_id, account_ids=[account_id], end_date=end)

        points: list[BalancePoint] = []
        balance = ZERO
        for entry in entries:
            balance += signed_amount(entry.side, entry.amount, account.account_type)
            if start is not None and entry.date < start:
                continue
            if points and points[-1].date == entry.date:
                points[-1] = BalancePoint(entry.date, balance)
            else:
                points.append(BalancePoint(entry.date, balance))
        return points

    def net_worth_history(self, owner_id: str, months: int = 12, as_of: Optional[date] = None) -> list[BalancePoint]:
        """Net worth at the end of each of the last `months` months.

        The current month's point is taken at as_of rather than month end.
        """
        if months <= 0:
            raise ValueError("months must be positive")
        as_of = as_of or date.today()
        cutoffs = []
        for offset in range(months - 1, -1, -1):
            month_start = (as_of - relativedelta(months=offset)).replace(day=1)
            month_end = month_start + relativedelta(months=1) - timedelta(days=1)
            cutoffs.append(min(month_end, as_of))

        accounts = {
            acc.id: acc.account_type
            for acc in self.db.list_accounts(owner_id)
            if acc.account_type in (AccountType.ASSET, AccountType.LIABILITY)
        }
        entries = self.db.query_entries(owner_id, account_ids=accounts.keys(), end_date=as_of)

        points = []
        net = ZERO
        index = 0
        for cutoff in cutoffs:
            while index < len(entries) and entries[index].date <= cutoff:
                entry = entries[index]
                account_type = accounts[entry.account_id]
                change = signed_amount(entry.side, entry.amount, account_type)
                net += change if account_type is AccountType.ASSET else -change
                index += 1
            points.append(BalancePoint(cutoff, net))
        return points

    def verify_account(self, owner_id: str, account_id: int) -> Decimal:
        """Derive an account balance two ways and insist they agree.

        Returns:
            The verified balance

        Raises:
            IntegrityViolation: If aggregate replay and the running fold differ
        """
        account = self._require_account(owner_id, account_id)
        entries = self.db.query_entries(owner_id, account_ids=[account_id])

        debits = sum((e.amount for e in entries if e.side is EntrySide.DEBIT), ZERO)
        credits = sum((e.amount for e in entries if e.side is EntrySide.CREDIT), ZERO)
        replayed = debits - credits
        if account.account_type.normal_side is EntrySide.CREDIT:
            replayed = -replayed

        folded = fold_balance(entries, account.account_type)
        history = self.history(owner_id, account_id)
        last_point = history[-1].balance if history else ZERO

        if not (replayed == folded == last_point):
            logger.critical(
                "Balance mismatch on account %d: replay=%s fold=%s history=%s",
                account_id,
                replayed,
                folded,
                last_point,
            )
            raise IntegrityViolation(
                f"Account {account_id} balance disagrees: replay={replayed}, "
                f"fold={folded}, history={last_point}"
            )
        return folded
