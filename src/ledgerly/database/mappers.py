"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic, including the integer minor-unit
storage of money, so the domain only ever sees Decimal amounts.
"""

from decimal import Decimal

from ledgerly.domain import entities as domain
from ledgerly.domain.money import from_minor_units
from ledgerly.database.models import (
    Account as ORMAccount,
    Transaction as ORMTransaction,
    Entry as ORMEntry,
    Debt as ORMDebt,
)


def account_to_domain(orm_account: ORMAccount) -> domain.Account:
    """Convert SQLAlchemy Account model to domain Account entity."""
    return domain.Account(
        id=orm_account.id,
        owner_id=orm_account.owner_id,
        name=orm_account.name,
        account_type=domain.AccountType(orm_account.account_type),
        category=orm_account.category,
        is_active=orm_account.is_active,
        opened_at=orm_account.opened_at,
        is_system=orm_account.is_system,
    )


def entry_to_domain(orm_entry: ORMEntry) -> domain.Entry:
    """Convert SQLAlchemy Entry model to domain Entry entity."""
    return domain.Entry(
        id=orm_entry.id,
        transaction_id=orm_entry.transaction_id,
        account_id=orm_entry.account_id,
        side=domain.EntrySide(orm_entry.side),
        amount=from_minor_units(orm_entry.amount_cents),
    )


def posted_entry_to_domain(orm_entry: ORMEntry, txn_date) -> domain.PostedEntry:
    """Convert an Entry row plus its transaction date to a PostedEntry."""
    return domain.PostedEntry(
        entry_id=orm_entry.id,
        transaction_id=orm_entry.transaction_id,
        account_id=orm_entry.account_id,
        date=txn_date,
        side=domain.EntrySide(orm_entry.side),
        amount=from_minor_units(orm_entry.amount_cents),
    )


def transaction_to_domain(orm_transaction: ORMTransaction) -> domain.Transaction:
    """Convert SQLAlchemy Transaction model (with entries) to domain Transaction."""
    return domain.Transaction(
        id=orm_transaction.id,
        owner_id=orm_transaction.owner_id,
        date=orm_transaction.date,
        description=orm_transaction.description,
        notes=orm_transaction.notes,
        created_at=orm_transaction.created_at,
        reverses_id=orm_transaction.reverses_id,
        entries=tuple(entry_to_domain(e) for e in orm_transaction.entries),
    )


def debt_to_domain(orm_debt: ORMDebt) -> domain.Debt:
    """Convert SQLAlchemy Debt model to domain Debt entity."""
    return domain.Debt(
        id=orm_debt.id,
        owner_id=orm_debt.owner_id,
        name=orm_debt.name,
        liability_account_id=orm_debt.liability_account_id,
        principal=from_minor_units(orm_debt.principal_cents),
        current_balance=from_minor_units(orm_debt.current_balance_cents),
        interest_rate=Decimal(str(orm_debt.interest_rate)),
        rate_frequency=domain.RateFrequency(orm_debt.rate_frequency),
        repayment_method=domain.RepaymentMethod(orm_debt.repayment_method),
        payment_amount=from_minor_units(orm_debt.payment_amount_cents),
        payment_frequency=domain.PaymentFrequency(orm_debt.payment_frequency),
        start_date=orm_debt.start_date,
        total_periods=orm_debt.total_periods,
        is_active=orm_debt.is_active,
        created_at=orm_debt.created_at,
        payoff_date=orm_debt.payoff_date,
    )
