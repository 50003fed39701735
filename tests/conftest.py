"""Shared pytest fixtures for ledgerly tests."""

import os
import tempfile
from datetime import date
from decimal import Decimal

import pytest

from ledgerly.database.factories import create_sqlite_database
from ledgerly.domain.account import AccountService
from ledgerly.domain.balances import BalanceProjector
from ledgerly.domain.debt import DebtService
from ledgerly.domain.entities import AccountType
from ledgerly.domain.ledger import LedgerService
from ledgerly.domain.postings import OpeningBalance, PostingService
from ledgerly.domain.repayment import RepaymentComparator

@pytest.fixture
def owner():
    """Owner the sample data belongs to."""
    return "alice"


@pytest.fixture
def other_owner():
    """A second owner, for isolation checks."""
    return "bob"


@pytest.fixture
def start():
    """Date the sample opening balances are posted on."""
    return date(2024, 1, 1)


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    db = create_sqlite_database(database_path=db_path)
    db.connect()
    db.initialize_schema()

    yield db

    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def account_service(temp_db):
    """Create an AccountService with a temporary database."""
    return AccountService(temp_db)


@pytest.fixture
def ledger(temp_db):
    """Create a LedgerService with a temporary database."""
    return LedgerService(temp_db)


@pytest.fixture
def postings(temp_db):
    """Create a PostingService with a temporary database."""
    return PostingService(temp_db)


@pytest.fixture
def projector(temp_db):
    """Create a BalanceProjector with a temporary database."""
    return BalanceProjector(temp_db)


@pytest.fixture
def debt_service(temp_db):
    """Create a DebtService with a temporary database."""
    return DebtService(temp_db)


@pytest.fixture
def comparator():
    """Comparator with the default horizon."""
    return RepaymentComparator()


@pytest.fixture
def sample_accounts(account_service, owner):
    """Create a small chart of accounts for owner and return their IDs by key."""
    return {
        "checking": account_service.create_account(owner, "Checking", AccountType.ASSET, "checking"),
        "savings": account_service.create_account(owner, "Savings", AccountType.ASSET, "savings"),
        "groceries": account_service.create_account(owner, "Groceries", AccountType.EXPENSE),
        "salary": account_service.create_account(owner, "Salary", AccountType.INCOME),
        "visa": account_service.create_account(owner, "Visa", AccountType.LIABILITY, "credit_card"),
    }


@pytest.fixture
def funded_accounts(sample_accounts, postings, owner, start):
    """Sample accounts with 2500.00 in checking, posted on start."""
    postings.post(owner, OpeningBalance(sample_accounts["checking"], Decimal("2500.00")), start)
    return sample_accounts


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()


@pytest.fixture
def invoke(cli_runner, temp_db, owner):
    """Invoke the CLI against the temporary database as owner."""
    from ledgerly.cli.main import cli

    default_owner = owner

    def run(*args, owner=default_owner):
        base = ["--db-path", temp_db.database_path]
        if owner is not None:
            base += ["--owner", owner]
        return cli_runner.invoke(cli, [*base, *args])

    return run
