"""SQLAlchemy models for the ledgerly database."""

from datetime import datetime, UTC
from sqlalchemy import (
    Column,
    Integer,
    String,
    ForeignKey,
    DateTime,
    Date,
    Numeric,
    Boolean,
    UniqueConstraint,
    CheckConstraint,
    Index,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()


class Account(Base):
    """Chart-of-accounts row. No balance column: balances are derived."""

    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True)
    owner_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    account_type = Column(String, nullable=False)
    category = Column(String, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    is_system = Column(Boolean, default=False, nullable=False)
    opened_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    __table_args__ = (UniqueConstraint("owner_id", "name", name="uq_owner_account_name"),)

    # Relationships
    entries = relationship("Entry", back_populates="account")


class Transaction(Base):
    """Transaction header; immutable once written."""

    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True)
    owner_id = Column(String, nullable=False, index=True)
    date = Column(Date, nullable=False)
    description = Column(String, nullable=False)
    notes = Column(String, nullable=True)
    reverses_id = Column(Integer, ForeignKey("transactions.id"), nullable=True, unique=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # Relationships
    entries = relationship(
        "Entry", back_populates="transaction", order_by="Entry.id", cascade="all, delete-orphan"
    )


class Entry(Base):
    """One leg of a transaction, amount stored in integer minor units."""

    __tablename__ = "entries"

    id = Column(Integer, primary_key=True)
    transaction_id = Column(Integer, ForeignKey("transactions.id"), nullable=False)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    side = Column(String, nullable=False)
    amount_cents = Column(Integer, nullable=False)

    __table_args__ = (
        CheckConstraint("amount_cents > 0", name="ck_entry_amount_positive"),
        CheckConstraint("side IN ('debit', 'credit')", name="ck_entry_side"),
        Index("ix_entries_account", "account_id"),
    )

    # Relationships
    transaction = relationship("Transaction", back_populates="entries")
    account = relationship("Account", back_populates="entries")


class Debt(Base):
    """Debt under repayment. current_balance is a cache of the liability account."""

    __tablename__ = "debts"

    id = Column(Integer, primary_key=True)
    owner_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    liability_account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    principal_cents = Column(Integer, nullable=False)
    current_balance_cents = Column(Integer, nullable=False)
    interest_rate = Column(Numeric(9, 4), nullable=False)
    rate_frequency = Column(String, nullable=False)
    repayment_method = Column(String, nullable=False)
    payment_amount_cents = Column(Integer, nullable=False)
    payment_frequency = Column(String, nullable=False)
    start_date = Column(Date, nullable=False)
    total_periods = Column(Integer, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    payoff_date = Column(Date, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # Relationships
    liability_account = relationship("Account")


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    connect_args = {}
    if database_url.startswith("sqlite"):
        # Cross-owner commits may run on other threads; wait on the file lock.
        connect_args = {"check_same_thread": False, "timeout": 30}
    engine = create_engine(database_url, echo=False, connect_args=connect_args)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, expire_on_commit=False)
