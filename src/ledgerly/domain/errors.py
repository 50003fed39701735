"""Shared domain error messages and error types."""

from dataclasses import dataclass


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


@dataclass(frozen=True)
class Violation:
    """A single broken validation rule."""

    rule: str
    message: str


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic.

    Carries every violated rule so callers can correct all of them at once.
    """

    def __init__(self, violations, message=None):
        if isinstance(violations, Violation):
            violations = [violations]
        self.violations: tuple[Violation, ...] = tuple(violations)
        if message is None:
            message = "; ".join(v.message for v in self.violations)
        super().__init__(message)

    @classmethod
    def single(cls, rule: str, message: str) -> "ValidationError":
        """Build an error for one violated rule."""
        return cls([Violation(rule, message)])

    @property
    def rules(self) -> tuple[str, ...]:
        """Rule codes of all violations, in reporting order."""
        return tuple(v.rule for v in self.violations)


class NotFoundError(DomainError):
    """Requested domain entity does not exist (or belongs to another owner)."""


class ConflictError(DomainError):
    """Domain conflict, such as uniqueness violations or double voids."""


class DependencyError(DomainError):
    """Operation blocked due to dependent domain data."""


class NoViableRepaymentOption(DomainError):
    """Every repayment strategy in a comparison is infeasible."""


class IntegrityViolation(Exception):
    """Ledger data disagrees with itself.

    Not a DomainError: it must never be caught by handlers written for
    recoverable input problems.
    """


def account_not_found(account_id: int) -> str:
    """Return message for missing account."""
    return f"Account {account_id} not found"


def transaction_not_found(transaction_id: int) -> str:
    """Return message for missing transaction."""
    return f"Transaction {transaction_id} not found"


def debt_not_found(debt_id: int) -> str:
    """Return message for missing debt."""
    return f"Debt {debt_id} not found"


def duplicate_account_name(name: str) -> str:
    """Return message for duplicate account name."""
    return f"Account with name '{name}' already exists"


def account_delete_blocked(account_id: int, entry_count: int, debt_count: int) -> str:
    """Return message when account has dependent entries or debts."""
    parts = []
    if entry_count > 0:
        parts.append(f"{entry_count} ledger entr{'ies' if entry_count != 1 else 'y'}")
    if debt_count > 0:
        parts.append(f"{debt_count} debt{'s' if debt_count != 1 else ''}")
    return (
        f"Cannot delete account {account_id}: it has {', '.join(parts)}. "
        "Deactivate it instead."
    )
