"""Tests for debts backed by liability accounts."""

import time
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from decimal import Decimal

import pytest

from ledgerly.domain.entities import DebtInputs, PaymentFrequency, RateFrequency, RepaymentMethod
from ledgerly.domain.errors import ConflictError, IntegrityViolation, NotFoundError, ValidationError


@pytest.fixture
def car_loan(debt_service, funded_accounts, owner, start):
    """1200.00 at 12% annual, paid monthly, offset against Opening Balances."""
    return debt_service.create_debt(
        owner,
        "Car loan",
        principal=Decimal("1200.00"),
        interest_rate=Decimal("12"),
        payment_amount=Decimal("106.62"),
        start_date=start,
        total_periods=12,
    )


def test_create_debt_posts_principal(debt_service, projector, account_service, car_loan, owner):
    liability = account_service.get_account(owner, car_loan.liability_account_id)

    assert liability.name == "Car loan"
    assert liability.category == "debt"
    assert car_loan.current_balance == Decimal("1200.00")
    assert car_loan.interest_rate == Decimal("12")
    assert car_loan.repayment_method is RepaymentMethod.FIXED_TERM
    assert car_loan.is_active
    assert projector.balance_as_of(owner, car_loan.liability_account_id) == Decimal("1200.00")
    assert projector.net_worth(owner) == Decimal("1300.00")


def test_create_debt_with_funding_account(debt_service, projector, funded_accounts, owner, start):
    before = projector.net_worth(owner)

    debt = debt_service.create_debt(
        owner,
        "Personal loan",
        principal=Decimal("5000"),
        interest_rate=Decimal("9.5"),
        payment_amount=Decimal("250"),
        start_date=start,
        funding_account_id=funded_accounts["checking"],
    )

    assert projector.balance_as_of(owner, funded_accounts["checking"]) == Decimal("7500.00")
    assert projector.balance_as_of(owner, debt.liability_account_id) == Decimal("5000.00")
    assert projector.net_worth(owner) == before


def test_create_debt_validation(debt_service, funded_accounts, owner, start):
    with pytest.raises(ValidationError) as excinfo:
        debt_service.create_debt(
            owner,
            "Bad",
            principal=Decimal("0"),
            interest_rate=Decimal("-1"),
            payment_amount=Decimal("10.005"),
            start_date=start,
            total_periods=0,
            funding_account_id=funded_accounts["groceries"],
        )

    assert set(excinfo.value.rules) == {
        "invalid_principal",
        "invalid_payment",
        "invalid_rate",
        "invalid_term",
        "deposit_requires_asset",
    }
    assert debt_service.list_debts(owner) == []


def test_create_debt_with_inactive_funding_account(debt_service, account_service, funded_accounts, owner, start):
    account_service.deactivate_account(owner, funded_accounts["savings"])
    loan = dict(
        principal=Decimal("5000"), interest_rate=Decimal("9.5"), payment_amount=Decimal("250"), start_date=start
    )

    with pytest.raises(ValidationError) as excinfo:
        debt_service.create_debt(owner, "Car loan", funding_account_id=funded_accounts["savings"], **loan)

    assert excinfo.value.rules == ("deposit_requires_asset",)
    assert "Car loan" not in {account.name for account in account_service.list_accounts(owner)}
    assert debt_service.list_debts(owner) == []

    debt = debt_service.create_debt(owner, "Car loan", funding_account_id=funded_accounts["checking"], **loan)
    assert debt.current_balance == Decimal("5000.00")


def test_rejected_principal_posting_removes_liability_account(
    debt_service, account_service, funded_accounts, owner, start, monkeypatch
):
    def reject(*args, **kwargs):
        raise ValidationError.single("inactive_account", "Account is inactive")

    monkeypatch.setattr(debt_service.postings, "post", reject)

    with pytest.raises(ValidationError):
        debt_service.create_debt(
            owner, "Car loan", Decimal("1200"), Decimal("12"), Decimal("106.62"), start_date=start
        )

    assert "Car loan" not in {account.name for account in account_service.list_accounts(owner)}


def test_debts_are_isolated_by_owner(debt_service, car_loan, other_owner, start):
    assert debt_service.get_debt(other_owner, car_loan.id) is None
    assert debt_service.list_debts(other_owner) == []
    with pytest.raises(NotFoundError):
        debt_service.record_payment(other_owner, car_loan.id, Decimal("10"), 1, start)


def test_payment_accrues_interest_first(debt_service, projector, ledger, funded_accounts, car_loan, owner):
    result = debt_service.record_payment(
        owner, car_loan.id, Decimal("106.62"), funded_accounts["checking"], date(2024, 2, 1)
    )

    assert len(result.transaction_ids) == 2
    assert result.details == {
        "interest": Decimal("12.00"),
        "payment": Decimal("106.62"),
        "balance": Decimal("1105.38"),
    }
    accrual = ledger.get_transaction(owner, result.transaction_ids[0])
    assert accrual.description == "Interest: Car loan"
    assert debt_service.get_debt(owner, car_loan.id).current_balance == Decimal("1105.38")
    assert projector.balance_as_of(owner, funded_accounts["checking"]) == Decimal("2393.38")


def test_payment_without_interest(debt_service, funded_accounts, car_loan, owner):
    result = debt_service.record_payment(
        owner, car_loan.id, Decimal("100"), funded_accounts["checking"], date(2024, 2, 1), accrue_interest=False
    )

    assert len(result.transaction_ids) == 1
    assert result.details["balance"] == Decimal("1100.00")


def test_overpayment_rejected_without_writing(debt_service, ledger, funded_accounts, car_loan, owner):
    count = len(ledger.list_transactions(owner))

    with pytest.raises(ValidationError) as excinfo:
        debt_service.record_payment(
            owner, car_loan.id, Decimal("1212.01"), funded_accounts["checking"], date(2024, 2, 1)
        )

    assert excinfo.value.rules == ("payment_exceeds_balance",)
    assert len(ledger.list_transactions(owner)) == count


def test_payment_from_non_asset_rejected(debt_service, ledger, funded_accounts, car_loan, owner):
    count = len(ledger.list_transactions(owner))

    with pytest.raises(ValidationError) as excinfo:
        debt_service.record_payment(owner, car_loan.id, Decimal("50"), funded_accounts["visa"], date(2024, 2, 1))

    assert excinfo.value.rules == ("invalid_funding_account",)
    assert len(ledger.list_transactions(owner)) == count


def test_sub_cent_payment_rejected(debt_service, funded_accounts, car_loan, owner):
    with pytest.raises(ValidationError) as excinfo:
        debt_service.record_payment(
            owner, car_loan.id, Decimal("10.001"), funded_accounts["checking"], date(2024, 2, 1)
        )
    assert excinfo.value.rules == ("invalid_payment",)


def test_paying_off_closes_debt(debt_service, funded_accounts, owner, start):
    debt = debt_service.create_debt(
        owner,
        "Friend",
        principal=Decimal("100"),
        interest_rate=Decimal("0"),
        payment_amount=Decimal("100"),
        start_date=start,
    )

    result = debt_service.record_payment(owner, debt.id, Decimal("100"), funded_accounts["checking"], date(2024, 2, 1))

    assert len(result.transaction_ids) == 1
    closed = debt_service.get_debt(owner, debt.id)
    assert not closed.is_active
    assert closed.payoff_date == date(2024, 2, 1)
    assert closed.current_balance == Decimal("0")
    with pytest.raises(ConflictError, match="already paid off"):
        debt_service.record_payment(owner, debt.id, Decimal("1"), funded_accounts["checking"], date(2024, 3, 1))


def test_concurrent_payments_cannot_overpay(
    debt_service, projector, funded_accounts, owner, start, monkeypatch
):
    debt = debt_service.create_debt(
        owner,
        "Friend",
        principal=Decimal("100"),
        interest_rate=Decimal("0"),
        payment_amount=Decimal("100"),
        start_date=start,
    )
    read_balance = debt_service.projector.balance_as_of

    def slow_balance(*args, **kwargs):
        balance = read_balance(*args, **kwargs)
        time.sleep(0.05)
        return balance

    monkeypatch.setattr(debt_service.projector, "balance_as_of", slow_balance)

    def pay(_):
        try:
            return debt_service.record_payment(
                owner, debt.id, Decimal("100"), funded_accounts["checking"], date(2024, 2, 1)
            )
        except ConflictError as e:
            return e

    with ThreadPoolExecutor(max_workers=2) as pool:
        outcomes = list(pool.map(pay, range(2)))

    assert sum(isinstance(outcome, ConflictError) for outcome in outcomes) == 1
    assert projector.balance_as_of(owner, debt.liability_account_id) == Decimal("0")
    assert projector.balance_as_of(owner, funded_accounts["checking"]) == Decimal("2400.00")


def test_full_schedule_pays_off(debt_service, funded_accounts, car_loan, owner):
    balance = car_loan.current_balance
    for month in range(2, 14):
        on = date(2024 + (month - 1) // 12, (month - 1) % 12 + 1, 1)
        owed = balance + debt_service.period_interest(owner, debt_service.get_debt(owner, car_loan.id), on)
        payment = min(Decimal("106.62"), owed)
        result = debt_service.record_payment(owner, car_loan.id, payment, funded_accounts["checking"], on)
        balance = result.details["balance"]

    debt = debt_service.get_debt(owner, car_loan.id)
    assert balance == 0
    assert not debt.is_active
    assert debt.payoff_date == date(2025, 1, 1)


def test_accrue_interest(debt_service, projector, car_loan, owner):
    result = debt_service.accrue_interest(owner, car_loan.id, date(2024, 2, 1))

    assert result.committed
    assert result.details == {"interest": Decimal("12.00"), "balance": Decimal("1212.00")}
    assert projector.balance_as_of(owner, car_loan.liability_account_id) == Decimal("1212.00")


def test_accrue_without_rate_is_skipped(debt_service, funded_accounts, owner, start):
    debt = debt_service.create_debt(
        owner,
        "Friend",
        principal=Decimal("100"),
        interest_rate=Decimal("0"),
        payment_amount=Decimal("10"),
        start_date=start,
    )

    result = debt_service.accrue_interest(owner, debt.id, date(2024, 2, 1))

    assert not result.committed
    assert result.skipped_reason == "no_interest"


def test_monthly_rate_debt(debt_service, funded_accounts, owner, start):
    debt = debt_service.create_debt(
        owner,
        "Store card",
        principal=Decimal("1000"),
        interest_rate=Decimal("1.5"),
        payment_amount=Decimal("50"),
        start_date=start,
        rate_frequency=RateFrequency.MONTHLY,
        payment_frequency=PaymentFrequency.MONTHLY,
        repayment_method=RepaymentMethod.MINIMUM,
    )

    result = debt_service.accrue_interest(owner, debt.id, date(2024, 2, 1))
    assert result.details["interest"] == Decimal("15.00")


def test_reconcile(debt_service, funded_accounts, car_loan, owner):
    debt_service.record_payment(owner, car_loan.id, Decimal("106.62"), funded_accounts["checking"], date(2024, 2, 1))

    assert debt_service.reconcile(owner, car_loan.id) == Decimal("1105.38")


def test_reconcile_detects_cache_drift(temp_db, debt_service, car_loan, owner):
    temp_db.update_debt_balance(car_loan.id, Decimal("1.00"), is_active=True)

    with pytest.raises(IntegrityViolation):
        debt_service.reconcile(owner, car_loan.id)


def test_create_from_projection(debt_service, comparator, funded_accounts, owner, start):
    inputs = DebtInputs(
        principal=Decimal("1200"), interest_rate=Decimal("12"), term_periods=12, start_date=start
    )
    projection = comparator.project(inputs, RepaymentMethod.FIXED_TERM)

    debt = debt_service.create_from_projection(owner, "Laptop", inputs, projection)

    assert debt.payment_amount == Decimal("106.62")
    assert debt.total_periods == 12
    assert debt.repayment_method is RepaymentMethod.FIXED_TERM


def test_create_from_hidden_projection_rejected(debt_service, comparator, funded_accounts, owner, start):
    inputs = DebtInputs(
        principal=Decimal("10000"),
        interest_rate=Decimal("24"),
        term_periods=12,
        start_date=start,
        minimum_payment=Decimal("50"),
    )
    projection = comparator.project(inputs, RepaymentMethod.MINIMUM)

    with pytest.raises(ValidationError) as excinfo:
        debt_service.create_from_projection(owner, "Loan", inputs, projection)

    assert excinfo.value.rules == ("infeasible_projection",)
    assert debt_service.list_debts(owner) == []
