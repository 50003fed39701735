"""Tests for posting and transaction commands."""

import json


def test_post_opening_and_balance(invoke, sample_accounts):
    result = invoke("post", "opening", "Checking", "2500.00", "--date", "2024-01-01")
    assert result.exit_code == 0
    assert "Posted transaction" in result.output

    result = invoke("balance", "Checking")
    assert result.exit_code == 0
    assert result.output.strip() == "$2,500.00"


def test_post_negative_opening_balance(invoke, sample_accounts):
    result = invoke("post", "opening", "Checking", "--", "-35.10")

    assert result.exit_code == 0
    assert invoke("balance", "Checking").output.strip() == "-$35.10"


def test_post_transfer_json(invoke, funded_accounts):
    result = invoke("post", "transfer", "Checking", "Savings", "200", "--json")

    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["committed"] is True
    assert len(data["transaction_ids"]) == 1
    assert data["details"] == {"amount": "200.00"}


def test_post_expense_and_income(invoke, funded_accounts):
    result = invoke("post", "expense", "Groceries", "Checking", "54.20", "--description", "Market")
    assert result.exit_code == 0

    result = invoke("post", "income", "Salary", "Checking", "3100")
    assert result.exit_code == 0

    data = json.loads(invoke("balance", "Checking", "--json").stdout)
    assert data["balance"] == "5545.80"


def test_post_rejects_wrong_account_type(invoke, funded_accounts):
    result = invoke("post", "transfer", "Checking", "Groceries", "10")

    assert result.exit_code == 1
    assert "[transfer_requires_assets]" in result.output


def test_post_reports_every_violation(invoke, funded_accounts):
    result = invoke("post", "expense", "Savings", "Salary", "10")

    assert result.exit_code == 1
    assert "transaction rejected" in result.output
    assert "[expense_account_required]" in result.output
    assert "[invalid_funding_account]" in result.output


def test_post_sub_cent_amount_rejected(invoke, funded_accounts):
    result = invoke("post", "expense", "Groceries", "Checking", "1.005")

    assert result.exit_code == 1
    assert "sub_minor_unit" in result.output


def test_post_invalid_amount(invoke, funded_accounts):
    result = invoke("post", "expense", "Groceries", "Checking", "ten")

    assert result.exit_code == 1
    assert "Invalid amount" in result.output


def test_post_adjust(invoke, funded_accounts):
    result = invoke("post", "adjust", "Checking", "2450.25")
    assert result.exit_code == 0
    assert "Posted transaction" in result.output

    result = invoke("post", "adjust", "Checking", "2450.25")
    assert result.exit_code == 0
    assert "Nothing posted: no difference" in result.output


def test_post_windfall(invoke, funded_accounts):
    result = invoke(
        "post", "windfall", "Salary", "Checking", "1000",
        "--split", "Savings=50", "--split", "Groceries=20", "--split", "Checking=30",
    )

    assert result.exit_code == 0
    assert "Posted transactions" in result.output
    assert invoke("balance", "Savings").output.strip() == "$500.00"


def test_post_windfall_bad_split(invoke, funded_accounts):
    result = invoke("post", "windfall", "Salary", "Checking", "1000", "--split", "Savings")

    assert result.exit_code == 1
    assert "expected ACCOUNT=PERCENT" in result.output


def test_void_and_double_void(invoke, funded_accounts):
    posted = json.loads(invoke("post", "transfer", "Checking", "Savings", "200", "--json").stdout)
    txn_id = str(posted["transaction_ids"][0])

    result = invoke("post", "void", txn_id, "--json")
    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["voided_id"] == int(txn_id)

    assert invoke("balance", "Savings").output.strip() == "$0.00"

    result = invoke("post", "void", txn_id)
    assert result.exit_code == 1
    assert "already voided" in result.output


def test_transaction_list_and_show(invoke, funded_accounts):
    invoke("post", "expense", "Groceries", "Checking", "54.20", "--description", "Market", "--date", "2024-01-05")

    result = invoke("transaction", "list", "--account", "Groceries")
    assert result.exit_code == 0
    assert "Market" in result.output
    assert "$54.20" in result.output

    data = json.loads(invoke("transaction", "list", "--json", "--start-date", "2024-01-02").stdout)
    assert len(data) == 1
    txn = data[0]
    assert txn["date"] == "2024-01-05"
    assert {e["amount"] for e in txn["entries"]} == {"54.20"}
    assert {e["side"] for e in txn["entries"]} == {"debit", "credit"}

    result = invoke("transaction", "show", str(txn["id"]))
    assert result.exit_code == 0
    assert "Market" in result.output
    assert "Groceries" in result.output


def test_transaction_list_empty(invoke, sample_accounts):
    result = invoke("transaction", "list")

    assert result.exit_code == 0
    assert "No transactions found" in result.output


def test_transaction_show_other_owner(invoke, funded_accounts):
    result = invoke("transaction", "show", "1", owner="bob")

    assert result.exit_code == 1
    assert "not found" in result.output


def test_owner_comes_from_environment(cli_runner, temp_db, funded_accounts, monkeypatch, owner):
    from ledgerly.cli.main import cli

    monkeypatch.setenv("LEDGERLY_OWNER", owner)
    result = cli_runner.invoke(cli, ["--db-path", temp_db.database_path, "balance", "Checking"])

    assert result.exit_code == 0
    assert result.output.strip() == "$2,500.00"
