"""Rendering helpers shared by CLI commands.

JSON output never contains floats: money is a string rounded to cents and
dates are ISO strings.
"""

import json
from datetime import date, datetime
from decimal import Decimal
from enum import Enum

import click

from ledgerly.domain.entities import (
    Account,
    Debt,
    MethodProjection,
    PortfolioPlan,
    PostingResult,
    ProjectionWarning,
    Transaction,
)
from ledgerly.domain.money import money_str


def to_jsonable(value):
    """Convert a value tree into JSON-safe types."""
    if isinstance(value, Decimal):
        return money_str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {str(to_jsonable(k)): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    return value


def echo_json(data) -> None:
    """Print data as indented JSON."""
    click.echo(json.dumps(to_jsonable(data), indent=2))


def account_to_dict(account: Account, balance: Decimal | None = None) -> dict:
    data = {
        "id": account.id,
        "name": account.name,
        "type": account.account_type,
        "category": account.category,
        "is_active": account.is_active,
        "is_system": account.is_system,
        "opened_at": account.opened_at,
    }
    if balance is not None:
        data["balance"] = balance
    return data


def transaction_to_dict(txn: Transaction) -> dict:
    return {
        "id": txn.id,
        "date": txn.date,
        "description": txn.description,
        "notes": txn.notes,
        "reverses_id": txn.reverses_id,
        "entries": [
            {"account_id": e.account_id, "side": e.side, "amount": e.amount} for e in txn.entries
        ],
    }


def posting_to_dict(result: PostingResult) -> dict:
    return {
        "committed": result.committed,
        "transaction_ids": list(result.transaction_ids),
        "skipped_reason": result.skipped_reason,
        "details": result.details,
    }


def warning_to_dict(warning: ProjectionWarning) -> dict:
    return {
        "level": warning.level,
        "code": warning.code,
        "message": warning.message,
        "period": warning.period,
    }


def projection_to_dict(projection: MethodProjection, include_schedule: bool = False) -> dict:
    schedule = projection.schedule
    data = {
        "method": projection.method,
        "title": projection.title,
        "payment": projection.payment,
        "highest_payment": projection.highest_payment,
        "periods": schedule.periods,
        "total_interest": schedule.total_interest,
        "total_paid": schedule.total_paid,
        "payoff_date": schedule.payoff_date,
        "hidden": projection.hidden,
        "hide_reason": projection.hide_reason,
        "warnings": [warning_to_dict(w) for w in schedule.warnings],
        "sparkline": [{"date": d, "balance": b} for d, b in projection.sparkline],
    }
    if include_schedule:
        data["schedule"] = [
            {
                "period": row.period,
                "date": row.date,
                "payment": row.payment,
                "interest": row.interest,
                "principal": row.principal_portion,
                "balance": row.balance,
            }
            for row in schedule.rows
        ]
    return data


def debt_to_dict(debt: Debt) -> dict:
    return {
        "id": debt.id,
        "name": debt.name,
        "liability_account_id": debt.liability_account_id,
        "principal": debt.principal,
        "current_balance": debt.current_balance,
        "interest_rate": str(debt.interest_rate),
        "rate_frequency": debt.rate_frequency,
        "repayment_method": debt.repayment_method,
        "payment_amount": debt.payment_amount,
        "payment_frequency": debt.payment_frequency,
        "start_date": debt.start_date,
        "total_periods": debt.total_periods,
        "is_active": debt.is_active,
        "payoff_date": debt.payoff_date,
    }


def plan_to_dict(plan: PortfolioPlan) -> dict:
    return {
        "strategy": plan.strategy,
        "budget": plan.budget,
        "feasible": plan.feasible,
        "periods": plan.periods,
        "total_interest": plan.total_interest,
        "total_paid": plan.total_paid,
        "payoff_date": plan.payoff_date,
        "payoff_order": list(plan.payoff_order),
        "payoff_dates": plan.payoff_dates,
        "warnings": [warning_to_dict(w) for w in plan.warnings],
    }


def sparkline_text(points) -> str:
    """Render sampled balances as a block-character sparkline."""
    blocks = "▁▂▃▄▅▆▇█"
    values = [balance for _, balance in points]
    if not values:
        return ""
    top = max(values)
    if top <= 0:
        return blocks[0] * len(values)
    return "".join(blocks[min(len(blocks) - 1, int(v / top * (len(blocks) - 1)))] for v in values)


def echo_warnings(warnings) -> None:
    for warning in warnings:
        click.echo(f"    [{warning.level.value}] {warning.message}")
