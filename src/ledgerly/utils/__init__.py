"""Utility functions for ledgerly."""

from ledgerly.utils.date_parser import parse_date
from ledgerly.utils.amount_parser import parse_amount, parse_percent
from ledgerly.utils.account_resolver import resolve_account, resolve_debt

__all__ = ["parse_date", "parse_amount", "parse_percent", "resolve_account", "resolve_debt"]
