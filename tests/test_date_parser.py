"""Tests for date parser with relative dates."""

import pytest
from datetime import date, timedelta
from dateutil.relativedelta import relativedelta
from ledgerly.utils.date_parser import get_date_range, month_end, parse_date


def test_parse_absolute_date():
    """Test parsing absolute dates."""
    assert parse_date("2024-01-15") == date(2024, 1, 15)
    assert parse_date("January 15, 2024") == date(2024, 1, 15)


def test_parse_relative_days():
    today = date.today()
    assert parse_date("today") == today
    assert parse_date(" Yesterday ") == today - timedelta(days=1)
    assert parse_date("tomorrow") == today + timedelta(days=1)


def test_parse_start_and_end_of_month():
    today = date.today()
    assert parse_date("start of month") == today.replace(day=1)
    end = parse_date("end of month")
    assert end.month == today.month
    assert (end + timedelta(days=1)).day == 1


def test_parse_last_weekday():
    """'last friday' is strictly before today, within the past week."""
    result = parse_date("last friday")
    today = date.today()
    assert result.weekday() == 4
    assert 1 <= (today - result).days <= 7


def test_parse_invalid_date():
    with pytest.raises(ValueError, match="Could not parse date"):
        parse_date("not a date")


def test_month_end():
    assert month_end(date(2024, 2, 10)) == date(2024, 2, 29)
    assert month_end(date(2023, 2, 1)) == date(2023, 2, 28)
    assert month_end(date(2024, 12, 31)) == date(2024, 12, 31)


def test_get_date_range_this_month():
    today = date.today()
    assert get_date_range("this-month") == (today.replace(day=1), today)


def test_get_date_range_last_month():
    start, end = get_date_range("last-month")
    expected_start = (date.today() - relativedelta(months=1)).replace(day=1)
    assert start == expected_start
    assert end == month_end(expected_start)


def test_get_date_range_years():
    today = date.today()
    assert get_date_range("this-year") == (date(today.year, 1, 1), today)
    assert get_date_range("last-year") == (date(today.year - 1, 1, 1), date(today.year - 1, 12, 31))


def test_get_date_range_invalid():
    with pytest.raises(ValueError, match="Unknown period"):
        get_date_range("next-decade")
