"""Date parsing utilities."""

from datetime import date, timedelta
from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

_WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]


def parse_date(date_str: str) -> date:
    """Parse a date string into a date object.

    Supports absolute dates ("2024-01-15", "January 15, 2024") and a few
    relative forms: "today", "yesterday", "tomorrow", "start of month",
    "end of month", "last friday".

    Args:
        date_str: Date string

    Returns:
        Date object

    Raises:
        ValueError: If date string cannot be parsed
    """
    date_str = date_str.strip().lower()
    today = date.today()

    relative_dates = {
        "today": today,
        "yesterday": today - timedelta(days=1),
        "tomorrow": today + timedelta(days=1),
        "start of month": today.replace(day=1),
        "end of month": month_end(today),
    }
    if date_str in relative_dates:
        return relative_dates[date_str]

    if date_str.startswith("last ") and date_str[5:] in _WEEKDAYS:
        target_day = _WEEKDAYS.index(date_str[5:])
        days_ago = (today.weekday() - target_day) % 7 or 7
        return today - timedelta(days=days_ago)

    try:
        return date_parser.parse(date_str).date()
    except (ValueError, TypeError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}")


def month_end(day: date) -> date:
    """Last day of the month containing day."""
    return day.replace(day=1) + relativedelta(months=1) - timedelta(days=1)


def get_date_range(period: str) -> tuple[date, date]:
    """Get start and end dates for a named period.

    Args:
        period: this-month, last-month, this-year or last-year

    Returns:
        Tuple of (start_date, end_date)

    Raises:
        ValueError: If period string is not recognized
    """
    period = period.strip().lower()
    today = date.today()

    if period == "this-month":
        return (today.replace(day=1), today)
    if period == "last-month":
        start = (today - relativedelta(months=1)).replace(day=1)
        return (start, month_end(start))
    if period == "this-year":
        return (today.replace(month=1, day=1), today)
    if period == "last-year":
        start = today.replace(month=1, day=1) - relativedelta(years=1)
        return (start, start.replace(month=12, day=31))

    raise ValueError(
        f"Unknown period: '{period}'. Supported periods: this-month, last-month, this-year, last-year"
    )
