"""Date parsing and period bucketing utilities."""

from datetime import date, timedelta
from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta


def parse_date(date_str: str) -> date:
    """Parse a date string into a date object.

    Supports absolute dates ("2024-01-15", "January 15, 2024") and a few
    relative forms: "today", "yesterday", "this month", "last month",
    "this year", "last year", "this quarter" and "last quarter".

    Raises:
        ValueError: If date string cannot be parsed
    """
    date_str = date_str.strip().lower()
    today = date.today()

    relative_dates = {
        "today": today,
        "yesterday": today - timedelta(days=1),
        "this month": today.replace(day=1),
        "last month": (today - relativedelta(months=1)).replace(day=1),
        "this year": today.replace(month=1, day=1),
        "last year": today.replace(month=1, day=1) - relativedelta(years=1),
        "this quarter": quarter_start(today),
        "last quarter": quarter_start(quarter_start(today) - timedelta(days=1)),
    }

    if date_str in relative_dates:
        return relative_dates[date_str]

    try:
        return date_parser.parse(date_str).date()
    except (ValueError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}")


def quarter_start(day: date) -> date:
    """Return the first day of the calendar quarter containing day."""
    first_month = 3 * ((day.month - 1) // 3) + 1
    return day.replace(month=first_month, day=1)


def period_key(day: date, granularity: str) -> str:
    """Return the period bucket key for a date.

    Keys sort chronologically as plain strings: ``YYYY-MM`` for months,
    ``YYYY-Qn`` for quarters and ``YYYY`` for years. Granularity is "month", "quarter" or "year".
    """
    if granularity == "month":
        return day.strftime("%Y-%m")
    if granularity == "quarter":
        return f"{day.year}-Q{(day.month - 1) // 3 + 1}"
    return day.strftime("%Y")


def get_date_range(period: str) -> tuple[date, date]:
    """Get start and end dates for a named period.

    Args:
        period: One of this-month, last-month, this-quarter, last-quarter,
            this-year, last-year, last-12-months

    Raises:
        ValueError: If period string is not recognized
    """
    period = period.strip().lower()
    today = date.today()

    if period == "this-month":
        return today.replace(day=1), today

    elif period == "last-month":
        start_date = (today - relativedelta(months=1)).replace(day=1)
        return start_date, today.replace(day=1) - timedelta(days=1)

    elif period == "this-quarter":
        return quarter_start(today), today

    elif period == "last-quarter":
        end_date = quarter_start(today) - timedelta(days=1)
        return quarter_start(end_date), end_date

    elif period == "this-year":
        return today.replace(month=1, day=1), today

    elif period == "last-year":
        start_date = today.replace(month=1, day=1) - relativedelta(years=1)
        return start_date, today.replace(month=1, day=1) - timedelta(days=1)

    elif period == "last-12-months":
        return today - relativedelta(months=12), today

    else:
        raise ValueError(
            f"Unknown period: '{period}'. Supported periods: this-month, last-month, "
            "this-quarter, last-quarter, this-year, last-year, last-12-months"
        )
