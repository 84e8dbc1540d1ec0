"""Date parsing utilities."""

from datetime import date, timedelta
from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

PERIODS = (
    "this-month",
    "this-quarter",
    "this-year",
    "last-month",
    "last-quarter",
    "last-year",
)


def parse_date(date_str: str) -> date:
    """Parse a date string into a date object.

    Supports absolute dates ("2025-01-15", "15 Jan 2025") and a few relative
    keywords useful when posting or closing books:
    - "today", "yesterday"
    - "start of month", "end of month"
    - "end of last month", "end of last quarter", "end of last year"

    Args:
        date_str: Date string

    Returns:
        Date object

    Raises:
        ValueError: If date string cannot be parsed
    """
    if date_str is None or not str(date_str).strip():
        raise ValueError("Empty date string")

    text = str(date_str).strip().lower()
    today = date.today()

    keywords = {
        "today": today,
        "yesterday": today - timedelta(days=1),
        "start of month": today.replace(day=1),
        "end of month": month_end(today),
        "end of last month": get_date_range("last-month")[1],
        "end of last quarter": get_date_range("last-quarter")[1],
        "end of last year": get_date_range("last-year")[1],
    }
    if text in keywords:
        return keywords[text]

    try:
        return date_parser.parse(text).date()
    except (ValueError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}")


def month_end(day: date) -> date:
    """Last day of the month containing ``day``."""
    return day.replace(day=1) + relativedelta(months=1) - timedelta(days=1)


def quarter_start(day: date) -> date:
    """First day of the calendar quarter containing ``day``."""
    return day.replace(month=3 * ((day.month - 1) // 3) + 1, day=1)


def get_date_range(period: str) -> tuple[date, date]:
    """Get start and end dates for a named accounting period.

    Periods starting with "this-" end today; periods starting with "last-"
    cover the whole previous month, quarter or year.

    Args:
        period: One of PERIODS

    Returns:
        Tuple of (start_date, end_date)

    Raises:
        ValueError: If period string is not recognized
    """
    period = period.strip().lower()
    today = date.today()

    if period == "this-month":
        return today.replace(day=1), today
    if period == "this-quarter":
        return quarter_start(today), today
    if period == "this-year":
        return today.replace(month=1, day=1), today

    if period == "last-month":
        end = today.replace(day=1) - timedelta(days=1)
        return end.replace(day=1), end
    if period == "last-quarter":
        end = quarter_start(today) - timedelta(days=1)
        return quarter_start(end), end
    if period == "last-year":
        end = today.replace(month=1, day=1) - timedelta(days=1)
        return end.replace(month=1, day=1), end

    raise ValueError(f"Unknown period: '{period}'. Supported periods: {', '.join(PERIODS)}")
