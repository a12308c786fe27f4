"""Date and accounting-period parsing utilities."""

import calendar
import re
from datetime import date, timedelta
from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

from fundledger.domain.errors import ValidationError

_PERIOD_PATTERN = re.compile(r"^(\d{4})-(\d{2})$")

_WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]


def _relative_anchor(keyword: str, unit: str, today: date) -> date | None:
    """Resolve "last/this/next <unit>" to the first day of that unit."""
    offset = {"last": -1, "this": 0, "next": 1}[keyword]
    if unit == "month":
        return today.replace(day=1) + relativedelta(months=offset)
    if unit == "year":
        return today.replace(month=1, day=1) + relativedelta(years=offset)
    if unit == "quarter":
        first_month = 3 * ((today.month - 1) // 3) + 1
        return today.replace(month=first_month, day=1) + relativedelta(months=3 * offset)
    if unit == "week":
        return today - timedelta(days=today.weekday()) + timedelta(weeks=offset)
    if keyword == "last" and unit in _WEEKDAYS:
        days_ago = (today.weekday() - _WEEKDAYS.index(unit)) % 7 or 7
        return today - timedelta(days=days_ago)
    return None


def parse_date(date_str: str) -> date:
    """Parse a date string into a date object.

    Supports absolute dates ("2025-01-15", "January 15, 2025") and relative
    ones: "today", "yesterday", "tomorrow", and "last/this/next" followed by
    week, month, quarter or year (the first day of that span), or "last"
    followed by a weekday name.

    Args:
        date_str: Date string in various formats

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
    }
    if date_str in relative_dates:
        return relative_dates[date_str]

    keyword, _, unit = date_str.partition(" ")
    if keyword in ("last", "this", "next") and unit:
        anchor = _relative_anchor(keyword, unit.strip(), today)
        if anchor is not None:
            return anchor

    try:
        return date_parser.parse(date_str).date()
    except (ValueError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}")


def parse_period(period: str) -> tuple[int, int]:
    """Parse a budget period in ``YYYY-MM`` form.

    Returns:
        Tuple of (year, month)

    Raises:
        ValidationError: If the period is malformed
    """
    match = _PERIOD_PATTERN.match(period.strip()) if period else None
    if match is None:
        raise ValidationError(f"Invalid period '{period}': expected YYYY-MM")
    year, month = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12:
        raise ValidationError(f"Invalid period '{period}': month must be 01-12")
    return year, month


def period_bounds(period: str) -> tuple[date, date]:
    """Return the first and last day of a ``YYYY-MM`` period."""
    year, month = parse_period(period)
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def format_period(day: date) -> str:
    """Return the ``YYYY-MM`` period containing a date."""
    return f"{day.year:04d}-{day.month:02d}"


def get_date_range(period: str) -> tuple[date, date]:
    """Get start and end dates for a named reporting range.

    Args:
        period: this-week, this-month, this-quarter, this-year, last-week,
            last-month, last-quarter, last-year, or a ``YYYY-MM`` period

    Returns:
        Tuple of (start_date, end_date); "this-*" ranges end today

    Raises:
        ValueError: If period string is not recognized
    """
    period = period.strip().lower()
    today = date.today()

    if _PERIOD_PATTERN.match(period):
        return period_bounds(period)

    spans = {
        "week": relativedelta(weeks=1),
        "month": relativedelta(months=1),
        "quarter": relativedelta(months=3),
        "year": relativedelta(years=1),
    }
    keyword, _, unit = period.partition("-")
    if keyword in ("this", "last") and unit in spans:
        start_date = _relative_anchor(keyword, unit, today)
        if keyword == "this":
            return (start_date, today)
        return (start_date, start_date + spans[unit] - timedelta(days=1))

    raise ValueError(
        f"Unknown period: '{period}'. Supported periods: this-week, this-month, this-quarter, "
        "this-year, last-week, last-month, last-quarter, last-year, YYYY-MM"
    )
