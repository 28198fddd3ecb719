"""Date parsing and calendar window utilities."""

from dataclasses import dataclass
from datetime import date, timedelta
from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta


def parse_date(date_str: str, today: date | None = None) -> date:
    """Parse a date string into a date object.

    Supports various formats including relative dates:
    - Absolute dates: "2024-01-15", "January 15, 2024", etc.
    - Relative dates: "today", "yesterday", "last month", "this year", etc.

    Args:
        date_str: Date string in various formats
        today: Reference date for relative expressions (defaults to today)

    Returns:
        Date object

    Raises:
        ValueError: If date string cannot be parsed
    """
    date_str = date_str.strip().lower()
    today = today or date.today()

    relative_dates = {
        "today": today,
        "yesterday": today - timedelta(days=1),
        "tomorrow": today + timedelta(days=1),
    }

    if date_str in relative_dates:
        return relative_dates[date_str]

    if date_str.startswith("last "):
        period = date_str[5:]
        if period == "month":
            return (today - relativedelta(months=1)).replace(day=1)
        elif period == "year":
            return today.replace(month=1, day=1) - relativedelta(years=1)
        elif period == "week":
            return week_start(today) - timedelta(days=7)

    elif date_str.startswith("this "):
        period = date_str[5:]
        if period == "month":
            return today.replace(day=1)
        elif period == "year":
            return today.replace(month=1, day=1)
        elif period == "week":
            return week_start(today)

    try:
        dt = date_parser.parse(date_str)
        return dt.date()
    except (ValueError, TypeError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}")


def week_start(day: date) -> date:
    """Return the Sunday on or before ``day``."""
    # date.weekday(): Monday == 0 ... Sunday == 6
    return day - timedelta(days=(day.weekday() + 1) % 7)


@dataclass(frozen=True)
class DateWindow:
    """Half-open calendar range ``[start, end)``."""

    start: date
    end: date

    def __contains__(self, day: date) -> bool:
        return self.start <= day < self.end


@dataclass(frozen=True)
class DiaryWindows:
    """The calendar windows analytics are computed over."""

    today: DateWindow
    this_week: DateWindow
    this_month: DateWindow
    this_year: DateWindow
    last_month: DateWindow


def get_diary_windows(today: date) -> DiaryWindows:
    """Build the analytics windows around ``today``.

    Weeks start on Sunday. Every window ends at the end of its calendar
    period, so entries dated later in the current week, month or year count
    toward it.
    """
    sunday = week_start(today)
    month_start = today.replace(day=1)
    year_start = today.replace(month=1, day=1)
    last_month_start = month_start - relativedelta(months=1)

    return DiaryWindows(
        today=DateWindow(today, today + timedelta(days=1)),
        this_week=DateWindow(sunday, sunday + timedelta(days=7)),
        this_month=DateWindow(month_start, month_start + relativedelta(months=1)),
        this_year=DateWindow(year_start, year_start + relativedelta(years=1)),
        last_month=DateWindow(last_month_start, month_start),
    )
