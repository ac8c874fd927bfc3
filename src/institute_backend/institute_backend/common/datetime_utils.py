from __future__ import annotations

import calendar
from datetime import date, datetime


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()


def month_name(month: int) -> str:
    return calendar.month_name[month]


def month_number(name: str) -> int:
    """Inverse of month_name; accepts full or abbreviated English names."""
    key = (name or "").strip().lower()
    for i in range(1, 13):
        if key in (calendar.month_name[i].lower(), calendar.month_abbr[i].lower()):
            return i
    raise ValueError(f"Unknown month name: {name!r}")


def month_bounds(year: int, month: int) -> tuple[date, date]:
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def add_months(anchor: date, months: int) -> date:
    """Shift a date by whole calendar months, clamping the day to month end.

    Jan 31 + 1 month is Feb 28 (or 29), never an overflowed March date.
    """
    index = anchor.year * 12 + (anchor.month - 1) + months
    year, month = divmod(index, 12)
    month += 1
    day = min(anchor.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def months_between(start: date, end: date) -> int:
    """Calendar-month difference, ignoring the day of month."""
    return (end.year - start.year) * 12 + (end.month - start.month)
