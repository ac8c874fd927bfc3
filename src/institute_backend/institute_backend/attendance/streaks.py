from __future__ import annotations

from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Union

from ..core.enums import AttendanceStatus
from .model import AttendanceRecord


def attendance_percentage(present: int, total: int, digits: int = 0) -> Union[int, float]:
    """present / total as a percentage, rounded half-up; 0 when there is nothing to count."""
    if total <= 0:
        return 0
    if present < 0 or present > total:
        raise ValueError("present must be between 0 and total")
    value = (Decimal(100) * Decimal(present) / Decimal(total)).quantize(
        Decimal(1).scaleb(-digits), rounding=ROUND_HALF_UP
    )
    return int(value) if digits == 0 else float(value)


def absence_window(reference_date: date, window: int) -> list[date]:
    """The `window` calendar days ending on the reference date, oldest first."""
    return [reference_date - timedelta(days=offset) for offset in range(window - 1, -1, -1)]


def consecutive_absent_days(records: Iterable[AttendanceRecord], reference_date: date, window: int) -> int:
    """Length of the absence run ending on the reference date, capped at `window`."""
    by_day: dict[date, set[AttendanceStatus]] = {}
    for r in records:
        by_day.setdefault(r.attendance_date, set()).add(r.status)

    count = 0
    for day in reversed(absence_window(reference_date, window)):
        statuses = by_day.get(day)
        if statuses != {AttendanceStatus.ABSENT}:
            break
        count += 1
    return count
