from __future__ import annotations

from decimal import Decimal
from typing import Sequence

from ...attendance.model import AttendanceRecord
from .base import SalaryCalculator, present_only, to_money

SECONDS_PER_HOUR = Decimal(3600)


def worked_seconds(record: AttendanceRecord) -> int:
    """(check_out - check_in), 0 when either stamp is missing or they are inverted."""
    if not record.check_in or not record.check_out:
        return 0
    return max(int((record.check_out - record.check_in).total_seconds()), 0)


class HourlyCalculator(SalaryCalculator):
    def compute(self, rate: Decimal, records: Sequence[AttendanceRecord]) -> Decimal:
        seconds = sum(worked_seconds(r) for r in present_only(records))
        return to_money(Decimal(seconds) / SECONDS_PER_HOUR * rate)
