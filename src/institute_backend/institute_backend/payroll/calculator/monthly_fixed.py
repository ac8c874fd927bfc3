from __future__ import annotations

from decimal import Decimal
from typing import Sequence

from ...attendance.model import AttendanceRecord
from .base import SalaryCalculator, to_money


class MonthlyFixedCalculator(SalaryCalculator):
    """Flat rate, no pro-ration."""

    def compute(self, rate: Decimal, records: Sequence[AttendanceRecord]) -> Decimal:
        return to_money(rate)
