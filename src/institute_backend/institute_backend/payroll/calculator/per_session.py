from __future__ import annotations

from decimal import Decimal
from typing import Sequence

from ...attendance.model import AttendanceRecord
from .base import SalaryCalculator, present_only, to_money


class PerSessionCalculator(SalaryCalculator):
    """count(Present) * rate."""

    def compute(self, rate: Decimal, records: Sequence[AttendanceRecord]) -> Decimal:
        return to_money(Decimal(len(present_only(records))) * rate)
