from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Iterable, Mapping

from ...attendance.model import AttendanceRecord
from ...core.enums import SalaryType
from ...users.model import SalaryPolicy
from .base import SalaryCalculator
from .hourly import HourlyCalculator
from .monthly_fixed import MonthlyFixedCalculator
from .per_session import PerSessionCalculator

CALCULATORS: Mapping[SalaryType, SalaryCalculator] = {
    SalaryType.PER_SESSION: PerSessionCalculator(),
    SalaryType.MONTHLY_FIXED: MonthlyFixedCalculator(),
    SalaryType.HOURLY: HourlyCalculator(),
}


def calculator_for(salary_type: SalaryType) -> SalaryCalculator:
    try:
        return CALCULATORS[salary_type]
    except KeyError:
        raise ValueError(f"No salary calculator for {salary_type!r}")


def in_month(day: date, month: int, year: int) -> bool:
    return day.year == year and day.month == month


def compute_salary(policy: SalaryPolicy, records: Iterable[AttendanceRecord], month: int, year: int) -> Decimal:
    """Pure: salary for one billing month from a snapshot of attendance records."""
    monthly = [r for r in records if in_month(r.attendance_date, month, year)]
    return calculator_for(policy.salary_type).compute(policy.rate, monthly)
