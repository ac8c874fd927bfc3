from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Optional, Sequence

from ..attendance.repository import AttendanceRepository
from ..common.datetime_utils import add_months, month_bounds, month_name, now_local
from ..core.constants import SALARY_BREAKDOWN_MONTHS, SALARY_REPORT_WORKERS
from ..core.enums import AttendanceStatus, SubjectKind
from ..core.exceptions import SubjectNotFoundError, ValidationError
from ..tenancy.guard import EffectiveScope
from ..users.model import Staff
from ..users.repository import StaffRepository
from .calculator.factory import compute_salary

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MonthlySalary:
    month: int
    year: int
    attendance_count: int
    salary: Decimal

    @property
    def label(self) -> str:
        return f"{month_name(self.month)} {self.year}"


@dataclass(frozen=True)
class SalaryView:
    staff: Staff
    current: MonthlySalary
    breakdown: Sequence[MonthlySalary]


@dataclass(frozen=True)
class SalaryReportRow:
    staff: Staff
    salary: MonthlySalary


class SalaryService:
    """Read-only salary views on top of the pure calculators.

    Each staff member's figure depends only on their own records, so the
    branch report fans out over a thread pool.
    """

    def __init__(
        self,
        staff: StaffRepository,
        attendance: AttendanceRepository,
        *,
        workers: int = SALARY_REPORT_WORKERS,
        breakdown_months: int = SALARY_BREAKDOWN_MONTHS,
        clock: Callable[[], datetime] = now_local,
    ):
        self._staff = staff
        self._attendance = attendance
        self._workers = max(1, int(workers))
        self._breakdown_months = max(1, int(breakdown_months))
        self._clock = clock

    def monthly_salary(self, staff: Staff, month: int, year: int) -> MonthlySalary:
        start, end = month_bounds(year, month)
        records = self._attendance.list_for_subject(
            staff.tenant_id,
            SubjectKind.STAFF,
            staff.staff_id,
            start=start,
            end=end,
            status=AttendanceStatus.PRESENT,
        )
        return MonthlySalary(
            month=month,
            year=year,
            attendance_count=len(records),
            salary=compute_salary(staff.salary_policy, records, month, year),
        )

    def salary_view(self, scope: EffectiveScope, *, today: Optional[date] = None) -> SalaryView:
        staff = self._staff.get(scope.tenant_id, scope.principal_id)
        if not staff:
            raise SubjectNotFoundError("Staff not found")

        today = today or self._clock().date()
        anchor = today.replace(day=1)
        breakdown = []
        for back in range(self._breakdown_months - 1, -1, -1):
            first = add_months(anchor, -back)
            breakdown.append(self.monthly_salary(staff, first.month, first.year))
        return SalaryView(staff=staff, current=breakdown[-1], breakdown=breakdown)

    def salary_report(self, scope: EffectiveScope, *, month: int, year: int) -> list[SalaryReportRow]:
        if not 1 <= int(month) <= 12:
            raise ValidationError("Month is invalid")
        staff_members = list(self._staff.list_active(scope.tenant_id))
        if not staff_members:
            return []

        logger.info(
            "Computing salary report for branch %s %s-%02d (%d staff)",
            scope.tenant_id,
            year,
            month,
            len(staff_members),
        )
        with ThreadPoolExecutor(max_workers=min(self._workers, len(staff_members))) as pool:
            salaries = list(pool.map(lambda s: self.monthly_salary(s, int(month), int(year)), staff_members))
        return [SalaryReportRow(staff=s, salary=m) for s, m in zip(staff_members, salaries)]
