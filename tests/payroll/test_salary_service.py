from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from src.institute_backend.institute_backend.core.enums import AttendanceStatus, Operation, SalaryType, SubjectKind
from src.institute_backend.institute_backend.core.exceptions import ValidationError
from src.institute_backend.institute_backend.payroll.service import SalaryService


@pytest.fixture
def service(world):
    return SalaryService(world.staff, world.attendance, workers=3, clock=world.clock)


def test_salary_view_has_six_months_oldest_first(world, service, staff_day):
    staff = world.add_staff(salary_type=SalaryType.HOURLY, rate="100")
    staff_day(world, staff, date(2025, 3, 3), (9, 0), (13, 30))
    staff_day(world, staff, date(2025, 1, 6), (9, 0), (10, 0))

    view = service.salary_view(world.scope(staff, Operation.VIEW_OWN_SALARY), today=date(2025, 3, 20))

    assert [(m.month, m.year) for m in view.breakdown] == [
        (10, 2024),
        (11, 2024),
        (12, 2024),
        (1, 2025),
        (2, 2025),
        (3, 2025),
    ]
    assert view.current.salary == Decimal("450.00")
    assert view.current.label == "March 2025"
    assert view.breakdown[3].salary == Decimal("100.00")
    assert view.breakdown[4].attendance_count == 0


def test_salary_report_covers_every_active_staff_member(world, service):
    a = world.add_staff(salary_type=SalaryType.PER_SESSION, rate="200")
    b = world.add_staff(salary_type=SalaryType.MONTHLY_FIXED, rate="25000")
    c = world.add_staff(salary_type=SalaryType.PER_SESSION, rate="150")
    world.add_staff(tenant_id=2)
    for day in (3, 4, 5):
        world.attendance.seed(1, SubjectKind.STAFF, a.principal_id, date(2025, 3, day))
    world.attendance.seed(1, SubjectKind.STAFF, c.principal_id, date(2025, 3, 3), AttendanceStatus.ABSENT)

    admin = world.add_admin()
    rows = service.salary_report(world.scope(admin, Operation.SALARY_REPORT), month=3, year=2025)

    salaries = {r.staff.staff_id: r.salary.salary for r in rows}
    assert salaries == {
        a.principal_id: Decimal("600.00"),
        b.principal_id: Decimal("25000.00"),
        c.principal_id: Decimal("0.00"),
    }


def test_salary_report_rejects_bad_month(world, service):
    admin = world.add_admin()
    with pytest.raises(ValidationError):
        service.salary_report(world.scope(admin, Operation.SALARY_REPORT), month=13, year=2025)


def test_salary_report_for_branch_without_staff(world, service):
    admin = world.add_admin(tenant_id=2)
    assert service.salary_report(world.scope(admin, Operation.SALARY_REPORT), month=3, year=2025) == []
