"""Role policy table.

One row per role; the isolation guard consults it once per request instead of
each endpoint comparing role strings.
"""

from __future__ import annotations

from ..core.enums import Operation, Role

ROLE_POLICY: dict[Role, frozenset[Operation]] = {
    Role.ADMIN: frozenset(
        {
            Operation.MARK_STUDENT_ATTENDANCE,
            Operation.VIEW_ATTENDANCE,
            Operation.APPLY_PAYMENT,
            Operation.VIEW_PAYMENTS,
            Operation.VIEW_FEES,
            Operation.SALARY_REPORT,
            Operation.VIEW_ELIGIBILITY,
            Operation.VIEW_DASHBOARD,
            Operation.LIST_ABSENT_STUDENTS,
            Operation.MANAGE_PRINCIPALS,
            Operation.ATTENDANCE_REPORT,
            Operation.FEES_REPORT,
            Operation.CHANGE_OWN_PASSWORD,
        }
    ),
    Role.STAFF: frozenset(
        {
            Operation.STAFF_SELF_SCAN,
            Operation.MARK_STUDENT_ATTENDANCE,
            Operation.VIEW_ATTENDANCE,
            Operation.APPLY_PAYMENT,
            Operation.VIEW_PAYMENTS,
            Operation.VIEW_FEES,
            Operation.VIEW_OWN_SALARY,
            Operation.VIEW_DASHBOARD,
            Operation.LIST_ABSENT_STUDENTS,
            Operation.MANAGE_FOLLOW_UPS,
            Operation.ATTENDANCE_REPORT,
            Operation.FOLLOW_UP_REPORT,
            Operation.CHANGE_OWN_PASSWORD,
        }
    ),
    Role.STUDENT: frozenset(
        {
            Operation.VIEW_ATTENDANCE,
            Operation.APPLY_PAYMENT,
            Operation.VIEW_PAYMENTS,
            Operation.VIEW_FEES,
            Operation.VIEW_ALERTS,
            Operation.VIEW_ELIGIBILITY,
            Operation.VIEW_ABSENCE_HISTORY,
            Operation.CHANGE_OWN_PASSWORD,
        }
    ),
}


def is_allowed(role: Role, operation: Operation) -> bool:
    return operation in ROLE_POLICY.get(role, frozenset())
