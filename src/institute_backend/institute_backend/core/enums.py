from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Principal classes; each has its own credential space."""

    ADMIN = "ADMIN"
    STAFF = "STAFF"
    STUDENT = "STUDENT"


class SubjectKind(str, Enum):
    STUDENT = "STUDENT"
    STAFF = "STAFF"


class AttendanceStatus(str, Enum):
    PRESENT = "Present"
    ABSENT = "Absent"
    LATE = "Late"


class AttendanceMethod(str, Enum):
    QR = "QR"
    MANUAL = "MANUAL"
    FACE = "FACE"


class AttendanceOutcome(str, Enum):
    """Result kinds of an attendance mutation.

    The two conflict kinds are non-fatal: callers get the existing record back.
    """

    CHECKED_IN = "CHECKED_IN"
    CHECKED_OUT = "CHECKED_OUT"
    MARKED = "MARKED"
    ALREADY_CHECKED_OUT = "ALREADY_CHECKED_OUT"
    DUPLICATE_ATTENDANCE = "DUPLICATE_ATTENDANCE"


class StudentStatus(str, Enum):
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    DROPPED = "DROPPED"


class SalaryType(str, Enum):
    PER_SESSION = "PER_SESSION"
    MONTHLY_FIXED = "MONTHLY_FIXED"
    HOURLY = "HOURLY"


class PaymentMode(str, Enum):
    CASH = "CASH"
    UPI = "UPI"
    ONLINE = "ONLINE"
    QR = "QR"
    GATEWAY = "GATEWAY"


ONLINE_PAYMENT_MODES = frozenset({PaymentMode.UPI, PaymentMode.ONLINE, PaymentMode.QR, PaymentMode.GATEWAY})


class FollowUpStatus(str, Enum):
    PENDING = "Pending"
    RESOLVED = "Resolved"
    DROPPED = "Dropped"


class CallStatus(str, Enum):
    CONNECTED = "Connected"
    NOT_REACHABLE = "Not Reachable"
    NO_ANSWER = "No Answer"
    BUSY = "Busy"


class AbsenceReason(str, Enum):
    SICK = "Sick"
    PERSONAL = "Personal"
    FINANCIAL = "Financial"
    NOT_INTERESTED = "Not Interested"
    OTHER = "Other"


class ResultStatus(str, Enum):
    PASS = "PASS"
    FAIL = "FAIL"


class Operation(str, Enum):
    """Operations gated by the role policy table (tenancy.policy)."""

    STAFF_SELF_SCAN = "STAFF_SELF_SCAN"
    MARK_STUDENT_ATTENDANCE = "MARK_STUDENT_ATTENDANCE"
    VIEW_ATTENDANCE = "VIEW_ATTENDANCE"
    APPLY_PAYMENT = "APPLY_PAYMENT"
    VIEW_PAYMENTS = "VIEW_PAYMENTS"
    VIEW_FEES = "VIEW_FEES"
    VIEW_OWN_SALARY = "VIEW_OWN_SALARY"
    SALARY_REPORT = "SALARY_REPORT"
    VIEW_ALERTS = "VIEW_ALERTS"
    VIEW_ELIGIBILITY = "VIEW_ELIGIBILITY"
    VIEW_DASHBOARD = "VIEW_DASHBOARD"
    LIST_ABSENT_STUDENTS = "LIST_ABSENT_STUDENTS"
    MANAGE_FOLLOW_UPS = "MANAGE_FOLLOW_UPS"
    VIEW_ABSENCE_HISTORY = "VIEW_ABSENCE_HISTORY"
    MANAGE_PRINCIPALS = "MANAGE_PRINCIPALS"
    CHANGE_OWN_PASSWORD = "CHANGE_OWN_PASSWORD"
    ATTENDANCE_REPORT = "ATTENDANCE_REPORT"
    FEES_REPORT = "FEES_REPORT"
    FOLLOW_UP_REPORT = "FOLLOW_UP_REPORT"
