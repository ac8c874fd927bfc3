from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from .alerts.service import AlertService
from .alerts.thresholds import AlertThresholds
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceLedger
from .audit.recorder import AuditRecorder, BestEffortAuditRecorder, MySQLAuditRecorder
from .auth.service import AuthService
from .auth.tokens import TokenSigner
from .auth.verifier import IdentityVerifier
from .core.constants import DEFAULT_TOKEN_MAX_AGE_SECONDS, DEFAULT_TOKEN_SALT, SALARY_REPORT_WORKERS
from .database.connection import DBConfig, DatabaseConnection
from .exams.mysql_exam_repository import MySQLExamRepository
from .exams.repository import ExamRepository
from .fees.mysql_payment_repository import MySQLPaymentRepository
from .fees.repository import PaymentRepository
from .fees.service import FeeLedger
from .followups.mysql_followup_repository import MySQLFollowUpRepository
from .followups.repository import FollowUpRepository
from .followups.service import FollowUpService
from .payroll.service import SalaryService
from .reports.service import ReportService
from .tenancy.gate import RequestGate
from .tenancy.guard import TenantIsolationGuard
from .users.mysql_branch_repository import MySQLBranchRepository
from .users.mysql_principal_repository import MySQLPrincipalRepository
from .users.mysql_staff_repository import MySQLStaffRepository
from .users.mysql_student_repository import MySQLStudentRepository
from .users.repository import BranchRepository, PrincipalRepository, StaffRepository, StudentRepository
from .users.service import PrincipalService


@dataclass(frozen=True)
class Repositories:
    branches: BranchRepository
    principals: PrincipalRepository
    students: StudentRepository
    staff: StaffRepository
    attendance: AttendanceRepository
    payments: PaymentRepository
    exams: ExamRepository
    followups: FollowUpRepository
    audit: AuditRecorder


@dataclass(frozen=True)
class Container:
    repos: Repositories
    settings: Mapping[str, Any]

    verifier: IdentityVerifier
    gate: RequestGate
    auth_service: AuthService
    principal_service: PrincipalService
    attendance_ledger: AttendanceLedger
    fee_ledger: FeeLedger
    salary_service: SalaryService
    alert_service: AlertService
    followup_service: FollowUpService
    report_service: ReportService


def mysql_repositories(conn: DatabaseConnection) -> Repositories:
    return Repositories(
        branches=MySQLBranchRepository(conn),
        principals=MySQLPrincipalRepository(conn),
        students=MySQLStudentRepository(conn),
        staff=MySQLStaffRepository(conn),
        attendance=MySQLAttendanceRepository(conn),
        payments=MySQLPaymentRepository(conn),
        exams=MySQLExamRepository(conn),
        followups=MySQLFollowUpRepository(conn),
        audit=MySQLAuditRecorder(conn),
    )


def wire(repos: Repositories, settings: Mapping[str, Any]) -> Container:
    """Explicit constructor injection: every service gets exactly what it uses."""
    secret_key = settings.get("SECRET_KEY")
    if not secret_key:
        raise RuntimeError("SECRET_KEY is not configured")

    signer = TokenSigner(
        str(secret_key),
        salt=str(settings.get("TOKEN_SALT", DEFAULT_TOKEN_SALT)),
        max_age_seconds=int(settings.get("TOKEN_MAX_AGE_SECONDS", DEFAULT_TOKEN_MAX_AGE_SECONDS)),
    )
    thresholds = AlertThresholds.from_settings(settings)
    audit = BestEffortAuditRecorder(repos.audit)

    verifier = IdentityVerifier(signer, repos.principals)
    return Container(
        repos=repos,
        settings=settings,
        verifier=verifier,
        gate=RequestGate(verifier, TenantIsolationGuard(), audit),
        auth_service=AuthService(repos.principals, signer),
        principal_service=PrincipalService(repos.principals, repos.students, repos.staff, repos.branches, audit),
        attendance_ledger=AttendanceLedger(
            repos.attendance,
            repos.students,
            repos.staff,
            audit,
            exam_threshold=thresholds.exam_eligibility,
        ),
        fee_ledger=FeeLedger(repos.payments, repos.students, repos.branches, audit),
        salary_service=SalaryService(
            repos.staff,
            repos.attendance,
            workers=int(settings.get("SALARY_REPORT_WORKERS", SALARY_REPORT_WORKERS)),
        ),
        alert_service=AlertService(
            repos.students,
            repos.attendance,
            repos.payments,
            repos.exams,
            repos.followups,
            thresholds=thresholds,
        ),
        followup_service=FollowUpService(repos.followups, repos.attendance, repos.students, audit),
        report_service=ReportService(repos.attendance, repos.payments, repos.followups),
    )


def build_container(*, db_config: dict, settings: Optional[Mapping[str, Any]] = None) -> Container:
    conn = DatabaseConnection(DBConfig.from_dict(db_config))
    return wire(mysql_repositories(conn), settings or {})
