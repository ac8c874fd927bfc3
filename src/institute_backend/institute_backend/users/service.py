from __future__ import annotations

import logging
from typing import Any, Optional

from werkzeug.security import generate_password_hash

from ..audit.model import AuditEntry
from ..audit.recorder import MODULE_PRINCIPAL, AuditRecorder
from ..common.validators import (
    optional_text,
    parse_date,
    parse_enum,
    require_min_length,
    require_money,
    require_non_empty,
    require_positive_int,
)
from ..core.constants import MIN_PASSWORD_LENGTH, TIME_SLOT_MAX_LENGTH
from ..core.enums import Role, SalaryType, StudentStatus
from ..core.exceptions import NotFoundError, SubjectNotFoundError, ValidationError
from ..tenancy.guard import EffectiveScope
from .model import Staff, Student
from .repository import BranchRepository, PrincipalRepository, StaffRepository, StudentRepository

logger = logging.getLogger(__name__)


class PrincipalService:
    """Use case: admin-side management of student and staff accounts.

    Principals are never deleted; offboarding deactivates them.
    """

    def __init__(
        self,
        principals: PrincipalRepository,
        students: StudentRepository,
        staff: StaffRepository,
        branches: BranchRepository,
        audit: AuditRecorder,
    ):
        self._principals = principals
        self._students = students
        self._staff = staff
        self._branches = branches
        self._audit = audit

    def _branch_code(self, tenant_id: int) -> str:
        branch = self._branches.get(tenant_id)
        if not branch:
            raise NotFoundError("Branch not found")
        return branch.code

    def _unique_email(self, role: Role, email: str) -> str:
        email = require_non_empty(email, "Email").lower()
        if "@" not in email:
            raise ValidationError("Email is invalid")
        if self._principals.get_by_email(role, email):
            raise ValidationError("Email already registered")
        return email

    def _audit_change(self, scope: EffectiveScope, action: str, entity_id: int, **data: Any) -> None:
        old_data = data.pop("old_data", None)
        self._audit.record(
            AuditEntry(
                tenant_id=scope.tenant_id,
                principal_id=scope.principal_id,
                role=scope.role,
                action=action,
                module=MODULE_PRINCIPAL,
                entity_id=str(entity_id),
                old_data=old_data,
                new_data=data or None,
            )
        )

    def create_student(
        self,
        scope: EffectiveScope,
        *,
        name: str,
        email: str,
        password: str,
        admission_date: Any,
        monthly_fees: Any,
        total_fees: Any,
        batch_time: Optional[str] = None,
        course_id: Any = None,
    ) -> Student:
        name = require_non_empty(name, "Name")
        email = self._unique_email(Role.STUDENT, email)
        require_min_length(password, "Password", MIN_PASSWORD_LENGTH)
        admitted = parse_date(admission_date, "Admission date")
        monthly = require_money(monthly_fees, "Monthly fees")
        total = require_money(total_fees, "Total fees")
        batch = optional_text(batch_time, "Batch time", max_length=TIME_SLOT_MAX_LENGTH)

        student = self._students.create(
            tenant_id=scope.tenant_id,
            branch_code=self._branch_code(scope.tenant_id),
            name=name,
            email=email,
            credential_hash=generate_password_hash(password),
            admission_date=admitted,
            monthly_fees=monthly,
            total_fees=total,
            batch_time=batch,
            course_id=require_positive_int(course_id, "Course id") if course_id not in (None, "") else None,
        )
        logger.info("Student %s (%s) created in branch %s", student.student_id, student.student_code, scope.tenant_id)
        self._audit_change(
            scope, "CREATE_STUDENT", student.student_id, student_code=student.student_code, total_fees=total
        )
        return student

    def create_staff(
        self,
        scope: EffectiveScope,
        *,
        name: str,
        email: str,
        password: str,
        salary_type: Any,
        salary_rate: Any,
    ) -> Staff:
        name = require_non_empty(name, "Name")
        email = self._unique_email(Role.STAFF, email)
        require_min_length(password, "Password", MIN_PASSWORD_LENGTH)
        policy_type = parse_enum(SalaryType, salary_type, "Salary type")
        rate = require_money(salary_rate, "Salary rate")

        staff = self._staff.create(
            tenant_id=scope.tenant_id,
            branch_code=self._branch_code(scope.tenant_id),
            name=name,
            email=email,
            credential_hash=generate_password_hash(password),
            salary_type=policy_type,
            salary_rate=rate,
        )
        logger.info("Staff %s (%s) created in branch %s", staff.staff_id, staff.staff_code, scope.tenant_id)
        self._audit_change(
            scope, "CREATE_STAFF", staff.staff_id, staff_code=staff.staff_code, salary_type=policy_type, rate=rate
        )
        return staff

    def deactivate(self, scope: EffectiveScope, principal_id: Any) -> None:
        pid = require_positive_int(principal_id, "Principal id")
        if pid == scope.principal_id:
            raise ValidationError("You cannot deactivate your own account")

        principal = self._principals.get_by_id(pid)
        if not principal or principal.tenant_id != scope.tenant_id:
            raise NotFoundError("Account not found")

        if not self._principals.set_active(scope.tenant_id, pid, is_active=False):
            raise NotFoundError("Account not found")
        if principal.role == Role.STUDENT:
            self._students.set_status(scope.tenant_id, pid, status=StudentStatus.INACTIVE)

        logger.info("Principal %s deactivated by %s", pid, scope.principal_id)
        self._audit_change(scope, "DEACTIVATE_PRINCIPAL", pid, role=principal.role, is_active=False)

    def set_student_status(self, scope: EffectiveScope, student_id: Any, status: Any) -> Student:
        sid = require_positive_int(student_id, "Student id")
        new_status = parse_enum(StudentStatus, status, "Status")
        student = self._students.get(scope.tenant_id, sid)
        if not student:
            raise SubjectNotFoundError("Student not found or does not belong to your branch")

        if student.status != new_status:
            self._students.set_status(scope.tenant_id, sid, status=new_status)
            if new_status == StudentStatus.ACTIVE:
                self._principals.set_active(scope.tenant_id, sid, is_active=True)
            self._audit_change(
                scope,
                "UPDATE_STUDENT_STATUS",
                sid,
                old_data={"status": student.status},
                status=new_status,
            )
        return self._students.get(scope.tenant_id, sid) or student
