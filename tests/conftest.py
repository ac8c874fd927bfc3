from __future__ import annotations

import dataclasses
import threading
from datetime import date, datetime
from decimal import Decimal

import pytest
from werkzeug.security import generate_password_hash

from src.institute_backend.institute_backend.attendance.model import AttendanceRecord, AttendanceReportRow, NewAttendance
from src.institute_backend.institute_backend.auth.model import Identity
from src.institute_backend.institute_backend.container import Repositories, wire
from src.institute_backend.institute_backend.core.enums import (
    AttendanceMethod,
    AttendanceStatus,
    Role,
    SalaryType,
    StudentStatus,
    SubjectKind,
)
from src.institute_backend.institute_backend.core.exceptions import IdempotencyKeyReusedError, InactiveSubjectError
from src.institute_backend.institute_backend.exams.model import ExamResult
from src.institute_backend.institute_backend.fees.model import BillingCycle, Payment, PaymentResult
from src.institute_backend.institute_backend.tenancy.guard import TenantIsolationGuard
from src.institute_backend.institute_backend.users.model import Branch, Principal, SalaryPolicy, Staff, Student

PASSWORD = "secret1"
PASSWORD_HASH = generate_password_hash(PASSWORD)
NOW = datetime(2025, 3, 10, 9, 0, 0)


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class FakeBranches:
    def __init__(self, branches):
        self._branches = {b.tenant_id: b for b in branches}

    def get(self, tenant_id):
        return self._branches.get(int(tenant_id))


class FakePrincipals:
    def __init__(self):
        self._lock = threading.Lock()
        self._next_id = 1
        self.rows: dict[int, Principal] = {}
        self.students = None

    def next_id(self) -> int:
        with self._lock:
            pid = self._next_id
            self._next_id += 1
            return pid

    def add(self, principal: Principal) -> Principal:
        self.rows[principal.principal_id] = principal
        self._next_id = max(self._next_id, principal.principal_id + 1)
        return principal

    def _view(self, p: Principal) -> Principal:
        # students can only sign in while ACTIVE
        if p.role == Role.STUDENT and self.students is not None:
            student = self.students.get(p.tenant_id, p.principal_id)
            if not student or student.status != StudentStatus.ACTIVE:
                return dataclasses.replace(p, is_active=False)
        return p

    def get_by_id(self, principal_id):
        p = self.rows.get(int(principal_id))
        return self._view(p) if p else None

    def get_by_email(self, role, email):
        for p in self.rows.values():
            if p.role == role and p.email == email.strip().lower():
                return self._view(p)
        return None

    def update_credential(self, principal_id, *, credential_hash):
        p = self.rows.get(int(principal_id))
        if not p:
            return False
        self.rows[p.principal_id] = dataclasses.replace(p, credential_hash=credential_hash)
        return True

    def set_active(self, tenant_id, principal_id, *, is_active):
        p = self.rows.get(int(principal_id))
        if not p or p.tenant_id != int(tenant_id):
            return False
        self.rows[p.principal_id] = dataclasses.replace(p, is_active=is_active)
        return True


class FakeStudents:
    def __init__(self, principals: FakePrincipals):
        self._lock = threading.Lock()
        self._principals = principals
        self._seq: dict[tuple[int, int], int] = {}
        self.rows: dict[tuple[int, int], Student] = {}
        principals.students = self

    def add(self, student: Student) -> Student:
        self.rows[(student.tenant_id, student.student_id)] = student
        return student

    def get(self, tenant_id, student_id):
        return self.rows.get((int(tenant_id), int(student_id)))

    def create(
        self,
        *,
        tenant_id,
        branch_code,
        name,
        email,
        credential_hash,
        admission_date,
        monthly_fees,
        total_fees,
        batch_time=None,
        course_id=None,
    ):
        with self._lock:
            key = (int(tenant_id), admission_date.year)
            self._seq[key] = self._seq.get(key, 0) + 1
            code = f"{branch_code}-{admission_date.year}-{self._seq[key]:03d}".upper()
        pid = self._principals.next_id()
        self._principals.add(
            Principal(
                principal_id=pid,
                tenant_id=int(tenant_id),
                role=Role.STUDENT,
                email=email,
                display_name=name,
                credential_hash=credential_hash,
                student_code=code,
            )
        )
        return self.add(
            Student(
                student_id=pid,
                tenant_id=int(tenant_id),
                student_code=code,
                name=name,
                status=StudentStatus.PENDING,
                admission_date=admission_date,
                monthly_fees=monthly_fees,
                total_fees=total_fees,
                paid_amount=Decimal("0.00"),
                due_amount=total_fees,
                batch_time=batch_time,
                course_id=course_id,
            )
        )

    def set_status(self, tenant_id, student_id, *, status):
        s = self.get(tenant_id, student_id)
        if not s:
            return False
        self.add(dataclasses.replace(s, status=status))
        return True

    def credit(self, tenant_id, student_id, net, paid_at):
        """Balance move of one payment; None when the student is not ACTIVE."""
        with self._lock:
            s = self.get(tenant_id, student_id)
            if not s or s.status != StudentStatus.ACTIVE:
                return None
            updated = dataclasses.replace(
                s,
                paid_amount=s.paid_amount + net,
                due_amount=max(Decimal("0.00"), s.due_amount - net),
                last_payment_date=paid_at,
            )
            return self.add(updated)

    def _in_tenant(self, tenant_id):
        return [s for (t, _), s in sorted(self.rows.items()) if t == int(tenant_id)]

    def list_by_status(self, tenant_id, status):
        return [s for s in self._in_tenant(tenant_id) if s.status == status]

    def count_by_status(self, tenant_id):
        counts: dict[StudentStatus, int] = {}
        for s in self._in_tenant(tenant_id):
            counts[s.status] = counts.get(s.status, 0) + 1
        return counts

    def count_due_above(self, tenant_id, *, threshold, statuses):
        statuses = set(statuses)
        return sum(1 for s in self._in_tenant(tenant_id) if s.status in statuses and s.due_amount > threshold)

    def sum_due(self, tenant_id, *, statuses):
        statuses = set(statuses)
        return sum((s.due_amount for s in self._in_tenant(tenant_id) if s.status in statuses), Decimal("0.00"))


class FakeStaff:
    def __init__(self, principals: FakePrincipals):
        self._principals = principals
        self.rows: dict[tuple[int, int], Staff] = {}

    def add(self, staff: Staff) -> Staff:
        self.rows[(staff.tenant_id, staff.staff_id)] = staff
        return staff

    def get(self, tenant_id, staff_id):
        return self.rows.get((int(tenant_id), int(staff_id)))

    def list_active(self, tenant_id):
        return [s for (t, _), s in sorted(self.rows.items()) if t == int(tenant_id) and s.is_active]

    def create(self, *, tenant_id, branch_code, name, email, credential_hash, salary_type, salary_rate):
        pid = self._principals.next_id()
        code = f"{branch_code}-STF-{pid:03d}".upper()
        self._principals.add(
            Principal(
                principal_id=pid,
                tenant_id=int(tenant_id),
                role=Role.STAFF,
                email=email,
                display_name=name,
                credential_hash=credential_hash,
                staff_code=code,
            )
        )
        return self.add(
            Staff(
                staff_id=pid,
                tenant_id=int(tenant_id),
                staff_code=code,
                name=name,
                salary_policy=SalaryPolicy(salary_type, salary_rate),
            )
        )


class FakeAttendance:
    """In-memory attendance store; the lock plays the part of the unique key."""

    def __init__(self, principals=None):
        self._lock = threading.Lock()
        self._next_id = 1
        self._principals = principals
        self.rows: dict[int, AttendanceRecord] = {}

    @staticmethod
    def _key(r):
        return (r.tenant_id, r.subject_kind, r.subject_id, r.attendance_date, r.time_slot)

    def insert_if_absent(self, new: NewAttendance):
        with self._lock:
            for r in self.rows.values():
                if self._key(r) == self._key(new):
                    return r, False
            record = AttendanceRecord(
                record_id=self._next_id,
                tenant_id=new.tenant_id,
                subject_id=new.subject_id,
                subject_kind=new.subject_kind,
                attendance_date=new.attendance_date,
                status=new.status,
                method=new.method,
                marked_by=new.marked_by,
                time_slot=new.time_slot,
                check_in=new.check_in,
                batch_id=new.batch_id,
            )
            self.rows[record.record_id] = record
            self._next_id += 1
            return record, True

    def seed(
        self,
        tenant_id,
        kind,
        subject_id,
        day,
        status=AttendanceStatus.PRESENT,
        *,
        check_in=None,
        check_out=None,
        time_slot="",
    ):
        record, _ = self.insert_if_absent(
            NewAttendance(
                tenant_id=tenant_id,
                subject_id=subject_id,
                subject_kind=kind,
                attendance_date=day,
                status=status,
                method=AttendanceMethod.MANUAL,
                marked_by=0,
                time_slot=time_slot,
                check_in=check_in,
            )
        )
        if check_out is not None:
            record = dataclasses.replace(record, check_out=check_out)
            self.rows[record.record_id] = record
        return record

    def get_for_subject_and_date(self, tenant_id, subject_kind, subject_id, attendance_date, *, time_slot=None):
        for r in sorted(self.rows.values(), key=lambda r: r.record_id):
            if (r.tenant_id, r.subject_kind, r.subject_id, r.attendance_date) != (
                int(tenant_id),
                subject_kind,
                int(subject_id),
                attendance_date,
            ):
                continue
            if time_slot is None or r.time_slot == time_slot:
                return r
        return None

    def set_check_out(self, tenant_id, record_id, *, check_out):
        with self._lock:
            r = self.rows.get(int(record_id))
            if not r or r.tenant_id != int(tenant_id) or r.check_out is not None:
                return False
            self.rows[r.record_id] = dataclasses.replace(r, check_out=check_out)
            return True

    def get(self, tenant_id, record_id):
        r = self.rows.get(int(record_id))
        return r if r and r.tenant_id == int(tenant_id) else None

    def _select(self, tenant_id, subject_kind, subject_id, start, end):
        out = []
        for r in self.rows.values():
            if (r.tenant_id, r.subject_kind, r.subject_id) != (int(tenant_id), subject_kind, int(subject_id)):
                continue
            if start and r.attendance_date < start:
                continue
            if end and r.attendance_date > end:
                continue
            out.append(r)
        return out

    def list_for_subject(
        self, tenant_id, subject_kind, subject_id, *, start=None, end=None, status=None, limit=None, offset=0
    ):
        rows = [r for r in self._select(tenant_id, subject_kind, subject_id, start, end) if not status or r.status == status]
        rows.sort(key=lambda r: (r.attendance_date, r.record_id), reverse=True)
        rows = rows[offset:]
        return rows[:limit] if limit is not None else rows

    def count_by_status(self, tenant_id, subject_kind, subject_id, *, start=None, end=None):
        counts: dict[AttendanceStatus, int] = {}
        for r in self._select(tenant_id, subject_kind, subject_id, start, end):
            counts[r.status] = counts.get(r.status, 0) + 1
        return counts

    def subject_ids_with_status(self, tenant_id, subject_kind, attendance_date, statuses):
        statuses = set(statuses)
        return {
            r.subject_id
            for r in self.rows.values()
            if r.tenant_id == int(tenant_id)
            and r.subject_kind == subject_kind
            and r.attendance_date == attendance_date
            and r.status in statuses
        }

    def report_rows(self, tenant_id, subject_kind, *, start, end, subject_id=None, batch_id=None):
        out = []
        for r in self.rows.values():
            if (r.tenant_id, r.subject_kind) != (int(tenant_id), subject_kind):
                continue
            if not start <= r.attendance_date <= end:
                continue
            if subject_id is not None and r.subject_id != int(subject_id):
                continue
            if batch_id is not None and r.batch_id != int(batch_id):
                continue
            p = self._principals.rows[r.subject_id]
            code = p.student_code if subject_kind == SubjectKind.STUDENT else p.staff_code
            out.append(AttendanceReportRow(record=r, subject_code=code, subject_name=p.display_name))
        out.sort(key=lambda row: (row.record.attendance_date, row.record.record_id), reverse=True)
        return out


class FakePayments:
    def __init__(self, students: FakeStudents):
        self._lock = threading.Lock()
        self._students = students
        self._seq: dict[tuple[int, str], int] = {}
        self.rows: list[Payment] = []

    def _by_key(self, new):
        for p in self.rows:
            if (p.tenant_id, p.student_id, p.idempotency_key) == (new.tenant_id, new.student_id, new.idempotency_key):
                return p
        return None

    def record_payment(self, new, *, branch_code):
        with self._lock:
            if new.idempotency_key:
                existing = self._by_key(new)
                if existing:
                    if not new.matches(existing):
                        raise IdempotencyKeyReusedError("Idempotency key was already used for a different payment")
                    return PaymentResult(existing, self._students.get(new.tenant_id, new.student_id), replayed=True)

            student = self._students.credit(new.tenant_id, new.student_id, new.net_amount, new.paid_at)
            if student is None:
                raise InactiveSubjectError("Only active students can receive payments")

            period = new.paid_at.strftime("%Y%m")
            key = (new.tenant_id, period)
            self._seq[key] = self._seq.get(key, 0) + 1
            payment = Payment(
                payment_id=len(self.rows) + 1,
                tenant_id=new.tenant_id,
                student_id=new.student_id,
                amount=new.amount,
                discount=new.discount,
                payment_mode=new.payment_mode,
                receipt_number=f"{branch_code.upper()}-{period}-{self._seq[key]:04d}",
                month=new.month,
                year=new.year,
                collected_by=new.collected_by,
                created_at=new.paid_at,
                description=new.description,
                transaction_id=new.transaction_id,
                idempotency_key=new.idempotency_key,
            )
            self.rows.append(payment)
            return PaymentResult(payment, student)

    def _select(self, tenant_id, student_id, collected_by):
        return [
            p
            for p in self.rows
            if p.tenant_id == int(tenant_id)
            and (student_id is None or p.student_id == int(student_id))
            and (collected_by is None or p.collected_by == int(collected_by))
        ]

    def list_payments(self, tenant_id, *, student_id=None, collected_by=None, limit=20, offset=0):
        rows = sorted(self._select(tenant_id, student_id, collected_by), key=lambda p: p.payment_id, reverse=True)
        return rows[offset : offset + limit]

    def count_payments(self, tenant_id, *, student_id=None, collected_by=None):
        return len(self._select(tenant_id, student_id, collected_by))

    def paid_cycles(self, tenant_id, student_id):
        return {BillingCycle.of(p.month, p.year) for p in self._select(tenant_id, student_id, None)}

    def report_rows(self, tenant_id, *, start=None, end=None, student_id=None, payment_mode=None):
        rows = [
            p
            for p in self._select(tenant_id, student_id, None)
            if (start is None or p.created_at.date() >= start)
            and (end is None or p.created_at.date() <= end)
            and (payment_mode is None or p.payment_mode == payment_mode)
        ]
        return sorted(rows, key=lambda p: (p.created_at, p.payment_id), reverse=True)


class FakeExams:
    def __init__(self):
        self.results: list[ExamResult] = []
        self.exams: list[tuple[int, date, object, bool]] = []

    def add_exam(self, tenant_id, exam_date, *, course_id=None, is_active=True):
        self.exams.append((int(tenant_id), exam_date, course_id, is_active))

    def add_result(self, tenant_id, student_id, status):
        self.results.append(
            ExamResult(len(self.results) + 1, int(tenant_id), int(student_id), len(self.results) + 1, status)
        )

    def results_for_student(self, tenant_id, student_id):
        return [r for r in self.results if (r.tenant_id, r.student_id) == (int(tenant_id), int(student_id))]

    def count_upcoming(self, tenant_id, *, from_date, course_id=None):
        return sum(
            1
            for t, d, c, active in self.exams
            if t == int(tenant_id) and d >= from_date and active and (course_id is None or c == course_id)
        )


class FakeFollowUps:
    def __init__(self):
        self.rows: dict[int, object] = {}

    def create(self, follow_up):
        created = dataclasses.replace(follow_up, follow_up_id=len(self.rows) + 1)
        self.rows[created.follow_up_id] = created
        return created

    def get_for_staff(self, tenant_id, follow_up_id, staff_id):
        f = self.rows.get(int(follow_up_id))
        if f and f.tenant_id == int(tenant_id) and f.staff_id == int(staff_id):
            return f
        return None

    def update(self, follow_up):
        if not self.get_for_staff(follow_up.tenant_id, follow_up.follow_up_id, follow_up.staff_id):
            return False
        self.rows[follow_up.follow_up_id] = follow_up
        return True

    def _for_staff(self, tenant_id, staff_id, status, student_id):
        return [
            f
            for f in sorted(self.rows.values(), key=lambda f: f.follow_up_id, reverse=True)
            if f.tenant_id == int(tenant_id)
            and f.staff_id == int(staff_id)
            and (status is None or f.follow_up_status == status)
            and (student_id is None or f.student_id == int(student_id))
        ]

    def list_for_staff(self, tenant_id, staff_id, *, status=None, student_id=None, limit=20, offset=0):
        return self._for_staff(tenant_id, staff_id, status, student_id)[offset : offset + limit]

    def count_for_staff(self, tenant_id, staff_id, *, status=None, student_id=None):
        return len(self._for_staff(tenant_id, staff_id, status, student_id))

    def list_for_student(self, tenant_id, student_id, *, start=None, end=None):
        return [
            f
            for f in self.rows.values()
            if (f.tenant_id, f.student_id) == (int(tenant_id), int(student_id))
            and (start is None or f.absent_date >= start)
            and (end is None or f.absent_date <= end)
        ]

    def report_rows(self, tenant_id, staff_id, *, start=None, end=None, status=None, reason=None):
        return [
            f
            for f in self._for_staff(tenant_id, staff_id, status, None)
            if (start is None or f.absent_date >= start)
            and (end is None or f.absent_date <= end)
            and (reason is None or f.reason == reason)
        ]


class FakeAudit:
    def __init__(self):
        self.entries = []

    def record(self, entry):
        self.entries.append(entry)

    def actions(self):
        return [e.action for e in self.entries]


class World:
    """Two branches (1 'MAIN', 2 'EAST') over in-memory repositories."""

    password = PASSWORD

    def __init__(self):
        self.clock = FakeClock(NOW)
        self.branches = FakeBranches([Branch(1, "MAIN", "Main Branch"), Branch(2, "EAST", "East Branch")])
        self.principals = FakePrincipals()
        self.students = FakeStudents(self.principals)
        self.staff = FakeStaff(self.principals)
        self.attendance = FakeAttendance(self.principals)
        self.payments = FakePayments(self.students)
        self.exams = FakeExams()
        self.followups = FakeFollowUps()
        self.audit = FakeAudit()

    @property
    def repos(self) -> Repositories:
        return Repositories(
            branches=self.branches,
            principals=self.principals,
            students=self.students,
            staff=self.staff,
            attendance=self.attendance,
            payments=self.payments,
            exams=self.exams,
            followups=self.followups,
            audit=self.audit,
        )

    def add_admin(self, tenant_id=1, *, email=None) -> Identity:
        pid = self.principals.next_id()
        p = self.principals.add(
            Principal(
                principal_id=pid,
                tenant_id=tenant_id,
                role=Role.ADMIN,
                email=email or f"admin{pid}@example.com",
                display_name=f"Admin {pid}",
                credential_hash=PASSWORD_HASH,
            )
        )
        return Identity(p.principal_id, Role.ADMIN, tenant_id, display_name=p.display_name)

    def add_staff(self, tenant_id=1, *, salary_type=SalaryType.PER_SESSION, rate="100", email=None) -> Identity:
        pid = self.principals.next_id()
        code = f"STF-{pid:03d}"
        p = self.principals.add(
            Principal(
                principal_id=pid,
                tenant_id=tenant_id,
                role=Role.STAFF,
                email=email or f"staff{pid}@example.com",
                display_name=f"Staff {pid}",
                credential_hash=PASSWORD_HASH,
                staff_code=code,
            )
        )
        self.staff.add(Staff(pid, tenant_id, code, p.display_name, SalaryPolicy(salary_type, Decimal(rate))))
        return Identity(pid, Role.STAFF, tenant_id, display_name=p.display_name)

    def add_student(
        self,
        tenant_id=1,
        *,
        status=StudentStatus.ACTIVE,
        total_fees="10000",
        paid="0",
        due=None,
        monthly_fees="1000",
        admission_date=date(2025, 1, 15),
        batch_time=None,
        email=None,
    ) -> Identity:
        pid = self.principals.next_id()
        code = f"STU-{pid:03d}"
        p = self.principals.add(
            Principal(
                principal_id=pid,
                tenant_id=tenant_id,
                role=Role.STUDENT,
                email=email or f"student{pid}@example.com",
                display_name=f"Student {pid}",
                credential_hash=PASSWORD_HASH,
                student_code=code,
            )
        )
        total = Decimal(total_fees)
        self.students.add(
            Student(
                student_id=pid,
                tenant_id=tenant_id,
                student_code=code,
                name=p.display_name,
                status=status,
                admission_date=admission_date,
                monthly_fees=Decimal(monthly_fees),
                total_fees=total,
                paid_amount=Decimal(paid),
                due_amount=Decimal(due) if due is not None else total - Decimal(paid),
                batch_time=batch_time,
            )
        )
        return Identity(pid, Role.STUDENT, tenant_id, student_ref=code, display_name=p.display_name)

    def scope(self, identity, operation, **overrides):
        return TenantIsolationGuard().scope(identity, operation, **overrides)

    def container(self, **settings):
        return wire(self.repos, {"SECRET_KEY": "test-secret", **settings})


@pytest.fixture
def world() -> World:
    return World()


@pytest.fixture
def staff_day():
    """Helper: a Present staff record with check-in/out stamps on a given day."""

    def make(world: World, identity: Identity, day: date, start: tuple[int, int], end: tuple[int, int]):
        return world.attendance.seed(
            identity.tenant_id,
            SubjectKind.STAFF,
            identity.principal_id,
            day,
            check_in=datetime.combine(day, datetime.min.time()).replace(hour=start[0], minute=start[1]),
            check_out=datetime.combine(day, datetime.min.time()).replace(hour=end[0], minute=end[1]),
        )

    return make
