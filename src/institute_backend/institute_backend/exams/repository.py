from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from .model import ExamResult


class ExamRepository(Protocol):
    """Read side only: eligibility and alerts consume exams, they never write them."""

    def results_for_student(self, tenant_id: int, student_id: int) -> Sequence[ExamResult]:
        raise NotImplementedError

    def count_upcoming(self, tenant_id: int, *, from_date: date, course_id: Optional[int] = None) -> int:
        raise NotImplementedError
