from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Union

from ..core.enums import ResultStatus, StudentStatus
from ..exams.model import ExamResult

Number = Union[int, float, Decimal]


def is_high_due(due_amount: Decimal, threshold: Decimal) -> bool:
    return due_amount > threshold


def is_exam_eligible(percentage: Number, threshold: Number) -> bool:
    return percentage >= threshold


def is_certificate_eligible(percentage: Number, results: Iterable[ExamResult], threshold: Number) -> bool:
    """Attendance at or above threshold, at least one result, and every result a pass."""
    results = list(results)
    if not results:
        return False
    return percentage >= threshold and all(r.status == ResultStatus.PASS for r in results)


def due_statuses(count_inactive_dues: bool) -> tuple[StudentStatus, ...]:
    """Student statuses whose dues count toward branch-wide due totals."""
    if count_inactive_dues:
        return tuple(StudentStatus)
    return (StudentStatus.ACTIVE,)
