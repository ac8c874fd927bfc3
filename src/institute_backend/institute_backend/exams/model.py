from __future__ import annotations

from dataclasses import dataclass

from ..core.enums import ResultStatus


@dataclass(frozen=True)
class ExamResult:
    result_id: int
    tenant_id: int
    student_id: int
    exam_id: int
    status: ResultStatus
