from decimal import Decimal

from src.institute_backend.institute_backend.alerts.eligibility import (
    due_statuses,
    is_certificate_eligible,
    is_exam_eligible,
    is_high_due,
)
from src.institute_backend.institute_backend.alerts.thresholds import AlertThresholds
from src.institute_backend.institute_backend.core.enums import ResultStatus, StudentStatus
from src.institute_backend.institute_backend.exams.model import ExamResult


def _result(status):
    return ExamResult(result_id=1, tenant_id=1, student_id=1, exam_id=1, status=status)


def test_exam_threshold_is_inclusive():
    assert is_exam_eligible(75, 75)
    assert not is_exam_eligible(74, 75)


def test_high_due_is_strictly_above():
    assert is_high_due(Decimal("5000.01"), Decimal("5000"))
    assert not is_high_due(Decimal("5000"), Decimal("5000"))


def test_certificate_needs_results_and_all_passes():
    assert not is_certificate_eligible(90, [], 75)
    assert is_certificate_eligible(90, [_result(ResultStatus.PASS)], 75)
    assert not is_certificate_eligible(90, [_result(ResultStatus.PASS), _result(ResultStatus.FAIL)], 75)
    assert not is_certificate_eligible(70, [_result(ResultStatus.PASS)], 75)


def test_due_statuses():
    assert due_statuses(False) == (StudentStatus.ACTIVE,)
    assert set(due_statuses(True)) == set(StudentStatus)


def test_thresholds_from_settings():
    t = AlertThresholds.from_settings({"HIGH_DUE_THRESHOLD": "2500", "DROP_RISK_WINDOW": "7"})
    assert t.high_due == Decimal("2500")
    assert t.drop_risk_window == 7
    assert t.exam_eligibility == 75
    assert t.count_inactive_dues is False
