from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Mapping

from ..core import constants


@dataclass(frozen=True)
class AlertThresholds:
    """Every alert/eligibility cut-off in one place, overridable from settings."""

    high_due: Decimal = Decimal(constants.HIGH_DUE_THRESHOLD)
    exam_eligibility: int = constants.EXAM_ELIGIBILITY_THRESHOLD
    certificate_attendance: int = constants.CERTIFICATE_ATTENDANCE_THRESHOLD
    consecutive_absence_window: int = constants.CONSECUTIVE_ABSENCE_WINDOW
    drop_risk_window: int = constants.DROP_RISK_WINDOW
    late_payment_grace_days: int = constants.LATE_PAYMENT_GRACE_DAYS
    count_inactive_dues: bool = constants.COUNT_INACTIVE_DUES

    @classmethod
    def from_settings(cls, settings: Mapping[str, Any]) -> "AlertThresholds":
        defaults = cls()
        return cls(
            high_due=Decimal(str(settings.get("HIGH_DUE_THRESHOLD", defaults.high_due))),
            exam_eligibility=int(settings.get("EXAM_ELIGIBILITY_THRESHOLD", defaults.exam_eligibility)),
            certificate_attendance=int(
                settings.get("CERTIFICATE_ATTENDANCE_THRESHOLD", defaults.certificate_attendance)
            ),
            consecutive_absence_window=int(
                settings.get("CONSECUTIVE_ABSENCE_WINDOW", defaults.consecutive_absence_window)
            ),
            drop_risk_window=int(settings.get("DROP_RISK_WINDOW", defaults.drop_risk_window)),
            late_payment_grace_days=int(settings.get("LATE_PAYMENT_GRACE_DAYS", defaults.late_payment_grace_days)),
            count_inactive_dues=bool(settings.get("COUNT_INACTIVE_DUES", defaults.count_inactive_dues)),
        )
