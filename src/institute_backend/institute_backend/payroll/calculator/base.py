from __future__ import annotations

from abc import ABC, abstractmethod
from decimal import ROUND_HALF_UP, Decimal
from typing import Sequence

from ...attendance.model import AttendanceRecord
from ...core.enums import AttendanceStatus

CENTS = Decimal("0.01")


def to_money(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def present_only(records: Sequence[AttendanceRecord]) -> list[AttendanceRecord]:
    return [r for r in records if r.status == AttendanceStatus.PRESENT]


class SalaryCalculator(ABC):
    """Calculator interface (Strategy Pattern for salary types).

    Implementations are stateless; `records` is already limited to one month.
    """

    @abstractmethod
    def compute(self, rate: Decimal, records: Sequence[AttendanceRecord]) -> Decimal:
        raise NotImplementedError
