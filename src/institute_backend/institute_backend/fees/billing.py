from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import AbstractSet, Optional

from ..common.datetime_utils import add_months, months_between
from .model import BillingCycle


def months_since_admission(admission_date: date, today: date) -> int:
    """Calendar-month difference; never negative."""
    return max(0, months_between(admission_date, today))


def due_date_for_offset(admission_date: date, months: int) -> date:
    """Admission day-of-month projected `months` cycles ahead, clamped to month end."""
    return add_months(admission_date, months)


def next_due(
    admission_date: Optional[date],
    paid_cycles: AbstractSet[BillingCycle],
    today: date,
    monthly_fees: Decimal,
) -> tuple[Optional[date], Decimal]:
    """First cycle from admission through next month that has no payment.

    Returns (None, 0) when every cycle in that range is paid or there is no
    admission date.
    """

    if admission_date is None:
        return None, Decimal("0.00")

    horizon = months_since_admission(admission_date, today) + 1
    for offset in range(horizon + 1):
        due_on = due_date_for_offset(admission_date, offset)
        if BillingCycle.for_date(due_on) not in paid_cycles:
            return due_on, monthly_fees
    return None, Decimal("0.00")
