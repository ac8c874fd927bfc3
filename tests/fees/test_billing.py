from __future__ import annotations

from datetime import date
from decimal import Decimal

from src.institute_backend.institute_backend.common.datetime_utils import add_months
from src.institute_backend.institute_backend.fees.billing import months_since_admission, next_due
from src.institute_backend.institute_backend.fees.model import BillingCycle

FEE = Decimal("1000")


def test_add_months_clamps_day():
    assert add_months(date(2025, 1, 31), 1) == date(2025, 2, 28)
    assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
    assert add_months(date(2025, 11, 30), 3) == date(2026, 2, 28)
    assert add_months(date(2025, 3, 15), -3) == date(2024, 12, 15)


def test_months_since_admission_never_negative():
    assert months_since_admission(date(2025, 1, 31), date(2025, 2, 1)) == 1
    assert months_since_admission(date(2025, 5, 1), date(2025, 2, 1)) == 0


def test_first_unpaid_cycle_is_due():
    admitted = date(2025, 1, 15)
    paid = {BillingCycle.of("January", 2025)}
    assert next_due(admitted, paid, date(2025, 3, 1), FEE) == (date(2025, 2, 15), FEE)


def test_nothing_paid_means_admission_month_is_due():
    assert next_due(date(2025, 1, 15), set(), date(2025, 1, 20), FEE) == (date(2025, 1, 15), FEE)


def test_paid_up_through_next_month():
    admitted = date(2025, 1, 15)
    paid = {BillingCycle.of(m, 2025) for m in ("January", "February", "March", "April")}
    assert next_due(admitted, paid, date(2025, 3, 1), FEE) == (None, Decimal("0.00"))


def test_without_admission_date():
    assert next_due(None, set(), date(2025, 3, 1), FEE) == (None, Decimal("0.00"))


def test_billing_cycle_normalises_month_names():
    assert BillingCycle.of("mar", "2025") == BillingCycle.for_date(date(2025, 3, 9))
    assert BillingCycle.of("March", 2025).label == "March 2025"
