from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional, Type, TypeVar

from ..core.constants import MAX_PAGE_LIMIT
from ..core.exceptions import ValidationError

E = TypeVar("E", bound=Enum)


def require_non_empty(value: Optional[str], field_name: str) -> str:
    if not value or not str(value).strip():
        raise ValidationError(f"{field_name} is required")
    return str(value).strip()


def require_min_length(value: Optional[str], field_name: str, min_len: int) -> str:
    if not isinstance(value, str) or len(value) < min_len:
        raise ValidationError(f"{field_name} must be at least {min_len} characters")
    return value


def optional_text(value: Any, field_name: str, *, max_length: int) -> Optional[str]:
    """Stripped string or None; anything that is not a string is rejected."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field_name} must be text")
    value = value.strip()
    if len(value) > max_length:
        raise ValidationError(f"{field_name} must be at most {max_length} characters")
    return value or None


def require_money(value: Any, field_name: str) -> Decimal:
    """Parse a non-negative monetary amount with two decimal places."""
    if value is None or value == "":
        raise ValidationError(f"{field_name} is required")
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a number")
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field_name} must be a number")
    if not amount.is_finite():
        raise ValidationError(f"{field_name} must be a number")
    if amount < 0:
        raise ValidationError(f"{field_name} must be >= 0")
    return amount.quantize(Decimal("0.01"))


def require_positive_int(value: Any, field_name: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} is invalid")
    if number <= 0:
        raise ValidationError(f"{field_name} is invalid")
    return number


def parse_enum(enum_cls: Type[E], value: Any, field_name: str) -> E:
    if isinstance(value, enum_cls):
        return value
    raw = str(value or "").strip()
    for member in enum_cls:
        if raw == member.value or raw.upper() == member.name:
            return member
    raise ValidationError(f"{field_name} is invalid")


def parse_page(page: Any, limit: Any, *, default_limit: int) -> tuple[int, int]:
    try:
        page_i = int(page or 1)
        limit_i = int(limit or default_limit)
    except (TypeError, ValueError):
        raise ValidationError("Pagination parameters are invalid")
    if page_i < 1 or limit_i < 1:
        raise ValidationError("Pagination parameters are invalid")
    return page_i, min(limit_i, MAX_PAGE_LIMIT)


def parse_date(value: Any, field_name: str, *, required: bool = True) -> Optional[date]:
    """Accept a date, a datetime or a YYYY-MM-DD string."""
    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            raise ValidationError(f"{field_name} is required")
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value).strip()[:10], "%Y-%m-%d").date()
    except ValueError:
        raise ValidationError(f"{field_name} must be a date (YYYY-MM-DD)")
