from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import Role


@dataclass(frozen=True)
class Identity:
    """Verified caller: what every request carries past the verifier."""

    principal_id: int
    role: Role
    tenant_id: int
    student_ref: Optional[str] = None
    display_name: str = ""


@dataclass(frozen=True)
class LoginResult:
    token: str
    identity: Identity
