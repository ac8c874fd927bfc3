from __future__ import annotations

from typing import Any, Optional

from ..core.enums import Role
from ..core.exceptions import (
    ClaimIncompleteError,
    PrincipalInactiveError,
    PrincipalNotFoundError,
    RoleMismatchError,
    StudentRefMismatchError,
    TenantMismatchError,
)
from ..users.repository import PrincipalRepository
from .model import Identity
from .tokens import TokenSigner

CLAIM_PRINCIPAL_ID = "principal_id"
CLAIM_ROLE = "role"
CLAIM_TENANT_ID = "tenant_id"
CLAIM_STUDENT_ID = "student_id"


def _as_id(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None


class IdentityVerifier:
    """Single entry check for every request: token -> live, consistent Identity.

    Read-only. Signature/expiry problems surface as TokenInvalidError; the
    remaining checks re-read the principal so revoked or moved accounts stop
    working before their token expires.
    """

    def __init__(self, signer: TokenSigner, principals: PrincipalRepository):
        self._signer = signer
        self._principals = principals

    def verify(self, token: Any) -> Identity:
        claims = self._signer.unsign(token)

        principal_id = _as_id(claims.get(CLAIM_PRINCIPAL_ID))
        tenant_id = _as_id(claims.get(CLAIM_TENANT_ID))
        role_raw = claims.get(CLAIM_ROLE)
        if principal_id is None or tenant_id is None or not role_raw:
            raise ClaimIncompleteError("Invalid token payload")
        try:
            role = Role(role_raw)
        except ValueError:
            raise ClaimIncompleteError("Invalid token payload")

        student_ref = claims.get(CLAIM_STUDENT_ID)
        if role == Role.STUDENT and not student_ref:
            raise ClaimIncompleteError("Invalid token payload")

        principal = self._principals.get_by_id(principal_id)
        if not principal:
            raise PrincipalNotFoundError("Account not found")
        if not principal.is_active:
            raise PrincipalInactiveError("Account is inactive. Please contact administrator")
        if principal.role != role:
            raise RoleMismatchError("Access denied. Invalid role")
        if principal.tenant_id != tenant_id:
            raise TenantMismatchError("Branch mismatch. Access denied")
        if role == Role.STUDENT and principal.student_code != str(student_ref):
            raise StudentRefMismatchError("Student ID mismatch. Access denied")

        return Identity(
            principal_id=principal.principal_id,
            role=principal.role,
            tenant_id=principal.tenant_id,
            student_ref=principal.student_code if role == Role.STUDENT else None,
            display_name=principal.display_name,
        )
