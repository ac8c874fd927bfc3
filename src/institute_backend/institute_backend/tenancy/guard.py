from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from ..auth.model import Identity
from ..core.enums import Operation, Role
from ..core.exceptions import OperationNotPermittedError, ScopeViolationError, ValidationError
from .policy import is_allowed


@dataclass(frozen=True)
class EffectiveScope:
    """Tenant (and, for students, subject) every downstream read/write must carry."""

    identity: Identity
    operation: Operation
    tenant_id: int
    subject_id: Optional[int] = None

    @property
    def role(self) -> Role:
        return self.identity.role

    @property
    def principal_id(self) -> int:
        return self.identity.principal_id

    def require_subject(self) -> int:
        if self.subject_id is None:
            raise ValidationError("Subject is required")
        return self.subject_id


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class TenantIsolationGuard:
    """Pure, stateless: identity + caller-supplied overrides -> EffectiveScope.

    Caller-supplied tenant ids are never trusted, only compared. Students are
    pinned to their own subject id whatever the request says.
    """

    def scope(
        self,
        identity: Identity,
        operation: Operation,
        *,
        tenant_override: Any = None,
        subject_override: Any = None,
    ) -> EffectiveScope:
        if not is_allowed(identity.role, operation):
            raise OperationNotPermittedError(f"Access denied for role {identity.role.value}")

        if not _blank(tenant_override) and str(tenant_override).strip() != str(identity.tenant_id):
            raise ScopeViolationError("Access denied. Branch mismatch")

        if identity.role == Role.STUDENT:
            if not _blank(subject_override):
                own = {str(identity.principal_id)}
                if identity.student_ref:
                    own.add(identity.student_ref)
                if str(subject_override).strip() not in own:
                    raise ScopeViolationError("Access denied. You can only access your own data.")
            return EffectiveScope(
                identity=identity,
                operation=operation,
                tenant_id=identity.tenant_id,
                subject_id=identity.principal_id,
            )

        subject_id = None
        if not _blank(subject_override):
            try:
                subject_id = int(str(subject_override).strip())
            except ValueError:
                raise ValidationError("Subject id is invalid")
        return EffectiveScope(
            identity=identity,
            operation=operation,
            tenant_id=identity.tenant_id,
            subject_id=subject_id,
        )
