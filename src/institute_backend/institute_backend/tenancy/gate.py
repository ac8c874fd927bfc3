from __future__ import annotations

import logging
from typing import Any

from ..audit.model import AuditEntry
from ..audit.recorder import MODULE_SECURITY, AuditRecorder
from ..auth.verifier import IdentityVerifier
from ..core.enums import Operation
from ..core.exceptions import AuthorizationError
from .guard import EffectiveScope, TenantIsolationGuard

logger = logging.getLogger(__name__)


class RequestGate:
    """verify -> scope, exactly once per request, before any tenant data is read.

    Scope violations are security events: they are logged and audited, then
    re-raised to the caller.
    """

    def __init__(self, verifier: IdentityVerifier, guard: TenantIsolationGuard, audit: AuditRecorder):
        self._verifier = verifier
        self._guard = guard
        self._audit = audit

    def enter(
        self,
        token: Any,
        operation: Operation,
        *,
        tenant_override: Any = None,
        subject_override: Any = None,
    ) -> EffectiveScope:
        identity = self._verifier.verify(token)
        try:
            return self._guard.scope(
                identity,
                operation,
                tenant_override=tenant_override,
                subject_override=subject_override,
            )
        except AuthorizationError as e:
            logger.warning(
                "Security event %s: principal=%s role=%s tenant=%s operation=%s",
                e.code,
                identity.principal_id,
                identity.role.value,
                identity.tenant_id,
                operation.value,
            )
            self._audit.record(
                AuditEntry(
                    tenant_id=identity.tenant_id,
                    principal_id=identity.principal_id,
                    role=identity.role,
                    action=e.code,
                    module=MODULE_SECURITY,
                    new_data={
                        "operation": operation.value,
                        "tenant_override": None if tenant_override is None else str(tenant_override),
                        "subject_override": None if subject_override is None else str(subject_override),
                    },
                )
            )
            raise
