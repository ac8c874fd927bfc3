from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from ..core.enums import Role


@dataclass(frozen=True)
class AuditEntry:
    tenant_id: int
    principal_id: int
    role: Role
    action: str
    module: str
    entity_id: Optional[str] = None
    old_data: Optional[dict[str, Any]] = None
    new_data: Optional[dict[str, Any]] = field(default=None)
