from __future__ import annotations

import logging

from werkzeug.security import check_password_hash, generate_password_hash

from ..common.validators import require_min_length, require_non_empty
from ..core.constants import MIN_PASSWORD_LENGTH
from ..core.enums import Role
from ..core.exceptions import AuthenticationError, ValidationError
from ..users.model import Principal
from ..users.repository import PrincipalRepository
from .model import Identity, LoginResult
from .tokens import TokenSigner
from .verifier import CLAIM_PRINCIPAL_ID, CLAIM_ROLE, CLAIM_STUDENT_ID, CLAIM_TENANT_ID

logger = logging.getLogger(__name__)


def _password_matches(credential_hash: str, password: str) -> bool:
    try:
        return check_password_hash(credential_hash, password)
    except (TypeError, ValueError):
        # placeholder hashes like 'CHANGE_ME' or corrupted values
        return False


class AuthService:
    """Use case: sign in per role and rotate credentials."""

    def __init__(self, principals: PrincipalRepository, signer: TokenSigner):
        self._principals = principals
        self._signer = signer

    def issue_token(self, principal: Principal) -> str:
        claims = {
            CLAIM_PRINCIPAL_ID: principal.principal_id,
            CLAIM_ROLE: principal.role.value,
            CLAIM_TENANT_ID: principal.tenant_id,
        }
        if principal.role == Role.STUDENT:
            claims[CLAIM_STUDENT_ID] = principal.student_code
        return self._signer.sign(claims)

    def login(self, role: Role, email: str, password: str) -> LoginResult:
        email = require_non_empty(email, "Email").lower()
        principal = self._principals.get_by_email(role, email)
        if not principal or not principal.is_active:
            raise AuthenticationError("Invalid email or password")
        if not _password_matches(principal.credential_hash, password or ""):
            logger.info("Failed %s login for principal %s", role.value, principal.principal_id)
            raise AuthenticationError("Invalid email or password")

        identity = Identity(
            principal_id=principal.principal_id,
            role=principal.role,
            tenant_id=principal.tenant_id,
            student_ref=principal.student_code if principal.role == Role.STUDENT else None,
            display_name=principal.display_name,
        )
        return LoginResult(token=self.issue_token(principal), identity=identity)

    def change_password(self, identity: Identity, *, current_password: str, new_password: str) -> None:
        require_min_length(new_password, "New password", MIN_PASSWORD_LENGTH)
        principal = self._principals.get_by_id(identity.principal_id)
        if not principal or principal.tenant_id != identity.tenant_id:
            raise AuthenticationError("Account not found")
        if not _password_matches(principal.credential_hash, current_password or ""):
            raise AuthenticationError("Current password is incorrect")
        if current_password == new_password:
            raise ValidationError("New password must differ from the current one")

        if not self._principals.update_credential(
            principal.principal_id, credential_hash=generate_password_hash(new_password)
        ):
            raise ValidationError("Password change failed")
