class DomainError(Exception):
    """Base exception for business rule violations."""

    code = "DOMAIN_ERROR"


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    code = "VALIDATION_FAILURE"


class InactiveSubjectError(ValidationError):
    """Raised when a ledger mutation targets a student that is not ACTIVE."""

    code = "INACTIVE_SUBJECT"


class IdempotencyKeyReusedError(ValidationError):
    """An idempotency key already names a payment with different details."""

    code = "IDEMPOTENCY_KEY_REUSED"


class AuthenticationError(DomainError):
    """Raised when a credential or session token cannot be accepted."""

    code = "UNAUTHENTICATED"


class TokenInvalidError(AuthenticationError):
    code = "TOKEN_INVALID"


class ClaimIncompleteError(AuthenticationError):
    code = "CLAIM_INCOMPLETE"


class PrincipalNotFoundError(AuthenticationError):
    code = "PRINCIPAL_NOT_FOUND"


class PrincipalInactiveError(AuthenticationError):
    code = "PRINCIPAL_INACTIVE"


class RoleMismatchError(AuthenticationError):
    code = "ROLE_MISMATCH"


class TenantMismatchError(AuthenticationError):
    code = "TENANT_MISMATCH"


class StudentRefMismatchError(AuthenticationError):
    code = "STUDENT_REF_MISMATCH"


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""

    code = "FORBIDDEN"


class ScopeViolationError(AuthorizationError):
    code = "SCOPE_VIOLATION"


class OperationNotPermittedError(AuthorizationError):
    code = "OPERATION_NOT_PERMITTED"


class IdentityMismatchError(AuthorizationError):
    """A scanned code names a different subject than the one being marked."""

    code = "IDENTITY_MISMATCH"


class NotFoundError(DomainError):
    """Referenced entity is absent or outside the caller's tenant."""

    code = "NOT_FOUND"


class SubjectNotFoundError(NotFoundError):
    code = "SUBJECT_NOT_FOUND"
