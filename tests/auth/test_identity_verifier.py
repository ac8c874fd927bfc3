from __future__ import annotations

import pytest
from itsdangerous import URLSafeTimedSerializer

from src.institute_backend.institute_backend.auth.service import AuthService
from src.institute_backend.institute_backend.auth.tokens import TokenSigner
from src.institute_backend.institute_backend.auth.verifier import IdentityVerifier
from src.institute_backend.institute_backend.core.enums import Role, StudentStatus
from src.institute_backend.institute_backend.core.exceptions import (
    AuthenticationError,
    ClaimIncompleteError,
    PrincipalInactiveError,
    PrincipalNotFoundError,
    RoleMismatchError,
    StudentRefMismatchError,
    TenantMismatchError,
    TokenInvalidError,
    ValidationError,
)

SECRET = "test-secret"


@pytest.fixture
def signer():
    return TokenSigner(SECRET)


@pytest.fixture
def verifier(world, signer):
    return IdentityVerifier(signer, world.principals)


def test_round_trip_for_each_role(world, signer, verifier):
    for identity in (world.add_admin(), world.add_staff(), world.add_student()):
        principal = world.principals.get_by_id(identity.principal_id)
        token = AuthService(world.principals, signer).issue_token(principal)
        verified = verifier.verify(token)
        assert (verified.principal_id, verified.role, verified.tenant_id) == (
            identity.principal_id,
            identity.role,
            identity.tenant_id,
        )
        assert verified.student_ref == identity.student_ref


@pytest.mark.parametrize("token", [None, "", "garbage", 42])
def test_malformed_tokens_are_rejected(verifier, token):
    with pytest.raises(TokenInvalidError):
        verifier.verify(token)


def test_token_signed_with_other_key_is_rejected(world, verifier):
    admin = world.add_admin()
    forged = TokenSigner("another-secret").sign({"principal_id": admin.principal_id, "role": "ADMIN", "tenant_id": 1})
    with pytest.raises(TokenInvalidError):
        verifier.verify(forged)


def test_expired_token_is_rejected(world):
    admin = world.add_admin()
    token = TokenSigner(SECRET).sign({"principal_id": admin.principal_id, "role": "ADMIN", "tenant_id": 1})
    strict = IdentityVerifier(TokenSigner(SECRET, max_age_seconds=-1), world.principals)
    with pytest.raises(TokenInvalidError):
        strict.verify(token)


def test_non_dict_payload_is_rejected(signer, verifier):
    token = URLSafeTimedSerializer(SECRET, salt="institute-session").dumps(["not", "a", "claim", "set"])
    with pytest.raises(TokenInvalidError):
        verifier.verify(token)


@pytest.mark.parametrize(
    "claims",
    [
        {"role": "ADMIN", "tenant_id": 1},
        {"principal_id": 1, "tenant_id": 1},
        {"principal_id": 1, "role": "ADMIN"},
        {"principal_id": "x", "role": "ADMIN", "tenant_id": 1},
        {"principal_id": 1, "role": "JANITOR", "tenant_id": 1},
        {"principal_id": 1, "role": "STUDENT", "tenant_id": 1},
    ],
)
def test_incomplete_claims(signer, verifier, claims):
    with pytest.raises(ClaimIncompleteError):
        verifier.verify(signer.sign(claims))


def test_unknown_principal(signer, verifier):
    with pytest.raises(PrincipalNotFoundError):
        verifier.verify(signer.sign({"principal_id": 999, "role": "ADMIN", "tenant_id": 1}))


def test_deactivated_principal_loses_access_before_expiry(world, signer, verifier):
    staff = world.add_staff()
    token = signer.sign({"principal_id": staff.principal_id, "role": "STAFF", "tenant_id": 1})
    world.principals.set_active(1, staff.principal_id, is_active=False)
    with pytest.raises(PrincipalInactiveError):
        verifier.verify(token)


def test_student_leaving_active_status_is_inactive(world, signer, verifier):
    student = world.add_student()
    token = signer.sign(
        {"principal_id": student.principal_id, "role": "STUDENT", "tenant_id": 1, "student_id": student.student_ref}
    )
    world.students.set_status(1, student.principal_id, status=StudentStatus.DROPPED)
    with pytest.raises(PrincipalInactiveError):
        verifier.verify(token)


def test_role_mismatch(world, signer, verifier):
    staff = world.add_staff()
    with pytest.raises(RoleMismatchError):
        verifier.verify(signer.sign({"principal_id": staff.principal_id, "role": "ADMIN", "tenant_id": 1}))


def test_tenant_mismatch(world, signer, verifier):
    staff = world.add_staff(tenant_id=1)
    with pytest.raises(TenantMismatchError):
        verifier.verify(signer.sign({"principal_id": staff.principal_id, "role": "STAFF", "tenant_id": 2}))


def test_student_ref_mismatch(world, signer, verifier):
    student = world.add_student()
    claims = {"principal_id": student.principal_id, "role": "STUDENT", "tenant_id": 1, "student_id": "STU-999"}
    with pytest.raises(StudentRefMismatchError):
        verifier.verify(signer.sign(claims))


def test_login_issues_verifiable_token(world, signer, verifier):
    student = world.add_student(email="ana@example.com")
    result = AuthService(world.principals, signer).login(Role.STUDENT, " ANA@example.com ", world.password)
    assert result.identity.student_ref == student.student_ref
    assert verifier.verify(result.token).principal_id == student.principal_id


def test_login_failures_share_one_message(world, signer):
    world.add_staff(email="bo@example.com")
    service = AuthService(world.principals, signer)
    with pytest.raises(AuthenticationError) as wrong_password:
        service.login(Role.STAFF, "bo@example.com", "nope")
    with pytest.raises(AuthenticationError) as wrong_role:
        service.login(Role.ADMIN, "bo@example.com", world.password)
    assert str(wrong_password.value) == str(wrong_role.value) == "Invalid email or password"


def test_pending_student_cannot_log_in(world, signer):
    world.add_student(email="new@example.com", status=StudentStatus.PENDING)
    with pytest.raises(AuthenticationError):
        AuthService(world.principals, signer).login(Role.STUDENT, "new@example.com", world.password)


def test_change_password(world, signer):
    staff = world.add_staff(email="cy@example.com")
    service = AuthService(world.principals, signer)

    with pytest.raises(AuthenticationError):
        service.change_password(staff, current_password="wrong1", new_password="another1")
    with pytest.raises(ValidationError):
        service.change_password(staff, current_password=world.password, new_password="abc")
    with pytest.raises(ValidationError):
        service.change_password(staff, current_password=world.password, new_password=world.password)

    service.change_password(staff, current_password=world.password, new_password="another1")
    assert service.login(Role.STAFF, "cy@example.com", "another1").identity.principal_id == staff.principal_id
