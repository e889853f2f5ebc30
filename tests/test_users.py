"""Tests for accounts: sign-up, verification, sign-in gates and admin operations."""

from datetime import datetime, timedelta

import pytest
from botocore.exceptions import ClientError

from conftest import PASSWORD, make_user, run
from fixhub.domain.admin.service import AdminService
from fixhub.domain.users.schemas import SignupRequest, UserUpdate
from fixhub.domain.users.service import UserService
from fixhub.errors import (
    Conflict,
    InvalidInput,
    InvalidTransition,
    NotAuthenticated,
    NotAuthorized,
)
from fixhub.models import ContractorStatus, Notification, UserRole
from fixhub.security_utils import check_one_time_token, verify_jwt_token
from fixhub.utils import media_store
from fixhub.utils.media_store import MediaStoreError


def _signup(db, role="owner", email="new.user@example.com"):
    data = SignupRequest(
        email=email,
        password=PASSWORD,
        firstName="Nina",
        lastName="Reyes",
        role=role,
    )
    return run(UserService(db).signup(data))


class TestSignup:
    def test_new_account_is_unverified_with_token(self, db) -> None:
        user = _signup(db, email="Nina@Example.com")
        assert user.email == "nina@example.com"
        assert user.verified is False
        assert user.verification_token
        assert user.verification_token_expires_at > datetime.utcnow()

    def test_contractor_starts_pending(self, db) -> None:
        user = _signup(db, role="contractor")
        assert user.contractor_status == ContractorStatus.PENDING

    def test_duplicate_email(self, db) -> None:
        _signup(db)
        with pytest.raises(Conflict):
            _signup(db)

    def test_admin_cannot_self_register(self) -> None:
        with pytest.raises(ValueError):
            SignupRequest(email="a@b.co", password=PASSWORD, firstName="A", lastName="B", role="admin")


class TestVerification:
    def test_verify_with_token(self, db) -> None:
        user = _signup(db)
        verified = UserService(db).verify_account(user.id, user.verification_token)
        assert verified.verified is True
        assert verified.verification_token is None

    def test_wrong_token(self, db) -> None:
        user = _signup(db)
        with pytest.raises(InvalidInput):
            UserService(db).verify_account(user.id, "not-the-token")

    def test_expired_token(self, db) -> None:
        user = _signup(db)
        user.verification_token_expires_at = datetime.utcnow() - timedelta(minutes=1)
        db.commit()
        with pytest.raises(InvalidInput):
            UserService(db).verify_account(user.id, user.verification_token)

    def test_tokens_are_per_user(self, db) -> None:
        first = _signup(db, email="one@example.com")
        second = _signup(db, email="two@example.com")
        assert first.verification_token != second.verification_token
        assert not check_one_time_token(
            first.verification_token, second.verification_token, second.verification_token_expires_at
        )


class TestSignin:
    def test_signin_issues_session(self, db, owner) -> None:
        token, user = run(UserService(db).signin(owner.email, PASSWORD))
        payload = verify_jwt_token(token)
        assert payload["sub"] == str(owner.id)
        assert payload["jti"] == user.session_token_id

    def test_bad_password(self, db, owner) -> None:
        with pytest.raises(NotAuthenticated):
            run(UserService(db).signin(owner.email, "wrong-password"))

    def test_unverified_gets_new_link(self, db) -> None:
        user = _signup(db)
        old_token = user.verification_token
        with pytest.raises(NotAuthenticated):
            run(UserService(db).signin(user.email, PASSWORD))
        db.refresh(user)
        assert user.verification_token != old_token

    def test_owner_needs_admin_approval(self, db) -> None:
        user = make_user(db, UserRole.OWNER, admin_verified=False)
        with pytest.raises(NotAuthenticated):
            run(UserService(db).signin(user.email, PASSWORD))

    def test_inactive_contractor_blocked(self, db) -> None:
        user = make_user(db, UserRole.CONTRACTOR, contractor_status=ContractorStatus.DISABLED)
        with pytest.raises(NotAuthenticated):
            run(UserService(db).signin(user.email, PASSWORD))

    def test_logout_clears_session(self, db, owner) -> None:
        service = UserService(db)
        run(service.signin(owner.email, PASSWORD))
        service.logout(owner)
        assert owner.session_token_id is None


class TestPasswordReset:
    def test_reset_flow(self, db, owner) -> None:
        service = UserService(db)
        run(service.forgot_password(owner.email))
        db.refresh(owner)
        token = owner.password_reset_token
        assert token

        service.reset_password(owner.id, token, "brand-new-pass")
        token_after, _ = run(service.signin(owner.email, "brand-new-pass"))
        assert token_after
        with pytest.raises(InvalidInput):
            service.reset_password(owner.id, token, "again-new-pass")

    def test_unknown_email_is_silent(self, db) -> None:
        run(UserService(db).forgot_password("nobody@example.com"))


class TestProfile:
    def test_password_change_needs_current(self, db, owner) -> None:
        with pytest.raises(InvalidInput):
            UserService(db).update_user(owner, UserUpdate(newPassword="another1"))

    def test_update_fields(self, db, owner) -> None:
        updated = UserService(db).update_user(owner, UserUpdate(city="Cebu", firstName=" Ana "))
        assert updated.city == "Cebu"
        assert updated.first_name == "Ana"

    def test_deactivate(self, db, owner) -> None:
        UserService(db).deactivate(owner)
        assert owner.verified is False
        assert owner.deactivated_at is not None
        with pytest.raises(NotAuthenticated):
            run(UserService(db).signin(owner.email, PASSWORD))

    def test_avatar_upload(self, db, owner, monkeypatch) -> None:
        uploads = []

        class FakeBucket:
            def put_object(self, **kwargs):
                uploads.append(kwargs)

        monkeypatch.setattr(media_store, "get_media_client", lambda: FakeBucket())
        user = UserService(db).update_avatar(owner, b"\x89PNG fake", "image/png")
        assert user.avatar_url.endswith(".png")
        assert uploads[0]["Key"].startswith(f"avatars/{owner.id}/")

    def test_avatar_rejects_other_types(self, db, owner) -> None:
        with pytest.raises(InvalidInput):
            UserService(db).update_avatar(owner, b"GIF89a", "image/gif")

    def test_avatar_store_failure(self, db, owner, monkeypatch) -> None:
        class BrokenBucket:
            def put_object(self, **kwargs):
                raise ClientError({"Error": {"Code": "500", "Message": "boom"}}, "PutObject")

        monkeypatch.setattr(media_store, "get_media_client", lambda: BrokenBucket())
        with pytest.raises(MediaStoreError):
            UserService(db).update_avatar(owner, b"\xff\xd8 jpeg", "image/jpeg")


class TestAdmin:
    def test_activate_contractor(self, db, admin) -> None:
        contractor = make_user(db, UserRole.CONTRACTOR, contractor_status=ContractorStatus.PENDING)
        result = run(AdminService(db).verify_contractor(admin, contractor.id, ContractorStatus.ACTIVE))
        assert result.contractor_status == ContractorStatus.ACTIVE
        assert db.query(Notification).filter(Notification.to_user_id == contractor.id).count() == 1

    def test_verify_user(self, db, admin) -> None:
        tenant = make_user(db, UserRole.TENANT, admin_verified=False)
        assert run(AdminService(db).verify_user(admin, tenant.id)).admin_verified is True

    def test_non_admin_denied(self, db, owner, tenant) -> None:
        with pytest.raises(NotAuthorized):
            run(AdminService(db).verify_user(owner, tenant.id))

    def test_role_changes(self, db, admin, tenant) -> None:
        admin_service = AdminService(db)
        assert admin_service.upgrade_to_homeowner(admin, tenant.id).role == UserRole.OWNER
        with pytest.raises(InvalidTransition):
            admin_service.upgrade_to_homeowner(admin, tenant.id)
        assert admin_service.downgrade_to_tenant(admin, tenant.id).role == UserRole.TENANT
