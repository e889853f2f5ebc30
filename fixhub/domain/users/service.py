"""User service - Accounts, credentials and profiles"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ...auth import ensure_can_authenticate
from ...config import PASSWORD_RESET_TTL_MINUTES, VERIFICATION_TOKEN_TTL_HOURS
from ...email_service import send_password_reset_email, send_verification_email
from ...errors import Conflict, InvalidInput, NotAuthenticated, NotFound
from ...models import ContractorStatus, User, UserRole
from ...security_utils import (
    check_one_time_token,
    hash_password,
    issue_one_time_token,
    issue_session_token,
    verify_password,
)
from ...utils.media_store import upload_image
from ...utils.sanitization import sanitize_string
from .repository import UserRepository
from .schemas import SignupRequest, UserUpdate

logger = logging.getLogger(__name__)


class UserService:
    """Service layer for accounts and credentials"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = UserRepository()

    def get_user(self, user_id: int) -> User:
        user = self.repo.get_user(self.db, user_id)
        if not user:
            raise NotFound("User not found")
        return user

    def _commit(self):
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def _issue_verification_token(self, user: User) -> str:
        token, expires_at = issue_one_time_token(timedelta(hours=VERIFICATION_TOKEN_TTL_HOURS))
        user.verification_token = token
        user.verification_token_expires_at = expires_at
        return token

    async def _send_verification(self, user: User, token: str) -> None:
        try:
            await send_verification_email(user.email, user.first_name, user.id, token)
        except Exception as e:
            logger.error(f"❌ Failed to send verification email to user {user.id}: {e}")

    # ========================================================================
    # REGISTRATION & SIGN-IN
    # ========================================================================

    async def signup(self, data: SignupRequest) -> User:
        """Register an owner, tenant or contractor and email a verification link"""
        if self.repo.get_user_by_email(self.db, data.email):
            raise Conflict("An account with this email already exists")

        try:
            user = self.repo.create_user(
                self.db,
                email=data.email,
                first_name=sanitize_string(data.firstName),
                last_name=sanitize_string(data.lastName),
                password_hash=hash_password(data.password),
                role=data.role,
                verified=False,
                admin_verified=False,
                contractor_status=ContractorStatus.PENDING if data.role == UserRole.CONTRACTOR else None,
                country=sanitize_string(data.country),
                state=sanitize_string(data.state),
                city=sanitize_string(data.city),
                postal_code=sanitize_string(data.postalCode),
                categories=data.categories if data.role == UserRole.CONTRACTOR else None,
                years_of_experience=data.yearsOfExperience,
            )
            token = self._issue_verification_token(user)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(user)
        logger.info(f"✅ User {user.id} registered as {user.role.value}")
        await self._send_verification(user, token)
        return user

    def verify_account(self, user_id: int, token: str) -> User:
        user = self.get_user(user_id)
        if user.verified:
            return user

        if not check_one_time_token(token, user.verification_token, user.verification_token_expires_at):
            raise InvalidInput("Invalid or expired verification link")

        user.verified = True
        user.deactivated_at = None
        user.verification_token = None
        user.verification_token_expires_at = None
        self._commit()
        logger.info(f"User {user.id} verified their email")
        return user

    async def signin(self, email: str, password: str) -> tuple[str, User]:
        """
        Check credentials and account gates, then issue a session token.

        Returns:
            (token, user)
        """
        user = self.repo.get_user_by_email(self.db, email)
        if not user or not verify_password(password, user.password_hash):
            logger.warning(f"Failed sign-in attempt for {email}")
            raise NotAuthenticated("Invalid credentials")

        if not user.verified:
            token = self._issue_verification_token(user)
            self._commit()
            await self._send_verification(user, token)
            raise NotAuthenticated(
                "Your account is not verified. A new verification link has been sent to your email."
            )

        ensure_can_authenticate(user)

        session_token, jti = issue_session_token(user.id, user.role.value)
        user.session_token_id = jti
        self._commit()
        logger.info(f"User {user.id} signed in")
        return session_token, user

    def logout(self, user: User) -> None:
        user.session_token_id = None
        self._commit()
        logger.info(f"User {user.id} signed out")

    # ========================================================================
    # PASSWORD RESET
    # ========================================================================

    async def forgot_password(self, email: str) -> None:
        """Email a reset link; unknown addresses get the same response"""
        user = self.repo.get_user_by_email(self.db, email)
        if not user or user.deactivated_at is not None:
            logger.info(f"Password reset requested for unknown or inactive account {email}")
            return

        token, expires_at = issue_one_time_token(timedelta(minutes=PASSWORD_RESET_TTL_MINUTES))
        user.password_reset_token = token
        user.password_reset_token_expires_at = expires_at
        self._commit()

        try:
            await send_password_reset_email(user.email, user.id, token)
        except Exception as e:
            logger.error(f"❌ Failed to send password reset email to user {user.id}: {e}")

    def reset_password(self, user_id: int, token: str, password: str) -> None:
        user = self.get_user(user_id)
        if not check_one_time_token(token, user.password_reset_token, user.password_reset_token_expires_at):
            raise InvalidInput("Invalid or expired password reset link")

        user.password_hash = hash_password(password)
        user.password_reset_token = None
        user.password_reset_token_expires_at = None
        # Existing sessions end with the old password
        user.session_token_id = None
        self._commit()
        logger.info(f"User {user.id} reset their password")

    # ========================================================================
    # PROFILE
    # ========================================================================

    def update_user(self, user: User, data: UserUpdate) -> User:
        if data.newPassword is not None:
            if not data.currentPassword or not verify_password(data.currentPassword, user.password_hash):
                raise InvalidInput("Current password is incorrect")
            user.password_hash = hash_password(data.newPassword)

        updates = {
            "first_name": sanitize_string(data.firstName),
            "last_name": sanitize_string(data.lastName),
            "country": sanitize_string(data.country),
            "state": sanitize_string(data.state),
            "city": sanitize_string(data.city),
            "postal_code": sanitize_string(data.postalCode),
            "years_of_experience": data.yearsOfExperience,
        }
        if user.role == UserRole.CONTRACTOR:
            updates["categories"] = data.categories

        for key, value in updates.items():
            if value is not None:
                setattr(user, key, value)

        self._commit()
        self.db.refresh(user)
        return user

    def update_avatar(self, user: User, content: bytes, content_type: Optional[str]) -> User:
        url = upload_image(content, "avatars", user.id, content_type)
        user.avatar_url = url
        self._commit()
        logger.info(f"User {user.id} updated their avatar")
        return user

    def deactivate(self, user: User) -> None:
        """Soft delete: the row stays, the account can no longer sign in"""
        user.verified = False
        user.deactivated_at = datetime.utcnow()
        user.session_token_id = None
        self._commit()
        logger.info(f"User {user.id} deactivated their account")
