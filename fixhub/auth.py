import logging
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from .database import get_db
from .errors import NotAuthenticated, NotAuthorized
from .models import ContractorStatus, User, UserRole
from .security_utils import verify_jwt_token

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def ensure_can_authenticate(user: User) -> None:
    """
    Account gates shared by sign-in and every authenticated request:
    email verified, contractors active, tenants/owners approved by an admin.
    """
    if not user.verified:
        raise NotAuthenticated("Your account is not verified")

    if user.role == UserRole.CONTRACTOR and user.contractor_status != ContractorStatus.ACTIVE:
        raise NotAuthenticated("Your contractor account is not active. Please contact support.")

    if user.role in (UserRole.OWNER, UserRole.TENANT) and not user.admin_verified:
        raise NotAuthenticated("Your account is not verified by the admin. Please contact support.")


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the acting user from the session bearer token"""

    if not credentials:
        raise NotAuthenticated(
            "Not authenticated. Please provide a valid Bearer token in the Authorization header."
        )

    payload = verify_jwt_token(credentials.credentials)
    if not payload or not payload.get("sub") or not payload.get("jti"):
        raise NotAuthenticated("Authentication invalid")

    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        raise NotAuthenticated("Invalid token claims")

    user = db.query(User).filter(User.id == user_id).first()

    # A logged-out or superseded session no longer matches the stored jti
    if not user or user.session_token_id != payload["jti"]:
        logger.warning(f"Rejected stale or unknown session for user_id={user_id}")
        raise NotAuthenticated("Authentication invalid")

    ensure_can_authenticate(user)
    return user


async def get_current_admin(user: User = Depends(get_current_user)) -> User:
    if user.role != UserRole.ADMIN:
        raise NotAuthorized("User is not authorized")
    return user


async def get_current_contractor(user: User = Depends(get_current_user)) -> User:
    if user.role != UserRole.CONTRACTOR:
        raise NotAuthorized("Only contractors can access this resource")
    return user
