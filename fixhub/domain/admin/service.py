"""Admin service - account moderation"""

import logging

from sqlalchemy.orm import Session

from ...errors import InvalidInput, InvalidTransition, NotFound
from ...models import ContractorStatus, User, UserRole
from ...services.notification_service import notify
from ..authorization import Action, enforce
from ..users.repository import UserRepository

logger = logging.getLogger(__name__)


class AdminService:
    """Service layer for admin moderation of accounts"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = UserRepository()

    def _get_target(self, user_id: int) -> User:
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

    def list_tenants_and_owners(self, admin: User) -> list[User]:
        enforce(admin, Action.VIEW_ALL)
        return self.repo.get_users_by_roles(self.db, [UserRole.TENANT, UserRole.OWNER])

    def list_contractors(self, admin: User) -> list[User]:
        enforce(admin, Action.VIEW_ALL)
        return self.repo.get_users_by_roles(self.db, [UserRole.CONTRACTOR])

    async def verify_contractor(self, admin: User, user_id: int, status: ContractorStatus) -> User:
        """Activate or disable a contractor account"""
        enforce(admin, Action.VERIFY_USER)
        user = self._get_target(user_id)
        if user.role != UserRole.CONTRACTOR:
            raise InvalidInput("User is not a contractor")

        user.contractor_status = status
        if status == ContractorStatus.DISABLED:
            user.session_token_id = None
        self._commit()
        logger.info(f"Admin {admin.id} set contractor {user.id} to {status.value}")

        await notify(
            self.db,
            admin,
            [user],
            "Account status updated",
            f"Your contractor account is now {status.value}.",
        )
        return user

    async def verify_user(self, admin: User, user_id: int) -> User:
        """Approve a tenant or owner so they can sign in"""
        enforce(admin, Action.VERIFY_USER)
        user = self._get_target(user_id)
        if user.role not in (UserRole.TENANT, UserRole.OWNER):
            raise InvalidInput("Only tenants and owners need admin verification")

        user.admin_verified = True
        self._commit()
        logger.info(f"Admin {admin.id} verified user {user.id}")

        await notify(self.db, admin, [user], "Account approved", "Your account was approved by an admin.")
        return user

    def _change_role(self, admin: User, user_id: int, source: UserRole, target: UserRole) -> User:
        enforce(admin, Action.CHANGE_ROLE)
        user = self._get_target(user_id)
        if user.role != source:
            raise InvalidTransition(f"Only a {source.value} can become a {target.value}")

        user.role = target
        self._commit()
        logger.info(f"Admin {admin.id} changed user {user.id} from {source.value} to {target.value}")
        return user

    def upgrade_to_homeowner(self, admin: User, user_id: int) -> User:
        return self._change_role(admin, user_id, UserRole.TENANT, UserRole.OWNER)

    def downgrade_to_tenant(self, admin: User, user_id: int) -> User:
        return self._change_role(admin, user_id, UserRole.OWNER, UserRole.TENANT)
