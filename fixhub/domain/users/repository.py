"""User repository - Database operations for accounts"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import User, UserRole


class UserRepository:
    """Repository for user database operations (flush only, never commit)"""

    @staticmethod
    def get_user(db: Session, user_id: int) -> Optional[User]:
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def get_user_by_email(db: Session, email: str) -> Optional[User]:
        """Get user by email"""
        return db.query(User).filter(User.email == email.strip().lower()).first()

    @staticmethod
    def create_user(db: Session, **user_data) -> User:
        user = User(**user_data)
        db.add(user)
        db.flush()
        return user

    @staticmethod
    def get_users_by_roles(db: Session, roles: list[UserRole]) -> list[User]:
        return (
            db.query(User)
            .filter(User.role.in_(roles))
            .order_by(User.created_at.desc(), User.id.desc())
            .all()
        )
