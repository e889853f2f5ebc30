"""
Create an administrator account (admins cannot self-register)
Usage: python create_admin.py <email> <first_name> <last_name>
The password is read from the ADMIN_PASSWORD environment variable or prompted for.
"""
import getpass
import logging
import os
import sys

from fixhub.database import Base, SessionLocal, engine
from fixhub.models import User, UserRole
from fixhub.security_utils import hash_password
from fixhub.shared.validators import validate_email

logging.basicConfig(level=logging.INFO, format='%(message)s')
logger = logging.getLogger(__name__)


def create_admin(email: str, first_name: str, last_name: str, password: str) -> User:
    """Insert a verified admin account"""
    Base.metadata.create_all(bind=engine, checkfirst=True)
    email = validate_email(email)

    db = SessionLocal()
    try:
        if db.query(User).filter(User.email == email).first():
            raise ValueError(f"An account with email {email} already exists")

        user = User(
            email=email,
            first_name=first_name,
            last_name=last_name,
            password_hash=hash_password(password),
            role=UserRole.ADMIN,
            verified=True,
            admin_verified=True,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    if len(sys.argv) < 4:
        logger.error("Usage: python create_admin.py <email> <first_name> <last_name>")
        sys.exit(1)

    password = os.getenv("ADMIN_PASSWORD") or getpass.getpass("Admin password: ")
    if len(password) < 5:
        logger.error("Password must be at least 5 characters")
        sys.exit(1)

    try:
        admin = create_admin(sys.argv[1], sys.argv[2], sys.argv[3], password)
        logger.info(f"✅ Admin {admin.email} created (id={admin.id})")
    except Exception as e:
        logger.error(f"❌ Failed to create admin: {e}")
        sys.exit(1)
