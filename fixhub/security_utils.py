"""
Credential utilities
Password hashing, session JWTs and single-use tokens stored on the user row
"""

import hmac
import logging
import secrets
import uuid
from datetime import datetime, timedelta
from typing import Any, Optional

from jose import JWTError
from jose import jwt as jose_jwt
from passlib.context import CryptContext

from .config import JWT_LIFETIME_MINUTES, SECRET_KEY

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


# ============================================================================
# PASSWORD SECURITY
# ============================================================================


def hash_password(password: str) -> str:
    """Hash password using bcrypt"""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password against bcrypt hash"""
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except Exception as e:
        logger.error(f"Password verification error: {e}")
        return False


# ============================================================================
# SINGLE-USE TOKENS (email verification, password reset)
# ============================================================================


def generate_secure_token(length: int = 32) -> str:
    """Generate a cryptographically secure random token"""
    return secrets.token_urlsafe(length)


def issue_one_time_token(ttl: timedelta) -> tuple[str, datetime]:
    """Return a fresh token and its expiry; callers persist both on the entity"""
    return generate_secure_token(), datetime.utcnow() + ttl


def check_one_time_token(
    presented: Optional[str], stored: Optional[str], expires_at: Optional[datetime]
) -> bool:
    """Constant-time match against the stored token, rejecting expired ones"""
    if not presented or not stored or not expires_at:
        return False
    if datetime.utcnow() > expires_at:
        logger.warning("One-time token expired")
        return False
    return hmac.compare_digest(presented, stored)


# ============================================================================
# SESSION TOKENS
# ============================================================================


def create_jwt_token(data: dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT token

    Args:
        data: Data to encode in the token
        expires_delta: Token expiration time (default JWT_LIFETIME_MINUTES)
    """
    to_encode = data.copy()
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=JWT_LIFETIME_MINUTES))
    to_encode.update({"exp": expire})
    return jose_jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def verify_jwt_token(token: str) -> Optional[dict[str, Any]]:
    """
    Verify and decode a JWT token

    Returns:
        Decoded payload if valid, None if invalid or expired
    """
    try:
        return jose_jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.warning(f"JWT verification failed: {e}")
        return None


def issue_session_token(user_id: int, role: str) -> tuple[str, str]:
    """Issue a session JWT. Returns (token, jti); the jti is stored on the user"""
    jti = uuid.uuid4().hex
    token = create_jwt_token({"sub": str(user_id), "role": role, "jti": jti})
    return token, jti
