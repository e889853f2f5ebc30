"""User domain schemas - Pydantic models for validation"""

from typing import Optional

from pydantic import BaseModel, field_validator

from ...models import ContractorStatus, UserRole
from ...schemas import UserResponse
from ...shared.validators import validate_categories, validate_email

MIN_PASSWORD_LENGTH = 5
SELF_REGISTER_ROLES = (UserRole.OWNER, UserRole.TENANT, UserRole.CONTRACTOR)


def _check_password(v: Optional[str]) -> Optional[str]:
    if v is not None and len(v) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    return v


class SignupRequest(BaseModel):
    email: str
    password: str
    firstName: str
    lastName: str
    role: UserRole
    country: Optional[str] = None
    state: Optional[str] = None
    city: Optional[str] = None
    postalCode: Optional[str] = None
    categories: Optional[list[str]] = None
    yearsOfExperience: Optional[int] = None

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        if not v or not v.strip():
            raise ValueError("Email is required")
        return validate_email(v)

    @field_validator("password")
    @classmethod
    def check_password(cls, v):
        return _check_password(v)

    @field_validator("firstName", "lastName")
    @classmethod
    def check_name(cls, v):
        if not v or not v.strip():
            raise ValueError("Name is required")
        return v.strip()

    @field_validator("role")
    @classmethod
    def check_role(cls, v):
        if v not in SELF_REGISTER_ROLES:
            raise ValueError("Role must be owner, tenant or contractor")
        return v

    @field_validator("categories")
    @classmethod
    def check_categories(cls, v):
        return validate_categories(v)

    @field_validator("yearsOfExperience")
    @classmethod
    def check_experience(cls, v):
        if v is not None and (v < 0 or v > 80):
            raise ValueError("Years of experience must be between 0 and 80")
        return v


class SigninRequest(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return v.strip().lower()


class ForgotPasswordRequest(BaseModel):
    email: str

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)


class ResetPasswordRequest(BaseModel):
    userId: int
    token: str
    password: str

    @field_validator("password")
    @classmethod
    def check_password(cls, v):
        return _check_password(v)


class UserUpdate(BaseModel):
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    country: Optional[str] = None
    state: Optional[str] = None
    city: Optional[str] = None
    postalCode: Optional[str] = None
    categories: Optional[list[str]] = None
    yearsOfExperience: Optional[int] = None
    currentPassword: Optional[str] = None
    newPassword: Optional[str] = None

    @field_validator("newPassword")
    @classmethod
    def check_password(cls, v):
        return _check_password(v)

    @field_validator("categories")
    @classmethod
    def check_categories(cls, v):
        return validate_categories(v)


class ContractorStatusRequest(BaseModel):
    status: ContractorStatus

    @field_validator("status")
    @classmethod
    def check_status(cls, v):
        if v == ContractorStatus.PENDING:
            raise ValueError("Status must be active or disabled")
        return v


class SigninResponse(BaseModel):
    token: str
    user: UserResponse


class UsersResponse(BaseModel):
    users: list[UserResponse]
