from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from .models import ContractorStatus, UserRole


class MessageResponse(BaseModel):
    message: str


class UserResponse(BaseModel):
    id: int
    email: str
    first_name: str
    last_name: str
    role: UserRole
    avatar_url: Optional[str] = None
    verified: bool
    admin_verified: bool
    contractor_status: Optional[ContractorStatus] = None
    country: Optional[str] = None
    state: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    categories: Optional[List[str]] = None
    years_of_experience: Optional[int] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PublicProfileResponse(BaseModel):
    id: int
    first_name: str
    last_name: str
    role: UserRole
    avatar_url: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    categories: Optional[List[str]] = None
    years_of_experience: Optional[int] = None

    class Config:
        from_attributes = True


class NotificationResponse(BaseModel):
    id: int
    from_user_id: Optional[int] = None
    to_user_id: int
    service_id: Optional[int] = None
    subject: str
    message: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
