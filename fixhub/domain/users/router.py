"""User router - authentication and profile endpoints"""

import logging

from fastapi import APIRouter, Depends, File, Query, UploadFile
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from ...schemas import MessageResponse, PublicProfileResponse, UserResponse
from ..quotes.router import get_quote_engine
from ..quotes.schemas import QuotesResponse
from ..quotes.service import QuoteNegotiationEngine
from .schemas import (
    ForgotPasswordRequest,
    ResetPasswordRequest,
    SigninRequest,
    SigninResponse,
    SignupRequest,
    UserUpdate,
)
from .service import UserService

logger = logging.getLogger(__name__)

auth_router = APIRouter(prefix="/auth", tags=["Authentication"])
router = APIRouter(prefix="/users", tags=["Users"])


def get_user_service(db: Session = Depends(get_db)) -> UserService:
    """Dependency injection for UserService"""
    return UserService(db)


# ============================================================================
# AUTHENTICATION
# ============================================================================


@auth_router.post("/signup", response_model=MessageResponse, status_code=201)
async def signup(data: SignupRequest, service: UserService = Depends(get_user_service)):
    """Register a new account; a verification link is emailed"""
    await service.signup(data)
    return {"message": "Account created. Check your email to verify your account."}


@auth_router.get("/verify-account", response_model=MessageResponse)
async def verify_account(
    userId: int = Query(...),
    token: str = Query(..., max_length=128),
    service: UserService = Depends(get_user_service),
):
    service.verify_account(userId, token)
    return {"message": "Account verified"}


@auth_router.post("/signin", response_model=SigninResponse)
async def signin(data: SigninRequest, service: UserService = Depends(get_user_service)):
    token, user = await service.signin(data.email, data.password)
    return {"token": token, "user": user}


@auth_router.post("/logout", response_model=MessageResponse)
async def logout(
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    service.logout(current_user)
    return {"message": "Logged out"}


@auth_router.post("/send-forgot-password-link", response_model=MessageResponse)
async def send_forgot_password_link(
    data: ForgotPasswordRequest, service: UserService = Depends(get_user_service)
):
    await service.forgot_password(data.email)
    return {"message": "If an account exists for this email, a reset link has been sent."}


@auth_router.post("/forgot-password", response_model=MessageResponse)
async def reset_password(data: ResetPasswordRequest, service: UserService = Depends(get_user_service)):
    """Set a new password using the emailed reset token"""
    service.reset_password(data.userId, data.token, data.password)
    return {"message": "Password has been reset"}


# ============================================================================
# PROFILE
# ============================================================================


@router.get("/current-user", response_model=UserResponse)
async def current_user(current_user: User = Depends(get_current_user)):
    return current_user


@router.get("/profile/{user_id}", response_model=PublicProfileResponse)
async def get_profile(
    user_id: int,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    return service.get_user(user_id)


@router.get("/get-all-user-quotes", response_model=QuotesResponse)
async def get_all_user_quotes(
    current_user: User = Depends(get_current_user),
    engine: QuoteNegotiationEngine = Depends(get_quote_engine),
):
    """Every quote received on the current user's services"""
    return {"quotes": engine.list_user_quotes(current_user)}


@router.put("/update", response_model=UserResponse)
async def update_user(
    data: UserUpdate,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    return service.update_user(current_user, data)


@router.put("/update-avatar", response_model=UserResponse)
async def update_avatar(
    file: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    content = await file.read()
    return service.update_avatar(current_user, content, file.content_type)


@router.delete("/delete", response_model=MessageResponse)
async def delete_user(
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    """Deactivate the current account"""
    service.deactivate(current_user)
    return {"message": "Account deactivated"}
