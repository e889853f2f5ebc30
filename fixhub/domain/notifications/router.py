"""Notification router - in-app notifications of the current user"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from ...schemas import NotificationResponse
from ...services.notification_service import list_notifications

router = APIRouter(prefix="/notifications", tags=["Notifications"])


class NotificationsResponse(BaseModel):
    notifications: list[NotificationResponse]


@router.get("/all-notification", response_model=NotificationsResponse)
async def get_all_notifications(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Notifications addressed to the current user, newest first"""
    return {"notifications": list_notifications(db, current_user)}
