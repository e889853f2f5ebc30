"""
Notification Service
Records an in-app notification for every workflow event and emails each
recipient. Called after the workflow transaction commits; failures here are
logged and never undo or fail the committed operation.
"""

import logging
from typing import Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..email_service import send_notification_email
from ..models import Notification, Service, User

logger = logging.getLogger(__name__)


async def notify(
    db: Session,
    sender: Optional[User],
    recipients: Iterable[Optional[User]],
    subject: str,
    message: str,
    service: Optional[Service] = None,
) -> dict:
    """
    Persist one Notification per recipient, then email them

    Args:
        db: Database session (the workflow transaction is already committed)
        sender: User that triggered the event, None for system events
        recipients: Users to inform; None entries and the sender are skipped
        subject: Short subject line
        message: Notification body
        service: Service the event concerns

    Returns:
        Dict with counts of stored and emailed notifications
    """
    result = {"stored": 0, "emailed": 0, "email_errors": 0}

    targets = []
    seen = set()
    for user in recipients:
        if user is None or user.id in seen:
            continue
        if sender is not None and user.id == sender.id:
            continue
        seen.add(user.id)
        targets.append(user)

    if not targets:
        logger.debug(f"No recipients for notification '{subject}'")
        return result

    service_id = service.id if service is not None else None
    try:
        for user in targets:
            db.add(
                Notification(
                    from_user_id=sender.id if sender is not None else None,
                    to_user_id=user.id,
                    service_id=service_id,
                    subject=subject,
                    message=message,
                )
            )
        db.commit()
        result["stored"] = len(targets)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"❌ Failed to store '{subject}' notifications: {e}")

    sender_name = sender.full_name if sender is not None else None
    for user in targets:
        try:
            response = await send_notification_email(
                to=user.email,
                recipient_name=user.first_name,
                subject=subject,
                message=message,
                service_id=service_id,
                sender_name=sender_name,
            )
            if response is not None:
                result["emailed"] += 1
        except Exception as e:
            result["email_errors"] += 1
            logger.error(f"❌ Failed to email '{subject}' to user {user.id}: {e}")

    logger.info(
        f"Notification '{subject}': stored={result['stored']} emailed={result['emailed']} "
        f"errors={result['email_errors']}"
    )
    return result


def list_notifications(db: Session, user: User) -> list[Notification]:
    """Notifications addressed to a user, newest first"""
    return (
        db.query(Notification)
        .filter(Notification.to_user_id == user.id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .all()
    )
