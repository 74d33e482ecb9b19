"""
Notification Service

In-app notifications are a side effect of state transitions. They are written
after the primary transaction commits and a failure never fails the request:
the session is rolled back, the failure is logged and ``None`` is returned.
"""
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundError
from app.crud.notification import create_notification, list_for_user, get_for_user
from app.models.notification import Notification, NotificationTypeEnum, NotificationPriorityEnum
from app.core.logging_config import get_logger
from app.utils.time_utils import utc_now

logger = get_logger(__name__)


class NotificationService:

    def __init__(self, db: Session):
        self.db = db

    def notify(
        self,
        user_id: str,
        type: NotificationTypeEnum,
        title: str,
        message: str,
        data: Optional[Dict[str, Any]] = None,
        action_url: Optional[str] = None,
        priority: NotificationPriorityEnum = NotificationPriorityEnum.NORMAL,
    ) -> Optional[Notification]:
        """Fire-and-forget notification; logs and swallows persistence failures."""
        try:
            notification = create_notification(
                self.db,
                user_id=user_id,
                type=type,
                title=title,
                message=message,
                data=data,
                action_url=action_url,
                priority=priority,
            )
            logger.debug(f"[notification] {type.value} -> user {user_id}")
            return notification
        except SQLAlchemyError:
            self.db.rollback()
            logger.warning(
                f"[notification] Failed to create {type.value} notification for user {user_id}",
                exc_info=True,
            )
            return None

    def list_notifications(self, user_id: str, unread_only: bool, offset: int, limit: int):
        return list_for_user(self.db, user_id, unread_only, offset, limit)

    def mark_read(self, user_id: str, notification_id: str) -> Notification:
        notification = get_for_user(self.db, notification_id, user_id)
        if not notification:
            raise NotFoundError("Notification not found", code="NOTIFICATION_NOT_FOUND")
        if not notification.is_read:
            notification.is_read = True
            notification.read_at = utc_now()
            self.db.commit()
            self.db.refresh(notification)
        return notification
