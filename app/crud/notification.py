from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from app.models.notification import Notification, NotificationTypeEnum, NotificationPriorityEnum


def create_notification(
    db: Session,
    user_id: str,
    type: NotificationTypeEnum,
    title: str,
    message: str,
    data: Optional[Dict[str, Any]] = None,
    action_url: Optional[str] = None,
    priority: NotificationPriorityEnum = NotificationPriorityEnum.NORMAL,
) -> Notification:
    db_notification = Notification(
        user_id=user_id,
        type=type,
        title=title,
        message=message,
        data=data,
        action_url=action_url,
        priority=priority,
    )
    db.add(db_notification)
    db.commit()
    db.refresh(db_notification)
    return db_notification


def list_for_user(
    db: Session, user_id: str, unread_only: bool, offset: int, limit: int
) -> Tuple[List[Notification], int]:
    base = db.query(Notification).filter(Notification.user_id == user_id)
    if unread_only:
        base = base.filter(Notification.is_read.is_(False))
    total = base.count()
    items = base.order_by(Notification.created_at.desc()).offset(offset).limit(limit).all()
    return items, total


def get_for_user(db: Session, notification_id: str, user_id: str) -> Optional[Notification]:
    return db.query(Notification).filter(
        Notification.id == notification_id,
        Notification.user_id == user_id,
    ).first()
