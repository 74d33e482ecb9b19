from datetime import datetime
from typing import Any, Dict, Optional

from app.models.notification import NotificationTypeEnum, NotificationPriorityEnum
from app.schemas.base import ReadModel


class NotificationRead(ReadModel):
    id: str
    type: NotificationTypeEnum
    priority: NotificationPriorityEnum
    title: str
    message: str
    data: Optional[Dict[str, Any]] = None
    action_url: Optional[str] = None
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: datetime
