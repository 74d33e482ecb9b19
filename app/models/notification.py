import uuid
from enum import Enum as PyEnum

from sqlalchemy import Column, String, DateTime, ForeignKey, Boolean, Text, JSON, Index, Enum as SQLEnum
from sqlalchemy.orm import relationship

from app.database.session import Base
from app.utils.time_utils import utc_now


class NotificationTypeEnum(str, PyEnum):
    MEMBERSHIP_REQUEST = "MEMBERSHIP_REQUEST"
    MEMBERSHIP_ENDED = "MEMBERSHIP_ENDED"
    AGENCY_INVITE = "AGENCY_INVITE"
    VERIFICATION_COMPLETED = "VERIFICATION_COMPLETED"
    AGENCY_VERIFICATION = "AGENCY_VERIFICATION"
    SECURITY_ALERT = "SECURITY_ALERT"
    SYSTEM = "SYSTEM"


class NotificationPriorityEnum(str, PyEnum):
    LOW = "LOW"
    NORMAL = "NORMAL"
    HIGH = "HIGH"


class Notification(Base):
    __tablename__ = "notifications"
    __table_args__ = (
        Index("ix_notifications_user_read", "user_id", "is_read"),
        {"extend_existing": True},
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    type = Column(SQLEnum(NotificationTypeEnum, name="notification_type"), nullable=False)
    priority = Column(SQLEnum(NotificationPriorityEnum, name="notification_priority"), nullable=False, default=NotificationPriorityEnum.NORMAL)
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    data = Column(JSON, nullable=True)
    action_url = Column(String(500), nullable=True)

    is_read = Column(Boolean, default=False, nullable=False)
    read_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utc_now, nullable=False)

    user = relationship("User", back_populates="notifications")
