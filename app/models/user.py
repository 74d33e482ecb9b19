import uuid
from enum import Enum as PyEnum

from sqlalchemy import Column, String, Boolean, DateTime, Integer, Text, Enum as SQLEnum
from sqlalchemy.orm import relationship

from app.database.session import Base
from app.utils.time_utils import utc_now


class UserTypeEnum(str, PyEnum):
    CLIENT = "CLIENT"
    ESCORT = "ESCORT"
    AGENCY = "AGENCY"
    ADMIN = "ADMIN"


class User(Base):
    __tablename__ = "users"
    __table_args__ = {"extend_existing": True}

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(150), unique=True, nullable=False)
    username = Column(String(50), unique=True, nullable=False)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False, default="")
    user_type = Column(SQLEnum(UserTypeEnum, name="user_type"), nullable=False, index=True)

    avatar = Column(String(500), nullable=True)
    bio = Column(Text, nullable=True)
    city = Column(String(100), nullable=True)
    country = Column(String(100), nullable=True)
    profile_views = Column(Integer, default=0, nullable=False)

    # Moderation
    is_active = Column(Boolean, default=True, nullable=False)
    is_banned = Column(Boolean, default=False, nullable=False)
    ban_reason = Column(Text, nullable=True)

    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    escort = relationship("Escort", back_populates="user", uselist=False)
    agency = relationship("Agency", back_populates="user", uselist=False)
    admin = relationship("Admin", back_populates="user", uselist=False)
    reputation = relationship("UserReputation", back_populates="user", uselist=False)
    notifications = relationship("Notification", back_populates="user", cascade="all, delete-orphan")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
