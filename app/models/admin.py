"""
Moderation models: admin profiles, bans and user reports.
"""
import uuid
from enum import Enum as PyEnum

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Text, JSON, Index, Enum as SQLEnum
from sqlalchemy.orm import relationship

from app.database.session import Base
from app.utils.time_utils import utc_now


class AdminRoleEnum(str, PyEnum):
    SUPER_ADMIN = "SUPER_ADMIN"
    MODERATOR = "MODERATOR"


class BanSeverityEnum(str, PyEnum):
    TEMPORARY = "TEMPORARY"
    PERMANENT = "PERMANENT"


class ReportStatusEnum(str, PyEnum):
    PENDING = "PENDING"
    RESOLVED = "RESOLVED"


class Admin(Base):
    __tablename__ = "admins"
    __table_args__ = {"extend_existing": True}

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    role = Column(SQLEnum(AdminRoleEnum, name="admin_role"), nullable=False, default=AdminRoleEnum.MODERATOR)

    total_bans = Column(Integer, default=0, nullable=False)
    total_reports = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    user = relationship("User", back_populates="admin")


class Ban(Base):
    __tablename__ = "bans"
    __table_args__ = (
        Index("ix_bans_user_active", "user_id", "is_active"),
        {"extend_existing": True},
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    admin_id = Column(String(36), ForeignKey("admins.id", ondelete="SET NULL"), nullable=True)
    banned_by = Column(String(36), nullable=False)  # admin user id

    reason = Column(Text, nullable=False)
    severity = Column(SQLEnum(BanSeverityEnum, name="ban_severity"), nullable=False, default=BanSeverityEnum.TEMPORARY)
    evidence = Column(JSON, nullable=True)
    expires_at = Column(DateTime, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    user = relationship("User", foreign_keys=[user_id])


class Report(Base):
    __tablename__ = "reports"
    __table_args__ = (
        Index("ix_reports_status", "status"),
        {"extend_existing": True},
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    author_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    target_user_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    reason = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(SQLEnum(ReportStatusEnum, name="report_status"), nullable=False, default=ReportStatusEnum.PENDING)

    resolution = Column(Text, nullable=True)
    action_taken = Column(String(50), nullable=True)
    resolved_by = Column(String(36), nullable=True)
    resolved_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utc_now, nullable=False)

    author = relationship("User", foreign_keys=[author_id])
    target_user = relationship("User", foreign_keys=[target_user_id])
