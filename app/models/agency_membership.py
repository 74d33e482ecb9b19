"""
Agency membership model.

Status lifecycle:
    (none) -> PENDING -> ACTIVE -> REJECTED (escort left)
                     \-> REJECTED (agency rejected) -> PENDING (re-request)
"""
import uuid
from enum import Enum as PyEnum

from sqlalchemy import Column, String, DateTime, ForeignKey, Float, Text, Index, Enum as SQLEnum
from sqlalchemy.orm import relationship

from app.database.session import Base
from app.utils.time_utils import utc_now


class MembershipStatusEnum(str, PyEnum):
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    REJECTED = "REJECTED"  # agency rejected the request, or the escort left


class MembershipRoleEnum(str, PyEnum):
    OWNER = "OWNER"
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    MEMBER = "MEMBER"


class AgencyMembership(Base):
    __tablename__ = "agency_memberships"
    __table_args__ = (
        Index("ix_agency_memberships_escort_agency", "escort_id", "agency_id"),
        Index("ix_agency_memberships_agency_status", "agency_id", "status"),
        {"extend_existing": True},
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    escort_id = Column(String(36), ForeignKey("escorts.id", ondelete="CASCADE"), nullable=False)
    agency_id = Column(String(36), ForeignKey("agencies.id", ondelete="CASCADE"), nullable=False)

    status = Column(SQLEnum(MembershipStatusEnum, name="membership_status"), nullable=False, default=MembershipStatusEnum.PENDING)
    role = Column(SQLEnum(MembershipRoleEnum, name="membership_role"), nullable=False, default=MembershipRoleEnum.MEMBER)
    commission_rate = Column(Float, nullable=True)
    message = Column(Text, nullable=True)

    approved_by = Column(String(36), nullable=True)  # agency user id
    approved_at = Column(DateTime, nullable=True)

    # Set when the escort leaves; status is REJECTED in that case as well
    left_at = Column(DateTime, nullable=True)
    leave_reason = Column(Text, nullable=True)

    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    escort = relationship("Escort", back_populates="memberships")
    agency = relationship("Agency", back_populates="memberships")
