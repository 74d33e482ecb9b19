import uuid
from enum import Enum as PyEnum

from sqlalchemy import Column, String, DateTime, ForeignKey, Float, Text, JSON, Index, Enum as SQLEnum
from sqlalchemy.orm import relationship

from app.database.session import Base
from app.models.agency_membership import MembershipRoleEnum
from app.utils.time_utils import utc_now


class InvitationStatusEnum(str, PyEnum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


class AgencyInvitation(Base):
    __tablename__ = "agency_invitations"
    __table_args__ = (
        Index("ix_agency_invitations_agency_escort_status", "agency_id", "escort_id", "status"),
        {"extend_existing": True},
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    agency_id = Column(String(36), ForeignKey("agencies.id", ondelete="CASCADE"), nullable=False)
    escort_id = Column(String(36), ForeignKey("escorts.id", ondelete="CASCADE"), nullable=False)

    status = Column(SQLEnum(InvitationStatusEnum, name="invitation_status"), nullable=False, default=InvitationStatusEnum.PENDING)
    message = Column(Text, nullable=True)
    proposed_commission = Column(Float, nullable=False, default=0.1)
    proposed_role = Column(SQLEnum(MembershipRoleEnum, name="membership_role"), nullable=False, default=MembershipRoleEnum.MEMBER)
    proposed_benefits = Column(JSON, nullable=True)

    invited_by = Column(String(36), nullable=False)  # agency user id
    expires_at = Column(DateTime, nullable=False)
    responded_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    agency = relationship("Agency", back_populates="invitations")
    escort = relationship("Escort", back_populates="invitations")
