import uuid
from enum import Enum as PyEnum

from sqlalchemy import Column, String, DateTime, ForeignKey, Boolean, Text, Index, Enum as SQLEnum
from sqlalchemy.orm import relationship

from app.database.session import Base
from app.utils.time_utils import utc_now


class VerificationStatusEnum(str, PyEnum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class EscortVerification(Base):
    """One row per verification or renewal; append-only history."""
    __tablename__ = "escort_verifications"
    __table_args__ = (
        Index("ix_escort_verifications_agency_expires", "agency_id", "expires_at"),
        Index("ix_escort_verifications_escort", "escort_id"),
        {"extend_existing": True},
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    agency_id = Column(String(36), ForeignKey("agencies.id", ondelete="CASCADE"), nullable=False)
    escort_id = Column(String(36), ForeignKey("escorts.id", ondelete="CASCADE"), nullable=False)
    membership_id = Column(String(36), ForeignKey("agency_memberships.id", ondelete="SET NULL"), nullable=True)
    # Not a foreign key: fallback tiers have no pricing row
    pricing_id = Column(String(50), nullable=False)

    status = Column(SQLEnum(VerificationStatusEnum, name="verification_status"), nullable=False, default=VerificationStatusEnum.PENDING)
    starts_at = Column(DateTime, nullable=False, default=utc_now)
    expires_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    verified_by = Column(String(36), nullable=True)  # agency user id
    verification_notes = Column(Text, nullable=True)
    is_renewal = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, default=utc_now, nullable=False)

    agency = relationship("Agency", back_populates="verifications")
    escort = relationship("Escort", back_populates="verifications")
