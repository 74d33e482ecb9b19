import uuid

from sqlalchemy import Column, String, DateTime, ForeignKey, Boolean, Float, Integer
from sqlalchemy.orm import relationship

from app.database.session import Base
from app.utils.time_utils import utc_now


class Escort(Base):
    __tablename__ = "escorts"
    __table_args__ = {"extend_existing": True}

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)

    # Verification is mutated only by the agency membership service
    is_verified = Column(Boolean, default=False, nullable=False)
    verified_at = Column(DateTime, nullable=True)
    verified_by = Column(String(36), nullable=True)  # agency id
    verification_expires_at = Column(DateTime, nullable=True)

    rating = Column(Float, default=0.0, nullable=False)
    total_ratings = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    user = relationship("User", back_populates="escort")
    memberships = relationship("AgencyMembership", back_populates="escort", cascade="all, delete-orphan")
    invitations = relationship("AgencyInvitation", back_populates="escort", cascade="all, delete-orphan")
    verifications = relationship("EscortVerification", back_populates="escort", cascade="all, delete-orphan")
