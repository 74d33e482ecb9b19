import uuid

from sqlalchemy import Column, String, DateTime, ForeignKey, Boolean, Float, Integer
from sqlalchemy.orm import relationship

from app.database.session import Base
from app.utils.time_utils import utc_now


class Agency(Base):
    __tablename__ = "agencies"
    __table_args__ = {"extend_existing": True}

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)

    is_verified = Column(Boolean, default=False, nullable=False)
    verified_at = Column(DateTime, nullable=True)
    default_commission_rate = Column(Float, default=0.15, nullable=False)

    # Maintained incrementally by the membership service, never recomputed
    total_escorts = Column(Integer, default=0, nullable=False)
    active_escorts = Column(Integer, default=0, nullable=False)
    verified_escorts = Column(Integer, default=0, nullable=False)
    total_verifications = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    user = relationship("User", back_populates="agency")
    memberships = relationship("AgencyMembership", back_populates="agency", cascade="all, delete-orphan")
    invitations = relationship("AgencyInvitation", back_populates="agency", cascade="all, delete-orphan")
    verifications = relationship("EscortVerification", back_populates="agency", cascade="all, delete-orphan")
