from sqlalchemy import Column, String, DateTime, Boolean, Float, Integer, Text, JSON

from app.database.session import Base
from app.utils.time_utils import utc_now


class VerificationPricing(Base):
    __tablename__ = "verification_pricing"
    __table_args__ = {"extend_existing": True}

    id = Column(String(50), primary_key=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    cost = Column(Float, nullable=False)
    duration = Column(Integer, nullable=True)  # days; None falls back to the configured default
    features = Column(JSON, nullable=False, default=list)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)
