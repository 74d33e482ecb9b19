import uuid

from sqlalchemy import Column, String, DateTime, ForeignKey, Float
from sqlalchemy.orm import relationship

from app.database.session import Base
from app.utils.time_utils import utc_now


class UserReputation(Base):
    __tablename__ = "user_reputations"
    __table_args__ = {"extend_existing": True}

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)

    overall_score = Column(Float, default=0.0, nullable=False)
    trust_score = Column(Float, default=0.0, nullable=False)
    last_score_update = Column(DateTime, default=utc_now, nullable=False)

    user = relationship("User", back_populates="reputation")
